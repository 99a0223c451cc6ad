"""PlantUML text encoding.

Diagram text is addressed on a PlantUML server by a token built in three
steps (https://plantuml.com/text-encoding):

1. Encode the text as UTF-8
2. Compress it with raw DEFLATE (no zlib header or checksum), level 9
3. Re-encode the bytes with a base64-like transform over PlantUML's alphabet

Trailing groups of one or two bytes are zero padded to three bytes, so every
group yields four characters. No padding character is emitted.
"""

from __future__ import annotations

import zlib

__all__ = ["ALPHABET", "deflate", "encode", "encode64"]

# 0-9 -> 0..9, A-Z -> 10..35, a-z -> 36..61, '-' -> 62, '_' -> 63
ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz-_"


def deflate(data: bytes) -> bytes:
    """Compress bytes into a raw DEFLATE stream at maximum compression."""
    compressor = zlib.compressobj(9, zlib.DEFLATED, -zlib.MAX_WBITS)
    return compressor.compress(data) + compressor.flush()


def _append3bytes(b1: int, b2: int, b3: int) -> str:
    c1 = b1 >> 2
    c2 = ((b1 & 0x3) << 4) | (b2 >> 4)
    c3 = ((b2 & 0xF) << 2) | (b3 >> 6)
    c4 = b3 & 0x3F
    return ALPHABET[c1] + ALPHABET[c2] + ALPHABET[c3] + ALPHABET[c4]


def encode64(data: bytes) -> str:
    """Encode bytes with PlantUML's 6-bit alphabet.

    Args:
        data: Raw bytes (normally a DEFLATE stream).

    Returns:
        URL-safe string, four characters per (padded) three-byte group.
    """
    result = []
    for i in range(0, len(data), 3):
        chunk = data[i : i + 3].ljust(3, b"\x00")
        result.append(_append3bytes(chunk[0], chunk[1], chunk[2]))
    return "".join(result)


def encode(source: str) -> str:
    """Encode diagram text into a token for PlantUML server URLs.

    Args:
        source: Diagram text, without the @startuml/@enduml lines.

    Returns:
        Deterministic URL-safe token.

    Example:
        >>> encode("Bob -> Alice : hello")
        'SyfFKj2rKt3CoKnELR1Io4ZDoSa70000'
    """
    return encode64(deflate(source.encode("utf-8")))
