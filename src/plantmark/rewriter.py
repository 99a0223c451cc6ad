"""Replace rendered blocks with markdown image references."""

from __future__ import annotations

import re
from collections.abc import Sequence
from urllib.parse import quote

from plantmark.errors import RewriteError
from plantmark.logging import log
from plantmark.scanner import END_DELIMITER, START_DELIMITER, Block

__all__ = ["block_pattern", "escape_locator", "image_reference", "is_url", "rewrite"]

_URL_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")


def block_pattern(block: Block) -> re.Pattern[str]:
    """Pattern matching the block with this title and extension.

    The title is user text, so it is escaped before use. Blanks between
    the title and its extension are allowed, as the scanner drops them.
    """
    return re.compile(
        re.escape(START_DELIMITER)
        + r"[ \t]+"
        + re.escape(block.title)
        + r"[ \t]*(?:\.(?i:"
        + re.escape(block.extension)
        + r"))?[ \t]*(?:\r\n|\r|\n)[\s\S]*?"
        + re.escape(END_DELIMITER)
        + r"\b"
    )


def is_url(locator: str) -> bool:
    """True for absolute URLs such as http://host/path."""
    return _URL_PATTERN.match(locator) is not None


def escape_locator(locator: str) -> str:
    """Percent-encode file paths; full URLs are returned unchanged."""
    if is_url(locator):
        return locator
    return quote(locator)


def image_reference(block: Block) -> str:
    """Markdown image for a rendered block: ![title](locator)."""
    if block.locator is None:
        raise RewriteError(f"Block '{block.title}' has no locator")
    return f"![{block.title}]({escape_locator(block.locator)})"


def rewrite(text: str, blocks: Sequence[Block]) -> str:
    """Replace each block's span with its image reference.

    Blocks are located in source order, each search starting where the
    previous block ended, so repeated titles map to the right span.

    Args:
        text: Text the blocks were scanned from.
        blocks: Rendered blocks (locator set).

    Returns:
        Text with every block replaced, everything else untouched.

    Raises:
        RewriteError: If a block has no locator or cannot be found again.
    """
    with log("plantmark.rewrite", blocks=len(blocks)) as span:
        parts: list[str] = []
        cursor = 0
        for block in sorted(blocks, key=lambda b: b.index):
            reference = image_reference(block)
            match = block_pattern(block).search(text, cursor)
            if match is None or match.group(0) != block.source:
                raise RewriteError(
                    f"Block '{block.title}' not found at or after offset {cursor}"
                )
            parts.append(text[cursor : match.start()])
            parts.append(reference)
            cursor = match.end()
        parts.append(text[cursor:])

        result = "".join(parts)
        span.add(length=len(result))
        return result
