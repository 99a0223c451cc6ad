"""Find PlantUML blocks in markdown/HTML text.

A block looks like::

    @startuml My diagram.svg
    Bob -> Alice : hello
    @enduml

The header after @startuml holds the title and an optional extension. The
last dot-separated segment is taken as the extension only when it names an
image format PlantUML can emit, so "v1.2 diagram" keeps its full title.
A bare @startuml without a title on the same line is not a block.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from plantmark.logging import log

__all__ = [
    "BLOCK_PATTERN",
    "DEFAULT_FORMAT",
    "END_DELIMITER",
    "IMAGE_FORMATS",
    "START_DELIMITER",
    "Block",
    "scan",
    "split_header",
]

START_DELIMITER = "@startuml"
END_DELIMITER = "@enduml"

DEFAULT_FORMAT = "png"

# Output types accepted by `plantuml -t<format>`
IMAGE_FORMATS = frozenset(
    {
        "eps",
        "html",
        "latex",
        "pdf",
        "png",
        "scxml",
        "svg",
        "txt",
        "utxt",
        "vdx",
        "xmi",
    }
)

BLOCK_PATTERN = re.compile(
    re.escape(START_DELIMITER)
    + r"[ \t]+(?P<header>\S[^\r\n]*?)[ \t]*(?:\r\n|\r|\n)"
    + r"(?P<body>[\s\S]*?)"
    + re.escape(END_DELIMITER)
    + r"\b"
)


@dataclass
class Block:
    """One PlantUML block found in the source text.

    `locator` is filled in by a renderer and read by the rewriter.
    """

    index: int
    source: str
    title: str
    extension: str
    payload: str
    start: int
    end: int
    locator: str | None = None

    @property
    def output_filename(self) -> str:
        """File name of the rendered image."""
        return f"{self.title}.{self.extension}"


def split_header(header: str, default_format: str = DEFAULT_FORMAT) -> tuple[str, str]:
    """Split a block header into (title, extension).

    Args:
        header: Text following @startuml on the same line.
        default_format: Extension used when the header carries none.

    Returns:
        Tuple of title and lower-case extension.
    """
    stem, dot, suffix = header.rpartition(".")
    if dot and stem.strip() and suffix.lower() in IMAGE_FORMATS:
        return stem.rstrip(), suffix.lower()
    return header, default_format


def scan(text: str, default_format: str = DEFAULT_FORMAT) -> list[Block]:
    """Find all PlantUML blocks in source order.

    Args:
        text: Markdown or HTML source. Not modified.
        default_format: Extension for blocks whose header has none.

    Returns:
        Blocks in the order they appear; empty when there are none.
    """
    with log("plantmark.scan", length=len(text)) as span:
        blocks: list[Block] = []
        for match in BLOCK_PATTERN.finditer(text):
            title, extension = split_header(match.group("header"), default_format)
            blocks.append(
                Block(
                    index=len(blocks),
                    source=match.group(0),
                    title=title,
                    extension=extension,
                    payload=match.group("body").strip(),
                    start=match.start(),
                    end=match.end(),
                )
            )
        span.add(blocks=len(blocks))
        return blocks
