"""Common renderer contract and the per-block worker pool."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import TYPE_CHECKING, ClassVar
from urllib.parse import quote

from loguru import logger

from plantmark.encoding import encode
from plantmark.errors import RenderError
from plantmark.logging import log
from plantmark.rewriter import is_url

if TYPE_CHECKING:
    from plantmark.config import PreprocessConfig, RenderStrategy
    from plantmark.scanner import Block

__all__ = ["Renderer", "block_url", "file_locator", "run_blocks"]


class Renderer(ABC):
    """Turns blocks into locators.

    After render() returns, every block has its `locator` set. The first
    failing block aborts the run with RenderError.
    """

    strategy: ClassVar[RenderStrategy]

    def render(self, blocks: Sequence[Block], config: PreprocessConfig) -> None:
        """Populate the locator of every block."""
        with log(f"plantmark.render.{self.strategy.value}", blocks=len(blocks)) as span:
            self._render(blocks, config)
            span.add(rendered=sum(1 for b in blocks if b.locator is not None))

    @abstractmethod
    def _render(self, blocks: Sequence[Block], config: PreprocessConfig) -> None: ...


def block_url(server_url: str, block: Block) -> str:
    """Render server URL for a block: <server>/<extension>/<token>."""
    return f"{server_url}/{block.extension}/{encode(block.payload)}"


def file_locator(base_ref: str, filename: str) -> str:
    """Reference to a rendered file under base_ref.

    Under a URL prefix the file name is percent-encoded here. Path
    locators stay raw; the rewriter escapes them.
    """
    if not base_ref:
        return filename
    base = base_ref.rstrip("/")
    if is_url(base):
        return f"{base}/{quote(filename)}"
    return f"{base}/{filename}"


def _assign(block: Block, locator: str) -> None:
    if block.locator is not None:
        raise RenderError("locator assigned twice", title=block.title)
    block.locator = locator


def run_blocks(
    func: Callable[[Block], str],
    blocks: Sequence[Block],
    max_workers: int,
) -> None:
    """Run func for each block and store the returned locator on it.

    Blocks are independent, so up to max_workers run at once. On the first
    failure, blocks that have not started are cancelled and the error is
    re-raised once running blocks have finished.

    Args:
        func: Renders one block and returns its locator.
        blocks: Blocks to render.
        max_workers: Concurrency limit; 1 renders sequentially in order.
    """
    if max_workers <= 1 or len(blocks) <= 1:
        for block in blocks:
            _assign(block, func(block))
        return

    with ThreadPoolExecutor(
        max_workers=min(max_workers, len(blocks)),
        thread_name_prefix="plantmark-render",
    ) as executor:
        futures = {executor.submit(func, block): block for block in blocks}
        try:
            for future in as_completed(futures):
                _assign(futures[future], future.result())
        except Exception:
            cancelled = sum(1 for f in futures if f.cancel())
            if cancelled:
                logger.debug(f"Cancelled {cancelled} pending block renders")
            raise
