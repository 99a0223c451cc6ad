"""Render blocks through a PlantUML server.

RemoteFetchRenderer downloads each image into the output directory.
RemoteUrlRenderer only computes the server URL, without any I/O.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from plantmark.config import RenderStrategy
from plantmark.errors import RenderError
from plantmark.http import get_client
from plantmark.logging import log
from plantmark.render.base import Renderer, block_url, file_locator, run_blocks

if TYPE_CHECKING:
    from plantmark.config import PreprocessConfig
    from plantmark.scanner import Block

__all__ = ["RemoteFetchRenderer", "RemoteUrlRenderer"]


class RemoteFetchRenderer(Renderer):
    """GETs <server>/<extension>/<token> and stores the bytes as <title>.<extension>."""

    strategy = RenderStrategy.REMOTE_FETCH

    def __init__(self, client: httpx.Client | None = None) -> None:
        self._client = client

    def _render(self, blocks: Sequence[Block], config: PreprocessConfig) -> None:
        assert config.server_url is not None
        server_url = config.server_url
        client = self._client or get_client()

        output_dir = Path(config.output_dir)
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise RenderError(f"Cannot create output directory {output_dir}: {e}") from e

        def render_one(block: Block) -> str:
            self._fetch(client, block, server_url, output_dir, config.timeout)
            return file_locator(config.base_ref, block.output_filename)

        run_blocks(render_one, blocks, config.max_concurrent)

    def _fetch(
        self,
        client: httpx.Client,
        block: Block,
        server_url: str,
        output_dir: Path,
        timeout: float,
    ) -> None:
        url = block_url(server_url, block)
        with log(
            "plantmark.render.block",
            strategy=self.strategy.value,
            title=block.title,
            format=block.extension,
            url=url,
        ) as span:
            try:
                resp = client.get(url, timeout=timeout)
            except httpx.HTTPError as e:
                raise RenderError(f"Request to {server_url} failed: {e}", title=block.title) from e

            span.add(status=resp.status_code)
            if not resp.is_success:
                raise RenderError(
                    f"Render server returned HTTP {resp.status_code}", title=block.title
                )

            target = output_dir / block.output_filename
            try:
                target.write_bytes(resp.content)
            except OSError as e:
                raise RenderError(f"Cannot write {target}: {e}", title=block.title) from e

            span.add(size=len(resp.content), path=str(target))


class RemoteUrlRenderer(Renderer):
    """Points each block at its server URL. No network or file I/O."""

    strategy = RenderStrategy.REMOTE_URL

    def _render(self, blocks: Sequence[Block], config: PreprocessConfig) -> None:
        assert config.server_url is not None
        server_url = config.server_url
        run_blocks(lambda block: block_url(server_url, block), blocks, max_workers=1)
