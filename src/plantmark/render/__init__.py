"""Render strategies: local PlantUML, server download, server URL."""

from __future__ import annotations

from typing import Any

from plantmark.config import RenderStrategy
from plantmark.render.base import Renderer, block_url, file_locator, run_blocks
from plantmark.render.local import LocalRenderer
from plantmark.render.remote import RemoteFetchRenderer, RemoteUrlRenderer

__all__ = [
    "LocalRenderer",
    "RemoteFetchRenderer",
    "RemoteUrlRenderer",
    "Renderer",
    "block_url",
    "file_locator",
    "get_renderer",
    "run_blocks",
]

RENDERERS: dict[RenderStrategy, type[Renderer]] = {
    RenderStrategy.LOCAL: LocalRenderer,
    RenderStrategy.REMOTE_FETCH: RemoteFetchRenderer,
    RenderStrategy.REMOTE_URL: RemoteUrlRenderer,
}


def get_renderer(strategy: RenderStrategy, **kwargs: Any) -> Renderer:
    """Create the renderer for a strategy.

    Args:
        strategy: Strategy resolved by the configuration.
        **kwargs: Passed to the renderer (e.g. client= for remote-fetch).
    """
    return RENDERERS[strategy](**kwargs)
