"""Preprocessing entry points.

preprocess() runs one document through scan -> render -> rewrite.
wrap() puts that in front of a downstream markdown renderer.
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from typing import Any, TypeVar

import httpx

from plantmark.config import PreprocessConfig, RenderStrategy, build_config
from plantmark.logging import log
from plantmark.render import get_renderer
from plantmark.rewriter import rewrite
from plantmark.scanner import scan

__all__ = ["preprocess", "wrap"]

R = TypeVar("R")


def preprocess(
    text: str,
    config: PreprocessConfig | None = None,
    *,
    client: httpx.Client | None = None,
    **options: Any,
) -> str:
    """Render every PlantUML block in text and replace it with an image reference.

    Args:
        text: Markdown or HTML source.
        config: Validated configuration. When omitted, built from **options.
        client: HTTP client for the remote-fetch strategy (defaults to a shared one).
        **options: PreprocessConfig fields, used only when config is None.

    Returns:
        The transformed text, or text itself when it contains no blocks.

    Raises:
        ConfigurationError: Invalid options; raised before any I/O.
        RenderError: A block failed to render; no partial text is returned.
        RewriteError: A rendered block could not be placed back.

    Example:
        text = preprocess(source, output_mode="url-only", server_url="http://x")
        # "@startuml d.svg ... @enduml" becomes "![d](http://x/svg/<token>)"
    """
    if config is None:
        config = build_config(**options)
    elif options:
        config = build_config(**{**config.model_dump(), **options})

    with log("plantmark.preprocess", strategy=config.strategy.value) as span:
        blocks = scan(text, default_format=config.image_format)
        span.add(blocks=len(blocks))
        if not blocks:
            return text

        kwargs: dict[str, Any] = {}
        if config.strategy is RenderStrategy.REMOTE_FETCH and client is not None:
            kwargs["client"] = client
        get_renderer(config.strategy, **kwargs).render(blocks, config)

        return rewrite(text, blocks)


def wrap(
    renderer: Callable[..., R],
    config: PreprocessConfig | None = None,
    **options: Any,
) -> Callable[..., R]:
    """Preprocess text before handing it to a markdown renderer.

    The returned callable takes the renderer's own arguments; only the first
    positional argument (the text) is transformed.

    Args:
        renderer: Downstream renderer, e.g. markdown.markdown.
        config: Configuration used for every call.
        **options: PreprocessConfig fields, used when config is None.

    Example:
        >>> to_html = wrap(markdown.markdown, output_mode="url-only",
        ...                server_url="https://www.plantuml.com/plantuml")
        >>> html = to_html(source, extensions=["tables"])
    """
    if config is None:
        config = build_config(**options)

    @functools.wraps(renderer)
    def wrapped(text: str, *args: Any, **kwargs: Any) -> R:
        return renderer(preprocess(text, config), *args, **kwargs)

    return wrapped
