"""Exception types raised by the preprocessor."""

from __future__ import annotations

__all__ = ["ConfigurationError", "PlantmarkError", "RenderError", "RewriteError"]


class PlantmarkError(Exception):
    """Base class for all preprocessor failures."""


class ConfigurationError(PlantmarkError):
    """Missing or invalid option for the chosen output mode.

    Raised before any block is scanned or rendered.
    """


class RenderError(PlantmarkError):
    """A block could not be rendered (subprocess, network or filesystem)."""

    def __init__(self, message: str, *, title: str | None = None) -> None:
        self.title = title
        if title is not None:
            message = f"{title}: {message}"
        super().__init__(message)


class RewriteError(PlantmarkError):
    """A rendered block could not be located in the source text."""
