"""Structured logging spans on top of loguru.

Library code never installs sinks; the CLI calls configure_logging().
"""

from __future__ import annotations

import json
import sys
import time
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from loguru import logger

__all__ = ["LogSpan", "configure_logging", "log"]

LOG_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | {message}"
)


class LogSpan:
    """A structured logging span with timing and attributes."""

    def __init__(self, name: str, **attrs: Any) -> None:
        """Initialize a log span.

        Args:
            name: Span name (e.g., "plantmark.scan")
            **attrs: Initial attributes to log
        """
        self.name = name
        self.attrs: dict[str, Any] = dict(attrs)
        self.start_time = time.perf_counter()
        self.error: str | None = None

    def add(self, key: str | None = None, value: Any = None, **attrs: Any) -> LogSpan:
        """Add attributes to the span.

        Args:
            key: Attribute name (optional if using kwargs)
            value: Attribute value (required if key is provided)
            **attrs: Bulk attribute additions (e.g., count=3)

        Returns:
            Self for method chaining
        """
        if key is not None:
            self.attrs[key] = value
        self.attrs.update(attrs)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Return the log record for this span."""
        elapsed_ms = (time.perf_counter() - self.start_time) * 1000
        entry = {
            "span": self.name,
            "elapsed_ms": round(elapsed_ms, 2),
            **self.attrs,
        }
        if self.error:
            entry["error"] = self.error
        return entry

    def _emit(self) -> None:
        entry = json.dumps(self.to_dict(), default=str)
        if self.error:
            logger.warning(entry)
        else:
            logger.debug(entry)


@contextmanager
def log(name: str, **attrs: Any) -> Generator[LogSpan, None, None]:
    """Context manager for structured logging.

    Captures timing and errors. Errors are recorded and re-raised.

    Example:
        >>> with log("plantmark.scan", length=len(text)) as span:
        ...     blocks = find_blocks(text)
        ...     span.add(blocks=len(blocks))
    """
    span = LogSpan(name, **attrs)
    try:
        yield span
    except Exception as e:
        span.error = f"{type(e).__name__}: {e}"
        raise
    finally:
        span._emit()


def _stderr_sink(message: str) -> None:
    # sys.stderr is looked up per message so redirected streams are honoured
    sys.stderr.write(message)


def configure_logging(level: str = "WARNING") -> None:
    """Replace loguru's default sink with a stderr sink at the given level."""
    logger.remove()
    logger.add(_stderr_sink, level=level.upper(), format=LOG_FORMAT)
