"""Preprocessor configuration and YAML options loading.

Example .plantmark.yaml:

    output_mode: image
    server_url: https://www.plantuml.com/plantuml
    output_dir: docs/img
    base_ref: img

    # or nested, for files shared with other tools
    plantuml:
      output_mode: url-only
      server_url: ${PLANTUML_SERVER:-http://localhost:8080}
"""

from __future__ import annotations

import os
import re
import shlex
from enum import Enum
from pathlib import Path
from typing import Any, Literal

import yaml
from loguru import logger
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    ValidationError,
    field_validator,
    model_validator,
)

from plantmark.errors import ConfigurationError
from plantmark.scanner import DEFAULT_FORMAT, IMAGE_FORMATS

__all__ = [
    "CONFIG_ENV_VAR",
    "DEFAULT_CONFIG_FILENAME",
    "PreprocessConfig",
    "RenderStrategy",
    "build_config",
    "expand_env",
    "load_config",
]

CONFIG_ENV_VAR = "PLANTMARK_CONFIG"
DEFAULT_CONFIG_FILENAME = ".plantmark.yaml"

# Accepted spellings of output_mode
_MODE_ALIASES = {"url": "url-only", "url_only": "url-only"}

_ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")


class RenderStrategy(str, Enum):
    """How blocks are turned into images for one run."""

    LOCAL = "local"
    REMOTE_FETCH = "remote-fetch"
    REMOTE_URL = "remote-url"


class PreprocessConfig(BaseModel):
    """Validated options for one preprocessing run.

    The render strategy is resolved while validating, so an invalid
    combination of options fails before any block is processed.
    """

    model_config = ConfigDict(extra="forbid")

    output_mode: Literal["image", "url-only"] = Field(
        default="image",
        description="'image' writes image files, 'url-only' links to the render server",
    )
    exec: str | None = Field(
        default=None,
        description="Local PlantUML command line (e.g. 'plantuml' or 'java -jar plantuml.jar')",
    )
    server_url: str | None = Field(
        default=None,
        description="Base URL of a PlantUML server (e.g. https://www.plantuml.com/plantuml)",
    )
    output_dir: Path = Field(
        default_factory=Path.cwd,
        description="Directory for generated image files",
    )
    base_ref: str = Field(
        default=".",
        description="Path or URL prefix used in the generated image references",
    )
    image_format: str = Field(
        default=DEFAULT_FORMAT,
        description="Extension for blocks whose header names none",
    )
    timeout: float = Field(
        default=60.0,
        ge=1.0,
        le=600.0,
        description="Timeout in seconds for each subprocess or HTTP call",
    )
    max_concurrent: int = Field(
        default=4,
        ge=1,
        le=64,
        description="Maximum blocks rendered at once (1 = sequential)",
    )

    _strategy: RenderStrategy = PrivateAttr()

    @field_validator("output_mode", mode="before")
    @classmethod
    def _normalize_mode(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip().lower()
            return _MODE_ALIASES.get(v, v)
        return v

    @field_validator("exec", "server_url", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("exec")
    @classmethod
    def _check_exec(cls, v: str | None) -> str | None:
        if v is None:
            return v
        try:
            command = shlex.split(v)
        except ValueError as e:
            raise ValueError(f"Cannot parse exec '{v}': {e}") from e
        if not command or not command[0]:
            raise ValueError(f"exec '{v}' names no command")
        return v

    @field_validator("server_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str | None) -> str | None:
        return v.rstrip("/") if v is not None else None

    @field_validator("image_format")
    @classmethod
    def _check_format(cls, v: str) -> str:
        v = v.lower().lstrip(".")
        if v not in IMAGE_FORMATS:
            raise ValueError(
                f"Unknown image format '{v}'. Supported: {', '.join(sorted(IMAGE_FORMATS))}"
            )
        return v

    @model_validator(mode="after")
    def _resolve_strategy(self) -> PreprocessConfig:
        if self.output_mode == "url-only":
            if self.server_url is None:
                raise ValueError("output_mode 'url-only' requires server_url")
            self._strategy = RenderStrategy.REMOTE_URL
        elif self.exec is not None:
            self._strategy = RenderStrategy.LOCAL
        elif self.server_url is not None:
            self._strategy = RenderStrategy.REMOTE_FETCH
        else:
            raise ValueError("output_mode 'image' requires exec or server_url")
        return self

    @property
    def strategy(self) -> RenderStrategy:
        """The render strategy selected for this configuration."""
        return self._strategy


def build_config(**options: Any) -> PreprocessConfig:
    """Validate keyword options into a PreprocessConfig.

    Options set to None are treated as absent.

    Raises:
        ConfigurationError: If an option is invalid or missing for the mode.
    """
    data = {k: v for k, v in options.items() if v is not None}
    try:
        return PreprocessConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {_format_errors(e)}") from e


def _format_errors(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err["loc"])
        msg = err["msg"].removeprefix("Value error, ")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts)


def expand_env(value: str) -> str:
    """Expand ${VAR} and ${VAR:-default} from the environment.

    Raises:
        ConfigurationError: If a variable is unset and has no default.
    """
    missing: list[str] = []

    def replace(match: re.Match[str]) -> str:
        name, default = match.group(1), match.group(2)
        env_value = os.environ.get(name)
        if env_value is not None:
            return env_value
        if default is not None:
            return default
        missing.append(name)
        return match.group(0)

    result = _ENV_PATTERN.sub(replace, value)
    if missing:
        raise ConfigurationError(
            f"Missing environment variables: {', '.join(missing)}. "
            "Set them or use ${VAR:-default} syntax."
        )
    return result


def _expand_env_recursive(data: Any) -> Any:
    if isinstance(data, dict):
        return {k: _expand_env_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_expand_env_recursive(v) for v in data]
    elif isinstance(data, str):
        return expand_env(data)
    return data


def _resolve_config_path(config_path: Path | str | None) -> Path | None:
    """Resolve the options file: explicit path, env var, then cwd default."""
    if config_path is not None:
        return Path(config_path)

    env_config = os.getenv(CONFIG_ENV_VAR)
    if env_config:
        return Path(env_config)

    default = Path.cwd() / DEFAULT_CONFIG_FILENAME
    if default.exists():
        return default

    return None


def _load_yaml_file(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")

    try:
        with config_path.open() as f:
            raw_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Error reading {config_path}: {e}") from e

    if raw_data is None:
        return {}
    if not isinstance(raw_data, dict):
        raise ConfigurationError(f"Expected a mapping in {config_path}")

    nested = raw_data.get("plantuml")
    if isinstance(nested, dict):
        return nested
    return raw_data


def load_config(config_path: Path | str | None = None, **overrides: Any) -> PreprocessConfig:
    """Load options from YAML, apply overrides and validate.

    Resolution order (when config_path is None):
    1. PLANTMARK_CONFIG env var
    2. ./.plantmark.yaml
    3. Built-in defaults

    Args:
        config_path: Path to an options file (overrides resolution)
        **overrides: Option values taking precedence over the file; None is ignored

    Returns:
        Validated PreprocessConfig

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    resolved_path = _resolve_config_path(config_path)

    data: dict[str, Any] = {}
    if resolved_path is None:
        logger.debug("No config file found, using defaults")
    else:
        logger.debug(f"Loading config from {resolved_path}")
        data = _expand_env_recursive(_load_yaml_file(resolved_path))

    data.update({k: v for k, v in overrides.items() if v is not None})
    config = build_config(**data)

    logger.debug(f"Config resolved: strategy={config.strategy.value}")
    return config
