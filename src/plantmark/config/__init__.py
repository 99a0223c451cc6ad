"""Configuration for the preprocessor."""

from plantmark.config.loader import (
    PreprocessConfig,
    RenderStrategy,
    build_config,
    expand_env,
    load_config,
)

__all__ = [
    "PreprocessConfig",
    "RenderStrategy",
    "build_config",
    "expand_env",
    "load_config",
]
