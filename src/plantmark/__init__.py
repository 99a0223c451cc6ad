"""PlantMark - render PlantUML blocks embedded in markdown/HTML documents.

Features:
- Finds @startuml <title> ... @enduml blocks in a document
- Renders them with a local PlantUML binary, a PlantUML server, or as server URLs
- Rewrites each block into a markdown image reference

Usage:
    from plantmark import preprocess, wrap

    text = preprocess(source, output_mode="url-only", server_url="https://www.plantuml.com/plantuml")

    # Wrap a downstream markdown renderer
    render = wrap(markdown.markdown, load_config())
    html = render(source, extensions=["tables"])
"""

from importlib.metadata import version
from typing import Any

__version__ = version("plantmark")

__all__ = [
    "ConfigurationError",
    "PlantmarkError",
    "PreprocessConfig",
    "RenderError",
    "RenderStrategy",
    "RewriteError",
    "__version__",
    "encode",
    "load_config",
    "preprocess",
    "scan",
    "wrap",
]

_LAZY = {
    "ConfigurationError": "plantmark.errors",
    "PlantmarkError": "plantmark.errors",
    "RenderError": "plantmark.errors",
    "RewriteError": "plantmark.errors",
    "PreprocessConfig": "plantmark.config",
    "RenderStrategy": "plantmark.config",
    "load_config": "plantmark.config",
    "encode": "plantmark.encoding",
    "scan": "plantmark.scanner",
    "preprocess": "plantmark.pipeline",
    "wrap": "plantmark.pipeline",
}


def __getattr__(name: str) -> Any:
    """Lazy import of the public API to keep `import plantmark` cheap."""
    module_name = _LAZY.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    import importlib

    return getattr(importlib.import_module(module_name), name)
