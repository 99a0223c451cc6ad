"""PlantMark CLI entry point."""

from __future__ import annotations

import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

import plantmark
from plantmark.config import load_config
from plantmark.encoding import encode as encode_text
from plantmark.errors import ConfigurationError, PlantmarkError
from plantmark.http import close_client
from plantmark.logging import configure_logging
from plantmark.pipeline import preprocess
from plantmark.scanner import scan as scan_text

app = typer.Typer(
    name="plantmark",
    help="Render PlantUML blocks in markdown into image references.",
    no_args_is_help=True,
    add_completion=False,
)

# Results go to stdout, diagnostics to stderr
_stderr_console = Console(stderr=True)

EXIT_CONFIG_ERROR = 1
EXIT_RENDER_ERROR = 2


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"plantmark {plantmark.__version__}")
        raise typer.Exit()


def _read_input(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        _stderr_console.print(f"[red]Error:[/red] cannot read {path}: {escape(str(e))}")
        raise typer.Exit(EXIT_CONFIG_ERROR) from e


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    log_level: str = typer.Option(
        "WARNING", "--log-level", help="Log level for stderr output."
    ),
) -> None:
    """Render PlantUML blocks in markdown into image references.

    Commands:
        render  - Preprocess a document
        scan    - List the blocks found in a document
        encode  - Print the PlantUML server token for some text
    """
    configure_logging(log_level)


@app.command()
def render(
    input_path: str = typer.Argument(..., metavar="INPUT", help="Input file, or - for stdin."),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Output file (default: stdout)."
    ),
    config_path: Path | None = typer.Option(
        None, "--config", "-c", help="YAML options file."
    ),
    mode: str | None = typer.Option(
        None, "--mode", "-m", help="Output mode: image or url-only."
    ),
    exec_cmd: str | None = typer.Option(
        None, "--exec", help="Local PlantUML command line."
    ),
    server: str | None = typer.Option(
        None, "--server", "-s", help="PlantUML server base URL."
    ),
    output_dir: Path | None = typer.Option(
        None, "--output-dir", "-d", help="Directory for generated images."
    ),
    base_ref: str | None = typer.Option(
        None, "--base-ref", help="Path or URL prefix for image references."
    ),
    image_format: str | None = typer.Option(
        None, "--format", "-f", help="Default image format for blocks without one."
    ),
    max_concurrent: int | None = typer.Option(
        None, "--max-concurrent", help="Blocks rendered at once."
    ),
) -> None:
    """Render the PlantUML blocks of INPUT and write the rewritten document."""
    try:
        config = load_config(
            config_path,
            output_mode=mode,
            exec=exec_cmd,
            server_url=server,
            output_dir=output_dir,
            base_ref=base_ref,
            image_format=image_format,
            max_concurrent=max_concurrent,
        )
    except ConfigurationError as e:
        _stderr_console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        raise typer.Exit(EXIT_CONFIG_ERROR) from e

    text = _read_input(input_path)

    try:
        result = preprocess(text, config)
    except PlantmarkError as e:
        _stderr_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(EXIT_RENDER_ERROR) from e
    finally:
        close_client()

    if output is None:
        sys.stdout.write(result)
    else:
        output.write_text(result, encoding="utf-8")
        _stderr_console.print(f"Wrote {output}")


@app.command()
def scan(
    input_path: str = typer.Argument(..., metavar="INPUT", help="Input file, or - for stdin."),
    image_format: str = typer.Option(
        "png", "--format", "-f", help="Default image format for blocks without one."
    ),
) -> None:
    """List the PlantUML blocks found in INPUT."""
    blocks = scan_text(_read_input(input_path), default_format=image_format)
    if not blocks:
        typer.echo("No PlantUML blocks found.")
        return

    table = Table(title=f"{len(blocks)} PlantUML block(s)")
    table.add_column("#", justify="right")
    table.add_column("Title")
    table.add_column("Format")
    table.add_column("Lines", justify="right")
    for block in blocks:
        table.add_row(
            str(block.index + 1),
            escape(block.title),
            block.extension,
            str(len(block.payload.splitlines())),
        )
    Console().print(table)


@app.command()
def encode(
    text: str | None = typer.Argument(None, help="Diagram text (default: stdin)."),
) -> None:
    """Print the PlantUML server token for TEXT."""
    if text is None:
        text = sys.stdin.read()
    typer.echo(encode_text(text))


def cli() -> None:
    """Run the CLI application."""
    app()


if __name__ == "__main__":
    cli()
