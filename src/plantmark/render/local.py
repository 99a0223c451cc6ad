"""Render blocks with a locally installed PlantUML.

Each block is written, delimiters included, to its own temporary file in
the output directory and passed to `<exec> -t<extension> <file>`. PlantUML
writes the image next to the input, named after the block header.
"""

from __future__ import annotations

import shlex
import subprocess
import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from plantmark.config import RenderStrategy
from plantmark.errors import RenderError
from plantmark.logging import log
from plantmark.render.base import Renderer, file_locator, run_blocks

if TYPE_CHECKING:
    from plantmark.config import PreprocessConfig
    from plantmark.scanner import Block

__all__ = ["LocalRenderer", "TEMP_PREFIX", "TEMP_SUFFIX"]

TEMP_PREFIX = ".plantmark-"
TEMP_SUFFIX = ".puml"


class LocalRenderer(Renderer):
    """Shells out to the PlantUML binary once per block."""

    strategy = RenderStrategy.LOCAL

    def _render(self, blocks: Sequence[Block], config: PreprocessConfig) -> None:
        assert config.exec is not None
        command = shlex.split(config.exec)

        output_dir = Path(config.output_dir)
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise RenderError(f"Cannot create output directory {output_dir}: {e}") from e

        def render_one(block: Block) -> str:
            self._run(block, command, output_dir, config.timeout)
            return file_locator(config.base_ref, block.output_filename)

        run_blocks(render_one, blocks, config.max_concurrent)

    def _run(
        self, block: Block, command: list[str], output_dir: Path, timeout: float
    ) -> None:
        with log(
            "plantmark.render.block",
            strategy=self.strategy.value,
            title=block.title,
            format=block.extension,
        ) as span:
            temp_path = _write_temp(block, output_dir)
            try:
                returncode = self._invoke(block, command, temp_path, output_dir, timeout)
            except BaseException:
                # Keep the render error; a failed cleanup is only logged
                _discard_temp(temp_path)
                raise
            _remove_temp(temp_path, block)
            span.add(returncode=returncode)

    def _invoke(
        self,
        block: Block,
        command: list[str],
        temp_path: Path,
        output_dir: Path,
        timeout: float,
    ) -> int:
        args = [*command, f"-t{block.extension}", str(temp_path)]
        logger.debug(f"Running: {shlex.join(args)}")
        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
                cwd=output_dir,
                timeout=timeout,
            )
        except FileNotFoundError as e:
            raise RenderError(
                f"PlantUML executable not found: {command[0]}", title=block.title
            ) from e
        except subprocess.TimeoutExpired as e:
            raise RenderError(
                f"PlantUML timed out after {timeout} seconds", title=block.title
            ) from e
        except OSError as e:
            raise RenderError(f"Cannot run {command[0]}: {e}", title=block.title) from e

        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip()
            message = f"PlantUML exited with code {result.returncode}"
            if detail:
                message = f"{message}: {detail[:500]}"
            raise RenderError(message, title=block.title)
        return result.returncode


def _write_temp(block: Block, output_dir: Path) -> Path:
    """Write the block to a temp file whose name is unique per block."""
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=output_dir,
            prefix=f"{TEMP_PREFIX}{block.index}-",
            suffix=TEMP_SUFFIX,
            delete=False,
        ) as f:
            f.write(block.source)
            return Path(f.name)
    except OSError as e:
        raise RenderError(f"Cannot write temporary file: {e}", title=block.title) from e


def _remove_temp(path: Path, block: Block) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        raise RenderError(
            f"Cannot delete temporary file {path}: {e}", title=block.title
        ) from e


def _discard_temp(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Cannot delete temporary file {path}: {e}")
