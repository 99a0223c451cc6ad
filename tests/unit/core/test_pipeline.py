"""Tests for preprocess() and wrap()."""

from __future__ import annotations

import re
import subprocess
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import httpx
import pytest

from plantmark.config import build_config
from plantmark.encoding import encode
from plantmark.errors import ConfigurationError, RenderError
from plantmark.pipeline import preprocess, wrap

DOCUMENT = """\
Hello
=======

@startuml my-diagram.png
class A
A <|-- B
@enduml

Another one:

@startuml 2nd.svg
Bob -> Alice : hello
@enduml

And a 3rd:

@startuml One nice 3rd image.eps
Bob -> Alice : "Hello World"
@enduml
"""

IMAGE_REF = re.compile(r"!\[([^\]]*)\]\(([^)]*)\)")


@pytest.mark.unit
@pytest.mark.core
class TestPreprocess:
    """End-to-end runs of the pipeline."""

    def test_text_without_blocks_is_unchanged(self) -> None:
        text = "# Title\n\nNo diagrams here, just `@startuml` in code.\r\n"
        result = preprocess(text, output_mode="url-only", server_url="http://x")
        assert result is text

    def test_url_only_example(self) -> None:
        text = "@startuml diagram.svg\nA -> B\n@enduml"
        result = preprocess(text, output_mode="url-only", server_url="http://x")
        assert result == "![diagram](http://x/svg/SrJGjLDm0W00)"

    def test_n_blocks_give_n_references_in_order(self) -> None:
        result = preprocess(
            DOCUMENT, output_mode="url-only", server_url="http://x/plantuml"
        )

        refs = IMAGE_REF.findall(result)
        assert [title for title, _ in refs] == [
            "my-diagram",
            "2nd",
            "One nice 3rd image",
        ]
        assert len({locator for _, locator in refs}) == 3
        assert refs[1][1] == "http://x/plantuml/svg/SyfFKj2rKt3CoKnELR1Io4ZDoSa70000"
        assert result.startswith("Hello\n=======\n\n![my-diagram](")

    def test_output_is_not_processed_twice(self) -> None:
        config = build_config(output_mode="url-only", server_url="http://x")
        once = preprocess(DOCUMENT, config)
        assert preprocess(once, config) == once

    def test_remote_fetch(self, tmp_path: Path) -> None:
        client = httpx.Client(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, content=b"PNG"))
        )
        result = preprocess(
            DOCUMENT,
            client=client,
            server_url="http://x",
            output_dir=tmp_path,
            base_ref="img",
        )

        assert "![my-diagram](img/my-diagram.png)" in result
        assert "![2nd](img/2nd.svg)" in result
        assert "![One nice 3rd image](img/One%20nice%203rd%20image.eps)" in result
        assert (tmp_path / "One nice 3rd image.eps").read_bytes() == b"PNG"

    def test_remote_fetch_under_url_base_ref(self, tmp_path: Path) -> None:
        client = httpx.Client(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, content=b"SVG"))
        )
        result = preprocess(
            "@startuml My diagram.svg\nA -> B\n@enduml\n",
            client=client,
            server_url="http://x",
            output_dir=tmp_path,
            base_ref="https://cdn.example.com/img",
        )

        assert result == "![My diagram](https://cdn.example.com/img/My%20diagram.svg)\n"
        assert (tmp_path / "My diagram.svg").read_bytes() == b"SVG"

    def test_blank_before_extension(self) -> None:
        result = preprocess(
            "@startuml My diagram .svg\nA -> B\n@enduml\n",
            output_mode="url-only",
            server_url="http://x",
        )

        assert result == "![My diagram](http://x/svg/SrJGjLDm0W00)\n"

    def test_local(self, tmp_path: Path) -> None:
        def fake_run(args: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
            return subprocess.CompletedProcess(args, 0, stdout="", stderr="")

        with patch("plantmark.render.local.subprocess.run", side_effect=fake_run) as run:
            result = preprocess(DOCUMENT, exec="plantuml", output_dir=tmp_path)

        assert run.call_count == 3
        assert "![2nd](./2nd.svg)" in result

    def test_render_failure_returns_no_text(self, tmp_path: Path) -> None:
        client = httpx.Client(
            transport=httpx.MockTransport(lambda request: httpx.Response(500))
        )

        with pytest.raises(RenderError, match="HTTP 500"):
            preprocess(DOCUMENT, client=client, server_url="http://x", output_dir=tmp_path)

    def test_invalid_config_fails_before_io(self, tmp_path: Path) -> None:
        output_dir = tmp_path / "out"

        with (
            patch("plantmark.render.local.subprocess.run") as run,
            patch("plantmark.render.remote.get_client") as get_client,
            patch("plantmark.pipeline.scan") as scan,
        ):
            with pytest.raises(ConfigurationError):
                preprocess(DOCUMENT, output_mode="image", output_dir=output_dir)

        run.assert_not_called()
        get_client.assert_not_called()
        scan.assert_not_called()
        assert not output_dir.exists()

    def test_options_override_config(self) -> None:
        config = build_config(output_mode="url-only", server_url="http://a")
        result = preprocess("@startuml d\nA -> B\n@enduml", config, server_url="http://b")
        assert result == f"![d](http://b/png/{encode('A -> B')})"

    def test_image_format_default(self) -> None:
        result = preprocess(
            "@startuml d\nA -> B\n@enduml",
            output_mode="url-only",
            server_url="http://x",
            image_format="svg",
        )
        assert result == "![d](http://x/svg/SrJGjLDm0W00)"


@pytest.mark.unit
@pytest.mark.core
class TestWrap:
    """Wrapping a downstream renderer."""

    def test_passes_transformed_text_and_arguments(self) -> None:
        renderer = MagicMock(return_value="<html/>")
        to_html = wrap(renderer, output_mode="url-only", server_url="http://x")

        result = to_html("@startuml d.svg\nA -> B\n@enduml", "positional", safe=True)

        assert result == "<html/>"
        renderer.assert_called_once_with(
            "![d](http://x/svg/SrJGjLDm0W00)", "positional", safe=True
        )

    def test_config_checked_when_wrapping(self) -> None:
        with pytest.raises(ConfigurationError):
            wrap(lambda text: text, output_mode="url-only")

    def test_unparseable_exec_rejected_when_wrapping(self) -> None:
        with patch("plantmark.pipeline.scan") as scan:
            with pytest.raises(ConfigurationError, match="Cannot parse exec"):
                wrap(lambda text: text, exec="plantuml 'unclosed")

        scan.assert_not_called()

    def test_renderer_not_called_on_failure(self, tmp_path: Path) -> None:
        renderer = MagicMock()
        config = build_config(exec="plantuml", output_dir=tmp_path)
        to_html = wrap(renderer, config)

        with patch(
            "plantmark.render.local.subprocess.run",
            return_value=subprocess.CompletedProcess([], 1, stdout="", stderr="boom"),
        ):
            with pytest.raises(RenderError):
                to_html("@startuml d\nA -> B\n@enduml")

        renderer.assert_not_called()

    def test_keeps_renderer_metadata(self) -> None:
        def render_markdown(text: str) -> str:
            """Render markdown."""
            return text

        wrapped = wrap(render_markdown, output_mode="url-only", server_url="http://x")
        assert wrapped.__name__ == "render_markdown"
        assert wrapped("plain") == "plain"
