"""
End-to-end streaming tests

Tests the full command pipeline: Markdown file → env_check → stream_render →
results_report → HTML document on disk.
"""

import pytest
from pathlib import Path
import tempfile

from mdstream.__main__ import env_check, stream_render, results_report
from mdstream.models import ProgramState, pipeline


SOURCE = """# Release notes

Highlights of this release:

- faster **rendering**
- [x] mermaid diagrams

```mermaid
graph LR;
A-->B;
```

```python
print("done")
```

See https://example.com for details.
"""


def state_make(tmpdir: str, **overrides) -> ProgramState:
    inputdir = Path(tmpdir) / "in"
    inputdir.mkdir(exist_ok=True)
    (inputdir / "notes.md").write_text(SOURCE, encoding="utf-8")
    options = {
        "inputdir": inputdir,
        "outputdir": Path(tmpdir) / "out",
        "inputFile": "notes.md",
        "verbosity": 0,
    }
    options.update(overrides)
    return ProgramState(**options)


class TestFileRendering:
    """Test rendering a Markdown file through the pipeline"""

    def test_file_to_document(self):
        """Complete file renders to outputdir/index.html"""
        with tempfile.TemporaryDirectory() as tmpdir:
            state = pipeline(state_make(tmpdir), env_check, stream_render, results_report)

            assert state.envOK
            assert state.streamResult["status"] is True
            assert state.streamResult["error"] is None
            assert state.streamResult["snapshots"] >= 1

            output_file = Path(tmpdir) / "out" / "index.html"
            assert output_file.exists()
            html = output_file.read_text(encoding="utf-8")
            assert "<title>notes.md</title>" in html
            assert "<h1>Release notes</h1>" in html
            assert 'class="mermaid-container"' in html
            assert 'class="language-python"' in html
            assert 'data-external-href="https://example.com"' in html

    def test_custom_output_name(self):
        """--outputFile names the document"""
        with tempfile.TemporaryDirectory() as tmpdir:
            state = state_make(tmpdir, outputFile="live.html")
            pipeline(state, env_check, stream_render)
            assert (Path(tmpdir) / "out" / "live.html").exists()

    def test_theme_override(self):
        """--theme overrides the configured colour scheme"""
        with tempfile.TemporaryDirectory() as tmpdir:
            state = pipeline(state_make(tmpdir, theme="dark"), env_check, stream_render)
            html = Path(state.streamResult["output_file"]).read_text(encoding="utf-8")
            assert "color-scheme: dark;" in html

    def test_missing_input(self):
        """A missing input file exits with status 1"""
        with tempfile.TemporaryDirectory() as tmpdir:
            state = state_make(tmpdir, inputFile="absent.md")
            with pytest.raises(SystemExit) as info:
                env_check(state)
            assert info.value.code == 1

    def test_stdin_selected(self):
        """'-' selects standard input"""
        with tempfile.TemporaryDirectory() as tmpdir:
            state = env_check(state_make(tmpdir, inputFile="-"))
            assert state.inputSource is None
            assert state.htmlOutputFile == Path(tmpdir) / "out" / "index.html"

    def test_report_without_result(self):
        """Reporting without a stream result is an error"""
        with pytest.raises(SystemExit):
            results_report(ProgramState())
