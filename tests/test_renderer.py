"""
Markdown renderer tests

Tests GFM rendering, fenced block dispatch (transform, highlight, literal),
external link handling and render warnings.
"""

import pytest

from mdstream.config import AppSettings
from mdstream.lib.renderer import MarkdownRenderer
from mdstream.lib.transforms import TransformRegistry
from mdstream.models.stream import WarningKind


@pytest.fixture(scope="module")
def renderer():
    return MarkdownRenderer(AppSettings(theme_mode="light"))


def kinds(warnings):
    return [w.kind for w in warnings]


class TestBasicRendering:
    """Test ordinary Markdown blocks"""

    def test_heading(self, renderer):
        """Heading renders to <h1> without warnings"""
        html, warnings = renderer.render("# Title\n")
        assert html == "<h1>Title</h1>\n"
        assert warnings == ()

    def test_empty_input(self, renderer):
        """Empty text renders to nothing"""
        html, warnings = renderer.render("")
        assert html == ""
        assert warnings == ()

    def test_closed_fence(self, renderer):
        """Untagged fence renders as one literal code block"""
        html, warnings = renderer.render("```\ncode\n```\n")
        assert html == "<pre><code>code\n</code></pre>\n"
        assert html.count("<pre>") == 1
        assert warnings == ()

    def test_code_is_escaped(self, renderer):
        """Block content never becomes markup"""
        html, _ = renderer.render("```\n<script>alert(1)</script>\n```\n")
        assert "<script>" not in html
        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html

    def test_raw_html_passes_through(self, renderer):
        """Raw HTML blocks are kept"""
        html, _ = renderer.render("<div class=\"note\">hi</div>\n")
        assert '<div class="note">hi</div>' in html

    def test_deterministic(self, renderer):
        """Same text renders to byte-identical output"""
        text = "# A\n\n```python\nx = 1\n```\n\n| a |\n|---|\n| b |\n"
        assert renderer.render(text) == renderer.render(text)

    def test_result_fields(self, renderer):
        """Result exposes html and warnings by name"""
        result = renderer.render("text\n")
        assert result.html == "<p>text</p>\n"
        assert result.warnings == ()


class TestGfmExtensions:
    """Test GitHub-flavored extensions"""

    def test_table(self, renderer):
        """Pipe table renders to <table>"""
        html, warnings = renderer.render("| a | b |\n|---|---|\n| 1 | 2 |\n")
        assert "<table>" in html
        assert "<th>a</th>" in html
        assert "<td>1</td>" in html
        assert warnings == ()

    def test_strikethrough(self, renderer):
        """Double tilde renders as strikethrough"""
        html, _ = renderer.render("~~gone~~\n")
        assert "<s>gone</s>" in html

    def test_task_list(self, renderer):
        """Task list items render checkboxes"""
        html, _ = renderer.render("- [x] done\n- [ ] todo\n")
        assert "task-list-item-checkbox" in html
        assert 'checked="checked"' in html

    def test_autolink(self, renderer):
        """Bare URL becomes an external link"""
        html, _ = renderer.render("see https://example.com now\n")
        assert 'href="https://example.com"' in html
        assert 'class="external-link"' in html

    def test_footnote(self, renderer):
        """Footnote reference and definition are rendered"""
        html, _ = renderer.render("Text[^1]\n\n[^1]: The note.\n")
        assert "footnote-ref" in html
        assert "The note." in html


class TestLinks:
    """Test the external link policy"""

    def test_external_link_marked(self, renderer):
        """http(s) links carry the interception attributes"""
        html, _ = renderer.render("[site](https://example.com/a)\n")
        assert 'class="external-link"' in html
        assert 'data-external-href="https://example.com/a"' in html
        assert 'rel="noopener noreferrer"' in html

    def test_mailto_link_marked(self, renderer):
        """mailto links are external too"""
        html, _ = renderer.render("[mail](mailto:a@example.com)\n")
        assert 'data-external-href="mailto:a@example.com"' in html

    def test_relative_link_untouched(self, renderer):
        """Relative and fragment links are left alone"""
        html, _ = renderer.render("[doc](other.md) [top](#top)\n")
        assert '<a href="other.md">doc</a>' in html
        assert '<a href="#top">top</a>' in html
        assert "external-link" not in html

    def test_custom_policy(self):
        """A caller-supplied policy decides the attributes"""
        renderer = MarkdownRenderer(
            AppSettings(), link_policy=lambda href: {"target": "_blank"}
        )
        html, _ = renderer.render("[site](https://example.com)\n")
        assert 'target="_blank"' in html
        assert "external-link" not in html

    def test_failing_policy_leaves_link(self):
        """A policy that raises is reported and the link renders unchanged"""
        def broken(href):
            raise KeyError(href)

        renderer = MarkdownRenderer(AppSettings(), link_policy=broken)
        html, warnings = renderer.render("[site](https://example.com)\n\nafter\n")
        assert '<a href="https://example.com">site</a>' in html
        assert "<p>after</p>" in html
        assert kinds(warnings) == [WarningKind.LINK_POLICY_FAILURE]
        assert "KeyError" in warnings[0].message


class TestFencedBlocks:
    """Test dispatch of fenced blocks"""

    def test_mermaid_container(self, renderer):
        """Mermaid block becomes a diagram container, not a code block"""
        html, warnings = renderer.render("```mermaid\ngraph TD;\nA-->B;\n```\n")
        assert 'class="mermaid-container"' in html
        assert '<div class="mermaid">graph TD;\nA--&gt;B;</div>' in html
        assert "<pre>" not in html
        assert "<code" not in html
        assert warnings == ()

    def test_math_container(self, renderer):
        """math block becomes a display equation container"""
        html, _ = renderer.render("```math\nE = mc^2\n```\n")
        assert 'class="latex-math math-display"' in html
        assert 'data-latex="E = mc^2"' in html

    def test_unknown_language(self, renderer):
        """Unknown tag renders literally with one warning"""
        html, warnings = renderer.render("```unknownlang\nfoo\n```\n")
        assert "<pre><code>foo\n</code></pre>" in html
        assert len(warnings) == 1
        assert warnings[0].kind is WarningKind.UNKNOWN_LANGUAGE
        assert warnings[0].tag == "unknownlang"
        assert warnings[0].line == 1

    def test_known_language_highlighted(self, renderer):
        """Tag known to Pygments is highlighted with inline styles"""
        html, warnings = renderer.render("```python\ndef f():\n    return 1\n```\n")
        assert '<pre><code class="language-python">' in html
        assert 'style="' in html
        assert warnings == ()

    def test_language_tag_case_insensitive(self, renderer):
        """Language tags are matched case-insensitively"""
        html, warnings = renderer.render("```Python\nx = 1\n```\n")
        assert 'class="language-python"' in html
        assert warnings == ()

    def test_highlighting_disabled(self):
        """With highlighting off, known languages render literally"""
        renderer = MarkdownRenderer(AppSettings(highlight_code=False))
        html, warnings = renderer.render("```python\nprint('hi')\n```\n")
        assert "<pre><code class=\"language-python\">print('hi')\n</code></pre>" in html
        assert warnings == ()

    def test_unterminated_fence(self, renderer):
        """Fence without closer renders as if closed, with a warning"""
        html, warnings = renderer.render("```\nfoo\n")
        assert "<pre><code>foo\n</code></pre>" in html
        assert kinds(warnings) == [WarningKind.UNTERMINATED_FENCE]

    def test_fence_closed_by_container(self, renderer):
        """A fence ended by its block quote or list item is not unterminated"""
        _, warnings = renderer.render("> ```\n> code\n\nafter\n")
        assert warnings == ()
        _, warnings = renderer.render("- ```\n  code\nafter\n")
        assert warnings == ()

    def test_indented_closer_leaves_fence_open(self, renderer):
        """A closer indented four columns does not terminate the fence"""
        html, warnings = renderer.render("```\ncode\n    ```\n")
        assert "<pre><code>code\n    ```\n</code></pre>" in html
        assert kinds(warnings) == [WarningKind.UNTERMINATED_FENCE]

    def test_fence_closed_in_list_item(self, renderer):
        """A closer aligned with the list item content closes its fence"""
        _, warnings = renderer.render("10. ```\n    code\n    ```\n")
        assert warnings == ()

    def test_failed_transform_falls_back(self, renderer):
        """Transform error leaves a literal block and a warning"""
        html, warnings = renderer.render("```mermaid\n```\n")
        assert "<pre><code></code></pre>" in html
        assert kinds(warnings) == [WarningKind.TRANSFORM_FAILURE]
        assert warnings[0].tag == "mermaid"

    def test_failure_does_not_affect_siblings(self):
        """One broken transform leaves the other blocks intact"""
        def boom(content):
            raise ValueError("broken")

        registry = TransformRegistry()
        registry.register("boom", priority=1, transform=boom)
        renderer = MarkdownRenderer(AppSettings(), registry=registry)

        text = "```boom\nx\n```\n\n```mermaid\ngraph LR;\n```\n\nafter\n"
        html, warnings = renderer.render(text)
        assert "<pre><code>x\n</code></pre>" in html
        assert '<div class="mermaid">graph LR;</div>' in html
        assert "<p>after</p>" in html
        assert kinds(warnings) == [WarningKind.TRANSFORM_FAILURE]
        assert "ValueError" in warnings[0].message

    def test_renderer_freezes_registry(self):
        """The registry is read-only once a renderer uses it"""
        registry = TransformRegistry()
        MarkdownRenderer(AppSettings(), registry=registry)
        assert registry.frozen


class TestWarnings:
    """Test non-fatal diagnostics"""

    def test_malformed_table_row(self, renderer):
        """Body row with the wrong cell count is reported"""
        html, warnings = renderer.render("| a | b |\n|---|---|\n| 1 | 2 | 3 |\n")
        assert "<table>" in html
        assert kinds(warnings) == [WarningKind.MALFORMED_TABLE]
        assert warnings[0].line == 3

    def test_unterminated_emphasis(self, renderer):
        """Unpaired strong delimiter is reported and kept as text"""
        html, warnings = renderer.render("some **bold text\n")
        assert "**bold text" in html
        assert kinds(warnings) == [WarningKind.UNTERMINATED_EMPHASIS]

    def test_balanced_emphasis(self, renderer):
        """Paired delimiters and arithmetic raise no warning"""
        _, warnings = renderer.render("**bold** and *em* and 2 * 3\n")
        assert warnings == ()

    def test_warnings_ordered_by_line(self, renderer):
        """Warnings come back in source order"""
        text = "```nosuchlang\nx\n```\n\n| a | b |\n|---|---|\n| 1 |\n\n```\nopen\n"
        _, warnings = renderer.render(text)
        assert kinds(warnings) == [
            WarningKind.UNKNOWN_LANGUAGE,
            WarningKind.MALFORMED_TABLE,
            WarningKind.UNTERMINATED_FENCE,
        ]
        lines = [w.line for w in warnings]
        assert lines == sorted(lines)

    def test_warning_str(self, renderer):
        """Warnings format with line and kind"""
        _, warnings = renderer.render("```nosuchlang\nx\n```\n")
        assert str(warnings[0]) == "line 1: unknown-language: unrecognized language 'nosuchlang'"


class TestSourceView:
    """Test highlighted source rendering"""

    def test_source_view(self, renderer):
        """Raw Markdown is shown highlighted in a source-view block"""
        html = renderer.source_render("# Title\n\n*em*\n")
        assert html.startswith('<pre class="source-view"><code>')
        assert "Title" in html

    def test_source_view_empty(self, renderer):
        """Empty source gives an empty block"""
        assert renderer.source_render("") == '<pre class="source-view"><code></code></pre>\n'
