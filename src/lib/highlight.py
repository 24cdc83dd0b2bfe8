"""
Pygments syntax highlighting for code blocks

Renders code as a <pre><code> structure whose tokens carry inline styles,
so the document needs no external stylesheet for code colours.
"""

import html
from functools import lru_cache
from typing import Optional

from pygments import highlight
from pygments.lexer import Lexer
from pygments.lexers import get_lexer_by_name
from pygments.lexers.markup import MarkdownLexer
from pygments.formatters import HtmlFormatter
from pygments.util import ClassNotFound


@lru_cache(maxsize=256)
def lexer_find(language: str) -> Optional[Lexer]:
    """
    Look up a Pygments lexer by language alias

    Args:
        language: Fenced-block language tag (case-insensitive)

    Returns:
        Lexer instance, or None if Pygments has no grammar for the tag
    """
    if not language:
        return None
    try:
        return get_lexer_by_name(language, stripnl=False, ensurenl=True)
    except ClassNotFound:
        return None


def literal_render(content: str, language: str = "") -> str:
    """Escaped plain <pre><code> block (no highlighting)"""
    class_attr = f' class="language-{html.escape(language)}"' if language else ''
    return f'<pre><code{class_attr}>{html.escape(content, quote=False)}</code></pre>\n'


class CodeHighlighter:
    """
    Highlights code with a fixed Pygments style

    Formatter state is per instance and read-only after construction, so a
    highlighter can be shared by concurrent renders.
    """

    def __init__(self, style: str = 'default') -> None:
        """
        Args:
            style: Pygments style name (see Theme.pygmentsStyle_get)
        """
        self.style = style
        # noclasses=True inlines styles; nowrap=True leaves the <pre> to us
        self.formatter = HtmlFormatter(style=style, noclasses=True, nowrap=True)

    def recognizes(self, language: str) -> bool:
        """Check whether Pygments knows a grammar for the tag"""
        return lexer_find(language.lower()) is not None

    def code_render(self, content: str, language: str) -> str:
        """
        Highlight a code block

        Args:
            content: Raw code
            language: Tag Pygments recognises (unknown tags render literally)

        Returns:
            <pre><code class="language-X"> block with styled token spans
        """
        lexer = lexer_find(language.lower())
        if lexer is None:
            return literal_render(content, language)

        highlighted = highlight(content, lexer, self.formatter)
        return (
            f'<pre><code class="language-{html.escape(language)}">'
            f'{highlighted}</code></pre>\n'
        )

    def source_render(self, markdown: str) -> str:
        """
        Highlight raw Markdown source (source view of a document)

        Returns:
            <pre class="source-view"><code> block
        """
        if not markdown:
            return '<pre class="source-view"><code></code></pre>\n'
        highlighted = highlight(markdown, MarkdownLexer(), self.formatter)
        return f'<pre class="source-view"><code>{highlighted}</code></pre>\n'
