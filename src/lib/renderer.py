"""
Markdown renderer for streamed documents

Turns a complete text snapshot into an HTML body fragment plus a list of
non-fatal diagnostics. Rendering is a pure function of the text (for a fixed
transform registry and configuration), because the stream session renders
growing prefixes of the same document again and again.

Parsing uses markdown-it-py's gfm-like preset (tables, strikethrough,
linkify autolinks, raw HTML) with the footnote and task list plugins from
mdit-py-plugins. Two renderer rules are replaced:

- fence: transform registry first, then Pygments highlighting for a known
  grammar, then an escaped literal <pre><code> block
- link_open: external links get the attributes of the link policy so the
  host, not the page, opens them

Example:
    >>> renderer = MarkdownRenderer(AppSettings())
    >>> html, warnings = renderer.render("# Title\\n")
    >>> html
    '<h1>Title</h1>\\n'
"""

import re
from typing import Any, Callable, Dict, List, Optional, Sequence

from markdown_it import MarkdownIt
from markdown_it.token import Token
from mdit_py_plugins.footnote import footnote_plugin
from mdit_py_plugins.tasklists import tasklists_plugin

from ..config import AppSettings
from ..models.stream import CodeBlock, RenderResult, RenderWarning, WarningKind
from ..models.transforms import TransformError
from .boundary import indent_width, quote_strip, row_split
from .highlight import CodeHighlighter, literal_render
from .log import LOG
from .theme import Theme
from .transforms import TransformRegistry


LinkPolicy = Callable[[str], Dict[str, str]]

EXTERNAL_SCHEMES = re.compile(r'^(?:https?|mailto):', re.IGNORECASE)

# Delimiters left as literal text after inline parsing never found a partner
DANGLING_EMPHASIS = re.compile(r'\*\*|~~|(?:^|(?<=\s))\*(?=[^\s*])')


def external_link_attributes(href: str) -> Dict[str, str]:
    """
    Default link policy

    Marks the link for the interception script of the document builder,
    which hands the URL to the host's message handler instead of navigating.
    """
    return {
        'class': 'external-link',
        'data-external-href': href,
        'rel': 'noopener noreferrer',
    }


class MarkdownRenderer:
    """
    GitHub-flavored Markdown to HTML with fenced-block transforms

    Responsibilities:
    - Parse GFM block and inline structure
    - Dispatch fenced blocks to transforms or the highlighter
    - Rewrite external links through the link policy
    - Collect warnings instead of raising on malformed input
    """

    def __init__(
        self,
        settings: Optional[AppSettings] = None,
        registry: Optional[TransformRegistry] = None,
        link_policy: Optional[LinkPolicy] = None,
    ) -> None:
        """
        Initialize renderer

        Args:
            settings: Configuration (highlighting and Pygments style)
            registry: Fenced-block transforms; frozen here if not already.
                      Defaults to the built-in Mermaid and math transforms.
            link_policy: Callable href -> extra attributes for external links
        """
        self.settings = settings or AppSettings()
        self.registry = registry if registry is not None else TransformRegistry()
        self.registry.freeze()
        self.link_policy = link_policy or external_link_attributes

        self.theme = Theme(self.settings)
        self.highlighter = CodeHighlighter(self.theme.pygmentsStyle_get())

        self.md = (
            MarkdownIt('gfm-like')
            .use(footnote_plugin)
            .use(tasklists_plugin)
        )
        self.md.renderer.rules['fence'] = self.fence_render
        self.md.renderer.rules['link_open'] = self.link_render

    def render(self, text: str) -> RenderResult:
        """
        Render a complete Markdown snapshot

        Never raises for content: malformed constructs degrade to literal
        text and are reported as warnings.

        Args:
            text: Markdown source

        Returns:
            RenderResult(html, warnings), unpackable as a pair
        """
        env: Dict[str, Any] = {
            'lines': text.split('\n'),
            'offsets': self.lineOffsets_compute(text),
            'warnings': [],
            'code_blocks': [],
        }

        tokens = self.md.parse(text, env)
        self.tables_check(tokens, env)
        self.emphasis_check(tokens, env)
        html = self.md.renderer.render(tokens, self.md.options, env)

        warnings = sorted(
            env['warnings'],
            key=lambda w: (w.line if w.line is not None else 0, w.kind.value),
        )
        LOG(
            f"Rendered {len(text)} chars: {len(env['code_blocks'])} fenced blocks, "
            f"{len(warnings)} warnings",
            level=3,
        )
        return RenderResult(html=html, warnings=tuple(warnings))

    def source_render(self, text: str) -> str:
        """Render the raw Markdown as highlighted source (source view)"""
        return self.highlighter.source_render(text)

    @staticmethod
    def lineOffsets_compute(text: str) -> List[int]:
        """Character offset of the start of every line"""
        return [0] + [match.end() for match in re.finditer('\n', text)]

    def codeBlock_extract(self, token: Token, env: Dict[str, Any]) -> CodeBlock:
        """
        Build the CodeBlock of a fence token

        Args:
            token: markdown-it fence token
            env: Render environment (source lines and offsets)
        """
        info = token.info.strip()
        language = info.split(maxsplit=1)[0].lower() if info else ''

        first, last = token.map if token.map else (0, 0)
        offsets: List[int] = env['offsets']
        total = offsets[-1] + len(env['lines'][-1])
        start = offsets[first] if first < len(offsets) else total
        end = offsets[last] if last < len(offsets) else total

        return CodeBlock(
            language=language,
            content=token.content,
            span=(start, end),
            lines=(first + 1, last),
        )

    def fence_render(
        self, tokens: Sequence[Token], idx: int, options: Any, env: Dict[str, Any]
    ) -> str:
        """
        Render a fenced block

        Lookup order:
            1. Transform registered for the tag -> transform fragment
            2. Grammar known to Pygments -> highlighted <pre><code>
            3. Otherwise -> escaped literal <pre><code>
        """
        token = tokens[idx]
        block = self.codeBlock_extract(token, env)
        env['code_blocks'].append(block)
        self.fenceTermination_check(token, block, env)

        try:
            return self.codeBlock_render(block, env)
        except Exception as e:
            LOG(f"Fenced block at line {block.lines[0]} failed to render: {e}", level=1)
            env['warnings'].append(RenderWarning(
                kind=WarningKind.TRANSFORM_FAILURE,
                message=f"block rendered literally after {type(e).__name__}: {e}",
                line=block.lines[0],
                tag=block.language or None,
            ))
            return literal_render(block.content)

    def codeBlock_render(self, block: CodeBlock, env: Dict[str, Any]) -> str:
        """Apply the lookup order to one CodeBlock"""
        language = block.language
        if not language:
            return literal_render(block.content)

        if self.registry.get(language) is not None:
            try:
                return self.registry.apply(language, block.content)
            except TransformError as e:
                LOG(f"Transform '{language}' failed at line {block.lines[0]}: {e.reason}", level=2)
                env['warnings'].append(RenderWarning(
                    kind=WarningKind.TRANSFORM_FAILURE,
                    message=f"transform '{language}' failed: {e.reason}",
                    line=block.lines[0],
                    tag=language,
                ))
                return literal_render(block.content)

        if self.highlighter.recognizes(language):
            if self.settings.highlight_code:
                return self.highlighter.code_render(block.content, language)
            return literal_render(block.content, language)

        env['warnings'].append(RenderWarning(
            kind=WarningKind.UNKNOWN_LANGUAGE,
            message=f"unrecognized language '{language}'",
            line=block.lines[0],
            tag=language,
        ))
        return literal_render(block.content)

    def fenceTermination_check(self, token: Token, block: CodeBlock, env: Dict[str, Any]) -> None:
        """
        Warn about a fence that runs to the end of input without a closer

        A fence whose block quote or list item ends before the input does is
        closed by its container and gets no warning.
        """
        if not token.map:
            return
        first, last = token.map
        lines: List[str] = env['lines']
        line_max = len(lines) - 1 if lines[-1] == '' else len(lines)
        if last < line_max:
            return

        marker = token.markup
        if last - 1 > first:
            opener = quote_strip(lines[first].expandtabs(4))
            closer = quote_strip(lines[last - 1].expandtabs(4))
            run = closer.strip()
            if (
                indent_width(closer) < opener.find(marker) + 4
                and len(run) >= len(marker)
                and run == marker[0] * len(run)
            ):
                return
        env['warnings'].append(RenderWarning(
            kind=WarningKind.UNTERMINATED_FENCE,
            message=f"fence '{marker}' not closed before end of input",
            line=first + 1,
            tag=block.language or None,
        ))

    def link_render(
        self, tokens: Sequence[Token], idx: int, options: Any, env: Dict[str, Any]
    ) -> str:
        """Render <a> with the link policy applied to external targets"""
        token = tokens[idx]
        href = str(token.attrGet('href') or '')
        if EXTERNAL_SCHEMES.match(href):
            try:
                attributes = dict(self.link_policy(href))
            except Exception as e:
                LOG(f"Link policy failed for '{href}': {e}", level=1)
                env['warnings'].append(RenderWarning(
                    kind=WarningKind.LINK_POLICY_FAILURE,
                    message=f"link policy failed for '{href}': {type(e).__name__}: {e}",
                    line=token.map[0] + 1 if token.map else None,
                ))
                attributes = {}
            for name, value in attributes.items():
                token.attrSet(name, value)
        return self.md.renderer.renderToken(tokens, idx, options, env)

    def tables_check(self, tokens: Sequence[Token], env: Dict[str, Any]) -> None:
        """Warn about table body rows whose cell count differs from the header"""
        lines: List[str] = env['lines']
        for token in tokens:
            if token.type != 'table_open' or not token.map:
                continue
            first, last = token.map
            columns = len(row_split(quote_strip(lines[first])))
            for number in range(first + 2, min(last, len(lines))):
                row = quote_strip(lines[number])
                if not row.strip():
                    continue
                cells = len(row_split(row))
                if cells != columns:
                    env['warnings'].append(RenderWarning(
                        kind=WarningKind.MALFORMED_TABLE,
                        message=f"table row has {cells} cells, header has {columns}",
                        line=number + 1,
                    ))

    def emphasis_check(self, tokens: Sequence[Token], env: Dict[str, Any]) -> None:
        """Warn about emphasis or strikethrough delimiters that stayed unpaired"""
        for token in tokens:
            if token.type != 'inline' or not token.children:
                continue
            for child in token.children:
                if child.type == 'text' and DANGLING_EMPHASIS.search(child.content):
                    env['warnings'].append(RenderWarning(
                        kind=WarningKind.UNTERMINATED_EMPHASIS,
                        message=f"unterminated emphasis in {child.content.strip()[:40]!r}",
                        line=token.map[0] + 1 if token.map else None,
                    ))
                    break
