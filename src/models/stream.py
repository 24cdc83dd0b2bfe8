"""
Streaming data models

Value types passed between the Stream Assembler, the Markdown Renderer and
the Content Channel. All of them are immutable once created.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import NamedTuple, Optional, Tuple


class FlushDecision(Enum):
    """
    Outcome of feeding the assembler

    FLUSH means the buffer is safe to re-render now; DEFER means a render
    would show a torn document (or nothing changed) and should wait.
    """
    FLUSH = "flush"
    DEFER = "defer"


# End condition of an HTML block that closes on the next blank line
# (CommonMark HTML block kinds 6 and 7).
HTML_END_BLANK = "blank"


@dataclass(frozen=True)
class BoundaryState:
    """
    Open-construct state at the end of the raw buffer

    Always a pure function of the buffer contents: scanning the whole buffer
    in one pass and scanning it chunk by chunk produce equal values.

    Attributes:
        fence_char: Marker character of the open fenced block ('`' or '~'),
                    None when no fence is open
        fence_length: Length of the opening marker (closing needs at least this many)
        table_header_pending: Last line looks like a table header whose
                              delimiter row has not arrived yet
        in_table_body: Delimiter row seen and the table has not ended
        html_end: End condition of the open raw HTML block: a closing marker
                  such as '-->' or '</script>', HTML_END_BLANK, or None
        trailing_blank_lines: Number of consecutive blank lines at the end
    """
    fence_char: Optional[str] = None
    fence_length: int = 0
    table_header_pending: bool = False
    in_table_body: bool = False
    html_end: Optional[str] = None
    trailing_blank_lines: int = 0

    @property
    def in_fence(self) -> bool:
        return self.fence_char is not None

    @property
    def in_table(self) -> bool:
        return self.table_header_pending or self.in_table_body

    @property
    def in_html_block(self) -> bool:
        return self.html_end is not None

    @property
    def at_top_level(self) -> bool:
        """True when no multi-line construct is open"""
        return not (self.in_fence or self.in_table or self.in_html_block)


class WarningKind(Enum):
    """Categories of non-fatal render diagnostics"""
    UNKNOWN_LANGUAGE = "unknown-language"
    MALFORMED_TABLE = "malformed-table"
    UNTERMINATED_EMPHASIS = "unterminated-emphasis"
    UNTERMINATED_FENCE = "unterminated-fence"
    TRANSFORM_FAILURE = "transform-failure"
    LINK_POLICY_FAILURE = "link-policy-failure"


@dataclass(frozen=True)
class RenderWarning:
    """
    A degraded-but-rendered construct

    Attributes:
        kind: Diagnostic category
        message: Human-readable description
        line: 1-based source line the construct starts on, when known
        tag: Fenced block language tag, for language/transform diagnostics
    """
    kind: WarningKind
    message: str
    line: Optional[int] = None
    tag: Optional[str] = None

    def __str__(self) -> str:
        where = f"line {self.line}: " if self.line is not None else ""
        return f"{where}{self.kind.value}: {self.message}"


@dataclass(frozen=True)
class CodeBlock:
    """
    A fenced block extracted during one render pass

    Attributes:
        language: First word of the info string, lowercased ('' when absent)
        content: Raw literal block text (not HTML-escaped)
        span: (start, end) character offsets of the block in the source
        lines: (first, last) 1-based source lines, fences included
    """
    language: str
    content: str
    span: Tuple[int, int]
    lines: Tuple[int, int]


class RenderResult(NamedTuple):
    """Body HTML and diagnostics of one render; unpacks as (html, warnings)"""
    html: str
    warnings: Tuple[RenderWarning, ...]


@dataclass(frozen=True)
class RenderSnapshot:
    """
    One published render of the buffer

    Superseded, never mutated, by the next snapshot.

    Attributes:
        sequence: Strictly increasing per producer, starting at 1
        html: Complete self-contained HTML document
        body: Rendered body fragment (what the renderer returned)
        markdown: Source text the snapshot was rendered from
        title: Document title
        warnings: Diagnostics of this render
        error: Message shown as an error placeholder, if any
        final: True for the snapshot produced at end of stream
    """
    sequence: int
    html: str
    body: str = ""
    markdown: str = ""
    title: str = ""
    warnings: Tuple[RenderWarning, ...] = field(default_factory=tuple)
    error: Optional[str] = None
    final: bool = False
