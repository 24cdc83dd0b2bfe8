"""
Line scanner tracking open multi-line Markdown constructs

Feeds complete lines one at a time and reports whether the text seen so far
ends inside a fenced block, a table, or a raw HTML block. The scanner only
carries the currently open construct and its container between lines, so
scanning a buffer in one call or line by line as chunks arrive gives the
same BoundaryState.

Recognised constructs:
- Fenced code: ``` or ~~~ (3+ markers) indented at most 3 columns past its
  container, closed by the same character repeated at least as many times
  on a line of its own, again indented at most 3 columns
- Tables: a row containing '|' followed by a delimiter row with the same
  number of cells; the body runs until a blank line or a line without '|'
- Raw HTML blocks: the seven CommonMark start conditions with their end
  markers (blank line for kinds 6 and 7)

Containers follow markdown-it: an open construct records the block quote
depth and list item column it started in, and a line that leaves that
container (fewer '>' markers, or a non-blank line indented left of the list
item content) ends the construct without a closer.
"""

import copy
import re
from typing import List, Optional, Tuple

from ..models.stream import BoundaryState, HTML_END_BLANK


QUOTE_MARKER = re.compile(r'^ {0,3}>[ \t]?')
FENCE_OPEN = re.compile(r'^(?P<marker>`{3,}|~{3,})(?P<info>.*)$')
LIST_ITEM = re.compile(r'^(?P<marker>[-+*]|\d{1,9}[.)])(?P<space> +|$)')
ATX_HEADING = re.compile(r'^#{1,6}(?:[ \t]|$)')
THEMATIC_BREAK = re.compile(r'^(?:(?:\*[ \t]*){3,}|(?:-[ \t]*){3,}|(?:_[ \t]*){3,})$')
SETEXT_UNDERLINE = re.compile(r'^(?:=+|-+)[ \t]*$')
DELIMITER_CELL = re.compile(r'^[ \t]*:?-+:?[ \t]*$')

HTML_RAW_TAGS = re.compile(r'^<(script|pre|style|textarea)(?:\s|>|$)', re.IGNORECASE)
HTML_RAW_END = re.compile(r'</(?:script|pre|style|textarea)>', re.IGNORECASE)
HTML_BLOCK_TAGS = re.compile(
    r'^</?(address|article|aside|base|basefont|blockquote|body|caption|center|col|'
    r'colgroup|dd|details|dialog|dir|div|dl|dt|fieldset|figcaption|figure|footer|'
    r'form|frame|frameset|h1|h2|h3|h4|h5|h6|head|header|hr|html|iframe|legend|li|'
    r'link|main|menu|menuitem|nav|noframes|ol|optgroup|option|p|param|search|'
    r'section|summary|table|tbody|td|tfoot|th|thead|title|tr|track|ul)'
    r'(?:\s|/?>|$)',
    re.IGNORECASE,
)
HTML_COMPLETE_TAG = re.compile(
    r'^(?:<[A-Za-z][A-Za-z0-9-]*(?:\s+[A-Za-z_:][\w.:-]*'
    r'(?:\s*=\s*(?:[^\s"\'=<>`]+|\'[^\']*\'|"[^"]*"))?)*\s*/?>'
    r'|</[A-Za-z][A-Za-z0-9-]*\s*>)[ \t]*$'
)


def quote_split(line: str, limit: Optional[int] = None) -> Tuple[int, str]:
    """
    Remove leading block quote markers

    Args:
        line: Source line
        limit: Strip at most this many markers (all when None)

    Returns:
        (number of markers removed, remaining text)

    Example:
        >>> quote_split("> > text")
        (2, 'text')
        >>> quote_split("> > text", limit=1)
        (1, '> text')
    """
    depth = 0
    while limit is None or depth < limit:
        match = QUOTE_MARKER.match(line)
        if not match:
            break
        line = line[match.end():]
        depth += 1
    return depth, line


def quote_strip(line: str) -> str:
    """Remove all leading block quote markers ('> > text' -> 'text')"""
    return quote_split(line)[1]


def indent_width(text: str) -> int:
    """Number of leading spaces (tabs expanded beforehand)"""
    return len(text) - len(text.lstrip(' '))


def fenceOpen_match(text: str) -> Optional['re.Match[str]']:
    """Match a fence opener at the start of text (indentation removed)"""
    match = FENCE_OPEN.match(text)
    if not match:
        return None
    # backtick fences may not carry backticks in the info string
    if match.group('marker')[0] == '`' and '`' in match.group('info'):
        return None
    return match


def row_split(line: str) -> List[str]:
    r"""
    Split a pipe table row into cells

    Leading and trailing pipes are optional; escaped pipes (\|) stay inside
    their cell.

    Example:
        >>> row_split("| a | b \\| c |")
        [' a ', ' b \\| c ']
    """
    row = line.strip()
    if row.startswith('|'):
        row = row[1:]
    if row.endswith('|') and not row.endswith('\\|'):
        row = row[:-1]
    return re.split(r'(?<!\\)\|', row)


def delimiterRow_is(line: str, columns: int) -> bool:
    """Check for a table delimiter row ('|---|:--:|') with the given cell count"""
    if '-' not in line:
        return False
    cells = row_split(line)
    if len(cells) != columns:
        return False
    return all(DELIMITER_CELL.match(cell) for cell in cells)


def htmlBlockEnd_find(line: str, in_paragraph: bool) -> Optional[str]:
    """
    Match the start of a raw HTML block

    Args:
        line: Line with quote markers removed
        in_paragraph: Whether the previous line continues a paragraph
                      (kind 7 cannot interrupt one)

    Returns:
        The end condition of the block that starts here, or None
    """
    text = line.lstrip(' ')
    if len(line) - len(text) > 3 or not text.startswith('<'):
        return None
    if HTML_RAW_TAGS.match(text):
        return '</>'
    if text.startswith('<!--'):
        return '-->'
    if text.startswith('<?'):
        return '?>'
    if text.startswith('<![CDATA['):
        return ']]>'
    if re.match(r'^<![A-Za-z]', text):
        return '>'
    if HTML_BLOCK_TAGS.match(text):
        return HTML_END_BLANK
    if not in_paragraph and HTML_COMPLETE_TAG.match(text):
        return HTML_END_BLANK
    return None


def htmlBlockEnd_matches(end: str, line: str) -> bool:
    """Check whether a line contains the end marker of an open HTML block"""
    if end == '</>':
        return HTML_RAW_END.search(line) is not None
    return end in line


def listItem_interrupts(marker: str, content: str) -> bool:
    """A list item may interrupt a paragraph only if non-empty and bullet or '1.'"""
    if not content.strip():
        return False
    return not marker[0].isdigit() or int(marker[:-1]) == 1


class BoundaryScanner:
    """
    Incremental scanner over complete Markdown lines

    Usage:
        scanner = BoundaryScanner()
        for line in complete_lines:
            scanner.line_feed(line)
        state = scanner.boundary_get(tail=partial_last_line)
    """

    def __init__(self) -> None:
        self.fence_char: Optional[str] = None
        self.fence_length = 0
        self.header_columns = 0          # > 0 while a header row awaits its delimiter
        self.in_table_body = False
        self.html_end: Optional[str] = None
        self.trailing_blank_lines = 0
        self.in_paragraph = False

        # container of the open fence, table or HTML block
        self.block_depth = 0
        self.block_column = 0

        # content columns of the open list items, innermost last; a tuple so
        # the shallow copy taken for the tail never shares it
        self.list_columns: Tuple[int, ...] = ()
        self.quote_depth = 0

    @property
    def column(self) -> int:
        """Content column of the innermost open list item"""
        return self.list_columns[-1] if self.list_columns else 0

    def line_feed(self, line: str) -> None:
        """
        Advance the scan by one complete line (without its newline)

        Args:
            line: Source line; a trailing carriage return is ignored
        """
        line = line.rstrip('\r').expandtabs(4)
        depth, text = quote_split(line)
        blank = not text.strip()
        self.trailing_blank_lines = self.trailing_blank_lines + 1 if blank else 0

        if self.fence_char is not None:
            if not self.containerLeft_check(line, blank):
                self.fenceClose_check(line)
                return
            self.fence_char = None
            self.fence_length = 0
        elif self.html_end is not None:
            if not self.containerLeft_check(line, blank):
                self.htmlEnd_check(text, blank)
                return
            self.html_end = None
        elif self.in_table_body:
            if not blank and '|' in text and not self.containerLeft_check(line, blank):
                return
            self.in_table_body = False

        self.block_start(depth, text, blank)

    def containerLeft_check(self, line: str, blank: bool) -> bool:
        """Whether a line lies outside the container of the open construct"""
        depth, inner = quote_split(line, self.block_depth)
        if depth < self.block_depth:
            return True
        return not blank and indent_width(inner) < self.block_column

    def block_enter(self, depth: int, column: int) -> None:
        self.block_depth = depth
        self.block_column = column
        self.header_columns = 0
        self.in_paragraph = False

    def htmlEnd_check(self, text: str, blank: bool) -> None:
        """Close the open HTML block if the line carries its end condition"""
        if self.html_end == HTML_END_BLANK:
            if blank:
                self.html_end = None
                self.in_paragraph = False
        elif htmlBlockEnd_matches(self.html_end, text):
            self.html_end = None
            self.in_paragraph = False

    def interruption_check(self, depth: int, text: str) -> bool:
        """Whether a line ends the open paragraph rather than continuing it lazily"""
        if depth > self.quote_depth:
            return True
        indent = indent_width(text)
        if indent - self.column >= 4:
            return False
        content = text[indent:]
        if fenceOpen_match(content) or THEMATIC_BREAK.match(content) or ATX_HEADING.match(content):
            return True
        if htmlBlockEnd_find(content, in_paragraph=True) is not None:
            return True
        match = LIST_ITEM.match(content)
        if not match:
            return False
        # an item left of the paragraph's container always ends it
        return indent < self.column or listItem_interrupts(
            match.group('marker'), content[match.end():]
        )

    def lists_update(self, depth: int, indent: int) -> None:
        """Close list items a non-lazy line is indented left of"""
        if depth != self.quote_depth:
            self.list_columns = ()
            self.quote_depth = depth
            return
        columns = self.list_columns
        while columns and indent < columns[-1]:
            columns = columns[:-1]
            # the paragraph belonged to the closed item
            self.in_paragraph = False
        self.list_columns = columns

    def block_start(self, depth: int, text: str, blank: bool) -> None:
        """Process a line that is not inside an open construct"""
        if blank:
            self.header_columns = 0
            self.in_paragraph = False
            return

        lazy = self.in_paragraph and not self.interruption_check(depth, text)
        if not lazy:
            self.lists_update(depth, indent_width(text))

        while True:
            column = self.column
            indent = indent_width(text)
            if indent - column >= 4:
                # indented code, or a continuation of the open paragraph
                self.header_columns = 0
                return
            content = text[indent:]

            if self.header_columns:
                columns = self.header_columns
                self.header_columns = 0
                if delimiterRow_is(content, columns):
                    self.block_enter(depth, column)
                    self.in_table_body = True
                    return

            if self.in_paragraph and SETEXT_UNDERLINE.match(content):
                self.in_paragraph = False
                return
            if THEMATIC_BREAK.match(content) or ATX_HEADING.match(content):
                self.in_paragraph = False
                return

            item = LIST_ITEM.match(content)
            if item:
                marker, space = item.group('marker'), item.group('space')
                rest = content[item.end():]
                if not (self.in_paragraph and indent >= column) or listItem_interrupts(marker, rest):
                    width = len(space) if 1 <= len(space) <= 4 else 1
                    content_column = indent + len(marker) + width
                    self.list_columns = self.list_columns + (content_column,)
                    self.quote_depth = depth
                    self.in_paragraph = False
                    self.header_columns = 0
                    text = ' ' * content_column + content[len(marker) + width:]
                    if not text.strip():
                        return
                    continue

            if self.fenceOpen_check(content):
                self.block_enter(depth, column)
                return

            end = htmlBlockEnd_find(content, self.in_paragraph)
            if end is not None:
                self.block_enter(depth, column)
                if end != HTML_END_BLANK and htmlBlockEnd_matches(end, content[1:]):
                    return
                self.html_end = end
                return

            if '|' in content:
                self.header_columns = len(row_split(content))
            self.in_paragraph = True
            return

    def fenceOpen_check(self, content: str) -> bool:
        """Open a fenced block if the line (indentation removed) is a fence opener"""
        match = fenceOpen_match(content)
        if not match:
            return False
        marker = match.group('marker')
        self.fence_char = marker[0]
        self.fence_length = len(marker)
        return True

    def fenceClose_check(self, line: str) -> None:
        """Close the open fenced block if the line is a matching closer"""
        _, inner = quote_split(line, self.block_depth)
        if indent_width(inner) - self.block_column >= 4:
            return
        marker = inner.strip()
        if (
            len(marker) >= self.fence_length
            and marker == self.fence_char * len(marker)
        ):
            self.fence_char = None
            self.fence_length = 0

    def boundary_get(self, tail: str = "") -> BoundaryState:
        """
        Report the state at the end of the scanned text

        Args:
            tail: Incomplete last line (no newline yet). It is evaluated on a
                  copy so a half-arrived fence opener or table row already
                  counts as open, without disturbing the incremental scan.

        Returns:
            BoundaryState for the scanned lines plus the tail
        """
        scanner = self
        if tail:
            scanner = copy.copy(self)
            scanner.line_feed(tail)
            # an unfinished line is not a blank line yet
            if not tail.strip():
                scanner.trailing_blank_lines = self.trailing_blank_lines
        return BoundaryState(
            fence_char=scanner.fence_char,
            fence_length=scanner.fence_length,
            table_header_pending=scanner.header_columns > 0,
            in_table_body=scanner.in_table_body,
            html_end=scanner.html_end,
            trailing_blank_lines=scanner.trailing_blank_lines,
        )


def boundary_scan(text: str) -> BoundaryState:
    """
    Scan a whole buffer from scratch

    Reference implementation the incremental assembler scan must agree with.
    """
    scanner = BoundaryScanner()
    *lines, tail = text.split('\n')
    for line in lines:
        scanner.line_feed(line)
    return scanner.boundary_get(tail)
