"""
Theme for rendered Markdown documents.

A theme provides the visual styling of the generated HTML document:
  - Colour scheme (light, dark, or follow the system)
  - Body font family and size
  - Pygments style used for syntax-highlighted code blocks

Themes are built from an AppSettings value; nothing is read from disk or
from process-wide state.
"""

from typing import Dict

from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

from ..config import AppSettings


class ThemeError(Exception):
    """Raised when a theme setting cannot be resolved"""
    pass


FONT_FAMILIES: Dict[str, str] = {
    'system': '-apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, Helvetica, Arial, sans-serif',
    'menlo': '"SF Mono", "Menlo", "Monaco", monospace',
    'monaco': '"Monaco", "SF Mono", "Menlo", monospace',
    'helvetica': '"Helvetica Neue", Helvetica, Arial, sans-serif',
}

LIGHT_VARIABLES: Dict[str, str] = {
    '--border-color': '#d1d9e0',
    '--code-bg-color': 'rgba(175, 184, 193, 0.2)',
    '--pre-bg-color': '#f6f8fa',
    '--muted-text-color': '#57606a',
    '--table-row-bg': '#ffffff',
    '--table-row-alt-bg': '#f6f8fa',
    '--table-header-bg': '#f6f8fa',
    '--error-bg-color': '#ffebe9',
    '--error-text-color': '#cf222e',
}

DARK_VARIABLES: Dict[str, str] = {
    '--border-color': '#30363d',
    '--code-bg-color': 'rgba(110, 118, 129, 0.4)',
    '--pre-bg-color': '#272822',
    '--muted-text-color': '#8b949e',
    '--table-row-bg': '#0d1117',
    '--table-row-alt-bg': '#161b22',
    '--table-header-bg': '#21262d',
    '--error-bg-color': '#3d1d20',
    '--error-text-color': '#ff7b72',
}

STYLESHEET = """
body {
    font-family: %(font_family)s;
    font-size: %(font_size)spx;
    line-height: 1.6;
    padding: 20px;
    margin: 0;
}
h1, h2, h3, h4, h5, h6 {
    border-bottom: 1px solid var(--border-color);
    padding-bottom: .3em;
    margin-top: 24px;
    margin-bottom: 16px;
}
code {
    font-family: "SF Mono", "Menlo", "Monaco", monospace;
    background-color: var(--code-bg-color);
    padding: .2em .4em;
    font-size: 85%%;
    border-radius: 6px;
}
pre {
    font-family: "SF Mono", "Menlo", "Monaco", monospace;
    background-color: var(--pre-bg-color);
    padding: 16px;
    border-radius: 6px;
    overflow: auto;
}
pre > code {
    padding: 0;
    font-size: 100%%;
    background-color: transparent;
}
blockquote {
    border-left: .25em solid var(--border-color);
    padding: 0 1em;
    color: var(--muted-text-color);
}
table {
    border-collapse: collapse;
}
th, td {
    border: 1px solid var(--border-color);
    padding: 6px 13px;
}
th {
    background-color: var(--table-header-bg);
}
tr:nth-child(2n) {
    background-color: var(--table-row-alt-bg);
}
.task-list-item {
    list-style-type: none;
}
.mermaid-container, .latex-container {
    position: relative;
    margin: 16px 0;
}
.mermaid-buttons, .latex-buttons {
    position: absolute;
    top: 4px;
    right: 4px;
}
.block-raw {
    white-space: pre-wrap;
    font-family: "SF Mono", "Menlo", "Monaco", monospace;
    background-color: var(--pre-bg-color);
    border-radius: 6px;
    padding: 16px;
}
.stream-error {
    background-color: var(--error-bg-color);
    color: var(--error-text-color);
    border-radius: 6px;
    padding: 8px 16px;
}
"""


class Theme:
    """
    Represents the styling of a rendered document.

    A theme consists of:
      - Colour scheme and its CSS variables
      - Font family and size
      - Pygments style name for code blocks
    """

    def __init__(self, settings: AppSettings):
        """
        Build a theme from configuration.

        Args:
            settings: Application settings (theme_mode, font_family, font_size,
                      pygments_style_light, pygments_style_dark)

        Raises:
            ThemeError: If the configured Pygments style does not exist
        """
        self.mode = settings.theme_mode
        self.font_family = FONT_FAMILIES[settings.font_family]
        self.font_size = settings.font_size

        if self.mode == 'dark':
            self.pygments_style = settings.pygments_style_dark
        else:
            self.pygments_style = settings.pygments_style_light

        try:
            get_style_by_name(self.pygments_style)
        except ClassNotFound:
            raise ThemeError(f"Pygments style '{self.pygments_style}' not found")

    def pygmentsStyle_get(self) -> str:
        """
        Get Pygments style name for syntax highlighting.

        System mode uses the light style: code colours are inlined at render
        time and cannot follow a later scheme change.
        """
        return self.pygments_style

    def colorScheme_get(self) -> str:
        """CSS color-scheme value for the mode"""
        return {'light': 'light', 'dark': 'dark'}.get(self.mode, 'light dark')

    def css_generate(self) -> str:
        """
        Generate the document stylesheet.

        Returns:
            CSS text: :root variables for the mode (plus a dark media query in
            system mode) followed by the element rules
        """
        variables = DARK_VARIABLES if self.mode == 'dark' else LIGHT_VARIABLES
        lines = [':root {', f'    color-scheme: {self.colorScheme_get()};']
        lines += [f'    {name}: {value};' for name, value in variables.items()]
        lines.append('}')

        if self.mode == 'system':
            lines.append('@media (prefers-color-scheme: dark) {')
            lines.append('    :root {')
            lines += [
                f'        {name}: {value};'
                for name, value in DARK_VARIABLES.items()
                if name != '--pre-bg-color'
            ]
            lines.append('    }')
            lines.append('}')

        rules = STYLESHEET % {'font_family': self.font_family, 'font_size': f'{self.font_size:g}'}
        return '\n'.join(lines) + rules

    def __repr__(self) -> str:
        return f"Theme(mode='{self.mode}', pygments='{self.pygments_style}')"
