"""
Document builder for rendered snapshots

Wraps a rendered body fragment into a complete, self-contained HTML document:
stylesheet from the Theme, the external-link interception script, and the
client-side hooks for the transform categories in use. Nothing in the
document is fetched from elsewhere; diagram and math libraries, if the host
provides them, are picked up from the page's global scope.
"""

import html
from typing import Optional, Set

from ..config import AppSettings
from ..models.transforms import TransformCategory
from .theme import Theme


LINK_INTERCEPTOR_JS = """
document.addEventListener('click', function (e) {
    var target = e.target.closest('a.external-link');
    if (!target) { return; }
    e.preventDefault();
    var href = target.getAttribute('data-external-href');
    var handlers = window.webkit && window.webkit.messageHandlers;
    if (handlers && handlers['%(handler)s']) {
        handlers['%(handler)s'].postMessage(href);
    } else {
        document.dispatchEvent(new CustomEvent('mdstream:open-link', {detail: href}));
    }
});
"""

COPY_SOURCE_JS = """
window.copyBlockSource = function (button) {
    var container = button.closest('[data-mermaid-source], [data-latex-source]');
    var source = container.getAttribute('data-mermaid-source')
        || container.getAttribute('data-latex-source');
    var handlers = window.webkit && window.webkit.messageHandlers;
    if (handlers && handlers.copyText) {
        handlers.copyText.postMessage(source);
    } else if (navigator.clipboard) {
        navigator.clipboard.writeText(source);
    }
};
"""

TOGGLE_VIEW_JS = """
window.toggleBlockView = function (button) {
    var container = button.closest('.mermaid-container, .latex-container');
    var rendered = container.querySelector('.mermaid, .latex-math');
    var raw = container.querySelector('.block-raw');
    var showRaw = raw.hidden;
    raw.hidden = !showRaw;
    rendered.hidden = showRaw;
    button.textContent = showRaw ? 'Rendered' : 'View';
};
"""

DIAGRAM_JS = """
if (typeof mermaid !== 'undefined') {
    mermaid.initialize({startOnLoad: false, theme: '%(mermaid_theme)s'});
    mermaid.run({querySelector: '.mermaid'});
}
"""

MATH_JS = """
if (typeof katex !== 'undefined') {
    document.querySelectorAll('.latex-math').forEach(function (element) {
        var source = element.getAttribute('data-latex');
        try {
            katex.render(source, element, {
                displayMode: element.classList.contains('math-display'),
                throwOnError: false
            });
        } catch (error) {
            element.classList.add('latex-error');
        }
    });
}
"""

SCROLL_JS = "window.scrollTo(0, document.body.scrollHeight);"


class DocumentBuilder:
    """
    Builds the HTML document delivered to the display

    Responsibilities:
    - Inline the theme stylesheet
    - Inject link interception, copy and view toggle helpers
    - Inject client hooks for diagram/math containers
    - Render an error banner for error placeholders
    """

    def __init__(
        self,
        settings: Optional[AppSettings] = None,
        categories: Optional[Set[TransformCategory]] = None,
        follow_tail: bool = True,
    ) -> None:
        """
        Args:
            settings: Configuration (theme and link message handler)
            categories: Transform categories whose client hooks to emit
                        (see TransformRegistry.categories)
            follow_tail: Scroll to the end on load, as a live stream viewer does
        """
        self.settings = settings or AppSettings()
        self.theme = Theme(self.settings)
        self.categories = categories if categories is not None else set(TransformCategory)
        self.follow_tail = follow_tail
        self._stylesheet = self.theme.css_generate()
        self._script = self.script_generate()

    def script_generate(self) -> str:
        """Concatenate the page scripts for the configured capabilities"""
        parts = [
            LINK_INTERCEPTOR_JS % {'handler': self.settings.link_message_handler},
            COPY_SOURCE_JS,
            TOGGLE_VIEW_JS,
        ]
        if TransformCategory.DIAGRAM in self.categories:
            mermaid_theme = 'dark' if self.theme.mode == 'dark' else 'default'
            parts.append(DIAGRAM_JS % {'mermaid_theme': mermaid_theme})
        if TransformCategory.MATH in self.categories:
            parts.append(MATH_JS)
        if self.follow_tail:
            parts.append(SCROLL_JS)
        return ''.join(parts)

    def htmlDocument_build(self, body: str, title: str = "", error: Optional[str] = None) -> str:
        """
        Build complete HTML document

        Args:
            body: Rendered body fragment
            title: Document title
            error: Message for an error banner above the content

        Returns:
            Complete HTML document
        """
        banner = ''
        if error:
            banner = f'<div class="stream-error" role="alert">{html.escape(error)}</div>\n'

        return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="UTF-8">
<title>{html.escape(title)}</title>
<style>
{self._stylesheet}
</style>
</head>
<body>
{banner}<article class="markdown-body">
{body}</article>
<script>
{self._script}
</script>
</body>
</html>
"""
