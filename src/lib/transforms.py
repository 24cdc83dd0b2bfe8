"""
Transform implementations for fenced blocks

Each transform turns the raw literal text of a fenced block into a safe HTML
fragment that a client-side library interprets later (Mermaid diagrams,
KaTeX equations). Uses TransformRule for metadata and lookup.
"""

import html
from functools import partial
from typing import Callable, Dict, List, Optional

from ..models.transforms import (
    RegistryFrozenError,
    TransformCategory,
    TransformError,
    TransformRule,
)
from .log import LOG


def mermaid_transform(content: str) -> str:
    """
    Wrap Mermaid source in a container marked for client-side rendering

    The diagram element holds the source as escaped text (Mermaid reads the
    element's text, which the browser unescapes); the attribute copy feeds
    the copy-source button. A hidden raw element keeps the source readable
    for the view toggle after Mermaid has replaced the diagram text.
    """
    if not content.strip():
        raise TransformError('mermaid', 'empty diagram')

    source = content.rstrip('\n')
    text = html.escape(source, quote=False)
    return (
        f'<div class="mermaid-container" data-mermaid-source="{html.escape(source)}">'
        '<div class="mermaid-buttons">'
        '<button class="mermaid-toggle-btn" onclick="toggleBlockView(this)" '
        'title="Toggle rendered/raw view">View</button>'
        '<button class="mermaid-copy-btn" onclick="copyBlockSource(this)" '
        'title="Copy Mermaid source">Copy</button>'
        '</div>'
        f'<div class="mermaid">{text}</div>'
        f'<div class="mermaid-raw block-raw" hidden>{text}</div>'
        '</div>\n'
    )


def math_transform(content: str, display: bool = False) -> str:
    r"""
    Wrap TeX source in a container marked for client-side equation rendering

    Args:
        content: Raw TeX source
        display: Force display math; otherwise display mode is chosen when
                 the source starts with \begin or contains a line break (\\)
    """
    if not content.strip():
        raise TransformError('math', 'empty equation')

    source = content.strip()
    if display or source.startswith('\\begin') or '\\\\' in source:
        math_class = 'math-display'
    else:
        math_class = 'math-inline'

    escaped = html.escape(source)
    text = html.escape(source, quote=False)
    return (
        f'<div class="latex-container" data-latex-source="{escaped}">'
        '<div class="latex-buttons">'
        '<button class="latex-toggle-btn" onclick="toggleBlockView(this)" '
        'title="Toggle rendered/raw view">View</button>'
        '<button class="latex-copy-btn" onclick="copyBlockSource(this)" '
        'title="Copy LaTeX source">Copy</button>'
        '</div>'
        f'<div class="latex-math {math_class}" data-latex="{escaped}">'
        f'{text}</div>'
        f'<div class="latex-raw block-raw" hidden>{text}</div>'
        '</div>\n'
    )


class TransformRegistry:
    """
    Registry of fenced-block transforms

    Maps lowercase language tags to TransformRule objects. A tag maps to
    exactly one rule: registering a tag again replaces the earlier rule.
    The registry is filled at startup and frozen before streaming begins;
    after that it is only read, so renderers on any thread may share it.
    """

    def __init__(self, builtins: bool = True) -> None:
        """
        Args:
            builtins: Register the Mermaid and math transforms
        """
        self.rules: Dict[str, TransformRule] = {}
        self._frozen = False
        if builtins:
            self.builtinTransforms_register()

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Make the registry read-only"""
        self._frozen = True

    def register(
        self,
        tag: str,
        priority: int,
        transform: Callable[[str], str],
        category: TransformCategory = TransformCategory.GENERIC,
        aliases: tuple = (),
    ) -> TransformRule:
        """
        Register a transform for a language tag (and optional aliases)

        Args:
            tag: Fenced-block language tag, matched case-insensitively
            priority: Ordering key for rules_list() (higher first)
            transform: Function (raw content) -> HTML fragment
            category: Capability, used to decide which client hooks to emit
            aliases: Further tags served by the same transform

        Returns:
            The registered rule

        Raises:
            RegistryFrozenError: If the registry is already in use
            ValueError: If a tag is empty or contains whitespace
        """
        if self._frozen:
            raise RegistryFrozenError(f"cannot register '{tag}': registry is frozen")

        tags = [t.strip().lower() for t in (tag, *aliases)]
        for t in tags:
            if not t or any(c.isspace() for c in t):
                raise ValueError(f"invalid transform tag: {t!r}")

        rule = TransformRule(
            tag=tags[0],
            priority=priority,
            transform=transform,
            category=category,
            aliases=tuple(tags[1:]),
        )
        for t in rule.tags:
            previous = self.rules.get(t)
            if previous is not None:
                LOG(f"Transform for '{t}' replaced (was '{previous.tag}')", level=2)
            self.rules[t] = rule
        return rule

    def get(self, tag: str) -> Optional[TransformRule]:
        """Get the rule serving a tag, or None"""
        return self.rules.get(tag.strip().lower())

    def tags(self) -> List[str]:
        """All registered tags, sorted"""
        return sorted(self.rules)

    def rules_list(self) -> List[TransformRule]:
        """Distinct rules, highest priority first, then by tag"""
        distinct = {id(rule): rule for rule in self.rules.values()}
        return sorted(distinct.values(), key=lambda rule: (-rule.priority, rule.tag))

    def categories(self) -> set:
        """Capabilities present in the registry"""
        return {rule.category for rule in self.rules.values()}

    def apply(self, tag: str, content: str) -> str:
        """
        Run the transform for a tag

        Has no side effects. Only TransformError leaves this method: any
        other exception a transform raises is converted.

        Args:
            tag: Fenced-block language tag
            content: Raw literal block text

        Returns:
            HTML fragment

        Raises:
            TransformError: No rule for the tag, or the transform failed
        """
        rule = self.get(tag)
        if rule is None:
            raise TransformError(tag, 'no transform registered')

        try:
            fragment = rule.transform(content)
        except TransformError:
            raise
        except Exception as e:
            raise TransformError(tag, f"{type(e).__name__}: {e}") from e

        if not isinstance(fragment, str):
            raise TransformError(tag, f"returned {type(fragment).__name__}, expected str")
        return fragment

    def builtinTransforms_register(self) -> None:
        """Register the diagram and math transforms"""
        self.register(
            'mermaid',
            priority=100,
            transform=mermaid_transform,
            category=TransformCategory.DIAGRAM,
        )
        self.register(
            'math',
            priority=100,
            transform=partial(math_transform, display=True),
            category=TransformCategory.MATH,
        )
        self.register(
            'latex',
            priority=90,
            transform=math_transform,
            category=TransformCategory.MATH,
            aliases=('tex',),
        )
