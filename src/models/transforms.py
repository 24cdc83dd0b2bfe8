"""
Transform rule models

Defines the structure and categories of fenced-block transforms for the
TransformRegistry.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Callable, Tuple


class TransformCategory(Enum):
    """
    Capability of a transform

    The document builder emits the client-side hooks of each category
    present in the registry.
    """
    DIAGRAM = "diagram"    # ```mermaid
    MATH = "math"          # ```math, ```latex, ```tex
    GENERIC = "generic"    # anything registered by callers


class TransformError(Exception):
    """Raised by a transform that cannot produce a fragment for a block"""

    def __init__(self, tag: str, reason: str) -> None:
        super().__init__(f"transform '{tag}' failed: {reason}")
        self.tag = tag
        self.reason = reason


class RegistryFrozenError(RuntimeError):
    """Raised when registering into a registry that is already in use"""
    pass


@dataclass(frozen=True)
class TransformRule:
    """
    Binding from fenced-block language tags to a transform

    Attributes:
        tag: Primary language tag (lowercase)
        priority: Ordering key for listing rules (higher first)
        transform: Function (raw content) -> safe HTML fragment; raises
                   TransformError when it cannot handle the content
        category: Capability of the transform
        aliases: Additional tags served by the same transform
    """
    tag: str
    priority: int
    transform: Callable[[str], str]
    category: TransformCategory = TransformCategory.GENERIC
    aliases: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def tags(self) -> Tuple[str, ...]:
        return (self.tag,) + self.aliases
