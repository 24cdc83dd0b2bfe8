"""
Models package for mdstream

Contains data structures and type definitions for the streaming pipeline.
"""

from .state import ProgramState, pipeline
from .stream import (
    BoundaryState,
    CodeBlock,
    FlushDecision,
    RenderResult,
    RenderSnapshot,
    RenderWarning,
    WarningKind,
)
from .transforms import TransformCategory, TransformError, TransformRule, RegistryFrozenError

__all__ = [
    "ProgramState",
    "pipeline",
    "BoundaryState",
    "CodeBlock",
    "FlushDecision",
    "RenderResult",
    "RenderSnapshot",
    "RenderWarning",
    "WarningKind",
    "TransformCategory",
    "TransformError",
    "TransformRule",
    "RegistryFrozenError",
]
