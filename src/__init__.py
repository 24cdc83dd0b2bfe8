"""
mdstream - Live Markdown stream renderer

Renders piped or file Markdown to self-contained HTML while it streams in,
re-rendering only at boundaries where no code fence, table or HTML block is
left open.
"""

__version__ = "0.2.0"

from .lib import (
    StreamAssembler,
    MarkdownRenderer,
    TransformRegistry,
    ContentChannel,
    StreamSession,
    InputLostError,
    LOG,
    state_connectToLogger,
)

__all__ = [
    "StreamAssembler",
    "MarkdownRenderer",
    "TransformRegistry",
    "ContentChannel",
    "StreamSession",
    "InputLostError",
    "LOG",
    "state_connectToLogger",
    "__version__",
]
