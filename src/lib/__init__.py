"""
mdstream - Live Markdown stream renderer

Turns a growing Markdown stream into HTML snapshots without ever showing a
torn document.
"""

__version__ = "0.2.0"

from .assembler import StreamAssembler
from .renderer import MarkdownRenderer
from .transforms import TransformRegistry
from .channel import ContentChannel
from .session import StreamSession, InputLostError
from .log import LOG, state_connectToLogger

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
