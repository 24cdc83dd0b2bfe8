"""
Verbosity-gated logging for the stream pipeline, on top of Loguru.

The CLI stages and the producer thread run in different threads, so the
verbosity cannot live in a global. It is read from the ProgramState held in
a context variable: state_connectToLogger() sets it in the pipeline, and the
stream session copies the context into its producer thread.

Verbosity maps onto Loguru severities so records from either thread stay
filterable by level:

    level 1  INFO     stage progress, failures
    level 2  DEBUG    flush decisions, snapshots published
    level 3  TRACE    per-chunk and per-render detail

Usage:
    from mdstream.lib.log import LOG, state_connectToLogger

    state_connectToLogger(state)
    LOG("Streaming input...", level=1)
    LOG("Chunk of 1024 bytes -> defer", level=3)
"""

from loguru import logger
from typing import Any, Dict, Optional, TextIO
from contextvars import ContextVar
import sys

_program_state: ContextVar[Optional[Any]] = ContextVar('program_state', default=None)

SEVERITY: Dict[int, str] = {1: "INFO", 2: "DEBUG", 3: "TRACE"}

logger_format = (
    "<green>{time:HH:mm:ss.SSS}</green> │ "
    "<level>{level: <5}</level> │ "
    "<magenta>{thread.name: <17}</magenta> │ "
    "<cyan>{module}.{function}</cyan>:<cyan>{line}</cyan> ║ "
    "<level>{message}</level>"
)


def logger_configure(sink: TextIO = sys.stderr) -> int:
    """
    Replace Loguru's handlers with the mdstream handler

    Gating happens in LOG(), so the handler itself lets every severity
    through.

    Returns:
        Loguru handler id
    """
    logger.remove()
    return logger.add(sink, format=logger_format, level="TRACE")


def state_connectToLogger(state: Any) -> None:
    """
    Make a ProgramState's verbosity govern LOG() in the current context

    Args:
        state: Object with a `verbosity` attribute (normally ProgramState)
    """
    _program_state.set(state)


def verbosity_get() -> int:
    """Verbosity of the connected state, 0 when none is connected"""
    state = _program_state.get()
    return getattr(state, 'verbosity', 0) if state is not None else 0


def LOG(message: str, level: int = 1, **kwargs: Any) -> None:
    """
    Log a message if the connected verbosity reaches `level`

    Args:
        message: Text of the record
        level: Verbosity needed (1..3); also picks the Loguru severity
        **kwargs: Extra fields bound to the record
    """
    if verbosity_get() < level:
        return
    severity = SEVERITY.get(level, "TRACE")
    # depth=1 reports the caller's function and line, not LOG itself
    logger.opt(depth=1).bind(**kwargs).log(severity, message)


logger_configure()
