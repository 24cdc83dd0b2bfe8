"""
Stream assembler

Owns the raw text buffer of a live Markdown stream and decides, for every
arriving chunk, whether the buffer may be re-rendered now (FLUSH) or whether
a render would show a torn document (DEFER).

Only newly completed lines are scanned on each call; the open-construct
state is carried across calls by a BoundaryScanner, so the cost per chunk is
proportional to the chunk, not to the buffer.

Flush policy:
    FLUSH when the buffer is at a top-level boundary (no open fence, table
    or raw HTML block) and either the chunk completed a line or the idle
    period has elapsed since the last flush. finalize() always flushes.
"""

import codecs
import time
from typing import Callable, List, Optional

from ..config import AppSettings
from ..models.stream import BoundaryState, FlushDecision
from .boundary import BoundaryScanner
from .log import LOG


class StreamAssembler:
    """
    Accumulates decoded input and reports when it is safe to render

    Example:
        >>> assembler = StreamAssembler()
        >>> assembler.ingest(b"```\\ncode\\n")
        <FlushDecision.DEFER: 'defer'>
        >>> assembler.ingest(b"```\\n")
        <FlushDecision.FLUSH: 'flush'>
    """

    def __init__(
        self,
        settings: Optional[AppSettings] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Args:
            settings: Configuration; only idle_flush_seconds is used here
            clock: Monotonic time source, injectable for tests
        """
        settings = settings or AppSettings()
        self.idle_flush_seconds = settings.idle_flush_seconds
        self.clock = clock
        self.reset()

    def reset(self) -> None:
        """Discard the buffer and start a new stream (e.g. a new file was opened)"""
        self._decoder = codecs.getincrementaldecoder('utf-8')(errors='replace')
        self._parts: List[str] = []
        self._joined: Optional[str] = ""
        self._tail = ""
        self._length = 0
        self._scanner = BoundaryScanner()
        self._dirty = False
        self._finished = False
        self._last_flush_at = self.clock()
        self.lines_scanned = 0

    @property
    def text(self) -> str:
        """The whole decoded buffer"""
        if self._joined is None:
            self._joined = ''.join(self._parts)
            self._parts = [self._joined]
        return self._joined

    @property
    def boundary(self) -> BoundaryState:
        """Open-construct state at the end of the buffer"""
        return self._scanner.boundary_get(self._tail)

    @property
    def finished(self) -> bool:
        return self._finished

    def text_append(self, decoded: str) -> int:
        """
        Append decoded text and scan the lines it completes

        Args:
            decoded: Text produced by the decoder for the latest chunk

        Returns:
            Number of lines completed by this text
        """
        if not decoded:
            return 0

        self._parts.append(decoded)
        self._length += len(decoded)
        self._joined = None
        self._dirty = True

        *complete, self._tail = (self._tail + decoded).split('\n')
        for line in complete:
            self._scanner.line_feed(line)
        self.lines_scanned += len(complete)
        return len(complete)

    def ingest(self, chunk: bytes) -> FlushDecision:
        """
        Add one chunk of raw input

        Invalid UTF-8 becomes U+FFFD; a character split across chunks is held
        back by the decoder until its remaining bytes arrive.

        Args:
            chunk: Raw bytes of arbitrary size (may be empty)

        Returns:
            FLUSH if the buffer should be re-rendered now, DEFER otherwise
        """
        if self._finished:
            raise RuntimeError("ingest() after finalize(); call reset() to start a new stream")

        completed = self.text_append(self._decoder.decode(chunk))
        decision = self.decision_make(line_completed=completed > 0)
        LOG(
            f"Chunk of {len(chunk)} bytes, {completed} lines completed, "
            f"buffer {self._length} chars -> {decision.value}",
            level=3,
        )
        return decision

    def poll(self) -> FlushDecision:
        """
        Re-check the idle timer without new input

        Returns:
            FLUSH if unrendered text is waiting at a top-level boundary and
            the idle period has elapsed
        """
        if self._finished:
            return FlushDecision.DEFER
        return self.decision_make(line_completed=False)

    def finalize(self) -> FlushDecision:
        """
        Signal end of stream

        Flushes the decoder (a truncated trailing sequence becomes U+FFFD).
        Unterminated constructs are left to the renderer, which closes them
        at end of input.

        Returns:
            Always FLUSH
        """
        self.text_append(self._decoder.decode(b'', final=True))
        self._finished = True
        self.flush_mark()
        boundary = self.boundary
        if not boundary.at_top_level:
            LOG(f"Stream ended inside an open construct: {boundary}", level=2)
        return FlushDecision.FLUSH

    def decision_make(self, line_completed: bool) -> FlushDecision:
        """
        Apply the flush policy to the current buffer

        Args:
            line_completed: Whether the latest input completed a line
        """
        if not self._dirty:
            return FlushDecision.DEFER

        if not self.boundary.at_top_level:
            return FlushDecision.DEFER

        idle = self.clock() - self._last_flush_at >= self.idle_flush_seconds
        if line_completed or idle:
            self.flush_mark()
            return FlushDecision.FLUSH

        return FlushDecision.DEFER

    def flush_mark(self) -> None:
        """Record that the current buffer has been handed to the renderer"""
        self._dirty = False
        self._last_flush_at = self.clock()
