"""
Stream session: the producer side of the pipeline

Reads an input byte source in chunks, feeds the StreamAssembler, renders the
buffer whenever the assembler says FLUSH, and publishes each render to the
ContentChannel as a new RenderSnapshot.

Cancellation:
    cancel() closes the channel, which stops reading and closes the input.
    A render or document build already in progress is allowed to finish,
    but the closed channel refuses its snapshot.

Failure:
    An OSError while reading is a lost input source. The session renders
    what it has, publishes it with an error message, and raises
    InputLostError once. On the session thread any other exception is kept
    in `failure` as well, and the channel is closed so consumers stop
    waiting.
"""

import contextvars
import threading
from typing import BinaryIO, Callable, Optional

from ..config import AppSettings
from ..models.stream import FlushDecision, RenderSnapshot, WarningKind
from .assembler import StreamAssembler
from .channel import ContentChannel
from .document import DocumentBuilder
from .log import LOG
from .renderer import MarkdownRenderer


POLL_INTERVAL_SECONDS = 0.05


class InputLostError(Exception):
    """The input source failed before signalling end of stream"""
    pass


class StreamSession:
    """
    Single producer driving assembler, renderer and channel

    Usage:
        channel = ContentChannel()
        session = StreamSession(sys.stdin.buffer, channel, settings)
        session.start()      # producer thread
        ...                  # display reads channel.latest()
        session.cancel()     # display closed
    """

    def __init__(
        self,
        source: BinaryIO,
        channel: ContentChannel,
        settings: Optional[AppSettings] = None,
        renderer: Optional[MarkdownRenderer] = None,
        title: Optional[str] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        """
        Args:
            source: Binary input; read() returning b'' means end of stream,
                    None means no data available yet
            channel: Destination of snapshots
            settings: Configuration (chunk size, idle flush, theme)
            renderer: Renderer to use; built from settings when omitted
            title: Document title (defaults to settings.document_title)
            clock: Monotonic clock for the assembler
        """
        self.source = source
        self.channel = channel
        self.settings = settings or AppSettings()
        self.renderer = renderer or MarkdownRenderer(self.settings)
        self.builder = DocumentBuilder(self.settings, self.renderer.registry.categories())
        self.title = title if title is not None else self.settings.document_title

        if clock is None:
            self.assembler = StreamAssembler(self.settings)
        else:
            self.assembler = StreamAssembler(self.settings, clock=clock)

        self.sequence = 0
        self.published = 0
        self.failure: Optional[Exception] = None
        self._cancelled = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set() or self.channel.closed

    def cancel(self) -> None:
        """Stop reading; nothing is published after this call returns"""
        LOG("Session cancelled", level=2)
        self._cancelled.set()
        self.channel.close()

    def chunk_read(self) -> Optional[bytes]:
        """Read up to chunk_size bytes, returning as soon as any are available"""
        read = getattr(self.source, 'read1', None) or self.source.read
        return read(self.settings.chunk_size)

    def run(self) -> Optional[RenderSnapshot]:
        """
        Pump the input until end of stream or cancellation

        Returns:
            The last snapshot published by this session, if any

        Raises:
            InputLostError: If reading failed before end of stream
        """
        LOG(f"Streaming '{self.title}' in chunks of {self.settings.chunk_size} bytes", level=2)
        try:
            while not self.cancelled:
                try:
                    chunk = self.chunk_read()
                except OSError as e:
                    self.inputLost_handle(e)

                if chunk is None:
                    # non-blocking source with nothing to read yet
                    self._cancelled.wait(POLL_INTERVAL_SECONDS)
                    decision = self.assembler.poll()
                elif chunk == b'':
                    self.snapshot_publish(self.assembler.finalize(), final=True)
                    break
                else:
                    decision = self.assembler.ingest(chunk)

                self.snapshot_publish(decision)
        finally:
            self.source_close()

        LOG(f"Stream done: {self.published} snapshots published", level=2)
        return self.channel.latest() if self.published else None

    def inputLost_handle(self, error: OSError) -> None:
        """Publish what was received, flagged with the error, then raise"""
        LOG(f"Input source lost: {error}", level=1)
        message = f"Input stream lost: {error}"
        if not self.cancelled:
            self.snapshot_publish(self.assembler.finalize(), final=True, error=message)
        raise InputLostError(message) from error

    def snapshot_publish(
        self,
        decision: FlushDecision,
        final: bool = False,
        error: Optional[str] = None,
    ) -> Optional[RenderSnapshot]:
        """
        Render and publish if the decision is FLUSH

        Args:
            decision: Assembler decision for the latest input
            final: Mark the snapshot as the end-of-stream render
            error: Error message for the snapshot's error banner

        Returns:
            The published snapshot, or None (deferred, cancelled or dropped)
        """
        if decision is not FlushDecision.FLUSH:
            return None

        text = self.assembler.text
        body, warnings = self.renderer.render(text)

        # the render may have outlived the display
        if self.cancelled:
            LOG("Render finished after cancellation; not published", level=2)
            return None

        if not final and any(w.kind is WarningKind.UNTERMINATED_FENCE for w in warnings):
            LOG("Render still has an open fence; deferring", level=3)
            return None

        self.sequence += 1
        snapshot = RenderSnapshot(
            sequence=self.sequence,
            html=self.builder.htmlDocument_build(body, self.title, error),
            body=body,
            markdown=text,
            title=self.title,
            warnings=warnings,
            error=error,
            final=final,
        )
        if not self.channel.publish(snapshot):
            return None

        self.published += 1
        for warning in warnings:
            LOG(f"Warning: {warning}", level=3)
        LOG(
            f"Published snapshot {snapshot.sequence} ({len(text)} chars, "
            f"{len(warnings)} warnings)",
            level=2,
        )
        return snapshot

    def source_close(self) -> None:
        """Release the input source"""
        close = getattr(self.source, 'close', None)
        if close is None:
            return
        try:
            close()
        except OSError as e:
            LOG(f"Closing input source failed: {e}", level=2)

    def start(self) -> threading.Thread:
        """
        Run the session on a daemon thread

        The thread runs in a copy of the caller's context so LOG verbosity
        carries over. An exception ending the run is kept in self.failure.
        """
        context = contextvars.copy_context()
        self._thread = threading.Thread(
            target=context.run,
            args=(self.run_guarded,),
            name='mdstream-producer',
            daemon=True,
        )
        self._thread.start()
        return self._thread

    def run_guarded(self) -> None:
        """Thread body: run() with any failure recorded and the channel closed"""
        try:
            self.run()
        except InputLostError as e:
            self.failure = e
        except Exception as e:
            LOG(f"Stream session failed: {type(e).__name__}: {e}", level=1)
            self.failure = e
        finally:
            self.channel.close()

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the producer thread

        Returns:
            True if the thread has finished
        """
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()
