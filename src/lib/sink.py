"""
File sink: a display collaborator that writes snapshots to disk

Consumes the ContentChannel on its own schedule and keeps a single HTML
file current. Any browser with auto-reload, or a webview pointed at the
file, then shows the live document.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional

from ..models.stream import RenderSnapshot
from .channel import ContentChannel
from .log import LOG


class SnapshotFileSink:
    """
    Writes the latest snapshot of a channel to a file

    Writes are atomic (temporary file + rename), so a reader never sees a
    half-written document.
    """

    def __init__(self, channel: ContentChannel, path: Path, poll_seconds: float = 0.5) -> None:
        """
        Args:
            channel: Channel to consume
            path: Output HTML file
            poll_seconds: Longest wait between checks of the channel
        """
        self.channel = channel
        self.path = Path(path)
        self.poll_seconds = poll_seconds
        self.seen = 0
        self.writes = 0

    def snapshot_write(self, snapshot: RenderSnapshot) -> None:
        """Atomically replace the output file with a snapshot's document"""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as handle:
                handle.write(snapshot.html)
            os.replace(temp_name, self.path)
        except BaseException:
            Path(temp_name).unlink(missing_ok=True)
            raise
        self.seen = snapshot.sequence
        self.writes += 1
        LOG(f"Wrote snapshot {snapshot.sequence} to {self.path}", level=3)

    def drain(self) -> Optional[RenderSnapshot]:
        """Write the latest snapshot if it has not been written yet"""
        snapshot = self.channel.latest()
        if snapshot is not None and snapshot.sequence > self.seen:
            self.snapshot_write(snapshot)
            return snapshot
        return None

    def run(self) -> Optional[RenderSnapshot]:
        """
        Follow the channel until the final snapshot or until it closes

        Returns:
            The last snapshot written, if any
        """
        last: Optional[RenderSnapshot] = None
        while True:
            snapshot = self.channel.wait(after=self.seen, timeout=self.poll_seconds)
            if snapshot is not None:
                self.snapshot_write(snapshot)
                last = snapshot
                if snapshot.final:
                    break
            elif self.channel.closed:
                break
        LOG(f"File sink done: {self.writes} writes to {self.path}", level=2)
        return last
