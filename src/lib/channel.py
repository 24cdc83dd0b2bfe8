"""
Content channel between the stream producer and the display

A single-slot, latest-value-wins channel: publishing overwrites the slot,
so a slow consumer skips intermediate snapshots and memory stays bounded
without ever making the producer wait.
"""

import threading
from typing import Optional

from ..models.stream import RenderSnapshot
from .log import LOG


class ContentChannel:
    """
    Holds the most recent RenderSnapshot

    Guarantees:
    - latest() never goes backwards: a snapshot whose sequence is not
      greater than the held one is dropped
    - publish() only takes a short internal lock; it never waits for readers
    - after close(), nothing more is stored
    """

    def __init__(self) -> None:
        self._condition = threading.Condition()
        self._latest: Optional[RenderSnapshot] = None
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, snapshot: RenderSnapshot) -> bool:
        """
        Offer a snapshot to the display

        Args:
            snapshot: Newly rendered snapshot

        Returns:
            True if the snapshot is now the latest, False if it was dropped
            (channel closed, or not newer than the current snapshot)
        """
        with self._condition:
            if self._closed:
                return False
            if self._latest is not None and snapshot.sequence <= self._latest.sequence:
                self.dropped += 1
                LOG(
                    f"Dropped snapshot {snapshot.sequence}: "
                    f"already holding {self._latest.sequence}",
                    level=2,
                )
                return False
            self._latest = snapshot
            self._condition.notify_all()
            return True

    def latest(self) -> Optional[RenderSnapshot]:
        """The most recent snapshot, or None before the first publish"""
        with self._condition:
            return self._latest

    def wait(self, after: int = 0, timeout: Optional[float] = None) -> Optional[RenderSnapshot]:
        """
        Block until a snapshot newer than `after` is available

        Args:
            after: Sequence number the caller has already seen
            timeout: Seconds to wait at most (None waits indefinitely)

        Returns:
            The latest snapshot if it is newer than `after`; otherwise None
            (timeout, or channel closed without anything newer)
        """
        def ready() -> bool:
            return self._closed or (
                self._latest is not None and self._latest.sequence > after
            )

        with self._condition:
            self._condition.wait_for(ready, timeout=timeout)
            if self._latest is not None and self._latest.sequence > after:
                return self._latest
            return None

    def close(self) -> None:
        """Refuse further snapshots and wake any waiting consumer"""
        with self._condition:
            self._closed = True
            self._condition.notify_all()
