"""In-memory fan-out of session snapshots for real-time clients.

Subscribes to the state machine and re-publishes every snapshot to any
number of SSE subscribers. New subscribers receive the latest snapshot
first so they never render a stale screen.
"""
import asyncio
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, AsyncIterator


@dataclass
class SnapshotEvent:
    """One published session snapshot."""

    snapshot: dict
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "state": self.snapshot,
        }


class StateStream:
    """Thread-safe publish-subscribe channel for session snapshots."""

    def __init__(self, max_queue: int = 100):
        """Initialize the stream.

        Args:
            max_queue: Per-subscriber buffer; subscribers that fall this far
                behind are dropped and their stream ends.
        """
        self._latest: Optional[SnapshotEvent] = None
        self._subscribers: list[asyncio.Queue] = []
        self._lock = threading.Lock()
        self._max_queue = max_queue
        self._stats = {
            "total_published": 0,
            "total_subscribers": 0,
        }

    def publish(self, snapshot: dict) -> SnapshotEvent:
        """Publish a snapshot to all subscribers.

        Args:
            snapshot: Session state as returned by the state machine.

        Returns:
            The published SnapshotEvent
        """
        event = SnapshotEvent(snapshot=snapshot)
        with self._lock:
            self._latest = event
            self._stats["total_published"] += 1

            dead_subscribers = []
            for queue in self._subscribers:
                try:
                    queue.put_nowait(event)
                except asyncio.QueueFull:
                    dead_subscribers.append(queue)

            for queue in dead_subscribers:
                self._subscribers.remove(queue)
                _close(queue)

        return event

    async def subscribe(self, include_latest: bool = True) -> AsyncIterator[SnapshotEvent]:
        """Subscribe to snapshots via async generator.

        Args:
            include_latest: Whether to yield the most recent snapshot first.

        Yields:
            SnapshotEvent objects as they arrive.
        """
        queue: asyncio.Queue[Optional[SnapshotEvent]] = asyncio.Queue(maxsize=self._max_queue)

        with self._lock:
            self._subscribers.append(queue)
            self._stats["total_subscribers"] += 1
            if include_latest and self._latest is not None:
                queue.put_nowait(self._latest)

        try:
            while True:
                event = await queue.get()
                if event is None:
                    # Dropped for falling behind
                    return
                yield event
        finally:
            with self._lock:
                if queue in self._subscribers:
                    self._subscribers.remove(queue)

    @property
    def latest(self) -> Optional[SnapshotEvent]:
        with self._lock:
            return self._latest

    def get_stats(self) -> dict:
        """Get stream statistics."""
        with self._lock:
            return {
                **self._stats,
                "current_subscribers": len(self._subscribers),
            }


def _close(queue: asyncio.Queue) -> None:
    """Replace a lagging subscriber's backlog with the end-of-stream marker."""
    while not queue.empty():
        queue.get_nowait()
    queue.put_nowait(None)
