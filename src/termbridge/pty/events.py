"""Output events and the queue that carries them from the reader to the pump."""

from __future__ import annotations

import enum
import queue
import threading
from dataclasses import dataclass


class OutputKind(enum.Enum):
    BYTES = "bytes"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class OutputEvent:
    """One item produced by the PTY reader."""

    kind: OutputKind
    data: bytes = b""
    cause: str = ""

    @classmethod
    def chunk(cls, data: bytes) -> OutputEvent:
        return cls(kind=OutputKind.BYTES, data=data)

    @classmethod
    def closed(cls) -> OutputEvent:
        return cls(kind=OutputKind.CLOSED)

    @classmethod
    def error(cls, cause: str) -> OutputEvent:
        return cls(kind=OutputKind.ERROR, cause=cause)


class OutputQueue:
    """Bounded single-producer/single-consumer FIFO between reader and pump.

    When the queue is full, ``put()`` blocks the producer in short slices
    until the consumer makes room or the queue is closed. A blocked reader
    stops draining the PTY, so the kernel buffer fills and flow control
    reaches the remote side instead of output being dropped.

    After ``close()`` every ``put()`` is discarded and the queue is drained.
    """

    PUT_SLICE = 0.1

    def __init__(self, max_events: int = 1024) -> None:
        self._queue: queue.Queue[OutputEvent] = queue.Queue(maxsize=max_events)
        self._closed = threading.Event()

    def put(self, event: OutputEvent) -> bool:
        """Enqueue an event. Returns False if it was discarded (queue closed)."""
        while not self._closed.is_set():
            try:
                self._queue.put(event, timeout=self.PUT_SLICE)
            except queue.Full:
                continue
            # close() may have drained between our check and the put
            if self._closed.is_set():
                self.drain()
                return False
            return True
        return False

    def get_nowait(self) -> OutputEvent | None:
        """Return the next event, or None if nothing is waiting."""
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    def drain(self) -> int:
        """Discard every queued event. Returns how many were dropped."""
        dropped = 0
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                return dropped
            dropped += 1

    def close(self) -> int:
        """Stop accepting events and discard what is queued."""
        self._closed.set()
        return self.drain()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def __len__(self) -> int:
        return self._queue.qsize()
