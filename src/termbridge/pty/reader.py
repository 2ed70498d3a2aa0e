"""Background reader moving raw PTY output onto the session queue."""

from __future__ import annotations

import errno
import logging
import os
import threading

from termbridge.pty.events import OutputEvent, OutputQueue

logger = logging.getLogger(__name__)

CLOSED_NOTICE = b"\r\n[Connection closed]\r\n"


class PTYReader(threading.Thread):
    """Blocking reads from the PTY master, one ``OutputEvent`` per chunk.

    Bytes are forwarded exactly as read; escape sequences split across
    reads are fine because the engine parses a stream. The thread ends on
    end-of-stream (empty read, or EIO once the slave side hangs up), on any
    other read error, or once the queue has been closed by teardown.
    """

    def __init__(self, fd: int, queue: OutputQueue, read_size: int = 4096, name: str = "") -> None:
        super().__init__(name=f"pty-reader-{name or fd}", daemon=True)
        self._fd = fd
        self._queue = queue
        self._read_size = read_size

    def run(self) -> None:
        while True:
            try:
                data = os.read(self._fd, self._read_size)
            except OSError as e:
                if self._queue.closed:
                    break
                if e.errno == errno.EIO:
                    self._finish_closed()
                else:
                    logger.debug("PTY read error on fd %d: %s", self._fd, e)
                    self._queue.put(OutputEvent.error(str(e)))
                break

            if not data:
                if not self._queue.closed:
                    self._finish_closed()
                break

            if not self._queue.put(OutputEvent.chunk(data)):
                break
        logger.debug("PTY reader on fd %d exited", self._fd)

    def _finish_closed(self) -> None:
        self._queue.put(OutputEvent.chunk(CLOSED_NOTICE))
        self._queue.put(OutputEvent.closed())
