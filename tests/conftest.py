"""Shared fakes for termbridge tests: a recording engine and an in-process PTY."""

from __future__ import annotations

import os
import time
import tty
from typing import Callable

import pytest
from rich.text import Text

from termbridge.config import BridgeConfig, TerminalConfig
from termbridge.pty.events import OutputQueue
from termbridge.pty.geometry import Viewport, set_pty_size
from termbridge.pty.session import TerminalSession


class FakeEngine:
    """Records every call; renders fed text split on CRLF."""

    def __init__(self, cols: int, rows: int, on_reply=None) -> None:
        self.cols = cols
        self.rows = rows
        self.on_reply = on_reply
        self.chunks: list[bytes] = []
        self.resizes: list[tuple[int, int]] = []
        self.closed = False

    def resize(self, cols: int, rows: int) -> None:
        self.cols, self.rows = cols, rows
        self.resizes.append((cols, rows))

    def advance(self, data: bytes) -> None:
        self.chunks.append(data)

    def dimensions(self) -> tuple[int, int]:
        return self.cols, self.rows

    def render_lines(self) -> list[Text]:
        text = b"".join(self.chunks).decode("utf-8", errors="replace")
        return [Text(line) for line in text.split("\r\n")]

    def close(self) -> None:
        self.closed = True


class FakeProc:
    """Stands in for the client process; owns the PTY slave side.

    Killing it closes the slave, as a real child exiting would, so the
    reader sees the PTY hang up.
    """

    def __init__(self, slave_fd: int) -> None:
        self.pid = 424242
        self.slave_fd = slave_fd
        self.returncode: int | None = None
        self.kill_count = 0

    def poll(self) -> int | None:
        return self.returncode

    def kill(self) -> None:
        self.kill_count += 1
        self.returncode = -9
        self.hangup()

    def wait(self, timeout: float | None = None) -> int | None:
        return self.returncode

    def hangup(self) -> None:
        if self.slave_fd >= 0:
            os.close(self.slave_fd)
            self.slave_fd = -1

    def remote_write(self, data: bytes) -> None:
        os.write(self.slave_fd, data)

    def remote_read(self, timeout: float = 0.5) -> bytes:
        import select

        ready, _, _ = select.select([self.slave_fd], [], [], timeout)
        if not ready:
            return b""
        return os.read(self.slave_fd, 4096)


class FakeLauncher:
    """Launcher that builds a session on a real PTY pair with no child."""

    def __init__(self) -> None:
        self.sessions: list[TerminalSession] = []
        self.procs: list[FakeProc] = []
        self.calls = 0

    def __call__(self, target, viewport: Viewport, config, engine_factory, on_reply=None, command=None):
        self.calls += 1
        master_fd, slave_fd = os.openpty()
        tty.setraw(slave_fd)
        set_pty_size(master_fd, viewport)
        proc = FakeProc(slave_fd)
        self.procs.append(proc)
        session = TerminalSession(
            target=target,
            viewport=viewport,
            engine=engine_factory(viewport.cols, viewport.rows, on_reply),
            queue=OutputQueue(max_events=config.terminal.max_events),
            master_fd=master_fd,
            proc=proc,
        )
        self.sessions.append(session)
        return session

    @property
    def proc(self) -> FakeProc:
        return self.procs[-1]


def wait_for(predicate: Callable[[], bool], step: Callable[[], object] | None = None, timeout: float = 3.0) -> bool:
    """Poll ``predicate`` (running ``step`` between checks) until true or timeout."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if step is not None:
            step()
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def config() -> BridgeConfig:
    return BridgeConfig(
        terminal=TerminalConfig(
            top_padding=1, write_timeout=0.2, join_timeout=0.5, max_events=64
        )
    )


@pytest.fixture
def launcher() -> FakeLauncher:
    fake = FakeLauncher()
    yield fake
    for session in fake.sessions:
        session.queue.close()
        session.release(join_timeout=0.5)
