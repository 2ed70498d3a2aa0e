"""Terminal session: a PTY-attached SSH client and its emulation engine."""

from __future__ import annotations

import enum
import fcntl
import logging
import os
import pty
import signal
import subprocess
import termios
import threading
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from termbridge.errors import StartFailure
from termbridge.pty.events import OutputQueue
from termbridge.pty.geometry import Viewport, set_pty_size

if TYPE_CHECKING:
    from termbridge.config import BridgeConfig, Target
    from termbridge.engine import EngineFactory, ReplyCallback, TerminalEngine
    from termbridge.pty.reader import PTYReader

logger = logging.getLogger(__name__)

DEFAULT_TERM = "xterm-256color"
# Inherited TERM values trusted to describe a full-featured terminal
_FULL_TERMS = ("xterm-256color", "screen-256color", "tmux-256color")


class SessionState(enum.Enum):
    """Lifecycle states for a terminal session."""

    STARTING = "starting"
    ACTIVE = "active"
    CLOSING_CONFIRM = "closing_confirm"
    CLOSED = "closed"
    FAILED = "failed"


@dataclass
class TerminalSession:
    """One live remote-terminal connection.

    Owns the PTY master descriptor, the client process and the engine.
    ``lock`` guards those handles: the UI loop writes and resizes through
    them while teardown may run from an error path.
    """

    target: Target
    viewport: Viewport
    engine: TerminalEngine | None
    queue: OutputQueue
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: SessionState = SessionState.STARTING
    master_fd: int = -1
    proc: subprocess.Popen | None = None
    pgid: int = 0
    reader: PTYReader | None = None
    lock: threading.RLock = field(default_factory=threading.RLock)

    @property
    def pid(self) -> int:
        return self.proc.pid if self.proc is not None else 0

    @property
    def live(self) -> bool:
        return self.state in (
            SessionState.STARTING,
            SessionState.ACTIVE,
            SessionState.CLOSING_CONFIRM,
        )

    def release(self, join_timeout: float = 1.0) -> None:
        """Kill the process group, reap it, close the PTY and drop the engine.

        Safe to call more than once; every handle is cleared as it is
        released so nothing is touched twice.
        """
        with self.lock:
            proc, self.proc = self.proc, None
            fd, self.master_fd = self.master_fd, -1
            engine, self.engine = self.engine, None
            pgid, self.pgid = self.pgid, 0

            if proc is not None and proc.poll() is None:
                try:
                    if pgid:
                        os.killpg(pgid, signal.SIGKILL)
                    else:
                        proc.kill()
                    logger.info("Killed session %s (pid=%d)", self.id, proc.pid)
                except ProcessLookupError:
                    logger.debug("Process already gone for session %s", self.id)
                except OSError as e:
                    logger.warning("Error killing session %s: %s", self.id, e)
            if proc is not None:
                try:
                    proc.wait(timeout=2)
                except subprocess.TimeoutExpired:
                    logger.warning("Session %s did not exit after SIGKILL", self.id)

            if fd >= 0:
                try:
                    os.close(fd)
                except OSError as e:
                    logger.debug("Closing PTY fd %d failed: %s", fd, e)

            if engine is not None:
                engine.close()

        reader = self.reader
        if reader is not None and reader is not threading.current_thread():
            reader.join(timeout=join_timeout)
            if reader.is_alive():
                logger.warning("PTY reader for session %s still running", self.id)


def resolve_term(configured: str | None = None, inherited: str | None = None) -> str:
    """Pick the TERM value exported to the client."""
    if configured:
        return configured
    if inherited is None:
        inherited = os.environ.get("TERM", "")
    if inherited in _FULL_TERMS:
        return inherited
    return DEFAULT_TERM


def build_ssh_command(target: Target, config: BridgeConfig) -> list[str]:
    """Build the ssh argv for ``target``.

    ``-tt`` forces a remote TTY so full-screen programs work.
    """
    ssh = config.ssh
    command = [ssh.binary, "-tt"]
    if not ssh.strict_host_key_checking:
        command += [
            "-o",
            "StrictHostKeyChecking=no",
            "-o",
            "UserKnownHostsFile=/dev/null",
        ]
    command += ["-o", f"LogLevel={ssh.log_level}"]
    if target.port:
        command += ["-p", str(target.port)]
    if target.identity_file:
        command += ["-i", os.path.expanduser(target.identity_file)]
    command += list(ssh.extra_options)
    command.append(target.destination)
    return command


def _acquire_controlling_tty() -> None:
    # Runs in the child after setsid() and the stdio dup2s. Without a
    # controlling terminal the child never receives SIGWINCH.
    fcntl.ioctl(0, termios.TIOCSCTTY, 0)


def launch_session(
    target: Target,
    viewport: Viewport,
    config: BridgeConfig,
    engine_factory: EngineFactory,
    on_reply: ReplyCallback | None = None,
    command: list[str] | None = None,
) -> TerminalSession:
    """Spawn the client on a fresh PTY sized to ``viewport``.

    The window size is set on the PTY before the child exists, so its first
    output is already laid out for the right geometry. Raises
    ``StartFailure`` with every allocated descriptor closed.
    """
    argv = command or build_ssh_command(target, config)
    engine = engine_factory(viewport.cols, viewport.rows, on_reply)

    try:
        master_fd, slave_fd = pty.openpty()
    except OSError as e:
        engine.close()
        raise StartFailure(f"cannot allocate PTY: {e}") from e

    env = dict(os.environ)
    env["TERM"] = resolve_term(config.terminal.term)

    try:
        set_pty_size(master_fd, viewport)
        proc = subprocess.Popen(
            argv,
            stdin=slave_fd,
            stdout=slave_fd,
            stderr=slave_fd,
            start_new_session=True,
            preexec_fn=_acquire_controlling_tty,
            env=env,
            close_fds=True,
        )
    except Exception as e:
        os.close(master_fd)
        engine.close()
        raise StartFailure(f"cannot start {argv[0]}: {e}") from e
    finally:
        os.close(slave_fd)

    try:
        pgid = os.getpgid(proc.pid)
    except ProcessLookupError:
        pgid = 0

    session = TerminalSession(
        target=target,
        viewport=viewport,
        engine=engine,
        queue=OutputQueue(max_events=config.terminal.max_events),
        master_fd=master_fd,
        proc=proc,
        pgid=pgid,
    )
    logger.info(
        "Session %s started: pid=%d %dx%d TERM=%s cmd=%s",
        session.id,
        proc.pid,
        viewport.cols,
        viewport.rows,
        env["TERM"],
        " ".join(argv),
    )
    return session
