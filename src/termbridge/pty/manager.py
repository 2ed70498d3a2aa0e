"""Session manager: lifecycle of the single embedded terminal session."""

from __future__ import annotations

import logging
import os
import select
import threading
from typing import TYPE_CHECKING, Callable

from termbridge.engine import PyteEngine
from termbridge.errors import CloseReason, SessionBusy, StartFailure, WriteFailure
from termbridge.pty.events import OutputKind
from termbridge.pty.geometry import Viewport, apply_viewport, compute_viewport
from termbridge.pty.keys import KeyEvent, encode_key
from termbridge.pty.reader import PTYReader
from termbridge.pty.session import SessionState, TerminalSession, launch_session
from termbridge.tui.render import RenderedFrame, connecting_frame, render_frame

if TYPE_CHECKING:
    from termbridge.config import BridgeConfig, Target
    from termbridge.engine import EngineFactory

logger = logging.getLogger(__name__)

_CONFIRM_KEYS = ("y", "Y")
_CANCEL_KEYS = ("n", "N", "escape")


class SessionManager:
    """Owns at most one ``TerminalSession`` for a host UI.

    State machine::

        STARTING -> ACTIVE <-> CLOSING_CONFIRM -> CLOSED
        STARTING/ACTIVE -> FAILED   (start or write failure)

    Everything here runs on the host's UI loop except the PTY reader
    thread, which only talks to the session's output queue. Every exit
    path goes through ``teardown()``, which is idempotent.
    """

    def __init__(
        self,
        config: BridgeConfig,
        engine_factory: EngineFactory = PyteEngine,
        launcher: Callable[..., TerminalSession] = launch_session,
        on_closed: Callable[[str], None] | None = None,
    ) -> None:
        self._config = config
        self._engine_factory = engine_factory
        self._launcher = launcher
        self._on_closed = on_closed
        self._session: TerminalSession | None = None
        self._resume_state = SessionState.ACTIVE
        self._idle_state = SessionState.CLOSED
        self._window: tuple[int, int] = (0, 0)
        self._replies: list[bytes] = []
        self._lock = threading.Lock()
        self.last_reason: str = ""

    # --- Introspection ---

    @property
    def session(self) -> TerminalSession | None:
        return self._session

    @property
    def state(self) -> SessionState:
        if self._session is not None:
            return self._session.state
        return self._idle_state

    @property
    def active(self) -> bool:
        return self._session is not None and self._session.live

    @property
    def confirming(self) -> bool:
        return self.state == SessionState.CLOSING_CONFIRM

    @property
    def viewport(self) -> Viewport | None:
        return self._session.viewport if self._session is not None else None

    def set_on_closed(self, callback: Callable[[str], None]) -> None:
        """Set a callback invoked with the close reason after teardown."""
        self._on_closed = callback

    # --- Start ---

    def start(
        self,
        target: Target,
        width: int | None = None,
        height: int | None = None,
        command: list[str] | None = None,
    ) -> TerminalSession:
        """Launch a session for ``target`` sized to the host window.

        Raises ``SessionBusy`` if a session is already live and
        ``StartFailure`` if the PTY or the client could not be created.
        """
        if self.active:
            raise SessionBusy(f"a session to {self._session.target.name} is already open")
        if width is not None and height is not None:
            self._window = (width, height)

        viewport = compute_viewport(*self._window, self._config.terminal.chrome())
        try:
            session = self._launcher(
                target,
                viewport,
                self._config,
                self._engine_factory,
                on_reply=self._write_reply,
                command=command,
            )
        except StartFailure as e:
            self._idle_state = SessionState.FAILED
            self.last_reason = CloseReason.START_FAILURE.describe(str(e))
            logger.error("Session to %s failed to start: %s", target.name, e)
            raise

        reader = PTYReader(
            session.master_fd,
            session.queue,
            read_size=self._config.terminal.read_size,
            name=session.id,
        )
        session.reader = reader
        with self._lock:
            self._session = session
        self.last_reason = ""
        reader.start()
        return session

    # --- Output pump ---

    def pump(self) -> bool:
        """Process at most one queued output event without blocking.

        Returns True if an event was applied and the caller should run
        again right away; False when the queue was empty or the session
        ended.
        """
        session = self._session
        if session is None:
            return False
        event = session.queue.get_nowait()
        if event is None:
            return False

        if event.kind is OutputKind.BYTES:
            with session.lock:
                if session.engine is None:
                    return False
                session.engine.advance(event.data)
                if session.state is SessionState.STARTING:
                    session.state = SessionState.ACTIVE
            # Replies are written only once the engine is done with the
            # chunk, so a failed write cannot tear it down mid-feed
            self._flush_replies()
            return self._session is session

        if event.kind is OutputKind.CLOSED:
            self.teardown(CloseReason.STREAM_CLOSED)
        else:
            self.teardown(CloseReason.STREAM_ERROR, event.cause)
        return False

    # --- Input ---

    def handle_key(self, event: KeyEvent) -> bool:
        """Route a host key press. Returns True if the session consumed it."""
        session = self._session
        if session is None or not session.live:
            return False

        if session.state is SessionState.CLOSING_CONFIRM:
            if event.key in _CONFIRM_KEYS or event.character in _CONFIRM_KEYS:
                self.confirm_close()
            elif event.key in _CANCEL_KEYS or event.character in ("n", "N"):
                self.cancel_close()
            return True

        if event.is_escape:
            self.request_close()
            return True

        data = encode_key(event)
        if data:
            self.write(data)
        return True

    def write(self, data: bytes) -> bool:
        """Write ``data`` to the PTY, tearing the session down on failure."""
        session = self._session
        if session is None:
            return False
        try:
            with session.lock:
                if session.master_fd < 0:
                    return False
                self._write_all(session.master_fd, data)
        except (OSError, WriteFailure) as e:
            logger.error("Write to session %s failed: %s", session.id, e)
            self.teardown(
                CloseReason.WRITE_FAILURE, str(e), final_state=SessionState.FAILED
            )
            return False
        return True

    def _write_all(self, fd: int, data: bytes) -> None:
        timeout = self._config.terminal.write_timeout
        view = memoryview(data)
        while view:
            _, writable, _ = select.select([], [fd], [], timeout)
            if not writable:
                raise WriteFailure(f"PTY not writable after {timeout:.1f}s")
            written = os.write(fd, view)
            view = view[written:]

    def _write_reply(self, data: bytes) -> None:
        # Engine answers to terminal queries (DA, cursor position); called
        # from inside advance(), so only queue them here
        self._replies.append(data)

    def _flush_replies(self) -> None:
        replies, self._replies = self._replies, []
        if replies:
            self.write(b"".join(replies))

    # --- Close confirmation ---

    def request_close(self) -> None:
        session = self._session
        if session is None:
            return
        if session.state in (SessionState.STARTING, SessionState.ACTIVE):
            self._resume_state = session.state
            session.state = SessionState.CLOSING_CONFIRM

    def cancel_close(self) -> None:
        session = self._session
        if session is not None and session.state is SessionState.CLOSING_CONFIRM:
            session.state = self._resume_state

    def confirm_close(self) -> None:
        self.teardown(CloseReason.USER)

    # --- Geometry ---

    def resize(self, width: int, height: int) -> Viewport | None:
        """Record the host window size and propagate it to the session."""
        self._window = (width, height)
        session = self._session
        if session is None:
            return None
        apply_viewport(session, compute_viewport(width, height, self._config.terminal.chrome()))
        return session.viewport

    # --- Rendering ---

    def frame(self) -> RenderedFrame | None:
        """Current screen fitted to the viewport, or None without a session."""
        session = self._session
        if session is None or not session.live:
            return None
        target = session.target
        with session.lock:
            if session.engine is None:
                return None
            if session.state is SessionState.STARTING:
                return connecting_frame(session.viewport, target.name, target.host)
            return render_frame(session.engine, session.viewport, target.name, target.host)

    # --- Teardown ---

    def teardown(
        self,
        reason: CloseReason = CloseReason.USER,
        cause: str | None = None,
        final_state: SessionState = SessionState.CLOSED,
    ) -> bool:
        """End the current session and release everything it holds.

        Closes the output queue (discarding pending events), kills the
        client, closes the PTY and drops the engine. A no-op without a
        session. Returns True if a session was torn down.
        """
        with self._lock:
            session, self._session = self._session, None
        if session is None:
            return False

        dropped = session.queue.close()
        session.release(join_timeout=self._config.terminal.join_timeout)
        session.state = final_state
        self._idle_state = final_state
        self._resume_state = SessionState.ACTIVE
        self._replies = []
        self.last_reason = reason.describe(cause)
        logger.info(
            "Session %s to %s closed: %s (%d queued events dropped)",
            session.id,
            session.target.name,
            self.last_reason,
            dropped,
        )

        if self._on_closed:
            try:
                self._on_closed(self.last_reason)
            except Exception:
                logger.exception("Error in on_closed callback for session %s", session.id)
        return True

    def shutdown(self) -> None:
        """Tear down on host exit. Called from the app's unmount."""
        self.teardown(CloseReason.SHUTDOWN)
