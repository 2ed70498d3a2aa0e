"""Main Textual application hosting the embedded terminal session."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from rich.markup import escape
from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.message import Message
from textual.timer import Timer
from textual.widgets import Label, OptionList, Static
from textual.widgets.option_list import Option

from termbridge.errors import BridgeError
from termbridge.pty.keys import KeyEvent
from termbridge.pty.manager import SessionManager

if TYPE_CHECKING:
    from termbridge.config import BridgeConfig, Target

logger = logging.getLogger(__name__)

# Consecutive events applied before the panel is repainted mid-burst
_REPAINT_EVERY = 16


class StatusLog(Message):
    """A log record arrived off the UI thread; refresh the status bar."""


class TUILogHandler(logging.Handler):
    """Logging handler that keeps the last log message for the status bar.

    Writing to stderr would corrupt the Textual display, so records are
    stored and the status bar is refreshed on the app's thread. Records
    from other threads only post a message: ``emit`` runs under the
    handler lock and must never wait on the UI loop, which may itself be
    logging while it joins the reader.
    """

    def __init__(self, app: BridgeApp) -> None:
        super().__init__()
        self._app = app
        self.last_message: str = ""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.last_message = self.format(record)
            if threading.get_ident() == self._app.ui_thread_id:
                self._app.update_status()
            else:
                self._app.post_message(StatusLog())
        except Exception:
            self.handleError(record)


class TerminalView(Static, can_focus=True):
    """Focusable panel that shows the session screen and takes every key."""

    def __init__(self, manager: SessionManager, **kwargs) -> None:
        super().__init__(**kwargs)
        self._manager = manager

    def on_key(self, event: events.Key) -> None:
        if self._manager.handle_key(KeyEvent.from_textual(event)):
            # Keep host bindings (tab focus, quit) away from the session
            event.stop()
            event.prevent_default()
            self.app.refresh_session()


class BridgeApp(App):
    """termbridge TUI: pick a target and work in its SSH session."""

    TITLE = "termbridge"
    CSS = """
    #top-padding {
        height: 1;
    }

    #home {
        height: 1fr;
        padding: 0 1;
    }

    #home-title {
        color: $accent;
        text-style: bold;
        margin-bottom: 1;
    }

    #home-message {
        color: $warning;
        margin-bottom: 1;
    }

    #targets {
        height: 1fr;
        border: round $secondary;
    }

    #session {
        height: 1fr;
        display: none;
    }

    #session-header {
        height: 1;
        background: $primary;
        color: $text;
        text-style: bold;
        padding: 0 1;
    }

    #terminal {
        width: auto;
        height: auto;
        border: round $primary;
        padding: 0 1;
    }

    #terminal.-confirm {
        border: round $warning;
        padding: 1 4;
        margin: 1 2;
    }

    #session-help {
        height: 1;
        margin-top: 1;
        color: $text-muted;
    }

    #status-bar {
        dock: bottom;
        height: 1;
        background: $surface;
        color: $text-muted;
        padding: 0 1;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        config: BridgeConfig,
        targets: list[Target] | None = None,
        connect_to: Target | None = None,
        manager: SessionManager | None = None,
    ) -> None:
        super().__init__()
        self.config = config
        self.targets: list[Target] = list(targets if targets is not None else config.targets)
        self._connect_to = connect_to
        if connect_to is not None and connect_to not in self.targets:
            self.targets.insert(0, connect_to)
        self.manager = manager or SessionManager(config)
        self.manager.set_on_closed(self._on_session_closed)
        self.ui_thread_id = threading.get_ident()
        self._log_handler: TUILogHandler | None = None
        self._pump_timer: Timer | None = None
        self._burst = 0
        self._exiting = False

    def compose(self) -> ComposeResult:
        yield Static(id="top-padding")
        with Vertical(id="home"):
            yield Label("Targets", id="home-title")
            yield Label("", id="home-message")
            yield OptionList(
                *[
                    Option(self._target_label(t), id=str(i))
                    for i, t in enumerate(self.targets)
                ],
                id="targets",
            )
        with Vertical(id="session"):
            yield Static(id="session-header")
            yield TerminalView(self.manager, id="terminal")
            yield Static(id="session-help")
        yield Static(id="status-bar")

    def on_mount(self) -> None:
        self.ui_thread_id = threading.get_ident()
        self._install_log_handler()
        self.query_one("#top-padding", Static).styles.height = (
            self.config.terminal.top_padding
        )
        self._show_home(self.manager.last_reason)
        if self._connect_to is not None:
            self.connect(self._connect_to)

    def on_unmount(self) -> None:
        self._exiting = True
        self._stop_pump()
        self.manager.shutdown()
        if self._log_handler is not None:
            logging.getLogger().removeHandler(self._log_handler)
            self._log_handler = None

    def _install_log_handler(self) -> None:
        # The CLI has already removed the stderr handlers
        self._log_handler = TUILogHandler(self)
        self._log_handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        logging.getLogger().addHandler(self._log_handler)

    def on_status_log(self, message: StatusLog) -> None:
        self.update_status()

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool | None:
        # While a session is live every key belongs to it, ctrl+q included;
        # the session is left with Escape and a confirmation.
        if action == "quit" and self.manager.active:
            return False
        return True

    @staticmethod
    def _target_label(target: Target) -> str:
        if target.name != target.host:
            return f"{target.name}  ({target.destination})"
        return target.destination

    # --- Status bar ---

    def update_status(self) -> None:
        try:
            status = self.query_one("#status-bar", Static)
        except Exception:
            return
        parts = [f"State: {self.manager.state.value}"]
        viewport = self.manager.viewport
        if viewport is not None:
            parts.append(f"{viewport.cols}x{viewport.rows}")
        if self._log_handler and self._log_handler.last_message:
            last_log = self._log_handler.last_message
            if len(last_log) > 80:
                last_log = last_log[:77] + "..."
            parts.append(f"[dim]{escape(last_log)}[/dim]")
        status.update(" | ".join(parts))

    # --- Views ---

    def _show_home(self, message: str = "") -> None:
        self.query_one("#session").display = False
        self.query_one("#home").display = True
        self.query_one("#home-message", Label).update(escape(message))
        self.query_one("#targets", OptionList).focus()
        self.update_status()

    def _show_session(self) -> None:
        self.query_one("#home").display = False
        self.query_one("#session").display = True
        self.query_one("#terminal", TerminalView).focus()
        self.refresh_session()

    def refresh_session(self) -> None:
        """Repaint the session panel from the manager's current frame."""
        session = self.manager.session
        frame = self.manager.frame()
        if session is None or frame is None:
            return

        self.query_one("#session-header", Static).update(Text(frame.header, no_wrap=True))
        # The prompt is drawn in the terminal view itself: hiding the
        # focused widget would drop focus and with it the y/n keys.
        terminal = self.query_one("#terminal", TerminalView)
        confirming = self.manager.confirming
        terminal.set_class(confirming, "-confirm")
        if confirming:
            terminal.update(
                f"[bold]Close SSH connection to {escape(session.target.name)}?[/bold]\n\n"
                "[b]\\[y][/b] Yes, close connection  |  [b]\\[n][/b] No, cancel\n"
                "[b]\\[esc][/b] Cancel"
            )
        else:
            terminal.update(frame.to_text())
        self.query_one("#session-help", Static).update(
            f"Host: {escape(session.target.host)}  |  "
            "\\[ctrl+c] Interrupt remote process  \\[esc] Close session"
        )
        self.update_status()

    # --- Session control ---

    def connect(self, target: Target) -> None:
        try:
            self.manager.start(target, self.size.width, self.size.height)
        except BridgeError as e:
            self._show_home(self.manager.last_reason or str(e))
            return
        self._show_session()
        self._schedule_pump(self.config.terminal.poll_interval)

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        if self.manager.active or event.option.id is None:
            return
        self.connect(self.targets[int(event.option.id)])

    def on_resize(self, event: events.Resize) -> None:
        if self.manager.resize(event.size.width, event.size.height) is not None:
            self.refresh_session()

    def _on_session_closed(self, reason: str) -> None:
        self._stop_pump()
        if self._exiting:
            return
        self._show_home(reason)

    # --- Output pump ---

    def _schedule_pump(self, delay: float) -> None:
        self._pump_timer = self.set_timer(delay, self._pump_tick)

    def _stop_pump(self) -> None:
        if self._pump_timer is not None:
            self._pump_timer.stop()
            self._pump_timer = None

    def _pump_tick(self) -> None:
        self._pump_timer = None
        processed = self.manager.pump()
        if not self.manager.active:
            return
        if processed:
            self._burst += 1
            if self._burst % _REPAINT_EVERY == 0:
                self.refresh_session()
            self.call_later(self._pump_tick)
            return
        if self._burst:
            self._burst = 0
            self.refresh_session()
        self._schedule_pump(self.config.terminal.poll_interval)
