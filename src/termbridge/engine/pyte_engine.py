"""pyte-backed terminal engine producing rich ``Text`` lines."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import pyte
from rich.style import Style
from rich.text import Text
from wcwidth import wcwidth

if TYPE_CHECKING:
    from termbridge.engine import ReplyCallback

logger = logging.getLogger(__name__)

_ANSI_NAMES = {"black", "red", "green", "yellow", "blue", "magenta", "cyan", "white"}


def _rich_color(color: str) -> str | None:
    """Translate a pyte colour to a rich colour spec.

    pyte reports SGR 30-37 by name (33 is ``"brown"``), 90-97 as
    ``"bright<name>"`` and 256-colour / true-colour values as bare hex.
    """
    if not color or color == "default":
        return None
    name = color
    bright = name.startswith("bright")
    if bright:
        name = name[len("bright") :]
    if name == "brown":
        name = "yellow"
    if name in _ANSI_NAMES:
        return f"bright_{name}" if bright else name
    if len(color) == 6:
        try:
            int(color, 16)
        except ValueError:
            return None
        return f"#{color}"
    return None


class _ReplyingScreen(pyte.Screen):
    """Screen that forwards device replies (DA, DSR) to a callback."""

    def __init__(self, columns: int, lines: int, on_reply: ReplyCallback | None) -> None:
        super().__init__(columns, lines)
        self._on_reply = on_reply

    def write_process_input(self, data: str) -> None:
        if self._on_reply is not None and data:
            self._on_reply(data.encode("utf-8"))


class PyteEngine:
    """``TerminalEngine`` on top of ``pyte.Screen`` + ``pyte.ByteStream``."""

    def __init__(
        self,
        cols: int,
        rows: int,
        on_reply: ReplyCallback | None = None,
        show_cursor: bool = True,
    ) -> None:
        self._screen = _ReplyingScreen(cols, rows, on_reply)
        self._stream = pyte.ByteStream(self._screen)
        self._show_cursor = show_cursor
        self._styles: dict[tuple[Any, ...], Style] = {}
        self._closed = False

    def resize(self, cols: int, rows: int) -> None:
        self._screen.resize(lines=rows, columns=cols)

    def advance(self, data: bytes) -> None:
        if self._closed:
            return
        self._stream.feed(data)

    def dimensions(self) -> tuple[int, int]:
        return self._screen.columns, self._screen.lines

    @property
    def display(self) -> list[str]:
        """Plain-text rows, each ``cols`` wide."""
        return list(self._screen.display)

    @property
    def cursor(self) -> tuple[int, int]:
        """Cursor position as (x, y)."""
        return self._screen.cursor.x, self._screen.cursor.y

    def render_lines(self) -> list[Text]:
        screen = self._screen
        cursor = screen.cursor
        cursor_visible = self._show_cursor and not cursor.hidden
        return [
            self._render_row(y, cursor.x if cursor_visible and y == cursor.y else -1)
            for y in range(screen.lines)
        ]

    def close(self) -> None:
        self._closed = True
        self._screen.reset()
        self._styles.clear()

    # --- Internals ---

    def _style_for(self, char: Any, invert: bool) -> Style:
        key = (
            char.fg,
            char.bg,
            char.bold,
            char.italics,
            char.underscore,
            char.strikethrough,
            char.reverse != invert,
            char.blink,
        )
        style = self._styles.get(key)
        if style is None:
            style = Style(
                color=_rich_color(char.fg),
                bgcolor=_rich_color(char.bg),
                bold=char.bold or None,
                italic=char.italics or None,
                underline=char.underscore or None,
                strike=char.strikethrough or None,
                reverse=key[6] or None,
                blink=char.blink or None,
            )
            self._styles[key] = style
        return style

    def _render_row(self, y: int, cursor_x: int) -> Text:
        row = self._screen.buffer[y]
        text = Text(no_wrap=True, end="")
        run: list[str] = []
        run_style: Style | None = None
        skip_stub = False
        for x in range(self._screen.columns):
            if skip_stub:
                skip_stub = False
                continue
            char = row[x]
            data = char.data or " "
            skip_stub = wcwidth(data[0]) == 2
            style = self._style_for(char, invert=x == cursor_x)
            if style != run_style and run:
                text.append("".join(run), run_style)
                run = []
            run_style = style
            run.append(data)
        if run:
            text.append("".join(run), run_style)
        return text
