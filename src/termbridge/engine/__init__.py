"""Terminal-emulation engine interface.

The bridge never interprets escape sequences itself. It feeds raw bytes to
an engine and asks it for rendered lines, so any implementation of
``TerminalEngine`` can be swapped in (tests use a recording fake).
"""

from __future__ import annotations

from typing import Callable, Protocol, runtime_checkable

from rich.text import Text

ReplyCallback = Callable[[bytes], None]


@runtime_checkable
class TerminalEngine(Protocol):
    """Streaming terminal interpreter with a ``rows x cols`` cell buffer."""

    def resize(self, cols: int, rows: int) -> None: ...

    def advance(self, data: bytes) -> None: ...

    def dimensions(self) -> tuple[int, int]: ...

    def render_lines(self) -> list[Text]: ...

    def close(self) -> None: ...


class EngineFactory(Protocol):
    def __call__(
        self, cols: int, rows: int, on_reply: ReplyCallback | None = None
    ) -> TerminalEngine: ...


from termbridge.engine.pyte_engine import PyteEngine  # noqa: E402

__all__ = [
    "EngineFactory",
    "PyteEngine",
    "ReplyCallback",
    "TerminalEngine",
]
