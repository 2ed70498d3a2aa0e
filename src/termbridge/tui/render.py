"""Viewport renderer: fit the engine's screen to the session panel."""

from __future__ import annotations

from dataclasses import dataclass

from rich.text import Text

from termbridge.engine import TerminalEngine
from termbridge.pty.geometry import Viewport


@dataclass(frozen=True)
class RenderedFrame:
    """Exactly ``viewport.rows`` lines, each ``viewport.cols`` cells wide."""

    header: str
    lines: tuple[Text, ...]
    viewport: Viewport

    @property
    def plain(self) -> list[str]:
        return [line.plain for line in self.lines]

    def to_text(self) -> Text:
        return Text("\n", no_wrap=True, end="").join(self.lines)


def header_for(name: str, host: str) -> str:
    if name and name != host:
        return f"Connected to: {name}  |  Host: {host}"
    return f"Connected to: {host}"


def fit_lines(lines: list[Text], viewport: Viewport) -> tuple[Text, ...]:
    """Pad or truncate to ``viewport``, keeping the most recent rows."""
    lines = list(lines)
    if lines and not lines[-1].plain:
        lines.pop()
    if len(lines) > viewport.rows:
        lines = lines[-viewport.rows :]
    while len(lines) < viewport.rows:
        lines.append(Text(""))
    fitted = []
    for line in lines:
        line = line.copy()
        line.truncate(viewport.cols, overflow="crop", pad=True)
        fitted.append(line)
    return tuple(fitted)


def render_frame(
    engine: TerminalEngine, viewport: Viewport, name: str, host: str
) -> RenderedFrame:
    """Build a frame from whatever the engine currently shows.

    The engine is the only source of cell contents; this just fits its
    lines to the panel.
    """
    return RenderedFrame(
        header=header_for(name, host),
        lines=fit_lines(engine.render_lines(), viewport),
        viewport=viewport,
    )


def connecting_frame(viewport: Viewport, name: str, host: str) -> RenderedFrame:
    """Placeholder shown until the remote side has produced output."""
    return RenderedFrame(
        header=header_for(name, host),
        lines=fit_lines([Text(f"Connecting to {name} ({host})...")], viewport),
        viewport=viewport,
    )
