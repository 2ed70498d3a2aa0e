"""Viewport geometry and its propagation to the PTY and the engine."""

from __future__ import annotations

import fcntl
import logging
import struct
import termios
from dataclasses import dataclass
from typing import TYPE_CHECKING

from termbridge.errors import ResizeFailure

if TYPE_CHECKING:
    from termbridge.pty.session import TerminalSession

logger = logging.getLogger(__name__)

# Used when the host reports a non-positive window size
FALLBACK_WIDTH = 120
FALLBACK_HEIGHT = 40


@dataclass(frozen=True)
class Viewport:
    """Character-cell rectangle available to the session."""

    rows: int
    cols: int


@dataclass(frozen=True)
class Chrome:
    """Space the host UI keeps for itself around the terminal panel.

    ``reserved_rows`` covers the header, help line and panel borders;
    ``reserved_cols`` covers the left and right border plus padding.
    """

    reserved_rows: int = 6
    reserved_cols: int = 4
    top_padding: int = 1
    min_rows: int = 5
    min_cols: int = 40


def compute_viewport(width: int, height: int, chrome: Chrome | None = None) -> Viewport:
    """Derive the session viewport from the host window size."""
    chrome = chrome or Chrome()
    if width <= 0:
        width = FALLBACK_WIDTH
    if height <= 0:
        height = FALLBACK_HEIGHT
    rows = max(height - chrome.top_padding - chrome.reserved_rows, chrome.min_rows)
    cols = max(width - chrome.reserved_cols, chrome.min_cols)
    return Viewport(rows=rows, cols=cols)


def set_pty_size(fd: int, viewport: Viewport) -> None:
    """Send TIOCSWINSZ to the PTY so the child gets SIGWINCH."""
    winsize = struct.pack("HHHH", viewport.rows, viewport.cols, 0, 0)
    try:
        fcntl.ioctl(fd, termios.TIOCSWINSZ, winsize)
    except OSError as e:
        raise ResizeFailure(
            f"cannot resize fd {fd} to {viewport.cols}x{viewport.rows}: {e}"
        ) from e


def get_pty_size(fd: int) -> Viewport:
    """Read the window size currently set on a PTY."""
    packed = fcntl.ioctl(fd, termios.TIOCGWINSZ, struct.pack("HHHH", 0, 0, 0, 0))
    rows, cols, _, _ = struct.unpack("HHHH", packed)
    return Viewport(rows=rows, cols=cols)


def apply_viewport(session: TerminalSession, viewport: Viewport) -> bool:
    """Propagate ``viewport`` to the OS PTY and the engine as one step.

    Runs under the session lock, which the renderer also takes, so a frame
    never sees the PTY and the engine at different sizes. If the OS refuses
    the change, the engine is left alone and the session keeps its last-good
    geometry.

    Returns True if the new viewport is now in effect.
    """
    with session.lock:
        if session.master_fd < 0 or session.engine is None:
            return False
        if viewport == session.viewport:
            return True
        try:
            set_pty_size(session.master_fd, viewport)
        except ResizeFailure as e:
            logger.warning("Resize ignored for %s: %s", session.target.name, e)
            return False
        session.engine.resize(viewport.cols, viewport.rows)
        session.viewport = viewport
    logger.debug(
        "Session %s resized to %dx%d", session.id, viewport.cols, viewport.rows
    )
    return True
