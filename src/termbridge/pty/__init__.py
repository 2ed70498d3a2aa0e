"""PTY bridge: the embedded terminal session and everything around it.

A session runs an SSH client on its own pseudo-terminal. A reader thread
moves raw output onto a queue, the host's UI loop pumps that queue into
the emulation engine, and key presses are encoded and written back.
"""

from termbridge.pty.events import OutputEvent, OutputKind, OutputQueue
from termbridge.pty.geometry import Chrome, Viewport, apply_viewport, compute_viewport
from termbridge.pty.keys import KeyEvent, encode_key
from termbridge.pty.reader import PTYReader
from termbridge.pty.session import SessionState, TerminalSession, launch_session

__all__ = [
    "Chrome",
    "KeyEvent",
    "OutputEvent",
    "OutputKind",
    "OutputQueue",
    "PTYReader",
    "SessionState",
    "TerminalSession",
    "Viewport",
    "apply_viewport",
    "compute_viewport",
    "encode_key",
    "launch_session",
]
