"""Error taxonomy for terminal sessions."""

from __future__ import annotations

import enum


class BridgeError(Exception):
    """Base class for every error raised by termbridge."""


class StartFailure(BridgeError):
    """The PTY or the client process could not be created."""


class WriteFailure(BridgeError):
    """Input could not be delivered to the PTY."""


class ResizeFailure(BridgeError):
    """The OS refused a window-size change."""


class SessionBusy(BridgeError):
    """A session is already live for this host UI."""


class CloseReason(enum.Enum):
    """Why a session ended. The value is the user-visible message prefix."""

    USER = "Connection closed by user"
    STREAM_CLOSED = "Connection closed"
    STREAM_ERROR = "Connection error"
    WRITE_FAILURE = "Failed to write to PTY"
    START_FAILURE = "Failed to start SSH"
    SHUTDOWN = "Session terminated on exit"

    def describe(self, cause: str | None = None) -> str:
        """Human-readable one-liner, optionally with the underlying cause."""
        if cause:
            return f"{self.value}: {cause}"
        return self.value
