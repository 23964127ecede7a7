"""Exception types raised by pi-term."""

from __future__ import annotations


class TerminalError(Exception):
    """Base class for every error raised by pi-term."""
    pass


class TerminalIOError(TerminalError):
    """Raised when the terminal device is unavailable or a mode/size/poll call fails."""
    def __init__(self, operation: str, cause: BaseException | None = None):
        self.operation = operation
        self.cause = cause
        message = f"Terminal {operation} failed"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class AlreadyInstalledError(TerminalError):
    """Raised when a second mode guard or terminal session is installed."""
    def __init__(self, what: str = "mode guard"):
        self.what = what
        super().__init__(f"A {what} is already installed in this process")


class DrawError(TerminalError):
    """Raised by a draw callback that could not produce its frame."""
    pass
