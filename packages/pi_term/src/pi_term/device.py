"""
Terminal device access for pi-term.

The device is the thin OS-facing half of the raw terminal handle: termios
raw mode, byte output, non-blocking input reads, size queries and resize
notification. Everything above it (mode ordering, input decoding) lives in
RawTerminal and works against the TerminalDevice protocol, so it can run
against a fake device in tests.

Device methods raise OSError on failure; RawTerminal converts those into
TerminalIOError.
"""

from __future__ import annotations

import logging
import os
import select
import signal
import sys
import threading
from typing import Any, Protocol, TextIO

if sys.platform != "win32":
    import termios
    import tty

# Upper bound for one non-blocking drain, so a flood of input cannot keep a
# single poll reading forever.
MAX_READ_PER_DRAIN = 64 * 1024


class TerminalDevice(Protocol):
    """
    Terminal device interface - protocol for device implementations.
    """

    def is_terminal(self) -> bool: ...

    def enable_raw_mode(self) -> None: ...

    def disable_raw_mode(self) -> None: ...

    def write(self, data: str) -> None: ...

    def flush(self) -> None: ...

    def read_available(self) -> bytes: ...

    def size(self) -> tuple[int, int]: ...

    def watch_resize(self) -> None: ...

    def unwatch_resize(self) -> None: ...

    def take_resize(self) -> bool: ...


class PosixTerminalDevice:
    """
    Terminal device backed by the process stdin/stdout on POSIX systems.
    """

    def __init__(
        self,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
    ) -> None:
        self._stdin = stdin or sys.stdin
        self._logger = logging.getLogger("PosixTerminalDevice")
        self._stdout = stdout or sys.stdout
        self._old_term_settings: Any = None
        self._old_sigwinch: Any = None
        self._handler_installed = False
        self._watching = False
        self._resize_pending = False

    @property
    def input_fd(self) -> int:
        return self._stdin.fileno()

    @property
    def output_fd(self) -> int:
        return self._stdout.fileno()

    def is_terminal(self) -> bool:
        try:
            return os.isatty(self.input_fd) and os.isatty(self.output_fd)
        except (OSError, ValueError):
            return False

    # -------------------------------------------------------------------------
    # Raw mode
    # -------------------------------------------------------------------------

    def enable_raw_mode(self) -> None:
        if sys.platform == "win32":
            raise OSError("raw mode is not supported on this platform")

        fd = self.input_fd
        try:
            settings = termios.tcgetattr(fd)
            tty.setraw(fd, termios.TCSANOW)
        except termios.error as e:
            raise OSError(*e.args) from e
        if self._old_term_settings is None:
            self._old_term_settings = settings

    def disable_raw_mode(self) -> None:
        if sys.platform == "win32" or self._old_term_settings is None:
            return

        try:
            termios.tcsetattr(self.input_fd, termios.TCSADRAIN, self._old_term_settings)
        except termios.error as e:
            raise OSError(*e.args) from e
        self._old_term_settings = None

    # -------------------------------------------------------------------------
    # I/O
    # -------------------------------------------------------------------------

    def write(self, data: str) -> None:
        self._stdout.write(data)

    def flush(self) -> None:
        self._stdout.flush()

    def read_available(self) -> bytes:
        """Read whatever input is ready right now, without waiting."""
        fd = self.input_fd
        chunks: list[bytes] = []
        total = 0
        while total < MAX_READ_PER_DRAIN:
            ready, _, _ = select.select([fd], [], [], 0)
            if not ready:
                break
            data = os.read(fd, 4096)
            if not data:
                break
            chunks.append(data)
            total += len(data)
        return b"".join(chunks)

    def size(self) -> tuple[int, int]:
        size = os.get_terminal_size(self.output_fd)
        return size.columns, size.lines

    # -------------------------------------------------------------------------
    # Resize notification
    # -------------------------------------------------------------------------

    def _on_sigwinch(self, _signum: int, _frame: object) -> None:
        self._resize_pending = True

    def watch_resize(self) -> None:
        """Install a SIGWINCH handler; without one, size is compared on each poll."""
        self._watching = True
        self._resize_pending = True
        if sys.platform == "win32" or threading.current_thread() is not threading.main_thread():
            return
        self._old_sigwinch = signal.getsignal(signal.SIGWINCH)
        signal.signal(signal.SIGWINCH, self._on_sigwinch)
        self._handler_installed = True

    def unwatch_resize(self) -> None:
        self._watching = False
        if not self._handler_installed:
            return
        previous = self._old_sigwinch if self._old_sigwinch is not None else signal.SIG_DFL
        try:
            signal.signal(signal.SIGWINCH, previous)
        except ValueError:
            # Not on the main thread any more; the handler only sets a flag
            self._logger.warning("Could not restore the SIGWINCH handler off the main thread")
        self._handler_installed = False
        self._old_sigwinch = None

    def take_resize(self) -> bool:
        """Return True (once) if the size may have changed since the last call."""
        if not self._watching:
            return False
        if not self._handler_installed:
            return True
        pending, self._resize_pending = self._resize_pending, False
        return pending
