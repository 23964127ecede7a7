"""
Terminal session for pi-term.

A session bundles everything that lives for as long as the terminal is in
its special mode: the raw terminal handle, the mode guard protecting it, the
viewport tracker and the screen buffer. Opening a session enters the modes;
closing it restores the terminal. Only one session can be open per process
because the guard occupies the process-wide teardown slot.
"""

from __future__ import annotations

import logging
from types import TracebackType

from pi_term.config import ModeConfiguration
from pi_term.device import TerminalDevice
from pi_term.guard import ModeGuard
from pi_term.screen import ScreenBuffer
from pi_term.terminal import RawTerminal
from pi_term.viewport import ViewportTracker


class TerminalSession:
    """
    An open terminal session.

    Usage:
        with TerminalSession.open(ModeConfiguration(mouse_capture=True)) as session:
            events = session.terminal.poll()
    """

    def __init__(
        self,
        config: ModeConfiguration,
        terminal: RawTerminal,
        guard: ModeGuard,
        viewport: ViewportTracker,
        screen: ScreenBuffer,
    ) -> None:
        self._logger = logging.getLogger("TerminalSession")
        self.config = config
        self.terminal = terminal
        self.guard = guard
        self.viewport = viewport
        self.screen = screen
        self._closed = False

    @classmethod
    def open(
        cls,
        config: ModeConfiguration | None = None,
        device: TerminalDevice | None = None,
        handle_signals: bool = True,
    ) -> TerminalSession:
        """
        Enter the configured terminal modes behind an installed mode guard.

        Raises:
            AlreadyInstalledError: if another session or guard is active
            TerminalIOError: if the terminal cannot be entered
        """
        config = config or ModeConfiguration()
        terminal = RawTerminal(device)
        guard = ModeGuard(terminal, handle_signals=handle_signals).install()
        try:
            terminal.enter(config)
            size = terminal.query_size()
        except BaseException:
            guard.uninstall()
            raise

        session = cls(
            config=config,
            terminal=terminal,
            guard=guard,
            viewport=ViewportTracker(size),
            screen=ScreenBuffer(size),
        )
        session._logger.info("Terminal session opened at %dx%d", size.width, size.height)
        return session

    @property
    def is_open(self) -> bool:
        return not self._closed

    @property
    def keyboard_enhancement_active(self) -> bool | None:
        return self.terminal.keyboard_enhancement_active

    def close(self) -> None:
        """Restore the terminal and free the teardown slot. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        self.guard.uninstall()
        self._logger.info("Terminal session closed")

    def __enter__(self) -> TerminalSession:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()
