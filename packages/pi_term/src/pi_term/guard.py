"""
Mode guard for pi-term.

A ModeGuard makes sure the terminal gets restored on every way out of the
process: normal teardown, an uncaught exception (in any thread), a
termination signal and interpreter exit. Only one guard may be installed per process; it occupies
the module-level teardown slot until uninstalled.

Restoration runs the terminal's exit exactly once. Hooks that fire after a
restore (atexit after an excepthook, say) find nothing left to do.
"""

from __future__ import annotations

import atexit
import logging
import os
import signal
import sys
import threading
from types import TracebackType
from typing import Any, Callable, Protocol

from pi_term.errors import AlreadyInstalledError

_TERMINATION_SIGNALS = tuple(
    getattr(signal, name) for name in ("SIGTERM", "SIGHUP") if hasattr(signal, name)
)

# The process-wide teardown slot
_installed: ModeGuard | None = None
_slot_lock = threading.Lock()


class Restorable(Protocol):
    def exit(self) -> None: ...


def installed_guard() -> ModeGuard | None:
    """Return the guard currently occupying the teardown slot, if any."""
    return _installed


class ModeGuard:
    """
    Restores a terminal on normal or abnormal process exit.

    Usage:
        with ModeGuard(terminal):
            run_app()

    or, when install and teardown happen in different places:
        guard = ModeGuard(terminal).install()
        ...
        guard.uninstall()   # restores, then removes the hooks
    """

    def __init__(self, terminal: Restorable, handle_signals: bool = True) -> None:
        self._logger = logging.getLogger("ModeGuard")
        self._terminal = terminal
        self._handle_signals = handle_signals
        self._installed = False
        self._restored = False
        self._restoring = False
        self._previous_excepthook: Callable[..., Any] | None = None
        self._previous_thread_excepthook: Callable[..., Any] | None = None
        self._previous_signal_handlers: dict[int, Any] = {}

    @property
    def is_installed(self) -> bool:
        return self._installed

    @property
    def restored(self) -> bool:
        return self._restored

    def install(self) -> ModeGuard:
        """
        Claim the teardown slot and hook the process exit paths.

        Raises:
            AlreadyInstalledError: if any guard is already installed
        """
        global _installed
        with _slot_lock:
            if _installed is not None:
                raise AlreadyInstalledError("mode guard")
            _installed = self

        self._installed = True
        self._restored = False

        self._previous_excepthook = sys.excepthook
        sys.excepthook = self._excepthook
        self._previous_thread_excepthook = threading.excepthook
        threading.excepthook = self._thread_excepthook

        if self._handle_signals and threading.current_thread() is threading.main_thread():
            for signum in _TERMINATION_SIGNALS:
                self._previous_signal_handlers[signum] = signal.getsignal(signum)
                signal.signal(signum, self._signal_handler)

        atexit.register(self.restore)
        self._logger.debug("Mode guard installed")
        return self

    def uninstall(self) -> None:
        """Restore the terminal, put back the previous hooks and free the slot."""
        global _installed
        if not self._installed:
            return

        self.restore()

        if sys.excepthook == self._excepthook:
            sys.excepthook = self._previous_excepthook or sys.__excepthook__
        self._previous_excepthook = None
        if threading.excepthook == self._thread_excepthook:
            threading.excepthook = self._previous_thread_excepthook or threading.__excepthook__
        self._previous_thread_excepthook = None

        for signum, handler in self._previous_signal_handlers.items():
            try:
                signal.signal(signum, handler if handler is not None else signal.SIG_DFL)
            except ValueError:
                self._logger.warning("Could not restore handler for signal %d off the main thread", signum)
        self._previous_signal_handlers.clear()

        atexit.unregister(self.restore)

        with _slot_lock:
            if _installed is self:
                _installed = None
        self._installed = False
        self._logger.debug("Mode guard uninstalled")

    def restore(self) -> bool:
        """
        Restore the terminal if that has not happened yet.

        Returns True if this call performed the restore. A restore that is
        already running (a signal arriving mid-restore) is not re-entered.
        If the terminal's exit raises, the guard stays unrestored so a later
        hook (atexit, at the latest) tries again.
        """
        if self._restored or self._restoring:
            return False

        self._restoring = True
        try:
            self._terminal.exit()
        finally:
            self._restoring = False
        self._restored = True
        return True

    # -------------------------------------------------------------------------
    # Hooks
    # -------------------------------------------------------------------------

    def _excepthook(
        self,
        exc_type: type[BaseException],
        exc_value: BaseException,
        traceback: TracebackType | None,
    ) -> None:
        try:
            self.restore()
        except Exception as e:  # pylint: disable=broad-exception-caught
            # Still hand the uncaught exception to the previous hook
            self._logger.error("Failed to restore terminal after uncaught exception: %s", e)

        previous = self._previous_excepthook or sys.__excepthook__
        previous(exc_type, exc_value, traceback)

    def _thread_excepthook(self, args: threading.ExceptHookArgs) -> None:
        try:
            self.restore()
        except Exception as e:  # pylint: disable=broad-exception-caught
            self._logger.error("Failed to restore terminal after uncaught thread exception: %s", e)

        previous = self._previous_thread_excepthook or threading.__excepthook__
        previous(args)

    def _signal_handler(self, signum: int, frame: Any) -> None:
        self.restore()

        previous = self._previous_signal_handlers.get(signum)
        if callable(previous):
            previous(signum, frame)
            return

        if previous == signal.SIG_IGN:
            return

        # Default disposition: die by the same signal
        signal.signal(signum, signal.SIG_DFL)
        os.kill(os.getpid(), signum)

    # -------------------------------------------------------------------------
    # Context manager
    # -------------------------------------------------------------------------

    def __enter__(self) -> ModeGuard:
        if not self._installed:
            self.install()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.uninstall()
