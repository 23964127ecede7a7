"""
Shared pytest fixtures for pi_term tests.
"""

from __future__ import annotations

import re
from typing import Generator
from unittest.mock import MagicMock

import pytest

from pi_term import guard as guard_module

_PRIVATE_MODE = re.compile(r"\x1b\[\?(\d+)([hl])")
_KEYBOARD_PUSH = re.compile(r"\x1b\[>(\d+)u")
_KEYBOARD_POP = re.compile(r"\x1b\[<(\d+)u")


# =============================================================================
# Terminal Device Fixtures
# =============================================================================


class FakeDevice:
    """
    In-memory terminal device.

    Tracks the mode state a real terminal would hold (raw mode, DEC private
    modes, the Kitty keyboard flag stack) by interpreting what is written,
    and lets tests queue input, resize, and inject failures.
    """

    def __init__(self, width: int = 80, height: int = 24, tty: bool = True) -> None:
        self.width = width
        self.height = height
        self.tty = tty
        self.raw = False
        # The cursor starts out visible
        self.private_modes: dict[int, bool] = {25: True}
        self.keyboard_stack: list[int] = []
        self.writes: list[str] = []
        self.flushes = 0
        self.watching = False
        self.resize_pending = False
        self._input = bytearray()

        # Failure injection
        self.fail_raw = False
        self.fail_size = False
        self.fail_read = False
        self.fail_on_write: str | None = None

    # -- TerminalDevice ---------------------------------------------------------

    def is_terminal(self) -> bool:
        return self.tty

    def enable_raw_mode(self) -> None:
        if self.fail_raw:
            raise OSError("tcsetattr failed")
        self.raw = True

    def disable_raw_mode(self) -> None:
        self.raw = False

    def write(self, data: str) -> None:
        if self.fail_on_write is not None and self.fail_on_write in data:
            raise OSError(f"write failed for {self.fail_on_write!r}")
        self.writes.append(data)
        for mode, state in _PRIVATE_MODE.findall(data):
            self.private_modes[int(mode)] = state == "h"
        for flags in _KEYBOARD_PUSH.findall(data):
            self.keyboard_stack.append(int(flags))
        for count in _KEYBOARD_POP.findall(data):
            del self.keyboard_stack[len(self.keyboard_stack) - int(count):]

    def flush(self) -> None:
        self.flushes += 1

    def read_available(self) -> bytes:
        if self.fail_read:
            raise OSError("read failed")
        data = bytes(self._input)
        self._input.clear()
        return data

    def size(self) -> tuple[int, int]:
        if self.fail_size or not self.tty:
            raise OSError("not a terminal")
        return self.width, self.height

    def watch_resize(self) -> None:
        self.watching = True

    def unwatch_resize(self) -> None:
        self.watching = False

    def take_resize(self) -> bool:
        pending = self.watching and self.resize_pending
        self.resize_pending = False
        return pending

    # -- Test helpers -----------------------------------------------------------

    def feed(self, data: str | bytes) -> None:
        """Queue input as if typed into the terminal."""
        self._input.extend(data.encode("utf-8") if isinstance(data, str) else data)

    def resize(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self.resize_pending = True

    def mode_flags(self) -> tuple:
        """Snapshot of every piece of mode state the device holds."""
        enabled = frozenset(mode for mode, on in self.private_modes.items() if on)
        return (self.raw, enabled, tuple(self.keyboard_stack), self.watching)

    @property
    def output(self) -> str:
        return "".join(self.writes)

    def clear_writes(self) -> None:
        self.writes.clear()


@pytest.fixture
def device() -> FakeDevice:
    """Provide an 80x24 fake terminal device."""
    return FakeDevice()


@pytest.fixture
def small_device() -> FakeDevice:
    """Provide a small (20x5) fake terminal device."""
    return FakeDevice(width=20, height=5)


@pytest.fixture
def device_factory():
    """Provide a factory for creating fake devices."""
    def create(width: int = 80, height: int = 24, tty: bool = True) -> FakeDevice:
        return FakeDevice(width=width, height=height, tty=tty)
    return create


# =============================================================================
# Process-wide State
# =============================================================================


@pytest.fixture(autouse=True)
def free_teardown_slot() -> Generator[None, None, None]:
    """Make sure no guard is left installed between tests."""
    yield
    leftover = guard_module.installed_guard()
    if leftover is not None:
        leftover.uninstall()


# =============================================================================
# Callback Mock Fixtures
# =============================================================================


@pytest.fixture
def publish() -> MagicMock:
    """Provide a mock publish callback for translated events."""
    return MagicMock()


@pytest.fixture
def draw() -> MagicMock:
    """Provide a mock draw callback."""
    return MagicMock()


@pytest.fixture
def request_exit() -> MagicMock:
    """Provide a mock exit request callback."""
    return MagicMock()
