"""
Raw terminal handle for pi-term.

RawTerminal owns the terminal device for the lifetime of a session. Entering
applies the configured modes in a fixed order; exiting undoes exactly the
modes that were applied, in reverse. Input is collected by polling: each
poll drains whatever bytes are available without blocking and decodes them
into raw events in arrival order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from pi_term.config import ModeConfiguration
from pi_term.device import PosixTerminalDevice, TerminalDevice
from pi_term.errors import TerminalIOError
from pi_term.events import RawInputEvent, RawResizeEvent
from pi_term.input_buffer import InputBuffer
from pi_term.keys import (
    decode_paste,
    decode_sequence,
    is_device_attributes_reply,
    parse_keyboard_flags_reply,
)
from pi_term.viewport import ViewportSize

# Mode escape sequences
ALT_SCREEN_ENTER = "\x1b[?1049h"
ALT_SCREEN_EXIT = "\x1b[?1049l"
CURSOR_HIDE = "\x1b[?25l"
CURSOR_SHOW = "\x1b[?25h"
# Normal tracking, button-event tracking, any-event tracking, RXVT, SGR
MOUSE_MODES = ("1000", "1002", "1003", "1015", "1006")
MOUSE_ENTER = "".join(f"\x1b[?{mode}h" for mode in MOUSE_MODES)
MOUSE_EXIT = "".join(f"\x1b[?{mode}l" for mode in reversed(MOUSE_MODES))
FOCUS_ENTER = "\x1b[?1004h"
FOCUS_EXIT = "\x1b[?1004l"
PASTE_ENTER = "\x1b[?2004h"
PASTE_EXIT = "\x1b[?2004l"
# Query current flags, then primary device attributes as a sentinel: a
# terminal without the Kitty protocol only answers the second.
KEYBOARD_QUERY = "\x1b[?u\x1b[c"
KEYBOARD_POP = "\x1b[<1u"


def keyboard_push(flags: int) -> str:
    return f"\x1b[>{flags}u"


@dataclass(frozen=True)
class ModeStep:
    """One capability change with its mirrored undo."""
    name: str
    apply: Callable[[], None]
    undo: Callable[[], None]


class RawTerminal:
    """
    Raw terminal handle: mode entry/exit, size queries and input polling.

    Usage:
        terminal = RawTerminal()
        terminal.enter(ModeConfiguration())
        try:
            events = terminal.poll()
        finally:
            terminal.exit()
    """

    def __init__(self, device: TerminalDevice | None = None) -> None:
        self._logger = logging.getLogger("RawTerminal")
        self.device: TerminalDevice = device if device is not None else PosixTerminalDevice()
        self._config: ModeConfiguration | None = None
        self._applied: list[ModeStep] = []
        self._entered = False
        self._buffer: InputBuffer | None = None
        self._keyboard_enhancement_active: bool | None = None
        self._last_size: ViewportSize | None = None

    @property
    def is_entered(self) -> bool:
        return self._entered

    @property
    def config(self) -> ModeConfiguration | None:
        return self._config

    @property
    def applied_modes(self) -> list[str]:
        """Names of the modes currently applied, in entry order."""
        return [step.name for step in self._applied]

    @property
    def keyboard_enhancement_active(self) -> bool | None:
        """
        Result of the Kitty keyboard capability query.

        True once the terminal reported its flags, False once it answered
        only the device attributes sentinel, None while unknown or when
        keyboard enhancement was not requested.
        """
        return self._keyboard_enhancement_active

    # -------------------------------------------------------------------------
    # Mode entry and exit
    # -------------------------------------------------------------------------

    def _send(self, data: str) -> None:
        self.device.write(data)
        self.device.flush()

    def _plan(self, config: ModeConfiguration) -> list[ModeStep]:
        steps: list[ModeStep] = []
        if config.raw_mode:
            steps.append(ModeStep("raw_mode", self.device.enable_raw_mode, self.device.disable_raw_mode))
        if config.alternate_screen:
            steps.append(ModeStep(
                "alternate_screen",
                lambda: self._send(ALT_SCREEN_ENTER),
                lambda: self._send(ALT_SCREEN_EXIT),
            ))
        steps.append(ModeStep("hide_cursor", lambda: self._send(CURSOR_HIDE), lambda: self._send(CURSOR_SHOW)))
        if config.mouse_capture:
            steps.append(ModeStep("mouse_capture", lambda: self._send(MOUSE_ENTER), lambda: self._send(MOUSE_EXIT)))
        if config.focus_reporting:
            steps.append(ModeStep("focus_reporting", lambda: self._send(FOCUS_ENTER), lambda: self._send(FOCUS_EXIT)))
        if config.bracketed_paste:
            steps.append(ModeStep("bracketed_paste", lambda: self._send(PASTE_ENTER), lambda: self._send(PASTE_EXIT)))
        if config.keyboard_enhancement:
            push = KEYBOARD_QUERY + keyboard_push(config.keyboard_flags)
            steps.append(ModeStep(
                "keyboard_enhancement",
                lambda: self._send(push),
                lambda: self._send(KEYBOARD_POP),
            ))
        steps.append(ModeStep("resize_watch", self.device.watch_resize, self.device.unwatch_resize))
        return steps

    def enter(self, config: ModeConfiguration | None = None) -> RawTerminal:
        """
        Apply the configured modes in order.

        If any step fails, the steps already applied are undone in reverse
        and TerminalIOError is raised; the terminal is left as it was found.

        Raises:
            RuntimeError: if the terminal is already entered
            TerminalIOError: if the device is not a terminal or a mode fails
        """
        if self._entered:
            raise RuntimeError("Terminal is already entered")

        config = config or ModeConfiguration()
        if not self.device.is_terminal():
            raise TerminalIOError("enter", OSError("standard input/output is not a terminal"))

        for step in self._plan(config):
            try:
                step.apply()
            except OSError as e:
                self._logger.error("Failed to apply terminal mode %s: %s", step.name, e)
                self._unwind()
                raise TerminalIOError(f"enter ({step.name})", e) from e
            except Exception:
                self._unwind()
                raise
            self._applied.append(step)

        try:
            self._last_size = self.query_size()
        except TerminalIOError:
            self._unwind()
            raise

        self._config = config
        self._entered = True
        self._buffer = InputBuffer(escape_timeout_ms=config.escape_timeout_ms)
        self._keyboard_enhancement_active = None
        self._logger.debug("Entered terminal modes: %s", ", ".join(self.applied_modes))
        return self

    def _unwind(self) -> None:
        while self._applied:
            step = self._applied.pop()
            try:
                step.undo()
            except Exception as e:  # pylint: disable=broad-exception-caught
                # Keep going so the remaining modes still get restored
                self._logger.warning("Failed to restore terminal mode %s: %s", step.name, e)

    def exit(self) -> None:
        """Undo every applied mode in reverse order. Safe to call repeatedly."""
        if not self._entered and not self._applied:
            return

        self._unwind()
        self._entered = False
        if self._buffer is not None:
            self._buffer.clear()
        self._logger.debug("Exited terminal modes")

    # -------------------------------------------------------------------------
    # Size and output
    # -------------------------------------------------------------------------

    def query_size(self) -> ViewportSize:
        """Current terminal size in columns and rows."""
        try:
            width, height = self.device.size()
        except OSError as e:
            raise TerminalIOError("size query", e) from e
        return ViewportSize(width=width, height=height)

    def write(self, data: str) -> None:
        try:
            self.device.write(data)
        except OSError as e:
            raise TerminalIOError("write", e) from e

    def flush(self) -> None:
        try:
            self.device.flush()
        except OSError as e:
            raise TerminalIOError("flush", e) from e

    # -------------------------------------------------------------------------
    # Input
    # -------------------------------------------------------------------------

    def poll(self) -> list[RawInputEvent]:
        """
        Drain pending input without blocking and decode it into raw events.

        A resize observed since the last poll is reported first, followed by
        input events in the order their bytes arrived. Returns an empty list
        when nothing is pending.

        Raises:
            RuntimeError: if the terminal is not entered
            TerminalIOError: if reading input or the size fails
        """
        if not self._entered or self._buffer is None:
            raise RuntimeError("Terminal is not entered")

        events: list[RawInputEvent] = []

        if self.device.take_resize():
            size = self.query_size()
            if size != self._last_size:
                self._last_size = size
                events.append(RawResizeEvent(width=size.width, height=size.height))

        try:
            data = self.device.read_available()
        except OSError as e:
            raise TerminalIOError("poll", e) from e

        # A stale lone ESC goes out before new bytes can extend it
        chunks = self._buffer.flush_expired()
        if data:
            chunks.extend(self._buffer.feed(data))
        for chunk in chunks:
            if chunk.kind == "paste":
                events.append(decode_paste(chunk.data))
                continue

            if self._consume_reply(chunk.data):
                continue

            event = decode_sequence(chunk.data)
            if event is not None:
                events.append(event)

        return events

    def _consume_reply(self, data: str) -> bool:
        """Swallow capability query replies; return True if data was one."""
        flags = parse_keyboard_flags_reply(data)
        if flags is not None:
            self._keyboard_enhancement_active = True
            self._logger.debug("Terminal reported keyboard flags %d", flags)
            return True

        if is_device_attributes_reply(data):
            if self._keyboard_enhancement_active is None:
                self._keyboard_enhancement_active = False
                self._logger.debug("Terminal does not support keyboard enhancement")
            return True

        return False
