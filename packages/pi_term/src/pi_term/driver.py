"""
Frame driver for pi-term.

The driver is what the host scheduler calls once per tick. A tick first
drains pending terminal input (polling), turns each raw event into a host
event in arrival order (translating, then key emulation when configured),
then lets the host draw into the screen buffer and flushes the result
(drawing). Between ticks the driver is idle. Apart from the key emulator's
held keys it carries no state of its own; the viewport size and the screen
contents live in the session.
"""

from __future__ import annotations

import logging
from typing import Callable, Literal

from pi_term.emulation import KeyEmulator
from pi_term.events import KeyEvent, RawResizeEvent, TranslatedEvent
from pi_term.screen import ScreenBuffer
from pi_term.session import TerminalSession
from pi_term.translate import translate
from pi_term.viewport import ViewportSize

FramePhase = Literal["idle", "polling", "translating", "drawing"]

DrawCallback = Callable[[ScreenBuffer, ViewportSize, bool], None]
PublishCallback = Callable[[TranslatedEvent], None]


class FrameDriver:
    """
    Per-tick bridge between a terminal session and the host.

    Args:
        session: The open terminal session
        draw: Called as draw(buffer, size, resized) once per frame; may
            raise DrawError, which propagates to the caller
        publish: Receives every translated event, in arrival order
        request_exit: Called when Ctrl+C is pressed and the session's
            configuration has exit_on_ctrl_c set
    """

    def __init__(
        self,
        session: TerminalSession,
        draw: DrawCallback,
        publish: PublishCallback,
        request_exit: Callable[[], None] | None = None,
    ) -> None:
        self._logger = logging.getLogger("FrameDriver")
        self.session = session
        self._draw = draw
        self._publish = publish
        self._request_exit = request_exit
        self._emulator = KeyEmulator(session.config)
        self._phase: FramePhase = "idle"
        self._frames = 0

    @property
    def phase(self) -> FramePhase:
        return self._phase

    @property
    def frames(self) -> int:
        """Number of frames drawn so far."""
        return self._frames

    @property
    def emulator(self) -> KeyEmulator:
        return self._emulator

    def tick(self) -> None:
        """Run one full tick: poll input, then draw a frame."""
        self.poll_input()
        self.draw_frame()

    def poll_input(self) -> list[TranslatedEvent]:
        """
        Drain pending input once and publish the translated events.

        Resize events update the viewport before they are published, so a
        consumer reacting to the resize sees the new size. Raises
        TerminalIOError if the terminal cannot be read; events from a
        failed poll are lost, not retried.

        Returns:
            The events that were published, in order
        """
        config = self.session.config
        viewport = self.session.viewport
        published: list[TranslatedEvent] = []

        self._phase = "polling"
        try:
            raw_events = self.session.terminal.poll()

            self._phase = "translating"
            enhancement_active = self.session.keyboard_enhancement_active
            translated: list[TranslatedEvent] = []
            for raw in raw_events:
                if isinstance(raw, RawResizeEvent):
                    viewport.observe_resize(raw.width, raw.height)

                event = translate(raw, config, enhancement_active=enhancement_active)
                if event is not None:
                    translated.append(event)

            for event in self._emulator.process(translated):
                self._publish(event)
                published.append(event)

                if self._is_exit_key(event):
                    self._logger.info("Ctrl+C pressed, requesting exit")
                    if self._request_exit is not None:
                        self._request_exit()
        finally:
            self._phase = "idle"

        return published

    def _is_exit_key(self, event: TranslatedEvent) -> bool:
        return (
            self.session.config.exit_on_ctrl_c
            and isinstance(event, KeyEvent)
            and event.kind == "press"
            and event.matches("ctrl+c")
        )

    def draw_frame(self) -> None:
        """
        Draw one frame at the current viewport size and flush it.

        The whole screen is redrawn on the first frame and after a resize;
        otherwise only changed rows are written. The frame counts as
        rendered only once it has been flushed.
        """
        viewport = self.session.viewport
        screen = self.session.screen
        terminal = self.session.terminal

        self._phase = "drawing"
        try:
            size = viewport.current
            resized = viewport.resized_since_render()
            screen.resize(size)

            self._draw(screen, size, resized)

            output = screen.render(full=resized)
            if output:
                try:
                    terminal.write(output)
                    terminal.flush()
                except Exception:
                    # Rows that never reached the screen must not be diffed against
                    screen.invalidate()
                    raise

            viewport.mark_rendered()
            self._frames += 1
        finally:
            self._phase = "idle"
