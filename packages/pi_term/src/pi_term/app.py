"""
Host integration for pi-term.

A host is anything that runs systems in ordered stages once per tick and
carries an event queue. TerminalPlugin registers the terminal systems with a
host: the session opens at startup, input is polled before the update stage
and the frame is drawn after it, so a tick reads input, runs logic, then
draws.

App is a small reference host with a fixed-rate loop.
"""

from __future__ import annotations

import functools
import logging
import time
from typing import Any, Callable, Literal, Protocol, TypeVar

from pi_term.config import ModeConfiguration
from pi_term.device import TerminalDevice
from pi_term.driver import DrawCallback, FrameDriver
from pi_term.errors import TerminalError
from pi_term.screen import ScreenBuffer
from pi_term.session import TerminalSession
from pi_term.viewport import ViewportSize

Stage = Literal["startup", "pre_update", "update", "post_update"]
FRAME_STAGES: tuple[Stage, ...] = ("pre_update", "update", "post_update")

T = TypeVar("T")

_logger = logging.getLogger("pi_term.app")


class Host(Protocol):
    """What TerminalPlugin needs from a host scheduler."""

    def add_system(self, stage: Stage, system: Callable[[Any], None]) -> None: ...

    def add_teardown(self, callback: Callable[[], None]) -> None: ...

    def send_event(self, event: Any) -> None: ...

    def request_exit(self) -> None: ...


def exit_on_error(system: Callable[[Any], None]) -> Callable[[Any], None]:
    """
    Wrap a system so a TerminalError is logged and turned into an exit request.

    Other exceptions propagate unchanged.
    """

    @functools.wraps(system)
    def wrapper(host: Any) -> None:
        try:
            system(host)
        except TerminalError as e:
            _logger.error("Error: %s", e)
            host.request_exit()

    return wrapper


def _draw_nothing(buffer: ScreenBuffer, size: ViewportSize, resized: bool) -> None:
    pass


class TerminalPlugin:
    """
    Registers terminal session, input polling and drawing with a host.

    Args:
        config: Terminal modes for the session
        draw: Draw callback, called once per frame after the update stage
        device: Terminal device; the process terminal when omitted
        handle_signals: Whether the mode guard hooks SIGTERM/SIGHUP
    """

    def __init__(
        self,
        config: ModeConfiguration | None = None,
        draw: DrawCallback | None = None,
        device: TerminalDevice | None = None,
        handle_signals: bool = True,
    ) -> None:
        self.config = config or ModeConfiguration()
        self._draw = draw or _draw_nothing
        self._device = device
        self._handle_signals = handle_signals
        self.session: TerminalSession | None = None
        self.driver: FrameDriver | None = None

    def build(self, host: Host) -> None:
        host.add_system("startup", exit_on_error(self._open))
        host.add_system("pre_update", exit_on_error(self._poll))
        host.add_system("post_update", exit_on_error(self._draw_frame))
        host.add_teardown(self.close)

    def _open(self, host: Host) -> None:
        self.session = TerminalSession.open(
            self.config,
            device=self._device,
            handle_signals=self._handle_signals,
        )
        self.driver = FrameDriver(
            self.session,
            draw=self._draw,
            publish=host.send_event,
            request_exit=host.request_exit,
        )

    def _poll(self, host: Host) -> None:
        if self.driver is not None:
            self.driver.poll_input()

    def _draw_frame(self, host: Host) -> None:
        if self.driver is not None:
            self.driver.draw_frame()

    def close(self) -> None:
        if self.session is not None:
            self.session.close()
        self.session = None
        self.driver = None


class App:
    """
    Reference host: ordered stages, a per-tick event queue and a fixed-rate loop.

    Events sent during a tick are readable until the end of that tick, so
    terminal events published in pre_update are visible to update and
    post_update systems.

    Example:
        app = App()
        app.add_plugin(TerminalPlugin(draw=draw))
        app.add_system("update", handle_keys)
        app.run(frame_rate=30)
    """

    def __init__(self) -> None:
        self._logger = logging.getLogger("App")
        self._systems: dict[Stage, list[Callable[[App], None]]] = {
            "startup": [],
            "pre_update": [],
            "update": [],
            "post_update": [],
        }
        self._teardown: list[Callable[[], None]] = []
        self._events: list[Any] = []
        self._exit_requested = False
        self._ticks = 0

    @property
    def exit_requested(self) -> bool:
        return self._exit_requested

    @property
    def ticks(self) -> int:
        return self._ticks

    def add_system(self, stage: Stage, system: Callable[[Any], None]) -> None:
        self._systems[stage].append(system)

    def add_teardown(self, callback: Callable[[], None]) -> None:
        self._teardown.append(callback)

    def add_plugin(self, plugin: Any) -> App:
        plugin.build(self)
        return self

    def send_event(self, event: Any) -> None:
        self._events.append(event)

    def read_events(self, event_type: type[T] | None = None) -> list[T]:
        """Events sent this tick, optionally only those of one type, in order."""
        if event_type is None:
            return list(self._events)
        return [event for event in self._events if isinstance(event, event_type)]

    def request_exit(self) -> None:
        self._exit_requested = True

    def startup(self) -> None:
        for system in self._systems["startup"]:
            system(self)

    def update(self) -> None:
        """Run one tick: every frame stage in order, then drop the tick's events."""
        for stage in FRAME_STAGES:
            for system in self._systems[stage]:
                system(self)
        self._events.clear()
        self._ticks += 1

    def teardown(self) -> None:
        while self._teardown:
            callback = self._teardown.pop()
            callback()

    def run(self, frame_rate: float = 60.0, max_ticks: int | None = None) -> None:
        """
        Run startup once, then tick at frame_rate until exit is requested.

        Teardown callbacks run on the way out, whether the loop ended
        normally or with an exception.
        """
        interval = 1.0 / frame_rate if frame_rate > 0 else 0.0
        try:
            self.startup()
            while not self._exit_requested:
                if max_ticks is not None and self._ticks >= max_ticks:
                    break
                started = time.monotonic()
                self.update()
                remaining = interval - (time.monotonic() - started)
                if remaining > 0 and not self._exit_requested:
                    time.sleep(remaining)
        finally:
            self.teardown()
        self._logger.debug("App stopped after %d ticks", self._ticks)
