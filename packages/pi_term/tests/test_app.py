"""
Tests for pi_term/app.py - host integration and reference app.
"""

import logging

import pytest

from pi_term.app import App, TerminalPlugin, exit_on_error
from pi_term.config import ModeConfiguration
from pi_term.errors import DrawError, TerminalIOError
from pi_term.events import KeyEvent, ResizeEvent
from pi_term.guard import installed_guard


def make_plugin(device, draw=None, **config) -> TerminalPlugin:
    return TerminalPlugin(ModeConfiguration(**config), draw=draw, device=device, handle_signals=False)


class TestExitOnError:
    """Tests for the exit_on_error wrapper."""

    def test_terminal_error_requests_exit(self, caplog):
        app = App()

        @exit_on_error
        def failing(host):
            raise TerminalIOError("poll", OSError("gone"))

        with caplog.at_level(logging.ERROR):
            failing(app)
        assert app.exit_requested
        assert "Terminal poll failed" in caplog.text

    def test_success_leaves_app_running(self):
        app = App()
        exit_on_error(lambda host: None)(app)
        assert not app.exit_requested

    def test_other_errors_propagate(self):
        app = App()
        with pytest.raises(KeyError):
            exit_on_error(lambda host: {}["missing"])(app)


class TestAppLoop:
    """Tests for the reference App."""

    def test_stage_order(self):
        app = App()
        log: list[str] = []
        app.add_system("post_update", lambda host: log.append("post_update"))
        app.add_system("update", lambda host: log.append("update"))
        app.add_system("pre_update", lambda host: log.append("pre_update"))
        app.add_system("startup", lambda host: log.append("startup"))
        app.run(frame_rate=0, max_ticks=2)
        assert log == [
            "startup",
            "pre_update", "update", "post_update",
            "pre_update", "update", "post_update",
        ]

    def test_events_visible_for_one_tick(self):
        app = App()
        seen: list[list] = []
        app.add_system("pre_update", lambda host: host.send_event("ping") if host.ticks == 0 else None)
        app.add_system("update", lambda host: seen.append(host.read_events()))
        app.run(frame_rate=0, max_ticks=2)
        assert seen == [["ping"], []]

    def test_read_events_by_type(self):
        app = App()
        app.send_event(KeyEvent(code="a"))
        app.send_event(ResizeEvent(width=1, height=1))
        assert app.read_events(KeyEvent) == [KeyEvent(code="a")]

    def test_exit_request_stops_loop(self):
        app = App()
        app.add_system("update", lambda host: host.request_exit() if host.ticks == 2 else None)
        app.run(frame_rate=0, max_ticks=100)
        assert app.ticks == 3

    def test_teardown_runs_on_exception(self):
        app = App()
        torn_down: list[bool] = []
        app.add_teardown(lambda: torn_down.append(True))

        def broken(host):
            raise RuntimeError("logic bug")

        app.add_system("update", broken)
        with pytest.raises(RuntimeError):
            app.run(frame_rate=0, max_ticks=1)
        assert torn_down == [True]


class TestTerminalPlugin:
    """Tests for TerminalPlugin wired into the reference App."""

    def test_session_lifecycle(self, device):
        before = device.mode_flags()
        plugin = make_plugin(device)
        app = App().add_plugin(plugin)

        opened: list[bool] = []
        app.add_system("update", lambda host: opened.append(plugin.session.is_open))
        app.run(frame_rate=0, max_ticks=1)

        assert opened == [True]
        assert plugin.session is None
        assert installed_guard() is None
        assert device.mode_flags() == before

    def test_input_reaches_update_stage(self, device):
        app = App().add_plugin(make_plugin(device))
        keys: list[str] = []
        app.add_system("update", lambda host: keys.extend(e.key_id for e in host.read_events(KeyEvent)))

        device.feed("hi")
        app.run(frame_rate=0, max_ticks=1)
        assert keys == ["h", "i"]

    def test_draw_after_update(self, device):
        log: list[str] = []

        def draw(buffer, size, resized):
            log.append("draw")
            buffer.set_line(0, "frame")

        app = App().add_plugin(make_plugin(device, draw=draw))
        app.add_system("update", lambda host: log.append("update"))
        app.run(frame_rate=0, max_ticks=1)

        assert log == ["update", "draw"]
        assert "frame" in device.output

    def test_ctrl_c_exits(self, device):
        app = App().add_plugin(make_plugin(device))
        device.feed("\x03")
        app.run(frame_rate=0, max_ticks=10)
        assert app.exit_requested
        assert app.ticks == 1

    def test_open_failure_exits_cleanly(self, device_factory):
        device = device_factory(tty=False)
        app = App().add_plugin(make_plugin(device))
        app.run(frame_rate=0, max_ticks=5)
        assert app.exit_requested
        assert app.ticks == 0
        assert installed_guard() is None

    def test_draw_error_exits_and_restores(self, device):
        before = device.mode_flags()

        def draw(buffer, size, resized):
            raise DrawError("bad frame")

        app = App().add_plugin(make_plugin(device, draw=draw))
        app.run(frame_rate=0, max_ticks=5)
        assert app.exit_requested
        assert device.mode_flags() == before

    def test_resize_event_and_viewport(self, device):
        plugin = make_plugin(device)
        app = App().add_plugin(plugin)
        sizes: list = []

        def observe(host):
            for event in host.read_events(ResizeEvent):
                sizes.append((event.width, event.height, plugin.session.viewport.current.width))

        app.add_system("startup", lambda host: device.resize(90, 20))
        app.add_system("update", observe)
        app.run(frame_rate=0, max_ticks=1)
        assert sizes == [(90, 20, 90)]
