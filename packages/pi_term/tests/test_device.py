"""
Tests for pi_term/device.py - POSIX terminal device.
"""

import io
import os
import signal
import sys

import pytest

from pi_term.device import PosixTerminalDevice

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX terminal device")


@pytest.fixture
def pipe_device():
    """A device whose stdin and stdout are pipes rather than a terminal."""
    read_fd, write_fd = os.pipe()
    stdin = os.fdopen(read_fd, "r")
    stdout = os.fdopen(write_fd, "w")
    yield PosixTerminalDevice(stdin=stdin, stdout=stdout), write_fd
    stdin.close()
    stdout.close()


class TestPipeDevice:
    """Behaviour when the streams are not a terminal."""

    def test_is_not_terminal(self, pipe_device):
        device, _ = pipe_device
        assert device.is_terminal() is False

    def test_size_raises(self, pipe_device):
        device, _ = pipe_device
        with pytest.raises(OSError):
            device.size()

    def test_read_available_drains_without_blocking(self, pipe_device):
        device, write_fd = pipe_device
        assert device.read_available() == b""
        os.write(write_fd, b"abc\x1b[A")
        assert device.read_available() == b"abc\x1b[A"
        assert device.read_available() == b""

    def test_stream_without_fileno(self):
        device = PosixTerminalDevice(stdin=io.StringIO(), stdout=io.StringIO())
        assert device.is_terminal() is False

    def test_write_and_flush(self):
        out = io.StringIO()
        device = PosixTerminalDevice(stdin=io.StringIO(), stdout=out)
        device.write("\x1b[?25l")
        device.flush()
        assert out.getvalue() == "\x1b[?25l"

    def test_disable_raw_mode_without_enable(self, pipe_device):
        device, _ = pipe_device
        device.disable_raw_mode()


class TestResizeWatch:
    """Tests for SIGWINCH-based resize notification."""

    def test_not_watching(self):
        device = PosixTerminalDevice(stdin=io.StringIO(), stdout=io.StringIO())
        assert device.take_resize() is False

    def test_sigwinch_sets_flag_once(self):
        original = signal.getsignal(signal.SIGWINCH)
        device = PosixTerminalDevice(stdin=io.StringIO(), stdout=io.StringIO())
        device.watch_resize()
        try:
            # The first poll always checks the size
            assert device.take_resize() is True
            assert device.take_resize() is False

            signal.getsignal(signal.SIGWINCH)(signal.SIGWINCH, None)
            assert device.take_resize() is True
            assert device.take_resize() is False
        finally:
            device.unwatch_resize()
        assert signal.getsignal(signal.SIGWINCH) == original
        assert device.take_resize() is False
