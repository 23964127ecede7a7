"""
pi-term: terminal lifecycle and event bridge for frame-driven applications

Enters and restores special terminal modes (raw input, alternate screen,
mouse, focus, bracketed paste, Kitty keyboard protocol), polls and
translates terminal input into typed events once per tick, tracks the
viewport size and restores the terminal on any exit path.
"""

from pi_term.app import App, Host, TerminalPlugin, exit_on_error
from pi_term.config import ModeConfiguration
from pi_term.device import PosixTerminalDevice, TerminalDevice
from pi_term.driver import FrameDriver
from pi_term.emulation import Capability, KeyEmulator
from pi_term.errors import (
    AlreadyInstalledError,
    DrawError,
    TerminalError,
    TerminalIOError,
)
from pi_term.events import (
    FocusEvent,
    KeyEvent,
    KeyModifiers,
    MouseEvent,
    PasteEvent,
    RawFocusEvent,
    RawInputEvent,
    RawKeyEvent,
    RawMouseEvent,
    RawPasteEvent,
    RawResizeEvent,
    ResizeEvent,
    TranslatedEvent,
)
from pi_term.guard import ModeGuard, installed_guard
from pi_term.screen import ScreenBuffer
from pi_term.session import TerminalSession
from pi_term.terminal import RawTerminal
from pi_term.text import fit_to_width, visible_width
from pi_term.translate import translate
from pi_term.viewport import ViewportSize, ViewportTracker

__all__ = [
    # Host integration
    "App",
    "Host",
    "TerminalPlugin",
    "exit_on_error",
    # Terminal
    "ModeConfiguration",
    "TerminalDevice",
    "PosixTerminalDevice",
    "RawTerminal",
    "ModeGuard",
    "installed_guard",
    "TerminalSession",
    "FrameDriver",
    "KeyEmulator",
    "Capability",
    "ScreenBuffer",
    "ViewportSize",
    "ViewportTracker",
    "translate",
    "visible_width",
    "fit_to_width",
    # Events
    "KeyModifiers",
    "RawInputEvent",
    "RawKeyEvent",
    "RawMouseEvent",
    "RawResizeEvent",
    "RawPasteEvent",
    "RawFocusEvent",
    "TranslatedEvent",
    "KeyEvent",
    "MouseEvent",
    "ResizeEvent",
    "PasteEvent",
    "FocusEvent",
    # Errors
    "TerminalError",
    "TerminalIOError",
    "AlreadyInstalledError",
    "DrawError",
]
