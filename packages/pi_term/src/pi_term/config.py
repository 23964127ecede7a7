"""
Terminal mode configuration for pi-term.

A ModeConfiguration is chosen once, when the terminal session opens, and is
immutable afterwards. Every capability flag has an entry action performed by
RawTerminal.enter() and a mirrored exit action performed on restore.
"""

from __future__ import annotations

import os
from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field

# Environment prefix for overrides, e.g. PI_TERM_MOUSE_CAPTURE=1
ENV_PREFIX = "PI_TERM_"

KeyEventKinds = Literal["detect", "enhanced", "press_only"]
EmulationPolicy = Literal["off", "automatic", "manual"]
ReleaseKeyPolicy = Literal["duration", "frame_count", "immediate", "on_next_key"]


class ModeConfiguration(BaseModel):
    """
    Capabilities requested from the terminal for the lifetime of a session.

    Defaults:
        raw_mode: True - unbuffered input without line editing or echo
        alternate_screen: True - draw on the secondary screen buffer
        mouse_capture: False - report clicks, drags, motion and scroll
        focus_reporting: False - report focus gained/lost
        bracketed_paste: True - deliver pastes as a single event
        keyboard_enhancement: True - push Kitty keyboard protocol flags

    Supplementary options:
        keyboard_flags: Kitty protocol flags pushed on entry (15 = all of
            disambiguate, event types, alternate keys, all keys as escapes)
        key_event_kinds: how repeat/release key events are treated.
            "detect" keeps them only if the terminal answered the Kitty
            capability query, "enhanced" always keeps them, "press_only"
            always collapses them into presses.
        escape_timeout_ms: how long a lone ESC may wait for the rest of a
            sequence before it is reported as the Escape key
        exit_on_ctrl_c: request host exit when Ctrl+C is pressed

    Key emulation (see pi_term.emulation):
        emulation_policy: "off" publishes key events as translated;
            "automatic" emulates key releases and modifier keys until the
            terminal is seen to report them itself; "manual" emulates
            exactly what emulate_key_release/emulate_modifiers select
        release_key: when an emulated release is sent for the held key -
            after release_after_ms ("duration"), after release_after_frames
            ticks ("frame_count"), at the end of the same tick
            ("immediate") or only when another key arrives ("on_next_key")
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    raw_mode: bool = True
    alternate_screen: bool = True
    mouse_capture: bool = False
    focus_reporting: bool = False
    bracketed_paste: bool = True
    keyboard_enhancement: bool = True

    keyboard_flags: int = Field(default=15, ge=1, le=31)
    key_event_kinds: KeyEventKinds = "detect"
    escape_timeout_ms: float = Field(default=10.0, ge=0)
    exit_on_ctrl_c: bool = True

    emulation_policy: EmulationPolicy = "off"
    emulate_key_release: bool = False
    emulate_modifiers: bool = False
    release_key: ReleaseKeyPolicy = "duration"
    release_after_ms: float = Field(default=1000.0, ge=0)
    release_after_frames: int = Field(default=1, ge=1)

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> ModeConfiguration:
        """Build a configuration from PI_TERM_* environment variables.

        Explicit keyword overrides win over the environment. Values are
        validated by pydantic, so booleans accept 1/0, true/false, yes/no
        and on/off.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for name in cls.model_fields:
            raw = env.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None:
                values[name] = raw.strip()
        values.update(overrides)
        return cls.model_validate(values)

    def enhanced_key_kinds(self, enhancement_active: bool | None = None) -> bool:
        """Whether repeat and release key events should reach the host.

        Args:
            enhancement_active: result of the terminal capability query,
                or None when it is not known (yet)
        """
        if not self.keyboard_enhancement or self.key_event_kinds == "press_only":
            return False
        if self.key_event_kinds == "enhanced":
            return True
        return enhancement_active is True
