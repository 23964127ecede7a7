"""
Key release and modifier key emulation for pi-term.

A legacy terminal only reports key presses, and reports modifiers only as
part of another key. Hosts that track held keys need releases and
standalone modifier transitions, so KeyEmulator fills them in after
translation:

- every new key press first releases the key held before it, and the held
  key is released on its own once the release policy fires (one second
  after the press by default)
- whenever the modifier set of a key event changes, press/release events
  for the affected modifier keys are sent ahead of it

Under the automatic policy a capability is only emulated until the terminal
is seen to provide it: the first real release event turns off release
emulation, and the first standalone modifier key event turns off modifier
emulation. The event stream might look like this:

    terminal:  press a, press b, (one second passes)
    emulated:  press a, release a, press b, release b
"""

from __future__ import annotations

import enum
import logging
import time
from typing import Callable

from pi_term.config import ModeConfiguration
from pi_term.events import KeyEvent, KeyModifiers, TranslatedEvent

# Standalone modifier keys, as decoded from Kitty functional key codes
MODIFIER_KEY_CODES = frozenset({
    "leftShift", "leftCtrl", "leftAlt", "leftSuper", "leftHyper", "leftMeta",
    "rightShift", "rightCtrl", "rightAlt", "rightSuper", "rightHyper", "rightMeta",
})

_MODIFIER_KEYS = (
    (KeyModifiers.SHIFT, "leftShift"),
    (KeyModifiers.ALT, "leftAlt"),
    (KeyModifiers.CONTROL, "leftCtrl"),
    (KeyModifiers.SUPER, "leftSuper"),
    (KeyModifiers.HYPER, "leftHyper"),
    (KeyModifiers.META, "leftMeta"),
)


class Capability(enum.Flag):
    """Keyboard capabilities a terminal may or may not report."""

    NONE = 0
    KEY_RELEASE = 1
    MODIFIER = 2
    ALL = 3


class KeyEmulator:
    """
    Stateful filter over the translated event stream of one session.

    Call process() once per tick, with that tick's events (possibly none):
    pending releases are due on ticks without input too.

    Args:
        config: The session's mode configuration
        clock: Monotonic time source used by the "duration" release policy
    """

    def __init__(
        self,
        config: ModeConfiguration,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._logger = logging.getLogger("KeyEmulator")
        self._config = config
        self._clock = clock
        self._detected = Capability.NONE
        self._held: dict[str, KeyEvent] = {}
        self._modifiers = KeyModifiers.NONE
        self._pressed_at = 0.0
        self._ticks_since_press = 0

    @property
    def detected(self) -> Capability:
        """Capabilities the terminal has been seen to provide."""
        return self._detected

    @property
    def emulated(self) -> Capability:
        """Capabilities currently being emulated."""
        policy = self._config.emulation_policy
        if policy == "off":
            return Capability.NONE
        if policy == "manual":
            manual = Capability.NONE
            if self._config.emulate_key_release:
                manual |= Capability.KEY_RELEASE
            if self._config.emulate_modifiers:
                manual |= Capability.MODIFIER
            return manual
        return Capability(Capability.ALL.value & ~self._detected.value)

    @property
    def held_keys(self) -> list[str]:
        """Keys pressed but not yet released, oldest first."""
        return list(self._held)

    def process(self, events: list[TranslatedEvent]) -> list[TranslatedEvent]:
        """Return the tick's events with emulated key events spliced in."""
        if self._config.emulation_policy == "off":
            return list(events)

        self._ticks_since_press += 1
        out: list[TranslatedEvent] = []
        for event in events:
            if isinstance(event, KeyEvent):
                self._detect(event)
                out.extend(self._emulate(event))
            else:
                out.append(event)

        if self._release_due():
            out.extend(self._release_all())
        return out

    def _detect(self, event: KeyEvent) -> None:
        found = Capability.NONE
        if event.kind == "release":
            found |= Capability.KEY_RELEASE
        if event.code in MODIFIER_KEY_CODES:
            found |= Capability.MODIFIER
        if not found or found in self._detected:
            return

        before = self.emulated
        self._detected |= found
        self._logger.info("Terminal reports %s itself", found)

        # The terminal sends the real transitions from here on
        stopped = Capability(before.value & ~self.emulated.value)
        if Capability.KEY_RELEASE in stopped:
            self._held.clear()
        if Capability.MODIFIER in stopped:
            self._modifiers = KeyModifiers.NONE

    def _emulate(self, event: KeyEvent) -> list[TranslatedEvent]:
        emulated = self.emulated
        out: list[TranslatedEvent] = []

        is_modifier_key = event.code in MODIFIER_KEY_CODES
        if Capability.MODIFIER in emulated and not is_modifier_key:
            out.extend(self._modifier_transitions(event.modifiers))

        if Capability.KEY_RELEASE in emulated:
            if event.kind == "release":
                self._held.pop(event.code, None)
            elif not (event.kind == "repeat" and event.code in self._held):
                out.extend(self._release_keys())
                self._held[event.code] = event

        if event.kind != "release" and emulated:
            self._pressed_at = self._clock()
            self._ticks_since_press = 0

        out.append(event)
        return out

    def _release_due(self) -> bool:
        if not self._held and not self._modifiers:
            return False
        policy = self._config.release_key
        if policy == "immediate":
            return True
        if policy == "on_next_key":
            return False
        if policy == "frame_count":
            return self._ticks_since_press >= self._config.release_after_frames
        return (self._clock() - self._pressed_at) * 1000.0 >= self._config.release_after_ms

    def _release_all(self) -> list[KeyEvent]:
        return self._release_keys() + self._modifier_transitions(KeyModifiers.NONE)

    def _release_keys(self) -> list[KeyEvent]:
        released = [
            KeyEvent(code=press.code, modifiers=press.modifiers, kind="release")
            for press in self._held.values()
        ]
        self._held.clear()
        return released

    def _modifier_transitions(self, wanted: KeyModifiers) -> list[KeyEvent]:
        out: list[KeyEvent] = []
        for flag, code in _MODIFIER_KEYS:
            if wanted & flag and not self._modifiers & flag:
                out.append(KeyEvent(code=code, kind="press"))
            elif self._modifiers & flag and not wanted & flag:
                out.append(KeyEvent(code=code, kind="release"))
        self._modifiers = wanted
        return out
