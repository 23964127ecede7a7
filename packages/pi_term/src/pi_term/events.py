"""
Event types for pi-term.

Raw events are what the terminal decoder produces from input bytes. Each one
is consumed exactly once by the translator, which turns it into at most one
host-facing event. Both vocabularies are frozen pydantic models tagged by a
``type`` literal.
"""

from __future__ import annotations

import enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, PlainValidator

KeyEventKind = Literal["press", "repeat", "release"]

MouseEventKind = Literal[
    "down",
    "up",
    "drag",
    "moved",
    "scroll_down",
    "scroll_up",
    "scroll_left",
    "scroll_right",
]

MouseButton = Literal["left", "right", "middle"]


class KeyModifiers(enum.IntFlag):
    """Modifier bitset, laid out like the Kitty/xterm modifier parameter minus one."""

    NONE = 0
    SHIFT = 1
    ALT = 2
    CONTROL = 4
    SUPER = 8
    HYPER = 16
    META = 32

    @classmethod
    def from_parameter(cls, value: int) -> KeyModifiers:
        """Decode a CSI modifier parameter (1 + bits), dropping Caps/Num Lock."""
        bits = max(value - 1, 0) & 0x3F
        return cls(bits)

    def names(self) -> list[str]:
        """Identifier prefixes in canonical order, e.g. ["shift", "ctrl"]."""
        order = [
            (KeyModifiers.SHIFT, "shift"),
            (KeyModifiers.ALT, "alt"),
            (KeyModifiers.CONTROL, "ctrl"),
            (KeyModifiers.SUPER, "super"),
            (KeyModifiers.HYPER, "hyper"),
            (KeyModifiers.META, "meta"),
        ]
        return [name for flag, name in order if self & flag]


def _coerce_modifiers(value: object) -> KeyModifiers:
    return KeyModifiers(int(value))  # type: ignore[call-overload]


Modifiers = Annotated[KeyModifiers, PlainValidator(_coerce_modifiers)]

_MODIFIER_ALIASES = {
    "shift": KeyModifiers.SHIFT,
    "alt": KeyModifiers.ALT,
    "option": KeyModifiers.ALT,
    "ctrl": KeyModifiers.CONTROL,
    "control": KeyModifiers.CONTROL,
    "super": KeyModifiers.SUPER,
    "cmd": KeyModifiers.SUPER,
    "hyper": KeyModifiers.HYPER,
    "meta": KeyModifiers.META,
}


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# =============================================================================
# Raw events (decoder output)
# =============================================================================


class RawKeyEvent(_Frozen):
    type: Literal["key"] = "key"
    code: str
    modifiers: Modifiers = KeyModifiers.NONE
    kind: KeyEventKind = "press"
    text: str | None = None


class RawMouseEvent(_Frozen):
    type: Literal["mouse"] = "mouse"
    kind: MouseEventKind
    button: MouseButton | None = None
    column: int = Field(ge=0)
    row: int = Field(ge=0)
    modifiers: Modifiers = KeyModifiers.NONE


class RawResizeEvent(_Frozen):
    type: Literal["resize"] = "resize"
    width: int = Field(ge=0)
    height: int = Field(ge=0)


class RawPasteEvent(_Frozen):
    type: Literal["paste"] = "paste"
    text: str


class RawFocusEvent(_Frozen):
    type: Literal["focus"] = "focus"
    gained: bool


RawInputEvent = Union[
    RawKeyEvent,
    RawMouseEvent,
    RawResizeEvent,
    RawPasteEvent,
    RawFocusEvent,
]


# =============================================================================
# Translated events (host event stream)
# =============================================================================


class KeyEvent(_Frozen):
    type: Literal["key"] = "key"
    code: str
    modifiers: Modifiers = KeyModifiers.NONE
    kind: KeyEventKind = "press"
    text: str | None = None

    @property
    def key_id(self) -> str:
        """Identifier such as "a", "ctrl+c" or "shift+alt+up"."""
        return "+".join(self.modifiers.names() + [self.code])

    def matches(self, key_id: str) -> bool:
        """
        Check this event against a key identifier.

        Identifiers are modifier names joined to a key with "+", e.g.
        "ctrl+c", "shift+tab", "alt+enter", "f5". Letter keys compare
        case-insensitively; shift must still be named explicitly.
        """
        parts = key_id.split("+")
        key = parts[-1]
        if not key:
            # "ctrl++" style identifiers name the plus key
            if len(parts) >= 2 and parts[-2] == "":
                key = "+"
                parts = parts[:-1]
            else:
                return False
        wanted = KeyModifiers.NONE
        for part in parts[:-1]:
            flag = _MODIFIER_ALIASES.get(part.lower())
            if flag is None:
                return False
            wanted |= flag
        if wanted != self.modifiers:
            return False
        return key.lower() == self.code.lower()


class MouseEvent(_Frozen):
    type: Literal["mouse"] = "mouse"
    kind: MouseEventKind
    button: MouseButton | None = None
    column: int
    row: int
    modifiers: Modifiers = KeyModifiers.NONE


class ResizeEvent(_Frozen):
    type: Literal["resize"] = "resize"
    width: int
    height: int


class PasteEvent(_Frozen):
    type: Literal["paste"] = "paste"
    text: str


class FocusEvent(_Frozen):
    type: Literal["focus"] = "focus"
    gained: bool


TranslatedEvent = Union[
    KeyEvent,
    MouseEvent,
    ResizeEvent,
    PasteEvent,
    FocusEvent,
]
