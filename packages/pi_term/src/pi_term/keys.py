"""
Decoding of terminal input sequences into raw events.

Supports legacy terminal sequences, the Kitty keyboard protocol, SGR/rxvt/X10
mouse reports and focus reports.
See: https://sw.kovidgoyal.net/kitty/keyboard-protocol/

API:
- decode_sequence(data) - decode one complete sequence into a raw event
- decode_paste(text) - wrap a bracketed paste payload
- parse_keyboard_flags_reply(data) - Kitty capability reply, if data is one
- is_device_attributes_reply(data) - primary device attributes reply
"""

from __future__ import annotations

import logging
import re

from pi_term.events import (
    KeyEventKind,
    KeyModifiers,
    RawFocusEvent,
    RawInputEvent,
    RawKeyEvent,
    RawMouseEvent,
    RawPasteEvent,
)

_logger = logging.getLogger("KeyDecoder")

SHIFT = KeyModifiers.SHIFT
ALT = KeyModifiers.ALT
CTRL = KeyModifiers.CONTROL
NONE = KeyModifiers.NONE

# =============================================================================
# Legacy sequences
# =============================================================================

# Unmodified and terminal-specific modified sequences -> (key, modifiers)
LEGACY_SEQUENCES: dict[str, tuple[str, KeyModifiers]] = {
    "\x1b[A": ("up", NONE),
    "\x1b[B": ("down", NONE),
    "\x1b[C": ("right", NONE),
    "\x1b[D": ("left", NONE),
    "\x1b[E": ("clear", NONE),
    "\x1b[H": ("home", NONE),
    "\x1b[F": ("end", NONE),
    "\x1b[Z": ("tab", SHIFT),
    "\x1bOA": ("up", NONE),
    "\x1bOB": ("down", NONE),
    "\x1bOC": ("right", NONE),
    "\x1bOD": ("left", NONE),
    "\x1bOE": ("clear", NONE),
    "\x1bOH": ("home", NONE),
    "\x1bOF": ("end", NONE),
    "\x1bOM": ("enter", NONE),
    "\x1bOP": ("f1", NONE),
    "\x1bOQ": ("f2", NONE),
    "\x1bOR": ("f3", NONE),
    "\x1bOS": ("f4", NONE),
    # rxvt
    "\x1b[a": ("up", SHIFT),
    "\x1b[b": ("down", SHIFT),
    "\x1b[c": ("right", SHIFT),
    "\x1b[d": ("left", SHIFT),
    "\x1b[e": ("clear", SHIFT),
    "\x1bOa": ("up", CTRL),
    "\x1bOb": ("down", CTRL),
    "\x1bOc": ("right", CTRL),
    "\x1bOd": ("left", CTRL),
    "\x1bOe": ("clear", CTRL),
    "\x1b[2$": ("insert", SHIFT),
    "\x1b[3$": ("delete", SHIFT),
    "\x1b[5$": ("pageUp", SHIFT),
    "\x1b[6$": ("pageDown", SHIFT),
    "\x1b[7$": ("home", SHIFT),
    "\x1b[8$": ("end", SHIFT),
    "\x1b[2^": ("insert", CTRL),
    "\x1b[3^": ("delete", CTRL),
    "\x1b[5^": ("pageUp", CTRL),
    "\x1b[6^": ("pageDown", CTRL),
    "\x1b[7^": ("home", CTRL),
    "\x1b[8^": ("end", CTRL),
    # Linux console
    "\x1b[[A": ("f1", NONE),
    "\x1b[[B": ("f2", NONE),
    "\x1b[[C": ("f3", NONE),
    "\x1b[[D": ("f4", NONE),
    "\x1b[[E": ("f5", NONE),
}

# CSI <number> ~
TILDE_KEYS: dict[int, str] = {
    1: "home",
    2: "insert",
    3: "delete",
    4: "end",
    5: "pageUp",
    6: "pageDown",
    7: "home",
    8: "end",
    11: "f1",
    12: "f2",
    13: "f3",
    14: "f4",
    15: "f5",
    17: "f6",
    18: "f7",
    19: "f8",
    20: "f9",
    21: "f10",
    23: "f11",
    24: "f12",
}

# CSI 1 ; <mod> <letter>
LETTER_KEYS: dict[str, str] = {
    "A": "up",
    "B": "down",
    "C": "right",
    "D": "left",
    "E": "clear",
    "F": "end",
    "H": "home",
    "P": "f1",
    "Q": "f2",
    "R": "f3",
    "S": "f4",
}

# =============================================================================
# Kitty protocol
# =============================================================================

# Codepoints that name a key rather than produce text
KITTY_SPECIAL_CODEPOINTS: dict[int, str] = {
    8: "backspace",
    9: "tab",
    13: "enter",
    27: "escape",
    32: "space",
    127: "backspace",
    57358: "capsLock",
    57359: "scrollLock",
    57360: "numLock",
    57361: "printScreen",
    57362: "pause",
    57363: "menu",
    57414: "enter",
    57441: "leftShift",
    57442: "leftCtrl",
    57443: "leftAlt",
    57444: "leftSuper",
    57445: "leftHyper",
    57446: "leftMeta",
    57447: "rightShift",
    57448: "rightCtrl",
    57449: "rightAlt",
    57450: "rightSuper",
    57451: "rightHyper",
    57452: "rightMeta",
}

# Keypad keys that produce text
KITTY_KEYPAD_TEXT: dict[int, str] = {
    **{57399 + n: str(n) for n in range(10)},
    57409: ".",
    57410: "/",
    57411: "*",
    57412: "-",
    57413: "+",
    57415: "=",
}

KITTY_F13 = 57376
KITTY_F35 = 57398

_EVENT_KINDS: dict[str, KeyEventKind] = {"1": "press", "2": "repeat", "3": "release"}

_CSI_U = re.compile(
    r"^\x1b\[(\d+)(?::(\d*))?(?::(\d+))?(?:;(\d*)(?::(\d+))?)?(?:;[\d:]*)?u$"
)
_CSI_LETTER = re.compile(r"^\x1b\[(?:1)?(?:;(\d+)(?::(\d+))?)?([ABCDEFHPQRS])$")
_CSI_TILDE = re.compile(r"^\x1b\[(\d+)(?:;(\d+)(?::(\d+))?)?~$")
_MODIFY_OTHER_KEYS = re.compile(r"^\x1b\[27;(\d+);(\d+)~$")

_SGR_MOUSE = re.compile(r"^\x1b\[<(\d+);(\d+);(\d+)([Mm])$")
_RXVT_MOUSE = re.compile(r"^\x1b\[(\d+);(\d+);(\d+)M$")

_KEYBOARD_FLAGS_REPLY = re.compile(r"^\x1b\[\?(\d+)u$")
_DEVICE_ATTRIBUTES_REPLY = re.compile(r"^\x1b\[\?[\d;]*c$")


def parse_keyboard_flags_reply(data: str) -> int | None:
    """Return the flags from a Kitty `CSI ? flags u` reply, or None."""
    match = _KEYBOARD_FLAGS_REPLY.match(data)
    return int(match.group(1)) if match else None


def is_device_attributes_reply(data: str) -> bool:
    """Check for a primary device attributes reply (`CSI ? ... c`)."""
    return bool(_DEVICE_ATTRIBUTES_REPLY.match(data))


def _modifiers(param: str | None) -> KeyModifiers:
    if not param:
        return NONE
    return KeyModifiers.from_parameter(int(param))


def _kind(param: str | None) -> KeyEventKind:
    if not param:
        return "press"
    return _EVENT_KINDS.get(param, "press")


# =============================================================================
# Characters
# =============================================================================


def _decode_char(char: str) -> RawKeyEvent:
    """Decode a single character as typed in raw mode."""
    code = ord(char)

    if char in ("\r", "\n"):
        return RawKeyEvent(code="enter")
    if char == "\t":
        return RawKeyEvent(code="tab")
    if char in ("\x7f", "\x08"):
        return RawKeyEvent(code="backspace")
    if char == "\x1b":
        return RawKeyEvent(code="escape")
    if char == "\x00":
        return RawKeyEvent(code="space", modifiers=CTRL)
    if 1 <= code <= 26:
        return RawKeyEvent(code=chr(code + 96), modifiers=CTRL)
    if 28 <= code <= 31:
        return RawKeyEvent(code="\\]^_"[code - 28], modifiers=CTRL)
    if char == " ":
        return RawKeyEvent(code="space", text=" ")
    if "A" <= char <= "Z":
        return RawKeyEvent(code=char, modifiers=SHIFT, text=char)
    return RawKeyEvent(code=char, text=char)


# =============================================================================
# Kitty / modified CSI keys
# =============================================================================


def _decode_kitty(match: re.Match[str]) -> RawKeyEvent | None:
    codepoint = int(match.group(1))
    shifted = int(match.group(2)) if match.group(2) else None
    modifiers = _modifiers(match.group(4))
    kind = _kind(match.group(5))

    if codepoint in KITTY_SPECIAL_CODEPOINTS:
        name = KITTY_SPECIAL_CODEPOINTS[codepoint]
        text = " " if name == "space" and not modifiers & ~SHIFT else None
        return RawKeyEvent(code=name, modifiers=modifiers, kind=kind, text=text)

    if KITTY_F13 <= codepoint <= KITTY_F35:
        return RawKeyEvent(code=f"f{codepoint - KITTY_F13 + 13}", modifiers=modifiers, kind=kind)

    if codepoint in KITTY_KEYPAD_TEXT:
        char = KITTY_KEYPAD_TEXT[codepoint]
        return RawKeyEvent(code=char, modifiers=modifiers, kind=kind, text=char)

    # Private-use codepoints without a name are not keys we know about
    if 57344 <= codepoint <= 63743:
        return None

    try:
        char = chr(codepoint)
    except (ValueError, OverflowError):
        return None

    if modifiers & SHIFT and shifted:
        try:
            char = chr(shifted)
        except (ValueError, OverflowError):
            return None

    plain = not modifiers & ~SHIFT
    text = char if plain and kind != "release" and char.isprintable() else None
    return RawKeyEvent(code=char, modifiers=modifiers, kind=kind, text=text)


def _decode_csi_key(data: str) -> RawKeyEvent | None:
    match = _CSI_U.match(data)
    if match:
        return _decode_kitty(match)

    match = _MODIFY_OTHER_KEYS.match(data)
    if match:
        modifiers = _modifiers(match.group(1))
        key = _decode_char(chr(int(match.group(2))))
        return RawKeyEvent(code=key.code, modifiers=key.modifiers | modifiers)

    match = _CSI_LETTER.match(data)
    if match:
        return RawKeyEvent(
            code=LETTER_KEYS[match.group(3)],
            modifiers=_modifiers(match.group(1)),
            kind=_kind(match.group(2)),
        )

    match = _CSI_TILDE.match(data)
    if match:
        name = TILDE_KEYS.get(int(match.group(1)))
        if name is None:
            return None
        return RawKeyEvent(
            code=name,
            modifiers=_modifiers(match.group(2)),
            kind=_kind(match.group(3)),
        )

    return None


# =============================================================================
# Mouse
# =============================================================================


def _decode_mouse(cb: int, x: int, y: int, released: bool) -> RawMouseEvent:
    """Decode xterm mouse button byte and 1-based coordinates."""
    modifiers = NONE
    if cb & 4:
        modifiers |= SHIFT
    if cb & 8:
        modifiers |= ALT
    if cb & 16:
        modifiers |= CTRL

    column = max(x - 1, 0)
    row = max(y - 1, 0)
    button_bits = cb & 3
    button = {0: "left", 1: "middle", 2: "right"}.get(button_bits)

    if cb & 64:
        kind = ("scroll_up", "scroll_down", "scroll_left", "scroll_right")[button_bits]
        return RawMouseEvent(kind=kind, column=column, row=row, modifiers=modifiers)

    if cb & 32:
        if button is None:
            return RawMouseEvent(kind="moved", column=column, row=row, modifiers=modifiers)
        return RawMouseEvent(kind="drag", button=button, column=column, row=row, modifiers=modifiers)

    if released or button is None:
        # X10/rxvt releases do not say which button went up
        return RawMouseEvent(kind="up", button=button, column=column, row=row, modifiers=modifiers)
    return RawMouseEvent(kind="down", button=button, column=column, row=row, modifiers=modifiers)


def _decode_mouse_sequence(data: str) -> RawMouseEvent | None:
    match = _SGR_MOUSE.match(data)
    if match:
        return _decode_mouse(
            int(match.group(1)),
            int(match.group(2)),
            int(match.group(3)),
            released=match.group(4) == "m",
        )

    if data.startswith("\x1b[M") and len(data) == 6:
        cb, x, y = (ord(c) - 32 for c in data[3:])
        return _decode_mouse(cb, x, y, released=False)

    match = _RXVT_MOUSE.match(data)
    if match:
        return _decode_mouse(
            int(match.group(1)) - 32,
            int(match.group(2)),
            int(match.group(3)),
            released=False,
        )

    return None


# =============================================================================
# Entry points
# =============================================================================


def decode_paste(text: str) -> RawPasteEvent:
    """Wrap the payload of a bracketed paste (line endings normalised to \\n)."""
    return RawPasteEvent(text=text.replace("\r\n", "\n").replace("\r", "\n"))


def decode_sequence(data: str) -> RawInputEvent | None:
    """
    Decode one complete input sequence.

    Args:
        data: A single character or complete escape sequence, as split off
            by InputBuffer

    Returns:
        The raw event, or None when the sequence is not recognised. Decoding
        never raises on malformed input.
    """
    if not data:
        return None

    if len(data) == 1:
        return _decode_char(data)

    if data in LEGACY_SEQUENCES:
        code, modifiers = LEGACY_SEQUENCES[data]
        return RawKeyEvent(code=code, modifiers=modifiers)

    if data == "\x1b[I":
        return RawFocusEvent(gained=True)
    if data == "\x1b[O":
        return RawFocusEvent(gained=False)

    if not data.startswith("\x1b"):
        # Text that could not be split further, e.g. a flushed fragment
        return RawKeyEvent(code=data[0], text=data[0]) if data[0].isprintable() else None

    try:
        if data.startswith(("\x1b[<", "\x1b[M")) or _RXVT_MOUSE.match(data):
            event: RawInputEvent | None = _decode_mouse_sequence(data)
        elif data.startswith("\x1b["):
            event = _decode_csi_key(data)
        elif len(data) == 2:
            # ESC + key: Alt modifier in legacy terminals
            key = _decode_char(data[1])
            event = RawKeyEvent(code=key.code, modifiers=key.modifiers | ALT)
        else:
            event = None
    except ValueError:
        event = None

    if event is None:
        _logger.debug("Dropping unrecognised input sequence %r", data)
    return event
