"""
Tests for pi_term/keys.py - input sequence decoding.
"""

import pytest

from pi_term.events import (
    KeyModifiers,
    RawFocusEvent,
    RawKeyEvent,
    RawMouseEvent,
    RawPasteEvent,
)
from pi_term.keys import (
    decode_paste,
    decode_sequence,
    is_device_attributes_reply,
    parse_keyboard_flags_reply,
)

SHIFT = KeyModifiers.SHIFT
ALT = KeyModifiers.ALT
CTRL = KeyModifiers.CONTROL


class TestCharacters:
    """Tests for single characters typed in raw mode."""

    def test_printable(self):
        assert decode_sequence("a") == RawKeyEvent(code="a", text="a")

    def test_uppercase_has_shift(self):
        assert decode_sequence("A") == RawKeyEvent(code="A", modifiers=SHIFT, text="A")

    def test_enter_and_tab(self):
        assert decode_sequence("\r").code == "enter"
        assert decode_sequence("\n").code == "enter"
        assert decode_sequence("\t").code == "tab"

    def test_backspace(self):
        assert decode_sequence("\x7f").code == "backspace"

    def test_lone_escape(self):
        assert decode_sequence("\x1b") == RawKeyEvent(code="escape")

    def test_ctrl_letters(self):
        assert decode_sequence("\x03") == RawKeyEvent(code="c", modifiers=CTRL)
        assert decode_sequence("\x01") == RawKeyEvent(code="a", modifiers=CTRL)

    def test_space(self):
        assert decode_sequence(" ") == RawKeyEvent(code="space", text=" ")

    def test_unicode(self):
        assert decode_sequence("日") == RawKeyEvent(code="日", text="日")


class TestLegacySequences:
    """Tests for legacy escape sequences."""

    @pytest.mark.parametrize("sequence,code", [
        ("\x1b[A", "up"),
        ("\x1b[B", "down"),
        ("\x1b[C", "right"),
        ("\x1b[D", "left"),
        ("\x1b[H", "home"),
        ("\x1b[F", "end"),
        ("\x1b[5~", "pageUp"),
        ("\x1b[6~", "pageDown"),
        ("\x1b[2~", "insert"),
        ("\x1b[3~", "delete"),
        ("\x1bOP", "f1"),
        ("\x1b[15~", "f5"),
        ("\x1b[24~", "f12"),
        ("\x1b[[A", "f1"),
    ])
    def test_named_keys(self, sequence, code):
        event = decode_sequence(sequence)
        assert event == RawKeyEvent(code=code)

    def test_shift_tab(self):
        assert decode_sequence("\x1b[Z") == RawKeyEvent(code="tab", modifiers=SHIFT)

    def test_modified_arrow(self):
        assert decode_sequence("\x1b[1;5A") == RawKeyEvent(code="up", modifiers=CTRL)
        assert decode_sequence("\x1b[1;3D") == RawKeyEvent(code="left", modifiers=ALT)

    def test_modified_tilde(self):
        assert decode_sequence("\x1b[3;2~") == RawKeyEvent(code="delete", modifiers=SHIFT)

    def test_alt_prefix(self):
        assert decode_sequence("\x1bx") == RawKeyEvent(code="x", modifiers=ALT)
        assert decode_sequence("\x1b\r") == RawKeyEvent(code="enter", modifiers=ALT)

    def test_modify_other_keys(self):
        assert decode_sequence("\x1b[27;5;13~") == RawKeyEvent(code="enter", modifiers=CTRL)

    def test_unknown_tilde_dropped(self):
        assert decode_sequence("\x1b[99~") is None


class TestKittyProtocol:
    """Tests for Kitty keyboard protocol sequences."""

    def test_plain_letter(self):
        assert decode_sequence("\x1b[97u") == RawKeyEvent(code="a", text="a")

    def test_ctrl_c(self):
        event = decode_sequence("\x1b[99;5u")
        assert event == RawKeyEvent(code="c", modifiers=CTRL)

    def test_event_kinds(self):
        assert decode_sequence("\x1b[97;1:1u").kind == "press"
        assert decode_sequence("\x1b[97;1:2u").kind == "repeat"
        release = decode_sequence("\x1b[97;1:3u")
        assert release.kind == "release"
        assert release.text is None

    def test_shifted_key_uses_alternate(self):
        event = decode_sequence("\x1b[97:65;2u")
        assert event == RawKeyEvent(code="A", modifiers=SHIFT, text="A")

    def test_named_codepoints(self):
        assert decode_sequence("\x1b[13u").code == "enter"
        assert decode_sequence("\x1b[27u").code == "escape"
        assert decode_sequence("\x1b[9;2u") == RawKeyEvent(code="tab", modifiers=SHIFT)

    def test_functional_keys(self):
        assert decode_sequence("\x1b[57376u").code == "f13"
        assert decode_sequence("\x1b[57441;2u").code == "leftShift"

    def test_keypad_digit(self):
        assert decode_sequence("\x1b[57400u") == RawKeyEvent(code="1", text="1")

    def test_arrow_release(self):
        event = decode_sequence("\x1b[1;1:3A")
        assert event == RawKeyEvent(code="up", kind="release")

    def test_unnamed_private_use_dropped(self):
        assert decode_sequence("\x1b[57999u") is None

    def test_invalid_codepoint_dropped(self):
        assert decode_sequence("\x1b[99999999u") is None


class TestMouse:
    """Tests for mouse reports."""

    def test_sgr_press_and_release(self):
        press = decode_sequence("\x1b[<0;10;5M")
        assert press == RawMouseEvent(kind="down", button="left", column=9, row=4)
        release = decode_sequence("\x1b[<0;10;5m")
        assert release == RawMouseEvent(kind="up", button="left", column=9, row=4)

    def test_sgr_right_button(self):
        assert decode_sequence("\x1b[<2;1;1M").button == "right"

    def test_sgr_drag_and_move(self):
        assert decode_sequence("\x1b[<32;3;3M").kind == "drag"
        assert decode_sequence("\x1b[<35;3;3M") == RawMouseEvent(kind="moved", column=2, row=2)

    def test_sgr_scroll(self):
        assert decode_sequence("\x1b[<64;1;1M").kind == "scroll_up"
        assert decode_sequence("\x1b[<65;1;1M").kind == "scroll_down"

    def test_sgr_modifiers(self):
        event = decode_sequence("\x1b[<16;1;1M")
        assert event.modifiers == CTRL

    def test_x10(self):
        # button 0 at column 1, row 1 (each byte offset by 32)
        event = decode_sequence("\x1b[M !!")
        assert event == RawMouseEvent(kind="down", button="left", column=0, row=0)

    def test_rxvt(self):
        event = decode_sequence("\x1b[32;5;6M")
        assert event == RawMouseEvent(kind="down", button="left", column=4, row=5)


class TestOtherInput:
    """Tests for focus, paste and capability replies."""

    def test_focus(self):
        assert decode_sequence("\x1b[I") == RawFocusEvent(gained=True)
        assert decode_sequence("\x1b[O") == RawFocusEvent(gained=False)

    def test_paste_normalises_line_endings(self):
        assert decode_paste("a\r\nb\rc") == RawPasteEvent(text="a\nb\nc")

    def test_keyboard_flags_reply(self):
        assert parse_keyboard_flags_reply("\x1b[?15u") == 15
        assert parse_keyboard_flags_reply("\x1b[15u") is None

    def test_device_attributes_reply(self):
        assert is_device_attributes_reply("\x1b[?62;22c")
        assert is_device_attributes_reply("\x1b[?1;2c")
        assert not is_device_attributes_reply("\x1b[c")

    def test_garbage_dropped(self):
        assert decode_sequence("\x1b]0;title\x07") is None
        assert decode_sequence("") is None
