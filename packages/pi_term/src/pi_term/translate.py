"""
Event translation for pi-term.

translate() maps one raw input event to at most one host event. It is a pure
function of its arguments: the same raw event and configuration always give
the same result, and nothing is queued for later.
"""

from __future__ import annotations

from pi_term.config import ModeConfiguration
from pi_term.events import (
    FocusEvent,
    KeyEvent,
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


def _translate_key(raw: RawKeyEvent, enhanced: bool) -> KeyEvent | None:
    kind = raw.kind
    if not enhanced:
        # Press-only stream: a repeat is another press, a release is nothing
        if kind == "release":
            return None
        kind = "press"
    return KeyEvent(code=raw.code, modifiers=raw.modifiers, kind=kind, text=raw.text)


def translate(
    raw: RawInputEvent,
    config: ModeConfiguration,
    *,
    enhancement_active: bool | None = None,
) -> TranslatedEvent | None:
    """
    Translate a raw input event into a host event.

    Mouse, focus and paste events are dropped (None) unless the matching
    capability is enabled in config. Key and resize events always pass
    through; key modifiers are kept as-is. Repeat and release kinds survive
    only when enhanced key kinds are in effect (see
    ModeConfiguration.enhanced_key_kinds); otherwise releases are dropped
    and repeats become presses.

    Args:
        raw: Event produced by RawTerminal.poll()
        config: Configuration of the session the event came from
        enhancement_active: Keyboard enhancement query result, if known

    Returns:
        The translated event, or None if the event is not enabled
    """
    if isinstance(raw, RawKeyEvent):
        return _translate_key(raw, config.enhanced_key_kinds(enhancement_active))

    if isinstance(raw, RawResizeEvent):
        return ResizeEvent(width=raw.width, height=raw.height)

    if isinstance(raw, RawMouseEvent):
        if not config.mouse_capture:
            return None
        return MouseEvent(
            kind=raw.kind,
            button=raw.button,
            column=raw.column,
            row=raw.row,
            modifiers=raw.modifiers,
        )

    if isinstance(raw, RawPasteEvent):
        if not config.bracketed_paste:
            return None
        return PasteEvent(text=raw.text)

    if isinstance(raw, RawFocusEvent):
        if not config.focus_reporting:
            return None
        return FocusEvent(gained=raw.gained)

    return None
