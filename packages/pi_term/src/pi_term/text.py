"""
Cell-width helpers for pi-term.

Key functions:
- visible_width: columns a string occupies, ignoring ANSI codes
- fit_to_width: truncate or pad a string to exactly a number of columns
"""

from __future__ import annotations

import re

from wcwidth import wcwidth  # type: ignore[import-untyped]

# ANSI escape sequence patterns
ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;?]*[a-zA-Z]")
OSC_ESCAPE = re.compile(r"\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)")
_ANSI_AT = re.compile(r"\x1b\[[0-9;?]*[a-zA-Z]|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)")

RESET = "\x1b[0m"


def _strip_ansi(text: str) -> str:
    return OSC_ESCAPE.sub("", ANSI_ESCAPE.sub("", text))


def char_width(char: str) -> int:
    # Control characters report -1; they take no cells once sanitised
    return max(0, wcwidth(char))


def visible_width(text: str) -> int:
    """
    Calculate the visible width of text, ignoring ANSI codes.

    Example:
        >>> visible_width("\\x1b[31mHello\\x1b[0m")
        5
        >>> visible_width("日本")
        4
    """
    return sum(char_width(c) for c in _strip_ansi(text))


def fit_to_width(text: str, width: int) -> str:
    """
    Truncate or pad text to exactly width columns, preserving ANSI codes.

    A wide character that would straddle the right edge is replaced with a
    space. Styled text gets a reset appended so styles do not leak into the
    padding or the next line.
    """
    if width <= 0:
        return ""

    # Line breaks and tabs would move the cursor off the row
    text = text.replace("\r", "").replace("\n", " ").replace("\t", " ")

    result: list[str] = []
    used = 0
    styled = False
    i = 0
    while i < len(text):
        if text[i] == "\x1b":
            match = _ANSI_AT.match(text, i)
            if match:
                result.append(match.group(0))
                styled = True
                i = match.end()
                continue
            # Stray ESC: drop it
            i += 1
            continue

        w = wcwidth(text[i])
        if w < 0:
            # Control character
            i += 1
            continue
        if used + w > width:
            break
        result.append(text[i])
        used += w
        i += 1

    if styled:
        result.append(RESET)
    if used < width:
        result.append(" " * (width - used))
    return "".join(result)
