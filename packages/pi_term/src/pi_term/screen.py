"""
Screen buffer for pi-term.

The draw callback writes lines into a ScreenBuffer sized to the viewport.
After the callback returns, the buffer renders the difference between what
is on screen and what was drawn: every row after a resize (or on the first
frame), otherwise only the rows that changed. Output is wrapped in
synchronized-output markers so the terminal paints the frame in one go.
"""

from __future__ import annotations

from pi_term.text import fit_to_width
from pi_term.viewport import ViewportSize

SYNC_BEGIN = "\x1b[?2026h"
SYNC_END = "\x1b[?2026l"
CLEAR_SCREEN = "\x1b[2J\x1b[H"


def move_to(row: int, column: int = 0) -> str:
    """Cursor position escape for a 0-based row and column."""
    return f"\x1b[{row + 1};{column + 1}H"


class ScreenBuffer:
    """
    A grid of text rows, one string per row, each fitted to the viewport width.

    Rows may contain ANSI style codes; width is measured in cells with
    wcwidth, so wide characters take two columns.
    """

    def __init__(self, size: ViewportSize) -> None:
        self._size = size
        self._lines = [""] * size.height
        self._presented: list[str] | None = None
        self._full_redraws = 0

    @property
    def size(self) -> ViewportSize:
        return self._size

    @property
    def width(self) -> int:
        return self._size.width

    @property
    def height(self) -> int:
        return self._size.height

    @property
    def lines(self) -> list[str]:
        """Raw row contents as drawn, before fitting."""
        return list(self._lines)

    @property
    def full_redraws(self) -> int:
        return self._full_redraws

    def clear(self) -> None:
        self._lines = [""] * self._size.height

    def set_line(self, row: int, text: str) -> None:
        """Replace one row. Rows outside the viewport are ignored."""
        if 0 <= row < self._size.height:
            self._lines[row] = text

    def set_lines(self, lines: list[str], start: int = 0) -> None:
        """Replace consecutive rows from start; extra lines are clipped."""
        for offset, text in enumerate(lines):
            self.set_line(start + offset, text)

    def resize(self, size: ViewportSize) -> None:
        """Adopt a new viewport size, keeping the rows that still fit."""
        if size == self._size:
            return
        lines = self._lines[: size.height]
        lines.extend([""] * (size.height - len(lines)))
        self._lines = lines
        self._size = size
        self._presented = None

    def invalidate(self) -> None:
        """Force the next render to redraw every row."""
        self._presented = None

    def render(self, full: bool = False) -> str:
        """
        Produce the escape output that brings the screen up to date.

        Args:
            full: Clear and redraw every row even if nothing changed

        Returns:
            Output to write, or "" when the screen is already current
        """
        fitted = [fit_to_width(line, self._size.width) for line in self._lines]

        if full or self._presented is None:
            out = [SYNC_BEGIN, CLEAR_SCREEN]
            for row, line in enumerate(fitted):
                out.append(move_to(row))
                out.append(line)
            out.append(SYNC_END)
            self._presented = fitted
            self._full_redraws += 1
            return "".join(out)

        changed = [
            row for row, line in enumerate(fitted)
            if row >= len(self._presented) or self._presented[row] != line
        ]
        self._presented = fitted
        if not changed:
            return ""

        out = [SYNC_BEGIN]
        for row in changed:
            out.append(move_to(row))
            out.append(fitted[row])
        out.append(SYNC_END)
        return "".join(out)
