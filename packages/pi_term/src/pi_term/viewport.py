"""Viewport size tracking for pi-term."""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict, Field


class ViewportSize(BaseModel):
    """Terminal size in character cells."""

    model_config = ConfigDict(frozen=True)

    width: int = Field(ge=0)
    height: int = Field(ge=0)

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0


class ViewportTracker:
    """
    Holds the current viewport size and the size the last frame was drawn at.

    The current size is replaced whole on every observed resize, so readers
    never see a width from one resize paired with a height from another.
    """

    def __init__(self, initial: ViewportSize) -> None:
        self._logger = logging.getLogger("ViewportTracker")
        self._current = initial
        self._last_rendered = initial

    @property
    def current(self) -> ViewportSize:
        return self._current

    @property
    def last_rendered(self) -> ViewportSize:
        return self._last_rendered

    def observe_resize(self, width: int, height: int) -> ViewportSize:
        size = ViewportSize(width=width, height=height)
        if size != self._current:
            self._logger.debug(
                "Viewport resized from %dx%d to %dx%d",
                self._current.width, self._current.height, width, height,
            )
        self._current = size
        return size

    def mark_rendered(self) -> None:
        self._last_rendered = self._current

    def resized_since_render(self) -> bool:
        return self._last_rendered != self._current
