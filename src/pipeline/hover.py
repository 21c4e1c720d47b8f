"""Shared highlight state between the incident feed and the map."""

from __future__ import annotations

import math
from typing import Any, Callable, Iterable, List, Optional, Sequence, TypeVar, Union

NumericId = Union[int, float]
HighlightCallback = Callable[[Optional[NumericId]], None]

T = TypeVar("T")


def normalize_id(raw: Any) -> Optional[NumericId]:
    """Numeric form of an incident id, or None when it is not numeric-like."""

    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        try:
            value = float(raw.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(value):
        return None
    return int(value) if value.is_integer() else value


class HoverLink:
    """Tracks the hovered incident id and notifies listeners on change."""

    def __init__(self) -> None:
        self._highlighted: Optional[NumericId] = None
        self._callbacks: List[HighlightCallback] = []

    @property
    def highlighted(self) -> Optional[NumericId]:
        return self._highlighted

    def set_highlighted(self, raw_id: Any) -> None:
        value = normalize_id(raw_id)
        if value == self._highlighted:
            return
        self._highlighted = value
        for callback in list(self._callbacks):
            callback(value)

    def clear(self) -> None:
        """Pointer left the feed."""

        self.set_highlighted(None)

    def on_highlight_change(self, callback: HighlightCallback) -> Callable[[], None]:
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def is_highlighted(self, point: Any) -> bool:
        if self._highlighted is None:
            return False
        return normalize_id(getattr(point, "id", None)) == self._highlighted

    def draw_order(self, points: Iterable[T]) -> List[T]:
        """Non-highlighted points first, highlighted ones last (drawn on top)."""

        normal: List[T] = []
        emphasised: List[T] = []
        for point in points:
            (emphasised if self.is_highlighted(point) else normal).append(point)
        return normal + emphasised

    def present_in(self, points: Sequence[Any]) -> bool:
        return any(self.is_highlighted(point) for point in points)
