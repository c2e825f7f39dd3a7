"""Bounded undo/redo history of timeline snapshots."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass

from storyboard_previs.config import HISTORY_LIMIT
from storyboard_previs.timeline.models import Clip


@dataclass(frozen=True, slots=True)
class TimelineSnapshot:
    """Deep-copied clip state; never shares clip objects with the live store."""

    clips: tuple[Clip, ...]
    track_assignments: dict[str, str]
    total_duration: float
    current_time: float = 0.0


class TimelineHistory:
    def __init__(self, limit: int = HISTORY_LIMIT) -> None:
        if limit < 1:
            raise ValueError("history limit must be >= 1")
        self._undo: deque[TimelineSnapshot] = deque(maxlen=limit)
        self._redo: list[TimelineSnapshot] = []

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def record(self, before: TimelineSnapshot) -> None:
        """Remember the state preceding an edit; a new edit drops the redo branch."""
        self._undo.append(before)
        self._redo.clear()

    def undo(self, current: TimelineSnapshot) -> TimelineSnapshot | None:
        if not self._undo:
            return None
        self._redo.append(current)
        return self._undo.pop()

    def redo(self, current: TimelineSnapshot) -> TimelineSnapshot | None:
        if not self._redo:
            return None
        self._undo.append(current)
        return self._redo.pop()

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()
