"""Interfaces to the shot list and track panel that live outside the engine."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, Protocol

from storyboard_previs.config import DEFAULT_FRAME_RATE
from storyboard_previs.timeline.models import label

_TRACK_NUMBER = re.compile(r"^(?:video|audio)_(\d+)$")


@dataclass(slots=True)
class ShotDuration:
    duration_seconds: float
    duration_frames: int


class ShotDurationStore(Protocol):
    def get(self, scene_number: Any, shot_number: Any) -> ShotDuration | None: ...

    def set(self, scene_number: Any, shot_number: Any, duration_seconds: float) -> None: ...


class InMemoryShotDurationStore:
    def __init__(self, frame_rate: float = DEFAULT_FRAME_RATE) -> None:
        if frame_rate <= 0:
            raise ValueError("frame_rate must be positive")
        self.frame_rate = frame_rate
        self._items: dict[tuple[str, str], ShotDuration] = {}

    def get(self, scene_number: Any, shot_number: Any) -> ShotDuration | None:
        return self._items.get((label(scene_number), label(shot_number)))

    def set(self, scene_number: Any, shot_number: Any, duration_seconds: float) -> None:
        self._items[(label(scene_number), label(shot_number))] = ShotDuration(
            duration_seconds=duration_seconds,
            duration_frames=int(round(duration_seconds * self.frame_rate)),
        )

    def items(self) -> dict[tuple[str, str], ShotDuration]:
        return dict(self._items)


@dataclass(slots=True)
class TrackDefinition:
    track_id: str
    priority: int
    name: str = ""


class TrackRegistry:
    """Ordered track definitions; priority decides which visual clip is on top."""

    def __init__(self, tracks: Iterable[TrackDefinition] = ()) -> None:
        self._tracks: dict[str, TrackDefinition] = {}
        for track in tracks:
            self.register(track)

    def register(self, track: TrackDefinition) -> None:
        self._tracks[track.track_id] = track

    def clear(self) -> None:
        self._tracks.clear()

    def get(self, track_id: str) -> TrackDefinition | None:
        return self._tracks.get(track_id)

    def tracks_in_order(self) -> list[TrackDefinition]:
        return sorted(self._tracks.values(), key=lambda track: track.priority)

    def priority_for(self, track_id: str | None) -> int:
        if not track_id:
            return 1
        track = self._tracks.get(track_id)
        if track is not None:
            return track.priority
        match = _TRACK_NUMBER.match(track_id)
        if match is None:
            return 1
        return int(match.group(1))
