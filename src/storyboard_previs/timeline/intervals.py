"""Side-effect-free interval math shared by every timeline mutation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from storyboard_previs.timeline.models import Clip, MediaTrim

TOTAL_DURATION_BUFFER_CAP = 1.0
TOTAL_DURATION_BUFFER_RATIO = 0.05


class OverlapKind(str, Enum):
    COVERS = "covers"
    OVERLAPS_LEFT = "overlaps_left"
    OVERLAPS_RIGHT = "overlaps_right"
    OVERLAPS_MIDDLE = "overlaps_middle"
    NONE = "none"


@dataclass(frozen=True, slots=True)
class Interval:
    start: float
    end: float

    @property
    def length(self) -> float:
        return self.end - self.start

    @staticmethod
    def of(clip: Clip) -> Interval:
        return Interval(start=clip.start_time, end=clip.end_time)

    @staticmethod
    def placed(start: float, duration: float) -> Interval:
        return Interval(start=start, end=start + duration)


def intervals_overlap(a: Interval, b: Interval) -> bool:
    return a.start < b.end and a.end > b.start


def classify_overlap(moving: Interval, existing: Interval) -> OverlapKind:
    """Describe how ``moving`` lands on ``existing``.

    OVERLAPS_LEFT means the existing interval loses its leading edge,
    OVERLAPS_RIGHT its trailing edge. A shared start (or end) with the moving
    interval strictly inside counts as a leading (or trailing) edge overlap so
    that every intersecting pair gets a resolution.
    """
    if not intervals_overlap(moving, existing):
        return OverlapKind.NONE
    if moving.start <= existing.start and moving.end >= existing.end:
        return OverlapKind.COVERS
    if moving.start <= existing.start:
        return OverlapKind.OVERLAPS_LEFT
    if moving.end >= existing.end:
        return OverlapKind.OVERLAPS_RIGHT
    return OverlapKind.OVERLAPS_MIDDLE


def proportional_trim(
    trim: MediaTrim,
    original_duration: float,
    trimmed_amount: float,
    from_start: bool,
) -> MediaTrim:
    """Shrink the source window by ``trimmed_amount / original_duration`` of its length."""
    if original_duration <= 0:
        return trim
    removed = trim.window * (trimmed_amount / original_duration)
    if from_start:
        return MediaTrim(
            start_offset=trim.start_offset + removed,
            end_offset=trim.end_offset,
            original_duration=trim.original_duration,
        )
    return MediaTrim(
        start_offset=trim.start_offset,
        end_offset=trim.end_offset - removed,
        original_duration=trim.original_duration,
    )


def split_trim(
    trim: MediaTrim,
    original_duration: float,
    before_duration: float,
    after_duration: float,
) -> tuple[MediaTrim, MediaTrim]:
    """Divide a source window into the parts kept before and after a cut-out."""
    if original_duration <= 0:
        return trim, trim
    before_window = trim.window * (before_duration / original_duration)
    after_window = trim.window * (after_duration / original_duration)
    before = MediaTrim(
        start_offset=trim.start_offset,
        end_offset=trim.start_offset + before_window,
        original_duration=trim.original_duration,
    )
    after = MediaTrim(
        start_offset=trim.end_offset - after_window,
        end_offset=trim.end_offset,
        original_duration=trim.original_duration,
    )
    return before, after


def snap_to_frame(time: float, frame_rate: float) -> float:
    if frame_rate <= 0:
        return time
    return math.floor(time * frame_rate + 0.5) / frame_rate


def padded_total_duration(max_end_time: float) -> float:
    if max_end_time <= 0:
        return 0.0
    buffer = min(TOTAL_DURATION_BUFFER_CAP, max_end_time * TOTAL_DURATION_BUFFER_RATIO)
    return max_end_time + buffer
