"""Overlap resolution for clip moves.

Audio moves are destructive to the neighbors they land on (trim, split or
delete). Every other move is non-destructive: the moved clip is pushed so it
abuts the neighbor it would have overlapped.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Callable, Iterable

from storyboard_previs.config import MIN_CLIP_DURATION
from storyboard_previs.timeline.intervals import (
    Interval,
    OverlapKind,
    classify_overlap,
    intervals_overlap,
    proportional_trim,
    split_trim,
)
from storyboard_previs.timeline.models import Clip, ExternalAudioClip

ClipIdFactory = Callable[[], str]


@dataclass(slots=True)
class AudioOverlapResolution:
    """Per-neighbor outcome: an empty list deletes, one clip trims, two clips split."""

    replacements: dict[str, list[ExternalAudioClip]] = field(default_factory=dict)

    @property
    def removed_ids(self) -> list[str]:
        return [
            clip_id
            for clip_id, fragments in self.replacements.items()
            if all(fragment.clip_id != clip_id for fragment in fragments)
        ]

    @property
    def changed_ids(self) -> list[str]:
        return [
            clip_id
            for clip_id, fragments in self.replacements.items()
            if any(fragment.clip_id == clip_id for fragment in fragments)
        ]

    @property
    def added(self) -> list[ExternalAudioClip]:
        return [
            fragment
            for clip_id, fragments in self.replacements.items()
            for fragment in fragments
            if fragment.clip_id != clip_id
        ]

    def is_empty(self) -> bool:
        return not self.replacements


def resolve_audio_overlaps(
    moving: ExternalAudioClip,
    proposed_start: float,
    neighbors: Iterable[ExternalAudioClip],
    new_clip_id: ClipIdFactory,
) -> AudioOverlapResolution:
    placed = Interval.placed(proposed_start, moving.duration)
    resolution = AudioOverlapResolution()
    for neighbor in neighbors:
        if neighbor.clip_id == moving.clip_id:
            continue
        existing = Interval.of(neighbor)
        kind = classify_overlap(placed, existing)
        if kind is OverlapKind.NONE:
            continue
        resolution.replacements[neighbor.clip_id] = _resolve_one(neighbor, placed, kind, new_clip_id)
    return resolution


def _resolve_one(
    neighbor: ExternalAudioClip,
    placed: Interval,
    kind: OverlapKind,
    new_clip_id: ClipIdFactory,
) -> list[ExternalAudioClip]:
    existing_duration = neighbor.duration
    if kind is OverlapKind.COVERS:
        return []

    if kind is OverlapKind.OVERLAPS_LEFT:
        trimmed = placed.end - neighbor.start_time
        remaining = existing_duration - trimmed
        if remaining < MIN_CLIP_DURATION:
            return []
        return [
            replace(
                neighbor,
                start_time=placed.end,
                duration=remaining,
                media_trim=proportional_trim(neighbor.media_trim, existing_duration, trimmed, from_start=True),
            )
        ]

    if kind is OverlapKind.OVERLAPS_RIGHT:
        trimmed = neighbor.end_time - placed.start
        remaining = placed.start - neighbor.start_time
        if remaining < MIN_CLIP_DURATION:
            return []
        return [
            replace(
                neighbor,
                duration=remaining,
                media_trim=proportional_trim(neighbor.media_trim, existing_duration, trimmed, from_start=False),
            )
        ]

    before_duration = placed.start - neighbor.start_time
    after_duration = neighbor.end_time - placed.end
    before_trim, after_trim = split_trim(neighbor.media_trim, existing_duration, before_duration, after_duration)
    fragments: list[ExternalAudioClip] = []
    if before_duration >= MIN_CLIP_DURATION:
        fragments.append(replace(neighbor, duration=before_duration, media_trim=before_trim))
    if after_duration >= MIN_CLIP_DURATION:
        fragments.append(
            replace(
                neighbor,
                clip_id=new_clip_id(),
                start_time=placed.end,
                duration=after_duration,
                media_trim=after_trim,
            )
        )
    return fragments


def abutting_start(moving: Clip, proposed_start: float, candidates: Iterable[Clip]) -> float:
    """Place ``moving`` in the nearest free slot next to the first candidate it would overlap.

    Slides before the neighbor when the proposal starts earlier than it,
    otherwise after it, and keeps sliding the same way past every further
    candidate in the way. Falls back to "after" when "before" would start
    below zero.
    """
    others = sorted(
        (candidate for candidate in candidates if candidate.clip_id != moving.clip_id),
        key=lambda candidate: candidate.start_time,
    )
    first = _first_overlap(proposed_start, moving.duration, others)
    if first is None:
        return proposed_start
    if proposed_start < first.start_time:
        start = first.start_time - moving.duration
        while start >= 0:
            blocker = _first_overlap(start, moving.duration, others)
            if blocker is None:
                return start
            start = blocker.start_time - moving.duration

    start = first.end_time
    while True:
        blocker = _first_overlap(start, moving.duration, others)
        if blocker is None:
            return start
        start = blocker.end_time


def _first_overlap(start: float, duration: float, others: list[Clip]) -> Clip | None:
    placed = Interval.placed(start, duration)
    for other in others:
        if intervals_overlap(placed, Interval.of(other)):
            return other
    return None
