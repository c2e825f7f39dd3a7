"""Frame-grid and clip-edge snapping for drag positions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from storyboard_previs.timeline.intervals import snap_to_frame
from storyboard_previs.timeline.models import Clip, effective_track, is_audio

SAME_KIND_THRESHOLD = 0.1
AUDIO_SAME_KIND_THRESHOLD = 0.02
CROSS_KIND_THRESHOLD = 0.02
AUDIO_FRAME_CATCH_RADIUS = 0.02


@dataclass(slots=True)
class SnapSettings:
    enabled: bool = True
    to_frames: bool = True
    to_clips: bool = True


def snap_time(
    time: float,
    clips: Iterable[Clip],
    frame_rate: float,
    total_duration: float,
    moving_clip: Clip | None = None,
    settings: SnapSettings | None = None,
) -> float:
    """Snap a drag position to the frame grid, then to the nearest same-track clip edge.

    An audio clip being dragged only catches the frame grid within 20ms and
    never lands on a video/image edge, not even through the frame grid.
    Without a moving clip every clip edge is a candidate at the same-kind
    threshold.
    """
    options = settings or SnapSettings()
    if not options.enabled:
        return time

    candidates = list(clips)
    moving_audio = moving_clip is not None and is_audio(moving_clip)
    snapped = time
    if options.to_frames:
        nearest_frame = snap_to_frame(time, frame_rate)
        if not moving_audio:
            snapped = nearest_frame
        elif abs(time - nearest_frame) < AUDIO_FRAME_CATCH_RADIUS and not _on_visual_edge(nearest_frame, candidates):
            snapped = nearest_frame

    if options.to_clips:
        edge = _nearest_edge(snapped, candidates, moving_clip)
        if edge is not None:
            snapped = edge

    return min(max(snapped, 0.0), total_duration)


def _nearest_edge(time: float, clips: Iterable[Clip], moving_clip: Clip | None) -> float | None:
    nearest: float | None = None
    best = float("inf")
    for clip in clips:
        threshold = _threshold(moving_clip, clip)
        if threshold is None:
            continue
        for edge in (clip.start_time, clip.end_time):
            distance = abs(time - edge)
            if distance < threshold and distance < best:
                best = distance
                nearest = edge
    return nearest


def _threshold(moving_clip: Clip | None, target: Clip) -> float | None:
    if moving_clip is None:
        return SAME_KIND_THRESHOLD
    if target.clip_id == moving_clip.clip_id:
        return None
    if effective_track(target) != effective_track(moving_clip):
        return None
    moving_audio = is_audio(moving_clip)
    target_audio = is_audio(target)
    if moving_audio and not target_audio:
        return None
    if moving_audio and target_audio:
        return AUDIO_SAME_KIND_THRESHOLD
    if target_audio:
        return CROSS_KIND_THRESHOLD
    return SAME_KIND_THRESHOLD


def _on_visual_edge(time: float, clips: list[Clip]) -> bool:
    return any(
        not is_audio(clip) and (abs(time - clip.start_time) < 1e-9 or abs(time - clip.end_time) < 1e-9)
        for clip in clips
    )
