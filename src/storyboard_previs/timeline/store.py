"""Timeline store: the single source of truth for clips across tracks."""

from __future__ import annotations

from copy import deepcopy
from typing import Callable, Iterable, Protocol
from uuid import uuid4

import structlog

from storyboard_previs.config import DEFAULT_FRAME_DURATION, MIN_CLIP_DURATION, PRIMARY_VIDEO_TRACK
from storyboard_previs.timeline.collaborators import ShotDurationStore
from storyboard_previs.timeline.history import TimelineSnapshot
from storyboard_previs.timeline.intervals import padded_total_duration
from storyboard_previs.timeline.models import (
    Clip,
    ExternalAudioClip,
    ExternalMediaOrigin,
    ExternalVisualClip,
    FrameRecord,
    MediaTrim,
    MediaType,
    StoryboardClip,
    StoryboardOrigin,
    clamp_duration,
    clip_kind,
    default_track_for,
    effective_track,
    is_external,
    is_parsable_number,
    label,
    normalize_track_ids,
)
from storyboard_previs.timeline.overlap import AudioOverlapResolution, abutting_start, resolve_audio_overlaps

logger = structlog.get_logger(__name__)

ClipIdFactory = Callable[[], str]


class TimelineObserver(Protocol):
    def clips_removed(self, clip_ids: list[str]) -> None: ...

    def clips_changed(self, clip_ids: list[str]) -> None: ...


def _new_clip_id() -> str:
    return f"clip_{uuid4().hex[:12]}"


class TimelineStore:
    def __init__(
        self,
        shot_durations: ShotDurationStore | None = None,
        default_frame_duration: float = DEFAULT_FRAME_DURATION,
        clip_id_factory: ClipIdFactory | None = None,
    ) -> None:
        if default_frame_duration < MIN_CLIP_DURATION:
            raise ValueError(f"default_frame_duration must be >= {MIN_CLIP_DURATION}")
        self._shot_durations = shot_durations
        self._default_frame_duration = default_frame_duration
        self._new_clip_id = clip_id_factory or _new_clip_id
        self._clips: dict[str, Clip] = {}
        self._observers: list[TimelineObserver] = []
        self.track_assignments: dict[str, str] = {}
        self.total_duration = 0.0

    @property
    def clips(self) -> list[Clip]:
        return list(self._clips.values())

    def get_clip(self, clip_id: str) -> Clip | None:
        return self._clips.get(clip_id)

    def clips_for_track(self, track_id: str) -> list[Clip]:
        items = [clip for clip in self._clips.values() if effective_track(clip) == track_id]
        return sorted(items, key=lambda clip: (clip.start_time, clip.clip_id))

    def track_ids(self) -> list[str]:
        return sorted({effective_track(clip) for clip in self._clips.values()})

    def subscribe(self, observer: TimelineObserver) -> None:
        self._observers.append(observer)

    def add_external_clip(
        self,
        media_type: MediaType | str,
        start_time: float,
        duration: float,
        track_id: str | None = None,
        file_id: str | None = None,
        source_url: str = "",
        file_name: str = "",
        media_trim: MediaTrim | None = None,
        clip_id: str | None = None,
    ) -> Clip:
        """Place imported media as-is; overlaps are resolved by a later ``move_clip``."""
        self._normalize()
        normalized_type = MediaType(media_type)
        origin = ExternalMediaOrigin(
            file_id=file_id or str(uuid4()),
            media_type=normalized_type,
            source_url=source_url,
            file_name=file_name,
        )
        start = max(0.0, float(start_time))
        length = clamp_duration(duration)
        new_id = clip_id or self._new_clip_id()
        if new_id in self._clips:
            raise ValueError(f"clip '{new_id}' already exists")

        clip: Clip
        if normalized_type is MediaType.AUDIO:
            clip = ExternalAudioClip(
                clip_id=new_id,
                origin=origin,
                track_id=track_id or "",
                start_time=start,
                duration=length,
                media_trim=media_trim or MediaTrim.full(length),
                has_custom_duration=True,
            )
        else:
            clip = ExternalVisualClip(
                clip_id=new_id,
                origin=origin,
                track_id=track_id or "",
                start_time=start,
                duration=length,
                has_custom_duration=True,
            )
        if not clip.track_id:
            clip.track_id = default_track_for(clip)
        self._clips[clip.clip_id] = clip
        self.track_assignments[clip.clip_id] = clip.track_id
        self.refresh_total_duration()
        return clip

    def restore(
        self,
        clips: Iterable[Clip],
        total_duration: float,
        track_assignments: dict[str, str] | None = None,
    ) -> None:
        """Replace the collection verbatim, only defaulting missing storyboard track ids."""
        removed = list(self._clips)
        self._clips = {clip.clip_id: clip for clip in clips}
        self.total_duration = total_duration
        if track_assignments is None:
            track_assignments = {clip.clip_id: effective_track(clip) for clip in self._clips.values()}
        self.track_assignments = dict(track_assignments)
        self._normalize()
        self._notify_removed(removed)

    def build(
        self,
        frames: Iterable[FrameRecord],
        shot_durations: ShotDurationStore | None = None,
    ) -> list[Clip]:
        """Regenerate storyboard clips from the frame list; external media survives."""
        store = shot_durations or self._shot_durations
        external = [clip for clip in self._clips.values() if is_external(clip)]
        preserved = {
            clip.origin.frame_id: clip.duration
            for clip in self._clips.values()
            if isinstance(clip, StoryboardClip) and clip.has_custom_duration
        }

        ordered = sorted(frames, key=lambda frame: frame.sort_key)
        groups: dict[str, list[FrameRecord]] = {}
        for frame in ordered:
            for value in (frame.scene_number, frame.shot_number, frame.frame_number):
                if not is_parsable_number(value):
                    logger.debug("previs.timeline.unparsable_number", frame_id=frame.frame_id, value=str(value))
            groups.setdefault(frame.shot_key, []).append(frame)

        rebuilt: dict[str, Clip] = {}
        taken = {clip.clip_id for clip in external}
        cursor = 0.0
        for shot_key, group in groups.items():
            shot_total = 0.0
            for frame in group:
                kept = preserved.get(frame.frame_id)
                clip = StoryboardClip(
                    clip_id=_unique_id(f"clip_{frame.frame_id}", taken),
                    origin=StoryboardOrigin(
                        frame_id=frame.frame_id,
                        scene_number=label(frame.scene_number),
                        shot_number=label(frame.shot_number),
                        frame_number=label(frame.frame_number),
                        shot_key=shot_key,
                        media_ref=frame.media_ref,
                    ),
                    start_time=cursor,
                    duration=kept if kept is not None else self._default_frame_duration,
                    track_id=PRIMARY_VIDEO_TRACK,
                    has_custom_duration=kept is not None,
                )
                rebuilt[clip.clip_id] = clip
                taken.add(clip.clip_id)
                cursor = clip.end_time
                shot_total += clip.duration
            if store is not None:
                store.set(group[0].scene_number, group[0].shot_number, shot_total)

        removed = [
            clip_id
            for clip_id, clip in self._clips.items()
            if isinstance(clip, StoryboardClip) and clip_id not in rebuilt
        ]
        for clip in external:
            rebuilt[clip.clip_id] = clip
        self._clips = rebuilt
        self.track_assignments = {clip.clip_id: effective_track(clip) for clip in rebuilt.values()}

        self._displace_external(
            [clip for clip in external if clip.track_id == PRIMARY_VIDEO_TRACK],
            self._storyboard_end(PRIMARY_VIDEO_TRACK),
        )
        self.refresh_total_duration()
        self._notify_removed(removed)

        logger.info(
            "previs.timeline.built",
            frames=len(ordered),
            shot_groups=len(groups),
            clips=len(self._clips),
        )
        return self.clips

    def move_clip(self, clip_id: str, proposed_start_time: float) -> bool:
        clip = self._clips.get(clip_id)
        if clip is None:
            logger.debug("previs.timeline.clip_not_found", operation="move_clip", clip_id=clip_id)
            return False
        self._normalize()
        proposed = max(0.0, float(proposed_start_time))

        if isinstance(clip, ExternalAudioClip):
            resolution = resolve_audio_overlaps(
                clip,
                proposed,
                self._audio_neighbors(clip),
                self._new_clip_id,
            )
            self._apply_resolution(resolution)
            clip.start_time = proposed
            self.refresh_total_duration()
            self._notify_changed([clip.clip_id])
            return True

        kind = clip_kind(clip)
        track_id = effective_track(clip)
        candidates = sorted(
            (
                other
                for other in self._clips.values()
                if other.clip_id != clip.clip_id
                and clip_kind(other) == kind
                and effective_track(other) == track_id
            ),
            key=lambda other: other.start_time,
        )
        clip.start_time = abutting_start(clip, proposed, candidates)

        if isinstance(clip, StoryboardClip):
            self.recalculate_timeline_positions(track_id)
        else:
            self.refresh_total_duration()
        return True

    def update_clip_duration(self, clip_id: str, new_duration: float) -> bool:
        clip = self._clips.get(clip_id)
        if clip is None:
            logger.debug("previs.timeline.clip_not_found", operation="update_clip_duration", clip_id=clip_id)
            return False
        self._normalize()
        duration = clamp_duration(new_duration)

        if isinstance(clip, ExternalAudioClip):
            self._resize_audio(clip, duration)
        elif isinstance(clip, ExternalVisualClip):
            clip.duration = self._limit_to_next_clip(clip, duration)
        else:
            clip.duration = duration
        clip.has_custom_duration = True

        self.recalculate_timeline_positions(effective_track(clip))
        self._notify_changed([clip.clip_id])
        return True

    def scale_shot_duration(self, scene_number: str, shot_number: str, new_total_seconds: float) -> bool:
        """Redistribute a shot's length over its frames, keeping their relative weights."""
        self._normalize()
        scene, shot = label(scene_number), label(shot_number)
        shot_clips = sorted(
            (
                clip
                for clip in self._clips.values()
                if isinstance(clip, StoryboardClip)
                and clip.origin.scene_number == scene
                and clip.origin.shot_number == shot
            ),
            key=lambda clip: clip.start_time,
        )
        if not shot_clips:
            logger.warning("previs.timeline.shot_not_found", scene_number=scene, shot_number=shot)
            return False

        target = max(0.0, float(new_total_seconds))
        current_total = sum(clip.duration for clip in shot_clips)
        if current_total <= 0 or target <= 0:
            equal = target / len(shot_clips) if target > 0 else self._default_frame_duration
            durations = [equal] * len(shot_clips)
        else:
            factor = target / current_total
            durations = [clip.duration * factor for clip in shot_clips]

        cursor = shot_clips[0].start_time
        for clip, duration in zip(shot_clips, durations):
            clip.duration = clamp_duration(duration)
            clip.start_time = cursor
            clip.has_custom_duration = True
            cursor = clip.end_time

        if self._shot_durations is not None:
            self._shot_durations.set(scene, shot, sum(clip.duration for clip in shot_clips))
        for track_id in sorted({effective_track(clip) for clip in shot_clips}):
            self.recalculate_timeline_positions(track_id)
        return True

    def delete_clip(self, clip_id: str) -> bool:
        clip = self._clips.pop(clip_id, None)
        if clip is None:
            logger.debug("previs.timeline.clip_not_found", operation="delete_clip", clip_id=clip_id)
            return False
        self._normalize()
        self.track_assignments.pop(clip_id, None)
        self._notify_removed([clip_id])
        self.recalculate_timeline_positions(effective_track(clip))
        return True

    def ripple_edit(self, clip_id: str, new_duration: float) -> bool:
        """Resize a clip and shift every later clip on its track by the length change."""
        clip = self._clips.get(clip_id)
        if clip is None:
            logger.debug("previs.timeline.clip_not_found", operation="ripple_edit", clip_id=clip_id)
            return False
        self._normalize()
        track_id = effective_track(clip)
        old_end = clip.end_time
        followers = [
            other
            for other in self._clips.values()
            if other.clip_id != clip.clip_id and effective_track(other) == track_id and other.start_time >= old_end
        ]

        duration = clamp_duration(new_duration)
        if isinstance(clip, ExternalAudioClip):
            self._retrim_audio(clip, duration)
        else:
            clip.duration = duration
        clip.has_custom_duration = True
        self._slide(followers, old_end, clip.end_time)

        self.recalculate_timeline_positions(track_id)
        self._notify_changed([clip.clip_id, *(other.clip_id for other in followers)])
        return True

    def close_gap(self, track_id: str, time: float) -> float:
        """Pull the clips after the empty span at ``time`` back onto the clip before it.

        Returns the closed length, or 0.0 when ``time`` is not inside a gap
        between two clips of ``track_id``.
        """
        self._normalize()
        ordered = self.clips_for_track(track_id)
        before: Clip | None = None
        after: Clip | None = None
        for clip in ordered:
            if clip.end_time <= time:
                before = clip
            elif clip.start_time > time:
                after = clip
                break
            else:
                return 0.0
        if before is None or after is None or before.end_time >= after.start_time:
            return 0.0

        gap = after.start_time - before.end_time
        shifted = [clip for clip in ordered if clip.start_time >= after.start_time]
        self._slide(shifted, after.start_time, before.end_time)
        self.recalculate_timeline_positions(track_id)
        self._notify_changed([clip.clip_id for clip in shifted])
        logger.info("previs.timeline.gap_closed", track_id=track_id, gap=gap, clips=len(shifted))
        return gap

    def snapshot(self, current_time: float = 0.0) -> TimelineSnapshot:
        return TimelineSnapshot(
            clips=tuple(deepcopy(self.clips)),
            track_assignments=dict(self.track_assignments),
            total_duration=self.total_duration,
            current_time=current_time,
        )

    def restore_snapshot(self, snapshot: TimelineSnapshot) -> None:
        self.restore(
            deepcopy(list(snapshot.clips)),
            total_duration=snapshot.total_duration,
            track_assignments=dict(snapshot.track_assignments),
        )

    def recalculate_timeline_positions(self, track_id: str | None = None) -> None:
        """Lay storyboard clips back-to-back per shot group from time zero.

        With ``track_id`` only that track is touched. Without it every
        storyboard clip is sequenced as one lane, which is only meant for
        full rebuilds.
        """
        self._normalize()
        if track_id is None:
            storyboard_end = self._sequence_storyboard(
                [clip for clip in self._clips.values() if isinstance(clip, StoryboardClip)]
            )
            by_track: dict[str, list[Clip]] = {}
            for clip in self._clips.values():
                if is_external(clip):
                    by_track.setdefault(effective_track(clip), []).append(clip)
            for clips in by_track.values():
                self._displace_external(clips, storyboard_end)
            self.refresh_total_duration()
            return

        before = self._positions_off_track(track_id)
        on_track = [clip for clip in self._clips.values() if effective_track(clip) == track_id]
        storyboard_end = self._sequence_storyboard([clip for clip in on_track if isinstance(clip, StoryboardClip)])
        self._displace_external([clip for clip in on_track if is_external(clip)], storyboard_end)

        after = self._positions_off_track(track_id)
        if after != before:
            changed = sorted(clip_id for clip_id in before if before[clip_id] != after.get(clip_id))
            logger.error("previs.timeline.track_isolation_violated", track_id=track_id, clip_ids=changed)
        self.refresh_total_duration()

    def refresh_total_duration(self) -> float:
        max_end = max((clip.end_time for clip in self._clips.values()), default=0.0)
        self.total_duration = padded_total_duration(max_end)
        return self.total_duration

    def _normalize(self) -> None:
        for clip_id in normalize_track_ids(self._clips.values()):
            self.track_assignments[clip_id] = PRIMARY_VIDEO_TRACK

    def _sequence_storyboard(self, clips: list[StoryboardClip]) -> float:
        groups: dict[str, list[StoryboardClip]] = {}
        for clip in clips:
            groups.setdefault(clip.origin.shot_key, []).append(clip)
        ordered_groups = sorted(groups.values(), key=lambda group: min(clip.start_time for clip in group))

        cursor = 0.0
        for group in ordered_groups:
            for clip in sorted(group, key=lambda clip: clip.start_time):
                clip.start_time = cursor
                cursor = clip.end_time
        return cursor

    def _storyboard_end(self, track_id: str) -> float:
        return max(
            (
                clip.end_time
                for clip in self._clips.values()
                if isinstance(clip, StoryboardClip) and clip.track_id == track_id
            ),
            default=0.0,
        )

    @staticmethod
    def _displace_external(clips: list[Clip], storyboard_end: float) -> None:
        # Forward only; a displaced clip may push the next one on its track.
        cursor = storyboard_end
        for clip in sorted(clips, key=lambda clip: (clip.start_time, clip.clip_id)):
            if clip.start_time < cursor:
                clip.start_time = cursor
                cursor = clip.end_time

    @staticmethod
    def _slide(clips: list[Clip], old_anchor: float, new_anchor: float) -> None:
        # Spacing to the previous clip is preserved, zero included.
        previous_end, cursor = old_anchor, new_anchor
        for clip in sorted(clips, key=lambda clip: clip.start_time):
            spacing = clip.start_time - previous_end
            previous_end = clip.end_time
            clip.start_time = cursor + spacing
            cursor = clip.end_time

    def _positions_off_track(self, track_id: str) -> dict[str, tuple[float, float, str]]:
        return {
            clip.clip_id: (clip.start_time, clip.end_time, effective_track(clip))
            for clip in self._clips.values()
            if effective_track(clip) != track_id
        }

    def _audio_neighbors(self, clip: ExternalAudioClip) -> list[ExternalAudioClip]:
        return [
            other
            for other in self._clips.values()
            if isinstance(other, ExternalAudioClip)
            and other.clip_id != clip.clip_id
            and other.track_id == clip.track_id
        ]

    def _apply_resolution(self, resolution: AudioOverlapResolution) -> None:
        if resolution.is_empty():
            return
        removed = resolution.removed_ids
        changed = resolution.changed_ids
        rebuilt: dict[str, Clip] = {}
        for clip_id, clip in self._clips.items():
            fragments = resolution.replacements.get(clip_id)
            if fragments is None:
                rebuilt[clip_id] = clip
                continue
            for fragment in fragments:
                rebuilt[fragment.clip_id] = fragment
        self._clips = rebuilt

        for clip_id in removed:
            self.track_assignments.pop(clip_id, None)
        for fragment in resolution.added:
            self.track_assignments[fragment.clip_id] = fragment.track_id
        self._notify_removed(removed)
        self._notify_changed(changed)

    def _resize_audio(self, clip: ExternalAudioClip, duration: float) -> None:
        self._retrim_audio(clip, duration)
        self._apply_resolution(
            resolve_audio_overlaps(clip, clip.start_time, self._audio_neighbors(clip), self._new_clip_id)
        )

    @staticmethod
    def _retrim_audio(clip: ExternalAudioClip, duration: float) -> None:
        trim = clip.media_trim
        rate = trim.window / clip.duration if clip.duration > 0 else 1.0
        if rate > 0 and trim.original_duration > 0:
            available = (trim.original_duration - trim.start_offset) / rate
            duration = min(duration, max(available, MIN_CLIP_DURATION))
        clip.duration = duration
        clip.media_trim = MediaTrim(
            start_offset=trim.start_offset,
            end_offset=trim.start_offset + duration * rate,
            original_duration=trim.original_duration,
        )

    def _limit_to_next_clip(self, clip: Clip, duration: float) -> float:
        track_id = effective_track(clip)
        next_start = min(
            (
                other.start_time
                for other in self._clips.values()
                if other.clip_id != clip.clip_id
                and effective_track(other) == track_id
                and other.start_time >= clip.start_time
            ),
            default=None,
        )
        if next_start is None:
            return duration
        return max(min(duration, next_start - clip.start_time), MIN_CLIP_DURATION)

    def _notify_removed(self, clip_ids: list[str]) -> None:
        if not clip_ids:
            return
        for observer in self._observers:
            observer.clips_removed(list(clip_ids))

    def _notify_changed(self, clip_ids: list[str]) -> None:
        if not clip_ids:
            return
        for observer in self._observers:
            observer.clips_changed(list(clip_ids))


def _unique_id(candidate: str, existing: set[str]) -> str:
    if candidate not in existing:
        return candidate
    index = 2
    while f"{candidate}_{index}" in existing:
        index += 1
    return f"{candidate}_{index}"
