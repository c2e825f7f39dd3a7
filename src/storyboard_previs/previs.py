"""Public facade over the timeline store, playback clock and payload helpers."""

from __future__ import annotations

from typing import Any, Iterable

from storyboard_previs.config import PrevisSettings
from storyboard_previs.export.edl import export_edl
from storyboard_previs.playback.audio import AudioHandleFactory
from storyboard_previs.playback.clock import PlaybackClock, PlaybackSnapshot
from storyboard_previs.project.migration import migrate_payload
from storyboard_previs.project.payload import dump_timeline, load_timeline
from storyboard_previs.project.schema import TimelinePayload
from storyboard_previs.timeline.collaborators import InMemoryShotDurationStore, ShotDurationStore, TrackRegistry
from storyboard_previs.timeline.history import TimelineHistory, TimelineSnapshot
from storyboard_previs.timeline.models import Clip, FrameRecord, MediaTrim, MediaType
from storyboard_previs.timeline.snapping import SnapSettings, snap_time
from storyboard_previs.timeline.store import ClipIdFactory, TimelineStore
from storyboard_previs.timeline.timecode import TimeDisplayMode, format_time


class Previs:
    def __init__(
        self,
        settings: PrevisSettings | None = None,
        shot_durations: ShotDurationStore | None = None,
        track_registry: TrackRegistry | None = None,
        audio_factory: AudioHandleFactory | None = None,
        clip_id_factory: ClipIdFactory | None = None,
    ) -> None:
        self.settings = settings or PrevisSettings()
        self.settings.validate()
        self.shot_durations = shot_durations or InMemoryShotDurationStore(self.settings.frame_rate)
        self.tracks = track_registry or TrackRegistry()
        self.store = TimelineStore(
            shot_durations=self.shot_durations,
            default_frame_duration=self.settings.default_frame_duration,
            clip_id_factory=clip_id_factory,
        )
        self.history = TimelineHistory(self.settings.history_limit)
        self.clock = PlaybackClock(
            self.store,
            track_registry=self.tracks,
            frame_rate=self.settings.frame_rate,
            looping=self.settings.looping,
            audio_factory=audio_factory,
            audio_volume=self.settings.audio_volume,
        )
        self.snap = SnapSettings(
            enabled=self.settings.snap_enabled,
            to_frames=self.settings.snap_to_frames,
            to_clips=self.settings.snap_to_clips,
        )
        self.zoom_level = 1.0
        self.time_display_mode: TimeDisplayMode = "timecode"

    @property
    def clips(self) -> list[Clip]:
        return self.store.clips

    @property
    def total_duration(self) -> float:
        return self.store.total_duration

    @property
    def frame_rate(self) -> float:
        return self.clock.frame_rate

    def build_timeline_from_storyboard(self, frames: Iterable[FrameRecord]) -> list[Clip]:
        before = self._capture()
        clips = self.store.build(frames)
        self.history.record(before)
        self.clock.seek(self.clock.current_time)
        return clips

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
    ) -> Clip:
        before = self._capture()
        clip = self.store.add_external_clip(
            media_type,
            start_time,
            duration,
            track_id=track_id,
            file_id=file_id,
            source_url=source_url,
            file_name=file_name,
            media_trim=media_trim,
        )
        self.history.record(before)
        return clip

    def move_clip(self, clip_id: str, proposed_start_time: float) -> bool:
        before = self._capture()
        return self._record(before, self.store.move_clip(clip_id, proposed_start_time))

    def update_clip_duration(self, clip_id: str, new_duration: float) -> bool:
        before = self._capture()
        return self._record(before, self.store.update_clip_duration(clip_id, new_duration))

    def scale_shot_duration(self, scene_number: str, shot_number: str, new_total_seconds: float) -> bool:
        before = self._capture()
        return self._record(before, self.store.scale_shot_duration(scene_number, shot_number, new_total_seconds))

    def delete_clip(self, clip_id: str) -> bool:
        before = self._capture()
        return self._record(before, self.store.delete_clip(clip_id))

    def ripple_edit(self, clip_id: str, new_duration: float) -> bool:
        before = self._capture()
        return self._record(before, self.store.ripple_edit(clip_id, new_duration))

    def close_gap(self, track_id: str, time: float) -> float:
        before = self._capture()
        closed = self.store.close_gap(track_id, time)
        self._record(before, closed > 0)
        return closed

    def undo(self) -> bool:
        snapshot = self.history.undo(self._capture())
        if snapshot is None:
            return False
        self._apply_snapshot(snapshot)
        return True

    def redo(self) -> bool:
        snapshot = self.history.redo(self._capture())
        if snapshot is None:
            return False
        self._apply_snapshot(snapshot)
        return True

    def recalculate_timeline_positions(self, track_id: str | None = None) -> None:
        self.store.recalculate_timeline_positions(track_id)

    def snap_time(self, time: float, moving_clip_id: str | None = None) -> float:
        moving = self.store.get_clip(moving_clip_id) if moving_clip_id else None
        return snap_time(
            time,
            self.store.clips,
            self.clock.frame_rate,
            self.store.total_duration,
            moving_clip=moving,
            settings=self.snap,
        )

    def set_snap_enabled(self, enabled: bool) -> None:
        self.snap.enabled = enabled

    def set_snap_to_frames(self, enabled: bool) -> None:
        self.snap.to_frames = enabled

    def set_snap_to_clips(self, enabled: bool) -> None:
        self.snap.to_clips = enabled

    def set_frame_rate(self, frame_rate: float) -> None:
        self.clock.set_frame_rate(frame_rate)
        if isinstance(self.shot_durations, InMemoryShotDurationStore):
            self.shot_durations.frame_rate = self.clock.frame_rate

    def set_zoom_level(self, zoom_level: float) -> None:
        if zoom_level <= 0:
            raise ValueError("zoom_level must be positive")
        self.zoom_level = zoom_level

    def set_time_display_mode(self, mode: TimeDisplayMode) -> None:
        if mode not in ("timecode", "frames"):
            raise ValueError(f"Unsupported time display mode '{mode}'")
        self.time_display_mode = mode

    def format_time(self, seconds: float | None = None) -> str:
        value = self.clock.current_time if seconds is None else seconds
        return format_time(value, self.clock.frame_rate, self.time_display_mode)

    def get_timeline_data(self) -> TimelinePayload:
        return dump_timeline(
            self.store,
            self.tracks,
            current_time=self.clock.current_time,
            frame_rate=self.clock.frame_rate,
            zoom_level=self.zoom_level,
        )

    def load_timeline_data(self, data: TimelinePayload | dict[str, Any]) -> TimelinePayload:
        payload = data if isinstance(data, TimelinePayload) else migrate_payload(data)
        self.clock.stop()
        load_timeline(payload, self.store, self.tracks)
        self.history.clear()
        self.set_frame_rate(payload.frame_rate)
        self.clock.current_time = payload.current_time
        self.zoom_level = payload.zoom_level
        return payload

    def export_edl(self, title: str = "Storyboard Timeline", media_root: str | None = None) -> str:
        return export_edl(self.store.clips, self.clock.frame_rate, title=title, media_root=media_root)

    def play(self) -> None:
        self.clock.play()

    def pause(self) -> None:
        self.clock.pause()

    def toggle_playback(self) -> None:
        if self.clock.is_playing:
            self.clock.pause()
        else:
            self.clock.play()

    def stop(self) -> None:
        self.clock.stop()

    def seek(self, time: float) -> None:
        self.clock.seek(time)

    def tick(self) -> None:
        self.clock.tick()

    def step_forward(self) -> None:
        self.clock.step_forward()

    def step_backward(self) -> None:
        self.clock.step_backward()

    def get_active_clip(self, time: float | None = None) -> Clip | None:
        return self.clock.get_active_clip(self.clock.current_time if time is None else time)

    def current_frame_media_ref(self) -> str | None:
        return self.clock.current_frame_media_ref()

    def get_snapshot(self) -> PlaybackSnapshot:
        return self.clock.get_snapshot()

    def set_looping(self, looping: bool) -> None:
        self.clock.set_looping(looping)

    def set_audio_volume(self, volume: float) -> None:
        self.clock.set_audio_volume(volume)

    def _capture(self) -> TimelineSnapshot:
        return self.store.snapshot(self.clock.current_time)

    def _record(self, before: TimelineSnapshot, changed: bool) -> bool:
        if changed:
            self.history.record(before)
        return changed

    def _apply_snapshot(self, snapshot: TimelineSnapshot) -> None:
        self.store.restore_snapshot(snapshot)
        self.clock.seek(snapshot.current_time)
