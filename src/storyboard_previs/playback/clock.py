"""Playback clock: cursor advance, active-clip resolution and audio sync."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

import structlog

from storyboard_previs.config import DEFAULT_FRAME_RATE
from storyboard_previs.playback.audio import AudioHandle, AudioHandleFactory, silent_audio_factory
from storyboard_previs.timeline.collaborators import TrackRegistry
from storyboard_previs.timeline.models import (
    Clip,
    ExternalAudioClip,
    StoryboardClip,
    effective_track,
    is_visual,
)
from storyboard_previs.timeline.store import TimelineStore

logger = structlog.get_logger(__name__)

AUDIO_RESYNC_TOLERANCE = 0.1


class PlaybackState(str, Enum):
    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"


class PlaybackListener(Protocol):
    def on_time_update(self, current_time: float) -> None: ...

    def on_frame_change(self, clip: Clip | None) -> None: ...


@dataclass(slots=True)
class PlaybackSnapshot:
    current_time: float
    state: PlaybackState
    total_duration: float
    frame_rate: float
    looping: bool
    active_clip_id: str | None
    active_audio_clip_ids: list[str]


class PlaybackClock:
    def __init__(
        self,
        store: TimelineStore,
        track_registry: TrackRegistry | None = None,
        frame_rate: float = DEFAULT_FRAME_RATE,
        looping: bool = True,
        audio_factory: AudioHandleFactory | None = None,
        audio_volume: float = 1.0,
    ) -> None:
        if frame_rate <= 0:
            raise ValueError("frame_rate must be positive")
        self._store = store
        self._tracks = track_registry or TrackRegistry()
        self._audio_factory = audio_factory or silent_audio_factory
        self._audio_handles: dict[str, AudioHandle] = {}
        self._listeners: list[PlaybackListener] = []
        self.frame_rate = float(frame_rate)
        self.looping = looping
        self.audio_volume = min(max(audio_volume, 0.0), 1.0)
        self.current_time = 0.0
        self.state = PlaybackState.STOPPED
        store.subscribe(self)

    @property
    def is_playing(self) -> bool:
        return self.state is PlaybackState.PLAYING

    @property
    def frame_time(self) -> float:
        return 1.0 / self.frame_rate

    @property
    def audio_handles(self) -> dict[str, AudioHandle]:
        return dict(self._audio_handles)

    def subscribe(self, listener: PlaybackListener) -> None:
        self._listeners.append(listener)

    def play(self) -> None:
        if self.is_playing:
            return
        self.state = PlaybackState.PLAYING
        self._sync_audio()

    def pause(self) -> None:
        if self.state is PlaybackState.STOPPED:
            return
        self.state = PlaybackState.PAUSED
        self._sync_audio()

    def stop(self) -> None:
        """Halt at the current position and silence every audio handle."""
        self.state = PlaybackState.STOPPED
        self.stop_all_audio()

    def seek(self, time: float) -> None:
        self.current_time = min(max(float(time), 0.0), self._store.total_duration)
        self._update_frame()

    def tick(self) -> None:
        if not self.is_playing:
            return
        self.current_time += self.frame_time
        total = self._store.total_duration
        if self.current_time >= total:
            if not self.looping:
                self.current_time = total
                self.stop()
                return
            self.current_time = 0.0
            self.stop_all_audio()
        self._update_frame()

    def step_forward(self) -> None:
        clip = self.get_active_clip(self.current_time)
        if clip is not None:
            target = clip.end_time
        else:
            target = self.current_time + self.frame_time
        self.current_time = min(target, self._store.total_duration)
        self._update_frame()

    def step_backward(self) -> None:
        # From inside a clip go to its start; from its start go into the previous frame.
        clip = self.get_active_clip(self.current_time)
        if clip is not None and self.current_time > clip.start_time:
            target = clip.start_time
        elif clip is not None:
            target = clip.start_time - self.frame_time
        else:
            target = self.current_time - self.frame_time
        self.current_time = max(target, 0.0)
        self._update_frame()

    def get_active_clip(self, time: float) -> Clip | None:
        """Visual clip on the highest-priority track at ``time``, else any audio clip."""
        active = [clip for clip in self._store.clips if clip.start_time <= time < clip.end_time]
        visual = [clip for clip in active if is_visual(clip)]
        if visual:
            return max(visual, key=lambda clip: self._tracks.priority_for(effective_track(clip)))
        return active[0] if active else None

    def current_frame_media_ref(self) -> str | None:
        clip = self.get_active_clip(self.current_time)
        if clip is None:
            return None
        if isinstance(clip, StoryboardClip):
            return clip.origin.media_ref or None
        if isinstance(clip, ExternalAudioClip):
            return None
        return clip.origin.source_url or None

    def get_snapshot(self) -> PlaybackSnapshot:
        active = self.get_active_clip(self.current_time)
        return PlaybackSnapshot(
            current_time=self.current_time,
            state=self.state,
            total_duration=self._store.total_duration,
            frame_rate=self.frame_rate,
            looping=self.looping,
            active_clip_id=active.clip_id if active else None,
            active_audio_clip_ids=[clip.clip_id for clip in self._active_audio_clips()],
        )

    def set_frame_rate(self, frame_rate: float) -> None:
        if frame_rate <= 0:
            raise ValueError("frame_rate must be positive")
        self.frame_rate = float(frame_rate)

    def set_looping(self, looping: bool) -> None:
        self.looping = looping

    def set_audio_volume(self, volume: float) -> None:
        self.audio_volume = min(max(float(volume), 0.0), 1.0)
        for handle in self._audio_handles.values():
            handle.set_volume(self.audio_volume)

    def stop_all_audio(self) -> None:
        for handle in self._audio_handles.values():
            handle.pause()
            handle.seek(0.0)

    def clips_removed(self, clip_ids: list[str]) -> None:
        self._release_handles(clip_ids)

    def clips_changed(self, clip_ids: list[str]) -> None:
        # Trim windows may have moved; recreate the handle on next sync.
        self._release_handles(clip_ids)

    def _release_handles(self, clip_ids: list[str]) -> None:
        for clip_id in clip_ids:
            handle = self._audio_handles.pop(clip_id, None)
            if handle is None:
                continue
            handle.pause()
            handle.release()

    def _update_frame(self) -> None:
        for listener in self._listeners:
            listener.on_time_update(self.current_time)
        if self._listeners:
            clip = self.get_active_clip(self.current_time)
            for listener in self._listeners:
                listener.on_frame_change(clip)
        self._sync_audio()

    def _active_audio_clips(self) -> list[ExternalAudioClip]:
        return [
            clip
            for clip in self._store.clips
            if isinstance(clip, ExternalAudioClip) and clip.start_time <= self.current_time < clip.end_time
        ]

    def _sync_audio(self) -> None:
        active = self._active_audio_clips()
        active_ids = {clip.clip_id for clip in active}

        for clip_id, handle in self._audio_handles.items():
            if clip_id not in active_ids:
                handle.pause()
                handle.seek(0.0)

        for clip in active:
            handle = self._handle_for(clip)
            if handle is None:
                continue
            trim = clip.media_trim
            clip_position = self.current_time - clip.start_time
            audio_position = trim.start_offset + clip_position
            in_range = 0.0 <= clip_position <= clip.duration and trim.start_offset <= audio_position <= trim.end_offset
            if not (self.is_playing and in_range):
                if not handle.paused:
                    handle.pause()
                continue

            target = min(max(audio_position, trim.start_offset), trim.end_offset)
            try:
                if handle.paused:
                    handle.seek(target)
                    handle.play()
                elif abs(handle.position - target) > AUDIO_RESYNC_TOLERANCE:
                    handle.seek(target)
            except Exception as exc:
                logger.warning("previs.audio.play_failed", clip_id=clip.clip_id, error=str(exc))

    def _handle_for(self, clip: ExternalAudioClip) -> AudioHandle | None:
        handle = self._audio_handles.get(clip.clip_id)
        if handle is not None:
            return handle
        try:
            handle = self._audio_factory(clip)
        except Exception as exc:
            logger.warning("previs.audio.handle_failed", clip_id=clip.clip_id, error=str(exc))
            return None
        if handle is None:
            return None
        handle.set_volume(self.audio_volume)
        self._audio_handles[clip.clip_id] = handle
        return handle
