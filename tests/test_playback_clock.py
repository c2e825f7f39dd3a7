import pytest
from structlog.testing import capture_logs

from storyboard_previs.playback.audio import SilentAudioHandle
from storyboard_previs.playback.clock import PlaybackClock, PlaybackState
from storyboard_previs.timeline.collaborators import TrackDefinition, TrackRegistry
from storyboard_previs.timeline.models import ExternalAudioClip, FrameRecord, MediaTrim
from storyboard_previs.timeline.store import TimelineStore


class _RecordingFactory:
    def __init__(self) -> None:
        self.handles: dict[str, SilentAudioHandle] = {}

    def __call__(self, clip: ExternalAudioClip) -> SilentAudioHandle:
        handle = SilentAudioHandle(clip.origin.source_url)
        self.handles[clip.clip_id] = handle
        return handle


class _BrokenHandle(SilentAudioHandle):
    def play(self) -> None:
        raise RuntimeError("decoder unavailable")


def _store() -> TimelineStore:
    store = TimelineStore()
    store.build(
        [
            FrameRecord(frame_id="f1", scene_number="1", shot_number="1", frame_number="1", media_ref="f1.png"),
            FrameRecord(frame_id="f2", scene_number="1", shot_number="1", frame_number="2", media_ref="f2.png"),
        ]
    )
    return store


def _with_audio(store: TimelineStore) -> None:
    store.add_external_clip(
        "audio",
        1.0,
        2.0,
        clip_id="music",
        source_url="music.wav",
        media_trim=MediaTrim(2.0, 4.0, 10.0),
    )


def test_tick_advances_one_frame_while_playing() -> None:
    clock = PlaybackClock(_store(), frame_rate=10)

    clock.tick()
    assert clock.current_time == 0.0

    clock.play()
    clock.tick()
    clock.tick()

    assert clock.current_time == pytest.approx(0.2)
    assert clock.state is PlaybackState.PLAYING


def test_tick_past_end_loops_to_start() -> None:
    store = _store()
    clock = PlaybackClock(store, frame_rate=10, looping=True)
    clock.seek(2.05)
    clock.play()

    clock.tick()

    assert clock.current_time == 0.0
    assert clock.is_playing


def test_tick_past_end_without_loop_stops_at_total() -> None:
    store = _store()
    clock = PlaybackClock(store, frame_rate=10, looping=False)
    clock.seek(2.05)
    clock.play()

    clock.tick()

    assert clock.current_time == store.total_duration
    assert clock.state is PlaybackState.STOPPED


def test_state_machine_transitions() -> None:
    clock = PlaybackClock(_store())

    clock.pause()
    assert clock.state is PlaybackState.STOPPED
    clock.play()
    clock.pause()
    assert clock.state is PlaybackState.PAUSED
    clock.play()
    assert clock.state is PlaybackState.PLAYING
    clock.stop()
    assert clock.state is PlaybackState.STOPPED


def test_seek_is_clamped_in_any_state() -> None:
    store = _store()
    clock = PlaybackClock(store)

    clock.seek(-4.0)
    assert clock.current_time == 0.0
    clock.play()
    clock.seek(99.0)
    assert clock.current_time == store.total_duration


def test_active_clip_prefers_highest_priority_visual_track() -> None:
    store = _store()
    _with_audio(store)
    store.add_external_clip("image", 0.5, 1.0, track_id="video_2", clip_id="overlay")
    clock = PlaybackClock(store)

    assert clock.get_active_clip(1.0).clip_id == "overlay"
    assert clock.get_active_clip(1.7).clip_id == "clip_f2"
    assert clock.get_active_clip(2.5).clip_id == "music"
    assert clock.get_active_clip(3.1) is None

    ranked = PlaybackClock(store, track_registry=TrackRegistry([TrackDefinition("video_1", priority=9)]))
    assert ranked.get_active_clip(1.0).clip_id == "clip_f2"


def test_step_forward_and_backward_use_clip_boundaries() -> None:
    store = _store()
    clock = PlaybackClock(store, frame_rate=10)

    clock.seek(0.2)
    clock.step_forward()
    assert clock.current_time == pytest.approx(1.0)

    clock.seek(1.5)
    clock.step_backward()
    assert clock.current_time == pytest.approx(1.0)
    clock.step_backward()
    assert clock.current_time == pytest.approx(0.9)

    clock.seek(store.total_duration)
    clock.step_backward()
    assert clock.current_time == pytest.approx(store.total_duration - 0.1)


def test_audio_starts_at_trim_offset_and_resyncs_on_drift() -> None:
    store = _store()
    _with_audio(store)
    factory = _RecordingFactory()
    clock = PlaybackClock(store, frame_rate=10, audio_factory=factory)

    clock.seek(1.5)
    clock.play()
    handle = factory.handles["music"]
    assert not handle.paused
    assert handle.position == pytest.approx(2.5)

    handle.seek(2.55)
    clock.seek(1.5)
    assert handle.position == pytest.approx(2.55)

    clock.seek(2.5)
    assert handle.position == pytest.approx(3.5)


def test_audio_pauses_without_reset_and_resets_when_inactive() -> None:
    store = _store()
    _with_audio(store)
    factory = _RecordingFactory()
    clock = PlaybackClock(store, frame_rate=10, audio_factory=factory)
    clock.seek(1.5)
    clock.play()
    handle = factory.handles["music"]

    clock.pause()
    assert handle.paused
    assert handle.position == pytest.approx(2.5)

    clock.play()
    clock.seek(0.5)
    assert handle.paused
    assert handle.position == 0.0


def test_stop_silences_every_handle() -> None:
    store = _store()
    _with_audio(store)
    factory = _RecordingFactory()
    clock = PlaybackClock(store, audio_factory=factory)
    clock.seek(2.0)
    clock.play()

    clock.stop()

    handle = factory.handles["music"]
    assert handle.paused
    assert handle.position == 0.0


def test_audio_failure_is_logged_and_clock_keeps_running() -> None:
    store = _store()
    _with_audio(store)
    clock = PlaybackClock(store, frame_rate=10, audio_factory=lambda clip: _BrokenHandle(clip.origin.source_url))
    clock.seek(1.5)

    with capture_logs() as logs:
        clock.play()
        clock.tick()

    assert clock.is_playing
    assert clock.current_time == pytest.approx(1.6)
    assert logs[0]["event"] == "previs.audio.play_failed"
    assert logs[0]["clip_id"] == "music"


def test_handle_factory_failure_is_logged() -> None:
    store = _store()
    _with_audio(store)

    def _factory(clip: ExternalAudioClip) -> SilentAudioHandle:
        raise OSError("missing file")

    clock = PlaybackClock(store, audio_factory=_factory)
    with capture_logs() as logs:
        clock.seek(1.5)

    assert clock.audio_handles == {}
    assert logs[0]["event"] == "previs.audio.handle_failed"


def test_deleted_clip_releases_its_handle() -> None:
    store = _store()
    _with_audio(store)
    factory = _RecordingFactory()
    clock = PlaybackClock(store, audio_factory=factory)
    clock.seek(1.5)
    handle = factory.handles["music"]

    store.delete_clip("music")

    assert handle.released
    assert "music" not in clock.audio_handles


def test_volume_is_clamped_and_applied_to_live_handles() -> None:
    store = _store()
    _with_audio(store)
    factory = _RecordingFactory()
    clock = PlaybackClock(store, audio_factory=factory, audio_volume=0.5)
    clock.seek(1.5)
    assert factory.handles["music"].volume == 0.5

    clock.set_audio_volume(1.7)

    assert clock.audio_volume == 1.0
    assert factory.handles["music"].volume == 1.0


def test_listeners_and_snapshot_follow_the_cursor() -> None:
    store = _store()
    _with_audio(store)
    clock = PlaybackClock(store)
    times: list[float] = []
    frames: list[str | None] = []

    class _Listener:
        def on_time_update(self, current_time: float) -> None:
            times.append(current_time)

        def on_frame_change(self, clip: object) -> None:
            frames.append(getattr(clip, "clip_id", None))

    clock.subscribe(_Listener())
    clock.seek(1.5)

    assert times == [1.5]
    assert frames == ["clip_f2"]
    assert clock.current_frame_media_ref() == "f2.png"
    snapshot = clock.get_snapshot()
    assert snapshot.active_clip_id == "clip_f2"
    assert snapshot.active_audio_clip_ids == ["music"]
    assert snapshot.state is PlaybackState.STOPPED


def test_invalid_frame_rate_is_rejected() -> None:
    clock = PlaybackClock(_store())

    with pytest.raises(ValueError):
        clock.set_frame_rate(0)
    with pytest.raises(ValueError):
        PlaybackClock(TimelineStore(), frame_rate=-1)
