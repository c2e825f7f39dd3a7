import pytest
from pydantic import ValidationError

from storyboard_previs.config import PrevisSettings
from storyboard_previs.previs import Previs
from storyboard_previs.timeline.collaborators import TrackDefinition
from storyboard_previs.timeline.models import FrameRecord, MediaTrim


def _previs() -> Previs:
    previs = Previs(PrevisSettings(frame_rate=25))
    previs.build_timeline_from_storyboard(
        [
            FrameRecord(frame_id="f1", scene_number="1", shot_number="1", frame_number="1", media_ref="f1.png"),
            FrameRecord(frame_id="f2", scene_number="1", shot_number="2", frame_number="1", media_ref="f2.png"),
        ]
    )
    previs.add_external_clip(
        "audio",
        0.5,
        1.5,
        file_id="theme",
        source_url="theme.wav",
        file_name="theme.wav",
        media_trim=MediaTrim(2.0, 3.5, 8.0),
    )
    previs.update_clip_duration("clip_f1", 1.25)
    previs.tracks.register(TrackDefinition("video_2", priority=2, name="Overlay"))
    previs.set_zoom_level(1.5)
    previs.seek(0.75)
    return previs


def _layout(previs: Previs) -> list[tuple]:
    return [
        (clip.clip_id, clip.track_id, clip.start_time, clip.duration, clip.has_custom_duration)
        for clip in previs.clips
    ]


def test_payload_uses_camel_case_and_tagged_origins() -> None:
    data = _previs().get_timeline_data().model_dump(by_alias=True, mode="json")

    assert data["formatVersion"] == 2
    assert data["frameRate"] == 25
    assert data["zoomLevel"] == 1.5
    assert data["currentTime"] == 0.75
    first = data["clips"][0]
    assert first["origin"]["kind"] == "storyboard_frame"
    assert first["hasCustomDuration"] is True
    assert first["endTime"] == pytest.approx(first["startTime"] + first["duration"])
    audio = next(clip for clip in data["clips"] if clip["origin"]["kind"] == "external_media")
    assert audio["origin"]["mediaType"] == "audio"
    assert audio["mediaTrim"] == {"startOffset": 2.0, "endOffset": 3.5, "originalDuration": 8.0}
    assert {"clipId": "clip_f2", "trackId": "video_1"} in data["trackAssignments"]
    assert {"trackId": "video_2", "priority": 2, "name": "Overlay"} in data["tracks"]


def test_payload_round_trip_restores_every_field() -> None:
    source = _previs()
    data = source.get_timeline_data().model_dump(by_alias=True, mode="json")

    target = Previs()
    target.load_timeline_data(data)

    assert _layout(target) == _layout(source)
    assert target.total_duration == source.total_duration
    assert target.frame_rate == 25
    assert target.zoom_level == 1.5
    assert target.clock.current_time == 0.75
    assert target.tracks.priority_for("video_2") == 2
    assert target.store.track_assignments == source.store.track_assignments
    assert target.store.get_clip(source.clips[-1].clip_id).media_trim == MediaTrim(2.0, 3.5, 8.0)


def test_loading_defaults_only_missing_storyboard_track() -> None:
    previs = Previs()
    previs.load_timeline_data(
        {
            "formatVersion": 2,
            "clips": [
                {
                    "id": "c1",
                    "origin": {"kind": "storyboard_frame", "frameId": "f1", "sceneNumber": "1", "shotNumber": "1"},
                    "startTime": 7.0,
                    "duration": 0.05,
                }
            ],
            "totalDuration": 12.0,
        }
    )

    clip = previs.store.get_clip("c1")
    assert clip.track_id == "video_1"
    assert (clip.start_time, clip.duration) == (7.0, 0.05)
    assert previs.total_duration == 12.0
    assert previs.store.track_assignments == {"c1": "video_1"}


def test_invalid_payloads_are_rejected() -> None:
    previs = Previs()

    with pytest.raises(ValidationError):
        previs.load_timeline_data({"formatVersion": 2, "clips": [{"id": "x", "origin": {"kind": "sticker"}}]})
    with pytest.raises(ValueError):
        previs.load_timeline_data({"formatVersion": 9})


def test_loading_replaces_previous_track_definitions() -> None:
    previs = Previs()
    previs.tracks.register(TrackDefinition("video_2", priority=9, name="Stale"))

    previs.load_timeline_data({"formatVersion": 2, "tracks": [{"trackId": "video_3", "priority": 3}]})

    assert previs.tracks.get("video_2") is None
    assert previs.tracks.priority_for("video_2") == 2
    assert previs.tracks.priority_for("video_3") == 3
