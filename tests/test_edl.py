import pytest

from storyboard_previs.export.edl import export_edl, reel_name
from storyboard_previs.timeline.models import FrameRecord, MediaTrim
from storyboard_previs.timeline.store import TimelineStore


def _store() -> TimelineStore:
    store = TimelineStore()
    store.build(
        [
            FrameRecord(frame_id="sc01_sh01_a.png", scene_number="1", shot_number="1", frame_number="1"),
            FrameRecord(frame_id="sc01_sh02.png", scene_number="1", shot_number="2", frame_number="1"),
        ]
    )
    store.add_external_clip("image", 0.5, 1.0, track_id="video_2", file_name="C:\\art\\logo.png", clip_id="logo")
    store.add_external_clip(
        "audio",
        0.0,
        2.0,
        file_name="score.wav",
        media_trim=MediaTrim(1.5, 3.5, 10.0),
        clip_id="score",
    )
    return store


def test_edl_header_and_event_order() -> None:
    edl = export_edl(_store().clips, frame_rate=24, title="Pilot\nCut")
    lines = edl.splitlines()

    assert lines[:3] == ["TITLE: Pilot Cut", "FCM: NON-DROP FRAME", "* FRAME RATE: 24"]
    events = [line for line in lines if line[:3].isdigit()]
    assert [event.split()[0] for event in events] == ["001", "002", "003", "004"]
    assert [event.split()[-6] for event in events] == ["V", "V", "V2", "A1"]


def test_visual_events_use_record_times_and_still_source_range() -> None:
    edl = export_edl(_store().clips, frame_rate=24)
    lines = edl.splitlines()

    second = next(line for line in lines if line.startswith("002"))
    assert second.split()[-4:] == ["00:00:00:00", "00:00:01:00", "00:00:01:00", "00:00:02:00"]
    assert second[5:13] == "sc01_sh0"
    assert "* FROM CLIP NAME: sc01_sh02.png" in lines
    assert "* FILE: images/sc01_sh02.png" in lines
    assert "* TO CLIP NAME: logo.png" in lines


def test_audio_events_use_trim_window_as_source() -> None:
    edl = export_edl(_store().clips, frame_rate=24, media_root="D:\\exports\\pilot\\")
    audio = next(line for line in edl.splitlines() if line.startswith("004"))

    assert audio.split()[-4:] == ["00:00:01:12", "00:00:03:12", "00:00:00:00", "00:00:02:00"]
    assert "* FILE: D:/exports/pilot/audio/score.wav" in edl


def test_reel_name_is_stem_padded_to_eight_characters() -> None:
    assert reel_name("logo.png") == "logo    "
    assert reel_name("storyboard_frame.jpg") == "storyboa"


def test_empty_timeline_is_rejected() -> None:
    with pytest.raises(ValueError, match="empty"):
        export_edl([], frame_rate=24)
