from itertools import count

from fastapi.testclient import TestClient

from storyboard_previs.api.server import create_app
from storyboard_previs.previs import Previs

FRAMES = [
    {"frame_id": "f1", "scene_number": "1", "shot_number": "1", "frame_number": "1", "media_ref": "f1.png"},
    {"frame_id": "f2", "scene_number": "1", "shot_number": "1", "frame_number": "2", "media_ref": "f2.png"},
    {"frame_id": "f3", "scene_number": "1", "shot_number": "2", "frame_number": "1", "media_ref": "f3.png"},
]


def _client() -> TestClient:
    ids = count(1)
    return TestClient(create_app(Previs(clip_id_factory=lambda: f"media_{next(ids)}")))


def _built_client() -> TestClient:
    client = _client()
    response = client.post("/v1/timeline/build", json={"frames": FRAMES})
    assert response.status_code == 200
    return client


def test_root_and_favicon_endpoints() -> None:
    client = _client()

    root_response = client.get("/")
    assert root_response.status_code == 200
    assert root_response.json()["status"] == "ok"
    assert root_response.json()["docs"] == "/docs"

    favicon_response = client.get("/favicon.ico")
    assert favicon_response.status_code == 204


def test_build_endpoint_returns_sequenced_clips() -> None:
    client = _client()

    response = client.post("/v1/timeline/build", json={"frames": FRAMES})
    body = response.json()

    assert response.status_code == 200
    assert [clip["id"] for clip in body["clips"]] == ["clip_f1", "clip_f2", "clip_f3"]
    assert [clip["startTime"] for clip in body["clips"]] == [0.0, 1.0, 2.0]
    assert body["clips"][0]["origin"]["kind"] == "storyboard_frame"
    assert abs(body["total_duration"] - 3.15) < 1e-9


def test_clip_mutations_and_not_found() -> None:
    client = _built_client()

    moved = client.post("/v1/timeline/clips/clip_f3/move", json={"start_time": 0.0})
    resized = client.post("/v1/timeline/clips/clip_f1/duration", json={"duration": 2.0})
    deleted = client.delete("/v1/timeline/clips/clip_f2")

    assert moved.status_code == 200
    assert resized.json()["ok"] is True
    assert deleted.status_code == 200
    assert client.post("/v1/timeline/clips/nope/move", json={"start_time": 1.0}).status_code == 404
    assert client.post("/v1/timeline/clips/nope/duration", json={"duration": 1.0}).status_code == 404
    assert client.delete("/v1/timeline/clips/nope").status_code == 404
    assert client.post("/v1/timeline/clips/clip_f1/move", json={"start_time": -1.0}).status_code == 422

    clips = {clip["id"]: clip for clip in client.get("/v1/timeline").json()["clips"]}
    assert clips["clip_f3"]["startTime"] == 2.0


def test_scale_shot_endpoint() -> None:
    client = _built_client()

    response = client.post("/v1/timeline/shots/scale", json={"scene_number": "1", "shot_number": "1", "total_seconds": 4.0})
    missing = client.post("/v1/timeline/shots/scale", json={"scene_number": "7", "shot_number": "1", "total_seconds": 4.0})

    assert response.status_code == 200
    assert missing.status_code == 404
    clips = {clip["id"]: clip for clip in client.get("/v1/timeline").json()["clips"]}
    assert clips["clip_f3"]["startTime"] == 4.0
    assert clips["clip_f1"]["hasCustomDuration"] is True


def test_media_endpoint_adds_audio_with_trim() -> None:
    client = _built_client()

    response = client.post(
        "/v1/timeline/media",
        json={
            "media_type": "audio",
            "start_time": 0.5,
            "duration": 2.0,
            "source_url": "theme.wav",
            "media_start_offset": 1.0,
            "media_end_offset": 3.0,
            "media_original_duration": 9.0,
        },
    )
    body = response.json()

    assert response.status_code == 200
    assert body["clip"]["id"] == "media_1"
    assert body["clip"]["trackId"] == "audio_1"
    assert body["clip"]["mediaTrim"] == {"startOffset": 1.0, "endOffset": 3.0, "originalDuration": 9.0}
    assert client.post("/v1/timeline/media", json={"media_type": "audio", "start_time": 0.0}).status_code == 422
    assert client.post("/v1/timeline/media", json={"media_type": "gif", "duration": 1.0}).status_code == 422


def test_snap_endpoint() -> None:
    client = _built_client()

    snapped = client.post("/v1/timeline/snap", json={"time": 1.04})
    missing = client.post("/v1/timeline/snap", json={"time": 1.0, "moving_clip_id": "ghost"})

    assert snapped.status_code == 200
    assert abs(snapped.json()["time"] - 1.0) < 1e-9
    assert missing.status_code == 404


def test_timeline_put_accepts_legacy_and_rejects_bad_payloads() -> None:
    client = _client()
    legacy = {
        "timeline": [
            {"id": "clip_a", "imageId": "a", "sceneNumber": "1", "shotNumber": "1", "startTime": 0, "duration": 2},
        ],
        "frameRate": 30,
    }

    response = client.put("/v1/timeline", json=legacy)
    body = response.json()

    assert response.status_code == 200
    assert body["formatVersion"] == 2
    assert body["frameRate"] == 30
    assert body["clips"][0]["trackId"] == "video_1"
    assert client.put("/v1/timeline", json={"formatVersion": 7}).status_code == 400
    assert client.put("/v1/timeline", json={"formatVersion": 2, "frameRate": 0}).status_code == 422


def test_playback_seek_and_snapshot() -> None:
    client = _built_client()

    response = client.post("/v1/playback/seek", json={"time": 1.5})
    body = response.json()

    assert response.status_code == 200
    assert body["current_time"] == 1.5
    assert body["state"] == "stopped"
    assert body["active_clip_id"] == "clip_f2"
    assert body["timecode"] == "00:00:01:12"
    assert client.get("/v1/playback").json()["current_time"] == 1.5


def test_edl_endpoint_returns_plain_text() -> None:
    empty = _client().get("/v1/timeline/edl")
    assert empty.status_code == 400

    response = _built_client().get("/v1/timeline/edl", params={"title": "Pilot"})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text.startswith("TITLE: Pilot\nFCM: NON-DROP FRAME\n")


def test_ripple_and_history_endpoints() -> None:
    client = _built_client()

    rippled = client.post("/v1/timeline/clips/clip_f1/ripple", json={"duration": 2.0})
    assert rippled.status_code == 200
    assert client.post("/v1/timeline/clips/nope/ripple", json={"duration": 1.0}).status_code == 404
    clips = {clip["id"]: clip for clip in client.get("/v1/timeline").json()["clips"]}
    assert clips["clip_f3"]["startTime"] == 3.0

    assert client.post("/v1/timeline/undo").status_code == 200
    clips = {clip["id"]: clip for clip in client.get("/v1/timeline").json()["clips"]}
    assert clips["clip_f3"]["startTime"] == 2.0
    assert client.post("/v1/timeline/redo").status_code == 200
    assert client.post("/v1/timeline/redo").status_code == 409
    assert _client().post("/v1/timeline/undo").status_code == 409


def test_close_gap_endpoint() -> None:
    client = _client()
    client.post("/v1/timeline/media", json={"media_type": "image", "start_time": 0.0, "duration": 1.0, "track_id": "video_2"})
    client.post("/v1/timeline/media", json={"media_type": "image", "start_time": 3.0, "duration": 1.0, "track_id": "video_2"})

    response = client.post("/v1/timeline/tracks/video_2/close-gap", json={"time": 2.0})
    missing = client.post("/v1/timeline/tracks/video_2/close-gap", json={"time": 0.5})

    assert response.status_code == 200
    assert response.json()["closed"] == 2.0
    assert missing.status_code == 400
    clips = {clip["id"]: clip for clip in client.get("/v1/timeline").json()["clips"]}
    assert clips["media_2"]["startTime"] == 1.0
