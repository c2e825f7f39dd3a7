"""Timeline payload migration helpers."""

from __future__ import annotations

import re
from copy import deepcopy
from typing import Any

import structlog

from storyboard_previs.config import DEFAULT_FRAME_RATE, PRIMARY_AUDIO_TRACK, PRIMARY_VIDEO_TRACK
from storyboard_previs.project.schema import FORMAT_VERSION, TimelinePayload
from storyboard_previs.timeline.models import label, make_shot_key

logger = structlog.get_logger(__name__)

_TRACK_NUMBER = re.compile(r"_(\d+)$")
_LEGACY_MEDIA_TYPES = {"video", "image", "audio"}


def migrate_payload(payload_data: dict[str, Any]) -> TimelinePayload:
    """Validate a saved timeline, upgrading the flat version 1 layout first."""
    original = deepcopy(payload_data)
    format_version = int(original.get("formatVersion", original.get("format_version", _guess_version(original))))

    if format_version == FORMAT_VERSION:
        return TimelinePayload.model_validate(original)
    if format_version != 1:
        raise ValueError(f"Unsupported formatVersion={format_version}")

    legacy_clips = original.get("timeline") or []
    assignments = [
        {"clipId": str(item["clipId"]), "trackId": str(item["trackId"])}
        for item in original.get("clipTrackAssignments") or []
        if isinstance(item, dict) and item.get("clipId") and item.get("trackId")
    ]
    assigned = {item["clipId"]: item["trackId"] for item in assignments}

    clips = [_migrate_clip(clip, assigned) for clip in legacy_clips if isinstance(clip, dict)]
    tracks = [
        _migrate_track(track, index)
        for group in ("videoTracks", "audioTracks")
        for index, track in enumerate(original.get(group) or [])
        if isinstance(track, dict) and track.get("id")
    ]

    migrated = TimelinePayload.model_validate(
        {
            "formatVersion": FORMAT_VERSION,
            "clips": clips,
            "currentTime": original.get("currentTime") or 0.0,
            "frameRate": original.get("frameRate") or DEFAULT_FRAME_RATE,
            "totalDuration": original.get("totalDuration") or 0.0,
            "zoomLevel": original.get("zoomLevel") or 1.0,
            "trackAssignments": assignments,
            "tracks": tracks,
        }
    )
    logger.info("previs.payload.migrated", from_version=1, to_version=FORMAT_VERSION, clips=len(clips))
    return migrated


def _guess_version(payload_data: dict[str, Any]) -> int:
    return 1 if "timeline" in payload_data else FORMAT_VERSION


def _migrate_clip(clip: dict[str, Any], assigned: dict[str, str]) -> dict[str, Any]:
    clip_id = str(clip.get("id", ""))
    start_time = float(clip.get("startTime") or 0.0)
    duration = float(clip.get("duration") or 0.0)
    migrated: dict[str, Any] = {
        "id": clip_id,
        "trackId": clip.get("trackId") or assigned.get(clip_id),
        "startTime": start_time,
        "duration": duration,
        "endTime": clip.get("endTime", start_time + duration),
        "hasCustomDuration": bool(clip.get("customDuration")),
    }

    if clip.get("isExternalFile") is not True:
        frame_id = str(clip.get("imageId") or clip_id.removeprefix("clip_"))
        migrated["origin"] = {
            "kind": "storyboard_frame",
            "frameId": frame_id,
            "sceneNumber": label(clip.get("sceneNumber")),
            "shotNumber": label(clip.get("shotNumber")),
            "frameNumber": label(clip.get("frameNumber")),
            "shotKey": clip.get("shotKey") or make_shot_key(clip.get("sceneNumber"), clip.get("shotNumber")),
            "mediaRef": clip.get("imageUrl") or clip.get("thumbnail") or "",
        }
        return migrated

    file_type = str(clip.get("fileType") or "").lower()
    if file_type not in _LEGACY_MEDIA_TYPES:
        raise ValueError(f"Unsupported fileType '{file_type}' on clip '{clip_id}'")
    migrated["origin"] = {
        "kind": "external_media",
        "fileId": str(clip.get("fileId") or clip_id),
        "mediaType": file_type,
        "sourceUrl": clip.get("fileUrl") or "",
        "fileName": clip.get("fileName") or "",
    }
    if not migrated["trackId"]:
        migrated["trackId"] = PRIMARY_AUDIO_TRACK if file_type == "audio" else PRIMARY_VIDEO_TRACK
    if file_type == "audio":
        original_duration = float(clip.get("originalAudioDuration") or duration)
        migrated["mediaTrim"] = {
            "startOffset": float(clip.get("audioStartOffset") or 0.0),
            "endOffset": float(clip.get("audioEndOffset") or original_duration),
            "originalDuration": original_duration,
        }
    return migrated


def _migrate_track(track: dict[str, Any], index: int) -> dict[str, Any]:
    track_id = str(track["id"])
    priority = track.get("trackNumber")
    if not priority:
        match = _TRACK_NUMBER.search(track_id)
        priority = int(match.group(1)) if match else index + 1
    return {"trackId": track_id, "priority": int(priority), "name": str(track.get("name") or "")}
