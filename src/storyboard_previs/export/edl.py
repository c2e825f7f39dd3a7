"""CMX3600-style edit decision list export."""

from __future__ import annotations

import re
from pathlib import PurePosixPath, PureWindowsPath
from typing import Iterable

from storyboard_previs.timeline.models import Clip, ExternalAudioClip, StoryboardClip, effective_track, is_visual
from storyboard_previs.timeline.timecode import format_timecode

REEL_WIDTH = 8
_TRACK_NUMBER = re.compile(r"^(?:video|audio)_(\d+)$")


def export_edl(
    clips: Iterable[Clip],
    frame_rate: float,
    title: str = "Storyboard Timeline",
    media_root: str | None = None,
) -> str:
    """Render visual events per video track, then audio events with their trim windows."""
    items = list(clips)
    if not items:
        raise ValueError("Timeline is empty")

    lines = [
        f"TITLE: {_escape(title)}",
        "FCM: NON-DROP FRAME",
        f"* FRAME RATE: {frame_rate:g}",
        "",
    ]
    event_number = 1
    visual = [clip for clip in items if is_visual(clip)]
    audio = [clip for clip in items if isinstance(clip, ExternalAudioClip)]

    for track_id, track_clips in _by_track(visual):
        for clip in track_clips:
            file_name = _file_name(clip)
            lines.extend(
                _event(
                    event_number,
                    file_name,
                    _video_label(track_id),
                    source_in=0.0,
                    source_out=clip.duration,
                    clip=clip,
                    frame_rate=frame_rate,
                    file_path=_file_path(media_root, "images", file_name),
                )
            )
            event_number += 1

    for track_id, track_clips in _by_track(audio):
        for clip in track_clips:
            file_name = _file_name(clip)
            trim = clip.media_trim
            lines.extend(
                _event(
                    event_number,
                    file_name,
                    f"A{_track_number(track_id)}",
                    source_in=trim.start_offset,
                    source_out=trim.end_offset,
                    clip=clip,
                    frame_rate=frame_rate,
                    file_path=_file_path(media_root, "audio", file_name),
                )
            )
            event_number += 1

    return "\n".join(lines) + "\n"


def reel_name(file_name: str) -> str:
    stem = PurePosixPath(file_name).stem or file_name
    return stem[:REEL_WIDTH].ljust(REEL_WIDTH)


def _event(
    event_number: int,
    file_name: str,
    track_label: str,
    *,
    source_in: float,
    source_out: float,
    clip: Clip,
    frame_rate: float,
    file_path: str,
) -> list[str]:
    timecodes = " ".join(
        format_timecode(value, frame_rate)
        for value in (source_in, source_out, clip.start_time, clip.end_time)
    )
    return [
        f"{event_number:03d}  {reel_name(file_name)} {track_label:<5} C        {timecodes}",
        f"* FROM CLIP NAME: {_escape(file_name)}",
        f"* TO CLIP NAME: {_escape(file_name)}",
        f"* FILE: {_escape(file_path)}",
        "",
    ]


def _by_track(clips: list[Clip]) -> list[tuple[str, list[Clip]]]:
    grouped: dict[str, list[Clip]] = {}
    for clip in clips:
        grouped.setdefault(effective_track(clip), []).append(clip)
    ordered = sorted(grouped.items(), key=lambda item: (_track_number(item[0]), item[0]))
    return [(track_id, sorted(items, key=lambda clip: clip.start_time)) for track_id, items in ordered]


def _track_number(track_id: str) -> int:
    match = _TRACK_NUMBER.match(track_id)
    return int(match.group(1)) if match else 1


def _video_label(track_id: str) -> str:
    number = _track_number(track_id)
    return "V" if number == 1 else f"V{number}"


def _file_name(clip: Clip) -> str:
    if isinstance(clip, StoryboardClip):
        raw = clip.origin.frame_id or "clip"
    else:
        raw = clip.origin.file_name or ("audio" if isinstance(clip, ExternalAudioClip) else "clip")
    return PureWindowsPath(raw).name or raw


def _file_path(media_root: str | None, folder: str, file_name: str) -> str:
    if media_root is None:
        return f"{folder}/{file_name}"
    root = media_root.replace("\\", "/").rstrip("/")
    return f"{root}/{folder}/{file_name}"


def _escape(text: str) -> str:
    return text.replace("\n", " ").replace("\r", "")
