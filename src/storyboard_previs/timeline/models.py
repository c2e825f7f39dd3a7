"""Timeline clip models.

Clips are a tagged union keyed by origin: storyboard frames, imported visual
media (video/image) and imported audio. Only audio clips carry a media trim
window, and only storyboard clips may be missing a track id before
normalization.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Literal

from storyboard_previs.config import MIN_CLIP_DURATION, PRIMARY_AUDIO_TRACK, PRIMARY_VIDEO_TRACK

ClipKind = Literal["video", "image", "audio"]

_LEADING_INT = re.compile(r"\s*([-+]?\d+)")


class MediaType(str, Enum):
    VIDEO = "video"
    IMAGE = "image"
    AUDIO = "audio"


def parse_number(value: Any) -> int:
    """Leading-integer parse used for scene/shot/frame numbers; garbage becomes 0."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    match = _LEADING_INT.match(str(value))
    if match is None:
        return 0
    return int(match.group(1))


def label(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def make_shot_key(scene_number: Any, shot_number: Any) -> str:
    return f"{label(scene_number)}_{label(shot_number)}"


@dataclass(slots=True)
class FrameRecord:
    frame_id: str
    scene_number: Any = ""
    shot_number: Any = ""
    frame_number: Any = ""
    media_ref: str = ""

    @property
    def sort_key(self) -> tuple[int, int, int]:
        return (
            parse_number(self.scene_number),
            parse_number(self.shot_number),
            parse_number(self.frame_number),
        )

    @property
    def shot_key(self) -> str:
        return make_shot_key(self.scene_number, self.shot_number)


@dataclass(frozen=True, slots=True)
class StoryboardOrigin:
    frame_id: str
    scene_number: str
    shot_number: str
    frame_number: str
    shot_key: str
    media_ref: str = ""


@dataclass(frozen=True, slots=True)
class ExternalMediaOrigin:
    file_id: str
    media_type: MediaType
    source_url: str = ""
    file_name: str = ""


@dataclass(frozen=True, slots=True)
class MediaTrim:
    start_offset: float
    end_offset: float
    original_duration: float

    @property
    def window(self) -> float:
        return self.end_offset - self.start_offset

    @staticmethod
    def full(duration: float) -> MediaTrim:
        return MediaTrim(start_offset=0.0, end_offset=duration, original_duration=duration)


class _TimedClip:
    __slots__ = ()

    start_time: float
    duration: float

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration


@dataclass(slots=True)
class StoryboardClip(_TimedClip):
    clip_id: str
    origin: StoryboardOrigin
    start_time: float
    duration: float
    track_id: str | None = PRIMARY_VIDEO_TRACK
    has_custom_duration: bool = False


@dataclass(slots=True)
class ExternalVisualClip(_TimedClip):
    clip_id: str
    origin: ExternalMediaOrigin
    track_id: str
    start_time: float
    duration: float
    has_custom_duration: bool = False

    def __post_init__(self) -> None:
        if self.origin.media_type is MediaType.AUDIO:
            raise ValueError("audio media must use ExternalAudioClip")


@dataclass(slots=True)
class ExternalAudioClip(_TimedClip):
    clip_id: str
    origin: ExternalMediaOrigin
    track_id: str
    start_time: float
    duration: float
    media_trim: MediaTrim
    has_custom_duration: bool = False

    def __post_init__(self) -> None:
        if self.origin.media_type is not MediaType.AUDIO:
            raise ValueError("ExternalAudioClip requires audio media")


Clip = StoryboardClip | ExternalVisualClip | ExternalAudioClip


def is_external(clip: Clip) -> bool:
    return not isinstance(clip, StoryboardClip)


def is_audio(clip: Clip) -> bool:
    return isinstance(clip, ExternalAudioClip)


def is_visual(clip: Clip) -> bool:
    return not isinstance(clip, ExternalAudioClip)


def clip_kind(clip: Clip) -> ClipKind:
    if isinstance(clip, StoryboardClip):
        return "video"
    return clip.origin.media_type.value


def default_track_for(clip: Clip) -> str:
    if isinstance(clip, ExternalAudioClip):
        return PRIMARY_AUDIO_TRACK
    return PRIMARY_VIDEO_TRACK


def effective_track(clip: Clip) -> str:
    return clip.track_id or default_track_for(clip)


def normalize_track_ids(clips: Iterable[Clip]) -> list[str]:
    """Give every storyboard clip a track id; returns the ids that were defaulted."""
    defaulted: list[str] = []
    for clip in clips:
        if isinstance(clip, StoryboardClip) and not clip.track_id:
            clip.track_id = PRIMARY_VIDEO_TRACK
            defaulted.append(clip.clip_id)
    return defaulted


def clamp_duration(duration: float) -> float:
    return max(float(duration), MIN_CLIP_DURATION)


def is_parsable_number(value: Any) -> bool:
    """Blank values count as parsable; they mean "unnumbered" and sort as 0."""
    if value is None or isinstance(value, (int, float)):
        return True
    text = str(value).strip()
    return not text or _LEADING_INT.match(text) is not None
