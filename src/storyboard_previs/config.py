"""Runtime settings loaded from STORYBOARD_PREVIS_* environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass

PRIMARY_VIDEO_TRACK = "video_1"
PRIMARY_AUDIO_TRACK = "audio_1"
MIN_CLIP_DURATION = 0.1
DEFAULT_FRAME_DURATION = 1.0
DEFAULT_FRAME_RATE = 24.0
HISTORY_LIMIT = 50

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(slots=True)
class PrevisSettings:
    frame_rate: float = DEFAULT_FRAME_RATE
    looping: bool = True
    snap_enabled: bool = True
    snap_to_frames: bool = True
    snap_to_clips: bool = True
    default_frame_duration: float = DEFAULT_FRAME_DURATION
    audio_volume: float = 1.0
    history_limit: int = HISTORY_LIMIT
    log_level: str = "INFO"

    def validate(self) -> None:
        if self.frame_rate <= 0:
            raise ValueError("frame_rate must be positive")
        if self.default_frame_duration < MIN_CLIP_DURATION:
            raise ValueError(f"default_frame_duration must be >= {MIN_CLIP_DURATION}")
        if not (0.0 <= self.audio_volume <= 1.0):
            raise ValueError("audio_volume must be in range [0,1]")
        if self.history_limit < 1:
            raise ValueError("history_limit must be >= 1")

    @staticmethod
    def from_env() -> PrevisSettings:
        frame_rate = _env_float("STORYBOARD_PREVIS_FRAME_RATE", DEFAULT_FRAME_RATE)
        if frame_rate <= 0:
            frame_rate = DEFAULT_FRAME_RATE
        frame_duration = _env_float("STORYBOARD_PREVIS_DEFAULT_FRAME_DURATION", DEFAULT_FRAME_DURATION)
        volume = _env_float("STORYBOARD_PREVIS_AUDIO_VOLUME", 1.0)
        history_limit = _env_int("STORYBOARD_PREVIS_HISTORY_LIMIT", HISTORY_LIMIT)
        return PrevisSettings(
            frame_rate=frame_rate,
            looping=_env_bool("STORYBOARD_PREVIS_LOOP", True),
            snap_enabled=_env_bool("STORYBOARD_PREVIS_SNAP", True),
            snap_to_frames=_env_bool("STORYBOARD_PREVIS_SNAP_TO_FRAMES", True),
            snap_to_clips=_env_bool("STORYBOARD_PREVIS_SNAP_TO_CLIPS", True),
            default_frame_duration=max(frame_duration, MIN_CLIP_DURATION),
            audio_volume=min(max(volume, 0.0), 1.0),
            history_limit=history_limit if history_limit >= 1 else HISTORY_LIMIT,
            log_level=os.getenv("STORYBOARD_PREVIS_LOG_LEVEL", "INFO").strip().upper() or "INFO",
        )


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    return default
