"""Timecode and frame-count formatting."""

from __future__ import annotations

import math
from typing import Literal

TimeDisplayMode = Literal["timecode", "frames"]


def seconds_to_frames(seconds: float, frame_rate: float) -> int:
    return int(math.floor(max(seconds, 0.0) * frame_rate + 1e-9))


def format_timecode(seconds: float, frame_rate: float) -> str:
    """Render ``HH:MM:SS:FF`` (non-drop-frame)."""
    if frame_rate <= 0:
        raise ValueError("frame_rate must be positive")
    fps = max(int(round(frame_rate)), 1)
    total_frames = seconds_to_frames(seconds, frame_rate)
    hours, remainder = divmod(total_frames, fps * 3600)
    minutes, remainder = divmod(remainder, fps * 60)
    secs, frames = divmod(remainder, fps)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}:{frames:02d}"


def format_time(seconds: float, frame_rate: float, mode: TimeDisplayMode = "timecode") -> str:
    if mode == "frames":
        return str(seconds_to_frames(seconds, frame_rate))
    if mode == "timecode":
        return format_timecode(seconds, frame_rate)
    raise ValueError(f"Unsupported time display mode '{mode}'")
