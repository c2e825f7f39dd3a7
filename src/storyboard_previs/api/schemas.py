"""FastAPI request/response schemas."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from storyboard_previs.project.schema import ClipModel


class FrameIn(BaseModel):
    frame_id: str = Field(min_length=1)
    scene_number: str = ""
    shot_number: str = ""
    frame_number: str = ""
    media_ref: str = ""


class BuildRequest(BaseModel):
    frames: list[FrameIn]


class ClipListResponse(BaseModel):
    clips: list[ClipModel]
    total_duration: float


class AddMediaRequest(BaseModel):
    media_type: Literal["video", "image", "audio"]
    start_time: float = Field(default=0.0, ge=0.0)
    duration: float = Field(gt=0.0)
    track_id: str | None = None
    file_id: str | None = None
    source_url: str = ""
    file_name: str = ""
    media_start_offset: float | None = Field(default=None, ge=0.0)
    media_end_offset: float | None = Field(default=None, ge=0.0)
    media_original_duration: float | None = Field(default=None, ge=0.0)


class ClipResponse(BaseModel):
    clip: ClipModel
    total_duration: float


class MoveRequest(BaseModel):
    start_time: float = Field(ge=0.0)


class DurationRequest(BaseModel):
    duration: float = Field(ge=0.0)


class ScaleShotRequest(BaseModel):
    scene_number: str
    shot_number: str
    total_seconds: float = Field(ge=0.0)


class MutationResponse(BaseModel):
    ok: bool
    total_duration: float


class CloseGapRequest(BaseModel):
    time: float = Field(ge=0.0)


class CloseGapResponse(BaseModel):
    closed: float
    total_duration: float


class SnapRequest(BaseModel):
    time: float
    moving_clip_id: str | None = None


class SnapResponse(BaseModel):
    time: float


class SeekRequest(BaseModel):
    time: float


class PlaybackResponse(BaseModel):
    current_time: float
    state: Literal["stopped", "playing", "paused"]
    total_duration: float
    frame_rate: float
    looping: bool
    active_clip_id: str | None
    active_audio_clip_ids: list[str]
    timecode: str
