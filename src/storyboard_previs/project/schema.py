"""Timeline payload schema, format version 2."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from storyboard_previs.timeline.models import MediaType

FORMAT_VERSION = 2


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StoryboardOriginModel(_CamelModel):
    kind: Literal["storyboard_frame"] = "storyboard_frame"
    frame_id: str
    scene_number: str = ""
    shot_number: str = ""
    frame_number: str = ""
    shot_key: str = ""
    media_ref: str = ""


class ExternalMediaOriginModel(_CamelModel):
    kind: Literal["external_media"] = "external_media"
    file_id: str
    media_type: MediaType
    source_url: str = ""
    file_name: str = ""


OriginModel = Annotated[
    StoryboardOriginModel | ExternalMediaOriginModel,
    Field(discriminator="kind"),
]


class MediaTrimModel(_CamelModel):
    start_offset: float = Field(ge=0.0)
    end_offset: float = Field(ge=0.0)
    original_duration: float = Field(ge=0.0)


class ClipModel(_CamelModel):
    id: str
    origin: OriginModel
    track_id: str | None = None
    start_time: float = Field(ge=0.0)
    duration: float = Field(ge=0.0)
    end_time: float | None = None
    has_custom_duration: bool = False
    media_trim: MediaTrimModel | None = None


class TrackAssignmentModel(_CamelModel):
    clip_id: str
    track_id: str


class TrackModel(_CamelModel):
    track_id: str
    priority: int = 1
    name: str = ""


class TimelinePayload(_CamelModel):
    format_version: int = FORMAT_VERSION
    clips: list[ClipModel] = Field(default_factory=list)
    current_time: float = 0.0
    frame_rate: float = Field(default=24.0, gt=0.0)
    total_duration: float = 0.0
    zoom_level: float = 1.0
    track_assignments: list[TrackAssignmentModel] = Field(default_factory=list)
    tracks: list[TrackModel] = Field(default_factory=list)
