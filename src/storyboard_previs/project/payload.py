"""Conversion between the live timeline and its saved payload."""

from __future__ import annotations

from storyboard_previs.config import PRIMARY_AUDIO_TRACK, PRIMARY_VIDEO_TRACK
from storyboard_previs.project.schema import (
    ClipModel,
    ExternalMediaOriginModel,
    MediaTrimModel,
    StoryboardOriginModel,
    TimelinePayload,
    TrackAssignmentModel,
    TrackModel,
)
from storyboard_previs.timeline.collaborators import TrackDefinition, TrackRegistry
from storyboard_previs.timeline.models import (
    Clip,
    ExternalAudioClip,
    ExternalMediaOrigin,
    ExternalVisualClip,
    MediaTrim,
    MediaType,
    StoryboardClip,
    StoryboardOrigin,
    make_shot_key,
)
from storyboard_previs.timeline.store import TimelineStore


def clip_to_model(clip: Clip) -> ClipModel:
    media_trim = None
    origin: StoryboardOriginModel | ExternalMediaOriginModel
    if isinstance(clip, StoryboardClip):
        origin = StoryboardOriginModel(
            frame_id=clip.origin.frame_id,
            scene_number=clip.origin.scene_number,
            shot_number=clip.origin.shot_number,
            frame_number=clip.origin.frame_number,
            shot_key=clip.origin.shot_key,
            media_ref=clip.origin.media_ref,
        )
    else:
        origin = ExternalMediaOriginModel(
            file_id=clip.origin.file_id,
            media_type=clip.origin.media_type,
            source_url=clip.origin.source_url,
            file_name=clip.origin.file_name,
        )
    if isinstance(clip, ExternalAudioClip):
        media_trim = MediaTrimModel(
            start_offset=clip.media_trim.start_offset,
            end_offset=clip.media_trim.end_offset,
            original_duration=clip.media_trim.original_duration,
        )
    return ClipModel(
        id=clip.clip_id,
        origin=origin,
        track_id=clip.track_id,
        start_time=clip.start_time,
        duration=clip.duration,
        end_time=clip.end_time,
        has_custom_duration=clip.has_custom_duration,
        media_trim=media_trim,
    )


def clip_from_model(model: ClipModel) -> Clip:
    origin = model.origin
    if isinstance(origin, StoryboardOriginModel):
        return StoryboardClip(
            clip_id=model.id,
            origin=StoryboardOrigin(
                frame_id=origin.frame_id,
                scene_number=origin.scene_number,
                shot_number=origin.shot_number,
                frame_number=origin.frame_number,
                shot_key=origin.shot_key or make_shot_key(origin.scene_number, origin.shot_number),
                media_ref=origin.media_ref,
            ),
            start_time=model.start_time,
            duration=model.duration,
            track_id=model.track_id,
            has_custom_duration=model.has_custom_duration,
        )

    media = ExternalMediaOrigin(
        file_id=origin.file_id,
        media_type=origin.media_type,
        source_url=origin.source_url,
        file_name=origin.file_name,
    )
    if origin.media_type is MediaType.AUDIO:
        trim = model.media_trim
        return ExternalAudioClip(
            clip_id=model.id,
            origin=media,
            track_id=model.track_id or PRIMARY_AUDIO_TRACK,
            start_time=model.start_time,
            duration=model.duration,
            media_trim=(
                MediaTrim(trim.start_offset, trim.end_offset, trim.original_duration)
                if trim is not None
                else MediaTrim.full(model.duration)
            ),
            has_custom_duration=model.has_custom_duration,
        )
    return ExternalVisualClip(
        clip_id=model.id,
        origin=media,
        track_id=model.track_id or PRIMARY_VIDEO_TRACK,
        start_time=model.start_time,
        duration=model.duration,
        has_custom_duration=model.has_custom_duration,
    )


def dump_timeline(
    store: TimelineStore,
    tracks: TrackRegistry,
    current_time: float,
    frame_rate: float,
    zoom_level: float,
) -> TimelinePayload:
    return TimelinePayload(
        clips=[clip_to_model(clip) for clip in store.clips],
        current_time=current_time,
        frame_rate=frame_rate,
        total_duration=store.total_duration,
        zoom_level=zoom_level,
        track_assignments=[
            TrackAssignmentModel(clip_id=clip_id, track_id=track_id)
            for clip_id, track_id in store.track_assignments.items()
        ],
        tracks=[
            TrackModel(track_id=track.track_id, priority=track.priority, name=track.name)
            for track in tracks.tracks_in_order()
        ],
    )


def load_timeline(payload: TimelinePayload, store: TimelineStore, tracks: TrackRegistry) -> None:
    """Restore clips, assignments and track definitions exactly as saved."""
    assignments = None
    if payload.track_assignments:
        assignments = {item.clip_id: item.track_id for item in payload.track_assignments}
    store.restore(
        [clip_from_model(model) for model in payload.clips],
        total_duration=payload.total_duration,
        track_assignments=assignments,
    )
    tracks.clear()
    for track in payload.tracks:
        tracks.register(TrackDefinition(track_id=track.track_id, priority=track.priority, name=track.name))
