"""HTTP endpoints over the previs timeline."""

from __future__ import annotations

from typing import Any

from fastapi import Body, FastAPI, HTTPException
from fastapi.responses import PlainTextResponse, Response
from pydantic import ValidationError

from storyboard_previs.api.schemas import (
    AddMediaRequest,
    BuildRequest,
    ClipListResponse,
    ClipResponse,
    CloseGapRequest,
    CloseGapResponse,
    DurationRequest,
    MoveRequest,
    MutationResponse,
    PlaybackResponse,
    ScaleShotRequest,
    SeekRequest,
    SnapRequest,
    SnapResponse,
)
from storyboard_previs.config import PrevisSettings
from storyboard_previs.observability import configure_logging
from storyboard_previs.previs import Previs
from storyboard_previs.project.payload import clip_to_model
from storyboard_previs.project.schema import TimelinePayload
from storyboard_previs.timeline.models import FrameRecord, MediaTrim


def create_app(previs: Previs | None = None) -> FastAPI:
    app = FastAPI(title="storyboard-previs API", version="0.1.0")
    if previs is None:
        settings = PrevisSettings.from_env()
        configure_logging(settings.log_level)
        previs = Previs(settings)
    engine = previs

    def clip_list() -> ClipListResponse:
        return ClipListResponse(
            clips=[clip_to_model(clip) for clip in engine.clips],
            total_duration=engine.total_duration,
        )

    def mutation(ok: bool, clip_id: str) -> MutationResponse:
        if not ok:
            raise HTTPException(status_code=404, detail=f"clip '{clip_id}' not found")
        return MutationResponse(ok=True, total_duration=engine.total_duration)

    @app.get("/")
    def root() -> dict[str, str]:
        return {
            "service": "storyboard-previs API",
            "status": "ok",
            "docs": "/docs",
        }

    @app.get("/favicon.ico", include_in_schema=False)
    def favicon() -> Response:
        return Response(status_code=204)

    @app.post("/v1/timeline/build", response_model=ClipListResponse)
    def build_timeline(payload: BuildRequest) -> ClipListResponse:
        engine.build_timeline_from_storyboard(
            FrameRecord(
                frame_id=frame.frame_id,
                scene_number=frame.scene_number,
                shot_number=frame.shot_number,
                frame_number=frame.frame_number,
                media_ref=frame.media_ref,
            )
            for frame in payload.frames
        )
        return clip_list()

    @app.get("/v1/timeline", response_model=TimelinePayload)
    def get_timeline() -> TimelinePayload:
        return engine.get_timeline_data()

    @app.put("/v1/timeline", response_model=TimelinePayload)
    def put_timeline(payload: dict[str, Any] = Body(...)) -> TimelinePayload:
        try:
            engine.load_timeline_data(payload)
        except ValidationError as exc:
            errors = exc.errors(include_url=False, include_context=False)
            raise HTTPException(status_code=422, detail=errors) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return engine.get_timeline_data()

    @app.post("/v1/timeline/media", response_model=ClipResponse)
    def add_media(payload: AddMediaRequest) -> ClipResponse:
        trim = None
        if payload.media_type == "audio" and payload.media_original_duration is not None:
            start = payload.media_start_offset or 0.0
            end = payload.media_end_offset if payload.media_end_offset is not None else payload.media_original_duration
            if end < start:
                raise HTTPException(status_code=400, detail="media_end_offset must not precede media_start_offset")
            trim = MediaTrim(start, end, payload.media_original_duration)
        try:
            clip = engine.add_external_clip(
                payload.media_type,
                payload.start_time,
                payload.duration,
                track_id=payload.track_id,
                file_id=payload.file_id,
                source_url=payload.source_url,
                file_name=payload.file_name,
                media_trim=trim,
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return ClipResponse(clip=clip_to_model(clip), total_duration=engine.total_duration)

    @app.post("/v1/timeline/clips/{clip_id}/move", response_model=MutationResponse)
    def move_clip(clip_id: str, payload: MoveRequest) -> MutationResponse:
        return mutation(engine.move_clip(clip_id, payload.start_time), clip_id)

    @app.post("/v1/timeline/clips/{clip_id}/duration", response_model=MutationResponse)
    def update_clip_duration(clip_id: str, payload: DurationRequest) -> MutationResponse:
        return mutation(engine.update_clip_duration(clip_id, payload.duration), clip_id)

    @app.delete("/v1/timeline/clips/{clip_id}", response_model=MutationResponse)
    def delete_clip(clip_id: str) -> MutationResponse:
        return mutation(engine.delete_clip(clip_id), clip_id)

    @app.post("/v1/timeline/clips/{clip_id}/ripple", response_model=MutationResponse)
    def ripple_edit(clip_id: str, payload: DurationRequest) -> MutationResponse:
        return mutation(engine.ripple_edit(clip_id, payload.duration), clip_id)

    @app.post("/v1/timeline/tracks/{track_id}/close-gap", response_model=CloseGapResponse)
    def close_gap(track_id: str, payload: CloseGapRequest) -> CloseGapResponse:
        closed = engine.close_gap(track_id, payload.time)
        if closed <= 0:
            raise HTTPException(status_code=400, detail=f"no gap on '{track_id}' at {payload.time}")
        return CloseGapResponse(closed=closed, total_duration=engine.total_duration)

    @app.post("/v1/timeline/undo", response_model=MutationResponse)
    def undo() -> MutationResponse:
        if not engine.undo():
            raise HTTPException(status_code=409, detail="nothing to undo")
        return MutationResponse(ok=True, total_duration=engine.total_duration)

    @app.post("/v1/timeline/redo", response_model=MutationResponse)
    def redo() -> MutationResponse:
        if not engine.redo():
            raise HTTPException(status_code=409, detail="nothing to redo")
        return MutationResponse(ok=True, total_duration=engine.total_duration)

    @app.post("/v1/timeline/shots/scale", response_model=MutationResponse)
    def scale_shot(payload: ScaleShotRequest) -> MutationResponse:
        if not engine.scale_shot_duration(payload.scene_number, payload.shot_number, payload.total_seconds):
            raise HTTPException(
                status_code=404,
                detail=f"shot {payload.scene_number}/{payload.shot_number} not found",
            )
        return MutationResponse(ok=True, total_duration=engine.total_duration)

    @app.post("/v1/timeline/snap", response_model=SnapResponse)
    def snap(payload: SnapRequest) -> SnapResponse:
        if payload.moving_clip_id and engine.store.get_clip(payload.moving_clip_id) is None:
            raise HTTPException(status_code=404, detail=f"clip '{payload.moving_clip_id}' not found")
        return SnapResponse(time=engine.snap_time(payload.time, payload.moving_clip_id))

    @app.get("/v1/timeline/edl", response_class=PlainTextResponse)
    def timeline_edl(title: str = "Storyboard Timeline") -> str:
        try:
            return engine.export_edl(title=title)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @app.post("/v1/playback/seek", response_model=PlaybackResponse)
    def seek(payload: SeekRequest) -> PlaybackResponse:
        engine.seek(payload.time)
        return playback_state()

    @app.get("/v1/playback", response_model=PlaybackResponse)
    def playback_state() -> PlaybackResponse:
        snapshot = engine.get_snapshot()
        return PlaybackResponse(
            current_time=snapshot.current_time,
            state=snapshot.state.value,
            total_duration=snapshot.total_duration,
            frame_rate=snapshot.frame_rate,
            looping=snapshot.looping,
            active_clip_id=snapshot.active_clip_id,
            active_audio_clip_ids=snapshot.active_audio_clip_ids,
            timecode=engine.format_time(snapshot.current_time),
        )

    return app


app = create_app()
