"""Timeline domain exports."""

from storyboard_previs.timeline.collaborators import (
    InMemoryShotDurationStore,
    ShotDuration,
    ShotDurationStore,
    TrackDefinition,
    TrackRegistry,
)
from storyboard_previs.timeline.history import TimelineHistory, TimelineSnapshot
from storyboard_previs.timeline.intervals import (
    Interval,
    OverlapKind,
    classify_overlap,
    intervals_overlap,
    proportional_trim,
    split_trim,
)
from storyboard_previs.timeline.models import (
    Clip,
    ExternalAudioClip,
    ExternalMediaOrigin,
    ExternalVisualClip,
    FrameRecord,
    MediaTrim,
    MediaType,
    StoryboardClip,
    StoryboardOrigin,
)
from storyboard_previs.timeline.snapping import SnapSettings, snap_time
from storyboard_previs.timeline.store import TimelineObserver, TimelineStore
from storyboard_previs.timeline.timecode import format_time, format_timecode

__all__ = [
    "Clip",
    "ExternalAudioClip",
    "ExternalMediaOrigin",
    "ExternalVisualClip",
    "FrameRecord",
    "InMemoryShotDurationStore",
    "Interval",
    "MediaTrim",
    "MediaType",
    "OverlapKind",
    "ShotDuration",
    "ShotDurationStore",
    "SnapSettings",
    "StoryboardClip",
    "StoryboardOrigin",
    "TimelineHistory",
    "TimelineObserver",
    "TimelineSnapshot",
    "TimelineStore",
    "TrackDefinition",
    "TrackRegistry",
    "classify_overlap",
    "format_time",
    "format_timecode",
    "intervals_overlap",
    "proportional_trim",
    "snap_time",
    "split_trim",
]
