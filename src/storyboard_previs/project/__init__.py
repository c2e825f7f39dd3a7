"""Timeline payload schema and migration exports."""

from storyboard_previs.project.migration import migrate_payload
from storyboard_previs.project.payload import dump_timeline, load_timeline
from storyboard_previs.project.schema import TimelinePayload

__all__ = ["TimelinePayload", "dump_timeline", "load_timeline", "migrate_payload"]
