"""Timeline export formats."""

from storyboard_previs.export.edl import export_edl, reel_name

__all__ = ["export_edl", "reel_name"]
