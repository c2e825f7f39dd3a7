"""Previsualization timeline engine for storyboard authoring."""

from storyboard_previs.config import PrevisSettings
from storyboard_previs.previs import Previs

__all__ = ["Previs", "PrevisSettings"]
