"""Playback exports."""

from storyboard_previs.playback.audio import AudioHandle, AudioHandleFactory, SilentAudioHandle
from storyboard_previs.playback.clock import PlaybackClock, PlaybackListener, PlaybackSnapshot, PlaybackState
from storyboard_previs.playback.driver import run_playback

__all__ = [
    "AudioHandle",
    "AudioHandleFactory",
    "PlaybackClock",
    "PlaybackListener",
    "PlaybackSnapshot",
    "PlaybackState",
    "SilentAudioHandle",
    "run_playback",
]
