"""Audio handle contract used by the playback clock."""

from __future__ import annotations

from typing import Callable, Protocol

from storyboard_previs.timeline.models import ExternalAudioClip


class AudioHandle(Protocol):
    """A seekable media element for one audio clip; positions are source-file seconds."""

    @property
    def paused(self) -> bool: ...

    @property
    def position(self) -> float: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def seek(self, position: float) -> None: ...

    def set_volume(self, volume: float) -> None: ...

    def release(self) -> None: ...


AudioHandleFactory = Callable[[ExternalAudioClip], "AudioHandle | None"]


class SilentAudioHandle:
    """Position-tracking handle that produces no sound; used headless and in tests."""

    def __init__(self, source_url: str = "") -> None:
        self.source_url = source_url
        self.volume = 1.0
        self.released = False
        self.seek_count = 0
        self._paused = True
        self._position = 0.0

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def position(self) -> float:
        return self._position

    def play(self) -> None:
        if self.released:
            raise RuntimeError("audio handle was released")
        self._paused = False

    def pause(self) -> None:
        self._paused = True

    def seek(self, position: float) -> None:
        self._position = max(float(position), 0.0)
        self.seek_count += 1

    def set_volume(self, volume: float) -> None:
        self.volume = min(max(float(volume), 0.0), 1.0)

    def release(self) -> None:
        self._paused = True
        self.released = True


def silent_audio_factory(clip: ExternalAudioClip) -> AudioHandle | None:
    if not clip.origin.source_url:
        return None
    return SilentAudioHandle(clip.origin.source_url)
