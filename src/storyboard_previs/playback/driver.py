"""Fixed-interval asyncio driver for the playback clock."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from storyboard_previs.playback.clock import PlaybackClock

Sleeper = Callable[[float], Awaitable[None]]


async def run_playback(
    clock: PlaybackClock,
    sleep: Sleeper = asyncio.sleep,
    max_ticks: int | None = None,
) -> int:
    """Tick ``clock`` every frame interval until it leaves the playing state.

    Returns the number of ticks performed. Mutations made between ticks run
    on the same event loop, so each tick sees a fully applied timeline.
    """
    ticks = 0
    while clock.is_playing:
        if max_ticks is not None and ticks >= max_ticks:
            break
        await sleep(clock.frame_time)
        clock.tick()
        ticks += 1
    return ticks
