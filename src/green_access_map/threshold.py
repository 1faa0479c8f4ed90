"""Walking-time threshold filter, slider debounce and autoplay."""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Any, Callable, List, Mapping, Optional

from green_access_map.config import (
    MISSING_SENTINEL,
    PLAYBACK_PIVOT,
    THRESHOLD_ATTRIBUTE,
    THRESHOLD_MAX,
    THRESHOLD_MIN,
)
from green_access_map.session import SessionState
from green_access_map.surface import PARCELS_LAYER, RenderSurface


logger = logging.getLogger("gam.playback")


def walk_time_filter(value: int) -> list:
    return ["<=", ["coalesce", ["get", THRESHOLD_ATTRIBUTE], MISSING_SENTINEL], value]


def admits(properties: Mapping[str, Any], value: int) -> bool:
    """Python rendition of `walk_time_filter(value)`."""

    attr = properties.get(THRESHOLD_ATTRIBUTE)
    if attr is None:
        attr = MISSING_SENTINEL
    try:
        return attr <= value
    except TypeError:
        return False


def clamp_threshold(value: Any) -> int:
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"threshold must be finite, got {value!r}")
    return max(THRESHOLD_MIN, min(THRESHOLD_MAX, int(round(number))))


def playback_sequence(start: int = THRESHOLD_MIN) -> List[int]:
    """Values visited by one autoplay run."""

    return list(range(start, PLAYBACK_PIVOT + 1)) + [THRESHOLD_MAX]


def next_playback_value(current: int) -> Optional[int]:
    if current >= THRESHOLD_MAX:
        return None
    if current >= PLAYBACK_PIVOT:
        return THRESHOLD_MAX
    return current + 1


class Debouncer:
    """Run `callback` once `delay_s` has passed without another call.

    Each call cancels the pending timer and schedules a new one on the
    running loop.
    """

    def __init__(self, delay_s: float, callback: Callable[..., Any]):
        self.delay_s = delay_s
        self.callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def __call__(self, *args: Any) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay_s, self._fire, args)

    def _fire(self, args) -> None:
        self._handle = None
        self.callback(*args)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class ThresholdController:
    def __init__(
        self, state: SessionState, surface: RenderSurface, debounce_ms: int = 150
    ):
        self.state = state
        self.surface = surface
        self._debounced = Debouncer(debounce_ms / 1000.0, self.set_threshold)

    def set_threshold(self, value: int) -> None:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"threshold must be an integer, got {value!r}")
        if not THRESHOLD_MIN <= value <= THRESHOLD_MAX:
            raise ValueError(
                f"threshold must be in [{THRESHOLD_MIN}, {THRESHOLD_MAX}], got {value}"
            )
        self.state.threshold = value
        self.surface.set_filter(PARCELS_LAYER, walk_time_filter(value))

    def show(self, value: int) -> None:
        self.state.slider_value = value

    def slide(self, value: Any) -> int:
        v = clamp_threshold(value)
        self.show(v)
        self._debounced(v)
        return v

    def cancel(self) -> None:
        self._debounced.cancel()


class Playback:
    """Autoplay over `playback_sequence()` at one value per tick."""

    def __init__(
        self, state: SessionState, threshold: ThresholdController, tick_ms: int = 500
    ):
        self.state = state
        self.threshold = threshold
        self.tick_s = tick_ms / 1000.0
        self._task: Optional[asyncio.Task] = None

    def _apply(self, value: int) -> None:
        self.threshold.show(value)
        self.threshold.set_threshold(value)

    def toggle(self) -> bool:
        """Start from the beginning when idle, stop when playing.

        Returns whether playback is running afterwards.
        """

        if self.state.playing:
            self.stop()
            return False
        self.threshold.cancel()
        self._apply(THRESHOLD_MIN)
        self.state.playing = True
        self._task = asyncio.get_running_loop().create_task(self._run(THRESHOLD_MIN))
        logger.debug("playback started")
        return True

    def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
        self.state.playing = False
        logger.debug("playback stopped at %s", self.state.threshold)

    async def _run(self, current: int) -> None:
        while True:
            await asyncio.sleep(self.tick_s)
            nxt = next_playback_value(current)
            if nxt is None:
                break
            current = nxt
            self._apply(current)
            if current >= THRESHOLD_MAX:
                break
        self.state.playing = False
        self._task = None
        logger.debug("playback finished")

    async def wait(self) -> None:
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
