from __future__ import annotations

import time
from typing import Callable, Optional

from coral.filters import ViewState


def next_year(current: int, min_year: int, max_year: int) -> int:
    candidate = current + 1
    if candidate > max_year or candidate < min_year:
        return min_year
    return candidate


class AnimationDriver:
    """Advances a ViewState's current year on a fixed cadence.

    The driver never starts a thread: the owner calls ``poll()`` (the
    dashboard does so on every rerun) and the driver applies at most one
    step per elapsed interval. ``cancel()`` must be called on teardown.
    """

    def __init__(
        self,
        state: ViewState,
        interval_s: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.state = state
        self.base_interval_s = interval_s
        self.speed = 1.0
        self._clock = clock
        self._next_tick: Optional[float] = None

    @property
    def playing(self) -> bool:
        return self._next_tick is not None

    @property
    def interval_s(self) -> float:
        return self.base_interval_s / self.speed

    def play(self) -> None:
        if not self.playing:
            self._next_tick = self._clock() + self.interval_s

    def pause(self) -> None:
        self._next_tick = None

    def toggle(self) -> None:
        if self.playing:
            self.pause()
        else:
            self.play()

    def set_speed(self, multiplier: float) -> None:
        if multiplier <= 0:
            raise ValueError("Animation speed must be positive")
        self.speed = multiplier
        if self.playing:
            self._next_tick = self._clock() + self.interval_s

    def seconds_until_tick(self) -> Optional[float]:
        if self._next_tick is None:
            return None
        return max(0.0, self._next_tick - self._clock())

    def step(self) -> int:
        lo, hi = self.state.year_range
        year = next_year(self.state.current_year, lo, hi)
        self.state.set_current_year(year)
        return year

    def poll(self) -> bool:
        if self._next_tick is None:
            return False
        now = self._clock()
        if now < self._next_tick:
            return False
        self.step()
        self._next_tick = now + self.interval_s
        return True

    def cancel(self) -> None:
        self._next_tick = None

    def __enter__(self) -> "AnimationDriver":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cancel()
