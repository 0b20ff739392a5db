"""Monotonic-anchored wall clock."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable


def _wall_ms() -> float:
    return time.time() * 1000.0


def _monotonic_ms() -> float:
    return time.perf_counter() * 1000.0


@dataclass
class ClockReconciler:
    """
    Wall-clock timestamps with monotonic deltas.

    Captures one wall-clock anchor and one monotonic anchor at construction.
    Every later reading is the wall anchor plus elapsed monotonic time, so
    timestamps keep sub-millisecond resolution and never move backward when
    the system clock is stepped.
    """
    wall_clock: Callable[[], float] = _wall_ms
    monotonic_clock: Callable[[], float] = _monotonic_ms

    _t0: float = field(default=0.0, init=False)
    _p0: float = field(default=0.0, init=False)

    def __post_init__(self):
        self._t0 = self.wall_clock()
        self._p0 = self.monotonic_clock()

    def now(self) -> float:
        """Milliseconds since the epoch, rounded to microseconds."""
        return round(self._t0 + (self.monotonic_clock() - self._p0), 3)

    @staticmethod
    def iso(ms: float) -> str:
        """ISO-8601 UTC rendering with millisecond precision."""
        dt = datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc)
        return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"

    @property
    def anchor_ms(self) -> float:
        return self._t0
