"""Advisory progress estimation for long enumeration runs."""
from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable


def format_time_left(seconds: float) -> str:
    sec = int(round(seconds % 60))
    minutes = int(seconds // 60) % 60
    hours = int(seconds // 3600)
    if seconds >= 6000:
        return f"{hours}h{minutes:02d}m{sec:02d}s"
    if seconds >= 60:
        return f"{minutes}m{sec:02d}s"
    return f"{seconds:.1f}s"


@dataclass(frozen=True)
class ProgressSnapshot:
    found: int
    approx_total: int | None
    percentage: float | None = None
    seconds_left: float | None = None
    eta: datetime | None = None

    def label(self) -> str:
        if self.approx_total is None or self.percentage is None or self.seconds_left is None:
            return f"[{self.found}/?]"
        eta = self.eta.strftime("%H:%M:%S") if self.eta else "?"
        return (
            f"[{self.found}/{self.approx_total} {self.percentage:.1f}% "
            f"{eta} ~{format_time_left(self.seconds_left)}]"
        )


class ProgressEstimator:
    """Projects remaining time from the average step duration so far.

    ``approx_total`` usually comes from the length of a previous (stale)
    cache entry; without it only the count is reported.
    """

    def __init__(self, approx_total: int | None, *, clock: Callable[[], float] = time.monotonic):
        self._approx_total = approx_total or None
        self._clock = clock
        self._started = clock()
        self._steps = 0

    def step(self, found: int) -> ProgressSnapshot:
        self._steps += 1
        if not self._approx_total:
            return ProgressSnapshot(found=found, approx_total=None)

        avg = (self._clock() - self._started) / self._steps
        remaining = max(self._approx_total - found, 0)
        seconds_left = remaining * avg
        return ProgressSnapshot(
            found=found,
            approx_total=self._approx_total,
            percentage=found / self._approx_total * 100,
            seconds_left=seconds_left,
            eta=datetime.now() + timedelta(seconds=seconds_left),
        )
