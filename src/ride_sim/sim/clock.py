# sim/clock.py
from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol, runtime_checkable

SEC = 1.0
MS = 0.001
MIN = 60.0


@runtime_checkable
class Clock(Protocol):
    """Seconds on an arbitrary, monotonic origin."""

    def now(self) -> float: ...


class MonotonicClock:
    def now(self) -> float:
        return time.monotonic()


class ManualClock:
    """Clock that only moves when told to; used by tests and offline runs."""

    def __init__(self, t: float = 0.0):
        self.t = t

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> float:
        if dt < 0:
            raise ValueError("cannot move a clock backwards")
        self.t += dt
        return self.t


class KernelClock:
    """Reads simulation time from a kernel so debounce windows follow sim time."""

    def __init__(self, kernel):
        self.kernel = kernel

    def now(self) -> float:
        return self.kernel.now


@dataclass(frozen=True)
class SimClock:
    epoch: datetime  # wall-time zero of t=0

    @classmethod
    def utc_epoch(cls, y: int, m: int, d: int, hh=0, mm=0, ss=0) -> SimClock:
        return cls(datetime(y, m, d, hh, mm, ss, tzinfo=UTC))

    # sim seconds -> wall
    def to_wall(self, t: float) -> datetime:
        return self.epoch + timedelta(seconds=t)

    # wall -> sim seconds
    def to_sim(self, dt: datetime) -> float:
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        return (dt - self.epoch).total_seconds()
