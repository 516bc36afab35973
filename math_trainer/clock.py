from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Monotonic clock abstraction.

    Session timing (stopwatch per problem, sprint countdown) depends on this
    interface rather than calling real time directly.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class WallClock(Protocol):
    """Calendar time source used to stamp session summaries."""

    def timestamp(self) -> float:
        """Return seconds since the Unix epoch."""


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


class SystemWallClock:
    """Production wall clock backed by time.time()."""

    def timestamp(self) -> float:
        return time.time()
