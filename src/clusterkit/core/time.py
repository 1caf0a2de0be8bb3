from __future__ import annotations

"""
clusterkit.core.time
====================

Clock abstractions so polling can be driven deterministically in tests:
- Clock protocol,
- SystemClock (production),
- ManualClock (time advances only through `sleep_ms`).
"""

import asyncio
import time
from datetime import UTC, datetime
from typing import Protocol

from .types import Millis, MonotonicMs, TimestampMs


class Clock(Protocol):
    def now_dt(self) -> datetime: ...
    def now_ms(self) -> TimestampMs: ...
    def mono_ms(self) -> MonotonicMs: ...
    async def sleep_ms(self, ms: Millis) -> None: ...


class SystemClock:
    """Wall clock for timestamps, monotonic clock for deadlines."""

    def now_dt(self) -> datetime:
        return datetime.now(UTC)

    def now_ms(self) -> TimestampMs:
        return time.time_ns() // 1_000_000

    def mono_ms(self) -> MonotonicMs:
        return time.monotonic_ns() // 1_000_000

    async def sleep_ms(self, ms: Millis) -> None:
        await asyncio.sleep(max(0.0, ms / 1000.0))


class ManualClock(SystemClock):
    """
    Deterministic clock for tests. `sleep_ms` yields to the event loop once and
    then jumps both wall and monotonic time forward by `ms`.
    """

    def __init__(self, start_ms: Millis = 0) -> None:
        self._wall: Millis = start_ms
        self._mono: Millis = start_ms
        self.sleeps: int = 0

    def now_dt(self) -> datetime:
        return datetime.fromtimestamp(self._wall / 1000.0, tz=UTC)

    def now_ms(self) -> TimestampMs:
        return self._wall

    def mono_ms(self) -> MonotonicMs:
        return self._mono

    def advance(self, ms: Millis) -> None:
        inc = max(0, int(ms))
        self._wall += inc
        self._mono += inc

    async def sleep_ms(self, ms: Millis) -> None:
        self.sleeps += 1
        await asyncio.sleep(0)
        self.advance(ms)


def rfc3339(dt: datetime) -> str:
    """Format as RFC3339 with second precision (`2024-01-02T03:04:05Z`)."""
    return dt.astimezone(UTC).replace(microsecond=0).isoformat().replace("+00:00", "Z")
