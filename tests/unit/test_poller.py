"""
Readiness poller: bounded waits, transient error absorption, fatal classes.
"""

from __future__ import annotations

import asyncio
import time

import pytest

from clusterkit.core.time import ManualClock, SystemClock
from clusterkit.errors import DeadlineExceeded, TransientError
from clusterkit.runtime.poller import wait_until

pytestmark = [pytest.mark.unit]


def _sequence(*results):
    """Predicate returning (or raising) the given results in order, then repeating the last."""
    items = list(results)
    seen = {"calls": 0}

    async def _pred() -> bool:
        seen["calls"] += 1
        item = items.pop(0) if len(items) > 1 else items[0]
        if isinstance(item, BaseException):
            raise item
        return item

    return _pred, seen


@pytest.mark.asyncio
async def test_returns_once_predicate_is_satisfied():
    clock = ManualClock()
    pred, seen = _sequence(False, False, True)

    attempts = await wait_until(pred, subject="demo", interval_ms=500, timeout_ms=5_000, clock=clock)

    assert attempts == 3
    assert seen["calls"] == 3
    # first evaluation happens one interval after start
    assert clock.mono_ms() == 1_500


@pytest.mark.asyncio
async def test_never_satisfied_raises_deadline_naming_subject():
    clock = ManualClock()
    pred, seen = _sequence(False)

    with pytest.raises(DeadlineExceeded) as ei:
        await wait_until(pred, subject="demo", interval_ms=300, timeout_ms=1_000, clock=clock)

    assert ei.value.subject == "demo"
    assert "demo" in str(ei.value)
    assert clock.mono_ms() == 1_000
    assert seen["calls"] == 3


@pytest.mark.asyncio
async def test_custom_timeout_message():
    pred, _ = _sequence(False)
    with pytest.raises(DeadlineExceeded, match="cluster hippo never came up"):
        await wait_until(
            pred,
            subject="hippo",
            interval_ms=100,
            timeout_ms=300,
            clock=ManualClock(),
            timeout_message="cluster hippo never came up",
        )


@pytest.mark.asyncio
async def test_predicate_errors_count_as_not_ready():
    clock = ManualClock()
    pred, seen = _sequence(RuntimeError("exec failed"), TransientError("garbled"), True)

    attempts = await wait_until(pred, subject="demo", interval_ms=500, timeout_ms=5_000, clock=clock)

    assert attempts == 3
    assert seen["calls"] == 3


@pytest.mark.asyncio
async def test_fatal_errors_propagate_immediately():
    clock = ManualClock()
    pred, seen = _sequence(PermissionError("denied"), True)

    with pytest.raises(PermissionError):
        await wait_until(pred, subject="demo", interval_ms=500, timeout_ms=5_000, clock=clock, fatal=(PermissionError,))

    assert seen["calls"] == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("interval_ms,timeout_ms", [(0, 1000), (100, 0), (-1, 1000)])
async def test_rejects_non_positive_bounds(interval_ms, timeout_ms):
    pred, _ = _sequence(True)
    with pytest.raises(ValueError):
        await wait_until(pred, subject="demo", interval_ms=interval_ms, timeout_ms=timeout_ms, clock=ManualClock())


@pytest.mark.asyncio
async def test_success_stays_within_deadline_plus_one_interval_on_real_clock():
    deadline_s, interval_s = 0.3, 0.05
    flip_at = time.monotonic() + 0.12

    async def _pred() -> bool:
        return time.monotonic() >= flip_at

    t0 = time.monotonic()
    await wait_until(
        _pred, subject="demo", interval_ms=int(interval_s * 1000), timeout_ms=int(deadline_s * 1000), clock=SystemClock()
    )
    assert time.monotonic() - t0 <= deadline_s + interval_s


@pytest.mark.asyncio
async def test_hanging_predicate_is_cut_off_at_the_deadline():
    async def _hang() -> bool:
        await asyncio.sleep(30)
        return True

    t0 = time.monotonic()
    with pytest.raises(DeadlineExceeded):
        await wait_until(_hang, subject="demo", interval_ms=50, timeout_ms=200, clock=SystemClock())
    # generous slack for slow CI machines
    assert time.monotonic() - t0 < 1.0


@pytest.mark.asyncio
async def test_waiting_does_not_block_other_coroutines():
    ticks = 0
    stop = asyncio.Event()

    async def _busy():
        nonlocal ticks
        while not stop.is_set():
            ticks += 1
            await asyncio.sleep(0.005)

    busy = asyncio.create_task(_busy())
    pred, _ = _sequence(False)
    with pytest.raises(DeadlineExceeded):
        await wait_until(pred, subject="demo", interval_ms=20, timeout_ms=150, clock=SystemClock())
    stop.set()
    await busy

    assert ticks >= 5
