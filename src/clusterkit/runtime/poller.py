from __future__ import annotations

"""
clusterkit.runtime.poller
=========================

Bounded-time readiness polling.

`wait_until()` evaluates an async predicate once per interval until it reports
True or the deadline passes. The first evaluation happens one interval after
the call, mirroring a ticker. Predicate exceptions count as "not yet" unless
they match a caller-supplied fatal class. A single predicate call is cut off
at the deadline, so the whole wait never runs past `timeout + interval`.

Only the awaiting coroutine is suspended; the event loop keeps serving other
units of work.
"""

import asyncio
from collections.abc import Awaitable, Callable

from ..core.log import get_logger
from ..core.time import Clock, SystemClock
from ..core.types import Millis
from ..errors import DeadlineExceeded

__all__ = ["Predicate", "wait_until"]

Predicate = Callable[[], Awaitable[bool]]

_log = get_logger("runtime.poller")


async def wait_until(
    predicate: Predicate,
    *,
    subject: str,
    interval_ms: Millis,
    timeout_ms: Millis,
    clock: Clock | None = None,
    fatal: tuple[type[BaseException], ...] = (),
    timeout_message: str | None = None,
) -> int:
    """
    Poll `predicate` until it returns True; return the number of evaluations.

    Raises:
        DeadlineExceeded: `timeout_ms` elapsed first. `subject` names what was
            being waited on (typically the cluster).
        Any exception in `fatal` raised by the predicate, immediately.
    """
    if interval_ms <= 0:
        raise ValueError("interval_ms must be positive")
    if timeout_ms <= 0:
        raise ValueError("timeout_ms must be positive")

    clk: Clock = clock or SystemClock()
    deadline = clk.mono_ms() + timeout_ms
    attempts = 0

    while True:
        remaining = deadline - clk.mono_ms()
        if remaining <= 0:
            break
        await clk.sleep_ms(min(interval_ms, remaining))
        remaining = deadline - clk.mono_ms()
        if remaining <= 0:
            break

        attempts += 1
        try:
            if await asyncio.wait_for(predicate(), timeout=remaining / 1000.0):
                _log.debug("poll.satisfied", event="poll.satisfied", subject=subject, attempts=attempts)
                return attempts
        except fatal:
            raise
        except Exception as e:
            _log.debug(
                "poll.attempt.failed",
                event="poll.attempt.failed",
                subject=subject,
                attempt=attempts,
                error=f"{type(e).__name__}: {e}",
            )

    _log.warning("poll.deadline", event="poll.deadline", subject=subject, attempts=attempts, timeout_ms=timeout_ms)
    raise DeadlineExceeded(subject, timeout_message)
