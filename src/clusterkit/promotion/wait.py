from __future__ import annotations

"""
Waiting for a promoted member to accept writes.

Two signals are read from inside the member's container:
  A. `select pg_is_in_recovery()` through psql;
  B. the HA agent's leader endpoint (`/master`), a JSON document with
     `state` and `pending_restart`.

A is polled until it reports "not in recovery". From then on the wait only
looks at B, until B shows `state == "running"` with no pending restart.
"""

import json
from collections.abc import Sequence

from ..core.config import OrchestratorConfig
from ..core.log import get_logger
from ..core.time import Clock, SystemClock
from ..errors import DeadlineExceeded, TransientError
from ..models import Cluster, Pod, PromotionWaitState
from ..observability.metrics import PROMOTION_WAIT_SECONDS, PROMOTION_WAITS
from ..runtime.poller import wait_until
from ..store.executor import CommandExecutor

__all__ = [
    "PromotionWaiter",
    "is_in_recovery_cmd",
    "leader_status_cmd",
    "parse_in_recovery",
    "parse_leader_ready",
]

_TRUE_WORDS = frozenset({"t", "true", "on"})
_FALSE_WORDS = frozenset({"f", "false", "off"})


def is_in_recovery_cmd() -> list[str]:
    return ["psql", "-t", "-c", "select pg_is_in_recovery()"]


def leader_status_cmd(port: str) -> list[str]:
    return ["curl", f"localhost:{port}/master"]


def parse_in_recovery(stdout: str) -> bool:
    """psql `-t` output (`" f\\n"`) -> bool. Anything else is a TransientError."""
    word = stdout.strip().lower()
    if word in _FALSE_WORDS:
        return False
    if word in _TRUE_WORDS:
        return True
    raise TransientError(f"unexpected pg_is_in_recovery() output: {stdout!r}")


def parse_leader_ready(stdout: str) -> bool:
    """
    True when the leader document reports `state == "running"` and
    `pending_restart` is absent or false. Unparseable payloads raise
    TransientError.
    """
    try:
        doc = json.loads(stdout)
    except ValueError as e:
        raise TransientError(f"malformed leader status payload: {e}") from e
    if not isinstance(doc, dict):
        raise TransientError(f"leader status payload is not an object: {type(doc).__name__}")
    return doc.get("state") == "running" and not doc.get("pending_restart")


class PromotionWaiter:
    """Blocks the calling coroutine until the member is write-accepting or the deadline passes."""

    def __init__(
        self,
        executor: CommandExecutor,
        *,
        cfg: OrchestratorConfig | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.executor = executor
        self.cfg = cfg or OrchestratorConfig()
        self.clock: Clock = clock or SystemClock()
        self.log = get_logger("promotion.wait")

    def _container(self, pod: Pod) -> str:
        if not pod.containers or self.cfg.database_container in pod.containers:
            return self.cfg.database_container
        return pod.containers[0]

    async def _run(self, pod: Pod, argv: Sequence[str]) -> str:
        res = await self.executor.exec(pod, self._container(pod), argv)
        return res.stdout

    async def wait(self, pod: Pod, cluster: Cluster) -> PromotionWaitState:
        started = self.clock.mono_ms()
        state = PromotionWaitState(
            deadline_ms=started + self.cfg.promotion_timeout_ms,
            interval_ms=self.cfg.promotion_poll_interval_ms,
        )
        leader_cmd = leader_status_cmd(self.cfg.ha_api_port)

        async def _ready() -> bool:
            if not state.recovery_disabled:
                if parse_in_recovery(await self._run(pod, is_in_recovery_cmd())):
                    return False
                state.mark_recovery_disabled()
                self.log.info("promotion.recovery_disabled", event="promotion.recovery_disabled", pod=pod.name)
            return parse_leader_ready(await self._run(pod, leader_cmd))

        outcome = "timeout"
        try:
            await wait_until(
                _ready,
                subject=cluster.name,
                interval_ms=state.interval_ms,
                timeout_ms=self.cfg.promotion_timeout_ms,
                clock=self.clock,
                timeout_message=(
                    f"timed out waiting for cluster {cluster.name} to accept writes after disabling standby mode"
                ),
            )
            outcome = "ok"
        except DeadlineExceeded:
            self.log.error(
                "promotion.wait.timeout",
                event="promotion.wait.timeout",
                pod=pod.name,
                recovery_disabled=state.recovery_disabled,
            )
            raise
        finally:
            elapsed_s = (self.clock.mono_ms() - started) / 1000.0
            PROMOTION_WAITS.labels(outcome=outcome).inc()
            PROMOTION_WAIT_SECONDS.labels(outcome=outcome).observe(elapsed_s)

        self.log.info("promotion.wait.done", event="promotion.wait.done", pod=pod.name)
        return state
