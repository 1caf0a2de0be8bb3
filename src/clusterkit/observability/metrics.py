from __future__ import annotations

"""
clusterkit.observability.metrics
================================

Prometheus metrics for the orchestrator.

- `SafeCounter` / `SafeHistogram` wrap prometheus_client metrics and reject
  label names outside an allowlist to keep cardinality bounded.
- Project metrics are module-level singletons registered on the default
  registry; label values are low-cardinality outcomes, never cluster names.
- `MetricsService` exposes `/metrics` over HTTP.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import prometheus_client as prom

from ..core.log import get_logger

__all__ = [
    "MetricsService",
    "SafeCounter",
    "SafeHistogram",
    "CLONE_REQUESTS",
    "POST_FAILOVER_BACKUPS",
    "PROMOTION_EVENTS",
    "PROMOTION_WAIT_SECONDS",
    "PROMOTION_WAITS",
]

_log = get_logger("observability.metrics")


class _LabelChecker:
    __slots__ = ("_allowed",)

    def __init__(self, allowed: Iterable[str] | None) -> None:
        self._allowed = frozenset(allowed or ())

    def validate(self, labels: Mapping[str, str]) -> None:
        if not self._allowed:
            return
        unknown = [k for k in labels if k not in self._allowed]
        if unknown:
            raise ValueError(f"Unknown label(s) for metric: {unknown}; allowed={sorted(self._allowed)}")


class SafeCounter:
    """
    Counter with a label allowlist.

        cnt = SafeCounter("clusterkit_things_total", "Things", label_names=["outcome"])
        cnt.labels(outcome="ok").inc()
    """

    def __init__(
        self,
        name: str,
        documentation: str,
        *,
        label_names: Sequence[str] | None = None,
        registry: Any | None = None,
    ) -> None:
        self._checker = _LabelChecker(label_names)
        self._metric = prom.Counter(
            name,
            documentation,
            labelnames=list(label_names or []),
            registry=registry or prom.REGISTRY,
        )

    def labels(self, **labels: str):
        self._checker.validate(labels)
        return self._metric.labels(**labels)


class SafeHistogram:
    """Histogram with a label allowlist; `buckets` default to prometheus_client's."""

    def __init__(
        self,
        name: str,
        documentation: str,
        *,
        label_names: Sequence[str] | None = None,
        registry: Any | None = None,
        buckets: Sequence[float] | None = None,
    ) -> None:
        self._checker = _LabelChecker(label_names)
        self._metric = prom.Histogram(
            name,
            documentation,
            labelnames=list(label_names or []),
            registry=registry or prom.REGISTRY,
            buckets=list(buckets) if buckets is not None else prom.Histogram.DEFAULT_BUCKETS,
        )

    def labels(self, **labels: str):
        self._checker.validate(labels)
        return self._metric.labels(**labels)


# ---- Project metrics -----------------------------------------------------------

PROMOTION_EVENTS = SafeCounter(
    "clusterkit_promotion_events_total",
    "Promotion events handled, by handler and outcome",
    label_names=["handler", "outcome"],
)

PROMOTION_WAITS = SafeCounter(
    "clusterkit_promotion_waits_total",
    "Standby promotion waits, by outcome (ok|timeout)",
    label_names=["outcome"],
)

PROMOTION_WAIT_SECONDS = SafeHistogram(
    "clusterkit_promotion_wait_seconds",
    "Time spent waiting for a promoted member to accept writes",
    label_names=["outcome"],
    buckets=(0.5, 1, 2, 5, 10, 30, 60, 120, 300),
)

POST_FAILOVER_BACKUPS = SafeCounter(
    "clusterkit_post_failover_backups_total",
    "Post-failover backup orchestrations, by outcome",
    label_names=["outcome"],
)

CLONE_REQUESTS = SafeCounter(
    "clusterkit_clone_requests_total",
    "Clone requests, by outcome (ok|invalid|not_found|conflict|error)",
    label_names=["outcome"],
)


# ---- HTTP exposition ---------------------------------------------------------


class MetricsService:
    """
    Minimal exposition server over `prometheus_client.start_http_server()`.
    prometheus_client offers no stop API, so `stop()` only flips the flag.
    """

    def __init__(self, *, address: str = "0.0.0.0", port: int = 8000) -> None:
        self.address = address
        self.port = int(port)
        self._started = False

    def start(self) -> None:
        if self._started:
            return
        prom.start_http_server(self.port, addr=self.address)
        _log.info("metrics server started", address=self.address, port=self.port)
        self._started = True

    def stop(self) -> None:
        if self._started:
            _log.info("metrics server stopping (no-op)")
        self._started = False
