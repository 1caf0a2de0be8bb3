from __future__ import annotations

"""
clusterkit.core.config
======================

Typed configuration for the orchestrator.
- Optional JSON file loading, then env overrides, then explicit overrides.
- Millisecond fields are derived from second-based values once, at construction.

Missing or unreadable config files fall back to defaults.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any


def _try_load_json(path: Path | None) -> dict[str, Any]:
    if not path or not path.exists():
        return {}
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}


@dataclass
class OrchestratorConfig:
    """Promotion, clone and event-listener settings."""

    # ---- Promotion wait
    promotion_poll_interval_sec: float = 0.5
    promotion_timeout_sec: float = 300.0
    ha_api_port: str = "8009"
    database_container: str = "database"

    # ---- Events / Kafka
    kafka_bootstrap: str = "kafka:9092"
    topic_pod_events: str = "pods.events.v1"
    consumer_group: str = "clusterkit.promotion"
    event_handler_concurrency: int = 16
    shutdown_grace_sec: float = 10.0

    # ---- Derived (ms)
    promotion_poll_interval_ms: int = 0
    promotion_timeout_ms: int = 0

    def __post_init__(self) -> None:
        if self.promotion_poll_interval_sec <= 0:
            raise ValueError("promotion_poll_interval_sec must be positive")
        if self.promotion_timeout_sec <= 0:
            raise ValueError("promotion_timeout_sec must be positive")
        if not self.kafka_bootstrap:
            raise ValueError("kafka_bootstrap must be a non-empty string")
        if self.event_handler_concurrency < 1:
            raise ValueError("event_handler_concurrency must be >= 1")
        if self.shutdown_grace_sec < 0:
            raise ValueError("shutdown_grace_sec must be >= 0")
        self.promotion_poll_interval_ms = int(self.promotion_poll_interval_sec * 1000)
        self.promotion_timeout_ms = int(self.promotion_timeout_sec * 1000)
        # the poller works in whole milliseconds
        if self.promotion_poll_interval_ms < 1:
            raise ValueError("promotion_poll_interval_sec must be at least 0.001")
        if self.promotion_timeout_ms < 1:
            raise ValueError("promotion_timeout_sec must be at least 0.001")

    @classmethod
    def load(cls, path: Path | str | None = None, *, overrides: dict[str, Any] | None = None) -> OrchestratorConfig:
        """
        Load config from a JSON file (if provided), then apply env and overrides.

        Env overrides:
          - KAFKA_BOOTSTRAP_SERVERS
          - CLUSTERKIT_PROMOTION_TIMEOUT_SEC
        """
        data: dict[str, Any] = {}
        data.update(_try_load_json(Path(path) if path else None))

        if os.getenv("KAFKA_BOOTSTRAP_SERVERS"):
            data["kafka_bootstrap"] = os.environ["KAFKA_BOOTSTRAP_SERVERS"]
        if os.getenv("CLUSTERKIT_PROMOTION_TIMEOUT_SEC"):
            data["promotion_timeout_sec"] = float(os.environ["CLUSTERKIT_PROMOTION_TIMEOUT_SEC"])

        if overrides:
            data.update(overrides)

        # derived fields are always recomputed
        data.pop("promotion_poll_interval_ms", None)
        data.pop("promotion_timeout_ms", None)
        return cls(**data)
