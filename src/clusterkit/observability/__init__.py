from __future__ import annotations

from .metrics import MetricsService, SafeCounter, SafeHistogram
from .tracing import setup_tracing, trace

__all__ = [
    "MetricsService",
    "SafeCounter",
    "SafeHistogram",
    "setup_tracing",
    "trace",
]
