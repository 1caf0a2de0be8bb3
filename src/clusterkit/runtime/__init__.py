from __future__ import annotations

from .poller import Predicate, wait_until

__all__ = ["Predicate", "wait_until"]
