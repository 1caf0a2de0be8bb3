from __future__ import annotations

from .kafka import KafkaBus

__all__ = ["KafkaBus"]
