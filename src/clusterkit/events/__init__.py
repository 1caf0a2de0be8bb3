from __future__ import annotations

from .listener import PromotionEventListener

__all__ = ["PromotionEventListener"]
