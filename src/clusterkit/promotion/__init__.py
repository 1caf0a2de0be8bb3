from __future__ import annotations

from .backup import PostFailoverBackup
from .handlers import HANDLER_POD, HANDLER_STANDBY, PromotionHandlers, classify_transition
from .wait import PromotionWaiter

__all__ = [
    "HANDLER_POD",
    "HANDLER_STANDBY",
    "PostFailoverBackup",
    "PromotionHandlers",
    "PromotionWaiter",
    "classify_transition",
]
