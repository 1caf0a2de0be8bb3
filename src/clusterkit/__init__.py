from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version

try:
    __version__ = _pkg_version("clusterkit")
except PackageNotFoundError:  # pragma: no cover - running from a source tree
    __version__ = "0.0.0"

from .clone.service import CloneService
from .core.config import OrchestratorConfig
from .events.listener import PromotionEventListener
from .promotion.handlers import PromotionHandlers
from .store.backup import StoreBackupSubsystem

__all__ = [
    "CloneService",
    "OrchestratorConfig",
    "PromotionEventListener",
    "PromotionHandlers",
    "StoreBackupSubsystem",
    "__version__",
]
