from __future__ import annotations

from .service import UPGRADE_ERROR, CloneService
from .validation import (
    validate_clone_request,
    validate_names,
    validate_quantity,
    validate_storage_type_on_restore,
)

__all__ = [
    "CloneService",
    "UPGRADE_ERROR",
    "validate_clone_request",
    "validate_names",
    "validate_quantity",
    "validate_storage_type_on_restore",
]
