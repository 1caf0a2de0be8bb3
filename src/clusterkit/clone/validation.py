from __future__ import annotations

"""
Request validation shared by clone (and any other restore-like operation).
"""

import re

from ..core.types import BACKUP_STORAGE_TYPES, STORAGE_LOCAL, STORAGE_S3
from ..errors import ValidationError
from ..models import CloneRequest, Cluster

__all__ = [
    "validate_names",
    "validate_clone_request",
    "validate_quantity",
    "validate_storage_type_on_restore",
]

# Kubernetes resource quantity: signed decimal, then a binary-SI, decimal-SI or
# decimal-exponent suffix.
_QUANTITY_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[KMGTPE]i|[numkMGTPE]|[eE][+-]?\d+)?$")

_QUANTITY_HINT = "quantities must match the regular expression '^([+-]?[0-9.]+)([eEinumkKMGTP]*[-+]?[0-9]*)$'"

ERR_PVC_SIZE = 'could not parse PVC size "{value}": {reason} (hint: try a value like "1Gi")'


def validate_quantity(value: str) -> None:
    """Empty means "use the default"; otherwise the value must be a well-formed quantity."""
    if value == "":
        return
    if not _QUANTITY_RE.match(value):
        raise ValidationError(ERR_PVC_SIZE.format(value=value, reason=_QUANTITY_HINT))


def _split_types(value: str) -> list[str]:
    return [s.strip() for s in value.split(",") if s.strip()]


def validate_storage_type_on_restore(requested: str, current: str, *, restore: bool = True) -> None:
    """
    Check a requested backup storage selection against what the cluster is
    configured with. An empty `current` means local-only.
    """
    # every comma-separated piece must be exactly one of the allowed names
    requested_types = requested.split(",") if requested else []
    if any(t not in BACKUP_STORAGE_TYPES for t in requested_types):
        allowed = ", ".join(f'"{t}"' for t in BACKUP_STORAGE_TYPES)
        raise ValidationError(
            f"Invalid value provided for backup storage type. The following values are allowed: {allowed}"
        )

    current_types = _split_types(current)

    if STORAGE_S3 in requested_types and STORAGE_S3 not in current_types:
        raise ValidationError("Storage type 's3' not allowed. S3 storage is not enabled for backups in this cluster")
    if (not requested_types or STORAGE_LOCAL in requested_types) and current_types and (
        STORAGE_LOCAL not in current_types
    ):
        raise ValidationError(
            "Storage type 'local' not allowed. Local storage is not enabled for backups in this cluster. "
            "If this cluster uses S3 storage only, specify 's3' for the backup storage type."
        )
    if restore and len(requested_types) > 1:
        raise ValidationError('Multiple storage types cannot be selected for a restore. Please select "local" or "s3".')


def validate_names(request: CloneRequest) -> None:
    if request.source_cluster_name == "":
        raise ValidationError("the source cluster name must be set")
    if request.target_cluster_name == "":
        raise ValidationError("the target cluster name must be set")


def validate_clone_request(request: CloneRequest, source: Cluster) -> None:
    """Checks that need the source cluster but no further lookups."""
    validate_names(request)
    validate_quantity(request.pvc_size)
    validate_quantity(request.backrest_pvc_size)
    # clone is a restore variant
    validate_storage_type_on_restore(request.backrest_storage_source, source.backup_storage_type, restore=True)
