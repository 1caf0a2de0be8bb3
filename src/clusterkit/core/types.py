from __future__ import annotations

"""
clusterkit.core.types
=====================

Shared aliases and the label vocabulary used on cluster, pod, task and
workflow records. Dependency-free.
"""

from typing import Final

# ---- Time ----------------------------------------------------------------------

Millis = int
TimestampMs = int  # wall-clock epoch timestamp (ms)
MonotonicMs = int  # process-local monotonic time (ms)

# ---- Labels ------------------------------------------------------------------

LABEL_CLUSTER: Final[str] = "pg-cluster"
LABEL_ROLE: Final[str] = "role"
LABEL_BACKREST: Final[str] = "pgo-backrest"
LABEL_BACKREST_REPO: Final[str] = "pgo-backrest-repo"
LABEL_BACKREST_STORAGE_TYPE: Final[str] = "backrest-storage-type"
LABEL_CREDENTIAL_ROTATION: Final[str] = "credential-rotation-enabled"
LABEL_CREDENTIAL_ROTATION_TASK: Final[str] = "credential-rotation"
LABEL_CLONE: Final[str] = "pgo-clone"
LABEL_CLONE_STEP_1: Final[str] = "pgo-clone-step-1"
LABEL_USER: Final[str] = "pgouser"
LABEL_WORKFLOW_ID: Final[str] = "workflowid"

# Upgrade-completion flag (annotation, also honoured as a label).
FLAG_IS_UPGRADED: Final[str] = "is-upgraded"

TRUE: Final[str] = "true"
FALSE: Final[str] = "false"

# ---- Pod roles -----------------------------------------------------------------

ROLE_MASTER: Final[str] = "master"
ROLE_PROMOTED: Final[str] = "promoted"
ROLE_REPLICA: Final[str] = "replica"
ROLE_STANDBY_LEADER: Final[str] = "standby_leader"

# ---- Backup storage ------------------------------------------------------------

STORAGE_LOCAL: Final[str] = "local"
STORAGE_S3: Final[str] = "s3"
BACKUP_STORAGE_TYPES: Final[tuple[str, ...]] = (STORAGE_LOCAL, STORAGE_S3)

# ---- Workflow ------------------------------------------------------------------

WORKFLOW_CLONE_SUFFIX: Final[str] = "cloneworkflow"
WORKFLOW_SUFFIX_SIZE: Final[int] = 4
WORKFLOW_SUFFIX_ALPHABET: Final[str] = "abcdefghijklmnopqrstuvwxyz"

__all__ = [
    "Millis",
    "TimestampMs",
    "MonotonicMs",
    "LABEL_CLUSTER",
    "LABEL_ROLE",
    "LABEL_BACKREST",
    "LABEL_BACKREST_REPO",
    "LABEL_BACKREST_STORAGE_TYPE",
    "LABEL_CREDENTIAL_ROTATION",
    "LABEL_CREDENTIAL_ROTATION_TASK",
    "LABEL_CLONE",
    "LABEL_CLONE_STEP_1",
    "LABEL_USER",
    "LABEL_WORKFLOW_ID",
    "FLAG_IS_UPGRADED",
    "TRUE",
    "FALSE",
    "ROLE_MASTER",
    "ROLE_PROMOTED",
    "ROLE_REPLICA",
    "ROLE_STANDBY_LEADER",
    "STORAGE_LOCAL",
    "STORAGE_S3",
    "BACKUP_STORAGE_TYPES",
    "WORKFLOW_CLONE_SUFFIX",
    "WORKFLOW_SUFFIX_SIZE",
    "WORKFLOW_SUFFIX_ALPHABET",
]
