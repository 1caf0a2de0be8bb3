from __future__ import annotations

"""
clusterkit.models
=================

Records exchanged with the resource store and the request/response shapes of
the clone API.

- Pydantic v2 models with `extra="forbid"` so unknown fields fail fast.
- Label and parameter maps are plain `dict[str, str]`, matching what the
  control plane stores.
- Clone request/response fields accept and emit their PascalCase wire names
  (`SourceClusterName`, `WorkflowID`, ...); Python code uses snake_case.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .core.types import (
    FALSE,
    FLAG_IS_UPGRADED,
    LABEL_BACKREST_STORAGE_TYPE,
    LABEL_CREDENTIAL_ROTATION,
    LABEL_ROLE,
    TRUE,
)

# --------------------------------------------------------------------------- #
# Enums
# --------------------------------------------------------------------------- #


class TaskType(str, Enum):
    backup_create = "backup-create"
    backup_cleanup = "backup-cleanup"
    credential_rotation = "credential-rotation"
    clone_step_1 = "clone-step-1"
    clone_step_2 = "clone-step-2"
    clone_step_3 = "clone-step-3"


class TaskStatus(str, Enum):
    pending = "pending"
    running = "running"
    completed = "completed"
    failed = "failed"


class StatusCode(str, Enum):
    ok = "Ok"
    error = "Error"


# --------------------------------------------------------------------------- #
# Control-plane records
# --------------------------------------------------------------------------- #


class Cluster(BaseModel):
    """A database cluster as seen by the control plane. Read-only here."""

    model_config = ConfigDict(extra="forbid")

    name: str
    namespace: str
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)

    @property
    def is_upgraded(self) -> bool:
        flag = self.annotations.get(FLAG_IS_UPGRADED, self.labels.get(FLAG_IS_UPGRADED))
        return flag != FALSE

    @property
    def credential_rotation_enabled(self) -> bool:
        return self.labels.get(LABEL_CREDENTIAL_ROTATION) == TRUE

    @property
    def backup_storage_type(self) -> str:
        return self.labels.get(LABEL_BACKREST_STORAGE_TYPE, "")


class Pod(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    namespace: str
    labels: dict[str, str] = Field(default_factory=dict)
    containers: list[str] = Field(default_factory=list)

    @property
    def role(self) -> str | None:
        return self.labels.get(LABEL_ROLE)


class Task(BaseModel):
    """
    A unit of asynchronous work consumed by an external executor.

    Orchestrators only create tasks (status `pending`); executors outside this
    package move them to `running` and finally `completed` or `failed`.
    """

    model_config = ConfigDict(extra="forbid")

    name: str
    namespace: str
    type: TaskType
    status: TaskStatus = TaskStatus.pending
    labels: dict[str, str] = Field(default_factory=dict)
    parameters: dict[str, str] = Field(default_factory=dict)
    created_ms: int = 0


class WorkflowRecord(BaseModel):
    """Tracks one multi-step operation. `workflow_id` never changes once written."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    namespace: str
    workflow_id: str
    cluster: str
    submitted_at: str
    labels: dict[str, str] = Field(default_factory=dict)
    parameters: dict[str, str] = Field(default_factory=dict)


@dataclass
class PromotionWaitState:
    """
    In-memory state of one promotion wait. Never persisted.

    `recovery_disabled` only ever moves from False to True.
    """

    deadline_ms: int
    interval_ms: int
    recovery_disabled: bool = False

    def mark_recovery_disabled(self) -> None:
        self.recovery_disabled = True


# --------------------------------------------------------------------------- #
# Clone API
# --------------------------------------------------------------------------- #


class CloneRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    source_cluster_name: str = Field(default="", alias="SourceClusterName")
    target_cluster_name: str = Field(default="", alias="TargetClusterName")
    pvc_size: str = Field(default="", alias="PVCSize")
    backrest_pvc_size: str = Field(default="", alias="BackrestPVCSize")
    backrest_storage_source: str = Field(default="", alias="BackrestStorageSource")
    enable_metrics: bool = Field(default=False, alias="EnableMetrics")


class CloneResponse(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    status_code: StatusCode = Field(default=StatusCode.ok, alias="StatusCode")
    status_message: str = Field(default="", alias="StatusMessage")
    target_cluster_name: str = Field(default="", alias="TargetClusterName")
    workflow_id: str = Field(default="", alias="WorkflowID")

    @classmethod
    def failure(cls, message: str) -> CloneResponse:
        return cls(status_code=StatusCode.error, status_message=message)

    @property
    def ok(self) -> bool:
        return self.status_code is StatusCode.ok

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# --------------------------------------------------------------------------- #
# Events
# --------------------------------------------------------------------------- #


class PodEvent(BaseModel):
    """
    Pod update notification carried on the bus. Both pod snapshots are sent
    so the listener can see the role-label transition.
    """

    model_config = ConfigDict(extra="forbid")

    cluster: str
    namespace: str
    old_pod: Pod
    new_pod: Pod
    ts_ms: int = 0
