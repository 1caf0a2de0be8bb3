# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Backup subsystem interface and its task-record implementation.

The backup tool itself runs elsewhere; from this package's point of view a
backup is a task record that an executor picks up. Cleanup removes every
backup-related task for the cluster, create enqueues one post-failover backup.
"""

from typing import Protocol, runtime_checkable

from ..core.log import get_logger
from ..core.time import Clock, SystemClock
from ..core.types import LABEL_BACKREST, LABEL_CLUSTER, LABEL_USER, TRUE
from ..models import Task, TaskType
from .resources import Kind, ResourceStore

__all__ = [
    "BackupSubsystem",
    "StoreBackupSubsystem",
    "backup_task_name",
]

BACKUP_CONTAINER = "pgbackrest"
BACKUP_COMMAND = "backup"
BACKUP_OWNER = "pgo"


def backup_task_name(cluster: str) -> str:
    return f"backrest-backup-{cluster}"


@runtime_checkable
class BackupSubsystem(Protocol):
    async def cleanup(self, cluster: str, namespace: str) -> None:
        """Remove stale backup task records for the cluster. Absence is not an error."""

    async def create_post_failover_backup(self, namespace: str, cluster: str, repo_pod: str) -> Task:
        """Enqueue one backup against `repo_pod` and return the created task."""


class StoreBackupSubsystem:
    """`BackupSubsystem` backed by task records in the resource store."""

    def __init__(self, store: ResourceStore, *, clock: Clock | None = None) -> None:
        self.store = store
        self.clock: Clock = clock or SystemClock()
        self.log = get_logger("backup")

    async def cleanup(self, cluster: str, namespace: str) -> None:
        removed = await self.store.delete_by_selector(
            Kind.task, {LABEL_CLUSTER: cluster, LABEL_BACKREST: TRUE}, namespace
        )
        self.log.debug("backup.cleanup", event="backup.cleanup", cluster=cluster, removed=removed)

    async def create_post_failover_backup(self, namespace: str, cluster: str, repo_pod: str) -> Task:
        name = backup_task_name(cluster)
        task = Task(
            name=name,
            namespace=namespace,
            type=TaskType.backup_create,
            labels={
                LABEL_CLUSTER: cluster,
                LABEL_BACKREST: TRUE,
                LABEL_USER: BACKUP_OWNER,
            },
            parameters={
                "job-name": f"backrest-{BACKUP_COMMAND}-{cluster}",
                LABEL_CLUSTER: cluster,
                "podname": repo_pod,
                "containername": BACKUP_CONTAINER,
                "backrest-command": BACKUP_COMMAND,
                "backrest-opts": "",
                "backrest-storage-type": "",
            },
            created_ms=self.clock.now_ms(),
        )
        created = await self.store.create(Kind.task, task)
        self.log.info("backup.post_failover.created", event="backup.created", cluster=cluster, task=name)
        return created
