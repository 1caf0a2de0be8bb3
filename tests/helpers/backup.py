from __future__ import annotations

from clusterkit.models import Task, TaskType


class RecordingBackups:
    """BackupSubsystem that records calls in order and can be told to fail."""

    def __init__(self, *, fail_cleanup: BaseException | None = None, fail_create: BaseException | None = None) -> None:
        self.calls: list[tuple] = []
        self.fail_cleanup = fail_cleanup
        self.fail_create = fail_create

    async def cleanup(self, cluster: str, namespace: str) -> None:
        self.calls.append(("cleanup", cluster, namespace))
        if self.fail_cleanup is not None:
            raise self.fail_cleanup

    async def create_post_failover_backup(self, namespace: str, cluster: str, repo_pod: str) -> Task:
        self.calls.append(("create", namespace, cluster, repo_pod))
        if self.fail_create is not None:
            raise self.fail_create
        return Task(
            name=f"backrest-backup-{cluster}",
            namespace=namespace,
            type=TaskType.backup_create,
            parameters={"podname": repo_pod},
        )
