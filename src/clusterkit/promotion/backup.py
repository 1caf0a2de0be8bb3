from __future__ import annotations

"""
Post-failover backup: reset backup task state for a cluster after promotion.
"""

from ..core.log import get_logger
from ..core.types import LABEL_BACKREST_REPO, LABEL_CLUSTER, TRUE
from ..errors import TopologyError
from ..models import Pod, Task
from ..observability.metrics import POST_FAILOVER_BACKUPS
from ..store.backup import BackupSubsystem
from ..store.resources import Kind, ResourceStore

__all__ = ["PostFailoverBackup"]


class PostFailoverBackup:
    """
    Locate the single backup repository pod, clean stale backup tasks, then
    enqueue one post-failover backup against that pod.

    Both steps are required and ordered. Nothing is retried here; any failure
    propagates and the caller decides what to do.
    """

    def __init__(self, store: ResourceStore, backups: BackupSubsystem) -> None:
        self.store = store
        self.backups = backups
        self.log = get_logger("promotion.backup")

    async def find_repo_pod(self, cluster: str, namespace: str) -> Pod:
        selector = {LABEL_CLUSTER: cluster, LABEL_BACKREST_REPO: TRUE}
        pods = await self.store.list(Kind.pod, selector, namespace)
        if len(pods) != 1:
            raise TopologyError(cluster, len(pods))
        return pods[0]

    async def run(self, cluster: str, namespace: str) -> Task:
        try:
            repo = await self.find_repo_pod(cluster, namespace)
            await self.backups.cleanup(cluster, namespace)
            task = await self.backups.create_post_failover_backup(namespace, cluster, repo.name)
        except Exception:
            POST_FAILOVER_BACKUPS.labels(outcome="error").inc()
            self.log.error("backup.post_failover.failed", event="backup.post_failover.failed", exc_info=True)
            raise
        POST_FAILOVER_BACKUPS.labels(outcome="ok").inc()
        self.log.info("backup.post_failover.ok", event="backup.post_failover.ok", repo_pod=repo.name, task=task.name)
        return task
