from __future__ import annotations

"""
Reactions to a pod gaining the leader role.

- Plain failover (`replica` -> `master`/`promoted`): the label transition
  already means promotion finished, so only the post-failover backup runs.
- Standby disable (`standby_leader` -> `master`): the role label flips before
  recovery actually stops, so the handler first waits for the member to accept
  writes, then optionally enqueues credential rotation, then runs the backup.

Each step's failure aborts the remaining steps and is re-raised. Events are
not retried automatically.
"""

from ..core.config import OrchestratorConfig
from ..core.log import get_logger, log_context
from ..core.time import Clock, SystemClock
from ..core.types import (
    LABEL_CLUSTER,
    LABEL_CREDENTIAL_ROTATION_TASK,
    ROLE_MASTER,
    ROLE_PROMOTED,
    ROLE_REPLICA,
    ROLE_STANDBY_LEADER,
    TRUE,
)
from ..core.utils import random_suffix
from ..models import Cluster, Pod, Task, TaskType
from ..observability.metrics import PROMOTION_EVENTS
from ..observability.tracing import trace
from ..store.backup import BackupSubsystem
from ..store.executor import CommandExecutor
from ..store.resources import Kind, ResourceStore
from .backup import PostFailoverBackup
from .wait import PromotionWaiter

__all__ = [
    "HANDLER_POD",
    "HANDLER_STANDBY",
    "PromotionHandlers",
    "classify_transition",
]

HANDLER_POD = "pod_promotion"
HANDLER_STANDBY = "standby_promotion"

_LEADER_ROLES = frozenset({ROLE_MASTER, ROLE_PROMOTED})


def classify_transition(old_pod: Pod, new_pod: Pod) -> str | None:
    """Which handler, if any, a role-label change calls for."""
    old_role, new_role = old_pod.role, new_pod.role
    if old_role == new_role:
        return None
    if old_role == ROLE_STANDBY_LEADER and new_role == ROLE_MASTER:
        return HANDLER_STANDBY
    if old_role == ROLE_REPLICA and new_role in _LEADER_ROLES:
        return HANDLER_POD
    return None


class PromotionHandlers:
    def __init__(
        self,
        *,
        store: ResourceStore,
        executor: CommandExecutor,
        backups: BackupSubsystem,
        cfg: OrchestratorConfig | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.store = store
        self.cfg = cfg or OrchestratorConfig()
        self.clock: Clock = clock or SystemClock()
        self.waiter = PromotionWaiter(executor, cfg=self.cfg, clock=self.clock)
        self.backup = PostFailoverBackup(store, backups)
        self.log = get_logger("promotion")

    # ---- entry points

    @trace("promotion.pod")
    async def handle_pod_promotion(self, pod: Pod, cluster_name: str) -> Task:
        with log_context(cluster=cluster_name, namespace=pod.namespace, pod=pod.name):
            self.log.info("promotion.pod.start", event="promotion.pod.start")
            try:
                task = await self.backup.run(cluster_name, pod.namespace)
            except Exception:
                PROMOTION_EVENTS.labels(handler=HANDLER_POD, outcome="error").inc()
                raise
            PROMOTION_EVENTS.labels(handler=HANDLER_POD, outcome="ok").inc()
            return task

    @trace("promotion.standby")
    async def handle_standby_promotion(self, pod: Pod, cluster: Cluster) -> Task:
        with log_context(cluster=cluster.name, namespace=cluster.namespace, pod=pod.name):
            self.log.info("promotion.standby.start", event="promotion.standby.start")
            try:
                await self.waiter.wait(pod, cluster)
                if cluster.credential_rotation_enabled:
                    await self.create_rotation_task(cluster)
                task = await self.backup.run(cluster.name, cluster.namespace)
            except Exception:
                PROMOTION_EVENTS.labels(handler=HANDLER_STANDBY, outcome="error").inc()
                self.log.error("promotion.standby.failed", event="promotion.standby.failed", exc_info=True)
                raise
            PROMOTION_EVENTS.labels(handler=HANDLER_STANDBY, outcome="ok").inc()
            return task

    async def on_pod_update(self, old_pod: Pod, new_pod: Pod, cluster: Cluster) -> str | None:
        """Dispatch a pod update to the matching handler; return its name or None."""
        kind = classify_transition(old_pod, new_pod)
        if kind == HANDLER_STANDBY:
            await self.handle_standby_promotion(new_pod, cluster)
        elif kind == HANDLER_POD:
            await self.handle_pod_promotion(new_pod, cluster.name)
        else:
            self.log.debug(
                "promotion.ignored",
                event="promotion.ignored",
                pod=new_pod.name,
                old_role=old_pod.role,
                new_role=new_pod.role,
            )
        return kind

    # ---- steps

    async def create_rotation_task(self, cluster: Cluster) -> Task:
        task = Task(
            name=f"{cluster.name}-rotate-credentials-{random_suffix()}",
            namespace=cluster.namespace,
            type=TaskType.credential_rotation,
            labels={LABEL_CLUSTER: cluster.name, LABEL_CREDENTIAL_ROTATION_TASK: TRUE},
            parameters={"rotate-password": TRUE, "cluster": cluster.name},
            created_ms=self.clock.now_ms(),
        )
        created = await self.store.create(Kind.task, task)
        self.log.info("promotion.rotation.created", event="promotion.rotation.created", task=task.name)
        return created
