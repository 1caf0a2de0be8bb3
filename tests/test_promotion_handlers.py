"""
Promotion handlers: plain failover, standby disable, and pod-update dispatch.
"""

from __future__ import annotations

import pytest

from clusterkit.core.types import LABEL_CREDENTIAL_ROTATION, LABEL_CREDENTIAL_ROTATION_TASK, TRUE
from clusterkit.errors import DeadlineExceeded, StoreError, TopologyError
from clusterkit.models import TaskType
from clusterkit.promotion.handlers import (
    HANDLER_POD,
    HANDLER_STANDBY,
    PromotionHandlers,
    classify_transition,
)
from clusterkit.store.backup import backup_task_name
from clusterkit.store.resources import Kind
from tests.helpers import ScriptedExecutor, make_cluster, make_pod, make_repo_pod

pytestmark = [pytest.mark.promotion]


def _seed(store, *, rotation: bool = False):
    labels = {LABEL_CREDENTIAL_ROTATION: TRUE} if rotation else {}
    cluster = store.put(Kind.cluster, make_cluster("hippo", labels=labels))
    store.put(Kind.pod, make_repo_pod("hippo"))
    return cluster


def _tasks_of(store, type_: TaskType):
    return [t for t in store.all(Kind.task) if t.type is type_]


# ---- classification


@pytest.mark.parametrize(
    "old,new,expected",
    [
        ("replica", "master", HANDLER_POD),
        ("replica", "promoted", HANDLER_POD),
        ("standby_leader", "master", HANDLER_STANDBY),
        ("master", "master", None),
        ("master", "replica", None),
        ("standby_leader", "promoted", None),
        (None, "master", None),
        ("replica", None, None),
    ],
)
def test_classify_transition(old, new, expected):
    old_pod = make_pod("p", cluster="hippo", role=old)
    new_pod = make_pod("p", cluster="hippo", role=new)
    assert classify_transition(old_pod, new_pod) == expected


# ---- plain failover


@pytest.mark.asyncio
async def test_pod_promotion_only_backs_up(store, executor, handlers):
    _seed(store)
    pod = make_pod("hippo-abc-0", cluster="hippo", role="master")

    task = await handlers.handle_pod_promotion(pod, "hippo")

    assert task.name == backup_task_name("hippo")
    assert executor.calls == []
    assert [t.name for t in store.all(Kind.task)] == [backup_task_name("hippo")]


@pytest.mark.asyncio
async def test_pod_promotion_without_repo_pod_fails(store, handlers):
    store.put(Kind.cluster, make_cluster("hippo"))
    pod = make_pod("hippo-abc-0", cluster="hippo", role="master")

    with pytest.raises(TopologyError):
        await handlers.handle_pod_promotion(pod, "hippo")
    assert store.all(Kind.task) == []


# ---- standby disable


@pytest.mark.asyncio
async def test_standby_promotion_waits_then_rotates_then_backs_up(store, executor, handlers):
    cluster = _seed(store, rotation=True)
    pod = make_pod("hippo-abc-0", cluster="hippo", role="master")

    task = await handlers.handle_standby_promotion(pod, cluster)

    assert task.type is TaskType.backup_create
    assert executor.count("psql") == 1
    assert executor.count("curl") == 1

    writes = [(op, detail) for op, _kind, detail in store.ops("create", "delete")]
    assert len(writes) == 3
    assert writes[0][0] == "create" and writes[0][1].startswith("hippo-rotate-credentials-")
    assert writes[1][0] == "delete"
    assert writes[2] == ("create", backup_task_name("hippo"))

    (rotation,) = _tasks_of(store, TaskType.credential_rotation)
    assert rotation.labels[LABEL_CREDENTIAL_ROTATION_TASK] == TRUE
    assert rotation.parameters == {"rotate-password": TRUE, "cluster": "hippo"}


@pytest.mark.asyncio
async def test_standby_promotion_without_rotation_flag(store, handlers):
    cluster = _seed(store)
    pod = make_pod("hippo-abc-0", cluster="hippo", role="master")

    await handlers.handle_standby_promotion(pod, cluster)

    assert _tasks_of(store, TaskType.credential_rotation) == []
    assert len(_tasks_of(store, TaskType.backup_create)) == 1


@pytest.mark.asyncio
async def test_standby_wait_timeout_skips_rotation_and_backup(store, backups, cfg, clock):
    cluster = _seed(store, rotation=True)
    pod = make_pod("hippo-abc-0", cluster="hippo", role="master")
    stuck = ScriptedExecutor(psql=["t"], curl=['{"state": "running"}'])
    handlers = PromotionHandlers(store=store, executor=stuck, backups=backups, cfg=cfg, clock=clock)

    with pytest.raises(DeadlineExceeded) as ei:
        await handlers.handle_standby_promotion(pod, cluster)

    assert "hippo" in str(ei.value)
    assert store.ops("create", "delete", "list") == []
    assert store.all(Kind.task) == []


@pytest.mark.asyncio
async def test_rotation_failure_stops_before_backup(store, handlers):
    cluster = _seed(store, rotation=True)
    pod = make_pod("hippo-abc-0", cluster="hippo", role="master")
    store.fail(
        "create",
        Kind.task,
        StoreError("admission webhook denied"),
        when=lambda obj: obj.type is TaskType.credential_rotation,
    )

    with pytest.raises(StoreError, match="admission webhook"):
        await handlers.handle_standby_promotion(pod, cluster)

    assert store.ops("delete") == []
    assert store.all(Kind.task) == []


@pytest.mark.asyncio
async def test_rotation_task_names_do_not_collide(store, handlers):
    cluster = _seed(store, rotation=True)
    names = {(await handlers.create_rotation_task(cluster)).name for _ in range(5)}
    # four random lowercase letters; a collision here would be a store error
    assert len(names) == 5


# ---- dispatch


@pytest.mark.asyncio
async def test_on_pod_update_routes_standby_transition(store, executor, handlers):
    cluster = _seed(store)
    old = make_pod("hippo-abc-0", cluster="hippo", role="standby_leader")
    new = make_pod("hippo-abc-0", cluster="hippo", role="master")

    assert await handlers.on_pod_update(old, new, cluster) == HANDLER_STANDBY
    assert executor.count("psql") == 1
    assert len(_tasks_of(store, TaskType.backup_create)) == 1


@pytest.mark.asyncio
async def test_on_pod_update_routes_replica_promotion(store, executor, handlers):
    cluster = _seed(store)
    old = make_pod("hippo-abc-1", cluster="hippo", role="replica")
    new = make_pod("hippo-abc-1", cluster="hippo", role="promoted")

    assert await handlers.on_pod_update(old, new, cluster) == HANDLER_POD
    assert executor.calls == []
    assert len(_tasks_of(store, TaskType.backup_create)) == 1


@pytest.mark.asyncio
async def test_on_pod_update_ignores_unrelated_changes(store, executor, handlers):
    cluster = _seed(store)
    pod = make_pod("hippo-abc-0", cluster="hippo", role="master")

    assert await handlers.on_pod_update(pod, pod, cluster) is None
    assert executor.calls == []
    assert store.calls == []
