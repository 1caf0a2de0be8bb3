from __future__ import annotations

"""
Clone orchestration.

A clone request runs through: name checks -> fetch source -> validate ->
target-must-not-exist -> in-flight conflict check -> workflow record ->
first clone step task. The first failure ends the request. Later clone steps
are created by whoever executes step one.

The conflict check is list-then-create with no lock or compare-and-swap: two
requests for the same target arriving together can both pass it. Callers that
need stronger guarantees must serialize requests per target themselves.
"""

from ..core.log import get_logger, log_context
from ..core.time import Clock, SystemClock, rfc3339
from ..core.types import (
    LABEL_CLONE,
    LABEL_CLONE_STEP_1,
    LABEL_CLUSTER,
    LABEL_USER,
    LABEL_WORKFLOW_ID,
    TRUE,
    WORKFLOW_CLONE_SUFFIX,
)
from ..core.utils import new_workflow_id, random_suffix
from ..errors import ClusterkitError, ConflictError, NotFound, StoreError, ValidationError
from ..models import (
    CloneRequest,
    CloneResponse,
    Cluster,
    StatusCode,
    Task,
    TaskStatus,
    TaskType,
    WorkflowRecord,
)
from ..observability.metrics import CLONE_REQUESTS
from ..observability.tracing import trace
from ..store.resources import Kind, ResourceStore
from .validation import validate_clone_request, validate_names

__all__ = ["CloneService", "UPGRADE_ERROR"]

UPGRADE_ERROR = (
    " has not been upgraded to the current operator version; upgrade the cluster before running this command"
)

_OUTCOMES: tuple[tuple[type[ClusterkitError], str], ...] = (
    (ValidationError, "invalid"),
    (NotFound, "not_found"),
    (ConflictError, "conflict"),
)


class CloneService:
    """
    Entry point for clone requests. Always answers with a `CloneResponse`;
    nothing is raised to the caller.
    """

    def __init__(self, store: ResourceStore, *, clock: Clock | None = None) -> None:
        self.store = store
        self.clock: Clock = clock or SystemClock()
        self.log = get_logger("clone")

    @trace("clone.request")
    async def clone(self, request: CloneRequest, namespace: str, user: str) -> CloneResponse:
        with log_context(cluster=request.target_cluster_name or None, namespace=namespace, user=user):
            self.log.debug("clone.request", event="clone.request", source=request.source_cluster_name)
            try:
                resp = await self._clone(request, namespace, user)
            except ClusterkitError as e:
                outcome = next((label for cls, label in _OUTCOMES if isinstance(e, cls)), "error")
                CLONE_REQUESTS.labels(outcome=outcome).inc()
                self.log.warning("clone.rejected", event="clone.rejected", outcome=outcome, reason=str(e))
                return CloneResponse.failure(str(e))
            except Exception as e:
                CLONE_REQUESTS.labels(outcome="error").inc()
                self.log.error("clone.failed", event="clone.failed", exc_info=True)
                return CloneResponse.failure(f"Could not clone cluster: {e}")

            CLONE_REQUESTS.labels(outcome="ok").inc()
            with log_context(workflow_id=resp.workflow_id):
                self.log.info("clone.submitted", event="clone.submitted")
            return resp

    async def _clone(self, request: CloneRequest, namespace: str, user: str) -> CloneResponse:
        # before any lookup, so invalid input never reaches the store
        validate_names(request)

        source = await self._get_source(request.source_cluster_name, namespace)
        validate_clone_request(request, source)
        if not source.is_upgraded:
            raise ValidationError(source.name + UPGRADE_ERROR)

        target = request.target_cluster_name
        try:
            existing = await self.store.get(Kind.cluster, target, namespace)
        except StoreError as e:
            raise StoreError(f"Could not clone cluster: could not validate {e}") from e
        if existing is not None:
            raise ValidationError(f"Could not clone cluster: {target} already exists")

        await self._check_in_flight(target, namespace)

        suffix = random_suffix()
        try:
            workflow = await self.create_workflow(target, suffix, namespace)
        except StoreError as e:
            raise StoreError(f"could not create clone workflow task: {e}") from e

        try:
            await self.store.create(Kind.task, self._step_one(request, workflow, suffix, user))
        except StoreError as e:
            raise StoreError(f"Could not create clone task: {e}") from e

        return CloneResponse(
            status_code=StatusCode.ok,
            target_cluster_name=target,
            workflow_id=workflow.workflow_id,
        )

    async def _get_source(self, name: str, namespace: str) -> Cluster:
        try:
            source = await self.store.get(Kind.cluster, name, namespace)
        except StoreError as e:
            raise StoreError(f"Could not get cluster: {e}") from e
        if source is None:
            raise NotFound("cluster", name, namespace, prefix="Could not get cluster: ")
        return source

    async def _check_in_flight(self, target: str, namespace: str) -> None:
        selector = {LABEL_CLONE: TRUE, LABEL_CLUSTER: target}
        try:
            tasks = await self.store.list(Kind.task, selector, namespace)
        except StoreError as e:
            raise StoreError(f"Could not clone cluster: could not validate {e}") from e
        for task in tasks:
            if task.status is not TaskStatus.completed:
                raise ConflictError(
                    f"Could not clone cluster: there exists an ongoing clone task: [{task.name}]. "
                    "If you believe this is an error, try deleting this task.",
                    conflicting=task.name,
                )

    async def create_workflow(self, target: str, suffix: str, namespace: str) -> WorkflowRecord:
        """Persist a new workflow record for `target` with a fresh identifier."""
        workflow_id = new_workflow_id()
        submitted = rfc3339(self.clock.now_dt())
        record = WorkflowRecord(
            name=f"{target}-{suffix}-{WORKFLOW_CLONE_SUFFIX}",
            namespace=namespace,
            workflow_id=workflow_id,
            cluster=target,
            submitted_at=submitted,
            labels={LABEL_CLUSTER: target, LABEL_WORKFLOW_ID: workflow_id},
            parameters={
                "submitted": submitted,
                LABEL_CLUSTER: target,
                LABEL_WORKFLOW_ID: workflow_id,
            },
        )
        await self.store.create(Kind.workflow, record)
        return record

    def _step_one(self, request: CloneRequest, workflow: WorkflowRecord, suffix: str, user: str) -> Task:
        target = request.target_cluster_name
        return Task(
            name=f"{LABEL_CLONE_STEP_1}-{target}-{suffix}",
            namespace=workflow.namespace,
            type=TaskType.clone_step_1,
            labels={
                LABEL_CLUSTER: target,
                LABEL_CLONE: TRUE,
                LABEL_CLONE_STEP_1: TRUE,
                LABEL_USER: user,
                LABEL_WORKFLOW_ID: workflow.workflow_id,
            },
            parameters={
                "backrestPVCSize": request.backrest_pvc_size,
                "backrestStorageSource": request.backrest_storage_source,
                "enableMetrics": "true" if request.enable_metrics else "false",
                "pvcSize": request.pvc_size,
                "sourceClusterName": request.source_cluster_name,
                "targetClusterName": target,
                "timestamp": rfc3339(self.clock.now_dt()),
                "workflowID": workflow.workflow_id,
            },
            created_ms=self.clock.now_ms(),
        )
