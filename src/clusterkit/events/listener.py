from __future__ import annotations

import asyncio
from typing import Any

from aiokafka import AIOKafkaConsumer
from pydantic import ValidationError as PayloadError

from ..bus.kafka import KafkaBus
from ..core.config import OrchestratorConfig
from ..core.log import bind_context, get_logger, log_context
from ..models import Cluster, PodEvent
from ..promotion.handlers import PromotionHandlers
from ..store.resources import Kind, ResourceStore

_EVENT_TASK_PREFIX = "pod-event:"
_BACKOFF_STEP_SEC = 0.05
_BACKOFF_MAX_SEC = 1.0


class PromotionEventListener:
    """
    Consumes pod update events and hands each one to `PromotionHandlers` in
    its own asyncio task, so a five-minute standby wait for one cluster never
    delays events for another. At most `event_handler_concurrency` events are
    handled at once.

    Failed events are logged and dropped; there is no automatic retry.
    """

    def __init__(
        self,
        *,
        store: ResourceStore,
        handlers: PromotionHandlers,
        cfg: OrchestratorConfig | None = None,
        bus: KafkaBus | None = None,
    ) -> None:
        self.store = store
        self.handlers = handlers
        self.cfg = cfg or OrchestratorConfig.load()
        self.bus = bus or KafkaBus(self.cfg.kafka_bootstrap)

        self._sem = asyncio.Semaphore(self.cfg.event_handler_concurrency)
        self._tasks: set[asyncio.Task] = set()
        self._consumer: AIOKafkaConsumer | None = None
        self._running = False

        self.log = get_logger("events")
        bind_context(role="promotion-listener")

    # ---- lifecycle
    async def start(self) -> None:
        await self.bus.start()
        self._consumer = await self.bus.new_consumer([self.cfg.topic_pod_events], group_id=self.cfg.consumer_group)
        self._running = True
        self._spawn(self._consume_loop(self._consumer), name="pod-events")
        self.log.debug(
            "listener.started", event="listener.started", group=self.cfg.consumer_group, topic=self.cfg.topic_pod_events
        )

    async def stop(self) -> None:
        """
        Stop consuming, give in-flight handlers `shutdown_grace_sec` to finish,
        then cancel whatever is still running and close the bus.
        """
        self._running = False
        loops = [t for t in self._tasks if not t.get_name().startswith(_EVENT_TASK_PREFIX)]
        for t in loops:
            t.cancel()
        if loops:
            await asyncio.gather(*loops, return_exceptions=True)

        pending = self._event_tasks()
        if pending:
            _, unfinished = await asyncio.wait(pending, timeout=self.cfg.shutdown_grace_sec)
            if unfinished:
                self.log.warning(
                    "listener.stop.cancelling",
                    event="listener.stop.cancelling",
                    tasks=sorted(t.get_name() for t in unfinished),
                )
                for t in unfinished:
                    t.cancel()
                await asyncio.gather(*unfinished, return_exceptions=True)

        self._tasks.clear()
        await self.bus.stop()
        self.log.debug("listener.stopped", event="listener.stopped")

    async def drain(self) -> None:
        """Wait for in-flight event handlers (not the consumer loop) to finish."""
        pending = self._event_tasks()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def _event_tasks(self) -> list[asyncio.Task]:
        return [t for t in self._tasks if t.get_name().startswith(_EVENT_TASK_PREFIX)]

    def _spawn(self, coro, *, name: str) -> asyncio.Task:
        t = asyncio.create_task(coro, name=name)
        self._tasks.add(t)

        def _done(task: asyncio.Task) -> None:
            self._tasks.discard(task)
            if task.cancelled():
                return
            if task.exception() is not None:
                self.log.error(
                    "task.crashed", event="listener.task.crashed", task=task.get_name(), exc_info=task.exception()
                )

        t.add_done_callback(_done)
        return t

    # ---- consumption
    async def _consume_loop(self, consumer: AIOKafkaConsumer) -> None:
        failures = 0
        while self._running:
            try:
                msg = await consumer.getone()
            except Exception:
                # undecodable bytes or broker errors; the loop must outlive them
                failures += 1
                self.log.error("listener.bad_message", event="listener.bad_message", failures=failures, exc_info=True)
                if failures > 1:
                    await asyncio.sleep(min(_BACKOFF_MAX_SEC, _BACKOFF_STEP_SEC * failures))
                continue
            failures = 0
            event = self._decode(msg.value)
            if event is None:
                continue
            self._spawn(self.handle_event(event), name=f"{_EVENT_TASK_PREFIX}{event.cluster}:{event.new_pod.name}")

    def _decode(self, value: Any) -> PodEvent | None:
        try:
            return PodEvent.model_validate(value)
        except PayloadError as e:
            self.log.warning("listener.bad_payload", event="listener.bad_payload", error=str(e))
            return None

    async def handle_event(self, event: PodEvent) -> str | None:
        """Resolve the cluster and dispatch. Returns the handler that ran, if any."""
        async with self._sem:
            with log_context(cluster=event.cluster, namespace=event.namespace, pod=event.new_pod.name):
                try:
                    cluster = await self.store.get(Kind.cluster, event.cluster, event.namespace)
                    if not isinstance(cluster, Cluster):
                        self.log.warning("listener.cluster_missing", event="listener.cluster_missing")
                        return None
                    return await self.handlers.on_pod_update(event.old_pod, event.new_pod, cluster)
                except Exception:
                    self.log.error("listener.event.failed", event="listener.event.failed", exc_info=True)
                    return None
