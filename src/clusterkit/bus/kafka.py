from __future__ import annotations

import logging

from aiokafka import AIOKafkaConsumer, AIOKafkaProducer

from ..core.log import get_logger, swallow
from ..core.utils import dumps, loads
from ..models import PodEvent


class KafkaBus:
    """
    Thin wrapper around AIOKafka for pod update notifications.
    Knows only the bootstrap servers and JSON (de)serialization.
    """

    def __init__(self, bootstrap: str) -> None:
        self.bootstrap = bootstrap
        self._producer: AIOKafkaProducer | None = None
        self._consumers: list[AIOKafkaConsumer] = []
        self.log = get_logger("bus.kafka")

    async def start(self) -> None:
        if self._producer is not None:
            return
        self._producer = AIOKafkaProducer(
            bootstrap_servers=self.bootstrap,
            value_serializer=dumps,
            enable_idempotence=True,
        )
        await self._producer.start()

    async def stop(self) -> None:
        for c in self._consumers:
            with swallow(
                logger=self.log,
                code="bus.kafka.consumer.stop",
                msg="consumer stop failed",
                level=logging.WARNING,
            ):
                await c.stop()
        self._consumers.clear()
        if self._producer:
            with swallow(
                logger=self.log,
                code="bus.kafka.producer.stop",
                msg="producer stop failed",
                level=logging.WARNING,
            ):
                await self._producer.stop()
        self._producer = None

    async def new_consumer(self, topics: list[str], group_id: str) -> AIOKafkaConsumer:
        c = AIOKafkaConsumer(
            *topics,
            bootstrap_servers=self.bootstrap,
            group_id=group_id,
            value_deserializer=loads,
            enable_auto_commit=True,
            auto_offset_reset="latest",
        )
        await c.start()
        self._consumers.append(c)
        return c

    async def publish_pod_event(self, topic: str, event: PodEvent) -> None:
        """Key by cluster so one cluster's events stay ordered within a partition."""
        if self._producer is None:
            raise RuntimeError("KafkaBus producer is not initialized")
        await self._producer.send_and_wait(topic, event.model_dump(mode="json"), key=event.cluster.encode("utf-8"))
