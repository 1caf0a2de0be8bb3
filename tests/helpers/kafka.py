from __future__ import annotations

import asyncio
from typing import Any

from clusterkit.core.log import get_logger, log_context

LOG = get_logger("tests.kafka")


class _Rec:
    __slots__ = ("topic", "value", "key")

    def __init__(self, value: Any, topic: str, key: bytes | None) -> None:
        self.value = value
        self.topic = topic
        self.key = key


class InMemKafkaBroker:
    """Tiny in-memory pub/sub with per-topic consumer groups."""

    def __init__(self) -> None:
        self.topics: dict[str, dict[str, asyncio.Queue]] = {}
        self.produced: list[tuple[str, Any]] = []

    def reset(self) -> None:
        self.topics.clear()
        self.produced.clear()

    def ensure_queue(self, topic: str, group_id: str) -> asyncio.Queue:
        tg = self.topics.setdefault(topic, {})
        q = tg.get(group_id)
        if q is None:
            q = asyncio.Queue()
            tg[group_id] = q
            LOG.debug("kafka.group_bind", event="kafka.group_bind", topic=topic, group_id=group_id)
        return q

    async def produce(self, topic: str, value: Any, key: bytes | None = None) -> None:
        self.produced.append((topic, value))
        for q in self.topics.setdefault(topic, {}).values():
            await q.put(_Rec(value, topic, key))


BROKER = InMemKafkaBroker()


class AIOKafkaProducerMock:
    def __init__(self, *_, **__) -> None:
        pass

    async def start(self) -> None:
        LOG.debug("producer.start", event="producer.start")

    async def stop(self) -> None:
        LOG.debug("producer.stop", event="producer.stop")

    async def send_and_wait(self, topic: str, value: Any, key: bytes | None = None) -> None:
        await BROKER.produce(topic, value, key)


class AIOKafkaConsumerMock:
    def __init__(
        self,
        *topics: str,
        bootstrap_servers: str | None = None,
        group_id: str | None = None,
        value_deserializer=None,
        enable_auto_commit: bool = True,
        auto_offset_reset: str = "latest",
    ) -> None:
        self._topics = list(topics)
        self._group = group_id or "default"
        self._queues: list[asyncio.Queue] = []

    async def start(self) -> None:
        self._queues = [BROKER.ensure_queue(t, self._group) for t in self._topics]
        LOG.debug("consumer.start", event="consumer.start", group_id=self._group, topics=self._topics)

    async def stop(self) -> None:
        LOG.debug("consumer.stop", event="consumer.stop", group_id=self._group)
        for t in self._topics:
            tg = BROKER.topics.get(t)
            if tg:
                tg.pop(self._group, None)

    async def getone(self):
        while True:
            for q in self._queues:
                try:
                    rec = q.get_nowait()
                except asyncio.QueueEmpty:
                    continue
                with log_context(group_id=self._group, topic=rec.topic):
                    LOG.debug("consumer.get", event="consumer.get")
                return rec
            await asyncio.sleep(0.003)


def install_kafka_mocks(monkeypatch) -> InMemKafkaBroker:
    """Swap aiokafka classes used by the bus for the in-memory mocks."""
    from clusterkit.bus import kafka as bus

    BROKER.reset()
    monkeypatch.setattr(bus, "AIOKafkaProducer", AIOKafkaProducerMock, raising=True)
    monkeypatch.setattr(bus, "AIOKafkaConsumer", AIOKafkaConsumerMock, raising=True)
    LOG.debug("env.kafka.mocked", event="env.kafka.mocked")
    return BROKER
