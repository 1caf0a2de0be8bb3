from .backup import RecordingBackups
from .executor import ScriptedExecutor, leader
from .inmemory_store import InMemoryStore
from .kafka import BROKER, AIOKafkaConsumerMock, AIOKafkaProducerMock, install_kafka_mocks
from .records import make_cluster, make_pod, make_repo_pod, make_task

__all__ = [
    "BROKER",
    "AIOKafkaConsumerMock",
    "AIOKafkaProducerMock",
    "InMemoryStore",
    "RecordingBackups",
    "ScriptedExecutor",
    "install_kafka_mocks",
    "leader",
    "make_cluster",
    "make_pod",
    "make_repo_pod",
    "make_task",
]
