# conftest.py
from __future__ import annotations

import os
import uuid

import pytest

from clusterkit.core.config import OrchestratorConfig
from clusterkit.core.log import (
    bind_context,
    configure_from_env,
    enable_stdout_logging,
    get_logger,
    log_context,
)
from clusterkit.core.time import ManualClock
from clusterkit.promotion.handlers import PromotionHandlers
from clusterkit.store.backup import StoreBackupSubsystem
from tests.helpers import InMemoryStore, ScriptedExecutor


def pytest_addoption(parser):
    parser.addoption(
        "--log-json",
        action="store_true",
        default=False,
        help="Emit clusterkit logs in JSON format during tests",
    )


@pytest.fixture(scope="session", autouse=True)
def _configure_clusterkit_logging(request):
    configure_from_env()
    prefer_json = request.config.getoption("--log-json")
    if os.getenv("CLUSTERKIT_LOG_STDOUT", "").lower() not in ("1", "true", "yes", "on"):
        enable_stdout_logging(
            level="DEBUG",
            json_output=prefer_json,
            pretty=not prefer_json,
            route_errors_to_stderr=True,
        )
    bind_context(role="pytest")


@pytest.fixture(scope="session")
def session_run_id():
    return uuid.uuid4().hex[:8]


@pytest.fixture(autouse=True)
def _test_log_context(request, session_run_id):
    log = get_logger("test")
    with log_context(test=request.node.name, test_run=session_run_id):
        log.debug("pytest.test.start", event="pytest.test.start")
        yield


@pytest.fixture
def tlog():
    return get_logger("test")


# Half-second ticks and a five-second timeout keep ManualClock runs short.
_FAST = {"promotion_poll_interval_sec": 0.5, "promotion_timeout_sec": 5}


@pytest.fixture
def cfg(request):
    m = request.node.get_closest_marker("cfg")
    overrides = {**_FAST, **((m.kwargs if m else {}) or {})}
    return OrchestratorConfig.load(overrides=overrides)


@pytest.fixture
def clock():
    return ManualClock(start_ms=1_700_000_000_000)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def executor():
    """Promotes on the first tick unless a test rewires the scripts."""
    return ScriptedExecutor(psql=[" f\n"], curl=['{"state": "running", "role": "master"}'])


@pytest.fixture
def backups(store, clock):
    return StoreBackupSubsystem(store, clock=clock)


@pytest.fixture
def handlers(store, executor, backups, cfg, clock):
    return PromotionHandlers(store=store, executor=executor, backups=backups, cfg=cfg, clock=clock)


def pytest_configure(config):
    config.addinivalue_line("markers", "cfg(**overrides): per-test OrchestratorConfig overrides")
