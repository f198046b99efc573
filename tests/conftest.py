"""Pytest configuration and fixtures for redis-mutex tests"""

import logging

import pytest

from fake_coordinator import FakeCoordinator
from redis_mutex.core.colors import ConsoleColors
from redis_mutex.core.config import ConnectionConfig, LockConfig, RunConfig
from redis_mutex.protocol.session import Session


@pytest.fixture
def coordinator():
    """Running fake coordinator on an ephemeral port"""
    with FakeCoordinator() as server:
        yield server


@pytest.fixture
def connection_config(coordinator):
    """Connection parameters pointing at the fake coordinator"""
    return ConnectionConfig(
        host=coordinator.host,
        port=coordinator.port,
        max_connect_attempts=1,
        connect_timeout_seconds=2.0,
        socket_timeout_seconds=5.0,
    )


@pytest.fixture
def session(connection_config):
    """Open session to the fake coordinator, closed after the test"""
    sess = Session.connect(connection_config)
    yield sess
    sess.close()


@pytest.fixture
def make_run_config(connection_config):
    """Factory for RunConfig with fast polling defaults"""

    def _make(key="job-x", ttl=5, wait=2, interval=0.05, command=None):
        return RunConfig(
            connection=connection_config,
            lock=LockConfig(key=key, ttl_seconds=ttl, acquire_timeout_seconds=wait, poll_interval_seconds=interval),
            command=list(command or ["true"]),
        )

    return _make


@pytest.fixture(autouse=True)
def _reset_global_state(monkeypatch):
    """Keep color and logging configuration from leaking between tests"""
    monkeypatch.setattr(ConsoleColors, "_enabled", False)
    root_level = logging.root.level
    yield
    logging.root.setLevel(root_level)
    for handler in logging.root.handlers[:]:
        if handler.__class__.__module__.startswith("_pytest"):
            continue
        handler.close()
        logging.root.removeHandler(handler)
