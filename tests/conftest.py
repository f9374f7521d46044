"""Shared pytest fixtures for QueryKit unit and integration tests."""
from __future__ import annotations

import pytest

from querykit.config import reset_config, set_default_executor
from querykit.events import event_manager
from querykit.simulation import simulation_manager
from tests.fixtures import RecordingExecutor, sample_users


@pytest.fixture(autouse=True)
def _isolated_state():
    """Reset the process-wide configuration, snapshot and listeners."""
    reset_config()
    simulation_manager.stop()
    event_manager.clear()
    yield
    reset_config()
    simulation_manager.stop()
    event_manager.clear()


@pytest.fixture()
def users() -> list[dict]:
    return sample_users()


@pytest.fixture()
def executor(users) -> RecordingExecutor:
    """A recording executor registered as the default executor."""
    fake = RecordingExecutor(rows=users)
    set_default_executor(fake)
    return fake
