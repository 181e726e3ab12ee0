"""
Pytest configuration and shared fixtures for taskflow tests.

Testing Standards:
- All async tests use pytest.mark.asyncio (auto mode enabled in pyproject.toml)
- Use AsyncMock for failing collaborators
- Time-dependent tests use FakeTimeAuthority, never the system clock
- Unit tests go in tests/unit/
- Integration tests go in tests/integration/
"""

import pytest

from taskflow.bootstrap.engine import TaskflowEngine, build_engine
from taskflow.config.lifecycle_config import LifecycleConfig
from taskflow.infrastructure.stubs import (
    InMemoryTaskRepository,
    RecordingNotificationSink,
    StaticAdminDirectory,
)
from tests.helpers import FakeTimeAuthority


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def project_version() -> str:
    """Provide the current project version for tests."""
    from taskflow import __version__

    return __version__


@pytest.fixture
def fake_time() -> FakeTimeAuthority:
    """Clock frozen at 2026-01-01T00:00:00 UTC."""
    return FakeTimeAuthority()


@pytest.fixture
def repository() -> InMemoryTaskRepository:
    return InMemoryTaskRepository()


@pytest.fixture
def sink() -> RecordingNotificationSink:
    return RecordingNotificationSink()


@pytest.fixture
def admin_directory() -> StaticAdminDirectory:
    """Scopes the task creator plus a supervisor to every task."""
    return StaticAdminDirectory(["supervisor-1"])


@pytest.fixture
def config() -> LifecycleConfig:
    return LifecycleConfig()


@pytest.fixture
def engine(
    repository: InMemoryTaskRepository,
    sink: RecordingNotificationSink,
    admin_directory: StaticAdminDirectory,
    fake_time: FakeTimeAuthority,
    config: LifecycleConfig,
) -> TaskflowEngine:
    """Engine wired to in-memory stubs and the fake clock."""
    return build_engine(
        repository=repository,
        notification_sink=sink,
        admin_directory=admin_directory,
        time_authority=fake_time,
        config=config,
    )
