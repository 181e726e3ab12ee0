"""Engine wiring: services, workflows and monitors from ports and config.

Usage:
    engine = build_engine(
        repository=repository,
        notification_sink=sink,
        admin_directory=directory,
        time_authority=SystemTimeAuthority(),
        config=LifecycleConfig.from_environment(),
    )
    await engine.start()
    task = await engine.lifecycle.create_task(...)
    await engine.stop()
"""

from __future__ import annotations

import os
from dataclasses import dataclass

import structlog
from dotenv import load_dotenv

from taskflow.application.ports.admin_directory import AdminDirectoryProtocol
from taskflow.application.ports.notification_sink import NotificationSinkProtocol
from taskflow.application.ports.task_repository import TaskRepositoryProtocol
from taskflow.application.ports.time_authority import TimeAuthorityProtocol
from taskflow.application.services.extension_request_service import (
    ExtensionRequestService,
)
from taskflow.application.services.modification_expiry_monitor import (
    ModificationExpiryMonitor,
)
from taskflow.application.services.modification_request_service import (
    ModificationRequestService,
)
from taskflow.application.services.reopen_sla_monitor import ReopenSlaMonitor
from taskflow.application.services.reopen_sla_service import ReopenSlaService
from taskflow.application.services.task_lifecycle_service import TaskLifecycleService
from taskflow.application.services.task_mutation import TaskMutator
from taskflow.config.lifecycle_config import DEFAULT_LIFECYCLE_CONFIG, LifecycleConfig
from taskflow.domain.services.extension_workflow import ExtensionWorkflow
from taskflow.domain.services.modification_workflow import ModificationWorkflow
from taskflow.domain.services.task_state_machine import TaskStateMachine
from taskflow.infrastructure.adapters import LoggingNotificationSink, SystemTimeAuthority
from taskflow.infrastructure.observability import configure_structlog
from taskflow.infrastructure.stubs import InMemoryTaskRepository, StaticAdminDirectory

logger = structlog.get_logger()

ENVIRONMENT_ENV = "TASKFLOW_ENV"
ADMIN_IDS_ENV = "TASKFLOW_ADMIN_IDS"


@dataclass
class TaskflowEngine:
    """All services and monitors of one engine instance."""

    config: LifecycleConfig
    lifecycle: TaskLifecycleService
    modifications: ModificationRequestService
    extensions: ExtensionRequestService
    reopen_sla: ReopenSlaService
    reopen_monitor: ReopenSlaMonitor
    expiry_monitor: ModificationExpiryMonitor

    @property
    def running(self) -> bool:
        return self.reopen_monitor.running or self.expiry_monitor.running

    async def start(self) -> None:
        """Start both monitors (idempotent)."""
        await self.reopen_monitor.start()
        await self.expiry_monitor.start()
        logger.info("taskflow_engine_started")

    async def stop(self) -> None:
        """Stop both monitors and wait for them to finish."""
        await self.reopen_monitor.stop()
        await self.expiry_monitor.stop()
        logger.info("taskflow_engine_stopped")


def build_engine(
    repository: TaskRepositoryProtocol,
    notification_sink: NotificationSinkProtocol,
    admin_directory: AdminDirectoryProtocol,
    time_authority: TimeAuthorityProtocol,
    config: LifecycleConfig = DEFAULT_LIFECYCLE_CONFIG,
) -> TaskflowEngine:
    """Wire an engine from its ports and configuration."""
    machine = TaskStateMachine(reopen_sla_window=config.reopen_sla_window)
    modification_workflow = ModificationWorkflow(
        machine, default_sla=config.modification_request_default_sla
    )
    extension_workflow = ExtensionWorkflow(machine)
    mutator = TaskMutator(
        repository,
        notification_sink,
        time_authority,
        max_save_attempts=config.max_save_attempts,
    )

    modifications = ModificationRequestService(mutator, modification_workflow, repository)
    reopen_sla = ReopenSlaService(mutator, repository, machine, admin_directory)

    return TaskflowEngine(
        config=config,
        lifecycle=TaskLifecycleService(mutator, machine, admin_directory),
        modifications=modifications,
        extensions=ExtensionRequestService(mutator, extension_workflow),
        reopen_sla=reopen_sla,
        reopen_monitor=ReopenSlaMonitor(
            reopen_sla,
            time_authority,
            interval_seconds=config.monitor_interval.total_seconds(),
        ),
        expiry_monitor=ModificationExpiryMonitor(
            modifications,
            time_authority,
            interval_seconds=config.modification_sweep_interval.total_seconds(),
        ),
    )


def build_default_engine() -> TaskflowEngine:
    """Build an engine from the environment with in-memory storage.

    Loads a .env file if present, configures logging from TASKFLOW_ENV
    and reads TASKFLOW_ADMIN_IDS (comma separated) for the admin
    directory.
    """
    load_dotenv()
    configure_structlog(environment=os.getenv(ENVIRONMENT_ENV, "development"))
    admin_ids = [
        admin_id.strip()
        for admin_id in os.getenv(ADMIN_IDS_ENV, "").split(",")
        if admin_id.strip()
    ]
    config = LifecycleConfig.from_environment()
    logger.info(
        "taskflow_engine_configured",
        reopen_sla_days=config.reopen_sla_days,
        modification_request_sla_hours=config.modification_request_sla_hours,
        max_save_attempts=config.max_save_attempts,
    )
    return build_engine(
        repository=InMemoryTaskRepository(),
        notification_sink=LoggingNotificationSink(),
        admin_directory=StaticAdminDirectory(admin_ids),
        time_authority=SystemTimeAuthority(),
        config=config,
    )


_engine: TaskflowEngine | None = None


def get_engine() -> TaskflowEngine:
    """Get the process-wide engine, building the default one on first use."""
    global _engine
    if _engine is None:
        _engine = build_default_engine()
    return _engine


def set_engine(engine: TaskflowEngine | None) -> None:
    """Set (or reset with None) the process-wide engine."""
    global _engine
    _engine = engine
