"""Application services: the entry points of the lifecycle engine."""

from taskflow.application.services.extension_request_service import (
    ExtensionRequestService,
)
from taskflow.application.services.modification_expiry_monitor import (
    ModificationExpiryMonitor,
)
from taskflow.application.services.modification_request_service import (
    ModificationRequestService,
)
from taskflow.application.services.periodic_monitor import PeriodicMonitor
from taskflow.application.services.reopen_sla_monitor import ReopenSlaMonitor
from taskflow.application.services.reopen_sla_service import ReopenSlaService
from taskflow.application.services.task_lifecycle_service import TaskLifecycleService
from taskflow.application.services.task_mutation import Mutation, TaskMutator

__all__ = [
    "ExtensionRequestService",
    "ModificationExpiryMonitor",
    "ModificationRequestService",
    "Mutation",
    "PeriodicMonitor",
    "ReopenSlaMonitor",
    "ReopenSlaService",
    "TaskLifecycleService",
    "TaskMutator",
]
