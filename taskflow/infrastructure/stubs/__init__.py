"""In-memory stub implementations of the application ports.

For development and testing only.
"""

from taskflow.infrastructure.stubs.admin_directory_stub import StaticAdminDirectory
from taskflow.infrastructure.stubs.notification_sink_stub import (
    RecordingNotificationSink,
)
from taskflow.infrastructure.stubs.task_repository_stub import InMemoryTaskRepository

__all__ = [
    "InMemoryTaskRepository",
    "RecordingNotificationSink",
    "StaticAdminDirectory",
]
