"""Application ports (interfaces to external collaborators)."""

from taskflow.application.ports.admin_directory import AdminDirectoryProtocol
from taskflow.application.ports.notification_sink import (
    Notification,
    NotificationKind,
    NotificationSinkProtocol,
)
from taskflow.application.ports.task_repository import TaskRepositoryProtocol
from taskflow.application.ports.time_authority import TimeAuthorityProtocol

__all__ = [
    "AdminDirectoryProtocol",
    "Notification",
    "NotificationKind",
    "NotificationSinkProtocol",
    "TaskRepositoryProtocol",
    "TimeAuthorityProtocol",
]
