"""Production adapters for the application ports."""

from taskflow.infrastructure.adapters.logging_notification_sink import (
    LoggingNotificationSink,
)
from taskflow.infrastructure.adapters.system_time_authority import SystemTimeAuthority

__all__ = [
    "LoggingNotificationSink",
    "SystemTimeAuthority",
]
