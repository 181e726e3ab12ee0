"""Notification sink that writes each notification to the structured log.

Stands in for a delivery channel (email, push, in-app) in deployments
that only need an audit trail of who should have been told what.
"""

from __future__ import annotations

from structlog import get_logger

from taskflow.application.ports.notification_sink import (
    Notification,
    NotificationSinkProtocol,
)

logger = get_logger()


class LoggingNotificationSink(NotificationSinkProtocol):
    """Logs every notification as a `notification_emitted` event."""

    def __init__(self, channel: str = "log") -> None:
        self._log = logger.bind(service="notification_sink", channel=channel)

    async def notify(self, notification: Notification) -> None:
        self._log.info(
            "notification_emitted",
            user_id=notification.user_id,
            kind=notification.kind.value,
            title=notification.title,
            **notification.payload,
        )
