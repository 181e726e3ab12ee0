"""Recording notification sink stub.

Keeps every notification in memory so tests can assert on who was told
what.
"""

from __future__ import annotations

from taskflow.application.ports.notification_sink import (
    Notification,
    NotificationKind,
    NotificationSinkProtocol,
)


class RecordingNotificationSink(NotificationSinkProtocol):
    """In-memory implementation of NotificationSinkProtocol."""

    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    async def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)

    def of_kind(self, kind: NotificationKind) -> list[Notification]:
        return [n for n in self.notifications if n.kind == kind]

    def for_user(self, user_id: str) -> list[Notification]:
        return [n for n in self.notifications if n.user_id == user_id]

    def clear(self) -> None:
        self.notifications.clear()
