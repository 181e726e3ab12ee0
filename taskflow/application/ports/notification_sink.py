"""Notification sink port.

The engine tells the sink who should hear about what; delivery (email,
push, in-app) is out of scope. Notifications are fire-and-forget: a
failing sink is logged and never fails the operation that triggered it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol


class NotificationKind(str, Enum):
    """Kinds of notification the engine emits."""

    TASK_ASSIGNED = "task_assigned"
    TASK_DECLINED = "task_declined"
    TASK_WITHDRAWN = "task_withdrawn"
    TASK_SUBMITTED = "task_submitted"
    TASK_VERIFIED = "task_verified"
    TASK_FAILED = "task_failed"
    TASK_REOPENED = "task_reopened"
    REOPEN_ACCEPTED = "reopen_accepted"
    REOPEN_DECLINED = "reopen_declined"
    REOPEN_SLA_BREACH = "reopen_sla_breach"
    MODIFICATION_REQUESTED = "modification_requested"
    MODIFICATION_RESPONDED = "modification_responded"
    MODIFICATION_REVIEWED = "modification_reviewed"
    MODIFICATION_EXPIRED = "modification_expired"
    MODIFICATION_MESSAGE = "modification_message"
    EXTENSION_REQUESTED = "extension_requested"
    EXTENSION_REVIEWED = "extension_reviewed"
    DEADLINE_EXTENDED = "deadline_extended"


@dataclass(frozen=True)
class Notification:
    """A notification to deliver to one user.

    Attributes:
        user_id: Recipient identity.
        kind: What happened.
        title: Short human-readable title.
        payload: Additional structured data (task id, request id, ...).
    """

    user_id: str
    kind: NotificationKind
    title: str
    payload: dict[str, Any] = field(default_factory=dict)


class NotificationSinkProtocol(Protocol):
    """Protocol for delivering notifications.

    Implementations may raise on delivery failure; callers log and
    continue.
    """

    async def notify(self, notification: Notification) -> None:
        """Deliver a notification.

        Args:
            notification: The notification to deliver.
        """
        ...
