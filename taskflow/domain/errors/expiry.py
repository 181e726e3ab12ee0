"""Expiry errors for SLA-bounded windows.

Raised when an operation targets a reopen window or modification
request whose SLA has passed. The expiry itself has already been
applied and persisted by the time this error reaches the caller.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from taskflow.domain.exceptions import TaskflowError


class ExpiredError(TaskflowError):
    """Raised when an SLA or request window has passed.

    Attributes:
        task_id: The task the window belongs to.
        subject: What expired ("reopen_window" or "modification_request").
        expired_at: When the window closed.
        request_id: The expired request, when the subject is a request.
    """

    def __init__(
        self,
        task_id: UUID,
        subject: str,
        expired_at: datetime | None = None,
        request_id: UUID | None = None,
    ) -> None:
        """Initialize expired error.

        Args:
            task_id: UUID of the task.
            subject: Kind of window that expired.
            expired_at: Deadline that was missed.
            request_id: UUID of the expired request, if any.
        """
        self.task_id = task_id
        self.subject = subject
        self.expired_at = expired_at
        self.request_id = request_id
        msg = f"{subject.replace('_', ' ').capitalize()} has expired for task {task_id}"
        if request_id:
            msg += f" (request_id={request_id})"
        if expired_at:
            msg += f", deadline was {expired_at.isoformat()}"
        super().__init__(msg)
