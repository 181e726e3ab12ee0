"""State conflict errors for the task lifecycle.

These errors signal that a syntactically valid operation is not allowed
in the task's (or request's) current state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from taskflow.domain.exceptions import TaskflowError

if TYPE_CHECKING:
    from taskflow.domain.models.task import TaskStatus


class StateConflictError(TaskflowError):
    """Raised when a transition guard is not satisfied.

    No mutation is performed when this error is raised.

    Attributes:
        task_id: The task the operation targeted.
        operation: The attempted operation (e.g. "verify", "reopen").
        current_status: The task status at the time of the attempt.
        reason: Why the guard rejected the operation.
    """

    def __init__(
        self,
        task_id: UUID,
        operation: str,
        reason: str,
        current_status: TaskStatus | None = None,
    ) -> None:
        """Initialize state conflict error.

        Args:
            task_id: UUID of the task.
            operation: Name of the rejected operation.
            reason: Guard failure description.
            current_status: Task status when the guard was evaluated.
        """
        self.task_id = task_id
        self.operation = operation
        self.reason = reason
        self.current_status = current_status
        status_str = f" (status={current_status.value})" if current_status else ""
        super().__init__(
            f"Cannot {operation} task {task_id}{status_str}: {reason}"
        )


class AlreadyProcessedError(TaskflowError):
    """Raised when a request is no longer pending.

    Responding to, approving, rejecting or reviewing a request that has
    already left the pending state is rejected with this error.

    Attributes:
        request_id: The request being acted on.
        status: The request's current (non-pending) status value.
    """

    def __init__(self, request_id: UUID, status: str) -> None:
        """Initialize already processed error.

        Args:
            request_id: UUID of the request.
            status: Current status value of the request.
        """
        self.request_id = request_id
        self.status = status
        super().__init__(f"Request {request_id} already processed (status={status})")
