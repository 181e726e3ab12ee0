"""Lookup errors for tasks and their requests."""

from __future__ import annotations

from uuid import UUID

from taskflow.domain.exceptions import TaskflowError


class NotFoundError(TaskflowError):
    """Base class for unknown task or request ids."""

    pass


class TaskNotFoundError(NotFoundError):
    """Raised when a task id is unknown to the repository."""

    def __init__(self, task_id: UUID) -> None:
        self.task_id = task_id
        super().__init__(f"Task not found: {task_id}")


class RequestNotFoundError(NotFoundError):
    """Raised when a request id is not present on the task.

    Attributes:
        task_id: The task that was searched.
        request_id: The request id that was not found.
        kind: Which collection was searched ("modification" or "extension").
    """

    def __init__(self, task_id: UUID, request_id: UUID, kind: str = "modification") -> None:
        self.task_id = task_id
        self.request_id = request_id
        self.kind = kind
        super().__init__(
            f"{kind.capitalize()} request {request_id} not found on task {task_id}"
        )
