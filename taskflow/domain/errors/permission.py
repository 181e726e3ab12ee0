"""Actor permission errors.

Authentication and capability checks live outside the engine; this error
covers the checks the engine itself owns: employee transitions are
reserved for the task's assignee, admin transitions for admins.
"""

from __future__ import annotations

from uuid import UUID

from taskflow.domain.exceptions import TaskflowError


class ActorNotPermittedError(TaskflowError):
    """Raised when the acting user may not perform the operation.

    Attributes:
        task_id: The task the operation targeted.
        actor_id: The acting user id.
        operation: The attempted operation.
        reason: Why the actor was rejected.
    """

    def __init__(self, task_id: UUID, actor_id: str, operation: str, reason: str) -> None:
        self.task_id = task_id
        self.actor_id = actor_id
        self.operation = operation
        self.reason = reason
        super().__init__(
            f"Actor {actor_id} may not {operation} task {task_id}: {reason}"
        )
