"""Task repository port.

The engine persists tasks only through this port. Saves are
version-checked: a writer passes the version it loaded and the save
fails if anyone else saved in between.

Persistence technology is out of scope; an in-memory implementation
lives in taskflow/infrastructure/stubs/.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from taskflow.domain.models.task import Task


class TaskRepositoryProtocol(Protocol):
    """Protocol for task persistence with optimistic concurrency.

    Implementations must:
    - Store a new task with version 1 on add()
    - Reject save() when expected_version differs from the stored version
    - Increment the version on every successful save()
    """

    async def add(self, task: Task) -> Task:
        """Persist a newly created task.

        Args:
            task: The task to store (its version is ignored).

        Returns:
            The stored task with version 1.

        Raises:
            ValueError: If a task with the same id already exists.
        """
        ...

    async def get_by_id(self, task_id: UUID) -> Task | None:
        """Load a task by id.

        Args:
            task_id: The task UUID.

        Returns:
            The task if found, None otherwise.
        """
        ...

    async def save(self, task: Task, expected_version: int) -> Task:
        """Replace a stored task if nobody saved it since it was loaded.

        Args:
            task: The new task state.
            expected_version: The version the writer loaded.

        Returns:
            The stored task with its version incremented.

        Raises:
            TaskNotFoundError: If the task does not exist.
            ConcurrentModificationError: If the stored version differs.
        """
        ...

    async def list_reopened_due(self, now: datetime) -> list[Task]:
        """Tasks whose reopen window passed without a timeout applied.

        Selects status == reopened, reopen_due_at <= now and
        reopen_sla_status != timed_out.
        """
        ...

    async def list_with_expired_requests(self, now: datetime) -> list[Task]:
        """Tasks holding a pending modification request past its expiry."""
        ...
