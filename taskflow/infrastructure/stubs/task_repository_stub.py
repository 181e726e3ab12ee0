"""In-memory task repository stub.

Implements TaskRepositoryProtocol with a dict keyed by task id. Version
checks follow the protocol, so the stub is suitable for exercising the
retry paths of the services. It is NOT suitable for production use.
"""

from __future__ import annotations

import dataclasses
from datetime import datetime
from uuid import UUID

from taskflow.application.ports.task_repository import TaskRepositoryProtocol
from taskflow.domain.errors import ConcurrentModificationError, TaskNotFoundError
from taskflow.domain.models.task import ReopenSlaStatus, Task, TaskStatus


class InMemoryTaskRepository(TaskRepositoryProtocol):
    """In-memory implementation of TaskRepositoryProtocol.

    Attributes:
        _tasks: Dictionary mapping task_id to the stored Task.
        _pending_conflicts: Saves still to be rejected by simulate_conflicts().
    """

    def __init__(self) -> None:
        self._tasks: dict[UUID, Task] = {}
        self._pending_conflicts: int = 0
        self.save_calls: int = 0

    async def add(self, task: Task) -> Task:
        if task.task_id in self._tasks:
            raise ValueError(f"Task {task.task_id} already exists")
        stored = dataclasses.replace(task, version=1)
        self._tasks[task.task_id] = stored
        return stored

    async def get_by_id(self, task_id: UUID) -> Task | None:
        return self._tasks.get(task_id)

    async def save(self, task: Task, expected_version: int) -> Task:
        self.save_calls += 1
        current = self._tasks.get(task.task_id)
        if current is None:
            raise TaskNotFoundError(task.task_id)
        if self._pending_conflicts > 0:
            self._pending_conflicts -= 1
            raise ConcurrentModificationError(
                task.task_id, expected_version, current.version + 1
            )
        if current.version != expected_version:
            raise ConcurrentModificationError(
                task.task_id, expected_version, current.version
            )
        stored = dataclasses.replace(task, version=current.version + 1)
        self._tasks[task.task_id] = stored
        return stored

    async def list_reopened_due(self, now: datetime) -> list[Task]:
        return [
            task
            for task in self._tasks.values()
            if task.status == TaskStatus.REOPENED
            and task.reopen_due_at is not None
            and task.reopen_due_at <= now
            and task.reopen_sla_status != ReopenSlaStatus.TIMED_OUT
        ]

    async def list_with_expired_requests(self, now: datetime) -> list[Task]:
        return [
            task
            for task in self._tasks.values()
            if any(
                request.is_overdue(now)
                for request in task.modification_requests
                + task.employee_modification_requests
            )
        ]

    # Test helpers

    def simulate_conflicts(self, count: int = 1) -> None:
        """Reject the next `count` saves as if another writer got there first."""
        self._pending_conflicts = count

    def put(self, task: Task) -> None:
        """Store a task as-is, bypassing version checks (test setup)."""
        self._tasks[task.task_id] = task

    def clear(self) -> None:
        self._tasks.clear()
        self._pending_conflicts = 0
        self.save_calls = 0
