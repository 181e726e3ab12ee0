"""Load, mutate, save and notify with optimistic-concurrency retries.

Every write in the engine goes through TaskMutator.apply():

1. Load the task (TaskNotFoundError if missing)
2. Read the clock
3. Run the mutation (pure domain call, may raise a domain error)
4. Save with expected_version = loaded version
5. On ConcurrentModificationError, start again from 1 with a fresh read
6. Deliver notifications (failures are logged, never raised)
7. Raise the mutation's deferred error, if any

The deferred error carries lazy-expiry outcomes: the expiry is saved
first and the ExpiredError reaches the caller afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Iterable
from uuid import UUID

from taskflow.application.ports.notification_sink import (
    Notification,
    NotificationSinkProtocol,
)
from taskflow.application.ports.task_repository import TaskRepositoryProtocol
from taskflow.application.ports.time_authority import TimeAuthorityProtocol
from taskflow.application.services.base import LoggingMixin
from taskflow.domain.errors import ConcurrentModificationError, TaskNotFoundError
from taskflow.domain.exceptions import TaskflowError
from taskflow.domain.models.task import Task

DEFAULT_MAX_SAVE_ATTEMPTS: int = 3
"""Attempts per write before a version conflict reaches the caller."""


@dataclass(frozen=True)
class Mutation:
    """Outcome of applying an operation to a loaded task.

    Attributes:
        task: The new task state. Returning the loaded task object itself
            means nothing changed and nothing is saved.
        notifications: Delivered after a successful save.
        deferred_error: Raised after the save and the notifications.
    """

    task: Task
    notifications: tuple[Notification, ...] = ()
    deferred_error: TaskflowError | None = None


MutateFn = Callable[[Task, datetime], Awaitable[Mutation]]


class TaskMutator(LoggingMixin):
    """Runs task mutations against the repository.

    Example:
        >>> async def mutate(task, now):
        ...     return Mutation(machine.accept(task, actor=actor, now=now))
        >>> task = await mutator.apply(task_id, "accept", mutate)
    """

    def __init__(
        self,
        repository: TaskRepositoryProtocol,
        notification_sink: NotificationSinkProtocol,
        time_authority: TimeAuthorityProtocol,
        max_save_attempts: int = DEFAULT_MAX_SAVE_ATTEMPTS,
    ) -> None:
        """Initialize the mutator.

        Args:
            repository: Task persistence.
            notification_sink: Where notifications go after a save.
            time_authority: Clock read once per attempt.
            max_save_attempts: Attempts before a conflict propagates.
        """
        if max_save_attempts < 1:
            raise ValueError("max_save_attempts must be at least 1")
        self._repository = repository
        self._sink = notification_sink
        self._time = time_authority
        self._max_attempts = max_save_attempts
        self._init_logger()

    @property
    def time_authority(self) -> TimeAuthorityProtocol:
        return self._time

    async def load(self, task_id: UUID) -> Task:
        """Load a task or raise TaskNotFoundError."""
        task = await self._repository.get_by_id(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def add(self, task: Task, notifications: Iterable[Notification] = ()) -> Task:
        """Persist a new task and deliver its notifications."""
        stored = await self._repository.add(task)
        await self.deliver(notifications)
        return stored

    async def apply(
        self,
        task_id: UUID,
        operation: str,
        mutate: MutateFn,
        **context: object,
    ) -> Task:
        """Apply a mutation to a task and persist it.

        Args:
            task_id: Task to change.
            operation: Operation name for logging.
            mutate: Async callable producing a Mutation from (task, now).
            **context: Extra logging context (actor_id, request_id, ...).

        Returns:
            The saved task, or the loaded task when nothing changed.

        Raises:
            TaskNotFoundError: If the task does not exist.
            ConcurrentModificationError: If every attempt lost a race.
            TaskflowError: Any domain error raised by the mutation, or
                its deferred error.
        """
        log = self._log_operation(operation, task_id=str(task_id), **context)
        attempt = 0
        while True:
            attempt += 1
            task = await self.load(task_id)
            now = self._time.now()
            try:
                mutation = await mutate(task, now)
            except TaskflowError as exc:
                log.warning(
                    "operation_rejected",
                    error=type(exc).__name__,
                    message=str(exc),
                    status=task.status.value,
                )
                raise

            if mutation.task is task:
                if mutation.deferred_error is not None:
                    raise mutation.deferred_error
                log.debug("operation_no_change", status=task.status.value)
                return task

            try:
                saved = await self._repository.save(
                    mutation.task, expected_version=task.version
                )
            except ConcurrentModificationError as exc:
                if attempt >= self._max_attempts:
                    log.warning(
                        "save_conflict_retries_exhausted",
                        attempts=attempt,
                        actual_version=exc.actual_version,
                    )
                    raise
                log.info("save_conflict_retrying", attempt=attempt)
                continue

            log.info(
                "task_saved",
                from_status=task.status.value,
                to_status=saved.status.value,
                version=saved.version,
            )
            await self.deliver(mutation.notifications)
            if mutation.deferred_error is not None:
                log.info("deferred_error_raised", error=type(mutation.deferred_error).__name__)
                raise mutation.deferred_error
            return saved

    async def deliver(self, notifications: Iterable[Notification]) -> None:
        """Send notifications; a failing sink is logged and skipped."""
        for notification in notifications:
            try:
                await self._sink.notify(notification)
            except Exception as exc:
                self._log.warning(
                    "notification_delivery_failed",
                    user_id=notification.user_id,
                    kind=notification.kind.value,
                    task_id=notification.payload.get("task_id"),
                    error=str(exc),
                )
