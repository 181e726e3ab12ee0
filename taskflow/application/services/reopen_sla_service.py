"""Reopen SLA processing.

Closes reopened tasks whose response window passed without an answer:
the original work stays verified, the reopen is marked timed out and the
admins scoped to the task are told about the breach.

Processing a task that already timed out is a no-op: no activity entry
is written and nobody is notified again.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from taskflow.application.ports.admin_directory import AdminDirectoryProtocol
from taskflow.application.ports.task_repository import TaskRepositoryProtocol
from taskflow.application.services import notifications
from taskflow.application.services.base import LoggingMixin
from taskflow.application.services.task_mutation import Mutation, TaskMutator
from taskflow.domain.models.task import Task
from taskflow.domain.services.task_state_machine import TaskStateMachine


class ReopenSlaService(LoggingMixin):
    """Applies reopen timeouts to every overdue reopened task."""

    def __init__(
        self,
        mutator: TaskMutator,
        repository: TaskRepositoryProtocol,
        state_machine: TaskStateMachine,
        admin_directory: AdminDirectoryProtocol,
    ) -> None:
        self._mutator = mutator
        self._repository = repository
        self._machine = state_machine
        self._admins = admin_directory
        self._init_logger()

    async def process_expired_reopens(self) -> int:
        """Time out every reopened task whose window has passed.

        Per-task failures are logged and skipped so one bad task cannot
        stall the sweep.

        Returns:
            Number of tasks timed out in this sweep.
        """
        log = self._log_operation("process_expired_reopens")
        now = self._mutator.time_authority.now()
        candidates = await self._repository.list_reopened_due(now)
        processed = 0
        for candidate in candidates:
            try:
                if await self.process_task(candidate.task_id):
                    processed += 1
            except Exception as exc:
                log.error(
                    "reopen_sla_processing_failed",
                    task_id=str(candidate.task_id),
                    error=str(exc),
                )
        log.info(
            "reopen_sla_sweep_completed",
            candidates=len(candidates),
            timed_out=processed,
        )
        return processed

    async def process_task(self, task_id: UUID) -> bool:
        """Apply the reopen timeout to one task if it is due.

        Returns:
            True if the task was timed out by this call.
        """
        applied = False

        async def mutate(task: Task, now: datetime) -> Mutation:
            nonlocal applied
            updated = self._machine.apply_reopen_timeout(task, now=now)
            applied = updated is not task
            if not applied:
                return Mutation(task)
            admin_ids = await self._admins.admin_ids_for(task)
            return Mutation(updated, notifications.reopen_sla_breach(updated, admin_ids))

        saved = await self._mutator.apply(task_id, "reopen_sla_timeout", mutate)
        if applied:
            self._log_operation("reopen_sla_timeout", task_id=str(task_id)).info(
                "reopen_sla_timeout_applied",
                breached_at=(
                    saved.reopen_sla_breached_at.isoformat()
                    if saved.reopen_sla_breached_at
                    else None
                ),
            )
        return applied
