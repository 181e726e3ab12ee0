"""Task lifecycle application service.

Entry point for every status transition and direct admin action on a
task. Each operation validates its payload, loads the task, applies the
TaskStateMachine transition, persists with a version check and notifies
the counterpart.

Reopen responses apply the reopen timeout lazily: answering a reopen
whose window has passed closes it as verified (persisted) and then
raises ExpiredError.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from taskflow.application.dtos.commands import (
    CreateTaskCommand,
    DirectEditCommand,
    FailCommand,
    NoteCommand,
    ReasonCommand,
    ReassignCommand,
    SubmitWorkCommand,
    WithdrawCommand,
    parse_command,
)
from taskflow.application.dtos.task_view import TaskView
from taskflow.application.ports.admin_directory import AdminDirectoryProtocol
from taskflow.application.ports.notification_sink import NotificationKind
from taskflow.application.services import notifications
from taskflow.application.services.base import LoggingMixin
from taskflow.application.services.task_mutation import Mutation, TaskMutator
from taskflow.domain.errors import ExpiredError
from taskflow.domain.models.actor import Actor
from taskflow.domain.models.submission import SubmittedFile
from taskflow.domain.models.task import FailureType, ReopenSlaStatus, Task, TaskStatus
from taskflow.domain.models.task_edit import TaskPriority
from taskflow.domain.services import task_guards
from taskflow.domain.services.task_state_machine import TaskStateMachine


class TaskLifecycleService(LoggingMixin):
    """Status transitions, direct edits and archive operations.

    Example:
        >>> task = await service.create_task(
        ...     actor=Actor.admin("admin-1"), title="Audit", assigned_to="emp-1"
        ... )
        >>> task = await service.accept(task.task_id, actor=Actor.employee("emp-1"))
    """

    def __init__(
        self,
        mutator: TaskMutator,
        state_machine: TaskStateMachine,
        admin_directory: AdminDirectoryProtocol,
    ) -> None:
        """Initialize the service.

        Args:
            mutator: Load/save/notify runner.
            state_machine: Transition rules.
            admin_directory: Admins told about reopen timeouts.
        """
        self._mutator = mutator
        self._machine = state_machine
        self._admins = admin_directory
        self._init_logger()

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_task(self, task_id: UUID) -> Task:
        """Load a task.

        Raises:
            TaskNotFoundError: If the task does not exist.
        """
        return await self._mutator.load(task_id)

    async def get_view(self, task_id: UUID) -> TaskView:
        """Load a task with its derived properties computed as of now."""
        task = await self._mutator.load(task_id)
        return TaskView.build(task, self._mutator.time_authority.now())

    # =========================================================================
    # Creation
    # =========================================================================

    async def create_task(
        self,
        *,
        actor: Actor,
        title: str,
        assigned_to: str,
        description: str = "",
        priority: TaskPriority = TaskPriority.MEDIUM,
        category: Optional[str] = None,
        due_date: Optional[datetime] = None,
    ) -> Task:
        command = parse_command(
            CreateTaskCommand,
            title=title,
            description=description,
            assigned_to=assigned_to,
            priority=priority,
            category=category,
            due_date=due_date,
        )
        log = self._log_operation("create_task", actor_id=actor.user_id)
        task = self._machine.create(
            task_id=uuid4(),
            title=command.title,
            description=command.description,
            assigned_to=command.assigned_to,
            actor=actor,
            now=self._mutator.time_authority.now(),
            priority=command.priority,
            category=command.category,
            due_date=command.due_date,
        )
        stored = await self._mutator.add(task, (notifications.task_assigned(task),))
        log.info("task_created", task_id=str(stored.task_id), assigned_to=stored.assigned_to)
        return stored

    # =========================================================================
    # Employee operations
    # =========================================================================

    async def accept(self, task_id: UUID, *, actor: Actor) -> Task:
        async def mutate(task: Task, now: datetime) -> Mutation:
            return Mutation(self._machine.accept(task, actor=actor, now=now))

        return await self._mutator.apply(task_id, "accept", mutate, actor_id=actor.user_id)

    async def start(self, task_id: UUID, *, actor: Actor) -> Task:
        async def mutate(task: Task, now: datetime) -> Mutation:
            return Mutation(self._machine.start(task, actor=actor, now=now))

        return await self._mutator.apply(task_id, "start", mutate, actor_id=actor.user_id)

    async def decline(self, task_id: UUID, *, actor: Actor, reason: str) -> Task:
        command = parse_command(ReasonCommand, reason=reason)

        async def mutate(task: Task, now: datetime) -> Mutation:
            updated = self._machine.decline_assignment(
                task, actor=actor, reason=command.reason, now=now
            )
            return Mutation(
                updated,
                (
                    notifications.to_creator(
                        updated,
                        NotificationKind.TASK_DECLINED,
                        "Task Declined",
                        reason=command.reason,
                    ),
                ),
            )

        return await self._mutator.apply(task_id, "decline", mutate, actor_id=actor.user_id)

    async def withdraw(
        self, task_id: UUID, *, actor: Actor, reason: str, confirmed: bool
    ) -> Task:
        command = parse_command(WithdrawCommand, reason=reason, confirmed=confirmed)

        async def mutate(task: Task, now: datetime) -> Mutation:
            updated = self._machine.withdraw(
                task,
                actor=actor,
                reason=command.reason,
                confirmed=command.confirmed,
                now=now,
            )
            return Mutation(
                updated,
                (
                    notifications.to_creator(
                        updated,
                        NotificationKind.TASK_WITHDRAWN,
                        "Task Withdrawn",
                        reason=command.reason,
                    ),
                ),
            )

        return await self._mutator.apply(task_id, "withdraw", mutate, actor_id=actor.user_id)

    async def complete(
        self,
        task_id: UUID,
        *,
        actor: Actor,
        link: Optional[str] = None,
        files: tuple[SubmittedFile, ...] = (),
        note: Optional[str] = None,
    ) -> Task:
        """Submit work for review.

        Raises:
            ValidationError: If link, files and note are all empty.
            StateConflictError: If the task is not in a submittable state.
        """
        command = parse_command(
            SubmitWorkCommand,
            link=link or None,
            files=tuple(
                {"name": f.name, "url": f.url, "size": f.size, "mime_type": f.mime_type}
                for f in files
            ),
            note=note or None,
        )

        async def mutate(task: Task, now: datetime) -> Mutation:
            updated = self._machine.submit_work(
                task,
                actor=actor,
                now=now,
                link=command.link,
                files=command.to_files(),
                note=command.note,
            )
            version = updated.work_submission.version if updated.work_submission else 1
            return Mutation(
                updated,
                (
                    notifications.to_creator(
                        updated,
                        NotificationKind.TASK_SUBMITTED,
                        "Work Submitted",
                        submission_version=version,
                    ),
                ),
            )

        return await self._mutator.apply(task_id, "complete", mutate, actor_id=actor.user_id)

    async def mark_reopen_viewed(self, task_id: UUID, *, actor: Actor) -> Task:
        async def mutate(task: Task, now: datetime) -> Mutation:
            timed_out = await self._lazy_reopen_timeout(task, actor, now, "view reopen")
            if timed_out is not None:
                return timed_out
            return Mutation(self._machine.mark_reopen_viewed(task, actor=actor, now=now))

        return await self._mutator.apply(
            task_id, "mark_reopen_viewed", mutate, actor_id=actor.user_id
        )

    async def accept_reopen(self, task_id: UUID, *, actor: Actor) -> Task:
        """Accept a reopen and return the task to ACCEPTED.

        Raises:
            ExpiredError: If the reopen window has passed (the timeout is
                applied and saved first).
        """

        async def mutate(task: Task, now: datetime) -> Mutation:
            timed_out = await self._lazy_reopen_timeout(task, actor, now, "accept reopen")
            if timed_out is not None:
                return timed_out
            updated = self._machine.accept_reopen(task, actor=actor, now=now)
            return Mutation(
                updated,
                (
                    notifications.reopen_answered(
                        updated, NotificationKind.REOPEN_ACCEPTED, "Reopen Accepted"
                    ),
                ),
            )

        return await self._mutator.apply(
            task_id, "accept_reopen", mutate, actor_id=actor.user_id
        )

    async def decline_reopen(self, task_id: UUID, *, actor: Actor, reason: str) -> Task:
        """Decline a reopen.

        Raises:
            ExpiredError: If the reopen window has passed (the timeout is
                applied and saved first).
        """
        command = parse_command(ReasonCommand, reason=reason)

        async def mutate(task: Task, now: datetime) -> Mutation:
            timed_out = await self._lazy_reopen_timeout(task, actor, now, "decline reopen")
            if timed_out is not None:
                return timed_out
            updated = self._machine.decline_reopen(
                task, actor=actor, reason=command.reason, now=now
            )
            return Mutation(
                updated,
                (
                    notifications.reopen_answered(
                        updated, NotificationKind.REOPEN_DECLINED, "Reopen Declined"
                    ),
                ),
            )

        return await self._mutator.apply(
            task_id, "decline_reopen", mutate, actor_id=actor.user_id
        )

    async def _lazy_reopen_timeout(
        self, task: Task, actor: Actor, now: datetime, operation: str
    ) -> Mutation | None:
        self._machine.require_assignee(task, actor, operation)
        if task.status != TaskStatus.REOPENED:
            return None
        if task.reopen_sla_status != ReopenSlaStatus.PENDING:
            return None
        if not task_guards.reopen_window_expired(task, now):
            return None
        timed_out = self._machine.apply_reopen_timeout(task, now=now)
        admin_ids = await self._admins.admin_ids_for(task)
        return Mutation(
            timed_out,
            notifications.reopen_sla_breach(timed_out, admin_ids),
            deferred_error=ExpiredError(
                task.task_id, "reopen_window", expired_at=task.reopen_due_at
            ),
        )

    # =========================================================================
    # Admin operations
    # =========================================================================

    async def verify(self, task_id: UUID, *, actor: Actor, note: str) -> Task:
        command = parse_command(NoteCommand, note=note)

        async def mutate(task: Task, now: datetime) -> Mutation:
            updated = self._machine.verify(task, actor=actor, note=command.note, now=now)
            return Mutation(
                updated,
                (
                    notifications.to_assignee(
                        updated, NotificationKind.TASK_VERIFIED, "Task Verified"
                    ),
                ),
            )

        return await self._mutator.apply(task_id, "verify", mutate, actor_id=actor.user_id)

    async def fail(
        self,
        task_id: UUID,
        *,
        actor: Actor,
        reason: str,
        failure_type: FailureType | str,
    ) -> Task:
        command = parse_command(FailCommand, reason=reason, failure_type=failure_type)

        async def mutate(task: Task, now: datetime) -> Mutation:
            updated = self._machine.fail(
                task,
                actor=actor,
                reason=command.reason,
                failure_type=command.failure_type,
                now=now,
            )
            return Mutation(
                updated,
                (
                    notifications.to_assignee(
                        updated,
                        NotificationKind.TASK_FAILED,
                        "Task Failed",
                        failure_type=command.failure_type.value,
                    ),
                ),
            )

        return await self._mutator.apply(task_id, "fail", mutate, actor_id=actor.user_id)

    async def reopen(self, task_id: UUID, *, actor: Actor, reason: str) -> Task:
        command = parse_command(ReasonCommand, reason=reason)

        async def mutate(task: Task, now: datetime) -> Mutation:
            updated = self._machine.reopen(task, actor=actor, reason=command.reason, now=now)
            return Mutation(
                updated,
                (
                    notifications.to_assignee(
                        updated,
                        NotificationKind.TASK_REOPENED,
                        "Task Reopened",
                        reason=command.reason,
                        reopen_due_at=(
                            updated.reopen_due_at.isoformat() if updated.reopen_due_at else None
                        ),
                    ),
                ),
            )

        return await self._mutator.apply(task_id, "reopen", mutate, actor_id=actor.user_id)

    async def accept_reopen_decline(self, task_id: UUID, *, actor: Actor, note: str) -> Task:
        command = parse_command(NoteCommand, note=note)

        async def mutate(task: Task, now: datetime) -> Mutation:
            updated = self._machine.accept_reopen_decline(
                task, actor=actor, note=command.note, now=now
            )
            return Mutation(
                updated,
                (
                    notifications.to_assignee(
                        updated, NotificationKind.TASK_VERIFIED, "Reopen Decline Accepted"
                    ),
                ),
            )

        return await self._mutator.apply(
            task_id, "accept_reopen_decline", mutate, actor_id=actor.user_id
        )

    async def reassign(
        self,
        task_id: UUID,
        *,
        actor: Actor,
        new_assignee: str,
        priority: Optional[TaskPriority] = None,
    ) -> Task:
        command = parse_command(ReassignCommand, new_assignee=new_assignee, priority=priority)

        async def mutate(task: Task, now: datetime) -> Mutation:
            updated = self._machine.reassign(
                task,
                actor=actor,
                new_assignee=command.new_assignee,
                now=now,
                priority=command.priority,
            )
            return Mutation(updated, (notifications.task_assigned(updated),))

        return await self._mutator.apply(task_id, "reassign", mutate, actor_id=actor.user_id)

    async def direct_edit(
        self,
        task_id: UUID,
        *,
        actor: Actor,
        note: str = "",
        **fields: object,
    ) -> Task:
        """Edit an assigned task in place.

        Args:
            task_id: Task to edit.
            actor: Editing admin.
            note: Optional edit note.
            **fields: Any of title, description, priority, due_date, category.

        Raises:
            ValidationError: If no field changes or a value is invalid.
            StateConflictError: If the task is past ASSIGNED.
        """
        command = parse_command(DirectEditCommand, note=note, **fields)

        async def mutate(task: Task, now: datetime) -> Mutation:
            return Mutation(
                self._machine.direct_edit(
                    task,
                    actor=actor,
                    changes=command.to_changes(),
                    now=now,
                    note=command.note,
                )
            )

        return await self._mutator.apply(
            task_id, "direct_edit", mutate, actor_id=actor.user_id
        )

    async def direct_delete(self, task_id: UUID, *, actor: Actor, reason: str) -> Task:
        command = parse_command(ReasonCommand, reason=reason)

        async def mutate(task: Task, now: datetime) -> Mutation:
            return Mutation(
                self._machine.direct_delete(task, actor=actor, reason=command.reason, now=now)
            )

        return await self._mutator.apply(
            task_id, "direct_delete", mutate, actor_id=actor.user_id
        )

    async def archive(self, task_id: UUID, *, actor: Actor, note: str) -> Task:
        command = parse_command(NoteCommand, note=note)

        async def mutate(task: Task, now: datetime) -> Mutation:
            return Mutation(self._machine.archive(task, actor=actor, note=command.note, now=now))

        return await self._mutator.apply(task_id, "archive", mutate, actor_id=actor.user_id)

    async def unarchive(self, task_id: UUID, *, actor: Actor, reason: str) -> Task:
        command = parse_command(ReasonCommand, reason=reason)

        async def mutate(task: Task, now: datetime) -> Mutation:
            return Mutation(
                self._machine.unarchive(task, actor=actor, reason=command.reason, now=now)
            )

        return await self._mutator.apply(task_id, "unarchive", mutate, actor_id=actor.user_id)
