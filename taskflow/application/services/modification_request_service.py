"""Modification request application service.

Wraps ModificationWorkflow with payload validation, persistence,
notifications and both expiry paths:

- Lazy: any access to a request whose window has passed (read, answer,
  review or execute) expires it, saves that, and then raises
  ExpiredError (reads return the expired request instead).
- Proactive: expire_overdue_requests() sweeps every task holding an
  expired pending request; ModificationExpiryMonitor calls it on a timer.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Optional
from uuid import UUID, uuid4

from taskflow.application.dtos.commands import (
    AdminModificationCommand,
    ApproveEmployeeRequestCommand,
    DiscussionMessageCommand,
    EmployeeModificationCommand,
    ExecuteModificationCommand,
    RejectEmployeeRequestCommand,
    RespondModificationCommand,
    parse_command,
)
from taskflow.application.ports.notification_sink import NotificationKind
from taskflow.application.ports.task_repository import TaskRepositoryProtocol
from taskflow.application.services import notifications
from taskflow.application.services.base import LoggingMixin
from taskflow.application.services.task_mutation import Mutation, TaskMutator
from taskflow.domain.errors import ActorNotPermittedError, ExpiredError
from taskflow.domain.models.actor import Actor
from taskflow.domain.models.modification_request import (
    ModificationRequest,
    RequestOrigin,
)
from taskflow.domain.models.task import Task
from taskflow.domain.services.modification_workflow import (
    EXPIRY_SWEEP_NOTE,
    ModificationWorkflow,
)


class ModificationRequestService(LoggingMixin):
    """Admin and employee modification requests on tasks."""

    def __init__(
        self,
        mutator: TaskMutator,
        workflow: ModificationWorkflow,
        repository: TaskRepositoryProtocol,
    ) -> None:
        """Initialize the service.

        Args:
            mutator: Load/save/notify runner.
            workflow: Request rules.
            repository: Used by the sweep to find tasks with expired requests.
        """
        self._mutator = mutator
        self._workflow = workflow
        self._repository = repository
        self._init_logger()

    # =========================================================================
    # Lazy expiry
    # =========================================================================

    def _lazy_expiry(
        self,
        task: Task,
        request_id: UUID,
        now: datetime,
        origin: RequestOrigin | None = None,
    ) -> Mutation | None:
        """Expire the request if acting on it now requires that first.

        Returns a Mutation carrying the ExpiredError, or None when the
        request is still live (or belongs to another collection, in which
        case the workflow reports it as not found).
        """
        request = self._workflow.get_request(task, request_id)
        if origin is not None and request.origin != origin:
            return None
        overdue = self._workflow.overdue_request(task, request_id, now)
        if overdue is None:
            return None
        expired = self._workflow.expire_request(task, overdue, now=now)
        return Mutation(
            expired,
            (notifications.request_expired(expired, overdue),),
            deferred_error=ExpiredError(
                task.task_id,
                "modification_request",
                expired_at=overdue.expires_at,
                request_id=overdue.request_id,
            ),
        )

    async def get_request(self, task_id: UUID, request_id: UUID) -> ModificationRequest:
        """Read a request, expiring it first if its window has passed.

        Raises:
            TaskNotFoundError: If the task does not exist.
            RequestNotFoundError: If the request does not exist.
        """

        async def mutate(task: Task, now: datetime) -> Mutation:
            lazy = self._lazy_expiry(task, request_id, now)
            if lazy is None:
                return Mutation(task)
            return Mutation(lazy.task, lazy.notifications)

        task = await self._mutator.apply(
            task_id, "get_modification_request", mutate, request_id=str(request_id)
        )
        return self._workflow.get_request(task, request_id)

    # =========================================================================
    # Admin-initiated requests
    # =========================================================================

    async def request_modification(
        self,
        task_id: UUID,
        *,
        actor: Actor,
        request_type: str,
        reason: str,
        **payload: Any,
    ) -> Task:
        """Raise an admin edit or delete request for the assignee.

        Args:
            task_id: Target task.
            actor: Requesting admin.
            request_type: "edit" or "delete".
            reason: At least 10 characters.
            **payload: Proposed field values, deletion_impact, sla_hours,
                sla_days, urgency.

        Raises:
            ValidationError: On an invalid payload or request type.
            StateConflictError: If the change can be made directly or a
                pending request exists.
        """
        command = parse_command(
            AdminModificationCommand, request_type=request_type, reason=reason, **payload
        )
        request_id = uuid4()
        sla_hours = command.sla_window_hours
        sla = timedelta(hours=sla_hours) if sla_hours else None

        async def mutate(task: Task, now: datetime) -> Mutation:
            updated = self._workflow.create_admin_request(
                task,
                actor=actor,
                request_id=request_id,
                request_type=command.request_type,
                reason=command.reason,
                now=now,
                proposed_changes=command.to_changes(),
                deletion_impact=command.deletion_impact,
                sla=sla,
                urgency=command.urgency,
            )
            request = self._workflow.get_request(updated, request_id)
            return Mutation(updated, (notifications.modification_requested(updated, request),))

        return await self._mutator.apply(
            task_id,
            "request_modification",
            mutate,
            actor_id=actor.user_id,
            request_id=str(request_id),
        )

    async def respond(
        self,
        task_id: UUID,
        request_id: UUID,
        *,
        actor: Actor,
        decision: str,
        note: str,
        counter_changes: Optional[dict[str, Any]] = None,
    ) -> Task:
        """Answer an admin request as the assignee.

        Raises:
            AlreadyProcessedError: If the request is no longer pending.
            ExpiredError: If the window has passed (the expiry is saved).
        """
        command = parse_command(
            RespondModificationCommand,
            decision=decision,
            note=note,
            counter_changes=counter_changes,
        )

        async def mutate(task: Task, now: datetime) -> Mutation:
            self._workflow.get_request(task, request_id)
            self._check_assignee(task, actor, "respond to modification")
            lazy = self._lazy_expiry(task, request_id, now, origin=RequestOrigin.ADMIN)
            if lazy is not None:
                return lazy
            updated = self._workflow.respond(
                task,
                actor=actor,
                request_id=request_id,
                decision=command.decision,
                note=command.note,
                now=now,
                counter_changes=(
                    command.counter_changes.to_changes() if command.counter_changes else None
                ),
            )
            request = self._workflow.get_request(updated, request_id)
            return Mutation(
                updated,
                (
                    notifications.to_requester(
                        updated,
                        request,
                        NotificationKind.MODIFICATION_RESPONDED,
                        "Modification Request Answered",
                        decision=command.decision.value,
                    ),
                ),
            )

        return await self._mutator.apply(
            task_id,
            "respond_modification",
            mutate,
            actor_id=actor.user_id,
            request_id=str(request_id),
        )

    async def mark_viewed(self, task_id: UUID, request_id: UUID, *, actor: Actor) -> Task:
        async def mutate(task: Task, now: datetime) -> Mutation:
            self._workflow.get_request(task, request_id)
            self._check_assignee(task, actor, "view modification")
            lazy = self._lazy_expiry(task, request_id, now, origin=RequestOrigin.ADMIN)
            if lazy is not None:
                return lazy
            return Mutation(
                self._workflow.mark_viewed(task, actor=actor, request_id=request_id, now=now)
            )

        return await self._mutator.apply(
            task_id,
            "mark_modification_viewed",
            mutate,
            actor_id=actor.user_id,
            request_id=str(request_id),
        )

    # =========================================================================
    # Employee-initiated requests
    # =========================================================================

    async def request_employee_modification(
        self,
        task_id: UUID,
        *,
        actor: Actor,
        request_type: str,
        reason: str,
        **payload: Any,
    ) -> Task:
        """Raise an employee request for admin review.

        Args:
            task_id: Target task.
            actor: The assignee.
            request_type: edit, delete, extension, reassign or scope_change.
            reason: At least 10 characters.
            **payload: urgency, proposed_changes, requested_due_date,
                suggested_assignee, scope_changes, deletion_impact.
        """
        command = parse_command(
            EmployeeModificationCommand,
            request_type=request_type,
            reason=reason,
            **payload,
        )
        request_id = uuid4()

        async def mutate(task: Task, now: datetime) -> Mutation:
            updated = self._workflow.create_employee_request(
                task,
                actor=actor,
                request_id=request_id,
                request_type=command.request_type,
                reason=command.reason,
                now=now,
                urgency=command.urgency,
                proposed_changes=(
                    command.proposed_changes.to_changes()
                    if command.proposed_changes
                    else None
                ),
                requested_due_date=command.requested_due_date,
                suggested_assignee=command.suggested_assignee,
                scope_changes=command.scope_changes,
                deletion_impact=command.deletion_impact,
            )
            request = self._workflow.get_request(updated, request_id)
            return Mutation(updated, (notifications.modification_requested(updated, request),))

        return await self._mutator.apply(
            task_id,
            "request_employee_modification",
            mutate,
            actor_id=actor.user_id,
            request_id=str(request_id),
        )

    async def approve_employee_request(
        self,
        task_id: UUID,
        request_id: UUID,
        *,
        actor: Actor,
        note: Optional[str] = None,
    ) -> Task:
        command = parse_command(ApproveEmployeeRequestCommand, note=note)
        return await self._review(task_id, request_id, actor, True, command.note)

    async def reject_employee_request(
        self,
        task_id: UUID,
        request_id: UUID,
        *,
        actor: Actor,
        reason: str,
    ) -> Task:
        command = parse_command(RejectEmployeeRequestCommand, reason=reason)
        return await self._review(task_id, request_id, actor, False, command.reason)

    async def _review(
        self,
        task_id: UUID,
        request_id: UUID,
        actor: Actor,
        approve: bool,
        note: Optional[str],
    ) -> Task:
        operation = "approve_modification" if approve else "reject_modification"

        async def mutate(task: Task, now: datetime) -> Mutation:
            self._workflow.get_request(task, request_id)
            self._check_admin(task, actor, operation)
            lazy = self._lazy_expiry(task, request_id, now, origin=RequestOrigin.EMPLOYEE)
            if lazy is not None:
                return lazy
            updated = self._workflow.review_employee_request(
                task,
                actor=actor,
                request_id=request_id,
                approve=approve,
                now=now,
                note=note,
            )
            request = self._workflow.get_request(updated, request_id)
            return Mutation(
                updated,
                (
                    notifications.to_requester(
                        updated,
                        request,
                        NotificationKind.MODIFICATION_REVIEWED,
                        "Modification Request Approved"
                        if approve
                        else "Modification Request Rejected",
                    ),
                ),
            )

        return await self._mutator.apply(
            task_id, operation, mutate, actor_id=actor.user_id, request_id=str(request_id)
        )

    # =========================================================================
    # Execution and discussion
    # =========================================================================

    async def execute(
        self,
        task_id: UUID,
        request_id: UUID,
        *,
        actor: Actor,
        note: Optional[str] = None,
        overrides: Optional[dict[str, Any]] = None,
    ) -> Task:
        """Apply an approved request to the task.

        Executing an already-executed request returns the task unchanged.

        Raises:
            StateConflictError: If the request is still pending.
            AlreadyProcessedError: If the request was rejected, expired
                or counter-proposed.
            ExpiredError: If an approved employee request ran out of time
                (the expiry is saved).
        """
        command = parse_command(ExecuteModificationCommand, note=note, overrides=overrides)

        async def mutate(task: Task, now: datetime) -> Mutation:
            self._check_admin(task, actor, "execute modification")
            request = self._workflow.get_request(task, request_id)
            lazy = self._lazy_expiry(task, request_id, now)
            if lazy is not None:
                return lazy
            updated = self._workflow.execute(
                task,
                actor=actor,
                request_id=request_id,
                now=now,
                overrides=command.overrides.to_changes() if command.overrides else None,
                note=command.note,
            )
            if updated is task:
                return Mutation(task)
            return Mutation(
                updated,
                (
                    notifications.to_requester(
                        updated,
                        request,
                        NotificationKind.MODIFICATION_REVIEWED,
                        "Modification Request Executed",
                    ),
                ),
            )

        return await self._mutator.apply(
            task_id,
            "execute_modification",
            mutate,
            actor_id=actor.user_id,
            request_id=str(request_id),
        )

    async def add_message(
        self, task_id: UUID, request_id: UUID, *, actor: Actor, text: str
    ) -> Task:
        command = parse_command(DiscussionMessageCommand, text=text)

        async def mutate(task: Task, now: datetime) -> Mutation:
            self._workflow.get_request(task, request_id)
            self._check_participant(task, actor)
            lazy = self._lazy_expiry(task, request_id, now)
            if lazy is not None:
                return lazy
            updated = self._workflow.add_message(
                task, actor=actor, request_id=request_id, text=command.text, now=now
            )
            request = self._workflow.get_request(updated, request_id)
            recipient = task.assigned_to if actor.is_admin else request.requested_by
            if recipient == actor.user_id:
                recipient = task.created_by
            return Mutation(
                updated,
                (notifications.discussion_message(updated, request, recipient),),
            )

        return await self._mutator.apply(
            task_id,
            "modification_message",
            mutate,
            actor_id=actor.user_id,
            request_id=str(request_id),
        )

    # =========================================================================
    # Proactive expiry
    # =========================================================================

    async def expire_overdue_requests(self) -> int:
        """Expire every pending request whose window has passed.

        Per-task failures are logged and skipped.

        Returns:
            Number of requests expired.
        """
        log = self._log_operation("expire_overdue_requests")
        now = self._mutator.time_authority.now()
        candidates = await self._repository.list_with_expired_requests(now)
        total = 0
        for candidate in candidates:
            try:
                total += await self._expire_task_requests(candidate.task_id)
            except Exception as exc:
                log.error(
                    "request_expiry_failed",
                    task_id=str(candidate.task_id),
                    error=str(exc),
                )
        log.info("request_expiry_sweep_completed", candidates=len(candidates), expired=total)
        return total

    async def _expire_task_requests(self, task_id: UUID) -> int:
        expired: list[ModificationRequest] = []

        async def mutate(task: Task, now: datetime) -> Mutation:
            updated, overdue = self._workflow.expire_overdue(
                task, now=now, note=EXPIRY_SWEEP_NOTE
            )
            expired[:] = overdue
            return Mutation(
                updated,
                tuple(notifications.request_expired(updated, request) for request in overdue),
            )

        await self._mutator.apply(task_id, "expire_requests", mutate)
        return len(expired)

    # =========================================================================
    # Permission checks ahead of lazy expiry
    # =========================================================================

    def _check_assignee(self, task: Task, actor: Actor, operation: str) -> None:
        self._workflow.state_machine.require_assignee(task, actor, operation)

    def _check_admin(self, task: Task, actor: Actor, operation: str) -> None:
        self._workflow.state_machine.require_admin(task, actor, operation)

    @staticmethod
    def _check_participant(task: Task, actor: Actor) -> None:
        if not actor.is_admin and actor.user_id != task.assigned_to:
            raise ActorNotPermittedError(
                task.task_id, actor.user_id, "message", "not a participant"
            )
