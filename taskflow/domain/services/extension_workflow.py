"""Due-date extension workflow domain service.

The assignee asks for a later due date while the task is accepted or in
progress. An admin closes the request by approving it, partially
approving it with a different date, or rejecting it. Only approval (full
or partial) changes the due date.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from taskflow.domain.errors import (
    AlreadyProcessedError,
    RequestNotFoundError,
    StateConflictError,
    ValidationError,
)
from taskflow.domain.models.activity import ActivityAction
from taskflow.domain.models.actor import Actor, ActorRole
from taskflow.domain.models.extension_request import ExtensionDecision, ExtensionRequest
from taskflow.domain.models.task import Task
from taskflow.domain.services import task_guards
from taskflow.domain.services.task_state_machine import TaskStateMachine


def _iso(value: datetime | None) -> str:
    return value.isoformat() if value else "none"


class ExtensionWorkflow:
    """Requests, reviews and direct extensions of task due dates."""

    def __init__(self, state_machine: TaskStateMachine) -> None:
        self._machine = state_machine

    def request_extension(
        self,
        task: Task,
        *,
        actor: Actor,
        request_id: UUID,
        new_due_date: datetime,
        reason: str,
        now: datetime,
    ) -> Task:
        """Raise an extension request.

        Raises:
            StateConflictError: If the task is not accepted or in progress,
                or an extension request is already pending.
            ValidationError: If the new date is not in the future or not
                later than the current due date.
        """
        self._machine.require_assignee(task, actor, "request extension")
        if task.pending_extension_request() is not None:
            raise StateConflictError(
                task.task_id, "request extension", "pending request exists", task.status
            )
        if not task_guards.can_request_extension(task):
            raise StateConflictError(
                task.task_id,
                "request extension",
                "extensions can only be requested while accepted or in progress",
                task.status,
            )
        if new_due_date <= now:
            raise ValidationError("new due date must be in the future", field="new_due_date")
        if task.due_date is not None and new_due_date <= task.due_date:
            raise ValidationError(
                "new due date must be later than the current due date",
                field="new_due_date",
            )

        request = ExtensionRequest(
            request_id=request_id,
            requested_by=actor.user_id,
            reason=reason,
            requested_at=now,
            new_due_date=new_due_date,
            old_due_date=task.due_date,
        )
        return task.with_extension_request(request).with_activity(
            ActivityAction.EXTENSION_REQUESTED,
            ActorRole.EMPLOYEE,
            f"Extension requested to {_iso(new_due_date)} "
            f"(old due date: {_iso(task.due_date)}): {reason}",
            now,
            performed_by=actor.user_id,
        )

    def review_extension(
        self,
        task: Task,
        *,
        actor: Actor,
        request_id: UUID,
        decision: ExtensionDecision,
        note: str,
        now: datetime,
        approved_due_date: datetime | None = None,
    ) -> Task:
        """Close an extension request with an admin decision.

        Args:
            task: The task.
            actor: Reviewing admin.
            request_id: The extension request.
            decision: Approve, partial approve or reject.
            note: Review note.
            now: Current time.
            approved_due_date: The admin-chosen date for a partial approval.

        Raises:
            StateConflictError: If the task is closed.
            RequestNotFoundError: If the request id is unknown.
            AlreadyProcessedError: If the request was already reviewed.
            ValidationError: If a partial approval has no distinct date.
        """
        self._machine.require_admin(task, actor, "review extension")
        self._machine.require_open(task, "review extension")
        request = task.find_extension_request(request_id)
        if request is None:
            raise RequestNotFoundError(task.task_id, request_id, kind="extension")
        if not request.is_pending:
            raise AlreadyProcessedError(request_id, request.status.value)

        granted: datetime | None = None
        if decision == ExtensionDecision.APPROVE:
            granted = request.new_due_date
        elif decision == ExtensionDecision.PARTIAL_APPROVE:
            if approved_due_date is None:
                raise ValidationError(
                    "partial approval needs an approved due date",
                    field="approved_due_date",
                )
            if approved_due_date == request.new_due_date:
                raise ValidationError(
                    "partial approval date must differ from the requested date",
                    field="approved_due_date",
                )
            if approved_due_date <= now:
                raise ValidationError(
                    "approved due date must be in the future",
                    field="approved_due_date",
                )
            granted = approved_due_date

        reviewed = request.with_review(
            decision, actor.user_id, note, now, approved_due_date=granted
        )
        updated = task.with_extension_request(reviewed)

        if granted is None:
            return updated.with_activity(
                ActivityAction.EXTENSION_REJECTED,
                ActorRole.ADMIN,
                f"Extension rejected: {note}",
                now,
                performed_by=actor.user_id,
            )

        label = (
            "Extension approved"
            if decision == ExtensionDecision.APPROVE
            else "Extension partially approved"
        )
        return updated.with_updates(due_date=granted).with_activity(
            ActivityAction.EXTENSION_APPROVED,
            ActorRole.ADMIN,
            f"{label}. New due date: {_iso(granted)}. Note: {note}",
            now,
            performed_by=actor.user_id,
        )

    def extend_due_date(
        self,
        task: Task,
        *,
        actor: Actor,
        new_due_date: datetime,
        reason: str,
        now: datetime,
    ) -> Task:
        """Move the due date without a request (admin only, open tasks).

        Raises:
            StateConflictError: If the task is closed.
            ValidationError: If the new date is in the past or not later
                than the current due date.
        """
        self._machine.require_admin(task, actor, "extend due date")
        self._machine.require_open(task, "extend due date")
        if new_due_date <= now:
            raise ValidationError("new due date must be in the future", field="new_due_date")
        if task.due_date is not None and new_due_date <= task.due_date:
            raise ValidationError(
                "new due date must be later than the current due date",
                field="new_due_date",
            )
        return task.with_updates(due_date=new_due_date).with_activity(
            ActivityAction.DEADLINE_EXTENDED,
            ActorRole.ADMIN,
            f"Due date extended from {_iso(task.due_date)} to {_iso(new_due_date)}: {reason}",
            now,
            performed_by=actor.user_id,
        )
