"""Modification request workflow domain service.

Two-phase change proposals attached to a task:

Admin-initiated (edit, delete):
    create -> assignee responds (approve / reject / counter-propose)
    -> admin executes an approved request

Employee-initiated (edit, delete, extension, reassign, scope_change):
    create -> admin approves or rejects -> admin executes

Rules:
- At most one pending request per collection; a stale pending request is
  expired before a new one is accepted
- Approving never mutates the task; only execute applies the change
- Executing an already-executed request is a no-op
- Responses against a request whose window passed are refused; callers
  expire the request first (expire_request) and persist that
"""

from __future__ import annotations

from datetime import datetime, timedelta
from uuid import UUID

from taskflow.domain.errors import (
    ActorNotPermittedError,
    AlreadyProcessedError,
    ExpiredError,
    RequestNotFoundError,
    StateConflictError,
    ValidationError,
)
from taskflow.domain.models.activity import ActivityAction
from taskflow.domain.models.actor import Actor, ActorRole
from taskflow.domain.models.extension_request import (
    ExtensionDecision,
    ExtensionRequest,
    ExtensionStatus,
)
from taskflow.domain.models.modification_request import (
    ADMIN_REQUEST_TYPES,
    CounterProposal,
    DiscussionMessage,
    ModificationDecision,
    ModificationRequest,
    ModificationRequestStatus,
    ModificationRequestType,
    RequestOrigin,
    RequestUrgency,
)
from taskflow.domain.models.task import Task, TaskStatus
from taskflow.domain.models.task_edit import TaskChanges
from taskflow.domain.services import task_guards
from taskflow.domain.services.task_state_machine import TaskStateMachine

DEFAULT_MODIFICATION_REQUEST_SLA: timedelta = timedelta(hours=24)
"""Response window of a modification request when none is given."""

EXPIRY_SWEEP_NOTE: str = "No response within SLA"
"""Response note recorded on requests closed by the expiry sweep."""

_EXPIRED_ACTIONS: dict[RequestOrigin, ActivityAction] = {
    RequestOrigin.ADMIN: ActivityAction.MODIFICATION_EXPIRED,
    RequestOrigin.EMPLOYEE: ActivityAction.EMPLOYEE_MODIFICATION_EXPIRED,
}

_MESSAGE_ACTIONS: dict[RequestOrigin, ActivityAction] = {
    RequestOrigin.ADMIN: ActivityAction.MODIFICATION_MESSAGE,
    RequestOrigin.EMPLOYEE: ActivityAction.EMPLOYEE_MODIFICATION_MESSAGE,
}

_RESPONSE_ACTIONS: dict[ModificationDecision, ActivityAction] = {
    ModificationDecision.APPROVED: ActivityAction.MODIFICATION_APPROVED,
    ModificationDecision.REJECTED: ActivityAction.MODIFICATION_REJECTED,
    ModificationDecision.COUNTER_PROPOSAL: ActivityAction.MODIFICATION_COUNTER_PROPOSAL,
}


class ModificationWorkflow:
    """Creates, answers, expires and executes modification requests."""

    def __init__(
        self,
        state_machine: TaskStateMachine,
        default_sla: timedelta = DEFAULT_MODIFICATION_REQUEST_SLA,
    ) -> None:
        """Initialize the workflow.

        Args:
            state_machine: Used for permission checks and to apply
                edit/delete effects on execution.
            default_sla: Response window when the requester gives none.
        """
        if default_sla <= timedelta(0):
            raise ValueError("default_sla must be positive")
        self._machine = state_machine
        self._default_sla = default_sla

    @property
    def default_sla(self) -> timedelta:
        return self._default_sla

    @property
    def state_machine(self) -> TaskStateMachine:
        return self._machine

    # =========================================================================
    # Lookup and expiry
    # =========================================================================

    @staticmethod
    def get_request(task: Task, request_id: UUID) -> ModificationRequest:
        """Find a request in the admin list, then the employee list.

        Raises:
            RequestNotFoundError: If neither list holds the id.
        """
        request = task.find_modification_request(request_id)
        if request is None:
            raise RequestNotFoundError(task.task_id, request_id)
        return request

    def expire_request(
        self,
        task: Task,
        request: ModificationRequest,
        *,
        now: datetime,
        details: str | None = None,
        note: str | None = None,
    ) -> Task:
        """Mark one request expired and record a system expiry entry."""
        expired = request.with_expired(now, note=note)
        if details is None:
            details = (
                f"Modification request expired before response ({request.request_type.value})"
            )
        return task.with_modification_request(expired).with_activity(
            _EXPIRED_ACTIONS[request.origin],
            ActorRole.SYSTEM,
            details,
            now,
        )

    def expire_overdue(
        self,
        task: Task,
        *,
        now: datetime,
        origin: RequestOrigin | None = None,
        note: str | None = None,
    ) -> tuple[Task, tuple[ModificationRequest, ...]]:
        """Expire every pending request whose window has passed.

        Args:
            task: The task to sweep.
            now: Current time.
            origin: Restrict to one collection (both when None).
            note: Optional response note stored on each expired request.

        Returns:
            The updated task and the requests that were expired (as they
            were before expiry). The task is returned unchanged when
            nothing was overdue.
        """
        origins = (origin,) if origin else (RequestOrigin.ADMIN, RequestOrigin.EMPLOYEE)
        expired: list[ModificationRequest] = []
        for current_origin in origins:
            for request in task.requests_for(current_origin):
                if request.is_overdue(now):
                    task = self.expire_request(task, request, now=now, note=note)
                    expired.append(request)
        return task, tuple(expired)

    def overdue_request(
        self, task: Task, request_id: UUID, now: datetime
    ) -> ModificationRequest | None:
        """Return the request if acting on it now must first expire it.

        Pending requests expire once their window passes; approved
        employee requests also expire if not executed in time.
        """
        request = self.get_request(task, request_id)
        if request.is_overdue(now):
            return request
        if (
            request.origin == RequestOrigin.EMPLOYEE
            and request.status == ModificationRequestStatus.APPROVED
            and request.window_passed(now)
        ):
            return request
        return None

    def _expired_error(self, task: Task, request: ModificationRequest) -> ExpiredError:
        return ExpiredError(
            task.task_id,
            "modification_request",
            expired_at=request.expires_at,
            request_id=request.request_id,
        )

    # =========================================================================
    # Admin-initiated requests
    # =========================================================================

    def create_admin_request(
        self,
        task: Task,
        *,
        actor: Actor,
        request_id: UUID,
        request_type: ModificationRequestType,
        reason: str,
        now: datetime,
        proposed_changes: TaskChanges | None = None,
        deletion_impact: str | None = None,
        sla: timedelta | None = None,
        urgency: RequestUrgency = RequestUrgency.NORMAL,
    ) -> Task:
        """Raise an admin edit or delete request for the assignee to answer.

        Raises:
            ValidationError: If the type is not edit or delete.
            StateConflictError: If the change can be made directly, the
                task is deleted, or a live pending request exists.
        """
        self._machine.require_admin(task, actor, "request modification")
        if request_type not in ADMIN_REQUEST_TYPES:
            raise ValidationError(
                "admin requests must be edit or delete", field="request_type"
            )
        self._require_not_deleted(task, "request modification")
        if (
            request_type == ModificationRequestType.EDIT
            and task_guards.can_admin_edit_directly(task)
        ):
            raise StateConflictError(
                task.task_id,
                "request modification",
                "task can be edited directly, use direct edit",
                task.status,
            )
        if (
            request_type == ModificationRequestType.DELETE
            and task_guards.can_admin_delete_directly(task)
        ):
            raise StateConflictError(
                task.task_id,
                "request modification",
                "task can be deleted directly, use direct delete",
                task.status,
            )

        task, _ = self.expire_overdue(task, now=now, origin=RequestOrigin.ADMIN)
        self._require_no_pending(task, RequestOrigin.ADMIN)

        if request_type == ModificationRequestType.EDIT:
            proposed_changes = (proposed_changes or TaskChanges()).merged_over(
                task.editable_values()
            )
        else:
            proposed_changes = None

        request = ModificationRequest(
            request_id=request_id,
            origin=RequestOrigin.ADMIN,
            request_type=request_type,
            requested_by=actor.user_id,
            reason=reason,
            requested_at=now,
            expires_at=now + (sla or self._default_sla),
            urgency=urgency,
            proposed_changes=proposed_changes,
            deletion_impact=deletion_impact,
        )
        return task.with_modification_request(request).with_activity(
            ActivityAction.MODIFICATION_REQUESTED,
            ActorRole.ADMIN,
            f"Modification request ({request_type.value}): {reason}",
            now,
            performed_by=actor.user_id,
        )

    def respond(
        self,
        task: Task,
        *,
        actor: Actor,
        request_id: UUID,
        decision: ModificationDecision,
        note: str,
        now: datetime,
        counter_changes: TaskChanges | None = None,
    ) -> Task:
        """Record the assignee's answer to an admin request.

        Raises:
            RequestNotFoundError: If the id is not an admin request.
            AlreadyProcessedError: If the request is no longer pending.
            ExpiredError: If the window has passed (expire it first).
        """
        self._machine.require_assignee(task, actor, "respond to modification")
        request = self._find(task, request_id, RequestOrigin.ADMIN)
        if not request.is_pending:
            raise AlreadyProcessedError(request_id, request.status.value)
        if request.is_overdue(now):
            raise self._expired_error(task, request)

        counter = None
        if decision == ModificationDecision.COUNTER_PROPOSAL:
            counter = CounterProposal(
                note=note, proposed_changes=counter_changes, proposed_at=now
            )
        answered = request.with_response(
            decision, note, actor.user_id, now, counter_proposal=counter
        )
        return task.with_modification_request(answered).with_activity(
            _RESPONSE_ACTIONS[decision],
            ActorRole.EMPLOYEE,
            f"Modification request {decision.value}: {note}",
            now,
            performed_by=actor.user_id,
        )

    def mark_viewed(
        self, task: Task, *, actor: Actor, request_id: UUID, now: datetime
    ) -> Task:
        """Record the first time the assignee opened an admin request."""
        self._machine.require_assignee(task, actor, "view modification")
        request = self._find(task, request_id, RequestOrigin.ADMIN)
        if request.viewed_at is not None:
            return task
        return task.with_modification_request(request.with_viewed(now)).with_activity(
            ActivityAction.MODIFICATION_VIEWED,
            ActorRole.EMPLOYEE,
            f"Employee viewed modification request ({request.request_type.value})",
            now,
            performed_by=actor.user_id,
        )

    # =========================================================================
    # Employee-initiated requests
    # =========================================================================

    def create_employee_request(
        self,
        task: Task,
        *,
        actor: Actor,
        request_id: UUID,
        request_type: ModificationRequestType,
        reason: str,
        now: datetime,
        urgency: RequestUrgency = RequestUrgency.NORMAL,
        proposed_changes: TaskChanges | None = None,
        requested_due_date: datetime | None = None,
        suggested_assignee: str | None = None,
        scope_changes: str | None = None,
        deletion_impact: str | None = None,
        sla: timedelta | None = None,
    ) -> Task:
        """Raise an employee request for an admin to review.

        Raises:
            ValidationError: If the type-specific payload is missing.
            StateConflictError: If the task is closed or a pending
                request exists.
        """
        self._machine.require_assignee(task, actor, "request modification")
        self._machine.require_open(task, "request modification")

        if request_type == ModificationRequestType.EXTENSION:
            if requested_due_date is None:
                raise ValidationError(
                    "extension requests need a requested due date",
                    field="requested_due_date",
                )
            if requested_due_date <= now:
                raise ValidationError(
                    "requested due date must be in the future",
                    field="requested_due_date",
                )
        if request_type == ModificationRequestType.REASSIGN and not suggested_assignee:
            raise ValidationError(
                "reassign requests need a suggested assignee",
                field="suggested_assignee",
            )
        if request_type == ModificationRequestType.SCOPE_CHANGE and not scope_changes:
            raise ValidationError(
                "scope change requests need a description of the changes",
                field="scope_changes",
            )
        if request_type == ModificationRequestType.EDIT and (
            proposed_changes is None or proposed_changes.is_empty()
        ):
            raise ValidationError(
                "edit requests need proposed changes", field="proposed_changes"
            )

        task, _ = self.expire_overdue(task, now=now, origin=RequestOrigin.EMPLOYEE)
        self._require_no_pending(task, RequestOrigin.EMPLOYEE)

        request = ModificationRequest(
            request_id=request_id,
            origin=RequestOrigin.EMPLOYEE,
            request_type=request_type,
            requested_by=actor.user_id,
            reason=reason,
            requested_at=now,
            expires_at=now + (sla or self._default_sla),
            urgency=urgency,
            proposed_changes=proposed_changes,
            deletion_impact=deletion_impact,
            requested_due_date=requested_due_date,
            suggested_assignee=suggested_assignee,
            scope_changes=scope_changes,
        )
        return task.with_modification_request(request).with_activity(
            ActivityAction.EMPLOYEE_MODIFICATION_REQUESTED,
            ActorRole.EMPLOYEE,
            f"Employee requested {request_type.value}: {reason}",
            now,
            performed_by=actor.user_id,
        )

    def review_employee_request(
        self,
        task: Task,
        *,
        actor: Actor,
        request_id: UUID,
        approve: bool,
        now: datetime,
        note: str | None = None,
    ) -> Task:
        """Approve or reject an employee request (no task mutation).

        Raises:
            RequestNotFoundError: If the id is not an employee request.
            AlreadyProcessedError: If the request is no longer pending.
            ExpiredError: If the window has passed (expire it first).
        """
        operation = "approve modification" if approve else "reject modification"
        self._machine.require_admin(task, actor, operation)
        request = self._find(task, request_id, RequestOrigin.EMPLOYEE)
        if not request.is_pending:
            raise AlreadyProcessedError(request_id, request.status.value)
        if request.is_overdue(now):
            raise self._expired_error(task, request)

        reviewed = request.with_review(approve, actor.user_id, note, now)
        if approve:
            action = ActivityAction.MODIFICATION_APPROVED
            details = (
                "Admin approved employee modification request. "
                f"Admin note: {note or 'No note'}"
            )
        else:
            action = ActivityAction.MODIFICATION_REJECTED
            details = f"Admin rejected employee modification request: {note}"
        return task.with_modification_request(reviewed).with_activity(
            action, ActorRole.ADMIN, details, now, performed_by=actor.user_id
        )

    # =========================================================================
    # Execution
    # =========================================================================

    def execute(
        self,
        task: Task,
        *,
        actor: Actor,
        request_id: UUID,
        now: datetime,
        overrides: TaskChanges | None = None,
        note: str | None = None,
    ) -> Task:
        """Apply an approved request to the task.

        Args:
            task: The task.
            actor: Executing admin.
            request_id: Request to execute (either collection).
            now: Current time.
            overrides: Field values that replace the proposed edit values.
            note: Optional admin note.

        Returns:
            The updated task, or the task unchanged if the request was
            already executed.

        Raises:
            StateConflictError: If the request is still pending.
            AlreadyProcessedError: If the request was rejected, expired
                or counter-proposed.
            ExpiredError: If an approved employee request ran out of time
                (expire it first).
        """
        self._machine.require_admin(task, actor, "execute modification")
        request = self.get_request(task, request_id)

        if request.status == ModificationRequestStatus.EXECUTED:
            return task
        if request.status == ModificationRequestStatus.PENDING:
            raise StateConflictError(
                task.task_id,
                "execute modification",
                "request must be approved before execution",
                task.status,
            )
        if request.status != ModificationRequestStatus.APPROVED:
            raise AlreadyProcessedError(request_id, request.status.value)
        if self.overdue_request(task, request_id, now) is not None:
            raise self._expired_error(task, request)

        note_text = note or "No note"
        origin_label = "admin" if request.origin == RequestOrigin.ADMIN else "employee"
        request_type = request.request_type

        if request_type == ModificationRequestType.DELETE:
            updated = self._machine.soft_delete(
                task,
                actor=actor,
                now=now,
                details=(
                    f"Task deleted after executing approved {origin_label} request. "
                    f"Admin note: {note_text}"
                ),
            )
        elif request_type == ModificationRequestType.EDIT:
            changes = request.proposed_changes or TaskChanges()
            if overrides is not None:
                changes = overrides.merged_over(changes)
            updated = self._machine.apply_edit(
                task,
                actor=actor,
                changes=changes,
                now=now,
                note=request.reason,
                source=f"Task edited by executing approved {origin_label} request",
            )
            if updated is task:
                updated = task.with_activity(
                    ActivityAction.TASK_EDITED,
                    ActorRole.ADMIN,
                    f"Executed approved {origin_label} edit request, no fields changed",
                    now,
                    performed_by=actor.user_id,
                )
        elif request_type == ModificationRequestType.EXTENSION:
            updated = self._apply_extension(task, request, actor=actor, now=now, note=note)
        elif request_type == ModificationRequestType.REASSIGN:
            new_assignee = request.suggested_assignee or task.assigned_to
            updated = task.with_updates(assigned_to=new_assignee).with_activity(
                ActivityAction.TASK_REASSIGNED,
                ActorRole.ADMIN,
                f"Task reassigned from {task.assigned_to} to {new_assignee} "
                "by executing approved employee request",
                now,
                performed_by=actor.user_id,
            )
        else:
            scope = request.scope_changes or ""
            updated = task.with_updates(
                scope_changes=scope,
                scope_change_approved_at=now,
                scope_change_approved_by=actor.user_id,
            ).with_activity(
                ActivityAction.SCOPE_CHANGE_APPROVED,
                ActorRole.ADMIN,
                f"Scope change executed: {scope[:100]}",
                now,
                performed_by=actor.user_id,
            )

        return updated.with_modification_request(request.with_executed(actor.user_id, now))

    def _apply_extension(
        self,
        task: Task,
        request: ModificationRequest,
        *,
        actor: Actor,
        now: datetime,
        note: str | None,
    ) -> Task:
        new_due_date = request.requested_due_date
        if new_due_date is None:
            raise ValidationError(
                "extension request carries no due date", field="requested_due_date"
            )
        extension = ExtensionRequest(
            request_id=request.request_id,
            requested_by=request.requested_by,
            reason=request.reason,
            requested_at=request.requested_at,
            new_due_date=new_due_date,
            old_due_date=task.due_date,
            status=ExtensionStatus.APPROVED,
            decision=ExtensionDecision.APPROVE,
            approved_due_date=new_due_date,
            reviewed_by=actor.user_id,
            reviewed_at=now,
            review_note=note,
        )
        return (
            task.with_extension_request(extension)
            .with_updates(due_date=new_due_date)
            .with_activity(
                ActivityAction.EXTENSION_APPROVED,
                ActorRole.ADMIN,
                "Task extended by executing approved employee request. "
                f"New due date: {new_due_date.isoformat()}",
                now,
                performed_by=actor.user_id,
            )
        )

    # =========================================================================
    # Discussion
    # =========================================================================

    def add_message(
        self,
        task: Task,
        *,
        actor: Actor,
        request_id: UUID,
        text: str,
        now: datetime,
    ) -> Task:
        """Append a message to a request's discussion thread.

        Raises:
            ValidationError: If the message is blank.
            ActorNotPermittedError: If the actor is neither an admin nor
                the assignee.
        """
        if not text or not text.strip():
            raise ValidationError("message text is required", field="text")
        if not actor.is_admin and actor.user_id != task.assigned_to:
            raise ActorNotPermittedError(
                task.task_id, actor.user_id, "message", "not a participant"
            )
        request = self.get_request(task, request_id)
        message = DiscussionMessage(
            sender_id=actor.user_id,
            sender_role=actor.role,
            text=text.strip(),
            sent_at=now,
        )
        return task.with_modification_request(request.with_message(message)).with_activity(
            _MESSAGE_ACTIONS[request.origin],
            actor.role,
            f"Message on {request.request_type.value} request: {text.strip()[:100]}",
            now,
            performed_by=actor.user_id,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _find(task: Task, request_id: UUID, origin: RequestOrigin) -> ModificationRequest:
        for request in task.requests_for(origin):
            if request.request_id == request_id:
                return request
        raise RequestNotFoundError(task.task_id, request_id)

    @staticmethod
    def _require_no_pending(task: Task, origin: RequestOrigin) -> None:
        pending = task.pending_request(origin)
        if pending is not None:
            raise StateConflictError(
                task.task_id,
                "request modification",
                f"a pending request exists ({pending.request_id})",
                task.status,
            )

    @staticmethod
    def _require_not_deleted(task: Task, operation: str) -> None:
        if task.status == TaskStatus.DELETED:
            raise StateConflictError(
                task.task_id, operation, "task is deleted", task.status
            )
