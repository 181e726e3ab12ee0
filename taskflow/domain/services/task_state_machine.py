"""Task state machine domain service.

Validates and applies task status transitions. Every method is pure: it
takes the current task, the acting user and the current time, and either
returns a new task (with exactly one activity entry appended) or raises a
domain error without producing anything.

Transition guards:
- Employee transitions are reserved for the task's assignee
- Admin transitions are reserved for admins
- A failed guard raises StateConflictError; nothing is mutated
- Malformed content (e.g. an empty work submission) raises ValidationError

Text length rules on reasons and notes are enforced by the command layer
before these methods are reached.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from uuid import UUID

from taskflow.domain.errors import (
    ActorNotPermittedError,
    StateConflictError,
    ValidationError,
)
from taskflow.domain.models.activity import ActivityAction
from taskflow.domain.models.actor import SYSTEM_ACTOR, Actor, ActorRole
from taskflow.domain.models.submission import (
    SubmissionStatus,
    SubmittedFile,
    WorkSubmission,
)
from taskflow.domain.models.task import (
    DeclineType,
    FailureType,
    ReopenSlaStatus,
    Task,
    TaskStatus,
)
from taskflow.domain.models.task_edit import EditRecord, TaskChanges, TaskPriority
from taskflow.domain.services import task_guards

DEFAULT_REOPEN_SLA_WINDOW: timedelta = timedelta(days=3)
"""Time an assignee has to answer a reopen before it times out."""

REASSIGNABLE_DECLINE_TYPES: frozenset[DeclineType | None] = frozenset(
    {None, DeclineType.ASSIGNMENT_DECLINE}
)
"""Decline types from which a declined task may be reassigned."""


def format_days(window: timedelta) -> str:
    """Render an SLA window as "N day(s)" for activity details."""
    days = window.total_seconds() / 86400
    days_str = str(int(days)) if days == int(days) else f"{days:.1f}"
    return f"{days_str} day(s)"


class TaskStateMachine:
    """Applies lifecycle transitions to tasks.

    Example:
        >>> machine = TaskStateMachine()
        >>> accepted = machine.accept(task, actor=Actor.employee("emp-1"), now=now)
        >>> accepted.status
        <TaskStatus.ACCEPTED: 'accepted'>
    """

    def __init__(self, reopen_sla_window: timedelta = DEFAULT_REOPEN_SLA_WINDOW) -> None:
        """Initialize the state machine.

        Args:
            reopen_sla_window: Response window granted when a task is reopened.
        """
        if reopen_sla_window <= timedelta(0):
            raise ValueError("reopen_sla_window must be positive")
        self._reopen_sla_window = reopen_sla_window

    @property
    def reopen_sla_window(self) -> timedelta:
        return self._reopen_sla_window

    # =========================================================================
    # Actor checks
    # =========================================================================

    @staticmethod
    def require_assignee(task: Task, actor: Actor, operation: str) -> None:
        """Reject anyone but the assignee acting as an employee.

        Raises:
            ActorNotPermittedError: If the actor is not the assignee.
        """
        if not actor.is_employee:
            raise ActorNotPermittedError(
                task.task_id, actor.user_id, operation, "employee action"
            )
        if actor.user_id != task.assigned_to:
            raise ActorNotPermittedError(
                task.task_id, actor.user_id, operation, "not the assignee"
            )

    @staticmethod
    def require_admin(task: Task, actor: Actor, operation: str) -> None:
        """Reject non-admin actors.

        Raises:
            ActorNotPermittedError: If the actor is not an admin.
        """
        if not actor.is_admin:
            raise ActorNotPermittedError(
                task.task_id, actor.user_id, operation, "admin only"
            )

    @staticmethod
    def require_open(task: Task, operation: str) -> None:
        """Reject writes against closed (read-only) tasks.

        Raises:
            StateConflictError: If the task is verified, failed, deleted or withdrawn.
        """
        if task.is_closed:
            raise StateConflictError(
                task.task_id, operation, "task is closed and read-only", task.status
            )

    @staticmethod
    def _conflict(task: Task, operation: str, reason: str) -> StateConflictError:
        return StateConflictError(task.task_id, operation, reason, task.status)

    # =========================================================================
    # Creation
    # =========================================================================

    def create(
        self,
        *,
        task_id: UUID,
        title: str,
        description: str,
        assigned_to: str,
        actor: Actor,
        now: datetime,
        priority: TaskPriority = TaskPriority.MEDIUM,
        category: str | None = None,
        due_date: datetime | None = None,
    ) -> Task:
        """Create a task in ASSIGNED with a TASK_CREATED entry.

        Raises:
            ActorNotPermittedError: If the actor is not an admin.
            ValidationError: If the due date is in the past.
        """
        if not actor.is_admin:
            raise ActorNotPermittedError(task_id, actor.user_id, "create", "admin only")
        if due_date is not None and due_date < now:
            raise ValidationError("due date cannot be in the past", field="due_date")

        task = Task(
            task_id=task_id,
            title=title,
            description=description,
            assigned_to=assigned_to,
            created_by=actor.user_id,
            created_at=now,
            priority=priority,
            category=category,
            due_date=due_date,
        )
        return task.with_activity(
            ActivityAction.TASK_CREATED,
            ActorRole.ADMIN,
            f"Task created and assigned to {assigned_to}",
            now,
            performed_by=actor.user_id,
        )

    # =========================================================================
    # Employee transitions
    # =========================================================================

    def accept(self, task: Task, *, actor: Actor, now: datetime) -> Task:
        self.require_assignee(task, actor, "accept")
        if task.status != TaskStatus.ASSIGNED:
            raise self._conflict(task, "accept", "only assigned tasks can be accepted")
        return task.with_status(TaskStatus.ACCEPTED, accepted_at=now).with_activity(
            ActivityAction.TASK_ACCEPTED,
            ActorRole.EMPLOYEE,
            "Task accepted by employee",
            now,
            performed_by=actor.user_id,
        )

    def start(self, task: Task, *, actor: Actor, now: datetime) -> Task:
        self.require_assignee(task, actor, "start")
        if task.status != TaskStatus.ACCEPTED:
            raise self._conflict(task, "start", "task must be accepted before starting")
        return task.with_status(TaskStatus.IN_PROGRESS, started_at=now).with_activity(
            ActivityAction.TASK_STARTED,
            ActorRole.EMPLOYEE,
            "Work started",
            now,
            performed_by=actor.user_id,
        )

    def decline_assignment(
        self, task: Task, *, actor: Actor, reason: str, now: datetime
    ) -> Task:
        self.require_assignee(task, actor, "decline")
        if task.status != TaskStatus.ASSIGNED:
            raise self._conflict(task, "decline", "only assigned tasks can be declined")
        declined = task.with_status(
            TaskStatus.DECLINED_BY_EMPLOYEE,
            decline_type=DeclineType.ASSIGNMENT_DECLINE,
            decline_reason=reason,
        )
        return declined.with_activity(
            ActivityAction.TASK_DECLINED,
            ActorRole.EMPLOYEE,
            f"Declined assignment: {reason}",
            now,
            performed_by=actor.user_id,
        )

    def withdraw(
        self,
        task: Task,
        *,
        actor: Actor,
        reason: str,
        confirmed: bool,
        now: datetime,
    ) -> Task:
        """Withdraw from an accepted or in-progress task.

        Raises:
            ValidationError: If the withdrawal was not explicitly confirmed.
            StateConflictError: If the task is not accepted or in progress.
        """
        self.require_assignee(task, actor, "withdraw")
        if not confirmed:
            raise ValidationError("withdrawal must be confirmed", field="confirmed")
        if task.status not in (TaskStatus.ACCEPTED, TaskStatus.IN_PROGRESS):
            raise self._conflict(
                task, "withdraw", "only accepted or in-progress tasks can be withdrawn"
            )
        withdrawn = task.with_status(
            TaskStatus.WITHDRAWN,
            closed_at=now,
            decline_type=DeclineType.WITHDRAWAL,
            decline_reason=reason,
        )
        return withdrawn.with_activity(
            ActivityAction.TASK_WITHDRAWN,
            ActorRole.EMPLOYEE,
            f"Withdrew from task: {reason}",
            now,
            performed_by=actor.user_id,
        )

    def submit_work(
        self,
        task: Task,
        *,
        actor: Actor,
        now: datetime,
        link: str | None = None,
        files: tuple[SubmittedFile, ...] = (),
        note: str | None = None,
    ) -> Task:
        """Submit work and move the task to COMPLETED.

        Allowed from ACCEPTED and IN_PROGRESS. Accepting a reopen returns
        the task to ACCEPTED, so rework after a reopen goes through the
        same path. Each submission bumps the submission version.

        Raises:
            ValidationError: If there is no link, file or note.
            StateConflictError: If the task is not in a submittable state.
        """
        self.require_assignee(task, actor, "complete")

        if task.status not in (TaskStatus.ACCEPTED, TaskStatus.IN_PROGRESS):
            raise self._conflict(
                task, "complete", "task must be accepted or in progress to submit work"
            )

        previous_version = task.work_submission.version if task.work_submission else 0
        submission = WorkSubmission(
            version=previous_version + 1,
            submitted_at=now,
            link=link.strip() if link else None,
            files=tuple(files),
            note=note.strip() if note else None,
            submission_status=SubmissionStatus.SUBMITTED,
        )
        if not submission.has_content():
            raise ValidationError(
                "work submission requires a link, files or a note",
                field="work_submission",
            )

        details = f"Submitted (v{submission.version})"
        if submission.note:
            details += f": {submission.note}"

        completed = task.with_status(
            TaskStatus.COMPLETED, work_submission=submission, completed_at=now
        )
        return completed.with_activity(
            ActivityAction.TASK_COMPLETED,
            ActorRole.EMPLOYEE,
            details,
            now,
            performed_by=actor.user_id,
        )

    def mark_reopen_viewed(self, task: Task, *, actor: Actor, now: datetime) -> Task:
        """Record that the assignee opened the reopen notice (once)."""
        self.require_assignee(task, actor, "view reopen")
        if task.status != TaskStatus.REOPENED:
            raise self._conflict(task, "view reopen", "task is not reopened")
        if task.reopen_viewed_at is not None:
            return task
        return task.with_updates(reopen_viewed_at=now).with_activity(
            ActivityAction.REOPEN_VIEWED,
            ActorRole.EMPLOYEE,
            "Employee viewed reopen request",
            now,
            performed_by=actor.user_id,
        )

    def accept_reopen(self, task: Task, *, actor: Actor, now: datetime) -> Task:
        """Accept a reopen; the task returns to ACCEPTED for rework.

        Callers must apply the reopen timeout first when the window
        has passed (see reopen_window_expired).
        """
        self.require_assignee(task, actor, "accept reopen")
        self._require_reopen_pending(task, "accept reopen", now)
        accepted = task.with_status(
            TaskStatus.ACCEPTED,
            reopen_sla_status=ReopenSlaStatus.RESPONDED,
            reopen_due_at=None,
        )
        return accepted.with_activity(
            ActivityAction.TASK_REOPEN_ACCEPTED,
            ActorRole.EMPLOYEE,
            "Employee accepted reopen request",
            now,
            performed_by=actor.user_id,
        )

    def decline_reopen(
        self, task: Task, *, actor: Actor, reason: str, now: datetime
    ) -> Task:
        self.require_assignee(task, actor, "decline reopen")
        self._require_reopen_pending(task, "decline reopen", now)
        declined = task.with_status(
            TaskStatus.DECLINED_BY_EMPLOYEE,
            decline_type=DeclineType.REOPEN_DECLINE,
            decline_reason=reason,
            reopen_sla_status=ReopenSlaStatus.RESPONDED,
            reopen_due_at=None,
        )
        return declined.with_activity(
            ActivityAction.TASK_REOPEN_DECLINED,
            ActorRole.EMPLOYEE,
            f"Declined reopen: {reason}",
            now,
            performed_by=actor.user_id,
        )

    def _require_reopen_pending(self, task: Task, operation: str, now: datetime) -> None:
        if task.status != TaskStatus.REOPENED:
            raise self._conflict(task, operation, "task is not reopened")
        if task.reopen_sla_status != ReopenSlaStatus.PENDING:
            raise self._conflict(task, operation, "reopen already answered")
        if task_guards.reopen_window_expired(task, now):
            raise self._conflict(task, operation, "reopen window has passed")

    # =========================================================================
    # Admin transitions
    # =========================================================================

    def verify(self, task: Task, *, actor: Actor, note: str, now: datetime) -> Task:
        """Verify completed or reopened work.

        Raises:
            StateConflictError: If the task cannot be verified, or is
                completed without a submitted work submission.
        """
        self.require_admin(task, actor, "verify")
        if not task_guards.can_admin_verify(task):
            raise self._conflict(
                task, "verify", "only completed or reopened tasks can be verified"
            )
        if task.status == TaskStatus.COMPLETED and not task_guards.has_work_submission(task):
            raise self._conflict(task, "verify", "employee has not submitted work yet")

        details = f"Verified with note: {note}"
        if task.status == TaskStatus.REOPENED:
            if task_guards.has_new_submission_after_reopen(task):
                version = task.work_submission.version if task.work_submission else 1
                details = f"Verified rework (v{version}): {note}"
            else:
                details = f"Verified original work after reopen: {note}"

        submission = task.work_submission
        if submission is not None:
            submission = submission.with_status(SubmissionStatus.VERIFIED)

        verified = task.with_status(
            TaskStatus.VERIFIED,
            closed_at=now,
            reviewed_at=now,
            reviewed_by=actor.user_id,
            admin_note=note,
            work_submission=submission,
            reopen_sla_status=ReopenSlaStatus.RESPONDED,
            reopen_due_at=None,
        )
        return verified.with_activity(
            ActivityAction.TASK_VERIFIED,
            ActorRole.ADMIN,
            details,
            now,
            performed_by=actor.user_id,
        )

    def fail(
        self,
        task: Task,
        *,
        actor: Actor,
        reason: str,
        failure_type: FailureType,
        now: datetime,
    ) -> Task:
        """Close the task as failed.

        Raises:
            StateConflictError: If canAdminFail does not hold, or the task
                is completed without a submitted work submission.
        """
        self.require_admin(task, actor, "fail")
        if not task_guards.can_admin_fail(task, now):
            raise self._conflict(
                task,
                "fail",
                "only completed, reopened, overdue in-progress, declined "
                "or withdrawn tasks can be failed",
            )
        if task.status == TaskStatus.COMPLETED and not task_guards.has_work_submission(task):
            raise self._conflict(
                task, "fail", "cannot fail a completed task without a work submission"
            )

        details = f"Failed ({failure_type.label}): {reason}"
        if task.status == TaskStatus.REOPENED:
            if task.activity.contains(ActivityAction.TASK_REOPEN_DECLINED):
                details = f"Failed after reopen decline: {reason}"
            elif task_guards.has_new_submission_after_reopen(task):
                version = task.work_submission.version if task.work_submission else 1
                details = f"Failed rework (v{version}): {reason}"
            else:
                details = f"Failed without rework after reopen: {reason}"
        elif task.status == TaskStatus.IN_PROGRESS:
            details = f"Failed overdue task: {reason}"

        submission = task.work_submission
        if submission is not None:
            submission = submission.with_status(SubmissionStatus.FAILED)

        reopen_sla_status = task.reopen_sla_status
        if reopen_sla_status == ReopenSlaStatus.PENDING:
            reopen_sla_status = ReopenSlaStatus.RESPONDED

        failed = task.with_status(
            TaskStatus.FAILED,
            closed_at=now,
            failure_reason=reason,
            failure_type=failure_type,
            reviewed_at=now,
            reviewed_by=actor.user_id,
            work_submission=submission,
            reopen_sla_status=reopen_sla_status,
            reopen_due_at=None,
        )
        return failed.with_activity(
            ActivityAction.TASK_FAILED,
            ActorRole.ADMIN,
            details,
            now,
            performed_by=actor.user_id,
        )

    def reopen(self, task: Task, *, actor: Actor, reason: str, now: datetime) -> Task:
        """Reopen verified work and start the reopen response window.

        Raises:
            StateConflictError: If the task is archived or not verified.
        """
        self.require_admin(task, actor, "reopen")
        if task.is_archived:
            raise self._conflict(task, "reopen", "archived tasks cannot be reopened")
        if not task_guards.can_admin_reopen(task):
            raise self._conflict(task, "reopen", "only verified tasks can be reopened")

        reopened = task.with_status(
            TaskStatus.REOPENED,
            closed_at=None,
            reopen_reason=reason,
            reopen_due_at=now + self._reopen_sla_window,
            reopen_sla_status=ReopenSlaStatus.PENDING,
            reopen_sla_breached_at=None,
            reopened_by=actor.user_id,
            reopen_viewed_at=None,
        )
        return reopened.with_activity(
            ActivityAction.TASK_REOPENED,
            ActorRole.ADMIN,
            f"Reopened: {reason}. SLA: {format_days(self._reopen_sla_window)}",
            now,
            performed_by=actor.user_id,
        )

    def apply_reopen_timeout(self, task: Task, *, now: datetime) -> Task:
        """Close an unanswered reopen: the original work stays verified.

        Idempotent: a task whose reopen window already timed out is
        returned unchanged, so no second activity entry is written.
        """
        if task.reopen_sla_status == ReopenSlaStatus.TIMED_OUT:
            return task
        if not task_guards.reopen_window_expired(task, now):
            return task

        timed_out = task.with_status(
            TaskStatus.VERIFIED,
            closed_at=now,
            reopen_sla_status=ReopenSlaStatus.TIMED_OUT,
            reopen_sla_breached_at=now,
            reopen_due_at=None,
        )
        return timed_out.with_activity(
            ActivityAction.TASK_REOPEN_TIMEOUT,
            SYSTEM_ACTOR.role,
            "Reopen response exceeded SLA of "
            f"{format_days(self._reopen_sla_window)}. Original work remains verified.",
            now,
        )

    def accept_reopen_decline(
        self, task: Task, *, actor: Actor, note: str, now: datetime
    ) -> Task:
        """Accept the assignee's decline of a reopen; original work stands."""
        self.require_admin(task, actor, "accept reopen decline")
        if task.status != TaskStatus.DECLINED_BY_EMPLOYEE:
            raise self._conflict(
                task, "accept reopen decline", "task has not been declined"
            )
        if task.decline_type != DeclineType.REOPEN_DECLINE:
            raise self._conflict(
                task, "accept reopen decline", "decline is not a reopen decline"
            )

        submission = task.work_submission
        if submission is not None:
            submission = submission.with_status(SubmissionStatus.VERIFIED)

        verified = task.with_status(
            TaskStatus.VERIFIED,
            closed_at=now,
            reviewed_at=now,
            reviewed_by=actor.user_id,
            admin_note=note,
            work_submission=submission,
        )
        return verified.with_activity(
            ActivityAction.TASK_VERIFIED,
            ActorRole.ADMIN,
            f"Accepted reopen decline, original work stands: {note}",
            now,
            performed_by=actor.user_id,
        )

    def reassign(
        self,
        task: Task,
        *,
        actor: Actor,
        new_assignee: str,
        now: datetime,
        priority: TaskPriority | None = None,
    ) -> Task:
        """Reassign a withdrawn or assignment-declined task.

        Raises:
            StateConflictError: If the task is not withdrawn or declined
                at assignment.
        """
        self.require_admin(task, actor, "reassign")
        reassignable = task.status == TaskStatus.WITHDRAWN or (
            task.status == TaskStatus.DECLINED_BY_EMPLOYEE
            and task.decline_type in REASSIGNABLE_DECLINE_TYPES
        )
        if not reassignable:
            raise self._conflict(
                task,
                "reassign",
                "only withdrawn or assignment-declined tasks can be reassigned",
            )

        details = f"Reassigned from {task.assigned_to} to {new_assignee}"
        changes: dict[str, object] = {}
        if priority is not None and priority != task.priority:
            changes["priority"] = priority
            details += f" (priority {task.priority.value} -> {priority.value})"

        reassigned = task.with_status(
            TaskStatus.ASSIGNED,
            assigned_to=new_assignee,
            closed_at=None,
            decline_type=None,
            decline_reason=None,
            accepted_at=None,
            started_at=None,
            **changes,
        )
        return reassigned.with_activity(
            ActivityAction.TASK_REASSIGNED,
            ActorRole.ADMIN,
            details,
            now,
            performed_by=actor.user_id,
        )

    def direct_edit(
        self,
        task: Task,
        *,
        actor: Actor,
        changes: TaskChanges,
        now: datetime,
        note: str = "",
    ) -> Task:
        """Edit an assigned task without a modification request.

        Raises:
            StateConflictError: If the task is no longer directly editable.
            ValidationError: If nothing would change.
        """
        self.require_admin(task, actor, "edit")
        self.require_open(task, "edit")
        if not task_guards.can_admin_edit_directly(task):
            raise self._conflict(
                task, "edit", "direct edit is only allowed while assigned"
            )
        edited = self.apply_edit(
            task, actor=actor, changes=changes, now=now, note=note, source="Edited directly"
        )
        if edited is task:
            raise ValidationError("No changes provided", field="changes")
        return edited

    def apply_edit(
        self,
        task: Task,
        *,
        actor: Actor,
        changes: TaskChanges,
        now: datetime,
        note: str = "",
        source: str = "Edited",
    ) -> Task:
        """Apply field changes with an edit record and a TASK_EDITED entry.

        Returns the task unchanged when no field actually differs.

        Raises:
            ValidationError: If a new due date lies in the past.
        """
        field_changes = changes.diff_against(task.editable_values())
        if not field_changes:
            return task
        if changes.due_date is not None and changes.due_date != task.due_date:
            if changes.due_date < now:
                raise ValidationError("due date cannot be in the past", field="due_date")

        updates = {
            change.field: getattr(changes, change.field) for change in field_changes
        }
        record = EditRecord(
            edited_by=actor.user_id,
            edited_at=now,
            changes=field_changes,
            note=note,
        )
        edited = task.with_updates(edit_history=task.edit_history + (record,), **updates)
        changed_names = ", ".join(change.field for change in field_changes)
        return edited.with_activity(
            ActivityAction.TASK_EDITED,
            ActorRole.ADMIN,
            f"{source}. Changes: {changed_names}",
            now,
            performed_by=actor.user_id,
        )

    def direct_delete(
        self, task: Task, *, actor: Actor, reason: str, now: datetime
    ) -> Task:
        self.require_admin(task, actor, "delete")
        self.require_open(task, "delete")
        if not task_guards.can_admin_delete_directly(task):
            raise self._conflict(
                task,
                "delete",
                "direct delete is only allowed while assigned with no submitted work",
            )
        return self.soft_delete(task, actor=actor, now=now, details=f"Deleted directly: {reason}")

    def soft_delete(self, task: Task, *, actor: Actor, now: datetime, details: str) -> Task:
        """Move the task to DELETED with a TASK_DELETED entry."""
        if task.status == TaskStatus.DELETED:
            raise self._conflict(task, "delete", "task is already deleted")
        reopen_sla_status = task.reopen_sla_status
        if reopen_sla_status == ReopenSlaStatus.PENDING:
            reopen_sla_status = ReopenSlaStatus.RESPONDED
        deleted = task.with_status(
            TaskStatus.DELETED,
            closed_at=now,
            reopen_due_at=None,
            reopen_sla_status=reopen_sla_status,
        )
        return deleted.with_activity(
            ActivityAction.TASK_DELETED,
            ActorRole.ADMIN,
            details,
            now,
            performed_by=actor.user_id,
        )

    # =========================================================================
    # Archive
    # =========================================================================

    def archive(self, task: Task, *, actor: Actor, note: str, now: datetime) -> Task:
        self.require_admin(task, actor, "archive")
        if task.is_archived:
            raise self._conflict(task, "archive", "task is already archived")
        if not task_guards.can_be_archived(task):
            raise self._conflict(task, "archive", "only verified tasks can be archived")
        archived = task.with_updates(
            is_archived=True,
            archived_at=now,
            archived_by=actor.user_id,
            archive_note=note,
        )
        return archived.with_activity(
            ActivityAction.TASK_ARCHIVED,
            ActorRole.ADMIN,
            f"Archived: {note}",
            now,
            performed_by=actor.user_id,
        )

    def unarchive(self, task: Task, *, actor: Actor, reason: str, now: datetime) -> Task:
        self.require_admin(task, actor, "unarchive")
        if not task.is_archived:
            raise self._conflict(task, "unarchive", "task is not archived")
        restored = task.with_updates(
            is_archived=False,
            archived_at=None,
            archived_by=None,
            archive_note=None,
        )
        return restored.with_activity(
            ActivityAction.TASK_UNARCHIVED,
            ActorRole.ADMIN,
            f"Unarchived: {reason}",
            now,
            performed_by=actor.user_id,
        )
