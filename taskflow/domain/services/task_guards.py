"""Derived task properties and transition guards.

Every function here is a pure function of (task, now). Nothing is cached
on the task, so derived values can never go stale.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from taskflow.domain.models.activity import ActivityAction
from taskflow.domain.models.modification_request import RequestOrigin
from taskflow.domain.models.submission import SubmissionStatus
from taskflow.domain.models.task import ReopenSlaStatus, Task, TaskStatus

SECONDS_PER_HOUR: int = 60 * 60
SECONDS_PER_DAY: int = 24 * SECONDS_PER_HOUR

OVERDUE_EXEMPT_STATUSES: frozenset[TaskStatus] = frozenset(
    {
        TaskStatus.COMPLETED,
        TaskStatus.VERIFIED,
        TaskStatus.FAILED,
        TaskStatus.DECLINED_BY_EMPLOYEE,
        TaskStatus.REOPENED,
        TaskStatus.DELETED,
        TaskStatus.WITHDRAWN,
    }
)
"""Statuses in which a passed due date does not count as overdue."""

EXTENSION_ELIGIBLE_STATUSES: frozenset[TaskStatus] = frozenset(
    {TaskStatus.ACCEPTED, TaskStatus.IN_PROGRESS}
)
"""Statuses in which the assignee may ask for more time."""

_SLA_BREACH_CLOSED_STATUSES: frozenset[TaskStatus] = frozenset(
    {
        TaskStatus.COMPLETED,
        TaskStatus.VERIFIED,
        TaskStatus.FAILED,
        TaskStatus.DELETED,
        TaskStatus.WITHDRAWN,
    }
)


# =============================================================================
# Deadline
# =============================================================================


def is_overdue(task: Task, now: datetime) -> bool:
    if task.due_date is None or task.status in OVERDUE_EXEMPT_STATUSES:
        return False
    return now > task.due_date


def overdue_days(task: Task, now: datetime) -> int:
    """Whole days past the due date (0 when not overdue)."""
    if not is_overdue(task, now):
        return 0
    assert task.due_date is not None
    return int((now - task.due_date).total_seconds() // SECONDS_PER_DAY)


# =============================================================================
# Submission and reopen
# =============================================================================


def has_work_submission(task: Task) -> bool:
    """Check for a submitted (not yet reviewed) submission with content."""
    submission = task.work_submission
    if submission is None:
        return False
    return (
        submission.has_content()
        and submission.submission_status == SubmissionStatus.SUBMITTED
    )


def has_new_submission_after_reopen(task: Task) -> bool:
    """Check whether work was resubmitted since the most recent reopen."""
    last_reopen = task.activity.last_index_of(ActivityAction.TASK_REOPENED)
    return task.activity.occurs_since(ActivityAction.TASK_COMPLETED, last_reopen)


def reopen_window_expired(task: Task, now: datetime) -> bool:
    """Check whether a reopen response window has passed unanswered."""
    return (
        task.status == TaskStatus.REOPENED
        and task.reopen_due_at is not None
        and task.reopen_due_at <= now
        and task.reopen_sla_status != ReopenSlaStatus.TIMED_OUT
    )


# =============================================================================
# Admin guards
# =============================================================================


def can_admin_edit_directly(task: Task) -> bool:
    return task.status == TaskStatus.ASSIGNED


def can_admin_delete_directly(task: Task) -> bool:
    return task.status == TaskStatus.ASSIGNED and not has_work_submission(task)


def can_admin_verify(task: Task) -> bool:
    return task.status in (TaskStatus.COMPLETED, TaskStatus.REOPENED)


def can_admin_fail(task: Task, now: datetime) -> bool:
    """Check whether an admin may close the task as failed.

    Allowed for completed and reopened work, for in-progress work past
    its due date, and for tasks the assignee declined or withdrew from.
    """
    if task.status in (
        TaskStatus.COMPLETED,
        TaskStatus.REOPENED,
        TaskStatus.DECLINED_BY_EMPLOYEE,
        TaskStatus.WITHDRAWN,
    ):
        return True
    return task.status == TaskStatus.IN_PROGRESS and is_overdue(task, now)


def can_admin_reopen(task: Task) -> bool:
    return task.status == TaskStatus.VERIFIED and not task.is_archived


# =============================================================================
# Requests
# =============================================================================


def has_pending_modification_request(task: Task, now: datetime) -> bool:
    """Check for a pending admin request whose window is still open."""
    pending = task.pending_request(RequestOrigin.ADMIN)
    return pending is not None and pending.expires_at > now


def can_request_extension(task: Task) -> bool:
    return (
        task.status in EXTENSION_ELIGIBLE_STATUSES
        and task.pending_extension_request() is None
    )


def can_be_archived(task: Task) -> bool:
    return task.status == TaskStatus.VERIFIED and not task.is_archived


# =============================================================================
# Display and metrics
# =============================================================================


@dataclass(frozen=True, eq=True)
class TaskCategory:
    """Board column a task is shown in."""

    type: str
    label: str
    priority: int


_CATEGORIES: dict[TaskStatus, TaskCategory] = {
    TaskStatus.ASSIGNED: TaskCategory("active", "To Do", 1),
    TaskStatus.ACCEPTED: TaskCategory("active", "To Do", 2),
    TaskStatus.IN_PROGRESS: TaskCategory("active", "In Progress", 3),
    TaskStatus.COMPLETED: TaskCategory("active", "In Review", 4),
    TaskStatus.VERIFIED: TaskCategory("done", "Verified", 5),
    TaskStatus.REOPENED: TaskCategory("active", "Reopened", 6),
    TaskStatus.FAILED: TaskCategory("failed", "Failed", 7),
    TaskStatus.DECLINED_BY_EMPLOYEE: TaskCategory("failed", "Declined", 8),
    TaskStatus.DELETED: TaskCategory("failed", "Deleted", 9),
    TaskStatus.WITHDRAWN: TaskCategory("failed", "Withdrawn", 10),
}


def task_category(task: Task) -> TaskCategory:
    return _CATEGORIES.get(
        task.status, TaskCategory("unknown", task.status.value, 99)
    )


@dataclass(frozen=True, eq=True)
class PerformanceMetrics:
    """Timing metrics of a task.

    Attributes:
        acceptance_hours: Hours from creation to acceptance (rounded).
        completion_hours: Hours from acceptance to submission (rounded).
        was_on_time: Whether the last submission met the due date.
        sla_breach: Whether the due date was (or is being) missed.
    """

    acceptance_hours: int | None
    completion_hours: int | None
    was_on_time: bool | None
    sla_breach: bool


def _hours_between(start: datetime | None, end: datetime | None) -> int | None:
    if start is None or end is None:
        return None
    return round((end - start).total_seconds() / SECONDS_PER_HOUR)


def performance_metrics(task: Task, now: datetime) -> PerformanceMetrics:
    was_on_time: bool | None = None
    if task.completed_at is not None and task.due_date is not None:
        was_on_time = task.completed_at <= task.due_date

    sla_breach = False
    if task.due_date is not None:
        if task.status not in _SLA_BREACH_CLOSED_STATUSES:
            sla_breach = now > task.due_date
        elif task.completed_at is not None:
            sla_breach = task.completed_at > task.due_date

    return PerformanceMetrics(
        acceptance_hours=_hours_between(task.created_at, task.accepted_at),
        completion_hours=_hours_between(task.accepted_at, task.completed_at),
        was_on_time=was_on_time,
        sla_breach=sla_breach,
    )
