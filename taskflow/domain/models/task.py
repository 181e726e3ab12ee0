"""Task aggregate and lifecycle enums.

This module defines the Task aggregate root of the lifecycle engine:
- TaskStatus: State machine for the task lifecycle
- ReopenSlaStatus / DeclineType / FailureType: lifecycle qualifiers
- Task: Immutable aggregate; every mutation yields a new instance

Invariants (checked on construction):
1. closed_at is set if and only if status is a closed status
2. At most one pending request per request collection
3. reopen_due_at is set only while reopened with a pending SLA
4. Activity log timestamps never decrease (see ActivityLog)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from uuid import UUID

from taskflow.domain.models.activity import ActivityAction, ActivityEntry, ActivityLog
from taskflow.domain.models.actor import ActorRole
from taskflow.domain.models.extension_request import ExtensionRequest
from taskflow.domain.models.modification_request import (
    ModificationRequest,
    RequestOrigin,
)
from taskflow.domain.models.submission import WorkSubmission
from taskflow.domain.models.task_edit import EditRecord, TaskChanges, TaskPriority


class TaskStatus(str, Enum):
    """Status states for a task.

    State Transition Matrix:
    - ASSIGNED -> ACCEPTED, DECLINED_BY_EMPLOYEE, DELETED
    - ACCEPTED -> IN_PROGRESS, COMPLETED, WITHDRAWN, DELETED
    - IN_PROGRESS -> COMPLETED, WITHDRAWN, FAILED, DELETED
    - COMPLETED -> VERIFIED, FAILED, DELETED
    - VERIFIED -> REOPENED, DELETED
    - REOPENED -> ACCEPTED, COMPLETED, VERIFIED, FAILED, DECLINED_BY_EMPLOYEE, DELETED
    - DECLINED_BY_EMPLOYEE -> ASSIGNED, VERIFIED, FAILED, DELETED
    - WITHDRAWN -> ASSIGNED, FAILED, DELETED
    - FAILED -> DELETED
    - DELETED -> (terminal)
    """

    ASSIGNED = "assigned"
    """Assigned to an employee, awaiting acceptance."""

    ACCEPTED = "accepted"
    """Accepted by the assignee (also the state after accepting a reopen)."""

    IN_PROGRESS = "in_progress"
    """Assignee has started work."""

    COMPLETED = "completed"
    """Work submitted, awaiting admin review."""

    VERIFIED = "verified"
    """Admin accepted the work."""

    REOPENED = "reopened"
    """Admin reopened verified work; assignee must respond within the SLA."""

    FAILED = "failed"
    """Admin closed the task as failed."""

    DECLINED_BY_EMPLOYEE = "declined_by_employee"
    """Assignee declined the assignment or the reopen."""

    WITHDRAWN = "withdrawn"
    """Assignee withdrew after accepting."""

    DELETED = "deleted"
    """Soft-deleted."""

    def is_closed(self) -> bool:
        """Check if this status carries a closed_at timestamp.

        Returns:
            True for VERIFIED, FAILED, DELETED and WITHDRAWN.
        """
        return self in CLOSED_STATUSES

    def is_terminal(self) -> bool:
        return self == TaskStatus.DELETED

    def can_transition_to(self, target: TaskStatus) -> bool:
        """Check if transition to target state is valid.

        Args:
            target: The target status to transition to.

        Returns:
            True if the transition is valid, False otherwise.
        """
        valid_transitions: dict[TaskStatus, set[TaskStatus]] = {
            TaskStatus.ASSIGNED: {
                TaskStatus.ACCEPTED,
                TaskStatus.DECLINED_BY_EMPLOYEE,
                TaskStatus.DELETED,
            },
            TaskStatus.ACCEPTED: {
                TaskStatus.IN_PROGRESS,
                TaskStatus.COMPLETED,
                TaskStatus.WITHDRAWN,
                TaskStatus.DELETED,
            },
            TaskStatus.IN_PROGRESS: {
                TaskStatus.COMPLETED,
                TaskStatus.WITHDRAWN,
                TaskStatus.FAILED,
                TaskStatus.DELETED,
            },
            TaskStatus.COMPLETED: {
                TaskStatus.VERIFIED,
                TaskStatus.FAILED,
                TaskStatus.DELETED,
            },
            TaskStatus.VERIFIED: {TaskStatus.REOPENED, TaskStatus.DELETED},
            TaskStatus.REOPENED: {
                TaskStatus.ACCEPTED,
                TaskStatus.COMPLETED,
                TaskStatus.VERIFIED,
                TaskStatus.FAILED,
                TaskStatus.DECLINED_BY_EMPLOYEE,
                TaskStatus.DELETED,
            },
            TaskStatus.DECLINED_BY_EMPLOYEE: {
                TaskStatus.ASSIGNED,
                TaskStatus.VERIFIED,
                TaskStatus.FAILED,
                TaskStatus.DELETED,
            },
            TaskStatus.WITHDRAWN: {
                TaskStatus.ASSIGNED,
                TaskStatus.FAILED,
                TaskStatus.DELETED,
            },
            TaskStatus.FAILED: {TaskStatus.DELETED},
            TaskStatus.DELETED: set(),  # Terminal
        }
        return target in valid_transitions.get(self, set())


CLOSED_STATUSES: frozenset[TaskStatus] = frozenset(
    {TaskStatus.VERIFIED, TaskStatus.FAILED, TaskStatus.DELETED, TaskStatus.WITHDRAWN}
)
"""Statuses for which closed_at is set; most admin writes are blocked."""

ACTIVE_STATUSES: frozenset[TaskStatus] = frozenset(
    {
        TaskStatus.ASSIGNED,
        TaskStatus.ACCEPTED,
        TaskStatus.IN_PROGRESS,
        TaskStatus.COMPLETED,
    }
)
"""Statuses classified as work in progress."""


class ReopenSlaStatus(str, Enum):
    """State of the reopen response window."""

    PENDING = "pending"
    RESPONDED = "responded"
    TIMED_OUT = "timed_out"


class DeclineType(str, Enum):
    """Why a task sits in declined_by_employee (or withdrawn)."""

    ASSIGNMENT_DECLINE = "assignment_decline"
    REOPEN_DECLINE = "reopen_decline"
    WITHDRAWAL = "withdrawal"


class FailureType(str, Enum):
    """Categorised reasons an admin fails a task."""

    QUALITY_NOT_MET = "quality_not_met"
    OVERDUE_TIMEOUT = "overdue_timeout"
    INCOMPLETE_WORK = "incomplete_work"
    TECHNICAL_ISSUES = "technical_issues"
    COMMUNICATION_BREAKDOWN = "communication_breakdown"
    RESOURCE_CONSTRAINTS = "resource_constraints"
    OTHER = "other"

    @property
    def label(self) -> str:
        return _FAILURE_LABELS[self]


_FAILURE_LABELS: dict[FailureType, str] = {
    FailureType.QUALITY_NOT_MET: "Work quality did not meet expectations",
    FailureType.OVERDUE_TIMEOUT: "Task overdue without submission",
    FailureType.INCOMPLETE_WORK: "Work submitted but incomplete",
    FailureType.TECHNICAL_ISSUES: "Technical issues prevented completion",
    FailureType.COMMUNICATION_BREAKDOWN: "Communication breakdown",
    FailureType.RESOURCE_CONSTRAINTS: "Resource constraints",
    FailureType.OTHER: "Failed",
}


@dataclass(frozen=True, eq=True)
class Task:
    """The task aggregate root.

    Sub-entities (timeline entries, requests, submissions) are immutable
    values held in tuples; changing one replaces the tuple.

    Attributes:
        task_id: Unique identifier.
        title: Short title.
        description: Full description.
        assigned_to: Assignee identity.
        created_by: Creating admin identity.
        created_at: Creation time (UTC).
        status: Current lifecycle status.
        priority: Task priority.
        category: Optional free-form category.
        due_date: Optional deadline (UTC).
        work_submission: Current work submission, if any.
        activity: Append-only activity log.
        modification_requests: Admin-initiated requests.
        employee_modification_requests: Employee-initiated requests.
        extension_requests: Due-date extension requests.
        edit_history: Applied edits.
        reopen_reason: Reason given on the latest reopen.
        reopen_due_at: Deadline for responding to a reopen.
        reopen_sla_status: State of the reopen response window.
        reopen_sla_breached_at: When the reopen window timed out.
        reopened_by: Admin who reopened the task.
        reopen_viewed_at: When the assignee first viewed the reopen.
        decline_type: Qualifier for declined/withdrawn tasks.
        decline_reason: Reason given when declining or withdrawing.
        failure_type: Category of failure.
        failure_reason: Admin's failure reason.
        accepted_at: When the assignee accepted.
        started_at: When work started.
        completed_at: When work was last submitted.
        reviewed_at: When an admin last verified or failed the task.
        reviewed_by: That admin.
        admin_note: Admin's latest review note.
        scope_changes: Latest approved scope change description.
        scope_change_approved_at: When it was approved.
        scope_change_approved_by: Who approved it.
        closed_at: Set exactly while status is closed.
        is_archived: Archive flag.
        archived_at: Archive time.
        archived_by: Archiving admin.
        archive_note: Archive note.
        version: Optimistic-concurrency token, bumped by every save.
    """

    # Required fields
    task_id: UUID
    title: str
    description: str
    assigned_to: str
    created_by: str
    created_at: datetime

    # Lifecycle
    status: TaskStatus = field(default=TaskStatus.ASSIGNED)
    priority: TaskPriority = field(default=TaskPriority.MEDIUM)
    category: str | None = field(default=None)
    due_date: datetime | None = field(default=None)
    work_submission: WorkSubmission | None = field(default=None)
    activity: ActivityLog = field(default_factory=ActivityLog)

    # Requests and audit
    modification_requests: tuple[ModificationRequest, ...] = field(default=())
    employee_modification_requests: tuple[ModificationRequest, ...] = field(default=())
    extension_requests: tuple[ExtensionRequest, ...] = field(default=())
    edit_history: tuple[EditRecord, ...] = field(default=())

    # Reopen
    reopen_reason: str | None = field(default=None)
    reopen_due_at: datetime | None = field(default=None)
    reopen_sla_status: ReopenSlaStatus | None = field(default=None)
    reopen_sla_breached_at: datetime | None = field(default=None)
    reopened_by: str | None = field(default=None)
    reopen_viewed_at: datetime | None = field(default=None)

    # Decline / failure
    decline_type: DeclineType | None = field(default=None)
    decline_reason: str | None = field(default=None)
    failure_type: FailureType | None = field(default=None)
    failure_reason: str | None = field(default=None)

    # Timestamps and review
    accepted_at: datetime | None = field(default=None)
    started_at: datetime | None = field(default=None)
    completed_at: datetime | None = field(default=None)
    reviewed_at: datetime | None = field(default=None)
    reviewed_by: str | None = field(default=None)
    admin_note: str | None = field(default=None)

    # Scope
    scope_changes: str | None = field(default=None)
    scope_change_approved_at: datetime | None = field(default=None)
    scope_change_approved_by: str | None = field(default=None)

    # Closure and archive
    closed_at: datetime | None = field(default=None)
    is_archived: bool = field(default=False)
    archived_at: datetime | None = field(default=None)
    archived_by: str | None = field(default=None)
    archive_note: str | None = field(default=None)

    version: int = field(default=0)

    def __post_init__(self) -> None:
        """Validate task invariants after initialization.

        Raises:
            ValueError: If any invariant is violated.
        """
        if self.created_at.tzinfo is None:
            raise ValueError("created_at must be timezone-aware (UTC)")

        if self.due_date is not None and self.due_date.tzinfo is None:
            raise ValueError("due_date must be timezone-aware (UTC)")

        if self.version < 0:
            raise ValueError(f"version must be >= 0, got {self.version}")

        # closed_at <=> closed status
        if self.status.is_closed() and self.closed_at is None:
            raise ValueError(f"status {self.status.value} requires closed_at")
        if not self.status.is_closed() and self.closed_at is not None:
            raise ValueError(f"closed_at must be empty for status {self.status.value}")

        # reopen_due_at only while reopened with a pending SLA
        if self.reopen_due_at is not None and (
            self.status != TaskStatus.REOPENED
            or self.reopen_sla_status != ReopenSlaStatus.PENDING
        ):
            raise ValueError(
                "reopen_due_at is only allowed while reopened with a pending SLA"
            )

        # At most one pending request per collection
        for name, requests in (
            ("modification_requests", self.modification_requests),
            ("employee_modification_requests", self.employee_modification_requests),
            ("extension_requests", self.extension_requests),
        ):
            pending = sum(1 for request in requests if request.is_pending)
            if pending > 1:
                raise ValueError(f"{name} holds {pending} pending requests, max 1")

        if self.is_archived and self.archived_at is None:
            raise ValueError("archived tasks require archived_at")

    # =========================================================================
    # Read helpers
    # =========================================================================

    @property
    def activity_timeline(self) -> tuple[ActivityEntry, ...]:
        """The ordered activity entries."""
        return self.activity.entries

    @property
    def is_closed(self) -> bool:
        return self.status.is_closed()

    def editable_values(self) -> TaskChanges:
        """Current values of the editable fields."""
        return TaskChanges(
            title=self.title,
            description=self.description,
            priority=self.priority,
            due_date=self.due_date,
            category=self.category,
        )

    def requests_for(self, origin: RequestOrigin) -> tuple[ModificationRequest, ...]:
        if origin == RequestOrigin.ADMIN:
            return self.modification_requests
        return self.employee_modification_requests

    def find_modification_request(self, request_id: UUID) -> ModificationRequest | None:
        """Find a request in the admin list first, then the employee list."""
        for request in self.modification_requests + self.employee_modification_requests:
            if request.request_id == request_id:
                return request
        return None

    def find_extension_request(self, request_id: UUID) -> ExtensionRequest | None:
        for request in self.extension_requests:
            if request.request_id == request_id:
                return request
        return None

    def pending_request(self, origin: RequestOrigin) -> ModificationRequest | None:
        for request in self.requests_for(origin):
            if request.is_pending:
                return request
        return None

    def pending_extension_request(self) -> ExtensionRequest | None:
        for request in self.extension_requests:
            if request.is_pending:
                return request
        return None

    # =========================================================================
    # Immutable updates
    # =========================================================================

    def with_updates(self, **changes: object) -> Task:
        """Create a new task with the given fields replaced.

        Construction re-validates every invariant.

        Raises:
            ValueError: If the resulting task violates an invariant.
        """
        return replace(self, **changes)  # type: ignore[arg-type]

    def with_status(self, new_status: TaskStatus, **changes: object) -> Task:
        """Create a new task in new_status.

        Validates the transition against the transition matrix.

        Raises:
            ValueError: If the transition is not allowed.
        """
        if new_status != self.status and not self.status.can_transition_to(new_status):
            raise ValueError(
                f"Invalid state transition: {self.status.value} -> {new_status.value}"
            )
        return self.with_updates(status=new_status, **changes)

    def with_activity(
        self,
        action: ActivityAction,
        role: ActorRole,
        details: str,
        timestamp: datetime,
        performed_by: str | None = None,
    ) -> Task:
        """Create a new task with one activity entry appended."""
        return self.with_updates(
            activity=self.activity.record(
                action=action,
                role=role,
                details=details,
                timestamp=timestamp,
                performed_by=performed_by,
            )
        )

    def with_modification_request(self, request: ModificationRequest) -> Task:
        """Insert or replace a modification request in its origin's collection."""
        requests = self.requests_for(request.origin)
        if any(existing.request_id == request.request_id for existing in requests):
            updated = tuple(
                request if existing.request_id == request.request_id else existing
                for existing in requests
            )
        else:
            updated = requests + (request,)
        if request.origin == RequestOrigin.ADMIN:
            return self.with_updates(modification_requests=updated)
        return self.with_updates(employee_modification_requests=updated)

    def with_extension_request(self, request: ExtensionRequest) -> Task:
        """Insert or replace an extension request."""
        if self.find_extension_request(request.request_id) is not None:
            updated = tuple(
                request if existing.request_id == request.request_id else existing
                for existing in self.extension_requests
            )
        else:
            updated = self.extension_requests + (request,)
        return self.with_updates(extension_requests=updated)
