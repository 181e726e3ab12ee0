"""Modification request domain models.

Modification requests are change proposals that need the other party's
consent before they are applied. They come from two origins:

- Admin-initiated (edit, delete): used once a task has left the
  directly-editable state; the assignee approves, rejects or
  counter-proposes.
- Employee-initiated (edit, delete, extension, reassign, scope_change):
  the assignee asks, an admin approves or rejects.

Approval is two-phase: approving only flips the status to APPROVED; a
separate execute step applies the change and flips it to EXECUTED.

State Transition Matrix:
- PENDING -> APPROVED, REJECTED, COUNTER_PROPOSED, EXPIRED
- APPROVED -> EXECUTED, EXPIRED
- REJECTED, COUNTER_PROPOSED, EXPIRED, EXECUTED -> (terminal)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from uuid import UUID

from taskflow.domain.models.actor import ActorRole
from taskflow.domain.models.task_edit import TaskChanges


class RequestOrigin(str, Enum):
    """Which party raised the request."""

    ADMIN = "admin"
    EMPLOYEE = "employee"


class ModificationRequestType(str, Enum):
    """Kinds of change a modification request can carry."""

    EDIT = "edit"
    DELETE = "delete"
    EXTENSION = "extension"
    REASSIGN = "reassign"
    SCOPE_CHANGE = "scope_change"


ADMIN_REQUEST_TYPES: frozenset[ModificationRequestType] = frozenset(
    {ModificationRequestType.EDIT, ModificationRequestType.DELETE}
)
"""Request types an admin may raise."""

EMPLOYEE_REQUEST_TYPES: frozenset[ModificationRequestType] = frozenset(
    ModificationRequestType
)
"""Request types an employee may raise."""


class ModificationRequestStatus(str, Enum):
    """Lifecycle states of a modification request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COUNTER_PROPOSED = "counter_proposed"
    EXPIRED = "expired"
    EXECUTED = "executed"

    def is_terminal(self) -> bool:
        return self in (
            ModificationRequestStatus.REJECTED,
            ModificationRequestStatus.COUNTER_PROPOSED,
            ModificationRequestStatus.EXPIRED,
            ModificationRequestStatus.EXECUTED,
        )

    def can_transition_to(self, target: ModificationRequestStatus) -> bool:
        valid_transitions: dict[
            ModificationRequestStatus, set[ModificationRequestStatus]
        ] = {
            ModificationRequestStatus.PENDING: {
                ModificationRequestStatus.APPROVED,
                ModificationRequestStatus.REJECTED,
                ModificationRequestStatus.COUNTER_PROPOSED,
                ModificationRequestStatus.EXPIRED,
            },
            ModificationRequestStatus.APPROVED: {
                ModificationRequestStatus.EXECUTED,
                ModificationRequestStatus.EXPIRED,
            },
        }
        return target in valid_transitions.get(self, set())


class ModificationDecision(str, Enum):
    """The assignee's answer to an admin-initiated request."""

    APPROVED = "approved"
    REJECTED = "rejected"
    COUNTER_PROPOSAL = "counter_proposal"

    def resulting_status(self) -> ModificationRequestStatus:
        if self == ModificationDecision.COUNTER_PROPOSAL:
            return ModificationRequestStatus.COUNTER_PROPOSED
        return ModificationRequestStatus(self.value)


class RequestUrgency(str, Enum):
    """Urgency the requester attaches to a request."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


@dataclass(frozen=True, eq=True)
class RequestResponse:
    """A recorded response to a request.

    decision is "expired" for requests closed by the expiry sweep.
    """

    decision: str
    note: str
    responded_at: datetime
    responded_by: str | None = None


@dataclass(frozen=True, eq=True)
class CounterProposal:
    """Alternative terms offered instead of approving as-is."""

    note: str
    proposed_changes: TaskChanges | None = None
    proposed_at: datetime | None = None


@dataclass(frozen=True, eq=True)
class DiscussionMessage:
    """A message on a request's discussion thread."""

    sender_id: str
    sender_role: ActorRole
    text: str
    sent_at: datetime


@dataclass(frozen=True, eq=True)
class ModificationRequest:
    """A two-phase change proposal attached to a task.

    Attributes:
        request_id: Unique identifier.
        origin: Admin- or employee-initiated.
        request_type: Kind of change proposed.
        requested_by: User id of the requester.
        reason: Why the change is requested.
        requested_at: When it was raised (UTC).
        expires_at: End of the response window (UTC).
        status: Current lifecycle state.
        urgency: Requester-assigned urgency.
        proposed_changes: Field changes for edit requests.
        deletion_impact: Impact note for delete requests.
        requested_due_date: New due date for extension requests.
        suggested_assignee: Proposed new assignee for reassign requests.
        scope_changes: Description of scope changes.
        response: Response recorded by the other party (or the sweep).
        counter_proposal: Counter terms, when counter-proposed.
        reviewed_by: Admin who reviewed an employee request.
        reviewed_at: When an employee request was reviewed.
        review_note: Admin note on approval or rejection reason.
        executed_at: When the approved change was applied.
        executed_by: Who applied it.
        expired_at: When the request was marked expired.
        viewed_at: When the assignee first opened an admin request.
        discussion: Append-only discussion thread.
    """

    request_id: UUID
    origin: RequestOrigin
    request_type: ModificationRequestType
    requested_by: str
    reason: str
    requested_at: datetime
    expires_at: datetime
    status: ModificationRequestStatus = field(default=ModificationRequestStatus.PENDING)
    urgency: RequestUrgency = field(default=RequestUrgency.NORMAL)
    proposed_changes: TaskChanges | None = field(default=None)
    deletion_impact: str | None = field(default=None)
    requested_due_date: datetime | None = field(default=None)
    suggested_assignee: str | None = field(default=None)
    scope_changes: str | None = field(default=None)
    response: RequestResponse | None = field(default=None)
    counter_proposal: CounterProposal | None = field(default=None)
    reviewed_by: str | None = field(default=None)
    reviewed_at: datetime | None = field(default=None)
    review_note: str | None = field(default=None)
    executed_at: datetime | None = field(default=None)
    executed_by: str | None = field(default=None)
    expired_at: datetime | None = field(default=None)
    viewed_at: datetime | None = field(default=None)
    discussion: tuple[DiscussionMessage, ...] = field(default=())

    def __post_init__(self) -> None:
        """Validate request fields after initialization.

        Raises:
            ValueError: If any field validation fails.
        """
        if self.expires_at.tzinfo is None or self.requested_at.tzinfo is None:
            raise ValueError("requested_at and expires_at must be timezone-aware (UTC)")
        if self.expires_at <= self.requested_at:
            raise ValueError("expires_at must be after requested_at")
        if (
            self.origin == RequestOrigin.ADMIN
            and self.request_type not in ADMIN_REQUEST_TYPES
        ):
            raise ValueError(
                f"admin requests must be edit or delete, got {self.request_type.value}"
            )
        if self.status == ModificationRequestStatus.EXECUTED and self.executed_at is None:
            raise ValueError("EXECUTED status requires executed_at")
        if self.status == ModificationRequestStatus.EXPIRED and self.expired_at is None:
            raise ValueError("EXPIRED status requires expired_at")

    @property
    def is_pending(self) -> bool:
        return self.status == ModificationRequestStatus.PENDING

    def window_passed(self, now: datetime) -> bool:
        return self.expires_at <= now

    def is_overdue(self, now: datetime) -> bool:
        """Check whether the request is still pending past its window."""
        return self.is_pending and self.window_passed(now)

    def _with_status(
        self, new_status: ModificationRequestStatus, **changes: object
    ) -> ModificationRequest:
        if not self.status.can_transition_to(new_status):
            raise ValueError(
                f"Invalid state transition: {self.status.value} -> {new_status.value}"
            )
        return replace(self, status=new_status, **changes)  # type: ignore[arg-type]

    def with_expired(self, now: datetime, note: str | None = None) -> ModificationRequest:
        """Mark the request expired.

        Args:
            now: Expiry time.
            note: Optional response note recorded with decision "expired".
        """
        response = self.response
        if note is not None:
            response = RequestResponse(decision="expired", note=note, responded_at=now)
        return self._with_status(
            ModificationRequestStatus.EXPIRED, expired_at=now, response=response
        )

    def with_response(
        self,
        decision: ModificationDecision,
        note: str,
        responded_by: str,
        now: datetime,
        counter_proposal: CounterProposal | None = None,
    ) -> ModificationRequest:
        """Record the assignee's answer to an admin request."""
        return self._with_status(
            decision.resulting_status(),
            response=RequestResponse(
                decision=decision.value,
                note=note,
                responded_at=now,
                responded_by=responded_by,
            ),
            counter_proposal=counter_proposal,
        )

    def with_review(
        self,
        approved: bool,
        reviewed_by: str,
        note: str | None,
        now: datetime,
    ) -> ModificationRequest:
        """Record an admin's approval or rejection of an employee request."""
        target = (
            ModificationRequestStatus.APPROVED
            if approved
            else ModificationRequestStatus.REJECTED
        )
        return self._with_status(
            target, reviewed_by=reviewed_by, reviewed_at=now, review_note=note
        )

    def with_executed(self, executed_by: str, now: datetime) -> ModificationRequest:
        return self._with_status(
            ModificationRequestStatus.EXECUTED, executed_at=now, executed_by=executed_by
        )

    def with_message(self, message: DiscussionMessage) -> ModificationRequest:
        return replace(self, discussion=self.discussion + (message,))

    def with_viewed(self, now: datetime) -> ModificationRequest:
        if self.viewed_at is not None:
            return self
        return replace(self, viewed_at=now)
