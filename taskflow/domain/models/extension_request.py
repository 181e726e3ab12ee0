"""Due-date extension request domain models.

An assignee may ask for a later due date while working on a task. An
admin approves (due date becomes the requested date), partially approves
(due date becomes an admin-chosen date) or rejects (due date unchanged).
Every review closes the request.

State Transition Matrix:
- PENDING -> APPROVED, REJECTED
- APPROVED, REJECTED -> (terminal)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from uuid import UUID


class ExtensionStatus(str, Enum):
    """Lifecycle states of an extension request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    def is_terminal(self) -> bool:
        return self != ExtensionStatus.PENDING


class ExtensionDecision(str, Enum):
    """Admin review outcomes for an extension request."""

    APPROVE = "approve"
    PARTIAL_APPROVE = "partial_approve"
    REJECT = "reject"


@dataclass(frozen=True, eq=True)
class ExtensionRequest:
    """A request to move a task's due date.

    Attributes:
        request_id: Unique identifier.
        requested_by: Assignee who asked.
        reason: Why more time is needed.
        requested_at: When it was raised (UTC).
        new_due_date: The requested due date.
        old_due_date: Due date at request time (None if the task had none).
        status: Current lifecycle state.
        decision: The admin's decision once reviewed.
        approved_due_date: Due date actually granted (approve/partial only).
        reviewed_by: Reviewing admin.
        reviewed_at: Review time.
        review_note: Admin's note.
    """

    request_id: UUID
    requested_by: str
    reason: str
    requested_at: datetime
    new_due_date: datetime
    old_due_date: datetime | None = field(default=None)
    status: ExtensionStatus = field(default=ExtensionStatus.PENDING)
    decision: ExtensionDecision | None = field(default=None)
    approved_due_date: datetime | None = field(default=None)
    reviewed_by: str | None = field(default=None)
    reviewed_at: datetime | None = field(default=None)
    review_note: str | None = field(default=None)

    def __post_init__(self) -> None:
        if self.new_due_date.tzinfo is None:
            raise ValueError("new_due_date must be timezone-aware (UTC)")
        if self.status == ExtensionStatus.PENDING and self.decision is not None:
            raise ValueError("pending extension requests cannot carry a decision")
        if self.status == ExtensionStatus.APPROVED and self.approved_due_date is None:
            raise ValueError("APPROVED status requires approved_due_date")

    @property
    def is_pending(self) -> bool:
        return self.status == ExtensionStatus.PENDING

    def with_review(
        self,
        decision: ExtensionDecision,
        reviewed_by: str,
        note: str,
        now: datetime,
        approved_due_date: datetime | None = None,
    ) -> ExtensionRequest:
        """Close the request with the admin's decision.

        Args:
            decision: Approve, partial approve or reject.
            reviewed_by: Reviewing admin id.
            note: Review note.
            now: Review time.
            approved_due_date: Granted due date (required unless rejecting).

        Raises:
            ValueError: If the request is not pending.
        """
        if not self.is_pending:
            raise ValueError(
                f"Cannot review extension request in status {self.status.value}"
            )
        status = (
            ExtensionStatus.REJECTED
            if decision == ExtensionDecision.REJECT
            else ExtensionStatus.APPROVED
        )
        return replace(
            self,
            status=status,
            decision=decision,
            approved_due_date=approved_due_date if status == ExtensionStatus.APPROVED else None,
            reviewed_by=reviewed_by,
            reviewed_at=now,
            review_note=note,
        )
