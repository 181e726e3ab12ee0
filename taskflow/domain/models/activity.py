"""Activity log domain models.

The activity log is the append-only audit trail of a task and the sole
source the resolution classifier reads. Entries are immutable values;
appending yields a new log.

Rules:
- Entries are never mutated or removed, only appended
- Timestamps never decrease along the log (a late-arriving earlier
  timestamp is clamped to the previous entry's timestamp)
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from taskflow.domain.models.actor import ActorRole


class ActivityAction(str, Enum):
    """Every action that can appear on a task's activity timeline."""

    # Core lifecycle
    TASK_CREATED = "TASK_CREATED"
    TASK_ASSIGNED = "TASK_ASSIGNED"
    TASK_ACCEPTED = "TASK_ACCEPTED"
    TASK_STARTED = "TASK_STARTED"
    TASK_COMPLETED = "TASK_COMPLETED"
    TASK_VERIFIED = "TASK_VERIFIED"
    TASK_FAILED = "TASK_FAILED"
    TASK_DECLINED = "TASK_DECLINED"
    TASK_REASSIGNED = "TASK_REASSIGNED"
    TASK_WITHDRAWN = "TASK_WITHDRAWN"

    # Reopen handling
    TASK_REOPENED = "TASK_REOPENED"
    TASK_REOPEN_TIMEOUT = "TASK_REOPEN_TIMEOUT"
    TASK_REOPEN_ACCEPTED = "TASK_REOPEN_ACCEPTED"
    TASK_REOPEN_DECLINED = "TASK_REOPEN_DECLINED"
    REOPEN_VIEWED = "REOPEN_VIEWED"

    # Admin-initiated modification requests
    MODIFICATION_REQUESTED = "MODIFICATION_REQUESTED"
    MODIFICATION_APPROVED = "MODIFICATION_APPROVED"
    MODIFICATION_REJECTED = "MODIFICATION_REJECTED"
    MODIFICATION_COUNTER_PROPOSAL = "MODIFICATION_COUNTER_PROPOSAL"
    MODIFICATION_EXPIRED = "MODIFICATION_EXPIRED"
    MODIFICATION_VIEWED = "MODIFICATION_VIEWED"
    MODIFICATION_MESSAGE = "MODIFICATION_MESSAGE"

    # Employee-initiated modification requests
    EMPLOYEE_MODIFICATION_REQUESTED = "EMPLOYEE_MODIFICATION_REQUESTED"
    EMPLOYEE_MODIFICATION_EXPIRED = "EMPLOYEE_MODIFICATION_EXPIRED"
    EMPLOYEE_MODIFICATION_MESSAGE = "EMPLOYEE_MODIFICATION_MESSAGE"

    # Collaboration
    COMMENT_ADDED = "COMMENT_ADDED"
    FILE_UPLOADED = "FILE_UPLOADED"
    MESSAGE_SENT = "MESSAGE_SENT"

    # Deadlines and scope
    EXTENSION_REQUESTED = "EXTENSION_REQUESTED"
    EXTENSION_APPROVED = "EXTENSION_APPROVED"
    EXTENSION_REJECTED = "EXTENSION_REJECTED"
    DEADLINE_EXTENDED = "DEADLINE_EXTENDED"
    TASK_EXTENDED = "TASK_EXTENDED"
    SCOPE_CHANGE_APPROVED = "SCOPE_CHANGE_APPROVED"

    # Admin housekeeping
    TASK_EDITED = "TASK_EDITED"
    TASK_DELETED = "TASK_DELETED"
    TASK_ARCHIVED = "TASK_ARCHIVED"
    TASK_UNARCHIVED = "TASK_UNARCHIVED"


@dataclass(frozen=True, eq=True)
class ActivityEntry:
    """A single immutable timeline entry.

    Attributes:
        action: What happened.
        role: Role of whoever performed it (system for monitors).
        details: Human-readable description.
        timestamp: When it happened (UTC).
        performed_by: Acting user id; None for system entries.
    """

    action: ActivityAction
    role: ActorRole
    details: str
    timestamp: datetime
    performed_by: str | None = field(default=None)

    def __post_init__(self) -> None:
        if self.timestamp.tzinfo is None:
            raise ValueError("timestamp must be timezone-aware (UTC)")


@dataclass(frozen=True, eq=True)
class ActivityLog:
    """Append-only, time-ordered list of activity entries.

    Example:
        >>> log = ActivityLog().append(entry)
        >>> log.last_action()
        <ActivityAction.TASK_CREATED: 'TASK_CREATED'>
    """

    entries: tuple[ActivityEntry, ...] = ()

    def __post_init__(self) -> None:
        for earlier, later in zip(self.entries, self.entries[1:]):
            if later.timestamp < earlier.timestamp:
                raise ValueError("activity entries must be ordered by timestamp")

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[ActivityEntry]:
        return iter(self.entries)

    def append(self, entry: ActivityEntry) -> ActivityLog:
        """Return a new log with the entry appended.

        Args:
            entry: The entry to append.

        Returns:
            New ActivityLog ending with the entry.
        """
        if self.entries and entry.timestamp < self.entries[-1].timestamp:
            entry = replace(entry, timestamp=self.entries[-1].timestamp)
        return ActivityLog(entries=self.entries + (entry,))

    def record(
        self,
        action: ActivityAction,
        role: ActorRole,
        details: str,
        timestamp: datetime,
        performed_by: str | None = None,
    ) -> ActivityLog:
        """Build an entry and append it."""
        return self.append(
            ActivityEntry(
                action=action,
                role=role,
                details=details,
                timestamp=timestamp,
                performed_by=performed_by,
            )
        )

    @property
    def actions(self) -> tuple[ActivityAction, ...]:
        return tuple(entry.action for entry in self.entries)

    def last(self) -> ActivityEntry | None:
        return self.entries[-1] if self.entries else None

    def last_action(self) -> ActivityAction | None:
        return self.entries[-1].action if self.entries else None

    def contains(self, action: ActivityAction) -> bool:
        return any(entry.action == action for entry in self.entries)

    def count(self, action: ActivityAction) -> int:
        return sum(1 for entry in self.entries if entry.action == action)

    def last_index_of(self, action: ActivityAction) -> int:
        """Index of the most recent entry with this action, or -1."""
        for index in range(len(self.entries) - 1, -1, -1):
            if self.entries[index].action == action:
                return index
        return -1

    def occurs_since(self, action: ActivityAction, start_index: int) -> bool:
        """Check whether the action occurs at or after start_index."""
        if start_index < 0:
            return False
        return any(entry.action == action for entry in self.entries[start_index:])
