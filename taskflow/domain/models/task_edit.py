"""Editable task fields and the edit audit trail.

TaskChanges is used both for direct admin edits and for the proposed
changes carried by edit-type modification requests.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum


class TaskPriority(str, Enum):
    """Task priority levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


EDITABLE_FIELDS: tuple[str, ...] = (
    "title",
    "description",
    "priority",
    "due_date",
    "category",
)
"""Task fields that edits and edit requests may change."""


def _display(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


@dataclass(frozen=True, eq=True)
class TaskChanges:
    """A partial set of editable task fields.

    Fields left as None are not part of the change.
    """

    title: str | None = None
    description: str | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None
    category: str | None = None

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in EDITABLE_FIELDS)

    def as_dict(self) -> dict[str, object]:
        """Return only the fields that are set."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    def merged_over(self, base: TaskChanges) -> TaskChanges:
        """Overlay these changes on top of base (set fields win)."""
        merged = base.as_dict()
        merged.update(self.as_dict())
        return TaskChanges(**merged)  # type: ignore[arg-type]

    def diff_against(self, current: TaskChanges) -> tuple[FieldChange, ...]:
        """List the fields whose value differs from current.

        Args:
            current: The task's current editable values.

        Returns:
            One FieldChange per field that would actually change.
        """
        changes: list[FieldChange] = []
        for name in EDITABLE_FIELDS:
            new_value = getattr(self, name)
            old_value = getattr(current, name)
            if new_value is None or new_value == old_value:
                continue
            changes.append(
                FieldChange(
                    field=name,
                    old_value=_display(old_value),
                    new_value=_display(new_value),
                )
            )
        return tuple(changes)


@dataclass(frozen=True, eq=True)
class FieldChange:
    """One changed field in an edit record (display values)."""

    field: str
    old_value: str | None
    new_value: str | None


@dataclass(frozen=True, eq=True)
class EditRecord:
    """Audit record of an applied edit.

    Attributes:
        edited_by: Admin who applied the edit.
        edited_at: When the edit was applied (UTC).
        changes: The fields that changed.
        note: Free-text note (e.g. the originating request reason).
    """

    edited_by: str
    edited_at: datetime
    changes: tuple[FieldChange, ...] = field(default=())
    note: str = field(default="")
