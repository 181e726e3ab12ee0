"""Command payload models for the lifecycle services.

Every public service operation validates its caller-supplied payload
through one of these pydantic models before touching the task. Pydantic
validation failures are mapped to the domain ValidationError, so callers
only ever see the domain error taxonomy.

Text rules:
- Reasons and notes: at least 5 characters after trimming
- Withdrawal reasons and modification request reasons: at least 10
"""

from __future__ import annotations

from typing import Any, Optional, TypeVar

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from taskflow.domain.errors import ValidationError
from taskflow.domain.models.extension_request import ExtensionDecision
from taskflow.domain.models.modification_request import (
    ModificationDecision,
    ModificationRequestType,
    RequestUrgency,
)
from taskflow.domain.models.submission import SubmittedFile
from taskflow.domain.models.task import FailureType
from taskflow.domain.models.task_edit import TaskChanges, TaskPriority

MIN_NOTE_LENGTH: int = 5
"""Minimum length of reasons and review notes."""

MIN_REQUEST_REASON_LENGTH: int = 10
"""Minimum length of withdrawal and modification request reasons."""

HOURS_PER_DAY: int = 24

CommandT = TypeVar("CommandT", bound="CommandModel")


class CommandModel(BaseModel):
    """Base for command payloads: immutable, trimmed, no unknown fields."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True, extra="forbid")


def parse_command(model: type[CommandT], **payload: Any) -> CommandT:
    """Validate a payload into a command model.

    Args:
        model: The command model class.
        **payload: Raw field values.

    Returns:
        The validated command.

    Raises:
        ValidationError: On the first failing field.
    """
    try:
        return model(**payload)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        raise ValidationError(first.get("msg", "invalid value"), field=location or None) from exc


# =============================================================================
# Shared payload pieces
# =============================================================================


class TaskChangesPayload(CommandModel):
    """Optional editable fields, converted to TaskChanges."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, min_length=1)
    priority: Optional[TaskPriority] = None
    due_date: Optional[AwareDatetime] = None
    category: Optional[str] = Field(default=None, min_length=1)

    def to_changes(self) -> TaskChanges:
        return TaskChanges(
            title=self.title,
            description=self.description,
            priority=self.priority,
            due_date=self.due_date,
            category=self.category,
        )


class SubmittedFilePayload(CommandModel):
    name: str = Field(min_length=1)
    url: str = Field(min_length=1)
    size: int = Field(default=0, ge=0)
    mime_type: Optional[str] = None

    def to_file(self) -> SubmittedFile:
        return SubmittedFile(
            name=self.name, url=self.url, size=self.size, mime_type=self.mime_type
        )


# =============================================================================
# Task lifecycle
# =============================================================================


class CreateTaskCommand(CommandModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = ""
    assigned_to: str = Field(min_length=1)
    priority: TaskPriority = TaskPriority.MEDIUM
    category: Optional[str] = None
    due_date: Optional[AwareDatetime] = None


class ReasonCommand(CommandModel):
    """Payload carrying a single reason of at least 5 characters."""

    reason: str = Field(min_length=MIN_NOTE_LENGTH)


class NoteCommand(CommandModel):
    """Payload carrying a single note of at least 5 characters."""

    note: str = Field(min_length=MIN_NOTE_LENGTH)


class WithdrawCommand(CommandModel):
    reason: str = Field(min_length=MIN_REQUEST_REASON_LENGTH)
    confirmed: bool = False


class SubmitWorkCommand(CommandModel):
    """Work submission: at least one of link, files or note."""

    link: Optional[str] = None
    files: tuple[SubmittedFilePayload, ...] = ()
    note: Optional[str] = None

    @model_validator(mode="after")
    def _require_content(self) -> SubmitWorkCommand:
        if not (self.link or self.files or self.note):
            raise ValueError("work submission requires a link, files or a note")
        return self

    def to_files(self) -> tuple[SubmittedFile, ...]:
        return tuple(payload.to_file() for payload in self.files)


class FailCommand(CommandModel):
    reason: str = Field(min_length=MIN_NOTE_LENGTH)
    failure_type: FailureType


class ReassignCommand(CommandModel):
    new_assignee: str = Field(min_length=1)
    priority: Optional[TaskPriority] = None


class DirectEditCommand(TaskChangesPayload):
    note: str = ""


# =============================================================================
# Modification requests
# =============================================================================


class AdminModificationCommand(TaskChangesPayload):
    """Admin edit/delete request.

    The response window is sla_hours, else sla_days, else the default.
    """

    request_type: ModificationRequestType
    reason: str = Field(min_length=MIN_REQUEST_REASON_LENGTH)
    deletion_impact: Optional[str] = None
    sla_hours: Optional[float] = Field(default=None, gt=0)
    sla_days: Optional[float] = Field(default=None, gt=0)
    urgency: RequestUrgency = RequestUrgency.NORMAL

    @property
    def sla_window_hours(self) -> float | None:
        if self.sla_hours:
            return self.sla_hours
        if self.sla_days:
            return self.sla_days * HOURS_PER_DAY
        return None


class EmployeeModificationCommand(CommandModel):
    request_type: ModificationRequestType
    reason: str = Field(min_length=MIN_REQUEST_REASON_LENGTH)
    urgency: RequestUrgency = RequestUrgency.NORMAL
    proposed_changes: Optional[TaskChangesPayload] = None
    requested_due_date: Optional[AwareDatetime] = None
    suggested_assignee: Optional[str] = None
    scope_changes: Optional[str] = None
    deletion_impact: Optional[str] = None


class RespondModificationCommand(CommandModel):
    decision: ModificationDecision
    note: str = Field(min_length=MIN_NOTE_LENGTH)
    counter_changes: Optional[TaskChangesPayload] = None


class ApproveEmployeeRequestCommand(CommandModel):
    note: Optional[str] = None


class RejectEmployeeRequestCommand(CommandModel):
    reason: str = Field(min_length=1)


class ExecuteModificationCommand(CommandModel):
    note: Optional[str] = None
    overrides: Optional[TaskChangesPayload] = None


class DiscussionMessageCommand(CommandModel):
    text: str = Field(min_length=1, max_length=2000)


# =============================================================================
# Extensions
# =============================================================================


class ExtensionRequestCommand(CommandModel):
    new_due_date: AwareDatetime
    reason: str = Field(min_length=MIN_NOTE_LENGTH)


class ExtensionReviewCommand(CommandModel):
    decision: ExtensionDecision
    note: str = Field(min_length=MIN_NOTE_LENGTH)
    approved_due_date: Optional[AwareDatetime] = None

    @model_validator(mode="after")
    def _require_partial_date(self) -> ExtensionReviewCommand:
        if (
            self.decision == ExtensionDecision.PARTIAL_APPROVE
            and self.approved_due_date is None
        ):
            raise ValueError("partial approval needs an approved due date")
        return self


class ExtendDueDateCommand(CommandModel):
    new_due_date: AwareDatetime
    reason: str = Field(min_length=MIN_NOTE_LENGTH)
