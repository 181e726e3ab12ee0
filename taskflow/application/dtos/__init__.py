"""Command payloads and read models for the lifecycle services."""

from taskflow.application.dtos.commands import (
    MIN_NOTE_LENGTH,
    MIN_REQUEST_REASON_LENGTH,
    AdminModificationCommand,
    ApproveEmployeeRequestCommand,
    CommandModel,
    CreateTaskCommand,
    DirectEditCommand,
    DiscussionMessageCommand,
    EmployeeModificationCommand,
    ExecuteModificationCommand,
    ExtendDueDateCommand,
    ExtensionRequestCommand,
    ExtensionReviewCommand,
    FailCommand,
    NoteCommand,
    ReasonCommand,
    ReassignCommand,
    RejectEmployeeRequestCommand,
    RespondModificationCommand,
    SubmitWorkCommand,
    SubmittedFilePayload,
    TaskChangesPayload,
    WithdrawCommand,
    parse_command,
)
from taskflow.application.dtos.task_view import TaskView

__all__ = [
    "MIN_NOTE_LENGTH",
    "MIN_REQUEST_REASON_LENGTH",
    "AdminModificationCommand",
    "ApproveEmployeeRequestCommand",
    "CommandModel",
    "CreateTaskCommand",
    "DirectEditCommand",
    "DiscussionMessageCommand",
    "EmployeeModificationCommand",
    "ExecuteModificationCommand",
    "ExtendDueDateCommand",
    "ExtensionRequestCommand",
    "ExtensionReviewCommand",
    "FailCommand",
    "NoteCommand",
    "ReasonCommand",
    "ReassignCommand",
    "RejectEmployeeRequestCommand",
    "RespondModificationCommand",
    "SubmitWorkCommand",
    "SubmittedFilePayload",
    "TaskChangesPayload",
    "TaskView",
    "WithdrawCommand",
    "parse_command",
]
