"""Domain models for the task lifecycle engine."""

from taskflow.domain.models.activity import ActivityAction, ActivityEntry, ActivityLog
from taskflow.domain.models.actor import SYSTEM_ACTOR, Actor, ActorRole
from taskflow.domain.models.extension_request import (
    ExtensionDecision,
    ExtensionRequest,
    ExtensionStatus,
)
from taskflow.domain.models.modification_request import (
    CounterProposal,
    DiscussionMessage,
    ModificationDecision,
    ModificationRequest,
    ModificationRequestStatus,
    ModificationRequestType,
    RequestOrigin,
    RequestResponse,
    RequestUrgency,
)
from taskflow.domain.models.resolution import (
    Resolution,
    ResolutionCode,
    ResolutionPhase,
    ResolutionSeverity,
)
from taskflow.domain.models.submission import (
    SubmissionStatus,
    SubmittedFile,
    WorkSubmission,
)
from taskflow.domain.models.task import (
    ACTIVE_STATUSES,
    CLOSED_STATUSES,
    DeclineType,
    FailureType,
    ReopenSlaStatus,
    Task,
    TaskStatus,
)
from taskflow.domain.models.task_edit import (
    EditRecord,
    FieldChange,
    TaskChanges,
    TaskPriority,
)

__all__ = [
    "ACTIVE_STATUSES",
    "CLOSED_STATUSES",
    "SYSTEM_ACTOR",
    "ActivityAction",
    "ActivityEntry",
    "ActivityLog",
    "Actor",
    "ActorRole",
    "CounterProposal",
    "DeclineType",
    "DiscussionMessage",
    "EditRecord",
    "ExtensionDecision",
    "ExtensionRequest",
    "ExtensionStatus",
    "FailureType",
    "FieldChange",
    "ModificationDecision",
    "ModificationRequest",
    "ModificationRequestStatus",
    "ModificationRequestType",
    "ReopenSlaStatus",
    "RequestOrigin",
    "RequestResponse",
    "RequestUrgency",
    "Resolution",
    "ResolutionCode",
    "ResolutionPhase",
    "ResolutionSeverity",
    "SubmissionStatus",
    "SubmittedFile",
    "Task",
    "TaskChanges",
    "TaskPriority",
    "TaskStatus",
    "WorkSubmission",
]
