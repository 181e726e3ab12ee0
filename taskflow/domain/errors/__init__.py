"""Domain errors for the task lifecycle engine.

All exceptions inherit from TaskflowError.
"""

from taskflow.domain.errors.concurrent_modification import ConcurrentModificationError
from taskflow.domain.errors.expiry import ExpiredError
from taskflow.domain.errors.not_found import (
    NotFoundError,
    RequestNotFoundError,
    TaskNotFoundError,
)
from taskflow.domain.errors.permission import ActorNotPermittedError
from taskflow.domain.errors.state_conflict import (
    AlreadyProcessedError,
    StateConflictError,
)
from taskflow.domain.errors.validation import ValidationError

__all__: list[str] = [
    "ActorNotPermittedError",
    "AlreadyProcessedError",
    "ConcurrentModificationError",
    "ExpiredError",
    "NotFoundError",
    "RequestNotFoundError",
    "StateConflictError",
    "TaskNotFoundError",
    "ValidationError",
]
