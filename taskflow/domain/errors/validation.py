"""Input validation errors.

Raised when a command payload is malformed: a reason that is too short,
a missing work submission, an unknown failure type, a due date in the
past. Validation always runs before any mutation, so a ValidationError
never leaves a partially-changed task behind.
"""

from __future__ import annotations

from taskflow.domain.exceptions import TaskflowError


class ValidationError(TaskflowError):
    """Raised when an operation's input fails validation.

    Attributes:
        field: Name of the offending payload field (None for whole-payload errors).
        reason: Human-readable description of the problem.
    """

    def __init__(self, reason: str, field: str | None = None) -> None:
        """Initialize validation error.

        Args:
            reason: Description of what is wrong with the input.
            field: The payload field that failed, if a single one did.
        """
        self.field = field
        self.reason = reason
        prefix = f"Invalid {field}: " if field else "Invalid input: "
        super().__init__(f"{prefix}{reason}")
