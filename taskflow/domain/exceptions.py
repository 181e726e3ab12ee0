"""Base exception classes for the taskflow domain layer."""


class TaskflowError(Exception):
    """Base exception for all domain errors.

    All domain-specific exceptions MUST inherit from this class so that
    callers (route handlers, workers) can map the whole taxonomy to
    transport-level codes in one place.
    """

    def __init__(self, message: str = "") -> None:
        """Initialize the exception with an optional message.

        Args:
            message: Human-readable error description.
        """
        super().__init__(message)
