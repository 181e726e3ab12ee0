"""Concurrent modification error for version-checked saves.

Every task carries an optimistic-concurrency version. A save whose
expected version no longer matches the stored one fails with this error.
"""

from __future__ import annotations

from uuid import UUID

from taskflow.domain.exceptions import TaskflowError


class ConcurrentModificationError(TaskflowError):
    """Raised when a save loses an optimistic-concurrency race.

    This is a recoverable error - the caller should re-read the task,
    re-evaluate its guards and retry or abort.

    Attributes:
        task_id: UUID of the task being saved.
        expected_version: Version the writer loaded.
        actual_version: Version currently stored.
    """

    def __init__(
        self,
        task_id: UUID,
        expected_version: int,
        actual_version: int,
    ) -> None:
        """Initialize concurrent modification error.

        Args:
            task_id: UUID of the task being saved.
            expected_version: Version the writer expected to replace.
            actual_version: Version found in the store.
        """
        self.task_id = task_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Concurrent modification detected for task {task_id}. "
            f"Expected version {expected_version}, found {actual_version}. "
            "Another writer has modified this task."
        )
