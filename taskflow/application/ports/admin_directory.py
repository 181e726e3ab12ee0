"""Admin directory port.

Answers which admins are responsible for a task, so that system-driven
events (an SLA breach, say) reach the right people.
"""

from __future__ import annotations

from typing import Protocol

from taskflow.domain.models.task import Task


class AdminDirectoryProtocol(Protocol):
    """Protocol for resolving the admins scoped to a task."""

    async def admin_ids_for(self, task: Task) -> list[str]:
        """Return the ids of admins who should be told about this task.

        Args:
            task: The task in question.

        Returns:
            Admin identities (may be empty).
        """
        ...
