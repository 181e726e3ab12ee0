"""Static admin directory stub."""

from __future__ import annotations

from collections.abc import Iterable

from taskflow.application.ports.admin_directory import AdminDirectoryProtocol
from taskflow.domain.models.task import Task


class StaticAdminDirectory(AdminDirectoryProtocol):
    """Answers with a fixed admin list plus the task's creator.

    Attributes:
        _admin_ids: Admins scoped to every task.
        _include_creator: Whether the creating admin is always included.
    """

    def __init__(
        self, admin_ids: Iterable[str] = (), include_creator: bool = True
    ) -> None:
        self._admin_ids = list(admin_ids)
        self._include_creator = include_creator

    async def admin_ids_for(self, task: Task) -> list[str]:
        ids = list(self._admin_ids)
        if self._include_creator and task.created_by not in ids:
            ids.insert(0, task.created_by)
        return ids
