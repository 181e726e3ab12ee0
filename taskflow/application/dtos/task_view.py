"""Read model pairing a task with its derived properties.

Derived values are recomputed from (task, now) every time a view is
built; nothing here is stored on the task.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from taskflow.domain.models.resolution import Resolution
from taskflow.domain.models.task import Task
from taskflow.domain.services import task_guards
from taskflow.domain.services.resolution_classifier import resolve_task
from taskflow.domain.services.task_guards import PerformanceMetrics, TaskCategory


@dataclass(frozen=True)
class TaskView:
    """A task as seen at a point in time.

    Attributes:
        task: The stored task.
        as_of: The time the derived values were computed for.
        resolution: Outcome derived from status and activity timeline.
        is_overdue: Due date passed while work is outstanding.
        overdue_days: Whole days past the due date.
        has_pending_modification_request: A live pending request exists.
        can_admin_edit_directly: Direct edit is allowed.
        can_admin_delete_directly: Direct delete is allowed.
        can_admin_verify: Verify is allowed.
        can_admin_fail: Fail is allowed.
        can_admin_reopen: Reopen is allowed.
        can_request_extension: The assignee may ask for more time.
        can_be_archived: Archive is allowed.
        category: Board column.
        metrics: Timing metrics.
    """

    task: Task
    as_of: datetime
    resolution: Resolution
    is_overdue: bool
    overdue_days: int
    has_pending_modification_request: bool
    can_admin_edit_directly: bool
    can_admin_delete_directly: bool
    can_admin_verify: bool
    can_admin_fail: bool
    can_admin_reopen: bool
    can_request_extension: bool
    can_be_archived: bool
    category: TaskCategory
    metrics: PerformanceMetrics

    @classmethod
    def build(cls, task: Task, now: datetime) -> TaskView:
        return cls(
            task=task,
            as_of=now,
            resolution=resolve_task(task),
            is_overdue=task_guards.is_overdue(task, now),
            overdue_days=task_guards.overdue_days(task, now),
            has_pending_modification_request=task_guards.has_pending_modification_request(
                task, now
            ),
            can_admin_edit_directly=task_guards.can_admin_edit_directly(task),
            can_admin_delete_directly=task_guards.can_admin_delete_directly(task),
            can_admin_verify=task_guards.can_admin_verify(task),
            can_admin_fail=task_guards.can_admin_fail(task, now),
            can_admin_reopen=task_guards.can_admin_reopen(task),
            can_request_extension=task_guards.can_request_extension(task),
            can_be_archived=task_guards.can_be_archived(task),
            category=task_guards.task_category(task),
            metrics=task_guards.performance_metrics(task, now),
        )

    def summary(self) -> dict[str, Any]:
        """Flat dictionary of the derived values (task excluded)."""
        return {
            "task_id": str(self.task.task_id),
            "status": self.task.status.value,
            "as_of": self.as_of.isoformat(),
            "resolution": self.resolution.to_dict(),
            "is_overdue": self.is_overdue,
            "overdue_days": self.overdue_days,
            "has_pending_modification_request": self.has_pending_modification_request,
            "can_admin_edit_directly": self.can_admin_edit_directly,
            "can_admin_delete_directly": self.can_admin_delete_directly,
            "can_admin_verify": self.can_admin_verify,
            "can_admin_fail": self.can_admin_fail,
            "can_admin_reopen": self.can_admin_reopen,
            "can_request_extension": self.can_request_extension,
            "can_be_archived": self.can_be_archived,
            "category": {
                "type": self.category.type,
                "label": self.category.label,
                "priority": self.category.priority,
            },
            "metrics": {
                "acceptance_hours": self.metrics.acceptance_hours,
                "completion_hours": self.metrics.completion_hours,
                "was_on_time": self.metrics.was_on_time,
                "sla_breach": self.metrics.sla_breach,
            },
        }
