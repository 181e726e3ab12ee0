"""Resolution classifier domain service.

Derives a task's display outcome from its status and full activity
timeline. The rules are evaluated in order and the first match wins;
several rules can structurally match the same history, so the order is
part of the contract:

1. Assignment declined, never reopened -> DECLINED_ASSIGNMENT
2. Reopen declined -> branch on the most recent timeline action
3. Reopened and failed -> rework failed / failed without rework
4. Failed, never reopened -> FAILED_EXECUTION
5. Reopened and verified -> verified with / without resubmission
6. Verified, never reopened -> SUCCESSFUL
7. Active statuses -> ACTIVE
8. Reopened, awaiting response -> REOPEN_PENDING
9. Anything else -> UNKNOWN
"""

from __future__ import annotations

from collections.abc import Iterable

from taskflow.domain.models.activity import ActivityAction, ActivityEntry, ActivityLog
from taskflow.domain.models.resolution import (
    Resolution,
    ResolutionCode,
    ResolutionPhase,
    ResolutionSeverity,
)
from taskflow.domain.models.task import ACTIVE_STATUSES, Task, TaskStatus


def _resolution(
    code: ResolutionCode,
    label: str,
    severity: ResolutionSeverity,
    phase: ResolutionPhase,
    is_final: bool,
) -> Resolution:
    return Resolution(
        code=code, label=label, severity=severity, phase=phase, is_final=is_final
    )


DECLINED_ASSIGNMENT = _resolution(
    ResolutionCode.DECLINED_ASSIGNMENT,
    "Assignment Declined",
    ResolutionSeverity.NEUTRAL,
    ResolutionPhase.ASSIGNMENT,
    True,
)
REOPEN_DECLINED_VERIFIED = _resolution(
    ResolutionCode.REOPEN_DECLINED_VERIFIED,
    "Original Work Accepted",
    ResolutionSeverity.POSITIVE,
    ResolutionPhase.REOPEN,
    True,
)
REOPEN_DECLINED_FAILED = _resolution(
    ResolutionCode.REOPEN_DECLINED_FAILED,
    "Rework Declined - Failed",
    ResolutionSeverity.CRITICAL,
    ResolutionPhase.REOPEN,
    True,
)
REOPEN_DECLINED_PENDING = _resolution(
    ResolutionCode.REOPEN_DECLINED_PENDING,
    "Rework Declined - Pending Review",
    ResolutionSeverity.WARNING,
    ResolutionPhase.REOPEN,
    False,
)
REOPEN_FAILED_AFTER_REWORK = _resolution(
    ResolutionCode.REOPEN_FAILED_AFTER_REWORK,
    "Rework Failed",
    ResolutionSeverity.CRITICAL,
    ResolutionPhase.REOPEN,
    True,
)
REOPEN_FAILED_WITHOUT_REWORK = _resolution(
    ResolutionCode.REOPEN_FAILED_WITHOUT_REWORK,
    "Failed Without Rework",
    ResolutionSeverity.CRITICAL,
    ResolutionPhase.REOPEN,
    True,
)
FAILED_EXECUTION = _resolution(
    ResolutionCode.FAILED_EXECUTION,
    "Work Did Not Meet Expectations",
    ResolutionSeverity.CRITICAL,
    ResolutionPhase.FIRST_SUBMISSION,
    True,
)
REOPEN_VERIFIED_WITH_RESUBMISSION = _resolution(
    ResolutionCode.REOPEN_VERIFIED_WITH_RESUBMISSION,
    "Verified After Rework",
    ResolutionSeverity.POSITIVE,
    ResolutionPhase.REOPEN,
    True,
)
REOPEN_VERIFIED_WITHOUT_RESUBMISSION = _resolution(
    ResolutionCode.REOPEN_VERIFIED_WITHOUT_RESUBMISSION,
    "Original Work Accepted",
    ResolutionSeverity.POSITIVE,
    ResolutionPhase.REOPEN,
    True,
)
SUCCESSFUL = _resolution(
    ResolutionCode.SUCCESSFUL,
    "Verified",
    ResolutionSeverity.POSITIVE,
    ResolutionPhase.FIRST_SUBMISSION,
    True,
)
ACTIVE = _resolution(
    ResolutionCode.ACTIVE,
    "In Progress",
    ResolutionSeverity.INFO,
    ResolutionPhase.ACTIVE,
    False,
)
REOPEN_PENDING = _resolution(
    ResolutionCode.REOPEN_PENDING,
    "Reopened - Pending",
    ResolutionSeverity.WARNING,
    ResolutionPhase.REOPEN,
    False,
)
UNKNOWN = _resolution(
    ResolutionCode.UNKNOWN,
    "Unknown",
    ResolutionSeverity.NEUTRAL,
    ResolutionPhase.UNKNOWN,
    False,
)


def _resubmitted_after_last_reopen(actions: list[ActivityAction]) -> bool:
    last_reopen = len(actions) - 1 - actions[::-1].index(ActivityAction.TASK_REOPENED)
    return ActivityAction.TASK_COMPLETED in actions[last_reopen:]


def resolve(
    status: TaskStatus,
    timeline: ActivityLog | Iterable[ActivityEntry],
) -> Resolution:
    """Classify a task's outcome.

    Args:
        status: Current task status.
        timeline: The task's full activity timeline, oldest first.

    Returns:
        The first matching Resolution.
    """
    actions = [entry.action for entry in timeline]
    last_action = actions[-1] if actions else None
    was_reopened = ActivityAction.TASK_REOPENED in actions

    if ActivityAction.TASK_DECLINED in actions and not was_reopened:
        return DECLINED_ASSIGNMENT

    if ActivityAction.TASK_REOPEN_DECLINED in actions:
        if last_action == ActivityAction.TASK_VERIFIED:
            return REOPEN_DECLINED_VERIFIED
        if last_action == ActivityAction.TASK_FAILED:
            return REOPEN_DECLINED_FAILED
        return REOPEN_DECLINED_PENDING

    if was_reopened and status == TaskStatus.FAILED:
        if _resubmitted_after_last_reopen(actions):
            return REOPEN_FAILED_AFTER_REWORK
        return REOPEN_FAILED_WITHOUT_REWORK

    if status == TaskStatus.FAILED:
        return FAILED_EXECUTION

    if was_reopened and status == TaskStatus.VERIFIED:
        if _resubmitted_after_last_reopen(actions):
            return REOPEN_VERIFIED_WITH_RESUBMISSION
        return REOPEN_VERIFIED_WITHOUT_RESUBMISSION

    if status == TaskStatus.VERIFIED:
        return SUCCESSFUL

    if status in ACTIVE_STATUSES:
        return ACTIVE

    if status == TaskStatus.REOPENED:
        return REOPEN_PENDING

    return UNKNOWN


def resolve_task(task: Task) -> Resolution:
    """Classify a task from its own status and timeline."""
    return resolve(task.status, task.activity)
