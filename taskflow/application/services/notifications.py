"""Notification builders.

One function per event that tells someone about a task. Recipients are
the assignee, the task creator, the requester of a modification request
or the admins scoped to the task.
"""

from __future__ import annotations

from typing import Any, Iterable

from taskflow.application.ports.notification_sink import Notification, NotificationKind
from taskflow.domain.models.extension_request import ExtensionRequest
from taskflow.domain.models.modification_request import ModificationRequest, RequestOrigin
from taskflow.domain.models.task import Task


def _payload(task: Task, **extra: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {"task_id": str(task.task_id), "status": task.status.value}
    payload.update({key: value for key, value in extra.items() if value is not None})
    return payload


def task_assigned(task: Task) -> Notification:
    return Notification(
        user_id=task.assigned_to,
        kind=NotificationKind.TASK_ASSIGNED,
        title="New Task Assigned",
        payload=_payload(task, title=task.title),
    )


def to_creator(task: Task, kind: NotificationKind, title: str, **extra: Any) -> Notification:
    """Tell the admin who created the task."""
    return Notification(
        user_id=task.created_by,
        kind=kind,
        title=title,
        payload=_payload(task, **extra),
    )


def to_assignee(task: Task, kind: NotificationKind, title: str, **extra: Any) -> Notification:
    return Notification(
        user_id=task.assigned_to,
        kind=kind,
        title=title,
        payload=_payload(task, **extra),
    )


def reopen_answered(task: Task, kind: NotificationKind, title: str) -> Notification:
    """Tell the admin who reopened the task (the creator if unknown)."""
    return Notification(
        user_id=task.reopened_by or task.created_by,
        kind=kind,
        title=title,
        payload=_payload(task),
    )


def reopen_sla_breach(task: Task, admin_ids: Iterable[str]) -> tuple[Notification, ...]:
    return tuple(
        Notification(
            user_id=admin_id,
            kind=NotificationKind.REOPEN_SLA_BREACH,
            title="Reopen SLA Breach",
            payload=_payload(
                task,
                assigned_to=task.assigned_to,
                breached_at=(
                    task.reopen_sla_breached_at.isoformat()
                    if task.reopen_sla_breached_at
                    else None
                ),
            ),
        )
        for admin_id in dict.fromkeys(admin_ids)
    )


def to_requester(
    task: Task,
    request: ModificationRequest,
    kind: NotificationKind,
    title: str,
    **extra: Any,
) -> Notification:
    return Notification(
        user_id=request.requested_by,
        kind=kind,
        title=title,
        payload=_payload(
            task,
            request_id=str(request.request_id),
            request_type=request.request_type.value,
            **extra,
        ),
    )


def modification_requested(task: Task, request: ModificationRequest) -> Notification:
    """Tell the counterpart: the assignee for admin requests, else the creator."""
    recipient = (
        task.assigned_to if request.origin == RequestOrigin.ADMIN else task.created_by
    )
    return Notification(
        user_id=recipient,
        kind=NotificationKind.MODIFICATION_REQUESTED,
        title="Modification Requested",
        payload=_payload(
            task,
            request_id=str(request.request_id),
            request_type=request.request_type.value,
            origin=request.origin.value,
        ),
    )


def request_expired(task: Task, request: ModificationRequest) -> Notification:
    return to_requester(
        task, request, NotificationKind.MODIFICATION_EXPIRED, "Modification Request Expired"
    )


def extension_reviewed(task: Task, request: ExtensionRequest) -> Notification:
    return Notification(
        user_id=request.requested_by,
        kind=NotificationKind.EXTENSION_REVIEWED,
        title="Extension Request Reviewed",
        payload=_payload(
            task,
            request_id=str(request.request_id),
            decision=request.decision.value if request.decision else None,
            due_date=task.due_date.isoformat() if task.due_date else None,
        ),
    )


def discussion_message(
    task: Task, request: ModificationRequest, recipient: str
) -> Notification:
    return Notification(
        user_id=recipient,
        kind=NotificationKind.MODIFICATION_MESSAGE,
        title="New Message on Modification Request",
        payload=_payload(task, request_id=str(request.request_id)),
    )
