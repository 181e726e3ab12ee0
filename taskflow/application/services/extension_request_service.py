"""Due-date extension application service."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from taskflow.application.dtos.commands import (
    ExtendDueDateCommand,
    ExtensionRequestCommand,
    ExtensionReviewCommand,
    parse_command,
)
from taskflow.application.ports.notification_sink import NotificationKind
from taskflow.application.services import notifications
from taskflow.application.services.base import LoggingMixin
from taskflow.application.services.task_mutation import Mutation, TaskMutator
from taskflow.domain.models.actor import Actor
from taskflow.domain.models.extension_request import ExtensionDecision
from taskflow.domain.models.task import Task
from taskflow.domain.services.extension_workflow import ExtensionWorkflow


class ExtensionRequestService(LoggingMixin):
    """Extension requests, reviews and direct due-date extensions."""

    def __init__(self, mutator: TaskMutator, workflow: ExtensionWorkflow) -> None:
        self._mutator = mutator
        self._workflow = workflow
        self._init_logger()

    async def request_extension(
        self,
        task_id: UUID,
        *,
        actor: Actor,
        new_due_date: datetime,
        reason: str,
    ) -> Task:
        """Ask for a later due date.

        Raises:
            StateConflictError: If the task is not accepted or in progress,
                or an extension request is already pending.
            ValidationError: If the date or reason is invalid.
        """
        command = parse_command(
            ExtensionRequestCommand, new_due_date=new_due_date, reason=reason
        )
        request_id = uuid4()

        async def mutate(task: Task, now: datetime) -> Mutation:
            updated = self._workflow.request_extension(
                task,
                actor=actor,
                request_id=request_id,
                new_due_date=command.new_due_date,
                reason=command.reason,
                now=now,
            )
            return Mutation(
                updated,
                (
                    notifications.to_creator(
                        updated,
                        NotificationKind.EXTENSION_REQUESTED,
                        "Extension Requested",
                        request_id=str(request_id),
                        new_due_date=command.new_due_date.isoformat(),
                    ),
                ),
            )

        return await self._mutator.apply(
            task_id,
            "request_extension",
            mutate,
            actor_id=actor.user_id,
            request_id=str(request_id),
        )

    async def review_extension(
        self,
        task_id: UUID,
        request_id: UUID,
        *,
        actor: Actor,
        decision: ExtensionDecision | str,
        note: str,
        approved_due_date: Optional[datetime] = None,
    ) -> Task:
        """Approve, partially approve or reject an extension request.

        Raises:
            StateConflictError: If the task is closed.
            RequestNotFoundError: If the request does not exist.
            AlreadyProcessedError: If the request was already reviewed.
        """
        command = parse_command(
            ExtensionReviewCommand,
            decision=decision,
            note=note,
            approved_due_date=approved_due_date,
        )

        async def mutate(task: Task, now: datetime) -> Mutation:
            updated = self._workflow.review_extension(
                task,
                actor=actor,
                request_id=request_id,
                decision=command.decision,
                note=command.note,
                now=now,
                approved_due_date=command.approved_due_date,
            )
            request = updated.find_extension_request(request_id)
            assert request is not None
            return Mutation(updated, (notifications.extension_reviewed(updated, request),))

        return await self._mutator.apply(
            task_id,
            "review_extension",
            mutate,
            actor_id=actor.user_id,
            request_id=str(request_id),
        )

    async def extend_due_date(
        self,
        task_id: UUID,
        *,
        actor: Actor,
        new_due_date: datetime,
        reason: str,
    ) -> Task:
        command = parse_command(ExtendDueDateCommand, new_due_date=new_due_date, reason=reason)

        async def mutate(task: Task, now: datetime) -> Mutation:
            updated = self._workflow.extend_due_date(
                task,
                actor=actor,
                new_due_date=command.new_due_date,
                reason=command.reason,
                now=now,
            )
            return Mutation(
                updated,
                (
                    notifications.to_assignee(
                        updated,
                        NotificationKind.DEADLINE_EXTENDED,
                        "Deadline Extended",
                        due_date=command.new_due_date.isoformat(),
                    ),
                ),
            )

        return await self._mutator.apply(
            task_id, "extend_due_date", mutate, actor_id=actor.user_id
        )
