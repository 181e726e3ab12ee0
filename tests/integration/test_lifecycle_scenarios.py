"""Integration tests: end-to-end task journeys through the engine.

Each test drives the public services, the monitors and the fake clock
together, and checks the stored task, its timeline, its resolution and
who was notified.
"""

from datetime import timedelta
from uuid import UUID

import pytest

from taskflow.application.ports.notification_sink import NotificationKind
from taskflow.bootstrap.engine import TaskflowEngine
from taskflow.domain.errors import StateConflictError, ValidationError
from taskflow.domain.models.activity import ActivityAction
from taskflow.domain.models.resolution import ResolutionCode
from taskflow.domain.models.task import ReopenSlaStatus, TaskStatus
from taskflow.infrastructure.stubs import InMemoryTaskRepository, RecordingNotificationSink
from tests.helpers import FakeTimeAuthority
from tests.helpers.factories import ADMIN, EMPLOYEE, OTHER_EMPLOYEE, T0

pytestmark = pytest.mark.integration


async def _create(engine: TaskflowEngine, **kwargs) -> UUID:
    task = await engine.lifecycle.create_task(
        actor=ADMIN,
        title="Prepare quarterly report",
        assigned_to=EMPLOYEE.user_id,
        **kwargs,
    )
    return task.task_id


async def _verified(engine: TaskflowEngine) -> UUID:
    task_id = await _create(engine)
    await engine.lifecycle.accept(task_id, actor=EMPLOYEE)
    await engine.lifecycle.start(task_id, actor=EMPLOYEE)
    await engine.lifecycle.complete(
        task_id, actor=EMPLOYEE, link="https://example.com/report", note="First draft"
    )
    await engine.lifecycle.verify(task_id, actor=ADMIN, note="Looks good")
    return task_id


class TestDocumentedScenarios:
    """The reference scenarios for the lifecycle engine."""

    @pytest.mark.asyncio
    async def test_unanswered_reopen_times_out_on_monitor_run(
        self,
        engine: TaskflowEngine,
        fake_time: FakeTimeAuthority,
    ) -> None:
        task_id = await _verified(engine)
        await engine.lifecycle.reopen(task_id, actor=ADMIN, reason="Figures for March are wrong")
        # Due back three days after the reopen; run the monitor an hour later
        fake_time.advance(timedelta(days=3, hours=1))

        assert await engine.reopen_monitor.run_once() == 1

        task = await engine.lifecycle.get_task(task_id)
        assert task.status == TaskStatus.VERIFIED
        assert task.reopen_sla_status == ReopenSlaStatus.TIMED_OUT
        assert task.activity.count(ActivityAction.TASK_REOPEN_TIMEOUT) == 1

    @pytest.mark.asyncio
    async def test_empty_submission_rejected(
        self,
        engine: TaskflowEngine,
        repository: InMemoryTaskRepository,
    ) -> None:
        task_id = await _create(engine)
        accepted = await engine.lifecycle.accept(task_id, actor=EMPLOYEE)

        with pytest.raises(ValidationError):
            await engine.lifecycle.complete(task_id, actor=EMPLOYEE, link="", files=(), note="")

        assert await repository.get_by_id(task_id) == accepted

    @pytest.mark.asyncio
    async def test_edit_request_on_assigned_task_rejected(
        self, engine: TaskflowEngine
    ) -> None:
        task_id = await _create(engine)

        with pytest.raises(StateConflictError):
            await engine.modifications.request_modification(
                task_id,
                actor=ADMIN,
                request_type="edit",
                reason="Client asked for the full year",
                title="Prepare annual report",
            )

        view = await engine.lifecycle.get_view(task_id)
        assert view.can_admin_edit_directly
        assert view.task.modification_requests == ()

    @pytest.mark.asyncio
    async def test_declined_reopen_accepted_by_admin(self, engine: TaskflowEngine) -> None:
        task_id = await _verified(engine)
        await engine.lifecycle.reopen(task_id, actor=ADMIN, reason="Figures for March are wrong")
        await engine.lifecycle.decline_reopen(
            task_id, actor=EMPLOYEE, reason="The figures match the ledger"
        )
        await engine.lifecycle.accept_reopen_decline(
            task_id, actor=ADMIN, note="Checked the ledger, agreed"
        )

        view = await engine.lifecycle.get_view(task_id)

        assert view.resolution.code == ResolutionCode.REOPEN_DECLINED_VERIFIED
        assert view.resolution.is_final

    @pytest.mark.asyncio
    async def test_back_to_back_extension_requests(self, engine: TaskflowEngine) -> None:
        task_id = await _create(engine, due_date=T0 + timedelta(days=2))
        await engine.lifecycle.accept(task_id, actor=EMPLOYEE)
        await engine.extensions.request_extension(
            task_id,
            actor=EMPLOYEE,
            new_due_date=T0 + timedelta(days=5),
            reason="Waiting on finance data",
        )

        with pytest.raises(StateConflictError, match="pending request exists"):
            await engine.extensions.request_extension(
                task_id,
                actor=EMPLOYEE,
                new_due_date=T0 + timedelta(days=6),
                reason="Waiting on finance data",
            )

        task = await engine.lifecycle.get_task(task_id)
        assert len(task.extension_requests) == 1


class TestJourneys:
    """Longer journeys mixing several workflows."""

    @pytest.mark.asyncio
    async def test_rework_after_reopen(
        self,
        engine: TaskflowEngine,
        fake_time: FakeTimeAuthority,
        sink: RecordingNotificationSink,
    ) -> None:
        task_id = await _verified(engine)
        fake_time.advance(timedelta(hours=2))
        await engine.lifecycle.reopen(task_id, actor=ADMIN, reason="Figures for March are wrong")
        fake_time.advance(timedelta(hours=1))
        await engine.lifecycle.mark_reopen_viewed(task_id, actor=EMPLOYEE)
        await engine.lifecycle.accept_reopen(task_id, actor=EMPLOYEE)
        fake_time.advance(timedelta(hours=5))
        await engine.lifecycle.complete(task_id, actor=EMPLOYEE, link="https://example.com/v2")

        task = await engine.lifecycle.verify(task_id, actor=ADMIN, note="March fixed")

        assert task.work_submission is not None
        assert task.work_submission.version == 2
        view = await engine.lifecycle.get_view(task_id)
        assert view.resolution.code == ResolutionCode.REOPEN_VERIFIED_WITH_RESUBMISSION
        # Nothing left for the monitor to do
        fake_time.advance(timedelta(days=10))
        assert await engine.reopen_monitor.run_once() == 0
        assert sink.of_kind(NotificationKind.REOPEN_SLA_BREACH) == []
        assert [n.kind for n in sink.for_user("emp-1")] == [
            NotificationKind.TASK_ASSIGNED,
            NotificationKind.TASK_VERIFIED,
            NotificationKind.TASK_REOPENED,
            NotificationKind.TASK_VERIFIED,
        ]

    @pytest.mark.asyncio
    async def test_withdraw_reassign_and_finish(self, engine: TaskflowEngine) -> None:
        task_id = await _create(engine)
        await engine.lifecycle.accept(task_id, actor=EMPLOYEE)
        await engine.lifecycle.withdraw(
            task_id, actor=EMPLOYEE, reason="Moved to another team", confirmed=True
        )
        await engine.lifecycle.reassign(task_id, actor=ADMIN, new_assignee=OTHER_EMPLOYEE.user_id)

        await engine.lifecycle.accept(task_id, actor=OTHER_EMPLOYEE)
        await engine.lifecycle.complete(task_id, actor=OTHER_EMPLOYEE, note="All figures in")
        task = await engine.lifecycle.verify(task_id, actor=ADMIN, note="Looks good")

        assert task.status == TaskStatus.VERIFIED
        assert task.assigned_to == "emp-2"
        assert task.activity.actions[:4] == (
            ActivityAction.TASK_CREATED,
            ActivityAction.TASK_ACCEPTED,
            ActivityAction.TASK_WITHDRAWN,
            ActivityAction.TASK_REASSIGNED,
        )
        view = await engine.lifecycle.get_view(task_id)
        assert view.resolution.code == ResolutionCode.SUCCESSFUL

    @pytest.mark.asyncio
    async def test_modification_sweep_and_follow_up(
        self,
        engine: TaskflowEngine,
        fake_time: FakeTimeAuthority,
    ) -> None:
        task_id = await _create(engine, due_date=T0 + timedelta(days=7))
        await engine.lifecycle.accept(task_id, actor=EMPLOYEE)
        await engine.modifications.request_modification(
            task_id,
            actor=ADMIN,
            request_type="delete",
            reason="Client cancelled the project",
            deletion_impact="Draft work is discarded",
        )
        fake_time.advance(timedelta(hours=25))

        assert await engine.expiry_monitor.run_once() == 1

        task = await engine.lifecycle.get_task(task_id)
        assert task.status == TaskStatus.ACCEPTED
        assert not (await engine.lifecycle.get_view(task_id)).has_pending_modification_request

        # A fresh request can go out once the first one expired
        task = await engine.modifications.request_modification(
            task_id,
            actor=ADMIN,
            request_type="delete",
            reason="Client confirmed the cancellation",
        )
        request_id = task.modification_requests[-1].request_id
        await engine.modifications.respond(
            task_id, request_id, actor=EMPLOYEE, decision="approved", note="Understood"
        )
        task = await engine.modifications.execute(task_id, request_id, actor=ADMIN)

        assert task.status == TaskStatus.DELETED
        assert task.closed_at == fake_time.now()
        assert (await engine.lifecycle.get_view(task_id)).resolution.code == (
            ResolutionCode.UNKNOWN
        )

    @pytest.mark.asyncio
    async def test_overdue_task_failed_by_admin(
        self,
        engine: TaskflowEngine,
        fake_time: FakeTimeAuthority,
    ) -> None:
        task_id = await _create(engine, due_date=T0 + timedelta(days=1))
        await engine.lifecycle.accept(task_id, actor=EMPLOYEE)
        await engine.lifecycle.start(task_id, actor=EMPLOYEE)
        fake_time.advance(timedelta(days=2))

        view = await engine.lifecycle.get_view(task_id)
        assert view.is_overdue
        assert view.overdue_days == 1

        await engine.lifecycle.fail(
            task_id, actor=ADMIN, reason="No delivery", failure_type="overdue_timeout"
        )
        view = await engine.lifecycle.get_view(task_id)
        assert view.resolution.code == ResolutionCode.FAILED_EXECUTION
        assert not view.is_overdue
