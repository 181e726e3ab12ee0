"""Unit tests for TaskLifecycleService.

Runs against the in-memory repository, the recording sink and the fake
clock wired by the engine fixture.
"""

from datetime import timedelta
from uuid import UUID, uuid4

import pytest

from taskflow.application.ports.notification_sink import NotificationKind
from taskflow.bootstrap.engine import TaskflowEngine
from taskflow.domain.errors import (
    ActorNotPermittedError,
    ExpiredError,
    StateConflictError,
    TaskNotFoundError,
    ValidationError,
)
from taskflow.domain.models.activity import ActivityAction
from taskflow.domain.models.actor import ActorRole
from taskflow.domain.models.resolution import ResolutionCode
from taskflow.domain.models.submission import SubmissionStatus, SubmittedFile
from taskflow.domain.models.task import FailureType, ReopenSlaStatus, TaskStatus
from taskflow.domain.models.task_edit import TaskPriority
from taskflow.infrastructure.stubs import InMemoryTaskRepository, RecordingNotificationSink
from tests.helpers import FakeTimeAuthority
from tests.helpers.factories import ADMIN, EMPLOYEE, OTHER_ADMIN, OTHER_EMPLOYEE, T0


async def _create(engine: TaskflowEngine, **kwargs) -> UUID:
    task = await engine.lifecycle.create_task(
        actor=ADMIN,
        title="Prepare quarterly report",
        assigned_to=EMPLOYEE.user_id,
        **kwargs,
    )
    return task.task_id


async def _in_progress(engine: TaskflowEngine, **kwargs) -> UUID:
    task_id = await _create(engine, **kwargs)
    await engine.lifecycle.accept(task_id, actor=EMPLOYEE)
    await engine.lifecycle.start(task_id, actor=EMPLOYEE)
    return task_id


async def _completed(engine: TaskflowEngine) -> UUID:
    task_id = await _in_progress(engine)
    await engine.lifecycle.complete(
        task_id, actor=EMPLOYEE, link="https://example.com/report", note="First draft"
    )
    return task_id


async def _reopened(engine: TaskflowEngine) -> UUID:
    task_id = await _completed(engine)
    await engine.lifecycle.verify(task_id, actor=ADMIN, note="Looks good")
    await engine.lifecycle.reopen(task_id, actor=ADMIN, reason="Figures for March are wrong")
    return task_id


class TestCreateTask:
    @pytest.mark.asyncio
    async def test_create_assigns_and_notifies(
        self, engine: TaskflowEngine, sink: RecordingNotificationSink
    ) -> None:
        task = await engine.lifecycle.create_task(
            actor=ADMIN,
            title="Prepare quarterly report",
            assigned_to=EMPLOYEE.user_id,
            priority=TaskPriority.HIGH,
            due_date=T0 + timedelta(days=5),
        )

        assert task.status == TaskStatus.ASSIGNED
        assert task.version == 1
        assert task.created_by == "admin-1"
        assert task.activity.last_action() == ActivityAction.TASK_CREATED

        [notice] = sink.notifications
        assert notice.kind == NotificationKind.TASK_ASSIGNED
        assert notice.user_id == "emp-1"
        assert notice.title == "New Task Assigned"

    @pytest.mark.asyncio
    async def test_employee_cannot_create(self, engine: TaskflowEngine) -> None:
        with pytest.raises(ActorNotPermittedError):
            await engine.lifecycle.create_task(
                actor=EMPLOYEE, title="Self-assigned", assigned_to=EMPLOYEE.user_id
            )

    @pytest.mark.asyncio
    async def test_past_due_date_rejected(self, engine: TaskflowEngine) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await _create(engine, due_date=T0 - timedelta(days=1))
        assert exc_info.value.field == "due_date"

    @pytest.mark.asyncio
    async def test_blank_title_rejected(self, engine: TaskflowEngine) -> None:
        with pytest.raises(ValidationError):
            await engine.lifecycle.create_task(
                actor=ADMIN, title="   ", assigned_to=EMPLOYEE.user_id
            )


class TestEmployeeFlow:
    """Accept, start, decline, withdraw and complete."""

    @pytest.mark.asyncio
    async def test_accept_and_start(self, engine: TaskflowEngine) -> None:
        task_id = await _in_progress(engine)

        task = await engine.lifecycle.get_task(task_id)
        assert task.status == TaskStatus.IN_PROGRESS
        assert task.accepted_at == T0
        assert task.version == 3

    @pytest.mark.asyncio
    async def test_only_assignee_may_accept(self, engine: TaskflowEngine) -> None:
        task_id = await _create(engine)
        with pytest.raises(ActorNotPermittedError):
            await engine.lifecycle.accept(task_id, actor=OTHER_EMPLOYEE)

    @pytest.mark.asyncio
    async def test_accept_twice(self, engine: TaskflowEngine) -> None:
        task_id = await _create(engine)
        await engine.lifecycle.accept(task_id, actor=EMPLOYEE)
        with pytest.raises(StateConflictError):
            await engine.lifecycle.accept(task_id, actor=EMPLOYEE)

    @pytest.mark.asyncio
    async def test_unknown_task(self, engine: TaskflowEngine) -> None:
        with pytest.raises(TaskNotFoundError):
            await engine.lifecycle.accept(uuid4(), actor=EMPLOYEE)

    @pytest.mark.asyncio
    async def test_decline_notifies_creator(
        self, engine: TaskflowEngine, sink: RecordingNotificationSink
    ) -> None:
        task_id = await _create(engine)
        sink.clear()

        task = await engine.lifecycle.decline(
            task_id, actor=EMPLOYEE, reason="On leave next week"
        )

        assert task.status == TaskStatus.DECLINED_BY_EMPLOYEE
        [notice] = sink.notifications
        assert notice.kind == NotificationKind.TASK_DECLINED
        assert notice.user_id == "admin-1"
        assert notice.payload["reason"] == "On leave next week"

    @pytest.mark.asyncio
    async def test_decline_reason_too_short(self, engine: TaskflowEngine) -> None:
        task_id = await _create(engine)
        with pytest.raises(ValidationError):
            await engine.lifecycle.decline(task_id, actor=EMPLOYEE, reason="no")

    @pytest.mark.asyncio
    async def test_withdraw_requires_confirmation(self, engine: TaskflowEngine) -> None:
        task_id = await _in_progress(engine)
        with pytest.raises(ValidationError, match="confirmed"):
            await engine.lifecycle.withdraw(
                task_id, actor=EMPLOYEE, reason="Moved to another team", confirmed=False
            )

    @pytest.mark.asyncio
    async def test_withdraw_closes_task(
        self, engine: TaskflowEngine, sink: RecordingNotificationSink
    ) -> None:
        task_id = await _in_progress(engine)

        task = await engine.lifecycle.withdraw(
            task_id, actor=EMPLOYEE, reason="Moved to another team", confirmed=True
        )

        assert task.status == TaskStatus.WITHDRAWN
        assert task.closed_at == T0
        assert sink.of_kind(NotificationKind.TASK_WITHDRAWN)[0].user_id == "admin-1"

    @pytest.mark.asyncio
    async def test_complete_with_files(
        self, engine: TaskflowEngine, sink: RecordingNotificationSink
    ) -> None:
        task_id = await _in_progress(engine)
        upload = SubmittedFile(name="report.pdf", url="https://files/report.pdf", size=2048)

        task = await engine.lifecycle.complete(task_id, actor=EMPLOYEE, files=(upload,))

        assert task.status == TaskStatus.COMPLETED
        assert task.work_submission is not None
        assert task.work_submission.files == (upload,)
        assert task.work_submission.submission_status == SubmissionStatus.SUBMITTED
        [notice] = sink.of_kind(NotificationKind.TASK_SUBMITTED)
        assert notice.payload["submission_version"] == 1

    @pytest.mark.asyncio
    async def test_complete_without_content(self, engine: TaskflowEngine) -> None:
        task_id = await _in_progress(engine)
        with pytest.raises(ValidationError):
            await engine.lifecycle.complete(task_id, actor=EMPLOYEE, link="", note="")


class TestAdminReview:
    """Verify, fail, reopen and reassign."""

    @pytest.mark.asyncio
    async def test_verify(
        self, engine: TaskflowEngine, sink: RecordingNotificationSink
    ) -> None:
        task_id = await _completed(engine)

        task = await engine.lifecycle.verify(task_id, actor=ADMIN, note="Looks good")

        assert task.status == TaskStatus.VERIFIED
        assert task.closed_at == T0
        assert task.reviewed_by == "admin-1"
        assert sink.of_kind(NotificationKind.TASK_VERIFIED)[0].user_id == "emp-1"

    @pytest.mark.asyncio
    async def test_employee_cannot_verify(self, engine: TaskflowEngine) -> None:
        task_id = await _completed(engine)
        with pytest.raises(ActorNotPermittedError):
            await engine.lifecycle.verify(task_id, actor=EMPLOYEE, note="Looks good")

    @pytest.mark.asyncio
    async def test_fail_accepts_string_failure_type(
        self, engine: TaskflowEngine, sink: RecordingNotificationSink
    ) -> None:
        task_id = await _completed(engine)

        task = await engine.lifecycle.fail(
            task_id,
            actor=ADMIN,
            reason="Numbers do not add up",
            failure_type="quality_not_met",
        )

        assert task.status == TaskStatus.FAILED
        assert task.failure_type == FailureType.QUALITY_NOT_MET
        [notice] = sink.of_kind(NotificationKind.TASK_FAILED)
        assert notice.payload["failure_type"] == "quality_not_met"

    @pytest.mark.asyncio
    async def test_fail_overdue_in_progress(
        self, engine: TaskflowEngine, fake_time: FakeTimeAuthority
    ) -> None:
        task_id = await _in_progress(engine, due_date=T0 + timedelta(days=1))

        with pytest.raises(StateConflictError):
            await engine.lifecycle.fail(
                task_id, actor=ADMIN, reason="Missed deadline", failure_type="overdue_timeout"
            )

        fake_time.advance(timedelta(days=2))
        task = await engine.lifecycle.fail(
            task_id, actor=ADMIN, reason="Missed deadline", failure_type="overdue_timeout"
        )
        assert task.status == TaskStatus.FAILED

    @pytest.mark.asyncio
    async def test_reopen_sets_window(
        self,
        engine: TaskflowEngine,
        sink: RecordingNotificationSink,
    ) -> None:
        task_id = await _reopened(engine)

        task = await engine.lifecycle.get_task(task_id)
        assert task.status == TaskStatus.REOPENED
        assert task.closed_at is None
        assert task.reopen_due_at == T0 + timedelta(days=3)
        assert task.reopen_sla_status == ReopenSlaStatus.PENDING
        [notice] = sink.of_kind(NotificationKind.TASK_REOPENED)
        assert notice.user_id == "emp-1"

    @pytest.mark.asyncio
    async def test_reassign_declined_task(
        self, engine: TaskflowEngine, sink: RecordingNotificationSink
    ) -> None:
        task_id = await _create(engine)
        await engine.lifecycle.decline(task_id, actor=EMPLOYEE, reason="On leave next week")
        sink.clear()

        task = await engine.lifecycle.reassign(
            task_id,
            actor=ADMIN,
            new_assignee=OTHER_EMPLOYEE.user_id,
            priority=TaskPriority.CRITICAL,
        )

        assert task.status == TaskStatus.ASSIGNED
        assert task.assigned_to == "emp-2"
        assert task.priority == TaskPriority.CRITICAL
        [notice] = sink.notifications
        assert notice.kind == NotificationKind.TASK_ASSIGNED
        assert notice.user_id == "emp-2"


class TestReopenResponses:
    """Employee answers to a reopen, including the lazy timeout."""

    @pytest.mark.asyncio
    async def test_mark_viewed_once(self, engine: TaskflowEngine) -> None:
        task_id = await _reopened(engine)

        first = await engine.lifecycle.mark_reopen_viewed(task_id, actor=EMPLOYEE)
        second = await engine.lifecycle.mark_reopen_viewed(task_id, actor=EMPLOYEE)

        assert first.reopen_viewed_at == T0
        assert second.version == first.version
        assert second.activity.count(ActivityAction.REOPEN_VIEWED) == 1

    @pytest.mark.asyncio
    async def test_accept_reopen_notifies_reopener(
        self, engine: TaskflowEngine, sink: RecordingNotificationSink
    ) -> None:
        task_id = await _completed(engine)
        await engine.lifecycle.verify(task_id, actor=ADMIN, note="Looks good")
        await engine.lifecycle.reopen(
            task_id, actor=OTHER_ADMIN, reason="Figures for March are wrong"
        )

        task = await engine.lifecycle.accept_reopen(task_id, actor=EMPLOYEE)

        assert task.status == TaskStatus.ACCEPTED
        assert task.reopen_sla_status == ReopenSlaStatus.RESPONDED
        [notice] = sink.of_kind(NotificationKind.REOPEN_ACCEPTED)
        assert notice.user_id == "admin-2"

    @pytest.mark.asyncio
    async def test_decline_reopen_then_admin_accepts(self, engine: TaskflowEngine) -> None:
        task_id = await _reopened(engine)
        await engine.lifecycle.decline_reopen(
            task_id, actor=EMPLOYEE, reason="The figures are right"
        )

        task = await engine.lifecycle.accept_reopen_decline(
            task_id, actor=ADMIN, note="Agreed, checked again"
        )

        assert task.status == TaskStatus.VERIFIED
        view = await engine.lifecycle.get_view(task_id)
        assert view.resolution.code == ResolutionCode.REOPEN_DECLINED_VERIFIED

    @pytest.mark.asyncio
    async def test_accept_reopen_after_window(
        self,
        engine: TaskflowEngine,
        fake_time: FakeTimeAuthority,
        repository: InMemoryTaskRepository,
        sink: RecordingNotificationSink,
    ) -> None:
        """The timeout is saved before ExpiredError reaches the caller."""
        task_id = await _reopened(engine)
        fake_time.advance(timedelta(days=3))

        with pytest.raises(ExpiredError) as exc_info:
            await engine.lifecycle.accept_reopen(task_id, actor=EMPLOYEE)
        assert exc_info.value.subject == "reopen_window"

        stored = await repository.get_by_id(task_id)
        assert stored is not None
        assert stored.status == TaskStatus.VERIFIED
        assert stored.reopen_sla_status == ReopenSlaStatus.TIMED_OUT
        assert stored.reopen_sla_breached_at == fake_time.now()
        entry = stored.activity.last()
        assert entry is not None
        assert entry.action == ActivityAction.TASK_REOPEN_TIMEOUT
        assert entry.role == ActorRole.SYSTEM
        assert entry.performed_by is None

        breaches = sink.of_kind(NotificationKind.REOPEN_SLA_BREACH)
        assert [n.user_id for n in breaches] == ["admin-1", "supervisor-1"]
        assert sink.of_kind(NotificationKind.REOPEN_ACCEPTED) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation", ["decline_reopen", "mark_reopen_viewed"])
    async def test_other_responses_after_window(
        self,
        engine: TaskflowEngine,
        fake_time: FakeTimeAuthority,
        operation: str,
    ) -> None:
        task_id = await _reopened(engine)
        fake_time.advance(timedelta(days=4))

        kwargs = {"reason": "The figures are right"} if operation == "decline_reopen" else {}
        with pytest.raises(ExpiredError):
            await getattr(engine.lifecycle, operation)(task_id, actor=EMPLOYEE, **kwargs)

        task = await engine.lifecycle.get_task(task_id)
        assert task.status == TaskStatus.VERIFIED
        assert task.activity.count(ActivityAction.TASK_REOPEN_TIMEOUT) == 1

    @pytest.mark.asyncio
    async def test_second_late_response_sees_state_conflict(
        self, engine: TaskflowEngine, fake_time: FakeTimeAuthority
    ) -> None:
        task_id = await _reopened(engine)
        fake_time.advance(timedelta(days=3))
        with pytest.raises(ExpiredError):
            await engine.lifecycle.accept_reopen(task_id, actor=EMPLOYEE)

        with pytest.raises(StateConflictError):
            await engine.lifecycle.accept_reopen(task_id, actor=EMPLOYEE)

    @pytest.mark.asyncio
    async def test_wrong_actor_checked_before_timeout(
        self,
        engine: TaskflowEngine,
        fake_time: FakeTimeAuthority,
        repository: InMemoryTaskRepository,
    ) -> None:
        task_id = await _reopened(engine)
        fake_time.advance(timedelta(days=3))

        with pytest.raises(ActorNotPermittedError):
            await engine.lifecycle.accept_reopen(task_id, actor=OTHER_EMPLOYEE)

        stored = await repository.get_by_id(task_id)
        assert stored is not None
        assert stored.status == TaskStatus.REOPENED


class TestDirectAdminActions:
    @pytest.mark.asyncio
    async def test_direct_edit(self, engine: TaskflowEngine) -> None:
        task_id = await _create(engine)

        task = await engine.lifecycle.direct_edit(
            task_id, actor=ADMIN, title="Prepare annual report", note="Scope grew"
        )

        assert task.title == "Prepare annual report"
        assert task.activity.last_action() == ActivityAction.TASK_EDITED

    @pytest.mark.asyncio
    async def test_direct_edit_without_changes(self, engine: TaskflowEngine) -> None:
        task_id = await _create(engine)
        with pytest.raises(ValidationError, match="No changes"):
            await engine.lifecycle.direct_edit(
                task_id, actor=ADMIN, title="Prepare quarterly report"
            )

    @pytest.mark.asyncio
    async def test_direct_edit_after_accept(self, engine: TaskflowEngine) -> None:
        task_id = await _create(engine)
        await engine.lifecycle.accept(task_id, actor=EMPLOYEE)
        with pytest.raises(StateConflictError):
            await engine.lifecycle.direct_edit(task_id, actor=ADMIN, title="Other")

    @pytest.mark.asyncio
    async def test_direct_delete(self, engine: TaskflowEngine) -> None:
        task_id = await _create(engine)

        task = await engine.lifecycle.direct_delete(task_id, actor=ADMIN, reason="Duplicate task")

        assert task.status == TaskStatus.DELETED
        assert task.is_closed

    @pytest.mark.asyncio
    async def test_archive_and_unarchive(self, engine: TaskflowEngine) -> None:
        task_id = await _completed(engine)
        await engine.lifecycle.verify(task_id, actor=ADMIN, note="Looks good")

        archived = await engine.lifecycle.archive(task_id, actor=ADMIN, note="Quarter closed")
        assert archived.is_archived
        with pytest.raises(StateConflictError, match="archived"):
            await engine.lifecycle.reopen(task_id, actor=ADMIN, reason="One more change")

        restored = await engine.lifecycle.unarchive(task_id, actor=ADMIN, reason="Audit request")
        assert not restored.is_archived
        assert restored.archived_at is None

    @pytest.mark.asyncio
    async def test_archive_requires_verified(self, engine: TaskflowEngine) -> None:
        task_id = await _completed(engine)
        with pytest.raises(StateConflictError):
            await engine.lifecycle.archive(task_id, actor=ADMIN, note="Quarter closed")


class TestTaskView:
    @pytest.mark.asyncio
    async def test_overdue_view(
        self, engine: TaskflowEngine, fake_time: FakeTimeAuthority
    ) -> None:
        task_id = await _in_progress(engine, due_date=T0 + timedelta(days=1))
        fake_time.advance(timedelta(days=3, hours=2))

        view = await engine.lifecycle.get_view(task_id)

        assert view.as_of == fake_time.now()
        assert view.is_overdue
        assert view.overdue_days == 2
        assert view.can_admin_fail
        assert view.can_request_extension
        assert view.metrics.sla_breach

    @pytest.mark.asyncio
    async def test_summary_shape(self, engine: TaskflowEngine) -> None:
        task_id = await _create(engine)

        summary = (await engine.lifecycle.get_view(task_id)).summary()

        assert summary["status"] == "assigned"
        assert summary["resolution"]["code"] == "ACTIVE"
        assert summary["can_admin_edit_directly"] is True
        assert summary["category"] == {"type": "active", "label": "To Do", "priority": 1}
        assert summary["metrics"]["acceptance_hours"] is None
