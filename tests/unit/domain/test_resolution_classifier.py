"""Unit tests for the resolution classifier.

Each rule is exercised with timelines produced by the real state
machine, plus a few hand-built timelines for rule ordering.
"""

from datetime import timedelta

import pytest
from hypothesis import given
from hypothesis import strategies as st

from taskflow.domain.models.activity import ActivityAction, ActivityLog
from taskflow.domain.models.actor import ActorRole
from taskflow.domain.models.resolution import ResolutionCode, ResolutionSeverity
from taskflow.domain.models.task import FailureType, Task, TaskStatus
from taskflow.domain.services.resolution_classifier import resolve, resolve_task
from tests.helpers.factories import (
    ADMIN,
    EMPLOYEE,
    MACHINE,
    T0,
    accepted_task,
    assigned_task,
    completed_task,
    hours,
    in_progress_task,
    reopened_task,
    verified_task,
)


def _log(*actions: ActivityAction) -> ActivityLog:
    log = ActivityLog()
    for index, action in enumerate(actions):
        log = log.record(action, ActorRole.ADMIN, action.value, T0 + timedelta(minutes=index))
    return log


def _decline_reopen() -> Task:
    return MACHINE.decline_reopen(
        reopened_task(), actor=EMPLOYEE, reason="The figures are right", now=T0 + hours(1)
    )


class TestFirstPassOutcomes:
    """Tasks that were never reopened."""

    def test_declined_assignment(self) -> None:
        task = MACHINE.decline_assignment(
            assigned_task(), actor=EMPLOYEE, reason="On leave next week", now=T0
        )
        resolution = resolve_task(task)

        assert resolution.code == ResolutionCode.DECLINED_ASSIGNMENT
        assert resolution.is_final

    def test_declined_then_reassigned_stays_declined(self) -> None:
        """Rule 1 only looks at the timeline, not the current status."""
        declined = MACHINE.decline_assignment(
            assigned_task(), actor=EMPLOYEE, reason="On leave next week", now=T0
        )
        reassigned = MACHINE.reassign(declined, actor=ADMIN, new_assignee="emp-2", now=T0)
        assert resolve_task(reassigned).code == ResolutionCode.DECLINED_ASSIGNMENT

    def test_failed_execution(self) -> None:
        task = MACHINE.fail(
            completed_task(),
            actor=ADMIN,
            reason="Numbers do not add up",
            failure_type=FailureType.QUALITY_NOT_MET,
            now=T0,
        )
        resolution = resolve_task(task)

        assert resolution.code == ResolutionCode.FAILED_EXECUTION
        assert resolution.severity == ResolutionSeverity.CRITICAL

    def test_successful(self) -> None:
        assert resolve_task(verified_task()).code == ResolutionCode.SUCCESSFUL

    @pytest.mark.parametrize(
        "build", [assigned_task, accepted_task, in_progress_task, completed_task]
    )
    def test_active(self, build) -> None:
        resolution = resolve_task(build())
        assert resolution.code == ResolutionCode.ACTIVE
        assert not resolution.is_final


class TestReopenOutcomes:
    """Tasks with at least one reopen in their timeline."""

    def test_reopen_pending(self) -> None:
        assert resolve_task(reopened_task()).code == ResolutionCode.REOPEN_PENDING

    def test_reopen_declined_pending(self) -> None:
        resolution = resolve_task(_decline_reopen())
        assert resolution.code == ResolutionCode.REOPEN_DECLINED_PENDING
        assert not resolution.is_final

    def test_reopen_declined_then_verified(self) -> None:
        task = MACHINE.accept_reopen_decline(
            _decline_reopen(), actor=ADMIN, note="Agreed", now=T0 + hours(2)
        )
        assert resolve_task(task).code == ResolutionCode.REOPEN_DECLINED_VERIFIED

    def test_reopen_declined_then_failed(self) -> None:
        task = MACHINE.fail(
            _decline_reopen(),
            actor=ADMIN,
            reason="Refused to fix",
            failure_type=FailureType.QUALITY_NOT_MET,
            now=T0 + hours(2),
        )
        assert resolve_task(task).code == ResolutionCode.REOPEN_DECLINED_FAILED

    def test_reopen_failed_without_rework(self) -> None:
        task = MACHINE.fail(
            reopened_task(),
            actor=ADMIN,
            reason="No response",
            failure_type=FailureType.OTHER,
            now=T0 + hours(2),
        )
        assert resolve_task(task).code == ResolutionCode.REOPEN_FAILED_WITHOUT_REWORK

    def test_reopen_failed_after_rework(self) -> None:
        task = MACHINE.accept_reopen(reopened_task(), actor=EMPLOYEE, now=T0 + hours(1))
        task = MACHINE.submit_work(task, actor=EMPLOYEE, now=T0 + hours(2), link="v2")
        task = MACHINE.fail(
            task,
            actor=ADMIN,
            reason="Still wrong",
            failure_type=FailureType.QUALITY_NOT_MET,
            now=T0 + hours(3),
        )
        assert resolve_task(task).code == ResolutionCode.REOPEN_FAILED_AFTER_REWORK

    def test_reopen_verified_with_resubmission(self) -> None:
        task = MACHINE.accept_reopen(reopened_task(), actor=EMPLOYEE, now=T0 + hours(1))
        task = MACHINE.submit_work(task, actor=EMPLOYEE, now=T0 + hours(2), link="v2")
        task = MACHINE.verify(task, actor=ADMIN, note="Fixed", now=T0 + hours(3))
        assert resolve_task(task).code == ResolutionCode.REOPEN_VERIFIED_WITH_RESUBMISSION

    def test_reopen_timeout_keeps_original_work(self) -> None:
        task = MACHINE.apply_reopen_timeout(reopened_task(), now=T0 + timedelta(days=3))
        assert resolve_task(task).code == ResolutionCode.REOPEN_VERIFIED_WITHOUT_RESUBMISSION

    def test_only_latest_reopen_counts_for_rework(self) -> None:
        """A submission before the latest reopen is not rework."""
        task = MACHINE.accept_reopen(reopened_task(), actor=EMPLOYEE, now=T0 + hours(1))
        task = MACHINE.submit_work(task, actor=EMPLOYEE, now=T0 + hours(2), link="v2")
        task = MACHINE.verify(task, actor=ADMIN, note="Fixed", now=T0 + hours(3))
        task = MACHINE.reopen(task, actor=ADMIN, reason="April too", now=T0 + hours(4))
        task = MACHINE.verify(task, actor=ADMIN, note="Fine", now=T0 + hours(5))
        assert resolve_task(task).code == ResolutionCode.REOPEN_VERIFIED_WITHOUT_RESUBMISSION


class TestRuleOrdering:
    """Hand-built timelines where several rules could match."""

    def test_reopen_decline_outranks_reopen_failed(self) -> None:
        log = _log(
            ActivityAction.TASK_CREATED,
            ActivityAction.TASK_COMPLETED,
            ActivityAction.TASK_VERIFIED,
            ActivityAction.TASK_REOPENED,
            ActivityAction.TASK_REOPEN_DECLINED,
            ActivityAction.TASK_FAILED,
        )
        assert resolve(TaskStatus.FAILED, log).code == ResolutionCode.REOPEN_DECLINED_FAILED

    def test_reopen_decline_branches_on_last_action(self) -> None:
        """A later unrelated entry turns the branch back to pending."""
        log = _log(
            ActivityAction.TASK_REOPENED,
            ActivityAction.TASK_REOPEN_DECLINED,
            ActivityAction.TASK_VERIFIED,
            ActivityAction.TASK_ARCHIVED,
        )
        assert resolve(TaskStatus.VERIFIED, log).code == ResolutionCode.REOPEN_DECLINED_PENDING

    def test_assignment_decline_ignored_after_reopen(self) -> None:
        log = _log(
            ActivityAction.TASK_DECLINED,
            ActivityAction.TASK_REASSIGNED,
            ActivityAction.TASK_COMPLETED,
            ActivityAction.TASK_VERIFIED,
            ActivityAction.TASK_REOPENED,
            ActivityAction.TASK_VERIFIED,
        )
        assert (
            resolve(TaskStatus.VERIFIED, log).code
            == ResolutionCode.REOPEN_VERIFIED_WITHOUT_RESUBMISSION
        )

    def test_deleted_is_unknown(self) -> None:
        task = MACHINE.direct_delete(assigned_task(), actor=ADMIN, reason="Duplicate", now=T0)
        assert resolve_task(task).code == ResolutionCode.UNKNOWN

    def test_empty_timeline(self) -> None:
        assert resolve(TaskStatus.ASSIGNED, []).code == ResolutionCode.ACTIVE
        assert resolve(TaskStatus.WITHDRAWN, []).code == ResolutionCode.UNKNOWN

    def test_to_dict(self) -> None:
        payload = resolve_task(verified_task()).to_dict()
        assert payload == {
            "code": "SUCCESSFUL",
            "label": "Verified",
            "severity": "positive",
            "phase": "first_submission",
            "is_final": True,
        }


class TestClassifierProperties:
    @given(
        status=st.sampled_from(list(TaskStatus)),
        actions=st.lists(st.sampled_from(list(ActivityAction)), max_size=12),
    )
    def test_always_returns_a_resolution(
        self, status: TaskStatus, actions: list[ActivityAction]
    ) -> None:
        """Every (status, timeline) pair maps to exactly one known code."""
        resolution = resolve(status, _log(*actions))
        assert resolution.code in set(ResolutionCode)

    @given(actions=st.lists(st.sampled_from(list(ActivityAction)), max_size=12))
    def test_failed_never_classified_as_success(self, actions: list[ActivityAction]) -> None:
        resolution = resolve(TaskStatus.FAILED, _log(*actions))
        assert resolution.code not in (
            ResolutionCode.SUCCESSFUL,
            ResolutionCode.ACTIVE,
            ResolutionCode.REOPEN_PENDING,
        )
