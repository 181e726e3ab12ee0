"""Property tests: random operation sequences against the domain services.

Hypothesis drives a task through arbitrary sequences of lifecycle and
request operations, as any actor, at arbitrary times. Rejected operations
are skipped; every accepted one must keep the task invariants intact.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from uuid import uuid4

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from taskflow.domain.exceptions import TaskflowError
from taskflow.domain.models.actor import Actor
from taskflow.domain.models.modification_request import (
    ModificationDecision,
    ModificationRequestStatus,
    ModificationRequestType,
    RequestOrigin,
)
from taskflow.domain.models.task import FailureType, Task, TaskStatus
from taskflow.domain.services.extension_workflow import ExtensionWorkflow
from taskflow.domain.services.modification_workflow import ModificationWorkflow
from taskflow.domain.services.resolution_classifier import resolve_task
from tests.helpers.factories import (
    ADMIN,
    EMPLOYEE,
    MACHINE,
    OTHER_ADMIN,
    OTHER_EMPLOYEE,
    T0,
    assigned_task,
    hours,
)

pytestmark = pytest.mark.integration

MODIFICATIONS = ModificationWorkflow(MACHINE)
EXTENSIONS = ExtensionWorkflow(MACHINE)

Operation = Callable[[Task, Actor, datetime], Task]


def _respond(task: Task, actor: Actor, now: datetime) -> Task:
    if not task.modification_requests:
        return task
    return MODIFICATIONS.respond(
        task,
        actor=actor,
        request_id=task.modification_requests[-1].request_id,
        decision=ModificationDecision.APPROVED,
        note="Understood",
        now=now,
    )


def _execute(task: Task, actor: Actor, now: datetime) -> Task:
    if not task.modification_requests:
        return task
    return MODIFICATIONS.execute(
        task,
        actor=actor,
        request_id=task.modification_requests[-1].request_id,
        now=now,
    )


OPERATIONS: dict[str, Operation] = {
    "accept": lambda t, a, n: MACHINE.accept(t, actor=a, now=n),
    "start": lambda t, a, n: MACHINE.start(t, actor=a, now=n),
    "decline": lambda t, a, n: MACHINE.decline_assignment(
        t, actor=a, reason="Out of office", now=n
    ),
    "withdraw": lambda t, a, n: MACHINE.withdraw(
        t, actor=a, reason="Moved to another team", confirmed=True, now=n
    ),
    "complete": lambda t, a, n: MACHINE.submit_work(
        t, actor=a, now=n, link="https://example.com/report"
    ),
    "verify": lambda t, a, n: MACHINE.verify(t, actor=a, note="Looks good", now=n),
    "fail": lambda t, a, n: MACHINE.fail(
        t,
        actor=a,
        reason="Not delivered",
        failure_type=FailureType.QUALITY_NOT_MET,
        now=n,
    ),
    "reopen": lambda t, a, n: MACHINE.reopen(
        t, actor=a, reason="Figures for March are wrong", now=n
    ),
    "view_reopen": lambda t, a, n: MACHINE.mark_reopen_viewed(t, actor=a, now=n),
    "accept_reopen": lambda t, a, n: MACHINE.accept_reopen(t, actor=a, now=n),
    "decline_reopen": lambda t, a, n: MACHINE.decline_reopen(
        t, actor=a, reason="The figures match the ledger", now=n
    ),
    "accept_decline": lambda t, a, n: MACHINE.accept_reopen_decline(
        t, actor=a, note="Checked, agreed", now=n
    ),
    "timeout": lambda t, a, n: MACHINE.apply_reopen_timeout(t, now=n),
    "reassign": lambda t, a, n: MACHINE.reassign(
        t, actor=a, new_assignee=OTHER_EMPLOYEE.user_id, now=n
    ),
    "delete": lambda t, a, n: MACHINE.direct_delete(
        t, actor=a, reason="Duplicate task", now=n
    ),
    "archive": lambda t, a, n: MACHINE.archive(t, actor=a, note="Quarter closed", now=n),
    "unarchive": lambda t, a, n: MACHINE.unarchive(
        t, actor=a, reason="Needed for audit", now=n
    ),
    "request_delete": lambda t, a, n: MODIFICATIONS.create_admin_request(
        t,
        actor=a,
        request_id=uuid4(),
        request_type=ModificationRequestType.DELETE,
        reason="Client cancelled the project",
        now=n,
    ),
    "request_scope": lambda t, a, n: MODIFICATIONS.create_employee_request(
        t,
        actor=a,
        request_id=uuid4(),
        request_type=ModificationRequestType.SCOPE_CHANGE,
        reason="Scope grew after kickoff",
        now=n,
        scope_changes="Add the regional breakdown",
    ),
    "respond": _respond,
    "execute": _execute,
    "sweep": lambda t, a, n: MODIFICATIONS.expire_overdue(t, now=n)[0],
    "request_extension": lambda t, a, n: EXTENSIONS.request_extension(
        t,
        actor=a,
        request_id=uuid4(),
        new_due_date=n + timedelta(days=7),
        reason="Waiting on finance data",
        now=n,
    ),
}

ACTORS = (ADMIN, OTHER_ADMIN, EMPLOYEE, OTHER_EMPLOYEE)

steps = st.lists(
    st.tuples(
        st.sampled_from(sorted(OPERATIONS)),
        st.sampled_from(ACTORS),
        st.integers(min_value=0, max_value=96),
    ),
    min_size=1,
    max_size=25,
)


def _check_invariants(task: Task) -> None:
    assert task.is_closed == (task.closed_at is not None)
    timestamps = [entry.timestamp for entry in task.activity]
    assert timestamps == sorted(timestamps)
    for origin in RequestOrigin:
        pending = [r for r in task.requests_for(origin) if r.is_pending]
        assert len(pending) <= 1
    assert len([r for r in task.extension_requests if r.is_pending]) <= 1
    resolve_task(task)


class TestRandomWalks:
    """Every reachable task satisfies the invariants."""

    @settings(max_examples=150, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    @given(walk=steps)
    def test_invariants_hold_along_any_walk(
        self, walk: list[tuple[str, Actor, int]]
    ) -> None:
        task = assigned_task(due_date=T0 + timedelta(days=5))
        now = T0
        for name, actor, gap_hours in walk:
            now = now + hours(gap_hours)
            before = task
            try:
                task = OPERATIONS[name](task, actor, now)
            except TaskflowError:
                continue

            _check_invariants(task)
            # The timeline only grows, and never rewrites history
            assert task.activity.entries[: len(before.activity)] == before.activity.entries
            if before.status == TaskStatus.DELETED:
                assert task.status == TaskStatus.DELETED

    @settings(max_examples=100, deadline=None)
    @given(walk=steps, extra_hours=st.integers(min_value=0, max_value=200))
    def test_reopen_timeout_is_idempotent(
        self, walk: list[tuple[str, Actor, int]], extra_hours: int
    ) -> None:
        task = assigned_task()
        now = T0
        for name, actor, gap_hours in walk:
            now = now + hours(gap_hours)
            try:
                task = OPERATIONS[name](task, actor, now)
            except TaskflowError:
                continue

        later = now + hours(extra_hours)
        once = MACHINE.apply_reopen_timeout(task, now=later)
        twice = MACHINE.apply_reopen_timeout(once, now=later)

        assert twice == once
        if once.reopen_sla_status != task.reopen_sla_status:
            assert MACHINE.apply_reopen_timeout(once, now=later + hours(48)) is once


class TestRequestExecution:
    @given(gap_hours=st.integers(min_value=0, max_value=23))
    def test_execute_twice_returns_task_unchanged(self, gap_hours: int) -> None:
        task = MACHINE.accept(assigned_task(), actor=EMPLOYEE, now=T0)
        request_id = uuid4()
        task = MODIFICATIONS.create_admin_request(
            task,
            actor=ADMIN,
            request_id=request_id,
            request_type=ModificationRequestType.DELETE,
            reason="Client cancelled the project",
            now=T0,
        )
        now = T0 + hours(gap_hours)
        task = MODIFICATIONS.respond(
            task,
            actor=EMPLOYEE,
            request_id=request_id,
            decision=ModificationDecision.APPROVED,
            note="Understood",
            now=now,
        )

        executed = MODIFICATIONS.execute(task, actor=ADMIN, request_id=request_id, now=now)
        again = MODIFICATIONS.execute(
            executed, actor=ADMIN, request_id=request_id, now=now + hours(1)
        )

        assert executed.status == TaskStatus.DELETED
        assert again is executed
        request = executed.find_modification_request(request_id)
        assert request is not None
        assert request.status == ModificationRequestStatus.EXECUTED

    @given(sla_hours=st.integers(min_value=1, max_value=72))
    def test_pending_request_blocks_second_until_expiry(self, sla_hours: int) -> None:
        task = MACHINE.accept(assigned_task(), actor=EMPLOYEE, now=T0)
        task = MODIFICATIONS.create_admin_request(
            task,
            actor=ADMIN,
            request_id=uuid4(),
            request_type=ModificationRequestType.DELETE,
            reason="Client cancelled the project",
            now=T0,
            sla=hours(sla_hours),
        )

        with pytest.raises(TaskflowError):
            MODIFICATIONS.create_admin_request(
                task,
                actor=ADMIN,
                request_id=uuid4(),
                request_type=ModificationRequestType.DELETE,
                reason="Client confirmed the cancellation",
                now=T0 + hours(sla_hours) - timedelta(seconds=1),
            )

        renewed = MODIFICATIONS.create_admin_request(
            task,
            actor=ADMIN,
            request_id=uuid4(),
            request_type=ModificationRequestType.DELETE,
            reason="Client confirmed the cancellation",
            now=T0 + hours(sla_hours),
        )
        statuses = [r.status for r in renewed.modification_requests]
        assert statuses == [
            ModificationRequestStatus.EXPIRED,
            ModificationRequestStatus.PENDING,
        ]
