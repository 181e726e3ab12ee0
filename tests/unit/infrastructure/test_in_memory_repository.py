"""Unit tests for the in-memory task repository stub."""

import dataclasses
from datetime import timedelta
from uuid import uuid4

import pytest

from taskflow.domain.errors import ConcurrentModificationError, TaskNotFoundError
from taskflow.domain.models.activity import ActivityAction
from taskflow.domain.models.actor import ActorRole
from taskflow.domain.models.modification_request import ModificationRequestType
from taskflow.domain.services.modification_workflow import ModificationWorkflow
from taskflow.infrastructure.stubs import InMemoryTaskRepository
from tests.helpers.factories import (
    ADMIN,
    MACHINE,
    T0,
    accepted_task,
    assigned_task,
    hours,
    reopened_task,
)


class TestAddAndGet:
    @pytest.mark.asyncio
    async def test_add_sets_first_version(self, repository: InMemoryTaskRepository) -> None:
        stored = await repository.add(assigned_task())

        assert stored.version == 1
        assert await repository.get_by_id(stored.task_id) == stored

    @pytest.mark.asyncio
    async def test_duplicate_add(self, repository: InMemoryTaskRepository) -> None:
        task = assigned_task()
        await repository.add(task)
        with pytest.raises(ValueError, match="already exists"):
            await repository.add(task)

    @pytest.mark.asyncio
    async def test_missing(self, repository: InMemoryTaskRepository) -> None:
        assert await repository.get_by_id(uuid4()) is None


class TestSave:
    """Version-checked saves."""

    @pytest.mark.asyncio
    async def test_save_bumps_version(self, repository: InMemoryTaskRepository) -> None:
        stored = await repository.add(assigned_task())
        changed = stored.with_activity(
            ActivityAction.COMMENT_ADDED, ActorRole.ADMIN, "Note", T0, performed_by="admin-1"
        )

        saved = await repository.save(changed, expected_version=1)

        assert saved.version == 2
        assert repository.save_calls == 1

    @pytest.mark.asyncio
    async def test_stale_version(self, repository: InMemoryTaskRepository) -> None:
        stored = await repository.add(assigned_task())
        await repository.save(stored, expected_version=1)

        with pytest.raises(ConcurrentModificationError) as exc_info:
            await repository.save(stored, expected_version=1)
        assert exc_info.value.expected_version == 1
        assert exc_info.value.actual_version == 2

    @pytest.mark.asyncio
    async def test_save_unknown_task(self, repository: InMemoryTaskRepository) -> None:
        with pytest.raises(TaskNotFoundError):
            await repository.save(assigned_task(), expected_version=1)

    @pytest.mark.asyncio
    async def test_simulated_conflicts(self, repository: InMemoryTaskRepository) -> None:
        stored = await repository.add(assigned_task())
        repository.simulate_conflicts(1)

        with pytest.raises(ConcurrentModificationError):
            await repository.save(stored, expected_version=1)
        saved = await repository.save(stored, expected_version=1)

        assert saved.version == 2

    @pytest.mark.asyncio
    async def test_clear(self, repository: InMemoryTaskRepository) -> None:
        stored = await repository.add(assigned_task())
        repository.clear()
        assert await repository.get_by_id(stored.task_id) is None
        assert repository.save_calls == 0


class TestQueries:
    @pytest.mark.asyncio
    async def test_list_reopened_due(self, repository: InMemoryTaskRepository) -> None:
        due = reopened_task()
        later = reopened_task(T0 + timedelta(days=1))
        await repository.add(due)
        await repository.add(later)
        await repository.add(accepted_task())

        found = await repository.list_reopened_due(T0 + timedelta(days=3))

        assert [task.task_id for task in found] == [due.task_id]

    @pytest.mark.asyncio
    async def test_timed_out_reopens_not_listed(
        self, repository: InMemoryTaskRepository
    ) -> None:
        timed_out = MACHINE.apply_reopen_timeout(reopened_task(), now=T0 + timedelta(days=3))
        repository.put(dataclasses.replace(timed_out, version=1))

        assert await repository.list_reopened_due(T0 + timedelta(days=5)) == []

    @pytest.mark.asyncio
    async def test_list_with_expired_requests(
        self, repository: InMemoryTaskRepository
    ) -> None:
        workflow = ModificationWorkflow(MACHINE)
        with_request = workflow.create_admin_request(
            accepted_task(),
            actor=ADMIN,
            request_id=uuid4(),
            request_type=ModificationRequestType.DELETE,
            reason="Client cancelled the project",
            now=T0,
            sla=hours(2),
        )
        await repository.add(with_request)
        await repository.add(accepted_task())

        assert await repository.list_with_expired_requests(T0 + hours(1)) == []
        found = await repository.list_with_expired_requests(T0 + hours(2))
        assert [task.task_id for task in found] == [with_request.task_id]
