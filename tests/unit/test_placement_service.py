"""
Unit tests for PlacementService.
"""

from datetime import date
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from scheduling_engine.core.exceptions import NotFoundError, StaleWriteError, ValidationError
from scheduling_engine.models.calendar import BusySlot
from scheduling_engine.models.enums import PlacementSource
from scheduling_engine.models.schedule import SchedulePlacement, StoredWorkdaySettings
from scheduling_engine.models.task import RecurrenceRule, Task
from scheduling_engine.services.placement_service import PlacementService, load_preferences

DAY = date(2025, 6, 11)


def _placement(start="09:00", end="10:00", **kwargs) -> SchedulePlacement:
    defaults = dict(
        user_id="test_user",
        task_id=uuid4(),
        date=DAY,
        start_time=start,
        end_time=end,
        duration_minutes=60,
    )
    defaults.update(kwargs)
    return SchedulePlacement(**defaults)


@pytest.fixture
def repos():
    placement_repo = AsyncMock()
    placement_repo.list_by_range.return_value = []
    placement_repo.create_many.side_effect = lambda user_id, placements: placements
    task_repo = AsyncMock()
    task_repo.list_indefinite_recurring.return_value = []
    busy_slot_repo = AsyncMock()
    busy_slot_repo.list_by_range.return_value = []
    completion_repo = AsyncMock()
    completion_repo.list_by_range.return_value = []
    return placement_repo, task_repo, busy_slot_repo, completion_repo


@pytest.fixture
def service(repos, clock):
    placement_repo, task_repo, busy_slot_repo, completion_repo = repos
    return PlacementService(placement_repo, task_repo, busy_slot_repo, completion_repo, clock)


class TestGenerate:
    @pytest.mark.asyncio
    async def test_places_and_persists(self, service, repos):
        placement_repo, task_repo, _, _ = repos
        task = Task(user_id="test_user", name="Write report", estimated_duration_minutes=90)
        task_repo.list.return_value = [task]

        result = await service.generate("test_user", [task.id], DAY, DAY)

        assert [(p.start_time, p.end_time) for p in result.placements] == [("09:00", "10:30")]
        placement_repo.create_many.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_applies_plan_id(self, service, repos):
        _, task_repo, _, _ = repos
        plan_id = uuid4()
        task = Task(user_id="test_user", name="Write report", estimated_duration_minutes=30)
        task_repo.list.return_value = [task]

        result = await service.generate("test_user", [task.id], DAY, DAY, plan_id=plan_id)
        assert result.placements[0].plan_id == plan_id

    @pytest.mark.asyncio
    async def test_missing_tasks(self, service, repos):
        _, task_repo, _, _ = repos
        task_repo.list.return_value = []

        with pytest.raises(NotFoundError):
            await service.generate("test_user", [uuid4()], DAY, DAY)

    @pytest.mark.asyncio
    async def test_schedules_around_existing_and_busy(self, service, repos):
        placement_repo, task_repo, busy_slot_repo, _ = repos
        task = Task(user_id="test_user", name="Review", estimated_duration_minutes=60)
        task_repo.list.return_value = [task]
        placement_repo.list_by_range.return_value = [_placement("09:00", "10:00")]
        busy_slot_repo.list_by_range.return_value = [
            BusySlot(id="primary:evt:2025-06-11", user_id="test_user", date=DAY, start_time="10:00", end_time="11:00")
        ]

        result = await service.generate("test_user", [task.id], DAY, DAY)
        assert result.placements[0].start_time == "11:00"

    @pytest.mark.asyncio
    async def test_nothing_to_persist_for_recurring_only(self, service, repos):
        placement_repo, task_repo, _, _ = repos
        task = Task(
            user_id="test_user",
            name="Standup",
            estimated_duration_minutes=15,
            recurrence=RecurrenceRule(
                is_indefinite=True, days_of_week={3}, default_start_time="09:00", default_end_time="09:15"
            ),
        )
        task_repo.list.return_value = [task]

        result = await service.generate("test_user", [task.id], DAY, DAY)

        assert result.placements == ()
        placement_repo.create_many.assert_not_awaited()


class TestGetView:
    @pytest.mark.asyncio
    async def test_merges_recurring_occurrences(self, service, repos):
        placement_repo, task_repo, _, _ = repos
        placement_repo.list_by_range.return_value = [_placement("10:00", "11:00")]
        task_repo.list_indefinite_recurring.return_value = [
            Task(
                user_id="test_user",
                name="Standup",
                estimated_duration_minutes=15,
                recurrence=RecurrenceRule(
                    is_indefinite=True, days_of_week={3}, default_start_time="09:00", default_end_time="09:15"
                ),
            )
        ]

        view = await service.get_view("test_user", DAY, DAY)

        assert [(e.start_time, e.is_synthetic) for e in view.entries] == [("09:00", True), ("10:00", False)]


class TestEditTime:
    @pytest.mark.asyncio
    async def test_conflict_is_returned_not_applied(self, service, repos):
        placement_repo, _, _, _ = repos
        target = _placement("14:00", "15:00")
        blocker = _placement("10:00", "11:00")
        placement_repo.get.return_value = target
        placement_repo.list_by_range.return_value = [target, blocker]

        result = await service.edit_time("test_user", target.id, DAY, "10:30", "11:30", expected_version=1)

        assert result.applied is False
        assert [c.id for c in result.conflicts] == [str(blocker.id)]
        placement_repo.update_time.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_free_range_is_applied_as_manual(self, service, repos):
        placement_repo, _, _, _ = repos
        target = _placement("14:00", "15:00")
        placement_repo.get.return_value = target
        placement_repo.list_by_range.return_value = [target, _placement("10:00", "11:00")]
        placement_repo.update_time.return_value = target.model_copy(
            update={"start_time": "11:00", "end_time": "12:00", "version": 2}
        )

        result = await service.edit_time("test_user", target.id, DAY, "11:00", "12:00", expected_version=1)

        assert result.applied is True
        assert result.placement.version == 2
        placement_repo.update_time.assert_awaited_once_with(
            "test_user", target.id, DAY, "11:00", "12:00", 60, 1, source=PlacementSource.MANUAL
        )

    @pytest.mark.asyncio
    async def test_moving_within_own_range_is_allowed(self, service, repos):
        placement_repo, _, _, _ = repos
        target = _placement("14:00", "15:00")
        placement_repo.get.return_value = target
        placement_repo.list_by_range.return_value = [target]
        placement_repo.update_time.return_value = target

        result = await service.edit_time("test_user", target.id, DAY, "14:30", "15:30", expected_version=1)
        assert result.applied is True

    @pytest.mark.asyncio
    async def test_end_not_after_start(self, service):
        with pytest.raises(ValidationError):
            await service.edit_time("test_user", uuid4(), DAY, "11:00", "10:00", expected_version=1)

    @pytest.mark.asyncio
    async def test_not_found(self, service, repos):
        placement_repo, _, _, _ = repos
        placement_repo.get.return_value = None

        with pytest.raises(NotFoundError):
            await service.edit_time("test_user", uuid4(), DAY, "10:00", "11:00", expected_version=1)

    @pytest.mark.asyncio
    async def test_stale_version(self, service, repos):
        placement_repo, _, _, _ = repos
        placement_repo.get.return_value = _placement(version=3)

        with pytest.raises(StaleWriteError):
            await service.edit_time("test_user", uuid4(), DAY, "10:00", "11:00", expected_version=2)


class TestLoadPreferences:
    @pytest.mark.asyncio
    async def test_defaults_without_repository(self):
        preferences = await load_preferences(None, "test_user")
        assert preferences.weekday.start == "09:00"
        assert preferences.allow_weekends is False

    @pytest.mark.asyncio
    async def test_stored_preferences_win(self):
        settings_repo = AsyncMock()
        settings_repo.get.return_value = StoredWorkdaySettings(user_id="test_user", allow_weekends=True)

        preferences = await load_preferences(settings_repo, "test_user")
        assert preferences.allow_weekends is True
