"""
Unit tests for the SQLite repositories.
"""

from datetime import date, datetime
from uuid import uuid4

import pytest

from scheduling_engine.core.exceptions import (
    DuplicateProposalError,
    InvalidStateError,
    NotFoundError,
    StaleWriteError,
)
from scheduling_engine.infrastructure.local.busy_slot_repository import SqliteBusySlotRepository
from scheduling_engine.infrastructure.local.completion_repository import SqliteCompletionRepository
from scheduling_engine.infrastructure.local.placement_repository import SqlitePlacementRepository
from scheduling_engine.infrastructure.local.proposal_repository import SqliteProposalRepository
from scheduling_engine.infrastructure.local.task_repository import SqliteTaskRepository
from scheduling_engine.infrastructure.local.workday_settings_repository import (
    SqliteWorkdaySettingsRepository,
)
from scheduling_engine.models.calendar import BusySlot
from scheduling_engine.models.enums import (
    PlacementSource,
    PlacementStatus,
    ProposalResolution,
    ProposalStatus,
)
from scheduling_engine.models.proposal import RescheduleProposal
from scheduling_engine.models.schedule import DayWindow, SchedulePlacement, WorkdayPreferences
from scheduling_engine.models.task import RecurrenceRule, TaskCreate

DAY = date(2025, 6, 9)
REVIEWED_AT = datetime(2025, 6, 10, 14, 0)


async def _create_placement(session_factory, user_id, **kwargs) -> SchedulePlacement:
    defaults = dict(
        user_id=user_id,
        task_id=uuid4(),
        date=DAY,
        start_time="09:00",
        end_time="10:00",
        duration_minutes=60,
    )
    defaults.update(kwargs)
    repo = SqlitePlacementRepository(session_factory)
    (created,) = await repo.create_many(user_id, [SchedulePlacement(**defaults)])
    return created


def _proposal_for(placement: SchedulePlacement) -> RescheduleProposal:
    return RescheduleProposal(
        user_id=placement.user_id,
        plan_id=placement.plan_id,
        placement_id=placement.id,
        task_id=placement.task_id,
        original_date=placement.date,
        original_start_time=placement.start_time,
        original_end_time=placement.end_time,
        original_day_index=placement.day_index,
        proposed_date=date(2025, 6, 11),
        proposed_start_time="13:00",
        proposed_end_time="14:00",
        proposed_day_index=placement.day_index + 2,
        reschedule_count=placement.reschedule_count + 1,
    )


class TestTaskRepository:
    @pytest.mark.asyncio
    async def test_create_and_get(self, session_factory, test_user_id):
        repo = SqliteTaskRepository(session_factory)
        created = await repo.create(
            test_user_id,
            TaskCreate(name="Write report", estimated_duration_minutes=90, priority=2, complexity_score=7),
        )

        fetched = await repo.get(test_user_id, created.id)

        assert fetched.name == "Write report"
        assert fetched.priority == 2
        assert fetched.complexity_score == 7
        assert fetched.recurrence is None

    @pytest.mark.asyncio
    async def test_indefinite_recurring_round_trip(self, session_factory, test_user_id):
        repo = SqliteTaskRepository(session_factory)
        await repo.create(test_user_id, TaskCreate(name="One-off", estimated_duration_minutes=30))
        await repo.create(
            test_user_id,
            TaskCreate(
                name="Night shift",
                estimated_duration_minutes=240,
                recurrence=RecurrenceRule(
                    is_indefinite=True,
                    days_of_week={5, 1},
                    default_start_time="22:00",
                    default_end_time="02:00",
                ),
            ),
        )

        recurring = await repo.list_indefinite_recurring(test_user_id)

        assert [t.name for t in recurring] == ["Night shift"]
        assert recurring[0].recurrence.days_of_week == {1, 5}
        assert recurring[0].is_indefinite_recurring is True

    @pytest.mark.asyncio
    async def test_list_by_ids_is_user_scoped(self, session_factory, test_user_id):
        repo = SqliteTaskRepository(session_factory)
        mine = await repo.create(test_user_id, TaskCreate(name="Mine", estimated_duration_minutes=30))
        theirs = await repo.create("other_user", TaskCreate(name="Theirs", estimated_duration_minutes=30))

        tasks = await repo.list(test_user_id, task_ids=[mine.id, theirs.id])
        assert [t.id for t in tasks] == [mine.id]


class TestPlacementRepository:
    @pytest.mark.asyncio
    async def test_list_by_range_and_status(self, session_factory, test_user_id):
        repo = SqlitePlacementRepository(session_factory)
        first = await _create_placement(session_factory, test_user_id)
        await _create_placement(session_factory, test_user_id, date=date(2025, 6, 20))

        in_range = await repo.list_by_range(test_user_id, DAY, date(2025, 6, 12))
        scheduled = await repo.list_by_status(test_user_id, [PlacementStatus.SCHEDULED], until=DAY)

        assert [p.id for p in in_range] == [first.id]
        assert [p.id for p in scheduled] == [first.id]

    @pytest.mark.asyncio
    async def test_update_time_bumps_version(self, session_factory, test_user_id):
        repo = SqlitePlacementRepository(session_factory)
        placement = await _create_placement(session_factory, test_user_id)

        updated = await repo.update_time(
            test_user_id, placement.id, DAY, "11:00", "12:30", 90, 1, source=PlacementSource.MANUAL
        )

        assert (updated.start_time, updated.end_time, updated.duration_minutes) == ("11:00", "12:30", 90)
        assert updated.version == 2
        assert updated.source == PlacementSource.MANUAL

    @pytest.mark.asyncio
    async def test_update_time_with_stale_version(self, session_factory, test_user_id):
        repo = SqlitePlacementRepository(session_factory)
        placement = await _create_placement(session_factory, test_user_id)
        await repo.update_time(test_user_id, placement.id, DAY, "11:00", "12:00", 60, 1)

        with pytest.raises(StaleWriteError):
            await repo.update_time(test_user_id, placement.id, DAY, "13:00", "14:00", 60, 1)

    @pytest.mark.asyncio
    async def test_update_missing_placement(self, session_factory, test_user_id):
        repo = SqlitePlacementRepository(session_factory)
        with pytest.raises(NotFoundError):
            await repo.update_status(test_user_id, uuid4(), PlacementStatus.SKIPPED)

    @pytest.mark.asyncio
    async def test_list_user_ids(self, session_factory):
        await _create_placement(session_factory, "alice")
        await _create_placement(session_factory, "bob", status=PlacementStatus.COMPLETED)

        repo = SqlitePlacementRepository(session_factory)
        assert await repo.list_user_ids([PlacementStatus.SCHEDULED]) == ["alice"]


class TestProposalRepository:
    @pytest.mark.asyncio
    async def test_create_marks_placement_pending(self, session_factory, test_user_id):
        placement = await _create_placement(session_factory, test_user_id)
        repo = SqliteProposalRepository(session_factory)

        created = await repo.create(_proposal_for(placement))

        assert created.state == ProposalStatus.PENDING
        stored = await SqlitePlacementRepository(session_factory).get(test_user_id, placement.id)
        assert stored.status == PlacementStatus.PENDING_RESCHEDULE
        assert stored.version == 2

    @pytest.mark.asyncio
    async def test_second_pending_proposal_is_rejected(self, session_factory, test_user_id):
        placement = await _create_placement(session_factory, test_user_id)
        repo = SqliteProposalRepository(session_factory)
        first = await repo.create(_proposal_for(placement))

        with pytest.raises(DuplicateProposalError) as exc_info:
            await repo.create(_proposal_for(placement))

        assert exc_info.value.existing_proposal_id == str(first.id)
        assert [p.id for p in await repo.list_pending(test_user_id)] == [first.id]

    @pytest.mark.asyncio
    async def test_new_proposal_allowed_after_decision(self, session_factory, test_user_id):
        placement = await _create_placement(session_factory, test_user_id)
        repo = SqliteProposalRepository(session_factory)
        first = await repo.create(_proposal_for(placement))
        await repo.reject(test_user_id, first.id, REVIEWED_AT)

        second = await repo.create(_proposal_for(placement))

        assert second.id != first.id
        assert (await repo.get_pending_for_placement(test_user_id, placement.id)).id == second.id

    @pytest.mark.asyncio
    async def test_accept_moves_placement(self, session_factory, test_user_id):
        placement = await _create_placement(session_factory, test_user_id)
        repo = SqliteProposalRepository(session_factory)
        proposal = await repo.create(_proposal_for(placement))

        decided, moved = await repo.accept(test_user_id, proposal.id, REVIEWED_AT)

        assert decided.state == ProposalStatus.ACCEPTED
        assert decided.resolution == ProposalResolution.RESCHEDULED
        assert decided.reviewed_at == REVIEWED_AT
        assert (moved.date, moved.start_time, moved.end_time) == (date(2025, 6, 11), "13:00", "14:00")
        assert moved.status == PlacementStatus.RESCHEDULED
        assert moved.reschedule_count == 1
        assert moved.day_index == 2
        assert moved.last_rescheduled_at == REVIEWED_AT

    @pytest.mark.asyncio
    async def test_reject_keeps_original_time(self, session_factory, test_user_id):
        placement = await _create_placement(session_factory, test_user_id)
        repo = SqliteProposalRepository(session_factory)
        proposal = await repo.create(_proposal_for(placement))

        decided, kept = await repo.reject(test_user_id, proposal.id, REVIEWED_AT)

        assert decided.resolution == ProposalResolution.KEPT_OVERDUE
        assert (kept.date, kept.start_time) == (DAY, "09:00")
        assert kept.status == PlacementStatus.OVERDUE

    @pytest.mark.asyncio
    async def test_complete_records_original_date(self, session_factory, test_user_id):
        placement = await _create_placement(session_factory, test_user_id)
        repo = SqliteProposalRepository(session_factory)
        proposal = await repo.create(_proposal_for(placement))

        decided, done = await repo.complete(test_user_id, proposal.id, REVIEWED_AT)

        assert decided.state == ProposalStatus.REJECTED
        assert decided.resolution == ProposalResolution.COMPLETED
        assert done.status == PlacementStatus.COMPLETED
        assert await SqliteCompletionRepository(session_factory).exists(test_user_id, placement.task_id, DAY)

    @pytest.mark.asyncio
    async def test_decision_is_final(self, session_factory, test_user_id):
        placement = await _create_placement(session_factory, test_user_id)
        repo = SqliteProposalRepository(session_factory)
        proposal = await repo.create(_proposal_for(placement))
        await repo.accept(test_user_id, proposal.id, REVIEWED_AT)

        with pytest.raises(InvalidStateError):
            await repo.reject(test_user_id, proposal.id, REVIEWED_AT)

    @pytest.mark.asyncio
    async def test_unknown_proposal(self, session_factory, test_user_id):
        repo = SqliteProposalRepository(session_factory)
        with pytest.raises(NotFoundError):
            await repo.accept(test_user_id, uuid4(), REVIEWED_AT)


class TestCompletionRepository:
    @pytest.mark.asyncio
    async def test_record_is_idempotent(self, session_factory, test_user_id):
        repo = SqliteCompletionRepository(session_factory)
        task_id = uuid4()

        first = await repo.record(test_user_id, task_id, DAY)
        second = await repo.record(test_user_id, task_id, DAY)

        assert first.id == second.id
        assert len(await repo.list_by_range(test_user_id, DAY, DAY)) == 1


class TestBusySlotRepository:
    @pytest.mark.asyncio
    async def test_upsert_replaces_by_id(self, session_factory, test_user_id):
        repo = SqliteBusySlotRepository(session_factory)
        slot = BusySlot(
            id="work:evt1:2025-06-09",
            user_id=test_user_id,
            calendar_id="work",
            source_id="evt1",
            date=DAY,
            start_time="10:00",
            end_time="11:00",
        )
        await repo.upsert_many(test_user_id, [slot])
        await repo.upsert_many(test_user_id, [slot.model_copy(update={"end_time": "11:30"})])

        slots = await repo.list_by_range(test_user_id, DAY, DAY)

        assert [(s.id, s.end_time) for s in slots] == [("work:evt1:2025-06-09", "11:30")]

    @pytest.mark.asyncio
    async def test_delete_by_source(self, session_factory, test_user_id):
        repo = SqliteBusySlotRepository(session_factory)
        await repo.upsert_many(
            test_user_id,
            [
                BusySlot(
                    id=f"work:evt1:{date(2025, 6, day)}",
                    user_id=test_user_id,
                    calendar_id="work",
                    source_id="evt1",
                    date=date(2025, 6, day),
                )
                for day in (9, 10)
            ],
        )

        assert await repo.delete_by_source(test_user_id, "work", "evt1") == 2
        assert await repo.list_by_range(test_user_id, DAY, date(2025, 6, 10)) == []


class TestWorkdaySettingsRepository:
    @pytest.mark.asyncio
    async def test_upsert_and_get(self, session_factory, test_user_id):
        repo = SqliteWorkdaySettingsRepository(session_factory)
        assert await repo.get(test_user_id) is None

        await repo.upsert(test_user_id, WorkdayPreferences(allow_weekends=True, weekday_max_minutes=120))
        await repo.upsert(
            test_user_id,
            WorkdayPreferences(
                weekday=DayWindow(start="08:00", end="16:00"),
                weekend=DayWindow(start="10:00", end="14:00", lunch_start=None, lunch_end=None),
                allow_weekends=True,
            ),
        )

        stored = await repo.get(test_user_id)
        assert stored.weekday.start == "08:00"
        assert stored.weekend.lunch_start is None
        assert stored.weekday_max_minutes is None
