"""
Placement service.

Generates schedules into persisted placements, builds the merged schedule
view and applies manual time edits under optimistic concurrency.
"""

from __future__ import annotations

from datetime import date
from typing import Optional
from uuid import UUID

from scheduling_engine.core.config import get_settings
from scheduling_engine.core.exceptions import (
    NotFoundError,
    StaleWriteError,
    ValidationError,
)
from scheduling_engine.core.logger import setup_logger
from scheduling_engine.interfaces.busy_slot_repository import IBusySlotRepository
from scheduling_engine.interfaces.completion_repository import ICompletionRepository
from scheduling_engine.interfaces.placement_repository import IPlacementRepository
from scheduling_engine.interfaces.task_repository import ITaskRepository
from scheduling_engine.interfaces.workday_settings_repository import IWorkdaySettingsRepository
from scheduling_engine.models.enums import PlacementSource
from scheduling_engine.models.proposal import EditResult
from scheduling_engine.models.schedule import (
    ScheduleResult,
    ScheduleView,
    WorkdayPreferences,
)
from scheduling_engine.services.conflict_service import INACTIVE_STATUSES, find_conflicts
from scheduling_engine.services.recurrence_service import RecurrenceSynthesizer, build_schedule_view
from scheduling_engine.services.time_block_scheduler import TimeBlockScheduler
from scheduling_engine.utils.clock import Clock
from scheduling_engine.utils.time_utils import calculate_duration, normalize_time

logger = setup_logger(__name__)


async def load_preferences(
    settings_repo: Optional[IWorkdaySettingsRepository], user_id: str
) -> WorkdayPreferences:
    """Stored preferences for the user, or the configured defaults."""
    if settings_repo is not None:
        stored = await settings_repo.get(user_id)
        if stored:
            return WorkdayPreferences(**stored.model_dump(exclude={"user_id", "updated_at"}))
    return WorkdayPreferences.from_settings(get_settings())


class PlacementService:
    """Service for creating, viewing and editing schedule placements."""

    def __init__(
        self,
        placement_repo: IPlacementRepository,
        task_repo: ITaskRepository,
        busy_slot_repo: IBusySlotRepository,
        completion_repo: ICompletionRepository,
        clock: Clock,
        settings_repo: Optional[IWorkdaySettingsRepository] = None,
        scheduler: Optional[TimeBlockScheduler] = None,
    ):
        self.placement_repo = placement_repo
        self.task_repo = task_repo
        self.busy_slot_repo = busy_slot_repo
        self.completion_repo = completion_repo
        self.settings_repo = settings_repo
        self.clock = clock
        self.scheduler = scheduler or TimeBlockScheduler()
        self.synthesizer = RecurrenceSynthesizer(clock)

    async def generate(
        self,
        user_id: str,
        task_ids: list[UUID],
        start_date: date,
        end_date: date,
        plan_id: Optional[UUID] = None,
    ) -> ScheduleResult:
        """Schedule the given tasks around what is already booked and persist the result."""
        tasks = await self.task_repo.list(user_id, task_ids=task_ids)
        found = {task.id for task in tasks}
        missing = [str(task_id) for task_id in task_ids if task_id not in found]
        if missing:
            raise NotFoundError(f"Tasks not found: {', '.join(missing)}", details={"task_ids": missing})
        if plan_id is not None:
            tasks = [task.model_copy(update={"plan_id": plan_id}) for task in tasks]

        preferences = await load_preferences(self.settings_repo, user_id)
        existing = [
            p
            for p in await self.placement_repo.list_by_range(user_id, start_date, end_date)
            if p.status not in INACTIVE_STATUSES
        ]
        busy_slots = await self.busy_slot_repo.list_by_range(user_id, start_date, end_date)

        result = self.scheduler.schedule(
            tasks,
            start_date,
            end_date,
            preferences,
            existing=existing,
            busy_slots=busy_slots,
            current_time=self.clock.now(),
        )
        if result.placements:
            saved = await self.placement_repo.create_many(user_id, list(result.placements))
            result = ScheduleResult(start_date=start_date, end_date=end_date, placements=tuple(saved))
        logger.info(
            f"Generated {len(result.placements)} placements for user {user_id} "
            f"({start_date} - {end_date})"
        )
        return result

    async def get_view(
        self,
        user_id: str,
        start_date: date,
        end_date: date,
        plan_id: Optional[UUID] = None,
    ) -> ScheduleView:
        """Persisted placements merged with synthesized recurring occurrences."""
        placements = await self.placement_repo.list_by_range(user_id, start_date, end_date)
        completions = await self.completion_repo.list_by_range(user_id, start_date, end_date)
        recurring = await self.task_repo.list_indefinite_recurring(user_id, plan_id=plan_id)
        occurrences = self.synthesizer.synthesize(
            recurring,
            start_date,
            end_date,
            existing=placements,
            completions=completions,
        )
        return build_schedule_view(
            start_date,
            end_date,
            placements,
            occurrences,
            completions=completions,
            plan_id=plan_id,
        )

    async def edit_time(
        self,
        user_id: str,
        placement_id: UUID,
        new_date: date,
        start_time: str,
        end_time: str,
        expected_version: int,
    ) -> EditResult:
        """
        Move a placement to a new time if nothing else occupies it.

        Conflicts are returned in the result and nothing is written.

        Raises:
            ValidationError: Malformed times or end not after start
            NotFoundError: Placement not found
            StaleWriteError: Placement changed since the caller read it
        """
        start = normalize_time(start_time)
        end = normalize_time(end_time)
        duration = calculate_duration(start, end, allow_cross_day=False)
        if duration <= 0:
            raise ValidationError(
                f"End time ({end}) must be after start time ({start})",
                details={"start_time": start, "end_time": end},
            )

        placement = await self.placement_repo.get(user_id, placement_id)
        if not placement:
            raise NotFoundError(f"Placement {placement_id} not found")
        if placement.version != expected_version:
            raise StaleWriteError(
                f"Placement {placement_id} was modified (version {placement.version}, "
                f"expected {expected_version})"
            )

        placements = await self.placement_repo.list_by_range(user_id, new_date, new_date)
        busy_slots = await self.busy_slot_repo.list_by_range(user_id, new_date, new_date)
        conflicts = find_conflicts(
            new_date, start, end, placements, busy_slots, exclude_id=placement_id
        )
        if conflicts:
            logger.info(
                f"Edit of placement {placement_id} to {new_date} {start}-{end} "
                f"rejected: {len(conflicts)} conflicts"
            )
            return EditResult(applied=False, placement=placement, conflicts=conflicts)

        updated = await self.placement_repo.update_time(
            user_id,
            placement_id,
            new_date,
            start,
            end,
            duration,
            expected_version,
            source=PlacementSource.MANUAL,
        )
        logger.info(f"Moved placement {placement_id} to {new_date} {start}-{end}")
        return EditResult(applied=True, placement=updated)
