"""
Overlap and conflict detection.

A range is free only if it misses every persisted placement and every busy
calendar slot on that date. Busy slots that the engine itself pushed to the
calendar are ignored so a placement never conflicts with its own mirror.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional, Sequence
from uuid import UUID

from scheduling_engine.core.logger import setup_logger
from scheduling_engine.interfaces.busy_slot_repository import IBusySlotRepository
from scheduling_engine.interfaces.placement_repository import IPlacementRepository
from scheduling_engine.models.calendar import BusySlot, ConflictItem, ConflictReport
from scheduling_engine.models.enums import PlacementSource, PlacementStatus
from scheduling_engine.models.schedule import SchedulePlacement
from scheduling_engine.utils.time_utils import (
    MINUTES_PER_DAY,
    TimeInterval,
    parse_time_to_minutes,
)

logger = setup_logger(__name__)

# Placements in these states no longer occupy their slot
INACTIVE_STATUSES = {PlacementStatus.COMPLETED, PlacementStatus.SKIPPED}


def _interval(start_time: Optional[str], end_time: Optional[str]) -> TimeInterval:
    if start_time is None or end_time is None:
        return TimeInterval(0, MINUTES_PER_DAY)
    start = parse_time_to_minutes(start_time)
    end = parse_time_to_minutes(end_time)
    if end <= start:
        end = MINUTES_PER_DAY
    return TimeInterval(start, end)


def _counts_as_busy(slot: BusySlot) -> bool:
    return slot.is_busy and not slot.is_engine_owned


def find_conflicts(
    target_date: date,
    start_time: str,
    end_time: str,
    placements: Iterable[SchedulePlacement],
    busy_slots: Iterable[BusySlot] = (),
    exclude_id: Optional[UUID] = None,
) -> list[ConflictItem]:
    """Everything that overlaps [start_time, end_time) on target_date."""
    start = parse_time_to_minutes(start_time)
    end = parse_time_to_minutes(end_time)
    conflicts: list[ConflictItem] = []
    for placement in placements:
        if placement.date != target_date or placement.status in INACTIVE_STATUSES:
            continue
        if exclude_id is not None and placement.id == exclude_id:
            continue
        if _interval(placement.start_time, placement.end_time).overlaps(start, end):
            conflicts.append(
                ConflictItem(
                    kind="placement",
                    id=str(placement.id),
                    date=placement.date,
                    start_time=placement.start_time,
                    end_time=placement.end_time,
                )
            )
    for slot in busy_slots:
        if slot.date != target_date or not _counts_as_busy(slot):
            continue
        if exclude_id is not None and slot.linked_placement_id == exclude_id:
            continue
        if _interval(slot.start_time, slot.end_time).overlaps(start, end):
            conflicts.append(
                ConflictItem(
                    kind="busy_slot",
                    id=slot.id,
                    date=slot.date,
                    start_time=slot.start_time,
                    end_time=slot.end_time,
                    summary=slot.summary,
                )
            )
    return conflicts


def is_interval_free(
    target_date: date,
    start_time: str,
    end_time: str,
    placements: Iterable[SchedulePlacement],
    busy_slots: Iterable[BusySlot] = (),
    exclude_id: Optional[UUID] = None,
) -> bool:
    return not find_conflicts(target_date, start_time, end_time, placements, busy_slots, exclude_id)


def detect_conflicts(
    placements: Sequence[SchedulePlacement],
    busy_slots: Iterable[BusySlot],
) -> list[ConflictReport]:
    """One report per busy slot that overlaps at least one scheduled placement."""
    by_date: dict[date, list[SchedulePlacement]] = {}
    for placement in placements:
        if placement.source == PlacementSource.CALENDAR or placement.status in INACTIVE_STATUSES:
            continue
        by_date.setdefault(placement.date, []).append(placement)

    reports: list[ConflictReport] = []
    for slot in busy_slots:
        if not _counts_as_busy(slot):
            continue
        slot_interval = _interval(slot.start_time, slot.end_time)
        placement_ids: list[UUID] = []
        plan_ids: list[UUID] = []
        for placement in by_date.get(slot.date, []):
            placement_interval = _interval(placement.start_time, placement.end_time)
            if not slot_interval.overlaps(placement_interval.start_minutes, placement_interval.end_minutes):
                continue
            placement_ids.append(placement.id)
            if placement.plan_id is not None and placement.plan_id not in plan_ids:
                plan_ids.append(placement.plan_id)
        if placement_ids:
            reports.append(
                ConflictReport(
                    date=slot.date,
                    busy_slot=slot,
                    placement_ids=placement_ids,
                    plan_ids=plan_ids,
                )
            )
    reports.sort(key=lambda r: (r.date, _interval(r.busy_slot.start_time, r.busy_slot.end_time).start_minutes))
    return reports


class ConflictService:
    """Repository-backed conflict detection for a user's date range."""

    def __init__(
        self,
        placement_repo: IPlacementRepository,
        busy_slot_repo: IBusySlotRepository,
    ):
        self.placement_repo = placement_repo
        self.busy_slot_repo = busy_slot_repo

    async def detect_conflicts(
        self,
        user_id: str,
        start_date: date,
        end_date: date,
        plan_id: Optional[UUID] = None,
    ) -> list[ConflictReport]:
        placements = await self.placement_repo.list_by_range(
            user_id, start_date, end_date, plan_id=plan_id
        )
        busy_slots = await self.busy_slot_repo.list_by_range(user_id, start_date, end_date)
        reports = detect_conflicts(placements, busy_slots)
        if reports:
            logger.info(
                f"Found {len(reports)} calendar conflicts for user {user_id} "
                f"({start_date} - {end_date})"
            )
        return reports

    async def find_conflicts(
        self,
        user_id: str,
        target_date: date,
        start_time: str,
        end_time: str,
        exclude_id: Optional[UUID] = None,
    ) -> list[ConflictItem]:
        """Conflicts against the latest committed placements and busy slots."""
        placements = await self.placement_repo.list_by_range(user_id, target_date, target_date)
        busy_slots = await self.busy_slot_repo.list_by_range(user_id, target_date, target_date)
        return find_conflicts(target_date, start_time, end_time, placements, busy_slots, exclude_id)
