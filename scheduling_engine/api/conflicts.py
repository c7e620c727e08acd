"""
Calendar conflict API endpoints.
"""

from __future__ import annotations

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from scheduling_engine.api.deps import (
    BusySlotRepo,
    ConflictSvc,
    CurrentUser,
    to_http_exception,
)
from scheduling_engine.core.exceptions import SchedulingError
from scheduling_engine.core.logger import logger
from scheduling_engine.models.calendar import BusySlot, CalendarSyncRequest, ConflictReport
from scheduling_engine.services.calendar_normalizer import normalize_calendar_event

router = APIRouter()


@router.get("/conflicts", response_model=list[ConflictReport])
async def list_conflicts(
    user: CurrentUser,
    service: ConflictSvc,
    start_date: date = Query(..., description="First day (YYYY-MM-DD)"),
    end_date: date = Query(..., description="Last day (YYYY-MM-DD)"),
    plan_id: Optional[UUID] = Query(None, description="Filter by plan ID"),
):
    """Busy calendar slots that overlap scheduled placements."""
    if end_date < start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end_date must not be before start_date",
        )
    return await service.detect_conflicts(user.id, start_date, end_date, plan_id=plan_id)


@router.post("/calendar/busy-slots", response_model=list[BusySlot])
async def sync_busy_slots(
    payload: CalendarSyncRequest,
    user: CurrentUser,
    repo: BusySlotRepo,
):
    """Normalize provider events into busy slots and store them."""
    slots: list[BusySlot] = []
    try:
        for event in payload.events:
            slots.extend(
                normalize_calendar_event(
                    event,
                    user.id,
                    calendar_id=payload.calendar_id,
                    timezone=payload.timezone,
                )
            )
    except SchedulingError as exc:
        raise to_http_exception(exc)
    stored = await repo.upsert_many(user.id, slots)
    logger.info(f"Synced {len(stored)} busy slots from {len(payload.events)} events for user {user.id}")
    return stored
