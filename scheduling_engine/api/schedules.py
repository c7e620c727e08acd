"""
Schedule API endpoints.

Generation, the merged schedule view, and manual placement time edits.
"""

from __future__ import annotations

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from scheduling_engine.api.deps import CurrentUser, PlacementSvc, to_http_exception
from scheduling_engine.core.exceptions import SchedulingError
from scheduling_engine.models.proposal import EditResult
from scheduling_engine.models.schedule import (
    PlacementTimeUpdate,
    ScheduleGenerateRequest,
    ScheduleResult,
    ScheduleView,
)

router = APIRouter()


@router.post("/schedules/generate", response_model=ScheduleResult)
async def generate_schedule(
    payload: ScheduleGenerateRequest,
    user: CurrentUser,
    service: PlacementSvc,
):
    """Place the given tasks between start_date and end_date and persist the placements."""
    try:
        return await service.generate(
            user.id,
            payload.task_ids,
            payload.start_date,
            payload.end_date,
            plan_id=payload.plan_id,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc)


@router.get("/schedules", response_model=ScheduleView)
async def get_schedule(
    user: CurrentUser,
    service: PlacementSvc,
    start_date: date = Query(..., description="First day (YYYY-MM-DD)"),
    end_date: date = Query(..., description="Last day (YYYY-MM-DD)"),
    plan_id: Optional[UUID] = Query(None, description="Filter by plan ID"),
):
    """Persisted placements merged with synthesized recurring occurrences."""
    if end_date < start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end_date must not be before start_date",
        )
    try:
        return await service.get_view(user.id, start_date, end_date, plan_id=plan_id)
    except SchedulingError as exc:
        raise to_http_exception(exc)


@router.patch("/placements/{placement_id}/time", response_model=EditResult)
async def update_placement_time(
    placement_id: str,
    payload: PlacementTimeUpdate,
    user: CurrentUser,
    service: PlacementSvc,
):
    """Move a placement. Returns conflicts instead of writing when the time is taken."""
    if placement_id.startswith("synthetic-"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Synthesized recurring occurrences cannot be edited",
        )
    try:
        parsed_id = UUID(placement_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid placement id: {placement_id}",
        )
    try:
        return await service.edit_time(
            user.id,
            parsed_id,
            payload.date,
            payload.start_time,
            payload.end_time,
            payload.expected_version,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc)
