"""
Workday settings API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter

from scheduling_engine.api.deps import CurrentUser, WorkdaySettingsRepo, to_http_exception
from scheduling_engine.core.config import get_settings
from scheduling_engine.core.exceptions import SchedulingError
from scheduling_engine.models.schedule import StoredWorkdaySettings, WorkdayPreferences
from scheduling_engine.services.time_block_scheduler import validate_preferences

router = APIRouter()


@router.get("/workday-settings", response_model=StoredWorkdaySettings)
async def get_workday_settings(
    user: CurrentUser,
    repo: WorkdaySettingsRepo,
):
    settings = await repo.get(user.id)
    if settings:
        return settings
    return await repo.upsert(user.id, WorkdayPreferences.from_settings(get_settings()))


@router.put("/workday-settings", response_model=StoredWorkdaySettings)
async def update_workday_settings(
    payload: WorkdayPreferences,
    user: CurrentUser,
    repo: WorkdaySettingsRepo,
):
    try:
        validate_preferences(payload)
    except SchedulingError as exc:
        raise to_http_exception(exc)
    return await repo.upsert(user.id, payload)
