"""
SQLite implementation of workday settings repository.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select

from scheduling_engine.infrastructure.local.database import WorkdaySettingsORM, get_session_factory
from scheduling_engine.interfaces.workday_settings_repository import IWorkdaySettingsRepository
from scheduling_engine.models.schedule import (
    DayWindow,
    StoredWorkdaySettings,
    WorkdayPreferences,
)
from scheduling_engine.utils.clock import now_utc


class SqliteWorkdaySettingsRepository(IWorkdaySettingsRepository):
    """SQLite implementation of workday settings repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    def _orm_to_model(self, orm: WorkdaySettingsORM) -> StoredWorkdaySettings:
        weekend = DayWindow(**orm.weekend_window_json) if orm.weekend_window_json else None
        return StoredWorkdaySettings(
            user_id=orm.user_id,
            weekday=DayWindow(**orm.weekday_window_json),
            weekend=weekend,
            allow_weekends=bool(orm.allow_weekends),
            weekday_max_minutes=orm.weekday_max_minutes,
            weekend_max_minutes=orm.weekend_max_minutes,
            auto_reschedule_enabled=bool(orm.auto_reschedule_enabled),
            reschedule_window_days=orm.reschedule_window_days,
            updated_at=orm.updated_at,
        )

    async def get(self, user_id: str) -> Optional[StoredWorkdaySettings]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(WorkdaySettingsORM).where(WorkdaySettingsORM.user_id == user_id)
            )
            orm = result.scalar_one_or_none()
            return self._orm_to_model(orm) if orm else None

    async def upsert(self, user_id: str, preferences: WorkdayPreferences) -> StoredWorkdaySettings:
        async with self._session_factory() as session:
            result = await session.execute(
                select(WorkdaySettingsORM).where(WorkdaySettingsORM.user_id == user_id)
            )
            orm = result.scalar_one_or_none()
            now = now_utc()
            if orm is None:
                orm = WorkdaySettingsORM(user_id=user_id, created_at=now)
                session.add(orm)
            orm.weekday_window_json = preferences.weekday.model_dump(mode="json")
            orm.weekend_window_json = (
                preferences.weekend.model_dump(mode="json") if preferences.weekend else None
            )
            orm.allow_weekends = preferences.allow_weekends
            orm.weekday_max_minutes = preferences.weekday_max_minutes
            orm.weekend_max_minutes = preferences.weekend_max_minutes
            orm.auto_reschedule_enabled = preferences.auto_reschedule_enabled
            orm.reschedule_window_days = preferences.reschedule_window_days
            orm.updated_at = now
            await session.commit()
            await session.refresh(orm)
            return self._orm_to_model(orm)
