"""
SQLite implementation of schedule placement repository.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import and_, select, update

from scheduling_engine.core.exceptions import NotFoundError, StaleWriteError
from scheduling_engine.infrastructure.local.database import SchedulePlacementORM, get_session_factory
from scheduling_engine.interfaces.placement_repository import IPlacementRepository
from scheduling_engine.models.enums import PlacementSource, PlacementStatus
from scheduling_engine.models.schedule import SchedulePlacement
from scheduling_engine.utils.clock import now_utc


def placement_orm_to_model(orm: SchedulePlacementORM) -> SchedulePlacement:
    return SchedulePlacement(
        id=UUID(orm.id),
        user_id=orm.user_id,
        task_id=UUID(orm.task_id),
        plan_id=UUID(orm.plan_id) if orm.plan_id else None,
        date=orm.date,
        start_time=orm.start_time,
        end_time=orm.end_time,
        duration_minutes=orm.duration_minutes,
        day_index=orm.day_index,
        status=PlacementStatus(orm.status),
        source=PlacementSource(orm.source),
        reschedule_count=orm.reschedule_count or 0,
        reschedule_reason=orm.reschedule_reason,
        last_rescheduled_at=orm.last_rescheduled_at,
        version=orm.version,
        created_at=orm.created_at,
        updated_at=orm.updated_at,
    )


class SqlitePlacementRepository(IPlacementRepository):
    """SQLite implementation of schedule placement repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    async def create_many(
        self, user_id: str, placements: list[SchedulePlacement]
    ) -> list[SchedulePlacement]:
        async with self._session_factory() as session:
            now = now_utc()
            rows = [
                SchedulePlacementORM(
                    id=str(p.id),
                    user_id=user_id,
                    task_id=str(p.task_id),
                    plan_id=str(p.plan_id) if p.plan_id else None,
                    date=p.date,
                    start_time=p.start_time,
                    end_time=p.end_time,
                    duration_minutes=p.duration_minutes,
                    day_index=p.day_index,
                    status=p.status.value,
                    source=p.source.value,
                    reschedule_count=p.reschedule_count,
                    reschedule_reason=p.reschedule_reason,
                    last_rescheduled_at=p.last_rescheduled_at,
                    version=1,
                    created_at=now,
                    updated_at=now,
                )
                for p in placements
            ]
            session.add_all(rows)
            await session.commit()
            return [placement_orm_to_model(orm) for orm in rows]

    async def get(self, user_id: str, placement_id: UUID) -> Optional[SchedulePlacement]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(SchedulePlacementORM).where(
                    and_(
                        SchedulePlacementORM.id == str(placement_id),
                        SchedulePlacementORM.user_id == user_id,
                    )
                )
            )
            orm = result.scalar_one_or_none()
            return placement_orm_to_model(orm) if orm else None

    async def list_by_range(
        self,
        user_id: str,
        start_date: date,
        end_date: date,
        plan_id: Optional[UUID] = None,
    ) -> list[SchedulePlacement]:
        async with self._session_factory() as session:
            query = select(SchedulePlacementORM).where(
                and_(
                    SchedulePlacementORM.user_id == user_id,
                    SchedulePlacementORM.date >= start_date,
                    SchedulePlacementORM.date <= end_date,
                )
            )
            if plan_id:
                query = query.where(SchedulePlacementORM.plan_id == str(plan_id))
            result = await session.execute(
                query.order_by(SchedulePlacementORM.date.asc(), SchedulePlacementORM.start_time.asc())
            )
            return [placement_orm_to_model(orm) for orm in result.scalars().all()]

    async def list_by_status(
        self,
        user_id: str,
        statuses: Iterable[PlacementStatus],
        until: Optional[date] = None,
        plan_id: Optional[UUID] = None,
    ) -> list[SchedulePlacement]:
        async with self._session_factory() as session:
            query = select(SchedulePlacementORM).where(
                and_(
                    SchedulePlacementORM.user_id == user_id,
                    SchedulePlacementORM.status.in_([s.value for s in statuses]),
                )
            )
            if until:
                query = query.where(SchedulePlacementORM.date <= until)
            if plan_id:
                query = query.where(SchedulePlacementORM.plan_id == str(plan_id))
            result = await session.execute(
                query.order_by(SchedulePlacementORM.date.asc(), SchedulePlacementORM.start_time.asc())
            )
            return [placement_orm_to_model(orm) for orm in result.scalars().all()]

    async def update_time(
        self,
        user_id: str,
        placement_id: UUID,
        new_date: date,
        start_time: str,
        end_time: str,
        duration_minutes: int,
        expected_version: int,
        source: Optional[PlacementSource] = None,
    ) -> SchedulePlacement:
        values = {
            "date": new_date,
            "start_time": start_time,
            "end_time": end_time,
            "duration_minutes": duration_minutes,
            "version": SchedulePlacementORM.version + 1,
            "updated_at": now_utc(),
        }
        if source is not None:
            values["source"] = source.value
        return await self._conditional_update(user_id, placement_id, values, expected_version)

    async def update_status(
        self,
        user_id: str,
        placement_id: UUID,
        status: PlacementStatus,
        expected_version: Optional[int] = None,
    ) -> SchedulePlacement:
        values = {
            "status": status.value,
            "version": SchedulePlacementORM.version + 1,
            "updated_at": now_utc(),
        }
        return await self._conditional_update(user_id, placement_id, values, expected_version)

    async def _conditional_update(
        self,
        user_id: str,
        placement_id: UUID,
        values: dict,
        expected_version: Optional[int],
    ) -> SchedulePlacement:
        async with self._session_factory() as session:
            conditions = [
                SchedulePlacementORM.id == str(placement_id),
                SchedulePlacementORM.user_id == user_id,
            ]
            if expected_version is not None:
                conditions.append(SchedulePlacementORM.version == expected_version)
            result = await session.execute(
                update(SchedulePlacementORM).where(and_(*conditions)).values(**values)
            )
            if result.rowcount == 0:
                await session.rollback()
                exists = await session.execute(
                    select(SchedulePlacementORM.version).where(
                        and_(
                            SchedulePlacementORM.id == str(placement_id),
                            SchedulePlacementORM.user_id == user_id,
                        )
                    )
                )
                current = exists.scalar_one_or_none()
                if current is None:
                    raise NotFoundError(f"Placement {placement_id} not found")
                raise StaleWriteError(
                    f"Placement {placement_id} was modified (version {current}, expected {expected_version})",
                    details={"current_version": current, "expected_version": expected_version},
                )
            await session.commit()
            refreshed = await session.execute(
                select(SchedulePlacementORM).where(SchedulePlacementORM.id == str(placement_id))
            )
            return placement_orm_to_model(refreshed.scalar_one())

    async def list_user_ids(self, statuses: Iterable[PlacementStatus]) -> list[str]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(SchedulePlacementORM.user_id)
                .where(SchedulePlacementORM.status.in_([s.value for s in statuses]))
                .distinct()
            )
            return [row for row in result.scalars().all()]
