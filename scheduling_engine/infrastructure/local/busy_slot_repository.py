"""
SQLite implementation of calendar busy slot repository.
"""

from __future__ import annotations

from datetime import date
from typing import Optional
from uuid import UUID

from sqlalchemy import and_, delete, select

from scheduling_engine.infrastructure.local.database import BusySlotORM, get_session_factory
from scheduling_engine.interfaces.busy_slot_repository import IBusySlotRepository
from scheduling_engine.models.calendar import BusySlot
from scheduling_engine.utils.clock import now_utc


class SqliteBusySlotRepository(IBusySlotRepository):
    """SQLite implementation of busy slot repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    def _orm_to_model(self, orm: BusySlotORM) -> BusySlot:
        return BusySlot(
            id=orm.id,
            user_id=orm.user_id,
            calendar_id=orm.calendar_id,
            source_id=orm.source_id,
            date=orm.date,
            start_time=orm.start_time,
            end_time=orm.end_time,
            summary=orm.summary,
            is_busy=bool(orm.is_busy),
            is_system_created=bool(orm.is_system_created),
            linked_placement_id=UUID(orm.linked_placement_id) if orm.linked_placement_id else None,
        )

    async def upsert_many(self, user_id: str, slots: list[BusySlot]) -> list[BusySlot]:
        async with self._session_factory() as session:
            now = now_utc()
            stored: list[BusySlotORM] = []
            for slot in slots:
                orm = await session.get(BusySlotORM, slot.id)
                if orm is None:
                    orm = BusySlotORM(id=slot.id, user_id=user_id)
                    session.add(orm)
                orm.calendar_id = slot.calendar_id
                orm.source_id = slot.source_id
                orm.date = slot.date
                orm.start_time = slot.start_time
                orm.end_time = slot.end_time
                orm.summary = slot.summary
                orm.is_busy = slot.is_busy
                orm.is_system_created = slot.is_system_created
                orm.linked_placement_id = str(slot.linked_placement_id) if slot.linked_placement_id else None
                orm.synced_at = now
                stored.append(orm)
            await session.commit()
            return [self._orm_to_model(orm) for orm in stored]

    async def list_by_range(
        self,
        user_id: str,
        start_date: date,
        end_date: date,
        calendar_ids: Optional[list[str]] = None,
    ) -> list[BusySlot]:
        async with self._session_factory() as session:
            query = select(BusySlotORM).where(
                and_(
                    BusySlotORM.user_id == user_id,
                    BusySlotORM.date >= start_date,
                    BusySlotORM.date <= end_date,
                )
            )
            if calendar_ids:
                query = query.where(BusySlotORM.calendar_id.in_(calendar_ids))
            result = await session.execute(
                query.order_by(BusySlotORM.date.asc(), BusySlotORM.start_time.asc())
            )
            return [self._orm_to_model(orm) for orm in result.scalars().all()]

    async def delete_by_source(self, user_id: str, calendar_id: str, source_id: str) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                delete(BusySlotORM).where(
                    and_(
                        BusySlotORM.user_id == user_id,
                        BusySlotORM.calendar_id == calendar_id,
                        BusySlotORM.source_id == source_id,
                    )
                )
            )
            await session.commit()
            return result.rowcount
