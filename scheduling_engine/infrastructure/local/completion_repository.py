"""
SQLite implementation of task completion repository.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID, uuid4

from sqlalchemy import and_, select

from scheduling_engine.infrastructure.local.database import TaskCompletionORM, get_session_factory
from scheduling_engine.interfaces.completion_repository import ICompletionRepository
from scheduling_engine.models.completion import TaskCompletion
from scheduling_engine.utils.clock import now_utc


class SqliteCompletionRepository(ICompletionRepository):
    """SQLite implementation of task completion repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    def _orm_to_model(self, orm: TaskCompletionORM) -> TaskCompletion:
        return TaskCompletion(
            id=UUID(orm.id),
            user_id=orm.user_id,
            task_id=UUID(orm.task_id),
            date=orm.date,
            completed_at=orm.completed_at,
        )

    async def record(self, user_id: str, task_id: UUID, completed_on: date) -> TaskCompletion:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TaskCompletionORM).where(
                    and_(
                        TaskCompletionORM.user_id == user_id,
                        TaskCompletionORM.task_id == str(task_id),
                        TaskCompletionORM.date == completed_on,
                    )
                )
            )
            orm = result.scalar_one_or_none()
            if orm:
                return self._orm_to_model(orm)
            orm = TaskCompletionORM(
                id=str(uuid4()),
                user_id=user_id,
                task_id=str(task_id),
                date=completed_on,
                completed_at=now_utc(),
            )
            session.add(orm)
            await session.commit()
            await session.refresh(orm)
            return self._orm_to_model(orm)

    async def exists(self, user_id: str, task_id: UUID, completed_on: date) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TaskCompletionORM.id).where(
                    and_(
                        TaskCompletionORM.user_id == user_id,
                        TaskCompletionORM.task_id == str(task_id),
                        TaskCompletionORM.date == completed_on,
                    )
                )
            )
            return result.scalar_one_or_none() is not None

    async def list_by_range(
        self, user_id: str, start_date: date, end_date: date
    ) -> list[TaskCompletion]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TaskCompletionORM)
                .where(
                    and_(
                        TaskCompletionORM.user_id == user_id,
                        TaskCompletionORM.date >= start_date,
                        TaskCompletionORM.date <= end_date,
                    )
                )
                .order_by(TaskCompletionORM.date.asc())
            )
            return [self._orm_to_model(orm) for orm in result.scalars().all()]
