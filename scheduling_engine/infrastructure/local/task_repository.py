"""
SQLite implementation of task repository.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import and_, select

from scheduling_engine.infrastructure.local.database import TaskORM, get_session_factory
from scheduling_engine.interfaces.task_repository import ITaskRepository
from scheduling_engine.models.task import RecurrenceRule, Task, TaskCreate
from scheduling_engine.utils.clock import now_utc


class SqliteTaskRepository(ITaskRepository):
    """SQLite implementation of task repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    def _orm_to_model(self, orm: TaskORM) -> Task:
        recurrence = None
        if orm.is_recurring:
            # Stored rows are not re-validated here; the synthesizer checks completeness
            recurrence = RecurrenceRule.model_construct(
                is_recurring=True,
                is_indefinite=bool(orm.is_indefinite),
                days_of_week={int(day) for day in (orm.recurrence_days or [])},
                default_start_time=orm.default_start_time,
                default_end_time=orm.default_end_time,
            )
        return Task(
            id=UUID(orm.id),
            user_id=orm.user_id,
            plan_id=UUID(orm.plan_id) if orm.plan_id else None,
            name=orm.name,
            estimated_duration_minutes=orm.estimated_duration_minutes,
            complexity_score=orm.complexity_score or 0,
            priority=orm.priority or 3,
            recurrence=recurrence,
        )

    async def create(self, user_id: str, task: TaskCreate) -> Task:
        async with self._session_factory() as session:
            rule = task.recurrence
            orm = TaskORM(
                id=str(uuid4()),
                user_id=user_id,
                plan_id=str(task.plan_id) if task.plan_id else None,
                name=task.name,
                estimated_duration_minutes=task.estimated_duration_minutes,
                complexity_score=task.complexity_score,
                priority=task.priority,
                is_recurring=bool(rule and rule.is_recurring),
                is_indefinite=bool(rule and rule.is_indefinite),
                recurrence_days=sorted(rule.days_of_week) if rule else [],
                default_start_time=rule.default_start_time if rule else None,
                default_end_time=rule.default_end_time if rule else None,
                created_at=now_utc(),
            )
            session.add(orm)
            await session.commit()
            await session.refresh(orm)
            return self._orm_to_model(orm)

    async def get(self, user_id: str, task_id: UUID) -> Optional[Task]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TaskORM).where(
                    and_(TaskORM.id == str(task_id), TaskORM.user_id == user_id)
                )
            )
            orm = result.scalar_one_or_none()
            return self._orm_to_model(orm) if orm else None

    async def list(
        self,
        user_id: str,
        plan_id: Optional[UUID] = None,
        task_ids: Optional[list[UUID]] = None,
    ) -> list[Task]:
        async with self._session_factory() as session:
            query = select(TaskORM).where(TaskORM.user_id == user_id)
            if plan_id:
                query = query.where(TaskORM.plan_id == str(plan_id))
            if task_ids is not None:
                query = query.where(TaskORM.id.in_([str(task_id) for task_id in task_ids]))
            result = await session.execute(query.order_by(TaskORM.created_at.asc()))
            return [self._orm_to_model(orm) for orm in result.scalars().all()]

    async def list_indefinite_recurring(
        self, user_id: str, plan_id: Optional[UUID] = None
    ) -> list[Task]:
        async with self._session_factory() as session:
            query = select(TaskORM).where(
                and_(
                    TaskORM.user_id == user_id,
                    TaskORM.is_recurring.is_(True),
                    TaskORM.is_indefinite.is_(True),
                )
            )
            if plan_id:
                query = query.where(TaskORM.plan_id == str(plan_id))
            result = await session.execute(query.order_by(TaskORM.created_at.asc()))
            return [self._orm_to_model(orm) for orm in result.scalars().all()]
