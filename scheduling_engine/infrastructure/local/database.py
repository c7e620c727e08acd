"""
SQLite database configuration and ORM models.

This module defines the SQLAlchemy ORM models and database initialization.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    JSON,
    UniqueConstraint,
    text,
)
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from scheduling_engine.core.config import get_settings


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


# ===========================================
# ORM Models
# ===========================================


class TaskORM(Base):
    """Task ORM model."""

    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(255), nullable=False, index=True)
    plan_id = Column(String(36), nullable=True, index=True)
    name = Column(String(500), nullable=False)
    estimated_duration_minutes = Column(Integer, nullable=False)
    complexity_score = Column(Integer, default=0)
    priority = Column(Integer, default=3)
    is_recurring = Column(Boolean, default=False)
    is_indefinite = Column(Boolean, default=False, index=True)
    recurrence_days = Column(JSON, nullable=True, default=list)
    default_start_time = Column(String(5), nullable=True)
    default_end_time = Column(String(5), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class SchedulePlacementORM(Base):
    """Schedule placement ORM model."""

    __tablename__ = "schedule_placements"
    __table_args__ = (
        UniqueConstraint("task_id", "date", "start_time", "end_time", name="uq_placement_task_range"),
        Index("ix_schedule_placements_user_date", "user_id", "date"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(255), nullable=False, index=True)
    task_id = Column(String(36), nullable=False, index=True)
    plan_id = Column(String(36), nullable=True, index=True)
    date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=True)
    end_time = Column(String(5), nullable=True)
    duration_minutes = Column(Integer, nullable=False, default=0)
    day_index = Column(Integer, nullable=False, default=0)
    status = Column(String(30), nullable=False, default="scheduled", index=True)
    source = Column(String(20), nullable=False, default="scheduler")
    reschedule_count = Column(Integer, nullable=False, default=0)
    reschedule_reason = Column(Text, nullable=True)
    last_rescheduled_at = Column(DateTime, nullable=True)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)


class RescheduleProposalORM(Base):
    """Reschedule proposal ORM model.

    At most one row per placement may be pending.
    """

    __tablename__ = "reschedule_proposals"
    __table_args__ = (
        Index(
            "uq_reschedule_proposals_pending_placement",
            "placement_id",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(255), nullable=False, index=True)
    plan_id = Column(String(36), nullable=True, index=True)
    placement_id = Column(String(36), nullable=False, index=True)
    task_id = Column(String(36), nullable=False)
    original_date = Column(Date, nullable=False)
    original_start_time = Column(String(5), nullable=True)
    original_end_time = Column(String(5), nullable=True)
    original_day_index = Column(Integer, nullable=False, default=0)
    proposed_date = Column(Date, nullable=False)
    proposed_start_time = Column(String(5), nullable=False)
    proposed_end_time = Column(String(5), nullable=False)
    proposed_day_index = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="pending", index=True)
    resolution = Column(String(20), nullable=True)
    reschedule_count = Column(Integer, nullable=False, default=1)
    reason = Column(String(100), nullable=False, default="auto_reschedule_overdue")
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    reviewed_at = Column(DateTime, nullable=True)


class BusySlotORM(Base):
    """Synced calendar busy slot ORM model."""

    __tablename__ = "busy_slots"
    __table_args__ = (Index("ix_busy_slots_user_date", "user_id", "date"),)

    id = Column(String(255), primary_key=True)
    user_id = Column(String(255), nullable=False, index=True)
    calendar_id = Column(String(255), nullable=True)
    source_id = Column(String(255), nullable=True, index=True)
    date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=True)
    end_time = Column(String(5), nullable=True)
    summary = Column(Text, nullable=True)
    is_busy = Column(Boolean, nullable=False, default=True)
    is_system_created = Column(Boolean, nullable=False, default=False)
    linked_placement_id = Column(String(36), nullable=True)
    synced_at = Column(DateTime, default=datetime.utcnow)


class TaskCompletionORM(Base):
    """Task completion ORM model."""

    __tablename__ = "task_completions"
    __table_args__ = (
        UniqueConstraint("user_id", "task_id", "date", name="uq_task_completion_day"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(255), nullable=False, index=True)
    task_id = Column(String(36), nullable=False, index=True)
    date = Column(Date, nullable=False)
    completed_at = Column(DateTime, default=datetime.utcnow)


class WorkdaySettingsORM(Base):
    """Per-user workday settings ORM model."""

    __tablename__ = "workday_settings"

    user_id = Column(String(255), primary_key=True)
    weekday_window_json = Column(JSON, nullable=False)
    weekend_window_json = Column(JSON, nullable=True)
    allow_weekends = Column(Boolean, nullable=False, default=False)
    weekday_max_minutes = Column(Integer, nullable=True)
    weekend_max_minutes = Column(Integer, nullable=True)
    auto_reschedule_enabled = Column(Boolean, nullable=False, default=True)
    reschedule_window_days = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)


# ===========================================
# Database Session Management
# ===========================================


def get_engine():
    """Get async engine instance."""
    settings = get_settings()
    return create_async_engine(settings.DATABASE_URL, echo=settings.DEBUG)


def get_session_factory():
    """Get async session factory."""
    engine = get_engine()
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine=None):
    """Initialize database tables."""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

