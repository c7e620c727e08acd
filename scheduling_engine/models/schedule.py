"""
Schedule models: placements, workday preferences and schedule views.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, computed_field

from scheduling_engine.models.enums import PlacementSource, PlacementStatus


class SchedulePlacement(BaseModel):
    """A task assigned to a concrete date and time window."""

    id: UUID = Field(default_factory=uuid4)
    user_id: str
    task_id: UUID
    plan_id: Optional[UUID] = None
    date: date
    start_time: Optional[str] = Field(None, description="HH:MM (None = all-day)")
    end_time: Optional[str] = Field(None, description="HH:MM (None = all-day)")
    duration_minutes: int = Field(..., ge=0)
    day_index: int = Field(0, ge=0, description="Offset from the first day of the plan")
    status: PlacementStatus = PlacementStatus.SCHEDULED
    source: PlacementSource = PlacementSource.SCHEDULER
    reschedule_count: int = 0
    reschedule_reason: Optional[str] = None
    last_rescheduled_at: Optional[datetime] = None
    version: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DayWindow(BaseModel):
    """Working window for one kind of day. Times are validated by the scheduler."""

    start: str = "09:00"
    end: str = "17:00"
    lunch_start: Optional[str] = "12:00"
    lunch_end: Optional[str] = "13:00"


class WorkdayPreferences(BaseModel):
    """Per-user working hours and weekend policy."""

    weekday: DayWindow = Field(default_factory=DayWindow)
    weekend: Optional[DayWindow] = Field(None, description="Falls back to the weekday window")
    allow_weekends: bool = False
    weekday_max_minutes: Optional[int] = Field(
        None, ge=1, description="Tasks longer than this prefer weekend days"
    )
    weekend_max_minutes: Optional[int] = Field(None, ge=1)
    auto_reschedule_enabled: bool = Field(True, description="Propose new slots for overdue placements")
    reschedule_window_days: Optional[int] = Field(
        None, ge=0, description="Days searched after today; falls back to RESCHEDULE_SEARCH_DAYS"
    )

    @classmethod
    def from_settings(cls, settings) -> "WorkdayPreferences":
        return cls(
            weekday=DayWindow(
                start=settings.WORKDAY_START,
                end=settings.WORKDAY_END,
                lunch_start=settings.LUNCH_START,
                lunch_end=settings.LUNCH_END,
            ),
            allow_weekends=settings.ALLOW_WEEKENDS,
            weekday_max_minutes=settings.WEEKDAY_MAX_MINUTES,
            weekend_max_minutes=settings.WEEKEND_MAX_MINUTES,
        )


class StoredWorkdaySettings(WorkdayPreferences):
    """Workday preferences persisted for a user."""

    user_id: str
    updated_at: Optional[datetime] = None


class ScheduleResult(BaseModel):
    """Output of one scheduling run."""

    start_date: date
    end_date: date
    placements: tuple[SchedulePlacement, ...] = ()

    @computed_field
    @property
    def total_minutes(self) -> int:
        return sum(p.duration_minutes for p in self.placements)

    class Config:
        frozen = True


class SynthesizedOccurrence(BaseModel):
    """Virtual occurrence of an indefinite recurring task. Never persisted."""

    id: str
    task_id: UUID
    plan_id: Optional[UUID] = None
    name: str
    date: date
    start_time: str
    end_time: str
    duration_minutes: int
    completed: bool = False

    class Config:
        frozen = True


class ScheduleEntry(BaseModel):
    """Read-only row of a merged schedule view."""

    id: str
    task_id: UUID
    plan_id: Optional[UUID] = None
    date: date
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration_minutes: int
    status: PlacementStatus
    is_synthetic: bool = False
    editable: bool = True
    completed: bool = False

    class Config:
        frozen = True


class ScheduleView(BaseModel):
    """Persisted placements merged with synthesized occurrences, date ordered."""

    start_date: date
    end_date: date
    entries: tuple[ScheduleEntry, ...] = ()

    class Config:
        frozen = True


class ScheduleGenerateRequest(BaseModel):
    """Request body for generating a schedule."""

    task_ids: list[UUID] = Field(..., min_length=1)
    plan_id: Optional[UUID] = None
    start_date: date
    end_date: date


class PlacementTimeUpdate(BaseModel):
    """Request body for a manual time edit."""

    date: date
    start_time: str
    end_time: str
    expected_version: int = Field(..., ge=1)
