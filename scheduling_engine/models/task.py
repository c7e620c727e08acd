"""
Task model definitions.

Tasks are the units of work the scheduler places. Indefinite recurring tasks
are never placed by the scheduler; the recurrence synthesizer expands them.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

from scheduling_engine.core.exceptions import PreconditionViolation
from scheduling_engine.utils.time_utils import normalize_time


class RecurrenceRule(BaseModel):
    """Weekly recurrence attached to a task."""

    is_recurring: bool = True
    is_indefinite: bool = False
    days_of_week: set[int] = Field(
        default_factory=set, description="0=Sunday ... 6=Saturday"
    )
    default_start_time: Optional[str] = Field(None, description="HH:MM, local time")
    default_end_time: Optional[str] = Field(None, description="HH:MM, may be <= start (crosses midnight)")

    @field_validator("days_of_week")
    @classmethod
    def _check_days(cls, value: set[int]) -> set[int]:
        for day in value:
            if day < 0 or day > 6:
                raise ValueError(f"day of week out of range: {day}")
        return value

    @field_validator("default_start_time", "default_end_time")
    @classmethod
    def _normalize_times(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return normalize_time(value)

    @model_validator(mode="after")
    def _check_indefinite(self) -> "RecurrenceRule":
        self.ensure_complete()
        return self

    def ensure_complete(self) -> None:
        """Indefinite rules need days and both default times."""
        if not self.is_indefinite:
            return
        missing = []
        if not self.days_of_week:
            missing.append("days_of_week")
        if not self.default_start_time:
            missing.append("default_start_time")
        if not self.default_end_time:
            missing.append("default_end_time")
        if missing:
            raise PreconditionViolation(
                f"Indefinite recurring task is missing {', '.join(missing)}",
                details={"missing": missing},
            )


class TaskBase(BaseModel):
    """Base task fields shared across create/read."""

    name: str = Field(..., min_length=1, max_length=500)
    plan_id: Optional[UUID] = Field(None, description="Owning plan (None = free mode)")
    estimated_duration_minutes: int = Field(..., description="Estimated duration in minutes")
    complexity_score: int = Field(0, ge=0, le=10)
    priority: int = Field(3, ge=1, le=4, description="1=critical ... 4=low")
    recurrence: Optional[RecurrenceRule] = None


class TaskCreate(TaskBase):
    """Input for creating a task."""

    pass


class Task(TaskBase):
    """Task with metadata."""

    id: UUID = Field(default_factory=uuid4)
    user_id: str

    @property
    def is_indefinite_recurring(self) -> bool:
        return bool(self.recurrence and self.recurrence.is_recurring and self.recurrence.is_indefinite)

    class Config:
        from_attributes = True
