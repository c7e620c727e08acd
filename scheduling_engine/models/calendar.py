"""
External calendar models: busy slots and conflict reports.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class BusySlot(BaseModel):
    """An externally synced calendar block. Read-only to the scheduler."""

    id: str
    user_id: str
    calendar_id: Optional[str] = None
    source_id: Optional[str] = Field(None, description="Provider event id")
    date: date
    start_time: Optional[str] = Field(None, description="HH:MM (None = all-day)")
    end_time: Optional[str] = Field(None, description="HH:MM (None = all-day)")
    summary: Optional[str] = None
    is_busy: bool = True
    is_system_created: bool = False
    linked_placement_id: Optional[UUID] = None

    @property
    def is_all_day(self) -> bool:
        return self.start_time is None or self.end_time is None

    @property
    def is_engine_owned(self) -> bool:
        return self.is_system_created or self.linked_placement_id is not None

    class Config:
        from_attributes = True


class ConflictReport(BaseModel):
    """One busy slot that overlaps one or more placements."""

    date: date
    busy_slot: BusySlot
    placement_ids: list[UUID] = Field(default_factory=list)
    plan_ids: list[UUID] = Field(default_factory=list)


class ConflictItem(BaseModel):
    """Something occupying the time a manual edit wants."""

    kind: Literal["placement", "busy_slot"]
    id: str
    date: date
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    summary: Optional[str] = None


class CalendarSyncRequest(BaseModel):
    """Provider events to normalize into busy slots."""

    calendar_id: Optional[str] = None
    timezone: str = "UTC"
    events: list[dict[str, Any]] = Field(default_factory=list)
