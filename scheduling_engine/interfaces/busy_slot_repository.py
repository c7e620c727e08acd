"""
Calendar busy slot repository interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

from scheduling_engine.models.calendar import BusySlot


class IBusySlotRepository(ABC):
    """Abstract interface for synced calendar busy slots."""

    @abstractmethod
    async def upsert_many(self, user_id: str, slots: list[BusySlot]) -> list[BusySlot]:
        """Insert or replace slots by ID."""
        pass

    @abstractmethod
    async def list_by_range(
        self,
        user_id: str,
        start_date: date,
        end_date: date,
        calendar_ids: Optional[list[str]] = None,
    ) -> list[BusySlot]:
        """List slots dated within [start_date, end_date]."""
        pass

    @abstractmethod
    async def delete_by_source(self, user_id: str, calendar_id: str, source_id: str) -> int:
        """Delete every slot synced from one provider event. Returns the count removed."""
        pass
