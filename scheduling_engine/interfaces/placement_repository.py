"""
Schedule placement repository interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Iterable, Optional
from uuid import UUID

from scheduling_engine.models.enums import PlacementSource, PlacementStatus
from scheduling_engine.models.schedule import SchedulePlacement


class IPlacementRepository(ABC):
    """Abstract interface for schedule placement persistence."""

    @abstractmethod
    async def create_many(
        self, user_id: str, placements: list[SchedulePlacement]
    ) -> list[SchedulePlacement]:
        """Persist placements in one transaction."""
        pass

    @abstractmethod
    async def get(self, user_id: str, placement_id: UUID) -> Optional[SchedulePlacement]:
        """Get a placement by ID."""
        pass

    @abstractmethod
    async def list_by_range(
        self,
        user_id: str,
        start_date: date,
        end_date: date,
        plan_id: Optional[UUID] = None,
    ) -> list[SchedulePlacement]:
        """List placements dated within [start_date, end_date], ordered by date and start."""
        pass

    @abstractmethod
    async def list_by_status(
        self,
        user_id: str,
        statuses: Iterable[PlacementStatus],
        until: Optional[date] = None,
        plan_id: Optional[UUID] = None,
    ) -> list[SchedulePlacement]:
        """List placements in any of the given states, dated on or before `until`."""
        pass

    @abstractmethod
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
        """
        Move a placement, conditioned on its version.

        Raises:
            NotFoundError: Placement does not exist
            StaleWriteError: Version changed since it was read
        """
        pass

    @abstractmethod
    async def update_status(
        self,
        user_id: str,
        placement_id: UUID,
        status: PlacementStatus,
        expected_version: Optional[int] = None,
    ) -> SchedulePlacement:
        """Change a placement's status (optionally version-checked)."""
        pass

    @abstractmethod
    async def list_user_ids(self, statuses: Iterable[PlacementStatus]) -> list[str]:
        """Distinct users that own placements in any of the given states."""
        pass
