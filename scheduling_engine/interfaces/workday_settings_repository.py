"""
Workday settings repository interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from scheduling_engine.models.schedule import StoredWorkdaySettings, WorkdayPreferences


class IWorkdaySettingsRepository(ABC):
    """Abstract interface for per-user workday preferences."""

    @abstractmethod
    async def get(self, user_id: str) -> Optional[StoredWorkdaySettings]:
        """Get stored preferences for a user."""
        pass

    @abstractmethod
    async def upsert(self, user_id: str, preferences: WorkdayPreferences) -> StoredWorkdaySettings:
        """Create or update preferences for a user."""
        pass
