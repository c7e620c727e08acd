"""
Task completion repository interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from uuid import UUID

from scheduling_engine.models.completion import TaskCompletion


class ICompletionRepository(ABC):
    """Abstract interface for task completion records."""

    @abstractmethod
    async def record(self, user_id: str, task_id: UUID, completed_on: date) -> TaskCompletion:
        """Record a completion (idempotent per task and date)."""
        pass

    @abstractmethod
    async def exists(self, user_id: str, task_id: UUID, completed_on: date) -> bool:
        """Check whether the task was completed on the date."""
        pass

    @abstractmethod
    async def list_by_range(
        self, user_id: str, start_date: date, end_date: date
    ) -> list[TaskCompletion]:
        """List completions dated within [start_date, end_date]."""
        pass
