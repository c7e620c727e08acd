"""
Task repository interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from scheduling_engine.models.task import Task, TaskCreate


class ITaskRepository(ABC):
    """Abstract interface for task persistence."""

    @abstractmethod
    async def create(self, user_id: str, task: TaskCreate) -> Task:
        """Create a new task."""
        pass

    @abstractmethod
    async def get(self, user_id: str, task_id: UUID) -> Optional[Task]:
        """Get a task by ID."""
        pass

    @abstractmethod
    async def list(
        self,
        user_id: str,
        plan_id: Optional[UUID] = None,
        task_ids: Optional[list[UUID]] = None,
    ) -> list[Task]:
        """List tasks for a user, optionally narrowed to a plan or explicit IDs."""
        pass

    @abstractmethod
    async def list_indefinite_recurring(
        self, user_id: str, plan_id: Optional[UUID] = None
    ) -> list[Task]:
        """List tasks whose recurrence is open-ended."""
        pass
