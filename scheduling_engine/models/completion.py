"""Task completion records."""

from datetime import date, datetime
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class TaskCompletion(BaseModel):
    """A task marked done on a given calendar day."""

    id: UUID = Field(default_factory=uuid4)
    user_id: str
    task_id: UUID
    date: date
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True
