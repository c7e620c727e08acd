"""
Task API endpoints.

Tasks arrive from upstream planners; this router only stores and lists them.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from scheduling_engine.api.deps import CurrentUser, TaskRepo, to_http_exception
from scheduling_engine.core.exceptions import SchedulingError
from scheduling_engine.models.task import Task, TaskCreate

router = APIRouter()


@router.post("", response_model=Task, status_code=status.HTTP_201_CREATED)
async def create_task(
    task: TaskCreate,
    user: CurrentUser,
    repo: TaskRepo,
):
    """Create a new task."""
    if task.estimated_duration_minutes <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="estimated_duration_minutes must be positive",
        )
    try:
        return await repo.create(user.id, task)
    except SchedulingError as exc:
        raise to_http_exception(exc)


@router.get("", response_model=list[Task])
async def list_tasks(
    user: CurrentUser,
    repo: TaskRepo,
    plan_id: Optional[UUID] = Query(None, description="Filter by plan ID"),
):
    """List tasks for the current user."""
    return await repo.list(user.id, plan_id=plan_id)
