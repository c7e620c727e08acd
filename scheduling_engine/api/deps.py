"""
Dependency injection for API endpoints.

This module provides FastAPI dependencies that inject the SQLite
infrastructure implementations and the services built on them.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from pydantic import BaseModel

from scheduling_engine.core.config import get_settings
from scheduling_engine.core.exceptions import (
    CapacityExhaustedError,
    DuplicateProposalError,
    InvalidStateError,
    NotFoundError,
    PreconditionViolation,
    SchedulingError,
    StaleWriteError,
    ValidationError,
)
from scheduling_engine.core.logger import logger
from scheduling_engine.interfaces.busy_slot_repository import IBusySlotRepository
from scheduling_engine.interfaces.completion_repository import ICompletionRepository
from scheduling_engine.interfaces.placement_repository import IPlacementRepository
from scheduling_engine.interfaces.proposal_repository import IProposalRepository
from scheduling_engine.interfaces.task_repository import ITaskRepository
from scheduling_engine.interfaces.workday_settings_repository import IWorkdaySettingsRepository
from scheduling_engine.services.conflict_service import ConflictService
from scheduling_engine.services.placement_service import PlacementService
from scheduling_engine.services.reschedule_service import RescheduleService
from scheduling_engine.utils.clock import Clock, SystemClock


# ===========================================
# Repository Dependencies
# ===========================================


@lru_cache()
def get_task_repository() -> ITaskRepository:
    """Get task repository instance."""
    from scheduling_engine.infrastructure.local.task_repository import SqliteTaskRepository
    return SqliteTaskRepository()


@lru_cache()
def get_placement_repository() -> IPlacementRepository:
    """Get placement repository instance."""
    from scheduling_engine.infrastructure.local.placement_repository import SqlitePlacementRepository
    return SqlitePlacementRepository()


@lru_cache()
def get_proposal_repository() -> IProposalRepository:
    """Get reschedule proposal repository instance."""
    from scheduling_engine.infrastructure.local.proposal_repository import SqliteProposalRepository
    return SqliteProposalRepository()


@lru_cache()
def get_completion_repository() -> ICompletionRepository:
    """Get task completion repository instance."""
    from scheduling_engine.infrastructure.local.completion_repository import SqliteCompletionRepository
    return SqliteCompletionRepository()


@lru_cache()
def get_busy_slot_repository() -> IBusySlotRepository:
    """Get busy slot repository instance."""
    from scheduling_engine.infrastructure.local.busy_slot_repository import SqliteBusySlotRepository
    return SqliteBusySlotRepository()


@lru_cache()
def get_workday_settings_repository() -> IWorkdaySettingsRepository:
    """Get workday settings repository instance."""
    from scheduling_engine.infrastructure.local.workday_settings_repository import (
        SqliteWorkdaySettingsRepository,
    )
    return SqliteWorkdaySettingsRepository()


@lru_cache()
def get_clock() -> Clock:
    """Wall clock in the configured timezone."""
    return SystemClock(get_settings().DEFAULT_TIMEZONE)


# ===========================================
# Service Dependencies
# ===========================================


@lru_cache()
def get_placement_service() -> PlacementService:
    return PlacementService(
        placement_repo=get_placement_repository(),
        task_repo=get_task_repository(),
        busy_slot_repo=get_busy_slot_repository(),
        completion_repo=get_completion_repository(),
        clock=get_clock(),
        settings_repo=get_workday_settings_repository(),
    )


@lru_cache()
def get_reschedule_service() -> RescheduleService:
    return RescheduleService(
        placement_repo=get_placement_repository(),
        proposal_repo=get_proposal_repository(),
        completion_repo=get_completion_repository(),
        busy_slot_repo=get_busy_slot_repository(),
        clock=get_clock(),
        settings_repo=get_workday_settings_repository(),
    )


@lru_cache()
def get_conflict_service() -> ConflictService:
    return ConflictService(
        placement_repo=get_placement_repository(),
        busy_slot_repo=get_busy_slot_repository(),
    )


# ===========================================
# Current User
# ===========================================


class User(BaseModel):
    """Caller identity resolved by the upstream authenticator."""

    id: str


async def get_current_user(
    x_user_id: Annotated[str | None, Header()] = None,
) -> User:
    """
    Get the current user from the X-User-Id header.

    Authentication happens upstream; this service trusts the forwarded id.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Id header required",
        )
    return User(id=x_user_id.strip())


# ===========================================
# Error Translation
# ===========================================


def to_http_exception(exc: SchedulingError) -> HTTPException:
    """Map a scheduling error to the matching HTTP status."""
    if isinstance(exc, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, (ValidationError, PreconditionViolation)):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(
        exc, (CapacityExhaustedError, InvalidStateError, StaleWriteError, DuplicateProposalError)
    ):
        code = status.HTTP_409_CONFLICT
    else:
        logger.error(f"Unhandled scheduling error: {exc.message}")
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = {"message": exc.message}
    if exc.details:
        detail["details"] = exc.details
    return HTTPException(status_code=code, detail=detail)


# ===========================================
# Type Aliases for Dependency Injection
# ===========================================

TaskRepo = Annotated[ITaskRepository, Depends(get_task_repository)]
BusySlotRepo = Annotated[IBusySlotRepository, Depends(get_busy_slot_repository)]
WorkdaySettingsRepo = Annotated[IWorkdaySettingsRepository, Depends(get_workday_settings_repository)]
PlacementSvc = Annotated[PlacementService, Depends(get_placement_service)]
RescheduleSvc = Annotated[RescheduleService, Depends(get_reschedule_service)]
ConflictSvc = Annotated[ConflictService, Depends(get_conflict_service)]
CurrentUser = Annotated[User, Depends(get_current_user)]
