"""
Reschedule proposal API endpoints.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query

from scheduling_engine.api.deps import CurrentUser, RescheduleSvc, to_http_exception
from scheduling_engine.core.exceptions import SchedulingError
from scheduling_engine.models.proposal import (
    BatchResult,
    ProposalOutcome,
    RescheduleProposal,
)

router = APIRouter()


@router.get("/pending", response_model=list[RescheduleProposal])
async def list_pending_reschedules(
    user: CurrentUser,
    service: RescheduleSvc,
    plan_id: Optional[UUID] = Query(None, description="Filter by plan ID"),
):
    """List pending reschedule proposals."""
    return await service.list_pending(user.id, plan_id=plan_id)


@router.post("/detect", response_model=list[RescheduleProposal])
async def detect_overdue(
    user: CurrentUser,
    service: RescheduleSvc,
    plan_id: Optional[UUID] = Query(None, description="Filter by plan ID"),
):
    """Create proposals for placements whose window elapsed."""
    return await service.process_overdue(user.id, plan_id=plan_id)


@router.post("/accept-all", response_model=BatchResult)
async def accept_all_reschedules(
    user: CurrentUser,
    service: RescheduleSvc,
    plan_id: Optional[UUID] = Query(None, description="Limit to one plan"),
):
    """Accept every pending proposal; each outcome is reported on its own."""
    return await service.accept_all(user.id, plan_id=plan_id)


@router.post("/reject-all", response_model=BatchResult)
async def reject_all_reschedules(
    user: CurrentUser,
    service: RescheduleSvc,
    plan_id: Optional[UUID] = Query(None, description="Limit to one plan"),
):
    """Reject every pending proposal; each outcome is reported on its own."""
    return await service.reject_all(user.id, plan_id=plan_id)


@router.post("/{proposal_id}/accept", response_model=ProposalOutcome)
async def accept_reschedule(
    proposal_id: UUID,
    user: CurrentUser,
    service: RescheduleSvc,
):
    """Move the placement to the proposed slot (conflicts are returned, not applied)."""
    try:
        return await service.accept(user.id, proposal_id)
    except SchedulingError as exc:
        raise to_http_exception(exc)


@router.post("/{proposal_id}/reject", response_model=ProposalOutcome)
async def reject_reschedule(
    proposal_id: UUID,
    user: CurrentUser,
    service: RescheduleSvc,
):
    """Keep the original time; the placement is flagged overdue."""
    try:
        return await service.reject(user.id, proposal_id)
    except SchedulingError as exc:
        raise to_http_exception(exc)


@router.post("/{proposal_id}/complete", response_model=ProposalOutcome)
async def complete_reschedule(
    proposal_id: UUID,
    user: CurrentUser,
    service: RescheduleSvc,
):
    """Mark the task done for its original date and close the proposal."""
    try:
        return await service.mark_complete(user.id, proposal_id)
    except SchedulingError as exc:
        raise to_http_exception(exc)
