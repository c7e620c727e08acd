"""Reschedule proposal models for placements whose window was missed."""

from datetime import date, datetime
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, computed_field

from scheduling_engine.models.calendar import ConflictItem
from scheduling_engine.models.enums import (
    OutcomeStatus,
    ProposalDecision,
    ProposalResolution,
    ProposalStatus,
)
from scheduling_engine.models.schedule import SchedulePlacement

DEFAULT_RESCHEDULE_REASON = "auto_reschedule_overdue"


class RescheduleProposal(BaseModel):
    """A suggested new slot for a missed placement, awaiting user review.

    At most one proposal per placement is pending at any time.
    """
    id: UUID = Field(default_factory=uuid4)
    user_id: str
    plan_id: Optional[UUID] = None
    placement_id: UUID
    task_id: UUID
    original_date: date
    original_start_time: Optional[str] = None
    original_end_time: Optional[str] = None
    original_day_index: int = 0
    proposed_date: date
    proposed_start_time: str
    proposed_end_time: str
    proposed_day_index: int = 0
    state: ProposalStatus = ProposalStatus.PENDING
    resolution: Optional[ProposalResolution] = None
    reschedule_count: int = 1
    reason: str = DEFAULT_RESCHEDULE_REASON
    created_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.state == ProposalStatus.PENDING

    class Config:
        from_attributes = True


class ProposalOutcome(BaseModel):
    """Result of applying one decision to one proposal."""
    proposal_id: UUID
    decision: ProposalDecision
    status: OutcomeStatus
    placement: Optional[SchedulePlacement] = None
    conflicts: list[ConflictItem] = Field(default_factory=list)
    error: Optional[str] = None


class BatchResult(BaseModel):
    """Independent outcomes of a bulk accept/reject."""
    outcomes: list[ProposalOutcome] = Field(default_factory=list)

    @computed_field
    @property
    def applied_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status == OutcomeStatus.APPLIED)

    @computed_field
    @property
    def failed_count(self) -> int:
        return len(self.outcomes) - self.applied_count


class EditResult(BaseModel):
    """Result of a manual time edit. Not applied when conflicts is non-empty."""
    applied: bool
    placement: Optional[SchedulePlacement] = None
    conflicts: list[ConflictItem] = Field(default_factory=list)
