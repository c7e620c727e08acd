"""
Reschedule proposal repository interface.

Every state transition runs in a single transaction that touches the proposal
and its placement together.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from scheduling_engine.models.proposal import RescheduleProposal
from scheduling_engine.models.schedule import SchedulePlacement


class IProposalRepository(ABC):
    """Abstract interface for reschedule proposal persistence."""

    @abstractmethod
    async def create(self, proposal: RescheduleProposal) -> RescheduleProposal:
        """
        Store a pending proposal and mark its placement pending_reschedule.

        Raises:
            DuplicateProposalError: The placement already has a pending proposal
        """
        pass

    @abstractmethod
    async def get(self, user_id: str, proposal_id: UUID) -> Optional[RescheduleProposal]:
        """Get a proposal by ID."""
        pass

    @abstractmethod
    async def get_pending_for_placement(
        self, user_id: str, placement_id: UUID
    ) -> Optional[RescheduleProposal]:
        """Get the pending proposal for a placement, if any."""
        pass

    @abstractmethod
    async def list_pending(
        self, user_id: str, plan_id: Optional[UUID] = None
    ) -> list[RescheduleProposal]:
        """List pending proposals, oldest first."""
        pass

    @abstractmethod
    async def accept(
        self,
        user_id: str,
        proposal_id: UUID,
        reviewed_at: datetime,
    ) -> tuple[RescheduleProposal, SchedulePlacement]:
        """
        Move the placement to the proposed slot and close the proposal.

        Raises:
            NotFoundError: Proposal or placement missing
            InvalidStateError: Proposal is no longer pending
        """
        pass

    @abstractmethod
    async def reject(
        self,
        user_id: str,
        proposal_id: UUID,
        reviewed_at: datetime,
    ) -> tuple[RescheduleProposal, SchedulePlacement]:
        """Keep the placement where it was, flag it overdue and close the proposal."""
        pass

    @abstractmethod
    async def complete(
        self,
        user_id: str,
        proposal_id: UUID,
        reviewed_at: datetime,
    ) -> tuple[RescheduleProposal, SchedulePlacement]:
        """Record a completion on the original date and close the proposal."""
        pass
