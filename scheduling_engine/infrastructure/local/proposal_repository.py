"""
SQLite implementation of reschedule proposal repository.

The partial unique index on (placement_id) WHERE status = 'pending' is what
serializes concurrent proposal creation; the loser sees IntegrityError.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import and_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from scheduling_engine.core.exceptions import (
    DuplicateProposalError,
    InvalidStateError,
    NotFoundError,
)
from scheduling_engine.infrastructure.local.database import (
    RescheduleProposalORM,
    SchedulePlacementORM,
    TaskCompletionORM,
    get_session_factory,
)
from scheduling_engine.infrastructure.local.placement_repository import placement_orm_to_model
from scheduling_engine.interfaces.proposal_repository import IProposalRepository
from scheduling_engine.models.enums import (
    PlacementStatus,
    ProposalResolution,
    ProposalStatus,
)
from scheduling_engine.models.proposal import RescheduleProposal
from scheduling_engine.models.schedule import SchedulePlacement
from scheduling_engine.utils.clock import now_utc
from scheduling_engine.utils.time_utils import calculate_duration


class SqliteProposalRepository(IProposalRepository):
    """SQLite implementation of reschedule proposal repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    def _orm_to_model(self, orm: RescheduleProposalORM) -> RescheduleProposal:
        return RescheduleProposal(
            id=UUID(orm.id),
            user_id=orm.user_id,
            plan_id=UUID(orm.plan_id) if orm.plan_id else None,
            placement_id=UUID(orm.placement_id),
            task_id=UUID(orm.task_id),
            original_date=orm.original_date,
            original_start_time=orm.original_start_time,
            original_end_time=orm.original_end_time,
            original_day_index=orm.original_day_index,
            proposed_date=orm.proposed_date,
            proposed_start_time=orm.proposed_start_time,
            proposed_end_time=orm.proposed_end_time,
            proposed_day_index=orm.proposed_day_index,
            state=ProposalStatus(orm.status),
            resolution=ProposalResolution(orm.resolution) if orm.resolution else None,
            reschedule_count=orm.reschedule_count,
            reason=orm.reason,
            created_at=orm.created_at,
            reviewed_at=orm.reviewed_at,
        )

    async def create(self, proposal: RescheduleProposal) -> RescheduleProposal:
        async with self._session_factory() as session:
            orm = RescheduleProposalORM(
                id=str(proposal.id or uuid4()),
                user_id=proposal.user_id,
                plan_id=str(proposal.plan_id) if proposal.plan_id else None,
                placement_id=str(proposal.placement_id),
                task_id=str(proposal.task_id),
                original_date=proposal.original_date,
                original_start_time=proposal.original_start_time,
                original_end_time=proposal.original_end_time,
                original_day_index=proposal.original_day_index,
                proposed_date=proposal.proposed_date,
                proposed_start_time=proposal.proposed_start_time,
                proposed_end_time=proposal.proposed_end_time,
                proposed_day_index=proposal.proposed_day_index,
                status=ProposalStatus.PENDING.value,
                reschedule_count=proposal.reschedule_count,
                reason=proposal.reason,
                created_at=proposal.created_at or now_utc(),
            )
            session.add(orm)
            try:
                await session.flush()
            except IntegrityError as exc:
                await session.rollback()
                existing = await self._find_pending_id(session, proposal.user_id, proposal.placement_id)
                raise DuplicateProposalError(proposal.placement_id, existing) from exc

            await session.execute(
                update(SchedulePlacementORM)
                .where(SchedulePlacementORM.id == str(proposal.placement_id))
                .values(
                    status=PlacementStatus.PENDING_RESCHEDULE.value,
                    version=SchedulePlacementORM.version + 1,
                    updated_at=now_utc(),
                )
            )
            await session.commit()
            await session.refresh(orm)
            return self._orm_to_model(orm)

    @staticmethod
    async def _find_pending_id(
        session: AsyncSession, user_id: str, placement_id: UUID
    ) -> Optional[str]:
        result = await session.execute(
            select(RescheduleProposalORM.id).where(
                and_(
                    RescheduleProposalORM.user_id == user_id,
                    RescheduleProposalORM.placement_id == str(placement_id),
                    RescheduleProposalORM.status == ProposalStatus.PENDING.value,
                )
            )
        )
        return result.scalar_one_or_none()

    async def get(self, user_id: str, proposal_id: UUID) -> Optional[RescheduleProposal]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(RescheduleProposalORM).where(
                    and_(
                        RescheduleProposalORM.id == str(proposal_id),
                        RescheduleProposalORM.user_id == user_id,
                    )
                )
            )
            orm = result.scalar_one_or_none()
            return self._orm_to_model(orm) if orm else None

    async def get_pending_for_placement(
        self, user_id: str, placement_id: UUID
    ) -> Optional[RescheduleProposal]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(RescheduleProposalORM).where(
                    and_(
                        RescheduleProposalORM.user_id == user_id,
                        RescheduleProposalORM.placement_id == str(placement_id),
                        RescheduleProposalORM.status == ProposalStatus.PENDING.value,
                    )
                )
            )
            orm = result.scalar_one_or_none()
            return self._orm_to_model(orm) if orm else None

    async def list_pending(
        self, user_id: str, plan_id: Optional[UUID] = None
    ) -> list[RescheduleProposal]:
        async with self._session_factory() as session:
            query = select(RescheduleProposalORM).where(
                and_(
                    RescheduleProposalORM.user_id == user_id,
                    RescheduleProposalORM.status == ProposalStatus.PENDING.value,
                )
            )
            if plan_id:
                query = query.where(RescheduleProposalORM.plan_id == str(plan_id))
            result = await session.execute(query.order_by(RescheduleProposalORM.created_at.asc()))
            return [self._orm_to_model(orm) for orm in result.scalars().all()]

    async def _close(
        self,
        session: AsyncSession,
        user_id: str,
        proposal_id: UUID,
        status: ProposalStatus,
        resolution: ProposalResolution,
        reviewed_at: datetime,
    ) -> RescheduleProposalORM:
        """Close a pending proposal inside the caller's transaction."""
        result = await session.execute(
            update(RescheduleProposalORM)
            .where(
                and_(
                    RescheduleProposalORM.id == str(proposal_id),
                    RescheduleProposalORM.user_id == user_id,
                    RescheduleProposalORM.status == ProposalStatus.PENDING.value,
                )
            )
            .values(status=status.value, resolution=resolution.value, reviewed_at=reviewed_at)
        )
        if result.rowcount == 0:
            current = await session.execute(
                select(RescheduleProposalORM.status).where(
                    and_(
                        RescheduleProposalORM.id == str(proposal_id),
                        RescheduleProposalORM.user_id == user_id,
                    )
                )
            )
            state = current.scalar_one_or_none()
            if state is None:
                raise NotFoundError(f"Proposal {proposal_id} not found")
            raise InvalidStateError(f"Proposal {proposal_id} is already {state}", details={"state": state})
        proposal = await session.execute(
            select(RescheduleProposalORM).where(RescheduleProposalORM.id == str(proposal_id))
        )
        return proposal.scalar_one()

    async def _load_placement(
        self, session: AsyncSession, user_id: str, placement_id: str
    ) -> SchedulePlacementORM:
        result = await session.execute(
            select(SchedulePlacementORM).where(
                and_(
                    SchedulePlacementORM.id == placement_id,
                    SchedulePlacementORM.user_id == user_id,
                )
            )
        )
        orm = result.scalar_one_or_none()
        if orm is None:
            raise NotFoundError(f"Placement {placement_id} not found")
        return orm

    async def accept(
        self,
        user_id: str,
        proposal_id: UUID,
        reviewed_at: datetime,
    ) -> tuple[RescheduleProposal, SchedulePlacement]:
        async with self._session_factory() as session:
            proposal = await self._close(
                session,
                user_id,
                proposal_id,
                ProposalStatus.ACCEPTED,
                ProposalResolution.RESCHEDULED,
                reviewed_at,
            )
            placement = await self._load_placement(session, user_id, proposal.placement_id)
            placement.date = proposal.proposed_date
            placement.start_time = proposal.proposed_start_time
            placement.end_time = proposal.proposed_end_time
            placement.duration_minutes = calculate_duration(
                proposal.proposed_start_time, proposal.proposed_end_time
            )
            placement.day_index = proposal.proposed_day_index
            placement.status = PlacementStatus.RESCHEDULED.value
            placement.reschedule_count = proposal.reschedule_count
            placement.reschedule_reason = proposal.reason
            placement.last_rescheduled_at = reviewed_at
            placement.version = (placement.version or 0) + 1
            placement.updated_at = reviewed_at
            await session.commit()
            return self._orm_to_model(proposal), placement_orm_to_model(placement)

    async def reject(
        self,
        user_id: str,
        proposal_id: UUID,
        reviewed_at: datetime,
    ) -> tuple[RescheduleProposal, SchedulePlacement]:
        async with self._session_factory() as session:
            proposal = await self._close(
                session,
                user_id,
                proposal_id,
                ProposalStatus.REJECTED,
                ProposalResolution.KEPT_OVERDUE,
                reviewed_at,
            )
            placement = await self._load_placement(session, user_id, proposal.placement_id)
            placement.status = PlacementStatus.OVERDUE.value
            placement.version = (placement.version or 0) + 1
            placement.updated_at = reviewed_at
            await session.commit()
            return self._orm_to_model(proposal), placement_orm_to_model(placement)

    async def complete(
        self,
        user_id: str,
        proposal_id: UUID,
        reviewed_at: datetime,
    ) -> tuple[RescheduleProposal, SchedulePlacement]:
        async with self._session_factory() as session:
            proposal = await self._close(
                session,
                user_id,
                proposal_id,
                ProposalStatus.REJECTED,
                ProposalResolution.COMPLETED,
                reviewed_at,
            )
            placement = await self._load_placement(session, user_id, proposal.placement_id)
            placement.status = PlacementStatus.COMPLETED.value
            placement.version = (placement.version or 0) + 1
            placement.updated_at = reviewed_at

            existing = await session.execute(
                select(TaskCompletionORM).where(
                    and_(
                        TaskCompletionORM.user_id == user_id,
                        TaskCompletionORM.task_id == proposal.task_id,
                        TaskCompletionORM.date == proposal.original_date,
                    )
                )
            )
            if existing.scalar_one_or_none() is None:
                session.add(
                    TaskCompletionORM(
                        id=str(uuid4()),
                        user_id=user_id,
                        task_id=proposal.task_id,
                        date=proposal.original_date,
                        completed_at=reviewed_at,
                    )
                )
            await session.commit()
            return self._orm_to_model(proposal), placement_orm_to_model(placement)
