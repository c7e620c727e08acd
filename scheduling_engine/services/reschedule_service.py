"""
Reschedule proposal engine.

Placements whose window elapsed without a completion get one pending proposal
for a new slot. The user accepts it, rejects it (placement stays, flagged
overdue) or marks the task complete for the original date.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Awaitable, Callable, Optional
from uuid import UUID

from scheduling_engine.core.config import get_settings
from scheduling_engine.core.exceptions import (
    CapacityExhaustedError,
    DuplicateProposalError,
    InvalidStateError,
    NotFoundError,
    SchedulingError,
)
from scheduling_engine.core.logger import setup_logger
from scheduling_engine.interfaces.busy_slot_repository import IBusySlotRepository
from scheduling_engine.interfaces.completion_repository import ICompletionRepository
from scheduling_engine.interfaces.placement_repository import IPlacementRepository
from scheduling_engine.interfaces.proposal_repository import IProposalRepository
from scheduling_engine.interfaces.workday_settings_repository import IWorkdaySettingsRepository
from scheduling_engine.models.enums import OutcomeStatus, PlacementStatus, ProposalDecision
from scheduling_engine.models.proposal import (
    BatchResult,
    ProposalOutcome,
    RescheduleProposal,
)
from scheduling_engine.models.schedule import SchedulePlacement, WorkdayPreferences
from scheduling_engine.services.conflict_service import INACTIVE_STATUSES, find_conflicts
from scheduling_engine.services.placement_service import load_preferences
from scheduling_engine.services.time_block_scheduler import TimeBlockScheduler
from scheduling_engine.utils.clock import Clock, now_utc
from scheduling_engine.utils.time_utils import (
    calculate_duration,
    is_cross_day_task,
    should_skip_past_task_instance,
)

logger = setup_logger(__name__)

OVERDUE_CANDIDATE_STATUSES = (
    PlacementStatus.SCHEDULED,
    PlacementStatus.RESCHEDULED,
    PlacementStatus.OVERDUE,
)


def _reserved_slot(proposal: RescheduleProposal) -> SchedulePlacement:
    """The proposed window of a pending proposal, as an occupied placement."""
    return SchedulePlacement(
        id=proposal.placement_id,
        user_id=proposal.user_id,
        task_id=proposal.task_id,
        plan_id=proposal.plan_id,
        date=proposal.proposed_date,
        start_time=proposal.proposed_start_time,
        end_time=proposal.proposed_end_time,
        duration_minutes=calculate_duration(
            proposal.proposed_start_time, proposal.proposed_end_time
        ),
        status=PlacementStatus.RESCHEDULED,
    )


class RescheduleService:
    """Service for the overdue placement -> proposal -> decision workflow."""

    def __init__(
        self,
        placement_repo: IPlacementRepository,
        proposal_repo: IProposalRepository,
        completion_repo: ICompletionRepository,
        busy_slot_repo: IBusySlotRepository,
        clock: Clock,
        settings_repo: Optional[IWorkdaySettingsRepository] = None,
        scheduler: Optional[TimeBlockScheduler] = None,
        search_days: Optional[int] = None,
    ):
        self.placement_repo = placement_repo
        self.proposal_repo = proposal_repo
        self.completion_repo = completion_repo
        self.busy_slot_repo = busy_slot_repo
        self.settings_repo = settings_repo
        self.clock = clock
        self.scheduler = scheduler or TimeBlockScheduler()
        self.search_days = (
            search_days if search_days is not None else get_settings().RESCHEDULE_SEARCH_DAYS
        )

    async def is_auto_reschedule_enabled(self, user_id: str) -> bool:
        preferences = await load_preferences(self.settings_repo, user_id)
        return preferences.auto_reschedule_enabled

    def _window_days(self, preferences: WorkdayPreferences) -> int:
        if preferences.reschedule_window_days is not None:
            return preferences.reschedule_window_days
        return self.search_days

    async def detect_overdue(
        self, user_id: str, plan_id: Optional[UUID] = None
    ) -> list[SchedulePlacement]:
        """Placements whose end has passed with no completion and no pending proposal."""
        today, now_time = self.clock.snapshot()
        candidates = await self.placement_repo.list_by_status(
            user_id, OVERDUE_CANDIDATE_STATUSES, until=today, plan_id=plan_id
        )
        elapsed: list[SchedulePlacement] = []
        for placement in candidates:
            if not placement.start_time or not placement.end_time:
                continue
            end_date = placement.date
            if is_cross_day_task(placement.start_time, placement.end_time):
                end_date = placement.date + timedelta(days=1)
            if should_skip_past_task_instance(end_date, placement.end_time, today, now_time):
                elapsed.append(placement)
        if not elapsed:
            return []

        earliest = min(p.date for p in elapsed)
        completions = await self.completion_repo.list_by_range(user_id, earliest, today)
        completed = {(c.task_id, c.date) for c in completions}
        pending = {p.placement_id for p in await self.proposal_repo.list_pending(user_id)}

        overdue = [
            p
            for p in elapsed
            if (p.task_id, p.date) not in completed and p.id not in pending
        ]
        logger.debug(f"Detected {len(overdue)} overdue placements for user {user_id}")
        return overdue

    async def propose(self, user_id: str, placement: SchedulePlacement) -> RescheduleProposal:
        """
        Create a pending proposal for the placement, or return the one that exists.

        Raises:
            CapacityExhaustedError: No free slot within the search window
        """
        existing = await self.proposal_repo.get_pending_for_placement(user_id, placement.id)
        if existing:
            logger.debug(f"Placement {placement.id} already has pending proposal {existing.id}")
            return existing

        now = self.clock.now()
        today = now.date()
        preferences = await load_preferences(self.settings_repo, user_id)
        search_end = today + timedelta(days=self._window_days(preferences))
        booked = [
            p
            for p in await self.placement_repo.list_by_range(user_id, today, search_end)
            if p.id != placement.id and p.status not in INACTIVE_STATUSES
        ]
        # Slots offered by other pending proposals are held until decided
        pending_proposals = await self.proposal_repo.list_pending(user_id)
        booked.extend(
            _reserved_slot(pending)
            for pending in pending_proposals
            if pending.placement_id != placement.id
            and today <= pending.proposed_date <= search_end
        )
        busy_slots = await self.busy_slot_repo.list_by_range(user_id, today, search_end)

        slot = self.scheduler.find_next_available_slot(
            placement.duration_minutes,
            today,
            search_end,
            preferences,
            existing=booked,
            busy_slots=busy_slots,
            current_time=now,
        )
        if slot is None:
            raise CapacityExhaustedError(
                f"No free {placement.duration_minutes} min slot for placement {placement.id} "
                f"between {today} and {search_end}",
                task_ids=[str(placement.task_id)],
            )

        proposal = RescheduleProposal(
            user_id=user_id,
            plan_id=placement.plan_id,
            placement_id=placement.id,
            task_id=placement.task_id,
            original_date=placement.date,
            original_start_time=placement.start_time,
            original_end_time=placement.end_time,
            original_day_index=placement.day_index,
            proposed_date=slot.date,
            proposed_start_time=slot.start_time,
            proposed_end_time=slot.end_time,
            proposed_day_index=max(0, placement.day_index + (slot.date - placement.date).days),
            reschedule_count=placement.reschedule_count + 1,
            created_at=now_utc(),
        )
        try:
            created = await self.proposal_repo.create(proposal)
        except DuplicateProposalError:
            winner = await self.proposal_repo.get_pending_for_placement(user_id, placement.id)
            if winner is None:
                raise
            logger.info(f"Proposal race for placement {placement.id}; using {winner.id}")
            return winner

        logger.info(
            f"Proposed moving placement {placement.id} from {placement.date} "
            f"{placement.start_time} to {slot.date} {slot.start_time}-{slot.end_time}"
        )
        return created

    async def process_overdue(
        self, user_id: str, plan_id: Optional[UUID] = None
    ) -> list[RescheduleProposal]:
        """Detect overdue placements and propose a new slot for each."""
        if not await self.is_auto_reschedule_enabled(user_id):
            logger.debug(f"Auto-reschedule is disabled for user {user_id}")
            return []
        proposals: list[RescheduleProposal] = []
        for placement in await self.detect_overdue(user_id, plan_id=plan_id):
            try:
                proposals.append(await self.propose(user_id, placement))
            except CapacityExhaustedError as exc:
                logger.warning(f"Could not propose a slot for placement {placement.id}: {exc.message}")
        if proposals:
            logger.info(f"Created {len(proposals)} reschedule proposals for user {user_id}")
        return proposals

    async def list_pending(
        self, user_id: str, plan_id: Optional[UUID] = None
    ) -> list[RescheduleProposal]:
        return await self.proposal_repo.list_pending(user_id, plan_id=plan_id)

    async def _get_pending(self, user_id: str, proposal_id: UUID) -> RescheduleProposal:
        proposal = await self.proposal_repo.get(user_id, proposal_id)
        if not proposal:
            raise NotFoundError(f"Proposal {proposal_id} not found")
        if not proposal.is_pending:
            raise InvalidStateError(
                f"Proposal {proposal_id} is already {proposal.state.value}",
                details={"state": proposal.state.value},
            )
        return proposal

    async def accept(self, user_id: str, proposal_id: UUID) -> ProposalOutcome:
        """
        Move the placement to the proposed slot.

        The slot is re-checked against the latest committed placements and busy
        slots first; if it is taken the conflicts are returned and nothing changes.
        """
        proposal = await self._get_pending(user_id, proposal_id)
        placements = await self.placement_repo.list_by_range(
            user_id, proposal.proposed_date, proposal.proposed_date
        )
        busy_slots = await self.busy_slot_repo.list_by_range(
            user_id, proposal.proposed_date, proposal.proposed_date
        )
        conflicts = find_conflicts(
            proposal.proposed_date,
            proposal.proposed_start_time,
            proposal.proposed_end_time,
            placements,
            busy_slots,
            exclude_id=proposal.placement_id,
        )
        if conflicts:
            logger.info(f"Proposal {proposal_id} conflicts with {len(conflicts)} items; not applied")
            return ProposalOutcome(
                proposal_id=proposal_id,
                decision=ProposalDecision.ACCEPT,
                status=OutcomeStatus.CONFLICT,
                conflicts=conflicts,
            )

        _, placement = await self.proposal_repo.accept(user_id, proposal_id, now_utc())
        logger.info(
            f"Accepted proposal {proposal_id}: placement {placement.id} now "
            f"{placement.date} {placement.start_time}-{placement.end_time}"
        )
        return ProposalOutcome(
            proposal_id=proposal_id,
            decision=ProposalDecision.ACCEPT,
            status=OutcomeStatus.APPLIED,
            placement=placement,
        )

    async def reject(self, user_id: str, proposal_id: UUID) -> ProposalOutcome:
        """Keep the original time and flag the placement overdue."""
        await self._get_pending(user_id, proposal_id)
        _, placement = await self.proposal_repo.reject(user_id, proposal_id, now_utc())
        logger.info(f"Rejected proposal {proposal_id}: placement {placement.id} kept as overdue")
        return ProposalOutcome(
            proposal_id=proposal_id,
            decision=ProposalDecision.REJECT,
            status=OutcomeStatus.APPLIED,
            placement=placement,
        )

    async def mark_complete(self, user_id: str, proposal_id: UUID) -> ProposalOutcome:
        """Record the task as done on its original date and close the proposal."""
        await self._get_pending(user_id, proposal_id)
        _, placement = await self.proposal_repo.complete(user_id, proposal_id, now_utc())
        logger.info(f"Completed placement {placement.id} via proposal {proposal_id}")
        return ProposalOutcome(
            proposal_id=proposal_id,
            decision=ProposalDecision.COMPLETE,
            status=OutcomeStatus.APPLIED,
            placement=placement,
        )

    async def accept_all(self, user_id: str, plan_id: Optional[UUID] = None) -> BatchResult:
        return await self._apply_all(user_id, plan_id, ProposalDecision.ACCEPT, self.accept)

    async def reject_all(self, user_id: str, plan_id: Optional[UUID] = None) -> BatchResult:
        return await self._apply_all(user_id, plan_id, ProposalDecision.REJECT, self.reject)

    async def _apply_all(
        self,
        user_id: str,
        plan_id: Optional[UUID],
        decision: ProposalDecision,
        apply: Callable[[str, UUID], Awaitable[ProposalOutcome]],
    ) -> BatchResult:
        """Apply one decision to every pending proposal, each in its own transaction."""
        result = BatchResult()
        for proposal in await self.proposal_repo.list_pending(user_id, plan_id=plan_id):
            try:
                outcome = await apply(user_id, proposal.id)
            except SchedulingError as exc:
                logger.warning(f"Failed to {decision.value} proposal {proposal.id}: {exc.message}")
                outcome = ProposalOutcome(
                    proposal_id=proposal.id,
                    decision=decision,
                    status=OutcomeStatus.FAILED,
                    error=exc.message,
                )
            result.outcomes.append(outcome)
        logger.info(
            f"Batch {decision.value} for user {user_id}: "
            f"{result.applied_count} applied, {result.failed_count} not applied"
        )
        return result
