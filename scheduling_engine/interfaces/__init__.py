"""Abstract interfaces for infrastructure abstraction."""

from scheduling_engine.interfaces.busy_slot_repository import IBusySlotRepository
from scheduling_engine.interfaces.completion_repository import ICompletionRepository
from scheduling_engine.interfaces.placement_repository import IPlacementRepository
from scheduling_engine.interfaces.proposal_repository import IProposalRepository
from scheduling_engine.interfaces.task_repository import ITaskRepository
from scheduling_engine.interfaces.workday_settings_repository import IWorkdaySettingsRepository

__all__ = [
    "ITaskRepository",
    "IPlacementRepository",
    "IProposalRepository",
    "ICompletionRepository",
    "IBusySlotRepository",
    "IWorkdaySettingsRepository",
]
