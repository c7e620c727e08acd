"""Pydantic models (schemas) for the scheduling engine."""

from scheduling_engine.models.enums import (
    OutcomeStatus,
    PlacementSource,
    PlacementStatus,
    ProposalDecision,
    ProposalResolution,
    ProposalStatus,
)
from scheduling_engine.models.task import RecurrenceRule, Task, TaskCreate
from scheduling_engine.models.schedule import (
    DayWindow,
    PlacementTimeUpdate,
    ScheduleEntry,
    ScheduleGenerateRequest,
    SchedulePlacement,
    ScheduleResult,
    ScheduleView,
    StoredWorkdaySettings,
    SynthesizedOccurrence,
    WorkdayPreferences,
)
from scheduling_engine.models.calendar import (
    BusySlot,
    CalendarSyncRequest,
    ConflictItem,
    ConflictReport,
)
from scheduling_engine.models.proposal import (
    BatchResult,
    EditResult,
    ProposalOutcome,
    RescheduleProposal,
)
from scheduling_engine.models.completion import TaskCompletion

__all__ = [
    # Enums
    "PlacementStatus",
    "PlacementSource",
    "ProposalStatus",
    "ProposalResolution",
    "ProposalDecision",
    "OutcomeStatus",
    # Task
    "Task",
    "TaskCreate",
    "RecurrenceRule",
    # Schedule
    "SchedulePlacement",
    "DayWindow",
    "WorkdayPreferences",
    "StoredWorkdaySettings",
    "ScheduleResult",
    "SynthesizedOccurrence",
    "ScheduleEntry",
    "ScheduleView",
    "ScheduleGenerateRequest",
    "PlacementTimeUpdate",
    # Calendar
    "BusySlot",
    "ConflictReport",
    "ConflictItem",
    "CalendarSyncRequest",
    # Proposal
    "RescheduleProposal",
    "ProposalOutcome",
    "BatchResult",
    "EditResult",
    # Completion
    "TaskCompletion",
]
