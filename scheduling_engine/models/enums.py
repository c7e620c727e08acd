"""
Enum definitions for the scheduling engine.

These enums are used across models and provide type-safe status values.
"""

from enum import Enum


class PlacementStatus(str, Enum):
    """
    Lifecycle of a schedule placement.

    SCHEDULED -> PENDING_RESCHEDULE (window missed, proposal open)
      -> RESCHEDULED (proposal accepted)
      -> OVERDUE (proposal rejected, original time kept)
      -> COMPLETED (marked done)
    """

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    RESCHEDULED = "rescheduled"
    SKIPPED = "skipped"
    PENDING_RESCHEDULE = "pending_reschedule"
    OVERDUE = "overdue"


class PlacementSource(str, Enum):
    """Who created the placement."""

    SCHEDULER = "scheduler"
    MANUAL = "manual"
    CALENDAR = "calendar"


class ProposalStatus(str, Enum):
    """State of a reschedule proposal."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ProposalResolution(str, Enum):
    """How a closed proposal was resolved."""

    RESCHEDULED = "rescheduled"
    KEPT_OVERDUE = "kept_overdue"
    COMPLETED = "completed"


class ProposalDecision(str, Enum):
    """User decision applied to a pending proposal."""

    ACCEPT = "accept"
    REJECT = "reject"
    COMPLETE = "complete"


class OutcomeStatus(str, Enum):
    """Result of applying one decision."""

    APPLIED = "applied"
    CONFLICT = "conflict"
    FAILED = "failed"
