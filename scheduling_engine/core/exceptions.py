"""
Custom exceptions for the scheduling engine.

Conflicts are not exceptions: they are returned as data (ConflictReport,
EditResult, ProposalOutcome) so callers can let the user resolve them.
"""

from typing import Any, Optional


class SchedulingError(Exception):
    """Base exception for the scheduling engine."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(SchedulingError):
    """Malformed input rejected before any computation."""

    pass


class InvalidTimeFormatError(ValidationError):
    """Time string is not a valid HH:MM value."""

    def __init__(self, value: Any):
        super().__init__(f"Invalid time format: {value!r} (expected HH:MM)", details={"value": value})
        self.value = value


class ConfigurationError(ValidationError):
    """Workday configuration leaves no usable capacity."""

    pass


class PreconditionViolation(SchedulingError):
    """Input violates a structural precondition (e.g. incomplete recurrence rule)."""

    pass


class CapacityExhaustedError(SchedulingError):
    """Tasks could not be placed anywhere in the requested date range."""

    def __init__(
        self,
        message: str,
        task_ids: Optional[list[str]] = None,
        days_needed: Optional[int] = None,
    ):
        super().__init__(message, details={"task_ids": task_ids or [], "days_needed": days_needed})
        self.task_ids = task_ids or []
        self.days_needed = days_needed


class NotFoundError(SchedulingError):
    """Resource not found."""

    pass


class InvalidStateError(SchedulingError):
    """Operation not allowed in the resource's current state."""

    pass


class DuplicateProposalError(SchedulingError):
    """A pending proposal already exists for the placement.

    Recoverable: the existing proposal is authoritative.
    """

    def __init__(self, placement_id: Any, existing_proposal_id: Any = None):
        super().__init__(
            f"Placement {placement_id} already has a pending reschedule proposal",
            details={"placement_id": str(placement_id), "existing_proposal_id": existing_proposal_id},
        )
        self.placement_id = placement_id
        self.existing_proposal_id = existing_proposal_id


class StaleWriteError(SchedulingError):
    """Row changed since it was read (optimistic concurrency check failed)."""

    pass


class InfrastructureError(SchedulingError):
    """Infrastructure-related error (DB, external services, etc.)."""

    pass
