"""Domain models and business-rule exceptions for the dispatch engine."""

from .exceptions import DispatchError, JobStateConflictError, ValidationError
from .models import (
    HELD_STATUSES,
    STAFFED_STATUSES,
    CancellationEvent,
    CancellationReason,
    EligibilityCriteria,
    GroupBookingAggregate,
    JobOffer,
    JobStatus,
    LocationInfo,
    NotificationMessage,
    StaffMember,
    unique_ids,
)

__all__ = [
    "JobOffer",
    "JobStatus",
    "LocationInfo",
    "GroupBookingAggregate",
    "CancellationEvent",
    "CancellationReason",
    "NotificationMessage",
    "StaffMember",
    "EligibilityCriteria",
    "HELD_STATUSES",
    "STAFFED_STATUSES",
    "unique_ids",
    "DispatchError",
    "JobStateConflictError",
    "ValidationError",
]
