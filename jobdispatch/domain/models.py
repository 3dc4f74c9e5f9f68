"""Core domain models for job offers, cancellations, and notifications.

This module defines the data structures used throughout the engine:
- JobOffer: one assignable unit of work with its own state machine
- GroupBookingAggregate: the child offers of a multi-recipient booking
- CancellationEvent: immutable record of a holder backing out
- NotificationMessage: rendered content plus its delivery stamp
- StaffMember / EligibilityCriteria: inputs to the eligible-staff resolver
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from jobdispatch.utils.timestamps import ensure_utc, utc_now

from .exceptions import ValidationError


class JobStatus(str, Enum):
    """Lifecycle states of a job offer."""

    OPEN = "open"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses in which an offer has exactly one holder
HELD_STATUSES = frozenset({JobStatus.ASSIGNED, JobStatus.IN_PROGRESS})

# Statuses that count toward a group booking being staffed
STAFFED_STATUSES = frozenset({JobStatus.ASSIGNED, JobStatus.IN_PROGRESS, JobStatus.COMPLETED})


class CancellationReason(str, Enum):
    """Closed set of reasons a holder may give when backing out of a job."""

    SCHEDULE_CONFLICT = "SCHEDULE_CONFLICT"
    ILLNESS = "ILLNESS"
    EMERGENCY = "EMERGENCY"
    TRANSPORTATION = "TRANSPORTATION"
    PERSONAL = "PERSONAL"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, value) -> "CancellationReason":
        """Coerce a code (case-insensitive) into a reason.

        Raises:
            ValidationError: If the code is not in the closed set
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        valid = ", ".join(reason.value for reason in cls)
        raise ValidationError(f"Unknown cancellation reason code: {value!r}. Must be one of: {valid}")


class LocationInfo(BaseModel):
    """Where the job takes place."""

    address: str = Field("", description="Street address of the job")
    hotel_name: Optional[str] = Field(None, description="Hotel name for hotel bookings")
    room_number: Optional[str] = Field(None, description="Hotel room number")

    @field_validator("hotel_name", "room_number")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        stripped = v.strip()
        return stripped or None


class JobOffer(BaseModel):
    """One assignable unit of work.

    Lifecycle: created ``open`` by the booking flow, moved to ``assigned`` by
    the acceptance gate, then ``in_progress``/``completed`` by the execution
    flow, or ``cancelled`` by the cancellation cascade. A cancelled offer is
    never reopened; the cascade creates a replacement with a new id instead.

    Invariant: ``assigned_staff_id`` is set exactly while the status is
    ``assigned`` or ``in_progress``.
    """

    id: str = Field(..., min_length=1, description="Offer identifier")
    parent_booking_id: str = Field(..., min_length=1, description="Booking this offer belongs to")
    recipient_index: int = Field(0, ge=0, description="0-based position within the booking")
    status: JobStatus = Field(JobStatus.OPEN, description="Current lifecycle state")
    eligible_staff_ids: List[str] = Field(
        default_factory=list, description="Staff this offer may be sent to (ordered, unique)"
    )
    assigned_staff_id: Optional[str] = Field(None, description="Current holder, if any")
    scheduled_at: datetime = Field(..., description="When the job starts (UTC)")
    earnings: Decimal = Field(Decimal("0"), ge=0, description="Staff earnings for this job")
    location: LocationInfo = Field(default_factory=LocationInfo)
    is_group_booking: bool = Field(False, description="Part of a multi-recipient booking")
    total_group_size: int = Field(1, ge=1, description="Number of offers in the booking")

    # Job content used when composing messages
    service_name: str = Field(..., min_length=1)
    duration_minutes: int = Field(60, gt=0)
    recipient_name: Optional[str] = None
    customer_name: Optional[str] = None
    booking_number: Optional[str] = None

    # Bookkeeping
    opened_at: Optional[datetime] = Field(None, description="When the offer became open (UTC)")
    replaces_offer_id: Optional[str] = Field(None, description="Cancelled offer this one replaces")
    escalation_level: int = Field(0, ge=0, description="Highest escalation level already sent")
    last_escalated_at: Optional[datetime] = None
    escalation_lease_until: Optional[datetime] = None

    @field_validator("eligible_staff_ids")
    @classmethod
    def dedupe_staff_ids(cls, v: List[str]) -> List[str]:
        """Strip ids, drop blanks, and remove duplicates keeping first occurrence."""
        return unique_ids(v)

    @field_validator("scheduled_at", "opened_at", "last_escalated_at", "escalation_lease_until")
    @classmethod
    def coerce_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @model_validator(mode="after")
    def check_holder_invariant(self):
        """Enforce the single-holder rule and group index bounds."""
        held = self.status in HELD_STATUSES
        if held and not self.assigned_staff_id:
            raise ValueError(f"Offer {self.id} is {self.status.value} but has no assigned staff")
        if not held and self.assigned_staff_id:
            raise ValueError(
                f"Offer {self.id} is {self.status.value} but still names holder {self.assigned_staff_id}"
            )
        if self.recipient_index >= self.total_group_size:
            raise ValueError(
                f"recipient_index {self.recipient_index} is outside a group of {self.total_group_size}"
            )
        return self

    @property
    def is_open(self) -> bool:
        return self.status is JobStatus.OPEN

    @property
    def is_held(self) -> bool:
        return self.status in HELD_STATUSES

    def criteria(self) -> "EligibilityCriteria":
        """Criteria for resolving who may receive this offer."""
        return EligibilityCriteria(scheduled_at=self.scheduled_at)


class GroupBookingAggregate(BaseModel):
    """All offers of one multi-recipient booking.

    Cancelled offers stay in ``offers`` as history; ``children`` holds only the
    current offer for each recipient position.
    """

    parent_booking_id: str
    total_group_size: int = Field(..., ge=1)
    offers: List[JobOffer] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_membership(self):
        for offer in self.offers:
            if offer.parent_booking_id != self.parent_booking_id:
                raise ValueError(
                    f"Offer {offer.id} belongs to booking {offer.parent_booking_id}, "
                    f"not {self.parent_booking_id}"
                )
        return self

    @classmethod
    def from_offers(cls, offers: List[JobOffer]) -> "GroupBookingAggregate":
        """Build the aggregate from every offer sharing a booking id."""
        if not offers:
            raise ValidationError("Cannot build a group booking from zero offers")
        first = offers[0]
        return cls(
            parent_booking_id=first.parent_booking_id,
            total_group_size=max(offer.total_group_size for offer in offers),
            offers=list(offers),
        )

    @property
    def children(self) -> List[JobOffer]:
        """Current (non-cancelled) offer per recipient position, by index."""
        current: Dict[int, JobOffer] = {}
        for offer in self.offers:
            if offer.status is JobStatus.CANCELLED:
                continue
            existing = current.get(offer.recipient_index)
            if existing is None or _opened_key(offer) >= _opened_key(existing):
                current[offer.recipient_index] = offer
        return [current[index] for index in sorted(current)]

    @property
    def active_assigned_count(self) -> int:
        """Children currently held by a staff member."""
        return sum(1 for child in self.children if child.status in HELD_STATUSES)

    @property
    def is_fully_staffed(self) -> bool:
        """True when every position has a child at assigned or later."""
        children = self.children
        return len(children) == self.total_group_size and all(
            child.status in STAFFED_STATUSES for child in children
        )

    @property
    def fill_ratio_label(self) -> str:
        return f"{self.active_assigned_count}/{self.total_group_size}"

    def holder_positions(self, staff_id: str) -> List[int]:
        """Recipient positions currently held by the given staff member."""
        return [
            child.recipient_index
            for child in self.children
            if child.status in HELD_STATUSES and child.assigned_staff_id == staff_id
        ]


class CancellationEvent(BaseModel):
    """Immutable, append-only record of a holder cancelling an offer."""

    job_offer_id: str = Field(..., min_length=1)
    staff_id: str = Field(..., min_length=1)
    reason_code: CancellationReason
    notes: Optional[str] = None
    timestamp: datetime = Field(default_factory=utc_now)

    model_config = {"frozen": True}

    @field_validator("notes")
    @classmethod
    def blank_notes_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        stripped = v.strip()
        return stripped or None

    @field_validator("timestamp")
    @classmethod
    def coerce_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @model_validator(mode="after")
    def notes_required_for_other(self):
        if self.reason_code is CancellationReason.OTHER and not self.notes:
            raise ValueError("notes are required when reason_code is OTHER")
        return self


class NotificationMessage(BaseModel):
    """Rendered message variants plus the outcome of sending them.

    Produced by the composer with no recipients; the delivery layer returns a
    stamped copy carrying recipients, ``sent_at`` and ``delivery_success``.
    Never used as a source of truth for offer state.
    """

    event_type: str
    locale: str
    recipient_ids: List[str] = Field(default_factory=list)
    subject: str
    html: str
    text: str
    sent_at: Optional[datetime] = None
    delivery_success: Optional[bool] = None

    def stamped(self, recipient_ids: List[str], success: bool) -> "NotificationMessage":
        """Copy of this message recording who it went to and whether it arrived."""
        return self.model_copy(
            update={
                "recipient_ids": list(recipient_ids),
                "sent_at": utc_now(),
                "delivery_success": success,
            }
        )


class StaffMember(BaseModel):
    """A field worker known to the reference store."""

    staff_id: str = Field(..., min_length=1)
    display_name: str = Field(..., min_length=1)
    is_available: bool = True
    is_active: bool = True


class EligibilityCriteria(BaseModel):
    """Input to the eligible-staff resolver."""

    scheduled_at: Optional[datetime] = None
    exclude_staff_ids: List[str] = Field(default_factory=list)


def unique_ids(ids) -> List[str]:
    """Strip, drop blanks, and de-duplicate ids preserving first occurrence."""
    seen = set()
    result = []
    for raw in ids or []:
        if raw is None:
            continue
        staff_id = str(raw).strip()
        if staff_id and staff_id not in seen:
            seen.add(staff_id)
            result.append(staff_id)
    return result


def _opened_key(offer: JobOffer):
    return offer.opened_at or offer.scheduled_at
