"""Event data and exceptions for the notification composer.

Each composer method takes one of the dataclasses below. They carry only
what the message shows; building them from offers lives in ``payloads.py``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from jobdispatch.domain.exceptions import DispatchError
from jobdispatch.domain.models import CancellationReason, LocationInfo


class NotificationError(DispatchError):
    """Base exception for notification-related errors."""

    pass


class NotificationTemplateError(NotificationError):
    """Raised when template rendering fails due to configuration or missing variables."""

    pass


class EventType:
    """Event type names; also the template name prefixes."""

    NEW_JOB = "new_job"
    JOB_RE_AVAILABLE = "job_re_available"
    JOB_CANCELLED_TO_ADMIN = "job_cancelled_to_admin"
    BOOKING_CANCELLED_TO_STAFF = "booking_cancelled_to_staff"
    JOB_REMINDER = "job_reminder"
    JOB_ESCALATION = "job_escalation"
    JOB_UNASSIGNED_TO_ADMIN = "job_unassigned_to_admin"

    ALL = (
        NEW_JOB,
        JOB_RE_AVAILABLE,
        JOB_CANCELLED_TO_ADMIN,
        BOOKING_CANCELLED_TO_STAFF,
        JOB_REMINDER,
        JOB_ESCALATION,
        JOB_UNASSIGNED_TO_ADMIN,
    )


@dataclass
class JobSummary:
    """Job content shown in every staff-facing message."""

    service_name: str
    scheduled_at: datetime
    duration_minutes: int
    earnings: Decimal
    location: LocationInfo = field(default_factory=LocationInfo)


@dataclass
class GroupServiceEntry:
    """One position of a group booking as listed in a new-job message."""

    recipient_index: int
    service_name: str
    duration_minutes: int
    earnings: Decimal
    recipient_name: Optional[str] = None
    job_id: Optional[str] = None


@dataclass
class NewJobData:
    """Input for ``new_job``.

    ``job_ids`` drives the deep link of single-recipient messages: exactly one
    id links to that job, anything else links to the job list.
    """

    job: JobSummary
    job_ids: List[str] = field(default_factory=list)
    is_group: bool = False
    total_recipients: int = 1
    group_services: List[GroupServiceEntry] = field(default_factory=list)


@dataclass
class JobReAvailableData:
    job: JobSummary
    new_job_id: str
    is_group: bool = False
    recipient_name: Optional[str] = None


@dataclass
class JobCancelledAdminData:
    """Input for ``job_cancelled_to_admin``.

    ``fill_ratio`` is only shown for group bookings.
    """

    job: JobSummary
    staff_name: str
    reason_code: CancellationReason
    notes: Optional[str] = None
    customer_name: Optional[str] = None
    booking_number: Optional[str] = None
    is_group: bool = False
    active_staff_count: int = 0
    total_recipients: int = 1

    @property
    def fill_ratio(self) -> str:
        return f"{self.active_staff_count}/{self.total_recipients}"


@dataclass
class BookingCancelledStaffData:
    job: JobSummary
    reason: str
    booking_number: Optional[str] = None
    refund_status: Optional[str] = None
    refund_amount: Optional[Decimal] = None


@dataclass
class JobReminderData:
    job: JobSummary
    job_id: str
    minutes_before: int
    customer_name: Optional[str] = None


@dataclass
class JobEscalationData:
    """Input for ``job_escalation``; ``urgent`` switches to the urgent wording."""

    job: JobSummary
    job_id: str
    minutes_pending: int
    level: int = 1
    urgent: bool = False


@dataclass
class JobUnassignedAdminData:
    job: JobSummary
    job_id: str
    minutes_pending: int
    level: int
    eligible_count: int = 0
    customer_name: Optional[str] = None
    booking_number: Optional[str] = None
