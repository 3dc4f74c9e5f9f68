"""Event data builders for the notification composer.

This module turns JobOffer / GroupBookingAggregate records into the
composer's event dataclasses so engine components never assemble message
fields by hand.
"""

from decimal import Decimal
from typing import Optional

from jobdispatch.domain.models import CancellationEvent, GroupBookingAggregate, JobOffer

from .models import (
    BookingCancelledStaffData,
    GroupServiceEntry,
    JobCancelledAdminData,
    JobEscalationData,
    JobReAvailableData,
    JobReminderData,
    JobSummary,
    JobUnassignedAdminData,
    NewJobData,
)


def build_job_summary(offer: JobOffer) -> JobSummary:
    return JobSummary(
        service_name=offer.service_name,
        scheduled_at=offer.scheduled_at,
        duration_minutes=offer.duration_minutes,
        earnings=offer.earnings,
        location=offer.location,
    )


def build_new_job_data(
    offer: JobOffer, group: Optional[GroupBookingAggregate] = None
) -> NewJobData:
    """Build ``new_job`` data for an offer.

    For a group booking every current position of the aggregate is listed
    with its own job id; otherwise the message refers to this offer alone.

    Args:
        offer: The offer being dispatched
        group: Aggregate of the offer's booking (used only for group bookings)

    Returns:
        NewJobData ready for NotificationComposer.new_job
    """
    if offer.is_group_booking and group is not None and group.children:
        children = group.children
        return NewJobData(
            job=build_job_summary(offer),
            job_ids=[child.id for child in children],
            is_group=True,
            total_recipients=group.total_group_size,
            group_services=[
                GroupServiceEntry(
                    recipient_index=child.recipient_index,
                    service_name=child.service_name,
                    duration_minutes=child.duration_minutes,
                    earnings=child.earnings,
                    recipient_name=child.recipient_name,
                    job_id=child.id,
                )
                for child in children
            ],
        )

    return NewJobData(job=build_job_summary(offer), job_ids=[offer.id])


def build_re_available_data(replacement: JobOffer) -> JobReAvailableData:
    return JobReAvailableData(
        job=build_job_summary(replacement),
        new_job_id=replacement.id,
        is_group=replacement.is_group_booking,
        recipient_name=replacement.recipient_name,
    )


def build_cancelled_admin_data(
    cancelled: JobOffer,
    event: CancellationEvent,
    staff_name: str,
    group: Optional[GroupBookingAggregate] = None,
) -> JobCancelledAdminData:
    """Operator data for a holder's cancellation.

    The fill ratio comes from the aggregate as it stands after the cascade,
    so the cancelled position is no longer counted.
    """
    is_group = cancelled.is_group_booking and group is not None
    return JobCancelledAdminData(
        job=build_job_summary(cancelled),
        staff_name=staff_name,
        reason_code=event.reason_code,
        notes=event.notes,
        customer_name=cancelled.customer_name,
        booking_number=cancelled.booking_number,
        is_group=is_group,
        active_staff_count=group.active_assigned_count if is_group else 0,
        total_recipients=group.total_group_size if is_group else cancelled.total_group_size,
    )


def build_booking_cancelled_data(
    offer: JobOffer,
    reason: str,
    refund_status: Optional[str] = None,
    refund_amount: Optional[Decimal] = None,
) -> BookingCancelledStaffData:
    return BookingCancelledStaffData(
        job=build_job_summary(offer),
        reason=reason,
        booking_number=offer.booking_number,
        refund_status=refund_status,
        refund_amount=refund_amount,
    )


def build_reminder_data(offer: JobOffer, minutes_before: int) -> JobReminderData:
    return JobReminderData(
        job=build_job_summary(offer),
        job_id=offer.id,
        minutes_before=minutes_before,
        customer_name=offer.customer_name,
    )


def build_escalation_data(
    offer: JobOffer, minutes_pending: int, level: int, urgent: bool
) -> JobEscalationData:
    return JobEscalationData(
        job=build_job_summary(offer),
        job_id=offer.id,
        minutes_pending=minutes_pending,
        level=level,
        urgent=urgent,
    )


def build_unassigned_admin_data(
    offer: JobOffer, minutes_pending: int, level: int
) -> JobUnassignedAdminData:
    return JobUnassignedAdminData(
        job=build_job_summary(offer),
        job_id=offer.id,
        minutes_pending=minutes_pending,
        level=level,
        eligible_count=len(offer.eligible_staff_ids),
        customer_name=offer.customer_name,
        booking_number=offer.booking_number,
    )
