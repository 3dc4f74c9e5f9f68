"""Notification composition for dispatch events.

This package turns dispatch events into localized messages:
- NotificationComposer: one method per event type, returns NotificationMessage
- TemplateRenderer: Jinja2 rendering of subject / HTML / text variants
- Time labels: reminder (truncated) and pending (remainder kept) wording
- Payload builders: event data from offers and group bookings

Composition is pure; sending is the delivery channel's job.
"""

from .composer import NotificationComposer
from .models import (
    BookingCancelledStaffData,
    EventType,
    GroupServiceEntry,
    JobCancelledAdminData,
    JobEscalationData,
    JobReAvailableData,
    JobReminderData,
    JobSummary,
    JobUnassignedAdminData,
    NewJobData,
    NotificationError,
    NotificationTemplateError,
)
from .payloads import (
    build_booking_cancelled_data,
    build_cancelled_admin_data,
    build_escalation_data,
    build_job_summary,
    build_new_job_data,
    build_re_available_data,
    build_reminder_data,
    build_unassigned_admin_data,
)
from .templates import TemplateRenderer, format_money
from .timelabels import format_minutes, format_pending_label, format_time_label, resolve_locale

__all__ = [
    # Composer
    "NotificationComposer",
    "TemplateRenderer",
    "EventType",
    # Event data
    "JobSummary",
    "GroupServiceEntry",
    "NewJobData",
    "JobReAvailableData",
    "JobCancelledAdminData",
    "BookingCancelledStaffData",
    "JobReminderData",
    "JobEscalationData",
    "JobUnassignedAdminData",
    # Exceptions
    "NotificationError",
    "NotificationTemplateError",
    # Builders
    "build_job_summary",
    "build_new_job_data",
    "build_re_available_data",
    "build_cancelled_admin_data",
    "build_booking_cancelled_data",
    "build_reminder_data",
    "build_escalation_data",
    "build_unassigned_admin_data",
    # Labels
    "format_time_label",
    "format_pending_label",
    "format_minutes",
    "format_money",
    "resolve_locale",
]
