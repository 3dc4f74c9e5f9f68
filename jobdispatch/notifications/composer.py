"""Notification composer: event data + locale -> rendered NotificationMessage.

Composition has no side effects and no I/O beyond loading packaged
templates, so the same inputs always produce the same subject, HTML and
text. The returned message has no recipients; the delivery layer stamps
those on send.
"""

from typing import Dict, List, Optional

from jobdispatch.domain.models import LocationInfo, NotificationMessage
from jobdispatch.utils.timestamps import ensure_utc, resolve_timezone

from .i18n import get_labels, reason_label, refund_status_label
from .models import (
    BookingCancelledStaffData,
    EventType,
    JobCancelledAdminData,
    JobEscalationData,
    JobReAvailableData,
    JobReminderData,
    JobSummary,
    JobUnassignedAdminData,
    NewJobData,
)
from .templates import TemplateRenderer
from .timelabels import format_minutes, format_pending_label, format_time_label, resolve_locale


class NotificationComposer:
    """Builds localized messages for every dispatch event.

    Args:
        app_base_url: Staff app base URL for deep links; without it messages
            carry an "open the app" hint instead of a link
        display_timezone: IANA timezone for the dates and times shown
        renderer: Optional template renderer (shared across composers)
    """

    def __init__(
        self,
        app_base_url: Optional[str] = None,
        display_timezone: str = "UTC",
        renderer: Optional[TemplateRenderer] = None,
    ):
        self.app_base_url = (app_base_url or "").strip().rstrip("/") or None
        self.timezone = resolve_timezone(display_timezone)
        self.renderer = renderer or TemplateRenderer()

    def job_link(self, job_id: Optional[str]) -> Optional[str]:
        """Deep link to one job, or None without a base URL or id."""
        if not self.app_base_url or not job_id:
            return None
        return f"{self.app_base_url}/staff/jobs/{job_id}"

    def jobs_list_link(self) -> Optional[str]:
        if not self.app_base_url:
            return None
        return f"{self.app_base_url}/staff/jobs"

    def new_job(self, data: NewJobData, locale="en") -> NotificationMessage:
        """Offer a new job to eligible staff.

        Group bookings list every position with its own link; single bookings
        link to the job when exactly one id is known, else to the job list.
        """
        locale = resolve_locale(locale)
        t = get_labels(locale)
        group = data.is_group and bool(data.group_services)

        entries: List[Dict] = []
        link = None
        if group:
            for entry in sorted(data.group_services, key=lambda e: e.recipient_index):
                entries.append(
                    {
                        "name": entry.recipient_name
                        or t["recipient_numbered"] % {"number": entry.recipient_index + 1},
                        "service_name": entry.service_name,
                        "duration": format_minutes(entry.duration_minutes, locale),
                        "earnings": entry.earnings,
                        "url": self.job_link(entry.job_id),
                    }
                )
        else:
            job_ids = [job_id for job_id in data.job_ids if job_id]
            url = self.job_link(job_ids[0]) if len(job_ids) == 1 else self.jobs_list_link()
            link = self._link(t["view_job"], url)

        return self._render(
            EventType.NEW_JOB,
            locale,
            job=self._job_context(data.job, locale),
            group=group,
            total_recipients=data.total_recipients,
            entries=entries,
            link=link,
            app_hint=self.app_base_url is None,
        )

    def job_re_available(self, data: JobReAvailableData, locale="en") -> NotificationMessage:
        """Re-offer a replacement job after its holder cancelled."""
        locale = resolve_locale(locale)
        t = get_labels(locale)
        position = None
        if data.is_group:
            position = data.recipient_name or t["recipient_default"]

        return self._render(
            EventType.JOB_RE_AVAILABLE,
            locale,
            job=self._job_context(data.job, locale),
            position=position,
            link=self._link(t["view_job"], self.job_link(data.new_job_id)),
            app_hint=self.app_base_url is None,
        )

    def job_cancelled_to_admin(self, data: JobCancelledAdminData, locale="en") -> NotificationMessage:
        """Tell operators a holder cancelled; group bookings include the fill ratio."""
        locale = resolve_locale(locale)
        return self._render(
            EventType.JOB_CANCELLED_TO_ADMIN,
            locale,
            job=self._job_context(data.job, locale),
            staff_name=data.staff_name,
            reason=reason_label(data.reason_code, locale),
            notes=data.notes,
            customer_name=data.customer_name,
            booking_number=data.booking_number,
            fill_ratio=data.fill_ratio if data.is_group else None,
        )

    def booking_cancelled_to_staff(
        self, data: BookingCancelledStaffData, locale="en"
    ) -> NotificationMessage:
        """Tell a holder that the whole booking was cancelled by an operator."""
        locale = resolve_locale(locale)
        refund_amount = data.refund_amount if data.refund_amount and data.refund_amount > 0 else None
        return self._render(
            EventType.BOOKING_CANCELLED_TO_STAFF,
            locale,
            job=self._job_context(data.job, locale),
            reason=data.reason,
            booking_number=data.booking_number,
            refund_status=refund_status_label(data.refund_status, locale),
            refund_amount=refund_amount,
        )

    def job_reminder(self, data: JobReminderData, locale="en") -> NotificationMessage:
        """Remind the holder of an upcoming job (time label truncated)."""
        locale = resolve_locale(locale)
        t = get_labels(locale)
        return self._render(
            EventType.JOB_REMINDER,
            locale,
            job=self._job_context(data.job, locale),
            time_label=format_time_label(data.minutes_before, locale),
            customer_name=data.customer_name,
            link=self._link(t["view_job"], self.job_link(data.job_id)),
        )

    def job_escalation(self, data: JobEscalationData, locale="en") -> NotificationMessage:
        """Re-notify eligible staff about an unclaimed job (pending label keeps minutes)."""
        locale = resolve_locale(locale)
        t = get_labels(locale)
        return self._render(
            EventType.JOB_ESCALATION,
            locale,
            job=self._job_context(data.job, locale),
            pending_label=format_pending_label(data.minutes_pending, locale),
            urgent=data.urgent,
            level=data.level,
            link=self._link(t["accept_now"], self.job_link(data.job_id)),
            app_hint=self.app_base_url is None,
        )

    def job_unassigned_to_admin(
        self, data: JobUnassignedAdminData, locale="en"
    ) -> NotificationMessage:
        """Alert operators that a job reached the last escalation level unclaimed."""
        locale = resolve_locale(locale)
        return self._render(
            EventType.JOB_UNASSIGNED_TO_ADMIN,
            locale,
            job=self._job_context(data.job, locale),
            job_id=data.job_id,
            pending_label=format_pending_label(data.minutes_pending, locale),
            level=data.level,
            eligible_count=data.eligible_count,
            customer_name=data.customer_name,
            booking_number=data.booking_number,
        )

    def _render(self, event_type: str, locale: str, **context) -> NotificationMessage:
        rendered = self.renderer.render(
            event_type, {"t": get_labels(locale), "locale": locale, **context}
        )
        return NotificationMessage(
            event_type=event_type,
            locale=locale,
            subject=rendered["subject"],
            html=rendered["html"],
            text=rendered["text"],
        )

    def _job_context(self, job: JobSummary, locale: str) -> Dict:
        local_time = ensure_utc(job.scheduled_at).astimezone(self.timezone)
        return {
            "service_name": job.service_name,
            "date": local_time.strftime("%Y-%m-%d"),
            "time": local_time.strftime("%H:%M"),
            "duration": format_minutes(job.duration_minutes, locale),
            "earnings": job.earnings,
            "location": job.location or LocationInfo(),
        }

    @staticmethod
    def _link(label: str, url: Optional[str]) -> Optional[Dict[str, str]]:
        if not url:
            return None
        return {"label": label, "url": url}
