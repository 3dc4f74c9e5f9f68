"""Holder-facing notifications: job reminders and booking cancellations."""

from decimal import Decimal
from typing import Optional

from jobdispatch.delivery.models import DeliveryReport
from jobdispatch.domain.exceptions import ValidationError
from jobdispatch.domain.models import HELD_STATUSES
from jobdispatch.logging import get_logger
from jobdispatch.logging.context import log_context
from jobdispatch.notifications.composer import NotificationComposer
from jobdispatch.notifications.payloads import build_booking_cancelled_data, build_reminder_data
from jobdispatch.persistence.exceptions import OfferNotFoundError, RecordNotFoundError

from .ports import DeliveryChannel, JobOfferStore

logger = get_logger(__name__, component="reminders")


class ReminderNotifier:
    """Pushes messages to the staff who currently hold offers."""

    def __init__(
        self,
        store: JobOfferStore,
        channel: DeliveryChannel,
        composer: NotificationComposer,
        locale: str = "en",
    ):
        self.store = store
        self.channel = channel
        self.composer = composer
        self.locale = locale

    def send_job_reminder(self, offer_id: str, minutes_before: int) -> DeliveryReport:
        """Remind the holder of an offer that the job starts soon.

        Offers without a holder get no reminder and an empty (successful) report.

        Raises:
            ValidationError: If minutes_before is negative
            OfferNotFoundError: Unknown offer id
        """
        if minutes_before < 0:
            raise ValidationError(f"minutes_before must not be negative, got: {minutes_before}")

        with log_context(offer_id=offer_id):
            offer = self.store.get_offer(offer_id)
            if offer is None:
                raise OfferNotFoundError(offer_id)
            if not offer.is_held:
                logger.info(
                    f"Reminder skipped: offer is {offer.status.value}",
                    extra={"event": "reminder.skipped"},
                )
                return DeliveryReport()

            message = self.composer.job_reminder(build_reminder_data(offer, minutes_before), self.locale)
            report = self.channel.push_each([offer.assigned_staff_id], message)
            logger.info(
                f"Reminder {'sent' if report else 'failed'} to {offer.assigned_staff_id}",
                extra={
                    "event": "reminder.sent" if report else "reminder.failed",
                    "recipient_id": offer.assigned_staff_id,
                    "minutes_before": minutes_before,
                },
            )
            return report

    def notify_booking_cancelled(
        self,
        booking_id: str,
        reason: str,
        refund_status: Optional[str] = None,
        refund_amount: Optional[Decimal] = None,
    ) -> DeliveryReport:
        """Tell every current holder of a booking that an operator cancelled it.

        Each holder gets the message for their own position.

        Raises:
            ValidationError: If reason is blank
            RecordNotFoundError: Unknown booking id
        """
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A cancellation reason is required")

        with log_context(booking_id=booking_id):
            group = self.store.get_group(booking_id)
            if group is None:
                raise RecordNotFoundError(f"Booking not found: {booking_id}")

            report = DeliveryReport()
            for child in group.children:
                if child.status not in HELD_STATUSES:
                    continue
                message = self.composer.booking_cancelled_to_staff(
                    build_booking_cancelled_data(child, reason, refund_status, refund_amount),
                    self.locale,
                )
                report = report.merge(self.channel.push_each([child.assigned_staff_id], message))

            logger.info(
                f"Booking cancellation sent to {len(report.outcomes)} holders",
                extra={
                    "event": "booking_cancelled.notified",
                    "sent": report.sent_count,
                    "failed_recipients": report.failed_recipients,
                },
            )
            return report
