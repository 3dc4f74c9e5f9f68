"""Cancellation cascade: close a held offer, reopen it, and tell everyone.

The state change (cancel + replacement) is authoritative. Notification
failures afterwards are logged and reported but never undo it.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from jobdispatch.delivery.models import DeliveryOutcome, DeliveryReport
from jobdispatch.domain.exceptions import DispatchError, ValidationError
from jobdispatch.domain.models import CancellationEvent, CancellationReason, JobOffer
from jobdispatch.logging import get_logger
from jobdispatch.logging.context import log_context
from jobdispatch.notifications.composer import NotificationComposer
from jobdispatch.notifications.payloads import build_cancelled_admin_data, build_re_available_data

from .ports import DeliveryChannel, JobOfferStore

logger = get_logger(__name__, component="cascade")


@dataclass
class CascadeResult:
    """Outcome of a cancellation.

    Attributes:
        cancelled_offer_id: Offer that is now cancelled
        new_offer_id: Replacement offer (open, canceller excluded)
        event: The recorded cancellation event
        staff_report: Per-recipient results of re-offering the replacement
        operator_report: Per-recipient results of the operator notification
    """

    cancelled_offer_id: str
    new_offer_id: str
    event: CancellationEvent
    staff_report: DeliveryReport = field(default_factory=DeliveryReport)
    operator_report: DeliveryReport = field(default_factory=DeliveryReport)

    @property
    def notifications_sent(self) -> bool:
        """True if every staff and operator notification went through."""
        return self.staff_report.success and self.operator_report.success


class CancellationCascade:
    """Runs the cancel -> replace -> re-offer -> notify-operators sequence.

    Args:
        store: Job offer store
        channel: Delivery channel
        composer: Notification composer
        operator_ids: Recipients of the operator notification
        staff_locale: Locale of the re-offer message
        operator_locale: Locale of the operator message
    """

    def __init__(
        self,
        store: JobOfferStore,
        channel: DeliveryChannel,
        composer: NotificationComposer,
        operator_ids: Optional[List[str]] = None,
        staff_locale: str = "en",
        operator_locale: str = "en",
    ):
        self.store = store
        self.channel = channel
        self.composer = composer
        self.operator_ids = list(operator_ids or [])
        self.staff_locale = staff_locale
        self.operator_locale = operator_locale

    def cancel(
        self,
        job_offer_id: str,
        cancelling_staff_id: str,
        reason_code,
        notes: Optional[str] = None,
    ) -> CascadeResult:
        """Cancel a held offer on behalf of its holder.

        Args:
            job_offer_id: Offer being given up
            cancelling_staff_id: Staff member giving it up (must hold it)
            reason_code: CancellationReason or its code string
            notes: Free text, required when the reason is OTHER

        Returns:
            CascadeResult with the replacement id and delivery reports

        Raises:
            ValidationError: Bad input, raised before anything is changed
            OfferNotFoundError: Unknown offer id
            JobStateConflictError: Offer not assigned to the canceller
        """
        event = self._build_event(job_offer_id, cancelling_staff_id, reason_code, notes)

        with log_context(offer_id=event.job_offer_id, staff_id=event.staff_id):
            cancelled, replacement = self.store.cancel_and_replace(event)
            logger.info(
                f"Offer cancelled ({event.reason_code.value}); replacement {replacement.id} opened "
                f"for {len(replacement.eligible_staff_ids)} staff",
                extra={
                    "event": "cascade.offer.cancelled",
                    "booking_id": cancelled.parent_booking_id,
                    "new_offer_id": replacement.id,
                    "reason_code": event.reason_code.value,
                },
            )

            result = CascadeResult(
                cancelled_offer_id=cancelled.id,
                new_offer_id=replacement.id,
                event=event,
            )

            # From here on the cancellation stands; failures only mark the reports
            result.staff_report = self._reoffer(replacement)
            if self.operator_ids:
                result.operator_report = self._notify_operators(cancelled, event)

            log = logger.info if result.notifications_sent else logger.warning
            log(
                f"Cancellation cascade complete: {result.staff_report.sent_count} staff and "
                f"{result.operator_report.sent_count} operators notified",
                extra={
                    "event": "cascade.completed",
                    "new_offer_id": replacement.id,
                    "notifications_sent": result.notifications_sent,
                    "staff_failed": result.staff_report.failed_recipients,
                    "operators_failed": result.operator_report.failed_recipients,
                },
            )
            return result

    def _reoffer(self, replacement: JobOffer) -> DeliveryReport:
        """Push the replacement to its eligible staff, one call per recipient."""
        recipients = replacement.eligible_staff_ids
        try:
            message = self.composer.job_re_available(
                build_re_available_data(replacement), self.staff_locale
            )
            report = self.channel.push_each(recipients, message)
        except DispatchError as e:
            return self._notify_failed("reoffer", replacement.id, recipients, e)

        for outcome in report.outcomes:
            logger.info(
                f"Re-offer to {outcome.recipient_id}: {'sent' if outcome else 'failed'}",
                extra={
                    "event": "cascade.reoffer.outcome",
                    "new_offer_id": replacement.id,
                    "recipient_id": outcome.recipient_id,
                    "success": outcome.success,
                    "error": outcome.error,
                },
            )
        return report

    def _notify_operators(self, cancelled: JobOffer, event: CancellationEvent) -> DeliveryReport:
        try:
            group = (
                self.store.get_group(cancelled.parent_booking_id)
                if cancelled.is_group_booking
                else None
            )
            names = self.store.get_staff_names([event.staff_id])
            message = self.composer.job_cancelled_to_admin(
                build_cancelled_admin_data(
                    cancelled,
                    event,
                    staff_name=names.get(event.staff_id, event.staff_id),
                    group=group,
                ),
                self.operator_locale,
            )
            return self.channel.push_each(self.operator_ids, message)
        except DispatchError as e:
            return self._notify_failed("operators", cancelled.id, self.operator_ids, e)

    @staticmethod
    def _notify_failed(
        step: str, offer_id: str, recipients: List[str], error: DispatchError
    ) -> DeliveryReport:
        """Log a notification step that failed before sending; every recipient counts as missed."""
        logger.error(
            f"Cancellation {step} notification failed for offer {offer_id}: {error}",
            exc_info=True,
            extra={
                "event": "cascade.notify.failed",
                "step": step,
                "error_type": type(error).__name__,
                "recipients": len(recipients),
            },
        )
        return DeliveryReport(
            outcomes=[DeliveryOutcome(rid, False, error=str(error)) for rid in recipients]
        )

    @staticmethod
    def _build_event(
        job_offer_id: str, staff_id: str, reason_code, notes: Optional[str]
    ) -> CancellationEvent:
        """Validate the request and build the event; nothing is written yet."""
        job_offer_id = (job_offer_id or "").strip()
        staff_id = (staff_id or "").strip()
        if not job_offer_id:
            raise ValidationError("cancel requires a job offer id")
        if not staff_id:
            raise ValidationError("cancel requires the cancelling staff id")

        reason = CancellationReason.parse(reason_code)
        notes = (notes or "").strip() or None
        if reason is CancellationReason.OTHER and notes is None:
            raise ValidationError("notes are required when the reason is OTHER")

        return CancellationEvent(
            job_offer_id=job_offer_id,
            staff_id=staff_id,
            reason_code=reason,
            notes=notes,
        )
