"""Dispatch fan-out: offer a new job to its eligible staff."""

from typing import Iterable, Optional

from jobdispatch.delivery.models import DeliveryReport
from jobdispatch.domain.models import JobOffer, unique_ids
from jobdispatch.logging import get_logger
from jobdispatch.logging.context import log_context
from jobdispatch.notifications.composer import NotificationComposer
from jobdispatch.notifications.payloads import build_new_job_data

from .ports import DeliveryChannel, JobOfferStore

logger = get_logger(__name__, component="dispatch")


class DispatchFanout:
    """Composes the ``new_job`` message and multicasts it.

    There is no per-recipient retry: first accept wins, so reaching every
    candidate only changes how many could respond. Callers decide whether
    to dispatch again.
    """

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

    def dispatch_new_job(
        self, offer: JobOffer, eligible_ids: Optional[Iterable[str]] = None
    ) -> DeliveryReport:
        """Send the new-job message to the eligible set.

        Args:
            offer: Offer being published
            eligible_ids: Candidate staff ids (de-duplicated here, order kept);
                None resolves them through the store

        Returns:
            DeliveryReport, truthy only if every recipient was reached
        """
        with log_context(offer_id=offer.id, booking_id=offer.parent_booking_id):
            if eligible_ids is None:
                recipients = unique_ids(self.store.get_eligible_staff(offer.criteria()))
            else:
                recipients = unique_ids(eligible_ids)

            if not recipients:
                logger.info(
                    "No eligible staff for offer; nothing to dispatch",
                    extra={"event": "dispatch.new_job.no_recipients"},
                )
                return DeliveryReport()

            group = self.store.get_group(offer.parent_booking_id) if offer.is_group_booking else None
            message = self.composer.new_job(build_new_job_data(offer, group), self.locale)
            report = self.channel.multicast(recipients, message)

            logger.info(
                f"New job dispatched to {len(recipients)} staff "
                f"({report.sent_count} reached, {report.failed_count} failed)",
                extra={
                    "event": "dispatch.new_job.sent" if report else "dispatch.new_job.partial",
                    "recipients": len(recipients),
                    "channel_calls": report.channel_calls,
                    "failed_recipients": report.failed_recipients,
                },
            )
            return report
