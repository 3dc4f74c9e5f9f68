"""Escalation of unclaimed offers.

Each offer carries a monotonic ``escalation_level``. A pass computes the
level an offer has reached from how long it has been open, and only sends
when that level is higher than the stored one and the store grants the
level's lease. Repeated or overlapping passes therefore send each level at
most once per offer.
"""

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from jobdispatch.config.models import EscalationConfig
from jobdispatch.delivery.models import DeliveryReport
from jobdispatch.domain.exceptions import DispatchError, ValidationError
from jobdispatch.domain.models import JobOffer
from jobdispatch.logging import get_logger
from jobdispatch.logging.context import log_context
from jobdispatch.notifications.composer import NotificationComposer
from jobdispatch.notifications.payloads import build_escalation_data, build_unassigned_admin_data
from jobdispatch.utils.timestamps import minutes_between, utc_now

from .ports import DeliveryChannel, JobOfferStore

logger = get_logger(__name__, component="escalation")

SENT = "sent"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass
class EscalationResult:
    """Outcome of escalating one offer; truthy only when a message was sent."""

    offer_id: str
    status: str
    level: int = 0
    reason: Optional[str] = None
    report: Optional[DeliveryReport] = None
    operator_report: Optional[DeliveryReport] = None

    def __bool__(self) -> bool:
        return self.status == SENT


@dataclass
class EscalationPassResult:
    """Summary of one polling pass."""

    pass_id: str
    skipped_overlap: bool = False
    results: List[EscalationResult] = field(default_factory=list)

    @property
    def sent(self) -> int:
        return sum(1 for result in self.results if result.status == SENT)

    @property
    def skipped(self) -> int:
        return sum(1 for result in self.results if result.status == SKIPPED)

    @property
    def failed(self) -> int:
        return sum(1 for result in self.results if result.status == FAILED)


class EscalationScheduler:
    """Re-notifies eligible staff about offers nobody has accepted.

    Args:
        store: Job offer store
        channel: Delivery channel
        composer: Notification composer
        config: Thresholds, urgent level and lease length
        operator_ids: Alerted when an offer reaches the last level
        staff_locale: Locale of the staff reminder
        operator_locale: Locale of the operator alert
    """

    def __init__(
        self,
        store: JobOfferStore,
        channel: DeliveryChannel,
        composer: NotificationComposer,
        config: Optional[EscalationConfig] = None,
        operator_ids: Optional[List[str]] = None,
        staff_locale: str = "en",
        operator_locale: str = "en",
    ):
        self.store = store
        self.channel = channel
        self.composer = composer
        self.config = config or EscalationConfig()
        self.operator_ids = list(operator_ids or [])
        self.staff_locale = staff_locale
        self.operator_locale = operator_locale
        self._pass_lock = threading.Lock()

    def escalate(self, offer_id: str, minutes_pending: int) -> EscalationResult:
        """Escalate one offer if it is still open and due for a new level.

        The offer is re-read first, so an offer accepted since the caller
        looked at it is skipped rather than re-announced.

        Raises:
            ValidationError: If minutes_pending is negative
        """
        if minutes_pending < 0:
            raise ValidationError(f"minutes_pending must not be negative, got: {minutes_pending}")

        with log_context(offer_id=offer_id):
            offer = self.store.get_offer(offer_id)
            if offer is None:
                return self._skip(offer_id, 0, "offer not found")
            if not offer.is_open:
                return self._skip(offer_id, offer.escalation_level, f"offer is {offer.status.value}")

            target_level = self.config.level_for(minutes_pending)
            if target_level <= offer.escalation_level:
                return self._skip(
                    offer_id,
                    offer.escalation_level,
                    f"level {target_level} already reached (stored {offer.escalation_level})",
                )

            claimed = self.store.claim_escalation(
                offer_id,
                expected_level=offer.escalation_level,
                new_level=target_level,
                lease_seconds=self.config.lease_seconds,
            )
            if not claimed:
                return self._skip(offer_id, offer.escalation_level, "escalation claimed elsewhere")

            return self._send(offer, target_level, minutes_pending)

    def run_pass(self, now: Optional[datetime] = None) -> EscalationPassResult:
        """Escalate every open offer once; an overlapping pass is skipped.

        Args:
            now: Reference time for minutes pending (defaults to the current time)
        """
        pass_id = uuid.uuid4().hex[:12]
        if not self._pass_lock.acquire(blocking=False):
            logger.warning(
                "Escalation pass already running; skipping",
                extra={"event": "escalation.pass.overlap", "pass_id": pass_id},
            )
            return EscalationPassResult(pass_id=pass_id, skipped_overlap=True)

        try:
            with log_context(pass_id=pass_id):
                now = now or utc_now()
                result = EscalationPassResult(pass_id=pass_id)
                offers = self.store.list_open_offers()
                logger.info(
                    f"Escalation pass started: {len(offers)} open offers",
                    extra={"event": "escalation.pass.started", "open_offers": len(offers)},
                )

                for offer in offers:
                    opened_at = offer.opened_at or offer.scheduled_at
                    minutes_pending = minutes_between(opened_at, now)
                    try:
                        result.results.append(self.escalate(offer.id, minutes_pending))
                    except DispatchError as e:
                        logger.error(
                            f"Escalation of offer {offer.id} failed: {e}",
                            exc_info=True,
                            extra={"event": "escalation.offer.error", "offer_id": offer.id},
                        )
                        result.results.append(
                            EscalationResult(offer_id=offer.id, status=FAILED, reason=str(e))
                        )

                logger.info(
                    f"Escalation pass complete: {result.sent} sent, "
                    f"{result.skipped} skipped, {result.failed} failed",
                    extra={
                        "event": "escalation.pass.completed",
                        "sent": result.sent,
                        "skipped": result.skipped,
                        "failed": result.failed,
                    },
                )
                return result
        finally:
            self._pass_lock.release()

    def urgency(self, level: int) -> str:
        return "urgent" if level >= self.config.urgent_level else "warning"

    def _send(self, offer: JobOffer, level: int, minutes_pending: int) -> EscalationResult:
        previous_level = offer.escalation_level
        urgent = self.urgency(level) == "urgent"
        report = DeliveryReport()
        operator_report = None
        completed = False
        try:
            message = self.composer.job_escalation(
                build_escalation_data(offer, minutes_pending, level, urgent), self.staff_locale
            )
            report = self.channel.multicast(offer.eligible_staff_ids, message)

            if level >= self.config.max_level and self.operator_ids:
                alert = self.composer.job_unassigned_to_admin(
                    build_unassigned_admin_data(offer, minutes_pending, level),
                    self.operator_locale,
                )
                operator_report = self.channel.push_each(self.operator_ids, alert)
            completed = True
        finally:
            # Nobody reached: give the level back so a later pass can retry it
            nobody_reached = report.sent_count == 0 and (bool(report.outcomes) or not completed)
            try:
                self.store.release_escalation(
                    offer.id,
                    claimed_level=level,
                    revert_to_level=previous_level if nobody_reached else None,
                )
            except DispatchError:
                if completed:
                    raise
                # The compose/send error is already propagating; keep it as the one raised
                logger.error(
                    f"Releasing escalation lease for offer {offer.id} failed",
                    exc_info=True,
                    extra={"event": "escalation.release.failed", "escalation_level": level},
                )

        status = SENT if report else FAILED
        logger.info(
            f"Escalation level {level} ({self.urgency(level)}) {status} after "
            f"{minutes_pending} minutes pending",
            extra={
                "event": f"escalation.{status}",
                "escalation_level": level,
                "minutes_pending": minutes_pending,
                "recipients": len(offer.eligible_staff_ids),
                "failed_recipients": report.failed_recipients,
                "operators_alerted": operator_report is not None,
            },
        )
        return EscalationResult(
            offer_id=offer.id,
            status=status,
            level=level,
            reason=None if report else "delivery failed",
            report=report,
            operator_report=operator_report,
        )

    @staticmethod
    def _skip(offer_id: str, level: int, reason: str) -> EscalationResult:
        logger.debug(
            f"Escalation skipped: {reason}",
            extra={"event": "escalation.skipped", "reason": reason},
        )
        return EscalationResult(offer_id=offer_id, status=SKIPPED, level=level, reason=reason)
