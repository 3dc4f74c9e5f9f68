"""Acceptance gate: award an open offer to the first staff member who accepts."""

from jobdispatch.domain.exceptions import JobStateConflictError, ValidationError
from jobdispatch.domain.models import JobOffer
from jobdispatch.logging import get_logger
from jobdispatch.logging.context import log_context
from jobdispatch.persistence.exceptions import OfferNotFoundError

from .ports import JobOfferStore

logger = get_logger(__name__, component="acceptance")


class AcceptanceGate:
    """Validates an accept request and delegates the race to the store.

    The store's conditional ``open -> assigned`` update decides the winner;
    every later caller gets JobStateConflictError.
    """

    def __init__(self, store: JobOfferStore):
        self.store = store

    def accept(self, offer_id: str, staff_id: str) -> JobOffer:
        """Accept an offer on behalf of a staff member.

        Raises:
            ValidationError: Blank ids, staff not in the eligible set, or staff
                already holding another position of the same group booking
            OfferNotFoundError: Unknown offer id
            JobStateConflictError: The offer is no longer open
        """
        offer_id = (offer_id or "").strip()
        staff_id = (staff_id or "").strip()
        if not offer_id or not staff_id:
            raise ValidationError("accept requires both an offer id and a staff id")

        with log_context(offer_id=offer_id, staff_id=staff_id):
            offer = self.store.get_offer(offer_id)
            if offer is None:
                raise OfferNotFoundError(offer_id)

            if staff_id not in offer.eligible_staff_ids:
                raise ValidationError(f"Staff {staff_id} is not eligible for offer {offer_id}")

            if offer.is_group_booking:
                group = self.store.get_group(offer.parent_booking_id)
                held = group.holder_positions(staff_id) if group else []
                if held:
                    raise ValidationError(
                        f"Staff {staff_id} already holds position {held[0]} "
                        f"of booking {offer.parent_booking_id}"
                    )

            try:
                accepted = self.store.accept_offer(offer_id, staff_id)
            except JobStateConflictError as e:
                logger.info(
                    f"Accept lost: {e}",
                    extra={"event": "acceptance.conflict", "actual_status": e.actual},
                )
                raise

            logger.info(
                "Offer assigned",
                extra={"event": "acceptance.assigned"},
            )
            return accepted
