"""SQLAlchemy-backed Job Offer Store.

Implements the JobOfferStore protocol the engine depends on. Each public
method runs in its own ``get_session()`` transaction; ``cancel_and_replace``
is the only one that touches more than one row.
"""

import uuid
from contextlib import AbstractContextManager
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from jobdispatch.domain.exceptions import JobStateConflictError, ValidationError
from jobdispatch.domain.models import (
    CancellationEvent,
    EligibilityCriteria,
    GroupBookingAggregate,
    JobOffer,
    JobStatus,
    StaffMember,
)
from jobdispatch.logging import get_logger
from jobdispatch.utils.timestamps import utc_now

from .database import get_session
from .exceptions import OfferNotFoundError
from .repositories import CancellationEventRepository, OfferRepository, StaffRepository

logger = get_logger(__name__, component="store")


def new_offer_id() -> str:
    return str(uuid.uuid4())


class SqlJobOfferStore:
    """Reference Job Offer Store on top of the persistence layer.

    Args:
        session_factory: Context manager factory yielding a transactional session
        id_factory: Generates ids for replacement offers
        clock: Current UTC time (injectable for tests)
    """

    def __init__(
        self,
        session_factory: Callable[[], AbstractContextManager] = get_session,
        id_factory: Callable[[], str] = new_offer_id,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._session = session_factory
        self._new_id = id_factory
        self._clock = clock

    # Seeding (used by the booking flow and tests)

    def add_offer(self, offer: JobOffer) -> JobOffer:
        """Persist a new offer; ``opened_at`` defaults to now for open offers."""
        if offer.opened_at is None and offer.is_open:
            offer = offer.model_copy(update={"opened_at": self._clock()})
        with self._session() as session:
            return OfferRepository(session).add(offer)

    def add_staff(self, staff: StaffMember) -> StaffMember:
        with self._session() as session:
            return StaffRepository(session).upsert(staff)

    # Reads

    def get_offer(self, offer_id: str) -> Optional[JobOffer]:
        with self._session() as session:
            return OfferRepository(session).get(offer_id)

    def get_eligible_staff(self, criteria: EligibilityCriteria) -> List[str]:
        with self._session() as session:
            return StaffRepository(session).list_eligible(criteria)

    def get_group(self, booking_id: str) -> Optional[GroupBookingAggregate]:
        """Aggregate of all offers sharing ``booking_id``, or None if there are none."""
        with self._session() as session:
            offers = OfferRepository(session).list_by_booking(booking_id)
        if not offers:
            return None
        return GroupBookingAggregate.from_offers(offers)

    def list_open_offers(self) -> List[JobOffer]:
        with self._session() as session:
            return OfferRepository(session).list_open()

    def get_staff_names(self, staff_ids: Iterable[str]) -> Dict[str, str]:
        with self._session() as session:
            return StaffRepository(session).get_names(staff_ids)

    def list_cancellations(self, offer_id: str) -> List[CancellationEvent]:
        with self._session() as session:
            return CancellationEventRepository(session).list_for_offer(offer_id)

    # Conditional transitions

    def transition_status(
        self, offer_id: str, from_status: JobStatus, to_status: JobStatus
    ) -> bool:
        """Atomically move an offer between statuses.

        Returns:
            True if the offer was in ``from_status`` and now is in ``to_status``;
            False if another writer got there first

        Raises:
            OfferNotFoundError: If the offer does not exist
        """
        with self._session() as session:
            repo = OfferRepository(session)
            moved = repo.transition(offer_id, JobStatus(from_status), JobStatus(to_status))
            if not moved and repo.get(offer_id) is None:
                raise OfferNotFoundError(offer_id)
        return moved

    def accept_offer(self, offer_id: str, staff_id: str) -> JobOffer:
        """Award an open offer to ``staff_id``; exactly one concurrent caller wins.

        Raises:
            OfferNotFoundError: If the offer does not exist
            JobStateConflictError: If the offer is no longer open
        """
        with self._session() as session:
            repo = OfferRepository(session)
            if not repo.accept(offer_id, staff_id):
                current = repo.require(offer_id)
                raise JobStateConflictError(
                    offer_id,
                    expected=[JobStatus.OPEN.value],
                    actual=current.status.value,
                    message=(
                        f"Offer {offer_id} is already {current.status.value}"
                        + (f" by {current.assigned_staff_id}" if current.assigned_staff_id else "")
                    ),
                )
            return repo.require(offer_id)

    def cancel_and_replace(
        self, event: CancellationEvent
    ) -> Tuple[JobOffer, JobOffer]:
        """Cancel a held offer and open its replacement in one transaction.

        Steps, all-or-nothing:
        1. ``assigned -> cancelled``, only if held by ``event.staff_id``
        2. Append the cancellation event
        3. Insert the replacement offer (new id, open, canceller excluded)

        Returns:
            (cancelled offer, replacement offer)

        Raises:
            OfferNotFoundError: If the offer does not exist
            JobStateConflictError: If the offer is not assigned to the canceller
        """
        with self._session() as session:
            repo = OfferRepository(session)
            if not repo.cancel_held(event.job_offer_id, event.staff_id):
                current = repo.require(event.job_offer_id)
                message = None
                if current.status is JobStatus.ASSIGNED:
                    message = (
                        f"Offer {current.id} is held by {current.assigned_staff_id}, "
                        f"not {event.staff_id}"
                    )
                raise JobStateConflictError(
                    current.id,
                    expected=[JobStatus.ASSIGNED.value],
                    actual=current.status.value,
                    message=message,
                )

            CancellationEventRepository(session).append(event)
            cancelled = repo.require(event.job_offer_id)
            replacement = self._create_replacement(session, cancelled, event.staff_id)

        logger.info(
            f"Offer {cancelled.id} cancelled and replaced by {replacement.id}",
            extra={
                "event": "store.offer.replaced",
                "offer_id": cancelled.id,
                "new_offer_id": replacement.id,
            },
        )
        return cancelled, replacement

    def create_replacement_offer(self, original_offer_id: str, exclude_staff_id: str) -> str:
        """Open a replacement for an already cancelled offer.

        ``cancel_and_replace`` is the normal path; this exists for repairing
        an offer that was cancelled without a replacement.

        Raises:
            OfferNotFoundError: If the original does not exist
            JobStateConflictError: If the original is not cancelled or already replaced
        """
        with self._session() as session:
            repo = OfferRepository(session)
            original = repo.require(original_offer_id)
            if original.status is not JobStatus.CANCELLED:
                raise JobStateConflictError(
                    original.id, expected=[JobStatus.CANCELLED.value], actual=original.status.value
                )
            existing = repo.find_replacement(original.id)
            if existing is not None:
                raise JobStateConflictError(
                    original.id,
                    expected=[JobStatus.CANCELLED.value],
                    actual=original.status.value,
                    message=f"Offer {original.id} was already replaced by {existing.id}",
                )
            return self._create_replacement(session, original, exclude_staff_id).id

    # Escalation bookkeeping

    def claim_escalation(
        self, offer_id: str, expected_level: int, new_level: int, lease_seconds: int
    ) -> bool:
        """Take the single-writer lease for ``new_level``; False if someone else holds it."""
        if new_level <= expected_level:
            raise ValidationError(
                f"Escalation level must increase (from {expected_level} to {new_level})"
            )
        now = self._clock()
        with self._session() as session:
            return OfferRepository(session).claim_escalation(
                offer_id,
                expected_level=expected_level,
                new_level=new_level,
                now=now,
                lease_until=now + timedelta(seconds=lease_seconds),
            )

    def release_escalation(
        self, offer_id: str, claimed_level: int, revert_to_level: Optional[int] = None
    ) -> None:
        with self._session() as session:
            OfferRepository(session).release_escalation(offer_id, claimed_level, revert_to_level)

    def _create_replacement(
        self, session: Session, original: JobOffer, exclude_staff_id: str
    ) -> JobOffer:
        replacement = original.model_copy(
            update={
                "id": self._new_id(),
                "status": JobStatus.OPEN,
                "assigned_staff_id": None,
                "eligible_staff_ids": [
                    staff_id
                    for staff_id in original.eligible_staff_ids
                    if staff_id != exclude_staff_id
                ],
                "opened_at": self._clock(),
                "replaces_offer_id": original.id,
                "escalation_level": 0,
                "last_escalated_at": None,
                "escalation_lease_until": None,
            }
        )
        return OfferRepository(session).add(replacement)
