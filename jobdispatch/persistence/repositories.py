"""Data access layer (repositories) for persistence operations.

This module provides repository classes for job offers, cancellation events
and staff. Repositories work inside a caller-owned session, never commit,
and return domain models rather than ORM models.

Every transition into ``assigned`` or ``cancelled`` is a single conditional
``UPDATE ... WHERE status = :expected``; the rowcount tells the caller
whether it won.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from jobdispatch.domain.exceptions import ValidationError
from jobdispatch.domain.models import (
    HELD_STATUSES,
    CancellationEvent,
    EligibilityCriteria,
    JobOffer,
    JobStatus,
    StaffMember,
)
from jobdispatch.logging import get_logger

from .exceptions import DataIntegrityError, OfferNotFoundError, PersistenceError
from .schema import CancellationEventModel, JobOfferModel, StaffModel, format_datetime

logger = get_logger(__name__, component="database")


class OfferRepository:
    """Repository for job offer operations."""

    def __init__(self, session: Session):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy session for database operations
        """
        self.session = session

    def get(self, offer_id: str) -> Optional[JobOffer]:
        """Retrieve an offer by id, or None if it does not exist.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            offer_model = self.session.get(JobOfferModel, offer_id, populate_existing=True)
            return offer_model.to_domain() if offer_model is not None else None

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving offer {offer_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve offer: {e}") from e

    def require(self, offer_id: str) -> JobOffer:
        """Retrieve an offer by id.

        Raises:
            OfferNotFoundError: If no offer has this id
            PersistenceError: If database error occurs
        """
        offer = self.get(offer_id)
        if offer is None:
            raise OfferNotFoundError(offer_id)
        return offer

    def add(self, offer: JobOffer) -> JobOffer:
        """Insert a new offer.

        Raises:
            DataIntegrityError: If an offer with the same id exists
            PersistenceError: If database error occurs
        """
        try:
            offer_model = JobOfferModel.from_domain(offer)
            self.session.add(offer_model)
            self.session.flush()
            return offer_model.to_domain()

        except IntegrityError as e:
            logger.error(f"Integrity error inserting offer {offer.id}: {e}")
            raise DataIntegrityError(f"Offer already exists: {offer.id}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error inserting offer {offer.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to insert offer: {e}") from e

    def conditional_update(
        self,
        offer_id: str,
        expected_statuses: Iterable[JobStatus],
        values: Dict,
        holder_id: Optional[str] = None,
    ) -> bool:
        """Apply ``values`` only if the offer is in one of the expected statuses.

        Args:
            offer_id: Offer to update
            expected_statuses: Statuses the row must currently have
            values: Column values to set
            holder_id: If given, the row must also be held by this staff id

        Returns:
            True if exactly one row was updated

        Raises:
            PersistenceError: If database error occurs
        """
        statuses = [status.value for status in expected_statuses]
        try:
            stmt = (
                update(JobOfferModel)
                .where(JobOfferModel.id == offer_id, JobOfferModel.status.in_(statuses))
                .values(**values)
            )
            if holder_id is not None:
                stmt = stmt.where(JobOfferModel.assigned_staff_id == holder_id)

            result = self.session.execute(stmt)
            return result.rowcount == 1

        except SQLAlchemyError as e:
            logger.error(f"Error updating offer {offer_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to update offer: {e}") from e

    def transition(self, offer_id: str, from_status: JobStatus, to_status: JobStatus) -> bool:
        """Conditional status change that keeps the holder invariant.

        Moving between held statuses keeps the holder; moving out of them
        clears it. Entering a held status from an unheld one needs a holder,
        which only ``accept`` can supply.
        """
        if to_status in HELD_STATUSES and from_status not in HELD_STATUSES:
            raise ValidationError(
                f"Cannot move offer {offer_id} from {from_status.value} to "
                f"{to_status.value} without a holder; use accept()"
            )

        values = {"status": to_status.value}
        if to_status not in HELD_STATUSES:
            values["assigned_staff_id"] = None
            values["escalation_lease_until"] = None
        return self.conditional_update(offer_id, [from_status], values)

    def accept(self, offer_id: str, staff_id: str) -> bool:
        """Award an open offer to a staff member (open -> assigned)."""
        return self.conditional_update(
            offer_id,
            [JobStatus.OPEN],
            {
                "status": JobStatus.ASSIGNED.value,
                "assigned_staff_id": staff_id,
                "escalation_lease_until": None,
            },
        )

    def cancel_held(self, offer_id: str, staff_id: str) -> bool:
        """Cancel an assigned offer held by the given staff member."""
        return self.conditional_update(
            offer_id,
            [JobStatus.ASSIGNED],
            {
                "status": JobStatus.CANCELLED.value,
                "assigned_staff_id": None,
                "escalation_lease_until": None,
            },
            holder_id=staff_id,
        )

    def find_replacement(self, offer_id: str) -> Optional[JobOffer]:
        """Offer created to replace the given cancelled offer, if any."""
        try:
            stmt = select(JobOfferModel).where(JobOfferModel.replaces_offer_id == offer_id)
            offer_model = self.session.execute(stmt).scalars().first()
            return offer_model.to_domain() if offer_model is not None else None

        except SQLAlchemyError as e:
            logger.error(f"Error finding replacement for offer {offer_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to find replacement: {e}") from e

    def list_by_booking(self, booking_id: str) -> List[JobOffer]:
        """All offers of a booking, oldest first (empty list if none)."""
        try:
            stmt = (
                select(JobOfferModel)
                .where(JobOfferModel.parent_booking_id == booking_id)
                .order_by(JobOfferModel.recipient_index, JobOfferModel.opened_at)
            )
            return [row.to_domain() for row in self.session.execute(stmt).scalars().all()]

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving offers for booking {booking_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve booking offers: {e}") from e

    def list_open(self) -> List[JobOffer]:
        """All open offers, longest waiting first."""
        try:
            stmt = (
                select(JobOfferModel)
                .where(JobOfferModel.status == JobStatus.OPEN.value)
                .order_by(JobOfferModel.opened_at, JobOfferModel.id)
            )
            return [row.to_domain() for row in self.session.execute(stmt).scalars().all()]

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving open offers: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve open offers: {e}") from e

    def claim_escalation(
        self,
        offer_id: str,
        expected_level: int,
        new_level: int,
        now: datetime,
        lease_until: datetime,
    ) -> bool:
        """Compare-and-swap the escalation level and take the lease.

        Succeeds only while the offer is open, still at ``expected_level``,
        and not leased (or the lease has expired).
        """
        now_str = format_datetime(now)
        try:
            stmt = (
                update(JobOfferModel)
                .where(
                    JobOfferModel.id == offer_id,
                    JobOfferModel.status == JobStatus.OPEN.value,
                    JobOfferModel.escalation_level == expected_level,
                    or_(
                        JobOfferModel.escalation_lease_until.is_(None),
                        JobOfferModel.escalation_lease_until < now_str,
                    ),
                )
                .values(
                    escalation_level=new_level,
                    last_escalated_at=now_str,
                    escalation_lease_until=format_datetime(lease_until),
                )
            )
            return self.session.execute(stmt).rowcount == 1

        except SQLAlchemyError as e:
            logger.error(f"Error claiming escalation for offer {offer_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to claim escalation: {e}") from e

    def release_escalation(
        self,
        offer_id: str,
        claimed_level: int,
        revert_to_level: Optional[int] = None,
    ) -> None:
        """Drop the lease taken at ``claimed_level``, optionally undoing the level."""
        values = {"escalation_lease_until": None}
        if revert_to_level is not None:
            values["escalation_level"] = revert_to_level
        try:
            stmt = (
                update(JobOfferModel)
                .where(
                    JobOfferModel.id == offer_id,
                    JobOfferModel.escalation_level == claimed_level,
                )
                .values(**values)
            )
            self.session.execute(stmt)

        except SQLAlchemyError as e:
            logger.error(f"Error releasing escalation for offer {offer_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to release escalation: {e}") from e


class CancellationEventRepository:
    """Append-only repository for cancellation events."""

    def __init__(self, session: Session):
        self.session = session

    def append(self, event: CancellationEvent) -> None:
        """Record a cancellation event.

        Raises:
            DataIntegrityError: If the offer does not exist
            PersistenceError: If database error occurs
        """
        try:
            self.session.add(CancellationEventModel.from_domain(event))
            self.session.flush()

        except IntegrityError as e:
            logger.error(f"Integrity error recording cancellation of {event.job_offer_id}: {e}")
            raise DataIntegrityError(
                f"Cannot record cancellation for offer {event.job_offer_id}"
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Error recording cancellation: {e}", exc_info=True)
            raise PersistenceError(f"Failed to record cancellation: {e}") from e

    def list_for_offer(self, offer_id: str) -> List[CancellationEvent]:
        """Cancellation events of an offer, oldest first."""
        try:
            stmt = (
                select(CancellationEventModel)
                .where(CancellationEventModel.job_offer_id == offer_id)
                .order_by(CancellationEventModel.id)
            )
            return [row.to_domain() for row in self.session.execute(stmt).scalars().all()]

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving cancellations for {offer_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve cancellations: {e}") from e


class StaffRepository:
    """Repository for staff lookups used by the eligible-staff resolver."""

    def __init__(self, session: Session):
        self.session = session

    def upsert(self, staff: StaffMember) -> StaffMember:
        """Insert or update a staff member."""
        try:
            existing = self.session.get(StaffModel, staff.staff_id)
            if existing is None:
                existing = StaffModel(staff_id=staff.staff_id)
                self.session.add(existing)

            existing.display_name = staff.display_name
            existing.is_available = staff.is_available
            existing.is_active = staff.is_active
            self.session.flush()
            return existing.to_domain()

        except SQLAlchemyError as e:
            logger.error(f"Error saving staff {staff.staff_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to save staff: {e}") from e

    def list_eligible(self, criteria: EligibilityCriteria) -> List[str]:
        """Ids of available, active staff not excluded by the criteria.

        Ranking is out of scope; ids come back in a stable (sorted) order.
        """
        try:
            stmt = (
                select(StaffModel.staff_id)
                .where(StaffModel.is_available.is_(True), StaffModel.is_active.is_(True))
                .order_by(StaffModel.staff_id)
            )
            if criteria.exclude_staff_ids:
                stmt = stmt.where(StaffModel.staff_id.not_in(criteria.exclude_staff_ids))
            return list(self.session.execute(stmt).scalars().all())

        except SQLAlchemyError as e:
            logger.error(f"Error resolving eligible staff: {e}", exc_info=True)
            raise PersistenceError(f"Failed to resolve eligible staff: {e}") from e

    def get_names(self, staff_ids: Iterable[str]) -> Dict[str, str]:
        """Map staff ids to display names; unknown ids are omitted."""
        ids = list(staff_ids)
        if not ids:
            return {}
        try:
            stmt = select(StaffModel.staff_id, StaffModel.display_name).where(
                StaffModel.staff_id.in_(ids)
            )
            return {staff_id: name for staff_id, name in self.session.execute(stmt).all()}

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving staff names: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve staff names: {e}") from e
