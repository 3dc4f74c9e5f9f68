"""Database schema definition and ORM models.

This module defines the SQLAlchemy ORM models of the reference store and the
conversions between ORM rows and domain models. Timestamps are stored as
fixed-width ISO 8601 UTC strings so they compare correctly as text, which the
escalation lease check relies on.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import JSON, Boolean, Column, ForeignKey, Index, Integer, String, Text, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from jobdispatch.domain.models import (
    CancellationEvent,
    CancellationReason,
    JobOffer,
    JobStatus,
    LocationInfo,
    StaffMember,
)
from jobdispatch.logging import get_logger
from jobdispatch.utils.timestamps import format_timestamp, parse_iso_datetime

logger = get_logger(__name__, component="database")

# Create base class for ORM models
Base = declarative_base()


class JobOfferModel(Base):
    """ORM model for the job_offers table.

    One row per offer, including cancelled ones; a replacement is a new row
    pointing back through ``replaces_offer_id``.
    """

    __tablename__ = "job_offers"

    id = Column(String(64), primary_key=True, nullable=False)
    parent_booking_id = Column(String(64), nullable=False)
    recipient_index = Column(Integer, nullable=False, default=0)

    # State
    status = Column(String(20), nullable=False)
    assigned_staff_id = Column(String(64), nullable=True)
    eligible_staff_ids = Column(JSON, nullable=False, default=list)

    # Job content
    scheduled_at = Column(String(50), nullable=False)
    earnings = Column(String(32), nullable=False)
    address = Column(Text, nullable=False, default="")
    hotel_name = Column(String(255), nullable=True)
    room_number = Column(String(50), nullable=True)
    is_group_booking = Column(Boolean, nullable=False, default=False)
    total_group_size = Column(Integer, nullable=False, default=1)
    service_name = Column(String(255), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    recipient_name = Column(String(255), nullable=True)
    customer_name = Column(String(255), nullable=True)
    booking_number = Column(String(64), nullable=True)

    # Bookkeeping
    opened_at = Column(String(50), nullable=True)
    replaces_offer_id = Column(String(64), nullable=True)
    escalation_level = Column(Integer, nullable=False, default=0)
    last_escalated_at = Column(String(50), nullable=True)
    escalation_lease_until = Column(String(50), nullable=True)

    __table_args__ = (
        Index("idx_offers_booking", "parent_booking_id"),
        Index("idx_offers_status", "status"),
        Index("idx_offers_replaces", "replaces_offer_id"),
    )

    def to_domain(self) -> JobOffer:
        """Convert ORM model to domain model."""
        return JobOffer(
            id=self.id,
            parent_booking_id=self.parent_booking_id,
            recipient_index=self.recipient_index,
            status=JobStatus(self.status),
            eligible_staff_ids=list(self.eligible_staff_ids or []),
            assigned_staff_id=self.assigned_staff_id,
            scheduled_at=parse_iso_datetime(self.scheduled_at),
            earnings=Decimal(self.earnings),
            location=LocationInfo(
                address=self.address or "",
                hotel_name=self.hotel_name,
                room_number=self.room_number,
            ),
            is_group_booking=self.is_group_booking,
            total_group_size=self.total_group_size,
            service_name=self.service_name,
            duration_minutes=self.duration_minutes,
            recipient_name=self.recipient_name,
            customer_name=self.customer_name,
            booking_number=self.booking_number,
            opened_at=parse_iso_datetime(self.opened_at),
            replaces_offer_id=self.replaces_offer_id,
            escalation_level=self.escalation_level,
            last_escalated_at=parse_iso_datetime(self.last_escalated_at),
            escalation_lease_until=parse_iso_datetime(self.escalation_lease_until),
        )

    @classmethod
    def from_domain(cls, offer: JobOffer) -> "JobOfferModel":
        """Create ORM model from domain model."""
        return cls(
            id=offer.id,
            parent_booking_id=offer.parent_booking_id,
            recipient_index=offer.recipient_index,
            status=offer.status.value,
            assigned_staff_id=offer.assigned_staff_id,
            eligible_staff_ids=list(offer.eligible_staff_ids),
            scheduled_at=format_datetime(offer.scheduled_at),
            earnings=str(offer.earnings),
            address=offer.location.address,
            hotel_name=offer.location.hotel_name,
            room_number=offer.location.room_number,
            is_group_booking=offer.is_group_booking,
            total_group_size=offer.total_group_size,
            service_name=offer.service_name,
            duration_minutes=offer.duration_minutes,
            recipient_name=offer.recipient_name,
            customer_name=offer.customer_name,
            booking_number=offer.booking_number,
            opened_at=format_datetime(offer.opened_at),
            replaces_offer_id=offer.replaces_offer_id,
            escalation_level=offer.escalation_level,
            last_escalated_at=format_datetime(offer.last_escalated_at),
            escalation_lease_until=format_datetime(offer.escalation_lease_until),
        )


class CancellationEventModel(Base):
    """ORM model for the cancellation_events table (append-only)."""

    __tablename__ = "cancellation_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    job_offer_id = Column(String(64), ForeignKey("job_offers.id"), nullable=False)
    staff_id = Column(String(64), nullable=False)
    reason_code = Column(String(32), nullable=False)
    notes = Column(Text, nullable=True)
    timestamp = Column(String(50), nullable=False)

    __table_args__ = (Index("idx_cancellations_offer", "job_offer_id"),)

    def to_domain(self) -> CancellationEvent:
        return CancellationEvent(
            job_offer_id=self.job_offer_id,
            staff_id=self.staff_id,
            reason_code=CancellationReason(self.reason_code),
            notes=self.notes,
            timestamp=parse_iso_datetime(self.timestamp),
        )

    @classmethod
    def from_domain(cls, event: CancellationEvent) -> "CancellationEventModel":
        return cls(
            job_offer_id=event.job_offer_id,
            staff_id=event.staff_id,
            reason_code=event.reason_code.value,
            notes=event.notes,
            timestamp=format_datetime(event.timestamp),
        )


class StaffModel(Base):
    """ORM model for the staff table."""

    __tablename__ = "staff"

    staff_id = Column(String(64), primary_key=True, nullable=False)
    display_name = Column(String(255), nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)
    is_active = Column(Boolean, nullable=False, default=True)

    def to_domain(self) -> StaffMember:
        return StaffMember(
            staff_id=self.staff_id,
            display_name=self.display_name,
            is_available=self.is_available,
            is_active=self.is_active,
        )


def format_datetime(dt: Optional[datetime]) -> Optional[str]:
    """Format a datetime for storage (UTC, microseconds, ``Z`` suffix)."""
    return format_timestamp(dt, include_microseconds=True)


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes if they don't exist (idempotent).

    Args:
        engine: SQLAlchemy engine instance
    """
    logger.info("Creating database schema if not exists")

    try:
        Base.metadata.create_all(engine, checkfirst=True)

        tables = inspect(engine).get_table_names()
        logger.info(f"Database schema ready. Tables: {', '.join(tables)}")

    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise
