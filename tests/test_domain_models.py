"""Unit tests for domain models."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError

from jobdispatch.domain.exceptions import JobStateConflictError, ValidationError
from jobdispatch.domain.models import (
    CancellationEvent,
    CancellationReason,
    GroupBookingAggregate,
    JobStatus,
    LocationInfo,
    NotificationMessage,
    unique_ids,
)


class TestJobOffer:
    """Tests for the JobOffer model."""

    def test_defaults(self, make_offer):
        """Test a new offer is open with no holder."""
        offer = make_offer()

        assert offer.status is JobStatus.OPEN
        assert offer.is_open
        assert not offer.is_held
        assert offer.assigned_staff_id is None
        assert offer.escalation_level == 0

    def test_eligible_ids_deduplicated(self, make_offer):
        """Test eligible ids are stripped and de-duplicated in order."""
        offer = make_offer(eligible_staff_ids=["b", " a ", "b", "", "c", "a"])

        assert offer.eligible_staff_ids == ["b", "a", "c"]

    def test_naive_datetimes_become_utc(self, make_offer):
        """Test naive timestamps are treated as UTC."""
        offer = make_offer(scheduled_at=datetime(2026, 3, 1, 10, 0))

        assert offer.scheduled_at.tzinfo == timezone.utc

    def test_aware_datetimes_converted_to_utc(self, make_offer):
        """Test aware timestamps are converted to UTC."""
        bangkok = timezone(timedelta(hours=7))
        offer = make_offer(scheduled_at=datetime(2026, 3, 1, 17, 0, tzinfo=bangkok))

        assert offer.scheduled_at == datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)

    def test_held_status_requires_holder(self, make_offer):
        """Test assigned offers must name a holder."""
        with pytest.raises(PydanticValidationError, match="no assigned staff"):
            make_offer(status=JobStatus.ASSIGNED)

    def test_unheld_status_forbids_holder(self, make_offer):
        """Test open and cancelled offers cannot name a holder."""
        with pytest.raises(PydanticValidationError, match="still names holder"):
            make_offer(status=JobStatus.CANCELLED, assigned_staff_id="staff-a")

    def test_recipient_index_within_group(self, make_offer):
        """Test the position must fit the group size."""
        with pytest.raises(PydanticValidationError):
            make_offer(recipient_index=2, total_group_size=2)

    def test_negative_earnings_rejected(self, make_offer):
        """Test earnings cannot be negative."""
        with pytest.raises(PydanticValidationError):
            make_offer(earnings=Decimal("-1"))

    def test_criteria_uses_schedule(self, make_offer):
        """Test eligibility criteria carry the scheduled time."""
        offer = make_offer()

        assert offer.criteria().scheduled_at == offer.scheduled_at
        assert offer.criteria().exclude_staff_ids == []


class TestLocationInfo:
    """Tests for LocationInfo."""

    def test_blank_hotel_fields_become_none(self):
        """Test whitespace-only hotel fields are dropped."""
        location = LocationInfo(address="1 Main St", hotel_name="  ", room_number="")

        assert location.hotel_name is None
        assert location.room_number is None


class TestCancellationReason:
    """Tests for reason code parsing."""

    @pytest.mark.parametrize("value", ["EMERGENCY", "emergency", " Emergency "])
    def test_parse_is_case_insensitive(self, value):
        """Test codes parse regardless of case and whitespace."""
        assert CancellationReason.parse(value) is CancellationReason.EMERGENCY

    def test_parse_passes_members_through(self):
        """Test an enum member parses to itself."""
        assert CancellationReason.parse(CancellationReason.OTHER) is CancellationReason.OTHER

    @pytest.mark.parametrize("value", ["BORED", "", None, 3])
    def test_unknown_codes_rejected(self, value):
        """Test codes outside the closed set raise ValidationError."""
        with pytest.raises(ValidationError, match="Unknown cancellation reason"):
            CancellationReason.parse(value)


class TestCancellationEvent:
    """Tests for CancellationEvent."""

    def test_other_requires_notes(self):
        """Test OTHER without notes is invalid."""
        with pytest.raises(PydanticValidationError, match="notes are required"):
            CancellationEvent(
                job_offer_id="offer-1", staff_id="staff-a", reason_code=CancellationReason.OTHER
            )

    def test_blank_notes_count_as_missing(self):
        """Test whitespace notes do not satisfy OTHER."""
        with pytest.raises(PydanticValidationError):
            CancellationEvent(
                job_offer_id="offer-1",
                staff_id="staff-a",
                reason_code=CancellationReason.OTHER,
                notes="   ",
            )

    def test_event_is_immutable(self):
        """Test events cannot be modified after creation."""
        event = CancellationEvent(
            job_offer_id="offer-1", staff_id="staff-a", reason_code=CancellationReason.ILLNESS
        )

        with pytest.raises(PydanticValidationError):
            event.notes = "changed"

    def test_timestamp_defaults_to_now_utc(self):
        """Test the timestamp defaults to the current UTC time."""
        event = CancellationEvent(
            job_offer_id="offer-1", staff_id="staff-a", reason_code="ILLNESS"
        )

        assert event.timestamp.tzinfo == timezone.utc
        assert event.reason_code is CancellationReason.ILLNESS


class TestGroupBookingAggregate:
    """Tests for group booking aggregation."""

    def test_children_skip_cancelled_and_prefer_latest(self, make_offer):
        """Test each position resolves to its current non-cancelled offer."""
        opened = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)
        group = GroupBookingAggregate.from_offers([
            make_offer(id="p0", is_group_booking=True, total_group_size=2, status=JobStatus.ASSIGNED,
                       assigned_staff_id="staff-a"),
            make_offer(id="p1-old", recipient_index=1, is_group_booking=True, total_group_size=2,
                       status=JobStatus.CANCELLED, opened_at=opened),
            make_offer(id="p1-new", recipient_index=1, is_group_booking=True, total_group_size=2,
                       opened_at=opened + timedelta(minutes=5), replaces_offer_id="p1-old"),
        ])

        assert [child.id for child in group.children] == ["p0", "p1-new"]
        assert group.active_assigned_count == 1
        assert group.fill_ratio_label == "1/2"
        assert not group.is_fully_staffed
        assert group.holder_positions("staff-a") == [0]
        assert group.holder_positions("staff-b") == []

    def test_fully_staffed_counts_completed(self, make_offer):
        """Test completed positions count as staffed but not as held."""
        group = GroupBookingAggregate.from_offers([
            make_offer(id="p0", is_group_booking=True, total_group_size=2, status=JobStatus.COMPLETED),
            make_offer(id="p1", recipient_index=1, is_group_booking=True, total_group_size=2,
                       status=JobStatus.IN_PROGRESS, assigned_staff_id="staff-b"),
        ])

        assert group.is_fully_staffed
        assert group.active_assigned_count == 1

    def test_from_offers_requires_offers(self):
        """Test an empty group is rejected."""
        with pytest.raises(ValidationError):
            GroupBookingAggregate.from_offers([])

    def test_offers_must_share_booking(self, make_offer):
        """Test mixing bookings is rejected."""
        with pytest.raises(PydanticValidationError):
            GroupBookingAggregate(
                parent_booking_id="booking-1",
                total_group_size=2,
                offers=[make_offer(parent_booking_id="booking-2")],
            )


class TestNotificationMessage:
    """Tests for NotificationMessage."""

    def test_stamped_records_delivery(self):
        """Test stamping copies the message with recipients and outcome."""
        message = NotificationMessage(
            event_type="new_job", locale="en", subject="s", html="h", text="t"
        )

        stamped = message.stamped(["a", "b"], True)

        assert stamped.recipient_ids == ["a", "b"]
        assert stamped.delivery_success is True
        assert stamped.sent_at is not None
        assert message.recipient_ids == []
        assert message.sent_at is None


class TestHelpers:
    """Tests for helpers and exceptions."""

    def test_unique_ids(self):
        """Test stripping, blank removal and order-preserving de-duplication."""
        assert unique_ids(["b", None, " a", "b ", ""]) == ["b", "a"]
        assert unique_ids(None) == []

    def test_conflict_error_message(self):
        """Test the default conflict message names expected and actual status."""
        error = JobStateConflictError("offer-1", expected=["open"], actual="assigned")

        assert str(error) == "Offer offer-1 is assigned, expected open"
        assert error.expected == ("open",)

    def test_validation_error_is_value_error(self):
        """Test ValidationError can be caught as ValueError."""
        assert issubclass(ValidationError, ValueError)
