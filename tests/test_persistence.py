"""Unit tests for the persistence layer and the SQL job offer store."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import text

from jobdispatch.domain.exceptions import JobStateConflictError, ValidationError
from jobdispatch.domain.models import (
    CancellationEvent,
    CancellationReason,
    EligibilityCriteria,
    JobStatus,
    LocationInfo,
    StaffMember,
)
from jobdispatch.persistence import (
    DatabaseConnectionError,
    DataIntegrityError,
    OfferNotFoundError,
    OfferRepository,
    PersistenceError,
    close_database,
    get_session,
    init_database,
)
from jobdispatch.persistence.schema import JobOfferModel


def cancellation(offer_id="offer-1", staff_id="staff-a", reason=CancellationReason.EMERGENCY, notes=None):
    return CancellationEvent(job_offer_id=offer_id, staff_id=staff_id, reason_code=reason, notes=notes)


class TestDatabaseInitialization:
    """Tests for database initialization."""

    def test_init_database_creates_file_and_parents(self, tmp_path):
        """Test a file database is created along with missing directories."""
        db_file = tmp_path / "nested" / "dispatch.db"

        init_database(f"sqlite:///{db_file}")
        try:
            assert db_file.exists()
            with get_session() as session:
                tables = {
                    row[0]
                    for row in session.execute(
                        text("SELECT name FROM sqlite_master WHERE type='table'")
                    )
                }
            assert {"job_offers", "cancellation_events", "staff"} <= tables
        finally:
            close_database()

    def test_schema_creation_is_idempotent(self, tmp_path):
        """Test initializing the same database twice works."""
        db_url = f"sqlite:///{tmp_path / 'dispatch.db'}"

        init_database(db_url)
        init_database(db_url)
        close_database()

    def test_invalid_url_raises(self):
        """Test an empty URL raises DatabaseConnectionError."""
        with pytest.raises(DatabaseConnectionError):
            init_database("")

    def test_get_session_without_init_raises(self):
        """Test get_session before init_database fails clearly."""
        close_database()

        with pytest.raises(DatabaseConnectionError, match="Database not initialized"):
            with get_session():
                pass


class TestSessionManagement:
    """Tests for transactional sessions."""

    def test_session_rolls_back_on_exception(self, database, make_offer):
        """Test nothing is committed when the block raises."""
        with pytest.raises(RuntimeError):
            with get_session() as session:
                session.add(JobOfferModel.from_domain(make_offer()))
                session.flush()
                raise RuntimeError("boom")

        with get_session() as session:
            assert OfferRepository(session).get("offer-1") is None


class TestModelConversions:
    """Tests for ORM <-> domain conversion."""

    def test_offer_round_trip_keeps_every_field(self, store, make_offer):
        """Test an offer comes back unchanged from storage."""
        offer = make_offer(
            earnings=Decimal("1500.50"),
            location=LocationInfo(address="", hotel_name="River Hotel", room_number="1204"),
            is_group_booking=True,
            total_group_size=2,
            recipient_index=1,
            recipient_name="Mina",
        )

        store.add_offer(offer)

        assert store.get_offer("offer-1").model_dump() == offer.model_dump()

    def test_open_offer_gets_opened_at(self, store, make_offer, clock):
        """Test opened_at defaults to the store clock for open offers."""
        store.add_offer(make_offer(opened_at=None))

        assert store.get_offer("offer-1").opened_at == clock.now

    def test_duplicate_offer_rejected(self, store, make_offer):
        """Test inserting the same id twice raises DataIntegrityError."""
        store.add_offer(make_offer())

        with pytest.raises(DataIntegrityError):
            store.add_offer(make_offer())


class TestAcceptOffer:
    """Tests for the conditional open -> assigned transition."""

    def test_first_accept_wins(self, store, make_offer):
        """Test the first accept assigns and the second conflicts."""
        store.add_offer(make_offer())

        accepted = store.accept_offer("offer-1", "staff-a")
        assert accepted.status is JobStatus.ASSIGNED
        assert accepted.assigned_staff_id == "staff-a"

        with pytest.raises(JobStateConflictError) as exc_info:
            store.accept_offer("offer-1", "staff-b")

        assert exc_info.value.actual == "assigned"
        assert exc_info.value.expected == ("open",)
        assert store.get_offer("offer-1").assigned_staff_id == "staff-a"

    def test_accept_unknown_offer(self, store):
        """Test accepting a missing offer raises OfferNotFoundError."""
        with pytest.raises(OfferNotFoundError):
            store.accept_offer("missing", "staff-a")


class TestTransitionStatus:
    """Tests for generic conditional transitions."""

    def test_assigned_to_in_progress_keeps_holder(self, store, make_offer):
        """Test moving between held statuses keeps the holder."""
        store.add_offer(make_offer())
        store.accept_offer("offer-1", "staff-a")

        assert store.transition_status("offer-1", JobStatus.ASSIGNED, JobStatus.IN_PROGRESS)

        offer = store.get_offer("offer-1")
        assert offer.status is JobStatus.IN_PROGRESS
        assert offer.assigned_staff_id == "staff-a"

    def test_leaving_held_status_clears_holder(self, store, make_offer):
        """Test completing an offer drops the holder."""
        store.add_offer(make_offer(status=JobStatus.IN_PROGRESS, assigned_staff_id="staff-a"))

        assert store.transition_status("offer-1", "in_progress", "completed")
        assert store.get_offer("offer-1").assigned_staff_id is None

    def test_stale_expected_status_returns_false(self, store, make_offer):
        """Test a transition from the wrong status is refused."""
        store.add_offer(make_offer())

        assert store.transition_status("offer-1", JobStatus.ASSIGNED, JobStatus.COMPLETED) is False
        assert store.get_offer("offer-1").status is JobStatus.OPEN

    def test_cannot_enter_held_status_without_holder(self, store, make_offer):
        """Test open -> assigned must go through accept."""
        store.add_offer(make_offer())

        with pytest.raises(ValidationError):
            store.transition_status("offer-1", JobStatus.OPEN, JobStatus.ASSIGNED)

    def test_unknown_offer(self, store):
        """Test transitions of a missing offer raise OfferNotFoundError."""
        with pytest.raises(OfferNotFoundError):
            store.transition_status("missing", JobStatus.OPEN, JobStatus.CANCELLED)


class TestCancelAndReplace:
    """Tests for the multi-row cancellation transaction."""

    def test_cancel_creates_replacement(self, store, make_offer, clock):
        """Test the cancelled offer, event and replacement are written together."""
        store.add_offer(make_offer())
        store.accept_offer("offer-1", "staff-a")
        clock.advance(minutes=30)

        cancelled, replacement = store.cancel_and_replace(cancellation())

        assert cancelled.status is JobStatus.CANCELLED
        assert cancelled.assigned_staff_id is None
        assert replacement.id == "new-1"
        assert replacement.status is JobStatus.OPEN
        assert replacement.eligible_staff_ids == ["staff-b", "staff-c"]
        assert replacement.replaces_offer_id == "offer-1"
        assert replacement.opened_at == clock.now
        assert replacement.escalation_level == 0
        assert replacement.service_name == cancelled.service_name
        assert store.get_offer("new-1") == replacement

        events = store.list_cancellations("offer-1")
        assert len(events) == 1
        assert events[0].reason_code is CancellationReason.EMERGENCY

    def test_cancel_by_non_holder_conflicts(self, store, make_offer):
        """Test only the holder can cancel and nothing changes otherwise."""
        store.add_offer(make_offer())
        store.accept_offer("offer-1", "staff-a")

        with pytest.raises(JobStateConflictError, match="held by staff-a"):
            store.cancel_and_replace(cancellation(staff_id="staff-b"))

        assert store.get_offer("offer-1").status is JobStatus.ASSIGNED
        assert store.list_cancellations("offer-1") == []
        assert store.get_offer("new-1") is None

    def test_cancel_open_offer_conflicts(self, store, make_offer):
        """Test an offer nobody holds cannot be cancelled by staff."""
        store.add_offer(make_offer())

        with pytest.raises(JobStateConflictError) as exc_info:
            store.cancel_and_replace(cancellation())

        assert exc_info.value.actual == "open"

    def test_second_cancel_conflicts(self, store, make_offer):
        """Test a repeated cancel loses and creates no second replacement."""
        store.add_offer(make_offer())
        store.accept_offer("offer-1", "staff-a")
        store.cancel_and_replace(cancellation())

        with pytest.raises(JobStateConflictError):
            store.cancel_and_replace(cancellation())

        assert store.get_offer("new-2") is None

    def test_failed_replacement_rolls_back_cancel(self, database, make_offer, clock):
        """Test a failure while inserting the replacement undoes the cancel."""
        from jobdispatch.persistence import SqlJobOfferStore

        store = SqlJobOfferStore(id_factory=lambda: "offer-1", clock=clock)
        store.add_offer(make_offer())
        store.accept_offer("offer-1", "staff-a")

        with pytest.raises(PersistenceError):
            store.cancel_and_replace(cancellation())

        offer = store.get_offer("offer-1")
        assert offer.status is JobStatus.ASSIGNED
        assert offer.assigned_staff_id == "staff-a"
        assert store.list_cancellations("offer-1") == []


class TestCreateReplacementOffer:
    """Tests for the standalone replacement operation."""

    def test_replaces_cancelled_offer_once(self, store, make_offer):
        """Test a cancelled offer without a replacement gets exactly one."""
        store.add_offer(make_offer(status=JobStatus.CANCELLED))

        new_id = store.create_replacement_offer("offer-1", "staff-a")

        assert new_id == "new-1"
        assert store.get_offer(new_id).eligible_staff_ids == ["staff-b", "staff-c"]
        with pytest.raises(JobStateConflictError, match="already replaced"):
            store.create_replacement_offer("offer-1", "staff-a")

    def test_original_must_be_cancelled(self, store, make_offer):
        """Test open offers cannot be replaced."""
        store.add_offer(make_offer())

        with pytest.raises(JobStateConflictError):
            store.create_replacement_offer("offer-1", "staff-a")


class TestGroupsAndStaff:
    """Tests for group aggregation and staff lookups."""

    def test_get_group(self, store, make_offer):
        """Test offers of a booking come back as one aggregate."""
        store.add_offer(make_offer(id="p0", is_group_booking=True, total_group_size=2))
        store.add_offer(make_offer(id="p1", recipient_index=1, is_group_booking=True, total_group_size=2))
        store.accept_offer("p0", "staff-a")

        group = store.get_group("booking-1")

        assert [child.id for child in group.children] == ["p0", "p1"]
        assert group.fill_ratio_label == "1/2"
        assert store.get_group("unknown") is None

    def test_list_open_offers(self, store, make_offer):
        """Test only open offers are listed, oldest first."""
        base = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)
        store.add_offer(make_offer(id="late", opened_at=base + timedelta(minutes=10)))
        store.add_offer(make_offer(id="early", opened_at=base))
        store.add_offer(make_offer(id="taken"))
        store.accept_offer("taken", "staff-a")

        assert [offer.id for offer in store.list_open_offers()] == ["early", "late"]

    def test_eligible_staff(self, store, seeded_staff):
        """Test unavailable and excluded staff are left out."""
        store.add_staff(StaffMember(staff_id="staff-d", display_name="Dao", is_available=False))

        assert store.get_eligible_staff(EligibilityCriteria()) == ["staff-a", "staff-b", "staff-c"]
        assert store.get_eligible_staff(
            EligibilityCriteria(exclude_staff_ids=["staff-b"])
        ) == ["staff-a", "staff-c"]

    def test_staff_names(self, store, seeded_staff):
        """Test display names by id; unknown ids are omitted."""
        assert store.get_staff_names(["staff-a", "ghost"]) == {"staff-a": "Anna"}
        assert store.get_staff_names([]) == {}


class TestEscalationLease:
    """Tests for the escalation level compare-and-swap."""

    def test_claim_moves_level_and_takes_lease(self, store, make_offer, clock):
        """Test a claim records the level and a lease."""
        store.add_offer(make_offer())

        assert store.claim_escalation("offer-1", expected_level=0, new_level=1, lease_seconds=120)

        offer = store.get_offer("offer-1")
        assert offer.escalation_level == 1
        assert offer.last_escalated_at == clock.now
        assert offer.escalation_lease_until == clock.now + timedelta(seconds=120)

    def test_stale_level_loses(self, store, make_offer):
        """Test a second claimer with the old level loses."""
        store.add_offer(make_offer())
        store.claim_escalation("offer-1", 0, 1, 120)
        store.release_escalation("offer-1", claimed_level=1)

        assert store.claim_escalation("offer-1", 0, 1, 120) is False

    def test_active_lease_blocks_and_expired_lease_does_not(self, store, make_offer, clock):
        """Test a held lease blocks the next level until it expires."""
        store.add_offer(make_offer())
        store.claim_escalation("offer-1", 0, 1, 120)

        assert store.claim_escalation("offer-1", 1, 2, 120) is False
        clock.advance(seconds=121)
        assert store.claim_escalation("offer-1", 1, 2, 120) is True

    def test_release_can_revert_level(self, store, make_offer):
        """Test a release can hand the level back for a retry."""
        store.add_offer(make_offer())
        store.claim_escalation("offer-1", 0, 1, 120)

        store.release_escalation("offer-1", claimed_level=1, revert_to_level=0)

        offer = store.get_offer("offer-1")
        assert offer.escalation_level == 0
        assert offer.escalation_lease_until is None

    def test_claim_on_assigned_offer_fails(self, store, make_offer):
        """Test accepted offers cannot be escalated."""
        store.add_offer(make_offer())
        store.accept_offer("offer-1", "staff-a")

        assert store.claim_escalation("offer-1", 0, 1, 120) is False

    def test_level_must_increase(self, store, make_offer):
        """Test claiming a level that does not increase is rejected."""
        store.add_offer(make_offer())

        with pytest.raises(ValidationError):
            store.claim_escalation("offer-1", 1, 1, 120)
