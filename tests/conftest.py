"""Shared fixtures for job dispatch engine tests."""

import itertools
from decimal import Decimal

import pytest

from jobdispatch.domain.models import JobOffer, LocationInfo, StaffMember
from jobdispatch.logging.context import clear_log_context
from jobdispatch.notifications.composer import NotificationComposer
from jobdispatch.persistence import SqlJobOfferStore, close_database, init_database
from tests.helpers import OPENED_AT, SCHEDULED_AT, FakeChannel, FrozenClock


@pytest.fixture(autouse=True)
def clean_log_context():
    """Clear logging context before and after each test."""
    clear_log_context()
    yield
    clear_log_context()


@pytest.fixture
def database():
    """Fresh in-memory database per test."""
    init_database("sqlite:///:memory:")
    yield
    close_database()


@pytest.fixture
def clock():
    return FrozenClock(OPENED_AT)


@pytest.fixture
def store(database, clock):
    """SQL store with predictable replacement ids (new-1, new-2, ...)."""
    counter = itertools.count(1)
    return SqlJobOfferStore(id_factory=lambda: f"new-{next(counter)}", clock=clock)


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def composer():
    return NotificationComposer(app_base_url="https://app.example.com")


@pytest.fixture
def make_offer():
    """Factory for JobOffer instances with sensible defaults."""

    def _make(**overrides):
        values = {
            "id": "offer-1",
            "parent_booking_id": "booking-1",
            "scheduled_at": SCHEDULED_AT,
            "service_name": "Thai Massage",
            "duration_minutes": 120,
            "earnings": Decimal("800"),
            "eligible_staff_ids": ["staff-a", "staff-b", "staff-c"],
            "location": LocationInfo(address="12 Sukhumvit Rd"),
            "customer_name": "Jane Doe",
            "booking_number": "BK-0001",
            "opened_at": OPENED_AT,
        }
        values.update(overrides)
        return JobOffer(**values)

    return _make


@pytest.fixture
def seeded_staff(store):
    """Staff A, B and C, all available."""
    members = [
        StaffMember(staff_id="staff-a", display_name="Anna"),
        StaffMember(staff_id="staff-b", display_name="Bua"),
        StaffMember(staff_id="staff-c", display_name="Chai"),
    ]
    for member in members:
        store.add_staff(member)
    return members
