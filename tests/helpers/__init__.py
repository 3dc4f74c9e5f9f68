"""Test helper utilities for job dispatch engine tests."""

from .clock import OPENED_AT, SCHEDULED_AT, FrozenClock
from .fake_channel import FakeChannel

__all__ = ["FakeChannel", "FrozenClock", "OPENED_AT", "SCHEDULED_AT"]
