"""
Shared fixtures for the scheduling tests.
"""

from typing import Dict

import pytest

from slotkeeper.adapters.booking_store import InMemoryBookingStore
from slotkeeper.config import SchedulingPolicy
from slotkeeper.domain.models import BookableTemplate, ExternalCalendarCredential, HostAvailabilityContext
from slotkeeper.services.availability import AvailabilityService
from slotkeeper.services.booking import BookingService
from slotkeeper.services.busy_time_cache import BusyTimeCache

from .helpers import FakeClock, StubCalendarClient, StubHostLookup, utc


@pytest.fixture
def monday_template() -> BookableTemplate:
    return BookableTemplate(monday=[{"start": "09:00", "end": "17:00"}])


@pytest.fixture
def credential() -> ExternalCalendarCredential:
    return ExternalCalendarCredential(access_token="token", calendar_id="primary")


@pytest.fixture
def clock() -> FakeClock:
    # Far in the past relative to the Mondays used in the tests
    return FakeClock(utc("2026-02-01T00:00:00"))


@pytest.fixture
def cache(clock) -> BusyTimeCache:
    return BusyTimeCache(clock=clock)


@pytest.fixture
def store() -> InMemoryBookingStore:
    return InMemoryBookingStore()


@pytest.fixture
def policy() -> SchedulingPolicy:
    return SchedulingPolicy()


@pytest.fixture
def make_services(cache, store, clock, policy):
    """Build availability and booking services sharing one cache and store."""

    def _make(contexts: Dict[str, HostAvailabilityContext], calendar_client=None, **overrides):
        lookup = StubHostLookup(contexts)
        calendar = calendar_client or StubCalendarClient()
        booking_store = overrides.get("store", store)
        scheduling = overrides.get("policy", policy)
        availability = AvailabilityService(
            host_lookup=lookup,
            calendar_client=calendar,
            booking_store=booking_store,
            busy_time_cache=cache,
            policy=scheduling,
            clock=clock,
        )
        booking = BookingService(
            booking_store=booking_store,
            busy_time_cache=cache,
            host_lookup=lookup,
            policy=scheduling,
        )
        return availability, booking, calendar

    return _make
