"""
Availability computation engine.

The service loads the host's template and timezone, expands the template over
the host-local days of the requested range, subtracts external calendar busy
time (cached) and confirmed bookings (always live), and drops everything that
starts inside the minimum lead time.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Protocol, Sequence, Tuple

from pendulum import Date, DateTime

from ..config import SchedulingPolicy
from ..domain.exceptions import ExternalCalendarUnavailable
from ..domain.intervals import local_dates_between, local_day_bounds, overlaps
from ..domain.models import (
    AvailabilityResult,
    BusyInterval,
    ConfirmedBooking,
    DateRange,
    DayAvailability,
    ExternalCalendarCredential,
    HostAvailabilityContext,
    TimeSlot,
)
from ..domain.template_expander import expand_day
from .busy_time_cache import BusyTimeCache, CachedBusyTimes, utc_now

logger = logging.getLogger(__name__)


class HostLookupProtocol(Protocol):
    """Resolves a host id to its availability context."""

    def get_host_availability_context(self, host_id: str) -> HostAvailabilityContext:
        """Raise NotFoundError for unknown hosts."""


class CalendarClientProtocol(Protocol):
    """Protocol describing the external calendar behaviour needed by the service."""

    async def get_busy_intervals(
        self,
        credential: ExternalCalendarCredential,
        start: DateTime,
        end: DateTime,
    ) -> List[BusyInterval]:
        """Return busy intervals; raise ExternalCalendarUnavailable on failure."""


class BookingReaderProtocol(Protocol):
    """Read side of the booking store used for availability."""

    def find_confirmed_bookings_in_range(
        self, host_id: str, start: DateTime, end: DateTime
    ) -> List[ConfirmedBooking]:
        """Return confirmed bookings fully contained in [start, end)."""


class AvailabilityService:
    """
    Computes bookable slots for a host.

    Dependency inversion toward protocols makes it easy to plug in the Google
    adapter or the mock calendar, and the SQL or in-memory booking store.
    """

    def __init__(
        self,
        host_lookup: HostLookupProtocol,
        calendar_client: CalendarClientProtocol,
        booking_store: BookingReaderProtocol,
        busy_time_cache: BusyTimeCache,
        policy: SchedulingPolicy | None = None,
        clock: Callable[[], DateTime] = utc_now,
    ) -> None:
        self._host_lookup = host_lookup
        self._calendar_client = calendar_client
        self._booking_store = booking_store
        self._cache = busy_time_cache
        self._policy = policy or SchedulingPolicy()
        self._clock = clock

    async def get_available_slots(self, host_id: str, date_range: DateRange) -> AvailabilityResult:
        """
        Compute available slots for every host-local date touched by the range.

        Args:
            host_id: Host to compute availability for
            date_range: Half-open range of instants

        Returns:
            One DayAvailability per local date (empty days included), and
            whether the external calendar was unreachable for this call

        Raises:
            NotFoundError: If the host does not exist
            StorageError: If loading confirmed bookings fails
        """
        context = await asyncio.to_thread(self._host_lookup.get_host_availability_context, host_id)
        timezone = context.timezone

        local_dates = local_dates_between(date_range.start, date_range.end, timezone)
        window_start, window_end = local_day_bounds(local_dates[0], local_dates[-1], timezone)

        external_busy, degraded = await self._resolve_external_busy(
            host_id, context.external_calendar_credential, window_start, window_end
        )

        bookings = await asyncio.to_thread(
            self._booking_store.find_confirmed_bookings_in_range, host_id, window_start, window_end
        )
        booked = [booking.as_busy_interval() for booking in bookings if booking.is_blocking]

        earliest_start = self._clock() + self._policy.lead_time()

        days = [
            self._build_day(day, context, earliest_start, external_busy, booked)
            for day in local_dates
        ]

        return AvailabilityResult(host_timezone=timezone, days=days, gcal_degraded=degraded)

    def invalidate_cache(self, host_id: str) -> None:
        """Drop cached external busy time of a host."""
        self._cache.invalidate(host_id)

    async def _resolve_external_busy(
        self,
        host_id: str,
        credential: ExternalCalendarCredential | None,
        window_start: DateTime,
        window_end: DateTime,
    ) -> Tuple[List[BusyInterval], bool]:
        """
        Resolve external busy intervals for the window, at most one fetch per call.

        No credential means no external busy time and no degradation. A failed
        or timed-out fetch is not cached and yields zero intervals plus the
        degraded flag.
        """
        if credential is None:
            return [], False

        cached = self._cache.get(host_id)
        if cached is not None and cached.covers(window_start, window_end):
            return cached.intervals, False

        try:
            intervals = await asyncio.wait_for(
                self._calendar_client.get_busy_intervals(credential, window_start, window_end),
                timeout=self._policy.calendar_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "External calendar timed out for host %s after %ss; continuing without it",
                host_id,
                self._policy.calendar_timeout_seconds,
            )
            return [], True
        except ExternalCalendarUnavailable as e:
            logger.warning("External calendar unavailable for host %s: %s", host_id, e)
            return [], True
        except Exception as e:
            # A broken calendar adapter must never fail the availability call
            logger.warning(
                "Unexpected error from external calendar for host %s: %r; continuing without it",
                host_id,
                e,
                exc_info=True,
            )
            return [], True

        intervals = list(intervals)
        self._cache.set(
            host_id,
            CachedBusyTimes(window_start=window_start, window_end=window_end, intervals=intervals),
            self._policy.cache_ttl(),
        )
        return intervals, False

    def _build_day(
        self,
        day: Date,
        context: HostAvailabilityContext,
        earliest_start: DateTime,
        external_busy: Sequence[BusyInterval],
        booked: Sequence[BusyInterval],
    ) -> DayAvailability:
        """Expand one local date and keep the slots nothing blocks."""
        candidates = expand_day(
            day, context.bookable_template, context.timezone, self._policy.slot_minutes
        )

        available: List[TimeSlot] = []
        for slot in candidates:
            slot_start, slot_end = slot.to_instants(context.timezone)

            if slot_start < earliest_start:
                continue
            if self._is_blocked(slot_start, slot_end, external_busy):
                continue
            if self._is_blocked(slot_start, slot_end, booked):
                continue

            available.append(slot)

        return DayAvailability(
            date=day.to_date_string(),
            day_label=day.format("ddd D", locale="en"),
            slots=available,
        )

    @staticmethod
    def _is_blocked(
        slot_start: DateTime, slot_end: DateTime, busy: Sequence[BusyInterval]
    ) -> bool:
        return any(overlaps(slot_start, slot_end, b.start, b.end) for b in busy)
