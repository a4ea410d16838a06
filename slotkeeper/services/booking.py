"""
Booking commit protocol.

A booking is committed by a transactional check-then-insert against the
booking store. The store's unique index on confirmed (host_id, start_time)
backs up the check, and both paths surface as ``SlotTakenError``.
"""

from __future__ import annotations

import logging
from contextlib import AbstractContextManager
from typing import Protocol

from pendulum import DateTime

from ..config import SchedulingPolicy
from ..domain.exceptions import SlotTakenError, ValidationError
from ..domain.models import BookingRequest, ConfirmedBooking
from .availability import HostLookupProtocol
from .busy_time_cache import BusyTimeCache

logger = logging.getLogger(__name__)


class BookingTransactionProtocol(Protocol):
    """Operations available inside one booking store transaction."""

    def find_confirmed_booking_by_host_and_start(
        self, host_id: str, start_time: DateTime
    ) -> ConfirmedBooking | None:
        ...

    def insert_confirmed_booking(self, booking: ConfirmedBooking) -> ConfirmedBooking:
        ...


class BookingStoreProtocol(Protocol):
    """Write side of the booking store."""

    def transaction(self) -> AbstractContextManager[BookingTransactionProtocol]:
        """Open an atomic unit of work; raise SlotTakenError on uniqueness violations."""


class BookingService:
    """The only writer of confirmed bookings."""

    def __init__(
        self,
        booking_store: BookingStoreProtocol,
        busy_time_cache: BusyTimeCache,
        host_lookup: HostLookupProtocol,
        policy: SchedulingPolicy | None = None,
    ) -> None:
        self._store = booking_store
        self._cache = busy_time_cache
        self._host_lookup = host_lookup
        self._policy = policy or SchedulingPolicy()

    def create_confirmed_booking(self, request: BookingRequest) -> ConfirmedBooking:
        """
        Commit a confirmed booking unless the slot is already taken.

        Args:
            request: Host, customer, package and the slot's start/end instants

        Returns:
            The stored booking

        Raises:
            NotFoundError: If the host does not exist
            ValidationError: If start or end is not on a slot boundary, or the
                booking does not span exactly one slot
            SlotTakenError: If a confirmed booking exists for (host, start)
            StorageError: For any other storage failure
        """
        context = self._host_lookup.get_host_availability_context(request.host_id)
        self._validate_slot_boundaries(request, context.timezone)

        try:
            with self._store.transaction() as tx:
                existing = tx.find_confirmed_booking_by_host_and_start(
                    request.host_id, request.start_time
                )
                if existing is not None:
                    raise SlotTakenError()

                booking = tx.insert_confirmed_booking(ConfirmedBooking.from_request(request))
        except SlotTakenError:
            logger.info(
                "Slot %s for host %s is already booked",
                request.start_time.to_iso8601_string(),
                request.host_id,
            )
            raise

        self._cache.invalidate(request.host_id)

        logger.info(
            "Booking %s confirmed for host %s at %s",
            booking.id,
            booking.host_id,
            booking.start_time.to_iso8601_string(),
        )
        return booking

    def _validate_slot_boundaries(self, request: BookingRequest, timezone: str) -> None:
        """Both bounds must fall on the slot grid in the host's local time, one slot apart."""
        for label, instant in (("start", request.start_time), ("end", request.end_time)):
            local = instant.in_timezone(timezone)
            minutes = local.hour * 60 + local.minute
            if local.second or local.microsecond or minutes % self._policy.slot_minutes:
                raise ValidationError(
                    f"Booking {label} {local.to_iso8601_string()} is not on a "
                    f"{self._policy.slot_minutes}-minute slot boundary"
                )

        # Exactly one slot per booking
        if request.end_time != request.start_time + self._policy.slot_length():
            raise ValidationError(
                f"Booking must last exactly one {self._policy.slot_minutes}-minute slot, "
                f"got {request.start_time.to_iso8601_string()} to {request.end_time.to_iso8601_string()}"
            )
