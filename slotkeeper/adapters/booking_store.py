"""
In-memory booking store.

Transactions are serialized on a single lock, which gives the check-then-insert
in the booking service serializable semantics. The store additionally enforces
a unique index on (host_id, start_time) over confirmed rows when a transaction
commits.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Tuple

from pendulum import DateTime

from ..domain.exceptions import SlotTakenError
from ..domain.models import BookingStatus, ConfirmedBooking


class InMemoryTransaction:
    """Unit of work staged against an :class:`InMemoryBookingStore`."""

    def __init__(self, store: "InMemoryBookingStore"):
        self._store = store
        self._pending: List[ConfirmedBooking] = []

    def find_confirmed_booking_by_host_and_start(
        self, host_id: str, start_time: DateTime
    ) -> ConfirmedBooking | None:
        for booking in list(self._store._rows.values()) + self._pending:
            if (
                booking.host_id == host_id
                and booking.start_time == start_time
                and booking.status is BookingStatus.CONFIRMED
            ):
                return booking
        return None

    def insert_confirmed_booking(self, booking: ConfirmedBooking) -> ConfirmedBooking:
        self._pending.append(booking)
        return booking

    @property
    def pending(self) -> List[ConfirmedBooking]:
        return list(self._pending)


class InMemoryBookingStore:
    """Booking store backed by a dict; intended for tests and the CLI demo mode."""

    def __init__(self, bookings: Iterable[ConfirmedBooking] = ()):
        self._rows: Dict[str, ConfirmedBooking] = {}
        self._lock = threading.RLock()
        for booking in bookings:
            self._rows[booking.id] = booking

    @contextmanager
    def transaction(self) -> Iterator[InMemoryTransaction]:
        """Run a unit of work; pending inserts are applied only if it completes."""
        with self._lock:
            tx = InMemoryTransaction(self)
            yield tx
            self._commit(tx.pending)

    def _commit(self, pending: List[ConfirmedBooking]) -> None:
        taken: Dict[Tuple[str, DateTime], str] = {
            (row.host_id, row.start_time): row.id
            for row in self._rows.values()
            if row.status is BookingStatus.CONFIRMED
        }
        for booking in pending:
            key = (booking.host_id, booking.start_time)
            if booking.status is BookingStatus.CONFIRMED and key in taken:
                raise SlotTakenError()
            taken[key] = booking.id

        for booking in pending:
            self._rows[booking.id] = booking

    def find_confirmed_bookings_in_range(
        self, host_id: str, start: DateTime, end: DateTime
    ) -> List[ConfirmedBooking]:
        """Confirmed bookings of a host fully contained in [start, end)."""
        with self._lock:
            rows = [
                booking
                for booking in self._rows.values()
                if booking.host_id == host_id
                and booking.status is BookingStatus.CONFIRMED
                and booking.start_time >= start
                and booking.end_time <= end
            ]
        return sorted(rows, key=lambda b: b.start_time)

    def all_bookings(self) -> List[ConfirmedBooking]:
        with self._lock:
            return sorted(self._rows.values(), key=lambda b: b.start_time)
