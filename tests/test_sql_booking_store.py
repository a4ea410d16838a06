"""
Tests for the SQLAlchemy booking store on SQLite.
"""

import threading

import pytest
from sqlalchemy import inspect

from slotkeeper.adapters.sql_booking_store import UNIQUE_CONFIRMED_SLOT_INDEX, SqlBookingStore
from slotkeeper.domain.exceptions import SlotTakenError, StorageError
from slotkeeper.domain.models import BookingRequest, BookingStatus, ConfirmedBooking, HostAvailabilityContext
from slotkeeper.services.booking import BookingService

from .helpers import ROME, StubHostLookup, local, utc


def _booking(booking_id: str, start: str, end: str, status: BookingStatus = BookingStatus.CONFIRMED,
             host_id: str = "host-1") -> ConfirmedBooking:
    return ConfirmedBooking(
        id=booking_id,
        host_id=host_id,
        customer_id="customer-1",
        package_id="package-1",
        start_time=local(start),
        end_time=local(end),
        status=status,
    )


@pytest.fixture
def sql_store(tmp_path) -> SqlBookingStore:
    return SqlBookingStore.from_url(f"sqlite:///{tmp_path / 'bookings.db'}")


class TestSchema:
    """Tests for the bookings table."""

    def test_partial_unique_index_exists(self, sql_store):
        indexes = inspect(sql_store._engine).get_indexes("bookings")

        unique = [index for index in indexes if index["name"] == UNIQUE_CONFIRMED_SLOT_INDEX]
        assert len(unique) == 1
        assert unique[0]["unique"]
        assert unique[0]["column_names"] == ["host_id", "start_time"]


class TestTransactions:
    """Tests for committing bookings through transactions."""

    def test_committed_booking_is_visible(self, sql_store):
        with sql_store.transaction() as tx:
            tx.insert_confirmed_booking(_booking("b1", "2026-02-16T09:00", "2026-02-16T10:00"))

        rows = sql_store.find_confirmed_bookings_in_range(
            "host-1", utc("2026-02-15T23:00"), utc("2026-02-16T23:00")
        )

        assert [row.id for row in rows] == ["b1"]
        assert rows[0].start_time == utc("2026-02-16T08:00")
        assert rows[0].start_time.utcoffset().total_seconds() == 0
        assert rows[0].status is BookingStatus.CONFIRMED

    def test_find_by_host_and_start(self, sql_store):
        sql_store.add(_booking("b1", "2026-02-16T09:00", "2026-02-16T10:00"))

        with sql_store.transaction() as tx:
            found = tx.find_confirmed_booking_by_host_and_start("host-1", utc("2026-02-16T08:00"))
            missing = tx.find_confirmed_booking_by_host_and_start("host-2", utc("2026-02-16T08:00"))

        assert found is not None and found.id == "b1"
        assert missing is None

    def test_exception_in_transaction_rolls_back(self, sql_store):
        with pytest.raises(RuntimeError):
            with sql_store.transaction() as tx:
                tx.insert_confirmed_booking(_booking("b1", "2026-02-16T09:00", "2026-02-16T10:00"))
                raise RuntimeError("abort")

        assert sql_store.find_confirmed_bookings_in_range(
            "host-1", utc("2026-02-15T00:00"), utc("2026-02-17T00:00")
        ) == []

    def test_unique_index_rejects_second_confirmed_row(self, sql_store):
        """Inserting past the check still fails on the index, as SlotTakenError."""
        sql_store.add(_booking("b1", "2026-02-16T09:00", "2026-02-16T10:00"))

        with pytest.raises(SlotTakenError):
            with sql_store.transaction() as tx:
                tx.insert_confirmed_booking(_booking("b2", "2026-02-16T09:00", "2026-02-16T10:00"))

    def test_canceled_rows_do_not_occupy_the_index(self, sql_store):
        sql_store.add(
            _booking("b1", "2026-02-16T09:00", "2026-02-16T10:00", status=BookingStatus.CANCELED)
        )

        with sql_store.transaction() as tx:
            tx.insert_confirmed_booking(_booking("b2", "2026-02-16T09:00", "2026-02-16T10:00"))

        rows = sql_store.find_confirmed_bookings_in_range(
            "host-1", utc("2026-02-15T23:00"), utc("2026-02-16T23:00")
        )
        assert [row.id for row in rows] == ["b2"]


class TestRangeQuery:
    """Tests for find_confirmed_bookings_in_range."""

    def test_only_fully_contained_confirmed_rows_of_the_host(self, sql_store):
        sql_store.add(_booking("inside", "2026-02-16T09:00", "2026-02-16T10:00"))
        sql_store.add(_booking("straddles", "2026-02-16T23:30", "2026-02-17T00:30"))
        sql_store.add(_booking("other-host", "2026-02-16T11:00", "2026-02-16T12:00", host_id="host-2"))
        sql_store.add(
            _booking("canceled", "2026-02-16T12:00", "2026-02-16T13:00", status=BookingStatus.CANCELED)
        )
        sql_store.add(_booking("later", "2026-02-16T15:00", "2026-02-16T16:00"))

        rows = sql_store.find_confirmed_bookings_in_range(
            "host-1", local("2026-02-16T00:00"), local("2026-02-17T00:00")
        )

        assert [row.id for row in rows] == ["inside", "later"]


class TestBookingServiceOnSql:
    """The commit protocol against a real database."""

    def test_duplicate_booking_raises_slot_taken(self, sql_store, monday_template, cache):
        lookup = StubHostLookup(
            {"host-1": HostAvailabilityContext(bookable_template=monday_template, timezone=ROME)}
        )
        service = BookingService(booking_store=sql_store, busy_time_cache=cache, host_lookup=lookup)
        request = BookingRequest(
            host_id="host-1",
            customer_id="customer-1",
            package_id="package-1",
            start_time=local("2026-02-16T09:00"),
            end_time=local("2026-02-16T10:00"),
        )

        service.create_confirmed_booking(request)
        with pytest.raises(SlotTakenError):
            service.create_confirmed_booking(request)

        rows = sql_store.find_confirmed_bookings_in_range(
            "host-1", utc("2026-02-15T23:00"), utc("2026-02-16T23:00")
        )
        assert len(rows) == 1

    def test_concurrent_bookings_of_one_slot_have_one_winner(self, sql_store, monday_template, cache):
        """Parallel sessions racing for one slot commit exactly one confirmed row."""
        lookup = StubHostLookup(
            {"host-1": HostAvailabilityContext(bookable_template=monday_template, timezone=ROME)}
        )
        service = BookingService(booking_store=sql_store, busy_time_cache=cache, host_lookup=lookup)
        workers = 8
        barrier = threading.Barrier(workers)
        outcomes = []
        outcomes_lock = threading.Lock()

        def attempt(index: int) -> None:
            request = BookingRequest(
                host_id="host-1",
                customer_id=f"customer-{index}",
                package_id="package-1",
                start_time=local("2026-02-16T09:00"),
                end_time=local("2026-02-16T10:00"),
            )
            barrier.wait(timeout=5)
            try:
                service.create_confirmed_booking(request)
                result = "ok"
            except SlotTakenError:
                result = "taken"
            with outcomes_lock:
                outcomes.append(result)

        threads = [threading.Thread(target=attempt, args=(n,)) for n in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert outcomes.count("ok") == 1
        assert outcomes.count("taken") == workers - 1
        rows = sql_store.find_confirmed_bookings_in_range(
            "host-1", utc("2026-02-15T23:00"), utc("2026-02-16T23:00")
        )
        assert len(rows) == 1


class TestSeeding:
    """Tests for SqlBookingStore.add."""

    def test_add_onto_a_confirmed_slot_raises_slot_taken(self, sql_store):
        sql_store.add(_booking("b1", "2026-02-16T09:00", "2026-02-16T10:00"))

        with pytest.raises(SlotTakenError):
            sql_store.add(_booking("b2", "2026-02-16T09:00", "2026-02-16T10:00"))

    def test_other_database_errors_become_storage_errors(self, sql_store):
        """A primary key clash is not a slot conflict."""
        sql_store.add(_booking("b1", "2026-02-16T09:00", "2026-02-16T10:00", status=BookingStatus.CANCELED))

        with pytest.raises(StorageError):
            sql_store.add(_booking("b1", "2026-02-16T11:00", "2026-02-16T12:00", status=BookingStatus.CANCELED))
