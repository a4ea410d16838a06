"""
SQLAlchemy-backed booking store.

The transactional check in the booking service is the primary path; the
partial unique index below is the backstop that keeps at most one confirmed
booking per (host_id, start_time) even under weak isolation levels.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, List

import pendulum
from pendulum import DateTime
from sqlalchemy import DateTime as SADateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Index, String, create_engine, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.types import TypeDecorator

from ..domain.exceptions import SlotTakenError, StorageError
from ..domain.models import BookingStatus, ConfirmedBooking

logger = logging.getLogger(__name__)

UNIQUE_CONFIRMED_SLOT_INDEX = "uq_bookings_host_start_confirmed"


class UTCDateTime(TypeDecorator):
    """Stores instants as naive UTC and returns them as UTC pendulum DateTimes."""

    impl = SADateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("Naive datetimes cannot be stored")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return pendulum.instance(value.replace(tzinfo=timezone.utc))


class Base(DeclarativeBase):
    pass


class BookingRecord(Base):
    """Booking row."""

    __tablename__ = "bookings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    host_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    package_id: Mapped[str] = mapped_column(String(64), nullable=False)
    start_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    end_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    status: Mapped[BookingStatus] = mapped_column(
        SAEnum(
            BookingStatus,
            name="booking_status",
            native_enum=False,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=BookingStatus.CONFIRMED,
    )

    @classmethod
    def from_domain(cls, booking: ConfirmedBooking) -> "BookingRecord":
        return cls(
            id=booking.id,
            host_id=booking.host_id,
            customer_id=booking.customer_id,
            package_id=booking.package_id,
            start_time=booking.start_time,
            end_time=booking.end_time,
            status=booking.status,
        )

    def to_domain(self) -> ConfirmedBooking:
        return ConfirmedBooking(
            id=self.id,
            host_id=self.host_id,
            customer_id=self.customer_id,
            package_id=self.package_id,
            start_time=self.start_time,
            end_time=self.end_time,
            status=BookingStatus(self.status),
        )


Index(
    UNIQUE_CONFIRMED_SLOT_INDEX,
    BookingRecord.host_id,
    BookingRecord.start_time,
    unique=True,
    sqlite_where=text("status = 'confirmed'"),
    postgresql_where=text("status = 'confirmed'"),
)


class SqlTransaction:
    """Unit of work bound to one open session."""

    def __init__(self, session: Session):
        self._session = session

    def find_confirmed_booking_by_host_and_start(
        self, host_id: str, start_time: DateTime
    ) -> ConfirmedBooking | None:
        stmt = (
            select(BookingRecord)
            .where(
                BookingRecord.host_id == host_id,
                BookingRecord.start_time == start_time,
                BookingRecord.status == BookingStatus.CONFIRMED,
            )
            .limit(1)
        )
        record = self._session.scalars(stmt).first()
        return record.to_domain() if record is not None else None

    def insert_confirmed_booking(self, booking: ConfirmedBooking) -> ConfirmedBooking:
        return self.insert_booking(booking)

    def insert_booking(self, booking: ConfirmedBooking) -> ConfirmedBooking:
        """Stage a row of any status and flush so index violations surface here."""
        self._session.add(BookingRecord.from_domain(booking))
        self._session.flush()
        return booking


def _is_slot_conflict(exc: IntegrityError) -> bool:
    message = str(getattr(exc, "orig", exc))
    if UNIQUE_CONFIRMED_SLOT_INDEX in message:
        return True
    # SQLite reports the violated columns rather than the index name
    return "bookings.host_id, bookings.start_time" in message


class SqlBookingStore:
    """Booking store on any SQLAlchemy-supported database."""

    def __init__(self, engine: Engine):
        self._engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, database_url: str) -> "SqlBookingStore":
        """Create a store (and its schema) from a database URL."""
        connect_args = {}
        if database_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        engine = create_engine(database_url, connect_args=connect_args)
        store = cls(engine)
        store.create_schema()
        return store

    def create_schema(self) -> None:
        Base.metadata.create_all(self._engine)

    @contextmanager
    def transaction(self) -> Iterator[SqlTransaction]:
        """
        Run a unit of work in one database transaction.

        Raises:
            SlotTakenError: If the unique confirmed-slot index rejects the write
            StorageError: For any other database failure
        """
        try:
            with self._session_factory.begin() as session:
                yield SqlTransaction(session)
        except IntegrityError as exc:
            if _is_slot_conflict(exc):
                logger.info("Unique index rejected a concurrent booking for the same slot")
                raise SlotTakenError() from exc
            raise StorageError(f"Booking store integrity failure: {exc}") from exc
        except SQLAlchemyError as exc:
            raise StorageError(f"Booking store failure: {exc}") from exc

    def find_confirmed_bookings_in_range(
        self, host_id: str, start: DateTime, end: DateTime
    ) -> List[ConfirmedBooking]:
        """Confirmed bookings of a host fully contained in [start, end)."""
        stmt = (
            select(BookingRecord)
            .where(
                BookingRecord.host_id == host_id,
                BookingRecord.status == BookingStatus.CONFIRMED,
                BookingRecord.start_time >= start,
                BookingRecord.end_time <= end,
            )
            .order_by(BookingRecord.start_time)
        )
        try:
            with self._session_factory() as session:
                return [record.to_domain() for record in session.scalars(stmt)]
        except SQLAlchemyError as exc:
            raise StorageError(f"Booking store failure: {exc}") from exc

    def add(self, booking: ConfirmedBooking) -> None:
        """
        Insert a row with its given status (for seeding and imports).

        No existence check runs first, but the unique confirmed-slot index does.

        Raises:
            SlotTakenError: If a confirmed row already holds the same (host_id, start_time)
            StorageError: For any other database failure
        """
        with self.transaction() as tx:
            tx.insert_booking(booking)
