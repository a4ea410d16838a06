"""
Domain models for templates, busy time, bookings and availability results.
"""

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Tuple

from pendulum import DateTime
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .exceptions import ValidationError
from .intervals import to_instant, zoned_wall_clock_to_instant

# Bookable hours are restricted to this local operating window.
OPERATING_WINDOW_START_HOUR = 8
OPERATING_WINDOW_END_HOUR = 20

WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

_HOUR_PATTERN = re.compile(r"^(\d{2}):(\d{2})$")


class HourRange(BaseModel):
    """
    One wall-clock range of a weekday, e.g. 09:00-17:00.

    Both bounds sit on exact hours inside the operating window.
    """
    model_config = ConfigDict(frozen=True)

    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def validate_exact_hour(cls, value: str) -> str:
        """Validate HH:MM format on an exact hour inside the operating window."""
        match = _HOUR_PATTERN.match(value)
        if not match:
            raise ValueError(f"Time must use HH:MM format, got '{value}'")

        hour, minute = int(match.group(1)), int(match.group(2))
        if minute != 0:
            raise ValueError(f"Time must be on an exact hour, got '{value}'")
        if not OPERATING_WINDOW_START_HOUR <= hour <= OPERATING_WINDOW_END_HOUR:
            raise ValueError(
                f"Time must be between {OPERATING_WINDOW_START_HOUR:02d}:00 and "
                f"{OPERATING_WINDOW_END_HOUR:02d}:00, got '{value}'"
            )
        return value

    @model_validator(mode="after")
    def validate_order(self) -> "HourRange":
        """Ensure the range opens before it closes."""
        if self.start_hour >= self.end_hour:
            raise ValueError(f"Range start {self.start} must be before end {self.end}")
        return self

    @property
    def start_hour(self) -> int:
        return int(self.start[:2])

    @property
    def end_hour(self) -> int:
        return int(self.end[:2])


class BookableTemplate(BaseModel):
    """Recurring weekly availability: per-weekday lists of disjoint hour ranges."""
    monday: List[HourRange] = Field(default_factory=list)
    tuesday: List[HourRange] = Field(default_factory=list)
    wednesday: List[HourRange] = Field(default_factory=list)
    thursday: List[HourRange] = Field(default_factory=list)
    friday: List[HourRange] = Field(default_factory=list)
    saturday: List[HourRange] = Field(default_factory=list)
    sunday: List[HourRange] = Field(default_factory=list)

    @field_validator(*WEEKDAYS)
    @classmethod
    def validate_disjoint(cls, value: List[HourRange]) -> List[HourRange]:
        """Sort a day's ranges and reject overlaps (adjacent ranges are fine)."""
        ordered = sorted(value, key=lambda r: r.start_hour)
        for previous, current in zip(ordered, ordered[1:]):
            if current.start_hour < previous.end_hour:
                raise ValueError(
                    f"Ranges {previous.start}-{previous.end} and "
                    f"{current.start}-{current.end} overlap"
                )
        return ordered

    def ranges_for(self, weekday: int) -> List[HourRange]:
        """Get the ranges for a weekday index (0=Monday, 6=Sunday)."""
        return getattr(self, WEEKDAYS[weekday])


@dataclass(frozen=True)
class ExternalCalendarCredential:
    """Access to a host's external calendar; token acquisition happens elsewhere."""
    access_token: str
    calendar_id: str = "primary"


@dataclass(frozen=True)
class HostAvailabilityContext:
    """Read snapshot of what the availability engine needs to know about a host."""
    bookable_template: BookableTemplate
    timezone: str = "UTC"
    external_calendar_credential: ExternalCalendarCredential | None = None


@dataclass(frozen=True)
class BusyInterval:
    """
    Half-open [start, end) period during which the host is unavailable.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")


@dataclass(frozen=True)
class DateRange:
    """Half-open [start, end) range of instants requested by a caller."""
    start: DateTime
    end: DateTime

    def __post_init__(self):
        object.__setattr__(self, "start", to_instant(self.start))
        object.__setattr__(self, "end", to_instant(self.end))
        if self.start >= self.end:
            raise ValidationError(
                f"Range start {self.start.isoformat()} must be before end {self.end.isoformat()}"
            )


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    CONFIRMED = "confirmed"
    CANCELED = "canceled"


@dataclass(frozen=True)
class BookingRequest:
    """Input to the booking commit protocol."""
    host_id: str
    customer_id: str
    package_id: str
    start_time: DateTime
    end_time: DateTime

    def __post_init__(self):
        for name in ("host_id", "customer_id", "package_id"):
            if not getattr(self, name):
                raise ValidationError(f"{name} is required")
        object.__setattr__(self, "start_time", to_instant(self.start_time))
        object.__setattr__(self, "end_time", to_instant(self.end_time))
        if self.start_time >= self.end_time:
            raise ValidationError(
                f"Booking start {self.start_time.isoformat()} must be before end "
                f"{self.end_time.isoformat()}"
            )


@dataclass(frozen=True)
class ConfirmedBooking:
    """A booking row as stored by the booking store."""
    id: str
    host_id: str
    customer_id: str
    package_id: str
    start_time: DateTime
    end_time: DateTime
    status: BookingStatus = BookingStatus.CONFIRMED

    @classmethod
    def from_request(cls, request: BookingRequest) -> "ConfirmedBooking":
        """Build a new confirmed booking with a fresh id."""
        return cls(
            id=str(uuid.uuid4()),
            host_id=request.host_id,
            customer_id=request.customer_id,
            package_id=request.package_id,
            start_time=request.start_time,
            end_time=request.end_time,
            status=BookingStatus.CONFIRMED,
        )

    @property
    def is_blocking(self) -> bool:
        """Only confirmed bookings block availability and conflict checks."""
        return self.status is BookingStatus.CONFIRMED

    def as_busy_interval(self) -> BusyInterval:
        return BusyInterval(start=self.start_time, end=self.end_time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "hostId": self.host_id,
            "customerId": self.customer_id,
            "packageId": self.package_id,
            "startTime": self.start_time.in_timezone("UTC").to_iso8601_string(),
            "endTime": self.end_time.in_timezone("UTC").to_iso8601_string(),
            "status": self.status.value,
        }


@dataclass(frozen=True)
class TimeSlot:
    """
    One bookable slot as host-local wall-clock strings without a UTC offset,
    e.g. ``2026-02-16T09:00:00``.
    """
    start: str
    end: str

    def to_instants(self, timezone: str) -> Tuple[DateTime, DateTime]:
        """Resolve both bounds to UTC instants in the given timezone."""
        start_date, start_time = self.start.split("T")
        end_date, end_time = self.end.split("T")
        return (
            zoned_wall_clock_to_instant(start_date, start_time, timezone),
            zoned_wall_clock_to_instant(end_date, end_time, timezone),
        )

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start, "end": self.end}


@dataclass
class DayAvailability:
    """Available slots of one host-local calendar date."""
    date: str
    day_label: str
    slots: List[TimeSlot] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "dayLabel": self.day_label,
            "slots": [slot.to_dict() for slot in self.slots],
        }


@dataclass
class AvailabilityResult:
    """Result of an availability computation, JSON-serializable via ``to_dict``."""
    host_timezone: str
    days: List[DayAvailability]
    gcal_degraded: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hostTimezone": self.host_timezone,
            "days": [day.to_dict() for day in self.days],
            "gcalDegraded": self.gcal_degraded,
        }

    def all_slots(self) -> List[TimeSlot]:
        return [slot for day in self.days for slot in day.slots]
