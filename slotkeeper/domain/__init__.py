"""
Domain layer - Pure business logic without external dependencies.
"""

from .intervals import overlaps, zoned_wall_clock_to_instant
from .models import (
    AvailabilityResult,
    BookableTemplate,
    BookingRequest,
    BookingStatus,
    BusyInterval,
    ConfirmedBooking,
    DateRange,
    DayAvailability,
    ExternalCalendarCredential,
    HostAvailabilityContext,
    HourRange,
    TimeSlot,
)
from .template_expander import expand_day

__all__ = [
    "AvailabilityResult",
    "BookableTemplate",
    "BookingRequest",
    "BookingStatus",
    "BusyInterval",
    "ConfirmedBooking",
    "DateRange",
    "DayAvailability",
    "ExternalCalendarCredential",
    "HostAvailabilityContext",
    "HourRange",
    "TimeSlot",
    "expand_day",
    "overlaps",
    "zoned_wall_clock_to_instant",
]
