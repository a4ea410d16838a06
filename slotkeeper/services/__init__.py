"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .availability import AvailabilityService, CalendarClientProtocol, HostLookupProtocol
from .booking import BookingService, BookingStoreProtocol
from .busy_time_cache import BusyTimeCache, CachedBusyTimes, TTLCache

__all__ = [
    "AvailabilityService",
    "BookingService",
    "BookingStoreProtocol",
    "BusyTimeCache",
    "CachedBusyTimes",
    "CalendarClientProtocol",
    "HostLookupProtocol",
    "TTLCache",
]
