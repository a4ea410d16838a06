"""
Adapters layer - Booking stores, host lookup and external calendar integrations.
"""

from .booking_store import InMemoryBookingStore
from .google_calendar import GoogleCalendarClient
from .host_directory import HostDirectory
from .mock_calendar import MockCalendarClient
from .sql_booking_store import SqlBookingStore

__all__ = [
    "GoogleCalendarClient",
    "HostDirectory",
    "InMemoryBookingStore",
    "MockCalendarClient",
    "SqlBookingStore",
]
