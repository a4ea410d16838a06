"""
Domain-specific exception hierarchy for the scheduling core.
"""


class SchedulingError(Exception):
    """Base class for all application-level errors."""

    code = "INTERNAL_ERROR"


class NotFoundError(SchedulingError):
    """Raised when a host or referenced entity does not exist."""

    code = "NOT_FOUND"


class ValidationError(SchedulingError, ValueError):
    """Raised for malformed input, before any I/O happens."""

    code = "VALIDATION_ERROR"


class ExternalCalendarUnavailable(SchedulingError):
    """Raised when external calendar busy time cannot be fetched or parsed."""

    code = "EXTERNAL_CALENDAR_UNAVAILABLE"


class SlotTakenError(SchedulingError):
    """Raised when a confirmed booking already exists for the requested slot."""

    code = "SLOT_TAKEN"

    def __init__(self, message: str = "This slot was just booked"):
        super().__init__(message)


class StorageError(SchedulingError):
    """Raised when the booking store fails for reasons other than a slot conflict."""

    code = "INTERNAL_ERROR"
