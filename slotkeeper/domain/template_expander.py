"""
Expansion of a weekly bookable template into concrete slots for one date.
"""

from datetime import date, datetime
from typing import List

from pendulum import Date, DateTime

from .intervals import to_instant
from .models import BookableTemplate, TimeSlot


def _wall_clock(day: date, minutes: int) -> str:
    hour, minute = divmod(minutes, 60)
    return f"{day.isoformat()}T{hour:02d}:{minute:02d}:00"


def expand_day(
    day: Date | DateTime,
    template: BookableTemplate,
    timezone: str,
    slot_minutes: int = 60,
) -> List[TimeSlot]:
    """
    Produce the template's slots for a single host-local date.

    Args:
        day: A local calendar date, or an aware instant which is first moved
            into the host timezone so the weekday is the host-local one
        template: The host's weekly bookable template
        timezone: IANA timezone of the host
        slot_minutes: Slot length; template bounds are exact hours so any
            divisor of 60 tiles each range exactly

    Returns:
        Slots in ascending start order, empty if the weekday has no ranges
    """
    if isinstance(day, datetime):
        day = to_instant(day).in_timezone(timezone).date()

    slots: List[TimeSlot] = []

    for hour_range in template.ranges_for(day.weekday()):
        range_end = hour_range.end_hour * 60
        for minutes in range(hour_range.start_hour * 60, range_end, slot_minutes):
            slots.append(
                TimeSlot(
                    start=_wall_clock(day, minutes),
                    end=_wall_clock(day, minutes + slot_minutes),
                )
            )

    return slots
