"""
Tests for the weekly template expander.
"""

import pendulum

from slotkeeper.domain.models import BookableTemplate
from slotkeeper.domain.template_expander import expand_day

from .helpers import utc


class TestExpandDay:
    """Tests for expand_day."""

    def test_nine_to_five_emits_eight_hourly_slots(self, monday_template):
        """09:00-17:00 produces one slot per whole hour."""
        slots = expand_day(pendulum.date(2026, 2, 16), monday_template, "Europe/Rome")

        assert len(slots) == 8
        assert slots[0].start == "2026-02-16T09:00:00"
        assert slots[0].end == "2026-02-16T10:00:00"
        assert slots[-1].start == "2026-02-16T16:00:00"
        assert slots[-1].end == "2026-02-16T17:00:00"

    def test_weekday_without_ranges_is_empty(self, monday_template):
        """Tuesday has no ranges in the template."""
        assert expand_day(pendulum.date(2026, 2, 17), monday_template, "Europe/Rome") == []

    def test_multiple_ranges_are_ascending(self):
        """Ranges are sorted on validation, so slots come out in order."""
        template = BookableTemplate(
            tuesday=[{"start": "14:00", "end": "16:00"}, {"start": "09:00", "end": "11:00"}]
        )

        slots = expand_day(pendulum.date(2026, 2, 17), template, "UTC")

        assert [slot.start[11:16] for slot in slots] == ["09:00", "10:00", "14:00", "15:00"]

    def test_instant_uses_host_local_weekday(self, monday_template):
        """
        01:00 UTC on Tuesday is still Monday evening in Los Angeles, so the
        Monday ranges apply and the slots carry Monday's date.
        """
        slots = expand_day(utc("2026-02-17T01:00:00"), monday_template, "America/Los_Angeles")

        assert len(slots) == 8
        assert slots[0].start == "2026-02-16T09:00:00"

    def test_instant_in_utc_would_be_other_weekday(self, monday_template):
        """The same instant in Rome is Tuesday, which has no ranges."""
        assert expand_day(utc("2026-02-17T01:00:00"), monday_template, "Europe/Rome") == []

    def test_half_hour_slots(self, monday_template):
        """A smaller slot length tiles the same range."""
        slots = expand_day(pendulum.date(2026, 2, 16), monday_template, "UTC", slot_minutes=30)

        assert len(slots) == 16
        assert slots[1].start == "2026-02-16T09:30:00"
        assert slots[1].end == "2026-02-16T10:00:00"

    def test_expansion_is_repeatable(self, monday_template):
        """Expanding twice yields identical results."""
        day = pendulum.date(2026, 2, 16)
        assert expand_day(day, monday_template, "UTC") == expand_day(day, monday_template, "UTC")
