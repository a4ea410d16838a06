"""
Mock calendar client for running without Google credentials.
"""

import json
from pathlib import Path
from typing import Any, Dict, List

import pendulum
from pendulum import DateTime

from ..domain.exceptions import ExternalCalendarUnavailable
from ..domain.models import BusyInterval, ExternalCalendarCredential


class MockCalendarClient:
    """
    Mock client that serves busy time from static event data.

    Events are loaded from mock_calendar_data.json (or passed in directly) and
    carry a ``calendarId`` matched against the credential's calendar id.
    Setting ``fail`` simulates a provider outage.
    """

    def __init__(
        self,
        events: List[Dict[str, Any]] | None = None,
        data_file: Path | None = None,
        fail: bool = False,
    ):
        self.fail = fail
        self.calls: List[Dict[str, Any]] = []
        if events is not None:
            self.calendar_events = list(events)
        else:
            self.calendar_events = self._load_calendar_data(
                data_file or Path(__file__).parent / "mock_calendar_data.json"
            )

    @staticmethod
    def _load_calendar_data(data_file: Path) -> List[Dict[str, Any]]:
        """Load mock calendar data from a JSON file."""
        if not data_file.exists():
            return []
        with open(data_file, "r", encoding="utf-8") as f:
            return json.load(f)

    async def get_busy_intervals(
        self,
        credential: ExternalCalendarCredential,
        start: DateTime,
        end: DateTime,
    ) -> List[BusyInterval]:
        """Return mock busy intervals of the calendar that overlap [start, end)."""
        self.calls.append({"calendar_id": credential.calendar_id, "start": start, "end": end})

        if self.fail:
            raise ExternalCalendarUnavailable("Mock calendar is configured to fail")

        intervals: List[BusyInterval] = []

        for event in self.calendar_events:
            if event.get("calendarId", "primary") != credential.calendar_id:
                continue

            try:
                event_start = pendulum.parse(event["start"])
                event_end = pendulum.parse(event["end"])
            except (KeyError, ValueError):
                continue

            # Date-only values carry no instant
            if not isinstance(event_start, DateTime) or not isinstance(event_end, DateTime):
                continue
            event_start = event_start.in_timezone("UTC")
            event_end = event_end.in_timezone("UTC")

            if event_start < event_end and event_start < end and event_end > start:
                intervals.append(BusyInterval(start=event_start, end=event_end))

        return sorted(intervals, key=lambda interval: interval.start)
