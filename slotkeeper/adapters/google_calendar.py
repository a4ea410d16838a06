"""
Google Calendar client for fetching busy time.
"""

import asyncio
import logging
from typing import Any, Dict, List

import pendulum
import requests
from pendulum import DateTime

from ..domain.exceptions import ExternalCalendarUnavailable
from ..domain.models import BusyInterval, ExternalCalendarCredential

logger = logging.getLogger(__name__)


class GoogleCalendarClient:
    """
    Client for Google Calendar free/busy queries.

    Uses the /freeBusy endpoint, which only exposes busy periods and never
    event details. The client only reads; it does not create events.
    """

    CALENDAR_API_ENDPOINT = "https://www.googleapis.com/calendar/v3"

    def __init__(self, timeout: float = 10.0, session: requests.Session | None = None):
        """
        Initialize the client.

        Args:
            timeout: Per-request timeout in seconds
            session: Optional requests session (connection pooling, testing)
        """
        self.timeout = timeout
        self.session = session or requests.Session()

    async def get_busy_intervals(
        self,
        credential: ExternalCalendarCredential,
        start: DateTime,
        end: DateTime,
    ) -> List[BusyInterval]:
        """
        Get busy intervals of the credential's calendar within [start, end).

        The blocking HTTP call runs in a worker thread.

        Raises:
            ExternalCalendarUnavailable: On network, HTTP, auth or payload errors
        """
        return await asyncio.to_thread(self.query_free_busy, credential, start, end)

    def query_free_busy(
        self,
        credential: ExternalCalendarCredential,
        start: DateTime,
        end: DateTime,
    ) -> List[BusyInterval]:
        """Synchronous free/busy query."""
        url = f"{self.CALENDAR_API_ENDPOINT}/freeBusy"
        headers = {
            "Authorization": f"Bearer {credential.access_token}",
            "Content-Type": "application/json",
        }
        payload = {
            "timeMin": start.in_timezone("UTC").to_iso8601_string(),
            "timeMax": end.in_timezone("UTC").to_iso8601_string(),
            "items": [{"id": credential.calendar_id}],
        }

        try:
            response = self.session.post(url, headers=headers, json=payload, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            raise ExternalCalendarUnavailable(f"Failed to fetch busy time from Google Calendar: {e}") from e
        except ValueError as e:
            raise ExternalCalendarUnavailable(f"Google Calendar returned invalid JSON: {e}") from e

        return self._parse_free_busy_response(data, credential.calendar_id)

    def _parse_free_busy_response(
        self,
        response_data: Dict[str, Any],
        calendar_id: str,
    ) -> List[BusyInterval]:
        """
        Parse the freeBusy API response into busy intervals.

        Response format:
        {
            "calendars": {
                "primary": {
                    "busy": [
                        {"start": "2026-02-16T08:00:00Z", "end": "2026-02-16T09:30:00Z"}
                    ],
                    "errors": [{"domain": "global", "reason": "notFound"}]
                }
            }
        }
        """
        if not isinstance(response_data, dict):
            raise ExternalCalendarUnavailable("Free/busy response is not a JSON object")

        calendars = response_data.get("calendars")
        if not isinstance(calendars, dict):
            raise ExternalCalendarUnavailable("Free/busy response has no 'calendars' object")

        calendar = calendars.get(calendar_id)
        if calendar is None:
            raise ExternalCalendarUnavailable(f"Calendar '{calendar_id}' missing from free/busy response")
        if not isinstance(calendar, dict):
            raise ExternalCalendarUnavailable(f"Calendar '{calendar_id}' entry is malformed")

        errors = calendar.get("errors") or []
        if errors:
            reasons = ", ".join(
                str(error.get("reason", "unknown")) if isinstance(error, dict) else str(error)
                for error in errors
            )
            raise ExternalCalendarUnavailable(f"Calendar '{calendar_id}' reported errors: {reasons}")

        busy = calendar.get("busy") or []
        if not isinstance(busy, list):
            raise ExternalCalendarUnavailable(f"Calendar '{calendar_id}' busy list is malformed")

        intervals: List[BusyInterval] = []

        for item in busy:
            try:
                intervals.append(
                    BusyInterval(
                        start=self._parse_instant(item["start"]),
                        end=self._parse_instant(item["end"]),
                    )
                )
            except (KeyError, ValueError, TypeError) as e:
                logger.warning("Skipping unparsable busy item %r: %s", item, e)
                continue

        return intervals

    @staticmethod
    def _parse_instant(value: str) -> DateTime:
        """Parse an RFC 3339 timestamp to a UTC pendulum DateTime."""
        dt = pendulum.parse(value)

        if isinstance(dt, DateTime):
            return dt.in_timezone("UTC")

        raise ValueError(f"Could not parse datetime: {value}")
