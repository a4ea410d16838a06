"""
Stubs and small helpers shared by the tests.
"""

import asyncio
from typing import Dict, List

import pendulum
import requests
from pendulum import DateTime

from slotkeeper.domain.exceptions import ExternalCalendarUnavailable, NotFoundError
from slotkeeper.domain.models import BusyInterval, HostAvailabilityContext

ROME = "Europe/Rome"


class FakeClock:
    """Settable clock returning UTC instants."""

    def __init__(self, now: DateTime):
        self.now = now

    def __call__(self) -> DateTime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now.add(**kwargs)


class StubHostLookup:
    """Host lookup over a dict of contexts."""

    def __init__(self, contexts: Dict[str, HostAvailabilityContext]):
        self.contexts = contexts

    def get_host_availability_context(self, host_id: str) -> HostAvailabilityContext:
        if host_id not in self.contexts:
            raise NotFoundError(f"Host not found: {host_id}")
        return self.contexts[host_id]


class StubCalendarClient:
    """Minimal stub matching CalendarClientProtocol."""

    def __init__(self, busy: List[BusyInterval] | None = None, fail: bool = False, delay: float = 0.0):
        self.busy = busy or []
        self.fail = fail
        self.delay = delay
        self.calls: List[Dict[str, object]] = []

    async def get_busy_intervals(self, credential, start, end):
        self.calls.append({"calendar_id": credential.calendar_id, "start": start, "end": end})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise ExternalCalendarUnavailable("provider down")
        return list(self.busy)


class FakeResponse:
    def __init__(self, payload=None, status_code=200, invalid_json=False):
        self.payload = payload
        self.status_code = status_code
        self.invalid_json = invalid_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Client Error")

    def json(self):
        if self.invalid_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self.payload


class FakeSession:
    """Records POSTs and replays a canned response or error."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def post(self, url, headers=None, json=None, timeout=None):
        self.requests.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


def utc(text: str) -> DateTime:
    return pendulum.parse(text, tz="UTC")


def local(text: str, tz: str = ROME) -> DateTime:
    return pendulum.parse(text, tz=tz)
