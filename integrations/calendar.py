"""Calendar backends: Google Calendar v3 over httpx and an in-memory store."""

from __future__ import annotations
from tracking import t

import asyncio
import itertools
import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
import pytz

from infrastructure.constants import (
    CALENDAR_API_BASE,
    CALENDAR_HTTP_TIMEOUT_SECONDS,
    CALENDAR_PAGE_SIZE,
    SOURCE_EVENT_PROPERTY,
)
from infrastructure.errors import CalendarBackendError
from reservations.models import Event


class CalendarBackend:
    """Event store consumed by the booking and poll workflows.

    Implementations never cache: every call reflects the backend's current
    state.
    """

    async def list_events(self, calendar_id: str, start: datetime, end: datetime) -> List[Event]:
        """Return every event intersecting ``[start, end)`` ordered by start."""
        raise NotImplementedError

    async def insert_event(self, calendar_id: str, event: Event) -> Event:
        """Insert ``event`` and return it with backend-assigned id and creation time."""
        raise NotImplementedError

    async def delete_event(self, calendar_id: str, event_id: str) -> bool:
        """Delete an event. Returns ``False`` if it was already gone."""
        raise NotImplementedError

    async def close(self) -> None:
        return None


def _rfc3339(value: datetime) -> str:
    normalized = value if value.tzinfo is not None else pytz.utc.localize(value)
    return normalized.astimezone(pytz.utc).isoformat().replace("+00:00", "Z")


def _parse_datetime(value: str) -> datetime:
    normalized = value.strip()
    if normalized.endswith("Z"):
        normalized = f"{normalized[:-1]}+00:00"
    parsed = datetime.fromisoformat(normalized)
    return parsed if parsed.tzinfo is not None else pytz.utc.localize(parsed)


def _parse_boundary(payload: Dict[str, Any], timezone: Any) -> datetime:
    """Parse a Google ``start``/``end`` object; all-day dates become local midnight."""
    date_time = payload.get("dateTime")
    if isinstance(date_time, str) and date_time.strip():
        return _parse_datetime(date_time)

    date_value = payload.get("date")
    if isinstance(date_value, str) and date_value.strip():
        parsed = date.fromisoformat(date_value)
        return timezone.localize(datetime(parsed.year, parsed.month, parsed.day))

    raise ValueError("Calendar event is missing start/end dateTime or date values")


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        error_payload = payload.get("error")
        if isinstance(error_payload, dict):
            message = error_payload.get("message")
            if isinstance(message, str) and message.strip():
                return " ".join(message.split())[:200]
    raw_text = response.text.strip()
    return " ".join(raw_text.split())[:200] if raw_text else "Request failed without an error payload"


def event_from_google(payload: Dict[str, Any], timezone: Any) -> Event:
    """Convert a Google Calendar event resource into an :class:`Event`."""
    t('integrations.calendar.event_from_google')

    event_id = payload.get("id")
    if not isinstance(event_id, str) or not event_id:
        raise ValueError("Calendar event payload is missing an id")

    created_raw = payload.get("created")
    created = _parse_datetime(created_raw) if isinstance(created_raw, str) and created_raw else None

    attendees = tuple(
        attendee["email"]
        for attendee in payload.get("attendees") or []
        if isinstance(attendee, dict) and attendee.get("email")
    )
    private = (payload.get("extendedProperties") or {}).get("private") or {}

    return Event(
        id=event_id,
        start=_parse_boundary(payload.get("start") or {}, timezone),
        end=_parse_boundary(payload.get("end") or {}, timezone),
        summary=payload.get("summary") or "",
        description=payload.get("description") or "",
        created=created,
        location=payload.get("location") or "",
        color_id=payload.get("colorId"),
        attendees=attendees,
        source_id=private.get(SOURCE_EVENT_PROPERTY),
    )


def event_to_google(event: Event, timezone_name: str) -> Dict[str, Any]:
    """Build the request body used to insert ``event``."""
    t('integrations.calendar.event_to_google')

    body: Dict[str, Any] = {
        "summary": event.summary,
        "description": event.description,
        "start": {"dateTime": event.start.isoformat(), "timeZone": timezone_name},
        "end": {"dateTime": event.end.isoformat(), "timeZone": timezone_name},
    }
    if event.location:
        body["location"] = event.location
    if event.color_id:
        body["colorId"] = event.color_id
    if event.attendees:
        body["attendees"] = [{"email": email} for email in event.attendees]
    if event.source_id:
        body["extendedProperties"] = {"private": {SOURCE_EVENT_PROPERTY: event.source_id}}
    return body


class GoogleCalendarBackend(CalendarBackend):
    """Google Calendar v3 REST client authenticated with a bearer token."""

    def __init__(
        self,
        access_token: str,
        *,
        timezone: str = "Europe/Kyiv",
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: str = CALENDAR_API_BASE,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        t('integrations.calendar.GoogleCalendarBackend.__init__')
        self._access_token = access_token
        self._timezone_name = timezone
        self._timezone = pytz.timezone(timezone)
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=CALENDAR_HTTP_TIMEOUT_SECONDS)
        self._base_url = base_url.rstrip("/")
        self.logger = logger or logging.getLogger('GoogleCalendar')

    def _events_url(self, calendar_id: str, event_id: Optional[str] = None) -> str:
        url = f"{self._base_url}/calendars/{quote(calendar_id, safe='')}/events"
        if event_id is not None:
            url = f"{url}/{quote(event_id, safe='')}"
        return url

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        t('integrations.calendar.GoogleCalendarBackend._request')
        headers = {"Authorization": f"Bearer {self._access_token}"}
        try:
            return await self._client.request(method, url, params=params, json=json_body, headers=headers)
        except httpx.HTTPError as exc:
            raise CalendarBackendError(f"Calendar request failed: {exc}") from exc

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.status_code < 200 or response.status_code >= 300:
            raise CalendarBackendError(
                f"Calendar API request failed ({response.status_code}): {_error_message(response)}",
                status_code=response.status_code,
            )

    async def list_events(self, calendar_id: str, start: datetime, end: datetime) -> List[Event]:
        t('integrations.calendar.GoogleCalendarBackend.list_events')

        params: Dict[str, Any] = {
            "singleEvents": "true",
            "showDeleted": "false",
            "orderBy": "startTime",
            "maxResults": CALENDAR_PAGE_SIZE,
            "timeMin": _rfc3339(start),
            "timeMax": _rfc3339(end),
        }
        events: List[Event] = []
        page = 0
        while True:
            response = await self._request("GET", self._events_url(calendar_id), params=params)
            self._raise_for_status(response)
            payload = response.json()
            for item in payload.get("items") or []:
                if item.get("status") == "cancelled":
                    continue
                try:
                    events.append(event_from_google(item, self._timezone))
                except ValueError as exc:
                    self.logger.warning("Skipping malformed calendar event %s: %s", item.get("id"), exc)
            page += 1
            token = payload.get("nextPageToken")
            if not token:
                break
            params["pageToken"] = token

        self.logger.debug(
            "Listed %s events from %s between %s and %s (%s pages)",
            len(events), calendar_id, start, end, page,
        )
        return events

    async def insert_event(self, calendar_id: str, event: Event) -> Event:
        t('integrations.calendar.GoogleCalendarBackend.insert_event')
        response = await self._request(
            "POST",
            self._events_url(calendar_id),
            json_body=event_to_google(event, self._timezone_name),
        )
        self._raise_for_status(response)
        inserted = event_from_google(response.json(), self._timezone)
        self.logger.info("Inserted event %s (%s - %s)", inserted.id, inserted.start, inserted.end)
        return inserted

    async def delete_event(self, calendar_id: str, event_id: str) -> bool:
        t('integrations.calendar.GoogleCalendarBackend.delete_event')
        response = await self._request("DELETE", self._events_url(calendar_id, event_id))
        if response.status_code in (404, 410):
            self.logger.info("Event %s already gone (%s)", event_id, response.status_code)
            return False
        self._raise_for_status(response)
        self.logger.info("Deleted event %s", event_id)
        return True

    async def close(self) -> None:
        t('integrations.calendar.GoogleCalendarBackend.close')
        if self._owns_client:
            await self._client.aclose()


class InMemoryCalendarBackend(CalendarBackend):
    """Process-local calendar used for dry runs and tests.

    Ids are sequential and creation timestamps strictly increase with every
    insert. Each call yields to the event loop once so concurrent callers
    interleave the way they would against a remote service.
    """

    def __init__(self, *, clock=None) -> None:
        t('integrations.calendar.InMemoryCalendarBackend.__init__')
        self._calendars: Dict[str, Dict[str, Event]] = {}
        self._ids = itertools.count(1)
        self._clock = clock or (lambda: datetime.now(pytz.utc))
        self._last_created: Optional[datetime] = None
        self.deleted: List[str] = []

    def events(self, calendar_id: str) -> List[Event]:
        return sorted(self._calendars.get(calendar_id, {}).values(), key=lambda event: (event.start, event.id))

    def add(self, calendar_id: str, event: Event) -> Event:
        """Store ``event`` synchronously, keeping its id and creation time if set."""
        t('integrations.calendar.InMemoryCalendarBackend.add')
        event_id = event.id or f"evt{next(self._ids)}"
        created = event.created or self._next_created()
        stored = Event(
            id=event_id,
            start=event.start,
            end=event.end,
            summary=event.summary,
            description=event.description,
            created=created,
            location=event.location,
            color_id=event.color_id,
            attendees=event.attendees,
            source_id=event.source_id,
        )
        self._calendars.setdefault(calendar_id, {})[event_id] = stored
        return stored

    def _next_created(self) -> datetime:
        created = self._clock()
        if self._last_created is not None and created <= self._last_created:
            created = self._last_created + timedelta(microseconds=1)
        self._last_created = created
        return created

    async def list_events(self, calendar_id: str, start: datetime, end: datetime) -> List[Event]:
        t('integrations.calendar.InMemoryCalendarBackend.list_events')
        await asyncio.sleep(0)
        return [event for event in self.events(calendar_id) if event.start < end and start < event.end]

    async def insert_event(self, calendar_id: str, event: Event) -> Event:
        t('integrations.calendar.InMemoryCalendarBackend.insert_event')
        await asyncio.sleep(0)
        return self.add(calendar_id, Event.draft(
            event.start,
            event.end,
            summary=event.summary,
            description=event.description,
            location=event.location,
            color_id=event.color_id,
            attendees=event.attendees,
            source_id=event.source_id,
        ))

    async def delete_event(self, calendar_id: str, event_id: str) -> bool:
        t('integrations.calendar.InMemoryCalendarBackend.delete_event')
        await asyncio.sleep(0)
        removed = self._calendars.get(calendar_id, {}).pop(event_id, None)
        if removed is None:
            return False
        self.deleted.append(event_id)
        return True


__all__ = [
    'CalendarBackend',
    'GoogleCalendarBackend',
    'InMemoryCalendarBackend',
    'event_from_google',
    'event_to_google',
]
