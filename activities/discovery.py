"""Find the next group activity in the bookings calendar and read its poll schedule.

Group activities are calendar events whose title starts with the group
prefix (``"НА "`` by default). Their description carries three values::

    Початок голосування: 09:00 в попередній день<br>
    Кінець голосування: 17:00<br>
    Мінімальна кількість голосів за: 6<br>

Times are wall-clock ``HH:MM`` on the event's date, or on the day before
when followed by the "previous day" marker. English labels (``Poll start:``,
``Poll end:``, ``Min votes:``) are accepted as well.
"""

from __future__ import annotations
from tracking import t

import logging
import re
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Sequence, Tuple

import pytz

from activities.models import ScheduledActivity
from infrastructure.errors import ActivityMetadataError
from integrations.calendar import CalendarBackend
from reservations.models import Event

POLL_START_LABELS = ('Початок голосуванння:', 'Початок голосування:', 'Poll start:')
POLL_END_LABELS = ('Кінець голосування:', 'Poll end:')
MIN_VOTES_LABELS = ('Мінімальна кількість голосів за:', 'Min votes:')
PREVIOUS_DAY_MARKERS = ('в попередній день', 'previous day')

_TIME_VALUE = re.compile(r'\s*(\d{1,2}):(\d{2})(?P<rest>[^<\n]*)')
_INT_VALUE = re.compile(r'\s*(\d+)')


def _find_label(text: str, labels: Sequence[str]) -> int:
    for label in labels:
        index = text.find(label)
        if index >= 0:
            return index + len(label)
    return -1


def parse_marker_time(
    text: str,
    labels: Sequence[str],
    anchor: date,
    timezone,
) -> datetime:
    """Read an ``HH:MM [previous day]`` value following one of ``labels``."""
    t('activities.discovery.parse_marker_time')

    position = _find_label(text, labels)
    if position < 0:
        raise ActivityMetadataError(f"None of {labels} found in description")
    match = _TIME_VALUE.match(text, position)
    if not match:
        raise ActivityMetadataError(f"No HH:MM value after {labels[0]}")

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ActivityMetadataError(f"Invalid time {hours}:{minutes:02d}")
    rest = match.group('rest').strip().lower()
    day = anchor - timedelta(days=1) if any(marker in rest for marker in PREVIOUS_DAY_MARKERS) else anchor
    return timezone.localize(datetime.combine(day, time(hours, minutes)))


def parse_min_votes(text: str) -> int:
    t('activities.discovery.parse_min_votes')
    position = _find_label(text, MIN_VOTES_LABELS)
    if position < 0:
        raise ActivityMetadataError("Minimum votes not found in description")
    match = _INT_VALUE.match(text, position)
    if not match or int(match.group(1)) <= 0:
        raise ActivityMetadataError("Minimum votes must be a positive integer")
    return int(match.group(1))


def parse_poll_schedule(event: Event, timezone) -> Tuple[datetime, datetime, int]:
    """Return ``(poll_creation_time, poll_check_time, min_positive_votes)`` for ``event``."""
    t('activities.discovery.parse_poll_schedule')

    anchor = event.start.astimezone(timezone).date()
    creation = parse_marker_time(event.description, POLL_START_LABELS, anchor, timezone)
    check = parse_marker_time(event.description, POLL_END_LABELS, anchor, timezone)
    if creation >= check:
        raise ActivityMetadataError("Poll start must be before poll end")
    return creation, check, parse_min_votes(event.description)


def source_event_id(event: Event) -> Optional[str]:
    """Id of the source-calendar event a mirrored event was copied from."""
    if not event.source_id:
        return None
    return event.source_id.split('+', 1)[0] or None


class ActivityDiscovery:
    """Selects the next group activity within the lookahead window."""

    def __init__(
        self,
        calendar: CalendarBackend,
        calendar_id: str,
        *,
        prefix: str = "НА ",
        excluded_prefixes: Sequence[str] = ("НА СпортМайданчик",),
        lookahead_hours: int = 24,
        timezone: str = "Europe/Kyiv",
        logger: Optional[logging.Logger] = None,
    ) -> None:
        t('activities.discovery.ActivityDiscovery.__init__')
        self.calendar = calendar
        self.calendar_id = calendar_id
        self.prefix = prefix
        self.excluded_prefixes = tuple(excluded_prefixes)
        self.lookahead = timedelta(hours=lookahead_hours)
        self.timezone = pytz.timezone(timezone)
        self.logger = logger or logging.getLogger('ActivityDiscovery')

    def is_group_activity(self, event: Event) -> bool:
        title = event.summary or ""
        if not title.startswith(self.prefix):
            return False
        return not any(title.startswith(excluded) for excluded in self.excluded_prefixes)

    async def candidates(self, now: datetime) -> List[Event]:
        """Group activities starting after ``now`` inside the window, earliest first."""
        t('activities.discovery.ActivityDiscovery.candidates')
        events = await self.calendar.list_events(self.calendar_id, now, now + self.lookahead)
        found = [event for event in events if event.start > now and self.is_group_activity(event)]
        found.sort(key=lambda event: (event.start, event.id))
        self.logger.info(
            "Found %s events in the next %s, %s of them group activities",
            len(events), self.lookahead, len(found),
        )
        return found

    def to_scheduled(self, event: Event) -> ScheduledActivity:
        t('activities.discovery.ActivityDiscovery.to_scheduled')
        creation, check, min_votes = parse_poll_schedule(event, self.timezone)
        return ScheduledActivity(
            id=event.id,
            title=event.summary,
            description=event.description,
            start=event.start,
            end=event.end,
            poll_creation_time=creation,
            poll_check_time=check,
            min_positive_votes=min_votes,
            source_event_id=source_event_id(event),
        )

    async def upcoming_activities(self, now: datetime) -> List[ScheduledActivity]:
        """Group activities with usable metadata, earliest first.

        Events whose description cannot be parsed are skipped with a warning
        so a malformed entry does not hide the valid ones after it.
        """
        t('activities.discovery.ActivityDiscovery.upcoming_activities')
        activities: List[ScheduledActivity] = []
        for event in await self.candidates(now):
            try:
                activities.append(self.to_scheduled(event))
            except ActivityMetadataError as exc:
                self.logger.warning("Skipping group event %s (%s): %s", event.id, event.summary, exc)
        return activities

    async def next_activity(self, now: datetime) -> Optional[ScheduledActivity]:
        """Earliest group activity with usable metadata, or ``None``."""
        t('activities.discovery.ActivityDiscovery.next_activity')
        activities = await self.upcoming_activities(now)
        if not activities:
            self.logger.info("No group activity event found")
            return None
        activity = activities[0]
        self.logger.info("Next group activity: %s at %s", activity.title, activity.start)
        return activity


__all__ = [
    'ActivityDiscovery',
    'parse_marker_time',
    'parse_min_votes',
    'parse_poll_schedule',
    'source_event_id',
]
