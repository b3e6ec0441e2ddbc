from datetime import date, datetime

import pytest
import pytz

from activities.discovery import (
    ActivityDiscovery,
    parse_marker_time,
    parse_min_votes,
    parse_poll_schedule,
    source_event_id,
)
from infrastructure.errors import ActivityMetadataError
from integrations.calendar import InMemoryCalendarBackend
from reservations.models import Event
from tests.helpers import DummyLogger

KYIV = pytz.timezone("Europe/Kyiv")

UKRAINIAN_DESCRIPTION = (
    "Початок голосування: 09:00 в попередній день<br>"
    "Кінець голосування: 17:00<br>"
    "Мінімальна кількість голосів за: 6<br>"
)
ENGLISH_DESCRIPTION = "Poll start: 10:30\nPoll end: 18:00\nMin votes: 4"


def _event(event_id, title, start_hour, description=UKRAINIAN_DESCRIPTION, day=date(2026, 10, 20), **extra):
    start = KYIV.localize(datetime(day.year, day.month, day.day, start_hour, 0))
    return Event(
        id=event_id,
        start=start,
        end=start.replace(hour=start_hour + 2),
        summary=title,
        description=description,
        **extra,
    )


def test_previous_day_marker_moves_time_back_one_day():
    value = parse_marker_time(UKRAINIAN_DESCRIPTION, ("Початок голосування:",), date(2026, 10, 20), KYIV)

    assert value == KYIV.localize(datetime(2026, 10, 19, 9, 0))


def test_schedule_from_ukrainian_description():
    creation, check, min_votes = parse_poll_schedule(_event("e1", "НА Футбол", 19), KYIV)

    assert creation == KYIV.localize(datetime(2026, 10, 19, 9, 0))
    assert check == KYIV.localize(datetime(2026, 10, 20, 17, 0))
    assert min_votes == 6


def test_schedule_from_english_description():
    creation, check, min_votes = parse_poll_schedule(
        _event("e1", "НА Football", 19, ENGLISH_DESCRIPTION), KYIV
    )

    assert creation == KYIV.localize(datetime(2026, 10, 20, 10, 30))
    assert check == KYIV.localize(datetime(2026, 10, 20, 18, 0))
    assert min_votes == 4


def test_misspelled_start_label_is_accepted():
    description = UKRAINIAN_DESCRIPTION.replace("голосування: 09", "голосуванння: 09")

    creation, _, _ = parse_poll_schedule(_event("e1", "НА Футбол", 19, description), KYIV)

    assert creation == KYIV.localize(datetime(2026, 10, 19, 9, 0))


@pytest.mark.parametrize(
    "description",
    [
        "",
        "Кінець голосування: 17:00<br>Мінімальна кількість голосів за: 6",
        "Початок голосування: 25:00<br>Кінець голосування: 17:00<br>Мінімальна кількість голосів за: 6",
        "Початок голосування: 09:00<br>Кінець голосування: 17:00<br>Мінімальна кількість голосів за: 0",
        "Початок голосування: 18:00<br>Кінець голосування: 17:00<br>Мінімальна кількість голосів за: 3",
        "Початок голосування: 17:00<br>Кінець голосування: 17:00<br>Мінімальна кількість голосів за: 3",
    ],
)
def test_invalid_metadata_is_rejected(description):
    with pytest.raises(ActivityMetadataError):
        parse_poll_schedule(_event("e1", "НА Футбол", 19, description), KYIV)


def test_min_votes_requires_label():
    with pytest.raises(ActivityMetadataError):
        parse_min_votes("Poll start: 10:00")


def test_source_event_id_strips_occurrence_suffix():
    mirror = _event("m1", "НА Футбол", 19, source_id="abc123+2026-10-20T19:00:00+03:00")

    assert source_event_id(mirror) == "abc123"
    assert source_event_id(_event("e1", "НА Футбол", 19)) is None


@pytest.mark.asyncio
async def test_next_activity_skips_malformed_and_excluded_events():
    calendar = InMemoryCalendarBackend()
    calendar.add("bookings", _event("early", "НА Футбол", 10, description="no metadata"))
    calendar.add("bookings", _event("court", "НА СпортМайданчик", 11))
    calendar.add("bookings", _event("private", "Tennis", 12))
    calendar.add("bookings", _event("valid", "НА Волейбол", 15))
    calendar.add("bookings", _event("later", "НА Баскетбол", 18))
    logger = DummyLogger()
    discovery = ActivityDiscovery(calendar, "bookings", lookahead_hours=48, logger=logger)
    now = KYIV.localize(datetime(2026, 10, 19, 12, 0))

    activity = await discovery.next_activity(now)

    assert activity is not None
    assert activity.id == "valid"
    assert activity.min_positive_votes == 6
    assert activity.activity_name() == "Волейбол"
    assert any("Skipping group event early" in str(message) for _, message in logger.messages)


@pytest.mark.asyncio
async def test_next_activity_respects_lookahead_window():
    calendar = InMemoryCalendarBackend()
    calendar.add("bookings", _event("far", "НА Футбол", 19, day=date(2026, 10, 25)))
    discovery = ActivityDiscovery(calendar, "bookings", lookahead_hours=24, logger=DummyLogger())

    assert await discovery.next_activity(KYIV.localize(datetime(2026, 10, 19, 12, 0))) is None


@pytest.mark.asyncio
async def test_overlapping_candidates_prefer_earliest_then_id():
    calendar = InMemoryCalendarBackend()
    calendar.add("bookings", _event("b", "НА Футбол", 15))
    calendar.add("bookings", _event("a", "НА Волейбол", 15))
    discovery = ActivityDiscovery(calendar, "bookings", lookahead_hours=48, logger=DummyLogger())

    activity = await discovery.next_activity(KYIV.localize(datetime(2026, 10, 19, 12, 0)))

    assert activity.id == "a"
