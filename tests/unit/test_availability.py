from datetime import date, datetime, time

import pytest
import pytz

from integrations.calendar import InMemoryCalendarBackend
from reservations.availability import AvailabilityService, build_view
from reservations.models import Event, TimeSlot
from reservations.slot_grid import BusinessHours
from tests.helpers import DummyLogger

KYIV = pytz.timezone("Europe/Kyiv")
HOURS = BusinessHours(
    weekday_open=time(9, 0),
    weekday_close=time(20, 0),
    weekend_open=time(10, 0),
    weekend_close=time(20, 0),
    booking_range_days=3,
)


def _event(event_id, day, start, end):
    return Event(
        id=event_id,
        start=KYIV.localize(datetime.combine(day, start)),
        end=KYIV.localize(datetime.combine(day, end)),
        summary="Football",
    )


def test_build_view_covers_booking_range():
    now = KYIV.localize(datetime(2026, 10, 19, 8, 0))

    view = build_view([], HOURS, now, KYIV)

    assert sorted(view.days) == [date(2026, 10, d) for d in (19, 20, 21, 22)]
    assert view.days_with_availability() == sorted(view.days)


def test_build_view_marks_events_as_occupied():
    now = KYIV.localize(datetime(2026, 10, 19, 8, 0))
    tuesday = date(2026, 10, 20)
    event = _event("evt1", tuesday, time(10, 0), time(11, 0))

    view = build_view([event], HOURS, now, KYIV)

    assert not view.is_free(tuesday, TimeSlot.parse("10:00-10:30"))
    assert not view.is_free(tuesday, TimeSlot.parse("10:30-11:00"))
    assert view.is_free(tuesday, TimeSlot.parse("11:00-11:30"))
    assert len(view.empty_slots(tuesday)) == 20


def test_fully_booked_day_is_not_offered():
    now = KYIV.localize(datetime(2026, 10, 19, 8, 0))
    tuesday = date(2026, 10, 20)
    event = _event("evt1", tuesday, time(8, 0), time(21, 0))

    view = build_view([event], HOURS, now, KYIV)

    assert tuesday not in view.days_with_availability()
    assert view.empty_slots(tuesday) == []


def test_unknown_day_has_no_slots():
    now = KYIV.localize(datetime(2026, 10, 19, 8, 0))

    view = build_view([], HOURS, now, KYIV)

    assert view.empty_slots(date(2027, 1, 1)) == []


@pytest.mark.asyncio
async def test_service_reads_current_calendar_state():
    calendar = InMemoryCalendarBackend()
    service = AvailabilityService(calendar, "bookings", HOURS, logger=DummyLogger())
    now = KYIV.localize(datetime(2026, 10, 19, 8, 0))
    tuesday = date(2026, 10, 20)
    slot = TimeSlot.parse("12:00-12:30")

    assert (await service.load(now)).is_free(tuesday, slot)

    calendar.add("bookings", _event("", tuesday, time(12, 0), time(12, 30)))

    assert not (await service.load(now)).is_free(tuesday, slot)
