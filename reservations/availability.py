"""Availability over the booking range, rebuilt from the calendar on every query."""

from __future__ import annotations
from tracking import t

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

import pytz

from integrations.calendar import CalendarBackend
from reservations.models import DaySlots, Event, TimeSlot
from reservations.slot_grid import (
    BusinessHours,
    build_day,
    days_with_availability,
    empty_slots,
    mark_occupied,
)


@dataclass
class AvailabilityView:
    """Grid for every day of the booking range at one point in time."""

    today: date
    days: Dict[date, DaySlots] = field(default_factory=dict)

    def days_with_availability(self) -> List[date]:
        return days_with_availability(self.days.values(), today=self.today)

    def empty_slots(self, day: date) -> List[TimeSlot]:
        day_slots = self.days.get(day)
        if day_slots is None:
            return []
        return empty_slots(day_slots)

    def is_free(self, day: date, slot: TimeSlot) -> bool:
        return slot in self.empty_slots(day)


def build_view(
    events: List[Event],
    hours: BusinessHours,
    now: datetime,
    timezone,
) -> AvailabilityView:
    """Lay out ``[today, today + booking_range_days]`` and mark ``events`` on it."""
    t('reservations.availability.build_view')

    local_now = now.astimezone(timezone) if now.tzinfo is not None else timezone.localize(now)
    today = local_now.date()
    view = AvailabilityView(today=today)
    for offset in range(hours.booking_range_days + 1):
        day = today + timedelta(days=offset)
        view.days[day] = build_day(day, hours, now=local_now)

    for event in events:
        start = event.start.astimezone(timezone)
        end = event.end.astimezone(timezone)
        day = start.date()
        while day <= end.date():
            day_slots = view.days.get(day)
            if day_slots is not None:
                mark_occupied(day_slots, start, end)
            day += timedelta(days=1)
    return view


class AvailabilityService:
    """Reads the bookings calendar and turns it into an :class:`AvailabilityView`."""

    def __init__(
        self,
        calendar: CalendarBackend,
        calendar_id: str,
        hours: BusinessHours,
        *,
        timezone: str = "Europe/Kyiv",
        logger: Optional[logging.Logger] = None,
    ) -> None:
        t('reservations.availability.AvailabilityService.__init__')
        self.calendar = calendar
        self.calendar_id = calendar_id
        self.hours = hours
        self.timezone = pytz.timezone(timezone)
        self.logger = logger or logging.getLogger('Availability')

    def now(self) -> datetime:
        return datetime.now(self.timezone)

    async def load(self, now: Optional[datetime] = None) -> AvailabilityView:
        t('reservations.availability.AvailabilityService.load')
        now = now or self.now()
        local_now = now.astimezone(self.timezone)
        range_start = self.timezone.localize(datetime.combine(local_now.date(), datetime.min.time()))
        range_end = range_start + timedelta(days=self.hours.booking_range_days + 1)

        events = await self.calendar.list_events(self.calendar_id, range_start, range_end)
        view = build_view(events, self.hours, local_now, self.timezone)
        self.logger.debug(
            "Availability built from %s events; %s days with free slots",
            len(events),
            len(view.days_with_availability()),
        )
        return view


__all__ = ['AvailabilityService', 'AvailabilityView', 'build_view']
