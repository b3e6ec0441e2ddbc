"""Per-day slot grid derived from business hours and calendar events."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Iterable, List, Optional, Sequence, Tuple

from tracking import t

from reservations.models import DaySlots, GridSlot, TimeSlot

MINUTES_PER_DAY = 24 * 60


def _to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def _from_minutes(value: int) -> time:
    return time(value // 60, value % 60)


@dataclass(frozen=True)
class BusinessHours:
    """Opening hours of the court and the size of a bookable slot."""

    weekday_open: time
    weekday_close: time
    weekend_open: time
    weekend_close: time
    slot_minutes: int = 30
    booking_range_days: int = 7

    def __post_init__(self) -> None:
        if self.slot_minutes <= 0:
            raise ValueError("slot_minutes must be positive")
        if self.weekday_open >= self.weekday_close or self.weekend_open >= self.weekend_close:
            raise ValueError("Opening time must be earlier than closing time")

    def hours_for(self, day: date) -> Tuple[time, time]:
        """Return ``(open, close)`` for ``day``; Saturday and Sunday use weekend hours."""
        t('reservations.slot_grid.BusinessHours.hours_for')
        if day.weekday() >= 5:
            return self.weekend_open, self.weekend_close
        return self.weekday_open, self.weekday_close


def build_day(day: date, hours: BusinessHours, now: Optional[datetime] = None) -> DaySlots:
    """Generate the free grid for ``day``.

    Slots are laid out from the opening time in ``slot_minutes`` steps; a
    slot that would end after closing time is dropped. When ``now`` falls on
    ``day``, slots that ended before ``now`` are left out.
    """
    t('reservations.slot_grid.build_day')

    opening, closing = hours.hours_for(day)
    close_minutes = _to_minutes(closing)
    step = hours.slot_minutes

    cutoff: Optional[time] = None
    if now is not None:
        if now.date() > day:
            return DaySlots(day=day, slots=[])
        if now.date() == day:
            cutoff = now.time().replace(second=0, microsecond=0)

    slots: List[GridSlot] = []
    current = _to_minutes(opening)
    while current + step <= close_minutes:
        slot = TimeSlot(_from_minutes(current), _from_minutes(current + step))
        if cutoff is None or slot.end >= cutoff:
            slots.append(GridSlot(slot=slot))
        current += step

    return DaySlots(day=day, slots=slots)


def _clip_to_day(day: date, start: datetime, end: datetime) -> Optional[Tuple[int, int]]:
    """Return the part of ``[start, end)`` on ``day`` in minutes since midnight."""
    if end.date() < day or start.date() > day or end <= start:
        return None
    start_minutes = 0 if start.date() < day else start.hour * 60 + start.minute
    end_minutes = MINUTES_PER_DAY if end.date() > day else end.hour * 60 + end.minute
    if end_minutes <= start_minutes:
        return None
    return start_minutes, end_minutes


def mark_occupied(day_slots: DaySlots, event_start: datetime, event_end: datetime) -> int:
    """Flip every slot that overlaps ``[event_start, event_end)`` to occupied.

    The event is clipped to ``day_slots.day`` first, so events spanning
    midnight are handled. Slots are never split: a slot the event only
    partly covers is taken as a whole. Returns the number of slots newly
    marked.
    """
    t('reservations.slot_grid.mark_occupied')

    window = _clip_to_day(day_slots.day, event_start, event_end)
    if window is None:
        return 0

    window_start, window_end = window
    flipped = 0
    for grid_slot in day_slots.slots:
        if grid_slot.occupied:
            continue
        if window_start < _to_minutes(grid_slot.end) and _to_minutes(grid_slot.start) < window_end:
            grid_slot.occupied = True
            flipped += 1
    return flipped


def empty_slots(day_slots: DaySlots) -> List[TimeSlot]:
    t('reservations.slot_grid.empty_slots')
    return [grid_slot.slot for grid_slot in day_slots.slots if not grid_slot.occupied]


def days_with_availability(days: Iterable[DaySlots], today: Optional[date] = None) -> List[date]:
    """Dates that still have at least one free slot, in chronological order.

    Days before ``today`` are excluded even when their grid is non-empty.
    """
    t('reservations.slot_grid.days_with_availability')

    available = [
        day_slots.day
        for day_slots in days
        if (today is None or day_slots.day >= today) and empty_slots(day_slots)
    ]
    return sorted(available)


def merge_slots(slots: Sequence[TimeSlot]) -> List[TimeSlot]:
    """Coalesce adjacent and overlapping slots.

    >>> merge_slots([TimeSlot.parse('10:30-11:00'), TimeSlot.parse('10:00-10:30')])
    [TimeSlot(start=datetime.time(10, 0), end=datetime.time(11, 0))]

    The result depends only on the set of input slots, and merging an
    already merged list returns it unchanged.
    """
    t('reservations.slot_grid.merge_slots')

    merged: List[TimeSlot] = []
    for slot in sorted(set(slots)):
        if merged and slot.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = TimeSlot(last.start, max(last.end, slot.end))
        else:
            merged.append(slot)
    return merged


__all__ = [
    'BusinessHours',
    'build_day',
    'days_with_availability',
    'empty_slots',
    'mark_occupied',
    'merge_slots',
]
