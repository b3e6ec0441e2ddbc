"""
TimeSlot model for representing bookable slots on the court
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import List, Optional

TIME_FORMAT = "%H:%M"


def parse_clock(value: str) -> time:
    """Parse ``HH:MM`` into a :class:`datetime.time`."""
    return datetime.strptime(value.strip(), TIME_FORMAT).time()


def format_clock(value: time) -> str:
    return value.strftime(TIME_FORMAT)


@dataclass(frozen=True, order=True)
class TimeSlot:
    """
    Half-open wall-clock interval ``[start, end)`` without a date.

    Ordering is by start then end, so sorting a list of slots puts them in
    chronological order.
    """
    start: time
    end: time

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValueError(f"Slot start {self.start} must be before end {self.end}")

    @classmethod
    def parse(cls, value: str) -> "TimeSlot":
        """Build a slot from ``"HH:MM-HH:MM"``."""
        start, sep, end = value.partition('-')
        if not sep:
            raise ValueError(f"Invalid slot {value!r}")
        return cls(parse_clock(start), parse_clock(end))

    def __str__(self) -> str:
        return f"{format_clock(self.start)}-{format_clock(self.end)}"

    @property
    def label(self) -> str:
        return f"{format_clock(self.start)} - {format_clock(self.end)}"

    def overlaps(self, other: "TimeSlot") -> bool:
        return self.start < other.end and other.start < self.end

    def on(self, day: date, tzinfo=None) -> "tuple[datetime, datetime]":
        """Return the slot's bounds as datetimes on ``day``.

        ``tzinfo`` may be a pytz zone, in which case it is applied through
        ``localize`` so DST offsets are correct.
        """
        start = datetime.combine(day, self.start)
        end = datetime.combine(day, self.end)
        if tzinfo is None:
            return start, end
        if hasattr(tzinfo, 'localize'):
            return tzinfo.localize(start), tzinfo.localize(end)
        return start.replace(tzinfo=tzinfo), end.replace(tzinfo=tzinfo)


@dataclass
class GridSlot:
    """A slot of the daily grid and whether a calendar event covers it."""
    slot: TimeSlot
    occupied: bool = False

    @property
    def start(self) -> time:
        return self.slot.start

    @property
    def end(self) -> time:
        return self.slot.end


@dataclass
class DaySlots:
    """One date and its ordered grid of slots."""
    day: date
    slots: List[GridSlot] = field(default_factory=list)

    def find(self, slot: TimeSlot) -> Optional[GridSlot]:
        for grid_slot in self.slots:
            if grid_slot.slot == slot:
                return grid_slot
        return None

    def __len__(self) -> int:
        return len(self.slots)
