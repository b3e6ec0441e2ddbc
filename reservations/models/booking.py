"""Booking contracts shared by the coordinator, calendar adapters and wizard."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple


class Activity(Enum):
    """Kinds of activity a user can book the court for."""

    FOOTBALL = 0
    BASKETBALL = 1
    TENNIS = 2
    VOLLEYBALL = 3
    BADMINTON = 4
    OTHER = 5

    @property
    def translation_key(self) -> str:
        return f"activity.{self.name.lower()}"

    @property
    def color_id(self) -> str:
        # Google Calendar colour ids start at 1.
        return str(self.value + 1)

    @classmethod
    def from_value(cls, value: int) -> "Activity":
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            return cls.OTHER


@dataclass(frozen=True)
class Event:
    """Calendar event as seen through a :class:`CalendarBackend`.

    ``start``, ``end`` and ``created`` are timezone-aware. ``id`` and
    ``created`` are assigned by the backend on insert.
    """

    id: str
    start: datetime
    end: datetime
    summary: str = ""
    description: str = ""
    created: Optional[datetime] = None
    location: str = ""
    color_id: Optional[str] = None
    attendees: Tuple[str, ...] = field(default_factory=tuple)
    source_id: Optional[str] = None

    def overlaps(self, other: "Event") -> bool:
        return self.start < other.end and other.start < self.end

    @classmethod
    def draft(
        cls,
        start: datetime,
        end: datetime,
        *,
        summary: str,
        description: str = "",
        location: str = "",
        color_id: Optional[str] = None,
        attendees: Tuple[str, ...] = (),
        source_id: Optional[str] = None,
    ) -> "Event":
        """Build an event that has not been inserted yet (empty id)."""

        return cls(
            id="",
            start=start,
            end=end,
            summary=summary,
            description=description,
            location=location,
            color_id=color_id,
            attendees=tuple(attendees),
            source_id=source_id,
        )


@dataclass(frozen=True)
class BookingUser:
    """Telegram identity attached to a booking."""

    username: str
    email: Optional[str] = None
    chat_id: Optional[int] = None


@dataclass
class PendingBookingBatch:
    """Events inserted for one confirmed selection.

    Lives only for the duration of one ``BookingCoordinator.book`` call;
    after a successful reconciliation the events simply stand.
    """

    user: BookingUser
    activity: Activity
    day: date
    events: List[Event] = field(default_factory=list)

    @property
    def event_ids(self) -> List[str]:
        return [event.id for event in self.events]

    @property
    def span(self) -> Tuple[datetime, datetime]:
        return (
            min(event.start for event in self.events),
            max(event.end for event in self.events),
        )

    def owns(self, event_id: str) -> bool:
        return event_id in self.event_ids


@dataclass(frozen=True)
class CancellationResult:
    """Outcome of cancelling a user's bookings."""

    deleted: Tuple[str, ...]
    missing: Tuple[str, ...]

    @property
    def count(self) -> int:
        return len(self.deleted)


@dataclass
class SyncReport:
    """Counts produced by one calendar sync run."""

    added: int = 0
    deleted: int = 0
    errors: Dict[str, str] = field(default_factory=dict)
