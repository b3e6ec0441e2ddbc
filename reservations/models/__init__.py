"""Domain model definitions for court bookings."""

from .time_slot import DaySlots, GridSlot, TimeSlot, format_clock, parse_clock
from .booking import (
    Activity,
    BookingUser,
    CancellationResult,
    Event,
    PendingBookingBatch,
    SyncReport,
)

__all__ = [
    "Activity",
    "BookingUser",
    "CancellationResult",
    "DaySlots",
    "Event",
    "GridSlot",
    "PendingBookingBatch",
    "SyncReport",
    "TimeSlot",
    "format_clock",
    "parse_clock",
]
