"""Adapters for the external calendar and messaging services."""

from .calendar import CalendarBackend, GoogleCalendarBackend, InMemoryCalendarBackend
from .messaging import PollTally, TelegramMessenger

__all__ = [
    "CalendarBackend",
    "GoogleCalendarBackend",
    "InMemoryCalendarBackend",
    "PollTally",
    "TelegramMessenger",
]
