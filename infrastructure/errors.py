"""Exception hierarchy shared by the booking, poll and bot layers."""

from __future__ import annotations

from typing import Optional


class BotError(Exception):
    """Base class for application errors."""


class ConfigurationError(BotError):
    """Required configuration is missing or malformed. Fatal."""


class LockAcquisitionError(BotError):
    """The exclusive run lock could not be taken within its timeout."""

    def __init__(self, name: str, timeout: float) -> None:
        super().__init__(f"Could not acquire lock '{name}' within {timeout:g}s")
        self.name = name
        self.timeout = timeout


class CalendarBackendError(BotError):
    """A calendar API call failed. Treated as transient."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        return self.status_code in (404, 410)


class RaceConditionError(BotError):
    """Another booking for an overlapping slot was created first."""

    def __init__(self, conflicting_event_id: str) -> None:
        super().__init__(f"Slot already taken by event {conflicting_event_id}")
        self.conflicting_event_id = conflicting_event_id


class InvalidPayloadError(BotError):
    """Callback data could not be decoded into a wizard step."""


class ActivityMetadataError(BotError):
    """A calendar event does not carry usable poll metadata."""


__all__ = [
    'ActivityMetadataError',
    'BotError',
    'CalendarBackendError',
    'ConfigurationError',
    'InvalidPayloadError',
    'LockAcquisitionError',
    'RaceConditionError',
]
