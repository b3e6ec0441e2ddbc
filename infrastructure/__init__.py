"""Infrastructure helpers."""

from .errors import (
    ActivityMetadataError,
    BotError,
    CalendarBackendError,
    ConfigurationError,
    InvalidPayloadError,
    LockAcquisitionError,
    RaceConditionError,
)
from .settings import AppSettings, load_settings

__all__ = [
    "ActivityMetadataError",
    "AppSettings",
    "BotError",
    "CalendarBackendError",
    "ConfigurationError",
    "InvalidPayloadError",
    "LockAcquisitionError",
    "RaceConditionError",
    "load_settings",
]
