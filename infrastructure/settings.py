"""Centralized application settings.

Configuration is read from the environment (and an optional ``.env`` file)
once per invocation and handed to components explicitly. Nothing in the
application reads ``os.environ`` after :func:`load_settings` returns.
"""

from __future__ import annotations
from tracking import t

import os
from dataclasses import dataclass
from datetime import time
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

from .errors import ConfigurationError


def _to_bool(value: Optional[str], default: bool = False) -> bool:
    """Normalize environment strings such as "true"/"1" into booleans."""
    t('infrastructure.settings._to_bool')

    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _to_int(env: Mapping[str, str], name: str, default: int) -> int:
    t('infrastructure.settings._to_int')
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def _to_time(env: Mapping[str, str], name: str, default: str) -> time:
    t('infrastructure.settings._to_time')
    raw = (env.get(name) or default).strip()
    try:
        hours, minutes = raw.split(':')
        return time(int(hours), int(minutes))
    except ValueError as exc:
        raise ConfigurationError(f"{name} must look like HH:MM, got {raw!r}") from exc


def _to_list(value: Optional[str]) -> Tuple[str, ...]:
    t('infrastructure.settings._to_list')
    if not value:
        return tuple()
    return tuple(item.strip() for item in value.split(',') if item.strip())


@dataclass(frozen=True)
class AppSettings:
    """Immutable snapshot of every configuration value."""

    bot_token: str
    bot_username: str
    production_mode: bool
    language: str
    timezone: str
    group_chat_id: Optional[int]
    admin_chat_ids: Tuple[int, ...]
    webhook_url: str
    webhook_secret: str
    webhook_listen: str
    webhook_port: int
    calendar_backend: str
    google_calendar_token: str
    bookings_calendar_id: str
    source_calendar_id: str
    weekday_open: time
    weekday_close: time
    weekend_open: time
    weekend_close: time
    slot_minutes: int
    booking_range_days: int
    booking_location: str
    group_event_prefix: str
    group_event_excluded_prefixes: Tuple[str, ...]
    poll_lookahead_hours: int
    poll_sweep_grace_hours: int
    sync_days: int
    appointment_event_prefix: str
    appointment_page_url: str
    lock_timeout_seconds: int
    tick_interval_seconds: int
    state_file: str
    log_directory: str


def load_settings(env: Optional[Mapping[str, str]] = None) -> AppSettings:
    """Load configuration from the environment and fall back to defaults.

    Raises:
        ConfigurationError: when a required value is missing or malformed.
    """
    t('infrastructure.settings.load_settings')

    if env is None:
        load_dotenv(override=False)
        env = os.environ

    bot_token = (env.get("TELEGRAM_BOT_TOKEN") or "").strip()
    if not bot_token:
        raise ConfigurationError("TELEGRAM_BOT_TOKEN is not set")

    calendar_backend = (env.get("CALENDAR_BACKEND") or "google").strip().lower()
    if calendar_backend not in {"google", "memory"}:
        raise ConfigurationError(f"Unknown CALENDAR_BACKEND {calendar_backend!r}")

    bookings_calendar_id = (env.get("BOOKINGS_CALENDAR_ID") or "").strip()
    if not bookings_calendar_id:
        if calendar_backend == "google":
            raise ConfigurationError("BOOKINGS_CALENDAR_ID is not set")
        bookings_calendar_id = "bookings"

    raw_group = (env.get("GROUP_CHAT_ID") or "").strip()
    try:
        group_chat_id = int(raw_group) if raw_group else None
        admin_chat_ids = tuple(int(item) for item in _to_list(env.get("ADMIN_CHAT_IDS")))
    except ValueError as exc:
        raise ConfigurationError(f"Chat ids must be integers: {exc}") from exc

    weekday_open = _to_time(env, "WEEKDAY_OPEN", "09:00")
    weekday_close = _to_time(env, "WEEKDAY_CLOSE", "20:00")
    weekend_open = _to_time(env, "WEEKEND_OPEN", "10:00")
    weekend_close = _to_time(env, "WEEKEND_CLOSE", "20:00")
    if weekday_open >= weekday_close or weekend_open >= weekend_close:
        raise ConfigurationError("Opening time must be earlier than closing time")

    slot_minutes = _to_int(env, "SLOT_MINUTES", 30)
    if slot_minutes <= 0:
        raise ConfigurationError("SLOT_MINUTES must be positive")

    language = (env.get("BOT_LANGUAGE") or "uk").strip().lower()

    return AppSettings(
        bot_token=bot_token,
        bot_username=(env.get("BOT_USERNAME") or "").strip().lstrip('@'),
        production_mode=_to_bool(env.get("PRODUCTION_MODE"), default=False),
        language=language,
        timezone=env.get("BOT_TIMEZONE", "Europe/Kyiv"),
        group_chat_id=group_chat_id,
        admin_chat_ids=admin_chat_ids,
        webhook_url=env.get("WEBHOOK_URL", ""),
        webhook_secret=env.get("WEBHOOK_SECRET", ""),
        webhook_listen=env.get("WEBHOOK_LISTEN", "0.0.0.0"),
        webhook_port=_to_int(env, "WEBHOOK_PORT", 8443),
        calendar_backend=calendar_backend,
        google_calendar_token=env.get("GOOGLE_CALENDAR_TOKEN", ""),
        bookings_calendar_id=bookings_calendar_id,
        source_calendar_id=(env.get("SOURCE_CALENDAR_ID") or "").strip(),
        weekday_open=weekday_open,
        weekday_close=weekday_close,
        weekend_open=weekend_open,
        weekend_close=weekend_close,
        slot_minutes=slot_minutes,
        booking_range_days=_to_int(env, "BOOKING_RANGE_DAYS", 7),
        booking_location=env.get("BOOKING_LOCATION", ""),
        group_event_prefix=env.get("GROUP_EVENT_PREFIX", "НА "),
        group_event_excluded_prefixes=_to_list(
            env.get("GROUP_EVENT_EXCLUDED_PREFIXES", "НА СпортМайданчик")
        ),
        poll_lookahead_hours=_to_int(env, "POLL_LOOKAHEAD_HOURS", 24),
        poll_sweep_grace_hours=_to_int(env, "POLL_SWEEP_GRACE_HOURS", 48),
        sync_days=_to_int(env, "SYNC_DAYS", 10),
        appointment_event_prefix=env.get("APPOINTMENT_EVENT_PREFIX", "НА СпортМайданчик"),
        appointment_page_url=env.get("APPOINTMENT_PAGE_URL", ""),
        lock_timeout_seconds=_to_int(env, "LOCK_TIMEOUT_SECONDS", 20),
        tick_interval_seconds=_to_int(env, "TICK_INTERVAL_SECONDS", 300),
        state_file=env.get("STATE_FILE", "data/state.json"),
        log_directory=env.get("LOG_DIRECTORY", os.path.join("logs", "latest_log")),
    )


__all__ = ["AppSettings", "load_settings"]
