"""Structured configuration loaders for the Telegram bot runtime."""

from __future__ import annotations
from tracking import t

import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Tuple

from infrastructure.settings import AppSettings, load_settings
from reservations.slot_grid import BusinessHours


@dataclass(frozen=True)
class TelegramConfig:
    """Telegram-specific settings for the bot runtime."""

    token: str
    username: str
    production_mode: bool
    language: str
    group_chat_id: Optional[int]
    admin_chat_ids: Tuple[int, ...]
    webhook_url: str
    webhook_secret: str
    webhook_listen: str
    webhook_port: int

    @property
    def webhook_enabled(self) -> bool:
        return bool(self.webhook_url)


@dataclass(frozen=True)
class CalendarConfig:
    """Which calendar backend to use and which calendars it manages."""

    backend: str
    access_token: str
    bookings_calendar_id: str
    source_calendar_id: str
    location: str
    sync_days: int
    appointment_prefix: str = ""
    appointment_page_url: str = ""

    @property
    def sync_enabled(self) -> bool:
        return bool(self.source_calendar_id)


@dataclass(frozen=True)
class PollConfig:
    """Group activity discovery and poll resolution parameters."""

    event_prefix: str
    excluded_prefixes: Tuple[str, ...]
    lookahead_hours: int
    sweep_grace_hours: int

    @property
    def sweep_grace(self) -> timedelta:
        return timedelta(hours=self.sweep_grace_hours)


@dataclass(frozen=True)
class SchedulerConfig:
    """Background tick timing."""

    timezone: str
    tick_interval_seconds: int
    lock_timeout_seconds: int


@dataclass(frozen=True)
class PathsConfig:
    """File-system locations for persisted state and logs."""

    state_file: str
    log_directory: str

    @property
    def lock_directory(self) -> str:
        """Run-lock files live next to the state file so every process sees them."""
        return os.path.dirname(os.path.abspath(self.state_file))


@dataclass(frozen=True)
class BotAppConfig:
    """Aggregated configuration snapshot for the Telegram bot."""

    telegram: TelegramConfig
    calendar: CalendarConfig
    hours: BusinessHours
    polls: PollConfig
    scheduler: SchedulerConfig
    paths: PathsConfig

    @property
    def timezone(self) -> str:
        return self.scheduler.timezone


def _build_config_from_settings(settings: AppSettings) -> BotAppConfig:
    """Translate :class:`AppSettings` values into runtime config objects."""
    t('botapp.config._build_config_from_settings')

    telegram = TelegramConfig(
        token=settings.bot_token,
        username=settings.bot_username,
        production_mode=settings.production_mode,
        language=settings.language,
        group_chat_id=settings.group_chat_id,
        admin_chat_ids=settings.admin_chat_ids,
        webhook_url=settings.webhook_url,
        webhook_secret=settings.webhook_secret,
        webhook_listen=settings.webhook_listen,
        webhook_port=settings.webhook_port,
    )

    calendar = CalendarConfig(
        backend=settings.calendar_backend,
        access_token=settings.google_calendar_token,
        bookings_calendar_id=settings.bookings_calendar_id,
        source_calendar_id=settings.source_calendar_id,
        location=settings.booking_location,
        sync_days=settings.sync_days,
        appointment_prefix=settings.appointment_event_prefix,
        appointment_page_url=settings.appointment_page_url,
    )

    hours = BusinessHours(
        weekday_open=settings.weekday_open,
        weekday_close=settings.weekday_close,
        weekend_open=settings.weekend_open,
        weekend_close=settings.weekend_close,
        slot_minutes=settings.slot_minutes,
        booking_range_days=settings.booking_range_days,
    )

    polls = PollConfig(
        event_prefix=settings.group_event_prefix,
        excluded_prefixes=settings.group_event_excluded_prefixes,
        lookahead_hours=settings.poll_lookahead_hours,
        sweep_grace_hours=settings.poll_sweep_grace_hours,
    )

    scheduler = SchedulerConfig(
        timezone=settings.timezone,
        tick_interval_seconds=settings.tick_interval_seconds,
        lock_timeout_seconds=settings.lock_timeout_seconds,
    )

    paths = PathsConfig(
        state_file=settings.state_file,
        log_directory=settings.log_directory,
    )

    return BotAppConfig(
        telegram=telegram,
        calendar=calendar,
        hours=hours,
        polls=polls,
        scheduler=scheduler,
        paths=paths,
    )


def load_bot_config(settings: Optional[AppSettings] = None) -> BotAppConfig:
    """Load the Telegram bot configuration from shared application settings."""
    t('botapp.config.load_bot_config')

    if settings is None:
        settings = load_settings()
    return _build_config_from_settings(settings)


__all__ = [
    'BotAppConfig',
    'CalendarConfig',
    'PathsConfig',
    'PollConfig',
    'SchedulerConfig',
    'TelegramConfig',
    'load_bot_config',
]
