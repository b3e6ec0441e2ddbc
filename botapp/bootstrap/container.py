"""Dependency container wiring bot runtime components together."""

from __future__ import annotations
from tracking import t

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from telegram import Bot

from activities.calendar_sync import CalendarSync
from activities.discovery import ActivityDiscovery
from activities.poll_workflow import ActivityPollWorkflow
from activities.repository import ScheduledActivityRepository
from activities.scheduler import ActivityScheduler
from botapp.config import BotAppConfig
from botapp.i18n import Translator, create_translator
from botapp.wizard import ReservationWizard
from infrastructure.errors import ConfigurationError
from infrastructure.state_store import JsonFileStore, KeyValueStore
from integrations.calendar import CalendarBackend, GoogleCalendarBackend, InMemoryCalendarBackend
from integrations.messaging import TelegramMessenger
from reservations.availability import AvailabilityService
from reservations.booking_coordinator import BookingCoordinator


@dataclass(frozen=True)
class BotDependencies:
    """Concrete dependency snapshot for the Telegram bot runtime."""

    config: BotAppConfig
    store: KeyValueStore
    calendar: CalendarBackend
    messenger: TelegramMessenger
    translator: Translator
    scheduler: ActivityScheduler
    wizard: ReservationWizard

    def as_dict(self) -> Dict[str, Any]:
        """Return dependencies as a mapping keyed by attribute name."""
        t('botapp.bootstrap.container.BotDependencies.as_dict')

        return {
            'config': self.config,
            'store': self.store,
            'calendar': self.calendar,
            'messenger': self.messenger,
            'translator': self.translator,
            'scheduler': self.scheduler,
            'wizard': self.wizard,
        }


class DependencyContainer:
    """Lazy dependency container with optional override support.

    Overrides are keyed by property name (``'bot'``, ``'calendar'``,
    ``'store'``...) and replace the default factory, which is how the
    runtime injects the Application's bot and tests inject fakes.
    """

    def __init__(
        self,
        config: BotAppConfig,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> None:
        t('botapp.bootstrap.container.DependencyContainer.__init__')
        self.config = config
        self._cache: Dict[str, Any] = {}
        if overrides:
            self._cache.update(overrides)

    def _resolve(self, key: str, factory: Callable[[], Any]) -> Any:
        t('botapp.bootstrap.container.DependencyContainer._resolve')
        if key not in self._cache:
            self._cache[key] = factory()
        return self._cache[key]

    # ------------------------------------------------------------------
    # Infrastructure
    @property
    def bot(self) -> Bot:
        t('botapp.bootstrap.container.DependencyContainer.bot')
        return self._resolve('bot', lambda: Bot(self.config.telegram.token))

    @property
    def store(self) -> KeyValueStore:
        t('botapp.bootstrap.container.DependencyContainer.store')

        def factory() -> KeyValueStore:
            return JsonFileStore(self.config.paths.state_file, logger=logging.getLogger('StateStore'))

        return self._resolve('store', factory)

    @property
    def calendar(self) -> CalendarBackend:
        t('botapp.bootstrap.container.DependencyContainer.calendar')

        def factory() -> CalendarBackend:
            t('botapp.bootstrap.container.DependencyContainer.calendar.factory')
            settings = self.config.calendar
            if settings.backend == 'memory':
                return InMemoryCalendarBackend()
            if not settings.access_token:
                raise ConfigurationError("GOOGLE_CALENDAR_TOKEN is required for the google calendar backend")
            return GoogleCalendarBackend(
                settings.access_token,
                timezone=self.config.timezone,
                logger=logging.getLogger('GoogleCalendar'),
            )

        return self._resolve('calendar', factory)

    @property
    def messenger(self) -> TelegramMessenger:
        t('botapp.bootstrap.container.DependencyContainer.messenger')
        return self._resolve('messenger', lambda: TelegramMessenger(self.bot))

    @property
    def translator(self) -> Translator:
        t('botapp.bootstrap.container.DependencyContainer.translator')
        return self._resolve('translator', lambda: create_translator(self.config.telegram.language))

    # ------------------------------------------------------------------
    # Booking
    @property
    def availability(self) -> AvailabilityService:
        t('botapp.bootstrap.container.DependencyContainer.availability')

        def factory() -> AvailabilityService:
            return AvailabilityService(
                self.calendar,
                self.config.calendar.bookings_calendar_id,
                self.config.hours,
                timezone=self.config.timezone,
            )

        return self._resolve('availability', factory)

    @property
    def coordinator(self) -> BookingCoordinator:
        t('botapp.bootstrap.container.DependencyContainer.coordinator')

        def factory() -> BookingCoordinator:
            return BookingCoordinator(
                self.calendar,
                self.config.calendar.bookings_calendar_id,
                timezone=self.config.timezone,
                location=self.config.calendar.location,
            )

        return self._resolve('coordinator', factory)

    @property
    def wizard(self) -> ReservationWizard:
        t('botapp.bootstrap.container.DependencyContainer.wizard')

        def factory() -> ReservationWizard:
            return ReservationWizard(
                self.availability,
                self.coordinator,
                self.messenger,
                self.store,
                self.translator,
                group_chat_id=self.config.telegram.group_chat_id,
                timezone=self.config.timezone,
            )

        return self._resolve('wizard', factory)

    # ------------------------------------------------------------------
    # Polls and sync
    @property
    def workflow(self) -> Optional[ActivityPollWorkflow]:
        """Poll workflow, or ``None`` when no group chat is configured."""
        t('botapp.bootstrap.container.DependencyContainer.workflow')

        def factory() -> Optional[ActivityPollWorkflow]:
            t('botapp.bootstrap.container.DependencyContainer.workflow.factory')
            group_chat_id = self.config.telegram.group_chat_id
            if group_chat_id is None:
                return None
            polls = self.config.polls
            calendar_id = self.config.calendar.bookings_calendar_id
            discovery = ActivityDiscovery(
                self.calendar,
                calendar_id,
                prefix=polls.event_prefix,
                excluded_prefixes=polls.excluded_prefixes,
                lookahead_hours=polls.lookahead_hours,
                timezone=self.config.timezone,
            )
            return ActivityPollWorkflow(
                discovery,
                ScheduledActivityRepository(self.store),
                self.messenger,
                self.calendar,
                calendar_id,
                group_chat_id,
                self.translator,
                timezone=self.config.timezone,
                source_calendar_id=self.config.calendar.source_calendar_id,
                sweep_grace=polls.sweep_grace,
            )

        return self._resolve('workflow', factory)

    @property
    def calendar_sync(self) -> Optional[CalendarSync]:
        t('botapp.bootstrap.container.DependencyContainer.calendar_sync')

        def factory() -> Optional[CalendarSync]:
            settings = self.config.calendar
            if not settings.sync_enabled:
                return None
            return CalendarSync(
                self.calendar,
                settings.source_calendar_id,
                settings.bookings_calendar_id,
                days=settings.sync_days,
                appointment_prefix=settings.appointment_prefix,
                appointment_page_url=settings.appointment_page_url,
                timezone=self.config.timezone,
            )

        return self._resolve('calendar_sync', factory)

    @property
    def scheduler(self) -> ActivityScheduler:
        t('botapp.bootstrap.container.DependencyContainer.scheduler')

        def factory() -> ActivityScheduler:
            return ActivityScheduler(
                self.workflow,
                self.calendar_sync,
                lock_timeout=self.config.scheduler.lock_timeout_seconds,
                lock_directory=self.config.paths.lock_directory,
                timezone=self.config.timezone,
            )

        return self._resolve('scheduler', factory)

    def build_dependencies(self) -> BotDependencies:
        """Materialise every runtime dependency."""
        t('botapp.bootstrap.container.DependencyContainer.build_dependencies')

        return BotDependencies(
            config=self.config,
            store=self.store,
            calendar=self.calendar,
            messenger=self.messenger,
            translator=self.translator,
            scheduler=self.scheduler,
            wizard=self.wizard,
        )


__all__ = ['BotDependencies', 'DependencyContainer']
