"""Mirror events of a source calendar into the bookings calendar."""

from __future__ import annotations
from tracking import t

import logging
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple

import pytz

from infrastructure.errors import CalendarBackendError
from integrations.calendar import CalendarBackend
from reservations.models import Event, SyncReport


APPOINTMENT_ACTIVITY_HEADING = '\n<br><b>Активність (Теніс, Футбол, тощо)</b>\n'
APPOINTMENT_TELEGRAM_HEADING = '\n<br><b>Телеграм</b>\n'
APPOINTMENT_FOOTER = '\n<br>Сервіс з бронювання СпортМайданчику в ЖК "Нова Англія"'
APPOINTMENT_DEFAULT_TITLE = 'Бронь'


def source_key(event: Event) -> str:
    """Identity of a source occurrence: event id plus its start."""
    return f"{event.id}+{event.start.isoformat()}"


def appointment_fields(description: str, page_url: str = "") -> Tuple[str, str]:
    """Title and description for a mirror of an appointment-page booking.

    The booking form puts the chosen activity between the activity and
    Telegram headings, and the contact between the Telegram heading and
    the service footer. Only those parts are copied; the rest of the form
    stays in the source calendar. Without the headings the mirror is
    titled ``Бронь`` and has no description.
    """
    t('activities.calendar_sync.appointment_fields')

    title, body = APPOINTMENT_DEFAULT_TITLE, ""
    if not description:
        return title, body

    contact_start = description.find(APPOINTMENT_TELEGRAM_HEADING)
    if contact_start < 0:
        return title, body
    contact_end = description.find(
        APPOINTMENT_FOOTER, contact_start + len(APPOINTMENT_TELEGRAM_HEADING)
    )
    activity_start = description.find(APPOINTMENT_ACTIVITY_HEADING)
    if contact_end < 0 or activity_start < 0:
        return title, body

    activity_start += len(APPOINTMENT_ACTIVITY_HEADING)
    title = description[activity_start:contact_start].strip() or APPOINTMENT_DEFAULT_TITLE
    # Drop the leading "\n<br>" so the mirror starts at the Telegram heading.
    body = description[contact_start + len("\n<br>"):contact_end + len(APPOINTMENT_FOOTER)]
    if page_url:
        body += f' Бронювати <a href="{page_url}">тут</a>'
    return title, body


class CalendarSync:
    """One-way sync: source occurrences missing from bookings are added,
    mirrors whose source occurrence vanished are deleted.

    Mirrors are recognised by the ``sourceEventId`` private property; events
    created directly in the bookings calendar are never touched.
    """

    def __init__(
        self,
        calendar: CalendarBackend,
        source_calendar_id: str,
        bookings_calendar_id: str,
        *,
        days: int = 10,
        appointment_prefix: str = "НА СпортМайданчик",
        appointment_page_url: str = "",
        timezone: str = "Europe/Kyiv",
        logger: Optional[logging.Logger] = None,
    ) -> None:
        t('activities.calendar_sync.CalendarSync.__init__')
        self.calendar = calendar
        self.source_calendar_id = source_calendar_id
        self.bookings_calendar_id = bookings_calendar_id
        self.days = days
        self.appointment_prefix = appointment_prefix
        self.appointment_page_url = appointment_page_url
        self.timezone = pytz.timezone(timezone)
        self.logger = logger or logging.getLogger('CalendarSync')

    def mirror_text(self, event: Event) -> Tuple[str, str]:
        """Summary and description the mirror of ``event`` gets."""
        if self.appointment_prefix and (event.summary or "").startswith(self.appointment_prefix):
            return appointment_fields(event.description, self.appointment_page_url)
        return event.summary, event.description

    async def sync(self, now: Optional[datetime] = None) -> SyncReport:
        t('activities.calendar_sync.CalendarSync.sync')

        now = (now or datetime.now(self.timezone)).astimezone(self.timezone)
        range_start = self.timezone.localize(datetime.combine(now.date(), datetime.min.time()))
        range_end = range_start + timedelta(days=self.days)
        self.logger.info("Syncing events from %s to %s", range_start, range_end)

        source_events = await self.calendar.list_events(self.source_calendar_id, range_start, range_end)
        target_events = await self.calendar.list_events(self.bookings_calendar_id, range_start, range_end)

        sources: Dict[str, Event] = {source_key(event): event for event in source_events}
        mirrors: Dict[str, Event] = {
            event.source_id: event for event in target_events if event.source_id
        }
        self.logger.info(
            "Found %s source events and %s linked mirrors (%s bookings events total)",
            len(sources), len(mirrors), len(target_events),
        )

        report = SyncReport()
        for key, event in sources.items():
            if key in mirrors:
                continue
            summary, description = self.mirror_text(event)
            mirror = Event.draft(
                event.start,
                event.end,
                summary=summary,
                description=description,
                location=event.location,
                source_id=key,
            )
            try:
                await self.calendar.insert_event(self.bookings_calendar_id, mirror)
            except CalendarBackendError as exc:
                self.logger.error("Failed to mirror %s (%s): %s", event.summary, key, exc)
                report.errors[key] = str(exc)
                continue
            self.logger.info("Added mirror %s for %s (%s)", summary, event.summary, key)
            report.added += 1

        for key, mirror in mirrors.items():
            if key in sources:
                continue
            try:
                await self.calendar.delete_event(self.bookings_calendar_id, mirror.id)
            except CalendarBackendError as exc:
                self.logger.error("Failed to delete obsolete mirror %s (%s): %s", mirror.id, key, exc)
                report.errors[key] = str(exc)
                continue
            self.logger.info("Deleted obsolete mirror %s (%s)", mirror.summary, key)
            report.deleted += 1

        self.logger.info("Sync complete. Added: %s, Deleted: %s", report.added, report.deleted)
        return report


__all__ = ['CalendarSync', 'source_key']
