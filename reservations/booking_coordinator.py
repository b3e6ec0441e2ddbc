"""Optimistic-concurrency booking against a calendar without locks.

A booking is a compensating transaction:

1. insert one event per requested slot (tentative writes);
2. re-read the calendar over the batch's span (reconciliation read);
3. if an overlapping event created earlier exists, delete the whole batch
   and raise :class:`RaceConditionError` (conditional rollback).

Two users racing for the same slot both insert, both re-read, and both see
each other's event; only the one whose events were created later rolls back.
"""

from __future__ import annotations
from tracking import t

import logging
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

import pytz

from infrastructure.constants import TELEGRAM_PROFILE_URL, USER_BOOKINGS_LOOKAHEAD_DAYS
from infrastructure.errors import CalendarBackendError, RaceConditionError
from integrations.calendar import CalendarBackend
from reservations.models import (
    Activity,
    BookingUser,
    CancellationResult,
    Event,
    PendingBookingBatch,
    TimeSlot,
)
from reservations.slot_grid import merge_slots

_EPOCH = datetime(1970, 1, 1, tzinfo=pytz.utc)


def precedence(event: Event) -> Tuple[datetime, str]:
    """Ordering key deciding which of two overlapping events keeps the slot.

    Earlier creation wins; identical timestamps fall back to the event id so
    both racers reach the same verdict. Events without a creation time are
    treated as pre-existing.
    """
    return (event.created or _EPOCH, event.id)


def booking_description(user: BookingUser) -> str:
    t('reservations.booking_coordinator.booking_description')
    profile = TELEGRAM_PROFILE_URL.format(username=user.username)
    return f"<b>Telegram</b>\n@{user.username}\n{profile}"


class BookingCoordinator:
    """Turns a confirmed slot selection into calendar events."""

    def __init__(
        self,
        calendar: CalendarBackend,
        calendar_id: str,
        *,
        timezone: str = "Europe/Kyiv",
        location: str = "",
        logger: Optional[logging.Logger] = None,
    ) -> None:
        t('reservations.booking_coordinator.BookingCoordinator.__init__')
        self.calendar = calendar
        self.calendar_id = calendar_id
        self.timezone = pytz.timezone(timezone)
        self.location = location
        self.logger = logger or logging.getLogger('BookingCoordinator')

    def _draft(self, user: BookingUser, activity: Activity, day: date, slot: TimeSlot, summary: str) -> Event:
        start, end = slot.on(day, self.timezone)
        return Event.draft(
            start,
            end,
            summary=summary,
            description=booking_description(user),
            location=self.location,
            color_id=activity.color_id,
            attendees=(user.email,) if user.email else (),
        )

    async def book(
        self,
        user: BookingUser,
        activity: Activity,
        day: date,
        slots: Sequence[TimeSlot],
        *,
        summary: Optional[str] = None,
    ) -> PendingBookingBatch:
        """Book ``slots`` on ``day`` for ``user``.

        Raises:
            RaceConditionError: an overlapping booking was created first; the
                batch has been removed and the caller should re-offer fresh
                availability.
            CalendarBackendError: the calendar rejected an insert or delete.
                Nothing is retried.
        """
        t('reservations.booking_coordinator.BookingCoordinator.book')

        merged = merge_slots(slots)
        if not merged:
            raise ValueError("At least one slot is required")

        batch = PendingBookingBatch(user=user, activity=activity, day=day)
        title = summary or activity.name.title()
        try:
            for slot in merged:
                inserted = await self.calendar.insert_event(
                    self.calendar_id, self._draft(user, activity, day, slot, title)
                )
                batch.events.append(inserted)
        except CalendarBackendError:
            self.logger.error(
                "Insert failed for %s on %s after %s of %s events; rolling back",
                user.username, day, len(batch.events), len(merged),
            )
            await self._rollback(batch)
            raise

        self.logger.info(
            "Tentatively booked %s for %s on %s: %s",
            activity.name, user.username, day, ", ".join(str(slot) for slot in merged),
        )

        winner = await self._find_earlier_conflict(batch)
        if winner is not None:
            self.logger.warning(
                "Race lost by %s on %s: event %s was created first; removing %s",
                user.username, day, winner.id, batch.event_ids,
            )
            await self._rollback(batch)
            raise RaceConditionError(winner.id)

        return batch

    async def _find_earlier_conflict(self, batch: PendingBookingBatch) -> Optional[Event]:
        """Return a foreign overlapping event that takes precedence over the batch."""
        t('reservations.booking_coordinator.BookingCoordinator._find_earlier_conflict')

        span_start, span_end = batch.span
        current = await self.calendar.list_events(self.calendar_id, span_start, span_end)
        for other in current:
            if batch.owns(other.id):
                continue
            for mine in batch.events:
                if other.overlaps(mine) and precedence(other) < precedence(mine):
                    return other
        return None

    async def _rollback(self, batch: PendingBookingBatch) -> None:
        """Delete every batch member; re-raise the first hard failure afterwards."""
        t('reservations.booking_coordinator.BookingCoordinator._rollback')

        first_error: Optional[CalendarBackendError] = None
        for event in batch.events:
            try:
                removed = await self.calendar.delete_event(self.calendar_id, event.id)
            except CalendarBackendError as exc:
                if exc.is_not_found:
                    self.logger.info("Rollback: event %s already gone", event.id)
                    continue
                self.logger.error("Rollback: failed to delete event %s: %s", event.id, exc)
                if first_error is None:
                    first_error = exc
                continue
            if not removed:
                self.logger.info("Rollback: event %s already gone", event.id)
        if first_error is not None:
            raise first_error

    async def user_bookings(self, username: str, now: Optional[datetime] = None) -> List[Event]:
        """Upcoming bookings created through the bot for ``username``."""
        t('reservations.booking_coordinator.BookingCoordinator.user_bookings')

        now = now or datetime.now(self.timezone)
        local_now = now.astimezone(self.timezone)
        start = self.timezone.localize(datetime.combine(local_now.date(), datetime.min.time()))
        end = start + timedelta(days=USER_BOOKINGS_LOOKAHEAD_DAYS)
        marker = TELEGRAM_PROFILE_URL.format(username=username)
        events = await self.calendar.list_events(self.calendar_id, start, end)
        return [event for event in events if marker in event.description and event.end > now]

    async def cancel(self, event_ids: Iterable[str]) -> CancellationResult:
        """Delete the selected events; events already gone are reported, not raised."""
        t('reservations.booking_coordinator.BookingCoordinator.cancel')

        deleted: List[str] = []
        missing: List[str] = []
        for event_id in dict.fromkeys(event_ids):
            if await self.calendar.delete_event(self.calendar_id, event_id):
                deleted.append(event_id)
            else:
                missing.append(event_id)
        self.logger.info("Cancelled events %s (already gone: %s)", deleted, missing)
        return CancellationResult(deleted=tuple(deleted), missing=tuple(missing))


__all__ = ['BookingCoordinator', 'booking_description', 'precedence']
