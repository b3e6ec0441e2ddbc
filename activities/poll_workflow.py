"""Lifecycle of a group-activity poll: create, persist, resolve.

A poll moves ``Scheduled -> PollOpen -> Resolved(confirmed | cancelled |
failed)``. The durable record is written right after the poll is sent and
deleted once when it is resolved; that deletion is the commit point. Every
step before it can safely run again after a crash: stopping a stopped poll
fails into the ``failed`` path, unpinning is best-effort and deleting an
already deleted calendar event is a no-op.
"""

from __future__ import annotations
from tracking import t

import logging
from datetime import datetime, timedelta
from typing import List, Optional

import pytz

from activities.discovery import ActivityDiscovery
from activities.models import (
    PollCreationResult,
    PollCreationStatus,
    PollOutcome,
    ResolutionResult,
    ScheduledActivity,
)
from activities.repository import ScheduledActivityRepository
from infrastructure.constants import POLL_OPTION_YES, POLL_OPTIONS
from integrations.calendar import CalendarBackend
from integrations.messaging import TelegramMessenger


class ActivityPollWorkflow:
    """Creates polls for upcoming group activities and acts on their results."""

    def __init__(
        self,
        discovery: ActivityDiscovery,
        repository: ScheduledActivityRepository,
        messenger: TelegramMessenger,
        calendar: CalendarBackend,
        calendar_id: str,
        group_chat_id: int,
        translator,
        *,
        timezone: str = "Europe/Kyiv",
        source_calendar_id: Optional[str] = None,
        sweep_grace: timedelta = timedelta(hours=48),
        logger: Optional[logging.Logger] = None,
    ) -> None:
        t('activities.poll_workflow.ActivityPollWorkflow.__init__')
        self.discovery = discovery
        self.repository = repository
        self.messenger = messenger
        self.calendar = calendar
        self.calendar_id = calendar_id
        self.group_chat_id = group_chat_id
        self.translator = translator
        self.timezone = pytz.timezone(timezone)
        self.source_calendar_id = source_calendar_id or None
        self.sweep_grace = sweep_grace
        self.logger = logger or logging.getLogger('PollWorkflow')

    def describe_start(self, activity: ScheduledActivity) -> str:
        """``HH:MM (weekday dd.MM)`` in the configured timezone."""
        local = activity.start.astimezone(self.timezone)
        weekday = self.translator.t(f"weekday.{local.weekday()}")
        return f"{local:%H:%M} ({weekday} {local:%d.%m})"

    def _activity_name(self, activity: ScheduledActivity) -> str:
        return activity.activity_name(self.discovery.prefix)

    async def create_poll(self, now: datetime) -> PollCreationResult:
        """Send the poll for the earliest activity whose poll window is open.

        Activities are taken in start order. Those that already have a
        stored poll, or whose window is not open at ``now``, are passed over
        so a later activity in the lookahead still gets its poll. At most one
        poll exists per activity. Send failures propagate before anything is
        stored.
        """
        t('activities.poll_workflow.ActivityPollWorkflow.create_poll')

        activities = await self.discovery.upcoming_activities(now)
        if not activities:
            return PollCreationResult(PollCreationStatus.NO_ACTIVITY)

        already_open: Optional[PollCreationResult] = None
        for activity in activities:
            existing = self.repository.find_by_activity_id(activity.id)
            if existing is not None:
                self.logger.info("Poll %s already open for activity %s", existing, activity.id)
                if already_open is None:
                    already_open = PollCreationResult(
                        PollCreationStatus.ALREADY_EXISTS, message_id=existing, activity=activity
                    )
                continue
            if not activity.poll_window_contains(now):
                self.logger.info(
                    "Poll window for %s is %s - %s; nothing to do at %s",
                    activity.title, activity.poll_creation_time, activity.poll_check_time, now,
                )
                continue
            return await self._send_poll(activity)

        if already_open is not None:
            return already_open
        return PollCreationResult(PollCreationStatus.OUTSIDE_WINDOW, activity=activities[0])

    async def _send_poll(self, activity: ScheduledActivity) -> PollCreationResult:
        t('activities.poll_workflow.ActivityPollWorkflow._send_poll')
        question = f"{self._activity_name(activity)} {self.describe_start(activity)}"
        message_id = await self.messenger.send_poll(self.group_chat_id, question, POLL_OPTIONS)
        self.repository.save(message_id, activity)

        pinned = await self.messenger.pin(self.group_chat_id, message_id)
        if not pinned:
            self.logger.warning("Poll %s was not pinned; check bot permissions", message_id)

        return PollCreationResult(
            PollCreationStatus.CREATED, message_id=message_id, activity=activity, pinned=pinned
        )

    async def resolve_due_polls(self, now: datetime) -> List[ResolutionResult]:
        """Resolve every open poll whose check time has passed.

        Records are processed independently in check-time order. Each one
        is deleted exactly once after its resolution attempt, whatever the
        outcome.
        """
        t('activities.poll_workflow.ActivityPollWorkflow.resolve_due_polls')

        records = self.repository.load_all()
        due = sorted(
            ((message_id, activity) for message_id, activity in records.items() if activity.is_due(now)),
            key=lambda item: (item[1].poll_check_time, item[0]),
        )
        self.logger.info("%s open polls, %s due at %s", len(records), len(due), now)

        results: List[ResolutionResult] = []
        for message_id, activity in due:
            result = await self._resolve(message_id, activity)
            try:
                self.repository.delete(message_id)
            except OSError as exc:
                self.logger.error("Failed to delete poll record %s: %s", message_id, exc)
            results.append(result)
        return results

    async def _resolve(self, message_id: int, activity: ScheduledActivity) -> ResolutionResult:
        t('activities.poll_workflow.ActivityPollWorkflow._resolve')
        self.logger.info(
            "Resolving poll %s for %s at %s (needs %s votes)",
            message_id, activity.title, activity.start, activity.min_positive_votes,
        )
        try:
            tally = await self.messenger.stop_poll(self.group_chat_id, message_id)
            votes_for = tally.votes_for(POLL_OPTION_YES)
            confirmed = votes_for >= activity.min_positive_votes

            if not confirmed:
                await self._cancel_activity_event(activity)

            key = 'poll.confirmed' if confirmed else 'poll.cancelled'
            text = self.translator.t(
                key,
                votes=votes_for,
                activity=self._activity_name(activity),
                when=self.describe_start(activity),
            )
            await self.messenger.send_message(self.group_chat_id, text, reply_to=message_id)
            await self.messenger.unpin(self.group_chat_id, message_id)
        except Exception as exc:
            self.logger.error("Poll %s processing failed: %s", message_id, exc, exc_info=True)
            await self.messenger.unpin(self.group_chat_id, message_id)
            return ResolutionResult(message_id, activity, PollOutcome.FAILED, error=str(exc))

        outcome = PollOutcome.CONFIRMED if confirmed else PollOutcome.CANCELLED
        self.logger.info("Poll %s %s with %s votes for", message_id, outcome.value, votes_for)
        return ResolutionResult(message_id, activity, outcome, votes_for=votes_for)

    async def _cancel_activity_event(self, activity: ScheduledActivity) -> None:
        """Delete the activity's calendar event, and its source when it is a mirror."""
        t('activities.poll_workflow.ActivityPollWorkflow._cancel_activity_event')
        removed = await self.calendar.delete_event(self.calendar_id, activity.id)
        self.logger.info("Activity event %s deleted (existed: %s)", activity.id, removed)
        if self.source_calendar_id and activity.source_event_id:
            await self.calendar.delete_event(self.source_calendar_id, activity.source_event_id)

    def sweep(self, now: datetime) -> int:
        t('activities.poll_workflow.ActivityPollWorkflow.sweep')
        return self.repository.sweep(now, self.sweep_grace)

    def clear_all(self) -> int:
        t('activities.poll_workflow.ActivityPollWorkflow.clear_all')
        return self.repository.clear_all()


__all__ = ['ActivityPollWorkflow']
