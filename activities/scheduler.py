"""Scheduled ticks: poll sync and calendar sync under the exclusive run lock."""

from __future__ import annotations
from tracking import t

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

import pytz
from telegram.error import TelegramError

from activities.calendar_sync import CalendarSync
from activities.models import PollCreationResult, PollCreationStatus, ResolutionResult
from activities.poll_workflow import ActivityPollWorkflow
from infrastructure.constants import SCHEDULER_LOCK_NAME
from infrastructure.errors import CalendarBackendError, LockAcquisitionError
from infrastructure.locks import DEFAULT_LOCK_TIMEOUT_SECONDS, ExclusiveRunLock
from reservations.models import SyncReport


@dataclass
class PollSyncReport:
    resolved: List[ResolutionResult] = field(default_factory=list)
    creation: Optional[PollCreationResult] = None
    swept: int = 0


class ActivityScheduler:
    """Runs the poll and calendar ticks.

    Both ticks share one :class:`ExclusiveRunLock` kept in ``lock_directory``,
    so a slow calendar sync and a poll tick never overlap, even when they run
    in separate processes. The wizard does not take this lock.
    """

    def __init__(
        self,
        workflow: Optional[ActivityPollWorkflow],
        calendar_sync: Optional[CalendarSync] = None,
        *,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT_SECONDS,
        lock_directory: Optional[str] = None,
        timezone: str = "Europe/Kyiv",
        clock: Optional[Callable[[], datetime]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        t('activities.scheduler.ActivityScheduler.__init__')
        self.workflow = workflow
        self.calendar_sync = calendar_sync
        self.lock_timeout = lock_timeout
        self.lock_directory = lock_directory
        self.timezone = pytz.timezone(timezone)
        self.clock = clock or (lambda: datetime.now(self.timezone))
        self.logger = logger or logging.getLogger('ActivityScheduler')
        self.running = False

    def _lock(self) -> ExclusiveRunLock:
        return ExclusiveRunLock(SCHEDULER_LOCK_NAME, self.lock_timeout, directory=self.lock_directory)

    async def sync_polls(self, now: Optional[datetime] = None) -> PollSyncReport:
        """Resolve due polls, then create the next poll if its window is open."""
        t('activities.scheduler.ActivityScheduler.sync_polls')

        if self.workflow is None:
            self.logger.debug("No group chat configured; skipping poll sync")
            return PollSyncReport()
        async with self._lock():
            now = now or self.clock()
            self.logger.info("Starting poll sync at %s", now)
            report = PollSyncReport()
            report.resolved = await self.workflow.resolve_due_polls(now)
            try:
                report.creation = await self.workflow.create_poll(now)
            except (CalendarBackendError, TelegramError) as exc:
                self.logger.error("Poll creation abandoned for this tick: %s", exc)
                report.creation = PollCreationResult(PollCreationStatus.FAILED)
            report.swept = self.workflow.sweep(now)
            self.logger.info(
                "Poll sync completed: %s resolved, creation %s",
                len(report.resolved), report.creation.status.value,
            )
            return report

    async def sync_calendars(self, now: Optional[datetime] = None) -> Optional[SyncReport]:
        """Mirror the source calendar. Returns ``None`` when no source is configured."""
        t('activities.scheduler.ActivityScheduler.sync_calendars')

        if self.calendar_sync is None:
            self.logger.debug("No source calendar configured; skipping calendar sync")
            return None
        async with self._lock():
            return await self.calendar_sync.sync(now or self.clock())

    async def clear_polls(self) -> int:
        t('activities.scheduler.ActivityScheduler.clear_polls')
        if self.workflow is None:
            return 0
        async with self._lock():
            return self.workflow.clear_all()

    async def tick(self) -> None:
        """One scheduler iteration; failures are logged and do not stop the loop."""
        t('activities.scheduler.ActivityScheduler.tick')
        try:
            await self.sync_calendars()
        except (LockAcquisitionError, CalendarBackendError) as exc:
            self.logger.error("Calendar sync failed: %s", exc)
        try:
            await self.sync_polls()
        except (LockAcquisitionError, CalendarBackendError) as exc:
            self.logger.error("Poll sync failed: %s", exc)

    async def run_async(self, interval_seconds: float) -> None:
        """Tick every ``interval_seconds`` until cancelled or stopped."""
        t('activities.scheduler.ActivityScheduler.run_async')
        self.logger.info("Activity scheduler started (interval %ss)", interval_seconds)
        self.running = True
        while self.running:
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # pragma: no cover
                self.logger.error("Scheduler error: %s", exc, exc_info=True)
            await asyncio.sleep(interval_seconds)

    def stop(self) -> None:
        t('activities.scheduler.ActivityScheduler.stop')
        self.running = False


__all__ = ['ActivityScheduler', 'PollSyncReport']
