"""Lifecycle orchestration for the Telegram bot runtime."""

from __future__ import annotations
from tracking import t

import asyncio
import logging
from typing import Optional

import tracking
from botapp.bootstrap import BotDependencies


class LifecycleManager:
    """Manage startup, shutdown, and the background scheduler task."""

    def __init__(
        self,
        dependencies: BotDependencies,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        t('botapp.runtime.lifecycle.LifecycleManager.__init__')
        self.dependencies = dependencies
        self.logger = logger or logging.getLogger('LifecycleManager')
        self.application = None
        self.scheduler_task: Optional[asyncio.Task] = None

    async def post_init(self, application) -> None:
        """Start the scheduler once the Telegram application is ready."""

        t('botapp.runtime.lifecycle.LifecycleManager.post_init')
        self.application = application

        scheduler = self.dependencies.scheduler
        interval = self.dependencies.config.scheduler.tick_interval_seconds
        self.scheduler_task = asyncio.create_task(scheduler.run_async(interval))
        self.logger.info("Activity scheduler task created (every %ss)", interval)
        self.logger.info("Bot started successfully - awaiting messages...")

    async def post_stop(self, application) -> None:
        """Stop background work and release the calendar client."""

        t('botapp.runtime.lifecycle.LifecycleManager.post_stop')
        self.logger.info("🔴 Starting bot shutdown sequence...")

        if self.scheduler_task:
            self.logger.info("🔄 Stopping activity scheduler...")
            self.dependencies.scheduler.stop()
            self.scheduler_task.cancel()
            try:
                await self.scheduler_task
            except asyncio.CancelledError:
                pass
            self.logger.info("✅ Activity scheduler stopped")
            self.scheduler_task = None

        await self.close_resources()
        self.logger.info("✅ Bot shutdown sequence completed")
        self.application = None

    async def close_resources(self) -> None:
        t('botapp.runtime.lifecycle.LifecycleManager.close_resources')
        await self.dependencies.calendar.close()
        tracking.flush()


__all__ = ['LifecycleManager']
