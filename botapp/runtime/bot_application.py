"""Telegram bot runtime application wiring."""

from __future__ import annotations
from tracking import t

import logging
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from telegram import BotCommandScopeAllPrivateChats, Update
from telegram.ext import Application

from activities.scheduler import PollSyncReport
from botapp.bootstrap import DependencyContainer
from botapp.commands import menu_commands, register_core_handlers
from botapp.config import BotAppConfig, load_bot_config
from botapp.error_handler import ErrorHandler
from botapp.runtime.lifecycle import LifecycleManager
from botapp.runtime.update_puller import UpdatePuller
from reservations.models import SyncReport

T = TypeVar('T')


class BotApplication:
    """Assemble dependencies and handlers for the Telegram bot runtime.

    The same object serves the long-running modes (``run``, ``run_webhook``)
    and the one-shot maintenance commands used by external timers.
    """

    def __init__(
        self,
        config: Optional[BotAppConfig] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> None:
        t('botapp.runtime.bot_application.BotApplication.__init__')
        self.logger = logging.getLogger('BotApplication')
        self.config = config or load_bot_config()
        self.token = self.config.telegram.token

        self.application = (
            Application.builder()
            .token(self.token)
            .post_init(self._post_init)
            .post_stop(self._post_stop)
            .build()
        )

        container_overrides = {'bot': self.application.bot}
        container_overrides.update(overrides or {})
        self.container = DependencyContainer(self.config, overrides=container_overrides)
        self.dependencies = self.container.build_dependencies()

        self.translator = self.dependencies.translator
        self.scheduler = self.dependencies.scheduler
        self.wizard = self.dependencies.wizard
        self.error_handler = ErrorHandler(self.translator, self.config.telegram.admin_chat_ids)
        self.lifecycle = LifecycleManager(self.dependencies, logger=self.logger)

        register_core_handlers(self.application, self)

    # ------------------------------------------------------------------
    # Long-running modes
    def run(self) -> None:
        """Run the bot with long polling and the background scheduler."""
        t('botapp.runtime.bot_application.BotApplication.run')
        self.logger.info("Starting bot with long polling...")
        self.application.run_polling(allowed_updates=Update.ALL_TYPES)

    def run_webhook(self) -> None:
        """Serve the Telegram webhook; requests must carry the configured secret."""
        t('botapp.runtime.bot_application.BotApplication.run_webhook')
        telegram = self.config.telegram
        self.logger.info("Starting bot webhook on %s:%s", telegram.webhook_listen, telegram.webhook_port)
        self.application.run_webhook(
            listen=telegram.webhook_listen,
            port=telegram.webhook_port,
            webhook_url=telegram.webhook_url,
            secret_token=telegram.webhook_secret or None,
            allowed_updates=Update.ALL_TYPES,
        )

    async def _post_init(self, application: Application) -> None:
        t('botapp.runtime.bot_application.BotApplication._post_init')
        await self.lifecycle.post_init(application)

    async def _post_stop(self, application: Application) -> None:
        t('botapp.runtime.bot_application.BotApplication._post_stop')
        await self.lifecycle.post_stop(application)

    # ------------------------------------------------------------------
    # One-shot commands
    async def _one_shot(self, action: Callable[[], Awaitable[T]]) -> T:
        """Run ``action`` with an initialised application and close resources afterwards."""
        t('botapp.runtime.bot_application.BotApplication._one_shot')
        try:
            async with self.application:
                return await action()
        finally:
            await self.lifecycle.close_resources()

    async def sync_polls(self) -> PollSyncReport:
        t('botapp.runtime.bot_application.BotApplication.sync_polls')
        return await self._one_shot(self.scheduler.sync_polls)

    async def sync_calendars(self) -> Optional[SyncReport]:
        t('botapp.runtime.bot_application.BotApplication.sync_calendars')
        return await self._one_shot(self.scheduler.sync_calendars)

    async def pull_updates(self) -> int:
        t('botapp.runtime.bot_application.BotApplication.pull_updates')
        puller = UpdatePuller(self.application, self.dependencies.store)
        return await self._one_shot(puller.pull)

    async def clear_polls(self) -> int:
        """Drop every stored poll record and tell the group chat."""
        t('botapp.runtime.bot_application.BotApplication.clear_polls')

        async def action() -> int:
            count = await self.scheduler.clear_polls()
            group_chat_id = self.config.telegram.group_chat_id
            if group_chat_id is not None:
                await self.dependencies.messenger.send_message(
                    group_chat_id, self.translator.t('poll.cleared', count=count)
                )
            return count

        return await self._one_shot(action)

    async def setup_menu(self) -> bool:
        """Register the command menu shown in private chats."""
        t('botapp.runtime.bot_application.BotApplication.setup_menu')

        async def action() -> bool:
            return await self.application.bot.set_my_commands(
                menu_commands(self.translator),
                scope=BotCommandScopeAllPrivateChats(),
            )

        return await self._one_shot(action)


__all__ = ['BotApplication']
