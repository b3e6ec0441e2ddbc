"""One-shot intake of pending updates for deployments without a webhook.

The next offset is stored in the key-value store and only advanced after an
update has been processed, so a crash replays at most one update.
"""

from __future__ import annotations
from tracking import t

import logging
from typing import Optional

from telegram.ext import Application

from infrastructure.constants import PULL_OFFSET_KEY, PULL_UPDATES_LIMIT, PULL_UPDATES_TIMEOUT
from infrastructure.state_store import KeyValueStore


class UpdatePuller:
    """Feeds ``getUpdates`` results through the application's handlers."""

    def __init__(
        self,
        application: Application,
        store: KeyValueStore,
        *,
        limit: int = PULL_UPDATES_LIMIT,
        timeout: int = PULL_UPDATES_TIMEOUT,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        t('botapp.runtime.update_puller.UpdatePuller.__init__')
        self.application = application
        self.store = store
        self.limit = limit
        self.timeout = timeout
        self.logger = logger or logging.getLogger('UpdatePuller')

    @property
    def offset(self) -> Optional[int]:
        raw = self.store.get(PULL_OFFSET_KEY)
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            self.logger.warning("Discarding invalid stored update offset %r", raw)
            return None

    async def pull(self) -> int:
        """Process one batch of pending updates; returns how many were handled."""
        t('botapp.runtime.update_puller.UpdatePuller.pull')

        updates = await self.application.bot.get_updates(
            offset=self.offset,
            limit=self.limit,
            timeout=self.timeout,
        )
        for update in updates:
            await self.application.process_update(update)
            self.store.set(PULL_OFFSET_KEY, str(update.update_id + 1))

        if updates:
            self.logger.info("Processed %s pulled updates", len(updates))
        return len(updates)


__all__ = ['UpdatePuller']
