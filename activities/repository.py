"""Record store for open polls, keyed by poll message id."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from tracking import t

from activities.models import ScheduledActivity
from infrastructure.constants import POLL_KEY_PREFIX
from infrastructure.state_store import KeyValueStore


class ScheduledActivityRepository:
    """Read/write :class:`ScheduledActivity` records in the key-value store.

    Loading is self-healing: keys whose id part is not numeric and records
    that fail to parse are deleted as they are encountered.
    """

    def __init__(self, store: KeyValueStore, *, logger: Any = None) -> None:
        t('activities.repository.ScheduledActivityRepository.__init__')
        self._store = store
        self._logger = logger or logging.getLogger('ScheduledActivityRepository')

    @staticmethod
    def key(message_id: int) -> str:
        return f"{POLL_KEY_PREFIX}{message_id}"

    def save(self, message_id: int, activity: ScheduledActivity) -> None:
        t('activities.repository.ScheduledActivityRepository.save')
        self._store.set(self.key(message_id), activity.to_json())
        self._logger.info(
            "Poll %s recorded for activity %s; check time %s",
            message_id, activity.id, activity.poll_check_time,
        )

    def load_all(self) -> Dict[int, ScheduledActivity]:
        t('activities.repository.ScheduledActivityRepository.load_all')

        records: Dict[int, ScheduledActivity] = {}
        for key, raw in self._store.scan(POLL_KEY_PREFIX).items():
            message_part = key[len(POLL_KEY_PREFIX):]
            if not message_part.isdigit():
                self._logger.warning("Invalid message id in key %s; deleting", key)
                self._store.delete(key)
                continue
            try:
                records[int(message_part)] = ScheduledActivity.from_json(raw)
            except ValueError as exc:
                self._logger.warning("Unreadable poll record %s (%s); deleting", key, exc)
                self._store.delete(key)
        return records

    def get(self, message_id: int) -> Optional[ScheduledActivity]:
        t('activities.repository.ScheduledActivityRepository.get')
        return self.load_all().get(message_id)

    def find_by_activity_id(self, activity_id: str) -> Optional[int]:
        """Message id of the open poll for ``activity_id``, if any."""
        t('activities.repository.ScheduledActivityRepository.find_by_activity_id')
        for message_id, activity in self.load_all().items():
            if activity.id == activity_id:
                return message_id
        return None

    def delete(self, message_id: int) -> bool:
        t('activities.repository.ScheduledActivityRepository.delete')
        removed = self._store.delete(self.key(message_id))
        self._logger.info("Poll record %s removed (existed: %s)", message_id, removed)
        return removed

    def clear_all(self) -> int:
        t('activities.repository.ScheduledActivityRepository.clear_all')
        deleted = 0
        for key in list(self._store.scan(POLL_KEY_PREFIX)):
            if self._store.delete(key):
                deleted += 1
        self._logger.info("Cleared %s poll records", deleted)
        return deleted

    def sweep(self, now: datetime, grace: timedelta) -> int:
        """Remove records whose activity ended more than ``grace`` ago."""
        t('activities.repository.ScheduledActivityRepository.sweep')
        removed = 0
        for message_id, activity in self.load_all().items():
            if activity.end + grace < now:
                self._logger.warning(
                    "Sweeping orphaned poll record %s for activity %s (ended %s)",
                    message_id, activity.id, activity.end,
                )
                if self._store.delete(self.key(message_id)):
                    removed += 1
        return removed


__all__ = ['ScheduledActivityRepository']
