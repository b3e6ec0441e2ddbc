"""Durable key-value storage for poll records, pull offsets and e-mails."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any, Dict, Optional

from tracking import t


class KeyValueStore:
    """Minimal string-keyed store with prefix scanning."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> bool:
        raise NotImplementedError

    def scan(self, prefix: str) -> Dict[str, str]:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    """Process-local store used for tests and dry runs."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        t('infrastructure.state_store.MemoryStore.__init__')
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        t('infrastructure.state_store.MemoryStore.get')
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        t('infrastructure.state_store.MemoryStore.set')
        self._data[key] = str(value)

    def delete(self, key: str) -> bool:
        t('infrastructure.state_store.MemoryStore.delete')
        return self._data.pop(key, None) is not None

    def scan(self, prefix: str) -> Dict[str, str]:
        t('infrastructure.state_store.MemoryStore.scan')
        return {key: value for key, value in self._data.items() if key.startswith(prefix)}


class JsonFileStore(KeyValueStore):
    """Key-value store persisted as one JSON object on disk.

    Every mutation rewrites the file through a temporary file and an atomic
    rename, so a crash leaves either the old or the new document. Reads go
    to disk each time so separate processes observe each other's writes
    (last writer wins).
    """

    def __init__(self, file_path: str, *, logger: Any = None) -> None:
        t('infrastructure.state_store.JsonFileStore.__init__')
        self._path = Path(file_path)
        self._logger = logger or logging.getLogger('StateStore')
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> Dict[str, str]:
        t('infrastructure.state_store.JsonFileStore._load')
        if not self._path.exists():
            return {}
        try:
            with self._path.open('r', encoding='utf-8') as handle:
                payload = json.load(handle)
        except (OSError, ValueError) as exc:
            self._logger.error("Failed to read state from %s: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            self._logger.warning(
                "Invalid state format in %s; expected object, received %s",
                self._path,
                type(payload).__name__,
            )
            return {}
        return {str(key): str(value) for key, value in payload.items()}

    def _save(self, data: Dict[str, str]) -> None:
        """Persist ``data``. Caller must hold ``_lock``."""
        t('infrastructure.state_store.JsonFileStore._save')
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path: Optional[Path] = None
        try:
            with NamedTemporaryFile(
                'w', encoding='utf-8', dir=self._path.parent, delete=False
            ) as handle:
                json.dump(data, handle, indent=2, ensure_ascii=False, sort_keys=True)
                handle.write('\n')
                tmp_path = Path(handle.name)
            tmp_path.replace(self._path)
        except OSError:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)
            raise

    def get(self, key: str) -> Optional[str]:
        t('infrastructure.state_store.JsonFileStore.get')
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        t('infrastructure.state_store.JsonFileStore.set')
        with self._lock:
            data = self._load()
            data[key] = str(value)
            self._save(data)
        self._logger.debug("Stored key %s in %s", key, self._path)

    def delete(self, key: str) -> bool:
        t('infrastructure.state_store.JsonFileStore.delete')
        with self._lock:
            data = self._load()
            if key not in data:
                return False
            del data[key]
            self._save(data)
        self._logger.debug("Deleted key %s from %s", key, self._path)
        return True

    def scan(self, prefix: str) -> Dict[str, str]:
        t('infrastructure.state_store.JsonFileStore.scan')
        with self._lock:
            return {key: value for key, value in self._load().items() if key.startswith(prefix)}


__all__ = ['JsonFileStore', 'KeyValueStore', 'MemoryStore']
