"""Named lock with bounded wait for scheduled ticks.

The lock is an exclusive ``flock`` on ``<directory>/<name>.lock``, so it is
shared by every process on the host: the long-running bot's background
scheduler and one-shot ``sync-polls`` / ``sync-calendars`` runs started by
an external timer exclude each other. The kernel drops the lock when the
holding process dies, so a crashed tick never leaves a stale lock behind.
"""

from __future__ import annotations
from tracking import t

import asyncio
import fcntl
import logging
import os
import tempfile
from pathlib import Path
from typing import Awaitable, Callable, Optional, TypeVar, Union

from .errors import LockAcquisitionError

T = TypeVar('T')

DEFAULT_LOCK_TIMEOUT_SECONDS = 20.0
DEFAULT_POLL_INTERVAL_SECONDS = 0.1


def default_lock_directory() -> Path:
    return Path(tempfile.gettempdir())


class ExclusiveRunLock:
    """Serialise scheduled ticks that share ``name``.

    Usage::

        async with ExclusiveRunLock('scheduler', timeout=20, directory='data'):
            ...

    Raises :class:`LockAcquisitionError` when the lock is still held by
    another tick after ``timeout`` seconds. The lock is released on every
    exit path, including exceptions.
    """

    def __init__(
        self,
        name: str,
        timeout: float = DEFAULT_LOCK_TIMEOUT_SECONDS,
        *,
        directory: Optional[Union[str, Path]] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        t('infrastructure.locks.ExclusiveRunLock.__init__')
        self.name = name
        self.timeout = timeout
        base = Path(directory) if directory else default_lock_directory()
        self.path = base / f"{name}.lock"
        self.poll_interval = poll_interval
        self.logger = logger or logging.getLogger('ExclusiveRunLock')
        self._fd: Optional[int] = None

    def _try_lock(self, fd: int) -> bool:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            return False
        return True

    async def __aenter__(self) -> "ExclusiveRunLock":
        t('infrastructure.locks.ExclusiveRunLock.__aenter__')
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout
        try:
            while not self._try_lock(fd):
                if loop.time() >= deadline:
                    self.logger.error("Lock '%s' not acquired within %ss", self.name, self.timeout)
                    raise LockAcquisitionError(self.name, self.timeout)
                await asyncio.sleep(self.poll_interval)
        except BaseException:
            os.close(fd)
            raise

        os.ftruncate(fd, 0)
        os.write(fd, f"{os.getpid()}\n".encode())
        self._fd = fd
        self.logger.debug("Lock '%s' acquired (%s)", self.name, self.path)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        t('infrastructure.locks.ExclusiveRunLock.__aexit__')
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)
        self.logger.debug("Lock '%s' released", self.name)

    async def run(self, func: Callable[[], Awaitable[T]]) -> T:
        """Run ``func`` while holding the lock and return its result."""
        t('infrastructure.locks.ExclusiveRunLock.run')
        async with self:
            return await func()


__all__ = ['DEFAULT_LOCK_TIMEOUT_SECONDS', 'ExclusiveRunLock', 'default_lock_directory']
