"""
Keyed per-session locking.

Operations on one session are serialized; different sessions never contend.
Acquisition is bounded so a stuck holder surfaces as BusyError instead of
hanging the caller.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Optional

from app.core.config import get_settings
from app.core.exceptions import BusyError
from app.core.logger import setup_logger

logger = setup_logger(__name__)


@dataclass
class _LockEntry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class SessionLockManager:
    """Async keyed mutex with bounded wait and one retry."""

    def __init__(self, timeout: Optional[float] = None, retry_backoff: Optional[float] = None):
        settings = get_settings()
        self._timeout = settings.SESSION_LOCK_TIMEOUT_SECONDS if timeout is None else timeout
        self._retry_backoff = (
            settings.SESSION_LOCK_RETRY_BACKOFF_SECONDS if retry_backoff is None else retry_backoff
        )
        self._entries: dict[str, _LockEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    @asynccontextmanager
    async def hold(self, key: object) -> AsyncIterator[None]:
        """
        Hold the lock for ``key`` for the duration of the block.

        Raises:
            BusyError: If the lock is still held after one retry
        """
        name = str(key)
        entry = self._entries.get(name)
        if entry is None:
            entry = self._entries[name] = _LockEntry()
        entry.users += 1
        try:
            await self._acquire(name, entry.lock)
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            entry.users -= 1
            if entry.users == 0 and self._entries.get(name) is entry:
                del self._entries[name]

    async def _acquire(self, name: str, lock: asyncio.Lock) -> None:
        for attempt in range(2):
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self._timeout)
                return
            except asyncio.TimeoutError:
                if attempt == 0:
                    logger.warning(f"Session {name} busy, retrying in {self._retry_backoff}s")
                    await asyncio.sleep(self._retry_backoff)
        logger.warning(f"Session {name} still busy after retry")
        raise BusyError(f"Session {name} is busy, try again", retry_after=self._timeout)


session_locks = SessionLockManager()
