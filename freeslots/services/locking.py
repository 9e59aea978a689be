"""
Per-owner mutual exclusion for the read-check-write booking sequence.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Hashable

logger = logging.getLogger(__name__)


class OwnerLocks:
    """
    Registry of ``asyncio.Lock`` objects keyed by owner id.

    Holding an owner's lock serialises every booking write for that owner
    within this process; different owners never wait on each other. A lock
    is dropped from the registry once nobody holds or waits for it. Processes
    sharing one store are serialised by the store's ``exclusive()`` instead.
    """

    def __init__(self) -> None:
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._users: Dict[Hashable, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def lock_for(self, owner_id: Hashable) -> asyncio.Lock:
        lock = self._locks.get(owner_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[owner_id] = lock
        return lock

    def is_locked(self, owner_id: Hashable) -> bool:
        lock = self._locks.get(owner_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, owner_id: Hashable) -> AsyncIterator[None]:
        """Hold the owner's lock for the duration of the ``async with`` block."""
        lock = self.lock_for(owner_id)
        if lock.locked():
            logger.debug("Waiting for booking lock of owner %s", owner_id)

        self._users[owner_id] = self._users.get(owner_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[owner_id] -= 1
            if not self._users[owner_id]:
                del self._users[owner_id]
                if not lock.locked():
                    self._locks.pop(owner_id, None)
