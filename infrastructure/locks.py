"""In-process per-room locks"""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict
from uuid import UUID

from domain.repositories import RoomLockManager


class InMemoryRoomLockManager(RoomLockManager):
    """One asyncio.Lock per room id; valid for a single event loop process"""

    def __init__(self):
        self._locks: Dict[UUID, asyncio.Lock] = {}

    def _lock_for(self, room_id: UUID) -> asyncio.Lock:
        lock = self._locks.get(room_id)
        if lock is None:
            lock = self._locks[room_id] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def hold(self, room_id: UUID) -> AsyncIterator[None]:
        async with self._lock_for(room_id):
            yield

    def is_held(self, room_id: UUID) -> bool:
        lock = self._locks.get(room_id)
        return lock is not None and lock.locked()
