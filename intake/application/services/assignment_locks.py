"""Per-assignment asyncio locks serializing in-process mutations."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class AssignmentLocks:
    def __init__(self):
        self._locks: dict[int, asyncio.Lock] = {}
        # Holders plus waiters per assignment id
        self._users: dict[int, int] = {}

    @asynccontextmanager
    async def lock_for(self, assignment_id: int) -> AsyncIterator[None]:
        """Hold the assignment's lock; the entry is dropped once nobody holds or awaits it."""
        lock = self._locks.get(assignment_id)
        if lock is None:
            lock = self._locks[assignment_id] = asyncio.Lock()
        self._users[assignment_id] = self._users.get(assignment_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[assignment_id] -= 1
            if not self._users[assignment_id]:
                del self._users[assignment_id]
                del self._locks[assignment_id]

    def __len__(self) -> int:
        return len(self._locks)
