"""
In-memory room session store.

The store exclusively owns every :class:`ProjectSnapshot`.  Mutations are
serialised per room with one :class:`asyncio.Lock` per room id, so two
clients editing the same room never interleave while unrelated rooms
never wait on each other.

Snapshots are created lazily by the first :meth:`RoomSessionStore.put`
together with their lock, and live for the lifetime of the process;
nothing is persisted.  Reads and mutations of unknown rooms allocate
nothing.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Dict, List, Optional

from .models import ProjectSnapshot


Mutation = Callable[[ProjectSnapshot], None]


class RoomSessionStore:
    """Concurrency-safe mapping from room id to project snapshot."""

    def __init__(self) -> None:
        self._snapshots: Dict[str, ProjectSnapshot] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    async def get(self, room_id: str) -> Optional[ProjectSnapshot]:
        """Return a copy of the room's snapshot, or ``None`` if nothing was shared yet."""
        lock = self._locks.get(room_id)
        if lock is None:
            return None
        async with lock:
            snapshot = self._snapshots.get(room_id)
            return snapshot.model_copy(deep=True) if snapshot is not None else None

    async def put(self, room_id: str, snapshot: ProjectSnapshot) -> None:
        """Replace the room's snapshot wholesale, creating the room if needed."""
        async with self._locks.setdefault(room_id, asyncio.Lock()):
            self._snapshots[room_id] = snapshot.model_copy(deep=True)

    async def mutate(self, room_id: str, fn: Mutation) -> Optional[ProjectSnapshot]:
        """Apply ``fn`` to the room's snapshot atomically.

        ``fn`` works on a copy that replaces the stored snapshot only when
        it returns normally; if it raises, the stored snapshot is left as
        it was and the exception propagates.  Rooms without a snapshot are
        left alone and ``None`` is returned.
        """
        lock = self._locks.get(room_id)
        if lock is None:
            return None
        async with lock:
            current = self._snapshots.get(room_id)
            if current is None:
                return None
            working = current.model_copy(deep=True)
            fn(working)
            self._snapshots[room_id] = working
            return working.model_copy(deep=True)

    def rooms(self) -> List[str]:
        return list(self._snapshots)
