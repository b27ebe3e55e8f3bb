import asyncio
import threading
from contextlib import asynccontextmanager, contextmanager
from typing import Dict, List


class MemberLocks:
    """
    One asyncio lock per member id.

    An entry lives only while some task holds or waits on it, so ids that
    are looked up once (or never existed) do not accumulate.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, member_id: str):
        lock = self._locks.setdefault(member_id, asyncio.Lock())
        self._users[member_id] = self._users.get(member_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[member_id] -= 1
            if not self._users[member_id]:
                del self._users[member_id]
                del self._locks[member_id]


class ThreadMemberLocks:
    """Thread-side counterpart of :class:`MemberLocks` for blocking store calls."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, List] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, member_id: str):
        with self._guard:
            entry = self._locks.setdefault(member_id, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if not entry[1]:
                    del self._locks[member_id]
