from __future__ import annotations

import asyncio

from bridge.session import SessionCoordinator


class SessionHub:
    """In-process registry of live sessions.

    Each WebSocket gets its own SessionCoordinator; the hub only tracks them
    so the app can report and shut them down. Sessions never see each other.
    """

    def __init__(self) -> None:
        self._sessions: set[SessionCoordinator] = set()
        self._lock = asyncio.Lock()

    @property
    def count(self) -> int:
        return len(self._sessions)

    async def add(self, session: SessionCoordinator) -> None:
        async with self._lock:
            self._sessions.add(session)

    async def discard(self, session: SessionCoordinator) -> None:
        async with self._lock:
            self._sessions.discard(session)

    async def close_all(self) -> None:
        async with self._lock:
            sessions = list(self._sessions)
            self._sessions.clear()
        for session in sessions:
            await session.close()
