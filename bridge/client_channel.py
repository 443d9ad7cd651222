from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import WebSocket

from bridge.api.models import WireModel

logger = logging.getLogger(__name__)


class ClientChannel:
    """Outbound message queue for one WebSocket client.

    Contract:
      - engine-side handlers call `send(message)`; it never blocks.
      - `pump(websocket)` runs as a task and writes messages in order until
        `close()` is called or the socket fails.

    Payloads are the camelCase wire dicts of `WireModel`.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, message: WireModel) -> None:
        if self._closed:
            logger.debug("dropping %s: channel closed", message.__class__.__name__)
            return
        self._queue.put_nowait(message.to_wire())

    def drain_nowait(self) -> list[dict[str, Any]]:
        """Take every queued payload without waiting."""

        out: list[dict[str, Any]] = []
        while True:
            try:
                item = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return out
            if item is not None:
                out.append(item)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)

    async def pump(self, websocket: WebSocket) -> None:
        while True:
            payload = await self._queue.get()
            if payload is None:
                return
            try:
                await websocket.send_json(payload)
            except Exception:
                logger.warning("client socket rejected %s; stopping writer", payload.get("type"), exc_info=True)
                self._closed = True
                return
