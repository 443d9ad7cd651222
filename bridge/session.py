from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import Callable

from pydantic import ValidationError

from bridge.api.models import (
    AreaRefreshCompleteMessage,
    AreaUpdateRequest,
    InputMessage,
    MapGlyphMessage,
    TileNotFoundMessage,
    TileUpdateRequest,
    inbound_adapter,
)
from bridge.client_channel import ClientChannel
from bridge.config import BridgeConfig
from bridge.core.menus import MenuAccumulator
from bridge.core.multiselect import MultiSelectTracker
from bridge.core.pending import PendingRequestRegistry
from bridge.core.state import SessionState
from bridge.core.tiles import TileCache, TileRecord
from bridge.dispatcher import CallbackDispatcher
from bridge.engine import DetachedEngine, EngineAdapter

logger = logging.getLogger(__name__)


class SessionCoordinator:
    """One connected client, one engine conversation.

    Owns the SessionState, the dispatcher the engine calls into and the
    channel back to the client. Nothing here is shared between sessions.
    """

    def __init__(
        self,
        *,
        config: BridgeConfig,
        engine: EngineAdapter | None = None,
        channel: ClientChannel | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self.engine = engine or DetachedEngine()
        self.channel = channel or ClientChannel()
        self.state = SessionState(
            tiles=TileCache(listener=self._tile_written),
            menus=MenuAccumulator(inventory_window=config.inventory_window),
            multi_select=MultiSelectTracker(),
            requests=PendingRequestRegistry(
                cooldown_s=config.input_cooldown_s,
                timeout_s=config.request_timeout_s,
                clock=clock,
            ),
            messages=deque(maxlen=config.message_history),
        )
        self.dispatcher = CallbackDispatcher(state=self.state, channel=self.channel, engine=self.engine, config=config)
        self._engine_task: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _tile_written(self, record: TileRecord) -> None:
        self.channel.send(MapGlyphMessage.from_record(record, window=self.config.map_window))

    # -- engine ----------------------------------------------------------------

    def start_engine(self) -> asyncio.Task[None]:
        if self._engine_task is None:
            self._engine_task = asyncio.create_task(self._run_engine(), name="engine")
        return self._engine_task

    async def _run_engine(self) -> None:
        try:
            await self.engine.run(self.dispatcher.call)
            logger.info("engine finished")
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("engine stopped with an error")

    # -- client ----------------------------------------------------------------

    def handle_message(self, text: str | bytes) -> None:
        """Apply one inbound JSON message; malformed ones are logged and dropped."""

        try:
            message = inbound_adapter.validate_json(text)
        except ValidationError as e:
            logger.warning("dropping malformed client message: %s", e.errors(include_url=False))
            return

        if isinstance(message, InputMessage):
            logger.debug("client input %r", message.input)
            self.dispatcher.on_client_input(message.input)
        elif isinstance(message, TileUpdateRequest):
            self.refresh_tile(x=message.x, y=message.y)
        elif isinstance(message, AreaUpdateRequest):
            self.refresh_area(center_x=message.center_x, center_y=message.center_y, radius=message.radius)

    def refresh_tile(self, *, x: int, y: int) -> None:
        record = self.state.tiles.read(x=x, y=y)
        if record is None:
            logger.debug("no tile data for (%s,%s)", x, y)
            self.channel.send(TileNotFoundMessage(x=x, y=y))
            return
        self.channel.send(MapGlyphMessage.from_record(record, window=self.config.map_window, refresh=True))

    def refresh_area(self, *, center_x: int, center_y: int, radius: int) -> None:
        records = self.state.tiles.read_area(center_x=center_x, center_y=center_y, radius=radius)
        for record in records:
            self.channel.send(MapGlyphMessage.from_record(record, window=self.config.map_window, refresh=True, area=True))
        self.channel.send(
            AreaRefreshCompleteMessage(
                center_x=center_x,
                center_y=center_y,
                radius=radius,
                tiles_refreshed=len(records),
            )
        )

    # -- lifecycle -------------------------------------------------------------

    async def close(self) -> None:
        """Release the engine: settle waiting requests, then stop its task."""

        if self._closed:
            return
        self._closed = True
        self.dispatcher.release()
        self.channel.close()

        task = self._engine_task
        if task is not None and not task.done():
            # Let the engine observe the settled defaults before it is stopped.
            await asyncio.sleep(0)
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
