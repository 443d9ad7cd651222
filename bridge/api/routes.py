from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket

from bridge.api.deps import get_config, get_engine_factory
from bridge.config import BridgeConfig
from bridge.engine import EngineFactory
from bridge.session import SessionCoordinator

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def play_ws(
    websocket: WebSocket,
    config: BridgeConfig = Depends(get_config),
    engine_factory: EngineFactory | None = Depends(get_engine_factory),
) -> None:
    hub = websocket.app.state.hub
    engine = engine_factory() if engine_factory is not None else None
    session = SessionCoordinator(config=config, engine=engine)
    await hub.add(session)
    await websocket.accept()
    logger.info("client connected (%d live session(s))", hub.count)

    writer = asyncio.create_task(session.channel.pump(websocket), name="client-writer")
    session.start_engine()

    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                logger.info("client disconnected")
                break
            payload = frame.get("text")
            if payload is None:
                payload = frame.get("bytes")
            if payload is not None:
                session.handle_message(payload)
    finally:
        await session.close()
        await hub.discard(session)
        await writer


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
