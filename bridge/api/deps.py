from __future__ import annotations

from fastapi import WebSocket

from bridge.config import BridgeConfig
from bridge.engine import EngineFactory


def get_config(websocket: WebSocket) -> BridgeConfig:
    return websocket.app.state.config


def get_engine_factory(websocket: WebSocket) -> EngineFactory | None:
    # None => sessions run detached (map refresh and input buffering only).
    return getattr(websocket.app.state, "engine_factory", None)
