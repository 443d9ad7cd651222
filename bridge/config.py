from __future__ import annotations

import os
from dataclasses import dataclass


def _env_float(name: str, default: float | None) -> float | None:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    return int(raw)


@dataclass(frozen=True, slots=True)
class BridgeConfig:
    # How long a received keypress may satisfy a back-to-back engine request.
    input_cooldown_s: float = 0.1
    # None => requests wait for client input forever.
    request_timeout_s: float | None = None
    message_history: int = 100
    log_level: str = "INFO"

    # Window ids as the engine creates them (NHW_MAP / NHW_MENU).
    map_window: int = 3
    inventory_window: int = 4

    name_max_length: int = 30

    @classmethod
    def from_env(cls) -> "BridgeConfig":
        cooldown_ms = _env_float("NETHACK_BRIDGE_INPUT_COOLDOWN_MS", 100.0)
        return cls(
            input_cooldown_s=(cooldown_ms or 0.0) / 1000.0,
            request_timeout_s=_env_float("NETHACK_BRIDGE_REQUEST_TIMEOUT_S", None),
            message_history=_env_int("NETHACK_BRIDGE_MESSAGE_HISTORY", 100),
            log_level=os.environ.get("NETHACK_BRIDGE_LOG_LEVEL", "INFO").upper(),
            map_window=_env_int("NETHACK_BRIDGE_MAP_WINDOW", 3),
            inventory_window=_env_int("NETHACK_BRIDGE_INVENTORY_WINDOW", 4),
        )
