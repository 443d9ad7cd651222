from __future__ import annotations

from collections.abc import Awaitable, Callable

import pytest

from bridge.config import BridgeConfig
from bridge.engine import GlyphInfo, ShimInvoker
from bridge.session import SessionCoordinator


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedEngine:
    """Engine stand-in: a fixed glyph table and an optional async script."""

    def __init__(
        self,
        *,
        glyphs: dict[int, GlyphInfo] | None = None,
        script: Callable[[ShimInvoker], Awaitable[None]] | None = None,
    ) -> None:
        self.glyphs = glyphs or {}
        self.script = script

    def map_glyph(self, glyph: int, x: int, y: int) -> GlyphInfo | None:
        return self.glyphs.get(glyph)

    async def run(self, call: ShimInvoker) -> None:
        if self.script is not None:
            await self.script(call)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def config() -> BridgeConfig:
    return BridgeConfig()


@pytest.fixture()
def engine() -> ScriptedEngine:
    return ScriptedEngine(glyphs={2359: GlyphInfo(ch=ord("."), color=7), 341: GlyphInfo(ch=ord("@"), color=15)})


@pytest.fixture()
def session(config: BridgeConfig, engine: ScriptedEngine, clock: FakeClock) -> SessionCoordinator:
    return SessionCoordinator(config=config, engine=engine, clock=clock)
