from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

# What the engine awaits: `await call("shim_nhgetch")` etc.
ShimInvoker = Callable[..., Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class GlyphInfo:
    ch: int
    color: int


class EngineAdapter(Protocol):
    """Invocation context for one running engine instance.

    Loading and starting the engine is the adapter's business; the bridge only
    needs the engine's own glyph lookup and a way to run it against the
    dispatcher's `call`.
    """

    def map_glyph(self, glyph: int, x: int, y: int) -> GlyphInfo | None: ...

    async def run(self, call: ShimInvoker) -> None: ...


EngineFactory = Callable[[], EngineAdapter]


class DetachedEngine:
    """Adapter used when no engine is wired in: no glyph data, nothing to run."""

    def map_glyph(self, glyph: int, x: int, y: int) -> GlyphInfo | None:
        return None

    async def run(self, call: ShimInvoker) -> None:
        return None
