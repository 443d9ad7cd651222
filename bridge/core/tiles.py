from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime


def _now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True, slots=True)
class TileRecord:
    x: int
    y: int
    glyph: int
    char: str | None
    color: int | None
    updated_at: datetime


TileListener = Callable[[TileRecord], None]


class TileCache:
    """Last-known render state per map coordinate.

    One record per (x, y); a write replaces the previous record entirely.
    Every write is forwarded to `listener` (the client's tile-update stream).
    """

    def __init__(self, *, listener: TileListener | None = None) -> None:
        self._tiles: dict[tuple[int, int], TileRecord] = {}
        self._listener = listener

    def __len__(self) -> int:
        return len(self._tiles)

    def write(self, *, x: int, y: int, glyph: int, char: str | None, color: int | None) -> TileRecord:
        record = TileRecord(x=x, y=y, glyph=glyph, char=char, color=color, updated_at=_now())
        self._tiles[(x, y)] = record
        if self._listener is not None:
            self._listener(record)
        return record

    def read(self, *, x: int, y: int) -> TileRecord | None:
        return self._tiles.get((x, y))

    def read_area(self, *, center_x: int, center_y: int, radius: int) -> list[TileRecord]:
        """Records within Chebyshev distance `radius`, row-major."""

        if radius < 0:
            return []
        found: list[TileRecord] = []
        for y in range(center_y - radius, center_y + radius + 1):
            for x in range(center_x - radius, center_x + radius + 1):
                record = self._tiles.get((x, y))
                if record is not None:
                    found.append(record)
        return found
