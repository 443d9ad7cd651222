from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime

from bridge.core.menus import FinishedMenu, MenuAccumulator, MenuEntry
from bridge.core.multiselect import MultiSelectTracker
from bridge.core.pending import BufferedInput, PendingRequestRegistry
from bridge.core.tiles import TileCache


@dataclass(frozen=True, slots=True)
class MessageLine:
    text: str
    window: int
    attr: int
    ts: datetime

    @staticmethod
    def now(*, text: str, window: int, attr: int) -> "MessageLine":
        return MessageLine(text=text, window=window, attr=attr, ts=datetime.now(UTC))


@dataclass(slots=True)
class SessionState:
    """Everything one connected client's engine conversation accumulates.

    Owned by a single SessionCoordinator and mutated only by its dispatcher.
    """

    tiles: TileCache
    menus: MenuAccumulator
    multi_select: MultiSelectTracker
    requests: PendingRequestRegistry
    messages: deque[MessageLine] = field(default_factory=lambda: deque(maxlen=100))

    last_question: str | None = None
    # Decision menu waiting for select_menu.
    pending_menu: FinishedMenu | None = None
    # Single-pick answer captured while end_menu was suspended.
    menu_answered: bool = False
    single_choice: MenuEntry | None = None

    player_position: tuple[int, int] | None = None

    @property
    def active_menu_window(self) -> int | None:
        return self.menus.active_window

    @property
    def multi_select_active(self) -> bool:
        return self.multi_select.active

    @property
    def confirmed_unconsumed(self) -> bool:
        return self.multi_select.has_result

    @property
    def last_input(self) -> BufferedInput | None:
        return self.requests.latest

    def clear_menu_answer(self) -> None:
        self.pending_menu = None
        self.menu_answered = False
        self.single_choice = None
