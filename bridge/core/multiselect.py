from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum

from statemachine import State, StateMachine

from bridge.core.menus import MenuEntry

logger = logging.getLogger(__name__)

# Heuristic only: the engine gives no structured signal for pickup dialogs.
PICKUP_PHRASES = ("pick up", "pickup")

CONFIRM_INPUTS = frozenset({"Enter", "\r", "\n"})
CANCEL_INPUTS = frozenset({"Escape", "\x1b"})


def is_multi_pick(question: str | None) -> bool:
    text = (question or "").casefold()
    return any(phrase in text for phrase in PICKUP_PHRASES)


@dataclass(frozen=True, slots=True)
class SelectionRecord:
    selector: str
    original_selector: int
    index: int
    text: str


@dataclass(frozen=True, slots=True)
class MenuSelection:
    """What select_menu hands back: a count plus the engine's own selector codes."""

    count: int
    selectors: list[int] = field(default_factory=list)

    @classmethod
    def none(cls) -> "MenuSelection":
        return cls(count=0, selectors=[])

    @classmethod
    def of(cls, records: list[SelectionRecord]) -> "MenuSelection":
        ordered = sorted(records, key=lambda r: r.index)
        return cls(count=len(ordered), selectors=[r.original_selector for r in ordered])


class InputEffect(StrEnum):
    toggled = "toggled"
    confirmed = "confirmed"
    cancelled = "cancelled"
    ignored = "ignored"


class MultiSelectFSM(StateMachine):
    idle = State("Idle", initial=True)
    collecting = State("Collecting")
    confirmed = State("Confirmed")
    cancelled = State("Cancelled")

    opened = idle.to(collecting) | collecting.to(collecting) | confirmed.to(collecting) | cancelled.to(collecting)
    accepted = collecting.to(confirmed)
    aborted = collecting.to(cancelled)
    cleared = collecting.to(idle) | confirmed.to(idle) | cancelled.to(idle)


class MultiSelectTracker:
    """Working selection for a pickup-style dialog.

    Toggles only change the working set. Confirm/cancel produce a
    `MenuSelection` that stays parked until the engine takes it with
    `take_result()`, so it does not matter whether the engine reached
    select_menu before or after the client confirmed.
    """

    def __init__(self) -> None:
        self._fsm = MultiSelectFSM()
        self._entries: dict[str, MenuEntry] = {}
        self._selected: dict[str, SelectionRecord] = {}
        self._result: MenuSelection | None = None

    @property
    def state(self) -> str:
        return self._fsm.current_state.id

    @property
    def active(self) -> bool:
        return self.state == "collecting"

    @property
    def has_result(self) -> bool:
        return self._result is not None

    def selected(self) -> list[SelectionRecord]:
        return sorted(self._selected.values(), key=lambda r: r.index)

    def begin(self, entries: list[MenuEntry]) -> None:
        self._fsm.opened()
        self._entries = {e.selector: e for e in entries if not e.is_category and e.selector}
        self._selected.clear()
        self._result = None

    def reset(self) -> None:
        if self.state != "idle":
            self._fsm.cleared()
        self._entries = {}
        self._selected.clear()
        self._result = None

    def toggle(self, selector: str) -> bool:
        entry = self._entries[selector]
        if selector in self._selected:
            del self._selected[selector]
            return False
        self._selected[selector] = SelectionRecord(
            selector=entry.selector,
            original_selector=entry.original_selector,
            index=entry.index,
            text=entry.text,
        )
        return True

    def handle_input(self, raw: str) -> InputEffect:
        if not self.active:
            return InputEffect.ignored

        if raw in CONFIRM_INPUTS:
            self._result = MenuSelection.of(self.selected())
            self._selected.clear()
            self._fsm.accepted()
            logger.debug("multi-select confirmed with %d item(s)", self._result.count)
            return InputEffect.confirmed

        if raw in CANCEL_INPUTS:
            self._result = MenuSelection.none()
            self._selected.clear()
            self._fsm.aborted()
            logger.debug("multi-select cancelled")
            return InputEffect.cancelled

        if raw in self._entries:
            now_selected = self.toggle(raw)
            logger.debug("multi-select %s %r", "added" if now_selected else "removed", raw)
            return InputEffect.toggled

        logger.debug("multi-select ignoring %r", raw)
        return InputEffect.ignored

    def take_result(self) -> MenuSelection | None:
        result = self._result
        if result is not None:
            self.reset()
        return result
