from __future__ import annotations

import logging
import string
from dataclasses import dataclass, field, replace
from enum import StrEnum

from statemachine import State, StateMachine

logger = logging.getLogger(__name__)

SELECTOR_ALPHABET = string.ascii_lowercase + string.ascii_uppercase

# Selector codes the engine is known to hand out directly; anything else is
# an identifier value and needs a synthesized key.
_PRINTABLE_SELECTORS = range(33, 127)
_HEADER_CODES = frozenset({0, 32})


@dataclass(frozen=True, slots=True)
class MenuEntry:
    text: str
    selector: str
    original_selector: int
    window: int
    glyph: int
    is_category: bool
    index: int


class MenuOutcome(StrEnum):
    inventory_update = "inventory_update"
    decision = "decision"
    empty = "empty"


@dataclass(frozen=True, slots=True)
class FinishedMenu:
    outcome: MenuOutcome
    window: int
    question: str
    entries: list[MenuEntry] = field(default_factory=list)

    @property
    def selectable(self) -> list[MenuEntry]:
        return [e for e in self.entries if not e.is_category]

    @property
    def choices(self) -> str:
        return "".join(e.selector for e in self.selectable)


class MenuFSM(StateMachine):
    """Idle -> Collecting -> Idle. A new menu may restart collection."""

    idle = State("Idle", initial=True)
    collecting = State("Collecting")

    started = idle.to(collecting) | collecting.to(collecting)
    ended = collecting.to(idle)


class MenuAccumulator:
    """Collects entries between the engine's start_menu and end_menu calls."""

    def __init__(self, *, inventory_window: int) -> None:
        self.inventory_window = inventory_window
        self.active_window: int | None = None
        self._fsm = MenuFSM()
        self._entries: dict[int, list[MenuEntry]] = {}
        self._last_synthesized = -1

    @property
    def collecting(self) -> bool:
        return self._fsm.current_state.id == "collecting"

    def entries(self, window: int) -> list[MenuEntry]:
        return list(self._entries.get(window, []))

    def begin(self, *, window: int) -> None:
        self._fsm.started()
        self._entries[window] = []
        self.active_window = window
        self._last_synthesized = -1

    def add(self, *, window: int, glyph: int, selector_code: int | None, text: str) -> MenuEntry:
        """Classify and (when collecting for `window`) store one engine menu line.

        The entry is returned either way so the caller can echo it to the client.
        """

        entries = self._entries.setdefault(window, [])
        is_category = selector_code is None or selector_code in _HEADER_CODES
        if is_category:
            selector = ""
        elif selector_code in _PRINTABLE_SELECTORS:
            selector = chr(selector_code)
        else:
            selector = self._synthesize(entries)
            logger.debug("menu item %r: selector %s synthesized from code %s", text, selector, selector_code)

        entry = MenuEntry(
            text=text,
            selector=selector,
            original_selector=selector_code or 0,
            window=window,
            glyph=glyph,
            is_category=is_category,
            index=len(entries),
        )

        if self.collecting and window == self.active_window and text:
            if not is_category and selector_code in _PRINTABLE_SELECTORS:
                self._release_selector(entries, selector)
            entries.append(entry)
        else:
            logger.debug("menu item %r for window %s not collected (active=%s)", text, window, self.active_window)
        return entry

    def _release_selector(self, entries: list[MenuEntry], selector: str) -> None:
        # An engine-supplied key wins over one we synthesized earlier in this menu.
        for i, e in enumerate(entries):
            if e.selector == selector and not e.is_category and e.original_selector not in _PRINTABLE_SELECTORS:
                moved = self._synthesize(entries, reserved={selector})
                logger.debug("menu item %r: selector %s taken by the engine, now %s", e.text, selector, moved)
                entries[i] = replace(e, selector=moved)

    def _synthesize(self, entries: list[MenuEntry], reserved: set[str] | None = None) -> str:
        used = {e.selector for e in entries} | (reserved or set())
        start = max(sum(1 for e in entries if not e.is_category), self._last_synthesized + 1)
        for offset in range(len(SELECTOR_ALPHABET)):
            idx = start + offset
            candidate = SELECTOR_ALPHABET[idx % len(SELECTOR_ALPHABET)]
            if candidate not in used:
                self._last_synthesized = idx
                return candidate
        self._last_synthesized = start
        return SELECTOR_ALPHABET[start % len(SELECTOR_ALPHABET)]

    def finish(self, *, window: int, question: str | None) -> FinishedMenu:
        if self.collecting:
            self._fsm.ended()

        question = (question or "").strip()
        entries = self.entries(window)

        if window == self.inventory_window and not question:
            outcome = MenuOutcome.inventory_update
        elif question or (entries and window != self.inventory_window):
            outcome = MenuOutcome.decision
        else:
            outcome = MenuOutcome.empty
            entries = []

        return FinishedMenu(outcome=outcome, window=window, question=question, entries=entries)
