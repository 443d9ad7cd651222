from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import Any

from bridge.api.models import (
    ClearWindowMessage,
    DestroyWindowMessage,
    DirectionQuestionMessage,
    InventoryUpdateMessage,
    MenuItemMessage,
    NameRequestMessage,
    PlayerPositionMessage,
    PositionRequestMessage,
    QuestionMessage,
    RawPrintMessage,
    TextMessage,
    menu_payloads,
)
from bridge.client_channel import ClientChannel
from bridge.config import BridgeConfig
from bridge.core.callbacks import (
    AddMenu,
    AskName,
    CallbackDecodeError,
    ClearWindow,
    ClipAround,
    CreateWindow,
    Cursor,
    DestroyWindow,
    DisplayWindow,
    EndMenu,
    ExitWindows,
    GetChar,
    GetEvent,
    GetLine,
    GetMessageHistory,
    InitWindows,
    NoOp,
    PosKey,
    PrintGlyph,
    PutMessageHistory,
    PutStr,
    RawPrint,
    RawPrintBold,
    SelectMenu,
    ShimCall,
    StartMenu,
    StatusInit,
    StatusUpdate,
    YesNo,
    decode_call,
)
from bridge.core.menus import MenuEntry, MenuOutcome
from bridge.core.multiselect import InputEffect, MenuSelection, SelectionRecord, is_multi_pick
from bridge.core.pending import ESCAPE, RequestKind, decode_key
from bridge.core.state import MessageLine, SessionState
from bridge.engine import EngineAdapter

logger = logging.getLogger(__name__)

PICK_NONE = 0
DEFAULT_NAME = "Player"
DEFAULT_MENU_PROMPT = "What would you like to select?"

# Order in which an arriving keypress looks for a waiting request.
_INPUT_ROUTING = (RequestKind.menu_selection, RequestKind.general, RequestKind.position)


def _record_for(entry: MenuEntry) -> SelectionRecord:
    return SelectionRecord(
        selector=entry.selector,
        original_selector=entry.original_selector,
        index=entry.index,
        text=entry.text,
    )


def _find_selectable(entries: Sequence[MenuEntry], raw: str) -> MenuEntry | None:
    return next((e for e in entries if not e.is_category and e.selector and e.selector == raw), None)


class CallbackDispatcher:
    """The single entry point the engine calls into.

    `dispatch(name, args)` routes a named callback to its handler and returns
    either a plain value or an `asyncio.Future` the engine must wait on.
    `call(name, *args)` is the awaitable form the engine uses; it holds a lock
    across the whole handler, including its suspension, so the engine's
    conversation stays strictly one call at a time.

    Unknown callback names and undecodable arguments answer 0.
    """

    def __init__(
        self,
        *,
        state: SessionState,
        channel: ClientChannel,
        engine: EngineAdapter,
        config: BridgeConfig,
    ) -> None:
        self.state = state
        self.channel = channel
        self.engine = engine
        self.config = config
        self._lock = asyncio.Lock()
        self._handlers: dict[type[ShimCall], Callable[[Any], Any]] = {
            InitWindows: self._init_windows,
            CreateWindow: self._create_window,
            DisplayWindow: self._display_window,
            ClearWindow: self._clear_window,
            DestroyWindow: self._destroy_window,
            ExitWindows: self._exit_windows,
            StatusInit: self._acknowledge,
            StatusUpdate: self._acknowledge,
            PutStr: self._putstr,
            RawPrint: self._raw_print,
            RawPrintBold: self._raw_print,
            PrintGlyph: self._print_glyph,
            Cursor: self._cursor,
            ClipAround: self._cliparound,
            GetEvent: self._get_key,
            GetChar: self._get_key,
            PosKey: self._poskey,
            YesNo: self._yes_no,
            AskName: self._askname,
            GetLine: self._getline,
            StartMenu: self._start_menu,
            AddMenu: self._add_menu,
            EndMenu: self._end_menu,
            SelectMenu: self._select_menu,
            GetMessageHistory: self._get_message_history,
            PutMessageHistory: self._put_message_history,
            NoOp: self._acknowledge,
        }

    # -- engine side -----------------------------------------------------------

    def dispatch(self, name: str, args: Sequence[Any] = ()) -> Any:
        try:
            call = decode_call(name, args)
        except CallbackDecodeError as e:
            logger.warning("undecodable callback: %s", e)
            return 0
        if call is None:
            logger.warning("unknown callback %s %r", name, list(args))
            return 0

        logger.debug("callback %s -> %r", name, call)
        return self._handlers[type(call)](call)

    async def call(self, name: str, *args: Any) -> Any:
        async with self._lock:
            result = self.dispatch(name, args)
            if isinstance(result, asyncio.Future):
                result = await result
            return result

    def _suspend(self, kind: RequestKind, **kwargs: Any) -> Any:
        # Only reachable with nothing pending for `kind`: `call` serializes the engine.
        return self.state.requests.suspend(kind, **kwargs)

    # -- client side -----------------------------------------------------------

    def on_client_input(self, raw: str) -> None:
        """Hand one client keypress (or typed line) to whatever is waiting for it."""

        state = self.state
        if state.multi_select.active:
            effect = state.multi_select.handle_input(raw)
            state.requests.note_consumed(raw)
            if effect in (InputEffect.confirmed, InputEffect.cancelled):
                if state.requests.is_pending(RequestKind.menu_selection):
                    result = state.multi_select.take_result()
                    state.requests.settle(RequestKind.menu_selection, result)
                    state.clear_menu_answer()
            return

        for kind in _INPUT_ROUTING:
            if state.requests.is_pending(kind):
                state.requests.resolve(kind, raw)
                return

        logger.debug("no request waiting; buffering input %r", raw)
        state.requests.resolve(RequestKind.general, raw)

    def release(self) -> None:
        """Answer every waiting request with its safe default (connection gone)."""

        self.state.requests.cancel_all()
        self.state.multi_select.reset()

    # -- window lifecycle ------------------------------------------------------

    def _init_windows(self, call: InitWindows) -> int:
        self.channel.send(NameRequestMessage(text="What is your name, adventurer?", max_length=self.config.name_max_length))
        return 1

    def _create_window(self, call: CreateWindow) -> int:
        return call.window_type

    def _display_window(self, call: DisplayWindow) -> int:
        return 0

    def _clear_window(self, call: ClearWindow) -> int:
        self.channel.send(ClearWindowMessage(window_id=call.window))
        return 0

    def _destroy_window(self, call: DestroyWindow) -> int:
        self.channel.send(DestroyWindowMessage(window_id=call.window))
        return 0

    def _exit_windows(self, call: ExitWindows) -> int:
        logger.info("engine closed its windows: %s", call.text)
        return 0

    def _acknowledge(self, call: ShimCall) -> int:
        return 0

    # -- output ----------------------------------------------------------------

    def _putstr(self, call: PutStr) -> int:
        self.state.messages.append(MessageLine.now(text=call.text, window=call.window, attr=call.attr))
        self.channel.send(TextMessage(text=call.text, window=call.window, attr=call.attr))
        return 0

    def _raw_print(self, call: RawPrint) -> int:
        text = call.text.strip()
        if text:
            self.channel.send(RawPrintMessage(text=text))
        return 0

    def _print_glyph(self, call: PrintGlyph) -> int:
        if call.window != self.config.map_window:
            return 0

        char: str | None = None
        color: int | None = None
        try:
            info = self.engine.map_glyph(call.glyph, call.x, call.y)
        except Exception:
            logger.warning("glyph lookup failed for %s at (%s,%s)", call.glyph, call.x, call.y, exc_info=True)
            info = None
        if info is not None:
            char = chr(info.ch)
            color = info.color

        self.state.tiles.write(x=call.x, y=call.y, glyph=call.glyph, char=char, color=color)
        return 0

    def _cursor(self, call: Cursor) -> int:
        if call.window == self.config.map_window:
            self._move_player(call.x, call.y)
        return 0

    def _cliparound(self, call: ClipAround) -> int:
        self._move_player(call.x, call.y)
        return 0

    def _move_player(self, x: int, y: int) -> None:
        self.state.player_position = (x, y)
        self.channel.send(PlayerPositionMessage(x=x, y=y))

    def _get_message_history(self, call: GetMessageHistory) -> str:
        return ""

    def _put_message_history(self, call: PutMessageHistory) -> int:
        if call.message.strip():
            self.state.messages.append(MessageLine.now(text=call.message, window=0, attr=0))
        return 0

    # -- input -----------------------------------------------------------------

    def _get_key(self, call: GetEvent | GetChar) -> Any:
        return self._suspend(RequestKind.general)

    def _poskey(self, call: PosKey) -> Any:
        result = self._suspend(RequestKind.position)
        if isinstance(result, asyncio.Future):
            self.channel.send(PositionRequestMessage(text="Select a position (or press Escape to cancel)"))
        return result

    def _yes_no(self, call: YesNo) -> Any:
        question = call.question
        self.state.last_question = question or None
        default = chr(call.default) if 0 < call.default < 0x110000 else ""

        # Heuristic: the engine's direction prompts all mention "direction".
        if "direction" in question.casefold():
            self.channel.send(DirectionQuestionMessage(text=question, choices=call.choices, default=default))
        else:
            self.channel.send(QuestionMessage(text=question, choices=call.choices, default=default))

        return self._suspend(
            RequestKind.general,
            default=call.default or ESCAPE,
            reuse="never",
        )

    def _askname(self, call: AskName) -> Any:
        self.channel.send(NameRequestMessage(text="What is your name?", max_length=self.config.name_max_length))
        limit = self.config.name_max_length

        def _name(raw: str) -> str:
            return raw.strip()[:limit] or DEFAULT_NAME

        return self._suspend(RequestKind.general, decoder=_name, default=DEFAULT_NAME, reuse="unconsumed")

    def _getline(self, call: GetLine) -> Any:
        self.state.last_question = call.question or None
        self.channel.send(QuestionMessage(text=call.question))

        def _line(raw: str) -> str:
            return "\x1b" if raw == "Escape" else raw

        return self._suspend(RequestKind.general, decoder=_line, default="\x1b", reuse="never")

    # -- menus -----------------------------------------------------------------

    def _start_menu(self, call: StartMenu) -> int:
        state = self.state
        state.menus.begin(window=call.window)
        state.multi_select.reset()
        state.last_question = None
        state.clear_menu_answer()
        return 0

    def _add_menu(self, call: AddMenu) -> int:
        if not call.text:
            logger.debug("skipping blank menu line for window %s", call.window)
            return 0
        menus = self.state.menus
        entry = menus.add(window=call.window, glyph=call.glyph, selector_code=call.selector, text=call.text)
        self.channel.send(
            MenuItemMessage(
                text=entry.text,
                accelerator=entry.selector,
                window=entry.window,
                glyph=entry.glyph,
                is_category=entry.is_category,
                menu_items=menu_payloads(menus.entries(call.window)),
            )
        )
        return 0

    def _end_menu(self, call: EndMenu) -> Any:
        state = self.state
        finished = state.menus.finish(window=call.window, question=call.question)

        if finished.outcome == MenuOutcome.inventory_update:
            selectable = len(finished.selectable)
            logger.debug(
                "inventory refresh: %d item(s), %d header(s)",
                selectable,
                len(finished.entries) - selectable,
            )
            self.channel.send(InventoryUpdateMessage(items=menu_payloads(finished.entries), window=finished.window))
            return 0

        if finished.outcome == MenuOutcome.empty:
            return 0

        state.pending_menu = finished
        state.menu_answered = False
        state.single_choice = None
        state.last_question = finished.question or None
        self.channel.send(
            QuestionMessage(
                text=finished.question or DEFAULT_MENU_PROMPT,
                choices=finished.choices,
                menu_items=menu_payloads(finished.entries),
            )
        )

        if is_multi_pick(finished.question):
            # The engine blocks in select_menu instead; see _select_menu.
            state.multi_select.begin(finished.entries)
            return 0

        entries = finished.entries

        def _answer(raw: str) -> int:
            state.single_choice = _find_selectable(entries, raw)
            state.menu_answered = True
            return decode_key(raw)

        def _unanswered() -> None:
            state.single_choice = None
            state.menu_answered = True

        return self._suspend(
            RequestKind.general,
            decoder=_answer,
            default=ESCAPE,
            reuse="never",
            on_timeout=_unanswered,
        )

    def _select_menu(self, call: SelectMenu) -> Any:
        state = self.state

        if call.how == PICK_NONE:
            state.multi_select.reset()
            state.clear_menu_answer()
            return MenuSelection.none()

        if state.multi_select.has_result:
            result = state.multi_select.take_result()
            state.clear_menu_answer()
            return result

        if state.multi_select.active:
            return self._suspend(
                RequestKind.menu_selection,
                decoder=lambda raw: MenuSelection.none(),
                default=MenuSelection.none(),
                reuse="never",
                on_timeout=self._abandon_menu,
            )

        if state.menu_answered:
            choice = state.single_choice
            state.clear_menu_answer()
            return MenuSelection.of([_record_for(choice)]) if choice is not None else MenuSelection.none()

        entries = state.pending_menu.entries if state.pending_menu is not None else state.menus.entries(call.window)
        if not any(not e.is_category for e in entries):
            state.clear_menu_answer()
            return MenuSelection.none()

        self.channel.send(
            QuestionMessage(
                text=state.last_question or DEFAULT_MENU_PROMPT,
                choices="".join(e.selector for e in entries if not e.is_category),
                menu_items=menu_payloads(entries),
            )
        )

        def _pick(raw: str) -> MenuSelection:
            state.clear_menu_answer()
            choice = _find_selectable(entries, raw)
            return MenuSelection.of([_record_for(choice)]) if choice is not None else MenuSelection.none()

        return self._suspend(
            RequestKind.menu_selection,
            decoder=_pick,
            default=MenuSelection.none(),
            reuse="never",
            on_timeout=self._abandon_menu,
        )

    def _abandon_menu(self) -> None:
        # The engine gets an empty selection; later keys must reach ordinary requests again.
        logger.info("menu selection timed out; discarding working selection")
        self.state.multi_select.reset()
        self.state.clear_menu_answer()
