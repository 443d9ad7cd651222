from __future__ import annotations

import asyncio

import pytest

from bridge.config import BridgeConfig
from bridge.core.multiselect import MenuSelection
from bridge.core.pending import ESCAPE, RequestKind
from bridge.session import SessionCoordinator

MAP = 3
MESSAGE = 1
MENU = 5


def _drain(session: SessionCoordinator) -> list[dict]:
    return session.channel.drain_nowait()


def test_unknown_callback_answers_zero(session: SessionCoordinator) -> None:
    assert session.dispatcher.dispatch("shim_not_a_thing", [1, 2, 3]) == 0
    assert _drain(session) == []


def test_undecodable_arguments_answer_zero(session: SessionCoordinator) -> None:
    assert session.dispatcher.dispatch("shim_print_glyph", [MAP, "left", 2, 341]) == 0
    assert len(session.state.tiles) == 0


def test_acknowledged_callbacks_answer_zero(session: SessionCoordinator) -> None:
    for name in ["shim_player_selection", "shim_wait_synch", "shim_mark_synch", "shim_status_init", "shim_display_nhwindow"]:
        assert session.dispatcher.dispatch(name, []) == 0


def test_window_lifecycle(session: SessionCoordinator) -> None:
    d = session.dispatcher

    assert d.dispatch("shim_init_nhwindows", []) == 1
    assert d.dispatch("shim_create_nhwindow", [4]) == 4
    assert d.dispatch("shim_clear_nhwindow", [MAP]) == 0
    assert d.dispatch("shim_destroy_nhwindow", [4]) == 0

    msgs = _drain(session)
    assert msgs[0] == {"type": "name_request", "text": "What is your name, adventurer?", "maxLength": 30}
    assert msgs[1] == {"type": "clear_window", "windowId": MAP}
    assert msgs[2] == {"type": "destroy_window", "windowId": 4}


def test_print_glyph_on_map_window_updates_tile_and_client(session: SessionCoordinator) -> None:
    assert session.dispatcher.dispatch("shim_print_glyph", [MAP, 10, 4, 341]) == 0

    record = session.state.tiles.read(x=10, y=4)
    assert record is not None
    assert (record.char, record.color) == ("@", 15)
    msgs = _drain(session)
    assert msgs == [
        {
            "type": "map_glyph",
            "x": 10,
            "y": 4,
            "glyph": 341,
            "char": "@",
            "color": 15,
            "window": MAP,
            "isRefresh": False,
            "isAreaRefresh": False,
        }
    ]


def test_print_glyph_without_engine_glyph_data_keeps_glyph_only(session: SessionCoordinator) -> None:
    session.dispatcher.dispatch("shim_print_glyph", [MAP, 1, 1, 77777])

    record = session.state.tiles.read(x=1, y=1)
    assert record is not None
    assert record.glyph == 77777
    assert record.char is None


def test_print_glyph_on_other_window_is_ignored(session: SessionCoordinator) -> None:
    session.dispatcher.dispatch("shim_print_glyph", [MESSAGE, 1, 1, 341])
    assert len(session.state.tiles) == 0


def test_putstr_forwards_text_and_keeps_history(session: SessionCoordinator) -> None:
    session.dispatcher.dispatch("shim_putstr", [MESSAGE, 0, "Hello Ada, welcome to NetHack!"])
    session.dispatcher.dispatch("shim_raw_print", ["   "])
    session.dispatcher.dispatch("shim_raw_print", ["  Be careful!  "])

    assert [m.text for m in session.state.messages] == ["Hello Ada, welcome to NetHack!"]
    assert _drain(session) == [
        {"type": "text", "text": "Hello Ada, welcome to NetHack!", "window": MESSAGE, "attr": 0},
        {"type": "raw_print", "text": "Be careful!"},
    ]


def test_cursor_and_cliparound_track_player(session: SessionCoordinator) -> None:
    session.dispatcher.dispatch("shim_curs", [MESSAGE, 9, 9])
    assert session.state.player_position is None

    session.dispatcher.dispatch("shim_curs", [MAP, 12, 7])
    session.dispatcher.dispatch("shim_cliparound", [13, 7])

    assert session.state.player_position == (13, 7)
    assert [m["type"] for m in _drain(session)] == ["player_position", "player_position"]


def test_message_history_callbacks(session: SessionCoordinator) -> None:
    assert session.dispatcher.dispatch("shim_getmsghistory", [1]) == ""
    session.dispatcher.dispatch("shim_putmsghistory", ["You hear a door open.", 1])
    assert session.state.messages[-1].text == "You hear a door open."


@pytest.mark.asyncio
async def test_key_request_waits_for_client(session: SessionCoordinator) -> None:
    fut = session.dispatcher.dispatch("shim_nhgetch", [])
    assert isinstance(fut, asyncio.Future)

    session.dispatcher.on_client_input("ArrowUp")

    assert await fut == ord("8")


@pytest.mark.asyncio
async def test_position_request_reuses_keypress_within_cooldown(session: SessionCoordinator, clock) -> None:
    d = session.dispatcher
    fut = d.dispatch("shim_get_nh_event", [])
    d.on_client_input("h")
    assert await fut == ord("h")

    clock.advance(0.05)
    assert d.dispatch("shim_nh_poskey", [0, 0, 0]) == ord("h")

    clock.advance(0.2)
    pos = d.dispatch("shim_nh_poskey", [0, 0, 0])
    assert isinstance(pos, asyncio.Future)
    assert _drain(session)[-1]["type"] == "position_request"
    d.on_client_input("Escape")
    assert await pos == ESCAPE


@pytest.mark.asyncio
async def test_yes_no_question_waits_for_answer(session: SessionCoordinator) -> None:
    fut = session.dispatcher.dispatch("shim_yn_function", ["Really attack the guard?", "yn", ord("n")])

    assert _drain(session) == [
        {"type": "question", "text": "Really attack the guard?", "choices": "yn", "default": "n", "menuItems": []}
    ]
    assert session.state.last_question == "Really attack the guard?"
    session.dispatcher.on_client_input("y")
    assert await fut == ord("y")


@pytest.mark.asyncio
async def test_direction_question_gets_its_own_message(session: SessionCoordinator) -> None:
    fut = session.dispatcher.dispatch("shim_yn_function", ["In what direction?", "", 0])

    assert _drain(session)[0]["type"] == "direction_question"
    session.dispatcher.on_client_input("ArrowDown")
    assert await fut == ord("2")


@pytest.mark.asyncio
async def test_yes_no_never_reuses_an_old_keypress(session: SessionCoordinator) -> None:
    session.dispatcher.on_client_input("y")

    fut = session.dispatcher.dispatch("shim_yn_function", ["Continue?", "yn", ord("y")])

    assert isinstance(fut, asyncio.Future)


@pytest.mark.asyncio
async def test_askname_uses_name_typed_earlier(session: SessionCoordinator, clock) -> None:
    session.dispatcher.on_client_input("  Ada  ")
    clock.advance(10)

    assert session.dispatcher.dispatch("shim_askname", []) == "Ada"
    assert _drain(session)[0]["type"] == "name_request"


@pytest.mark.asyncio
async def test_askname_waits_and_defaults_blank_names(session: SessionCoordinator) -> None:
    fut = session.dispatcher.dispatch("shim_askname", [])
    assert isinstance(fut, asyncio.Future)

    session.dispatcher.on_client_input("   ")

    assert await fut == "Player"


@pytest.mark.asyncio
async def test_getlin_returns_typed_line(session: SessionCoordinator) -> None:
    fut = session.dispatcher.dispatch("shim_getlin", ["Call it:"])
    session.dispatcher.on_client_input("shiny stone")
    assert await fut == "shiny stone"


def _single_pick_menu(session: SessionCoordinator, question: str) -> object:
    d = session.dispatcher
    d.dispatch("shim_start_menu", [MENU, 0])
    d.dispatch("shim_add_menu", [MENU, 0, 0, 0, 0, 0, "Pick a role", 0])
    d.dispatch("shim_add_menu", [MENU, 1, ord("a"), 0, 0, 0, "Archeologist", 0])
    d.dispatch("shim_add_menu", [MENU, 2, ord("b"), 0, 0, 0, "Barbarian", 0])
    return d.dispatch("shim_end_menu", [MENU, question])


@pytest.mark.asyncio
async def test_single_pick_menu_suspends_in_end_menu(session: SessionCoordinator) -> None:
    fut = _single_pick_menu(session, "Choose your role")
    assert isinstance(fut, asyncio.Future)

    msgs = _drain(session)
    assert [m["type"] for m in msgs] == ["menu_item", "menu_item", "menu_item", "question"]
    assert len(msgs[2]["menuItems"]) == 3
    assert msgs[-1]["choices"] == "ab"

    session.dispatcher.on_client_input("b")
    assert await fut == ord("b")

    result = session.dispatcher.dispatch("shim_select_menu", [MENU, 1])
    assert result == MenuSelection(count=1, selectors=[ord("b")])
    assert session.state.pending_menu is None


@pytest.mark.asyncio
async def test_single_pick_escape_selects_nothing(session: SessionCoordinator) -> None:
    fut = _single_pick_menu(session, "Choose your role")
    session.dispatcher.on_client_input("Escape")
    assert await fut == ESCAPE

    assert session.dispatcher.dispatch("shim_select_menu", [MENU, 1]) == MenuSelection.none()


def test_select_menu_pick_none_returns_immediately(session: SessionCoordinator) -> None:
    d = session.dispatcher
    d.dispatch("shim_start_menu", [4, 0])
    d.dispatch("shim_add_menu", [4, 20, ord("a"), 0, 0, 0, "dagger", 0])
    assert d.dispatch("shim_end_menu", [4, ""]) == 0

    assert d.dispatch("shim_select_menu", [4, 0]) == MenuSelection.none()
    assert [m["type"] for m in _drain(session)] == ["menu_item", "inventory_update"]


@pytest.mark.asyncio
async def test_select_menu_on_passive_menu_asks_the_client(session: SessionCoordinator) -> None:
    d = session.dispatcher
    d.dispatch("shim_start_menu", [4, 0])
    d.dispatch("shim_add_menu", [4, 20, ord("a"), 0, 0, 0, "dagger", 0])
    d.dispatch("shim_end_menu", [4, ""])
    _drain(session)

    fut = d.dispatch("shim_select_menu", [4, 1])
    assert isinstance(fut, asyncio.Future)
    assert session.state.requests.is_pending(RequestKind.menu_selection)
    assert _drain(session)[0]["text"] == "What would you like to select?"

    d.on_client_input("a")
    assert await fut == MenuSelection(count=1, selectors=[ord("a")])


@pytest.mark.asyncio
async def test_call_serializes_engine_callbacks(session: SessionCoordinator) -> None:
    order: list[str] = []

    async def first() -> None:
        key = await session.dispatcher.call("shim_nhgetch")
        order.append(f"key {key}")

    async def second() -> None:
        await session.dispatcher.call("shim_putstr", MESSAGE, 0, "after")
        order.append("putstr")

    t1 = asyncio.create_task(first())
    await asyncio.sleep(0)
    t2 = asyncio.create_task(second())
    await asyncio.sleep(0)
    assert order == []

    session.dispatcher.on_client_input("k")
    await asyncio.gather(t1, t2)

    assert order == [f"key {ord('k')}", "putstr"]


@pytest.mark.asyncio
async def test_timed_out_single_pick_menu_selects_nothing(engine, clock) -> None:
    session = SessionCoordinator(config=BridgeConfig(request_timeout_s=0.01), engine=engine, clock=clock)
    fut = _single_pick_menu(session, "Choose your role")

    assert await asyncio.wait_for(fut, timeout=1.0) == ESCAPE
    assert session.dispatcher.dispatch("shim_select_menu", [MENU, 1]) == MenuSelection.none()
    assert session.state.pending_menu is None


def test_blank_menu_lines_are_neither_stored_nor_echoed(session: SessionCoordinator) -> None:
    d = session.dispatcher
    d.dispatch("shim_start_menu", [MENU, 0])
    d.dispatch("shim_add_menu", [MENU, 0, 0, 0, 0, 0, "", 0])
    d.dispatch("shim_add_menu", [MENU, 1, ord("a"), 0, 0, 0, "Archeologist", 0])

    msgs = _drain(session)
    assert [m["text"] for m in msgs] == ["Archeologist"]
    assert [i["text"] for i in msgs[0]["menuItems"]] == [e.text for e in session.state.menus.entries(MENU)]


def test_non_finite_numbers_answer_zero(session: SessionCoordinator) -> None:
    assert session.dispatcher.dispatch("shim_print_glyph", [MAP, float("inf"), 2, 341]) == 0
    assert session.dispatcher.dispatch("shim_curs", [MAP, 1, float("-inf")]) == 0
    assert len(session.state.tiles) == 0
    assert session.state.player_position is None
