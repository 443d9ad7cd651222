"""Typed records for the engine's named UI callbacks.

The engine calls out as `name(*args)` with positional arguments. Each record
below names those positions; `decode_call` turns the raw argument list into
the matching record once, at the dispatcher boundary. Missing trailing
arguments fall back to the field defaults.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import MISSING, dataclass, fields
from typing import Any, ClassVar


class CallbackDecodeError(ValueError):
    pass


def _as_int(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str) and len(value) == 1 and not value.isdigit():
        return ord(value)
    return int(value)


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


_COERCE = {"int": _as_int, "str": _as_str}


@dataclass(frozen=True, slots=True)
class ShimCall:
    name: ClassVar[str] = ""


@dataclass(frozen=True, slots=True)
class InitWindows(ShimCall):
    name: ClassVar[str] = "shim_init_nhwindows"


@dataclass(frozen=True, slots=True)
class CreateWindow(ShimCall):
    name: ClassVar[str] = "shim_create_nhwindow"
    window_type: int = 0


@dataclass(frozen=True, slots=True)
class DisplayWindow(ShimCall):
    name: ClassVar[str] = "shim_display_nhwindow"
    window: int = 0
    blocking: int = 0


@dataclass(frozen=True, slots=True)
class ClearWindow(ShimCall):
    name: ClassVar[str] = "shim_clear_nhwindow"
    window: int = 0


@dataclass(frozen=True, slots=True)
class DestroyWindow(ShimCall):
    name: ClassVar[str] = "shim_destroy_nhwindow"
    window: int = 0


@dataclass(frozen=True, slots=True)
class ExitWindows(ShimCall):
    name: ClassVar[str] = "shim_exit_nhwindows"
    text: str = ""


@dataclass(frozen=True, slots=True)
class StatusInit(ShimCall):
    name: ClassVar[str] = "shim_status_init"


@dataclass(frozen=True, slots=True)
class StatusUpdate(ShimCall):
    name: ClassVar[str] = "shim_status_update"
    field: int = 0
    value: int = 0
    change: int = 0
    percent: int = 0
    color: int = 0


@dataclass(frozen=True, slots=True)
class PutStr(ShimCall):
    name: ClassVar[str] = "shim_putstr"
    window: int = 0
    attr: int = 0
    text: str = ""


@dataclass(frozen=True, slots=True)
class RawPrint(ShimCall):
    name: ClassVar[str] = "shim_raw_print"
    text: str = ""


@dataclass(frozen=True, slots=True)
class RawPrintBold(RawPrint):
    name: ClassVar[str] = "shim_raw_print_bold"


@dataclass(frozen=True, slots=True)
class PrintGlyph(ShimCall):
    name: ClassVar[str] = "shim_print_glyph"
    window: int = 0
    x: int = 0
    y: int = 0
    glyph: int = 0


@dataclass(frozen=True, slots=True)
class Cursor(ShimCall):
    name: ClassVar[str] = "shim_curs"
    window: int = 0
    x: int = 0
    y: int = 0


@dataclass(frozen=True, slots=True)
class ClipAround(ShimCall):
    name: ClassVar[str] = "shim_cliparound"
    x: int = 0
    y: int = 0


@dataclass(frozen=True, slots=True)
class GetEvent(ShimCall):
    name: ClassVar[str] = "shim_get_nh_event"


@dataclass(frozen=True, slots=True)
class GetChar(ShimCall):
    name: ClassVar[str] = "shim_nhgetch"


@dataclass(frozen=True, slots=True)
class PosKey(ShimCall):
    name: ClassVar[str] = "shim_nh_poskey"
    x: int = 0
    y: int = 0
    mod: int = 0


@dataclass(frozen=True, slots=True)
class YesNo(ShimCall):
    name: ClassVar[str] = "shim_yn_function"
    question: str = ""
    choices: str = ""
    default: int = 0


@dataclass(frozen=True, slots=True)
class AskName(ShimCall):
    name: ClassVar[str] = "shim_askname"


@dataclass(frozen=True, slots=True)
class GetLine(ShimCall):
    name: ClassVar[str] = "shim_getlin"
    question: str = ""


@dataclass(frozen=True, slots=True)
class StartMenu(ShimCall):
    name: ClassVar[str] = "shim_start_menu"
    window: int = 0
    behaviour: int = 0


@dataclass(frozen=True, slots=True)
class AddMenu(ShimCall):
    name: ClassVar[str] = "shim_add_menu"
    window: int = 0
    glyph: int = 0
    selector: int = 0
    group_selector: int = 0
    attr: int = 0
    color: int = 0
    text: str = ""
    preselected: int = 0


@dataclass(frozen=True, slots=True)
class EndMenu(ShimCall):
    name: ClassVar[str] = "shim_end_menu"
    window: int = 0
    question: str = ""


@dataclass(frozen=True, slots=True)
class SelectMenu(ShimCall):
    name: ClassVar[str] = "shim_select_menu"
    window: int = 0
    how: int = 0


@dataclass(frozen=True, slots=True)
class GetMessageHistory(ShimCall):
    name: ClassVar[str] = "shim_getmsghistory"
    init: int = 0


@dataclass(frozen=True, slots=True)
class PutMessageHistory(ShimCall):
    name: ClassVar[str] = "shim_putmsghistory"
    message: str = ""
    restoring: int = 0


@dataclass(frozen=True, slots=True)
class NoOp(ShimCall):
    """Callbacks the bridge acknowledges without doing anything."""


NOOP_CALLBACKS = frozenset(
    {
        "shim_player_selection",
        "shim_wait_synch",
        "shim_mark_synch",
        "shim_update_inventory",
        "shim_number_pad",
        "shim_delay_output",
        "shim_suspend_nhwindows",
        "shim_resume_nhwindows",
    }
)

CALLBACKS: dict[str, type[ShimCall]] = {
    cls.name: cls
    for cls in (
        InitWindows,
        CreateWindow,
        DisplayWindow,
        ClearWindow,
        DestroyWindow,
        ExitWindows,
        StatusInit,
        StatusUpdate,
        PutStr,
        RawPrint,
        RawPrintBold,
        PrintGlyph,
        Cursor,
        ClipAround,
        GetEvent,
        GetChar,
        PosKey,
        YesNo,
        AskName,
        GetLine,
        StartMenu,
        AddMenu,
        EndMenu,
        SelectMenu,
        GetMessageHistory,
        PutMessageHistory,
    )
}


def decode_call(name: str, args: Sequence[Any]) -> ShimCall | None:
    """Return the typed record for `name`, or None when the name is unknown.

    Raises `CallbackDecodeError` when an argument cannot be coerced.
    """

    if name in NOOP_CALLBACKS:
        return NoOp()
    cls = CALLBACKS.get(name)
    if cls is None:
        return None

    values: dict[str, Any] = {}
    for f, raw in zip(fields(cls), args):
        coerce = _COERCE[str(f.type)]
        try:
            values[f.name] = coerce(raw)
        except (TypeError, ValueError, OverflowError) as e:
            raise CallbackDecodeError(f"{name}: bad value {raw!r} for {f.name}") from e
    for f in fields(cls):
        if f.name not in values and f.default is MISSING:
            raise CallbackDecodeError(f"{name}: missing {f.name}")
    return cls(**values)
