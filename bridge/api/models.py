from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from bridge.core.menus import MenuEntry
from bridge.core.tiles import TileRecord


class WireModel(BaseModel):
    """Base for every JSON message exchanged with the browser client.

    Python attributes are snake_case; the wire uses camelCase (`menuItems`,
    `maxLength`, `centerX`, ...). Dump with `to_wire()`.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


# -- inbound (client -> coordinator) -------------------------------------------


class InputMessage(WireModel):
    type: Literal["input"]
    input: str


class TileUpdateRequest(WireModel):
    type: Literal["request_tile_update"]
    x: int
    y: int


class AreaUpdateRequest(WireModel):
    type: Literal["request_area_update"]
    center_x: int
    center_y: int
    radius: int = Field(3, ge=0, le=80)


InboundMessage = Annotated[
    Union[InputMessage, TileUpdateRequest, AreaUpdateRequest],
    Field(discriminator="type"),
]

inbound_adapter: TypeAdapter[InputMessage | TileUpdateRequest | AreaUpdateRequest] = TypeAdapter(InboundMessage)


# -- outbound (coordinator -> client) ------------------------------------------


class MenuItemPayload(WireModel):
    text: str
    accelerator: str
    window: int
    glyph: int
    is_category: bool

    @classmethod
    def from_entry(cls, entry: MenuEntry) -> "MenuItemPayload":
        return cls(
            text=entry.text,
            accelerator=entry.selector,
            window=entry.window,
            glyph=entry.glyph,
            is_category=entry.is_category,
        )


def menu_payloads(entries: list[MenuEntry]) -> list[MenuItemPayload]:
    return [MenuItemPayload.from_entry(e) for e in entries]


class MapGlyphMessage(WireModel):
    type: Literal["map_glyph"] = "map_glyph"
    x: int
    y: int
    glyph: int
    char: str | None = None
    color: int | None = None
    window: int
    is_refresh: bool = False
    is_area_refresh: bool = False

    @classmethod
    def from_record(cls, record: TileRecord, *, window: int, refresh: bool = False, area: bool = False) -> "MapGlyphMessage":
        return cls(
            x=record.x,
            y=record.y,
            glyph=record.glyph,
            char=record.char,
            color=record.color,
            window=window,
            is_refresh=refresh,
            is_area_refresh=area,
        )


class TileNotFoundMessage(WireModel):
    type: Literal["tile_not_found"] = "tile_not_found"
    x: int
    y: int
    message: str = "Tile data not available - may not be explored yet"


class AreaRefreshCompleteMessage(WireModel):
    type: Literal["area_refresh_complete"] = "area_refresh_complete"
    center_x: int
    center_y: int
    radius: int
    tiles_refreshed: int


class TextMessage(WireModel):
    type: Literal["text"] = "text"
    text: str
    window: int
    attr: int = 0


class RawPrintMessage(WireModel):
    type: Literal["raw_print"] = "raw_print"
    text: str


class QuestionMessage(WireModel):
    type: Literal["question"] = "question"
    text: str
    choices: str = ""
    default: str = ""
    menu_items: list[MenuItemPayload] = Field(default_factory=list)


class DirectionQuestionMessage(WireModel):
    type: Literal["direction_question"] = "direction_question"
    text: str
    choices: str = ""
    default: str = ""


class MenuItemMessage(WireModel):
    type: Literal["menu_item"] = "menu_item"
    text: str
    accelerator: str
    window: int
    glyph: int
    is_category: bool
    menu_items: list[MenuItemPayload] = Field(default_factory=list)


class PositionRequestMessage(WireModel):
    type: Literal["position_request"] = "position_request"
    text: str


class NameRequestMessage(WireModel):
    type: Literal["name_request"] = "name_request"
    text: str
    max_length: int


class PlayerPositionMessage(WireModel):
    type: Literal["player_position"] = "player_position"
    x: int
    y: int


class InventoryUpdateMessage(WireModel):
    type: Literal["inventory_update"] = "inventory_update"
    items: list[MenuItemPayload] = Field(default_factory=list)
    window: int


class ClearWindowMessage(WireModel):
    type: Literal["clear_window"] = "clear_window"
    window_id: int


class DestroyWindowMessage(WireModel):
    type: Literal["destroy_window"] = "destroy_window"
    window_id: int
