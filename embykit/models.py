"""Data models and decoders for Emby responses.

Decoders take the parsed JSON of a response and return a typed value. They
raise ``KeyError``, ``TypeError`` or ``ValueError`` when the payload does not
have the expected shape; the request pipeline turns those into
:class:`~embykit.exceptions.EmbyDecodeError`.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeVar, cast

from .const import EMBY_TICKS_PER_SECOND

if TYPE_CHECKING:
    from .const import (
        EmbyAuthenticationResponse,
        EmbyBaseItem,
        EmbyItemsResponse,
        EmbyServerInfo,
        EmbyUser,
        EmbyUserItemData,
        PlaybackInfoResponse,
    )

T = TypeVar("T")

Decoder = Callable[[Any], T]


@dataclass(frozen=True, slots=True)
class EmbyItem:
    """Media item with the fields needed for display and artwork.

    Attributes:
        item_id: Unique identifier for the item.
        name: Display name.
        item_type: Emby item type (Movie, Episode, MusicAlbum, ...).
        run_time_ticks: Duration in ticks, if known.
        image_tags: Image type to tag pairs, in the order the server sent them.
        backdrop_image_tags: Backdrop tags of the item itself.
        parent_backdrop_image_tags: Backdrop tags inherited from a parent.
        parent_backdrop_item_id: Item owning the parent backdrops.
        parent_id: Parent folder id.
        series_id: Series id for episodes.
        user_data: Played/favorite state for the current user.
    """

    item_id: str
    name: str = ""
    item_type: str | None = None
    run_time_ticks: int | None = None
    image_tags: dict[str, str] = field(default_factory=dict)
    backdrop_image_tags: tuple[str, ...] = field(default_factory=tuple)
    parent_backdrop_image_tags: tuple[str, ...] = field(default_factory=tuple)
    parent_backdrop_item_id: str | None = None
    parent_id: str | None = None
    series_id: str | None = None
    user_data: EmbyUserItemData | None = None

    @property
    def duration_seconds(self) -> float | None:
        """Return the duration in seconds, or None if unknown."""
        if self.run_time_ticks is None:
            return None
        return self.run_time_ticks / EMBY_TICKS_PER_SECOND


@dataclass(frozen=True, slots=True)
class ItemsPage:
    """One page of an item listing.

    Attributes:
        items: Items on this page.
        total_record_count: Total number of items across all pages.
        start_index: Index of the first item of this page.
    """

    items: tuple[EmbyItem, ...]
    total_record_count: int
    start_index: int = 0


@dataclass(frozen=True, slots=True)
class AuthenticationResult:
    """Outcome of a successful username/password login."""

    user_id: str
    user_name: str
    access_token: str
    server_id: str
    user: EmbyUser


def _require_mapping(data: Any) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise TypeError(f"Expected JSON object, got {type(data).__name__}")
    return data


def _require_list(data: Any) -> list[Any]:
    if not isinstance(data, list):
        raise TypeError(f"Expected JSON array, got {type(data).__name__}")
    return data


def parse_item(data: EmbyBaseItem) -> EmbyItem:
    """Parse API response into EmbyItem.

    Args:
        data: Raw item from API response.

    Returns:
        Parsed EmbyItem instance.
    """
    data = cast("EmbyBaseItem", _require_mapping(data))
    image_tags = data.get("ImageTags") or {}
    if not isinstance(image_tags, dict):
        raise TypeError("ImageTags must be an object")

    return EmbyItem(
        item_id=str(data["Id"]),
        name=data.get("Name", ""),
        item_type=data.get("Type"),
        run_time_ticks=data.get("RunTimeTicks"),
        # dict() keeps the wire order, which the image fallback relies on
        image_tags=dict(image_tags),
        backdrop_image_tags=tuple(_require_list(data.get("BackdropImageTags") or [])),
        parent_backdrop_image_tags=tuple(
            _require_list(data.get("ParentBackdropImageTags") or [])
        ),
        parent_backdrop_item_id=data.get("ParentBackdropItemId"),
        parent_id=data.get("ParentId"),
        series_id=data.get("SeriesId"),
        user_data=data.get("UserData"),
    )


def parse_items(data: list[EmbyBaseItem]) -> list[EmbyItem]:
    """Parse a bare JSON array of items."""
    return [parse_item(item) for item in _require_list(data)]


def parse_items_page(data: EmbyItemsResponse) -> ItemsPage:
    """Parse a paged ``{"Items": [...], "TotalRecordCount": n}`` response."""
    data = cast("EmbyItemsResponse", _require_mapping(data))
    items = tuple(parse_item(item) for item in _require_list(data["Items"]))
    return ItemsPage(
        items=items,
        total_record_count=int(data.get("TotalRecordCount", len(items))),
        start_index=int(data.get("StartIndex", 0)),
    )


def parse_authentication(data: EmbyAuthenticationResponse) -> AuthenticationResult:
    """Parse the AuthenticateByName response."""
    data = cast("EmbyAuthenticationResponse", _require_mapping(data))
    user = cast("EmbyUser", _require_mapping(data["User"]))
    return AuthenticationResult(
        user_id=str(user["Id"]),
        user_name=str(user.get("Name", "")),
        access_token=str(data["AccessToken"]),
        server_id=str(data.get("ServerId", "")),
        user=user,
    )


def parse_server_info(data: EmbyServerInfo) -> EmbyServerInfo:
    """Validate a /System/Info payload."""
    data = cast("EmbyServerInfo", _require_mapping(data))
    if "Id" not in data:
        raise KeyError("Id")
    return data


def parse_user(data: EmbyUser) -> EmbyUser:
    """Validate a user payload."""
    data = cast("EmbyUser", _require_mapping(data))
    if "Id" not in data:
        raise KeyError("Id")
    return data


def parse_user_item_data(data: EmbyUserItemData) -> EmbyUserItemData:
    """Validate a user item data payload."""
    return cast("EmbyUserItemData", _require_mapping(data))


def parse_playback_info(data: PlaybackInfoResponse) -> PlaybackInfoResponse:
    """Validate a PlaybackInfo payload."""
    data = cast("PlaybackInfoResponse", _require_mapping(data))
    _require_list(data.get("MediaSources", []))
    return data


def parse_json_object(data: Any) -> dict[str, Any]:
    """Accept any JSON object."""
    return _require_mapping(data)


def parse_json_array(data: Any) -> list[Any]:
    """Accept any JSON array."""
    return _require_list(data)


__all__ = [
    "AuthenticationResult",
    "Decoder",
    "EmbyItem",
    "ItemsPage",
    "parse_authentication",
    "parse_item",
    "parse_items",
    "parse_items_page",
    "parse_json_array",
    "parse_json_object",
    "parse_playback_info",
    "parse_server_info",
    "parse_user",
    "parse_user_item_data",
]
