"""Artwork and stream URL construction.

These helpers only build URLs; they never touch the network.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from .const import (
    DEFAULT_AUDIO_CODEC,
    DEFAULT_AUDIO_CONTAINER,
    DEFAULT_IMAGE_MAX_WIDTH,
    DEFAULT_IMAGE_QUALITY,
    DEFAULT_MAX_STREAMING_BITRATE,
    DEFAULT_TRANSCODING_CONTAINER,
    DEFAULT_TRANSCODING_PROTOCOL,
    IMAGE_TYPE_BACKDROP,
    IMAGE_TYPE_PRIMARY,
    IMAGE_TYPE_THUMB,
)
from .query import encode_query, percent_encode

if TYPE_CHECKING:
    from .const import DeviceProfile
    from .models import EmbyItem


def _first(tags: tuple[str, ...] | list[str]) -> str | None:
    return tags[0] if tags else None


class MediaURLBuilder:
    """Builds image and stream URLs for one client.

    Example:
        ```python
        builder = MediaURLBuilder(
            "http://emby.local:8096",
            token_getter=lambda: token,
            user_id="user-1",
            device_id="device-1",
            device_profile=DEFAULT_PROFILE,
        )
        url = builder.thumbnail_url(item, max_width=300, max_height=450)
        ```
    """

    def __init__(
        self,
        base_url: str,
        token_getter: Callable[[], str | None],
        user_id: Callable[[], str] | str,
        device_id: str,
        device_profile: DeviceProfile,
    ) -> None:
        """Initialize the builder.

        Args:
            base_url: Server base URL including port.
            token_getter: Returns the current access token.
            user_id: User id, or a callable returning the current one.
            device_id: Device identifier of this client.
            device_profile: Capabilities used for stream defaults.
        """
        self._base_url = base_url.rstrip("/")
        self._token_getter = token_getter
        self._user_id = user_id
        self._device_id = device_id
        self._device_profile = device_profile

    @property
    def user_id(self) -> str:
        """Return the current user id."""
        return self._user_id() if callable(self._user_id) else self._user_id

    def _images_url(self, item_id: str, segment: str) -> str:
        return f"{self._base_url}/Items/{item_id}/Images/{segment}"

    def _tagged_url(self, item_id: str, segment: str, width: int, tag: str) -> str:
        return (
            f"{self._images_url(item_id, segment)}"
            f"?maxWidth={width}&tag={percent_encode(tag)}&quality={DEFAULT_IMAGE_QUALITY}"
        )

    def image_url(self, item_id: str, image_type: str, width: int, tag: str) -> str:
        """Build an image URL for a known tag, without any fallback.

        Args:
            item_id: Item owning the image.
            image_type: Image type path segment (Primary, Thumb, Backdrop, ...).
            width: Maximum width.
            tag: Image tag for cache busting.

        Returns:
            ``Items/{id}/Images/{type}?maxWidth={width}&tag={tag}&quality=90``.
        """
        return self._tagged_url(item_id, image_type, width, tag)

    def thumbnail_url(self, item: EmbyItem, max_width: int, max_height: int) -> str:
        """Build the best available artwork URL for an item.

        Tries, in order: the item's own image tags (Thumb, then Primary, then
        whichever comes first), its first backdrop, the parent's first
        backdrop, and finally an untagged Primary image sized by the caller.

        Args:
            item: The item.
            max_width: Width for the untagged fallback.
            max_height: Height for the untagged fallback.

        Returns:
            Image URL.
        """
        if item.image_tags:
            if IMAGE_TYPE_THUMB in item.image_tags:
                segment = IMAGE_TYPE_THUMB
            elif IMAGE_TYPE_PRIMARY in item.image_tags:
                segment = IMAGE_TYPE_PRIMARY
            else:
                segment = next(iter(item.image_tags))
            return self._tagged_url(
                item.item_id, segment, DEFAULT_IMAGE_MAX_WIDTH, item.image_tags[segment]
            )

        backdrop_tag = _first(item.backdrop_image_tags)
        if backdrop_tag:
            return self._tagged_url(
                item.item_id, IMAGE_TYPE_BACKDROP, DEFAULT_IMAGE_MAX_WIDTH, backdrop_tag
            )

        parent_tag = _first(item.parent_backdrop_image_tags)
        if parent_tag and item.parent_backdrop_item_id:
            return self._tagged_url(
                item.parent_backdrop_item_id,
                IMAGE_TYPE_BACKDROP,
                DEFAULT_IMAGE_MAX_WIDTH,
                parent_tag,
            )

        return (
            f"{self._images_url(item.item_id, IMAGE_TYPE_PRIMARY)}"
            f"?maxHeight={max_height}&maxWidth={max_width}&quality={DEFAULT_IMAGE_QUALITY}"
        )

    def backdrop_url(
        self,
        item: EmbyItem,
        max_width: int = DEFAULT_IMAGE_MAX_WIDTH,
    ) -> str | None:
        """Build a backdrop URL from the item's or its parent's backdrops.

        Args:
            item: The item.
            max_width: Maximum width.

        Returns:
            Backdrop URL, or None if neither the item nor its parent has one.
        """
        backdrop_tag = _first(item.backdrop_image_tags)
        if backdrop_tag:
            return self._tagged_url(item.item_id, IMAGE_TYPE_BACKDROP, max_width, backdrop_tag)

        parent_tag = _first(item.parent_backdrop_image_tags)
        if parent_tag and item.parent_backdrop_item_id:
            # Parent backdrops are addressed by index
            return self._tagged_url(item.parent_backdrop_item_id, "0", max_width, parent_tag)
        return None

    def user_image_url(
        self,
        user_id: str,
        tag: str | None = None,
        max_width: int | None = None,
    ) -> str:
        """Build the URL of a user's avatar."""
        params: dict[str, object] = {}
        if max_width is not None:
            params["maxWidth"] = max_width
        if tag is not None:
            params["tag"] = tag
        params["quality"] = DEFAULT_IMAGE_QUALITY
        return f"{self._base_url}/Users/{user_id}/Images/{IMAGE_TYPE_PRIMARY}?{encode_query(params)}"

    def audio_stream_url(self, item_id: str) -> str:
        """Build the universal audio URL for an item.

        The server picks direct play or transcoding based on the containers
        and protocol taken from the device profile.

        Args:
            item_id: Audio item ID.

        Returns:
            ``Audio/{id}/universal`` URL with parameters sorted by name.
        """
        direct_play = self._device_profile.get("DirectPlayProfiles") or []
        transcoding = self._device_profile.get("TranscodingProfiles") or []
        first_direct = direct_play[0] if direct_play else {}
        first_transcoding = transcoding[0] if transcoding else {}

        params: dict[str, object] = {
            "UserId": self.user_id,
            "DeviceId": self._device_id,
            "MaxStreamingBitrate": DEFAULT_MAX_STREAMING_BITRATE,
            "Container": first_direct.get("Container") or DEFAULT_AUDIO_CONTAINER,
            "TranscodingContainer": (
                first_transcoding.get("Container") or DEFAULT_TRANSCODING_CONTAINER
            ),
            "TranscodingProtocol": (
                first_transcoding.get("Protocol") or DEFAULT_TRANSCODING_PROTOCOL
            ),
            "AudioCodec": DEFAULT_AUDIO_CODEC,
            "PlaySessionId": time.time_ns() // 1_000_000,
            "api_key": self._token_getter() or "",
            "EnableRedirection": True,
        }
        return f"{self._base_url}/Audio/{item_id}/universal?{encode_query(params, sort=True)}"
