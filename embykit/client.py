"""Emby API client."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Self, TypeVar

import aiohttp

from .const import (
    CONTENT_TYPE_JSON,
    DEFAULT_MAX_STREAMING_BITRATE,
    DEFAULT_TIMEOUT,
    DEFAULT_VERIFY_SSL,
    EMBY_TICKS_PER_SECOND,
    ENDPOINT_ARTISTS,
    ENDPOINT_AUTHENTICATE,
    ENDPOINT_GENRES,
    ENDPOINT_ITEM_TYPES,
    ENDPOINT_MANIFEST,
    ENDPOINT_NEXT_UP,
    ENDPOINT_PERSONS,
    ENDPOINT_RECOMMENDATIONS,
    ENDPOINT_STUDIOS,
    ENDPOINT_SYSTEM_INFO,
    ENDPOINT_UPCOMING,
    HTTP_DELETE,
    HTTP_GET,
    HTTP_POST,
    PROBE_TIMEOUT,
    STREAM_INFO_MAX_STREAMING_BITRATE,
)
from .exceptions import EmbyHTTPError
from .identity import ClientIdentity, get_identity
from .models import (
    AuthenticationResult,
    EmbyItem,
    ItemsPage,
    parse_authentication,
    parse_item,
    parse_items,
    parse_items_page,
    parse_json_array,
    parse_json_object,
    parse_playback_info,
    parse_server_info,
    parse_user,
    parse_user_item_data,
)
from .pipeline import RequestDescriptor, RequestPipeline, Result
from .profiles import DEFAULT_PROFILE
from .reporter import SessionReporter
from .transport import AiohttpTransport, Transport
from .urls import MediaURLBuilder

if TYPE_CHECKING:
    from .const import (
        DeviceProfile,
        EmbyRecommendation,
        EmbyServerInfo,
        EmbyUser,
        EmbyUserItemData,
        PlaybackInfoResponse,
        PlaybackProgressInfo,
        PlaybackStartInfo,
        PlaybackStopInfo,
    )
    from .pipeline import Completion

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

Params = Mapping[str, object]


class EmbyClient:
    """Async client for the Emby API.

    Every endpoint method returns the decoded payload or raises one
    :class:`~embykit.exceptions.EmbyError` subclass. URL helpers never touch
    the network.

    Attributes:
        user_id: Logged in user. Empty until authenticated.
        access_token: Token sent as ``X-Emby-Token``. May be replaced at any
            time; each request reads it when it is sent.

    Example:
        ```python
        embykit.configure("demo", "1.0.0", "abc123", "desktop")
        async with EmbyClient("http://192.168.1.100:8096") as client:
            await client.async_authenticate("user", "secret")
            info = await client.async_get_server_info()
            print(f"Connected to {info['ServerName']}")
        ```
    """

    def __init__(
        self,
        base_url: str,
        user_id: str = "",
        access_token: str | None = None,
        *,
        identity: ClientIdentity | None = None,
        device_profile: DeviceProfile | None = None,
        transport: Transport | None = None,
        session: aiohttp.ClientSession | None = None,
        timeout: int = DEFAULT_TIMEOUT,
        verify_ssl: bool = DEFAULT_VERIFY_SSL,
        on_token_invalid: Callable[[], None] | None = None,
    ) -> None:
        """Initialize the Emby client.

        Args:
            base_url: Server base URL including port, for example
                ``http://example.com:8096``.
            user_id: Logged in user, may be empty.
            access_token: Access token, may be None.
            identity: Client identity. Defaults to the one set with
                :func:`embykit.configure`.
            device_profile: Capabilities sent with PlaybackInfo requests.
            transport: Custom transport. Defaults to an aiohttp transport.
            session: Optional aiohttp session for the default transport.
            timeout: Request timeout in seconds. Defaults to 10.
            verify_ssl: Whether to verify SSL certificates. Defaults to True.
            on_token_invalid: Called when the server rejects the token (401).

        Raises:
            EmbyConfigurationError: No identity given and none configured.
        """
        self._identity = identity or get_identity()
        self._base_url = base_url.rstrip("/")
        self.user_id = user_id
        self.access_token = access_token
        self._device_profile: DeviceProfile = device_profile or DEFAULT_PROFILE
        self._authorization_header = self._identity.authorization_header(user_id)

        self._owns_transport = transport is None
        self._transport: Transport = transport or AiohttpTransport(
            session=session, timeout=timeout, verify_ssl=verify_ssl
        )
        self._pipeline = RequestPipeline(
            self._base_url,
            self._transport,
            self._authorization_header,
            token_getter=lambda: self.access_token,
            on_token_invalid=on_token_invalid,
        )
        self._urls = MediaURLBuilder(
            self._base_url,
            token_getter=lambda: self.access_token,
            user_id=lambda: self.user_id,
            device_id=self._identity.device_id,
            device_profile=self._device_profile,
        )
        self._reporter = SessionReporter(self._pipeline, self._transport)

    async def __aenter__(self) -> Self:
        """Enter async context manager."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Exit async context manager."""
        await self.close()

    @property
    def base_url(self) -> str:
        """Return the server base URL without trailing slash."""
        return self._base_url

    @property
    def identity(self) -> ClientIdentity:
        """Return the client identity."""
        return self._identity

    @property
    def authorization_header(self) -> str:
        """Return the ``X-Emby-Authorization`` value computed at construction."""
        return self._authorization_header

    @property
    def device_profile(self) -> DeviceProfile:
        """Return the device profile."""
        return self._device_profile

    @property
    def pipeline(self) -> RequestPipeline:
        """Return the request pipeline."""
        return self._pipeline

    @property
    def reporter(self) -> SessionReporter:
        """Return the playback reporter."""
        return self._reporter

    @property
    def on_token_invalid(self) -> Callable[[], None] | None:
        """Return the callback invoked when the server rejects the token."""
        return self._pipeline.on_token_invalid

    @on_token_invalid.setter
    def on_token_invalid(self, callback: Callable[[], None] | None) -> None:
        self._pipeline.on_token_invalid = callback

    # =========================================================================
    # Generic requests
    # =========================================================================

    async def async_request(
        self,
        descriptor: RequestDescriptor,
        decoder: Callable[[Any], T] | None = None,
    ) -> Result[T]:
        """Execute an arbitrary request and return its Result."""
        return await self._pipeline.execute(descriptor, decoder)

    def submit(
        self,
        descriptor: RequestDescriptor,
        decoder: Callable[[Any], T] | None,
        completion: Completion,
    ) -> None:
        """Schedule a request and hand its Result to ``completion``."""
        self._pipeline.submit(descriptor, decoder, completion)

    async def _call(
        self,
        method: str,
        path: str,
        decoder: Callable[[Any], T] | None = None,
        params: Params | None = None,
        json: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> T:
        """Execute a request and unwrap the result, raising on failure."""
        descriptor = RequestDescriptor(
            method=method,
            path=path,
            params=params or {},
            json=json,
            headers=headers or {},
        )
        result = await self._pipeline.execute(descriptor, decoder)
        return result.unwrap()

    # =========================================================================
    # System
    # =========================================================================

    async def async_get_server_info(self) -> EmbyServerInfo:
        """Get server information.

        Returns:
            Server information including ID, name, and version.

        Raises:
            EmbyTransportError: Connection or HTTP failure.
            EmbyDecodeError: Unexpected payload.
        """
        return await self._call(HTTP_GET, ENDPOINT_SYSTEM_INFO, parse_server_info)

    async def async_validate_server_address(self, address: str) -> bool:
        """Check that a server address is reachable.

        Fetches the web manifest with a short timeout and without
        authentication.

        Args:
            address: Server address such as ``http://example.com:8096``.

        Returns:
            True when the server answered with a 2xx status.

        Raises:
            EmbyTransportError: The server is unreachable or answered with
                an error status.
        """
        descriptor = RequestDescriptor(
            method=HTTP_GET,
            path=f"{address.rstrip('/')}{ENDPOINT_MANIFEST}",
            headers={"Content-Type": "application/text"},
            timeout=PROBE_TIMEOUT,
            include_auth=False,
        )
        envelope = await self._pipeline.send(descriptor)
        if envelope.ok:
            return True
        if envelope.error is not None:
            raise envelope.error
        raise EmbyHTTPError(
            envelope.reason or "unknown error",
            status=envelope.status,
            reason=envelope.reason,
            text=envelope.text,
        )

    # =========================================================================
    # Users
    # =========================================================================

    async def async_authenticate(self, username: str, password: str) -> AuthenticationResult:
        """Authenticate with username and password.

        On success the client adopts the returned user id and access token.

        Args:
            username: User name.
            password: Password.

        Returns:
            The authenticated user and token.

        Raises:
            EmbyAuthenticationError: Credentials rejected.
        """
        body = {"Username": username, "Password": password, "Pw": password}
        result = await self._call(HTTP_POST, ENDPOINT_AUTHENTICATE, parse_authentication, json=body)
        self.user_id = result.user_id
        self.access_token = result.access_token
        _LOGGER.debug("Authenticated as %s", result.user_name)
        return result

    async def async_update_password(self, current_password: str, new_password: str) -> None:
        """Change the current user's password.

        Raises:
            EmbyServerError: The server rejected the change.
        """
        body = {"CurrentPw": current_password, "NewPw": new_password}
        await self._call(HTTP_POST, f"Users/{self.user_id}/Password", json=body)

    async def async_get_user_info(self) -> EmbyUser:
        """Get the current user."""
        return await self._call(HTTP_GET, f"Users/{self.user_id}", parse_user)

    async def async_update_user_configuration(self, configuration: Mapping[str, object]) -> None:
        """Replace the current user's configuration.

        Raises:
            EmbyServerError: The server rejected the configuration.
        """
        await self._call(
            HTTP_POST, f"Users/{self.user_id}/Configuration", json=dict(configuration)
        )

    async def async_get_user_views(self, params: Params | None = None) -> ItemsPage:
        """Get the user's home views (libraries)."""
        parameters = dict(params or {})
        parameters["IncludeExternalContent"] = False
        return await self._call(
            HTTP_GET, f"Users/{self.user_id}/Views", parse_items_page, params=parameters
        )

    async def async_get_resume_items(self, params: Params | None = None) -> ItemsPage:
        """Get partially played items."""
        return await self._call(
            HTTP_GET, f"Users/{self.user_id}/Items/Resume", parse_items_page, params=params
        )

    async def async_get_latest_items(self, params: Params | None = None) -> list[EmbyItem]:
        """Get recently added items."""
        return await self._call(
            HTTP_GET, f"Users/{self.user_id}/Items/Latest", parse_items, params=params
        )

    async def async_get_item_detail(self, item_id: str) -> EmbyItem:
        """Get one item."""
        return await self._call(HTTP_GET, f"Users/{self.user_id}/Items/{item_id}", parse_item)

    async def async_get_item_special_features(self, item_id: str) -> list[EmbyItem]:
        """Get extras (featurettes, interviews, ...) of an item."""
        return await self._call(
            HTTP_GET, f"Users/{self.user_id}/Items/{item_id}/SpecialFeatures", parse_items
        )

    async def async_get_items(self, params: Params | None = None) -> ItemsPage:
        """Query the user's items."""
        return await self._call(
            HTTP_GET, f"Users/{self.user_id}/Items", parse_items_page, params=params
        )

    async def async_get_album_items(self, parent_id: str) -> ItemsPage:
        """Get the children of an album or folder."""
        return await self.async_get_items({"ParentId": parent_id})

    async def async_get_albums(self, parent_id: str, start_index: int = 0) -> ItemsPage:
        """Get music albums below a library, one page at a time."""
        return await self.async_get_items(
            {
                "IncludeItemTypes": "MusicAlbum",
                "Recursive": True,
                "StartIndex": start_index,
                "ParentId": parent_id,
                "EnableImageTypes": "Primary",
            }
        )

    async def async_update_favorite(self, item_id: str, is_favorite: bool) -> EmbyUserItemData:
        """Mark or unmark an item as favorite."""
        method = HTTP_POST if is_favorite else HTTP_DELETE
        return await self._call(
            method, f"Users/{self.user_id}/FavoriteItems/{item_id}", parse_user_item_data
        )

    async def async_mark_played(self, item_id: str, played: bool = True) -> EmbyUserItemData:
        """Mark an item as played or unplayed."""
        method = HTTP_POST if played else HTTP_DELETE
        return await self._call(
            method, f"Users/{self.user_id}/PlayedItems/{item_id}", parse_user_item_data
        )

    async def async_hide_from_resume(self, item_id: str) -> EmbyUserItemData:
        """Remove an item from the continue watching list."""
        return await self._call(
            HTTP_POST,
            f"Users/{self.user_id}/Items/{item_id}/HideFromResume",
            parse_user_item_data,
            params={"Hide": True},
        )

    # =========================================================================
    # Playback
    # =========================================================================

    async def async_get_playback_info(
        self,
        item_id: str,
        start_time_ticks: int = 0,
        media_source_id: str | None = None,
        audio_stream_index: int | None = None,
        subtitle_stream_index: int | None = None,
        max_streaming_bitrate: int = DEFAULT_MAX_STREAMING_BITRATE,
    ) -> PlaybackInfoResponse:
        """Get playback info for a media item.

        The server compares the device profile with the media and answers
        with media sources and their direct play or transcoding URLs.

        Args:
            item_id: The media item ID.
            start_time_ticks: Starting position in ticks.
            media_source_id: Preferred media source.
            audio_stream_index: Preferred audio track index.
            subtitle_stream_index: Preferred subtitle track index.
            max_streaming_bitrate: Maximum bitrate for streaming in bps.

        Returns:
            PlaybackInfoResponse with MediaSources and PlaySessionId.
        """
        params: dict[str, object] = {
            "UserId": self.user_id,
            "StartTimeTicks": start_time_ticks,
            "IsPlayback": True,
            "AutoOpenLiveStream": True,
            "MaxStreamingBitrate": max_streaming_bitrate,
        }
        if media_source_id is not None:
            params["MediaSourceId"] = media_source_id
        if audio_stream_index is not None:
            params["AudioStreamIndex"] = audio_stream_index
        if subtitle_stream_index is not None:
            params["SubtitleStreamIndex"] = subtitle_stream_index

        return await self._call(
            HTTP_POST,
            f"Items/{item_id}/PlaybackInfo",
            parse_playback_info,
            params=params,
            json={"DeviceProfile": self._device_profile},
            headers={"Content-Type": CONTENT_TYPE_JSON},
        )

    async def async_get_stream_info(
        self,
        item_id: str,
        start_time_ticks: int,
        media_source_id: str | None = None,
        audio_stream_index: int | None = None,
        subtitle_stream_index: int | None = None,
    ) -> PlaybackInfoResponse:
        """Get playback info for a specific source and track selection."""
        return await self.async_get_playback_info(
            item_id,
            start_time_ticks,
            media_source_id=media_source_id,
            audio_stream_index=audio_stream_index,
            subtitle_stream_index=subtitle_stream_index,
            max_streaming_bitrate=STREAM_INFO_MAX_STREAMING_BITRATE,
        )

    def report_session_start(self, info: PlaybackStartInfo) -> None:
        """Report that playback started. Never raises."""
        self._reporter.report_start(info)

    def report_session_progress(self, info: PlaybackProgressInfo) -> None:
        """Report playback progress. Never raises."""
        self._reporter.report_progress(info)

    def report_session_stopped(self, info: PlaybackStopInfo) -> None:
        """Report that playback stopped. Never raises."""
        self._reporter.report_stopped(info)

    # =========================================================================
    # Items, shows, people
    # =========================================================================

    async def async_get_similar_items(self, item_id: str, params: Params | None = None) -> ItemsPage:
        """Get items similar to an item."""
        return await self._call(HTTP_GET, f"Items/{item_id}/Similar", parse_items_page, params=params)

    async def async_get_recommendations(
        self, params: Params | None = None
    ) -> list[EmbyRecommendation]:
        """Get movie recommendation groups."""
        return await self._call(HTTP_GET, ENDPOINT_RECOMMENDATIONS, parse_json_array, params=params)

    async def async_get_item_types(self, params: Params | None = None) -> dict[str, Any]:
        """Get the item types available in a library."""
        return await self._call(HTTP_GET, ENDPOINT_ITEM_TYPES, parse_json_object, params=params)

    async def async_get_additional_video_parts(
        self, item_id: str, params: Params | None = None
    ) -> ItemsPage:
        """Get the other parts of a multi-part video."""
        parameters = dict(params or {})
        parameters["UserId"] = self.user_id
        return await self._call(
            HTTP_GET, f"Videos/{item_id}/AdditionalParts", parse_items_page, params=parameters
        )

    async def async_get_genres(self, params: Params | None = None) -> ItemsPage:
        """Get genres."""
        return await self._call(HTTP_GET, ENDPOINT_GENRES, parse_items_page, params=params)

    async def async_get_episodes(self, show_id: str, params: Params | None = None) -> ItemsPage:
        """Get episodes of a show."""
        return await self._call(HTTP_GET, f"Shows/{show_id}/Episodes", parse_items_page, params=params)

    async def async_get_seasons(self, show_id: str, params: Params | None = None) -> ItemsPage:
        """Get seasons of a show."""
        return await self._call(HTTP_GET, f"Shows/{show_id}/Seasons", parse_items_page, params=params)

    async def async_get_upcoming_episodes(self, params: Params | None = None) -> ItemsPage:
        """Get upcoming episodes."""
        return await self._call(HTTP_GET, ENDPOINT_UPCOMING, parse_items_page, params=params)

    async def async_get_next_up_episodes(self, params: Params | None = None) -> ItemsPage:
        """Get the next episode to watch for each show in progress."""
        return await self._call(HTTP_GET, ENDPOINT_NEXT_UP, parse_items_page, params=params)

    async def async_get_persons(self, params: Params | None = None) -> ItemsPage:
        """Get people (actors, directors, ...)."""
        return await self._call(HTTP_GET, ENDPOINT_PERSONS, parse_items_page, params=params)

    async def async_get_artists(self, params: Params | None = None) -> ItemsPage:
        """Get music artists."""
        return await self._call(HTTP_GET, ENDPOINT_ARTISTS, parse_items_page, params=params)

    async def async_get_studios(self, params: Params | None = None) -> ItemsPage:
        """Get studios."""
        return await self._call(HTTP_GET, ENDPOINT_STUDIOS, parse_items_page, params=params)

    # =========================================================================
    # URLs
    # =========================================================================

    def thumbnail_url(self, item: EmbyItem, max_width: int, max_height: int) -> str:
        """Return the best available artwork URL for an item."""
        return self._urls.thumbnail_url(item, max_width, max_height)

    def backdrop_url(self, item: EmbyItem, max_width: int = 800) -> str | None:
        """Return a backdrop URL for an item or its parent, if any."""
        return self._urls.backdrop_url(item, max_width)

    def image_url(self, item_id: str, image_type: str, width: int, tag: str) -> str:
        """Return the URL of a specific image."""
        return self._urls.image_url(item_id, image_type, width, tag)

    def user_image_url(
        self,
        user_id: str,
        tag: str | None = None,
        max_width: int | None = None,
    ) -> str:
        """Return the URL of a user's avatar."""
        return self._urls.user_image_url(user_id, tag, max_width)

    def audio_stream_url(self, item_id: str) -> str:
        """Return the universal audio streaming URL for an item."""
        return self._urls.audio_stream_url(item_id)

    async def close(self) -> None:
        """Close the client.

        Waits for pending playback reports, then closes the transport if it
        was created by this client.
        """
        await self._reporter.close()
        if self._owns_transport:
            await self._transport.close()


# =============================================================================
# Utility Functions
# =============================================================================


def seconds_from_ticks(ticks: int) -> int:
    """Convert Emby ticks to whole seconds, truncating toward zero.

    Examples:
        >>> seconds_from_ticks(10_000_000)
        1
        >>> seconds_from_ticks(0)
        0
        >>> seconds_from_ticks(-15_000_000)
        -1
    """
    seconds = abs(ticks) // EMBY_TICKS_PER_SECOND
    return seconds if ticks >= 0 else -seconds


def ticks_to_seconds(ticks: int) -> float:
    """Convert Emby ticks to seconds.

    Emby uses "ticks" where 10,000,000 ticks = 1 second.

    Examples:
        >>> ticks_to_seconds(5_000_000)
        0.5
    """
    return ticks / EMBY_TICKS_PER_SECOND


def seconds_to_ticks(seconds: float) -> int:
    """Convert seconds to Emby ticks.

    Examples:
        >>> seconds_to_ticks(0.5)
        5000000
    """
    return int(seconds * EMBY_TICKS_PER_SECOND)
