"""Constants for the Emby client."""

from __future__ import annotations

from typing import Final, NotRequired, TypedDict

# Default values
DEFAULT_TIMEOUT: Final = 10  # seconds
DEFAULT_VERIFY_SSL: Final = True
PROBE_TIMEOUT: Final = 2  # seconds, reachability probe only

# Streaming defaults
DEFAULT_MAX_STREAMING_BITRATE: Final = 40_000_000  # 40 Mbps
STREAM_INFO_MAX_STREAMING_BITRATE: Final = 42_000_000
DEFAULT_AUDIO_CONTAINER: Final = "mp3"
DEFAULT_TRANSCODING_CONTAINER: Final = "aac"
DEFAULT_TRANSCODING_PROTOCOL: Final = "hls"
DEFAULT_AUDIO_CODEC: Final = "aac"

# Image defaults
DEFAULT_IMAGE_QUALITY: Final = 90
DEFAULT_IMAGE_MAX_WIDTH: Final = 800
IMAGE_TYPE_PRIMARY: Final = "Primary"
IMAGE_TYPE_THUMB: Final = "Thumb"
IMAGE_TYPE_BACKDROP: Final = "Backdrop"

# API constants
EMBY_TICKS_PER_SECOND: Final = 10_000_000

# HTTP constants
HEADER_AUTHORIZATION: Final = "X-Emby-Authorization"
HEADER_TOKEN: Final = "X-Emby-Token"
USER_AGENT_TEMPLATE: Final = "embykit/{version}"
CONTENT_TYPE_JSON: Final = "application/json"
AUTHORIZATION_SCHEME: Final = "Emby"

# HTTP methods
HTTP_GET: Final = "GET"
HTTP_POST: Final = "POST"
HTTP_DELETE: Final = "DELETE"

# HTTP status codes with special handling
HTTP_UNAUTHORIZED: Final = 401

# API Endpoints
ENDPOINT_SYSTEM_INFO: Final = "System/Info"
ENDPOINT_AUTHENTICATE: Final = "Users/AuthenticateByName"
ENDPOINT_MANIFEST: Final = "/emby/web/manifest.json"
ENDPOINT_ITEM_TYPES: Final = "ItemTypes"
ENDPOINT_RECOMMENDATIONS: Final = "Movies/Recommendations"
ENDPOINT_GENRES: Final = "Genres"
ENDPOINT_UPCOMING: Final = "Shows/Upcoming"
ENDPOINT_NEXT_UP: Final = "Shows/NextUp"
ENDPOINT_PERSONS: Final = "Persons"
ENDPOINT_ARTISTS: Final = "Artists"
ENDPOINT_STUDIOS: Final = "Studios"
ENDPOINT_SESSION_PLAYING: Final = "Sessions/Playing"
ENDPOINT_SESSION_PROGRESS: Final = "Sessions/Playing/Progress"
ENDPOINT_SESSION_STOPPED: Final = "Sessions/Playing/Stopped"


# =============================================================================
# TypedDicts for API Responses
# =============================================================================
# Note: TypedDicts describe raw wire payloads.
# Dataclasses for decoded values live in models.py.


class EmbyServerInfo(TypedDict):
    """Response from /System/Info endpoint."""

    Id: str
    ServerName: str
    Version: str
    OperatingSystem: NotRequired[str]
    HasPendingRestart: NotRequired[bool]
    IsShuttingDown: NotRequired[bool]
    LocalAddress: NotRequired[str]
    WanAddress: NotRequired[str]


class EmbyUserPolicy(TypedDict, total=False):
    """Subset of the user policy the client cares about."""

    IsAdministrator: bool
    IsDisabled: bool
    EnableRemoteAccess: bool


class EmbyUser(TypedDict):
    """User object from /Users/{id} endpoint."""

    Id: str
    Name: str
    ServerId: NotRequired[str]
    HasPassword: NotRequired[bool]
    HasConfiguredPassword: NotRequired[bool]
    PrimaryImageTag: NotRequired[str]
    Configuration: NotRequired[dict[str, object]]
    Policy: NotRequired[EmbyUserPolicy]


class EmbyAuthenticationResponse(TypedDict):
    """Response from /Users/AuthenticateByName."""

    User: EmbyUser
    AccessToken: str
    ServerId: str
    SessionInfo: NotRequired[dict[str, object]]


class EmbyUserItemData(TypedDict, total=False):
    """User data attached to an item (played, favorite, resume position)."""

    PlaybackPositionTicks: int
    PlayCount: int
    IsFavorite: bool
    Played: bool
    LastPlayedDate: str
    PlayedPercentage: float
    Key: str


class EmbyBaseItem(TypedDict, total=False):
    """Media item as returned by the item endpoints."""

    Id: str
    Name: str
    Type: str
    ServerId: str
    ParentId: str
    RunTimeTicks: int
    ProductionYear: int
    Overview: str
    IsFolder: bool
    ImageTags: dict[str, str]
    BackdropImageTags: list[str]
    ParentBackdropImageTags: list[str]
    ParentBackdropItemId: str
    SeriesId: str
    SeriesName: str
    IndexNumber: int
    ParentIndexNumber: int
    UserData: EmbyUserItemData


class EmbyItemsResponse(TypedDict):
    """Paged response from item list endpoints."""

    Items: list[EmbyBaseItem]
    TotalRecordCount: int
    StartIndex: NotRequired[int]


class EmbyRecommendation(TypedDict, total=False):
    """Entry of /Movies/Recommendations."""

    Items: list[EmbyBaseItem]
    RecommendationType: str
    BaselineItemName: str
    CategoryId: str


# =============================================================================
# TypedDicts for Transcoding / PlaybackInfo API
# =============================================================================


class MediaStreamInfo(TypedDict, total=False):
    """Media stream (video/audio/subtitle track) information."""

    Index: int
    Type: str  # "Video", "Audio", "Subtitle"
    Codec: str
    Language: str
    DisplayTitle: str
    IsDefault: bool
    IsExternal: bool


class MediaSourceInfo(TypedDict, total=False):
    """Media source returned by PlaybackInfo."""

    Id: str
    Name: str
    Container: str
    Size: int
    Bitrate: int
    RunTimeTicks: int
    SupportsDirectPlay: bool
    SupportsDirectStream: bool
    SupportsTranscoding: bool
    DirectStreamUrl: str
    TranscodingUrl: str
    TranscodingSubProtocol: str
    TranscodingContainer: str
    MediaStreams: list[MediaStreamInfo]
    DefaultAudioStreamIndex: int
    DefaultSubtitleStreamIndex: int


class PlaybackInfoResponse(TypedDict, total=False):
    """Response from /Items/{id}/PlaybackInfo."""

    MediaSources: list[MediaSourceInfo]
    PlaySessionId: str
    ErrorCode: str  # Present when there's an error


class DirectPlayProfile(TypedDict, total=False):
    """Direct play capability declaration."""

    Container: str  # Comma-separated: "mp3,flac"
    VideoCodec: str
    AudioCodec: str
    Type: str  # "Video", "Audio", "Photo"


class TranscodingProfile(TypedDict, total=False):
    """Transcoding fallback configuration."""

    Container: str
    Type: str
    VideoCodec: str
    AudioCodec: str
    Protocol: str  # "hls" or "http"
    Context: str  # "Streaming" or "Static"
    MaxAudioChannels: str
    MinSegments: int
    SegmentLength: int
    BreakOnNonKeyFrames: bool


class SubtitleProfile(TypedDict, total=False):
    """Subtitle delivery options."""

    Format: str
    Method: str  # "Encode", "Embed", "External", "Hls"


class DeviceProfile(TypedDict, total=False):
    """Device capability profile for playback negotiation."""

    Name: str
    Id: str
    MaxStreamingBitrate: int
    MaxStaticBitrate: int
    MusicStreamingTranscodingBitrate: int
    DirectPlayProfiles: list[DirectPlayProfile]
    TranscodingProfiles: list[TranscodingProfile]
    SubtitleProfiles: list[SubtitleProfile]


# =============================================================================
# TypedDicts for playback reporting
# =============================================================================


class PlaybackStartInfo(TypedDict, total=False):
    """Body of POST /Sessions/Playing."""

    ItemId: str
    MediaSourceId: str
    PlaySessionId: str
    PositionTicks: int
    AudioStreamIndex: int
    SubtitleStreamIndex: int
    PlayMethod: str  # "DirectPlay", "DirectStream", "Transcode"
    CanSeek: bool
    IsPaused: bool
    IsMuted: bool


class PlaybackProgressInfo(PlaybackStartInfo, total=False):
    """Body of POST /Sessions/Playing/Progress."""

    EventName: str  # "TimeUpdate", "Pause", "Unpause", ...
    VolumeLevel: int


class PlaybackStopInfo(TypedDict, total=False):
    """Body of POST /Sessions/Playing/Stopped."""

    ItemId: str
    MediaSourceId: str
    PlaySessionId: str
    PositionTicks: int
    Failed: bool


def sanitize_api_key(api_key: str | None) -> str:
    """Sanitize API key for safe logging.

    Args:
        api_key: The full API key or access token.

    Returns:
        Truncated key safe for logging (first 4 + last 2 chars).
    """
    if not api_key:
        return "N/A"
    if len(api_key) <= 6:
        return "***"
    return f"{api_key[:4]}...{api_key[-2:]}"
