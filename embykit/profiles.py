"""Predefined device profiles.

A device profile tells the Emby server which formats the client can play
directly and how to transcode everything else. The client sends it with
PlaybackInfo requests and reads its first direct-play and transcoding
entries to pick defaults for the universal audio URL.

Profiles:
- DEFAULT_PROFILE: Phone/tablet style client, audio first (H.264/AAC video)
- DESKTOP_PROFILE: Desktop player with broad codec support
- AUDIO_ONLY_PROFILE: Music-only client

Usage:
    from embykit.profiles import get_device_profile

    profile = get_device_profile("desktop")
"""

from __future__ import annotations

from typing import Final

from .const import (
    DEFAULT_AUDIO_CONTAINER,
    DEFAULT_MAX_STREAMING_BITRATE,
    DEFAULT_TRANSCODING_CONTAINER,
    DEFAULT_TRANSCODING_PROTOCOL,
    DeviceProfile,
)

# =============================================================================
# Default Profile - audio entries first so the universal audio URL picks them
# =============================================================================

DEFAULT_PROFILE: Final[DeviceProfile] = {
    "Name": "embykit",
    "MaxStreamingBitrate": DEFAULT_MAX_STREAMING_BITRATE,
    "MaxStaticBitrate": 100_000_000,  # 100 Mbps
    "MusicStreamingTranscodingBitrate": 192_000,
    "DirectPlayProfiles": [
        {
            "Container": "mp3,aac,m4a,flac",
            "AudioCodec": "mp3,aac,flac,alac",
            "Type": "Audio",
        },
        {
            "Container": "mp4,m4v,mov",
            "VideoCodec": "h264,hevc",
            "AudioCodec": "aac,mp3,ac3",
            "Type": "Video",
        },
    ],
    "TranscodingProfiles": [
        {
            "Container": "aac",
            "Type": "Audio",
            "AudioCodec": "aac",
            "Protocol": "hls",
            "Context": "Streaming",
            "MaxAudioChannels": "2",
        },
        {
            "Container": "ts",
            "Type": "Video",
            "VideoCodec": "h264",
            "AudioCodec": "aac",
            "Protocol": "hls",
            "Context": "Streaming",
            "MaxAudioChannels": "2",
            "SegmentLength": 3,
            "MinSegments": 2,
            "BreakOnNonKeyFrames": True,
        },
    ],
    "SubtitleProfiles": [
        {"Format": "vtt", "Method": "Hls"},
        {"Format": "srt", "Method": "External"},
        {"Format": "ass", "Method": "Encode"},
    ],
}

# =============================================================================
# Desktop Profile
# =============================================================================

DESKTOP_PROFILE: Final[DeviceProfile] = {
    "Name": "embykit Desktop",
    "MaxStreamingBitrate": 120_000_000,
    "MaxStaticBitrate": 200_000_000,
    "MusicStreamingTranscodingBitrate": 320_000,
    "DirectPlayProfiles": [
        {
            "Container": "mkv,mp4,m4v,mov,webm,avi,ts",
            "VideoCodec": "h264,hevc,vp9,av1,mpeg4",
            "AudioCodec": "aac,mp3,ac3,eac3,flac,opus,vorbis,dts,truehd",
            "Type": "Video",
        },
        {
            "Container": "flac,mp3,aac,m4a,ogg,opus,wav,alac",
            "AudioCodec": "flac,mp3,aac,vorbis,opus,pcm,alac",
            "Type": "Audio",
        },
    ],
    "TranscodingProfiles": [
        {
            "Container": "ts",
            "Type": "Video",
            "VideoCodec": "h264",
            "AudioCodec": "aac,ac3",
            "Protocol": "hls",
            "Context": "Streaming",
            "MaxAudioChannels": "6",
            "SegmentLength": 6,
            "MinSegments": 1,
            "BreakOnNonKeyFrames": True,
        },
        {
            "Container": "mp3",
            "Type": "Audio",
            "AudioCodec": "mp3",
            "Protocol": "http",
            "Context": "Streaming",
        },
    ],
    "SubtitleProfiles": [
        {"Format": "srt", "Method": "External"},
        {"Format": "ass", "Method": "External"},
        {"Format": "vtt", "Method": "External"},
        {"Format": "pgssub", "Method": "Embed"},
    ],
}

# =============================================================================
# Audio Only Profile
# =============================================================================

AUDIO_ONLY_PROFILE: Final[DeviceProfile] = {
    "Name": "embykit Audio",
    "MaxStreamingBitrate": 10_000_000,
    "MusicStreamingTranscodingBitrate": 320_000,
    "DirectPlayProfiles": [
        {
            "Container": DEFAULT_AUDIO_CONTAINER,
            "AudioCodec": "mp3",
            "Type": "Audio",
        },
    ],
    "TranscodingProfiles": [
        {
            "Container": DEFAULT_TRANSCODING_CONTAINER,
            "Type": "Audio",
            "AudioCodec": "aac",
            "Protocol": DEFAULT_TRANSCODING_PROTOCOL,
            "Context": "Streaming",
        },
    ],
    "SubtitleProfiles": [],
}

DEVICE_PROFILES: Final[dict[str, DeviceProfile]] = {
    "default": DEFAULT_PROFILE,
    "desktop": DESKTOP_PROFILE,
    "audio_only": AUDIO_ONLY_PROFILE,
}


def get_device_profile(name: str) -> DeviceProfile:
    """Get a device profile by name.

    Args:
        name: Profile name (case-insensitive): "default", "desktop" or
            "audio_only".

    Returns:
        The corresponding DeviceProfile. Returns DEFAULT_PROFILE
        if the name is not recognized.
    """
    return DEVICE_PROFILES.get(name.lower(), DEFAULT_PROFILE)
