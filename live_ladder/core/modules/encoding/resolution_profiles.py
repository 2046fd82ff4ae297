"""
Resolution profile table for the live HLS ladder.

Maps a target vertical resolution to the parameters used when encoding
that rendition. The table is static; an unknown resolution is a
configuration error and is never skipped, since the stream map must
contain one entry per configured resolution.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List

from ..errors import UnknownResolutionError


@dataclass(frozen=True)
class ResolutionProfile:
    """Encode parameters for one rendition of the ladder"""
    height: int
    width: int
    video_bitrate: str
    audio_bitrate: str
    audio_sample_rate: int = 48000
    h264_profile: str = "baseline"
    buffer_size: str = ""


RESOLUTION_PROFILES: Dict[int, ResolutionProfile] = {
    1080: ResolutionProfile(
        height=1080,
        width=1920,
        video_bitrate="4000k",
        audio_bitrate="192k",
        buffer_size="7500k",
    ),
    720: ResolutionProfile(
        height=720,
        width=1280,
        video_bitrate="2500k",
        audio_bitrate="128k",
        buffer_size="4200k",
    ),
    480: ResolutionProfile(
        height=480,
        width=854,
        video_bitrate="1400k",
        audio_bitrate="128k",
        buffer_size="2100k",
    ),
    360: ResolutionProfile(
        height=360,
        width=640,
        video_bitrate="800k",
        audio_bitrate="96k",
        buffer_size="1200k",
    ),
}


def lookup(height: int) -> ResolutionProfile:
    """Return the profile for a vertical resolution or raise UnknownResolutionError."""
    try:
        return RESOLUTION_PROFILES[int(height)]
    except (KeyError, TypeError, ValueError):
        raise UnknownResolutionError(height) from None


def lookup_all(heights: Iterable[int]) -> List[ResolutionProfile]:
    """Resolve an ordered list of resolutions, preserving order."""
    return [lookup(h) for h in heights]


def supported_resolutions() -> List[int]:
    """Known resolutions, highest first."""
    return sorted(RESOLUTION_PROFILES, reverse=True)
