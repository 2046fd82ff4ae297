"""
FFmpeg command construction for live HLS ladders.

Builds the complete argument vector for one session: low-latency input,
the split/scale filter graph, shared encode constants, one video and one
audio encoder per rendition, and the HLS muxer options. Nothing is spawned
here; the same session always yields the same vector.
"""

import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import List

from .filter_graph import FilterGraph, build_filter_graph
from ..processing.session import MASTER_PLAYLIST, TranscodeSession


@dataclass(frozen=True)
class EncodeSettings:
    """Encode constants shared by every rendition."""
    frame_rate: int = 30
    preset: str = "superfast"
    pixel_format: str = "yuv420p"
    video_codec: str = "libx264"
    audio_codec: str = "aac"
    segment_duration: int = 4
    playlist_size: int = 15
    hls_flags: str = "delete_segments"
    master_playlist: str = MASTER_PLAYLIST
    segment_pattern: str = "%v-%d.ts"
    variant_playlist_pattern: str = "%v.m3u8"

    @property
    def keyframe_interval(self) -> int:
        # One keyframe every two seconds
        return self.frame_rate * 2


DEFAULT_SETTINGS = EncodeSettings()


def build_var_stream_map(count: int) -> str:
    """'v:0,a:0 v:1,a:1 ...' pairing video and audio stream i for each rendition."""
    return " ".join(f"v:{i},a:{i}" for i in range(count))


def _input_args(input_locator: str) -> List[str]:
    return ["-y", "-fflags", "nobuffer", "-i", input_locator]


def _shared_encode_args(settings: EncodeSettings) -> List[str]:
    gop = str(settings.keyframe_interval)
    return [
        "-r", str(settings.frame_rate),
        "-g", gop,
        "-keyint_min", gop,
        "-preset", settings.preset,
        "-pix_fmt", settings.pixel_format,
    ]


def _rendition_args(graph: FilterGraph, settings: EncodeSettings) -> List[str]:
    args: List[str] = []
    for i, (label, profile) in enumerate(zip(graph.output_labels, graph.profiles)):
        args.extend([
            "-map", label,
            f"-c:v:{i}", settings.video_codec,
            f"-b:v:{i}", profile.video_bitrate,
            f"-profile:v:{i}", profile.h264_profile,
        ])
        if profile.buffer_size:
            args.extend([f"-bufsize:v:{i}", profile.buffer_size])
        args.extend([
            "-map", "a:0",
            f"-c:a:{i}", settings.audio_codec,
            f"-b:a:{i}", profile.audio_bitrate,
            f"-ar:a:{i}", str(profile.audio_sample_rate),
        ])
    return args


def _hls_args(output_directory: Path, count: int, settings: EncodeSettings) -> List[str]:
    return [
        "-hls_time", str(settings.segment_duration),
        "-hls_list_size", str(settings.playlist_size),
        "-hls_flags", settings.hls_flags,
        "-hls_segment_filename", str(output_directory / settings.segment_pattern),
        "-master_pl_name", settings.master_playlist,
        "-var_stream_map", build_var_stream_map(count),
        "-f", "hls", str(output_directory / settings.variant_playlist_pattern),
    ]


def build_transcode_cmd(session: TranscodeSession, settings: EncodeSettings = DEFAULT_SETTINGS,
                        ffmpeg_path: str = "ffmpeg") -> List[str]:
    """
    Build the FFmpeg argument vector for a session.

    Args:
        session: Provides input locator, output directory and resolutions
        settings: Shared encode constants
        ffmpeg_path: Transcoder binary, placed at index 0

    Returns:
        Argument vector ready for subprocess.Popen

    Raises:
        ValueError: if the session has no resolutions
        UnknownResolutionError: if a resolution has no profile
    """
    graph = build_filter_graph(session.resolutions)
    output_directory = Path(session.output_directory)

    cmd = [ffmpeg_path]
    cmd.extend(_input_args(session.input_locator))
    cmd.extend(["-filter_complex", graph.description])
    cmd.extend(_shared_encode_args(settings))
    cmd.extend(_rendition_args(graph, settings))
    cmd.extend(_hls_args(output_directory, len(graph), settings))
    return cmd


def format_cmd(cmd: List[str]) -> str:
    """Shell-quoted rendering of a command for logs and --dry-run."""
    return " ".join(shlex.quote(c) for c in cmd)
