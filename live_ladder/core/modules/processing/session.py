"""
Transcode session model and stream path parsing.

A session is created for each publish-start, keyed by the opaque id handed
out by the ingest server, and lives until its transcoder has exited and its
output directory has been swept.
"""

import re
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..errors import StreamPathError

MASTER_PLAYLIST = "master.m3u8"

_SEGMENT_RE = re.compile(r"[A-Za-z0-9_.\-]+")


class SessionState(Enum):
    STARTING = "starting"
    RUNNING = "running"
    ENDING = "ending"
    CLOSED = "closed"


@dataclass(frozen=True)
class StreamPath:
    """An (application, stream name) pair parsed from /application/streamName."""
    application: str
    stream_name: str

    def __str__(self):
        return f"/{self.application}/{self.stream_name}"


def parse_stream_path(stream_path: str) -> StreamPath:
    """
    Parse ``/application/streamName`` into a StreamPath.

    Both segments must be non-empty, made of letters, digits, ``_``, ``-`` or
    ``.``, and neither may be ``.`` or ``..``. A single trailing slash is
    tolerated.

    Raises:
        StreamPathError: on any other shape
    """
    if not isinstance(stream_path, str) or not stream_path.startswith("/"):
        raise StreamPathError(stream_path, "must start with '/'")

    trimmed = stream_path[1:]
    if trimmed.endswith("/"):
        trimmed = trimmed[:-1]

    segments = trimmed.split("/")
    if len(segments) != 2:
        raise StreamPathError(stream_path)

    for segment in segments:
        if not segment or segment in (".", "..") or not _SEGMENT_RE.fullmatch(segment):
            raise StreamPathError(stream_path, f"invalid segment {segment!r}")

    return StreamPath(application=segments[0], stream_name=segments[1])


@dataclass(eq=False)
class TranscodeSession:
    """One live transcode: identity, derived locations and lifecycle state."""
    session_id: str
    stream: StreamPath
    input_locator: str
    output_directory: Path
    resolutions: List[int]
    args: Dict[str, Any] = field(default_factory=dict)
    state: SessionState = SessionState.STARTING
    started_at: float = field(default_factory=time.time)
    ended_at: Optional[float] = None
    returncode: Optional[int] = None
    # Set by a publish-stop that arrives before the transcoder is launched
    stop_requested: bool = False
    supervisor: Optional[Any] = field(default=None, repr=False)
    # Serializes start/stop transitions for this session id
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    @property
    def application(self) -> str:
        return self.stream.application

    @property
    def stream_name(self) -> str:
        return self.stream.stream_name

    @property
    def stream_path(self) -> str:
        return str(self.stream)

    @property
    def master_playlist(self) -> Path:
        return self.output_directory / MASTER_PLAYLIST

    @property
    def pid(self) -> Optional[int]:
        return self.supervisor.pid if self.supervisor is not None else None

    @property
    def is_live(self) -> bool:
        return self.state in (SessionState.STARTING, SessionState.RUNNING, SessionState.ENDING)

    def set_state(self, state: SessionState):
        self.state = state
        if state is SessionState.CLOSED and self.ended_at is None:
            self.ended_at = time.time()

    def log_context(self) -> Dict[str, Any]:
        """Context attached to every log line about this session."""
        return {"session": self.session_id, "path": self.stream_path}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "application": self.application,
            "stream_name": self.stream_name,
            "state": self.state.value,
            "pid": self.pid,
            "resolutions": list(self.resolutions),
            "input_locator": self.input_locator,
            "output_directory": str(self.output_directory),
            "master_playlist": str(self.master_playlist),
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "returncode": self.returncode,
        }
