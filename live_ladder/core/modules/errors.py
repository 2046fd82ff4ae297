"""Exception hierarchy for live_ladder."""


class LiveLadderError(Exception):
    """Base class for all live_ladder errors."""


class ConfigError(LiveLadderError):
    """Invalid or inconsistent configuration."""


class UnknownResolutionError(ConfigError):
    """A requested resolution has no entry in the profile table."""

    def __init__(self, height):
        self.height = height
        super().__init__(f"No encode profile for resolution {height}p")


class StreamPathError(LiveLadderError):
    """Stream path does not match /application/streamName."""

    def __init__(self, stream_path, reason: str = "expected /application/streamName"):
        self.stream_path = stream_path
        super().__init__(f"Invalid stream path {stream_path!r}: {reason}")


class DuplicateSessionError(LiveLadderError):
    """A session id was registered twice (publish-start without a stop)."""

    def __init__(self, session_id):
        self.session_id = session_id
        super().__init__(f"Session {session_id!r} is already registered")


class SessionNotFoundError(LiveLadderError, KeyError):
    """No session is registered under the given id."""

    def __init__(self, session_id):
        self.session_id = session_id
        super().__init__(f"Session {session_id!r} is not registered")

    def __str__(self):
        return self.args[0]


class OutputDirectoryBusyError(LiveLadderError):
    """Another live session already writes to the output directory."""

    def __init__(self, output_directory, owner_id):
        self.output_directory = output_directory
        self.owner_id = owner_id
        super().__init__(f"Output directory {output_directory} is owned by session {owner_id!r}")


class TranscoderLaunchError(LiveLadderError):
    """The transcoder process could not be spawned."""
