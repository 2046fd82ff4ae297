"""
Live orchestrator: reacts to publish lifecycle events.

The ingest layer calls ``handle_publish_start`` when a client starts pushing
a stream and ``handle_publish_stop`` when it stops. For each published stream
the orchestrator builds a session, launches a supervised ffmpeg ladder into
``<output_root>/<application>/<stream>/`` and tracks it in its own registry
until the transcoder has exited and the output has been swept.

Failures are isolated per session: nothing raised here takes the process
down, except a duplicate session id which is a contract violation by the
caller and is re-raised after logging.
"""

from typing import Any, Callable, Dict, List, Optional

from ..config import LiveConfig
from .modules.encoding.command_builder import (
    DEFAULT_SETTINGS, EncodeSettings, build_transcode_cmd, format_cmd,
)
from .modules.errors import (
    DuplicateSessionError, OutputDirectoryBusyError,
    StreamPathError, TranscoderLaunchError, UnknownResolutionError,
)
from .modules.processing.process_supervisor import TranscodeSupervisor
from .modules.processing.session import (
    SessionState, StreamPath, TranscodeSession, parse_stream_path,
)
from .modules.processing.session_registry import SessionRegistry
from ..utils.logging import get_logger

logger = get_logger("orchestrator")

# Extra time allowed for exit handling (cleanup) after the kill grace period
CLEANUP_SLACK_SECONDS = 5.0


class LiveOrchestrator:
    """Publish event handler owning the session registry."""

    def __init__(self, config: LiveConfig, settings: EncodeSettings = DEFAULT_SETTINGS,
                 supervisor_factory: Callable[..., TranscodeSupervisor] = TranscodeSupervisor):
        self.config = config
        self.settings = settings
        self.registry = SessionRegistry()
        self._supervisor_factory = supervisor_factory

    @property
    def stop_timeout(self) -> float:
        return self.config.stop_grace_seconds + CLEANUP_SLACK_SECONDS

    def sessions(self) -> List[TranscodeSession]:
        return self.registry.list()

    def build_session(self, session_id: str, stream: StreamPath,
                      args: Optional[Dict[str, Any]] = None) -> TranscodeSession:
        """Derive a session's locations from configuration."""
        return TranscodeSession(
            session_id=session_id,
            stream=stream,
            input_locator=self.config.input_locator(str(stream)),
            output_directory=self.config.output_directory(stream.application, stream.stream_name),
            resolutions=list(self.config.resolutions),
            args=dict(args or {}),
        )

    def build_command(self, session: TranscodeSession) -> List[str]:
        return build_transcode_cmd(session, self.settings, self.config.ffmpeg_path)

    def handle_publish_start(self, session_id: str, stream_path: str,
                             args: Optional[Dict[str, Any]] = None) -> Optional[TranscodeSession]:
        """
        Start transcoding a newly published stream.

        Returns:
            The running session, or None if the publish was rejected (bad path,
            bad configuration, directory or launch failure). Nothing is left
            registered in that case.

        Raises:
            DuplicateSessionError: if ``session_id`` is already registered
        """
        ctx = {"session": session_id, "path": stream_path}
        logger.session("Post publish", args=args or None, **ctx)

        try:
            stream = parse_stream_path(stream_path)
        except StreamPathError as e:
            logger.error(f"Ignoring publish: {e}", **ctx)
            return None

        session = self.build_session(session_id, stream, args)
        try:
            cmd = self.build_command(session)
        except (UnknownResolutionError, ValueError) as e:
            logger.error(f"Cannot build transcode command: {e}", **ctx)
            return None

        # Reserve the id before eviction may block, so a stop in that window finds it
        try:
            self.registry.reserve(session_id, session)
        except DuplicateSessionError:
            logger.error("Publish start for a session that is already running; "
                         "the ingest server did not send a stop", **ctx)
            raise

        try:
            self._evict_output_owner(session)
        except Exception:
            self.registry.release(session_id, session)
            raise

        with session.lock:
            if session.stop_requested:
                self.registry.release(session_id, session)
                session.set_state(SessionState.CLOSED)
                logger.session("Publish stopped before the transcoder was launched", **ctx)
                return None

            try:
                self.registry.insert(session_id, session)
            except OutputDirectoryBusyError as e:
                self.registry.release(session_id, session)
                session.set_state(SessionState.CLOSED)
                logger.error(f"Cannot start session: {e}", **ctx)
                return None

            try:
                session.output_directory.mkdir(parents=True, exist_ok=True)
                supervisor = self._supervisor_factory(
                    session, cmd,
                    on_exit=self._on_session_exit,
                    grace_seconds=self.config.stop_grace_seconds,
                    cleanup_workers=self.config.cleanup_workers,
                )
                logger.info(f"Running live muxing: {format_cmd(cmd)}", **ctx)
                supervisor.start()
            except (OSError, TranscoderLaunchError) as e:
                self.registry.discard(session_id, session)
                session.set_state(SessionState.CLOSED)
                logger.error(f"Cannot run muxing: {e}", **ctx)
                return None

        return session

    def handle_publish_stop(self, session_id: str, stream_path: Optional[str] = None,
                            args: Optional[Dict[str, Any]] = None) -> bool:
        """
        Ask the session's transcoder to exit; cleanup follows on its exit.

        A session that is still waiting to launch is marked so that its start
        is abandoned. Returns False (and changes nothing) for an unknown
        session id.
        """
        session = self.registry.find(session_id)
        if session is None:
            logger.debug("Done publish for unknown session", session=session_id, path=stream_path)
            return False

        logger.session("Done publish", **session.log_context())
        with session.lock:
            if session.state is SessionState.CLOSED:
                return False
            if session.supervisor is None:
                session.stop_requested = True
                return True
            return session.supervisor.stop()

    def shutdown(self, timeout: Optional[float] = None) -> int:
        """
        Stop every live session and wait for their cleanup.

        Returns:
            Number of sessions that were asked to stop
        """
        sessions = self.registry.list()
        if not sessions:
            return 0

        logger.info(f"Stopping {len(sessions)} live session(s)")
        supervisors = []
        for session in sessions:
            with session.lock:
                if session.supervisor is not None and session.supervisor.stop():
                    supervisors.append(session.supervisor)

        wait_for = self.stop_timeout if timeout is None else timeout
        for supervisor in supervisors:
            if not supervisor.wait(wait_for):
                logger.warn("Session did not finish before shutdown timeout",
                            **supervisor.session.log_context())
        return len(sessions)

    def _evict_output_owner(self, session: TranscodeSession):
        """Force-stop a prior session still writing to the same directory."""
        prior = self.registry.find_by_output_directory(session.output_directory)
        if prior is None:
            return

        logger.warn(f"Output directory still owned by session {prior.session_id}; "
                    f"terminating it first", **session.log_context())
        with prior.lock:
            supervisor = prior.supervisor
            if supervisor is not None:
                supervisor.stop(force=True)
        if supervisor is not None and not supervisor.wait(self.stop_timeout):
            logger.error("Prior session did not exit in time", **prior.log_context())

    def _on_session_exit(self, session: TranscodeSession):
        if self.registry.discard(session.session_id, session):
            logger.session("Session removed", returncode=session.returncode,
                           **session.log_context())
