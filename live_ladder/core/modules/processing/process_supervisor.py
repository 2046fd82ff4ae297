"""
Transcode process supervisor.

Owns the lifecycle of one ffmpeg process:
- spawns it with the session's argument vector
- drains stdout/stderr on reader threads so a full pipe never stalls it
- requests graceful termination on stop and escalates to a kill after a
  bounded grace period
- on exit, whatever caused it, sweeps the output directory exactly once and
  notifies the owner so the session leaves the registry
"""

import subprocess
import threading
from typing import Callable, List, Optional

from .artifact_cleanup import CleanupReport, cleanup_artifacts
from .session import SessionState, TranscodeSession
from ..encoding.command_builder import format_cmd
from ..errors import TranscoderLaunchError
from ....utils.logging import get_logger

logger = get_logger("supervisor")

ExitCallback = Callable[[TranscodeSession], None]


class TranscodeSupervisor:
    """Runs and watches the transcoder for a single session."""

    def __init__(self, session: TranscodeSession, cmd: List[str],
                 on_exit: Optional[ExitCallback] = None,
                 grace_seconds: float = 10.0, cleanup_workers: int = 4):
        self.session = session
        self.cmd = list(cmd)
        self.on_exit = on_exit
        self.grace_seconds = grace_seconds
        self.cleanup_workers = cleanup_workers
        self.cleanup_report: Optional[CleanupReport] = None

        self._process: Optional[subprocess.Popen] = None
        self._readers: List[threading.Thread] = []
        self._waiter: Optional[threading.Thread] = None
        self._kill_timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self._finalized = False
        self._stop_requested = False
        self.finished = threading.Event()

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process is not None else None

    @property
    def returncode(self) -> Optional[int]:
        return self._process.returncode if self._process is not None else None

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def start(self):
        """
        Spawn the transcoder and its watcher threads.

        Raises:
            TranscoderLaunchError: if the process cannot be spawned or watched.
                A spawned child is killed and reaped before this is raised.
        """
        ctx = self.session.log_context()
        logger.cmd(format_cmd(self.cmd), **ctx)

        try:
            # Universal newlines also split ffmpeg's \r-terminated stats lines
            self._process = subprocess.Popen(
                self.cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                start_new_session=True,
            )
        except (OSError, ValueError) as e:
            raise TranscoderLaunchError(f"Cannot launch {self.cmd[0]}: {e}") from e

        self.session.supervisor = self
        self.session.set_state(SessionState.RUNNING)

        try:
            for pipe, stream_name in ((self._process.stdout, "stdout"), (self._process.stderr, "stderr")):
                self._readers.append(self._start_thread(self._drain, pipe, stream_name, name=stream_name))
            self._waiter = self._start_thread(self._wait_for_exit, name="waiter")
        except RuntimeError as e:
            # Without a waiter nothing would ever reap or clean up after the child
            self._abort_launch()
            raise TranscoderLaunchError(f"Cannot watch {self.cmd[0]}: {e}") from e

        logger.session("Transcoder running", pid=self._process.pid, **ctx)

    def stop(self, force: bool = False) -> bool:
        """
        Ask the transcoder to exit.

        Sends SIGTERM and arms a timer that sends SIGKILL after the grace
        period; ``force`` kills immediately. Returns False if there was no
        running process to signal.
        """
        with self._lock:
            if self._process is None or self.finished.is_set():
                return False
            self._stop_requested = True
            if self.session.state is SessionState.RUNNING:
                self.session.set_state(SessionState.ENDING)

            ctx = self.session.log_context()
            if force:
                logger.session("Killing transcoder", pid=self._process.pid, **ctx)
                self._signal(self._process.kill)
            else:
                logger.session("Requesting transcoder shutdown", pid=self._process.pid, **ctx)
                self._signal(self._process.terminate)
                if self._kill_timer is None and self.grace_seconds > 0:
                    self._kill_timer = threading.Timer(self.grace_seconds, self._escalate)
                    self._kill_timer.daemon = True
                    self._kill_timer.start()
            return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until exit handling (including cleanup) has finished."""
        return self.finished.wait(timeout)

    def _start_thread(self, target, *args, name: str) -> threading.Thread:
        thread = threading.Thread(
            target=target, args=args, daemon=True,
            name=f"ffmpeg-{name}-{self.session.session_id}",
        )
        thread.start()
        return thread

    def _abort_launch(self):
        """Kill and reap a child whose watcher threads could not be started."""
        process = self._process
        self._signal(process.kill)
        process.wait()
        # The child is gone, so started readers hit EOF and close their pipe
        for reader in self._readers:
            reader.join(timeout=5)
        for pipe in (process.stdout, process.stderr):
            pipe.close()
        self._readers = []
        self._process = None
        self.session.supervisor = None
        self.session.set_state(SessionState.CLOSED)
        logger.error("Cannot start transcoder watchers, child killed", pid=process.pid,
                     **self.session.log_context())

    def _signal(self, send):
        try:
            send()
        except ProcessLookupError:
            pass
        except OSError as e:
            logger.warn(f"Cannot signal transcoder: {e}", **self.session.log_context())

    def _escalate(self):
        if self.is_running:
            logger.warn(f"Transcoder still running after {self.grace_seconds}s, killing",
                        pid=self.pid, **self.session.log_context())
            self._signal(self._process.kill)

    def _drain(self, pipe, stream_name: str):
        ctx = self.session.log_context()
        try:
            for line in iter(pipe.readline, ""):
                line = line.rstrip()
                if line:
                    logger.ffmpeg(line, stream=stream_name, **ctx)
        except (OSError, ValueError) as e:
            logger.debug(f"Stopped reading {stream_name}: {e}", **ctx)
        finally:
            pipe.close()

    def _wait_for_exit(self):
        returncode = self._process.wait()
        for reader in self._readers:
            reader.join(timeout=5)
        if self._kill_timer is not None:
            self._kill_timer.cancel()

        ctx = self.session.log_context()
        self.session.returncode = returncode
        if self.session.state is not SessionState.CLOSED:
            self.session.set_state(SessionState.ENDING)

        if returncode == 0 or self._stop_requested:
            logger.session("Transcoder exited", returncode=returncode, **ctx)
        else:
            logger.error("Transcoder exited unexpectedly", returncode=returncode, **ctx)

        self._finalize()

    def _finalize(self):
        with self._lock:
            if self._finalized:
                return
            self._finalized = True

        ctx = self.session.log_context()
        try:
            self.cleanup_report = cleanup_artifacts(
                self.session.output_directory, max_workers=self.cleanup_workers, **ctx
            )
            if self.on_exit is not None:
                self.on_exit(self.session)
        except Exception as e:
            logger.error(f"Exit handling failed: {e}", **ctx)
        finally:
            self.session.set_state(SessionState.CLOSED)
            logger.session("Session closed", **ctx)
            self.finished.set()
