"""
Transcoder resource monitoring.

A background thread that periodically samples CPU and memory use of every
running transcoder with psutil and logs one debug line per session.
"""

import threading
from typing import Dict, List, Optional

import psutil

from ..processing.session import SessionState
from ....utils.logging import format_size, get_logger

logger = get_logger("resource_monitor")


class ResourceMonitor:
    """Samples running transcoders of an orchestrator at a fixed interval."""

    def __init__(self, orchestrator, interval: float = 30.0):
        self.orchestrator = orchestrator
        self.interval = interval
        self._processes: Dict[int, psutil.Process] = {}
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def sample(self) -> List[Dict]:
        """One snapshot per running transcoder; vanished processes are skipped."""
        snapshots = []
        live_pids = set()

        for session in self.orchestrator.sessions():
            pid = session.pid
            if pid is None or session.state is not SessionState.RUNNING:
                continue
            live_pids.add(pid)
            try:
                proc = self._processes.get(pid)
                if proc is None:
                    proc = self._processes[pid] = psutil.Process(pid)
                with proc.oneshot():
                    # First call per Process returns 0.0; later calls measure since the last one
                    cpu_percent = proc.cpu_percent(interval=None)
                    rss = proc.memory_info().rss
            except (psutil.NoSuchProcess, psutil.ZombieProcess, psutil.AccessDenied):
                self._processes.pop(pid, None)
                continue

            snapshots.append({
                "session_id": session.session_id,
                "path": session.stream_path,
                "pid": pid,
                "cpu_percent": cpu_percent,
                "rss": rss,
            })

        for pid in list(self._processes):
            if pid not in live_pids:
                del self._processes[pid]
        return snapshots

    def start(self):
        """Start the sampling thread. A non-positive interval disables it."""
        if self.interval <= 0 or self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, daemon=True, name="resource-monitor")
        self._thread.start()
        logger.debug(f"Monitoring transcoders every {self.interval:.0f}s (cores: {psutil.cpu_count()})")

    def stop(self):
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None

    def _run(self):
        while not self._stop_event.wait(self.interval):
            for snap in self.sample():
                logger.debug(
                    f"ffmpeg CPU {snap['cpu_percent']:5.1f}% RSS {format_size(snap['rss'])}",
                    session=snap["session_id"], path=snap["path"], pid=snap["pid"],
                )
