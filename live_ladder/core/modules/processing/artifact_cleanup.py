"""
Artifact cleanup for finished live sessions.

Removes generated HLS/DASH artifacts from a session's output directory once
its transcoder has exited. Only direct children of the directory with a
recognized suffix are touched; everything else is left in place. Removals
run on a small thread pool and every result is collected, so a partial
failure is visible in the returned report instead of being lost.
"""

import concurrent.futures
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from ....utils.logging import create_progress_bar, get_logger

logger = get_logger("artifact_cleanup")

ARTIFACT_SUFFIXES = (".ts", ".m3u8", ".mpd", ".m4s", ".tmp")


@dataclass
class CleanupReport:
    """Outcome of cleaning one output directory."""
    directory: Path
    removed: List[Path] = field(default_factory=list)
    failed: List[Tuple[Path, str]] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)
    listing_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.listing_error is None and not self.failed


def is_artifact(name: str) -> bool:
    """True if a file name carries one of the generated artifact suffixes."""
    return name.endswith(ARTIFACT_SUFFIXES)


def _remove(path: Path) -> Path:
    path.unlink()
    return path


def _collect_artifacts(directory: Path, report: CleanupReport) -> List[Path]:
    artifacts = []
    for entry in sorted(directory.iterdir()):
        if is_artifact(entry.name) and (entry.is_symlink() or entry.is_file()):
            artifacts.append(entry)
        else:
            report.skipped.append(entry)
    return artifacts


def cleanup_artifacts(output_directory: Path, max_workers: int = 4,
                      **context) -> CleanupReport:
    """
    Remove generated artifacts from an output directory.

    Args:
        output_directory: The session's own output directory
        max_workers: Concurrent removals
        **context: Extra log context (session id, stream path)

    Returns:
        CleanupReport. Never raises for filesystem errors; a directory that
        cannot be listed is reported through ``listing_error``.
    """
    directory = Path(output_directory)
    report = CleanupReport(directory=directory)

    try:
        artifacts = _collect_artifacts(directory, report)
    except OSError as e:
        report.listing_error = str(e)
        logger.error(f"Cannot read directory {directory}", error=e, **context)
        return report

    if not artifacts:
        logger.debug(f"Nothing to clean in {directory}", **context)
        return report

    workers = max(1, min(max_workers, len(artifacts)))
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
        future_to_path = {executor.submit(_remove, path): path for path in artifacts}
        for future in concurrent.futures.as_completed(future_to_path):
            path = future_to_path[future]
            try:
                report.removed.append(future.result())
            except OSError as e:
                report.failed.append((path, str(e)))
                logger.error(f"Cannot remove {path}", error=e, **context)

    report.removed.sort()
    report.failed.sort()
    logger.cleanup(f"Removed {len(report.removed)}/{len(artifacts)} artifacts from {directory}",
                   **context)
    return report


def discover_stream_directories(output_root: Path) -> List[Path]:
    """All <root>/<application>/<stream> directories, sorted."""
    root = Path(output_root)
    if not root.is_dir():
        return []
    return sorted(
        stream_dir
        for app_dir in root.iterdir() if app_dir.is_dir() and not app_dir.is_symlink()
        for stream_dir in app_dir.iterdir() if stream_dir.is_dir() and not stream_dir.is_symlink()
    )


def sweep_output_root(output_root: Path, max_workers: int = 4,
                      exclude: Tuple[Path, ...] = ()) -> List[CleanupReport]:
    """
    Clean artifacts left under every stream directory of an output root.

    Used at startup and by the sweep command to reclaim output from sessions
    that never reached their exit handler (crash, power loss).

    Args:
        output_root: Configured output root
        max_workers: Concurrent removals per directory
        exclude: Directories owned by live sessions, left untouched

    Returns:
        One CleanupReport per swept directory
    """
    excluded = {Path(p) for p in exclude}
    directories = [d for d in discover_stream_directories(output_root) if d not in excluded]
    if not directories:
        logger.info(f"No stream directories under {output_root}")
        return []

    reports = []
    with create_progress_bar(total=len(directories), desc="Sweeping", unit="dirs") as pbar:
        for directory in directories:
            reports.append(cleanup_artifacts(directory, max_workers=max_workers))
            pbar.update(1)

    removed = sum(len(r.removed) for r in reports)
    failed = sum(len(r.failed) for r in reports)
    logger.cleanup(f"Swept {len(reports)} directories: {removed} removed, {failed} failed")
    return reports
