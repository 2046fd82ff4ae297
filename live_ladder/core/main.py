"""
Command line entry points for live_ladder.

``serve`` runs the ingest hook server that drives the orchestrator;
``sweep`` reclaims artifacts left under the output root by sessions that
never reached their exit handler.
"""

import argparse
import sys
from typing import List, Optional

import uvicorn

from ..config import get_config
from .modules.encoding.command_builder import format_cmd
from .modules.encoding.resolution_profiles import supported_resolutions
from .modules.errors import ConfigError, StreamPathError
from .modules.processing.artifact_cleanup import sweep_output_root
from .modules.processing.session import parse_stream_path
from .modules.system.ingest_config import render_nginx_rtmp_config
from .modules.system.ingest_hooks import create_hook_app
from .orchestrator import LiveOrchestrator
from ..utils.logging import LogLevel, get_logger, set_debug_mode, set_log_level, set_quiet_mode

logger = get_logger("main")


def _add_common_args(parser: argparse.ArgumentParser):
    parser.add_argument("--output-root", dest="output_root",
                        help="Root directory for HLS output (default: /tmp/super-live)")
    parser.add_argument("--debug", action="store_true", default=None,
                        help="Enable debug output, including ffmpeg diagnostics")
    parser.add_argument("--quiet", action="store_true", help="Only show warnings and errors")
    parser.add_argument("--log-level", dest="log_level", type=str.upper,
                        choices=list(LogLevel.__members__),
                        help="Minimum level to print (default: INFO, or LOG_LEVEL env)")


def build_serve_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="live-ladder",
        description="Live RTMP to adaptive HLS orchestrator",
    )
    _add_common_args(parser)
    parser.add_argument("--ffmpeg", dest="ffmpeg_path", help="Transcoder binary (default: ffmpeg)")
    parser.add_argument("--resolutions",
                        help=f"Comma-separated ladder, highest first "
                             f"(default: 1080,480,360; known: {','.join(map(str, supported_resolutions()))})")
    parser.add_argument("--rtmp-port", dest="rtmp_port", type=int,
                        help="Port of the local RTMP server the transcoder pulls from (default: 1935)")
    parser.add_argument("--host", dest="hook_host", help="Hook server bind address (default: 127.0.0.1)")
    parser.add_argument("--port", dest="hook_port", type=int, help="Hook server port (default: 8935)")
    parser.add_argument("--grace", dest="stop_grace_seconds", type=float,
                        help="Seconds between SIGTERM and SIGKILL on stop (default: 10)")
    parser.add_argument("--monitor-interval", dest="monitor_interval", type=float,
                        help="Seconds between transcoder resource samples, 0 disables (default: 30)")
    parser.add_argument("--sweep-on-start", action="store_true",
                        help="Remove leftover artifacts under the output root before serving")
    parser.add_argument("--dry-run", metavar="STREAM_PATH",
                        help="Print the ffmpeg command for a stream path (e.g. /live/cam1) and exit")
    parser.add_argument("--ingest-config", nargs="*", metavar="APP",
                        help="Print the nginx-rtmp block for the given applications "
                             "(default: live) and exit")
    return parser


def build_sweep_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="live-ladder-sweep",
        description="Remove leftover live HLS artifacts under the output root",
    )
    _add_common_args(parser)
    parser.add_argument("--workers", dest="cleanup_workers", type=int,
                        help="Concurrent removals per directory (default: 4)")
    return parser


def _enable_debug_logging():
    set_debug_mode(True)
    set_log_level("DEBUG")


def _configure_logging(args: argparse.Namespace):
    if args.debug:
        _enable_debug_logging()
    # An explicit level wins over --debug
    if args.log_level:
        set_log_level(args.log_level)
        if args.log_level == "DEBUG":
            set_debug_mode(True)
    set_quiet_mode(bool(args.quiet))


def _load_config(args: argparse.Namespace, keys: List[str]):
    overrides = {key: getattr(args, key, None) for key in keys}
    return get_config(overrides)


def print_command(orchestrator: LiveOrchestrator, stream_path: str) -> int:
    """--dry-run: show the command a publish on ``stream_path`` would launch."""
    try:
        stream = parse_stream_path(stream_path)
    except StreamPathError as e:
        logger.error(str(e))
        return 2
    session = orchestrator.build_session("dry-run", stream)
    print(format_cmd(orchestrator.build_command(session)))
    return 0


def print_ingest_config(config, applications: List[str]) -> int:
    """--ingest-config: show the nginx-rtmp server block matching the configuration."""
    try:
        print(render_nginx_rtmp_config(config, applications), end="")
    except StreamPathError as e:
        logger.error(f"Invalid RTMP application: {e}")
        return 2
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Run the hook server."""
    args = build_serve_parser().parse_args(argv)
    _configure_logging(args)

    try:
        config = _load_config(args, [
            "output_root", "debug", "ffmpeg_path", "resolutions", "rtmp_port",
            "hook_host", "hook_port", "stop_grace_seconds", "monitor_interval",
        ])
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2
    if config.debug and not args.log_level:
        _enable_debug_logging()

    if args.ingest_config is not None:
        return print_ingest_config(config, args.ingest_config or ["live"])

    orchestrator = LiveOrchestrator(config)
    if args.dry_run:
        return print_command(orchestrator, args.dry_run)

    if args.sweep_on_start:
        sweep_output_root(config.output_root, max_workers=config.cleanup_workers)

    logger.info(f"Output root: {config.output_root}")
    logger.info(f"Ladder: {', '.join(f'{r}p' for r in config.resolutions)}")
    logger.info(f"Listening for ingest hooks on http://{config.hook_host}:{config.hook_port}/hooks")

    app = create_hook_app(orchestrator, monitor_interval=config.monitor_interval)
    uvicorn.run(app, host=config.hook_host, port=config.hook_port,
                log_level="debug" if config.debug else "warning")
    return 0


def sweep_main(argv: Optional[List[str]] = None) -> int:
    """Sweep the output root once. Exit status 1 if any removal failed."""
    args = build_sweep_parser().parse_args(argv)
    _configure_logging(args)

    try:
        config = _load_config(args, ["output_root", "debug", "cleanup_workers"])
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2
    if config.debug and not args.log_level:
        _enable_debug_logging()

    reports = sweep_output_root(config.output_root, max_workers=config.cleanup_workers)
    return 0 if all(r.ok for r in reports) else 1


if __name__ == "__main__":
    sys.exit(main())
