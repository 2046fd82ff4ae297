"""
nginx-rtmp configuration for the ingest server.

live-ladder does not accept RTMP itself: publishers connect to an
nginx-rtmp server, which calls the hook endpoints and serves the stream
back to ffmpeg on loopback. The RTMP settings in LiveConfig (port,
chunking, keepalive, keyframe start) describe that server; this module
renders them as the ``rtmp {}`` block to drop into nginx.conf.
"""

from typing import Iterable, List

from ..processing.session import parse_stream_path

# Addresses a server binds to but a client cannot call back on
_WILDCARD_HOSTS = ("0.0.0.0", "::", "")


def hook_base_url(config) -> str:
    """URL prefix of the hook endpoints as seen from the ingest server."""
    host = "127.0.0.1" if config.hook_host in _WILDCARD_HOSTS else config.hook_host
    if ":" in host:
        host = f"[{host}]"
    return f"http://{host}:{config.hook_port}/hooks"


def _application_block(application: str, config) -> List[str]:
    hooks = hook_base_url(config)
    lines = [f"        application {application} {{", "            live on;"]
    if config.rtmp_gop_cache:
        # Late subscribers (the transcoder) start on a keyframe
        lines.extend(["            wait_key on;", "            wait_video on;"])
    lines.extend([
        f"            on_publish {hooks}/on_publish;",
        f"            on_publish_done {hooks}/on_publish_done;",
        "        }",
    ])
    return lines


def render_nginx_rtmp_config(config, applications: Iterable[str] = ("live",)) -> str:
    """
    Render the nginx ``rtmp {}`` block for a configuration.

    Args:
        config: LiveConfig providing the RTMP and hook settings
        applications: RTMP application names to accept publishes on

    Returns:
        Configuration text ending in a newline

    Raises:
        StreamPathError: if an application name is not a valid path segment
        ValueError: if no application is given
    """
    applications = list(dict.fromkeys(applications))
    if not applications:
        raise ValueError("At least one RTMP application is required")
    for application in applications:
        parse_stream_path(f"/{application}/stream")

    lines = [
        "rtmp {",
        "    server {",
        f"        listen {config.rtmp_port};",
        f"        chunk_size {config.rtmp_chunk_size};",
        f"        ping {config.rtmp_ping}s;",
        f"        ping_timeout {config.rtmp_ping_timeout}s;",
    ]
    for application in applications:
        lines.append("")
        lines.extend(_application_block(application, config))
    lines.extend(["    }", "}"])
    return "\n".join(lines) + "\n"
