"""Configuration management for live-ladder."""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from .core.modules.encoding.resolution_profiles import RESOLUTION_PROFILES
from .core.modules.errors import ConfigError


def load_env_file(env_path: Optional[Path] = None) -> Dict[str, str]:
    """Load environment variables from .env file."""
    if env_path is None:
        # Look for .env in current directory, then in package directory
        candidates = [
            Path.cwd() / ".env",
            Path(__file__).parent.parent / ".env",
        ]

        for candidate in candidates:
            if candidate.exists():
                env_path = candidate
                break

    env_vars = {}

    if env_path and env_path.exists():
        with open(env_path, 'r', encoding='utf-8') as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith('#'):
                    if '=' in line:
                        key, value = line.split('=', 1)
                        env_vars[key.strip()] = value.strip().strip('"').strip("'")

    return env_vars


@dataclass(frozen=True)
class LiveConfig:
    """Immutable runtime configuration."""
    rtmp_port: int = 1935
    rtmp_chunk_size: int = 60000
    rtmp_gop_cache: bool = True
    rtmp_ping: int = 60
    rtmp_ping_timeout: int = 30
    ffmpeg_path: str = "ffmpeg"
    output_root: Path = Path("/tmp/super-live")
    resolutions: Tuple[int, ...] = (1080, 480, 360)
    stop_grace_seconds: float = 10.0
    cleanup_workers: int = 4
    monitor_interval: float = 30.0
    hook_host: str = "127.0.0.1"
    hook_port: int = 8935
    debug: bool = False

    def input_locator(self, stream_path: str) -> str:
        """Loopback RTMP address the transcoder pulls a published stream from."""
        return f"rtmp://127.0.0.1:{self.rtmp_port}{stream_path}"

    def output_directory(self, application: str, stream_name: str) -> Path:
        return Path(self.output_root) / application / stream_name


# field name -> environment key
ENV_KEYS = {
    'rtmp_port': 'RTMP_PORT',
    'rtmp_chunk_size': 'RTMP_CHUNK_SIZE',
    'rtmp_gop_cache': 'RTMP_GOP_CACHE',
    'rtmp_ping': 'RTMP_PING',
    'rtmp_ping_timeout': 'RTMP_PING_TIMEOUT',
    'ffmpeg_path': 'FFMPEG_PATH',
    'output_root': 'OUTPUT_ROOT',
    'resolutions': 'RESOLUTIONS',
    'stop_grace_seconds': 'STOP_GRACE_SECONDS',
    'cleanup_workers': 'CLEANUP_WORKERS',
    'monitor_interval': 'MONITOR_INTERVAL',
    'hook_host': 'HOOK_HOST',
    'hook_port': 'HOOK_PORT',
    'debug': 'DEBUG',
}


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('true', '1', 'yes', 'on')


def parse_resolutions(value: Any) -> Tuple[int, ...]:
    """Accept '1080,480 360' style strings or an iterable of ints."""
    if isinstance(value, str):
        items = [v for v in value.replace(',', ' ').split() if v]
    else:
        items = list(value)
    try:
        return tuple(int(str(v).rstrip('pP')) for v in items)
    except ValueError:
        raise ConfigError(f"Invalid resolution list: {value!r}") from None


def _coerce(name: str, value: Any) -> Any:
    try:
        if name == 'resolutions':
            return parse_resolutions(value)
        if name in ('rtmp_gop_cache', 'debug'):
            return _parse_bool(value)
        if name == 'output_root':
            return Path(value).expanduser()
        if name in ('stop_grace_seconds', 'monitor_interval'):
            return float(value)
        if name in ('ffmpeg_path', 'hook_host'):
            return str(value)
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid value for {name}: {value!r}") from None


def validate_config(config: LiveConfig) -> LiveConfig:
    """Raise ConfigError for values the orchestrator cannot run with."""
    if not config.resolutions:
        raise ConfigError("At least one resolution must be configured")
    unknown = [r for r in config.resolutions if r not in RESOLUTION_PROFILES]
    if unknown:
        raise ConfigError(f"Unconfigured resolutions: {unknown} "
                          f"(known: {sorted(RESOLUTION_PROFILES, reverse=True)})")
    if len(set(config.resolutions)) != len(config.resolutions):
        raise ConfigError(f"Duplicate resolutions: {list(config.resolutions)}")
    for port_field in ('rtmp_port', 'hook_port'):
        port = getattr(config, port_field)
        if not 0 < port < 65536:
            raise ConfigError(f"{port_field} out of range: {port}")
    if config.stop_grace_seconds < 0:
        raise ConfigError("stop_grace_seconds must not be negative")
    if config.cleanup_workers < 1:
        raise ConfigError("cleanup_workers must be at least 1")
    # RTMP chunks are at least 128 bytes
    if config.rtmp_chunk_size < 128:
        raise ConfigError(f"rtmp_chunk_size too small: {config.rtmp_chunk_size}")
    if config.rtmp_ping < 1 or config.rtmp_ping_timeout < 1:
        raise ConfigError("rtmp_ping and rtmp_ping_timeout must be positive")
    return config


def get_config(overrides: Optional[Mapping[str, Any]] = None,
               env_path: Optional[Path] = None) -> LiveConfig:
    """
    Build configuration from .env, environment variables and overrides.

    Precedence: overrides > .env file > process environment > defaults.
    Overrides whose value is None are ignored so argparse namespaces can be
    passed through unchanged.
    """
    env_vars = load_env_file(env_path)
    known = {f.name for f in fields(LiveConfig)}

    values: Dict[str, Any] = {}
    for name, key in ENV_KEYS.items():
        raw = env_vars.get(key, env_vars.get(name, os.getenv(key)))
        if raw is not None and raw != '':
            values[name] = _coerce(name, raw)

    for name, value in (overrides or {}).items():
        if value is None:
            continue
        if name not in known:
            raise ConfigError(f"Unknown configuration key: {name}")
        values[name] = _coerce(name, value)

    return validate_config(LiveConfig(**values))
