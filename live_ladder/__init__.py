"""
Live Ladder - Live RTMP ingest to adaptive HLS orchestrator.
"""

__version__ = "1.0.0"

from .config import LiveConfig, get_config, load_env_file


def get_orchestrator_class():
    """Get the orchestrator class (imported on-demand to keep CLI startup light)."""
    from .core.orchestrator import LiveOrchestrator
    return LiveOrchestrator


__all__ = [
    "LiveConfig",
    "get_config",
    "load_env_file",
    "get_orchestrator_class",
]
