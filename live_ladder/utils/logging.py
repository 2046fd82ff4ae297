"""
Centralized logging utilities for live_ladder

Provides consistent logging patterns with configurable debug levels:
- [INFO] for general information
- [WARN] for warnings
- [ERROR] for errors
- [DEBUG] for debug information
- [SESSION] for publish lifecycle transitions
- [FFMPEG] for transcoder diagnostic output
- [CLEANUP] for artifact cleanup
- [CMD] for commands about to be executed

Context is attached as keyword arguments and rendered as key=value pairs.
The DEBUG and LOG_LEVEL environment variables set the initial mode and level.

Usage:
    from live_ladder.utils.logging import get_logger, set_debug_mode, set_log_level

    set_debug_mode(True)  # Enable debug messages
    set_log_level("DEBUG")  # ... and let them through the level filter

    logger = get_logger("orchestrator")
    logger.info("Post publish", session="abc", path="/live/cam1")
    logger.ffmpeg("frame=  120 fps= 30", session="abc")  # Only shows if debug enabled
"""

import os
import threading
from enum import Enum
from typing import Any, Optional

from tqdm import tqdm

# Global logging configuration
_DEBUG_ENABLED = False
_QUIET_MODE = False
_LOG_LEVEL = "INFO"

# Pipe reader threads log concurrently; keep lines whole
_PRINT_LOCK = threading.Lock()


class LogLevel(Enum):
    DEBUG = 0
    INFO = 1
    WARN = 2
    ERROR = 3


def _init_from_env():
    global _DEBUG_ENABLED, _LOG_LEVEL
    if os.getenv('DEBUG', '').lower() in ('1', 'true', 'yes'):
        _DEBUG_ENABLED = True
        _LOG_LEVEL = "DEBUG"
    level = os.getenv('LOG_LEVEL', '').upper()
    if level in LogLevel.__members__:
        _LOG_LEVEL = level
        if level == "DEBUG":
            _DEBUG_ENABLED = True

_init_from_env()


def set_debug_mode(enabled: bool):
    """Enable or disable debug mode globally"""
    global _DEBUG_ENABLED
    _DEBUG_ENABLED = enabled


def set_quiet_mode(enabled: bool):
    """Enable or disable quiet mode (suppress INFO and DEBUG messages)"""
    global _QUIET_MODE
    _QUIET_MODE = enabled


def set_log_level(level: str):
    """
    Set the global log level: DEBUG, INFO, WARN, ERROR

    DEBUG output additionally needs debug mode, see set_debug_mode().

    Raises:
        ValueError: for an unknown level name
    """
    global _LOG_LEVEL
    name = level.upper()
    if name not in LogLevel.__members__:
        raise ValueError(f"Unknown log level: {level}")
    _LOG_LEVEL = name


def format_context(context: dict) -> str:
    """Render context kwargs as ' key=value' pairs, skipping None values."""
    parts = []
    for key, value in context.items():
        if value is None:
            continue
        text = str(value)
        if not text or any(c.isspace() for c in text):
            text = repr(text)
        parts.append(f"{key}={text}")
    return (" " + " ".join(parts)) if parts else ""


class Logger:
    """Centralized logger with consistent formatting and configurable output"""

    def __init__(self, module_name: str = ""):
        self.module_name = module_name
        self.prefix = f"[{module_name}] " if module_name else ""

    def _should_log(self, level: LogLevel) -> bool:
        """Check if message should be logged based on current settings"""
        if _QUIET_MODE and level in (LogLevel.DEBUG, LogLevel.INFO):
            return False

        level_hierarchy = {
            "DEBUG": LogLevel.DEBUG,
            "INFO": LogLevel.INFO,
            "WARN": LogLevel.WARN,
            "ERROR": LogLevel.ERROR
        }

        current_level = level_hierarchy.get(_LOG_LEVEL, LogLevel.INFO)
        return level.value >= current_level.value

    def _emit(self, tag: str, message: str, context: dict):
        line = f"[{tag}] {self.prefix}{message}{format_context(context)}"
        with _PRINT_LOCK:
            print(line, flush=True)

    def _log(self, level: str, message: str, context: dict):
        """Internal logging function"""
        log_level = LogLevel[level]
        if not self._should_log(log_level):
            return
        self._emit(level, message, context)

    def debug(self, message: str, **context: Any):
        """Log debug message (only if debug mode enabled)"""
        if _DEBUG_ENABLED:
            self._log("DEBUG", message, context)

    def info(self, message: str, **context: Any):
        """Log informational message"""
        self._log("INFO", message, context)

    def warn(self, message: str, **context: Any):
        """Log warning message"""
        self._log("WARN", message, context)

    def error(self, message: str, **context: Any):
        """Log error message"""
        self._log("ERROR", message, context)

    # Domain-specific logging methods
    def session(self, message: str, **context: Any):
        """Log a publish lifecycle transition"""
        if self._should_log(LogLevel.INFO):
            self._emit("SESSION", message, context)

    def ffmpeg(self, message: str, **context: Any):
        """Log a line of transcoder output"""
        if _DEBUG_ENABLED and self._should_log(LogLevel.DEBUG):
            self._emit("FFMPEG", message, context)

    def cleanup(self, message: str, **context: Any):
        """Log cleanup operation"""
        if self._should_log(LogLevel.INFO):
            self._emit("CLEANUP", message, context)

    def cmd(self, message: str, **context: Any):
        """Log command execution message"""
        if _DEBUG_ENABLED and self._should_log(LogLevel.DEBUG):
            self._emit("CMD", message, context)


def get_logger(module_name: str = "") -> Logger:
    """Get a logger instance for a module"""
    return Logger(module_name)


def create_progress_bar(total: Optional[int] = None, desc: str = "", unit: str = "it",
                        position: Optional[int] = None, leave: bool = True,
                        disable: bool = False):
    """Create a progress bar with consistent styling"""
    return tqdm(total=total, desc=desc, unit=unit, position=position, leave=leave,
                disable=disable or _QUIET_MODE)


def format_size(bytes_size: int) -> str:
    """Format file size in bytes to human-readable string"""
    size = float(bytes_size)
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if size < 1024.0:
            return f"{size:.1f}{unit}"
        size /= 1024.0
    return f"{size:.1f}PB"
