"""Centralized logging configuration for ultradian."""

import logging
import logging.config
import os
import sys

from pathlib import Path
from typing import Any

from ultradian.constants import (
    DEFAULT_LOG_BACKUP_COUNT,
    DEFAULT_LOG_DIR,
    DEFAULT_LOG_FILE,
    DEFAULT_LOG_MAX_BYTES,
)

# Background recomputes run on worker threads, so the file log names the thread
FILE_FORMAT = "%(asctime)s - %(name)s - [%(threadName)s] %(levelname)s - %(message)s"
CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Third-party loggers that are noisy at DEBUG
QUIET_LOGGERS = ("sqlalchemy.engine", "mcp", "httpx")

_logging_configured = False


def get_log_dir() -> Path:
    """Log directory path, created with owner-only permissions if missing."""
    log_dir = DEFAULT_LOG_DIR
    os.makedirs(log_dir, mode=0o700, exist_ok=True)
    return log_dir


def get_log_path() -> Path:
    """Path to the active log file (ultradian.log)."""
    return get_log_dir() / DEFAULT_LOG_FILE


def _get_user_logging_config() -> dict[str, Any]:
    """[logging] table from the config file, or {} if absent or malformed."""
    from ultradian.config import load_config

    logging_config = load_config().get("logging", {})
    return logging_config if isinstance(logging_config, dict) else {}


def _build_logging_config(
    verbose: bool = False,
    console_format: str | None = None,
) -> dict[str, Any]:
    """
    Build the dictConfig configuration dictionary.

    Args:
        verbose: If True, set console to DEBUG level
        console_format: Override console format string

    Returns:
        Dictionary suitable for logging.config.dictConfig()
    """
    user_config = _get_user_logging_config()
    file_enabled = user_config.get("enabled", True)
    file_level = str(user_config.get("level", "DEBUG")).upper()
    max_bytes = int(
        user_config.get("max_size_mb", DEFAULT_LOG_MAX_BYTES // (1024 * 1024))
        * 1024
        * 1024
    )
    backup_count = user_config.get("backup_count", DEFAULT_LOG_BACKUP_COUNT)

    config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {"format": console_format or CONSOLE_FORMAT},
            "file": {"format": FILE_FORMAT},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": "DEBUG" if verbose else "INFO",
                "formatter": "console",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
        "root": {
            "level": "DEBUG",
            "handlers": ["console"],
        },
    }

    if file_enabled:
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": file_level,
            "formatter": "file",
            "filename": str(get_log_path()),
            "maxBytes": max_bytes,
            "backupCount": backup_count,
            "encoding": "utf-8",
        }
        config["root"]["handlers"].append("file")

    return config


def setup_logging(
    *,
    verbose: bool = False,
    console_format: str | None = None,
) -> None:
    """
    Configure logging once per process.

    Falls back to basicConfig (console only) if the log directory or the
    [logging] settings are unusable.

    Args:
        verbose: If True, set console to DEBUG level
        console_format: Override console format string
    """
    global _logging_configured

    if _logging_configured:
        return

    try:
        config = _build_logging_config(verbose=verbose, console_format=console_format)
        logging.config.dictConfig(config)
    except (OSError, ValueError, TypeError) as e:
        sys.stderr.write(f"WARNING: Failed to configure logging: {e}\n")
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format=console_format or "%(levelname)s: %(message)s",
        )

    _logging_configured = True
