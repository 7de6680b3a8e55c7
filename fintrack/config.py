"""
Configuration module for FinTrack.

Contains constants, settings, and configuration values used throughout the application.
Values that operators usually change can be overridden through environment
variables (optionally loaded from a ``.env`` file by the runner).
"""

import os
from datetime import datetime, time
from pathlib import Path
from zoneinfo import ZoneInfo

# Version
VERSION = "0.1.0"

# Application paths
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"
LOG_DIR = PROJECT_ROOT / "logs"

# Database configuration
DEFAULT_DB_PATH = Path(os.getenv("FINTRACK_DB_PATH", str(DATA_DIR / "fintrack.db")))
DB_TIMEOUT = 10.0  # seconds

# Time handling
TIMEZONE_NAME = os.getenv("FINTRACK_TIMEZONE", "Asia/Kolkata")
RECURRING_RUN_TIME = os.getenv("FINTRACK_RECURRING_TIME", "00:00")

# Audit log
AUDIT_QUEUE_SIZE = 1000
AUDIT_SHUTDOWN_TIMEOUT = 5.0  # seconds

# Validation constraints
MIN_RECURRING_DATE = 1
MAX_RECURRING_DATE = 31
MAX_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 200
MAX_NOTE_LENGTH = 500

# Query limits
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

# Logging configuration
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE = "fintrack.log"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Error messages
ERROR_MESSAGES = {
    "not_found": "The requested resource was not found.",
    "validation_error": "Invalid input. Please check your values and try again.",
    "database_error": "Database error occurred. Please try again later.",
    "internal_error": "An internal error occurred. Please try again.",
}


def ensure_directories():
    """Ensure required directories exist."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    LOG_DIR.mkdir(parents=True, exist_ok=True)


def get_log_level():
    """Get the configured log level."""
    import logging

    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return level_map.get(LOG_LEVEL.upper(), logging.INFO)


def get_timezone() -> ZoneInfo:
    """Get the timezone used for timestamps and recurring eligibility."""
    return ZoneInfo(TIMEZONE_NAME)


def local_now() -> datetime:
    """Current time in the configured timezone."""
    return datetime.now(get_timezone())


def get_recurring_run_time() -> time:
    """
    Parse the wall-clock time at which the recurring sweep runs.

    Returns:
        A timezone-aware ``datetime.time``

    Raises:
        ValueError: If FINTRACK_RECURRING_TIME is not in HH:MM format
    """
    try:
        hour, minute = (int(part) for part in RECURRING_RUN_TIME.split(":"))
        return time(hour=hour, minute=minute, second=0, tzinfo=get_timezone())
    except ValueError:
        raise ValueError(
            f"FINTRACK_RECURRING_TIME must be HH:MM, got {RECURRING_RUN_TIME!r}"
        )
