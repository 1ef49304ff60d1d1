"""Settings shared by every environment; values come from the environment."""

import os
from pathlib import Path

from ..core.constants import (
    DEFAULT_PORT,
    DEFAULT_SCAN_HISTORY_SIZE,
    DEFAULT_SWEEP_TIME,
    MEMBERS_EXPORT_FILENAME,
    SNAPSHOT_FILENAME,
)
from . import env_bool, env_time, load_api_keys

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "office_attendance"),
}

DATA_DIR = Path(os.getenv("DATA_DIR", "data"))
SNAPSHOT_PATH = Path(os.getenv("SNAPSHOT_PATH", str(DATA_DIR / SNAPSHOT_FILENAME)))
MEMBERS_EXPORT_PATH = Path(os.getenv("MEMBERS_EXPORT_PATH", str(DATA_DIR / MEMBERS_EXPORT_FILENAME)))

API_KEYS = load_api_keys()
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS") or "*"

# Empty TIMEZONE follows the host clock.
TIMEZONE = os.getenv("TIMEZONE") or None
SWEEP_TIME = env_time("SWEEP_TIME", DEFAULT_SWEEP_TIME)
SWEEPER_ENABLED = env_bool("SWEEPER_ENABLED", True)

SCAN_HISTORY_SIZE = int(os.getenv("SCAN_HISTORY_SIZE", str(DEFAULT_SCAN_HISTORY_SIZE)))

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", str(DEFAULT_PORT)))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
