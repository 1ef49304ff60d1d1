from __future__ import annotations

import os
from datetime import time


def get_settings_module() -> str:
    # APP_ENV picks the settings module; anything unknown means development.
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "office_attendance.config.production"

    if env in {"test", "testing"}:
        return "office_attendance.config.testing"

    return "office_attendance.config.development"


def env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def env_csv(name: str) -> list[str]:
    value = os.getenv(name) or ""
    return [item.strip() for item in value.split(",") if item.strip()]


def env_time(name: str, default: time) -> time:
    value = (os.getenv(name) or "").strip()
    if not value:
        return default
    parts = value.split(":")
    try:
        hh = int(parts[0])
        mm = int(parts[1]) if len(parts) > 1 else 0
        return time(hh, mm)
    except ValueError:
        raise ValueError(f"{name} must look like HH:MM, got {value!r}")


def load_api_keys() -> frozenset[str]:
    """Keys for the scanner, the Discord bot, plus any comma-separated extras."""
    keys: set[str] = set()
    for name in ("SCANNER_API_KEY", "DISCORD_BOT_API_KEY"):
        key = (os.getenv(name) or "").strip()
        if key:
            keys.add(key)
    keys.update(env_csv("API_KEYS"))
    return frozenset(keys)
