from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

_FRACTION = re.compile(r"(\.\d{6})\d+")


def local_zone(name: Optional[str]) -> Optional[tzinfo]:
    """Return the configured IANA zone, or None to follow the system clock."""
    if not name:
        return None
    return ZoneInfo(name)


def now_local(tz: Optional[tzinfo] = None) -> datetime:
    """Current aware local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    if tz is not None:
        return datetime.now(tz)
    return datetime.now().astimezone()


def ensure_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.astimezone()
    return value


def to_rfc3339(value: datetime) -> str:
    return ensure_aware(value).isoformat()


def parse_rfc3339(value: str) -> datetime:
    """Parse an RFC 3339 timestamp.

    Accepts a trailing ``Z`` and more than six fractional digits (files written
    by other tools use nanoseconds). Naive values are taken as local time.
    """
    if not isinstance(value, str):
        raise TypeError(f"Expected timestamp string, got {type(value)!r}")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(r"\1", text)
    return ensure_aware(datetime.fromisoformat(text))


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_bound(value: str, *, end_of_day: bool = False, tz: Optional[tzinfo] = None) -> datetime:
    """Parse a query bound given either as a date or as a full timestamp.

    A bare date means the start of that day, or its last instant when
    ``end_of_day`` is set, so ``to=2025-01-31`` still includes that day.
    """
    text = value.strip()
    if len(text) == 10:
        day = parse_iso_date(text)
        moment = datetime.combine(day, time.max if end_of_day else time.min)
        if tz is not None:
            return moment.replace(tzinfo=tz)
        return moment.astimezone()
    return parse_rfc3339(text)


def to_db(value: datetime) -> datetime:
    """Aware datetime -> naive UTC for DATETIME columns."""
    return ensure_aware(value).astimezone(timezone.utc).replace(tzinfo=None)


def from_db(value: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Naive UTC from a DATETIME column -> aware local datetime."""
    aware = value.replace(tzinfo=timezone.utc)
    if tz is not None:
        return aware.astimezone(tz)
    return aware.astimezone()


def format_duration(delta: timedelta) -> str:
    """Render a visit length as ``1h2m3s`` (seconds precision)."""
    total = int(round(delta.total_seconds()))
    sign = "-" if total < 0 else ""
    total = abs(total)
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{sign}{minutes}m{seconds}s"
    return f"{sign}{seconds}s"
