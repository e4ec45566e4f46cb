# campus_hub/utils/time.py
"""
Timezone helpers for event dates, which are stored as local calendar
dates and clock times.
"""

from datetime import date, datetime, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def resolve_timezone(name):
    """Return a tzinfo for an IANA zone name, defaulting to UTC"""
    if not name or name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown EVENT_TIMEZONE '{name}'") from exc


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def today_in(tz: tzinfo, now: datetime | None = None) -> date:
    """Calendar date in ``tz`` at ``now`` (defaults to the current instant)"""
    return (now or utcnow()).astimezone(tz).date()
