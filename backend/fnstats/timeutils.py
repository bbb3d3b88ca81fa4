from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

DAY_SECONDS = 86400

_UNIT_DAYS = {"day": 1, "week": 7, "month": 30}


def _utc(timestamp: int) -> datetime:
    return datetime.fromtimestamp(int(timestamp), tz=timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def midnight_utc(timestamp: int) -> int:
    """Midnight UTC at the start of the day containing ``timestamp``."""
    moment = _utc(timestamp).replace(hour=0, minute=0, second=0, microsecond=0)
    return int(moment.timestamp())


def end_of_day_utc(timestamp: int) -> int:
    return midnight_utc(timestamp) + DAY_SECONDS - 1


def tomorrow_midnight_utc(now: Optional[datetime] = None) -> int:
    """Midnight UTC at the end of today; upstream snapshots run up to here."""
    now = now or utc_now()
    today = now.astimezone(timezone.utc).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    return int((today + timedelta(days=1)).timestamp())


def last_time_window(
    count: int, unit: str, now: Optional[datetime] = None
) -> Dict[str, int]:
    if unit not in _UNIT_DAYS:
        raise ValueError(f"Unsupported time unit: {unit}")
    if count < 1:
        raise ValueError("Time window count must be at least 1.")
    end_time = tomorrow_midnight_utc(now)
    start_time = end_time - count * _UNIT_DAYS[unit] * DAY_SECONDS
    return {"start_time": start_time, "end_time": end_time}


def format_time(timestamp: int) -> str:
    return _utc(timestamp).strftime("%b %d, %Y, %H:%M:%S UTC")


def parse_time(value: str) -> int:
    """Parse an epoch-seconds string or an ISO-8601 date/datetime."""
    text = str(value).strip()
    if not text:
        raise ValueError("Empty time value.")
    if text.lstrip("-").isdigit():
        return int(text)
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValueError(f"Invalid date format: {value}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())
