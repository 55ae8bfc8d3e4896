from __future__ import annotations

"""Parsing of user-entered times and dates, and building Discord <t:...> tags for them."""

import re
from datetime import date as date_value
from datetime import datetime
from datetime import time as time_value
from datetime import timedelta
from datetime import timezone
from zoneinfo import ZoneInfo
from zoneinfo import ZoneInfoNotFoundError


DISCORD_TIMESTAMP_STYLES = {"t", "T", "d", "D", "f", "F", "R"}
DURATION_PART_PATTERN = re.compile(
    r"(\d+)\s*(weeks?|w|days?|d|hours?|hrs?|h|minutes?|mins?|m|seconds?|secs?|s)(?![a-z])",
    flags=re.I,
)
DURATION_FULL_PATTERN = re.compile(
    r"^\s*(?:\d+\s*(?:weeks?|w|days?|d|hours?|hrs?|h|minutes?|mins?|m|seconds?|secs?|s)(?![a-z])\s*)+$",
    flags=re.I,
)
_UNIT_SECONDS = {
    "w": 7 * 24 * 3600,
    "d": 24 * 3600,
    "h": 3600,
    "m": 60,
    "s": 1,
}
_DATETIME_FORMATS = (
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M",
    "%d.%m.%Y %H:%M",
    "%d.%m.%y %H:%M",
)
_DATE_FORMATS = (
    "%Y-%m-%d",
    "%d.%m.%Y",
    "%d.%m.%y",
)


def _validate_style(style: str) -> str:
    clean = str(style or "").strip() or "f"
    if clean not in DISCORD_TIMESTAMP_STYLES:
        raise ValueError(f"Invalid Discord timestamp style: {clean}")
    return clean


def _validate_hour_minute(hour: int, minute: int) -> tuple[int, int]:
    try:
        hh = int(hour)
        mm = int(minute)
    except Exception as exc:
        raise ValueError(f"Invalid hour/minute: {hour}:{minute}") from exc
    if hh < 0 or hh > 23:
        raise ValueError(f"Invalid hour: {hour} (expected 0..23)")
    if mm < 0 or mm > 59:
        raise ValueError(f"Invalid minute: {minute} (expected 0..59)")
    return hh, mm


def _require_aware_datetime(value: datetime, *, arg_name: str) -> datetime:
    if not isinstance(value, datetime):
        raise ValueError(f"{arg_name} must be a datetime")
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{arg_name} must be timezone-aware")
    return value


def _require_timezone(timezone_name: str) -> ZoneInfo:
    clean = str(timezone_name or "").strip()
    if not clean:
        raise ValueError("Unknown timezone_name: ''")
    try:
        return ZoneInfo(clean)
    except ZoneInfoNotFoundError as exc:
        raise ValueError(f"Unknown timezone_name: {clean}") from exc


def _local_now(timezone_name: str, now: datetime | None) -> datetime:
    tz = _require_timezone(timezone_name)
    if now is None:
        return datetime.now(tz)
    return _require_aware_datetime(now, arg_name="now").astimezone(tz)


def format_discord_timestamp(dt: datetime, style: str = "f") -> str:
    aware = _require_aware_datetime(dt, arg_name="dt")
    style_clean = _validate_style(style)
    return f"<t:{int(aware.timestamp())}:{style_clean}>"


def format_unix_timestamp(ts: int | float, style: str = "f") -> str:
    return format_discord_timestamp(datetime.fromtimestamp(float(ts), tz=timezone.utc), style=style)


def parse_duration(text: str) -> timedelta | None:
    """
    Parse compact durations like "90m", "1h30m", "2d 4h" or "1 week".

    Returns None when the text is not a duration at all.
    """
    raw = str(text or "").strip()
    if not raw or not DURATION_FULL_PATTERN.match(raw):
        return None
    total = 0
    for amount, unit in DURATION_PART_PATTERN.findall(raw):
        total += int(amount) * _UNIT_SECONDS[unit[0].lower()]
    if total <= 0:
        raise ValueError(f"Duration must be positive: {raw}")
    return timedelta(seconds=total)


def parse_local_datetime(text: str, timezone_name: str, now: datetime | None = None) -> datetime:
    """
    Parse an absolute date or date+time in timezone_name.

    A bare date means local midnight of that day. A bare "HH:MM" means the
    next occurrence of that wall-clock time.
    """
    raw = re.sub(r"\s+", " ", str(text or "").strip())
    tz = _require_timezone(timezone_name)

    hm = re.fullmatch(r"(\d{1,2}):(\d{2})", raw)
    if hm:
        hh, mm = _validate_hour_minute(int(hm.group(1)), int(hm.group(2)))
        now_local = _local_now(timezone_name, now)
        candidate = datetime.combine(now_local.date(), time_value(hh, mm), tzinfo=tz)
        if candidate <= now_local:
            candidate = candidate + timedelta(days=1)
        return candidate

    for fmt in _DATETIME_FORMATS:
        try:
            return datetime.strptime(raw, fmt).replace(tzinfo=tz)
        except ValueError:
            continue
    for fmt in _DATE_FORMATS:
        try:
            day = datetime.strptime(raw, fmt).date()
        except ValueError:
            continue
        return datetime.combine(day, time_value(0, 0), tzinfo=tz)
    raise ValueError(f"Could not understand date/time: {raw!r}")


def parse_duration_or_date(text: str, *, timezone_name: str, now: datetime | None = None) -> datetime:
    """Return the UTC instant for a duration from now or an absolute local date(time)."""
    if now is None:
        now_utc = datetime.now(timezone.utc)
    else:
        now_utc = _require_aware_datetime(now, arg_name="now").astimezone(timezone.utc)
    delta = parse_duration(text)
    if delta is not None:
        return now_utc + delta
    return parse_local_datetime(text, timezone_name, now=now_utc).astimezone(timezone.utc)


def parse_birthday(text: str) -> date_value:
    raw = str(text or "").strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue
    dm = re.fullmatch(r"(\d{1,2})\.(\d{1,2})\.?", raw)
    if dm:
        # year is irrelevant for wishes; 2000 is a leap year so 29.02 is kept
        return date_value(2000, int(dm.group(2)), int(dm.group(1)))
    raise ValueError(f"Could not understand date: {raw!r} (try YYYY-MM-DD or DD.MM.YYYY)")


def local_today(timezone_name: str, now: datetime | None = None) -> date_value:
    return _local_now(timezone_name, now).date()


def seconds_until_next_local_midnight(timezone_name: str, now: datetime | None = None) -> float:
    now_local = _local_now(timezone_name, now)
    tz = _require_timezone(timezone_name)
    tomorrow = now_local.date() + timedelta(days=1)
    midnight = datetime.combine(tomorrow, time_value(0, 0), tzinfo=tz)
    return max(0.0, (midnight - now_local).total_seconds())
