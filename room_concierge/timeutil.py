"""Datetime helpers shared by the booking engine and its surfaces."""

import math
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from dateutil import parser as dateutil_parser

from room_concierge.errors import ValidationError

UTC = timezone.utc


def parse_instant(value: str, default_tz: ZoneInfo) -> datetime:
    """Parse an ISO 8601 string into an aware UTC datetime.

    Naive values are interpreted in ``default_tz``.
    """
    if not value or not value.strip():
        raise ValidationError("A start time is required")
    try:
        dt = dateutil_parser.isoparse(value.strip())
    except ValueError:
        raise ValidationError(f"'{value}' is not a valid ISO 8601 date-time")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=default_tz)
    return dt.astimezone(UTC)


def parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        raise ValidationError(f"'{value}' is not a valid ISO 8601 date")


def require_aware(value: datetime, label: str = "datetime") -> None:
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValidationError(f"{label} must carry a timezone")


def parse_hhmm(value: str) -> time:
    hours, minutes = map(int, value.split(":"))
    return time(hour=hours, minute=minutes)


def round_up(value: datetime, minutes: int) -> datetime:
    """Round up to the next ``minutes`` boundary (unchanged if already on one)."""
    step = minutes * 60
    base = value.replace(second=0, microsecond=0)
    if base < value:
        base += timedelta(minutes=1)
    epoch_seconds = base.timestamp()
    rounded = math.ceil(epoch_seconds / step) * step
    return base + timedelta(seconds=rounded - epoch_seconds)


def local_datetime(day: date, at: time, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, at, tzinfo=tz)


def is_workday(day: date, workdays: list[int]) -> bool:
    """``workdays`` uses ISO numbering (1=Monday, 7=Sunday)."""
    return day.isoweekday() in workdays


def next_workday(day: date, workdays: list[int]) -> date:
    """Return ``day`` if it is a workday, otherwise the following workday."""
    if not workdays:
        raise ValidationError("At least one workday must be configured")
    current = day
    while not is_workday(current, workdays):
        current += timedelta(days=1)
    return current


def iter_days(start: date, end: date):
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
