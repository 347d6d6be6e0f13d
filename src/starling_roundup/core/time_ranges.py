from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone


@dataclass(frozen=True)
class DateRange:
    dt_from: datetime
    dt_to: datetime

    def to_starling(self) -> tuple[str, str]:
        return format_starling_timestamp(self.dt_from), format_starling_timestamp(self.dt_to)


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _as_utc(dt: datetime) -> datetime:
    # naive datetimes are taken to be UTC already
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def range_last_days(days: int, now: datetime | None = None) -> DateRange:
    """Window ending at `now` and starting exactly `days` * 24h earlier."""
    if days < 1:
        raise ValueError("days must be >= 1")
    end = _as_utc(now) if now is not None else utc_now()
    return DateRange(dt_from=end - timedelta(days=days), dt_to=end)


def format_starling_timestamp(dt: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision, e.g. 2025-05-20T10:15:30.123Z"""
    dt = _as_utc(dt)
    return f"{dt:%Y-%m-%dT%H:%M:%S}.{dt.microsecond // 1000:03d}Z"
