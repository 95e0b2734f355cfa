"""
Dashboard date range resolution and time bucketing.
"""

from typing import Iterable, Optional
from datetime import datetime, timedelta, timezone, time

from ..models import Order, Granularity
from ..schemas import DateRange, DateRangePreset
from ..config import ANALYTICS_DEFAULTS
from .rules import effective_date


def _aware(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def _start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def _end_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.max, tzinfo=value.tzinfo)


def resolve_date_range(
    preset: Optional[DateRangePreset] = None,
    custom_from: Optional[datetime] = None,
    custom_to: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> DateRange:
    """
    Turn a dashboard preset into a concrete inclusive range.

    today       -> start to end of the current day
    last_week   -> 7 calendar days ending now
    last_month  -> 30 calendar days ending now
    custom      -> custom_from to the end of custom_to's day
    Anything else (including custom without both bounds) falls back to the
    last 7 days.
    """
    now = _aware(now or datetime.now(timezone.utc))

    if preset == DateRangePreset.TODAY:
        return DateRange(start=_start_of_day(now), end=_end_of_day(now))

    if preset == DateRangePreset.LAST_WEEK:
        return DateRange(start=_start_of_day(now - timedelta(days=6)), end=now)

    if preset == DateRangePreset.LAST_MONTH:
        return DateRange(start=_start_of_day(now - timedelta(days=29)), end=now)

    if preset == DateRangePreset.CUSTOM and custom_from and custom_to:
        start = _aware(custom_from)
        end = _end_of_day(_aware(custom_to))
        if end < start:
            raise ValueError("custom_to must not be before custom_from")
        return DateRange(start=start, end=end)

    return DateRange(start=_start_of_day(now - timedelta(days=6)), end=now)


def span_days(start: datetime, end: datetime) -> int:
    """Calendar days covered by [start, end], both ends included."""
    start = _aware(start).astimezone(timezone.utc)
    end = _aware(end).astimezone(timezone.utc)
    return (end.date() - start.date()).days + 1


def _granularity_for_span(days: int) -> Granularity:
    if days > ANALYTICS_DEFAULTS["monthly_granularity_after_days"]:
        return Granularity.MONTH
    return Granularity.DAY


def aggregation_granularity(date_range: DateRange) -> Granularity:
    """Month buckets for ranges longer than 60 days, day buckets otherwise."""
    return _granularity_for_span(span_days(date_range.start, date_range.end))


def granularity_for_orders(orders: Iterable[Order]) -> Granularity:
    """Granularity from the spread of order dates, used when no range was requested."""
    dates = [d for d in (effective_date(o) for o in orders) if d is not None]
    if not dates:
        return Granularity.DAY
    return _granularity_for_span(span_days(min(dates), max(dates)))


def bucket_key(value: datetime, granularity: Granularity) -> str:
    """YYYY-MM-DD for day buckets, YYYY-MM for month buckets."""
    value = _aware(value).astimezone(timezone.utc)
    if granularity == Granularity.MONTH:
        return value.strftime("%Y-%m")
    return value.strftime("%Y-%m-%d")


def in_range(value: Optional[datetime], date_range: DateRange) -> bool:
    if value is None:
        return False
    value = _aware(value)
    return _aware(date_range.start) <= value <= _aware(date_range.end)
