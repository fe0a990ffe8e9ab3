"""
Date-range filtering for resources and events.

A DateFilter selects every record whose [first_seen_at, last_seen_at]
interval overlaps the filter window. Presets mirror the ranges offered in
the date picker.
"""

import logging
from datetime import datetime, time, timedelta, timezone
from typing import Callable, Dict, Optional

from pydantic import BaseModel, field_validator

from .errors import DateFilterError

logger = logging.getLogger(__name__)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class DateFilter(BaseModel):
    start_date: datetime
    end_date: datetime

    @field_validator("start_date", "end_date")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return ensure_utc(value)


def validate_date_filter(date_filter: Optional[DateFilter]) -> None:
    """
    Validate a date filter.

    Raises:
        DateFilterError: If the filter is missing a bound or starts after it ends.
    """
    if date_filter is None:
        raise DateFilterError("DateFilter validation failed: DateFilter must be provided")

    if date_filter.start_date is None or date_filter.end_date is None:
        raise DateFilterError("DateFilter validation failed: DateFilter must have both start_date and end_date")

    if date_filter.start_date > date_filter.end_date:
        raise DateFilterError("DateFilter validation failed: start_date must be before or equal to end_date")


def is_date_filter_equal(a: DateFilter, b: DateFilter) -> bool:
    return a.start_date == b.start_date and a.end_date == b.end_date


def is_within_date_range(date_filter: DateFilter, first_seen_at: datetime, last_seen_at: datetime) -> bool:
    """Check whether a record's seen interval overlaps the filter window."""
    first_seen = ensure_utc(first_seen_at)
    last_seen = ensure_utc(last_seen_at)

    # Ended before the window opened
    if last_seen < date_filter.start_date:
        return False
    # Started after the window closed
    if first_seen > date_filter.end_date:
        return False

    return True


# --- Presets ---

def _start_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.min, tzinfo=value.tzinfo)


def _end_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.max, tzinfo=value.tzinfo)


def _sub_months(value: datetime, months: int) -> datetime:
    month_index = value.year * 12 + (value.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    # Clamp to the last day of the target month
    next_month = datetime(year + (month // 12), (month % 12) + 1, 1, tzinfo=value.tzinfo)
    last_day = (next_month - timedelta(days=1)).day
    return value.replace(year=year, month=month, day=min(value.day, last_day))


def _preset(start: Callable[[datetime], datetime]) -> Callable[[Optional[datetime]], DateFilter]:
    def build(now: Optional[datetime] = None) -> DateFilter:
        today = ensure_utc(now) if now else datetime.now(timezone.utc)
        return DateFilter(start_date=start(today), end_date=_end_of_day(today))
    return build


DATE_PRESETS: Dict[str, Callable[[Optional[datetime]], DateFilter]] = {
    "today": _preset(_start_of_day),
    "last7days": _preset(lambda d: _start_of_day(d - timedelta(days=7))),
    "last30days": _preset(lambda d: _start_of_day(d - timedelta(days=30))),
    "last3months": _preset(lambda d: _start_of_day(_sub_months(d, 3))),
    "last6months": _preset(lambda d: _start_of_day(_sub_months(d, 6))),
    "monthtodate": _preset(lambda d: _start_of_day(d.replace(day=1))),
    "yeartodate": _preset(lambda d: _start_of_day(d.replace(month=1, day=1))),
}


def date_filter_from_preset(preset_id: str, now: Optional[datetime] = None) -> DateFilter:
    try:
        return DATE_PRESETS[preset_id](now)
    except KeyError:
        raise DateFilterError(f"Unknown date preset: {preset_id}") from None


def default_date_filter(now: Optional[datetime] = None) -> DateFilter:
    """The last 30 days, ending at the end of today."""
    return DATE_PRESETS["last30days"](now)


def parse_date_filter(start: Optional[str], end: Optional[str], now: Optional[datetime] = None) -> DateFilter:
    """
    Build a filter from ISO strings, falling back to the default window.

    A stored or user-supplied filter that fails validation is replaced by the
    default with a warning rather than aborting.
    """
    if not start and not end:
        return default_date_filter(now)

    default = default_date_filter(now)
    try:
        date_filter = DateFilter(
            start_date=datetime.fromisoformat(start) if start else default.start_date,
            end_date=datetime.fromisoformat(end) if end else default.end_date,
        )
        validate_date_filter(date_filter)
        return date_filter
    except (ValueError, DateFilterError) as e:
        logger.warning(f"Invalid date filter ({e}), falling back to default")
        return default
