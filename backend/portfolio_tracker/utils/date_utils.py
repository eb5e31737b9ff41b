# backend/portfolio_tracker/utils/date_utils.py
"""
Date utility functions.

All internal date arithmetic works on `datetime.date` values that represent
UTC calendar days. Timestamps are converted to their UTC day before any
comparison, so a trade at 23:30 in New York lands on the next UTC day and no
local timezone ever shifts a date.

Usage:
    from portfolio_tracker.utils.date_utils import date_range, parse_iso_date

    days = date_range(parse_iso_date("2024-01-01"), parse_iso_date("2024-01-31"))
"""

from datetime import date, datetime, timedelta, timezone

from portfolio_tracker.services.exceptions import InvalidRangeError, ValidationError


def parse_iso_date(value: date | str, field: str = "date") -> date:
    """
    Parse a boundary date in YYYY-MM-DD form.

    `datetime` values are reduced to their UTC day; `date` values pass
    through unchanged.

    Raises:
        ValidationError: If the string is not a valid YYYY-MM-DD date
    """
    if isinstance(value, datetime):
        return to_utc_date(value)
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip())
    except (AttributeError, ValueError):
        raise ValidationError(
            f"Invalid {field}: '{value}'. Use YYYY-MM-DD",
            field=field,
        )


def to_utc_date(timestamp: datetime) -> date:
    """
    Return the UTC calendar day of a timestamp.

    Naive timestamps are treated as already being in UTC.
    """
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(timezone.utc)
    return timestamp.date()


def utc_today() -> date:
    """Current UTC calendar day."""
    return datetime.now(timezone.utc).date()


def date_range(start_date: date, end_date: date) -> list[date]:
    """
    Contiguous calendar days from start_date to end_date, both inclusive.

    Returns an empty list when start_date is after end_date.

    Example:
        >>> date_range(date(2024, 1, 30), date(2024, 2, 1))
        [date(2024, 1, 30), date(2024, 1, 31), date(2024, 2, 1)]
    """
    return [start_date + timedelta(days=i) for i in range(day_count(start_date, end_date))]


def day_count(start_date: date, end_date: date) -> int:
    """Number of calendar days in [start_date, end_date]."""
    return (end_date - start_date).days + 1


def validate_date_range(start_date: date, end_date: date, today: date) -> None:
    """
    Reject ranges that cannot be valued.

    Raises:
        InvalidRangeError: If start_date is in the future or after end_date
    """
    if start_date > today:
        raise InvalidRangeError(
            f"Start date {start_date} cannot be in the future",
            start_date=start_date,
            end_date=end_date,
        )
    if start_date > end_date:
        raise InvalidRangeError(
            f"Start date {start_date} is after end date {end_date}",
            start_date=start_date,
            end_date=end_date,
        )


def validate_range_size(start_date: date, end_date: date, max_days: int) -> None:
    """
    Reject ranges longer than max_days.

    Reversed ranges pass through; validate_date_range reports those.

    Raises:
        ValidationError: If the range spans more than max_days days
    """
    if start_date > end_date:
        return
    if day_count(start_date, end_date) > max_days:
        raise ValidationError(f"Date range exceeds {max_days} days", field="end_date")
