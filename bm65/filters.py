"""Date range, time-of-day and count filters for measurement collections.

All filters expect a collection sorted latest first (see bm65.merge)
and return a new list.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from datetime import datetime

from bm65.exceptions import InvalidTimeOrDateSpecError
from bm65.models import Measurement, SimpleTime

logger = logging.getLogger(__name__)

# Last minute of a day (23:59)
LAST_MINUTE_OF_DAY = 24 * 60 - 1

DATE_PATTERN = re.compile(
    r"^\s*(\d{1,4})-(\d{1,2})-(\d{1,2})"
    r"(?:[ T](\d{1,2}):(\d{1,2})(?::(\d{1,2}))?)?\s*$"
)
TIME_PATTERN = re.compile(r"^\s*(\d{1,2})(?::(\d{1,2}))?\s*$")


def parse_date(value: str | None) -> datetime | None:
    """Parse a date given on the command line.

    Accepted forms are ``YYYY-MM-DD``, ``YYYY-MM-DD HH:MM`` and
    ``YYYY-MM-DD HH:MM:SS``; missing time fields default to zero.

    Args:
        value: Date string, empty or None for no bound

    Returns:
        Parsed date, or None when no value was given

    Raises:
        InvalidTimeOrDateSpecError: String is not a valid date
    """
    if not value:
        return None

    match = DATE_PATTERN.match(value)
    if not match:
        raise InvalidTimeOrDateSpecError(f"Could not parse date: {value!r}")

    fields = [int(group) if group else 0 for group in match.groups()]
    try:
        date = datetime(*fields)
    except ValueError as e:
        raise InvalidTimeOrDateSpecError(f"Invalid date {value!r}: {e}") from e

    if match.group(4) is None:
        logger.debug(f"Date {value!r} parsed without time of day")
    return date


def parse_time(value: str | None) -> SimpleTime | None:
    """Parse a time of day given as ``HH:MM`` or ``HH``.

    Raises:
        InvalidTimeOrDateSpecError: String is not a valid time of day
    """
    if not value:
        return None

    match = TIME_PATTERN.match(value)
    if not match:
        raise InvalidTimeOrDateSpecError(f"Could not parse time: {value!r}")

    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    if hour > 23 or minute > 59:
        raise InvalidTimeOrDateSpecError(f"Time of day out of range: {value!r}")
    return SimpleTime(hour, minute)


def filter_by_date(
    items: Sequence[Measurement],
    from_date: datetime | None = None,
    to_date: datetime | None = None,
) -> list[Measurement]:
    """Keep measurements taken at or after ``from_date`` and before ``to_date``.

    The collection is sorted latest first, so the matching measurements
    form one contiguous run: everything at or after ``to_date`` sits at the
    front and everything before ``from_date`` at the back.

    Args:
        items: Measurements sorted latest first
        from_date: Inclusive lower bound, None for no bound
        to_date: Exclusive upper bound, None for no bound

    Returns:
        Measurements inside the date range
    """
    start = 0
    if to_date is not None:
        logger.info(f"Filtering out records from {to_date}...")
        upper = _date_key(to_date)
        while start < len(items) and _measurement_key(items[start]) >= upper:
            start += 1

    end = len(items)
    if from_date is not None:
        logger.info(f"Filtering out records before {from_date}...")
        lower = _date_key(from_date)
        end = start
        while end < len(items) and _measurement_key(items[end]) >= lower:
            end += 1

    return list(items[start:end])


def _date_key(date: datetime) -> tuple[int, ...]:
    return (date.year, date.month, date.day, date.hour, date.minute, date.second)


def _measurement_key(measurement: Measurement) -> tuple[int, ...]:
    # Compared field by field: device values need not form a valid datetime
    return (*measurement.sort_key, 0)


def in_time_window(
    measurement: Measurement,
    from_time: SimpleTime | None = None,
    to_time: SimpleTime | None = None,
) -> bool:
    """Check whether a measurement falls inside a time-of-day window.

    Both bounds are inclusive. When ``from_time`` is later than
    ``to_time`` the window wraps past midnight.
    """
    minute = measurement.minute_of_day
    lower = from_time.minutes if from_time is not None else 0
    upper = to_time.minutes if to_time is not None else LAST_MINUTE_OF_DAY

    if lower > upper:
        return minute >= lower or minute <= upper
    return lower <= minute <= upper


def filter_by_time_of_day(
    items: Sequence[Measurement],
    from_time: SimpleTime | None = None,
    to_time: SimpleTime | None = None,
) -> list[Measurement]:
    """Keep measurements taken inside a time-of-day window.

    Args:
        items: Measurements to filter
        from_time: Inclusive start of the window, None for midnight
        to_time: Inclusive end of the window, None for 23:59

    Returns:
        Measurements inside the window, in input order
    """
    if from_time is None and to_time is None:
        return list(items)

    logger.info(f"Keeping records between {from_time or '00:00'} and {to_time or '23:59'}")
    return [m for m in items if in_time_window(m, from_time, to_time)]


def apply_limit(items: Sequence[Measurement], limit: int = 0) -> list[Measurement]:
    """Keep the first ``limit`` measurements (the latest ones).

    A limit of zero or less keeps everything.
    """
    if limit > 0 and len(items) > limit:
        return list(items[:limit])
    return list(items)
