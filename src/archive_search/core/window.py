"""
Time window normalization.

Turns the user's start/end inputs into a UTC, second-precision half-open
window. Date-only inputs cover whole days; a missing end means the window is
open and tracks "now" minus a short indexing margin.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional

from dateutil import parser as date_parser

from archive_search.core.errors import InvalidInput
from archive_search.core.models import TimeWindow
from archive_search.utils.time import utc_now

OPEN_END_MARGIN = timedelta(seconds=10)
END_OF_DAY = time(23, 59, 59)

# Two parse defaults with different hours; a string that yields the same hour
# under both carried its own time of day.
_DEFAULT_A = datetime(2000, 1, 1, 0, 0, 0)
_DEFAULT_B = datetime(2000, 1, 1, 1, 1, 1)


def normalize_window(
    start: Any,
    end: Any = None,
    now: Optional[datetime] = None,
    margin: timedelta = OPEN_END_MARGIN,
) -> TimeWindow:
    """
    Normalize user-supplied start/end inputs.

    Args:
        start: Date, datetime, or date string. Required.
        end: Same types as start, or None for an open window.
        now: Reference "now" for open windows (defaults to the current UTC time).
        margin: How far behind "now" an open window ends.

    Returns:
        The normalized TimeWindow.

    Raises:
        InvalidInput: If start is missing or either input cannot be parsed.
    """
    if start is None or (isinstance(start, str) and not start.strip()):
        raise InvalidInput("Start time cannot be empty")

    start_ts = parse_time(start, end_of_day=False)

    if end is None:
        reference = now or utc_now()
        end_ts = _to_utc(reference) - margin
        is_open = True
    else:
        end_ts = parse_time(end, end_of_day=True)
        is_open = False

    if end_ts <= start_ts:
        raise InvalidInput(f"End time {end_ts.isoformat()} is not after start time {start_ts.isoformat()}")

    return TimeWindow(start=start_ts, end=end_ts, is_open=is_open)


def parse_time(value: Any, end_of_day: bool = False) -> datetime:
    """
    Parse one time input into an aware UTC datetime with whole seconds.

    Date-only inputs land on 00:00:00, or on 23:59:59 when end_of_day is set.
    """
    if isinstance(value, datetime):
        return _to_utc(value)

    if isinstance(value, date):
        return _expand_date(value, end_of_day)

    if not isinstance(value, str):
        raise InvalidInput(f"start/end time needs to be a date, datetime, or valid date string, got {type(value).__name__}")

    text = value.strip()
    try:
        parsed_a = date_parser.parse(text, default=_DEFAULT_A)
        parsed_b = date_parser.parse(text, default=_DEFAULT_B)
    except (date_parser.ParserError, ValueError, OverflowError) as e:
        raise InvalidInput(f"Cannot parse {value!r} as a timestamp: {e}") from e

    if parsed_a.hour != parsed_b.hour:
        return _expand_date(parsed_a.date(), end_of_day)

    return _to_utc(parsed_a)


def parse_created_at(value: Any) -> Optional[datetime]:
    """Parse a record's creation timestamp; None when absent or unreadable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return _to_utc(value)
    text = str(value).strip()
    if not text:
        return None
    try:
        return _to_utc(date_parser.isoparse(text))
    except (ValueError, OverflowError):
        return None


def _expand_date(day: date, end_of_day: bool) -> datetime:
    moment = END_OF_DAY if end_of_day else time(0, 0, 0)
    return datetime.combine(day, moment, tzinfo=timezone.utc)


def _to_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).replace(microsecond=0)
