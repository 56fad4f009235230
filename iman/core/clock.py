"""
Date helpers. Every log is joined on a local calendar-day key (YYYY-MM-DD);
no timezone conversion happens anywhere, scheduled prayer times are already local.
"""
import calendar
import math
import re
from datetime import date, datetime, timedelta
from typing import List, Optional, Union

DateLike = Union[date, datetime, str, None]

MAX_RANGE_DAYS = 366

_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})")


def now() -> datetime:
    """Local wall-clock time."""
    return datetime.now()


def today() -> date:
    return now().date()


def to_date(value: DateLike = None) -> date:
    """Resolve None / date / datetime / 'YYYY-MM-DD...' to a date. Raises ValueError for bad strings."""
    if value is None:
        return today()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.strip()[:10])
    raise ValueError(f"Unsupported date value: {value!r}")


def date_key(value: DateLike = None) -> str:
    """Canonical day key for today or an explicit date."""
    return to_date(value).isoformat()


def is_today(value: DateLike) -> bool:
    return to_date(value) == today()


def parse_time_today(time_str: Optional[str], reference: Optional[datetime] = None) -> Optional[datetime]:
    """'HH:MM' (anything after is ignored) combined with today's date; None if unparsable."""
    if not time_str or not isinstance(time_str, str):
        return None
    match = _TIME_RE.match(time_str)
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    reference = reference or now()
    return reference.replace(hour=hour, minute=minute, second=0, microsecond=0)


def minutes_since(time_str: Optional[str], current: Optional[datetime] = None) -> Optional[int]:
    """Signed minutes from today's scheduled time to now (positive = after). None if unparsable."""
    current = current or now()
    scheduled = parse_time_today(time_str, current)
    if scheduled is None:
        return None
    seconds = (current - scheduled).total_seconds()
    return int(math.floor(seconds / 60 + 0.5))


def date_range(start: DateLike, end: DateLike, limit: int = MAX_RANGE_DAYS) -> List[date]:
    """Inclusive list of days from start to end, capped at limit days counted back from end."""
    d0, d1 = to_date(start), to_date(end)
    if d1 < d0:
        return []
    span = (d1 - d0).days + 1
    if span > limit:
        d0 = d1 - timedelta(days=limit - 1)
        span = limit
    return [d0 + timedelta(days=i) for i in range(span)]


def last_n_days(n: int, end: DateLike = None) -> List[date]:
    """The n days ending at end (inclusive), oldest first."""
    if n <= 0:
        return []
    d1 = to_date(end)
    return date_range(d1 - timedelta(days=n - 1), d1)


def month_days(year: int, month: int) -> List[date]:
    _, last = calendar.monthrange(year, month)
    return [date(year, month, day) for day in range(1, last + 1)]
