"""
Calendar-date helpers (UTC-anchored, YYYY-MM-DD)
"""
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, List, Optional, Tuple

from dateutil.relativedelta import relativedelta

from profit_ledger.exceptions import InvalidWindowError

_ISO_DAY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_iso_day(value: str, field: str = "date") -> date:
    """Parse a strict YYYY-MM-DD string"""
    if not isinstance(value, str) or not _ISO_DAY.match(value.strip()):
        raise InvalidWindowError(field, "expected YYYY-MM-DD", value)
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise InvalidWindowError(field, "not a calendar date", value)


def to_day_key(value: Any) -> Optional[date]:
    """
    Lenient day key for upstream rows.

    Accepts date/datetime objects or strings whose first ten characters
    are an ISO day. Returns None when no day can be read.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value or "")[:10]
    if not _ISO_DAY.match(text):
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def date_range_inclusive(start: date, end: date) -> List[date]:
    """Every day from start to end inclusive (empty if start > end)"""
    if start > end:
        return []
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


def month_start(day: date) -> date:
    return date(day.year, day.month, 1)


def month_end(day: date) -> date:
    return month_start(day) + relativedelta(months=1) - timedelta(days=1)


def month_starts_between(start: date, end: date) -> List[date]:
    """First-of-month keys for every month touched by [start, end]"""
    months = []
    cursor = month_start(start)
    while cursor <= end:
        months.append(cursor)
        cursor = cursor + relativedelta(months=1)
    return months


def full_month_span(start: date, end: date) -> Tuple[date, date]:
    """Expand a window to whole calendar months"""
    return month_start(start), month_end(end)


def default_window(days: int, today: Optional[date] = None) -> Tuple[date, date]:
    """
    Rolling window ending yesterday (UTC), so a partial "today" is never
    summarized.
    """
    today = today or utc_today()
    end = today - timedelta(days=1)
    return end - timedelta(days=days), end
