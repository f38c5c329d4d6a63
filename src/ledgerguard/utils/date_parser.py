"""Date parsing utilities for report periods."""

from datetime import date, timedelta
from typing import Callable, Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

PERIODS = ("this-month", "this-year", "this-week", "last-month", "last-year", "last-week")


def _start_of_week(day: date) -> date:
    return day - timedelta(days=day.weekday())


def _start_of_month(day: date) -> date:
    return day.replace(day=1)


def _start_of_year(day: date) -> date:
    return day.replace(month=1, day=1)


_RELATIVE_STARTS: dict[str, Callable[[date], date]] = {
    "today": lambda today: today,
    "yesterday": lambda today: today - timedelta(days=1),
    "this week": _start_of_week,
    "last week": lambda today: _start_of_week(today) - timedelta(days=7),
    "this month": _start_of_month,
    "last month": lambda today: _start_of_month(today) - relativedelta(months=1),
    "this year": _start_of_year,
    "last year": lambda today: _start_of_year(today) - relativedelta(years=1),
}


def parse_date(date_str: str, today: Optional[date] = None) -> date:
    """Parse an ISO, free-form or relative date.

    Relative forms ("today", "yesterday", "this month", "last year", ...)
    resolve to the first day of the named period. Everything else goes
    through ``dateutil``.

    Raises:
        ValueError: If date string cannot be parsed
    """
    text = date_str.strip().lower()
    today = today or date.today()

    relative = _RELATIVE_STARTS.get(text)
    if relative is not None:
        return relative(today)

    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError) as exc:
        raise ValueError(f"Could not parse date '{date_str}': {exc}")


def get_date_range(period: str, today: Optional[date] = None) -> tuple[date, date]:
    """Return the inclusive ``(start, end)`` dates of a named period.

    Current periods ("this-...") end today; past periods end on their last day.

    Raises:
        ValueError: If period string is not recognized
    """
    key = period.strip().lower()
    today = today or date.today()

    if key == "this-week":
        return _start_of_week(today), today
    if key == "this-month":
        return _start_of_month(today), today
    if key == "this-year":
        return _start_of_year(today), today

    if key == "last-week":
        start = _start_of_week(today) - timedelta(days=7)
        return start, start + timedelta(days=6)
    if key == "last-month":
        end = _start_of_month(today) - timedelta(days=1)
        return _start_of_month(end), end
    if key == "last-year":
        end = _start_of_year(today) - timedelta(days=1)
        return _start_of_year(end), end

    raise ValueError(f"Unknown period: '{period}'. Supported periods: {', '.join(PERIODS)}")
