"""Date helpers shared by the engines. Dates travel as ISO strings."""

from datetime import date, datetime, timedelta

DATE_FORMAT = "%Y-%m-%d"


def parse_date(value: str | date) -> date:
    """Parse YYYY-MM-DD (a date passes through unchanged)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value, DATE_FORMAT).date()


def iso(value: date) -> str:
    return value.strftime(DATE_FORMAT)


def days_between(a: str | date, b: str | date) -> int:
    """Absolute whole-day distance between two dates."""
    return abs((parse_date(a) - parse_date(b)).days)


def within_prior_days(value: str, target: str | date, days: int) -> bool:
    """True if ``value`` lies in [target - days, target]."""
    delta = (parse_date(target) - parse_date(value)).days
    return 0 <= delta <= days


def shift(value: str | date, days: int) -> str:
    return iso(parse_date(value) + timedelta(days=days))
