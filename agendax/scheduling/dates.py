from __future__ import annotations

import calendar
import re
from datetime import date, datetime, timedelta
from typing import List, Mapping, Optional

# Canonical date token: YYYY-MM-DD. Lexicographic order equals chronological order.
DATE_TOKEN = r"\d{4}-\d{2}-\d{2}"
DATE_TOKEN_PATTERN = re.compile(rf"^{DATE_TOKEN}$")
_LEADING_TOKEN_PATTERN = re.compile(rf"^({DATE_TOKEN})")

_WEEKDAYS_SHORT = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


class InvalidDate(ValueError):
    pass


def format_date(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def parse_date(token: str) -> date:
    """Parse a canonical token, rejecting anything but exactly 4+2+2 digits."""
    if not isinstance(token, str) or not DATE_TOKEN_PATTERN.match(token):
        raise InvalidDate(f"Not a YYYY-MM-DD date: {token!r}")
    year, month, day = (int(part) for part in token.split("-"))
    try:
        return date(year, month, day)
    except ValueError as exc:
        raise InvalidDate(f"Not a calendar date: {token!r}") from exc


def is_valid_date(token: str) -> bool:
    try:
        parse_date(token)
    except InvalidDate:
        return False
    return True


def compare_dates(a: str, b: str) -> int:
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def add_days(value: date, days: int) -> date:
    return value + timedelta(days=days)


def shift_date(token: str, days: int) -> str:
    return format_date(add_days(parse_date(token), days))


def today_token() -> str:
    return format_date(date.today())


def calendar_grid(year: int, month: int, first_weekday: int = calendar.SUNDAY) -> List[List[Optional[date]]]:
    """Return the month as weeks of 7 cells; days outside the month are None.

    ``month`` is 1-based. ``first_weekday`` uses the ``calendar`` module's
    numbering (0 = Monday ... 6 = Sunday) and becomes column 0.
    """
    cal = calendar.Calendar(firstweekday=first_weekday)
    return [
        [date(year, month, day) if day else None for day in week]
        for week in cal.monthdayscalendar(year, month)
    ]


def weekday_short(token: str) -> str:
    return _WEEKDAYS_SHORT[parse_date(token).weekday()]


def format_date_with_weekday(token: str) -> str:
    return f"{token} ({weekday_short(token)})"


def format_date_short(token: str, reference: Optional[str] = None) -> str:
    """Drop the year when it matches the reference (today by default)."""
    reference = reference or today_token()
    if token[:4] == reference[:4]:
        return token[5:]
    return token


def normalize_date_value(value: object) -> Optional[str]:
    """Normalize a metadata date field to a canonical token, or None.

    Accepts a string starting with a date token (ISO datetimes included), a
    ``date``/``datetime`` as produced by YAML loaders, or a mapping carrying
    integer ``year``/``month``/``day``.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return format_date(value.date())
    if isinstance(value, date):
        return format_date(value)
    if isinstance(value, str):
        match = _LEADING_TOKEN_PATTERN.match(value.strip())
        if match and is_valid_date(match.group(1)):
            return match.group(1)
        return None
    if isinstance(value, Mapping):
        parts = [value.get(key) for key in ("year", "month", "day")]
        if not all(isinstance(part, int) and not isinstance(part, bool) for part in parts):
            return None
        try:
            return format_date(date(*parts))
        except ValueError:
            return None
    return None
