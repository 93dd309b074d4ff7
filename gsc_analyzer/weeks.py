"""Week identity: mapping dates to week keys and comparing week labels.

Week labels reach us in several textual shapes ("2025/10/06 - 2025/10/12",
"2025-10-06 - 2025-10-12", "2025_10_06", "2025/1/6 - 2025/1/12", ...). Literal
string equality is never used to compare them; everything goes through
normalize_for_comparison().

Week start days use the 0=Sunday .. 6=Saturday convention.
"""

import logging
import re
from datetime import date, datetime, timedelta

from .exceptions import InvalidDateError
from .models import WeeklyKey

logger = logging.getLogger(__name__)

MONDAY = 1

# Spreadsheet serial dates count days from this epoch.
SHEETS_EPOCH = date(1899, 12, 30)
_MAX_SERIAL = 2958465  # 9999-12-31

_DATE_TOKEN = re.compile(r"(?<!\d)(\d{4})[/\-_.](\d{1,2})[/\-_.](\d{1,2})(?!\d)")
_FULL_DATE = re.compile(r"^(\d{4})[/\-_.](\d{1,2})[/\-_.](\d{1,2})(?:[T ].*)?$")
_NORMALIZED_DATE = re.compile(r"(?<!\d)(\d{4})-(\d{1,2})-(\d{1,2})(?!\d)")
_SEPARATORS = re.compile(r"[/_\-]+")
_WHITESPACE = re.compile(r"\s+")


def _from_serial(serial: float) -> date:
    if not 0 < serial <= _MAX_SERIAL:
        raise InvalidDateError(f"Serial date out of range: {serial}")
    return SHEETS_EPOCH + timedelta(days=int(serial))


def parse_date(value) -> date:
    """Parse a date from a date object, text, or spreadsheet serial number.

    Raises:
        InvalidDateError: If the value is not a valid calendar date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool) or value is None:
        raise InvalidDateError(f"Not a date: {value!r}")
    if isinstance(value, (int, float)):
        return _from_serial(value)

    text = str(value).strip()
    if not text:
        raise InvalidDateError("Empty date value")

    match = _FULL_DATE.match(text)
    if match:
        year, month, day = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError as e:
            raise InvalidDateError(f"Invalid date {text!r}: {e}") from e

    try:
        return _from_serial(float(text))
    except ValueError:
        raise InvalidDateError(f"Unrecognized date format: {text!r}") from None


def _check_week_start_day(week_start_day: int) -> None:
    if not 0 <= week_start_day <= 6:
        raise ValueError(f"week_start_day must be 0-6, got {week_start_day}")


def resolve_week_key(value, week_start_day: int = MONDAY) -> WeeklyKey:
    """Strict variant of week_key_for(); raises InvalidDateError."""
    _check_week_start_day(week_start_day)
    day = parse_date(value)
    # date.weekday() is Monday=0; shift to Sunday=0.
    day_of_week = (day.weekday() + 1) % 7
    days_to_subtract = ((day_of_week - week_start_day) + 7) % 7
    start = day - timedelta(days=days_to_subtract)
    return WeeklyKey(start, start + timedelta(days=6))


def week_key_for(value, week_start_day: int = MONDAY) -> WeeklyKey | None:
    """Get the week containing a date, or None if the date is invalid."""
    try:
        return resolve_week_key(value, week_start_day)
    except InvalidDateError as e:
        logger.debug("Cannot resolve week for %r: %s", value, e)
        return None


def range_for_key(key) -> tuple[date, date] | None:
    """Parse a week label into (start, end).

    Two date tokens give the interval as written; a single token is taken
    as the start of a 7-day week. Returns None when no range can be
    determined, which callers must not read as an empty range.
    """
    if isinstance(key, WeeklyKey):
        return key.start, key.end
    if key is None:
        return None

    dates = []
    for match in _DATE_TOKEN.finditer(str(key)):
        year, month, day = (int(part) for part in match.groups())
        try:
            dates.append(date(year, month, day))
        except ValueError:
            return None

    if len(dates) >= 2:
        return dates[0], dates[1]
    if len(dates) == 1:
        return dates[0], dates[0] + timedelta(days=6)
    return None


def week_key_from_label(key) -> WeeklyKey | None:
    """Parse a label into a WeeklyKey, or None if it is not a 7-day range."""
    parsed = range_for_key(key)
    if parsed is None:
        return None
    start, end = parsed
    if end != start + timedelta(days=6):
        return None
    return WeeklyKey(start, end)


def normalize_for_comparison(key) -> str:
    """Collapse formatting drift so equal weeks compare equal."""
    if isinstance(key, WeeklyKey):
        return key.normalized
    text = _WHITESPACE.sub("", str(key))
    text = _SEPARATORS.sub("-", text)
    text = _NORMALIZED_DATE.sub(
        lambda m: f"{m.group(1)}-{int(m.group(2)):02d}-{int(m.group(3)):02d}",
        text,
    )
    return text.lower()


def same_week(a, b) -> bool:
    """Check whether two week labels identify the same week."""
    return normalize_for_comparison(a) == normalize_for_comparison(b)


def is_numeric_not_a_week(value) -> bool:
    """Detect bare-number headers left behind by the spreadsheet."""
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    text = str(value).strip().replace(",", "")
    if not text:
        return False
    try:
        float(text)
    except ValueError:
        return False
    return True


def previous_week_key(key: WeeklyKey) -> WeeklyKey:
    """Get the 7-day window immediately before a week."""
    return WeeklyKey(key.start - timedelta(days=7), key.end - timedelta(days=7))


def last_complete_week(
    run_date: date | None = None,
    week_start_day: int = MONDAY,
) -> WeeklyKey:
    """Get the last fully completed week before run_date."""
    run_date = run_date or date.today()
    return previous_week_key(resolve_week_key(run_date, week_start_day))
