"""Tolerant parsing of the timetable's date and time strings.

Every helper returns ``None`` when the input cannot be resolved; callers
exclude the offending lesson, exam or day instead of failing.
"""

import calendar
import re
from datetime import date, time, timedelta

from .logging import get_logger

log = get_logger(__name__)

# H:mm / HH:mm
_TIME_24H = re.compile(r"^(\d{1,2}):(\d{2})$")
# h:mma / h:mm a / hh:mma / hh:mm a
_TIME_12H = re.compile(r"^(\d{1,2}):(\d{2}) ?(AM|PM)$")
# d/M/yyyy, dd/MM/yyyy, d/MM/yyyy, dd/M/yyyy
_DAY_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")

WEEKDAYS = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday']


def normalize_time_string(raw: str) -> str:
    """Collapse non-breaking spaces and whitespace runs, then upper-case."""
    cleaned = raw.replace("\u00a0", " ")
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    return cleaned.upper()


def parse_time(raw: str | None) -> time | None:
    """
    Parse a wall-clock time written in 24-hour or 12-hour form.

    Accepts "9:30", "09:30", "9:30AM", "9:30 am", "09:30PM" and the like.
    A 24-hour hour must be 0-23, a 12-hour hour 0-12; minutes are always two
    digits.

    Args:
        raw: The time string as delivered by the phone

    Returns:
        The parsed time, or None if the string matches no accepted form
    """
    if raw is None or not raw.strip():
        return None

    cleaned = normalize_time_string(raw)

    match = _TIME_24H.match(cleaned)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        if hour <= 23 and minute <= 59:
            return time(hour, minute)

    match = _TIME_12H.match(cleaned)
    if match:
        hour, minute, meridiem = int(match.group(1)), int(match.group(2)), match.group(3)
        # Clock-hour 0 behaves like 12, so "0:30AM" is 00:30
        if hour <= 12 and minute <= 59:
            hour = hour % 12
            if meridiem == "PM":
                hour += 12
            return time(hour, minute)

    log.debug("time_parse_failed", raw=raw, cleaned=cleaned)
    return None


def parse_exam_date(raw: str | None) -> date | None:
    """
    Parse an exam date in DD-MM-YYYY, DD/MM/YYYY or YYYY-MM-DD form.

    The order is decided by which token has four characters.
    """
    if raw is None or not raw.strip():
        return None

    parts = [p.strip() for p in re.split(r"[-/]", raw.strip()) if p.strip()]
    if len(parts) != 3:
        log.debug("exam_date_parse_failed", raw=raw)
        return None

    a, b, c = parts
    try:
        if len(a) == 4:
            return date(int(a), int(b), int(c))
        return date(int(c), int(b), int(a))
    except ValueError as e:
        log.debug("exam_date_parse_failed", raw=raw, error=str(e))
        return None


def parse_day_label_date(label: str | None) -> date | None:
    """
    Parse the trailing date token of a day label such as "Monday 09/12/2025".

    A day of 29-31 beyond the length of the month resolves to the month's last day.
    """
    if label is None or not label.strip():
        return None

    date_part = label.split()[-1]
    match = _DAY_DATE.match(date_part)
    if not match:
        return None

    day, month, year = (int(g) for g in match.groups())
    if not (year >= 1 and 1 <= month <= 12 and 1 <= day <= 31):
        log.debug("day_label_date_invalid", label=label, date_part=date_part)
        return None
    # Days past the end of the month clamp to its last day (31/02 is 28/02)
    return date(year, month, min(day, calendar.monthrange(year, month)[1]))


def infer_date_from_day_name(label: str | None, today: date) -> date | None:
    """
    Find the next occurrence, on or after ``today``, of the weekday named in ``label``.

    The first weekday name contained in the label wins, checked Monday to Sunday.
    """
    if not label:
        return None

    lowered = label.lower()
    target = next((i for i, name in enumerate(WEEKDAYS) if name in lowered), None)
    if target is None:
        return None

    for offset in range(8):
        candidate = today + timedelta(days=offset)
        if candidate.weekday() == target:
            return candidate
    return None


def resolve_day_date(label: str | None, today: date) -> date | None:
    """Resolve a day label to a date: explicit trailing date first, weekday name second."""
    resolved = parse_day_label_date(label)
    if resolved is not None:
        return resolved
    return infer_date_from_day_name(label, today)
