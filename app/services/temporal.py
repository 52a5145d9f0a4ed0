"""
Date/time normalisation for values coming from Open Dental and from the
voice assistant. Everything here is zone-naive: Open Dental reports clinic
local wall-clock times and we never do offset arithmetic on them.
"""
import re
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Mapping, Optional, Union

from dateutil import parser as date_parser

from app.models.availability_models import DATETIME_FORMAT

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
NUMERIC_DATE_RE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})$")
SPACE_DATETIME_RE = re.compile(r"^(\d{4}-\d{2}-\d{2}) (\d{1,2}:\d{2}(:\d{2}(\.\d+)?)?)$")
TIME_ONLY_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")
MONTH_NAME_RE = re.compile(r"^([A-Za-z]+)\.?\s+(\d{1,2})(?:st|nd|rd|th)?,?\s+(\d{4})$")
DAY_MONTH_NAME_RE = re.compile(r"^(\d{1,2})(?:st|nd|rd|th)?\s+([A-Za-z]+)\.?,?\s+(\d{4})$")

MONTHS = {
    "january": 1, "jan": 1,
    "february": 2, "feb": 2,
    "march": 3, "mar": 3,
    "april": 4, "apr": 4,
    "may": 5,
    "june": 6, "jun": 6,
    "july": 7, "jul": 7,
    "august": 8, "aug": 8,
    "september": 9, "sep": 9, "sept": 9,
    "october": 10, "oct": 10,
    "november": 11, "nov": 11,
    "december": 12, "dec": 12,
}

# Fields that carry the owning date when a schedule only reports a time of day
SCHEDULE_DATE_FIELDS = ("SchedDate", "schedDate", "sched_date", "DateSched", "Date", "date")


def _safe_date(year: int, month: int, day: int) -> str:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return ""


def normalize_date_only(value: Any) -> str:
    """
    Normalise a date to 'YYYY-MM-DD'.
    Accepts ISO dates, MM/DD/YYYY, MM-DD-YYYY and anything dateutil can parse.
    Returns "" when the value can't be read; callers substitute their default.
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if value is None:
        return ""

    text = str(value).strip()
    if not text:
        return ""

    if ISO_DATE_RE.match(text):
        return _safe_date(int(text[:4]), int(text[5:7]), int(text[8:10]))

    match = NUMERIC_DATE_RE.match(text)
    if match:
        month, day, year = (int(g) for g in match.groups())
        return _safe_date(year, month, day)

    try:
        return date_parser.parse(text).date().isoformat()
    except (ValueError, OverflowError):
        return ""


def _month_name_date(text: str) -> str:
    match = MONTH_NAME_RE.match(text)
    if match:
        month_name, day, year = match.groups()
    else:
        match = DAY_MONTH_NAME_RE.match(text)
        if not match:
            return ""
        day, month_name, year = match.groups()

    month = MONTHS.get(month_name.lower())
    if not month:
        return ""
    return _safe_date(int(year), month, int(day))


def normalize_date_of_birth(value: Any) -> str:
    """
    Like normalize_date_only, but also reads spoken forms such as
    "June 23 1979" or "June 23, 1979".
    An empty result means "don't filter on birthdate", never "no match".
    """
    text = "" if value is None else str(value).strip()
    if not text:
        return ""

    if ISO_DATE_RE.match(text) or NUMERIC_DATE_RE.match(text):
        return normalize_date_only(text)

    spoken = _month_name_date(text)
    if spoken:
        return spoken

    return normalize_date_only(text)


def parse_date_time(raw: Any) -> Optional[datetime]:
    """Parse 'YYYY-MM-DD HH:MM:SS' and ISO-like values into a naive datetime."""
    if isinstance(raw, datetime):
        return raw.replace(tzinfo=None)
    if raw is None:
        return None

    text = str(raw).strip()
    if not text:
        return None

    match = SPACE_DATETIME_RE.match(text)
    if match:
        text = f"{match.group(1)}T{match.group(2)}"

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = date_parser.parse(text)
        except (ValueError, OverflowError):
            return None

    return parsed.replace(tzinfo=None)


def _owning_date(record: Mapping[str, Any], preferred_date: Any, fields: Iterable[str]) -> str:
    candidate = normalize_date_only(preferred_date)
    if candidate:
        return candidate

    for field in fields:
        candidate = normalize_date_only(record.get(field))
        if candidate:
            return candidate
    return ""


def parse_schedule_date_time(
    record: Mapping[str, Any],
    raw: Any,
    preferred_date: Union[str, date, None] = None,
    date_fields: Iterable[str] = SCHEDULE_DATE_FIELDS,
) -> Optional[datetime]:
    """
    Resolve a schedule boundary.

    Open Dental schedules report StartTime/StopTime as a bare "HH:MM:SS" with
    the day in SchedDate, while other feeds send a full date-time. A bare time
    is joined to preferred_date, falling back to the record's date fields.
    Returns None when no owning date can be found.
    """
    if raw is None:
        return None

    text = raw if isinstance(raw, datetime) else str(raw).strip()
    if isinstance(text, str):
        match = TIME_ONLY_RE.match(text)
        if match:
            owning = _owning_date(record, preferred_date, date_fields)
            if not owning:
                return None
            hour, minute, second = match.groups()
            try:
                return datetime.combine(
                    date.fromisoformat(owning),
                    datetime.min.time().replace(hour=int(hour), minute=int(minute), second=int(second or 0)),
                )
            except ValueError:
                return None

    return parse_date_time(text)


def format_date_time(value: datetime) -> str:
    """Render a datetime the way the Open Dental write API expects it."""
    return value.strftime(DATETIME_FORMAT)


def add_days(date_str: Union[str, date], days: int) -> str:
    base = normalize_date_only(date_str)
    if not base:
        raise ValueError(f"Cannot do date arithmetic on {date_str!r}")
    return (date.fromisoformat(base) + timedelta(days=days)).isoformat()
