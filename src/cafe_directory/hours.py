"""
Opening-hours parsing and evaluation.

Hours are stored as ``{"monday": {"open": "09:00", "close": "17:00"}, ...}``.
A cafe with no hours data at all is UNKNOWN, which is not the same thing as
CLOSED: the "open now" search filter only keeps cafes that are definitely OPEN.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional

from cafe_directory.records import DayHours

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

HOURS_RANGE_RE = re.compile(
    r"(\d{1,2}):?(\d{2})?\s*(am|pm)?\s*[-–]\s*(\d{1,2}):?(\d{2})?\s*(am|pm)?",
    re.IGNORECASE,
)
TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


class OpenStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    UNKNOWN = "unknown"


def _to_24h(hour: int, meridiem: Optional[str]) -> int:
    meridiem = (meridiem or "").lower()
    if meridiem == "pm" and hour < 12:
        return hour + 12
    if meridiem == "am" and hour == 12:
        return 0
    return hour


def parse_hours_string(hours: str) -> Optional[DayHours]:
    """
    Parse a single time range into a 24-hour ``DayHours``.

    Accepts ``9:00-17:00``, ``09:00 - 17:30``, ``9am-5pm``, ``9:30 am – 5 pm``.
    Returns None when no range is found or the hours are impossible.
    """
    match = HOURS_RANGE_RE.search(str(hours))
    if not match:
        return None

    open_hour, open_min, open_ampm, close_hour, close_min, close_ampm = match.groups()
    open_h = _to_24h(int(open_hour), open_ampm)
    close_h = _to_24h(int(close_hour), close_ampm)
    open_m = int(open_min or 0)
    close_m = int(close_min or 0)

    # "24:00" is a common way of writing midnight close
    if open_h > 23 or close_h > 24 or open_m > 59 or close_m > 59:
        return None

    return DayHours(open=f"{open_h:02d}:{open_m:02d}", close=f"{close_h:02d}:{close_m:02d}")


def parse_time(value: str) -> int:
    """``"HH:MM"`` → ``HH*100 + MM``. Raises ValueError on anything else."""
    match = TIME_RE.match(str(value))
    if not match:
        raise ValueError(f"Unrecognised time: {value!r}")
    return int(match.group(1)) * 100 + int(match.group(2))


def _day_entry(opening_hours: Mapping[str, Any], day: str) -> Optional[tuple[str, str]]:
    entry = opening_hours.get(day)
    if entry is None:
        return None
    if isinstance(entry, DayHours):
        return entry.open, entry.close
    if isinstance(entry, Mapping):
        open_, close = entry.get("open"), entry.get("close")
        if not open_ or not close:
            return None
        return str(open_), str(close)
    return None


def open_status(opening_hours: Optional[Mapping[str, Any]], now: datetime) -> OpenStatus:
    """
    Evaluate an opening-hours mapping at ``now``.

    - no mapping (None or empty) → UNKNOWN
    - no entry for today, or a missing / malformed bound → CLOSED
    - close earlier than open means the window crosses midnight
    """
    if not opening_hours:
        return OpenStatus.UNKNOWN

    today = WEEKDAYS[now.weekday()]
    entry = _day_entry(opening_hours, today)
    if entry is None:
        return OpenStatus.CLOSED

    try:
        open_time = parse_time(entry[0])
        close_time = parse_time(entry[1])
    except ValueError:
        return OpenStatus.CLOSED

    current = now.hour * 100 + now.minute
    if close_time < open_time:
        is_open = current >= open_time or current <= close_time
    else:
        is_open = open_time <= current <= close_time
    return OpenStatus.OPEN if is_open else OpenStatus.CLOSED


def is_open_now(opening_hours: Optional[Mapping[str, Any]], now: datetime) -> Optional[bool]:
    """True / False, or None when there is no hours data."""
    status = open_status(opening_hours, now)
    if status is OpenStatus.UNKNOWN:
        return None
    return status is OpenStatus.OPEN


def format_opening_hours(day_hours: Any) -> str:
    if isinstance(day_hours, DayHours):
        return f"{day_hours.open} - {day_hours.close}"
    if isinstance(day_hours, Mapping) and day_hours.get("open") and day_hours.get("close"):
        return f"{day_hours['open']} - {day_hours['close']}"
    return "Closed"


def today_hours(opening_hours: Optional[Mapping[str, Any]], now: datetime) -> str:
    if not opening_hours:
        return "Hours not available"
    return format_opening_hours(opening_hours.get(WEEKDAYS[now.weekday()]))
