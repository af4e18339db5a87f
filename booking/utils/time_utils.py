from datetime import date, datetime, time, timedelta
from typing import NamedTuple, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from django.utils import timezone

CLOCK_FORMAT = "%H:%M"           # '09:30', as stored in working hours
DISPLAY_FORMAT = "%I:%M %p"      # '9:30 AM'


class Interval(NamedTuple):
    """Half-open [start, end) span between two aware datetimes."""

    start: datetime
    end: datetime

    def to_dict(self):
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def overlaps(a_start, a_end, b_start, b_end) -> bool:
    """Strict overlap of [a_start, a_end) and [b_start, b_end); touching ends do not overlap."""
    return a_start < b_end and b_start < a_end


def parse_clock(value: str) -> time:
    """
    Convert a working-hours clock string like '09:30' into a time object.
    Raises ValueError on anything else so schedule validation can report it.
    """
    return datetime.strptime((value or "").strip(), CLOCK_FORMAT).time()


def format_timeslot(value: datetime) -> str:
    """'2027-02-15 09:30+00:00' -> '9:30 AM' for notification text."""
    return value.strftime(DISPLAY_FORMAT).lstrip("0")


def parse_date(value) -> Optional[date]:
    """
    Parse a date string in 'YYYY-MM-DD' format into a date object.
    Returns None if parsing fails.
    """
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        return None


def get_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.get_default_timezone()


def local_datetime(day: date, clock: time, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, clock, tzinfo=tz)


def local_day(value: datetime, tz: ZoneInfo) -> date:
    """Calendar date of an aware instant as seen from tz."""
    return timezone.localtime(value, tz).date()


def day_bounds(day: date, tz: ZoneInfo):
    """Aware [start, end) instants covering one calendar day in tz."""
    start = datetime.combine(day, time(0, 0), tzinfo=tz)
    return start, datetime.combine(day + timedelta(days=1), time(0, 0), tzinfo=tz)
