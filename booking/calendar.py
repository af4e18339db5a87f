from datetime import date, timedelta, timezone as dt_timezone
from typing import List

from django.utils import timezone

from .conflicts import filter_free
from .constants import WEEKDAY_KEYS
from .exceptions import NotFound
from .models import AvailabilityDay, DoctorSchedule
from .utils.time_utils import Interval, get_zone, local_datetime, parse_clock


def get_schedule(doctor_id) -> DoctorSchedule:
    schedule = DoctorSchedule.objects.select_related("hospital").filter(doctor_id=doctor_id).first()
    if schedule is None:
        raise NotFound("Doctor schedule not found")
    return schedule


def generate_slots(schedule: DoctorSchedule, day: date) -> List[Interval]:
    """
    Cut the working-hours windows configured for day's weekday into
    slot_duration_mins pieces. A trailing piece that would run past the
    window end is dropped. Windows are processed in their configured order.
    """
    if schedule.is_unavailable_on(day):
        return []

    windows = (schedule.working_hours or {}).get(WEEKDAY_KEYS[day.weekday()]) or []
    if not windows:
        return []

    tz = get_zone(schedule.tz)
    step = timedelta(minutes=schedule.slot_duration_mins)
    slots = []

    for window in windows:
        # slots step along UTC; a DST change day has fewer or more of them
        current = local_datetime(day, parse_clock(window["start"]), tz).astimezone(dt_timezone.utc)
        window_end = local_datetime(day, parse_clock(window["end"]), tz).astimezone(dt_timezone.utc)

        while current + step <= window_end:
            slots.append(Interval(timezone.localtime(current, tz), timezone.localtime(current + step, tz)))
            current += step

    return slots


def raw_calendar(doctor_id, day: date) -> List[Interval]:
    """
    Candidate windows before any booking is subtracted.

    Slots the doctor published explicitly for the date replace the weekly
    template for that date; unavailable dates are always empty.
    """
    schedule = get_schedule(doctor_id)
    if schedule.is_unavailable_on(day):
        return []

    explicit = AvailabilityDay.objects.filter(doctor_id=doctor_id, date=day).first()
    if explicit is not None:
        return [Interval(s.start, s.end) for s in explicit.slots.order_by("start")]

    return generate_slots(schedule, day)


def get_free_slots(doctor_id, day: date) -> List[Interval]:
    return filter_free(doctor_id, raw_calendar(doctor_id, day))


SCHEDULE_FIELDS = ("working_hours", "slot_duration_mins", "unavailable_dates", "tz", "fees", "hospital_id", "is_active")


def update_schedule(doctor_id, **fields) -> DoctorSchedule:
    """Create or change a doctor's schedule; only the given fields are touched."""
    unknown = set(fields) - set(SCHEDULE_FIELDS)
    if unknown:
        raise TypeError(f"Unknown schedule field(s): {', '.join(sorted(unknown))}")

    schedule, _ = DoctorSchedule.objects.get_or_create(doctor_id=doctor_id)
    for name, value in fields.items():
        if value is not None:
            setattr(schedule, name, value)
    schedule.save()
    return schedule
