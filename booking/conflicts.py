"""
Conflict detection for a doctor's calendar.

An interval conflicts when it strictly overlaps an appointment that still
occupies the calendar, or when it is exactly an availability slot that has
already been booked. Used to filter the raw calendar and, inside the booking
transaction, to reject requests early; the database constraints remain the
final arbiter.
"""
from typing import Iterable, List, NamedTuple, Optional

from .models import Appointment, AvailabilitySlot
from .utils.time_utils import Interval, overlaps

FREE = "free"
CONFLICT_APPOINTMENT = "appointment"
CONFLICT_SLOT = "slot"


class ConflictResult(NamedTuple):
    kind: str
    object_id: Optional[int] = None

    @property
    def is_free(self) -> bool:
        return self.kind == FREE

    def __str__(self):
        return self.kind if self.is_free else f"conflict: {self.kind}"


def occupying_appointments(doctor_id, start, end, exclude_id=None):
    qs = Appointment.objects.filter(
        doctor_id=doctor_id,
        status__in=Appointment.OCCUPYING_STATUSES,
        start__lt=end,
        end__gt=start,
    )
    if exclude_id is not None:
        qs = qs.exclude(pk=exclude_id)
    return qs


def booked_slots(doctor_id, start, end):
    return AvailabilitySlot.objects.filter(
        day__doctor_id=doctor_id,
        booked=True,
        start__lt=end,
        end__gt=start,
    )


def check_conflict(doctor_id, start, end, exclude_id=None, exclude_slot_id=None) -> ConflictResult:
    """
    Report whether [start, end) is free for the doctor.

    exclude_id skips an appointment (the one being rescheduled);
    exclude_slot_id skips the slot that appointment currently holds.
    """
    clash = (
        occupying_appointments(doctor_id, start, end, exclude_id=exclude_id)
        .values_list("pk", flat=True)
        .first()
    )
    if clash is not None:
        return ConflictResult(CONFLICT_APPOINTMENT, clash)

    slots = booked_slots(doctor_id, start, end).filter(start=start, end=end)
    if exclude_slot_id is not None:
        slots = slots.exclude(pk=exclude_slot_id)
    slot_id = slots.values_list("pk", flat=True).first()
    if slot_id is not None:
        return ConflictResult(CONFLICT_SLOT, slot_id)

    return ConflictResult(FREE)


def filter_free(doctor_id, windows: Iterable[Interval]) -> List[Interval]:
    """Keep the windows that conflict with nothing, preserving their order."""
    windows = list(windows)
    if not windows:
        return []

    span_start = min(w.start for w in windows)
    span_end = max(w.end for w in windows)

    taken = list(
        occupying_appointments(doctor_id, span_start, span_end).values_list("start", "end")
    )
    taken_slots = set(
        booked_slots(doctor_id, span_start, span_end).values_list("start", "end")
    )

    return [
        w for w in windows
        if (w.start, w.end) not in taken_slots
        and not any(overlaps(w.start, w.end, s, e) for s, e in taken)
    ]
