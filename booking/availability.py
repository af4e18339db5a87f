"""
Explicit per-day availability slots.

The booked flag of a slot is only ever flipped with a conditional UPDATE
(WHERE booked = <expected>), so two requests racing for the same slot cannot
both win.
"""
import logging
from datetime import date
from typing import Iterable, List, Tuple

from django.db import transaction

from .calendar import get_schedule
from .exceptions import InvalidInterval, OverlappingSlot, SlotAlreadyBooked, SlotNotFound
from .models import AvailabilityDay, AvailabilitySlot
from .utils.time_utils import get_zone, local_day, overlaps

logger = logging.getLogger(__name__)


def _validate_batch(slots: List[Tuple], tz, day: date):
    for start, end in slots:
        if end <= start:
            raise InvalidInterval()
        if local_day(start, tz) != day:
            raise InvalidInterval(f"Slot starting {start.isoformat()} is not on {day.isoformat()}")

    ordered = sorted(slots)
    for (a_start, a_end), (b_start, b_end) in zip(ordered, ordered[1:]):
        if overlaps(a_start, a_end, b_start, b_end):
            raise OverlappingSlot("Overlapping slots in request")


def create_slots(doctor_id, day: date, slots: Iterable[Tuple]) -> AvailabilityDay:
    """
    Publish slots for (doctor, day). Either every slot is stored or none is:
    overlaps inside the batch or with already stored slots raise
    OverlappingSlot and leave the store untouched.
    """
    slots = [(start, end) for start, end in slots]
    schedule = get_schedule(doctor_id)
    _validate_batch(slots, get_zone(schedule.tz), day)

    with transaction.atomic():
        availability, _ = AvailabilityDay.objects.get_or_create(doctor_id=doctor_id, date=day)
        # serialise concurrent writers of the same day
        availability = AvailabilityDay.objects.select_for_update().get(pk=availability.pk)

        existing = list(availability.slots.values_list("start", "end"))
        for start, end in slots:
            if any(overlaps(start, end, s, e) for s, e in existing):
                raise OverlappingSlot("Overlaps existing availability slot")

        AvailabilitySlot.objects.bulk_create(
            [AvailabilitySlot(day=availability, start=start, end=end) for start, end in sorted(slots)]
        )

    logger.info("Doctor %s published %d slot(s) for %s", doctor_id, len(slots), day)
    return availability


def has_explicit_day(doctor_id, day: date) -> bool:
    return AvailabilityDay.objects.filter(doctor_id=doctor_id, date=day).exists()


def acquire_slot(doctor_id, day: date, start, end) -> AvailabilitySlot:
    slot = (
        AvailabilitySlot.objects
        .filter(day__doctor_id=doctor_id, day__date=day, start=start, end=end)
        .first()
    )
    if slot is None:
        raise SlotNotFound()

    # compare-and-set: only a free slot can be taken
    if not AvailabilitySlot.objects.filter(pk=slot.pk, booked=False).update(booked=True):
        raise SlotAlreadyBooked()

    slot.booked = True
    return slot


def release_slot_by_id(slot_id) -> bool:
    """Free a slot; returns False when it was already free."""
    if not AvailabilitySlot.objects.filter(pk=slot_id).exists():
        raise SlotNotFound()
    return bool(AvailabilitySlot.objects.filter(pk=slot_id, booked=True).update(booked=False))


def release_slot(doctor_id, day: date, start, end) -> bool:
    slot_id = (
        AvailabilitySlot.objects
        .filter(day__doctor_id=doctor_id, day__date=day, start=start, end=end)
        .values_list("pk", flat=True)
        .first()
    )
    if slot_id is None:
        raise SlotNotFound()
    return release_slot_by_id(slot_id)


def delete_slot(doctor_id, slot_id):
    qs = AvailabilitySlot.objects.filter(pk=slot_id, day__doctor_id=doctor_id)
    if not qs.exists():
        raise SlotNotFound()

    deleted, _ = AvailabilitySlot.objects.filter(pk=slot_id, booked=False).delete()
    if not deleted:
        raise SlotAlreadyBooked("Cannot delete a booked slot")


def list_days(doctor_id):
    return (
        AvailabilityDay.objects
        .filter(doctor_id=doctor_id)
        .prefetch_related("slots")
        .order_by("date")
    )
