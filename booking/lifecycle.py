"""
Appointment state machine.

    pending   -> confirmed | cancelled          (doctor decision)
    pending   -> booked                         (payment)
    confirmed -> booked                         (payment)
    confirmed, booked -> completed | no_show | cancelled

completed, cancelled and no_show are terminal.

Every status change is a conditional UPDATE filtered on the statuses the
change is allowed from, so concurrent requests (two cancels, a cancel and a
payment, a payment and the hold sweep) resolve inside the database: one
UPDATE matches the row, the others match nothing and are reported as a
no-op or an InvalidTransition.
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from . import constants
from .availability import acquire_slot, has_explicit_day, release_slot_by_id
from .calendar import get_schedule
from .conflicts import check_conflict
from .exceptions import (
    DoctorUnavailable,
    InvalidInterval,
    InvalidTransition,
    NotFound,
    SlotUnavailable,
)
from .invoices import issue_invoice
from .models import Appointment, DoctorSchedule
from .notifications import notify_on_commit, notify_participants
from .utils.time_utils import get_zone, local_day

logger = logging.getLogger(__name__)

PAYABLE_STATUSES = [Appointment.STATUS_PENDING, Appointment.STATUS_CONFIRMED]
DECIDABLE_STATUSES = [Appointment.STATUS_PENDING, Appointment.STATUS_BOOKED]
COMPLETABLE_STATUSES = [Appointment.STATUS_CONFIRMED, Appointment.STATUS_BOOKED]
OUTCOMES = [Appointment.STATUS_COMPLETED, Appointment.STATUS_NO_SHOW]

# (label, flag field, earliest lead time, latest lead time)
REMINDERS = [
    ("24h", "reminder_sent_24h", timedelta(hours=23, minutes=30), timedelta(hours=24, minutes=30)),
    ("1h", "reminder_sent_1h", timedelta(minutes=30), timedelta(hours=1, minutes=30)),
]


def _get(appointment_id) -> Appointment:
    appointment = (
        Appointment.objects
        .select_related("doctor", "patient")
        .filter(pk=appointment_id)
        .first()
    )
    if appointment is None:
        raise NotFound("Appointment not found")
    return appointment


def _transition(appointment_id, from_statuses, to_status, **changes):
    """
    Move the appointment to to_status if it is currently in from_statuses.
    Returns the refreshed appointment and whether this call changed it.
    """
    appointment = _get(appointment_id)
    changed = Appointment.objects.filter(
        pk=appointment_id,
        status__in=from_statuses,
    ).update(status=to_status, updated_at=timezone.now(), **changes)
    appointment.refresh_from_db()
    return appointment, bool(changed)


def _release(appointment):
    if appointment.slot_id is not None:
        release_slot_by_id(appointment.slot_id)


def _lock_schedule(schedule):
    # row lock on the schedule serialises bookings of one doctor
    return DoctorSchedule.objects.select_for_update().get(pk=schedule.pk)


def _check_bookable(schedule, start, end):
    if end <= start:
        raise InvalidInterval()

    day = local_day(start, get_zone(schedule.tz))
    if schedule.is_unavailable_on(day) or not schedule.is_active:
        raise DoctorUnavailable()
    return day


def create_appointment(doctor_id, patient, start, end, reason="") -> Appointment:
    """
    Book [start, end) with the doctor as a pending appointment awaiting payment.

    The conflict check before the transaction only gives a fast answer; inside
    it the check runs again under the schedule lock, the explicit slot (if the
    doctor published slots for that day) is taken by compare-and-set, and the
    partial unique index on (doctor, start) rejects whatever still slips
    through.
    """
    schedule = get_schedule(doctor_id)
    day = _check_bookable(schedule, start, end)

    if not check_conflict(doctor_id, start, end).is_free:
        raise SlotUnavailable()

    now = timezone.now()
    try:
        with transaction.atomic():
            _lock_schedule(schedule)
            conflict = check_conflict(doctor_id, start, end)
            if not conflict.is_free:
                raise SlotUnavailable()

            slot = None
            if has_explicit_day(doctor_id, day):
                slot = acquire_slot(doctor_id, day, start, end)

            appointment = Appointment.objects.create(
                doctor_id=doctor_id,
                patient=patient,
                hospital_id=schedule.hospital_id,
                start=start,
                end=end,
                status=Appointment.STATUS_PENDING,
                reason=reason or "",
                payment_status=Appointment.PAYMENT_UNPAID,
                payment_amount=schedule.fees,
                pending_expires_at=now + timedelta(minutes=settings.BOOKING_HOLD_MINUTES),
                slot=slot,
            )
            notify_on_commit(appointment, constants.EVENT_CREATED)
    except IntegrityError:
        logger.info("Lost booking race for doctor %s at %s", doctor_id, start.isoformat())
        raise SlotUnavailable()

    logger.info("Appointment %s created for doctor %s at %s", appointment.pk, doctor_id, start.isoformat())
    return appointment


def confirm_payment(appointment_id, amount, transaction_id="") -> Appointment:
    """
    Record a payment confirmation. Repeated deliveries of the same
    confirmation return the already-paid appointment without issuing another
    invoice or notification.
    """
    with transaction.atomic():
        appointment = _get(appointment_id)
        changed = Appointment.objects.filter(
            pk=appointment_id,
            status__in=PAYABLE_STATUSES,
            payment_status=Appointment.PAYMENT_UNPAID,
        ).update(
            status=Appointment.STATUS_BOOKED,
            payment_status=Appointment.PAYMENT_PAID,
            payment_amount=amount,
            payment_txn_id=transaction_id or "",
            pending_expires_at=None,
            updated_at=timezone.now(),
        )
        appointment.refresh_from_db()

        if not changed:
            if appointment.payment_status == Appointment.PAYMENT_PAID:
                logger.info("Payment for appointment %s already processed", appointment_id)
                return appointment
            raise InvalidTransition(
                f"Cannot confirm payment for an appointment with status '{appointment.status}'"
            )

        invoice = issue_invoice(appointment, amount)
        notify_on_commit(
            appointment,
            constants.EVENT_PAYMENT_CONFIRMED,
            amount=amount,
            invoice=invoice.number,
        )

    logger.info("Appointment %s paid (%s)", appointment_id, amount)
    return appointment


def confirm(appointment_id, accept: bool) -> Appointment:
    with transaction.atomic():
        if accept:
            appointment, changed = _transition(
                appointment_id,
                DECIDABLE_STATUSES,
                Appointment.STATUS_CONFIRMED,
                pending_expires_at=None,
            )
        else:
            appointment, changed = _transition(
                appointment_id,
                DECIDABLE_STATUSES,
                Appointment.STATUS_CANCELLED,
                cancelled_by=constants.ACTOR_DOCTOR,
                pending_expires_at=None,
            )

        if not changed:
            raise InvalidTransition("Appointment already processed")

        if not accept:
            _release(appointment)
        notify_on_commit(
            appointment,
            constants.EVENT_CONFIRMED if accept else constants.EVENT_REJECTED,
        )

    return appointment


def complete(appointment_id, outcome, notes=None, prescription=None) -> Appointment:
    if outcome not in OUTCOMES:
        raise InvalidTransition(f"Unknown outcome '{outcome}'")

    changes = {}
    if notes:
        changes["notes"] = notes
    if prescription:
        changes["prescription"] = prescription

    with transaction.atomic():
        appointment, changed = _transition(appointment_id, COMPLETABLE_STATUSES, outcome, **changes)
        if not changed:
            raise InvalidTransition(
                f"Cannot mark an appointment with status '{appointment.status}' as {outcome}"
            )
        if outcome == Appointment.STATUS_COMPLETED:
            notify_on_commit(
                appointment,
                constants.EVENT_COMPLETED,
                notes=appointment.notes,
                prescription=appointment.prescription,
            )

    return appointment


def cancel(appointment_id, actor) -> Appointment:
    """
    Cancel from any non-terminal status and free the slot. Cancelling an
    already cancelled appointment returns it unchanged.
    """
    with transaction.atomic():
        appointment, changed = _transition(
            appointment_id,
            Appointment.ACTIVE_STATUSES,
            Appointment.STATUS_CANCELLED,
            cancelled_by=actor,
            pending_expires_at=None,
        )

        if not changed:
            if appointment.status == Appointment.STATUS_CANCELLED:
                return appointment
            raise InvalidTransition(
                f"Cannot cancel an appointment with status '{appointment.status}'"
            )

        _release(appointment)
        notify_on_commit(appointment, constants.EVENT_CANCELLED, actor=actor)

    logger.info("Appointment %s cancelled by %s", appointment_id, actor)
    return appointment


def reschedule(appointment_id, start, end) -> Appointment:
    """
    Move an active appointment to [start, end). The old slot is released and
    the new one taken in the same transaction; if the new interval is not
    available nothing changes.
    """
    with transaction.atomic():
        appointment = (
            Appointment.objects
            .select_for_update()
            .filter(pk=appointment_id)
            .first()
        )
        if appointment is None:
            raise NotFound("Appointment not found")
        if appointment.status not in Appointment.ACTIVE_STATUSES:
            raise InvalidTransition(
                f"Cannot reschedule an appointment with status '{appointment.status}'"
            )

        schedule = get_schedule(appointment.doctor_id)
        day = _check_bookable(schedule, start, end)
        _lock_schedule(schedule)

        conflict = check_conflict(
            appointment.doctor_id,
            start,
            end,
            exclude_id=appointment.pk,
            exclude_slot_id=appointment.slot_id,
        )
        if not conflict.is_free:
            raise SlotUnavailable()

        try:
            with transaction.atomic():
                if appointment.slot_id is not None:
                    release_slot_by_id(appointment.slot_id)

                new_slot = None
                if has_explicit_day(appointment.doctor_id, day):
                    new_slot = acquire_slot(appointment.doctor_id, day, start, end)

                Appointment.objects.filter(pk=appointment.pk).update(
                    start=start,
                    end=end,
                    slot=new_slot,
                    reminder_sent_24h=False,
                    reminder_sent_1h=False,
                    updated_at=timezone.now(),
                )
        except IntegrityError:
            raise SlotUnavailable()

        appointment = _get(appointment_id)
        notify_on_commit(appointment, constants.EVENT_RESCHEDULED)

    logger.info("Appointment %s rescheduled to %s", appointment_id, start.isoformat())
    return appointment


def reclaim_expired_holds(now=None) -> int:
    """
    Cancel pending appointments whose payment hold has run out and free their
    slots. A payment that lands first moves the appointment out of pending,
    which makes the reclaim of that row a no-op. Store errors are logged; the
    next sweep picks the rows up again.
    """
    now = now or timezone.now()
    try:
        expired = list(
            Appointment.objects
            .filter(status=Appointment.STATUS_PENDING, pending_expires_at__lte=now)
            .values_list("pk", flat=True)
        )
    except DatabaseError:
        logger.exception("Hold sweep could not list pending appointments")
        return 0

    reclaimed = 0
    for pk in expired:
        try:
            with transaction.atomic():
                changed = Appointment.objects.filter(
                    pk=pk,
                    status=Appointment.STATUS_PENDING,
                    pending_expires_at__lte=now,
                ).update(
                    status=Appointment.STATUS_CANCELLED,
                    cancelled_by=constants.ACTOR_SYSTEM,
                    pending_expires_at=None,
                    updated_at=now,
                )
                if not changed:
                    continue

                appointment = _get(pk)
                _release(appointment)
                notify_on_commit(appointment, constants.EVENT_HOLD_EXPIRED)
            reclaimed += 1
        except DatabaseError:
            logger.exception("Could not reclaim hold of appointment %s", pk)

    if reclaimed:
        logger.info("Reclaimed %d expired hold(s)", reclaimed)
    return reclaimed


def send_due_reminders(now=None) -> int:
    """Send the one-shot 24h and 1h reminders that are due."""
    now = now or timezone.now()
    sent = 0

    for label, flag, earliest, latest in REMINDERS:
        due = list(
            Appointment.objects
            .filter(
                status__in=[Appointment.STATUS_BOOKED, Appointment.STATUS_CONFIRMED],
                start__gte=now + earliest,
                start__lte=now + latest,
                **{flag: False},
            )
            .values_list("pk", flat=True)
        )
        for pk in due:
            # claim the flag first so a parallel run cannot send it again
            if not Appointment.objects.filter(pk=pk, **{flag: False}).update(**{flag: True}):
                continue
            notify_participants(_get(pk), constants.EVENT_REMINDER, reminder=label)
            sent += 1

    return sent
