"""
Hand-off to the notification service.

Delivery is best effort: a failed email or webhook is logged and never undoes
the appointment change that triggered it.
"""
import logging
from functools import partial

import requests as http_requests
from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction
from django.utils import timezone

from . import constants
from .models import DoctorSchedule
from .utils.time_utils import format_timeslot, get_zone

logger = logging.getLogger(__name__)

SUBJECTS = {
    constants.EVENT_CREATED: "Appointment Requested",
    constants.EVENT_PAYMENT_CONFIRMED: "Appointment Confirmation",
    constants.EVENT_CONFIRMED: "Appointment Confirmed",
    constants.EVENT_REJECTED: "Appointment Declined",
    constants.EVENT_CANCELLED: "Appointment Cancelled",
    constants.EVENT_COMPLETED: "Appointment Completed",
    constants.EVENT_RESCHEDULED: "Appointment Rescheduled",
    constants.EVENT_HOLD_EXPIRED: "Appointment Hold Expired",
    constants.EVENT_REMINDER: "Appointment Reminder",
}


def _display_name(user):
    return user.get_full_name() or user.get_username()


def build_message(event_type, context):
    subject = SUBJECTS.get(event_type, "Appointment Update")
    when = context.get("when", "")
    lines = [f"Hello {context.get('recipient_name', '')},", ""]

    if event_type == constants.EVENT_REMINDER:
        lines.append(f"This is a reminder of your appointment on {when} ({context.get('reminder')} left).")
    elif event_type == constants.EVENT_PAYMENT_CONFIRMED:
        lines.append(f"Thank you for your payment of {context.get('amount')}.")
        lines.append(f"Your appointment is confirmed for {when}. Invoice: {context.get('invoice')}.")
    else:
        lines.append(f"{subject}: {when}.")
        if context.get("notes"):
            lines.append(f"Notes: {context['notes']}")
        if context.get("prescription"):
            lines.append(f"Prescription: {context['prescription']}")

    return subject, "\n".join(lines)


def notify(recipient, event_type, context):
    """Dispatch one event to one user over every configured channel."""
    context = dict(context, recipient_name=_display_name(recipient))
    subject, body = build_message(event_type, context)

    if recipient.email:
        try:
            send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, [recipient.email])
        except Exception:
            logger.exception("Email for %s to user %s failed", event_type, recipient.pk)

    url = settings.NOTIFICATION_WEBHOOK_URL
    if url:
        payload = {
            "recipient": recipient.pk,
            "email": recipient.email,
            "event": event_type,
            "context": {k: str(v) for k, v in context.items()},
        }
        try:
            r = http_requests.post(url, json=payload, timeout=settings.NOTIFICATION_WEBHOOK_TIMEOUT)
            r.raise_for_status()
        except http_requests.RequestException:
            logger.exception("Notification webhook for %s to user %s failed", event_type, recipient.pk)


def local_start(appointment):
    """Start of the appointment on the doctor's wall clock."""
    tz_name = (
        DoctorSchedule.objects
        .filter(doctor_id=appointment.doctor_id)
        .values_list("tz", flat=True)
        .first()
    )
    return timezone.localtime(appointment.start, get_zone(tz_name or settings.DEFAULT_DOCTOR_TZ))


def notify_participants(appointment, event_type, **extra):
    start = local_start(appointment)
    context = {
        "appointment_id": appointment.pk,
        "when": f"{start:%Y-%m-%d} {format_timeslot(start)} ({start.tzinfo})",
        "status": appointment.status,
        **extra,
    }
    for user in (appointment.patient, appointment.doctor):
        notify(user, event_type, context)


def notify_on_commit(appointment, event_type, **extra):
    """Send once the surrounding transaction commits; nothing is sent on rollback."""
    transaction.on_commit(partial(notify_participants, appointment, event_type, **extra))
