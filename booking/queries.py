from typing import Optional

from django.utils import timezone

from .constants import ACTOR_ADMIN, ACTOR_DOCTOR, ACTOR_PATIENT
from .models import Appointment, DoctorSchedule


def role_for(user) -> str:
    """Role of an authenticated user: staff are admins, schedule owners doctors."""
    if user.is_staff:
        return ACTOR_ADMIN
    if DoctorSchedule.objects.filter(doctor=user).exists():
        return ACTOR_DOCTOR
    return ACTOR_PATIENT


def participant_role(appointment, user) -> Optional[str]:
    """The capacity in which user may act on appointment, or None."""
    if user.is_staff:
        return ACTOR_ADMIN
    if appointment.doctor_id == user.pk:
        return ACTOR_DOCTOR
    if appointment.patient_id == user.pk:
        return ACTOR_PATIENT
    return None


def narrow(qs, status=None, start_after=None, start_before=None):
    """Apply the optional filters; status may be a single value or a list."""
    if status:
        statuses = [status] if isinstance(status, str) else list(status)
        qs = qs.filter(status__in=statuses)
    if start_after:
        qs = qs.filter(start__gte=start_after)
    if start_before:
        qs = qs.filter(start__lt=start_before)
    return qs


def appointments_for(user, role, status=None, start_after=None, start_before=None):
    """
    "My appointments": everything for admins, otherwise the ones the user
    takes part in as doctor or patient.
    """
    qs = Appointment.objects.select_related("doctor", "patient", "hospital")

    if role == ACTOR_DOCTOR:
        qs = qs.filter(doctor=user)
    elif role == ACTOR_PATIENT:
        qs = qs.filter(patient=user)

    return narrow(qs, status, start_after, start_before).order_by("start", "id")


def upcoming_for(user, role, now=None):
    now = now or timezone.now()
    return appointments_for(user, role, status=Appointment.ACTIVE_STATUSES, start_after=now)


def past_for(user, role, now=None):
    now = now or timezone.now()
    return (
        appointments_for(user, role, start_before=now)
        .order_by("-start", "-id")
    )
