from typing import Dict, List, Tuple

from django.core.paginator import Paginator
from django.db.models import Q
from django.utils import timezone

from booking.models import Appointment, DoctorSchedule
from booking.queries import appointments_for
from booking.utils.time_utils import day_bounds, get_zone


def doctor_zone(doctor):
    schedule = DoctorSchedule.objects.filter(doctor=doctor).only("tz").first()
    return get_zone(schedule.tz) if schedule else timezone.get_default_timezone()


def todays_appointments(doctor, now=None) -> List[Appointment]:
    """
    The doctor's appointments on the current day in the doctor's own time
    zone, by start time and then booking order.
    """
    now = now or timezone.now()
    tz = doctor_zone(doctor)
    start, end = day_bounds(timezone.localtime(now, tz).date(), tz)
    return list(
        Appointment.objects
        .filter(doctor=doctor, start__gte=start, start__lt=end)
        .select_related("patient")
        .order_by("start", "created_at")
    )


def get_doctor_patients(doctor, limit: int = 50) -> List[Dict]:
    """
    Patients the doctor has seen or will see.
    De-dupe by patient so the same person doesn't appear repeatedly.
    """
    qs = (
        Appointment.objects
        .filter(doctor=doctor)
        .select_related("patient")
        .order_by("-start", "-id")
    )

    patients: List[Dict] = []
    seen: set[int] = set()

    for a in qs:
        if a.patient_id in seen:
            continue
        seen.add(a.patient_id)
        patients.append({
            "id": a.patient_id,
            "username": a.patient.get_username(),
            "email": a.patient.email,
            "last_visit": a.start.isoformat(),
        })
        if len(patients) >= limit:
            break

    return patients


def appointment_board(user, role, q: str = "", history_page=None, per_page: int = 5) -> Tuple[Dict, object]:
    """
    Requests / upcoming / history split of the appointments a doctor (or an
    admin, for everyone) works with, optionally narrowed by a search term.
    """
    now = timezone.now()
    base_qs = appointments_for(user, role)

    if q:
        base_qs = base_qs.filter(
            Q(patient__username__icontains=q)
            | Q(patient__email__icontains=q)
            | Q(doctor__username__icontains=q)
            | Q(reason__icontains=q)
        )

    # Requests = pending appointments
    pending_requests = base_qs.filter(status=Appointment.STATUS_PENDING).order_by("start")

    # Upcoming accepted or paid appointments
    upcoming = (
        base_qs.filter(
            status__in=[Appointment.STATUS_CONFIRMED, Appointment.STATUS_BOOKED],
            start__gte=now,
        )
        .order_by("start")
    )

    # Recent cancelled / completed / no-show (history)
    history_qs = base_qs.filter(status__in=Appointment.TERMINAL_STATUSES).order_by("-start", "-id")
    history = Paginator(history_qs, per_page).get_page(history_page)

    board = {
        "pending_requests": [a.to_dict() for a in pending_requests],
        "upcoming": [a.to_dict() for a in upcoming],
        "history": [a.to_dict() for a in history],
    }
    return board, history