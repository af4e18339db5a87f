import logging
from functools import wraps

from django.contrib.auth import get_user_model
from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from booking import availability, lifecycle
from booking.calendar import update_schedule
from booking.constants import ACTOR_ADMIN, ACTOR_DOCTOR
from booking.exceptions import NotFound
from booking.forms import CompletionForm, ConfirmDecisionForm, ScheduleForm, SlotBatchForm
from booking.models import DoctorSchedule
from booking.queries import role_for
from booking.views import appointment_for_user, bad_request, booking_errors, forbidden, json_payload

from .services import appointment_board, get_doctor_patients, todays_appointments

logger = logging.getLogger(__name__)


def staff_or_doctor_required(view):
    """Logged-in doctors and admins only; the role is passed to the view."""

    @login_required
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        role = role_for(request.user)
        if role not in (ACTOR_DOCTOR, ACTOR_ADMIN):
            return forbidden("Doctor or admin access required")
        return view(request, role, *args, **kwargs)

    return wrapper


def target_doctor(request, role):
    """The doctor a schedule/availability request is about: admins pick one with ?doctor_id=."""
    if role == ACTOR_DOCTOR:
        return request.user

    doctor_id = request.GET.get("doctor_id")
    if not doctor_id or not doctor_id.isdigit():
        raise NotFound("Pass doctor_id to act on a doctor's behalf")
    doctor = get_user_model().objects.filter(pk=int(doctor_id)).first()
    if doctor is None:
        raise NotFound("Doctor not found")
    return doctor


def appointment_as_doctor(appointment_id, user):
    appointment, role = appointment_for_user(appointment_id, user)
    if role not in (ACTOR_DOCTOR, ACTOR_ADMIN):
        raise NotFound("Appointment not found")
    return appointment, role


@require_GET
@staff_or_doctor_required
def appointments(request, role):
    q = request.GET.get("q", "").strip()
    board, history = appointment_board(request.user, role, q=q, history_page=request.GET.get("history_page"))
    board["history_page"] = history.number
    board["history_pages"] = history.paginator.num_pages
    board["q"] = q
    return JsonResponse(board)


@require_GET
@staff_or_doctor_required
@booking_errors
def todays_list(request, role):
    doctor = target_doctor(request, role)
    return JsonResponse({"appointments": [a.to_dict() for a in todays_appointments(doctor)]})


@require_GET
@staff_or_doctor_required
@booking_errors
def patients(request, role):
    doctor = target_doctor(request, role)
    return JsonResponse({"patients": get_doctor_patients(doctor)})


@require_POST
@staff_or_doctor_required
@booking_errors
def confirm_appointment(request, role, appointment_id):
    appointment, _ = appointment_as_doctor(appointment_id, request.user)

    form = ConfirmDecisionForm(json_payload(request) or {})
    if not form.is_valid():
        return bad_request(form.errors.get_json_data())

    appointment = lifecycle.confirm(appointment.pk, form.accepted)
    action = form.cleaned_data["action"]
    return JsonResponse({"message": f"Appointment {action}ed", "appointment": appointment.to_dict()})


@require_POST
@staff_or_doctor_required
@booking_errors
def complete_appointment(request, role, appointment_id):
    appointment, _ = appointment_as_doctor(appointment_id, request.user)

    form = CompletionForm(json_payload(request) or {})
    if not form.is_valid():
        return bad_request(form.errors.get_json_data())

    data = form.cleaned_data
    appointment = lifecycle.complete(
        appointment.pk,
        data["outcome"],
        notes=data["notes"],
        prescription=data["prescription"],
    )
    return JsonResponse({"message": f"Appointment marked as {data['outcome']}", "appointment": appointment.to_dict()})


@require_POST
@staff_or_doctor_required
@booking_errors
def cancel_appointment(request, role, appointment_id):
    appointment, actor = appointment_as_doctor(appointment_id, request.user)
    appointment = lifecycle.cancel(appointment.pk, actor)
    return JsonResponse({"message": "Appointment cancelled", "appointment": appointment.to_dict()})


@require_http_methods(["GET", "POST"])
@staff_or_doctor_required
@booking_errors
def availability_days(request, role):
    doctor = target_doctor(request, role)

    if request.method == "POST":
        form = SlotBatchForm(json_payload(request) or {})
        if not form.is_valid():
            return bad_request(form.errors.get_json_data())

        day = availability.create_slots(doctor.pk, form.cleaned_data["date"], form.cleaned_data["slots"])
        return JsonResponse({"message": "Availability saved", "availability": day.to_dict()}, status=201)

    return JsonResponse({"availability": [d.to_dict() for d in availability.list_days(doctor.pk)]})


@require_POST
@staff_or_doctor_required
@booking_errors
def delete_slot(request, role, slot_id):
    doctor = target_doctor(request, role)
    availability.delete_slot(doctor.pk, slot_id)
    return JsonResponse({"message": "Slot deleted"})


@require_http_methods(["GET", "POST"])
@staff_or_doctor_required
@booking_errors
def schedule(request, role):
    doctor = target_doctor(request, role)

    if request.method == "POST":
        form = ScheduleForm(json_payload(request) or {})
        if not form.is_valid():
            return bad_request(form.errors.get_json_data())

        current = update_schedule(doctor.pk, **form.cleaned_data)
        logger.info("Schedule of doctor %s updated by user %s", doctor.pk, request.user.pk)
    else:
        current = DoctorSchedule.objects.filter(doctor=doctor).first()
        if current is None:
            raise NotFound("Doctor schedule not found")

    return JsonResponse({
        "doctor_id": doctor.pk,
        "tz": current.tz,
        "slot_duration_mins": current.slot_duration_mins,
        "working_hours": current.working_hours,
        "unavailable_dates": current.unavailable_dates,
        "fees": str(current.fees),
        "is_active": current.is_active,
    })
