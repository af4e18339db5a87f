import json
import logging
from functools import wraps

from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from . import lifecycle
from .calendar import get_free_slots
from .constants import ACTOR_ADMIN, ACTOR_PATIENT
from .exceptions import BookingError, NotFound
from .forms import (
    AppointmentFilterForm,
    BookingForm,
    FreeSlotsQueryForm,
    PaymentConfirmationForm,
    RescheduleForm,
)
from .models import Appointment
from .queries import appointments_for, narrow, participant_role, past_for, role_for, upcoming_for

logger = logging.getLogger(__name__)


def json_payload(request):
    """Request body as a dict: JSON bodies are decoded, form posts passed through."""
    if request.content_type == "application/json":
        try:
            body = json.loads(request.body or b"{}")
        except ValueError:
            return None
        return body if isinstance(body, dict) else None
    return request.POST


def bad_request(errors):
    return JsonResponse({"message": "Invalid request", "errors": errors}, status=400)


def forbidden(message="You are not allowed to do that"):
    return JsonResponse({"message": message}, status=403)


def booking_errors(view):
    """Report BookingError raised by the core as a JSON error response."""

    @wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except BookingError as exc:
            logger.info("%s %s rejected: %s", request.method, request.path, exc.message)
            return JsonResponse({"message": exc.message}, status=exc.status_code)

    return wrapper


def appointment_for_user(appointment_id, user):
    """
    Load an appointment the user takes part in. Someone else's appointment is
    reported as missing rather than forbidden.
    """
    appointment = Appointment.objects.filter(pk=appointment_id).first()
    if appointment is None:
        raise NotFound("Appointment not found")
    role = participant_role(appointment, user)
    if role is None:
        raise NotFound("Appointment not found")
    return appointment, role


@require_GET
@booking_errors
def free_slots(request, doctor_id):
    form = FreeSlotsQueryForm(request.GET)
    if not form.is_valid():
        return bad_request(form.errors.get_json_data())

    slots = get_free_slots(doctor_id, form.cleaned_data["date"])
    return JsonResponse({"slots": [s.to_dict() for s in slots]})


@require_POST
@login_required
@booking_errors
def book_appointment(request):
    if role_for(request.user) != ACTOR_PATIENT:
        return forbidden("Only patients can book appointments")

    payload = json_payload(request)
    if payload is None:
        return bad_request({"body": ["Malformed JSON body."]})

    form = BookingForm(payload)
    if not form.is_valid():
        return bad_request(form.errors.get_json_data())

    data = form.cleaned_data
    appointment = lifecycle.create_appointment(
        data["doctor_id"],
        request.user,
        data["start"],
        data["end"],
        reason=data["reason"],
    )
    return JsonResponse({"message": "Appointment booked", "appointment": appointment.to_dict()}, status=201)


@require_GET
@login_required
def my_appointments(request):
    form = AppointmentFilterForm(request.GET)
    if not form.is_valid():
        return bad_request(form.errors.get_json_data())

    data = form.cleaned_data
    role = role_for(request.user)
    if data["scope"] == "upcoming":
        qs = upcoming_for(request.user, role)
    elif data["scope"] == "past":
        qs = past_for(request.user, role)
    else:
        qs = appointments_for(request.user, role)

    qs = narrow(
        qs,
        status=data["status"],
        start_after=data["start_after"],
        start_before=data["start_before"],
    )
    return JsonResponse({"appointments": [a.to_dict() for a in qs]})


@require_POST
@login_required
@booking_errors
def cancel_appointment(request, appointment_id):
    appointment, role = appointment_for_user(appointment_id, request.user)
    appointment = lifecycle.cancel(appointment.pk, role)
    return JsonResponse({"message": "Appointment cancelled", "appointment": appointment.to_dict()})


@require_POST
@login_required
@booking_errors
def reschedule_appointment(request, appointment_id):
    appointment, role = appointment_for_user(appointment_id, request.user)
    if role not in (ACTOR_PATIENT, ACTOR_ADMIN):
        return forbidden("Only the patient can reschedule this appointment")

    payload = json_payload(request)
    if payload is None:
        return bad_request({"body": ["Malformed JSON body."]})

    form = RescheduleForm(payload)
    if not form.is_valid():
        return bad_request(form.errors.get_json_data())

    appointment = lifecycle.reschedule(
        appointment.pk,
        form.cleaned_data["start"],
        form.cleaned_data["end"],
    )
    return JsonResponse({"message": "Appointment rescheduled", "appointment": appointment.to_dict()})


@require_POST
@login_required
@booking_errors
def confirm_payment(request):
    """Payment confirmation callback; may be delivered more than once."""
    payload = json_payload(request)
    if payload is None:
        return bad_request({"body": ["Malformed JSON body."]})

    form = PaymentConfirmationForm(payload)
    if not form.is_valid():
        return bad_request(form.errors.get_json_data())

    data = form.cleaned_data
    appointment, role = appointment_for_user(data["appointment_id"], request.user)
    if role not in (ACTOR_PATIENT, ACTOR_ADMIN):
        return forbidden()

    appointment = lifecycle.confirm_payment(
        appointment.pk,
        data["amount"],
        transaction_id=data["transaction_id"],
    )
    invoice = getattr(appointment, "invoice", None)
    return JsonResponse({
        "message": "Payment recorded",
        "appointment": appointment.to_dict(),
        "invoice": invoice.number if invoice else None,
    })
