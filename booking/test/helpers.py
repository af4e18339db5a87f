from datetime import date, datetime, time, timezone as dt_timezone
from decimal import Decimal

from django.contrib.auth import get_user_model

from booking.models import Appointment, DoctorSchedule

UTC = dt_timezone.utc
MONDAY = date(2027, 2, 15)
TUESDAY = date(2027, 2, 16)

MORNING_HOURS = {"mon": [{"start": "09:00", "end": "11:00"}]}


def at(hour, minute=0, day=MONDAY):
    return datetime.combine(day, time(hour, minute), tzinfo=UTC)


def make_doctor(username="doctor", **schedule):
    user = get_user_model().objects.create_user(username, email=f"{username}@clinic.test", password="pass12345")
    schedule.setdefault("working_hours", MORNING_HOURS)
    schedule.setdefault("slot_duration_mins", 30)
    schedule.setdefault("fees", Decimal("500.00"))
    schedule.setdefault("tz", "UTC")
    DoctorSchedule.objects.create(doctor=user, **schedule)
    return user


def make_patient(username="patient"):
    return get_user_model().objects.create_user(username, email=f"{username}@mail.test", password="pass12345")


def make_appointment(doctor, patient, start, end, status=Appointment.STATUS_BOOKED, **fields):
    return Appointment.objects.create(doctor=doctor, patient=patient, start=start, end=end, status=status, **fields)
