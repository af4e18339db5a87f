from django.conf import settings
from django.db import models
from django.db.models import F, Q

from .constants import ACTOR_CHOICES


def default_doctor_tz():
    return settings.DEFAULT_DOCTOR_TZ


class Hospital(models.Model):
    name = models.CharField(max_length=200)
    location = models.CharField(max_length=255, blank=True)

    def __str__(self):
        return self.name


class DoctorSchedule(models.Model):
    """
    Weekly working-hours template of a doctor.

    working_hours maps weekday keys ("mon".."sun") to lists of
    {"start": "HH:MM", "end": "HH:MM"} windows in the doctor's tz.
    unavailable_dates holds ISO date strings that blank out the template.
    """

    doctor = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="schedule",
    )
    hospital = models.ForeignKey(
        Hospital,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="schedules",
    )
    fees = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    tz = models.CharField(max_length=64, default=default_doctor_tz)
    slot_duration_mins = models.PositiveSmallIntegerField(default=30)
    working_hours = models.JSONField(default=dict, blank=True)
    unavailable_dates = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True)

    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Schedule of {self.doctor}"

    def is_unavailable_on(self, day) -> bool:
        return day.isoformat() in (self.unavailable_dates or [])


class Appointment(models.Model):
    STATUS_PENDING     = "pending"
    STATUS_BOOKED      = "booked"
    STATUS_CONFIRMED   = "confirmed"
    STATUS_COMPLETED   = "completed"
    STATUS_CANCELLED   = "cancelled"
    STATUS_NO_SHOW     = "no_show"
    STATUS_PAID        = "paid"
    STATUS_RESCHEDULED = "rescheduled"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_BOOKED, "Booked"),
        (STATUS_CONFIRMED, "Confirmed"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_CANCELLED, "Cancelled"),
        (STATUS_NO_SHOW, "No show"),
        (STATUS_PAID, "Paid"),
        (STATUS_RESCHEDULED, "Rescheduled"),
    ]

    # statuses that reserve the doctor's calendar
    OCCUPYING_STATUSES = [
        STATUS_PENDING,
        STATUS_BOOKED,
        STATUS_CONFIRMED,
        STATUS_COMPLETED,
        STATUS_RESCHEDULED,
        STATUS_PAID,
    ]
    TERMINAL_STATUSES = [STATUS_COMPLETED, STATUS_CANCELLED, STATUS_NO_SHOW]
    ACTIVE_STATUSES = [
        STATUS_PENDING,
        STATUS_BOOKED,
        STATUS_CONFIRMED,
        STATUS_RESCHEDULED,
        STATUS_PAID,
    ]

    PAYMENT_UNPAID   = "unpaid"
    PAYMENT_PAID     = "paid"
    PAYMENT_REFUNDED = "refunded"

    PAYMENT_CHOICES = [
        (PAYMENT_UNPAID, "Unpaid"),
        (PAYMENT_PAID, "Paid"),
        (PAYMENT_REFUNDED, "Refunded"),
    ]

    doctor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="doctor_appointments",
    )
    patient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="patient_appointments",
    )
    hospital = models.ForeignKey(
        Hospital,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="appointments",
    )

    # half-open interval [start, end)
    start = models.DateTimeField()
    end = models.DateTimeField()

    status = models.CharField(
        max_length=12,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
    )

    reason = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    prescription = models.TextField(blank=True)

    reminder_sent_24h = models.BooleanField(default=False)
    reminder_sent_1h = models.BooleanField(default=False)

    pending_expires_at = models.DateTimeField(null=True, blank=True)

    payment_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    payment_status = models.CharField(
        max_length=10,
        choices=PAYMENT_CHOICES,
        default=PAYMENT_UNPAID,
    )
    payment_txn_id = models.CharField(max_length=120, blank=True)

    # set when the booking acquired an explicit availability slot
    slot = models.ForeignKey(
        "AvailabilitySlot",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="appointments",
    )
    cancelled_by = models.CharField(max_length=10, choices=ACTOR_CHOICES, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["doctor", "start"], name="appt_doctor_start_idx"),
            models.Index(fields=["patient", "start"], name="appt_patient_start_idx"),
            models.Index(fields=["status", "pending_expires_at"], name="appt_status_hold_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["doctor", "start"],
                condition=Q(status__in=[
                    "pending", "booked", "confirmed", "completed", "rescheduled", "paid",
                ]),
                name="unique_occupying_doctor_start",
            ),
            models.CheckConstraint(
                condition=Q(end__gt=F("start")),
                name="appointment_end_after_start",
            ),
        ]
        ordering = ["start", "id"]

    def __str__(self):
        return f"{self.patient} with {self.doctor} @ {self.start:%Y-%m-%d %H:%M} ({self.status})"

    def to_dict(self):
        return {
            "id": self.pk,
            "doctor_id": self.doctor_id,
            "patient_id": self.patient_id,
            "hospital_id": self.hospital_id,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "status": self.status,
            "reason": self.reason,
            "notes": self.notes,
            "prescription": self.prescription,
            "pending_expires_at": self.pending_expires_at.isoformat() if self.pending_expires_at else None,
            "payment": {
                "amount": str(self.payment_amount) if self.payment_amount is not None else None,
                "status": self.payment_status,
                "transaction_id": self.payment_txn_id,
            },
            "slot_id": self.slot_id,
            "cancelled_by": self.cancelled_by,
        }


class AvailabilityDay(models.Model):
    """Explicit slots a doctor published for one calendar date."""

    doctor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="availability_days",
    )
    date = models.DateField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["doctor", "date"], name="unique_availability_day"),
        ]
        ordering = ["date"]

    def __str__(self):
        return f"{self.doctor} on {self.date}"

    def to_dict(self):
        return {
            "id": self.pk,
            "doctor_id": self.doctor_id,
            "date": self.date.isoformat(),
            "slots": [s.to_dict() for s in self.slots.all()],
        }


class AvailabilitySlot(models.Model):
    day = models.ForeignKey(AvailabilityDay, on_delete=models.CASCADE, related_name="slots")
    start = models.DateTimeField()
    end = models.DateTimeField()
    booked = models.BooleanField(default=False)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["day", "start"], name="unique_slot_start_per_day"),
            models.CheckConstraint(
                condition=Q(end__gt=F("start")),
                name="slot_end_after_start",
            ),
        ]
        ordering = ["start"]

    def __str__(self):
        flag = "booked" if self.booked else "free"
        return f"{self.start:%Y-%m-%d %H:%M}-{self.end:%H:%M} ({flag})"

    def to_dict(self):
        return {
            "id": self.pk,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "booked": self.booked,
        }


class Invoice(models.Model):
    STATUS_CHOICES = Appointment.PAYMENT_CHOICES

    number = models.CharField(max_length=40, unique=True)
    # one invoice per appointment; repeated payment callbacks reuse it
    appointment = models.OneToOneField(Appointment, on_delete=models.PROTECT, related_name="invoice")
    patient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="invoices",
    )
    doctor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="issued_invoices",
    )
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=Appointment.PAYMENT_PAID)
    issued_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-issued_at"]

    def __str__(self):
        return self.number
