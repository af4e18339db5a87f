# weekday keys used by DoctorSchedule.working_hours, indexed by date.weekday()
WEEKDAY_KEYS = ["mon", "tue", "wed", "thu", "fri", "sat", "sun"]

ACTOR_PATIENT = "patient"
ACTOR_DOCTOR = "doctor"
ACTOR_ADMIN = "admin"
ACTOR_SYSTEM = "system"

ACTOR_CHOICES = [
    (ACTOR_PATIENT, "Patient"),
    (ACTOR_DOCTOR, "Doctor"),
    (ACTOR_ADMIN, "Admin"),
    (ACTOR_SYSTEM, "System"),
]

# notification event types handed to the notification service
EVENT_CREATED = "appointment_created"
EVENT_PAYMENT_CONFIRMED = "payment_confirmed"
EVENT_CONFIRMED = "appointment_confirmed"
EVENT_REJECTED = "appointment_rejected"
EVENT_CANCELLED = "appointment_cancelled"
EVENT_COMPLETED = "appointment_completed"
EVENT_RESCHEDULED = "appointment_rescheduled"
EVENT_HOLD_EXPIRED = "hold_expired"
EVENT_REMINDER = "appointment_reminder"
