import logging
import uuid

from django.utils import timezone

from .models import Appointment, Invoice

logger = logging.getLogger(__name__)


def make_invoice_number():
    return f"INV-{timezone.now():%Y%m%d}-{uuid.uuid4().hex[:8].upper()}"


def issue_invoice(appointment, amount) -> Invoice:
    """
    Record the invoice of a paid appointment. At most one invoice exists per
    appointment, so a repeated call returns the existing one.
    """
    invoice, created = Invoice.objects.get_or_create(
        appointment=appointment,
        defaults={
            "number": make_invoice_number(),
            "patient_id": appointment.patient_id,
            "doctor_id": appointment.doctor_id,
            "amount": amount,
            "status": Appointment.PAYMENT_PAID,
        },
    )
    if created:
        logger.info("Issued invoice %s for appointment %s", invoice.number, appointment.pk)
    return invoice
