from datetime import timedelta
from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone

from booking.models import Appointment

from .helpers import make_appointment, make_doctor, make_patient


class ManagementCommandTests(TestCase):
    def setUp(self):
        self.doctor = make_doctor()
        self.patient = make_patient()

    def expired_hold(self):
        start = timezone.now() + timedelta(days=2)
        return make_appointment(
            self.doctor,
            self.patient,
            start,
            start + timedelta(minutes=30),
            status=Appointment.STATUS_PENDING,
            pending_expires_at=timezone.now() - timedelta(minutes=1),
        )

    def test_sweep_holds_once(self):
        appt = self.expired_hold()
        out = StringIO()

        call_command("sweep_holds", stdout=out)

        self.assertIn("Reclaimed 1 expired hold(s)", out.getvalue())
        appt.refresh_from_db()
        self.assertEqual(appt.status, Appointment.STATUS_CANCELLED)

    def test_sweep_holds_loop_stops_on_interrupt(self):
        appt = self.expired_hold()

        with mock.patch("booking.management.commands.sweep_holds.close_old_connections") as close, \
                mock.patch("booking.management.commands.sweep_holds.time.sleep", side_effect=KeyboardInterrupt) as sleep:
            call_command("sweep_holds", "--loop", "--interval", "5")

        # stale connections are dropped before each cycle touches the database
        close.assert_called_once_with()
        sleep.assert_called_once_with(5)
        appt.refresh_from_db()
        self.assertEqual(appt.status, Appointment.STATUS_CANCELLED)

    def test_send_reminders(self):
        start = timezone.now() + timedelta(hours=24)
        make_appointment(self.doctor, self.patient, start, start + timedelta(minutes=30))
        out = StringIO()

        call_command("send_reminders", stdout=out)

        self.assertIn("Sent 1 reminder(s)", out.getvalue())
