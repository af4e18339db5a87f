from unittest import mock

import requests
from django.core import mail
from django.test import TestCase, override_settings

from booking.constants import EVENT_CANCELLED, EVENT_REMINDER
from booking.notifications import notify_participants

from .helpers import at, make_appointment, make_doctor, make_patient


class NotificationTests(TestCase):
    def setUp(self):
        self.doctor = make_doctor(tz="Asia/Manila")
        self.patient = make_patient()
        # 01:00 UTC is 09:00 in Manila
        self.appt = make_appointment(self.doctor, self.patient, at(1), at(1, 30))

    def test_times_are_shown_on_the_doctor_clock(self):
        print("\n[TEST] notification text uses the doctor's local time")

        notify_participants(self.appt, EVENT_REMINDER, reminder="24h")

        self.assertEqual(sorted(m.to[0] for m in mail.outbox), ["doctor@clinic.test", "patient@mail.test"])
        for message in mail.outbox:
            self.assertEqual(message.subject, "Appointment Reminder")
            self.assertIn("2027-02-15 9:00 AM (Asia/Manila)", message.body)
            self.assertIn("(24h left)", message.body)
            self.assertNotIn("1:00 AM", message.body)

    @override_settings(NOTIFICATION_WEBHOOK_URL="https://hooks.clinic.test/notify")
    def test_webhook_receives_each_participant(self):
        with mock.patch("booking.notifications.http_requests.post") as post:
            notify_participants(self.appt, EVENT_CANCELLED)

        self.assertEqual(post.call_count, 2)
        payload = post.call_args.kwargs["json"]
        self.assertEqual(payload["event"], EVENT_CANCELLED)
        self.assertIn("Asia/Manila", payload["context"]["when"])

    @override_settings(NOTIFICATION_WEBHOOK_URL="https://hooks.clinic.test/notify")
    def test_webhook_failure_is_logged_not_raised(self):
        with mock.patch("booking.notifications.http_requests.post", side_effect=requests.RequestException("down")), \
                self.assertLogs("booking.notifications", level="ERROR") as logs:
            notify_participants(self.appt, EVENT_CANCELLED)

        self.assertEqual(len(logs.records), 2)
        self.assertEqual(len(mail.outbox), 2)
