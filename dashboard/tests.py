from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone

from booking import lifecycle
from booking.models import Appointment, AvailabilitySlot, DoctorSchedule
from booking.test.helpers import MONDAY, at, make_appointment, make_doctor, make_patient

from .services import appointment_board, get_doctor_patients, todays_appointments


class DashboardAccessSmokeTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.staff = User.objects.create_user("staff", password="pass12345", is_staff=True)
        self.user = make_patient("user")
        self.protected_urls = [
            reverse("dashboard:appointments"),
            reverse("dashboard:availability"),
            reverse("dashboard:schedule"),
        ]

    def test_protected_pages_require_login(self):
        for url in self.protected_urls:
            response = self.client.get(url)
            self.assertEqual(response.status_code, 302)
            self.assertIn(reverse("admin:login"), response.url)

    def test_patients_are_rejected(self):
        self.client.force_login(self.user)
        for url in self.protected_urls:
            self.assertEqual(self.client.get(url).status_code, 403)

    def test_staff_must_name_the_doctor(self):
        doctor = make_doctor()
        self.client.force_login(self.staff)

        self.assertEqual(self.client.get(reverse("dashboard:schedule")).status_code, 404)
        response = self.client.get(reverse("dashboard:schedule"), {"doctor_id": doctor.pk})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["doctor_id"], doctor.pk)


class DoctorDecisionViewTests(TestCase):
    def setUp(self):
        self.doctor = make_doctor()
        self.patient = make_patient()
        self.appt = lifecycle.create_appointment(self.doctor.pk, self.patient, at(9), at(9, 30))
        self.client.force_login(self.doctor)

    def post_json(self, url, data):
        return self.client.post(url, data, content_type="application/json")

    def test_accept(self):
        response = self.post_json(reverse("dashboard:confirm_appointment", args=[self.appt.pk]), {"action": "accept"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["appointment"]["status"], Appointment.STATUS_CONFIRMED)

        again = self.post_json(reverse("dashboard:confirm_appointment", args=[self.appt.pk]), {"action": "accept"})
        self.assertEqual(again.status_code, 409)

    def test_reject(self):
        response = self.post_json(reverse("dashboard:confirm_appointment", args=[self.appt.pk]), {"action": "reject"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "Appointment rejected")
        self.assertEqual(response.json()["appointment"]["cancelled_by"], "doctor")

    def test_unknown_action(self):
        response = self.post_json(reverse("dashboard:confirm_appointment", args=[self.appt.pk]), {"action": "maybe"})
        self.assertEqual(response.status_code, 400)

    def test_complete(self):
        lifecycle.confirm_payment(self.appt.pk, Decimal("500.00"))

        response = self.post_json(
            reverse("dashboard:complete_appointment", args=[self.appt.pk]),
            {"outcome": "completed", "notes": "All good", "prescription": "None"},
        )

        self.assertEqual(response.status_code, 200)
        body = response.json()["appointment"]
        self.assertEqual(body["status"], Appointment.STATUS_COMPLETED)
        self.assertEqual(body["notes"], "All good")

    def test_cancel_as_doctor(self):
        response = self.client.post(reverse("dashboard:cancel_appointment", args=[self.appt.pk]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["appointment"]["cancelled_by"], "doctor")

    def test_other_doctor_cannot_decide(self):
        self.client.force_login(make_doctor("other"))

        response = self.post_json(reverse("dashboard:confirm_appointment", args=[self.appt.pk]), {"action": "accept"})

        self.assertEqual(response.status_code, 404)

    def test_today_and_patients_lists(self):
        start = timezone.now().replace(second=0, microsecond=0)
        today = make_appointment(self.doctor, self.patient, start, start + timedelta(minutes=1))

        response = self.client.get(reverse("dashboard:todays_appointments"))
        self.assertEqual([a["id"] for a in response.json()["appointments"]], [today.pk])

        response = self.client.get(reverse("dashboard:patients"))
        self.assertEqual([p["id"] for p in response.json()["patients"]], [self.patient.pk])

    def test_board_lists_pending_requests(self):
        response = self.client.get(reverse("dashboard:appointments"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual([a["id"] for a in response.json()["pending_requests"]], [self.appt.pk])


class AvailabilityViewTests(TestCase):
    def setUp(self):
        self.doctor = make_doctor()
        self.client.force_login(self.doctor)
        self.url = reverse("dashboard:availability")

    def publish(self, *pairs):
        payload = {
            "date": MONDAY.isoformat(),
            "slots": [{"start": s.isoformat(), "end": e.isoformat()} for s, e in pairs],
        }
        return self.client.post(self.url, payload, content_type="application/json")

    def test_publish_and_list(self):
        response = self.publish((at(13), at(13, 30)), (at(14), at(14, 30)))
        self.assertEqual(response.status_code, 201)
        self.assertEqual(len(response.json()["availability"]["slots"]), 2)

        listing = self.client.get(self.url).json()["availability"]
        self.assertEqual([d["date"] for d in listing], [MONDAY.isoformat()])

    def test_overlap_is_rejected(self):
        self.publish((at(13), at(13, 30)))

        response = self.publish((at(13, 15), at(13, 45)))

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Overlaps existing availability slot")
        self.assertEqual(AvailabilitySlot.objects.count(), 1)

    def test_empty_batch_is_invalid(self):
        response = self.client.post(self.url, {"date": MONDAY.isoformat(), "slots": []}, content_type="application/json")
        self.assertEqual(response.status_code, 400)

    def test_delete_booked_slot_is_refused(self):
        self.publish((at(13), at(13, 30)), (at(14), at(14, 30)))
        lifecycle.create_appointment(self.doctor.pk, make_patient(), at(13), at(13, 30))
        booked = AvailabilitySlot.objects.get(start=at(13))
        free = AvailabilitySlot.objects.get(start=at(14))

        refused = self.client.post(reverse("dashboard:delete_slot", args=[booked.pk]))
        deleted = self.client.post(reverse("dashboard:delete_slot", args=[free.pk]))

        self.assertEqual(refused.status_code, 409)
        self.assertEqual(deleted.status_code, 200)
        self.assertEqual(list(AvailabilitySlot.objects.values_list("pk", flat=True)), [booked.pk])


class ScheduleViewTests(TestCase):
    def setUp(self):
        self.doctor = make_doctor()
        self.client.force_login(self.doctor)
        self.url = reverse("dashboard:schedule")

    def test_update_working_hours(self):
        payload = {
            "working_hours": {"tue": [{"start": "8:00", "end": "12:00"}]},
            "unavailable_dates": ["2027-03-01", "2027-02-20", "2027-03-01"],
            "tz": "Asia/Manila",
        }

        response = self.client.post(self.url, payload, content_type="application/json")

        self.assertEqual(response.status_code, 200)
        schedule = DoctorSchedule.objects.get(doctor=self.doctor)
        self.assertEqual(schedule.working_hours, {"tue": [{"start": "08:00", "end": "12:00"}]})
        self.assertEqual(schedule.unavailable_dates, ["2027-02-20", "2027-03-01"])
        self.assertEqual(schedule.tz, "Asia/Manila")
        self.assertEqual(schedule.slot_duration_mins, 30)

    def test_invalid_schedule(self):
        for payload in (
            {"tz": "Mars/Olympus"},
            {"working_hours": {"someday": []}},
            {"working_hours": {"mon": [{"start": "11:00", "end": "09:00"}]}},
            {"unavailable_dates": ["tomorrow"]},
        ):
            response = self.client.post(self.url, payload, content_type="application/json")
            self.assertEqual(response.status_code, 400, payload)

        self.assertEqual(DoctorSchedule.objects.get(doctor=self.doctor).tz, "UTC")


class DashboardServiceTests(TestCase):
    def setUp(self):
        self.doctor = make_doctor()
        self.patient = make_patient()

    def test_todays_appointments_follow_the_doctor_day(self):
        first = make_appointment(self.doctor, self.patient, at(10), at(10, 30))
        second = make_appointment(self.doctor, make_patient("b"), at(9), at(9, 30))
        make_appointment(self.doctor, self.patient, at(9) + timedelta(days=1), at(9, 30) + timedelta(days=1))

        today = todays_appointments(self.doctor, now=at(7))

        self.assertEqual(today, [second, first])

    def test_patients_are_listed_once(self):
        make_appointment(self.doctor, self.patient, at(9), at(9, 30))
        make_appointment(self.doctor, self.patient, at(10), at(10, 30))
        make_appointment(self.doctor, make_patient("b"), at(10, 30), at(11))

        patients = get_doctor_patients(self.doctor)

        self.assertEqual([p["username"] for p in patients], ["b", "patient"])

    def test_board_splits_by_status(self):
        future = timezone.now() + timedelta(days=3)
        pending = make_appointment(self.doctor, self.patient, future, future + timedelta(minutes=30),
                                   status=Appointment.STATUS_PENDING)
        booked = make_appointment(self.doctor, self.patient, future + timedelta(hours=1),
                                  future + timedelta(hours=1, minutes=30))
        done = make_appointment(self.doctor, self.patient, at(9), at(9, 30), status=Appointment.STATUS_COMPLETED)

        board, page = appointment_board(self.doctor, "doctor")

        self.assertEqual([a["id"] for a in board["pending_requests"]], [pending.pk])
        self.assertEqual([a["id"] for a in board["upcoming"]], [booked.pk])
        self.assertEqual([a["id"] for a in board["history"]], [done.pk])
        self.assertEqual(page.number, 1)

        board, _ = appointment_board(self.doctor, "doctor", q="nobody")
        self.assertEqual(board["pending_requests"], [])
