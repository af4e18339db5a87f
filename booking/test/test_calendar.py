from datetime import date, datetime, time, timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo

from django.test import TestCase

from booking.calendar import generate_slots, get_free_slots, raw_calendar, update_schedule
from booking.exceptions import NotFound
from booking.models import Appointment, AvailabilityDay, AvailabilitySlot, DoctorSchedule

from .helpers import MONDAY, TUESDAY, UTC, at, make_appointment, make_doctor, make_patient


class SlotCalendarTests(TestCase):
    def setUp(self):
        self.doctor = make_doctor()
        self.patient = make_patient()

    def test_monday_morning_is_cut_into_half_hours(self):
        slots = get_free_slots(self.doctor.pk, MONDAY)

        self.assertEqual(slots, [
            (at(9, 0), at(9, 30)),
            (at(9, 30), at(10, 0)),
            (at(10, 0), at(10, 30)),
            (at(10, 30), at(11, 0)),
        ])

    def test_day_without_windows_is_empty(self):
        self.assertEqual(get_free_slots(self.doctor.pk, TUESDAY), [])

    def test_unavailable_date_is_empty(self):
        DoctorSchedule.objects.filter(doctor=self.doctor).update(unavailable_dates=[MONDAY.isoformat()])
        self.assertEqual(get_free_slots(self.doctor.pk, MONDAY), [])

    def test_trailing_partial_window_is_dropped(self):
        update_schedule(self.doctor.pk, working_hours={"mon": [{"start": "09:00", "end": "10:45"}]})

        slots = get_free_slots(self.doctor.pk, MONDAY)

        self.assertEqual([s.start for s in slots], [at(9), at(9, 30), at(10)])
        self.assertEqual(slots[-1].end, at(10, 30))

    def test_windows_keep_their_configured_order(self):
        schedule = DoctorSchedule.objects.get(doctor=self.doctor)
        schedule.working_hours = {"mon": [
            {"start": "14:00", "end": "15:00"},
            {"start": "09:00", "end": "10:00"},
        ]}

        slots = generate_slots(schedule, MONDAY)

        self.assertEqual([s.start for s in slots], [at(14), at(14, 30), at(9), at(9, 30)])

    def test_clock_times_are_read_in_the_doctor_zone(self):
        update_schedule(self.doctor.pk, tz="Asia/Manila")

        slots = get_free_slots(self.doctor.pk, MONDAY)

        manila = ZoneInfo("Asia/Manila")
        self.assertEqual(slots[0].start, datetime.combine(MONDAY, time(9, 0), tzinfo=manila))
        # 09:00 in Manila is 01:00 UTC
        self.assertEqual(slots[0].start, at(1))

    def test_missing_schedule_raises_not_found(self):
        with self.assertRaises(NotFound):
            get_free_slots(self.patient.pk, MONDAY)

    def test_occupying_appointment_removes_overlapping_slots(self):
        make_appointment(self.doctor, self.patient, at(9, 15), at(9, 45), status=Appointment.STATUS_PENDING)

        starts = [s.start for s in get_free_slots(self.doctor.pk, MONDAY)]

        self.assertEqual(starts, [at(10), at(10, 30)])

    def test_cancelled_and_no_show_do_not_occupy(self):
        make_appointment(self.doctor, self.patient, at(9), at(9, 30), status=Appointment.STATUS_CANCELLED)
        make_appointment(self.doctor, self.patient, at(10), at(10, 30), status=Appointment.STATUS_NO_SHOW)

        self.assertEqual(len(get_free_slots(self.doctor.pk, MONDAY)), 4)

    def test_explicit_day_replaces_the_weekly_template(self):
        day = AvailabilityDay.objects.create(doctor=self.doctor, date=MONDAY)
        AvailabilitySlot.objects.create(day=day, start=at(15), end=at(15, 20))
        AvailabilitySlot.objects.create(day=day, start=at(13), end=at(13, 20))

        self.assertEqual(raw_calendar(self.doctor.pk, MONDAY), [(at(13), at(13, 20)), (at(15), at(15, 20))])

    def test_unavailable_date_hides_explicit_slots_too(self):
        day = AvailabilityDay.objects.create(doctor=self.doctor, date=MONDAY)
        AvailabilitySlot.objects.create(day=day, start=at(13), end=at(13, 20))
        update_schedule(self.doctor.pk, unavailable_dates=[MONDAY.isoformat()])

        self.assertEqual(get_free_slots(self.doctor.pk, MONDAY), [])


class UpdateScheduleTests(TestCase):
    def test_only_given_fields_change(self):
        doctor = make_doctor()

        schedule = update_schedule(doctor.pk, slot_duration_mins=20, fees=None)

        self.assertEqual(schedule.slot_duration_mins, 20)
        self.assertEqual(schedule.fees, Decimal("500.00"))
        self.assertEqual(len(get_free_slots(doctor.pk, MONDAY)), 6)

    def test_creates_schedule_for_new_doctor(self):
        user = make_patient("newdoc")

        update_schedule(user.pk, working_hours={"tue": [{"start": "08:00", "end": "09:00"}]})

        self.assertTrue(DoctorSchedule.objects.filter(doctor=user).exists())
        self.assertEqual(len(get_free_slots(user.pk, TUESDAY)), 2)

    def test_unknown_field_is_rejected(self):
        doctor = make_doctor()
        with self.assertRaises(TypeError):
            update_schedule(doctor.pk, colour="blue")


class DaylightSavingTests(TestCase):
    def setUp(self):
        self.doctor = make_doctor(tz="America/New_York", working_hours={"sun": [{"start": "01:00", "end": "04:00"}]})

    def assert_back_to_back(self, slots):
        # same-zone subtraction ignores the offset, so measure in UTC
        utc = [(s.start.astimezone(UTC), s.end.astimezone(UTC)) for s in slots]
        for start, end in utc:
            self.assertEqual(end - start, timedelta(minutes=30))
        for (_, previous_end), (following_start, _) in zip(utc, utc[1:]):
            self.assertEqual(previous_end, following_start)

    def test_spring_forward_skips_the_missing_hour(self):
        # 02:00 EST jumps to 03:00 EDT; the window holds two real hours
        day = date(2027, 3, 14)

        slots = get_free_slots(self.doctor.pk, day)

        self.assertEqual([s.start for s in slots], [at(6, day=day), at(6, 30, day=day), at(7, day=day), at(7, 30, day=day)])
        self.assert_back_to_back(slots)
        self.assertEqual([s.start.strftime("%H:%M") for s in slots], ["01:00", "01:30", "03:00", "03:30"])

    def test_fall_back_repeats_the_extra_hour(self):
        # 02:00 EDT falls back to 01:00 EST; the window holds four real hours
        day = date(2027, 11, 7)

        slots = get_free_slots(self.doctor.pk, day)

        self.assertEqual(len(slots), 8)
        self.assertEqual(slots[0].start, at(5, day=day))
        self.assertEqual(slots[-1].end, at(9, day=day))
        self.assert_back_to_back(slots)
