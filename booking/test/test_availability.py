from django.test import TestCase

from booking import lifecycle
from booking.availability import (
    acquire_slot,
    create_slots,
    delete_slot,
    list_days,
    release_slot,
    release_slot_by_id,
)
from booking.calendar import get_free_slots
from booking.exceptions import (
    InvalidInterval,
    OverlappingSlot,
    SlotAlreadyBooked,
    SlotNotFound,
    SlotUnavailable,
)
from booking.models import Appointment, AvailabilitySlot

from .helpers import MONDAY, TUESDAY, at, make_doctor, make_patient


class AvailabilityStoreTests(TestCase):
    def setUp(self):
        self.doctor = make_doctor()
        self.patient = make_patient()

    def publish(self, *pairs):
        return create_slots(self.doctor.pk, MONDAY, pairs)

    def test_created_slots_round_trip_through_free_slots(self):
        print("\n[TEST] created slots come back as free slots minus the booked ones")

        self.publish((at(15), at(15, 20)), (at(13), at(13, 20)), (at(14), at(14, 20)))
        acquire_slot(self.doctor.pk, MONDAY, at(14), at(14, 20))

        free = get_free_slots(self.doctor.pk, MONDAY)
        print("  - free slots:", [s.start.isoformat() for s in free])

        self.assertEqual(free, [(at(13), at(13, 20)), (at(15), at(15, 20))])

    def test_overlapping_batch_stores_nothing(self):
        print("\n[TEST] overlapping slots inside one batch are rejected as a whole")

        with self.assertRaises(OverlappingSlot):
            self.publish((at(13), at(13, 30)), (at(13, 15), at(13, 45)))

        self.assertEqual(AvailabilitySlot.objects.count(), 0)

    def test_overlap_with_stored_slot_stores_nothing(self):
        print("\n[TEST] a batch overlapping already stored slots leaves the store untouched")

        self.publish((at(13), at(13, 30)))

        with self.assertRaises(OverlappingSlot):
            self.publish((at(14), at(14, 30)), (at(13, 20), at(13, 40)))

        print("  - slots stored:", AvailabilitySlot.objects.count())
        self.assertEqual(AvailabilitySlot.objects.count(), 1)

    def test_adjacent_slots_are_accepted(self):
        day = self.publish((at(13), at(13, 30)), (at(13, 30), at(14)))
        self.assertEqual(day.slots.count(), 2)

    def test_invalid_interval(self):
        with self.assertRaises(InvalidInterval):
            self.publish((at(13, 30), at(13)))

    def test_slot_must_fall_on_the_given_date(self):
        with self.assertRaises(InvalidInterval):
            create_slots(self.doctor.pk, TUESDAY, [(at(13), at(13, 30))])

    def test_acquire_is_compare_and_set(self):
        print("\n[TEST] a slot can only be acquired once")

        self.publish((at(13), at(13, 30)))
        slot = acquire_slot(self.doctor.pk, MONDAY, at(13), at(13, 30))
        self.assertTrue(slot.booked)

        with self.assertRaises(SlotAlreadyBooked):
            acquire_slot(self.doctor.pk, MONDAY, at(13), at(13, 30))

        with self.assertRaises(SlotNotFound):
            acquire_slot(self.doctor.pk, MONDAY, at(16), at(16, 30))

    def test_release_is_idempotent(self):
        self.publish((at(13), at(13, 30)))
        acquire_slot(self.doctor.pk, MONDAY, at(13), at(13, 30))

        self.assertTrue(release_slot(self.doctor.pk, MONDAY, at(13), at(13, 30)))
        self.assertFalse(release_slot(self.doctor.pk, MONDAY, at(13), at(13, 30)))

        with self.assertRaises(SlotNotFound):
            release_slot(self.doctor.pk, MONDAY, at(16), at(16, 30))
        with self.assertRaises(SlotNotFound):
            release_slot_by_id(999999)

    def test_delete_only_unbooked(self):
        day = self.publish((at(13), at(13, 30)), (at(14), at(14, 30)))
        booked = acquire_slot(self.doctor.pk, MONDAY, at(13), at(13, 30))
        free = day.slots.get(start=at(14))

        with self.assertRaisesMessage(SlotAlreadyBooked, "Cannot delete a booked slot"):
            delete_slot(self.doctor.pk, booked.pk)

        delete_slot(self.doctor.pk, free.pk)
        self.assertEqual(list(day.slots.values_list("pk", flat=True)), [booked.pk])

    def test_delete_someone_elses_slot(self):
        day = self.publish((at(13), at(13, 30)))
        other = make_doctor("other")

        with self.assertRaises(SlotNotFound):
            delete_slot(other.pk, day.slots.get().pk)

    def test_list_days(self):
        self.publish((at(13), at(13, 30)))
        create_slots(self.doctor.pk, TUESDAY, [(at(9, day=TUESDAY), at(9, 30, day=TUESDAY))])

        days = list(list_days(self.doctor.pk))

        self.assertEqual([d.date for d in days], [MONDAY, TUESDAY])
        self.assertEqual(days[0].to_dict()["slots"][0]["start"], at(13).isoformat())


class ExplicitSlotBookingTests(TestCase):
    def setUp(self):
        self.doctor = make_doctor()
        self.patient = make_patient()
        create_slots(self.doctor.pk, MONDAY, [(at(13), at(13, 30)), (at(14), at(14, 30))])

    def test_booking_takes_and_cancel_returns_the_slot(self):
        print("\n[TEST] booking an explicit slot marks it booked; cancelling frees it")

        appt = lifecycle.create_appointment(self.doctor.pk, self.patient, at(13), at(13, 30))
        self.assertTrue(AvailabilitySlot.objects.get(pk=appt.slot_id).booked)
        self.assertEqual(get_free_slots(self.doctor.pk, MONDAY), [(at(14), at(14, 30))])

        lifecycle.cancel(appt.pk, "patient")

        self.assertFalse(AvailabilitySlot.objects.get(pk=appt.slot_id).booked)
        self.assertEqual(len(get_free_slots(self.doctor.pk, MONDAY)), 2)

    def test_interval_outside_published_slots_is_rejected(self):
        with self.assertRaises(SlotNotFound):
            lifecycle.create_appointment(self.doctor.pk, self.patient, at(9), at(9, 30))
        self.assertFalse(Appointment.objects.exists())

    def test_second_booking_of_same_slot_fails(self):
        lifecycle.create_appointment(self.doctor.pk, self.patient, at(13), at(13, 30))

        with self.assertRaises(SlotUnavailable):
            lifecycle.create_appointment(self.doctor.pk, make_patient("second"), at(13), at(13, 30))

    def test_reschedule_moves_between_slots(self):
        appt = lifecycle.create_appointment(self.doctor.pk, self.patient, at(13), at(13, 30))
        old_slot = appt.slot_id

        appt = lifecycle.reschedule(appt.pk, at(14), at(14, 30))

        self.assertFalse(AvailabilitySlot.objects.get(pk=old_slot).booked)
        self.assertTrue(AvailabilitySlot.objects.get(pk=appt.slot_id).booked)
        self.assertEqual(get_free_slots(self.doctor.pk, MONDAY), [(at(13), at(13, 30))])
