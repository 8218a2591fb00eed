from django.test import TestCase

from apps.bookings.availability import check_room_availability, find_conflicting_reservations
from apps.bookings.exceptions import InvalidInterval, RoomNotFound
from apps.bookings.models import Reservation
from .factories import local_dt, make_reservation, make_room, make_user


class AvailabilityTestCase(TestCase):
    """Half-open overlap: [10:00, 12:00) against requested intervals"""

    def setUp(self):
        self.user = make_user()
        self.room = make_room()
        self.other_room = make_room(name='Meeting Room C', capacity=10)
        self.booking = make_reservation(
            self.user, self.room,
            local_dt(2024, 1, 1, 10), local_dt(2024, 1, 1, 12),
            status=Reservation.Status.CONFIRMED,
        )

    def test_overlapping_intervals_conflict(self):
        scenarios = [
            (9, 11, 'starts before and overlaps'),
            (11, 13, 'starts during existing booking'),
            (10, 12, 'identical interval'),
            (9, 13, 'contains existing booking'),
        ]
        for start_hour, end_hour, description in scenarios:
            with self.subTest(description):
                conflicts = find_conflicting_reservations(
                    self.room.pk, local_dt(2024, 1, 1, start_hour), local_dt(2024, 1, 1, end_hour)
                )
                self.assertEqual(list(conflicts), [self.booking])

    def test_touching_boundaries_do_not_conflict(self):
        before = find_conflicting_reservations(self.room.pk, local_dt(2024, 1, 1, 8), local_dt(2024, 1, 1, 10))
        after = find_conflicting_reservations(self.room.pk, local_dt(2024, 1, 1, 12), local_dt(2024, 1, 1, 14))

        self.assertFalse(before.exists())
        self.assertFalse(after.exists())

    def test_other_rooms_are_independent(self):
        conflicts = find_conflicting_reservations(
            self.other_room.pk, local_dt(2024, 1, 1, 10), local_dt(2024, 1, 1, 12)
        )
        self.assertFalse(conflicts.exists())

    def test_cancelled_and_completed_bookings_free_the_room(self):
        for status in [Reservation.Status.CANCELLED, Reservation.Status.COMPLETED]:
            with self.subTest(status=status):
                self.booking.status = status
                self.booking.save()
                conflicts = find_conflicting_reservations(
                    self.room.pk, local_dt(2024, 1, 1, 10), local_dt(2024, 1, 1, 12)
                )
                self.assertFalse(conflicts.exists())

    def test_pending_booking_blocks_the_room(self):
        self.booking.status = Reservation.Status.PENDING
        self.booking.save()

        _, conflicts = check_room_availability(self.room.pk, local_dt(2024, 1, 1, 11), local_dt(2024, 1, 1, 12))
        self.assertEqual(conflicts, [self.booking])

    def test_check_room_availability_returns_room(self):
        room, conflicts = check_room_availability(self.room.pk, local_dt(2024, 1, 1, 13), local_dt(2024, 1, 1, 15))

        self.assertEqual(room, self.room)
        self.assertEqual(conflicts, [])

    def test_missing_or_inactive_room(self):
        with self.assertRaises(RoomNotFound):
            check_room_availability(9999, local_dt(2024, 1, 1, 13), local_dt(2024, 1, 1, 15))

        self.other_room.is_active = False
        self.other_room.save()
        with self.assertRaises(RoomNotFound):
            check_room_availability(self.other_room.pk, local_dt(2024, 1, 1, 13), local_dt(2024, 1, 1, 15))

    def test_invalid_interval(self):
        with self.assertRaises(InvalidInterval):
            check_room_availability(self.room.pk, local_dt(2024, 1, 1, 15), local_dt(2024, 1, 1, 13))
