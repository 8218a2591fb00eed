import base64
from datetime import date, time, timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from apps.bookings.exceptions import (
    AlreadyCancelled,
    AlreadyCompleted,
    BookingNotFound,
    DurationTooLong,
    InvalidInterval,
    RoomNotFound,
    RoomUnavailable,
    TooLateToCancel,
)
from apps.bookings.models import Reservation
from apps.bookings.qr import build_qr_payload, generate_qr_code
from apps.bookings.services import BookingService, build_interval, can_cancel
from apps.notifications.publisher import BOOKING_CANCELLED, BOOKING_CREATED, BookingEventPublisher
from .factories import local_dt, make_reservation, make_room, make_user


class RecordingPublisher(BookingEventPublisher):
    def __init__(self):
        self.events = []

    def publish(self, room_id, event_name, payload):
        self.events.append((room_id, event_name, payload))


def fake_qr(payload):
    return f"qr:{payload['bookingId']}:{payload['roomName']}"


class CreateBookingTestCase(TestCase):

    def setUp(self):
        self.user = make_user()
        self.room = make_room()
        self.publisher = RecordingPublisher()
        self.service = BookingService(publisher=self.publisher, qr_generator=fake_qr)

    def test_create_booking(self):
        reservation, pricing = self.service.create_booking(
            self.user.id, self.room.id, date(2024, 1, 1), time(9, 0), time(14, 0), notes='Study group'
        )

        reservation.refresh_from_db()
        self.assertEqual(reservation.user, self.user)
        self.assertEqual(reservation.room, self.room)
        self.assertEqual(reservation.start_time, local_dt(2024, 1, 1, 9))
        self.assertEqual(reservation.end_time, local_dt(2024, 1, 1, 14))
        self.assertEqual(reservation.total_hours, 5)
        self.assertEqual(reservation.total_price, Decimal('250.00'))
        self.assertEqual(reservation.discount_amount, Decimal('37.50'))
        self.assertEqual(reservation.final_price, Decimal('212.50'))
        self.assertEqual(reservation.status, Reservation.Status.PENDING)
        self.assertEqual(reservation.payment_status, Reservation.PaymentStatus.PENDING)
        self.assertEqual(reservation.notes, 'Study group')
        self.assertEqual(reservation.qr_code, f'qr:{reservation.pk}:Reading Room A')
        self.assertEqual(pricing['final_price'], Decimal('212.50'))

    def test_overlapping_booking_is_rejected(self):
        self.service.create_booking(self.user.id, self.room.id, date(2024, 1, 1), time(10, 0), time(12, 0))

        with self.assertRaises(RoomUnavailable):
            self.service.create_booking(self.user.id, self.room.id, date(2024, 1, 1), time(11, 0), time(13, 0))

        self.assertEqual(Reservation.objects.filter(room=self.room).count(), 1)

    def test_touching_booking_is_accepted(self):
        self.service.create_booking(self.user.id, self.room.id, date(2024, 1, 1), time(10, 0), time(12, 0))
        self.service.create_booking(self.user.id, self.room.id, date(2024, 1, 1), time(12, 0), time(14, 0))

        self.assertEqual(Reservation.objects.filter(room=self.room).count(), 2)

    def test_cancelled_booking_frees_the_slot(self):
        make_reservation(
            self.user, self.room, local_dt(2024, 1, 1, 10), local_dt(2024, 1, 1, 12),
            status=Reservation.Status.CANCELLED,
        )
        reservation, _ = self.service.create_booking(
            self.user.id, self.room.id, date(2024, 1, 1), time(10, 0), time(12, 0)
        )
        self.assertEqual(reservation.status, Reservation.Status.PENDING)

    def test_invalid_requests(self):
        with self.assertRaises(InvalidInterval):
            self.service.create_booking(self.user.id, self.room.id, date(2024, 1, 1), time(12, 0), time(10, 0))

        with self.assertRaises(DurationTooLong):
            self.service.create_booking(self.user.id, self.room.id, date(2024, 1, 1), time(8, 0), time(21, 0))

        with self.assertRaises(RoomNotFound):
            self.service.create_booking(self.user.id, 9999, date(2024, 1, 1), time(10, 0), time(12, 0))

        self.room.is_active = False
        self.room.save()
        with self.assertRaises(RoomNotFound):
            self.service.create_booking(self.user.id, self.room.id, date(2024, 1, 1), time(10, 0), time(12, 0))

        self.assertFalse(Reservation.objects.exists())

    def test_created_event_is_published_after_commit(self):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            reservation, _ = self.service.create_booking(
                self.user.id, self.room.id, date(2024, 1, 1), time(10, 0), time(12, 0)
            )
            self.assertEqual(self.publisher.events, [])

        self.assertEqual(len(callbacks), 1)
        room_id, event_name, payload = self.publisher.events[0]
        self.assertEqual(room_id, self.room.id)
        self.assertEqual(event_name, BOOKING_CREATED)
        self.assertEqual(payload['booking']['id'], reservation.pk)
        self.assertEqual(payload['booking']['status'], 'pending')
        self.assertEqual(payload['booking']['startTime'], local_dt(2024, 1, 1, 10).isoformat())

    def test_nothing_is_published_when_booking_fails(self):
        self.service.create_booking(self.user.id, self.room.id, date(2024, 1, 1), time(10, 0), time(12, 0))

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            with self.assertRaises(RoomUnavailable):
                self.service.create_booking(self.user.id, self.room.id, date(2024, 1, 1), time(11, 0), time(13, 0))

        self.assertEqual(callbacks, [])
        self.assertEqual(self.publisher.events, [])


class CancelBookingTestCase(TestCase):

    def setUp(self):
        self.user = make_user()
        self.other_user = make_user()
        self.room = make_room()
        self.now = local_dt(2024, 1, 1, 8)
        self.publisher = RecordingPublisher()
        self.service = BookingService(
            publisher=self.publisher,
            qr_generator=fake_qr,
            clock=lambda: self.now,
        )

    def book(self, start, hours=2, status=Reservation.Status.PENDING):
        return make_reservation(self.user, self.room, start, start + timedelta(hours=hours), status=status)

    def test_cancel_three_hours_ahead(self):
        reservation = self.book(self.now + timedelta(hours=3))

        with self.captureOnCommitCallbacks(execute=True):
            cancelled = self.service.cancel_booking(self.user.id, reservation.pk)

        reservation.refresh_from_db()
        self.assertEqual(cancelled.pk, reservation.pk)
        self.assertEqual(reservation.status, Reservation.Status.CANCELLED)
        self.assertEqual(reservation.payment_status, Reservation.PaymentStatus.REFUNDED)
        self.assertEqual(self.publisher.events, [(self.room.id, BOOKING_CANCELLED, {'bookingId': reservation.pk})])

    def test_cancel_exactly_at_cutoff_is_allowed(self):
        reservation = self.book(self.now + timedelta(hours=1))
        self.service.cancel_booking(self.user.id, reservation.pk)

        reservation.refresh_from_db()
        self.assertEqual(reservation.status, Reservation.Status.CANCELLED)

    def test_cancel_thirty_minutes_ahead_is_too_late(self):
        reservation = self.book(self.now + timedelta(minutes=30))

        with self.assertRaises(TooLateToCancel) as cm:
            self.service.cancel_booking(self.user.id, reservation.pk)

        self.assertEqual(str(cm.exception.detail), 'Cannot cancel booking less than 1 hour before start time')
        reservation.refresh_from_db()
        self.assertEqual(reservation.status, Reservation.Status.PENDING)

    def test_cancel_twice(self):
        reservation = self.book(self.now + timedelta(hours=3))
        self.service.cancel_booking(self.user.id, reservation.pk)

        with self.captureOnCommitCallbacks(execute=True):
            with self.assertRaises(AlreadyCancelled):
                self.service.cancel_booking(self.user.id, reservation.pk)

        self.assertEqual(self.publisher.events, [])

    def test_cancel_completed_booking(self):
        reservation = self.book(self.now + timedelta(hours=3), status=Reservation.Status.COMPLETED)

        with self.assertRaises(AlreadyCompleted):
            self.service.cancel_booking(self.user.id, reservation.pk)

    def test_only_the_owner_can_cancel(self):
        reservation = self.book(self.now + timedelta(hours=3))

        with self.assertRaises(BookingNotFound):
            self.service.cancel_booking(self.other_user.id, reservation.pk)

        with self.assertRaises(BookingNotFound):
            self.service.cancel_booking(self.user.id, reservation.pk + 100)

        reservation.refresh_from_db()
        self.assertEqual(reservation.status, Reservation.Status.PENDING)

    def test_can_cancel(self):
        upcoming = self.book(self.now + timedelta(hours=3))
        soon = self.book(self.now + timedelta(minutes=30))
        done = self.book(self.now + timedelta(hours=6), status=Reservation.Status.COMPLETED)

        self.assertTrue(can_cancel(upcoming, now=self.now))
        self.assertFalse(can_cancel(soon, now=self.now))
        self.assertFalse(can_cancel(done, now=self.now))

    def test_cutoff_is_configurable(self):
        reservation = self.book(self.now + timedelta(hours=3))

        with self.settings(BOOKING_CANCELLATION_CUTOFF_HOURS=4):
            with self.assertRaises(TooLateToCancel) as cm:
                self.service.cancel_booking(self.user.id, reservation.pk)

        self.assertIn('4 hours', str(cm.exception.detail))


class UserBookingsTestCase(TestCase):

    def setUp(self):
        self.user = make_user()
        self.other_user = make_user()
        self.room = make_room()
        self.service = BookingService()

    def test_user_bookings_newest_first(self):
        first = make_reservation(self.user, self.room, local_dt(2024, 1, 1, 10), local_dt(2024, 1, 1, 12))
        second = make_reservation(self.user, self.room, local_dt(2024, 1, 2, 10), local_dt(2024, 1, 2, 12))
        make_reservation(self.other_user, self.room, local_dt(2024, 1, 3, 10), local_dt(2024, 1, 3, 12))

        self.assertEqual(list(self.service.user_bookings(self.user.id)), [second, first])

    def test_get_user_booking(self):
        reservation = make_reservation(self.user, self.room, local_dt(2024, 1, 1, 10), local_dt(2024, 1, 1, 12))

        self.assertEqual(self.service.get_user_booking(self.user.id, reservation.pk), reservation)
        with self.assertRaises(BookingNotFound):
            self.service.get_user_booking(self.other_user.id, reservation.pk)


class QRCodeTestCase(TestCase):

    def test_payload(self):
        user = make_user()
        room = make_room()
        reservation = make_reservation(user, room, local_dt(2024, 1, 1, 10), local_dt(2024, 1, 1, 12, 30))

        self.assertEqual(build_qr_payload(reservation), {
            'bookingId': reservation.pk,
            'userId': user.pk,
            'roomId': room.pk,
            'roomName': 'Reading Room A',
            'date': '2024-01-01',
            'startTime': '10:00',
            'endTime': '12:30',
        })

    def test_generate_qr_code_returns_png_data_url(self):
        data_url = generate_qr_code({'bookingId': 1, 'roomName': 'Reading Room A'})

        prefix = 'data:image/png;base64,'
        self.assertTrue(data_url.startswith(prefix))
        self.assertTrue(base64.b64decode(data_url[len(prefix):]).startswith(b'\x89PNG'))

    def test_default_service_stores_real_qr_code(self):
        user = make_user()
        room = make_room()
        reservation, _ = BookingService().create_booking(user.id, room.id, date(2024, 1, 1), time(10, 0), time(11, 0))

        reservation.refresh_from_db()
        self.assertTrue(reservation.qr_code.startswith('data:image/png;base64,'))


class BuildIntervalTestCase(TestCase):

    def test_interval_is_in_project_time_zone(self):
        start, end = build_interval(date(2024, 1, 1), time(10, 0), time(12, 0))

        self.assertTrue(timezone.is_aware(start))
        self.assertEqual(timezone.localtime(start).hour, 10)
        self.assertEqual(end - start, timedelta(hours=2))
