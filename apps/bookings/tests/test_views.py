from datetime import timedelta
from decimal import Decimal

from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Reservation
from .factories import local_dt, make_reservation, make_room, make_user


class CreateBookingAPITestCase(APITestCase):

    def setUp(self):
        self.user = make_user()
        self.room = make_room()
        self.client.force_authenticate(user=self.user)
        self.url = '/api/bookings/'

    def payload(self, **overrides):
        data = {
            'roomId': self.room.id,
            'date': '2030-01-01',
            'startTime': '09:00',
            'endTime': '14:00',
        }
        data.update(overrides)
        return data

    def test_create_booking(self):
        response = self.client.post(self.url, self.payload(notes='Window seat'), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['message'], 'Booking created successfully')
        self.assertEqual(response.data['pricing'], {
            'totalHours': 5,
            'totalPrice': '250.00',
            'discountPercent': '15',
            'discountAmount': '37.50',
            'finalPrice': '212.50',
        })

        booking = response.data['booking']
        self.assertEqual(booking['room'], self.room.id)
        self.assertEqual(booking['room_name'], 'Reading Room A')
        self.assertEqual(booking['date'], '2030-01-01')
        self.assertEqual(booking['status'], 'pending')
        self.assertEqual(booking['notes'], 'Window seat')
        self.assertTrue(booking['qr_code'].startswith('data:image/png;base64,'))
        self.assertTrue(booking['can_cancel'])
        self.assertEqual(booking['cancellation_cutoff_hours'], 1)
        self.assertEqual(Reservation.objects.get().user, self.user)

    def test_conflict_returns_409(self):
        self.client.post(self.url, self.payload(startTime='10:00', endTime='12:00'), format='json')
        response = self.client.post(self.url, self.payload(startTime='11:00', endTime='13:00'), format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'room_unavailable')
        self.assertEqual(Reservation.objects.count(), 1)

    def test_invalid_body(self):
        response = self.client.post(self.url, {'roomId': self.room.id, 'date': '01/01/2030'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_input')
        fields = {error['field'] for error in response.data['errors']}
        self.assertEqual(fields, {'date', 'startTime', 'endTime'})

    def test_invalid_interval_and_duration(self):
        response = self.client.post(self.url, self.payload(startTime='12:00', endTime='10:00'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_interval')

        response = self.client.post(self.url, self.payload(startTime='08:00', endTime='21:00'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'duration_too_long')

    def test_unknown_room(self):
        response = self.client.post(self.url, self.payload(roomId=9999), format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'message': 'Room not found', 'code': 'room_not_found'})

    def test_requires_authentication(self):
        self.client.force_authenticate(user=None)
        response = self.client.post(self.url, self.payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(Reservation.objects.exists())


class MyBookingsAPITestCase(APITestCase):

    def setUp(self):
        self.user = make_user()
        self.other_user = make_user()
        self.room = make_room()
        self.client.force_authenticate(user=self.user)
        self.url = '/api/bookings/my-bookings/'

        for day in range(1, 13):
            make_reservation(
                self.user, self.room,
                local_dt(2024, 1, day, 10), local_dt(2024, 1, day, 12),
                status=Reservation.Status.CANCELLED if day % 4 == 0 else Reservation.Status.COMPLETED,
            )
        make_reservation(self.other_user, self.room, local_dt(2024, 2, 1, 10), local_dt(2024, 2, 1, 12))

    def test_default_page(self):
        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 12)
        self.assertEqual(len(response.data['results']), 10)
        self.assertIsNotNone(response.data['next'])
        self.assertNotIn('qr_code', response.data['results'][0])
        # Newest first
        self.assertEqual(response.data['results'][0]['date'], '2024-01-12')

    def test_limit_and_offset(self):
        response = self.client.get(self.url, {'limit': 5, 'offset': 10})

        self.assertEqual(len(response.data['results']), 2)
        self.assertIsNone(response.data['next'])

    def test_invalid_limit_falls_back_to_default(self):
        response = self.client.get(self.url, {'limit': 'abc', 'offset': '-3'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['results']), 10)

    def test_status_filter(self):
        response = self.client.get(self.url, {'status': 'cancelled'})

        self.assertEqual(response.data['count'], 3)
        self.assertTrue(all(b['status'] == 'cancelled' for b in response.data['results']))

    def test_invalid_status_filter(self):
        response = self.client.get(self.url, {'status': 'lost'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class BookingDetailAPITestCase(APITestCase):

    def setUp(self):
        self.user = make_user()
        self.other_user = make_user()
        self.room = make_room()
        start = timezone.now() + timedelta(days=2)
        self.booking = make_reservation(self.user, self.room, start, start + timedelta(hours=2))
        self.client.force_authenticate(user=self.user)

    def test_retrieve_own_booking(self):
        response = self.client.get(f'/api/bookings/{self.booking.pk}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['booking']['id'], self.booking.pk)
        self.assertEqual(response.data['booking']['booking_reference'], f'BK-{self.booking.pk:06d}')

    def test_other_users_booking_is_hidden(self):
        self.client.force_authenticate(user=self.other_user)
        response = self.client.get(f'/api/bookings/{self.booking.pk}/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'booking_not_found')

    def test_cancel(self):
        response = self.client.patch(f'/api/bookings/{self.booking.pk}/cancel/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['booking']['status'], 'cancelled')
        self.assertEqual(response.data['booking']['payment_status'], 'refunded')
        self.assertFalse(response.data['booking']['can_cancel'])

        response = self.client.patch(f'/api/bookings/{self.booking.pk}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'already_cancelled')

    def test_cancel_too_late(self):
        start = timezone.now() + timedelta(minutes=30)
        soon = make_reservation(self.user, self.room, start, start + timedelta(hours=1))

        response = self.client.patch(f'/api/bookings/{soon.pk}/cancel/')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'too_late_to_cancel')

    def test_cancel_other_users_booking(self):
        self.client.force_authenticate(user=self.other_user)
        response = self.client.patch(f'/api/bookings/{self.booking.pk}/cancel/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, Reservation.Status.PENDING)
        self.assertEqual(self.booking.final_price, Decimal('100.00'))
