from datetime import timedelta
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Reservation
from apps.bookings.tests.factories import local_dt, make_reservation, make_room, make_user
from .models import Room


class RoomCatalogueAPITestCase(APITestCase):

    def setUp(self):
        self.room = make_room()
        self.closed = make_room(name='Reading Room B', is_active=False)

    def test_list_active_rooms_without_login(self):
        response = self.client.get('/api/rooms/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([room['id'] for room in response.data], [self.room.id])
        self.assertEqual(response.data[0]['hourly_rate'], '50.00')

    def test_retrieve(self):
        response = self.client.get(f'/api/rooms/{self.room.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Reading Room A')

        response = self.client.get(f'/api/rooms/{self.closed.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_rooms_are_read_only(self):
        response = self.client.post('/api/rooms/', {'name': 'Pirate Room', 'capacity': 3}, format='json')
        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)


class RoomAvailabilityAPITestCase(APITestCase):

    def setUp(self):
        self.user = make_user()
        self.room = make_room()
        self.booking = make_reservation(
            self.user, self.room, local_dt(2024, 1, 1, 10), local_dt(2024, 1, 1, 12),
            status=Reservation.Status.CONFIRMED,
        )
        self.url = f'/api/rooms/{self.room.id}/availability/'

    def test_conflicting_interval(self):
        response = self.client.get(self.url, {'date': '2024-01-01', 'startTime': '11:00', 'endTime': '13:00'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['isAvailable'])
        self.assertEqual(response.data['room']['id'], self.room.id)
        self.assertEqual(response.data['requestedTime'], {
            'date': '2024-01-01',
            'startTime': '11:00',
            'endTime': '13:00',
        })
        self.assertEqual([b['id'] for b in response.data['conflictingBookings']], [self.booking.id])

    def test_touching_interval_is_available(self):
        response = self.client.get(self.url, {'date': '2024-01-01', 'startTime': '12:00', 'endTime': '14:00'})

        self.assertTrue(response.data['isAvailable'])
        self.assertEqual(response.data['conflictingBookings'], [])

    def test_missing_or_invalid_parameters(self):
        response = self.client.get(self.url, {'date': '2024-01-01'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_input')

        response = self.client.get(self.url, {'date': '2024-01-01', 'startTime': '14:00', 'endTime': '12:00'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_interval')

    def test_unknown_room(self):
        response = self.client.get(
            '/api/rooms/9999/availability/',
            {'date': '2024-01-01', 'startTime': '11:00', 'endTime': '13:00'},
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'room_not_found')

    def test_availability_by_date(self):
        other_room = make_room(name='Meeting Room C', capacity=10)
        make_reservation(
            self.user, self.room, local_dt(2024, 1, 1, 14), local_dt(2024, 1, 1, 15),
            status=Reservation.Status.CANCELLED,
        )
        make_reservation(self.user, self.room, local_dt(2024, 1, 2, 10), local_dt(2024, 1, 2, 12))

        response = self.client.get('/api/rooms/availability/date/2024-01-01/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['date'], '2024-01-01')
        rooms = {room['id']: room for room in response.data['rooms']}
        self.assertEqual([b['id'] for b in rooms[self.room.id]['bookings']], [self.booking.id])
        self.assertEqual(rooms[other_room.id]['bookings'], [])

    def test_availability_by_invalid_date(self):
        response = self.client.get('/api/rooms/availability/date/2024-13-45/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class CurrentRoomStatusAPITestCase(APITestCase):

    def test_status_per_room(self):
        user = make_user()
        occupied = make_room(name='Reading Room A')
        upcoming = make_room(name='Reading Room B')
        free = make_room(name='Meeting Room C', capacity=10)
        now = timezone.now()

        current = make_reservation(user, occupied, now - timedelta(minutes=30), now + timedelta(minutes=30))
        soon = make_reservation(user, upcoming, now + timedelta(minutes=20), now + timedelta(hours=2))
        make_reservation(user, free, now + timedelta(hours=3), now + timedelta(hours=4))
        make_reservation(
            user, free, now - timedelta(minutes=10), now + timedelta(hours=1),
            status=Reservation.Status.CANCELLED,
        )

        response = self.client.get('/api/rooms/status/current/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        rooms = {room['id']: room for room in response.data['rooms']}

        self.assertEqual(rooms[occupied.id]['status'], 'occupied')
        self.assertEqual(rooms[occupied.id]['currentBooking']['id'], current.id)

        self.assertEqual(rooms[upcoming.id]['status'], 'upcoming')
        self.assertIsNone(rooms[upcoming.id]['currentBooking'])
        self.assertEqual(rooms[upcoming.id]['nextBooking']['id'], soon.id)

        self.assertEqual(rooms[free.id]['status'], 'available')
        self.assertIsNotNone(rooms[free.id]['nextBooking'])


class SeedRoomsCommandTestCase(TestCase):

    def test_seed_is_idempotent(self):
        call_command('seed_rooms', stdout=StringIO())
        call_command('seed_rooms', stdout=StringIO())

        self.assertEqual(Room.objects.count(), 4)
        self.assertEqual(Room.objects.filter(capacity=10).count(), 2)
        self.assertEqual(Room.objects.get(name='Reading Room B').description, 'Comfortable space with natural lighting')

    def test_update_existing_rooms(self):
        make_room(name='Meeting Room D', capacity=2, hourly_rate='10.00')

        out = StringIO()
        call_command('seed_rooms', '--update', stdout=out)

        room = Room.objects.get(name='Meeting Room D')
        self.assertEqual(room.capacity, 10)
        self.assertEqual(str(room.hourly_rate), '50.00')
        self.assertIn('Updated Meeting Room D', out.getvalue())
