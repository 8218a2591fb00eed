from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.test import SimpleTestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Reservation
from apps.bookings.tests.factories import local_dt, make_reservation, make_room, make_user
from .models import CustomUser
from .validators import clean_national_id, is_valid_thai_national_id
from .views import RegisterView


class ThaiNationalIdTestCase(SimpleTestCase):

    def test_valid_ids(self):
        for value in ['1101700203450', '1234567890121', '1-1017-00203-45-0', '1 2345 67890 12 1']:
            with self.subTest(value=value):
                self.assertTrue(is_valid_thai_national_id(value))

    def test_invalid_ids(self):
        for value in ['1101700203451', '123456789012', '12345678901234', 'abcdefghijklm', '', None]:
            with self.subTest(value=value):
                self.assertFalse(is_valid_thai_national_id(value))

    def test_clean(self):
        self.assertEqual(clean_national_id('1-1017-00203-45-0'), '1101700203450')


class RegisterAPITestCase(APITestCase):

    def setUp(self):
        self.url = '/api/auth/register/'
        self.data = {
            'email': 'Somchai@Example.com',
            'phone': '0812345678',
            'national_id': '1-1017-00203-45-0',
            'first_name': 'Somchai',
            'last_name': 'Jaidee',
            'password': 'secret123',
        }

    def test_register(self):
        response = self.client.post(self.url, self.data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['email'], 'somchai@example.com')
        self.assertEqual(response.data['user']['role'], 'customer')
        self.assertNotIn('password', response.data['user'])

        user = CustomUser.objects.get()
        self.assertEqual(user.national_id, '1101700203450')
        self.assertTrue(user.check_password('secret123'))

    def test_invalid_national_id(self):
        self.data['national_id'] = '1101700203451'
        response = self.client.post(self.url, self.data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual([e['field'] for e in response.data['errors']], ['national_id'])
        self.assertFalse(CustomUser.objects.exists())

    def test_invalid_phone_and_short_password(self):
        self.data.update(phone='12345', password='abc')
        response = self.client.post(self.url, self.data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        fields = {e['field'] for e in response.data['errors']}
        self.assertEqual(fields, {'phone', 'password'})

    def test_duplicate_identifiers(self):
        make_user(email='existing@example.com', phone='0899999999', national_id='1101700203450')

        for field, value in [
            ('email', 'EXISTING@example.com'),
            ('phone', '0899999999'),
            ('national_id', '1101700203450'),
        ]:
            with self.subTest(field=field):
                data = dict(self.data, email='fresh@example.com', phone='0811111111',
                            national_id='1234567890121')
                data[field] = value
                response = self.client.post(self.url, data, format='json')

                self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
                self.assertEqual(response.data['code'], 'duplicate_user')

        self.assertEqual(CustomUser.objects.count(), 1)

    def test_concurrent_duplicate_caught_by_unique_constraint(self):
        make_user(email='existing@example.com', phone='0812345678', national_id='1234567890121')

        # Another request created the account after this one checked
        with mock.patch.object(RegisterView, 'identifiers_taken', return_value=False):
            response = self.client.post(self.url, self.data, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'duplicate_user')
        self.assertEqual(CustomUser.objects.count(), 1)


class LoginAPITestCase(APITestCase):

    def setUp(self):
        self.user = make_user(email='nok@example.com')
        self.url = '/api/auth/login/'

    def test_login(self):
        response = self.client.post(self.url, {'email': 'NOK@example.com', 'password': 'secret123'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertEqual(response.data['user']['id'], self.user.id)

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")
        profile = self.client.get('/api/users/profile/')
        self.assertEqual(profile.status_code, status.HTTP_200_OK)
        self.assertEqual(profile.data['user']['email'], 'nok@example.com')

    def test_wrong_password(self):
        response = self.client.post(self.url, {'email': 'nok@example.com', 'password': 'wrong'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['message'], 'Invalid email or password.')

    def test_inactive_user_cannot_login(self):
        self.user.is_active = False
        self.user.save()

        response = self.client.post(self.url, {'email': 'nok@example.com', 'password': 'secret123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_token_of_deactivated_user_is_rejected(self):
        response = self.client.post(self.url, {'email': 'nok@example.com', 'password': 'secret123'}, format='json')
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")

        self.user.is_active = False
        self.user.save()

        profile = self.client.get('/api/users/profile/')
        self.assertEqual(profile.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_logout_blacklists_refresh_token(self):
        tokens = self.client.post(self.url, {'email': 'nok@example.com', 'password': 'secret123'}, format='json').data

        response = self.client.post('/api/auth/logout/', {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.post('/api/auth/token/refresh/', {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

        response = self.client.post('/api/auth/logout/', {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_logout_requires_refresh_token(self):
        response = self.client.post('/api/auth/logout/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class UserStatsAPITestCase(APITestCase):

    def test_stats(self):
        user = make_user()
        room = make_room()
        make_reservation(user, room, local_dt(2024, 1, 1, 10), local_dt(2024, 1, 1, 12),
                         status=Reservation.Status.COMPLETED)
        make_reservation(user, room, local_dt(2024, 1, 2, 10), local_dt(2024, 1, 2, 13),
                         status=Reservation.Status.COMPLETED)
        make_reservation(user, room, local_dt(2024, 1, 3, 10), local_dt(2024, 1, 3, 12),
                         status=Reservation.Status.CANCELLED)
        start = timezone.now() + timedelta(days=1)
        make_reservation(user, room, start, start + timedelta(hours=1))
        make_reservation(make_user(), room, local_dt(2024, 1, 4, 10), local_dt(2024, 1, 4, 12),
                         status=Reservation.Status.COMPLETED)

        self.client.force_authenticate(user=user)
        response = self.client.get('/api/users/stats/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        stats = response.data['stats']
        self.assertEqual(stats['total_bookings'], 4)
        self.assertEqual(stats['completed_bookings'], 2)
        self.assertEqual(stats['pending_bookings'], 1)
        self.assertEqual(stats['cancelled_bookings'], 1)
        self.assertEqual(Decimal(stats['total_spent']), Decimal('250.00'))
        self.assertEqual(stats['total_hours'], 5)

    def test_stats_require_authentication(self):
        response = self.client.get('/api/users/stats/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
