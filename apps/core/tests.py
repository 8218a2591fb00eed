from django.test import SimpleTestCase, override_settings
from rest_framework import status
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.test import APITestCase

from apps.bookings.exceptions import RoomUnavailable
from apps.utils.exceptions import api_exception_handler, flatten_errors


class HealthCheckAPITestCase(APITestCase):

    def test_health(self):
        response = self.client.get('/api/health/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'ok')
        self.assertEqual(response.data['database'], 'healthy')


class ExceptionHandlerTestCase(SimpleTestCase):

    def test_domain_error(self):
        response = api_exception_handler(RoomUnavailable(), {})

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data, {
            'message': 'Room is not available for the selected time',
            'code': 'room_unavailable',
        })

    def test_drf_error(self):
        response = api_exception_handler(NotFound(), {})

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'not_found')

    def test_validation_error(self):
        response = api_exception_handler(ValidationError({'date': ['Invalid date.'], 'notes': ['Too long.']}), {})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_input')
        self.assertEqual(response.data['errors'], [
            {'field': 'date', 'message': 'Invalid date.'},
            {'field': 'notes', 'message': 'Too long.'},
        ])

    @override_settings(DEBUG=False)
    def test_unexpected_error(self):
        with self.assertLogs('apps.utils.exceptions', level='ERROR'):
            response = api_exception_handler(RuntimeError('boom'), {})

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data, {'message': 'Internal server error', 'code': 'internal_error'})

    @override_settings(DEBUG=True)
    def test_unexpected_error_in_debug(self):
        with self.assertLogs('apps.utils.exceptions', level='ERROR'):
            response = api_exception_handler(RuntimeError('boom'), {})

        self.assertEqual(response.data['error'], 'boom')

    def test_flatten_nested_errors(self):
        errors = flatten_errors({'booking': {'startTime': ['Required.']}, 'non_field_errors': ['Bad.']})

        self.assertEqual(errors, [
            {'field': 'booking.startTime', 'message': 'Required.'},
            {'field': 'non_field_errors', 'message': 'Bad.'},
        ])
