# apps/bookings/exceptions.py
from rest_framework import status
from rest_framework.exceptions import APIException


class BookingError(APIException):
    """Base class for booking engine failures; carries its own HTTP status."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Booking request failed'
    default_code = 'booking_error'


class InvalidInput(BookingError):
    default_detail = 'Invalid booking input'
    default_code = 'invalid_input'


class InvalidInterval(InvalidInput):
    default_detail = 'End time must be after start time'
    default_code = 'invalid_interval'


class DurationTooLong(InvalidInput):
    default_detail = 'Maximum booking duration is 12 hours'
    default_code = 'duration_too_long'


class RoomNotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Room not found'
    default_code = 'room_not_found'


class BookingNotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Booking not found'
    default_code = 'booking_not_found'


class RoomUnavailable(BookingError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Room is not available for the selected time'
    default_code = 'room_unavailable'


class AlreadyCancelled(BookingError):
    default_detail = 'Booking is already cancelled'
    default_code = 'already_cancelled'


class AlreadyCompleted(BookingError):
    default_detail = 'Cannot cancel completed booking'
    default_code = 'already_completed'


class TooLateToCancel(BookingError):
    default_detail = 'Cannot cancel booking this close to its start time'
    default_code = 'too_late_to_cancel'
