# apps/bookings/services.py
"""
Booking lifecycle: create and cancel reservations.

All writes to reservations go through BookingService. The database alias,
event publisher, QR generator and clock are passed in so that tests (and
other callers) can swap them.
"""
from datetime import datetime, timedelta
import logging

from django.conf import settings
from django.db import DEFAULT_DB_ALIAS, transaction
from django.utils import timezone

from apps.notifications.publisher import (
    BOOKING_CANCELLED,
    BOOKING_CREATED,
    NullPublisher,
    get_booking_publisher,
)
from .availability import find_conflicting_reservations, get_active_room
from .exceptions import (
    AlreadyCancelled,
    AlreadyCompleted,
    BookingNotFound,
    RoomUnavailable,
    TooLateToCancel,
)
from .models import Reservation
from .pricing import booking_duration_hours, calculate_booking_price
from .qr import build_qr_payload, generate_qr_code

logger = logging.getLogger(__name__)


def cancellation_cutoff():
    return timedelta(hours=getattr(settings, 'BOOKING_CANCELLATION_CUTOFF_HOURS', 1))


def build_interval(booking_date, start_time, end_time):
    """Combine a date and two wall-clock times into aware datetimes in the project time zone."""
    tz = timezone.get_current_timezone()
    start = timezone.make_aware(datetime.combine(booking_date, start_time), tz)
    end = timezone.make_aware(datetime.combine(booking_date, end_time), tz)
    return start, end


def can_cancel(reservation, now=None):
    """Whether the owner may still cancel: active status and far enough from the start."""
    if reservation.status in (Reservation.Status.CANCELLED, Reservation.Status.COMPLETED):
        return False
    now = now or timezone.now()
    return reservation.start_time - now >= cancellation_cutoff()


class BookingService:

    def __init__(self, using=DEFAULT_DB_ALIAS, publisher=None, qr_generator=None, clock=None):
        self.using = using
        self.publisher = publisher or NullPublisher()
        self.qr_generator = qr_generator or generate_qr_code
        self.clock = clock or timezone.now

    def create_booking(self, user_id, room_id, booking_date, start_time, end_time, notes=None):
        """
        Reserve ``room_id`` on ``booking_date`` from ``start_time`` to ``end_time``.

        The room row stays locked from the availability check until commit, so
        concurrent requests for the same room are serialized and at most one
        of two overlapping requests succeeds.

        Returns ``(reservation, pricing)``.
        """
        start, end = build_interval(booking_date, start_time, end_time)
        hours = booking_duration_hours(start, end)

        with transaction.atomic(using=self.using):
            room = get_active_room(room_id, using=self.using, lock=True)

            conflicts = find_conflicting_reservations(room.pk, start, end, using=self.using)
            if conflicts.exists():
                logger.warning(
                    f"Room {room.pk} unavailable for {start.isoformat()} - {end.isoformat()} "
                    f"(user {user_id})"
                )
                raise RoomUnavailable()

            pricing = calculate_booking_price(hours, room.hourly_rate)

            reservation = Reservation(
                user_id=user_id,
                room=room,
                start_time=start,
                end_time=end,
                total_hours=pricing['total_hours'],
                total_price=pricing['total_price'],
                discount_percent=pricing['discount_percent'],
                discount_amount=pricing['discount_amount'],
                final_price=pricing['final_price'],
                notes=notes or None,
                status=Reservation.Status.PENDING,
                payment_status=Reservation.PaymentStatus.PENDING,
            )
            reservation.save(using=self.using)

            reservation.qr_code = self.qr_generator(build_qr_payload(reservation))
            reservation.save(using=self.using, update_fields=['qr_code'])

            event = {
                'booking': {
                    'id': reservation.pk,
                    'startTime': start.isoformat(),
                    'endTime': end.isoformat(),
                    'status': reservation.status,
                },
            }
            transaction.on_commit(
                lambda: self.publisher.publish(room.pk, BOOKING_CREATED, event),
                using=self.using,
            )

        logger.info(
            f"Booking {reservation.pk} created: room {room.pk}, user {user_id}, "
            f"{hours}h, final price {pricing['final_price']}"
        )
        return reservation, pricing

    def cancel_booking(self, user_id, reservation_id):
        """Cancel the owner's reservation and mark its payment refunded."""
        with transaction.atomic(using=self.using):
            reservation = (
                Reservation.objects.using(self.using)
                .select_for_update()
                .filter(pk=reservation_id, user_id=user_id)
                .first()
            )
            if reservation is None:
                raise BookingNotFound()

            if reservation.status == Reservation.Status.CANCELLED:
                raise AlreadyCancelled()
            if reservation.status == Reservation.Status.COMPLETED:
                raise AlreadyCompleted()

            cutoff = cancellation_cutoff()
            if reservation.start_time - self.clock() < cutoff:
                hours = int(cutoff.total_seconds() // 3600)
                logger.warning(f"Late cancellation refused for booking {reservation.pk} (user {user_id})")
                raise TooLateToCancel(
                    f"Cannot cancel booking less than {hours} hour{'s' if hours != 1 else ''} before start time"
                )

            reservation.status = Reservation.Status.CANCELLED
            reservation.payment_status = Reservation.PaymentStatus.REFUNDED
            reservation.save(using=self.using, update_fields=['status', 'payment_status', 'updated_at'])

            room_id = reservation.room_id
            event = {'bookingId': reservation.pk}
            transaction.on_commit(
                lambda: self.publisher.publish(room_id, BOOKING_CANCELLED, event),
                using=self.using,
            )

        logger.info(f"Booking {reservation.pk} cancelled by user {user_id}")
        return reservation

    def get_user_booking(self, user_id, reservation_id):
        reservation = (
            Reservation.objects.using(self.using)
            .select_related('room')
            .filter(pk=reservation_id, user_id=user_id)
            .first()
        )
        if reservation is None:
            raise BookingNotFound()
        return reservation

    def user_bookings(self, user_id):
        return (
            Reservation.objects.using(self.using)
            .select_related('room')
            .filter(user_id=user_id)
            .order_by('-start_time', '-id')
        )


def get_booking_service():
    return BookingService(publisher=get_booking_publisher())
