# apps/rooms/views.py
from datetime import datetime, timedelta
import logging

from django.db.models import Prefetch
from django.utils import timezone
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from apps.bookings.availability import check_room_availability
from apps.bookings.exceptions import InvalidInput
from apps.bookings.models import Reservation
from apps.bookings.serializers import ConflictingBookingSerializer
from apps.bookings.services import build_interval
from .models import Room
from .serializers import AvailabilityQuerySerializer, RoomSerializer

logger = logging.getLogger(__name__)

UPCOMING_WINDOW = timedelta(hours=1)


class RoomViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Public room catalogue and availability.

    GET /api/rooms/
    GET /api/rooms/<id>/
    GET /api/rooms/<id>/availability/?date=YYYY-MM-DD&startTime=HH:MM&endTime=HH:MM
    GET /api/rooms/availability/date/<YYYY-MM-DD>/
    GET /api/rooms/status/current/
    """
    queryset = Room.objects.filter(is_active=True)
    serializer_class = RoomSerializer
    permission_classes = [AllowAny]
    authentication_classes = []
    lookup_value_regex = r'\d+'
    pagination_class = None

    @action(detail=True, methods=['get'])
    def availability(self, request, pk=None):
        query = AvailabilityQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        data = query.validated_data

        start, end = build_interval(data['date'], data['start_time'], data['end_time'])
        room, conflicts = check_room_availability(pk, start, end)

        return Response({
            'message': 'Room availability checked successfully',
            'room': RoomSerializer(room).data,
            'isAvailable': not conflicts,
            'requestedTime': {
                'date': data['date'].isoformat(),
                'startTime': data['start_time'].strftime('%H:%M'),
                'endTime': data['end_time'].strftime('%H:%M'),
            },
            'conflictingBookings': ConflictingBookingSerializer(conflicts, many=True).data,
        })

    @action(detail=False, methods=['get'], url_path=r'availability/date/(?P<date>\d{4}-\d{2}-\d{2})')
    def availability_by_date(self, request, date=None):
        try:
            day = datetime.strptime(date, '%Y-%m-%d').date()
        except ValueError:
            raise InvalidInput('Invalid date format. Use YYYY-MM-DD.')

        tz = timezone.get_current_timezone()
        day_start = timezone.make_aware(datetime.combine(day, datetime.min.time()), tz)
        day_end = day_start + timedelta(days=1)

        bookings = Reservation.objects.filter(
            status__in=Reservation.ACTIVE_STATUSES,
            start_time__lt=day_end,
            end_time__gt=day_start,
        ).order_by('start_time')
        rooms = self.get_queryset().prefetch_related(
            Prefetch('reservations', queryset=bookings, to_attr='day_bookings')
        )

        return Response({
            'message': 'Room availability retrieved successfully',
            'date': day.isoformat(),
            'rooms': [
                {
                    **RoomSerializer(room).data,
                    'bookings': ConflictingBookingSerializer(room.day_bookings, many=True).data,
                }
                for room in rooms
            ],
        })

    @action(detail=False, methods=['get'], url_path='status/current')
    def current_status(self, request):
        now = timezone.now()
        bookings = Reservation.objects.filter(
            status__in=Reservation.ACTIVE_STATUSES,
            end_time__gt=now,
        ).order_by('start_time')
        rooms = self.get_queryset().prefetch_related(
            Prefetch('reservations', queryset=bookings, to_attr='open_bookings')
        )

        statuses = []
        for room in rooms:
            current = next((b for b in room.open_bookings if b.start_time <= now), None)
            upcoming = next((b for b in room.open_bookings if b.start_time > now), None)

            if current is not None:
                room_status = 'occupied'
            elif upcoming is not None and upcoming.start_time - now <= UPCOMING_WINDOW:
                room_status = 'upcoming'
            else:
                room_status = 'available'

            statuses.append({
                **RoomSerializer(room).data,
                'status': room_status,
                'currentBooking': ConflictingBookingSerializer(current).data if current else None,
                'nextBooking': ConflictingBookingSerializer(upcoming).data if upcoming else None,
            })

        logger.debug(f"Computed current status for {len(statuses)} rooms")
        return Response({
            'message': 'Room status retrieved successfully',
            'timestamp': now.isoformat(),
            'rooms': statuses,
        })
