from django_filters import rest_framework as filters
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.pagination import LimitOffsetPagination
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .models import Reservation
from .serializers import (
    BookingCreateSerializer,
    ReservationListSerializer,
    ReservationSerializer,
    pricing_representation,
)
from .services import get_booking_service


class MyBookingsPagination(LimitOffsetPagination):
    default_limit = 10
    max_limit = 100


class ReservationFilter(filters.FilterSet):
    status = filters.ChoiceFilter(choices=Reservation.Status.choices)

    class Meta:
        model = Reservation
        fields = ['status']


class BookingViewSet(mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """
    Bookings of the authenticated user.

    POST   /api/bookings/                create
    GET    /api/bookings/my-bookings/    list own bookings (?status=&limit=&offset=)
    GET    /api/bookings/<id>/           own booking detail
    PATCH  /api/bookings/<id>/cancel/    cancel own booking
    """
    serializer_class = ReservationSerializer
    permission_classes = [IsAuthenticated]
    lookup_value_regex = r'\d+'
    filter_backends = [filters.DjangoFilterBackend]
    filterset_class = ReservationFilter
    pagination_class = MyBookingsPagination

    def get_service(self):
        if not hasattr(self, '_service'):
            self._service = get_booking_service()
        return self._service

    def get_queryset(self):
        return self.get_service().user_bookings(self.request.user.id)

    def get_object(self):
        return self.get_service().get_user_booking(self.request.user.id, self.kwargs['pk'])

    def create(self, request, *args, **kwargs):
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        reservation, pricing = self.get_service().create_booking(
            user_id=request.user.id,
            room_id=data['room_id'],
            booking_date=data['date'],
            start_time=data['start_time'],
            end_time=data['end_time'],
            notes=data.get('notes'),
        )

        return Response({
            'message': 'Booking created successfully',
            'booking': ReservationSerializer(reservation).data,
            'pricing': pricing_representation(pricing),
        }, status=status.HTTP_201_CREATED)

    def retrieve(self, request, *args, **kwargs):
        return Response({
            'message': 'Booking retrieved successfully',
            'booking': self.get_serializer(self.get_object()).data,
        })

    @action(detail=False, methods=['get'], url_path='my-bookings')
    def my_bookings(self, request):
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = ReservationListSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    @action(detail=True, methods=['patch'])
    def cancel(self, request, pk=None):
        reservation = self.get_service().cancel_booking(request.user.id, pk)
        return Response({
            'message': 'Booking cancelled successfully',
            'booking': ReservationSerializer(reservation).data,
        })
