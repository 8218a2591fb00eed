from rest_framework import serializers
from .models import Reservation
from .services import can_cancel, cancellation_cutoff


class BookingCreateSerializer(serializers.Serializer):
    """Request body for POST /api/bookings/ (camelCase, as sent by the web client)."""
    roomId = serializers.IntegerField(source='room_id', min_value=1)
    date = serializers.DateField(input_formats=['%Y-%m-%d'])
    startTime = serializers.TimeField(source='start_time', input_formats=['%H:%M'])
    endTime = serializers.TimeField(source='end_time', input_formats=['%H:%M'])
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=1000)


class ReservationSerializer(serializers.ModelSerializer):
    room_name = serializers.CharField(source='room.name', read_only=True)
    date = serializers.SerializerMethodField()
    booking_reference = serializers.CharField(read_only=True)
    can_cancel = serializers.SerializerMethodField()
    cancellation_cutoff_hours = serializers.SerializerMethodField()

    class Meta:
        model = Reservation
        fields = [
            'id', 'booking_reference', 'user', 'room', 'room_name', 'date',
            'start_time', 'end_time', 'total_hours', 'total_price',
            'discount_percent', 'discount_amount', 'final_price', 'qr_code',
            'status', 'payment_status', 'notes', 'created_at', 'updated_at',
            'can_cancel', 'cancellation_cutoff_hours',
        ]
        read_only_fields = fields

    def get_date(self, obj):
        return obj.local_start().date().isoformat()

    def get_can_cancel(self, obj):
        return can_cancel(obj)

    def get_cancellation_cutoff_hours(self, obj):
        return int(cancellation_cutoff().total_seconds() // 3600)


class ReservationListSerializer(ReservationSerializer):
    """Dashboard rows: everything but the QR image."""

    class Meta(ReservationSerializer.Meta):
        fields = [field for field in ReservationSerializer.Meta.fields if field != 'qr_code']
        read_only_fields = fields


class ConflictingBookingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Reservation
        fields = ['id', 'start_time', 'end_time', 'status']
        read_only_fields = fields


def pricing_representation(pricing):
    return {
        'totalHours': pricing['total_hours'],
        'totalPrice': str(pricing['total_price']),
        'discountPercent': str(pricing['discount_percent']),
        'discountAmount': str(pricing['discount_amount']),
        'finalPrice': str(pricing['final_price']),
    }
