from rest_framework import serializers
from .models import Room


class RoomSerializer(serializers.ModelSerializer):
    class Meta:
        model = Room
        fields = ['id', 'name', 'capacity', 'hourly_rate', 'description', 'image_url', 'is_active']


class AvailabilityQuerySerializer(serializers.Serializer):
    date = serializers.DateField(input_formats=['%Y-%m-%d'])
    startTime = serializers.TimeField(source='start_time', input_formats=['%H:%M'])
    endTime = serializers.TimeField(source='end_time', input_formats=['%H:%M'])
