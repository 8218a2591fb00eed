from django.contrib import admin
from .models import Room


@admin.register(Room)
class RoomAdmin(admin.ModelAdmin):
    list_display = ['name', 'capacity', 'hourly_rate', 'is_active', 'created_at']
    list_filter = ['is_active', 'capacity']
    search_fields = ['name', 'description']
    list_editable = ['is_active']
