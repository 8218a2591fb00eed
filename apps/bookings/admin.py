from django.contrib import admin
from .models import Reservation


@admin.register(Reservation)
class ReservationAdmin(admin.ModelAdmin):
    list_display = [
        'booking_reference', 'user', 'room', 'start_time', 'end_time',
        'total_hours', 'final_price', 'status', 'payment_status', 'created_at'
    ]
    list_filter = ['status', 'payment_status', 'room', ('start_time', admin.DateFieldListFilter)]
    search_fields = ['user__email', 'user__phone', 'room__name', 'notes']
    list_select_related = ['user', 'room']
    readonly_fields = [
        'booking_reference', 'total_hours', 'total_price', 'discount_percent',
        'discount_amount', 'final_price', 'qr_code', 'created_at', 'updated_at'
    ]
    ordering = ['-start_time']
    date_hierarchy = 'start_time'
    list_per_page = 25

    fieldsets = (
        ('Booking', {
            'fields': ('booking_reference', 'user', 'room', 'start_time', 'end_time', 'notes')
        }),
        ('Pricing', {
            'fields': ('total_hours', 'total_price', 'discount_percent', 'discount_amount', 'final_price')
        }),
        ('Status', {
            'fields': ('status', 'payment_status')
        }),
        ('Check-in', {
            'fields': ('qr_code',),
            'classes': ('collapse',)
        }),
        ('System Information', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )
