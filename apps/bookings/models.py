# apps/bookings/models.py
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


class Reservation(models.Model):
    """
    A booked [start_time, end_time) interval on a room.

    Prices are fixed when the reservation is created; the QR code is a PNG
    data URL presented at check-in.
    """

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        CONFIRMED = 'confirmed', 'Confirmed'
        CANCELLED = 'cancelled', 'Cancelled'
        COMPLETED = 'completed', 'Completed'

    class PaymentStatus(models.TextChoices):
        PENDING = 'pending', 'Pending'
        PAID = 'paid', 'Paid'
        REFUNDED = 'refunded', 'Refunded'

    # Statuses that hold the room
    ACTIVE_STATUSES = (Status.PENDING, Status.CONFIRMED)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='reservations',
    )
    room = models.ForeignKey(
        'rooms.Room',
        on_delete=models.CASCADE,
        related_name='reservations',
    )
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    total_hours = models.PositiveIntegerField()

    total_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text="Gross price before discount",
    )
    discount_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    discount_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    final_price = models.DecimalField(max_digits=10, decimal_places=2)

    qr_code = models.TextField(blank=True, default='')
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    notes = models.TextField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-start_time']
        db_table = 'bookings'
        indexes = [
            models.Index(fields=['user'], name='idx_user_bookings'),
            models.Index(fields=['room', 'start_time', 'end_time'], name='idx_room_booking_time'),
            models.Index(fields=['status'], name='idx_booking_status'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_time__gt=models.F('start_time')),
                name='booking_end_after_start',
            ),
        ]

    def __str__(self):
        return f"Booking #{self.pk} - {self.room} {self.start_time:%Y-%m-%d %H:%M}-{self.end_time:%H:%M}"

    @property
    def is_active(self):
        return self.status in self.ACTIVE_STATUSES

    @property
    def booking_reference(self):
        return f"BK-{self.pk:06d}" if self.pk else ''

    def local_start(self):
        return timezone.localtime(self.start_time)

    def local_end(self):
        return timezone.localtime(self.end_time)
