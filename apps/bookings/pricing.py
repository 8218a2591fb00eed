# apps/bookings/pricing.py
"""
Booking price and duration rules.

Money is handled as Decimal and quantized to two places with ROUND_HALF_UP.
Nothing here touches the database.
"""
import math
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .exceptions import DurationTooLong, InvalidInput, InvalidInterval

MAX_BOOKING_HOURS = 12
DISCOUNT_MIN_HOURS = 5
DISCOUNT_PERCENT = Decimal('15')

CENTS = Decimal('0.01')


def to_money(value):
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def booking_duration_hours(start, end):
    """Whole hours billed for [start, end): partial hours round up."""
    if end <= start:
        raise InvalidInterval()

    hours = math.ceil((end - start).total_seconds() / 3600)
    if hours > MAX_BOOKING_HOURS:
        raise DurationTooLong(f'Maximum booking duration is {MAX_BOOKING_HOURS} hours')
    return hours


def discount_percent_for(duration_hours):
    return DISCOUNT_PERCENT if duration_hours >= DISCOUNT_MIN_HOURS else Decimal('0')


def calculate_booking_price(duration_hours, hourly_rate):
    """
    Price a booking of ``duration_hours`` at ``hourly_rate``.

    Returns a dict with the gross ``total_price``, ``discount_percent``,
    ``discount_amount`` and ``final_price`` (gross minus discount).
    """
    if isinstance(duration_hours, bool) or not isinstance(duration_hours, int) or duration_hours <= 0:
        raise InvalidInput('Duration must be a positive whole number of hours')

    try:
        rate = Decimal(str(hourly_rate))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidInput('Hourly rate must be a number')
    if not rate.is_finite() or rate <= 0:
        raise InvalidInput('Hourly rate must be positive')

    total_price = to_money(rate * duration_hours)
    discount_percent = discount_percent_for(duration_hours)
    discount_amount = to_money(total_price * discount_percent / 100)

    return {
        'total_hours': duration_hours,
        'total_price': total_price,
        'discount_percent': discount_percent,
        'discount_amount': discount_amount,
        'final_price': total_price - discount_amount,
    }
