import re

from django.core.exceptions import ValidationError
from django.core.validators import RegexValidator

phone_validator = RegexValidator(
    regex=r'^\d{10}$',
    message="Phone number must be 10 digits.",
)


def clean_national_id(value):
    """Strip the spaces and dashes people type between the ID groups."""
    return re.sub(r'[\s-]', '', value or '')


def is_valid_thai_national_id(value):
    """
    Check a 13-digit Thai national ID.

    The last digit is a checksum over the first twelve:
    (11 - sum(d[i] * (13 - i)) % 11) % 10.
    """
    digits = clean_national_id(value)
    if not re.fullmatch(r'\d{13}', digits):
        return False
    total = sum(int(digits[i]) * (13 - i) for i in range(12))
    return (11 - total % 11) % 10 == int(digits[12])


def validate_thai_national_id(value):
    if not is_valid_thai_national_id(value):
        raise ValidationError(
            "National ID must be a valid 13-digit Thai ID.",
            code='invalid_national_id',
        )
