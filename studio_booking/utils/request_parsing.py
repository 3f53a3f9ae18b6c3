# utils/request_parsing.py
"""Helpers that turn raw request values into typed arguments or raise ValidationError."""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from studio_booking.errors import ValidationError


def parse_date(value, field, required=True):
    """Parse an ISO ``YYYY-MM-DD`` string."""
    if value in (None, ''):
        if required:
            raise ValidationError(f"{field} is required", code='missing_field', details={'field': field})
        return None
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value), '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError(f"{field} must be a date in YYYY-MM-DD format",
                              code='invalid_date', details={'field': field, 'value': value})


def parse_int(value, field, required=True):
    if value in (None, ''):
        if required:
            raise ValidationError(f"{field} is required", code='missing_field', details={'field': field})
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer", code='invalid_integer', details={'field': field})
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer", code='invalid_integer',
                              details={'field': field, 'value': value})
    if isinstance(value, float) and value != number:
        raise ValidationError(f"{field} must be an integer", code='invalid_integer',
                              details={'field': field, 'value': value})
    return number


def parse_amount(value, field):
    if value in (None, ''):
        return Decimal('0')
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number", code='invalid_amount',
                              details={'field': field, 'value': value})
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative", code='invalid_amount', details={'field': field})
    return amount


def parse_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).lower() in ('true', '1', 'yes', 'on')


def require_str(data, field):
    value = data.get(field)
    if not value or not isinstance(value, str):
        raise ValidationError(f"{field} is required", code='missing_field', details={'field': field})
    return value
