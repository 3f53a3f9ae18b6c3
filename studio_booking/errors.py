# errors.py
"""
Domain exceptions for the booking engine.

Every public operation either completes or raises one of these. The API layer turns
them into JSON error bodies; business-rule messages are written to be shown to end
users as they are.
"""


class StudioError(Exception):
    """Base exception for all booking-engine errors."""

    http_status = 500
    retryable = False

    def __init__(self, message, code=None, details=None):
        self.message = message
        self.code = code or self.default_code()
        self.details = details or {}
        super().__init__(self.message)

    @classmethod
    def default_code(cls):
        # CapacityExceeded -> capacity_exceeded
        name = cls.__name__
        return ''.join(
            ('_' + ch.lower()) if ch.isupper() and i else ch.lower()
            for i, ch in enumerate(name)
        )

    def to_dict(self):
        return {
            'success': False,
            'message': self.message,
            'error_code': self.code,
            'details': self.details,
            'retryable': self.retryable,
        }


class NotFound(StudioError):
    """A slot, member, lead, plan, booking or subscription does not exist."""
    http_status = 404


class OverlapConflict(StudioError):
    """The member already holds a subscription overlapping the requested window."""
    http_status = 409


class CapacityExceeded(StudioError):
    """The slot has no seat left in either the normal or the exception pool."""
    http_status = 409

    def __init__(self, message, current_bookings=None, normal_capacity=None, total_capacity=None,
                 code=None):
        details = {
            'current_bookings': current_bookings,
            'normal_capacity': normal_capacity,
            'total_capacity': total_capacity,
        }
        super().__init__(message, code=code, details=details)


class InvalidTransition(StudioError):
    """The requested state change is not allowed for the entity's current state."""
    http_status = 422


class ValidationError(StudioError):
    """Malformed input rejected before any business rule runs."""
    http_status = 400


class Busy(StudioError):
    """A lock could not be acquired in time. Safe to retry."""
    http_status = 503
    retryable = True
