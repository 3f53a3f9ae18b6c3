# services/overlap.py
from studio_booking.models import SubscriptionStatus


class OverlapValidator:
    """Inclusive date-range overlap checks."""

    @staticmethod
    def overlaps(a_start, a_end, b_start, b_end):
        return a_start <= b_end and a_end >= b_start

    @staticmethod
    def find_overlapping(subscriptions, start_date, end_date):
        """
        Return the first subscription that blocks the window, or None.

        Only subscriptions that still hold a seat (active, pending, scheduled)
        block a new booking.
        """
        for subscription in subscriptions:
            if subscription.status not in SubscriptionStatus.OCCUPYING:
                continue
            if OverlapValidator.overlaps(subscription.start_date, subscription.end_date,
                                         start_date, end_date):
                return subscription
        return None
