# repositories/subscription_repository.py
from sqlalchemy import and_, func

from studio_booking.models import MembershipSubscription, SubscriptionStatus
from .base_repository import BaseRepository


class SubscriptionRepository(BaseRepository):

    def __init__(self, session):
        super().__init__(session, MembershipSubscription)

    @staticmethod
    def _overlapping(start_date, end_date):
        # Inclusive ranges: a_start <= b_end AND a_end >= b_start
        return and_(
            MembershipSubscription.start_date <= end_date,
            MembershipSubscription.end_date >= start_date,
        )

    def count_distinct_occupants(self, slot_id, start_date, end_date, exclude_member_id=None):
        """Distinct members holding a seat in the slot at any point of the window."""
        query = (
            self.session.query(func.count(func.distinct(MembershipSubscription.member_id)))
            .filter(
                MembershipSubscription.slot_id == slot_id,
                MembershipSubscription.status.in_(SubscriptionStatus.OCCUPYING),
                self._overlapping(start_date, end_date),
            )
        )
        if exclude_member_id:
            query = query.filter(MembershipSubscription.member_id != exclude_member_id)
        return query.scalar() or 0

    def get_by_member(self, member_id):
        return (
            self.session.query(MembershipSubscription)
            .filter_by(member_id=member_id)
            .order_by(MembershipSubscription.start_date.desc())
            .all()
        )

    def get_member_blocking(self, member_id, exclude_id=None):
        """Member's subscriptions that still block overlapping bookings."""
        query = self.session.query(MembershipSubscription).filter(
            MembershipSubscription.member_id == member_id,
            MembershipSubscription.status.in_(SubscriptionStatus.OCCUPYING),
        )
        if exclude_id:
            query = query.filter(MembershipSubscription.id != exclude_id)
        return query.order_by(MembershipSubscription.start_date).all()

    def get_active_for_member_on(self, member_id, on_date):
        return (
            self.session.query(MembershipSubscription)
            .filter(
                MembershipSubscription.member_id == member_id,
                MembershipSubscription.status == SubscriptionStatus.ACTIVE,
                self._overlapping(on_date, on_date),
            )
            .order_by(MembershipSubscription.start_date.desc())
            .first()
        )

    def get_pending_renewal(self, member_id, after_date):
        return (
            self.session.query(MembershipSubscription)
            .filter(
                MembershipSubscription.member_id == member_id,
                MembershipSubscription.status.in_(SubscriptionStatus.OCCUPYING),
                MembershipSubscription.start_date > after_date,
            )
            .first()
        )

    def get_active_for_slot_on(self, slot_id, on_date):
        return (
            self.session.query(MembershipSubscription)
            .filter(
                MembershipSubscription.slot_id == slot_id,
                MembershipSubscription.status == SubscriptionStatus.ACTIVE,
                self._overlapping(on_date, on_date),
            )
            .all()
        )

    def get_attendable_for_member_slot(self, member_id, slot_id, start_date, end_date):
        return (
            self.session.query(MembershipSubscription)
            .filter(
                MembershipSubscription.member_id == member_id,
                MembershipSubscription.slot_id == slot_id,
                MembershipSubscription.status.in_(SubscriptionStatus.ATTENDABLE),
                self._overlapping(start_date, end_date),
            )
            .all()
        )

    def get_expiring_between(self, start_date, end_date):
        return (
            self.session.query(MembershipSubscription)
            .filter(
                MembershipSubscription.status == SubscriptionStatus.ACTIVE,
                MembershipSubscription.end_date >= start_date,
                MembershipSubscription.end_date <= end_date,
            )
            .order_by(MembershipSubscription.end_date)
            .all()
        )

    def get_expired_between(self, start_date, end_date):
        return (
            self.session.query(MembershipSubscription)
            .filter(
                MembershipSubscription.status.in_(SubscriptionStatus.ATTENDABLE),
                MembershipSubscription.end_date >= start_date,
                MembershipSubscription.end_date <= end_date,
            )
            .order_by(MembershipSubscription.end_date.desc())
            .all()
        )

    def get_lapsed(self, today):
        """Active subscriptions whose last covered day is before today."""
        return (
            self.session.query(MembershipSubscription)
            .filter(
                MembershipSubscription.status == SubscriptionStatus.ACTIVE,
                MembershipSubscription.end_date < today,
            )
            .all()
        )

    def has_current(self, member_id, today):
        """Whether the member still has a seat from today onward."""
        return self.session.query(
            self.session.query(MembershipSubscription)
            .filter(
                MembershipSubscription.member_id == member_id,
                MembershipSubscription.status.in_(SubscriptionStatus.OCCUPYING),
                MembershipSubscription.end_date >= today,
            )
            .exists()
        ).scalar()
