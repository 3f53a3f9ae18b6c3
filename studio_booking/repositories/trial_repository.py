# repositories/trial_repository.py
from sqlalchemy import func

from studio_booking.models import TrialBooking, TrialBookingStatus
from .base_repository import BaseRepository


class TrialRepository(BaseRepository):

    def __init__(self, session):
        super().__init__(session, TrialBooking)

    def count_open_on_date(self, slot_id, on_date, is_exception=None):
        query = (
            self.session.query(func.count(TrialBooking.id))
            .filter(
                TrialBooking.slot_id == slot_id,
                TrialBooking.date == on_date,
                TrialBooking.status.in_(TrialBookingStatus.OPEN),
            )
        )
        if is_exception is not None:
            query = query.filter(TrialBooking.is_exception.is_(is_exception))
        return query.scalar() or 0

    def count_completed_for_lead(self, lead_id):
        return (
            self.session.query(func.count(TrialBooking.id))
            .filter(
                TrialBooking.lead_id == lead_id,
                TrialBooking.status.in_(TrialBookingStatus.COMPLETED),
            )
            .scalar()
        ) or 0

    def get_open_for_lead_on(self, lead_id, on_date):
        return (
            self.session.query(TrialBooking)
            .filter(
                TrialBooking.lead_id == lead_id,
                TrialBooking.date == on_date,
                TrialBooking.status.in_(TrialBookingStatus.OPEN),
            )
            .first()
        )

    def get_by_lead(self, lead_id):
        return (
            self.session.query(TrialBooking)
            .filter_by(lead_id=lead_id)
            .order_by(TrialBooking.date.desc())
            .all()
        )

    def get_by_slot_and_date(self, slot_id, on_date):
        return (
            self.session.query(TrialBooking)
            .filter_by(slot_id=slot_id, date=on_date)
            .order_by(TrialBooking.created_at)
            .all()
        )

    def get_upcoming(self, today):
        return (
            self.session.query(TrialBooking)
            .filter(
                TrialBooking.date >= today,
                TrialBooking.status.in_(TrialBookingStatus.OPEN),
            )
            .order_by(TrialBooking.date)
            .all()
        )
