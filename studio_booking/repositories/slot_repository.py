# repositories/slot_repository.py
from sqlalchemy import func, or_

from studio_booking.models import SessionSlot, SlotAssignment
from .base_repository import BaseRepository


class SlotRepository(BaseRepository):

    def __init__(self, session):
        super().__init__(session, SessionSlot)

    def get_active(self):
        return (
            self.session.query(SessionSlot)
            .filter_by(is_active=True)
            .order_by(SessionSlot.start_time)
            .all()
        )

    def lock(self, slot_id):
        """Load the slot row with a row-level write lock held until commit."""
        return self.get_by_id(slot_id, for_update=True)


class SlotAssignmentRepository(BaseRepository):

    def __init__(self, session):
        super().__init__(session, SlotAssignment)

    def get_active_for_member(self, member_id):
        return (
            self.session.query(SlotAssignment)
            .filter_by(member_id=member_id, is_active=True)
            .first()
        )

    def count_active_exceptions(self, slot_id, on_date):
        """Exception-pool assignments of a slot that cover the given date."""
        return (
            self.session.query(func.count(SlotAssignment.id))
            .filter(
                SlotAssignment.slot_id == slot_id,
                SlotAssignment.is_active.is_(True),
                SlotAssignment.is_exception.is_(True),
                or_(SlotAssignment.start_date.is_(None), SlotAssignment.start_date <= on_date),
                or_(SlotAssignment.end_date.is_(None), SlotAssignment.end_date >= on_date),
            )
            .scalar()
        ) or 0
