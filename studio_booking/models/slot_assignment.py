# models/slot_assignment.py
from sqlalchemy import Index, event

from studio_booking.extensions import db
from .base import BaseModel


class SlotAssignment(BaseModel):
    """Pointer to the slot a member currently occupies."""

    __tablename__ = 'slot_assignment'

    member_id = db.Column(db.String(36), db.ForeignKey('member.id'), nullable=False)
    slot_id = db.Column(db.String(36), db.ForeignKey('session_slot.id'), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_exception = db.Column(db.Boolean, nullable=False, default=False)
    # member_id while active, NULL once deactivated
    active_member_id = db.Column(db.String(36), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    member = db.relationship('Member')
    slot = db.relationship('SessionSlot')

    __table_args__ = (
        Index('idx_assignment_member_active', 'member_id', 'is_active'),
        Index('idx_assignment_slot_active', 'slot_id', 'is_active'),
        # One active assignment per member; NULLs never collide
        Index('uq_assignment_active_member', 'active_member_id', unique=True),
    )

    def deactivate(self, on_date):
        self.is_active = False
        self.end_date = on_date
        return self

    def covers(self, day):
        if self.start_date and self.start_date > day:
            return False
        if self.end_date and self.end_date < day:
            return False
        return True

    def __repr__(self):
        return f'<SlotAssignment member={self.member_id} slot={self.slot_id} active={self.is_active}>'


@event.listens_for(SlotAssignment, 'before_insert')
@event.listens_for(SlotAssignment, 'before_update')
def sync_active_member(mapper, connection, target):
    """Keep ``active_member_id`` in step with ``is_active``."""
    target.active_member_id = target.member_id if target.is_active is not False else None
