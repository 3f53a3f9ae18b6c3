# models/slot.py
from sqlalchemy import CheckConstraint, Index

from studio_booking.extensions import db
from .base import BaseModel


class SessionType:
    OFFLINE = 'offline'
    ONLINE = 'online'
    HYBRID = 'hybrid'


class SessionSlot(BaseModel):
    """A recurring daily time window with a normal and an overflow seat pool."""

    __tablename__ = 'session_slot'

    display_name = db.Column(db.String(100), nullable=False)
    start_time = db.Column(db.String(5), nullable=False)  # HH:MM
    end_time = db.Column(db.String(5), nullable=False)
    capacity = db.Column(db.Integer, nullable=False, default=10)
    exception_capacity = db.Column(db.Integer, nullable=False, default=1)
    session_type = db.Column(db.String(10), nullable=False, default=SessionType.OFFLINE)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint('capacity >= 0', name='ck_slot_capacity_non_negative'),
        CheckConstraint('exception_capacity >= 0', name='ck_slot_exception_capacity_non_negative'),
        Index('idx_slot_active_start', 'is_active', 'start_time'),
    )

    @property
    def total_capacity(self):
        return (self.capacity or 0) + (self.exception_capacity or 0)

    def to_dict(self):
        result = super().to_dict()
        result['total_capacity'] = self.total_capacity
        return result

    def __repr__(self):
        return f'<SessionSlot {self.display_name} {self.start_time}-{self.end_time}>'
