# models/trial.py
from sqlalchemy import Index

from studio_booking.extensions import db
from .base import BaseModel


class TrialBookingStatus:
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    ATTENDED = 'attended'
    NO_SHOW = 'no-show'
    CANCELLED = 'cancelled'

    # Bookings that still hold a seat on their date
    OPEN = (PENDING, CONFIRMED)
    # Bookings that count toward the per-person trial limit
    COMPLETED = (ATTENDED, NO_SHOW)


class TrialBooking(BaseModel):
    __tablename__ = 'trial_booking'

    lead_id = db.Column(db.String(36), db.ForeignKey('lead.id'), nullable=False)
    slot_id = db.Column(db.String(36), db.ForeignKey('session_slot.id'), nullable=False)
    date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=TrialBookingStatus.PENDING)
    is_exception = db.Column(db.Boolean, nullable=False, default=False)
    notes = db.Column(db.Text, nullable=True)

    lead = db.relationship('Lead', back_populates='trial_bookings')
    slot = db.relationship('SessionSlot')

    __table_args__ = (
        Index('idx_trial_lead', 'lead_id'),
        Index('idx_trial_slot_date', 'slot_id', 'date'),
        Index('idx_trial_date_status', 'date', 'status'),
    )

    @property
    def is_open(self):
        return self.status in TrialBookingStatus.OPEN

    def __repr__(self):
        return f'<TrialBooking {self.id} {self.date} ({self.status})>'
