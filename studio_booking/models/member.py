# models/member.py
from sqlalchemy import Index

from studio_booking.extensions import db
from .base import BaseModel


class MemberStatus:
    ACTIVE = 'active'
    INACTIVE = 'inactive'
    TRIAL = 'trial'
    EXPIRED = 'expired'
    PENDING = 'pending'


class LeadStatus:
    NEW = 'new'
    CONTACTED = 'contacted'
    TRIAL_SCHEDULED = 'trial-scheduled'
    TRIAL_COMPLETED = 'trial-completed'
    FOLLOW_UP = 'follow-up'
    INTERESTED = 'interested'
    NEGOTIATING = 'negotiating'
    CONVERTED = 'converted'
    NOT_INTERESTED = 'not-interested'
    LOST = 'lost'


class TrialStatus:
    SCHEDULED = 'scheduled'
    ATTENDED = 'attended'
    NO_SHOW = 'no-show'
    CANCELLED = 'cancelled'


class Member(BaseModel):
    __tablename__ = 'member'

    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(20), nullable=True)
    status = db.Column(db.String(20), nullable=False, default=MemberStatus.PENDING)

    # Kept after the slot assignment is deactivated as a historical reference
    assigned_slot_id = db.Column(db.String(36), db.ForeignKey('session_slot.id'), nullable=True)
    classes_attended = db.Column(db.Integer, nullable=False, default=0)
    converted_from_lead_id = db.Column(db.String(36), nullable=True)

    assigned_slot = db.relationship('SessionSlot', foreign_keys=[assigned_slot_id])
    subscriptions = db.relationship('MembershipSubscription', back_populates='member', lazy='dynamic')

    __table_args__ = (
        Index('idx_member_email', 'email'),
        Index('idx_member_status', 'status'),
        Index('idx_member_assigned_slot', 'assigned_slot_id'),
    )

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f'<Member {self.full_name}>'


class Lead(BaseModel):
    __tablename__ = 'lead'

    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(20), nullable=True)
    status = db.Column(db.String(20), nullable=False, default=LeadStatus.NEW)
    source = db.Column(db.String(30), nullable=True)

    trial_date = db.Column(db.Date, nullable=True)
    trial_slot_id = db.Column(db.String(36), db.ForeignKey('session_slot.id'), nullable=True)
    trial_status = db.Column(db.String(20), nullable=True)
    converted_to_member_id = db.Column(db.String(36), db.ForeignKey('member.id'), nullable=True)

    trial_bookings = db.relationship('TrialBooking', back_populates='lead', lazy='dynamic')

    __table_args__ = (
        Index('idx_lead_email', 'email'),
        Index('idx_lead_status', 'status'),
    )

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f'<Lead {self.full_name} ({self.status})>'
