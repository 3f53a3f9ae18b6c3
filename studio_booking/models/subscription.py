# models/subscription.py
from sqlalchemy import CheckConstraint, Index

from studio_booking.extensions import db
from .base import BaseModel


class SubscriptionStatus:
    PENDING = 'pending'
    SCHEDULED = 'scheduled'
    ACTIVE = 'active'
    EXPIRED = 'expired'
    CANCELLED = 'cancelled'

    # Statuses that hold a seat and block overlapping bookings for the same member
    OCCUPYING = (ACTIVE, SCHEDULED, PENDING)
    TRANSFERABLE = (ACTIVE, SCHEDULED)
    # Statuses counted when totalling a member's working days
    ATTENDABLE = (ACTIVE, EXPIRED)


class PaymentStatus:
    PENDING = 'pending'
    PARTIAL = 'partial'
    PAID = 'paid'


class MembershipSubscription(BaseModel):
    __tablename__ = 'membership_subscription'

    member_id = db.Column(db.String(36), db.ForeignKey('member.id'), nullable=False)
    plan_id = db.Column(db.String(36), db.ForeignKey('membership_plan.id'), nullable=False)
    slot_id = db.Column(db.String(36), db.ForeignKey('session_slot.id'), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)

    status = db.Column(db.String(20), nullable=False, default=SubscriptionStatus.ACTIVE)
    payment_status = db.Column(db.String(20), nullable=False, default=PaymentStatus.PENDING)

    # Pricing
    original_amount = db.Column(db.Numeric(10, 2), nullable=False)
    discount_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    discount_reason = db.Column(db.String(255), nullable=True)
    payable_amount = db.Column(db.Numeric(10, 2), nullable=False)

    # Renewal extensions accumulate here; compensation days are an absolute total
    is_extension = db.Column(db.Boolean, nullable=False, default=False)
    extension_days = db.Column(db.Integer, nullable=False, default=0)
    extra_days = db.Column(db.Integer, nullable=False, default=0)
    extra_days_reason = db.Column(db.String(255), nullable=True)

    invoice_id = db.Column(db.String(36), db.ForeignKey('invoice.id', use_alter=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    member = db.relationship('Member', back_populates='subscriptions')
    plan = db.relationship('MembershipPlan')
    slot = db.relationship('SessionSlot')
    invoice = db.relationship('Invoice', foreign_keys=[invoice_id])

    __table_args__ = (
        CheckConstraint('extra_days >= 0', name='ck_subscription_extra_days_non_negative'),
        Index('idx_subscription_member_status', 'member_id', 'status'),
        Index('idx_subscription_slot_dates', 'slot_id', 'start_date', 'end_date'),
        Index('idx_subscription_status_end', 'status', 'end_date'),
    )

    def append_note(self, line):
        """Append an audit line, keeping earlier notes."""
        self.notes = f"{self.notes}\n{line}" if self.notes else line
        return self

    def covers(self, day):
        return self.start_date <= day <= self.end_date

    @property
    def is_occupying(self):
        return self.status in SubscriptionStatus.OCCUPYING

    def __repr__(self):
        return f'<MembershipSubscription {self.id} {self.start_date}..{self.end_date} ({self.status})>'
