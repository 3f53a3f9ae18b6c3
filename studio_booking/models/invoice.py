# models/invoice.py
from sqlalchemy import Index

from studio_booking.extensions import db
from .base import BaseModel


class InvoiceStatus:
    DRAFT = 'draft'
    SENT = 'sent'
    PAID = 'paid'
    PARTIALLY_PAID = 'partially-paid'
    OVERDUE = 'overdue'
    CANCELLED = 'cancelled'


class InvoiceType:
    MEMBERSHIP = 'membership'


class Invoice(BaseModel):
    __tablename__ = 'invoice'

    invoice_number = db.Column(db.String(20), nullable=False)
    invoice_type = db.Column(db.String(20), nullable=False, default=InvoiceType.MEMBERSHIP)
    member_id = db.Column(db.String(36), db.ForeignKey('member.id'), nullable=False)
    subscription_id = db.Column(db.String(36), db.ForeignKey('membership_subscription.id'), nullable=True)

    # Amounts
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    discount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    discount_reason = db.Column(db.String(255), nullable=True)
    total_amount = db.Column(db.Numeric(10, 2), nullable=False)
    amount_paid = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    invoice_date = db.Column(db.Date, nullable=False)
    due_date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=InvoiceStatus.DRAFT)

    # [{description, quantity, unit_price, total}]
    items = db.Column(db.JSON, nullable=False, default=list)

    __table_args__ = (
        Index('uq_invoice_number', 'invoice_number', unique=True),
        Index('idx_invoice_member', 'member_id'),
        Index('idx_invoice_status_due', 'status', 'due_date'),
    )

    def __repr__(self):
        return f'<Invoice {self.invoice_number} ({self.status})>'
