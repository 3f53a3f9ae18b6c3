# models/attendance.py
from datetime import datetime

from sqlalchemy import Index

from studio_booking.extensions import db
from .base import BaseModel


class AttendanceStatus:
    PRESENT = 'present'
    ABSENT = 'absent'

    ALL = (PRESENT, ABSENT)


class AttendanceRecord(BaseModel):
    __tablename__ = 'attendance_record'

    member_id = db.Column(db.String(36), db.ForeignKey('member.id'), nullable=False)
    slot_id = db.Column(db.String(36), db.ForeignKey('session_slot.id'), nullable=False)
    date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(10), nullable=False)
    # Subscription that was active when the mark was first recorded
    subscription_id = db.Column(db.String(36), db.ForeignKey('membership_subscription.id', ondelete='SET NULL'),
                                nullable=True)
    marked_at = db.Column(db.DateTime, nullable=False, default=datetime.now)
    notes = db.Column(db.Text, nullable=True)

    member = db.relationship('Member')
    slot = db.relationship('SessionSlot')

    __table_args__ = (
        # One record per member/slot/date; later marks update in place
        Index('uq_attendance_member_slot_date', 'member_id', 'slot_id', 'date', unique=True),
        Index('idx_attendance_slot_date', 'slot_id', 'date'),
        Index('idx_attendance_member_date', 'member_id', 'date'),
        Index('idx_attendance_status', 'status'),
    )

    @property
    def is_present(self):
        return self.status == AttendanceStatus.PRESENT

    def __repr__(self):
        return f'<AttendanceRecord {self.member_id} {self.date} {self.status}>'


class AttendanceLock(BaseModel):
    """Per-day, per-slot lock that freezes attendance marking."""

    __tablename__ = 'attendance_lock'

    date = db.Column(db.Date, nullable=False)
    slot_id = db.Column(db.String(36), db.ForeignKey('session_slot.id'), nullable=False)
    is_locked = db.Column(db.Boolean, nullable=False, default=True)
    locked_by = db.Column(db.String(255), nullable=True)
    locked_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        Index('uq_attendance_lock_date_slot', 'date', 'slot_id', unique=True),
    )

    def __repr__(self):
        return f'<AttendanceLock {self.date}:{self.slot_id} locked={self.is_locked}>'
