# repositories/attendance_repository.py
from sqlalchemy import func

from studio_booking.models import AttendanceLock, AttendanceRecord, AttendanceStatus
from .base_repository import BaseRepository


class AttendanceRepository(BaseRepository):

    def __init__(self, session):
        super().__init__(session, AttendanceRecord)

    def get_record(self, member_id, slot_id, on_date):
        return (
            self.session.query(AttendanceRecord)
            .filter_by(member_id=member_id, slot_id=slot_id, date=on_date)
            .first()
        )

    def get_by_slot_and_date(self, slot_id, on_date):
        return (
            self.session.query(AttendanceRecord)
            .filter_by(slot_id=slot_id, date=on_date)
            .all()
        )

    def count_present(self, member_id, slot_id, start_date, end_date):
        return (
            self.session.query(func.count(AttendanceRecord.id))
            .filter(
                AttendanceRecord.member_id == member_id,
                AttendanceRecord.slot_id == slot_id,
                AttendanceRecord.status == AttendanceStatus.PRESENT,
                AttendanceRecord.date >= start_date,
                AttendanceRecord.date <= end_date,
            )
            .scalar()
        ) or 0


class AttendanceLockRepository(BaseRepository):

    def __init__(self, session):
        super().__init__(session, AttendanceLock)

    def get_lock(self, slot_id, on_date):
        return (
            self.session.query(AttendanceLock)
            .filter_by(slot_id=slot_id, date=on_date)
            .first()
        )
