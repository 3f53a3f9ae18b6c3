# services/attendance_service.py
"""
Attendance aggregation.

Marks are kept as one record per member, slot and date. Re-marking updates the
record in place and moves the member's ``classes_attended`` counter by the
present/absent transition only, so the counter always equals the number of
present records that went through this service.
"""

import logging
from datetime import date, datetime, timedelta

from studio_booking.errors import InvalidTransition, NotFound, ValidationError
from studio_booking.models import AttendanceLock, AttendanceStatus
from studio_booking.repositories import Repositories
from .settings_service import SettingsService
from .transaction import capacity_transaction, transaction

WORKING_WEEKDAYS = (0, 1, 2, 3, 4)


def count_working_days(start_date, end_date):
    """Number of Monday-Friday dates in ``[start_date, end_date]``."""
    if end_date < start_date:
        return 0
    total_days = (end_date - start_date).days + 1
    full_weeks, remainder = divmod(total_days, 7)
    count = full_weeks * len(WORKING_WEEKDAYS)
    for offset in range(remainder):
        if (start_date + timedelta(days=full_weeks * 7 + offset)).weekday() in WORKING_WEEKDAYS:
            count += 1
    return count


class AttendanceService:
    """Per-member attendance tracking and period summaries."""

    def __init__(self, session, settings=None, lock_timeout=None):
        self.session = session
        self.repos = Repositories(session)
        self.settings = settings or SettingsService(session, repositories=self.repos)
        self.lock_timeout = lock_timeout
        self.logger = logging.getLogger('attendance_service')

    def mark_attendance(self, member_id, slot_id, on_date, status, notes=None, today=None):
        """
        Record a member as present or absent for a slot on a date.

        Returns:
            dict: the record, whether it was created, and the member's counter
        """
        if status not in AttendanceStatus.ALL:
            raise ValidationError(f"Invalid attendance status: {status}",
                                  details={'status': status})

        today = today or date.today()
        backdate_days = self.settings.attendance_backdate_days
        if on_date < today - timedelta(days=backdate_days):
            self.logger.warning(f"Stale attendance mark for member {member_id} on {on_date}")
            raise InvalidTransition(
                f"Cannot mark attendance more than {backdate_days} days in the past",
                code='stale_date',
                details={'date': on_date.isoformat(), 'backdate_days': backdate_days},
            )

        with capacity_transaction(self.session, slot_id, self.lock_timeout) as slot:
            if not slot:
                raise NotFound('Slot not found', details={'slot_id': slot_id})
            member = self.repos.members.get_by_id(member_id, for_update=True)
            if not member:
                raise NotFound('Member not found', details={'member_id': member_id})

            lock = self.repos.attendance_locks.get_lock(slot.id, on_date)
            if lock and lock.is_locked:
                raise InvalidTransition(f"Attendance for {on_date.isoformat()} is locked",
                                        code='attendance_locked',
                                        details={'date': on_date.isoformat(), 'slot_id': slot.id})

            is_present = status == AttendanceStatus.PRESENT
            record = self.repos.attendance.get_record(member.id, slot.id, on_date)
            created = record is None

            if created:
                active = self.repos.subscriptions.get_active_for_member_on(member.id, on_date)
                record = self.repos.attendance.create(
                    member_id=member.id,
                    slot_id=slot.id,
                    date=on_date,
                    status=status,
                    subscription_id=active.id if active else None,
                    marked_at=datetime.now(),
                    notes=notes,
                )
                if is_present:
                    self.repos.members.adjust_classes_attended(member, 1)
            else:
                was_present = record.is_present
                record.status = status
                record.marked_at = datetime.now()
                if notes is not None:
                    record.notes = notes
                if is_present and not was_present:
                    self.repos.members.adjust_classes_attended(member, 1)
                elif was_present and not is_present:
                    self.repos.members.adjust_classes_attended(member, -1)
            self.session.flush()
            classes_attended = member.classes_attended

        self.logger.info(f"Attendance {status} for member {member_id} in slot {slot_id} on {on_date}")
        return {
            'success': True,
            'record': record,
            'created': created,
            'classes_attended': classes_attended,
        }

    def get_member_summary_for_period(self, member_id, slot_id, period_start, period_end):
        """
        Present days and working days of a member in a slot over a period.

        Working days are the Monday-Friday dates where the period intersects each of
        the member's active or expired subscriptions in that slot.
        """
        if period_end < period_start:
            raise ValidationError('Period end must not be before period start')

        present_days = self.repos.attendance.count_present(member_id, slot_id, period_start, period_end)

        total_working_days = 0
        for subscription in self.repos.subscriptions.get_attendable_for_member_slot(
                member_id, slot_id, period_start, period_end):
            start = max(period_start, subscription.start_date)
            end = min(period_end, subscription.end_date)
            total_working_days += count_working_days(start, end)

        return {'present_days': present_days, 'total_working_days': total_working_days}

    def get_by_slot_and_date(self, slot_id, on_date):
        return self.repos.attendance.get_by_slot_and_date(slot_id, on_date)

    def is_marked_present(self, member_id, slot_id, on_date):
        record = self.repos.attendance.get_record(member_id, slot_id, on_date)
        return bool(record and record.is_present)

    def get_slot_attendance_with_members(self, slot_id, on_date, period_start, period_end):
        """Roster of a slot's active subscribers on a date with presence and period summary."""
        slot = self.repos.slots.get_by_id(slot_id)
        if not slot:
            raise NotFound('Slot not found', details={'slot_id': slot_id})

        records = {r.member_id: r for r in self.repos.attendance.get_by_slot_and_date(slot.id, on_date)}
        roster = []
        seen = set()
        for subscription in self.repos.subscriptions.get_active_for_slot_on(slot.id, on_date):
            if subscription.member_id in seen:
                continue
            seen.add(subscription.member_id)
            member = subscription.member
            record = records.get(subscription.member_id)
            summary = self.get_member_summary_for_period(subscription.member_id, slot.id,
                                                         period_start, period_end)
            roster.append({
                'member_id': subscription.member_id,
                'member_name': member.full_name if member else None,
                'subscription_id': subscription.id,
                'is_present': bool(record and record.is_present),
                'status': record.status if record else None,
                'present_days': summary['present_days'],
                'total_working_days': summary['total_working_days'],
            })

        roster.sort(key=lambda row: row['member_name'] or '')
        return roster

    def is_locked(self, slot_id, on_date):
        lock = self.repos.attendance_locks.get_lock(slot_id, on_date)
        return bool(lock and lock.is_locked)

    def set_lock(self, slot_id, on_date, is_locked=True, locked_by=None):
        with transaction(self.session):
            if not self.repos.slots.get_by_id(slot_id):
                raise NotFound('Slot not found', details={'slot_id': slot_id})
            lock = self.repos.attendance_locks.get_lock(slot_id, on_date)
            if lock is None:
                lock = AttendanceLock(slot_id=slot_id, date=on_date)
                self.session.add(lock)
            lock.is_locked = is_locked
            lock.locked_by = locked_by if is_locked else None
            lock.locked_at = datetime.now() if is_locked else None
            self.session.flush()

        self.logger.info(f"Attendance {'locked' if is_locked else 'unlocked'} for slot {slot_id} on {on_date}")
        return lock
