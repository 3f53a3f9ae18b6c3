from datetime import date, timedelta

import pytest

from studio_booking.errors import InvalidTransition, NotFound, ValidationError
from studio_booking.models import AttendanceRecord, AttendanceStatus, SubscriptionStatus
from studio_booking.services import AttendanceService, count_working_days

TODAY = date(2025, 1, 15)


@pytest.fixture
def service(db_session):
    return AttendanceService(db_session)


@pytest.fixture
def member_in_slot(make_slot, make_member, make_subscription):
    slot = make_slot()
    member = make_member()
    subscription = make_subscription(member, slot, date(2025, 1, 1))
    return member, slot, subscription


def _mark(service, member, slot, on_date, status, **kwargs):
    return service.mark_attendance(member.id, slot.id, on_date, status, today=TODAY, **kwargs)


class TestCountWorkingDays:

    def test_full_week(self):
        assert count_working_days(date(2025, 1, 6), date(2025, 1, 12)) == 5

    def test_weekend_only(self):
        assert count_working_days(date(2025, 1, 4), date(2025, 1, 5)) == 0

    def test_month(self):
        assert count_working_days(date(2025, 1, 1), date(2025, 1, 31)) == 23

    def test_single_day_and_empty_range(self):
        assert count_working_days(date(2025, 1, 6), date(2025, 1, 6)) == 1
        assert count_working_days(date(2025, 1, 7), date(2025, 1, 6)) == 0


class TestMarkAttendance:

    def test_first_mark_creates_record_with_snapshot(self, db_session, service, member_in_slot):
        member, slot, subscription = member_in_slot

        result = _mark(service, member, slot, TODAY, AttendanceStatus.PRESENT, notes='On time')

        assert result['created'] is True
        assert result['classes_attended'] == 1
        record = result['record']
        assert record.subscription_id == subscription.id
        assert record.notes == 'On time'
        assert record.marked_at is not None

    def test_absent_first_mark_does_not_count(self, service, member_in_slot):
        member, slot, _ = member_in_slot
        result = _mark(service, member, slot, TODAY, AttendanceStatus.ABSENT)
        assert result['classes_attended'] == 0

    def test_toggle_counts_net_transitions(self, db_session, service, member_in_slot):
        member, slot, _ = member_in_slot

        _mark(service, member, slot, TODAY, AttendanceStatus.PRESENT)
        _mark(service, member, slot, TODAY, AttendanceStatus.ABSENT)
        result = _mark(service, member, slot, TODAY, AttendanceStatus.PRESENT)

        assert result['created'] is False
        assert result['classes_attended'] == 1
        assert db_session.query(AttendanceRecord).filter_by(member_id=member.id).count() == 1

    def test_repeating_same_status_is_a_no_op(self, service, member_in_slot):
        member, slot, _ = member_in_slot

        _mark(service, member, slot, TODAY, AttendanceStatus.PRESENT)
        result = _mark(service, member, slot, TODAY, AttendanceStatus.PRESENT)

        assert result['classes_attended'] == 1

    def test_counter_adds_up_across_dates(self, service, member_in_slot):
        member, slot, _ = member_in_slot
        for offset in range(3):
            result = _mark(service, member, slot, TODAY - timedelta(days=offset), AttendanceStatus.PRESENT)
        assert result['classes_attended'] == 3

    def test_counter_never_goes_negative(self, db_session, service, member_in_slot):
        member, slot, _ = member_in_slot
        db_session.add(AttendanceRecord(member_id=member.id, slot_id=slot.id, date=TODAY,
                                        status=AttendanceStatus.PRESENT))
        db_session.commit()

        result = _mark(service, member, slot, TODAY, AttendanceStatus.ABSENT)
        assert result['classes_attended'] == 0

    def test_backdate_window(self, service, member_in_slot):
        member, slot, _ = member_in_slot

        assert _mark(service, member, slot, TODAY - timedelta(days=3), AttendanceStatus.PRESENT)['created']

        with pytest.raises(InvalidTransition) as exc_info:
            _mark(service, member, slot, TODAY - timedelta(days=4), AttendanceStatus.PRESENT)
        assert exc_info.value.code == 'stale_date'

    def test_future_dates_allowed(self, service, member_in_slot):
        member, slot, _ = member_in_slot
        assert _mark(service, member, slot, TODAY + timedelta(days=5), AttendanceStatus.PRESENT)['created']

    def test_invalid_status(self, service, member_in_slot):
        member, slot, _ = member_in_slot
        with pytest.raises(ValidationError):
            _mark(service, member, slot, TODAY, 'late')

    def test_unknown_member_or_slot(self, service, member_in_slot):
        member, slot, _ = member_in_slot
        with pytest.raises(NotFound):
            service.mark_attendance('missing', slot.id, TODAY, AttendanceStatus.PRESENT, today=TODAY)
        with pytest.raises(NotFound):
            service.mark_attendance(member.id, 'missing', TODAY, AttendanceStatus.PRESENT, today=TODAY)

    def test_locked_date_rejected(self, service, member_in_slot):
        member, slot, _ = member_in_slot
        service.set_lock(slot.id, TODAY, locked_by='front-desk')
        assert service.is_locked(slot.id, TODAY) is True

        with pytest.raises(InvalidTransition) as exc_info:
            _mark(service, member, slot, TODAY, AttendanceStatus.PRESENT)
        assert exc_info.value.code == 'attendance_locked'

        service.set_lock(slot.id, TODAY, is_locked=False)
        assert service.is_locked(slot.id, TODAY) is False
        assert _mark(service, member, slot, TODAY, AttendanceStatus.PRESENT)['classes_attended'] == 1


class TestSummary:

    def test_present_and_working_days(self, service, member_in_slot):
        member, slot, _ = member_in_slot
        _mark(service, member, slot, date(2025, 1, 13), AttendanceStatus.PRESENT)
        _mark(service, member, slot, date(2025, 1, 14), AttendanceStatus.ABSENT)
        _mark(service, member, slot, date(2025, 1, 15), AttendanceStatus.PRESENT)

        summary = service.get_member_summary_for_period(member.id, slot.id, date(2025, 1, 1), date(2025, 1, 31))
        assert summary == {'present_days': 2, 'total_working_days': 23}

    def test_working_days_use_intersection(self, service, make_slot, make_member, make_subscription):
        slot = make_slot()
        member = make_member()
        make_subscription(member, slot, date(2024, 12, 16), end_date=date(2025, 1, 10),
                          status=SubscriptionStatus.EXPIRED)
        make_subscription(member, slot, date(2025, 1, 11), end_date=date(2025, 2, 10))
        make_subscription(member, slot, date(2025, 1, 11), end_date=date(2025, 2, 10),
                          status=SubscriptionStatus.CANCELLED)

        summary = service.get_member_summary_for_period(member.id, slot.id, date(2025, 1, 1), date(2025, 1, 31))
        # Jan 1-10 has 8 working days, Jan 11-31 has 15
        assert summary['total_working_days'] == 23

    def test_other_slot_ignored(self, service, make_slot, make_member, make_subscription):
        slot = make_slot(start_time='06:00')
        other = make_slot(start_time='18:00')
        member = make_member()
        make_subscription(member, other, date(2025, 1, 1))

        summary = service.get_member_summary_for_period(member.id, slot.id, date(2025, 1, 1), date(2025, 1, 31))
        assert summary == {'present_days': 0, 'total_working_days': 0}

    def test_reversed_period(self, service, member_in_slot):
        member, slot, _ = member_in_slot
        with pytest.raises(ValidationError):
            service.get_member_summary_for_period(member.id, slot.id, date(2025, 1, 31), date(2025, 1, 1))


class TestSlotRoster:

    def test_roster_lists_active_members(self, service, make_slot, make_member, make_subscription):
        slot = make_slot()
        present = make_member(first_name='Anita', last_name='Rao')
        absent = make_member(first_name='Bala', last_name='Iyer')
        make_member(first_name='Chitra', last_name='Nair')
        make_subscription(present, slot, date(2025, 1, 1))
        make_subscription(absent, slot, date(2025, 1, 1))

        _mark(service, present, slot, TODAY, AttendanceStatus.PRESENT)

        roster = service.get_slot_attendance_with_members(slot.id, TODAY, date(2025, 1, 1), date(2025, 1, 31))

        assert [row['member_name'] for row in roster] == ['Anita Rao', 'Bala Iyer']
        assert roster[0]['is_present'] is True
        assert roster[0]['present_days'] == 1
        assert roster[0]['total_working_days'] == 23
        assert roster[1]['is_present'] is False
        assert roster[1]['status'] is None

        assert service.is_marked_present(present.id, slot.id, TODAY) is True
        assert service.is_marked_present(absent.id, slot.id, TODAY) is False
        assert len(service.get_by_slot_and_date(slot.id, TODAY)) == 1
