from datetime import date

import pytest

from studio_booking.errors import NotFound
from studio_booking.models import SlotAssignment, SubscriptionStatus, TrialBooking, TrialBookingStatus
from studio_booking.services import OverlapValidator, SlotCapacityModel, classify


class TestClassify:

    def test_below_normal_is_available(self):
        result = classify(3, 10, 11)
        assert result.available is True
        assert result.is_exception_only is False
        assert result.message == "Available (3/10 regular slots used)"

    def test_at_normal_is_exception_only(self):
        result = classify(10, 10, 11)
        assert result.available is True
        assert result.is_exception_only is True
        assert result.message == "Normal capacity full. Will use exception slot (10/11)"

    def test_at_total_is_full(self):
        result = classify(11, 10, 11)
        assert result.available is False
        assert result.is_exception_only is False
        assert result.message == "Slot is full (11/11)"

    def test_zero_capacity_slot_is_full(self):
        assert classify(0, 0, 0).available is False


class TestOverlapValidator:

    def test_inclusive_boundaries(self):
        assert OverlapValidator.overlaps(date(2025, 1, 1), date(2025, 1, 31), date(2025, 1, 31), date(2025, 2, 28))
        assert not OverlapValidator.overlaps(date(2025, 1, 1), date(2025, 1, 31), date(2025, 2, 1), date(2025, 2, 28))

    def test_contained_range(self):
        assert OverlapValidator.overlaps(date(2025, 1, 1), date(2025, 3, 31), date(2025, 2, 1), date(2025, 2, 2))

    def test_find_overlapping_ignores_released_subscriptions(self, make_slot, make_member, make_subscription):
        slot = make_slot()
        member = make_member()
        cancelled = make_subscription(member, slot, date(2025, 1, 1), status=SubscriptionStatus.CANCELLED)
        expired = make_subscription(member, slot, date(2025, 1, 1), status=SubscriptionStatus.EXPIRED)
        pending = make_subscription(member, slot, date(2025, 1, 10), status=SubscriptionStatus.PENDING)

        found = OverlapValidator.find_overlapping([cancelled, expired, pending], date(2025, 1, 15), date(2025, 2, 14))
        assert found is pending
        assert OverlapValidator.find_overlapping([cancelled, expired], date(2025, 1, 15), date(2025, 2, 14)) is None


class TestSlotCapacityModel:

    def test_total_capacity_is_derived(self, make_slot):
        slot = make_slot(capacity=7, exception_capacity=2)
        assert slot.total_capacity == 9
        slot.capacity = 4
        assert slot.total_capacity == 6
        assert slot.to_dict()['total_capacity'] == 6

    def test_missing_slot_raises_not_found(self, db_session):
        with pytest.raises(NotFound):
            SlotCapacityModel(db_session).check_capacity('missing', date(2025, 1, 1))

    def test_counts_distinct_members_once(self, db_session, make_slot, make_member, make_subscription):
        slot = make_slot(capacity=2, exception_capacity=1)
        renewing = make_member()
        other = make_member()
        # Renewal: old row and new row both overlap the window
        make_subscription(renewing, slot, date(2025, 1, 1))
        make_subscription(renewing, slot, date(2025, 1, 20), status=SubscriptionStatus.SCHEDULED)
        make_subscription(other, slot, date(2025, 1, 1))

        result = SlotCapacityModel(db_session).check_capacity(slot.id, date(2025, 1, 1), date(2025, 2, 28))
        assert result.current_bookings == 2
        assert result.is_exception_only is True

    def test_excluded_member_not_counted(self, db_session, make_slot, make_member, make_subscription):
        slot = make_slot(capacity=1, exception_capacity=0)
        member = make_member()
        make_subscription(member, slot, date(2025, 1, 1))

        model = SlotCapacityModel(db_session)
        assert model.check_capacity(slot.id, date(2025, 1, 1), date(2025, 1, 31)).available is False
        result = model.check_capacity(slot.id, date(2025, 1, 1), date(2025, 1, 31), exclude_member_id=member.id)
        assert result.available is True
        assert result.current_bookings == 0

    def test_released_subscriptions_do_not_occupy(self, db_session, make_slot, make_member, make_subscription):
        slot = make_slot(capacity=1, exception_capacity=0)
        make_subscription(make_member(), slot, date(2025, 1, 1), status=SubscriptionStatus.CANCELLED)
        make_subscription(make_member(), slot, date(2025, 1, 1), status=SubscriptionStatus.EXPIRED)

        result = SlotCapacityModel(db_session).check_capacity(slot.id, date(2025, 1, 1), date(2025, 1, 31))
        assert result.current_bookings == 0
        assert result.available is True

    def test_single_date_adds_open_trials(self, db_session, make_slot, make_member, make_lead, make_subscription):
        slot = make_slot(capacity=2, exception_capacity=0)
        make_subscription(make_member(), slot, date(2025, 1, 1))
        lead = make_lead()
        db_session.add(TrialBooking(lead_id=lead.id, slot_id=slot.id, date=date(2025, 1, 6),
                                    status=TrialBookingStatus.CONFIRMED))
        db_session.add(TrialBooking(lead_id=lead.id, slot_id=slot.id, date=date(2025, 1, 7),
                                    status=TrialBookingStatus.CONFIRMED))
        db_session.add(TrialBooking(lead_id=lead.id, slot_id=slot.id, date=date(2025, 1, 6),
                                    status=TrialBookingStatus.CANCELLED))
        db_session.commit()

        model = SlotCapacityModel(db_session)
        single = model.check_capacity(slot.id, date(2025, 1, 6))
        assert single.current_bookings == 2
        assert single.available is False

        ranged = model.check_capacity(slot.id, date(2025, 1, 6), date(2025, 1, 6))
        assert ranged.current_bookings == 1

    def test_slot_availability_splits_pools(self, db_session, make_slot, make_member, make_lead,
                                            make_subscription):
        slot = make_slot(capacity=3, exception_capacity=1)
        on_date = date(2025, 1, 6)
        make_subscription(make_member(), slot, date(2025, 1, 1))
        exception_member = make_member()
        make_subscription(exception_member, slot, date(2025, 1, 1))
        db_session.add(SlotAssignment(member_id=exception_member.id, slot_id=slot.id,
                                      start_date=date(2025, 1, 1), is_exception=True))
        db_session.add(TrialBooking(lead_id=make_lead().id, slot_id=slot.id, date=on_date,
                                    status=TrialBookingStatus.PENDING))
        db_session.commit()

        availability = SlotCapacityModel(db_session).get_slot_availability(slot.id, on_date)
        assert availability['regular_bookings'] == 2
        assert availability['exception_bookings'] == 1
        assert availability['trial_bookings'] == 1
        assert availability['available_regular'] == 0
        assert availability['available_exception'] == 0
        assert availability['is_full'] is True
        assert availability['total_capacity'] == 4

    def test_has_capacity_and_all_slots(self, db_session, make_slot, make_member, make_subscription):
        open_slot = make_slot(capacity=2, exception_capacity=1, start_time='06:00')
        busy_slot = make_slot(capacity=1, exception_capacity=1, start_time='07:30')
        make_slot(capacity=5, start_time='09:00', is_active=False)
        make_subscription(make_member(), busy_slot, date(2025, 1, 1))

        model = SlotCapacityModel(db_session)
        on_date = date(2025, 1, 6)
        assert model.has_capacity(open_slot.id, on_date) is True
        assert model.has_capacity(busy_slot.id, on_date) is False
        assert model.has_capacity(busy_slot.id, on_date, use_exception=True) is True

        rows = model.get_all_slots_availability(on_date)
        assert [row['slot_id'] for row in rows] == [open_slot.id, busy_slot.id]
