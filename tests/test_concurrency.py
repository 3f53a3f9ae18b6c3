import gc
import threading
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from studio_booking import create_app
from studio_booking.errors import Busy, CapacityExceeded
from studio_booking.extensions import db
from studio_booking.models import Member, MembershipPlan, MembershipSubscription, SessionSlot
from studio_booking.repositories import Repositories
from studio_booking.services import InvoiceService, SubscriptionService, capacity_transaction, transaction
from studio_booking.services.transaction import _get_slot_lock, _slot_locks, is_duplicate_key_error, is_lock_error


@pytest.fixture
def file_app(tmp_path):
    database = tmp_path / 'concurrency.db'
    app = create_app('testing', config_overrides={
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{database}",
        'SQLALCHEMY_ENGINE_OPTIONS': {'connect_args': {'check_same_thread': False, 'timeout': 15}},
        'LOCK_TIMEOUT_SECONDS': 10,
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


def test_last_seat_goes_to_exactly_one_caller(file_app):
    with file_app.app_context():
        slot = SessionSlot(display_name='Last seat', start_time='07:30', end_time='08:30',
                           capacity=1, exception_capacity=0)
        plan = MembershipPlan(name='Monthly', price=Decimal('3000'), duration_months=1)
        members = [Member(first_name='Racer', last_name=str(i), email=f"racer{i}@example.com") for i in range(2)]
        db.session.add_all([slot, plan, *members])
        db.session.commit()
        slot_id, plan_id = slot.id, plan.id
        member_ids = [m.id for m in members]

    barrier = threading.Barrier(2)
    outcomes = []
    outcomes_lock = threading.Lock()

    def book(member_id):
        with file_app.app_context():
            service = SubscriptionService(db.session)
            barrier.wait()
            try:
                service.create(member_id, plan_id, slot_id, date(2025, 1, 1), today=date(2025, 1, 1))
                outcome = 'success'
            except CapacityExceeded:
                outcome = 'capacity_exceeded'
            except Exception as e:
                outcome = repr(e)
            finally:
                db.session.remove()
            with outcomes_lock:
                outcomes.append(outcome)

    threads = [threading.Thread(target=book, args=(member_id,)) for member_id in member_ids]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert sorted(outcomes) == ['capacity_exceeded', 'success']
    with file_app.app_context():
        assert db.session.query(MembershipSubscription).count() == 1


def test_contended_slot_raises_busy(db_session, make_slot, make_plan, make_member):
    slot = make_slot()
    plan = make_plan()
    member = make_member()
    service = SubscriptionService(db_session, lock_timeout=0.05)

    slot_lock = _get_slot_lock(slot.id)
    slot_lock.acquire()
    try:
        with pytest.raises(Busy) as exc_info:
            service.create(member.id, plan.id, slot.id, date(2025, 1, 1), today=date(2025, 1, 1))
    finally:
        slot_lock.release()

    assert exc_info.value.retryable is True
    assert db_session.query(MembershipSubscription).count() == 0

    result = service.create(member.id, plan.id, slot.id, date(2025, 1, 1), today=date(2025, 1, 1))
    assert result['subscription'].slot_id == slot.id


def test_database_lock_timeout_maps_to_busy(db_session, make_slot):
    slot = make_slot()

    with pytest.raises(Busy):
        with capacity_transaction(db_session, slot.id):
            raise OperationalError('SELECT 1', {}, Exception('database is locked'))


def test_other_database_errors_propagate(db_session, make_slot):
    slot = make_slot()

    with pytest.raises(OperationalError):
        with capacity_transaction(db_session, slot.id):
            raise OperationalError('SELECT 1', {}, Exception('no such table: nowhere'))


def test_lock_released_after_failure(db_session, make_slot):
    slot = make_slot()

    with pytest.raises(RuntimeError):
        with capacity_transaction(db_session, slot.id):
            raise RuntimeError('boom')

    lock = _get_slot_lock(slot.id)
    assert lock.acquire(timeout=0.1)
    lock.release()


def test_is_lock_error_codes():
    class PgError(Exception):
        pgcode = '55P03'

    class MySqlError(Exception):
        pass

    assert is_lock_error(OperationalError('stmt', {}, PgError('canceling statement due to lock timeout')))
    assert is_lock_error(OperationalError('stmt', {}, MySqlError(1205, 'Lock wait timeout exceeded')))
    assert not is_lock_error(OperationalError('stmt', {}, MySqlError(2006, 'MySQL server has gone away')))


def test_duplicate_key_maps_to_busy(db_session, make_slot):
    slot = make_slot()

    with pytest.raises(Busy):
        with capacity_transaction(db_session, slot.id):
            raise IntegrityError('INSERT', {}, Exception('UNIQUE constraint failed: invoices.invoice_number'))


def test_other_integrity_errors_propagate(db_session, make_slot):
    slot = make_slot()

    with pytest.raises(IntegrityError):
        with capacity_transaction(db_session, slot.id):
            raise IntegrityError('INSERT', {}, Exception('FOREIGN KEY constraint failed'))


def test_is_duplicate_key_error_codes():
    class PgError(Exception):
        pgcode = '23505'

    class MySqlError(Exception):
        pass

    assert is_duplicate_key_error(IntegrityError('stmt', {}, PgError('duplicate key value violates unique constraint')))
    assert is_duplicate_key_error(IntegrityError('stmt', {}, MySqlError(1062, "Duplicate entry 'INV-00001'")))
    assert not is_duplicate_key_error(IntegrityError('stmt', {}, MySqlError(1452, 'Cannot add or update a child row')))


def test_slot_locks_are_dropped_when_unused():
    lock = _get_slot_lock('retired-slot')
    assert _get_slot_lock('retired-slot') is lock
    assert 'retired-slot' in _slot_locks

    del lock
    gc.collect()

    assert 'retired-slot' not in _slot_locks


def test_concurrent_bookings_in_different_slots_get_distinct_invoice_numbers(file_app):
    with file_app.app_context():
        plan = MembershipPlan(name='Monthly', price=Decimal('3000'), duration_months=1)
        slots = [SessionSlot(display_name=f"Slot {hour}", start_time=f"0{hour}:00", end_time=f"0{hour + 1}:00",
                             capacity=5, exception_capacity=0) for hour in (6, 7)]
        members = [Member(first_name='Booker', last_name=str(i), email=f"booker{i}@example.com") for i in range(6)]
        db.session.add_all([plan, *slots, *members])
        with transaction(db.session):
            InvoiceService(db.session).ensure_sequence()
        plan_id = plan.id
        slot_ids = [slot.id for slot in slots]
        member_ids = [member.id for member in members]

    numbers = []
    errors = []
    record = threading.Lock()

    def book(member_id, slot_id):
        with file_app.app_context():
            try:
                for _ in range(20):
                    try:
                        result = SubscriptionService(db.session).create(
                            member_id, plan_id, slot_id, date(2025, 1, 1), today=date(2025, 1, 1))
                        break
                    except Busy:
                        continue
                else:
                    raise AssertionError(f"{member_id} never got through")
                with record:
                    numbers.append(result['invoice'].invoice_number)
            except Exception as e:
                with record:
                    errors.append(e)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=book, args=(member_id, slot_ids[i % 2]))
               for i, member_id in enumerate(member_ids)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert len(numbers) == len(member_ids)
    assert len(set(numbers)) == len(numbers)


def test_locked_read_refreshes_loaded_row(db_session, make_slot):
    slot = make_slot(capacity=2)
    db_session.query(SessionSlot).filter_by(id=slot.id).update({'capacity': 7}, synchronize_session=False)

    slots = Repositories(db_session).slots
    assert slots.get_by_id(slot.id).capacity == 2
    assert slots.get_by_id(slot.id, for_update=True).capacity == 7
    assert slots.get_by_id(None) is None
