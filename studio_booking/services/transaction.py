# services/transaction.py
"""
Transaction boundary for capacity-affecting operations.

A capacity check and the writes that depend on it run inside one database
transaction while the slot is locked, so that two requests competing for the
last seat are serialized. Locking happens at two levels:

1. an in-process lock per slot, waited on for at most ``LOCK_TIMEOUT_SECONDS``;
2. a ``SELECT ... FOR UPDATE`` on the slot row, bounded by the database's own
   lock timeout (PostgreSQL ``lock_timeout``, MySQL ``innodb_lock_wait_timeout``).

Failing to get either lock in time raises ``Busy``, as does a unique-key
collision with a concurrent writer.
"""

import logging
import threading
import weakref
from contextlib import contextmanager

from flask import current_app, has_app_context
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError

from studio_booking.errors import Busy
from studio_booking.repositories import SlotRepository

logger = logging.getLogger('transaction')

DEFAULT_LOCK_TIMEOUT = 5.0

# PostgreSQL: lock_not_available, deadlock_detected. MySQL: lock wait timeout, deadlock.
LOCK_ERROR_CODES = {'55P03', '40P01', 1205, 1213}

# PostgreSQL unique_violation, MySQL ER_DUP_ENTRY
DUPLICATE_KEY_CODES = {'23505', 1062}

# Entries disappear once no caller holds the lock
_slot_locks = weakref.WeakValueDictionary()
_slot_locks_guard = threading.Lock()


def _get_slot_lock(slot_id):
    with _slot_locks_guard:
        lock = _slot_locks.get(slot_id)
        if lock is None:
            lock = threading.Lock()
            _slot_locks[slot_id] = lock
        return lock


def _resolve_timeout(timeout):
    if timeout is not None:
        return float(timeout)
    if has_app_context():
        return float(current_app.config.get('LOCK_TIMEOUT_SECONDS', DEFAULT_LOCK_TIMEOUT))
    return DEFAULT_LOCK_TIMEOUT


def is_lock_error(error):
    """Whether a database error was caused by lock contention."""
    orig = getattr(error, 'orig', None)
    code = getattr(orig, 'pgcode', None)
    if code is None and orig is not None and getattr(orig, 'args', None):
        code = orig.args[0]
    if code in LOCK_ERROR_CODES:
        return True
    message = str(orig or error).lower()
    return 'database is locked' in message or 'lock timeout' in message or 'deadlock' in message


def is_duplicate_key_error(error):
    """Whether an integrity error is a unique-key collision between concurrent writers."""
    orig = getattr(error, 'orig', None)
    code = getattr(orig, 'pgcode', None)
    if code is None and orig is not None and getattr(orig, 'args', None):
        code = orig.args[0]
    if code in DUPLICATE_KEY_CODES:
        return True
    return 'unique constraint failed' in str(orig or error).lower()


def _set_database_lock_timeout(session, timeout):
    dialect = session.get_bind().dialect.name
    if dialect == 'postgresql':
        session.execute(text(f"SET LOCAL lock_timeout = '{int(timeout * 1000)}ms'"))
    elif dialect in ('mysql', 'mariadb'):
        session.execute(text(f"SET SESSION innodb_lock_wait_timeout = {max(1, int(timeout))}"))


@contextmanager
def transaction(session):
    """Commit on success, roll back and re-raise on any exception."""
    try:
        yield session
        session.commit()
    except OperationalError as e:
        session.rollback()
        if is_lock_error(e):
            logger.warning(f"Database lock contention: {e}")
            raise Busy('The system is busy. Please try again.') from e
        raise
    except IntegrityError as e:
        session.rollback()
        if is_duplicate_key_error(e):
            logger.warning(f"Concurrent duplicate write: {e}")
            raise Busy('Another request changed the same records. Please try again.') from e
        raise
    except Exception:
        session.rollback()
        raise


@contextmanager
def capacity_transaction(session, slot_id, timeout=None):
    """
    Run a unit of work with the slot locked.

    Yields the locked ``SessionSlot`` (or None when the slot does not exist).
    """
    wait = _resolve_timeout(timeout)
    slot_lock = _get_slot_lock(slot_id)

    if not slot_lock.acquire(timeout=wait):
        logger.warning(f"Timed out after {wait}s waiting for slot {slot_id}")
        raise Busy('The slot is being booked by another request. Please try again.',
                   details={'slot_id': slot_id})

    try:
        with transaction(session):
            _set_database_lock_timeout(session, wait)
            slot = SlotRepository(session).lock(slot_id)
            yield slot
    finally:
        slot_lock.release()
