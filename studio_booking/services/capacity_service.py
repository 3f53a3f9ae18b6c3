# services/capacity_service.py
"""
Slot capacity model.

Occupancy of a slot is the number of distinct members whose seat-holding
subscriptions overlap a window. A slot has a normal pool and an exception
(overflow) pool; bookings beyond the normal pool are allowed but flagged until
the total is reached.
"""

import logging

from studio_booking.errors import NotFound
from studio_booking.repositories import Repositories


class CapacityResult:
    """Outcome of a capacity check for one slot and window."""

    def __init__(self, available, is_exception_only, current_bookings, normal_capacity,
                 total_capacity, message):
        self.available = available
        self.is_exception_only = is_exception_only
        self.current_bookings = current_bookings
        self.normal_capacity = normal_capacity
        self.total_capacity = total_capacity
        self.message = message

    def to_dict(self):
        return {
            'available': self.available,
            'is_exception_only': self.is_exception_only,
            'current_bookings': self.current_bookings,
            'normal_capacity': self.normal_capacity,
            'total_capacity': self.total_capacity,
            'message': self.message,
        }

    def __repr__(self):
        return f'<CapacityResult {self.message}>'


def classify(current_bookings, normal_capacity, total_capacity):
    """Classify an occupancy count against the two pools."""
    if current_bookings >= total_capacity:
        return CapacityResult(False, False, current_bookings, normal_capacity, total_capacity,
                              f"Slot is full ({current_bookings}/{total_capacity})")
    if current_bookings >= normal_capacity:
        return CapacityResult(True, True, current_bookings, normal_capacity, total_capacity,
                              f"Normal capacity full. Will use exception slot "
                              f"({current_bookings}/{total_capacity})")
    return CapacityResult(True, False, current_bookings, normal_capacity, total_capacity,
                          f"Available ({current_bookings}/{normal_capacity} regular slots used)")


class SlotCapacityModel:
    """Read-only capacity queries over one session."""

    def __init__(self, session, repositories=None):
        self.session = session
        self.repos = repositories or Repositories(session)
        self.logger = logging.getLogger('capacity_service')

    def _get_slot(self, slot_id):
        slot = self.repos.slots.get_by_id(slot_id)
        if not slot:
            raise NotFound('Slot not found', details={'slot_id': slot_id})
        return slot

    def check_capacity(self, slot_id, start_date, end_date=None, exclude_member_id=None):
        """
        Check whether a slot can take one more member over a window.

        Args:
            slot_id: Slot to check
            start_date: First day of the window
            end_date: Last day of the window (inclusive); omit for a single calendar date
            exclude_member_id: Member not counted, used when renewing into the same slot

        Returns:
            CapacityResult
        """
        slot = self._get_slot(slot_id)
        single_date = end_date is None
        window_end = start_date if single_date else end_date

        current = self.repos.subscriptions.count_distinct_occupants(
            slot.id, start_date, window_end, exclude_member_id=exclude_member_id
        )
        if single_date:
            current += self.repos.trials.count_open_on_date(slot.id, start_date)

        result = classify(current, slot.capacity, slot.total_capacity)
        self.logger.debug(f"Capacity for slot {slot.display_name} {start_date}..{window_end}: "
                          f"{result.message}")
        return result

    def get_slot_availability(self, slot_id, on_date):
        """
        Seat usage of a slot on one calendar date, split by pool.

        Exception-pool trials are counted with the exception assignments, all other
        open trials with the regular pool.
        """
        slot = self._get_slot(slot_id)

        regular = self.repos.subscriptions.count_distinct_occupants(slot.id, on_date, on_date)
        exception = (
            self.repos.assignments.count_active_exceptions(slot.id, on_date)
            + self.repos.trials.count_open_on_date(slot.id, on_date, is_exception=True)
        )
        trials = self.repos.trials.count_open_on_date(slot.id, on_date, is_exception=False)

        available_regular = max(0, slot.capacity - regular - trials)
        available_exception = max(0, slot.exception_capacity - exception)

        return {
            'slot_id': slot.id,
            'display_name': slot.display_name,
            'date': on_date.isoformat(),
            'regular_bookings': regular,
            'exception_bookings': exception,
            'trial_bookings': trials,
            'total_capacity': slot.total_capacity,
            'available_regular': available_regular,
            'available_exception': available_exception,
            'is_full': available_regular == 0 and available_exception == 0,
        }

    def has_capacity(self, slot_id, on_date, use_exception=False):
        availability = self.get_slot_availability(slot_id, on_date)
        if use_exception:
            return availability['available_exception'] > 0
        return availability['available_regular'] > 0

    def get_all_slots_availability(self, on_date):
        return [self.get_slot_availability(slot.id, on_date) for slot in self.repos.slots.get_active()]
