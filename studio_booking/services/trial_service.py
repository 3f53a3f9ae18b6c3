# services/trial_service.py
import logging
from datetime import date

from studio_booking.errors import CapacityExceeded, InvalidTransition, NotFound
from studio_booking.models import LeadStatus, TrialBookingStatus, TrialStatus
from studio_booking.repositories import Repositories
from .attendance_service import WORKING_WEEKDAYS
from .capacity_service import SlotCapacityModel
from .settings_service import SettingsService
from .transaction import capacity_transaction


class TrialBookingService:
    """Single-date trial sessions for leads, sharing seats with subscriptions."""

    def __init__(self, session, settings=None, lock_timeout=None):
        self.session = session
        self.repos = Repositories(session)
        self.settings = settings or SettingsService(session, repositories=self.repos)
        self.capacity = SlotCapacityModel(session, repositories=self.repos)
        self.lock_timeout = lock_timeout
        self.logger = logging.getLogger('trial_service')

    def get_by_id(self, booking_id):
        booking = self.repos.trials.get_by_id(booking_id)
        if not booking:
            raise NotFound('Trial booking not found', details={'booking_id': booking_id})
        return booking

    def get_by_lead(self, lead_id):
        return self.repos.trials.get_by_lead(lead_id)

    def get_by_slot_and_date(self, slot_id, on_date):
        return self.repos.trials.get_by_slot_and_date(slot_id, on_date)

    def get_upcoming(self, today=None):
        return self.repos.trials.get_upcoming(today or date.today())

    def _has_paying_membership(self, lead, on_date):
        """Lead's email (or converted member) holds an active subscription on the date."""
        members = list(self.repos.members.find_by_email(lead.email))
        if lead.converted_to_member_id and all(m.id != lead.converted_to_member_id for m in members):
            converted = self.repos.members.get_by_id(lead.converted_to_member_id)
            if converted:
                members.append(converted)

        for member in members:
            if self.repos.subscriptions.get_active_for_member_on(member.id, on_date):
                return True
        return False

    def book_trial(self, lead_id, slot_id, on_date, is_exception=False):
        """
        Book a trial session for a lead.

        Checks run in order and the first failure rejects the booking: lead exists,
        trial limit not reached, no open trial on the same date, not already a
        paying member, weekday, capacity in the requested pool.
        """
        with capacity_transaction(self.session, slot_id, self.lock_timeout) as slot:
            lead = self.repos.leads.get_by_id(lead_id)
            if not lead:
                raise NotFound('Lead not found', details={'lead_id': lead_id})

            completed = self.repos.trials.count_completed_for_lead(lead.id)
            max_trials = self.settings.max_trials_per_person
            if completed >= max_trials:
                self.logger.warning(f"Lead {lead.id} reached trial limit ({completed}/{max_trials})")
                raise InvalidTransition('Maximum trial sessions reached',
                                        details={'completed_trials': completed, 'max_trials': max_trials})

            if self.repos.trials.get_open_for_lead_on(lead.id, on_date):
                raise InvalidTransition('A trial session is already booked for this date')

            if self._has_paying_membership(lead, on_date):
                self.logger.warning(f"Lead {lead.id} already has an active membership on {on_date}")
                raise InvalidTransition('This person already has an active membership. '
                                        'Trial booking not allowed.')

            if not slot:
                raise NotFound('Slot not found', details={'slot_id': slot_id})

            if on_date.weekday() not in WORKING_WEEKDAYS:
                raise InvalidTransition('Sessions only available Monday to Friday',
                                        details={'date': on_date.isoformat()})

            # Both pools are also bounded by the slot total
            check = self.capacity.check_capacity(slot.id, on_date)
            if is_exception:
                availability = self.capacity.get_slot_availability(slot.id, on_date)
                has_room = check.available and availability['available_exception'] > 0
                message = 'Exception capacity full'
            else:
                has_room = check.available and not check.is_exception_only
                message = 'Slot is full for this date'
            if not has_room:
                self.logger.warning(f"Trial for lead {lead.id} rejected on {on_date}: {check.message}")
                raise CapacityExceeded(
                    message,
                    current_bookings=check.current_bookings,
                    normal_capacity=check.normal_capacity,
                    total_capacity=check.total_capacity,
                )

            booking = self.repos.trials.create(
                lead_id=lead.id,
                slot_id=slot.id,
                date=on_date,
                status=TrialBookingStatus.CONFIRMED,
                is_exception=is_exception,
            )

            lead.status = LeadStatus.TRIAL_SCHEDULED
            lead.trial_date = on_date
            lead.trial_slot_id = slot.id
            lead.trial_status = TrialStatus.SCHEDULED
            self.session.flush()

        self.logger.info(f"Trial {booking.id} booked for lead {lead_id} on {on_date} in slot {slot_id}")
        return booking

    def _transition(self, booking_id, booking_status, lead_status, trial_status):
        booking = self.get_by_id(booking_id)
        with capacity_transaction(self.session, booking.slot_id, self.lock_timeout):
            booking = self.repos.trials.get_by_id(booking_id, for_update=True)
            if not booking.is_open:
                raise InvalidTransition(f"Trial booking is already {booking.status}",
                                        details={'status': booking.status})
            booking.status = booking_status

            lead = self.repos.leads.get_by_id(booking.lead_id)
            if lead:
                if lead_status:
                    lead.status = lead_status
                lead.trial_status = trial_status
            self.session.flush()

        self.logger.info(f"Trial {booking_id} marked {booking_status}")
        return booking

    def mark_attended(self, booking_id):
        return self._transition(booking_id, TrialBookingStatus.ATTENDED,
                                LeadStatus.TRIAL_COMPLETED, TrialStatus.ATTENDED)

    def mark_no_show(self, booking_id):
        return self._transition(booking_id, TrialBookingStatus.NO_SHOW,
                                LeadStatus.FOLLOW_UP, TrialStatus.NO_SHOW)

    def cancel_trial(self, booking_id):
        return self._transition(booking_id, TrialBookingStatus.CANCELLED, None, TrialStatus.CANCELLED)
