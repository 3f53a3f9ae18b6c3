# repositories/factory.py
"""
Repository factory.

Builds every repository on top of one session so that a service operation
reads and writes through a single unit of work.
"""

from .attendance_repository import AttendanceLockRepository, AttendanceRepository
from .config_repository import ConfigRepository
from .directory_repository import LeadRepository, MemberRepository, PlanRepository
from .invoice_repository import InvoiceRepository
from .slot_repository import SlotAssignmentRepository, SlotRepository
from .subscription_repository import SubscriptionRepository
from .trial_repository import TrialRepository


class Repositories:
    """Bundle of repositories sharing one session."""

    def __init__(self, session):
        self.session = session
        self.slots = SlotRepository(session)
        self.assignments = SlotAssignmentRepository(session)
        self.members = MemberRepository(session)
        self.leads = LeadRepository(session)
        self.plans = PlanRepository(session)
        self.subscriptions = SubscriptionRepository(session)
        self.trials = TrialRepository(session)
        self.attendance = AttendanceRepository(session)
        self.attendance_locks = AttendanceLockRepository(session)
        self.invoices = InvoiceRepository(session)
        self.config = ConfigRepository(session)

