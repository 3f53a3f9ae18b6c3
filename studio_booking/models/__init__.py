# models/__init__.py
from .base import BaseModel
from .slot import SessionSlot, SessionType
from .plan import MembershipPlan, PlanType
from .member import Member, MemberStatus, Lead, LeadStatus, TrialStatus
from .subscription import MembershipSubscription, SubscriptionStatus, PaymentStatus
from .slot_assignment import SlotAssignment
from .trial import TrialBooking, TrialBookingStatus
from .attendance import AttendanceRecord, AttendanceLock, AttendanceStatus
from .invoice import Invoice, InvoiceStatus, InvoiceType
from .system_config import SystemConfiguration, ConfigCategory

__all__ = [
    'BaseModel',
    'SessionSlot',
    'SessionType',
    'MembershipPlan',
    'PlanType',
    'Member',
    'MemberStatus',
    'Lead',
    'LeadStatus',
    'TrialStatus',
    'MembershipSubscription',
    'SubscriptionStatus',
    'PaymentStatus',
    'SlotAssignment',
    'TrialBooking',
    'TrialBookingStatus',
    'AttendanceRecord',
    'AttendanceLock',
    'AttendanceStatus',
    'Invoice',
    'InvoiceStatus',
    'InvoiceType',
    'SystemConfiguration',
    'ConfigCategory',
]
