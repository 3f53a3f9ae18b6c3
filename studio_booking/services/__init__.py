# services/__init__.py
from .attendance_service import AttendanceService, count_working_days
from .capacity_service import CapacityResult, SlotCapacityModel, classify
from .invoice_service import InvoiceService
from .overlap import OverlapValidator
from .settings_service import SettingsService
from .subscription_service import SubscriptionService, calculate_end_date
from .transaction import capacity_transaction, transaction
from .trial_service import TrialBookingService

__all__ = [
    'AttendanceService',
    'CapacityResult',
    'InvoiceService',
    'OverlapValidator',
    'SettingsService',
    'SlotCapacityModel',
    'SubscriptionService',
    'TrialBookingService',
    'calculate_end_date',
    'capacity_transaction',
    'classify',
    'count_working_days',
    'transaction',
]
