# services/invoice_service.py
import logging
import re
from decimal import Decimal

from studio_booking.models import ConfigCategory, Invoice, InvoiceStatus, InvoiceType, SystemConfiguration
from studio_booking.repositories import Repositories
from .settings_service import SettingsService

SEQUENCE_KEY = 'invoice_last_number'


class InvoiceService:
    """Builds the membership invoice that accompanies a new subscription."""

    def __init__(self, session, settings=None, repositories=None):
        self.session = session
        self.repos = repositories or Repositories(session)
        self.settings = settings or SettingsService(session, repositories=self.repos)
        self.logger = logging.getLogger('invoice_service')

    def _highest_issued(self, prefix):
        pattern = re.compile(rf"^{re.escape(prefix)}-(\d+)$")
        highest = 0
        for number in self.repos.invoices.get_numbers_with_prefix(prefix):
            match = pattern.match(number)
            if match:
                highest = max(highest, int(match.group(1)))
        return highest

    def ensure_sequence(self):
        """Create the invoice sequence row if it is missing. Caller owns the transaction."""
        entry = self.repos.config.get_entry(ConfigCategory.BILLING, SEQUENCE_KEY)
        if entry is None:
            entry = SystemConfiguration(category=ConfigCategory.BILLING, key=SEQUENCE_KEY, data_type='int',
                                        description='Last issued invoice sequence number')
            entry.set_typed_value(self._highest_issued(self.settings.invoice_prefix))
            self.session.add(entry)
            self.session.flush()
        return entry

    def next_invoice_number(self):
        """
        ``<prefix>-<5 digits>`` following the highest number issued so far.

        The sequence row stays locked until the caller's transaction ends, so
        concurrent bookings in different slots draw distinct numbers.
        """
        prefix = self.settings.invoice_prefix
        start = self.settings.invoice_start_number

        self.ensure_sequence()
        sequence = self.repos.config.get_entry(ConfigCategory.BILLING, SEQUENCE_KEY, for_update=True)
        try:
            last = int(sequence.get_typed_value() or 0)
        except (TypeError, ValueError):
            self.logger.warning(f"Invoice sequence value {sequence.value!r} is not a number, rescanning")
            last = 0

        number = max(last, self._highest_issued(prefix), start - 1) + 1
        sequence.set_typed_value(number)
        self.session.flush()

        return f"{prefix}-{number:05d}"

    @staticmethod
    def describe(plan, slot):
        return f"{plan.name} Membership ({plan.duration_label}) - {slot.display_name}"

    def create_for_subscription(self, subscription, plan, slot, invoice_date):
        """
        Persist the invoice for a freshly created subscription.

        The invoice is due on the subscription start date and is issued as sent.
        """
        amount = Decimal(subscription.original_amount)
        discount = Decimal(subscription.discount_amount or 0)
        total = Decimal(subscription.payable_amount)

        invoice = Invoice(
            invoice_number=self.next_invoice_number(),
            invoice_type=InvoiceType.MEMBERSHIP,
            member_id=subscription.member_id,
            subscription_id=subscription.id,
            amount=amount,
            discount=discount,
            discount_reason=subscription.discount_reason,
            total_amount=total,
            amount_paid=Decimal('0'),
            invoice_date=invoice_date,
            due_date=subscription.start_date,
            status=InvoiceStatus.SENT,
            items=[{
                'description': self.describe(plan, slot),
                'quantity': 1,
                'unit_price': float(amount),
                'total': float(amount),
            }],
        )
        self.session.add(invoice)
        self.session.flush()

        self.logger.info(f"Invoice {invoice.invoice_number} created for subscription {subscription.id}")
        return invoice
