# services/subscription_service.py
"""
Subscription lifecycle.

Creates subscriptions together with their invoice and slot assignment, and
handles the later changes to a subscription: extensions, slot transfers,
compensation days, cancellation and expiry. Every mutating operation runs
inside a capacity transaction keyed by the slot it touches.
"""

import logging
from datetime import date, timedelta
from decimal import Decimal

from dateutil.relativedelta import relativedelta

from studio_booking.errors import CapacityExceeded, InvalidTransition, NotFound, OverlapConflict
from studio_booking.models import MemberStatus, PaymentStatus, SubscriptionStatus
from studio_booking.repositories import Repositories
from .capacity_service import SlotCapacityModel
from .invoice_service import InvoiceService
from .overlap import OverlapValidator
from .settings_service import SettingsService
from .transaction import capacity_transaction, transaction


def calculate_end_date(start_date, duration_months):
    """Last covered day of a plan starting on ``start_date`` (Jan 1 + 1 month -> Jan 31)."""
    return start_date + relativedelta(months=duration_months) - timedelta(days=1)


def _as_money(value):
    return Decimal(str(value if value is not None else 0)).quantize(Decimal('0.01'))


class SubscriptionService:
    """Stateful operations over membership subscriptions."""

    def __init__(self, session, settings=None, lock_timeout=None):
        self.session = session
        self.repos = Repositories(session)
        self.settings = settings or SettingsService(session, repositories=self.repos)
        self.capacity = SlotCapacityModel(session, repositories=self.repos)
        self.invoices = InvoiceService(session, settings=self.settings, repositories=self.repos)
        self.lock_timeout = lock_timeout
        self.logger = logging.getLogger('subscription_service')

    # Queries

    def get_by_id(self, subscription_id):
        subscription = self.repos.subscriptions.get_by_id(subscription_id)
        if not subscription:
            raise NotFound('Subscription not found', details={'subscription_id': subscription_id})
        return subscription

    def _lock_subscription(self, subscription_id):
        subscription = self.repos.subscriptions.get_by_id(subscription_id, for_update=True)
        if not subscription:
            raise NotFound('Subscription not found', details={'subscription_id': subscription_id})
        return subscription

    def get_by_member(self, member_id):
        return self.repos.subscriptions.get_by_member(member_id)

    def get_active_member_subscription(self, member_id, on=None):
        return self.repos.subscriptions.get_active_for_member_on(member_id, on or date.today())

    def has_active_subscription(self, member_id, on=None):
        return self.get_active_member_subscription(member_id, on) is not None

    def has_pending_renewal(self, member_id, today=None):
        return self.repos.subscriptions.get_pending_renewal(member_id, today or date.today()) is not None

    def get_expiring_soon(self, days=7, today=None):
        today = today or date.today()
        return self.repos.subscriptions.get_expiring_between(today, today + timedelta(days=days))

    def get_recently_expired(self, days=7, today=None):
        today = today or date.today()
        return self.repos.subscriptions.get_expired_between(today - timedelta(days=days),
                                                            today - timedelta(days=1))

    def get_active_for_slot_on_date(self, slot_id, on_date):
        return self.repos.subscriptions.get_active_for_slot_on(slot_id, on_date)

    # Creation

    def create(self, member_id, plan_id, slot_id, start_date, discount_amount=0,
               discount_reason=None, notes=None, today=None):
        """
        Create a subscription with its invoice and slot assignment.

        Returns:
            dict: subscription, invoice and an optional warning when the booking
            used the slot's exception capacity
        """
        today = today or date.today()

        with capacity_transaction(self.session, slot_id, self.lock_timeout) as slot:
            plan = self.repos.plans.get_by_id(plan_id)
            if not plan:
                raise NotFound('Plan not found', details={'plan_id': plan_id})
            member = self.repos.members.get_by_id(member_id)
            if not member:
                raise NotFound('Member not found', details={'member_id': member_id})
            if not slot:
                raise NotFound('Slot not found', details={'slot_id': slot_id})

            end_date = calculate_end_date(start_date, plan.duration_months)

            conflict = OverlapValidator.find_overlapping(
                self.repos.subscriptions.get_member_blocking(member.id), start_date, end_date
            )
            if conflict:
                conflict_plan = conflict.plan.name if conflict.plan else 'Unknown plan'
                self.logger.warning(f"Overlap for member {member.id}: {conflict.id} "
                                    f"{conflict.start_date}..{conflict.end_date}")
                raise OverlapConflict(
                    f"Member already has an overlapping subscription ({conflict_plan}) from "
                    f"{conflict.start_date.isoformat()} to {conflict.end_date.isoformat()}. "
                    f"Please choose a start date after {conflict.end_date.isoformat()}.",
                    details={
                        'subscription_id': conflict.id,
                        'start_date': conflict.start_date.isoformat(),
                        'end_date': conflict.end_date.isoformat(),
                    },
                )

            is_renewal = member.assigned_slot_id == slot.id
            check = self.capacity.check_capacity(
                slot.id, start_date, end_date,
                exclude_member_id=member.id if is_renewal else None,
            )

            if not is_renewal and not check.available:
                self.logger.warning(f"Slot {slot.display_name} full for member {member.id}: {check.message}")
                raise CapacityExceeded(
                    f'Slot "{slot.display_name}" is completely full. '
                    f'Current bookings: {check.current_bookings}, '
                    f'Normal capacity: {check.normal_capacity}, '
                    f'Total capacity: {check.total_capacity}. Cannot add more members to this slot.',
                    current_bookings=check.current_bookings,
                    normal_capacity=check.normal_capacity,
                    total_capacity=check.total_capacity,
                )

            uses_exception = not is_renewal and check.is_exception_only

            original = _as_money(plan.price)
            discount = _as_money(discount_amount)
            payable = max(Decimal('0.00'), original - discount)

            subscription = self.repos.subscriptions.create(
                member_id=member.id,
                plan_id=plan.id,
                slot_id=slot.id,
                start_date=start_date,
                end_date=end_date,
                status=SubscriptionStatus.ACTIVE,
                payment_status=PaymentStatus.PENDING,
                original_amount=original,
                discount_amount=discount,
                discount_reason=discount_reason,
                payable_amount=payable,
                is_extension=is_renewal,
                notes=notes,
            )

            invoice = self.invoices.create_for_subscription(subscription, plan, slot, today)
            subscription.invoice_id = invoice.id

            member.status = MemberStatus.ACTIVE
            member.assigned_slot_id = slot.id
            self._upsert_assignment(member.id, slot.id, start_date, uses_exception, today)

            warning = None
            if uses_exception:
                warning = (f'Warning: Normal capacity for "{slot.display_name}" is full. '
                           f'This member is being added using exception capacity '
                           f'({check.current_bookings + 1}/{check.total_capacity} slots used).')

        self.logger.info(f"Subscription {subscription.id} created for member {member_id} in slot "
                         f"{slot_id} ({start_date}..{end_date}), invoice {invoice.invoice_number}")
        return {
            'success': True,
            'subscription': subscription,
            'invoice': invoice,
            'warning': warning,
        }

    def _upsert_assignment(self, member_id, slot_id, start_date, is_exception, today):
        current = self.repos.assignments.get_active_for_member(member_id)
        if current and current.slot_id == slot_id:
            return current
        if current:
            current.deactivate(today)
            self.session.flush()
        return self.repos.assignments.create(
            member_id=member_id,
            slot_id=slot_id,
            start_date=start_date,
            is_active=True,
            is_exception=is_exception,
        )

    # Changes to an existing subscription

    def extend(self, subscription_id, days, reason=None):
        """Push the end date out by ``days`` and count them as extension days."""
        if not isinstance(days, int) or isinstance(days, bool) or days <= 0:
            raise InvalidTransition('Extension days must be a positive number',
                                    details={'days': days})

        subscription = self.get_by_id(subscription_id)
        with capacity_transaction(self.session, subscription.slot_id, self.lock_timeout):
            subscription = self._lock_subscription(subscription_id)
            subscription.end_date = subscription.end_date + timedelta(days=days)
            subscription.extension_days = (subscription.extension_days or 0) + days
            subscription.append_note(f"Extended by {days} days: {reason or 'No reason provided'}")
            self.session.flush()

        self.logger.info(f"Subscription {subscription_id} extended by {days} days to {subscription.end_date}")
        return subscription

    def transfer_slot(self, subscription_id, new_slot_id, effective_date, reason=None):
        """
        Move the remaining days of a subscription to another slot.

        Capacity is checked on the target slot for ``[effective_date, end_date]`` only.
        """
        subscription = self.get_by_id(subscription_id)

        with capacity_transaction(self.session, new_slot_id, self.lock_timeout) as new_slot:
            subscription = self._lock_subscription(subscription_id)

            if subscription.status not in SubscriptionStatus.TRANSFERABLE:
                raise InvalidTransition('Can only transfer active or scheduled subscriptions',
                                        details={'status': subscription.status})
            if not new_slot:
                raise NotFound('Target slot not found', details={'slot_id': new_slot_id})
            if subscription.slot_id == new_slot.id:
                raise InvalidTransition('Member is already in this slot')
            if effective_date < subscription.start_date:
                raise InvalidTransition('Effective date cannot be before subscription start date')
            if effective_date > subscription.end_date:
                raise InvalidTransition('Effective date cannot be after subscription end date')

            check = self.capacity.check_capacity(
                new_slot.id, effective_date, subscription.end_date,
                exclude_member_id=subscription.member_id,
            )
            if not check.available:
                self.logger.warning(f"Transfer of {subscription_id} rejected: {check.message}")
                raise CapacityExceeded(
                    f"Cannot transfer: {check.message}",
                    current_bookings=check.current_bookings,
                    normal_capacity=check.normal_capacity,
                    total_capacity=check.total_capacity,
                )

            warning = None
            if check.is_exception_only:
                warning = f'Transfer will use exception capacity in "{new_slot.display_name}"'

            old_slot = self.repos.slots.get_by_id(subscription.slot_id)
            old_name = old_slot.display_name if old_slot else 'Unknown'
            note = f"Batch transfer: {old_name} → {new_slot.display_name} (effective {effective_date.isoformat()})"
            if reason:
                note = f"{note}: {reason}"

            subscription.slot_id = new_slot.id
            subscription.append_note(note)

            member = self.repos.members.get_by_id(subscription.member_id)
            if member:
                member.assigned_slot_id = new_slot.id

            assignment = self.repos.assignments.get_active_for_member(subscription.member_id)
            if assignment:
                assignment.slot_id = new_slot.id
                assignment.is_exception = check.is_exception_only
            else:
                self.repos.assignments.create(
                    member_id=subscription.member_id,
                    slot_id=new_slot.id,
                    start_date=effective_date,
                    is_active=True,
                    is_exception=check.is_exception_only,
                )
            self.session.flush()

        self.logger.info(f"Subscription {subscription_id} transferred {old_name} -> {new_slot.display_name}")
        return {'success': True, 'subscription': subscription, 'warning': warning}

    def set_extra_days(self, subscription_id, total_days, reason=None):
        """
        Set the total compensation days on a subscription.

        ``total_days`` replaces the stored total; the end date moves by the difference,
        so repeating a call with the same value changes nothing.
        """
        if not isinstance(total_days, int) or isinstance(total_days, bool) or total_days < 0:
            raise InvalidTransition('Extra days cannot be negative', details={'extra_days': total_days})

        subscription = self.get_by_id(subscription_id)
        with capacity_transaction(self.session, subscription.slot_id, self.lock_timeout):
            subscription = self._lock_subscription(subscription_id)
            delta = total_days - (subscription.extra_days or 0)
            subscription.end_date = subscription.end_date + timedelta(days=delta)
            subscription.extra_days = total_days
            subscription.extra_days_reason = reason
            self.session.flush()

        self.logger.info(f"Subscription {subscription_id} extra days set to {total_days} "
                         f"(end date {subscription.end_date})")
        return subscription

    def cancel(self, subscription_id, reason=None):
        subscription = self.get_by_id(subscription_id)
        with capacity_transaction(self.session, subscription.slot_id, self.lock_timeout):
            subscription = self._lock_subscription(subscription_id)
            if subscription.status not in SubscriptionStatus.OCCUPYING:
                raise InvalidTransition(f"Cannot cancel a subscription that is {subscription.status}",
                                        details={'status': subscription.status})
            subscription.status = SubscriptionStatus.CANCELLED
            subscription.append_note(f"Cancelled: {reason or 'No reason provided'}")
            self.session.flush()

        self.logger.info(f"Subscription {subscription_id} cancelled")
        return subscription

    def expire_lapsed(self, today=None):
        """
        Mark active subscriptions that ended before ``today`` as expired.

        Members left without a current subscription become expired and lose their
        active slot assignment; ``member.assigned_slot_id`` is kept.

        Returns:
            dict: number of expired subscriptions and ids of expired members
        """
        today = today or date.today()
        expired_members = []

        with transaction(self.session):
            lapsed = self.repos.subscriptions.get_lapsed(today)
            for subscription in lapsed:
                subscription.status = SubscriptionStatus.EXPIRED
            self.session.flush()

            for member_id in sorted({s.member_id for s in lapsed}):
                if self.repos.subscriptions.has_current(member_id, today):
                    continue
                member = self.repos.members.get_by_id(member_id)
                if member:
                    member.status = MemberStatus.EXPIRED
                assignment = self.repos.assignments.get_active_for_member(member_id)
                if assignment:
                    assignment.deactivate(today)
                expired_members.append(member_id)
            self.session.flush()

        self.logger.info(f"Expired {len(lapsed)} subscriptions, {len(expired_members)} members")
        return {'expired_subscriptions': len(lapsed), 'expired_members': expired_members}

