"""Shared fixtures: a fresh in-memory application per test and model factories."""

from datetime import date
from decimal import Decimal
import uuid

import pytest

from studio_booking import create_app
from studio_booking.extensions import db as _db
from studio_booking.models import (
    Lead,
    Member,
    MembershipPlan,
    MembershipSubscription,
    SessionSlot,
    SubscriptionStatus,
)
from studio_booking.services.subscription_service import calculate_end_date


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.engine.dispose()


@pytest.fixture
def db_session(app):
    return _db.session


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_slot(db_session):
    def _make(capacity=10, exception_capacity=1, display_name=None, start_time='07:30', is_active=True):
        slot = SessionSlot(
            display_name=display_name or f"{start_time} batch",
            start_time=start_time,
            end_time='08:30',
            capacity=capacity,
            exception_capacity=exception_capacity,
            is_active=is_active,
        )
        db_session.add(slot)
        db_session.commit()
        return slot
    return _make


@pytest.fixture
def make_plan(db_session):
    def _make(duration_months=1, price='3000.00', name=None):
        plan = MembershipPlan(
            name=name or f"{duration_months}-Month",
            price=Decimal(price),
            duration_months=duration_months,
        )
        db_session.add(plan)
        db_session.commit()
        return plan
    return _make


@pytest.fixture
def make_member(db_session):
    def _make(email=None, first_name='Test', last_name='Member', **kwargs):
        member = Member(
            first_name=first_name,
            last_name=last_name,
            email=email or f"member-{uuid.uuid4().hex[:8]}@example.com",
            **kwargs,
        )
        db_session.add(member)
        db_session.commit()
        return member
    return _make


@pytest.fixture
def make_lead(db_session):
    def _make(email=None, first_name='Test', last_name='Lead', **kwargs):
        lead = Lead(
            first_name=first_name,
            last_name=last_name,
            email=email or f"lead-{uuid.uuid4().hex[:8]}@example.com",
            **kwargs,
        )
        db_session.add(lead)
        db_session.commit()
        return lead
    return _make


@pytest.fixture
def make_subscription(db_session, make_plan):
    """Insert a subscription row directly, bypassing the lifecycle checks."""
    def _make(member, slot, start_date, end_date=None, status=SubscriptionStatus.ACTIVE, plan=None):
        plan = plan or make_plan()
        subscription = MembershipSubscription(
            member_id=member.id,
            plan_id=plan.id,
            slot_id=slot.id,
            start_date=start_date,
            end_date=end_date or calculate_end_date(start_date, plan.duration_months),
            status=status,
            original_amount=plan.price,
            discount_amount=Decimal('0'),
            payable_amount=plan.price,
        )
        db_session.add(subscription)
        db_session.commit()
        return subscription
    return _make


@pytest.fixture
def jan_1():
    return date(2025, 1, 1)
