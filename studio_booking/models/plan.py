# models/plan.py
from studio_booking.extensions import db
from .base import BaseModel


class PlanType:
    TRIAL = 'trial'
    MONTHLY = 'monthly'
    QUARTERLY = 'quarterly'
    SEMI_ANNUAL = 'semi-annual'
    YEARLY = 'yearly'


class MembershipPlan(BaseModel):
    """Read-only plan catalog entry supplying price and duration."""

    __tablename__ = 'membership_plan'

    name = db.Column(db.String(100), nullable=False)
    plan_type = db.Column(db.String(20), nullable=False, default=PlanType.MONTHLY, index=True)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    duration_months = db.Column(db.Integer, nullable=False, default=1)
    description = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    @property
    def duration_label(self):
        return f"{self.duration_months} {'month' if self.duration_months == 1 else 'months'}"

    def __repr__(self):
        return f'<MembershipPlan {self.name}>'
