# repositories/directory_repository.py
"""Read/write access to the member and lead directory and the plan catalog."""

from sqlalchemy import func

from studio_booking.models import Lead, Member, MembershipPlan
from .base_repository import BaseRepository


class MemberRepository(BaseRepository):

    def __init__(self, session):
        super().__init__(session, Member)

    def find_by_email(self, email):
        if not email:
            return []
        return (
            self.session.query(Member)
            .filter(func.lower(Member.email) == email.strip().lower())
            .all()
        )

    def adjust_classes_attended(self, member, delta):
        """Move the running attendance counter, never below zero."""
        member.classes_attended = max(0, (member.classes_attended or 0) + delta)
        self.session.flush()
        return member.classes_attended


class LeadRepository(BaseRepository):

    def __init__(self, session):
        super().__init__(session, Lead)


class PlanRepository(BaseRepository):

    def __init__(self, session):
        super().__init__(session, MembershipPlan)

    def get_active(self):
        return (
            self.session.query(MembershipPlan)
            .filter_by(is_active=True)
            .order_by(MembershipPlan.duration_months)
            .all()
        )
