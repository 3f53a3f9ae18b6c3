# repositories/invoice_repository.py
from studio_booking.models import Invoice
from .base_repository import BaseRepository


class InvoiceRepository(BaseRepository):

    def __init__(self, session):
        super().__init__(session, Invoice)

    def get_numbers_with_prefix(self, prefix):
        rows = (
            self.session.query(Invoice.invoice_number)
            .filter(Invoice.invoice_number.like(f"{prefix}-%"))
            .all()
        )
        return [row[0] for row in rows]
