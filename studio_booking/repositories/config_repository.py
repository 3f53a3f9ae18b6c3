# repositories/config_repository.py
from studio_booking.models import SystemConfiguration
from .base_repository import BaseRepository


class ConfigRepository(BaseRepository):

    def __init__(self, session):
        super().__init__(session, SystemConfiguration)

    def get_entry(self, category, key, for_update=False):
        query = self.session.query(SystemConfiguration).filter_by(category=category, key=key)
        if for_update:
            query = query.with_for_update().populate_existing()
        return query.first()

    def get_by_key(self, key):
        return self.session.query(SystemConfiguration).filter_by(key=key).first()
