# repositories/base_repository.py
"""
Storage port for the booking engine.

Services never query the database directly: they receive a session, build
repositories on top of it and work through them. Repositories flush but never
commit; the transaction boundary owned by the service layer decides when a
unit of work is committed or rolled back.
"""


class BaseRepository:
    """Common data access helpers for a single model."""

    def __init__(self, session, model):
        self.session = session
        self.model = model

    def get_by_id(self, entity_id, for_update=False):
        if not entity_id:
            return None
        query = self.session.query(self.model).filter(self.model.id == entity_id)
        if for_update:
            query = query.with_for_update().populate_existing()
        return query.first()

    def create(self, **kwargs):
        """Add a new entity and flush it so its id is available."""
        entity = self.model(**kwargs)
        self.session.add(entity)
        self.session.flush()
        return entity

