# repositories/__init__.py
from .base_repository import BaseRepository
from .factory import Repositories
from .slot_repository import SlotAssignmentRepository, SlotRepository

__all__ = ['BaseRepository', 'Repositories', 'SlotRepository', 'SlotAssignmentRepository']
