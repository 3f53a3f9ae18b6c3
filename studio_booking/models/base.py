# models/base.py
from datetime import date, datetime
from decimal import Decimal
import uuid

from studio_booking.extensions import db


def generate_uuid():
    return str(uuid.uuid4())


class BaseModel(db.Model):
    """Base model class with common functionality."""

    __abstract__ = True

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    created_at = db.Column(db.DateTime, default=datetime.now, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)

    def to_dict(self):
        """Convert model instance to a JSON-friendly dictionary."""
        result = {}

        for column in self.__table__.columns:
            value = getattr(self, column.name)
            if isinstance(value, (datetime, date)):
                result[column.name] = value.isoformat()
            elif isinstance(value, Decimal):
                result[column.name] = str(value)
            else:
                result[column.name] = value

        return result

    def from_dict(self, data):
        """Update model instance from dictionary."""
        for field, value in data.items():
            if hasattr(self, field) and field not in ['id', 'created_at', 'updated_at']:
                setattr(self, field, value)

    def __getitem__(self, key):
        """Enable dict-like access: model['field']"""
        return getattr(self, key)

    def __contains__(self, key):
        """Enable 'in' operator: 'field' in model"""
        return hasattr(self, key)
