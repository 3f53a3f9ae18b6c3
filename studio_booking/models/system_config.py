# models/system_config.py
import json

from sqlalchemy import Index

from studio_booking.extensions import db
from .base import BaseModel


class ConfigCategory:
    """Configuration categories."""
    GENERAL = 'general'
    TRIALS = 'trials'
    ATTENDANCE = 'attendance'
    BILLING = 'billing'


class SystemConfiguration(BaseModel):
    """Model for storing studio-wide policy settings."""

    __tablename__ = 'system_configuration'

    category = db.Column(db.String(50), nullable=False)
    key = db.Column(db.String(100), nullable=False)
    value = db.Column(db.Text, nullable=True)
    data_type = db.Column(db.String(20), default='string', nullable=False)  # string, int, float, bool, json
    description = db.Column(db.Text, nullable=True)
    default_value = db.Column(db.Text, nullable=True)

    __table_args__ = (
        Index('uq_config_category_key', 'category', 'key', unique=True),
        Index('idx_config_category', 'category'),
    )

    def get_typed_value(self):
        """Get value converted to appropriate Python type."""
        if self.value is None:
            return None

        try:
            if self.data_type == 'int':
                return int(self.value)
            elif self.data_type == 'float':
                return float(self.value)
            elif self.data_type == 'bool':
                return self.value.lower() in ('true', '1', 'yes', 'on')
            elif self.data_type == 'json':
                return json.loads(self.value)
            else:  # string
                return self.value
        except (ValueError, json.JSONDecodeError):
            return self.default_value

    def set_typed_value(self, value):
        """Set value with automatic type conversion."""
        if self.data_type == 'json':
            self.value = json.dumps(value)
        else:
            self.value = str(value)

    def __repr__(self):
        return f'<SystemConfiguration {self.category}.{self.key}>'
