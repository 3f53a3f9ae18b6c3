# services/settings_service.py
import logging

from flask import current_app

from studio_booking.models import ConfigCategory, SystemConfiguration
from studio_booking.repositories import Repositories

# key -> (category, data type, description, config attribute)
POLICY_SETTINGS = {
    'max_trials_per_person': (ConfigCategory.TRIALS, 'int',
                              'Completed trials allowed per person', 'MAX_TRIALS_PER_PERSON'),
    'attendance_backdate_days': (ConfigCategory.ATTENDANCE, 'int',
                                 'How many days back attendance may be marked', 'ATTENDANCE_BACKDATE_DAYS'),
    'invoice_prefix': (ConfigCategory.BILLING, 'string', 'Invoice number prefix', 'INVOICE_PREFIX'),
    'invoice_start_number': (ConfigCategory.BILLING, 'int',
                             'First invoice sequence number', 'INVOICE_START_NUMBER'),
    'site_name': (ConfigCategory.GENERAL, 'string', 'Studio name', 'SITE_NAME'),
}


class SettingsService:
    """
    Read-only access to studio policy knobs.

    A SystemConfiguration row wins; otherwise the value comes from the Flask config
    (or the ``defaults`` mapping given at construction).
    """

    def __init__(self, session, defaults=None, repositories=None):
        self.session = session
        self.repos = repositories or Repositories(session)
        self.defaults = defaults
        self.logger = logging.getLogger('settings_service')

    def _fallback(self, key, default):
        attribute = POLICY_SETTINGS[key][3] if key in POLICY_SETTINGS else key.upper()
        source = self.defaults if self.defaults is not None else current_app.config
        return source.get(attribute, default)

    def get(self, key, default=None):
        entry = self.repos.config.get_by_key(key)
        if entry is not None and entry.value is not None:
            value = entry.get_typed_value()
            if value is not None:
                return value
        return self._fallback(key, default)

    def get_int(self, key, default=0):
        value = self.get(key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            self.logger.warning(f"Setting {key}={value!r} is not an integer, using {default}")
            return default

    @property
    def max_trials_per_person(self):
        return self.get_int('max_trials_per_person', 1)

    @property
    def attendance_backdate_days(self):
        return self.get_int('attendance_backdate_days', 3)

    @property
    def invoice_prefix(self):
        return self.get('invoice_prefix', 'INV')

    @property
    def invoice_start_number(self):
        return self.get_int('invoice_start_number', 1)

    def set(self, key, value):
        """Create or update a policy row. Caller owns the transaction."""
        category, data_type, description, _ = POLICY_SETTINGS.get(
            key, (ConfigCategory.GENERAL, 'string', None, None)
        )
        entry = self.repos.config.get_entry(category, key)
        if entry is None:
            entry = SystemConfiguration(category=category, key=key, data_type=data_type,
                                        description=description)
            self.session.add(entry)
        entry.set_typed_value(value)
        self.session.flush()
        return entry

    def initialize_defaults(self):
        """Write a row for every policy setting that has none yet."""
        created = []
        for key, (category, data_type, description, attribute) in POLICY_SETTINGS.items():
            if self.repos.config.get_entry(category, key):
                continue
            default = self._fallback(key, None)
            entry = SystemConfiguration(
                category=category,
                key=key,
                data_type=data_type,
                description=description,
                default_value=None if default is None else str(default),
            )
            entry.set_typed_value(default)
            self.session.add(entry)
            created.append(entry)
        self.session.flush()
        return created
