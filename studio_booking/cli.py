# cli.py
"""
Flask CLI commands for the studio booking engine.

    flask init-db
    flask init-settings
    flask expire-subscriptions --date 2025-02-01
    flask slot-availability --date 2025-02-03
"""

from datetime import date, datetime

import click
from flask.cli import with_appcontext

from studio_booking.extensions import db


def _parse_date_option(value):
    if not value:
        return date.today()
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        raise click.BadParameter('Date must be in YYYY-MM-DD format')


@click.command("init-db")
@with_appcontext
def init_database():
    """Create all database tables."""
    db.create_all()
    click.echo("Database tables created.")


@click.command("init-settings")
@with_appcontext
def init_settings():
    """Write default policy settings that are not stored yet."""
    from studio_booking.services import InvoiceService, SettingsService, transaction

    with transaction(db.session):
        created = SettingsService(db.session).initialize_defaults()
        sequence = InvoiceService(db.session).ensure_sequence()

    if created:
        for entry in created:
            click.echo(f"Created {entry.category}.{entry.key} = {entry.value}")
    else:
        click.echo("All settings already present.")
    click.echo(f"Invoice sequence at {sequence.value}")


@click.command("expire-subscriptions")
@click.option("--date", "on_date", default=None, help="Reference date (YYYY-MM-DD), defaults to today")
@with_appcontext
def expire_subscriptions(on_date):
    """Mark subscriptions that ended before the reference date as expired."""
    from studio_booking.services import SubscriptionService

    today = _parse_date_option(on_date)
    result = SubscriptionService(db.session).expire_lapsed(today=today)

    click.echo(f"Expired {result['expired_subscriptions']} subscriptions as of {today.isoformat()}.")
    if result['expired_members']:
        click.echo(f"Members now expired: {len(result['expired_members'])}")


@click.command("slot-availability")
@click.option("--date", "on_date", default=None, help="Date to report (YYYY-MM-DD), defaults to today")
@with_appcontext
def slot_availability(on_date):
    """Print seat usage of every active slot on a date."""
    from studio_booking.services import SlotCapacityModel

    day = _parse_date_option(on_date)
    rows = SlotCapacityModel(db.session).get_all_slots_availability(day)

    if not rows:
        click.echo("No active slots.")
        return

    click.echo(f"Slot availability for {day.isoformat()}:")
    for row in rows:
        status = "FULL" if row['is_full'] else "open"
        click.echo(
            f"  {row['display_name']}: regular {row['regular_bookings']} + trials {row['trial_bookings']}, "
            f"exception {row['exception_bookings']} | free regular {row['available_regular']}, "
            f"free exception {row['available_exception']} [{status}]"
        )


def register_cli_commands(app):
    """
    Register all CLI commands with the Flask application.

    Args:
        app: Flask application instance
    """
    app.cli.add_command(init_database)
    app.cli.add_command(init_settings)
    app.cli.add_command(expire_subscriptions)
    app.cli.add_command(slot_availability)
