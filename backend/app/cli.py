# Overview: Flask CLI command groups for bootstrap, maintenance and alert scanning.

# backend/app/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the settings singleton.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Alerts:
# - python -m flask alerts scan
#   Print delayed shipments, stale orders and low-stock products once.
# - python -m flask alerts scan --watch
#   Re-scan every ALERT_SCAN_INTERVAL_SECONDS until interrupted.

import time

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .services import alert_service, settings_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the database: create missing tables and the settings row.

    Safe to run repeatedly.
    """
    click.echo("START Initializing database...")
    db.create_all()
    settings = settings_service.get_settings()
    click.echo(f"PASS Settings ready for store: {settings.store_name}")
    click.echo("PASS Initialization complete.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('alerts')
def alerts_group():
    """Alert scanning commands."""


def _print_alerts(alerts) -> None:
    if not alerts:
        click.echo("PASS No alerts.")
        return
    click.echo(f"WARN {len(alerts)} alert(s):")
    for alert in alerts:
        click.echo(f"  [{alert.kind}] {alert.message}")


@alerts_group.command('scan')
@click.option('--watch', is_flag=True, help='Keep scanning every ALERT_SCAN_INTERVAL_SECONDS')
@click.option('--interval', type=int, default=None, help='Override the scan interval (seconds)')
@with_appcontext
def scan_alerts_command(watch, interval):
    """Scan orders and products for alerts."""
    interval = interval or current_app.config["ALERT_SCAN_INTERVAL_SECONDS"]

    while True:
        _print_alerts(alert_service.get_alerts())
        # End the read transaction so the next scan sees fresh rows
        db.session.remove()
        if not watch:
            break
        time.sleep(interval)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(alerts_group)
