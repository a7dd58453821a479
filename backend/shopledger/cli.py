# Overview: Flask CLI command groups for inspection and maintenance.

# backend/shopledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to shopledger (PowerShell: $env:FLASK_APP="shopledger").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Store inspection:
# - python -m flask store keys --owner shop-1
#   List the keys saved for a shop.
# - python -m flask store dump --owner shop-1 --key products
#   Print one saved value as JSON.
# - python -m flask store pull --owner shop-1 --url http://localhost:5000
#   Load a shop through the sync client and print collection sizes.
#
# Ledger figures:
# - python -m flask ledger balance --owner shop-1
#   Cash balance, receivables and payables.
# - python -m flask ledger low-stock --owner shop-1 [--threshold 5]
#   Products at or below their reorder point.

import json
from decimal import Decimal, InvalidOperation

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .services import store_service, reporting_service
from .services.ledger_service import LEDGER_KEYS
from .services.sync_service import SyncSession
from .validation import to_number


@click.group('system')
def system_group():
    """System repair commands."""


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
    click.echo("BUILD Creating all tables...")
    db.create_all()
    click.echo("PASS Database reset complete")


@click.group('store')
def store_group():
    """Inspect the per-shop key/value store."""


@store_group.command('keys')
@click.option('--owner', 'owner_id', required=True, help='Shop owner id')
@with_appcontext
def list_store_keys(owner_id):
    """List keys saved for a shop."""
    keys = store_service.list_keys(owner_id)
    if not keys:
        click.echo(f"No data saved for {owner_id}")
        return
    for key in keys:
        click.echo(key)


@store_group.command('dump')
@click.option('--owner', 'owner_id', required=True, help='Shop owner id')
@click.option('--key', required=True, help='Collection key, e.g. products')
@with_appcontext
def dump_store_key(owner_id, key):
    """Print one saved value as JSON."""
    data = store_service.get_data(owner_id, key)
    click.echo(json.dumps(data, ensure_ascii=False, indent=2))


@store_group.command('pull')
@click.option('--owner', 'owner_id', required=True, help='Shop owner id')
@click.option('--url', 'base_url', required=True, help='Store server, e.g. http://localhost:5000')
@with_appcontext
def pull_store(owner_id, base_url):
    """Load a shop from a running store server and print collection sizes."""
    session = SyncSession.from_config(base_url, owner_id, current_app.config)
    try:
        if not session.load():
            raise click.ClickException(f"Load failed: {session.last_error}")
        for key in LEDGER_KEYS:
            click.echo(f"{key:<16} {len(session.ledger.payload(key))}")
    finally:
        session.transport.close()


@click.group('ledger')
def ledger_group():
    """Ledger figures for a shop."""


@ledger_group.command('balance')
@click.option('--owner', 'owner_id', required=True, help='Shop owner id')
@with_appcontext
def ledger_balance(owner_id):
    """Cash balance, receivables and payables."""
    ledger = store_service.load_ledger(owner_id)
    report = reporting_service.balance_report(ledger)
    click.echo(f"Income:      {report['income']}")
    click.echo(f"Expense:     {report['expense']}")
    click.echo(f"Balance:     {report['balance']}")
    click.echo(f"Receivables: {report['receivables']}")
    click.echo(f"Payables:    {report['payables']}")


@ledger_group.command('low-stock')
@click.option('--owner', 'owner_id', required=True, help='Shop owner id')
@click.option('--threshold', default=None, help='Reorder point for products without minStock')
@with_appcontext
def ledger_low_stock(owner_id, threshold):
    """Products at or below their reorder point."""
    raw = threshold if threshold is not None else current_app.config["LOW_STOCK_THRESHOLD"]
    try:
        limit = Decimal(str(raw))
    except InvalidOperation:
        raise click.BadParameter("threshold must be a number", param_hint="--threshold")

    ledger = store_service.load_ledger(owner_id)
    items = reporting_service.low_stock(ledger, limit)
    if not items:
        click.echo("PASS Nothing below the reorder point")
        return
    for product in items:
        click.echo(f"{product.id:<14} {product.name:<30} {to_number(product.quantity)} {product.unit}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(store_group)
    app.cli.add_command(ledger_group)
