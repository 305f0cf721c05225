# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/payroll_ops/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP (PowerShell: $env:FLASK_APP="payroll_ops:create_app").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Create tables (if missing) and seed the default uniform catalog.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Order inspection/repair:
# - python -m flask orders scan
#   Run the consistency scan (duplicates, zombies, overcharges, orphans).
# - python -m flask orders repair-deductions [--dry-run]
#   Recompute first deduction dates that disagree with order status.
# - python -m flask orders paydays --count 6 --history 2
#   Print paydays around today with the deduction total due on each.
#
# Undo ledger:
# - python -m flask undo purge
#   Delete undo entries past their window.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import catalog_service, conflict_service, deduction_service, maintenance_service


DEFAULT_CATALOG = [
    ("POLO-SS", "Polo Shirt", 2000),
    ("POLO-LS", "Long Sleeve Polo", 2400),
    ("PANTS", "Work Pants", 1500),
    ("JACKET", "Fleece Jacket", 4500),
    ("APRON", "Apron", 800),
    ("CAP", "Cap", 1200),
]


def _money(cents: int) -> str:
    return f"${cents / 100:,.2f}"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create tables and seed the uniform catalog.

    Idempotent: existing catalog items keep their current price.
    """
    click.echo("START Initializing uniform order system...")
    db.create_all()

    created = 0
    for item_id, item_name, price_cents in DEFAULT_CATALOG:
        if catalog_service.lookup_item(item_name) is not None:
            click.echo(f"WARN  Catalog item '{item_name}' already exists, skipping...")
            continue
        catalog_service.upsert_item(item_id=item_id, item_name=item_name, price_cents=price_cents)
        created += 1
        click.echo(f"PASS Created catalog item: {item_name} ({_money(price_cents)})")

    click.echo(f"DONE System initialized ({created} catalog items created).")


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


@click.group('orders')
def orders_group():
    """Order inspection and repair commands."""


@orders_group.command('scan')
@with_appcontext
def scan_orders():
    """Report inconsistent order state. Never modifies data."""
    report = conflict_service.scan()
    click.echo(f"Scanned {report['scanned_orders']} orders and {report['scanned_lines']} lines.")

    for key in ("duplicates", "zombies", "overcharges", "orphans"):
        findings = report[key]
        click.echo(f"\n{key.upper()} ({len(findings)})")
        for finding in findings:
            click.echo(f"  - {finding['description']}")

    if report["issue_count"]:
        click.echo(f"\nWARN {report['issue_count']} issue(s) need review.")
    else:
        click.echo("\nPASS No issues found.")


@orders_group.command('repair-deductions')
@click.option('--dry-run', is_flag=True, help='Show what would change without writing')
@with_appcontext
def repair_deductions(dry_run):
    """Recompute first deduction dates that disagree with order status."""
    repaired = maintenance_service.repair_deduction_dates(dry_run=dry_run)
    for row in repaired:
        click.echo(f"  {row['order_id']}: {row['old'] or '-'} -> {row['new'] or '-'}")
    verb = "Would repair" if dry_run else "Repaired"
    click.echo(f"{verb} {len(repaired)} order(s).")


@orders_group.command('paydays')
@click.option('--count', type=int, default=6, show_default=True, help='Paydays on or after today')
@click.option('--history', 'history_count', type=int, default=2, show_default=True, help='Paydays before today')
@with_appcontext
def list_paydays(count, history_count):
    """Print paydays with the deduction total due on each."""
    for row in deduction_service.deduction_calendar(count, history_count):
        click.echo(
            f"{row['payday']}  {_money(row['total_amount_cents']):>12}  "
            f"{row['employee_count']} employee(s), {row['order_count']} order(s)"
        )


@click.group('undo')
def undo_group():
    """Undo ledger maintenance."""


@undo_group.command('purge')
@with_appcontext
def purge_undo():
    """Delete undo entries whose window has passed."""
    deleted = maintenance_service.purge_expired_undo_actions()
    click.echo(f"Deleted {deleted} expired undo entries.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(orders_group)
    app.cli.add_command(undo_group)
