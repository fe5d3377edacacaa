# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/bazaar/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent). Prefer `flask db upgrade` for real deployments.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Inventory inspection:
# - python -m flask inventory reconcile [--product-id 1] [--seller-id seller-42]
#   Replay ledgers and compare with live stock; exits 1 if any product disagrees.
# - python -m flask inventory alerts [--seller-id seller-42] [--all]
#   List unacknowledged (or all) low-stock alerts.
# - python -m flask inventory ledger --product-id 1 [--limit 20]
#   Print a product's ledger, newest first.
#
# QA inspection:
# - python -m flask qa list [--status PENDING_DIGITAL_REVIEW] [--seller-id seller-42]
#   List assessments in the admin queue.
#
# Seller tiers:
# - python -m flask sellers set-tier --seller-id seller-42 --tier trusted_brand
#   Grant (trusted_brand/premium_outlet) or revoke (standard) the QA bypass.
# - python -m flask sellers tiers [--trusted]
#   List sellers with an explicit tier.

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import DomainError
from .services import ledger_service, low_stock_service, qa_service, seller_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables without touching existing data."""
    from . import models  # noqa: F401

    db.create_all()
    click.echo("PASS Tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA, including the stock ledger!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('inventory')
def inventory_group():
    """Stock ledger inspection commands."""


@inventory_group.command('reconcile')
@click.option('--product-id', type=int, help='Reconcile a single product')
@click.option('--seller-id', help='Reconcile every product of one seller')
@with_appcontext
def reconcile(product_id, seller_id):
    """Replay ledgers in commit order and compare with live stock."""
    try:
        if product_id is not None:
            reports = [ledger_service.reconcile_stock(product_id)]
        else:
            reports = ledger_service.reconcile_all(seller_id=seller_id)
    except DomainError as e:
        raise click.ClickException(e.message)

    if not reports:
        click.echo("No products found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'PRODUCT':<10} {'LIVE':>8} {'LEDGER':>8} {'ENTRIES':>8}  STATUS")
    click.echo("=" * 80)

    mismatches = 0
    for report in reports:
        if report["consistent"]:
            status = "OK"
        else:
            mismatches += 1
            status = "MISMATCH"
            if report["broken_links"]:
                status += f" (broken chain at entries {report['broken_links']})"
        click.echo(
            f"{report['product_id']:<10} {report['live_stock']:>8} "
            f"{report['ledger_stock']:>8} {report['entry_count']:>8}  {status}"
        )

    click.echo("=" * 80 + "\n")
    if mismatches:
        click.echo(f"FAIL {mismatches} product(s) disagree with their ledger.")
        raise SystemExit(1)
    click.echo(f"PASS {len(reports)} product(s) reconciled.")


@inventory_group.command('alerts')
@click.option('--seller-id', help='Only alerts for this seller')
@click.option('--all', 'include_acknowledged', is_flag=True, help='Include acknowledged alerts')
@with_appcontext
def list_alerts(seller_id, include_acknowledged):
    """List low-stock alerts, newest first."""
    alerts = low_stock_service.list_alerts(
        seller_id=seller_id,
        include_acknowledged=include_acknowledged,
    )
    if not alerts:
        click.echo("No low-stock alerts.")
        return

    for alert in alerts:
        flag = "ACK " if alert.acknowledged else "OPEN"
        click.echo(
            f"[{flag}] #{alert.id} {alert.product_name} (product {alert.product_id}): "
            f"{alert.current_stock} left, threshold {alert.threshold}"
        )


@inventory_group.command('ledger')
@click.option('--product-id', type=int, required=True, help='Product ID')
@click.option('--limit', type=int, default=20, show_default=True, help='Entries to show')
@with_appcontext
def show_ledger(product_id, limit):
    """Print a product's ledger, newest first."""
    try:
        entries = ledger_service.get_ledger_by_product(product_id, limit=limit)
    except DomainError as e:
        raise click.ClickException(e.message)

    for entry in entries:
        click.echo(
            f"#{entry.id} {entry.occurred_at:%Y-%m-%d %H:%M:%S} {entry.change_type:<11} "
            f"{entry.quantity_before:>6} {entry.quantity_change:+6d} -> {entry.quantity_after:<6} "
            f"{entry.reason:<19} ref={entry.reference_id} by={entry.user_id}"
        )


@click.group('qa')
def qa_group():
    """QA pipeline inspection commands."""


@qa_group.command('list')
@click.option('--status', help='Filter by QA status (e.g. PENDING_DIGITAL_REVIEW)')
@click.option('--seller-id', help='Filter by seller')
@with_appcontext
def list_assessments(status, seller_id):
    """List QA assessments, most recently submitted first."""
    try:
        assessments = qa_service.list_assessments(status=status, seller_id=seller_id)
    except DomainError as e:
        raise click.ClickException(e.message)

    if not assessments:
        click.echo("No assessments found.")
        return

    for a in assessments:
        click.echo(
            f"#{a.id} product={a.product_id} seller={a.seller_id} vendor={a.vendor!r} "
            f"status={a.status}"
            + (f" reason={a.rejection_reason!r}" if a.rejection_reason else "")
        )


@click.group('sellers')
def sellers_group():
    """Seller tier administration."""


@sellers_group.command('set-tier')
@click.option('--seller-id', required=True, help='Seller ID')
@click.option('--tier', 'tier_level', required=True, help='standard, trusted_brand or premium_outlet')
@with_appcontext
def set_tier(seller_id, tier_level):
    """Grant or revoke a seller tier."""
    try:
        tier = seller_service.set_seller_tier(seller_id, tier_level, user_id="CLI")
    except DomainError as e:
        raise click.ClickException(e.message)

    bypass = "bypasses QA" if tier.bypasses_assessment else "goes through QA"
    click.echo(f"PASS Seller {tier.seller_id} is now {tier.tier_level} ({bypass}).")


@sellers_group.command('tiers')
@click.option('--trusted', 'trusted_only', is_flag=True, help='Only sellers that bypass QA')
@with_appcontext
def list_tiers(trusted_only):
    """List sellers with an explicit tier."""
    tiers = seller_service.list_seller_tiers(trusted_only=trusted_only)
    if not tiers:
        click.echo("No seller tiers set.")
        return

    for tier in tiers:
        click.echo(
            f"{tier.seller_id:<24} {tier.tier_level:<16} "
            f"bypass={'yes' if tier.is_trusted else 'no'} by={tier.updated_by}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(qa_group)
    app.cli.add_command(sellers_group)
