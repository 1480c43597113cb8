# Overview: Flask CLI command groups for bootstrap, admission and ledger repair.

# backend/unitledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Inventory bootstrap/inspection:
# - python -m flask inventory init-db
#   Create all tables (idempotent; use `flask db upgrade` for managed schemas).
# - python -m flask inventory seed-demo
#   Create a warehouse, one fully admitted demo batch and one pending defective item.
# - python -m flask inventory summary
#   Available/sold/total unit counts per product.
#
# Batch admission:
# - python -m flask batches progress 1
#   Admitted and remaining barcodes of batch 1.
# - python -m flask batches admit 1 SHOE-03
#   Admit one barcode against batch 1 (same checks as the scanner endpoint).
#
# Ledger repair:
# - python -m flask ledger reconcile
#   Re-derive every order/sale income entry and drop orphaned entries.

import click
from decimal import Decimal
from flask.cli import with_appcontext

from .errors import InventoryError
from .extensions import db
from .models import Batch, Store
from .models.inventory import STORE_TYPE_WAREHOUSE
from .services import admission_service, ledger_service, store_service
from .services.defect_service import register_defect
from .services.unit_store import UnitStore


@click.group('inventory')
def inventory_group():
    """Inventory bootstrap and inspection commands."""


@inventory_group.command('init-db')
@with_appcontext
def init_db():
    """Create every table that does not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created")


@inventory_group.command('seed-demo')
@click.option('--base-code', default='DEMO', help='Base code of the demo batch')
@click.option('--product-id', default='demo-product', help='Product id of the demo batch')
@click.option('--quantity', default=5, type=int, help='Units in the demo batch')
@with_appcontext
def seed_demo(base_code, product_id, quantity):
    """
    Seed a small, fully admitted data set.

    Creates (if missing):
    - Warehouse store "Main Warehouse"
    - Batch <base-code> with <quantity> units, every barcode admitted
    - One pending defective item for the same product
    """
    db.create_all()

    if not db.session.query(Store).filter_by(store_type=STORE_TYPE_WAREHOUSE).first():
        store = store_service.create_store("Main Warehouse", code="WH", store_type=STORE_TYPE_WAREHOUSE)
        click.echo(f"PASS Created warehouse: {store.name} (ID: {store.id})")

    batch = db.session.query(Batch).filter_by(base_code=base_code).first()
    if batch is None:
        batch = admission_service.create_batch(
            base_code=base_code,
            product_id=product_id,
            cost_price=Decimal("60.00"),
            selling_price=Decimal("100.00"),
            quantity=quantity,
        )
        click.echo(f"PASS Created batch {batch.base_code} (ID: {batch.id}, qty {batch.quantity})")
    else:
        click.echo(f"PASS Using existing batch {batch.base_code} (ID: {batch.id})")

    admitted = 0
    for code in admission_service.get_progress(batch.id)["remaining"]:
        admission_service.admit_one(batch.id, code)
        admitted += 1
    click.echo(f"PASS Admitted {admitted} unit(s)")

    defect = register_defect(product_id=batch.product_id, reason="Demo scratch")
    click.echo(f"PASS Registered defective item {defect.id}")


@inventory_group.command('summary')
@with_appcontext
def inventory_summary():
    """Per-product unit counts."""
    counts = UnitStore().status_counts()
    if not counts:
        click.echo("No inventory units")
        return

    click.echo(f"{'PRODUCT':<24} {'AVAILABLE':>9} {'SOLD':>6} {'TOTAL':>6}")
    for product_id, bucket in sorted(counts.items()):
        click.echo(f"{product_id:<24} {bucket['available']:>9} {bucket['sold']:>6} {bucket['total']:>6}")


@click.group('batches')
def batches_group():
    """Batch admission commands."""


@batches_group.command('progress')
@click.argument('batch_id', type=int)
@with_appcontext
def batch_progress(batch_id):
    """Show admitted and remaining barcodes of a batch."""
    try:
        progress = admission_service.get_progress(batch_id)
    except InventoryError as exc:
        raise click.ClickException(exc.message)

    state = "complete" if progress["complete"] else "in progress"
    click.echo(
        f"Batch {progress['base_code']} ({state}): "
        f"{progress['admitted_count']}/{progress['quantity']} admitted ({progress['percent']}%)"
    )
    if progress["remaining"]:
        click.echo("Remaining: " + ", ".join(progress["remaining"]))


@batches_group.command('admit')
@click.argument('batch_id', type=int)
@click.argument('code')
@with_appcontext
def batch_admit(batch_id, code):
    """Admit one barcode against a batch."""
    try:
        unit = admission_service.admit_one(batch_id, code)
    except InventoryError as exc:
        raise click.ClickException(f"{exc.kind}: {exc.message}")

    progress = admission_service.get_progress(batch_id)
    click.echo(f"PASS Admitted {unit.barcode} at {unit.location}")
    click.echo(f"     {progress['admitted_count']}/{progress['quantity']} admitted")
    if progress["complete"]:
        click.echo(f"PASS Batch {progress['base_code']} is complete")


@click.group('ledger')
def ledger_group():
    """Income ledger commands."""


@ledger_group.command('reconcile')
@with_appcontext
def ledger_reconcile():
    """Restore exactly one income entry per active order/sale."""
    try:
        report = ledger_service.reconcile()
    except InventoryError as exc:
        raise click.ClickException(exc.message)

    click.echo(
        f"PASS Reconciled {report['orders']} order(s): "
        f"{report['created']} created, {report['updated']} updated, {report['removed']} removed"
    )
    summary = ledger_service.summarize()
    click.echo(
        f"     Income {summary['total_income']}, expense {summary['total_expense']}, "
        f"net {summary['net_balance']}"
    )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(inventory_group)
    app.cli.add_command(batches_group)
    app.cli.add_command(ledger_group)
