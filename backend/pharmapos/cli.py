# Overview: Flask CLI command groups for bootstrap, catalog import and stock alerts.

# backend/pharmapos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to pharmapos (PowerShell: $env:FLASK_APP="pharmapos").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Idempotent: creates tables, the default admin/cashier users and sample categories.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog:
# - python -m flask catalog import products.xlsx
#   Bulk-import a CSV / JSON / XLSX file; prints created and failed rows.
# - python -m flask catalog low-stock --threshold 10
# - python -m flask catalog expiring --months 3

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Category, User
from .services import reporting_service
from .services.import_files import read_rows, UnsupportedFileError
from .services.import_service import bulk_import

DEFAULT_USERS = [
    ("Administrator", "admin@apotek.local", "ADMIN"),
    ("Cashier", "cashier@apotek.local", "CASHIER"),
]

DEFAULT_CATEGORIES = [
    ("Obat Bebas", "Obat yang dapat dibeli tanpa resep dokter"),
    ("Obat Keras", "Obat yang memerlukan resep dokter"),
    ("Suplemen", "Suplemen dan vitamin"),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create tables and seed default users and categories (safe to re-run)."""
    click.echo("START Initializing PharmaPOS...")
    db.create_all()

    for name, email, role in DEFAULT_USERS:
        if db.session.query(User).filter_by(email=email).first():
            click.echo(f"WARN  User '{email}' already exists, skipping...")
            continue
        db.session.add(User(name=name, email=email, role=role, is_active=True))
        click.echo(f"PASS Created user: {email} ({role})")

    for name, description in DEFAULT_CATEGORIES:
        if db.session.query(Category).filter(db.func.lower(Category.name) == name.lower()).first():
            continue
        db.session.add(Category(name=name, description=description))
        click.echo(f"PASS Created category: {name}")

    db.session.commit()
    click.echo("DONE PharmaPOS initialized.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.confirm("This deletes ALL data. Continue?", abort=True)
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset.")


@click.group('catalog')
def catalog_group():
    """Catalog import and stock alert commands."""


@catalog_group.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def import_catalog(path):
    """Bulk-import products from PATH (.csv, .json, .xlsx)."""
    try:
        with open(path, "rb") as fh:
            rows = read_rows(path, fh)
    except UnsupportedFileError as e:
        raise click.ClickException(str(e))

    result = bulk_import(rows)
    click.echo(f"Rows: {len(rows)}  created: {len(result['success'])}  failed: {len(result['failed'])}")
    for failure in result["failed"]:
        click.echo(f"FAIL row {failure['index'] + 1}: {failure['error']}")


@catalog_group.command('low-stock')
@click.option('--threshold', type=click.IntRange(min=0), default=None, help='Defaults to LOW_STOCK_THRESHOLD')
@with_appcontext
def low_stock_cli(threshold):
    """List active products at or below the stock threshold."""
    products = reporting_service.low_stock(threshold)
    if not products:
        click.echo("No low-stock products.")
        return
    for p in products:
        click.echo(f"{p.id:>6}  {p.stock:>6}  {p.unit:<6}  {p.name}")


@catalog_group.command('expiring')
@click.option('--months', type=click.IntRange(min=0), default=None, help='Defaults to EXPIRY_MONTHS_AHEAD')
@with_appcontext
def expiring_cli(months):
    """List active products expiring within the window."""
    products = reporting_service.expiring(months)
    if not products:
        click.echo("No products expiring in the window.")
        return
    for p in products:
        click.echo(f"{p.id:>6}  {p.expiration_date:%Y-%m-%d}  {p.batch_number or '-':<12}  {p.name}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
