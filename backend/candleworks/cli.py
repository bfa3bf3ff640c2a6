# Overview: Flask CLI command groups for bootstrap, production planning and stock checks.

# backend/candleworks/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the settings row from config defaults.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Production:
# - python -m flask production plan [--auto-fill]
#   Print what to produce for open orders (and low stock with --auto-fill),
#   with the materials needed and any deficit.
#
# Stock:
# - python -m flask stock low
#   List products below the low-stock threshold and materials below their alert level.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import StoreSettings
from .routes.helpers import get_engine


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create tables and persist default settings (safe to re-run)."""
    db.create_all()
    click.echo("PASS Tables created")

    engine = get_engine()
    if StoreSettings.query.first() is None:
        settings = engine.save_settings(engine.get_settings())
        click.echo(
            f"PASS Settings saved: low stock < {settings.low_stock_threshold}, "
            f"birthday {settings.birthday_discount_percent}%, "
            f"jar credit {settings.jar_discount_per_unit} per unit"
        )
    else:
        click.echo("PASS Using existing settings")


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


@click.group('production')
def production_group():
    """Production planning commands."""


@production_group.command('plan')
@click.option('--auto-fill', is_flag=True, help='Top stocked products up to the low-stock threshold')
@with_appcontext
def production_plan(auto_fill):
    """Print the production plan for the current order backlog."""
    plan = get_engine().plan_production(auto_fill=auto_fill)

    needing = plan.products_needing_production
    if not needing:
        click.echo("PASS Nothing to produce")
        return

    click.echo(f"{'Product':<32} {'Orders':>7} {'Manual':>7} {'Total':>7}")
    for p in needing:
        marker = " WARN" if p.has_material_deficit else ""
        click.echo(f"{p.product_name:<32} {p.pending_orders:>7} {p.manual_quantity:>7} {p.total_to_produce:>7}{marker}")

    click.echo("")
    click.echo(f"{'Material':<32} {'Needed':>12} {'In stock':>12} {'Balance':>12}")
    for m in plan.materials:
        click.echo(
            f"{m.material_name:<32} {m.quantity_needed:>12} {m.current_stock:>12} {m.deficit:>12} {m.unit}"
        )

    click.echo("")
    click.echo(f"Units to produce: {plan.total_units}")
    click.echo(f"Material cost: {plan.total_cost}")
    if plan.deficits:
        click.echo(f"FAIL {len(plan.deficits)} material(s) short: {', '.join(m.material_name for m in plan.deficits)}")
    else:
        click.echo("PASS All materials in stock")


@click.group('stock')
def stock_group():
    """Stock inspection commands."""


@stock_group.command('low')
@with_appcontext
def stock_low():
    """List low-stock products and materials."""
    engine = get_engine()
    threshold = engine.get_settings().low_stock_threshold

    products = engine.low_stock_products()
    materials = engine.low_stock_materials()

    if not products and not materials:
        click.echo("PASS No low stock")
        return

    for p in products:
        click.echo(f"WARN Product {p.id} {p.name}: {p.quantity} on hand (threshold {threshold})")
    for m in materials:
        click.echo(f"WARN Material {m.id} {m.name}: {m.current_stock} {m.unit} (alert {m.low_stock_alert})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(production_group)
    app.cli.add_command(stock_group)
