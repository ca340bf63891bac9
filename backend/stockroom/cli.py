# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/stockroom/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables (idempotent; use `flask db upgrade` for migrated deployments).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Tenant management:
# - python -m flask tenants list
# - python -m flask tenants create --name "Acme" --email ops@acme.test --plan Pro --currency EUR
#
# Users:
# - python -m flask users create --tenant-id 1 --name "Owner" --email owner@acme.test --password "Password123!" --role OWNER
#
# Inventory audit:
# - python -m flask inventory reconcile --tenant-id 1
#   Compare every variant's stock to its movement ledger (exit code 1 on mismatch).
# - python -m flask inventory low-stock --tenant-id 1

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services import alert_service, ledger_service, tenant_service
from .services.auth_service import create_user
from .validation import ConflictError, ValidationError
from .models.auth import USER_ROLES
from .models.tenancy import TENANT_CURRENCIES, TENANT_PLANS


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA, including the stock movement ledger!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask tenants create' to add a tenant.")


@click.group('tenants')
def tenants_group():
    """Tenant management commands."""


@tenants_group.command('list')
@with_appcontext
def list_tenants_cli():
    """List all tenants."""
    tenants = tenant_service.list_tenants()

    if not tenants:
        click.echo("No tenants found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Plan':<12} {'Currency':<10} {'Active':<8} {'Users'}")
    click.echo("="*80)

    for tenant in tenants:
        user_count = db.session.query(User).filter_by(tenant_id=tenant.id).count()
        active_str = "Yes" if tenant.is_active else "No"
        click.echo(
            f"{tenant.id:<5} {tenant.name:<30} {tenant.plan:<12} {tenant.currency:<10} {active_str:<8} {user_count}"
        )

    click.echo("="*80 + "\n")


@tenants_group.command('create')
@click.option('--name', required=True, help='Business name')
@click.option('--email', required=True, help='Contact email (globally unique)')
@click.option('--plan', type=click.Choice(TENANT_PLANS), default='Basic', show_default=True)
@click.option('--currency', type=click.Choice(TENANT_CURRENCIES), default='USD', show_default=True)
@with_appcontext
def create_tenant_cli(name, email, plan, currency):
    """Create a new tenant."""
    try:
        tenant = tenant_service.create_tenant(name=name, email=email, plan=plan, currency=currency)
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    click.echo(f"PASS Created tenant: {tenant.name} (ID: {tenant.id})")


@click.group('users')
def users_group():
    """User management commands."""


@users_group.command('create')
@click.option('--tenant-id', type=int, required=True, help='Tenant ID')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Login email (unique within tenant)')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', type=click.Choice(USER_ROLES), default='STAFF', show_default=True)
@with_appcontext
def create_user_cli(tenant_id, name, email, password, role):
    """Create a user in a tenant."""
    try:
        user = create_user(tenant_id=tenant_id, name=name, email=email, password=password, role=role)
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    click.echo(f"PASS Created user: {user.email} (ID: {user.id}, Role: {user.role}, Tenant: {user.tenant_id})")


@click.group('inventory')
def inventory_group():
    """Inventory audit commands."""


@inventory_group.command('reconcile')
@click.option('--tenant-id', type=int, required=True, help='Tenant ID')
@with_appcontext
def reconcile_cli(tenant_id):
    """Check that sum(IN) - sum(OUT) equals stock for every SKU."""
    mismatches = ledger_service.reconcile(tenant_id)
    if not mismatches:
        click.echo(f"PASS Ledger reconciles for tenant {tenant_id}.")
        return

    click.echo(f"FAIL {len(mismatches)} SKU(s) out of balance:")
    click.echo(f"{'SKU':<20} {'Stock':>8} {'Ledger':>8} {'Diff':>8}")
    for row in mismatches:
        click.echo(f"{row['sku']:<20} {row['stock']:>8} {row['net_movement']:>8} {row['difference']:>8}")
    raise SystemExit(1)


@inventory_group.command('low-stock')
@click.option('--tenant-id', type=int, required=True, help='Tenant ID')
@with_appcontext
def low_stock_cli(tenant_id):
    """List variants at or below reorder level after inbound purchase orders."""
    alerts = alert_service.get_low_stock_alerts(tenant_id)
    if not alerts:
        click.echo("No low-stock alerts.")
        return

    click.echo(f"{'SKU':<20} {'Product':<30} {'Stock':>6} {'Pending':>8} {'Reorder':>8}")
    for a in alerts:
        click.echo(
            f"{a['sku']:<20} {a['product_name'][:30]:<30} {a['current_stock']:>6} "
            f"{a['pending_stock']:>8} {a['reorder_level']:>8}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(tenants_group)
    app.cli.add_command(users_group)
    app.cli.add_command(inventory_group)
