# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/gebeyanet/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates missing tables and seeds default categories.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --username shop --email shop@example.com --password "Password123!"
#   Create a shop owner account (prompts if options are omitted).
#
# Categories:
# - python -m flask categories seed
# - python -m flask categories list
#
# Inventory:
# - python -m flask inventory alerts --username shop [--as-of 2026-03-01T00:00:00Z]
#   Print expiry alerts for one owner, most urgent first.
# - python -m flask inventory purge-expired --username shop --yes
#   Write off and deactivate every expired item for one owner.

import click
from flask.cli import with_appcontext

from .errors import GebeyaError
from .extensions import db
from .models import Category, User
from .services import auth_service, inventory_service, waste_service
from .services.alert_service import generate_alerts, summarize_alerts
from .time_utils import resolve_as_of, to_utc_z


DEFAULT_CATEGORIES = (
    ("Food & Beverages", "Packaged food, drinks and snacks"),
    ("Dairy", "Milk, butter, cheese and yogurt"),
    ("Bakery", "Bread and baked goods"),
    ("Fresh Produce", "Fruit and vegetables"),
    ("Household", "Cleaning and household supplies"),
    ("Personal Care", "Toiletries and hygiene products"),
    ("Other", "Everything else"),
)


def seed_categories() -> int:
    """Insert any missing default categories. Returns how many were created."""
    existing = {name.lower() for (name,) in db.session.query(Category.name).all()}
    created = 0
    for name, description in DEFAULT_CATEGORIES:
        if name.lower() in existing:
            continue
        db.session.add(Category(name=name, description=description, is_active=True))
        created += 1
    db.session.commit()
    return created


def _owner_or_abort(username: str) -> User:
    user = auth_service.get_user_by_username(username)
    if user is None:
        raise click.ClickException(f"User '{username}' not found")
    return user


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the database: create missing tables and default categories.

    Safe to run repeatedly.
    """
    click.echo("START Initializing gebeyanet...")
    db.create_all()
    click.echo("PASS Tables ready")

    created = seed_categories()
    click.echo(f"PASS Categories seeded ({created} new)")

    click.echo("DONE Create an owner with 'python -m flask users create'.")


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


@click.group('users')
def users_group():
    """Shop owner accounts."""


@users_group.command('list')
@with_appcontext
def list_users():
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found.")
        return
    for user in users:
        status = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:>4}  {user.username:<20} {user.email:<30} {status}")


@users_group.command('create')
@click.option('--username', prompt=True)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--business-name', default=None, help='Business display name')
@with_appcontext
def create_user_command(username, email, password, business_name):
    try:
        auth_service.validate_password_strength(password)
        user = auth_service.create_user(username, email, password, business_name)
    except GebeyaError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created user: {user.username} ({user.email}) id={user.id}")


@click.group('categories')
def categories_group():
    """Product categories."""


@categories_group.command('seed')
@with_appcontext
def seed_categories_command():
    created = seed_categories()
    click.echo(f"PASS Categories seeded ({created} new)")


@categories_group.command('list')
@with_appcontext
def list_categories_command():
    for category in inventory_service.list_categories():
        click.echo(f"{category.id:>4}  {category.name}")


@click.group('inventory')
def inventory_group():
    """Per-owner inventory inspection and maintenance."""


@inventory_group.command('alerts')
@click.option('--username', required=True)
@click.option('--as-of', 'as_of', default=None, help='ISO-8601 reference instant (default: now)')
@click.option('--limit', default=None, type=int)
@with_appcontext
def inventory_alerts(username, as_of, limit):
    """Print expiry alerts for one owner, most urgent first."""
    user = _owner_or_abort(username)
    try:
        now = resolve_as_of(as_of)
    except ValueError:
        raise click.BadParameter("must be an ISO-8601 datetime", param_hint="--as-of")

    alerts = generate_alerts(inventory_service.active_items(user.id), now, limit=limit)
    if not alerts:
        click.echo(f"No expiry alerts as of {to_utc_z(now)}.")
        return

    for alert in alerts:
        click.echo(
            f"{alert.alert_type:<20} {alert.item_name:<30} "
            f"qty={alert.quantity:<6} days={alert.days_until_expiry:<4} expires={alert.expiry_date.isoformat()}"
        )
    summary = summarize_alerts(alerts)
    click.echo(
        f"\nTotal: {summary['total']} "
        f"(expired {summary['expired']}, soon {summary['expiring_soon']}, this week {summary['expiring_this_week']})"
    )


@inventory_group.command('purge-expired')
@click.option('--username', required=True)
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def purge_expired(username, yes):
    """Write off remaining stock of every expired item and deactivate it."""
    user = _owner_or_abort(username)
    now = resolve_as_of(None)

    candidates = waste_service.expired_candidates(user.id, now)
    if not candidates:
        click.echo("No expired items.")
        return

    if not yes:
        click.confirm(f"WARN Remove {len(candidates)} expired items for '{username}'?", abort=True)

    try:
        removed = waste_service.remove_all_expired(user.id, now)
    except GebeyaError as e:
        raise click.ClickException(e.message)
    for item in removed:
        click.echo(f"DELETE  {item.name} (id={item.id})")
    click.echo(f"PASS Removed {len(removed)} expired items")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(categories_group)
    app.cli.add_command(inventory_group)
