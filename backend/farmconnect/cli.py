# Overview: Operator commands (flask system|users|maintenance) for FarmConnect.

# backend/farmconnect/cli.py
# Usage, from backend/ with FLASK_APP=wsgi.py:
#
#   flask system init                 tables + default product categories (safe to repeat)
#   flask system reset-db --yes       wipe and recreate every table (local databases only)
#   flask users list [--user-type T]  users with role, verification and lock state
#   flask users create-admin --email E --password P [--first-name F --last-name L]
#                                     admins cannot self-register through the API
#   flask maintenance cleanup-otps [--older-than-hours 24]
#                                     purge consumed or expired OTP codes

import click
from flask.cli import with_appcontext

from .errors import ServiceError
from .extensions import db
from .models import User
from .models.users import USER_TYPES
from .services.auth_service import create_user
from .services.product_service import ensure_default_categories
from .services.verification_service import cleanup_otps


@click.group('system')
def system_group():
    """Database bootstrap and reset."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the FarmConnect database.

    Safe to run repeatedly: create_all() only creates missing tables and
    categories are inserted only when their slug is absent.
    """
    click.echo("START Initializing FarmConnect...")
    db.create_all()
    click.echo("PASS Tables ensured")

    created = ensure_default_categories()
    click.echo(f"PASS Product categories created: {created}")
    click.echo("DONE FarmConnect initialized. Create an admin with: flask users create-admin")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """Drop and recreate every FarmConnect table. All users, orders and stock are lost."""
    if not yes:
        click.confirm("WARN Every user, order and stock movement will be deleted. Continue?", abort=True)

    db.drop_all()
    click.echo("DELETE Tables dropped")
    db.create_all()
    click.echo("BUILD Tables recreated")

    click.echo("PASS Database reset complete. Run 'flask system init' to seed categories.")


# =============================================================================
# USER COMMANDS
# =============================================================================

@click.group('users')
def users_group():
    """Account inspection and admin bootstrap."""


@users_group.command('list')
@click.option('--user-type', type=click.Choice(USER_TYPES), default=None, help='Filter by user type')
@with_appcontext
def list_users(user_type):
    """List users."""
    query = db.session.query(User).filter(User.deleted_at.is_(None))
    if user_type:
        query = query.filter(User.user_type == user_type)
    users = query.order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 90)
    click.echo(f"{'ID':<5} {'Email':<35} {'Type':<10} {'Verification':<14} {'Active':<7} {'Locked'}")
    click.echo("=" * 90)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        locked_str = "Yes" if user.locked_until is not None else "No"
        click.echo(
            f"{user.id:<5} {user.email:<35} {user.user_type:<10} {user.verification_status:<14} "
            f"{active_str:<7} {locked_str}"
        )
    click.echo("=" * 90 + "\n")


@users_group.command('create-admin')
@click.option('--email', prompt=True, help='Admin email')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Admin password')
@click.option('--first-name', default='Admin', show_default=True)
@click.option('--last-name', default='User', show_default=True)
@with_appcontext
def create_admin(email, password, first_name, last_name):
    """Create an admin account."""
    try:
        user = create_user(
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            user_type="admin",
        )
        db.session.commit()
    except ServiceError as e:
        db.session.rollback()
        click.echo(f"FAIL {e.code}: {e.message}")
        raise SystemExit(1)

    click.echo(f"PASS Created admin: {user.email} (ID: {user.id})")


# =============================================================================
# MAINTENANCE COMMANDS
# =============================================================================

@click.group('maintenance')
def maintenance_group():
    """Data retention and cleanup commands."""


@maintenance_group.command('cleanup-otps')
@click.option('--older-than-hours', default=24, show_default=True, type=int)
@with_appcontext
def cleanup_otps_cli(older_than_hours):
    """Delete consumed or expired OTP codes."""
    deleted = cleanup_otps(older_than_hours)
    click.echo(f"PASS Deleted {deleted} OTP record(s) older than {older_than_hours}h")


def register_commands(app):
    """Attach the command groups to app.cli."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
