# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/salesdesk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--admin-email admin@example.com --admin-password "..."]
#   Idempotent bootstrap: creates tables, seeds default settings, creates the first admin if no users exist.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --email jane@example.com --first-name Jane --last-name Doe --role journalist
#   Create a user (prompts if options are omitted).
#
# Settings:
# - python -m flask settings reset
#   Restore company name/address, default commission rate and invoice prefix.

import click
from flask.cli import with_appcontext

from .errors import AppError
from .extensions import db
from .models import User
from .roles import Role
from .services import auth_service, settings_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-email', help='Email for the first admin (created only when no users exist)')
@click.option('--admin-password', help='Password for the first admin (8+ characters)')
@click.option('--admin-first-name', default='System', show_default=True)
@click.option('--admin-last-name', default='Admin', show_default=True)
@with_appcontext
def init_system(admin_email, admin_password, admin_first_name, admin_last_name):
    """
    Initialize the salesdesk database.

    Creates:
    - All tables (no-op for existing ones)
    - Default settings (company details, commission rate 10.00, invoice prefix INV)
    - The first admin, when --admin-email/--admin-password are given and no user exists yet
    """
    click.echo("START Initializing salesdesk...")

    db.create_all()
    click.echo("PASS Tables ready")

    added = settings_service.seed_defaults()
    db.session.commit()
    click.echo(f"PASS Default settings seeded ({added} added)")

    if db.session.query(User.id).first() is not None:
        click.echo("WARN  Users already exist, skipping admin creation")
        return

    if not (admin_email and admin_password):
        click.echo("WARN  No users yet. Re-run with --admin-email and --admin-password, "
                   "or call POST /api/auth/bootstrap")
        return

    try:
        user = auth_service.bootstrap_admin({
            "first_name": admin_first_name,
            "last_name": admin_last_name,
            "email": admin_email,
            "password": admin_password,
        })
    except AppError as e:
        db.session.rollback()
        raise click.ClickException(e.message)

    click.echo(f"PASS Created admin: {user.email} (ID: {user.id})")
    click.echo("DONE salesdesk initialized")


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
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--first-name', prompt=True, help='First name')
@click.option('--last-name', prompt=True, help='Last name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(Role.values()), prompt=True, help='Role')
@click.option('--phone', 'phone_number', default=None, help='Phone number')
@with_appcontext
def create_user_cli(email, first_name, last_name, password, role, phone_number):
    """Create a new user. Password must be at least 8 characters."""
    try:
        user = auth_service.register_user(
            {
                "email": email,
                "first_name": first_name,
                "last_name": last_name,
                "password": password,
                "phone_number": phone_number,
            },
            Role.parse(role),
        )
        db.session.commit()
    except AppError as e:
        db.session.rollback()
        raise click.ClickException(e.message)

    click.echo(f"PASS Created user: {user.email} with role '{user.role.value}' (ID: {user.id})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 90)
    click.echo(f"{'ID':<5} {'Name':<25} {'Email':<35} {'Role':<12} {'Active'}")
    click.echo("=" * 90)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.full_name:<25} {user.email:<35} {user.role.value:<12} {active_str}")

    click.echo("=" * 90 + "\n")


@click.group('settings')
def settings_group():
    """Organization settings commands."""


@settings_group.command('reset')
@with_appcontext
def reset_settings():
    """Restore the default settings values."""
    changed = settings_service.seed_defaults(overwrite=True)
    db.session.commit()
    click.echo(f"PASS Settings restored to defaults ({changed} changed)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(settings_group)
