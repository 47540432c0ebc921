# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--admin-email owner@agency.local --admin-password secret1]
#   Idempotent bootstrap: seeds the Manager and Staff role definitions and
#   optionally an account owner.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system cleanup-sessions
#   Delete revoked/expired sessions older than 30 days.
#
# Users:
# - python -m flask users list
#   List identities with role, account and active status.
# - python -m flask users create-admin --email owner@agency.local --password secret1 --name "Owner"
#   Create a self-owned account (Admin).
#
# Roles:
# - python -m flask roles list
#   List role definitions and their granted actions.

import click
from flask.cli import with_appcontext

from .errors import ConsoleError
from .extensions import db
from .models import AuthUser, RoleDefinition, UserRole
from .permissions import ADMIN_ROLE, DEFAULT_ROLE_PERMISSIONS
from .services import auth_service, backend, session_service


def seed_default_roles() -> list[str]:
    """Create missing default role definitions; returns the names created."""
    created = []
    for role, permissions in DEFAULT_ROLE_PERMISSIONS.items():
        if backend.select_one("role_permissions", role=role) is None:
            backend.insert("role_permissions", {"role": role, "permissions": permissions})
            created.append(role)
    return created


def create_account_owner(email: str, password: str, name: str | None = None) -> AuthUser:
    """Identity plus an Admin role row owning itself."""
    user = auth_service.create_identity(email, password, display_name=name)
    backend.insert("user_roles", {
        "user_id": user.id,
        "email": user.email,
        "name": name,
        "role": ADMIN_ROLE,
        "active": True,
        "created_by": user.id,
    })
    return user


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-email', default=None, help='Create an account owner with this email')
@click.option('--admin-password', default=None, help='Password for the account owner')
@click.option('--admin-name', default=None, help='Display name for the account owner')
@with_appcontext
def init_system(admin_email, admin_password, admin_name):
    """
    Initialize the console: default roles and (optionally) an account owner.

    Creates:
    - Role definitions: Manager, Staff (existing ones are left untouched)
    - An Admin account owner when --admin-email is given
    """
    click.echo("START Initializing ticketing console...")

    db.create_all()

    created = seed_default_roles()
    if created:
        click.echo(f"PASS Roles created: {', '.join(created)}")
    else:
        click.echo("PASS Default roles already present")

    if admin_email:
        if not admin_password:
            admin_password = click.prompt("Admin password", hide_input=True, confirmation_prompt=True)
        try:
            user = create_account_owner(admin_email, admin_password, admin_name)
            click.echo(f"PASS Created account owner: {user.email} (ID: {user.id})")
        except ConsoleError as e:
            click.echo(f"FAIL Failed to create account owner: {e.message}")

    click.echo("DONE Ticketing console initialized")


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


@system_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions():
    """Delete revoked or expired sessions older than 30 days."""
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"PASS Deleted {deleted} session(s)")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create-admin')
@click.option('--email', prompt=True, help='Email')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--name', default=None, help='Display name')
@with_appcontext
def create_admin(email, password, name):
    """Create a self-owned account (role Admin)."""
    try:
        user = create_account_owner(email, password, name)
    except ConsoleError as e:
        click.echo(f"FAIL Failed to create account owner: {e.message}")
        raise SystemExit(1)
    click.echo(f"PASS Created account owner: {user.email} (ID: {user.id})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all identities with their role and account."""
    users = db.session.query(AuthUser).order_by(AuthUser.email).all()

    if not users:
        click.echo("No users found.")
        return

    roles = {row.user_id: row for row in db.session.query(UserRole).all()}

    click.echo("\n" + "="*110)
    click.echo(f"{'Email':<35} {'Role':<12} {'Active':<8} {'Account':<38} {'ID'}")
    click.echo("="*110)

    for user in users:
        role_row = roles.get(user.id)
        role = role_row.role if role_row else "none"
        active_str = "Yes" if role_row is None or role_row.active else "No"
        account = (role_row.created_by if role_row else None) or user.id
        click.echo(f"{user.email:<35} {role:<12} {active_str:<8} {account:<38} {user.id}")

    click.echo("="*110 + "\n")


@click.group('roles')
def roles_group():
    """Role definition inspection."""


@roles_group.command('list')
@with_appcontext
def list_roles():
    """List role definitions with their granted actions."""
    definitions = db.session.query(RoleDefinition).order_by(RoleDefinition.role).all()
    if not definitions:
        click.echo("No roles defined. Run: python -m flask system init")
        return

    for definition in definitions:
        click.echo(f"\n{definition.role} (ID: {definition.id})")
        for category, actions in (definition.permissions or {}).items():
            granted = [action for action, allowed in actions.items() if allowed is True]
            click.echo(f"  {category:<12} {', '.join(granted) if granted else '-'}")
    click.echo("")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(roles_group)
