# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/shopman/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: roles, permissions, role grants and shop settings.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with roles and active status.
# - python -m flask users create --email owner@shop.local --password "Password123!" --role admin
#   Create a user (first account becomes admin unless --role says otherwise).
# - python -m flask users set-role owner@shop.local user
#   Replace a user's role.
#
# Permission inspection/repair:
# - python -m flask perms list [--role admin]
#   List permissions, optionally only those granted to a role.
# - python -m flask perms check owner@shop.local MANAGE_PRODUCTS
#   Check whether a user has a permission.
# - python -m flask perms grant user VIEW_PRODUCTS
# - python -m flask perms revoke user VIEW_PRODUCTS
#
# Stock & credits:
# - python -m flask stock low
#   Variants at or below their reorder threshold.
# - python -m flask credits mark-overdue
#   Flag unpaid credits whose due date has passed.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions
#   Delete expired or revoked session tokens older than 30 days.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Permission, Role, RolePermission, User
from .services import auth_service, credit_service, inventory_service, permission_service, session_service, settings_service
from .services.auth_service import PasswordValidationError
from .validation import ConflictError, NotFoundError, ValidationError
from .permissions import validate_permission_code


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize ShopManager: roles, permissions, role grants and shop settings.

    No accounts are created; the first account registered becomes admin.
    """
    click.echo("START Initializing ShopManager...")

    created_roles = auth_service.create_default_roles()
    perm_count = permission_service.initialize_permissions()
    assignment_count = permission_service.assign_default_role_permissions()
    settings = settings_service.get_settings()

    click.echo(f"PASS Created {created_roles} roles, {perm_count} permissions, {assignment_count} role assignments")
    click.echo(f"PASS Shop settings: {settings.shop_name} (tax {settings.tax_rate_bps} bps)")
    click.echo("DONE Register the first account to become admin.")


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


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = auth_service.list_users()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Email':<35} {'Active':<8} {'Roles'}")
    click.echo("="*80)

    for user in users:
        role_names = permission_service.get_user_role_names(user.id)
        roles_str = ", ".join(role_names) if role_names else "none"
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.email:<35} {active_str:<8} {roles_str}")

    click.echo("="*80 + "\n")


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--full-name', default=None, help='Display name')
@click.option('--role', type=click.Choice(['admin', 'user']), default=None, help='Role (defaults to the bootstrap rule)')
@with_appcontext
def create_user_cli(email, password, full_name, role):
    """Create a user account."""
    try:
        user = auth_service.register_user(email, password, full_name)
        if role:
            auth_service.set_user_role(user.id, role)
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        return
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL {str(e)}")
        return

    roles = permission_service.get_user_role_names(user.id)
    click.echo(f"PASS Created user: {user.email} with role(s) {', '.join(roles)}")


@users_group.command('set-role')
@click.argument('email')
@click.argument('role_name', type=click.Choice(['admin', 'user']))
@with_appcontext
def set_role_cli(email, role_name):
    """Replace a user's role."""
    user = db.session.query(User).filter_by(email=email.strip().lower()).first()
    if not user:
        click.echo(f"FAIL User '{email}' not found")
        return

    try:
        auth_service.set_user_role(user.id, role_name)
    except (ValidationError, ConflictError, NotFoundError) as e:
        click.echo(f"FAIL {str(e)}")
        return

    session_service.revoke_all_user_sessions(user.id, reason=f"Role changed to {role_name}")
    click.echo(f"PASS {user.email} is now '{role_name}'")


@click.group('perms')
def perms_group():
    """Permission inspection and repair commands."""


@perms_group.command('list')
@click.option('--role', help='Filter by role name')
@with_appcontext
def list_permissions_cli(role):
    """List all permissions, optionally filtered by role."""
    query = db.session.query(Permission)
    title = "All Permissions"

    if role:
        role_obj = db.session.query(Role).filter_by(name=role).first()
        if not role_obj:
            click.echo(f"FAIL Role '{role}' not found")
            return
        query = query.join(RolePermission, RolePermission.permission_id == Permission.id).filter(
            RolePermission.role_id == role_obj.id
        )
        title = f"Permissions for role: {role.upper()}"

    perms = query.order_by(Permission.category, Permission.code).all()

    click.echo(f"\n{'='*80}")
    click.echo(title)
    click.echo(f"{'='*80}\n")

    current_category = None
    for perm in perms:
        if perm.category != current_category:
            if current_category:
                click.echo("")
            click.echo(f"CATEGORY {perm.category}")
            click.echo("-"*80)
            current_category = perm.category

        click.echo(f"  {perm.code:<28} {perm.name}")

    click.echo(f"\n Total: {len(perms)} permissions\n")


@perms_group.command('grant')
@click.argument('role_name')
@click.argument('permission_code')
@with_appcontext
def grant_permission_cli(role_name, permission_code):
    """Grant a permission to a role."""
    try:
        permission_service.grant_permission_to_role(role_name, permission_code)
        click.echo(f"PASS Granted '{permission_code}' to role '{role_name}'")
    except ValueError as e:
        click.echo(f"FAIL Error: {str(e)}")


@perms_group.command('revoke')
@click.argument('role_name')
@click.argument('permission_code')
@with_appcontext
def revoke_permission_cli(role_name, permission_code):
    """Revoke a permission from a role."""
    try:
        revoked = permission_service.revoke_permission_from_role(role_name, permission_code)
        if revoked:
            click.echo(f"PASS Revoked '{permission_code}' from role '{role_name}'")
        else:
            click.echo(f"WARN  Permission '{permission_code}' was not granted to '{role_name}'")
    except ValueError as e:
        click.echo(f"FAIL Error: {str(e)}")


@perms_group.command('check')
@click.argument('email')
@click.argument('permission_code')
@with_appcontext
def check_permission_cli(email, permission_code):
    """Check if a user has a specific permission."""
    if not validate_permission_code(permission_code):
        click.echo(f"FAIL Unknown permission code '{permission_code}'")
        return

    user = db.session.query(User).filter_by(email=email.strip().lower()).first()

    if not user:
        click.echo(f"FAIL User '{email}' not found")
        return

    if permission_service.user_has_permission(user.id, permission_code):
        click.echo(f"PASS User '{email}' HAS permission '{permission_code}'")
    else:
        click.echo(f"FAIL User '{email}' DOES NOT HAVE permission '{permission_code}'")

    roles = permission_service.get_user_role_names(user.id)
    click.echo(f"\nUser roles: {', '.join(roles) or 'none'}")


@click.group('stock')
def stock_group():
    """Stock inspection commands."""


@stock_group.command('low')
@with_appcontext
def low_stock_cli():
    """Variants at or below their reorder threshold."""
    rows = inventory_service.low_stock_variants()

    if not rows:
        click.echo("PASS No low-stock variants.")
        return

    click.echo(f"{'SKU':<20} {'Product':<30} {'Variant':<20} {'Qty':>5} {'Min':>5}  Status")
    click.echo("-"*95)
    for row in rows:
        click.echo(
            f"{row['sku']:<20} {row['product_name'][:30]:<30} {row['label'][:20]:<20} "
            f"{row['quantity']:>5} {row['min_quantity']:>5}  {row['status']}"
        )
    click.echo(f"\n Total: {len(rows)} variants\n")


@click.group('credits')
def credits_group():
    """Customer credit commands."""


@credits_group.command('mark-overdue')
@with_appcontext
def mark_overdue_cli():
    """Flag unpaid credits whose due date has passed."""
    updated = credit_service.mark_overdue()
    click.echo(f"PASS Marked {updated} credits overdue")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions_cli():
    """Delete expired or revoked session tokens older than 30 days."""
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"PASS Deleted {deleted} session tokens")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(stock_group)
    app.cli.add_command(credits_group)
    app.cli.add_command(maintenance_group)
