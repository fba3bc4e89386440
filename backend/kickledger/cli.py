# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/kickledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py.
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--org "Org Name"]
#   Idempotent bootstrap: default org, admin user and Main avatar.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Organization management:
# - python -m flask orgs list
# - python -m flask orgs create --name "Sole Swap" --code "SOLE"
#
# Users:
# - python -m flask users create --org-id 1 --username admin --email admin@kickledger.local --password "Password123"
#
# Profit avatars:
# - python -m flask avatars create --org-id 1 --name "Partner" --default-percent 25
# - python -m flask avatars list --org-id 1
#
# Payouts:
# - python -m flask payouts pending --org-id 1
# - python -m flask payouts process --org-id 1 --user-id 1 --consignor-id 3 --amount 120.00 --method PayPal

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Avatar, Consignor, Organization, User
from .money import cents_to_str, percent_to_bps, to_cents
from .services import consignor_service, payout_service, profit_service
from .services.auth_service import PasswordValidationError, create_user
from .services.payout_service import PayoutError
from .validation import ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--org', 'org_name', default='Default Organization', help='Organization name')
@click.option('--org-code', default='DEFAULT', help='Organization code')
@with_appcontext
def init_system(org_name, org_code):
    """
    Initialize KickLedger: default organization, an admin user and the Main
    profit avatar. Safe to re-run.

    SECURITY: Change the admin password immediately in production!
    """
    click.echo("START Initializing KickLedger...")

    org = db.session.query(Organization).first()
    if not org:
        org = Organization(name=org_name, code=org_code, is_active=True)
        db.session.add(org)
        db.session.commit()
        click.echo(f"PASS Created default organization: {org.name} (ID: {org.id}, Code: {org.code})")
    else:
        click.echo(f"PASS Using existing organization: {org.name} (ID: {org.id})")

    if db.session.query(User).filter_by(org_id=org.id, username="admin").first():
        click.echo("WARN  User 'admin' already exists in org, skipping...")
    else:
        try:
            create_user(username="admin", email="admin@kickledger.local", password="Password123", org_id=org.id)
            click.echo("PASS Created user: admin (admin@kickledger.local)")
        except (PasswordValidationError, ValueError) as e:
            click.echo(f"FAIL Failed to create user 'admin': {e}")

    main = db.session.query(Avatar).filter_by(org_id=org.id, avatar_type=profit_service.AVATAR_TYPE_MAIN).first()
    if main:
        click.echo(f"PASS Using existing Main avatar: {main.name} (ID: {main.id})")
    else:
        main = profit_service.create_avatar(org_id=org.id, name="Store", avatar_type=profit_service.AVATAR_TYPE_MAIN)
        click.echo(f"PASS Created Main avatar: {main.name} (ID: {main.id})")

    click.echo("\n" + "="*60)
    click.echo("DONE KickLedger Initialized Successfully!")
    click.echo("="*60)
    click.echo(f"\nOrganization: {org.name} (ID: {org.id})")
    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    click.echo("   admin -> admin@kickledger.local / Password123")
    click.echo("")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm dropping every table')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        return
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


# =============================================================================
# ORGANIZATION MANAGEMENT COMMANDS
# =============================================================================

@click.group('orgs')
def orgs_group():
    """Organization (tenant) management commands."""


@orgs_group.command('list')
@with_appcontext
def list_orgs():
    """List all organizations."""
    orgs = db.session.query(Organization).all()

    if not orgs:
        click.echo("No organizations found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<15} {'Active':<8} {'Users':<8} {'Consignors'}")
    click.echo("="*80)

    for org in orgs:
        user_count = db.session.query(User).filter_by(org_id=org.id).count()
        consignor_count = db.session.query(Consignor).filter_by(org_id=org.id, is_archived=False).count()
        active_str = "Yes" if org.is_active else "No"

        click.echo(f"{org.id:<5} {org.name:<30} {org.code or '-':<15} {active_str:<8} {user_count:<8} {consignor_count}")

    click.echo("="*80 + "\n")


@orgs_group.command('create')
@click.option('--name', required=True, help='Organization name')
@click.option('--code', required=True, help='Short code (unique)')
@click.option('--currency', default='USD', help='ISO currency code for display')
@with_appcontext
def create_org_cli(name, code, currency):
    """Create a new organization (tenant)."""
    existing = db.session.query(Organization).filter_by(code=code).first()
    if existing:
        click.echo(f"FAIL Organization with code '{code}' already exists")
        return

    org = Organization(name=name, code=code, currency=currency.upper(), is_active=True)
    db.session.add(org)
    db.session.commit()

    click.echo(f"PASS Created organization: {org.name} (ID: {org.id}, Code: {org.code})")


# =============================================================================
# USER MANAGEMENT COMMANDS
# =============================================================================

@click.group('users')
def users_group():
    """User bootstrap commands."""


@users_group.command('create')
@click.option('--org-id', type=int, help='Organization ID (uses default if not specified)')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_user_cli(org_id, username, email, password):
    """Create a staff user in an organization."""
    if org_id:
        org = db.session.query(Organization).filter_by(id=org_id).first()
        if not org:
            click.echo(f"FAIL Organization ID {org_id} not found")
            return
    else:
        org = db.session.query(Organization).first()
        if not org:
            click.echo("FAIL No organization exists. Run: python -m flask system init")
            return

    try:
        user = create_user(username=username, email=email, password=password, org_id=org.id)
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {e}")
        return
    except ValueError as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Created user: {user.username} ({user.email}) in org '{org.name}'")


# =============================================================================
# PROFIT AVATAR COMMANDS
# =============================================================================

@click.group('avatars')
def avatars_group():
    """Profit distribution avatar commands."""


@avatars_group.command('create')
@click.option('--org-id', type=int, required=True, help='Organization ID')
@click.option('--name', required=True, help='Avatar name')
@click.option('--type', 'avatar_type', type=click.Choice(['Main', 'Member']), default='Member', help='Avatar type')
@click.option('--default-percent', default=None, help='Default share as a percentage, e.g. 12.5')
@with_appcontext
def create_avatar_cli(org_id, name, avatar_type, default_percent):
    """Create a profit-sharing avatar."""
    try:
        default_bps = percent_to_bps(default_percent) if default_percent is not None else None
        avatar = profit_service.create_avatar(
            org_id=org_id, name=name, avatar_type=avatar_type, default_percentage_bps=default_bps
        )
    except (ValidationError, ValueError) as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Created avatar: {avatar.name} (ID: {avatar.id}, Type: {avatar.avatar_type})")


@avatars_group.command('list')
@click.option('--org-id', type=int, required=True, help='Organization ID')
@with_appcontext
def list_avatars_cli(org_id):
    avatars = profit_service.list_avatars(org_id)
    if not avatars:
        click.echo("No avatars found.")
        return
    for avatar in avatars:
        click.echo(f"{avatar.id:<5} {avatar.name:<30} {avatar.avatar_type}")


# =============================================================================
# PAYOUT COMMANDS
# =============================================================================

@click.group('payouts')
def payouts_group():
    """Consignor payout commands."""


@payouts_group.command('pending')
@click.option('--org-id', type=int, required=True, help='Organization ID')
@with_appcontext
def pending_payouts_cli(org_id):
    """Pending payout per consignor."""
    consignors = db.session.query(Consignor).filter_by(org_id=org_id, is_archived=False).all()
    stats = consignor_service.consignor_stats(org_id, consignors)
    owed = [s for s in stats if s.pending_payout_cents]
    if not owed:
        click.echo("No pending payouts.")
        return
    for s in owed:
        click.echo(f"{s.consignor.id:<5} {s.consignor.name:<30} {cents_to_str(s.pending_payout_cents):>12}")


@payouts_group.command('process')
@click.option('--org-id', type=int, required=True, help='Organization ID')
@click.option('--user-id', type=int, required=True, help='Operator user ID')
@click.option('--consignor-id', type=int, required=True, help='Consignor ID')
@click.option('--amount', required=True, help='Amount in dollars, e.g. 50.00')
@click.option('--method', default=None, help='Payment method, e.g. PayPal')
@click.option('--notes', default=None)
@with_appcontext
def process_payout_cli(org_id, user_id, consignor_id, amount, method, notes):
    """Pay a consignor against their oldest pending sales."""
    try:
        result = payout_service.process_payout(
            org_id=org_id,
            user_id=user_id,
            consignor_id=consignor_id,
            amount_cents=to_cents(amount),
            method=method,
            notes=notes,
        )
    except (PayoutError, ValueError) as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS {result.payout.payout_number}: paid {cents_to_str(result.processed_amount_cents)} "
               f"across {result.updated_sale_count} sale(s)")
    if result.skipped_sale_ids:
        click.echo(f"WARN  Skipped sales: {', '.join(str(s) for s in result.skipped_sale_ids)}")
    if result.remaining_pending_cents:
        click.echo(f"WARN  {cents_to_str(result.remaining_pending_cents)} of the amount was not allocated")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(orgs_group)
    app.cli.add_command(users_group)
    app.cli.add_command(avatars_group)
    app.cli.add_command(payouts_group)
