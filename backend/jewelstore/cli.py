# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/jewelstore/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--shop "Demo Jewellers"] [--shop-code DEMO]
#   Idempotent bootstrap: super admin, one demo shop, and an owner/sales/accounts user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Shop management (MULTI-TENANT):
# - python -m flask shops list
# - python -m flask shops create --name "Lakshmi Jewellers" --code LAKSHMI
#
# Users:
# - python -m flask users list [--shop-id 1]
# - python -m flask users create --shop-id 1 --username ravi --name "Ravi" --role SALES --password "Password123!"
#
# Rates and prices:
# - python -m flask rates set --shop-id 1 --metal GOLD --purity 22K --rate 6150.50
#   Record a new current rate (older active rates for the pair are switched off).
# - python -m flask prices recalculate --shop-id 1 [--all]
#   Reprice products from their current rates (default: only outdated prices).

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Shop, User
from .permissions import Role, SHOP_ROLES
from .services import price_update_service, rate_service, shop_service, user_service
from .services.auth_service import PasswordValidationError
from .services.rate_service import METAL_TYPES, RateError
from .validation import ConflictError


DEFAULT_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--shop', 'shop_name', default='Demo Jewellers', help='Demo shop name')
@click.option('--shop-code', default='DEMO', help='Demo shop code')
@with_appcontext
def init_system(shop_name, shop_code):
    """
    Initialize the platform: a super admin, one shop, and its staff.

    Creates (skipping anything that already exists):
    - superadmin (SUPER_ADMIN, no shop)
    - the demo shop
    - owner / sales / accounts users in that shop
    All passwords default to "Password123!".

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing jewelstore...")
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)

    db.create_all()

    if db.session.query(User).filter_by(username="superadmin").first():
        click.echo("WARN  User 'superadmin' already exists, skipping...")
    else:
        user_service.create_super_admin(
            username="superadmin", password=DEFAULT_PASSWORD, name="Platform Admin", bcrypt_rounds=rounds
        )
        click.echo("PASS Created super admin: superadmin")

    shop = db.session.query(Shop).filter_by(code=shop_code.upper()).first()
    if shop is None:
        shop = shop_service.create_shop(name=shop_name, code=shop_code)
        click.echo(f"PASS Created shop: {shop.name} (ID: {shop.id}, Code: {shop.code})")
    else:
        click.echo(f"PASS Using existing shop: {shop.name} (ID: {shop.id})")

    staff = [
        ("owner", "Shop Owner", Role.OWNER, Role.SUPER_ADMIN),
        ("sales", "Sales Staff", Role.SALES, Role.OWNER),
        ("accounts", "Accounts Staff", Role.ACCOUNTS, Role.OWNER),
    ]
    for username, name, role, creator_role in staff:
        if db.session.query(User).filter_by(username=username).first():
            click.echo(f"WARN  User '{username}' already exists, skipping...")
            continue
        try:
            user_service.create_user(
                actor_role=creator_role,
                actor_shop_id=shop.id if creator_role != Role.SUPER_ADMIN else None,
                username=username,
                password=DEFAULT_PASSWORD,
                name=name,
                role=role,
                shop_id=shop.id,
                bcrypt_rounds=rounds,
            )
            click.echo(f"PASS Created user: {username} with role '{role}'")
        except (PasswordValidationError, ConflictError) as e:
            click.echo(f"FAIL Failed to create user '{username}': {e}")

    click.echo("\n" + "=" * 60)
    click.echo("DONE jewelstore initialized")
    click.echo("=" * 60)
    click.echo(f"\nShop: {shop.name} (ID: {shop.id})")
    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    click.echo(f"   superadmin / owner / sales / accounts -> {DEFAULT_PASSWORD}")
    click.echo("")


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


@click.group('shops')
def shops_group():
    """Shop (tenant) management commands."""


@shops_group.command('list')
@with_appcontext
def list_shops():
    """List all shops."""
    shops = shop_service.list_shops().all()
    if not shops:
        click.echo("No shops found.")
        return

    click.echo("\n" + "=" * 70)
    click.echo(f"{'ID':<5} {'Code':<12} {'Name':<40} {'Active'}")
    click.echo("=" * 70)
    for shop in shops:
        click.echo(f"{shop.id:<5} {shop.code:<12} {shop.name:<40} {'Yes' if shop.is_active else 'No'}")
    click.echo("=" * 70 + "\n")


@shops_group.command('create')
@click.option('--name', required=True, help='Shop name')
@click.option('--code', required=True, help='Short code (unique)')
@with_appcontext
def create_shop_cli(name, code):
    """Create a new shop."""
    try:
        shop = shop_service.create_shop(name=name, code=code)
    except ConflictError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created shop: {shop.name} (ID: {shop.id}, Code: {shop.code})")


@click.group('users')
def users_group():
    """User management commands."""


@users_group.command('create')
@click.option('--shop-id', type=int, required=True, help='Shop ID')
@click.option('--username', prompt=True, help='Username')
@click.option('--name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(SHOP_ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(shop_id, username, name, password, role):
    """Create a shop user (OWNER, SALES or ACCOUNTS)."""
    creator_role = Role.SUPER_ADMIN if role == Role.OWNER else Role.OWNER
    try:
        user = user_service.create_user(
            actor_role=creator_role,
            actor_shop_id=shop_id if creator_role == Role.OWNER else None,
            username=username,
            password=password,
            name=name,
            role=role,
            shop_id=shop_id,
            bcrypt_rounds=current_app.config.get("BCRYPT_ROUNDS", 12),
        )
    except PasswordValidationError as e:
        raise click.ClickException(f"Password validation failed: {e}")
    except ConflictError as e:
        raise click.ClickException(str(e))
    except Exception as e:
        raise click.ClickException(f"Failed to create user: {e}")
    click.echo(f"PASS Created user: {user.username} (ID: {user.id}) role={user.role} shop={user.shop_id}")


@users_group.command('list')
@click.option('--shop-id', type=int, help='Filter by shop ID')
@with_appcontext
def list_users(shop_id):
    """List users."""
    query = db.session.query(User)
    if shop_id:
        query = query.filter_by(shop_id=shop_id)
    users = query.order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'Shop':<6} {'Username':<20} {'Role':<12} {'Active'}")
    click.echo("=" * 80)
    for user in users:
        shop_str = str(user.shop_id) if user.shop_id is not None else "-"
        click.echo(
            f"{user.id:<5} {shop_str:<6} {user.username:<20} {user.role:<12} {'Yes' if user.is_active else 'No'}"
        )
    click.echo("=" * 80 + "\n")


@click.group('rates')
def rates_group():
    """Metal rate commands."""


@rates_group.command('set')
@click.option('--shop-id', type=int, required=True, help='Shop ID')
@click.option('--metal', type=click.Choice(list(METAL_TYPES)), required=True, help='Metal type')
@click.option('--purity', required=True, help='Purity, e.g. 22K')
@click.option('--rate', 'rate_per_gram', type=click.FLOAT, required=True, help='Rate per gram')
@click.option('--source', type=click.Choice(list(rate_service.RATE_SOURCES)), default='MANUAL')
@with_appcontext
def set_rate_cli(shop_id, metal, purity, rate_per_gram, source):
    """Record a new current rate for a metal and purity."""
    if db.session.get(Shop, shop_id) is None:
        raise click.ClickException(f"Shop {shop_id} not found")
    if rate_per_gram <= 0:
        raise click.ClickException("Rate must be greater than 0")
    try:
        rate = rate_service.create_rate(
            shop_id,
            {"metal_type": metal, "purity": purity, "rate_per_gram": str(rate_per_gram), "rate_source": source},
            created_by="cli",
        )
    except RateError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Rate set: {rate.metal_type} {rate.purity} = {rate.rate_per_gram}/g (ID: {rate.id})")


@click.group('prices')
def prices_group():
    """Product pricing commands."""


@prices_group.command('recalculate')
@click.option('--shop-id', type=int, required=True, help='Shop ID')
@click.option('--all', 'all_products', is_flag=True, help='Reprice every product, not only outdated ones')
@with_appcontext
def recalculate_prices_cli(shop_id, all_products):
    """Reprice products from their current rates."""
    if db.session.get(Shop, shop_id) is None:
        raise click.ClickException(f"Shop {shop_id} not found")
    result = price_update_service.recalculate_prices(shop_id=shop_id, only_outdated=not all_products)
    click.echo(f"PASS Updated {result['updated']} of {result['total']} products ({result['skipped']} skipped)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(shops_group)
    app.cli.add_command(users_group)
    app.cli.add_command(rates_group)
    app.cli.add_command(prices_group)
