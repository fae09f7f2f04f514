# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/thriftshop/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to thriftshop (PowerShell: $env:FLASK_APP="thriftshop").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (use "flask db upgrade" for migrated deployments).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --username admin --email admin@thriftshop.local --password "secret1" --admin
#   Create a local user (prompts if options are omitted).
#
# Catalog:
# - python -m flask products add --name "Jaket" --description "- warm" --size L --price 150000 --stock 1 --category Outerwear --image jaket.png
#   Create a product with images through the configured storage backend.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions
#   Delete expired or revoked sessions older than 30 days.

import mimetypes
import os

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import User, ROLE_ADMIN, ROLE_USER
from .services.auth_service import create_user
from .services import session_service
from .drafts import ProductDraft, format_description
from .validation import ValidationError, StorageError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables. Idempotent."""
    db.create_all()
    click.echo("PASS Database tables created")


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

    click.echo("PASS Database reset complete. Run 'python -m flask users create --admin' to add an administrator.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--admin', 'is_admin', is_flag=True, help='Grant the ADMIN role')
@with_appcontext
def create_user_cli(username, email, password, is_admin):
    """Create a local user. Password is hashed with bcrypt."""
    role = ROLE_ADMIN if is_admin else ROLE_USER
    try:
        user = create_user(username=username, email=email, password=password, role=role)
    except ValidationError as e:
        raise click.ClickException(f"Failed to create user: {e}")

    click.echo(f"PASS Created user: {user.username} ({user.email}) with role '{user.role}'")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Role':<7} {'Active':<8} {'Login'}")
    click.echo("="*90)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        login_str = "google" if user.is_federated else "password"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {user.role:<7} {active_str:<8} {login_str}")

    click.echo("="*90 + "\n")


@click.group('products')
def products_group():
    """Catalog commands."""


@products_group.command('add')
@click.option('--name', required=True)
@click.option('--description', required=True, help='Plain text; lines starting with "- " become bullets')
@click.option('--size', required=True)
@click.option('--price', required=True)
@click.option('--stock', required=True)
@click.option('--category', required=True)
@click.option('--image', 'images', multiple=True, type=click.Path(exists=True, dir_okay=False),
              help='Image file (repeatable)')
@with_appcontext
def add_product_cli(name, description, size, price, stock, category, images):
    """Create a product through the same validation and storage path as the API."""
    with ProductDraft(max_image_bytes=current_app.config["MAX_IMAGE_BYTES"]) as draft:
        draft.set_fields(
            name=name,
            description=format_description(description),
            size=size,
            price=price,
            stock=stock,
            category=category,
        )
        try:
            for path in images:
                content_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
                with open(path, "rb") as fh:
                    draft.attach(os.path.basename(path), fh.read(), content_type)
            product = draft.submit(storage=current_app.extensions["storage"])
        except ValidationError as e:
            raise click.ClickException(str(e))
        except StorageError as e:
            raise click.ClickException(f"Could not store images: {e}")

    click.echo(f"PASS Created product id={product['id']} with {len(product['images'])} image(s)")


@click.group('maintenance')
def maintenance_group():
    """Maintenance and cleanup commands."""


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions_cli():
    """Delete expired or revoked sessions older than 30 days."""
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"PASS Deleted {deleted} session(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(products_group)
    app.cli.add_command(maintenance_group)
