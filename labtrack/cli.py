import click
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy.exc import SQLAlchemyError
from labtrack.errors import WorkflowError
from labtrack.extensions import db
from labtrack.models import User
from labtrack.services.activity_logs import clean_old_logs
from labtrack.services.asset_types import seed_asset_types
from labtrack.services.labs import get_lab_by_identifier, seed_labs
from labtrack.services.users import create_user


def init_cli(app):
    app.cli.add_command(init_db_command)
    app.cli.add_command(seed_labs_command)
    app.cli.add_command(seed_asset_types_command)
    app.cli.add_command(create_user_command)
    app.cli.add_command(clean_logs_command)


@click.command("init-db")
@with_appcontext
def init_db_command():
    """Initialize database tables"""
    db.drop_all()
    db.create_all()
    click.echo("Database tables created fresh.")


@click.command("seed-labs")
@with_appcontext
def seed_labs_command():
    """Seed predefined labs"""
    try:
        for lab in seed_labs():
            click.echo(f"Added new lab: {lab.lab_identifier} - {lab.name}")
        click.echo("Labs have been seeded successfully!")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"Error seeding labs: {str(e)}", err=True)


@click.command("seed-asset-types")
@with_appcontext
def seed_asset_types_command():
    """Seed predefined asset types"""
    try:
        for asset_type in seed_asset_types():
            click.echo(f"Added asset type: {asset_type.identifier} - {asset_type.name}")
        click.echo("Asset types have been seeded successfully!")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"Error seeding asset types: {str(e)}", err=True)


@click.command("create-user")
@click.option('--email', required=True, help='Login email')
@click.option('--name', required=True, help='Display name')
@click.option('--password', required=True, help='Password')
@click.option('--role', type=click.Choice(User.ROLES), default=User.LAB_ASSISTANT,
              help='User role')
@click.option('--lab', 'lab_identifier', default=None, help='Lab identifier, e.g. CL1')
@with_appcontext
def create_user_command(email, name, password, role, lab_identifier):
    """Create a user profile"""
    lab = None
    if lab_identifier:
        lab = get_lab_by_identifier(lab_identifier)
        if lab is None:
            click.echo(f"Unknown lab: {lab_identifier}", err=True)
            return

    try:
        user = create_user({
            'email': email,
            'name': name,
            'password': password,
            'role': role,
            'lab_id': lab.id if lab else None
        })
        click.echo(f"User '{user.email}' has been created as {role}")
    except (WorkflowError, ValueError) as e:
        db.session.rollback()
        click.echo(str(e), err=True)
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"Error creating user: {str(e)}", err=True)


@click.command("clean-logs")
@click.option('--days', type=int, default=None, help='Days of logs to keep')
@with_appcontext
def clean_logs_command(days):
    """Delete activity logs older than the retention window"""
    days = days or current_app.config['ACTIVITY_LOG_RETENTION_DAYS']
    deleted = clean_old_logs(days_to_keep=days)
    click.echo(f"Deleted {deleted} activity log(s) older than {days} days")
