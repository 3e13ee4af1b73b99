"""
Flask CLI commands.

Commands:
- flask init-db: Create the tables (--drop recreates them)
- flask seed: Default settings and the seed admin account
- flask create-admin: Create an admin user
- flask expire-quotations: Mark overdue open quotations as EXPIRED
- flask import-snapshot / export-snapshot: qms-storage JSON interchange
"""

import json

import click
from flask import current_app
from qms import database
from qms.exceptions import QmsError
from qms.models import User, UserRole
from qms.services.auth_service import register_user
from qms.services.quotation_service import expire_overdue_quotations
from qms.services.settings_service import update_settings, ORG_NAME, ORG_LOGO_URL, ORG_CURRENCY, TAX_RATE
from qms.services.snapshot_service import import_snapshot, export_snapshot

SEED_SETTINGS = {
    ORG_NAME: 'QMS Inc.',
    ORG_LOGO_URL: '',
    ORG_CURRENCY: 'USD',
    TAX_RATE: '0.00',
}


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    @click.option('--drop', is_flag=True, help='Drop existing tables first')
    def init_db_command(drop):
        """Create database tables."""
        if drop:
            database.drop_all()
            click.echo('Dropped all tables.')
        database.create_all()
        click.echo(click.style('Database initialised.', fg='green'))

    @app.cli.command('seed')
    def seed():
        """Store default settings and create the seed admin if missing."""
        session = database.get_session()
        update_settings(session, SEED_SETTINGS)

        email = current_app.config['SEED_ADMIN_EMAIL']
        if session.query(User).filter_by(email=email).first():
            click.echo(f'Admin {email} already exists.')
        else:
            register_user(
                session, email, 'Administrator', current_app.config['SEED_ADMIN_PASSWORD'],
                role=UserRole.ADMIN.value
            )
            click.echo(click.style(f'Created admin {email}', fg='green'))

        click.echo('Seed complete.')

    @app.cli.command('create-admin')
    @click.option('--email', prompt=True, help='Admin email address')
    @click.option('--name', prompt=True, default='Administrator', help='Display name')
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Admin password')
    def create_admin(email, name, password):
        """Create a new ADMIN user."""
        try:
            user = register_user(database.get_session(), email, name, password, role=UserRole.ADMIN.value)
        except QmsError as e:
            raise click.ClickException(e.message)

        click.echo(click.style('Administrator created.', fg='green', bold=True))
        click.echo(f'   Email: {user.email}')
        click.echo(f'   ID: {user.id}')

    @app.cli.command('expire-quotations')
    def expire_quotations():
        """Expire DRAFT/SENT quotations past their validity date."""
        count = expire_overdue_quotations(database.get_session())
        click.echo(f'Expired {count} quotation(s).')

    @app.cli.command('import-snapshot')
    @click.argument('path', type=click.Path(exists=True, dir_okay=False))
    def import_snapshot_command(path):
        """Import a qms-storage JSON snapshot."""
        with open(path, encoding='utf-8') as fh:
            snapshot = json.load(fh)

        try:
            counts = import_snapshot(database.get_session(), snapshot)
        except QmsError as e:
            raise click.ClickException(e.message)

        click.echo(
            f"Imported {counts['clients']} client(s) and {counts['quotations']} quotation(s); "
            f"skipped {counts['skipped']}."
        )

    @app.cli.command('export-snapshot')
    @click.argument('path', type=click.Path(dir_okay=False, writable=True))
    def export_snapshot_command(path):
        """Write the database as a qms-storage JSON snapshot."""
        snapshot = export_snapshot(database.get_session())
        with open(path, 'w', encoding='utf-8') as fh:
            json.dump(snapshot, fh, indent=2)
        click.echo(f'Snapshot written to {path}')
