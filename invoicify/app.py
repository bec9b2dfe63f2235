import logging
import os

import click
from flask import Flask, send_from_directory
from flask_cors import CORS
from flask_migrate import Migrate, upgrade

from invoicify.auth import provision_user, set_tier
from invoicify.config import Config, PACKAGE_DIR
from invoicify.models import db, TIER_FREE, TIER_PRO
from invoicify.storage import LogoStorage
from invoicify.tiers import TierPolicy

logger = logging.getLogger(__name__)

migrate = Migrate()


def init_database(app):
    # In any environment, apply migrations if they exist
    migration_dir = os.path.join(PACKAGE_DIR, 'migrations')
    if os.path.exists(migration_dir):
        try:
            upgrade(directory=migration_dir)
            logger.info('Database migrated successfully.')
            return
        except Exception as e:
            logger.error('Migration failed: %s. Attempting db.create_all() as fallback.', e)
    db.create_all()


def register_commands(app):
    @app.cli.command('create-user')
    @click.argument('email')
    @click.option('--name', default=None, help='Full name of the account owner.')
    @click.option('--company', default=None, help='Company name used on invoices.')
    @click.option('--tier', type=click.Choice([TIER_FREE, TIER_PRO]), default=TIER_FREE)
    def create_user(email, name, company, tier):
        """Provision an account with its settings and print its API token."""
        profile = provision_user(email, full_name=name, company_name=company, tier=tier)
        click.echo(f'Created {profile.email} ({profile.subscription_tier})')
        click.echo(f'API token: {profile.api_token}')

    @app.cli.command('set-tier')
    @click.argument('email')
    @click.argument('tier', type=click.Choice([TIER_FREE, TIER_PRO]))
    def set_tier_command(email, tier):
        """Change the subscription tier of an account."""
        profile = set_tier(email, tier)
        if profile is None:
            raise click.ClickException(f'No account for {email}')
        click.echo(f'{email} is now on the {tier} tier')


def create_app(config_overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    uri = app.config['SQLALCHEMY_DATABASE_URI']
    if uri.startswith('sqlite:///') and ':memory:' not in uri:
        os.makedirs(os.path.dirname(uri[len('sqlite:///'):]), exist_ok=True)

    db.init_app(app)
    migrate.init_app(app, db)
    CORS(app)  # Enable CORS for all routes

    app.extensions['tier_policy'] = TierPolicy.from_config(app.config)
    app.extensions['logo_storage'] = LogoStorage.from_config(app.config)

    from invoicify.api import api
    app.register_blueprint(api)

    @app.route('/uploads/<path:filename>')
    def uploaded_file(filename):
        return send_from_directory(app.config['UPLOAD_FOLDER'], filename)

    register_commands(app)

    with app.app_context():
        init_database(app)

    return app
