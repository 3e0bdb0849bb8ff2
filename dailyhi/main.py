# -*- coding: utf-8 -*-
import os
import json
import logging
from datetime import datetime
from urllib.parse import urlparse

import click
from flask import Flask

from dailyhi.config import config
from dailyhi.content import ContentProvider
from dailyhi.delivery import DeliveryScheduler
from dailyhi.mailer import mailer_from_config
from dailyhi.models.subscription import db
from dailyhi.routes.subscriptions import subscriptions_bp
from dailyhi.timezones import as_utc
from dailyhi.validation import DNSResolver, EmailValidator

# Set up logging
logging.basicConfig(level=logging.INFO,
                   format='[%(asctime)s] %(levelname)s in %(module)s: %(message)s')

logger = logging.getLogger(__name__)


def create_app(env=None):
    """Create and configure the Flask application"""
    app = Flask(
        __name__,
        template_folder=os.path.join(os.path.dirname(__file__), "templates")
    )

    # Load configuration from config class
    env = env or os.environ.get('FLASK_ENV', 'production')
    app_config = config[env]
    app_config.init_app(app)

    logging.info(f"🚀 Starting application in {env} mode")

    # Log database info without exposing credentials
    db_uri = app.config.get('SQLALCHEMY_DATABASE_URI', '')
    if db_uri:
        try:
            parsed = urlparse(db_uri)
            safe_uri = f"{parsed.scheme}://{parsed.hostname or ''}:{parsed.port or 'default'}{parsed.path}"
            logging.info(f"Database: {safe_uri}")
        except ValueError as e:
            logging.warning(f"Could not parse database URI: {e}")
    else:
        logging.warning("⚠️  No database URI configured!")

    initialize_app(app)

    return app


def init_services(app):
    """Attach the mailer, email validator and content provider to the app."""
    app.extensions['dailyhi.mailer'] = mailer_from_config(app.config)
    app.extensions['dailyhi.validator'] = EmailValidator(
        DNSResolver(timeout=app.config['DNS_TIMEOUT_SECONDS'])
    )
    app.extensions['dailyhi.content'] = ContentProvider.from_config(app.config)


def initialize_app(app):
    """Initialize Flask application with database, services, routes and commands"""
    db.init_app(app)

    with app.app_context():
        logging.info("🔌 Attempting to connect to database...")
        db.create_all()

        from sqlalchemy import inspect
        inspector = inspect(db.engine)
        table_names = inspector.get_table_names()
        logging.info(f"✅ Database initialized successfully with {len(table_names)} tables: {', '.join(table_names)}")

    init_services(app)

    app.register_blueprint(subscriptions_bp)

    @app.cli.command("deliver")
    @click.option("--at", "at", default=None,
                  help="UTC instant to deliver for (ISO 8601); defaults to now.")
    def deliver_command(at):
        """Send the morning digest to the bucket whose local time is 6 AM."""
        report = deliver_now(app, at)
        click.echo(json.dumps(report.to_dict(), indent=2))

    return app


def deliver_now(app, at=None):
    """Run one delivery for the given instant (datetime or ISO string)."""
    if isinstance(at, str):
        at = datetime.fromisoformat(at)
    with app.app_context():
        scheduler = DeliveryScheduler.from_app(app)
        return scheduler.run_once(as_utc(at))


if __name__ == "__main__":
    # Create and initialize app
    app = create_app()

    env = os.environ.get('FLASK_ENV', 'production')
    port = int(os.environ.get("PORT", 3000))

    logging.info("=" * 60)
    logging.info("🌅 The Daily Hi Starting")
    logging.info(f"🌐 Environment: {env}")
    logging.info(f"🔌 Port: {port}")
    logging.info("=" * 60)

    app.run(
        host="0.0.0.0",
        port=port,
        debug=(env == 'development')
    )
