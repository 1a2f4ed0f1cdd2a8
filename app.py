"""
DockSlot - Charter Booking Engine
Flask application factory and initialization
"""

import os
import sqlite3
import click
import logging
from flask import Flask, g
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Import configuration
from config import config

# Import extensions
from extensions import login_manager, csrf

# Import database functions
from database import close_db, init_db


def create_app(config_name=None):
    """
    Application factory for Flask app.

    Args:
        config_name: Configuration name ('development', 'production', 'test')

    Returns:
        Flask application instance
    """
    # Determine config
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    # Create Flask app
    app = Flask(__name__)

    # Load configuration
    app.config.from_object(config[config_name])

    # Initialize extensions
    initialize_extensions(app)

    # Register blueprints
    register_blueprints(app)

    # Register error handlers
    register_error_handlers(app)

    # Register CLI commands
    register_cli_commands(app)

    # Register booking event handlers
    register_notification_handlers(app)

    # Register teardown handlers
    register_teardown_handlers(app)

    # Configure logging
    configure_logging(app)

    return app


def initialize_extensions(app):
    """Initialize Flask extensions."""
    # Initialize Flask-Login
    login_manager.init_app(app)
    # Initialize CSRF Protection
    csrf.init_app(app)


def register_blueprints(app):
    """Register Flask blueprints."""
    # Import blueprints
    from blueprints.auth.routes import auth_bp
    from blueprints.captain import captain_bp
    from blueprints.guest import guest_bp
    from blueprints.api.routes import api_bp

    # Register blueprints
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(captain_bp, url_prefix='/captain')
    app.register_blueprint(guest_bp, url_prefix='/guest')
    app.register_blueprint(api_bp, url_prefix='/api')


def register_error_handlers(app):
    """Register error handlers."""
    from models.errors import BookingError
    from utils.api_response import api_error, api_booking_error
    from utils.messages import MESSAGES

    @app.errorhandler(BookingError)
    def booking_error(error):
        """Booking rule violations not caught by a route."""
        return api_booking_error(error)

    @app.errorhandler(404)
    def not_found_error(error):
        """Handle 404 errors."""
        return api_error('Not found', status=404, code='NOT_FOUND')

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        """Handle 405 errors."""
        return api_error('Method not allowed', status=405, code='METHOD_NOT_ALLOWED')

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors."""
        # Rollback database on error
        db = g.get('db')
        if db:
            db.rollback()
        app.logger.error(f"Unhandled error: {error}", exc_info=True)
        return api_error(MESSAGES['internal_error'], status=500, code='INTERNAL')


def register_cli_commands(app):
    """Register Flask CLI commands."""

    @app.cli.command('init-db')
    @click.option('--no-seed', is_flag=True, help='Create empty tables without demo data.')
    def init_db_command(no_seed):
        """Initialize database with schema and seed data."""
        click.echo('Initializing database...')
        with app.app_context():
            init_db(seed=not no_seed)
        click.echo('Database initialized successfully!')

    @app.cli.command('create-captain')
    @click.argument('email')
    @click.password_option()
    @click.option('--name', 'full_name', default=None, help="Captain's name.")
    @click.option('--business', 'business_name', default=None, help='Charter business name.')
    @click.option('--timezone', default='America/New_York', show_default=True,
                  help='IANA timezone of the home port.')
    def create_captain_command(email, password, full_name, business_name, timezone):
        """Create a captain account with default weekly hours."""
        from models.captain import create_captain

        with app.app_context():
            try:
                captain_id = create_captain(
                    email=email,
                    password=password,
                    full_name=full_name,
                    business_name=business_name,
                    timezone=timezone
                )
                click.echo(f'Captain created successfully! ID: {captain_id}')
            except (ValueError, sqlite3.IntegrityError) as e:
                click.echo(f'Error creating captain: {str(e)}', err=True)

    @app.cli.command('expire-bookings')
    def expire_bookings_command():
        """Cancel pending-deposit bookings whose start time has passed."""
        from models.booking import expire_overdue_bookings

        with app.app_context():
            expired = expire_overdue_bookings()
        click.echo(f'Expired {len(expired)} booking(s).')


def register_notification_handlers(app):
    """Attach the default booking event handlers."""
    from utils.notifications import register_notification_handler, log_notification_handler

    register_notification_handler(app, log_notification_handler)


def register_teardown_handlers(app):
    """Register teardown handlers."""

    @app.teardown_appcontext
    def teardown_db(error):
        """Close database connection at end of request."""
        close_db(error)


def configure_logging(app):
    """Configure application logging."""
    if not app.debug and not app.testing:
        # Production logging
        if not os.path.exists('logs'):
            os.mkdir('logs')

        file_handler = logging.FileHandler('logs/dockslot.log')
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)

        app.logger.setLevel(logging.INFO)
        app.logger.info('DockSlot startup')
    else:
        # Development logging
        app.logger.setLevel(logging.DEBUG)


# Create application instance for development server
if __name__ == '__main__':
    app = create_app()
    app.run(host='0.0.0.0', debug=True)
