"""
Test application factory, configuration and CLI commands.
"""

import pytest
from app import create_app


class TestAppFactory:
    """Test Flask application factory."""

    def test_create_app_development(self):
        """Test app creation with development config."""
        app = create_app('development')
        assert app is not None
        assert app.config['DEBUG'] is True
        assert app.config['TESTING'] is False

    def test_create_app_test(self):
        """Test app creation with test config."""
        app = create_app('test')
        assert app.config['TESTING'] is True
        assert app.config['WTF_CSRF_ENABLED'] is False

    def test_app_has_blueprints(self):
        """Test that all blueprints are registered."""
        app = create_app('test')
        assert {'auth', 'captain', 'guest', 'api'} <= set(app.blueprints)

    def test_app_has_extensions(self):
        """Test that extensions are initialized."""
        app = create_app('test')
        assert hasattr(app, 'login_manager')
        assert 'csrf' in app.extensions

    def test_default_notification_handler(self):
        """The log handler is registered on startup."""
        from utils.notifications import log_notification_handler

        app = create_app('test')
        assert app.extensions['booking_notification_handlers'] == [log_notification_handler]


class TestAppConfiguration:
    """Test application configuration."""

    def test_booking_defaults(self):
        app = create_app('test')
        assert app.config['RESCHEDULE_OFFER_TTL_DAYS'] == 7
        assert app.config['RESCHEDULE_AUTO_WEEKS'] == 3
        assert app.config['MAX_PAGE_SIZE'] == 100
        assert app.config['ENFORCE_TRIP_BUFFER'] is True

    def test_production_requires_secret(self, monkeypatch):
        from config import ProductionConfig

        monkeypatch.delenv('SECRET_KEY', raising=False)
        with pytest.raises(ValueError, match='SECRET_KEY'):
            ProductionConfig.validate()

        monkeypatch.setenv('SECRET_KEY', 'short')
        with pytest.raises(ValueError, match='32 characters'):
            ProductionConfig.validate()


class TestCliCommands:
    """Flask CLI commands."""

    def test_create_captain(self, app):
        from models.captain import get_captain_by_email
        from models.availability_window import get_captain_windows

        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            'create-captain', 'mate@example.com', '--password', 'fair-winds',
            '--name', 'First Mate', '--timezone', 'America/Chicago'
        ])
        assert 'Captain created successfully!' in result.output

        captain = get_captain_by_email('mate@example.com')
        assert captain['timezone'] == 'America/Chicago'
        assert len(get_captain_windows(captain['id'])) == 7

    @pytest.mark.parametrize('args, error', [
        (['mate@example.com', '--password', 'fair-winds', '--timezone', 'Nowhere'], 'Unknown timezone'),
        (['mate@example.com', '--password', 'short'], 'at least 8 characters'),
        (['not-an-email', '--password', 'fair-winds'], 'Valid email is required'),
    ])
    def test_create_captain_rejects(self, app, args, error):
        from models.captain import get_captain_by_email

        runner = app.test_cli_runner()
        result = runner.invoke(args=['create-captain', *args])
        assert 'Error creating captain' in result.output
        assert error in result.output
        assert get_captain_by_email('mate@example.com') is None

    def test_create_captain_duplicate_email(self, app, captain):
        runner = app.test_cli_runner()
        result = runner.invoke(args=['create-captain', captain['email'], '--password', 'fair-winds'])
        assert 'Error creating captain' in result.output

    def test_expire_bookings(self, app, make_booking):
        runner = app.test_cli_runner()
        result = runner.invoke(args=['expire-bookings'])
        assert result.output.strip() == 'Expired 0 booking(s).'

    def test_init_db_without_seed(self, app):
        from database import get_db

        runner = app.test_cli_runner()
        result = runner.invoke(args=['init-db', '--no-seed'])
        assert 'Database initialized successfully!' in result.output

        count = get_db().execute('SELECT COUNT(*) FROM captain_profiles').fetchone()[0]
        assert count == 0
