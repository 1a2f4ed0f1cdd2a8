"""
Pytest configuration and fixtures.
Ensures tests use an isolated test database, not the production database.
"""

import os
import pytest
import tempfile
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

# Set test database path BEFORE importing app
# This ensures all tests use an isolated database
TEST_DB_PATH = os.path.join(tempfile.gettempdir(), 'dockslot_test.db')
os.environ['DATABASE_PATH'] = TEST_DB_PATH

CAPTAIN_TZ = ZoneInfo('America/New_York')


@pytest.fixture(scope='session', autouse=True)
def setup_test_environment():
    """Set up test environment before any tests run."""
    os.environ['DATABASE_PATH'] = TEST_DB_PATH
    os.environ['FLASK_ENV'] = 'test'

    yield

    # Cleanup: remove test database after all tests
    for suffix in ('', '-wal', '-shm'):
        path = TEST_DB_PATH + suffix
        if os.path.exists(path):
            try:
                os.remove(path)
            except PermissionError:
                pass  # Windows may have file locked


@pytest.fixture
def app():
    """Create test application with isolated database."""
    from app import create_app
    from database import init_db

    os.environ['DATABASE_PATH'] = TEST_DB_PATH

    app = create_app('test')
    app.config['TESTING'] = True
    app.config['WTF_CSRF_ENABLED'] = False
    app.config['DATABASE_PATH'] = TEST_DB_PATH

    with app.app_context():
        init_db()
        yield app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def captain(app):
    """
    A captain in America/New_York with the default week (6 AM - 9 PM,
    Monday off), two vessels and two trip types.
    """
    from models.captain import create_captain
    from models.vessel import create_vessel
    from models.trip_type import create_trip_type

    with app.app_context():
        captain_id = create_captain(
            email='skipper@example.com',
            password='anchors-away',
            full_name='Sam Skipper',
            business_name='Skipper Charters',
            timezone='America/New_York'
        )
        vessel_id = create_vessel(captain_id, 'Reel Time', 6)
        second_vessel_id = create_vessel(captain_id, 'Second Wind', 4)
        half_day_id = create_trip_type(captain_id, 'Half-Day Inshore', 4,
                                       price_total_cents=40000, deposit_cents=10000)
        sunset_id = create_trip_type(captain_id, 'Sunset Cruise', 2,
                                     price_total_cents=20000, deposit_cents=0)

    return {
        'id': captain_id,
        'email': 'skipper@example.com',
        'password': 'anchors-away',
        'vessel_id': vessel_id,
        'second_vessel_id': second_vessel_id,
        'deposit_trip_id': half_day_id,
        'no_deposit_trip_id': sunset_id,
    }


@pytest.fixture
def captain_client(app, client, captain):
    """Test client signed in as the captain fixture."""
    with client.session_transaction() as session:
        session['_user_id'] = str(captain['id'])
        session['_fresh'] = True
    return client


@pytest.fixture
def trip_day():
    """
    Find an upcoming local date with a given weekday (0 = Sunday).

    Always at least two days out so the whole trip is in the future.
    """
    def find(day_of_week, weeks_ahead=0):
        today = datetime.now(CAPTAIN_TZ).date()
        delta = (day_of_week - today.isoweekday() % 7) % 7
        if delta < 2:
            delta += 7
        return today + timedelta(days=delta + 7 * weeks_ahead)
    return find


@pytest.fixture
def local_slot():
    """Build a UTC (start, end) pair from captain-local wall-clock times."""
    from utils.datetime_helpers import local_datetime_utc, parse_wall_time, format_timestamp

    def build(day, start='10:00', end='12:00'):
        start_utc = local_datetime_utc(day, parse_wall_time(start), CAPTAIN_TZ)
        end_utc = local_datetime_utc(day, parse_wall_time(end), CAPTAIN_TZ)
        if end_utc <= start_utc:
            end_utc = local_datetime_utc(day + timedelta(days=1), parse_wall_time(end), CAPTAIN_TZ)
        return format_timestamp(start_utc), format_timestamp(end_utc)
    return build


@pytest.fixture
def make_booking(app, captain, trip_day, local_slot):
    """
    Create a booking on the captain's first vessel.

    Defaults to a no-deposit trip (confirmed) next Tuesday 10:00-12:00.
    """
    from models.booking import create_booking

    def make(day=None, start='10:00', end='12:00', **overrides):
        slot_start, slot_end = local_slot(day or trip_day(2), start, end)
        values = {
            'captain_id': captain['id'],
            'vessel_id': captain['vessel_id'],
            'guest_name': 'Jane Guest',
            'guest_email': 'jane@example.com',
            'party_size': 2,
            'scheduled_start': slot_start,
            'scheduled_end': slot_end,
            'trip_type_id': captain['no_deposit_trip_id'],
        }
        values.update(overrides)
        with app.app_context():
            return create_booking(**values)
    return make
