"""
Database tests.
Tests database initialization and data integrity.
"""

import sqlite3

import pytest


def test_database_tables(app):
    """Test that all required tables exist."""
    from database import get_db

    db = get_db()
    cursor = db.cursor()

    cursor.execute("SELECT name FROM sqlite_master WHERE type='table' ORDER BY name")
    tables = [row[0] for row in cursor.fetchall()]

    required_tables = [
        'captain_profiles', 'vessels', 'trip_types', 'availability_windows',
        'blackout_dates', 'bookings', 'reschedule_offers', 'booking_logs',
        'guest_tokens'
    ]

    for table in required_tables:
        assert table in tables, f"Table {table} should exist"


def test_seed_data(app):
    """Test that seed data was created correctly."""
    from database import get_db

    db = get_db()
    cursor = db.cursor()

    cursor.execute("SELECT id, timezone FROM captain_profiles WHERE email = 'demo@dockslot.test'")
    demo = cursor.fetchone()
    assert demo is not None, "Demo captain should exist"
    assert demo['timezone'] == 'America/New_York'

    cursor.execute("SELECT COUNT(*) FROM availability_windows WHERE owner_id = ?", (demo['id'],))
    assert cursor.fetchone()[0] == 7, "Demo captain should have a full week of hours"

    cursor.execute("SELECT COUNT(*) FROM vessels WHERE owner_id = ?", (demo['id'],))
    assert cursor.fetchone()[0] >= 1


def test_init_without_seed(app):
    """init_db(seed=False) leaves an empty schema."""
    from database import get_db, init_db

    init_db(seed=False)
    cursor = get_db().cursor()
    cursor.execute("SELECT COUNT(*) FROM captain_profiles")
    assert cursor.fetchone()[0] == 0


def test_foreign_keys_enforced(app):
    """Vessels must belong to an existing captain."""
    from database import get_db

    db = get_db()
    with pytest.raises(sqlite3.IntegrityError):
        db.execute("INSERT INTO vessels (owner_id, name, capacity) VALUES (9999, 'Ghost', 4)")
    db.rollback()


def test_one_selected_offer_index(app):
    """The schema carries the partial unique index for selected offers."""
    from database import get_db

    cursor = get_db().cursor()
    cursor.execute("SELECT sql FROM sqlite_master WHERE type = 'index' AND name = 'idx_offers_one_selected'")
    row = cursor.fetchone()
    assert row is not None
    assert 'UNIQUE' in row['sql'].upper()
