"""
Database seed data.
Demo captain, vessel, and trip types for fresh installations.
"""

from werkzeug.security import generate_password_hash


# Sunday..Saturday; Monday is off by default
DEFAULT_WEEKLY_HOURS = [
    (0, '06:00', '21:00', 1),
    (1, '06:00', '21:00', 0),
    (2, '06:00', '21:00', 1),
    (3, '06:00', '21:00', 1),
    (4, '06:00', '21:00', 1),
    (5, '06:00', '21:00', 1),
    (6, '06:00', '21:00', 1),
]


def seed_database(db):
    """Insert initial seed data."""

    # 1. Demo captain
    cursor = db.execute('''
        INSERT INTO captain_profiles (email, password_hash, full_name, business_name, timezone)
        VALUES (?, ?, ?, ?, ?)
    ''', ('demo@dockslot.test', generate_password_hash('captain123'),
          'Demo Captain', 'Demo Charters', 'America/New_York'))
    captain_id = cursor.lastrowid

    # 2. Vessel
    db.execute('''
        INSERT INTO vessels (owner_id, name, capacity, description)
        VALUES (?, ?, ?, ?)
    ''', (captain_id, 'Sea Breeze', 6, '28ft center console'))

    # 3. Trip types
    trip_types = [
        ('Half-Day Inshore', 4, 45000, 10000),
        ('Sunset Cruise', 2, 25000, 0),
    ]
    for title, hours, price, deposit in trip_types:
        db.execute('''
            INSERT INTO trip_types (owner_id, title, duration_hours, price_total_cents, deposit_cents)
            VALUES (?, ?, ?, ?, ?)
        ''', (captain_id, title, hours, price, deposit))

    # 4. Weekly availability
    for day, start, end, active in DEFAULT_WEEKLY_HOURS:
        db.execute('''
            INSERT INTO availability_windows (owner_id, day_of_week, start_time, end_time, is_active)
            VALUES (?, ?, ?, ?, ?)
        ''', (captain_id, day, start, end, active))
