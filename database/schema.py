"""
Database schema definitions.
Table creation, indexes, and structure management.

All instants are stored as UTC strings in the fixed format
YYYY-MM-DDTHH:MM:SSZ so string comparison matches chronological order.
"""

UTC_NOW_SQL = "(strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))"


def drop_tables(db):
    """Drop all existing tables."""
    db.execute('PRAGMA foreign_keys = OFF')

    tables = [
        'guest_tokens',
        'booking_logs',
        'reschedule_offers',
        'bookings',
        'blackout_dates',
        'availability_windows',
        'trip_types',
        'vessels',
        'captain_profiles',
    ]

    for table in tables:
        db.execute(f'DROP TABLE IF EXISTS {table}')

    db.execute('PRAGMA foreign_keys = ON')


def create_tables(db):
    """Create all database tables."""

    # 1. Captains
    db.execute(f'''
        CREATE TABLE captain_profiles (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            email TEXT UNIQUE NOT NULL,
            password_hash TEXT,
            full_name TEXT,
            business_name TEXT,
            timezone TEXT NOT NULL DEFAULT 'America/New_York',
            booking_buffer_minutes INTEGER NOT NULL DEFAULT 0,
            advance_booking_days INTEGER NOT NULL DEFAULT 60,
            is_hibernating INTEGER NOT NULL DEFAULT 0,
            hibernation_message TEXT,
            active INTEGER NOT NULL DEFAULT 1,
            created_at TEXT NOT NULL DEFAULT {UTC_NOW_SQL},
            updated_at TEXT NOT NULL DEFAULT {UTC_NOW_SQL}
        )
    ''')

    # 2. Vessels & trip types
    db.execute(f'''
        CREATE TABLE vessels (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            owner_id INTEGER NOT NULL REFERENCES captain_profiles(id) ON DELETE CASCADE,
            name TEXT NOT NULL,
            capacity INTEGER NOT NULL CHECK (capacity >= 1),
            description TEXT,
            active INTEGER NOT NULL DEFAULT 1,
            created_at TEXT NOT NULL DEFAULT {UTC_NOW_SQL}
        )
    ''')

    db.execute(f'''
        CREATE TABLE trip_types (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            owner_id INTEGER NOT NULL REFERENCES captain_profiles(id) ON DELETE CASCADE,
            title TEXT NOT NULL,
            duration_hours REAL NOT NULL CHECK (duration_hours > 0),
            price_total_cents INTEGER NOT NULL DEFAULT 0,
            deposit_cents INTEGER NOT NULL DEFAULT 0,
            description TEXT,
            active INTEGER NOT NULL DEFAULT 1,
            created_at TEXT NOT NULL DEFAULT {UTC_NOW_SQL}
        )
    ''')

    # 3. Weekly schedule
    db.execute('''
        CREATE TABLE availability_windows (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            owner_id INTEGER NOT NULL REFERENCES captain_profiles(id) ON DELETE CASCADE,
            day_of_week INTEGER NOT NULL CHECK (day_of_week BETWEEN 0 AND 6),
            start_time TEXT NOT NULL,
            end_time TEXT NOT NULL,
            is_active INTEGER NOT NULL DEFAULT 1,
            CHECK (start_time < end_time)
        )
    ''')

    db.execute(f'''
        CREATE TABLE blackout_dates (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            owner_id INTEGER NOT NULL REFERENCES captain_profiles(id) ON DELETE CASCADE,
            blackout_date TEXT NOT NULL,
            reason TEXT,
            created_at TEXT NOT NULL DEFAULT {UTC_NOW_SQL},
            UNIQUE (owner_id, blackout_date)
        )
    ''')

    # 4. Bookings
    db.execute(f'''
        CREATE TABLE bookings (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            captain_id INTEGER NOT NULL REFERENCES captain_profiles(id),
            trip_type_id INTEGER REFERENCES trip_types(id),
            vessel_id INTEGER NOT NULL REFERENCES vessels(id),
            guest_name TEXT NOT NULL,
            guest_email TEXT NOT NULL,
            guest_phone TEXT,
            party_size INTEGER NOT NULL CHECK (party_size >= 1),
            scheduled_start TEXT NOT NULL,
            scheduled_end TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'pending_deposit',
            payment_status TEXT NOT NULL DEFAULT 'unpaid',
            total_price_cents INTEGER NOT NULL DEFAULT 0,
            deposit_paid_cents INTEGER NOT NULL DEFAULT 0,
            balance_due_cents INTEGER NOT NULL DEFAULT 0,
            weather_hold_reason TEXT,
            original_start TEXT,
            original_end TEXT,
            special_requests TEXT,
            captain_notes TEXT,
            tags TEXT NOT NULL DEFAULT '[]',
            created_at TEXT NOT NULL DEFAULT {UTC_NOW_SQL},
            updated_at TEXT NOT NULL DEFAULT {UTC_NOW_SQL},
            CHECK (scheduled_end > scheduled_start)
        )
    ''')

    db.execute(f'''
        CREATE TABLE reschedule_offers (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            booking_id INTEGER NOT NULL REFERENCES bookings(id) ON DELETE CASCADE,
            proposed_start TEXT NOT NULL,
            proposed_end TEXT NOT NULL,
            is_selected INTEGER NOT NULL DEFAULT 0,
            selected_at TEXT,
            expires_at TEXT,
            superseded_at TEXT,
            created_at TEXT NOT NULL DEFAULT {UTC_NOW_SQL},
            CHECK (proposed_end > proposed_start)
        )
    ''')

    db.execute(f'''
        CREATE TABLE booking_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            booking_id INTEGER NOT NULL REFERENCES bookings(id) ON DELETE CASCADE,
            entry_type TEXT NOT NULL,
            description TEXT NOT NULL,
            old_value TEXT,
            new_value TEXT,
            actor_type TEXT NOT NULL DEFAULT 'system',
            actor_id TEXT,
            created_at TEXT NOT NULL DEFAULT {UTC_NOW_SQL}
        )
    ''')

    db.execute(f'''
        CREATE TABLE guest_tokens (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            token TEXT UNIQUE NOT NULL,
            booking_id INTEGER NOT NULL REFERENCES bookings(id) ON DELETE CASCADE,
            expires_at TEXT NOT NULL,
            created_at TEXT NOT NULL DEFAULT {UTC_NOW_SQL}
        )
    ''')


def create_indexes(db):
    """Create performance indexes."""

    # Conflict detection scans a vessel's bookings by time range
    db.execute('CREATE INDEX idx_bookings_vessel_time ON bookings(vessel_id, scheduled_start, scheduled_end)')
    db.execute('CREATE INDEX idx_bookings_captain_start ON bookings(captain_id, scheduled_start, id)')
    db.execute('CREATE INDEX idx_bookings_captain_status ON bookings(captain_id, status)')
    db.execute('CREATE INDEX idx_bookings_created ON bookings(captain_id, created_at, id)')

    # Schedule lookups
    db.execute('CREATE INDEX idx_windows_owner_day ON availability_windows(owner_id, day_of_week)')

    # Reschedule offers
    db.execute('CREATE INDEX idx_offers_booking ON reschedule_offers(booking_id)')
    # At most one live selection per booking
    db.execute('''
        CREATE UNIQUE INDEX idx_offers_one_selected
        ON reschedule_offers(booking_id)
        WHERE is_selected = 1 AND superseded_at IS NULL
    ''')

    # Logs & tokens
    db.execute('CREATE INDEX idx_booking_logs_booking ON booking_logs(booking_id, created_at)')
    db.execute('CREATE INDEX idx_guest_tokens_booking ON guest_tokens(booking_id)')
