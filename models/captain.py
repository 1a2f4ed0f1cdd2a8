"""
Captain model and data access functions.
Handles captain profiles, authentication, and Flask-Login integration.
"""

from werkzeug.security import generate_password_hash, check_password_hash
from database import get_db
from utils.datetime_helpers import is_valid_timezone, utc_now, format_timestamp
from utils.validators import validate_email, validate_password


class Captain:
    """
    Captain class for Flask-Login integration.
    Wraps the captain_profiles row with required Flask-Login properties.
    """

    def __init__(self, profile):
        self.id = profile['id']
        self.email = profile['email']
        self.full_name = profile.get('full_name')
        self.business_name = profile.get('business_name')
        self.timezone = profile.get('timezone')
        self.active = profile.get('active', 1)

    @property
    def is_authenticated(self):
        """Required by Flask-Login."""
        return True

    @property
    def is_active(self):
        """Required by Flask-Login."""
        return self.active == 1

    @property
    def is_anonymous(self):
        """Required by Flask-Login."""
        return False

    def get_id(self):
        """Required by Flask-Login. Returns captain ID as string."""
        return str(self.id)


# =============================================================================
# READ OPERATIONS
# =============================================================================

def get_captain_profile(captain_id: int) -> dict:
    """
    Get a captain's profile (timezone, buffer, booking window).

    Args:
        captain_id: Captain ID

    Returns:
        Profile dict without the password hash, or None if not found
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM captain_profiles WHERE id = ?', (captain_id,))
    row = cursor.fetchone()
    if not row:
        return None
    profile = dict(row)
    profile.pop('password_hash', None)
    return profile


def get_captain_by_email(email: str) -> dict:
    """Get a captain row (including password hash) by email."""
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM captain_profiles WHERE email = ?', (email.strip().lower(),))
    row = cursor.fetchone()
    return dict(row) if row else None


def authenticate_captain(email: str, password: str) -> dict:
    """
    Check a captain's credentials.

    Returns:
        Profile dict on success, None otherwise
    """
    if not email or not password:
        return None
    captain = get_captain_by_email(email)
    if not captain or not captain['active'] or not captain['password_hash']:
        return None
    if not check_password_hash(captain['password_hash'], password):
        return None
    captain.pop('password_hash', None)
    return captain


# =============================================================================
# WRITE OPERATIONS
# =============================================================================

def create_captain(email: str, password: str, full_name: str = None,
                   business_name: str = None, timezone: str = 'America/New_York',
                   booking_buffer_minutes: int = 0,
                   with_default_availability: bool = True) -> int:
    """
    Create a captain profile with hashed password.

    Args:
        email: Unique login email
        password: Plain text password (will be hashed)
        full_name: Captain's name
        business_name: Charter business name
        timezone: IANA timezone for the captain's schedule
        booking_buffer_minutes: Turnaround time between trips
        with_default_availability: Seed the default weekly hours

    Returns:
        New captain ID

    Raises:
        ValueError: If email, password, timezone or buffer are invalid
        sqlite3.IntegrityError: If the email already exists
    """
    if not validate_email(email):
        raise ValueError("Valid email is required")
    valid, error = validate_password(password)
    if not valid:
        raise ValueError(error)
    if not is_valid_timezone(timezone):
        raise ValueError(f"Unknown timezone: {timezone}")
    if booking_buffer_minutes < 0:
        raise ValueError("Booking buffer cannot be negative")

    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        INSERT INTO captain_profiles (
            email, password_hash, full_name, business_name, timezone, booking_buffer_minutes
        ) VALUES (?, ?, ?, ?, ?, ?)
    ''', (email.strip().lower(), generate_password_hash(password), full_name,
          business_name, timezone, booking_buffer_minutes))
    db.commit()
    captain_id = cursor.lastrowid

    if with_default_availability:
        from models.availability_window import apply_default_availability
        apply_default_availability(captain_id)

    return captain_id


def update_captain_profile(captain_id: int, **kwargs) -> bool:
    """
    Update profile fields.

    Args:
        captain_id: Captain ID
        **kwargs: full_name, business_name, timezone, booking_buffer_minutes,
            advance_booking_days, is_hibernating, hibernation_message

    Returns:
        True if a row was updated

    Raises:
        ValueError: On unknown fields, timezone or a negative buffer
    """
    allowed_fields = ['full_name', 'business_name', 'timezone', 'booking_buffer_minutes',
                      'advance_booking_days', 'is_hibernating', 'hibernation_message']

    unknown = sorted(set(kwargs) - set(allowed_fields))
    if unknown:
        raise ValueError(f"Cannot update {', '.join(unknown)}")
    if 'timezone' in kwargs and not is_valid_timezone(kwargs['timezone']):
        raise ValueError(f"Unknown timezone: {kwargs['timezone']}")
    if kwargs.get('booking_buffer_minutes') is not None and int(kwargs['booking_buffer_minutes']) < 0:
        raise ValueError("Booking buffer cannot be negative")

    updates = []
    values = []
    for field in allowed_fields:
        if field in kwargs:
            updates.append(f'{field} = ?')
            values.append(kwargs[field])

    if not updates:
        return False

    updates.append('updated_at = ?')
    values.append(format_timestamp(utc_now()))
    values.append(captain_id)

    db = get_db()
    cursor = db.cursor()
    cursor.execute(f'UPDATE captain_profiles SET {", ".join(updates)} WHERE id = ?', values)
    db.commit()
    return cursor.rowcount > 0
