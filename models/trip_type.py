"""
Trip type data access functions.
Trip types carry the duration and the prices copied onto new bookings.
"""

from database import get_db


def get_trip_type_by_id(trip_type_id: int) -> dict:
    """Get a trip type by ID, or None."""
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM trip_types WHERE id = ?', (trip_type_id,))
    row = cursor.fetchone()
    return dict(row) if row else None


def get_captain_trip_types(captain_id: int, active_only: bool = True) -> list:
    """List a captain's trip types ordered by title."""
    db = get_db()
    cursor = db.cursor()
    query = 'SELECT * FROM trip_types WHERE owner_id = ?'
    if active_only:
        query += ' AND active = 1'
    query += ' ORDER BY title'
    cursor.execute(query, (captain_id,))
    return [dict(row) for row in cursor.fetchall()]


def requires_deposit(trip_type: dict) -> bool:
    """A trip type requires a deposit when its deposit amount is positive."""
    return bool(trip_type) and (trip_type.get('deposit_cents') or 0) > 0


def create_trip_type(captain_id: int, title: str, duration_hours: float,
                     price_total_cents: int = 0, deposit_cents: int = 0,
                     description: str = None) -> int:
    """
    Create a trip type.

    Args:
        captain_id: Owning captain
        title: Display title
        duration_hours: Trip length in hours
        price_total_cents: Total price in minor units
        deposit_cents: Deposit in minor units (0 = no deposit)
        description: Optional description

    Returns:
        New trip type ID

    Raises:
        ValueError: On empty title, non-positive duration or bad amounts
    """
    if not title or not title.strip():
        raise ValueError("Trip title is required")
    if duration_hours is None or float(duration_hours) <= 0:
        raise ValueError("Trip duration must be positive")
    if price_total_cents < 0 or deposit_cents < 0:
        raise ValueError("Prices cannot be negative")
    if deposit_cents > price_total_cents:
        raise ValueError("Deposit cannot exceed the total price")

    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        INSERT INTO trip_types (owner_id, title, duration_hours, price_total_cents, deposit_cents, description)
        VALUES (?, ?, ?, ?, ?, ?)
    ''', (captain_id, title.strip(), float(duration_hours), int(price_total_cents),
          int(deposit_cents), description))
    db.commit()
    return cursor.lastrowid
