"""
Vessel data access functions.
"""

from database import get_db


def get_vessel_by_id(vessel_id: int) -> dict:
    """Get a vessel by ID, or None."""
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM vessels WHERE id = ?', (vessel_id,))
    row = cursor.fetchone()
    return dict(row) if row else None


def get_captain_vessels(captain_id: int, active_only: bool = True) -> list:
    """List a captain's vessels ordered by name."""
    db = get_db()
    cursor = db.cursor()
    query = 'SELECT * FROM vessels WHERE owner_id = ?'
    if active_only:
        query += ' AND active = 1'
    query += ' ORDER BY name'
    cursor.execute(query, (captain_id,))
    return [dict(row) for row in cursor.fetchall()]


def create_vessel(captain_id: int, name: str, capacity: int, description: str = None) -> int:
    """
    Create a vessel.

    Raises:
        ValueError: If name is empty or capacity < 1
    """
    if not name or not name.strip():
        raise ValueError("Vessel name is required")
    if capacity is None or int(capacity) < 1:
        raise ValueError("Vessel capacity must be at least 1")

    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        INSERT INTO vessels (owner_id, name, capacity, description)
        VALUES (?, ?, ?, ?)
    ''', (captain_id, name.strip(), int(capacity), description))
    db.commit()
    return cursor.lastrowid
