"""
Blackout date data access functions.
Whole local calendar dates on which a captain takes no bookings.
"""

import sqlite3
from database import get_db
from utils.datetime_helpers import parse_date


def get_blackout_dates(captain_id: int, start_date: str = None, end_date: str = None) -> list:
    """
    Get a captain's blackout dates, optionally within [start_date, end_date].

    Returns:
        List of dicts ordered by date
    """
    db = get_db()
    cursor = db.cursor()

    query = 'SELECT * FROM blackout_dates WHERE owner_id = ?'
    params = [captain_id]
    if start_date:
        query += ' AND blackout_date >= ?'
        params.append(start_date)
    if end_date:
        query += ' AND blackout_date <= ?'
        params.append(end_date)
    query += ' ORDER BY blackout_date'

    cursor.execute(query, params)
    return [dict(row) for row in cursor.fetchall()]


def add_blackout_date(captain_id: int, blackout_date: str, reason: str = None) -> int:
    """
    Block a calendar date.

    Args:
        captain_id: Captain ID
        blackout_date: YYYY-MM-DD in the captain's timezone
        reason: Optional note shown to the captain

    Returns:
        New blackout ID

    Raises:
        ValueError: On bad date format or if the date is already blocked
    """
    try:
        day = parse_date(blackout_date)
    except (TypeError, ValueError):
        raise ValueError("Blackout date must be YYYY-MM-DD")

    db = get_db()
    cursor = db.cursor()
    try:
        cursor.execute('''
            INSERT INTO blackout_dates (owner_id, blackout_date, reason)
            VALUES (?, ?, ?)
        ''', (captain_id, day.isoformat(), reason))
        db.commit()
    except sqlite3.IntegrityError:
        db.rollback()
        raise ValueError(f"{day.isoformat()} is already blocked")
    return cursor.lastrowid


def delete_blackout_date(captain_id: int, blackout_id: int) -> bool:
    """Remove a blackout date owned by the captain."""
    db = get_db()
    cursor = db.cursor()
    cursor.execute('DELETE FROM blackout_dates WHERE id = ? AND owner_id = ?', (blackout_id, captain_id))
    db.commit()
    return cursor.rowcount > 0
