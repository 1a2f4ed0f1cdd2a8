"""
Availability window data access functions.
Weekly recurring hours a captain accepts bookings in (local wall clock).
"""

from database import get_db
from database.seed import DEFAULT_WEEKLY_HOURS
from utils.datetime_helpers import parse_wall_time


# =============================================================================
# READ OPERATIONS
# =============================================================================

def get_captain_windows(captain_id: int, day_of_week: int = None, active_only: bool = False) -> list:
    """
    Get a captain's availability windows.

    Args:
        captain_id: Captain ID
        day_of_week: Optional filter (0 = Sunday .. 6 = Saturday)
        active_only: Only return active windows

    Returns:
        List of window dicts ordered by day and start time
    """
    db = get_db()
    cursor = db.cursor()

    query = 'SELECT * FROM availability_windows WHERE owner_id = ?'
    params = [captain_id]
    if day_of_week is not None:
        query += ' AND day_of_week = ?'
        params.append(day_of_week)
    if active_only:
        query += ' AND is_active = 1'
    query += ' ORDER BY day_of_week, start_time'

    cursor.execute(query, params)
    return [dict(row) for row in cursor.fetchall()]


# =============================================================================
# WRITE OPERATIONS
# =============================================================================

def normalize_window(window: dict) -> dict:
    """
    Validate one window definition.

    Args:
        window: dict with day_of_week, start_time, end_time, is_active

    Returns:
        Normalized dict with 'HH:MM' times

    Raises:
        ValueError: On bad day, bad time format, or start >= end
    """
    try:
        day = int(window.get('day_of_week'))
    except (TypeError, ValueError):
        raise ValueError("day_of_week must be an integer 0-6")
    if day < 0 or day > 6:
        raise ValueError("day_of_week must be between 0 (Sunday) and 6 (Saturday)")

    try:
        start = parse_wall_time(window.get('start_time'))
        end = parse_wall_time(window.get('end_time'))
    except ValueError:
        raise ValueError("start_time and end_time must be HH:MM")
    if start >= end:
        raise ValueError("Window start must be before its end (overnight windows are not supported)")

    return {
        'day_of_week': day,
        'start_time': start.strftime('%H:%M'),
        'end_time': end.strftime('%H:%M'),
        'is_active': 1 if window.get('is_active', True) else 0,
    }


def replace_weekly_availability(captain_id: int, windows: list) -> list:
    """
    Replace all of a captain's windows in one transaction.

    Args:
        captain_id: Captain ID
        windows: List of window dicts

    Returns:
        The stored windows

    Raises:
        ValueError: If any window is invalid (nothing is changed)
    """
    normalized = [normalize_window(w) for w in windows]

    db = get_db()
    cursor = db.cursor()
    try:
        cursor.execute('DELETE FROM availability_windows WHERE owner_id = ?', (captain_id,))
        for w in normalized:
            cursor.execute('''
                INSERT INTO availability_windows (owner_id, day_of_week, start_time, end_time, is_active)
                VALUES (?, ?, ?, ?, ?)
            ''', (captain_id, w['day_of_week'], w['start_time'], w['end_time'], w['is_active']))
        db.commit()
    except Exception:
        db.rollback()
        raise

    return get_captain_windows(captain_id)


def apply_default_availability(captain_id: int) -> list:
    """
    Give a new captain the default week: 6 AM - 9 PM, Monday off.

    Returns:
        The stored windows
    """
    return replace_weekly_availability(captain_id, [
        {'day_of_week': day, 'start_time': start, 'end_time': end, 'is_active': bool(active)}
        for day, start, end, active in DEFAULT_WEEKLY_HOURS
    ])
