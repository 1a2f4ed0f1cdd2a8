"""
Booking log model and data access functions.
Append-only history of everything that happened to a booking.
"""

import json
import logging
from database import get_db
from utils.datetime_helpers import utc_now, format_timestamp

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

LOG_ENTRY_TYPES = (
    'booking_created',
    'booking_updated',
    'status_changed',
    'payment_received',
    'payment_refunded',
    'rescheduled',
    'weather_hold_set',
    'note_added',
    'guest_communication',
)

ACTOR_TYPES = ('captain', 'guest', 'system')


# =============================================================================
# WRITE OPERATIONS
# =============================================================================

def record_booking_log(
    booking_id: int,
    entry_type: str,
    description: str,
    old_value: dict = None,
    new_value: dict = None,
    actor_type: str = 'system',
    actor_id=None
) -> int:
    """
    Append a booking log entry.

    Runs in its own commit after the primary change has been committed.
    A failure here is logged and never propagated: losing a history line
    must not undo a booking change.

    Args:
        booking_id: Booking ID
        entry_type: One of LOG_ENTRY_TYPES
        description: Human-readable summary
        old_value: Optional snapshot before the change
        new_value: Optional snapshot after the change
        actor_type: 'captain', 'guest' or 'system'
        actor_id: Captain ID or guest email, when known

    Returns:
        New log entry ID, or None if logging failed
    """
    try:
        if entry_type not in LOG_ENTRY_TYPES:
            raise ValueError(f"Unknown log entry type: {entry_type}")
        if actor_type not in ACTOR_TYPES:
            raise ValueError(f"Unknown actor type: {actor_type}")

        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                INSERT INTO booking_logs (
                    booking_id, entry_type, description, old_value, new_value,
                    actor_type, actor_id, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ''', (
                booking_id,
                entry_type,
                description,
                json.dumps(old_value) if old_value is not None else None,
                json.dumps(new_value) if new_value is not None else None,
                actor_type,
                str(actor_id) if actor_id is not None else None,
                format_timestamp(utc_now())
            ))
            return cursor.lastrowid

    except Exception as e:
        logger.error(f"Failed to record booking log for booking {booking_id}: {e}", exc_info=True)
        return None


# =============================================================================
# READ OPERATIONS
# =============================================================================

def get_booking_logs(booking_id: int, entry_type: str = None, limit: int = 200) -> list:
    """
    Get log entries for a booking, newest first.

    Args:
        booking_id: Booking ID
        entry_type: Optional filter by entry type
        limit: Maximum entries to return

    Returns:
        List of log entry dicts with decoded old/new values
    """
    db = get_db()
    cursor = db.cursor()

    query = 'SELECT * FROM booking_logs WHERE booking_id = ?'
    params = [booking_id]
    if entry_type:
        query += ' AND entry_type = ?'
        params.append(entry_type)
    query += ' ORDER BY created_at DESC, id DESC LIMIT ?'
    params.append(limit)

    cursor.execute(query, params)

    entries = []
    for row in cursor.fetchall():
        entry = dict(row)
        for key in ('old_value', 'new_value'):
            if entry[key]:
                try:
                    entry[key] = json.loads(entry[key])
                except (TypeError, ValueError):
                    pass
        entries.append(entry)
    return entries
