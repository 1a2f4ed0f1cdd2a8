"""
Vessel conflict detection.
Finds active bookings on a vessel that overlap a proposed time range.
"""

from datetime import timedelta

from flask import current_app

from database import get_db
from models.booking_adapter import BOOKING_SELECT, bookings_from_rows
from models.booking_state import ACTIVE_STATUSES, status_values
from models.errors import ValidationError
from utils.datetime_helpers import parse_timestamp, format_timestamp


def find_conflicts(vessel_id: int, proposed_start, proposed_end,
                   exclude_booking_id: int = None, buffer_minutes: int = 0,
                   cursor=None) -> list:
    """
    Find active bookings on a vessel overlapping [start, end).

    Two ranges overlap when existing.start < proposed.end and
    existing.end > proposed.start, so back-to-back trips do not conflict.
    A buffer widens the proposed range on both sides, which is the same as
    requiring buffer_minutes of turnaround around every existing trip.

    Args:
        vessel_id: Vessel ID
        proposed_start: Start instant
        proposed_end: End instant
        exclude_booking_id: Booking to ignore (the one being moved)
        buffer_minutes: Turnaround to keep clear around existing trips
        cursor: Optional cursor of an open transaction

    Returns:
        List of conflicting booking dicts (empty when the vessel is free)

    Raises:
        ValidationError: If end is not after start or buffer is negative
    """
    start = parse_timestamp(proposed_start)
    end = parse_timestamp(proposed_end)
    if end <= start:
        raise ValidationError('End time must be after start time')
    if buffer_minutes and buffer_minutes < 0:
        raise ValidationError('Buffer cannot be negative')

    buffer = timedelta(minutes=buffer_minutes or 0)
    statuses = status_values(ACTIVE_STATUSES)

    query = BOOKING_SELECT + f'''
        WHERE b.vessel_id = ?
          AND b.status IN ({','.join('?' * len(statuses))})
          AND b.scheduled_start < ?
          AND b.scheduled_end > ?
    '''
    params = [vessel_id, *statuses, format_timestamp(end + buffer), format_timestamp(start - buffer)]

    if exclude_booking_id is not None:
        query += ' AND b.id != ?'
        params.append(exclude_booking_id)
    query += ' ORDER BY b.scheduled_start, b.id'

    cur = cursor or get_db().cursor()
    cur.execute(query, params)
    return bookings_from_rows(cur.fetchall())


def captain_buffer_minutes(profile: dict) -> int:
    """
    Buffer to enforce for a captain.

    Zero unless ENFORCE_TRIP_BUFFER is on, in which case the profile's
    booking_buffer_minutes applies.
    """
    if not profile or not current_app.config.get('ENFORCE_TRIP_BUFFER', True):
        return 0
    return int(profile.get('booking_buffer_minutes') or 0)
