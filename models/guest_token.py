"""
Guest management tokens.
Opaque, expiring links that let a guest view and manage one booking.
"""

import secrets
from datetime import timedelta

from flask import current_app

from database import get_db
from utils.datetime_helpers import utc_now, format_timestamp, parse_timestamp


def generate_token() -> str:
    """64 hex characters from 32 random bytes."""
    return secrets.token_hex(32)


def issue_guest_token(booking_id: int, ttl_days: int = None) -> dict:
    """
    Create a management token for a booking.

    Args:
        booking_id: Booking ID
        ttl_days: Lifetime in days (default GUEST_TOKEN_TTL_DAYS)

    Returns:
        dict with 'token' and 'expires_at'
    """
    if ttl_days is None:
        ttl_days = current_app.config.get('GUEST_TOKEN_TTL_DAYS', 90)

    token = generate_token()
    expires_at = format_timestamp(utc_now() + timedelta(days=ttl_days))

    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        INSERT INTO guest_tokens (token, booking_id, expires_at)
        VALUES (?, ?, ?)
    ''', (token, booking_id, expires_at))
    db.commit()

    return {'token': token, 'expires_at': expires_at}


def get_booking_id_for_token(token: str, now=None) -> int:
    """
    Resolve a token to its booking.

    Args:
        token: Token string
        now: Reference instant (defaults to current UTC time)

    Returns:
        Booking ID, or None if the token is unknown or expired
    """
    if not token or len(token) != 64:
        return None

    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT booking_id, expires_at FROM guest_tokens WHERE token = ?', (token,))
    row = cursor.fetchone()
    if not row:
        return None

    reference = parse_timestamp(now) if now is not None else utc_now()
    if parse_timestamp(row['expires_at']) <= reference:
        return None
    return row['booking_id']


def get_booking_by_token(token: str, now=None) -> dict:
    """
    Load the booking a token manages.

    Returns:
        Booking dict, or None if the token is unknown or expired
    """
    from models.booking_queries import get_booking_by_id

    booking_id = get_booking_id_for_token(token, now)
    if booking_id is None:
        return None
    return get_booking_by_id(booking_id)
