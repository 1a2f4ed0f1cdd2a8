"""
Weather hold and reschedule workflow.

A captain puts a booking on weather hold, sends the guest a few alternative
slots, and the guest either picks one (booking becomes rescheduled) or asks
for different dates. Only one offer per hold can ever be selected.
"""

import logging
import sqlite3
from datetime import datetime, timedelta

from flask import current_app

from database import get_db
from models.booking_availability import is_available
from models.booking_conflicts import find_conflicts, captain_buffer_minutes
from models.booking_queries import get_booking_by_id
from models.booking_state import BookingStatus, compare_and_swap_status
from models.errors import (
    AvailabilityError, ConflictError, InvalidTransitionError, NotFoundError,
    OfferError, ValidationError
)
from utils.audit import log_booking_change
from utils.datetime_helpers import (
    utc_now, parse_timestamp, format_timestamp, get_timezone, to_local
)
from utils.notifications import dispatch_booking_event
from utils.validators import sanitize_input

logger = logging.getLogger(__name__)

MAX_OFFERS = 10
MAX_GUEST_MESSAGE_LENGTH = 500


# =============================================================================
# HELPERS
# =============================================================================

def _load_booking(booking_id: int, captain_id: int = None) -> dict:
    booking = get_booking_by_id(booking_id, captain_id=captain_id)
    if not booking:
        raise NotFoundError(f"Booking {booking_id} not found")
    return booking


def _supersede_open_offers(cursor, booking_id: int, now_str: str, keep_offer_id: int = None) -> int:
    """Retire every offer of the booking that is still live."""
    query = '''
        UPDATE reschedule_offers SET superseded_at = ?
        WHERE booking_id = ? AND superseded_at IS NULL
    '''
    params = [now_str, booking_id]
    if keep_offer_id is not None:
        query += ' AND id != ?'
        params.append(keep_offer_id)
    cursor.execute(query, params)
    return cursor.rowcount


def _offer_from_row(row, now_str: str) -> dict:
    offer = dict(row)
    offer['is_selected'] = bool(offer['is_selected'])
    offer['is_expired'] = bool(offer['expires_at']) and offer['expires_at'] <= now_str
    offer['is_superseded'] = offer['superseded_at'] is not None
    return offer


def _change_hold_status(booking: dict, to_status: BookingStatus, fields: dict) -> None:
    """CAS the booking status and retire open offers in one transaction."""
    now_str = format_timestamp(utc_now())
    db = get_db()
    cursor = db.cursor()
    try:
        cursor.execute('BEGIN IMMEDIATE')
        if not compare_and_swap_status(cursor, booking['id'], booking['status'], to_status, fields):
            raise InvalidTransitionError(
                booking['status'], to_status.value,
                'Booking was changed by someone else; reload and try again'
            )
        _supersede_open_offers(cursor, booking['id'], now_str)
        db.commit()
    except Exception:
        db.rollback()
        raise


# =============================================================================
# WEATHER HOLD
# =============================================================================

def set_weather_hold(booking_id: int, reason: str, captain_id: int = None,
                     actor_type: str = None, actor_id=None) -> dict:
    """
    Put a confirmed or rescheduled booking on weather hold.

    Any offers from an earlier hold are retired.

    Args:
        booking_id: Booking ID
        reason: Why the trip cannot run (required, shown to the guest)
        captain_id: Restrict to bookings owned by this captain

    Returns:
        Updated booking dict

    Raises:
        ValidationError: If reason is empty
        NotFoundError: If the booking does not exist
        InvalidTransitionError: If the booking cannot go on hold
    """
    reason = sanitize_input(reason, 500)
    if not reason:
        raise ValidationError('A weather hold reason is required')

    booking = _load_booking(booking_id, captain_id)
    _change_hold_status(booking, BookingStatus.WEATHER_HOLD, {'weather_hold_reason': reason})

    updated = get_booking_by_id(booking_id)
    log_booking_change(
        booking_id=booking_id,
        entry_type='weather_hold_set',
        description=f"Weather hold: {reason}",
        old_value={'status': booking['status']},
        new_value={'status': BookingStatus.WEATHER_HOLD.value, 'weather_hold_reason': reason},
        actor_type=actor_type,
        actor_id=actor_id
    )
    dispatch_booking_event('weather_hold_set', updated, reason=reason, old_status=booking['status'])
    return updated


def clear_weather_hold(booking_id: int, captain_id: int = None,
                       actor_type: str = None, actor_id=None) -> dict:
    """
    Weather cleared: return a held booking to confirmed on its original slot.

    Outstanding offers are retired.

    Raises:
        NotFoundError, InvalidTransitionError
    """
    booking = _load_booking(booking_id, captain_id)
    if booking['status'] != BookingStatus.WEATHER_HOLD.value:
        raise InvalidTransitionError(
            booking['status'], BookingStatus.CONFIRMED.value,
            'Booking is not on weather hold'
        )
    _change_hold_status(booking, BookingStatus.CONFIRMED, {'weather_hold_reason': None})

    updated = get_booking_by_id(booking_id)
    log_booking_change(
        booking_id=booking_id,
        entry_type='status_changed',
        description='Weather hold cleared, trip confirmed as scheduled',
        old_value={'status': booking['status'], 'weather_hold_reason': booking['weather_hold_reason']},
        new_value={'status': BookingStatus.CONFIRMED.value},
        actor_type=actor_type,
        actor_id=actor_id
    )
    dispatch_booking_event('status_changed', updated, old_status=booking['status'],
                           new_status=BookingStatus.CONFIRMED.value, reason='Weather cleared')
    return updated


# =============================================================================
# OFFERS
# =============================================================================

def _normalize_slot(slot: dict, duration: timedelta) -> tuple:
    start_value = slot.get('start', slot.get('proposed_start'))
    end_value = slot.get('end', slot.get('proposed_end'))
    try:
        start = parse_timestamp(start_value)
        end = parse_timestamp(end_value) if end_value else start + duration
    except (TypeError, ValueError):
        raise ValidationError('Each option needs an ISO-8601 start time')
    return start, end


def _validate_slot(booking: dict, start, end, buffer: int, cursor=None) -> None:
    """
    Raise unless the slot could hold this booking.

    Raises:
        ValidationError, AvailabilityError, ConflictError
    """
    if end <= start:
        raise ValidationError('End time must be after start time')
    if start <= utc_now():
        raise ValidationError('Reschedule options must be in the future')

    availability = is_available(booking['captain_id'], start, end)
    if not availability['available']:
        raise AvailabilityError(availability['reason'] or 'Outside available booking hours')

    conflicts = find_conflicts(booking['vessel_id'], start, end, exclude_booking_id=booking['id'],
                               buffer_minutes=buffer, cursor=cursor)
    if conflicts:
        raise ConflictError(conflicts)


def _booking_duration(booking: dict) -> timedelta:
    return parse_timestamp(booking['scheduled_end']) - parse_timestamp(booking['scheduled_start'])


def create_reschedule_offers(booking_id: int, slots: list, expires_at=None,
                             captain_id: int = None, actor_type: str = None,
                             actor_id=None) -> list:
    """
    Offer the guest alternative slots for a booking on weather hold.

    Every slot must fit the captain's hours and be free on the booking's
    vessel. Either all offers are stored or none.

    Args:
        booking_id: Booking ID (must be on weather hold)
        slots: List of {'start', 'end'} (end defaults to the trip's length)
        expires_at: When the offers lapse (default RESCHEDULE_OFFER_TTL_DAYS)
        captain_id: Restrict to bookings owned by this captain

    Returns:
        List of created offer dicts

    Raises:
        OfferError: If the booking is not on weather hold
        ValidationError, AvailabilityError, ConflictError: For a bad slot
    """
    from models.captain import get_captain_profile

    booking = _load_booking(booking_id, captain_id)
    if booking['status'] != BookingStatus.WEATHER_HOLD.value:
        raise OfferError('Reschedule options can only be sent while a booking is on weather hold')
    if not slots:
        raise ValidationError('At least one reschedule option is required')
    if len(slots) > MAX_OFFERS:
        raise ValidationError(f'At most {MAX_OFFERS} reschedule options can be sent')

    if expires_at is None:
        ttl = current_app.config.get('RESCHEDULE_OFFER_TTL_DAYS', 7)
        expires = utc_now() + timedelta(days=ttl)
    else:
        try:
            expires = parse_timestamp(expires_at)
        except (TypeError, ValueError):
            raise ValidationError('expires_at must be an ISO-8601 timestamp')
        if expires <= utc_now():
            raise ValidationError('expires_at must be in the future')

    duration = _booking_duration(booking)
    normalized = []
    for slot in slots:
        if not isinstance(slot, dict):
            raise ValidationError('Each option must be an object with a start time')
        pair = _normalize_slot(slot, duration)
        if pair not in normalized:
            normalized.append(pair)

    buffer = captain_buffer_minutes(get_captain_profile(booking['captain_id']))
    now_str = format_timestamp(utc_now())

    db = get_db()
    cursor = db.cursor()
    offer_ids = []
    try:
        cursor.execute('BEGIN IMMEDIATE')
        for start, end in normalized:
            _validate_slot(booking, start, end, buffer, cursor=cursor)
            cursor.execute('''
                INSERT INTO reschedule_offers (booking_id, proposed_start, proposed_end, expires_at, created_at)
                VALUES (?, ?, ?, ?, ?)
            ''', (booking_id, format_timestamp(start), format_timestamp(end),
                  format_timestamp(expires), now_str))
            offer_ids.append(cursor.lastrowid)
        db.commit()
    except Exception:
        db.rollback()
        raise

    offers = [o for o in get_reschedule_offers(booking_id) if o['id'] in offer_ids]
    log_booking_change(
        booking_id=booking_id,
        entry_type='guest_communication',
        description=f"Sent {len(offers)} reschedule option(s) to the guest",
        new_value={'offers': [{'start': o['proposed_start'], 'end': o['proposed_end']} for o in offers]},
        actor_type=actor_type,
        actor_id=actor_id
    )
    dispatch_booking_event('reschedule_offers_created', booking, offers=offers)
    return offers


def generate_reschedule_slots(booking_id: int, weeks: int = None, captain_id: int = None) -> list:
    """
    Suggest the same local time on the same weekday in the following weeks.

    Slots that fall outside the captain's hours or clash on the vessel are
    skipped.

    Args:
        booking_id: Booking ID
        weeks: How many weeks ahead to look (default RESCHEDULE_AUTO_WEEKS)

    Returns:
        List of {'start', 'end'} UTC strings
    """
    from models.captain import get_captain_profile

    booking = _load_booking(booking_id, captain_id)
    if weeks is None:
        weeks = current_app.config.get('RESCHEDULE_AUTO_WEEKS', 3)

    profile = get_captain_profile(booking['captain_id'])
    tz = get_timezone(profile.get('timezone') if profile else None)
    buffer = captain_buffer_minutes(profile)
    duration = _booking_duration(booking)

    # Step in local wall-clock time so DST changes keep the departure hour
    local_start = to_local(booking['scheduled_start'], tz).replace(tzinfo=None)

    slots = []
    for week in range(1, weeks + 1):
        wall_clock = local_start + timedelta(weeks=week)
        start = datetime.combine(wall_clock.date(), wall_clock.time(), tzinfo=tz)
        start = parse_timestamp(start)
        end = start + duration
        try:
            _validate_slot(booking, start, end, buffer)
        except (ValidationError, AvailabilityError, ConflictError) as e:
            logger.debug(f"Skipping suggested slot {format_timestamp(start)} for booking {booking_id}: {e}")
            continue
        slots.append({'start': format_timestamp(start), 'end': format_timestamp(end)})
    return slots


def get_reschedule_offers(booking_id: int, include_superseded: bool = False) -> list:
    """
    Offers for a booking, soonest slot first.

    Returns:
        List of offer dicts with is_expired / is_superseded flags
    """
    db = get_db()
    cursor = db.cursor()
    query = 'SELECT * FROM reschedule_offers WHERE booking_id = ?'
    if not include_superseded:
        query += ' AND superseded_at IS NULL'
    query += ' ORDER BY proposed_start, id'
    cursor.execute(query, (booking_id,))

    now_str = format_timestamp(utc_now())
    return [_offer_from_row(row, now_str) for row in cursor.fetchall()]


# =============================================================================
# GUEST RESPONSES
# =============================================================================

def select_reschedule_offer(booking_id: int, offer_id: int, actor_type: str = 'guest',
                            actor_id=None, now=None) -> dict:
    """
    Guest picks one of the offered slots.

    Rejected without any change when the offer is expired, superseded or
    already taken, when another offer was already chosen, or when the
    booking has left weather hold. The vessel is re-checked for conflicts.
    On success, in one transaction: the offer is marked selected, the
    booking moves to the new slot, the first original schedule is kept,
    the hold reason is cleared and the status becomes rescheduled.

    Args:
        booking_id: Booking ID
        offer_id: Offer ID
        actor_type: Usually 'guest'
        actor_id: Guest identifier (email)
        now: Reference instant (defaults to current UTC time)

    Returns:
        Updated booking dict

    Raises:
        NotFoundError: Unknown booking or offer
        OfferError: Offer cannot be selected
        ConflictError: The slot is no longer free
    """
    from models.captain import get_captain_profile

    booking = _load_booking(booking_id)
    now_str = format_timestamp(now or utc_now())

    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM reschedule_offers WHERE id = ? AND booking_id = ?', (offer_id, booking_id))
    row = cursor.fetchone()
    if not row:
        raise NotFoundError('Reschedule option not found')
    offer = _offer_from_row(row, now_str)

    if offer['is_superseded']:
        raise OfferError('This option is no longer available')
    if offer['is_selected']:
        raise OfferError('This option has already been selected')
    if offer['expires_at'] and offer['expires_at'] <= now_str:
        raise OfferError('This option has expired')
    if booking['status'] != BookingStatus.WEATHER_HOLD.value:
        raise OfferError('This booking is no longer waiting for a new date')

    buffer = captain_buffer_minutes(get_captain_profile(booking['captain_id']))

    fields = {
        'scheduled_start': offer['proposed_start'],
        'scheduled_end': offer['proposed_end'],
        'weather_hold_reason': None,
    }
    if not booking['original_start']:
        fields['original_start'] = booking['scheduled_start']
        fields['original_end'] = booking['scheduled_end']

    try:
        cursor.execute('BEGIN IMMEDIATE')

        conflicts = find_conflicts(booking['vessel_id'], offer['proposed_start'], offer['proposed_end'],
                                   exclude_booking_id=booking_id, buffer_minutes=buffer, cursor=cursor)
        if conflicts:
            raise ConflictError(conflicts, 'This time is no longer available on the vessel')

        cursor.execute('''
            UPDATE reschedule_offers SET is_selected = 1, selected_at = ?
            WHERE id = ? AND booking_id = ?
              AND is_selected = 0
              AND superseded_at IS NULL
              AND (expires_at IS NULL OR expires_at > ?)
              AND NOT EXISTS (
                  SELECT 1 FROM reschedule_offers other
                  WHERE other.booking_id = ? AND other.is_selected = 1 AND other.superseded_at IS NULL
              )
        ''', (now_str, offer_id, booking_id, now_str, booking_id))
        if cursor.rowcount != 1:
            raise OfferError('Another option has already been selected')

        if not compare_and_swap_status(cursor, booking_id, BookingStatus.WEATHER_HOLD,
                                       BookingStatus.RESCHEDULED, fields):
            raise OfferError('This booking is no longer waiting for a new date')

        _supersede_open_offers(cursor, booking_id, now_str, keep_offer_id=offer_id)
        db.commit()

    except sqlite3.IntegrityError:
        db.rollback()
        raise OfferError('Another option has already been selected')
    except Exception:
        db.rollback()
        raise

    updated = get_booking_by_id(booking_id)
    log_booking_change(
        booking_id=booking_id,
        entry_type='rescheduled',
        description=f"Guest selected new time {offer['proposed_start']}",
        old_value={
            'status': booking['status'],
            'scheduled_start': booking['scheduled_start'],
            'scheduled_end': booking['scheduled_end'],
        },
        new_value={
            'status': BookingStatus.RESCHEDULED.value,
            'scheduled_start': offer['proposed_start'],
            'scheduled_end': offer['proposed_end'],
            'offer_id': offer_id,
        },
        actor_type=actor_type,
        actor_id=actor_id if actor_id is not None else booking['guest_email']
    )
    dispatch_booking_event('reschedule_selected', updated, offer_id=offer_id)
    return updated


def request_different_dates(booking_id: int, message: str, actor_type: str = 'guest',
                            actor_id=None) -> dict:
    """
    Guest declines the offered slots and asks for other dates.

    Records the message for the captain; the booking stays on weather hold.

    Args:
        booking_id: Booking ID (must be on weather hold)
        message: Free text from the guest (truncated to 500 characters)

    Returns:
        The booking (unchanged)

    Raises:
        NotFoundError, ValidationError, OfferError
    """
    booking = _load_booking(booking_id)
    if booking['status'] != BookingStatus.WEATHER_HOLD.value:
        raise OfferError('This booking is no longer waiting for a new date')

    message = sanitize_input(message, MAX_GUEST_MESSAGE_LENGTH)
    if not message:
        raise ValidationError('Please tell the captain which dates work for you')

    log_booking_change(
        booking_id=booking_id,
        entry_type='guest_communication',
        description=f"Guest requested different dates: {message}",
        new_value={'message': message},
        actor_type=actor_type,
        actor_id=actor_id if actor_id is not None else booking['guest_email']
    )
    dispatch_booking_event('guest_requested_dates', booking, message=message)
    return booking
