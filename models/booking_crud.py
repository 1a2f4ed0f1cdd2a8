"""
Booking CRUD operations.
Handles booking creation, edits, notes, and payment reconciliation.
"""

import json
import logging
from datetime import timedelta

from database import get_db
from models.booking_availability import is_available
from models.booking_conflicts import find_conflicts, captain_buffer_minutes
from models.booking_queries import get_booking_by_id
from models.booking_state import (
    BookingStatus, PaymentStatus, compare_and_swap_status, is_terminal
)
from models.errors import (
    AvailabilityError, ConflictError, InvalidTransitionError, NotFoundError, StorageError,
    ValidationError
)
from models.trip_type import requires_deposit
from utils.audit import log_booking_change
from utils.datetime_helpers import utc_now, parse_timestamp, format_timestamp
from utils.notifications import dispatch_booking_event
from utils.validators import (
    validate_email, validate_phone, sanitize_name, sanitize_input,
    normalize_tags, parse_positive_int, MAX_NOTES_LENGTH
)

logger = logging.getLogger(__name__)

# Fields a captain may edit on a non-terminal booking
EDITABLE_FIELDS = (
    'guest_name', 'guest_email', 'guest_phone', 'party_size',
    'special_requests', 'captain_notes', 'tags',
    'scheduled_start', 'scheduled_end',
)


# =============================================================================
# VALIDATION
# =============================================================================

def _clean_guest_fields(guest_name: str, guest_email: str, guest_phone: str = None) -> dict:
    name = sanitize_name(guest_name)
    if not name:
        raise ValidationError('Guest name is required')
    if not guest_email or not validate_email(guest_email):
        raise ValidationError('Valid email is required')
    phone = sanitize_input(guest_phone, 40) or None
    if phone and not validate_phone(phone):
        raise ValidationError('Invalid phone number format')
    return {
        'guest_name': name,
        'guest_email': guest_email.strip().lower(),
        'guest_phone': phone,
    }


def _parse_party_size(value) -> int:
    try:
        return parse_positive_int(value, 'Party size')
    except ValueError as e:
        raise ValidationError(str(e))


def _parse_schedule(scheduled_start, scheduled_end) -> tuple:
    try:
        start = parse_timestamp(scheduled_start)
        end = parse_timestamp(scheduled_end)
    except (TypeError, ValueError):
        raise ValidationError('Scheduled times must be ISO-8601 timestamps')
    if end <= start:
        raise ValidationError('End time must be after start time')
    if start <= utc_now():
        raise ValidationError('Booking must be in the future')
    return start, end


def _load_vessel(captain_id: int, vessel_id) -> dict:
    from models.vessel import get_vessel_by_id

    vessel = get_vessel_by_id(vessel_id) if vessel_id is not None else None
    if not vessel or vessel['owner_id'] != captain_id:
        raise NotFoundError('Vessel not found')
    if not vessel['active']:
        raise ValidationError('This vessel is not taking bookings')
    return vessel


def _check_capacity(vessel: dict, party_size: int) -> None:
    if party_size > vessel['capacity']:
        raise ValidationError(
            f"This vessel can accommodate up to {vessel['capacity']} passengers",
            code='CAPACITY'
        )


def ensure_schedule_open(captain_id: int, vessel_id: int, start, end,
                         exclude_booking_id: int = None, cursor=None) -> None:
    """
    Raise unless the captain works then and the vessel is free.

    Args:
        captain_id: Captain ID
        vessel_id: Vessel ID
        start: Start instant
        end: End instant
        exclude_booking_id: Booking being moved, ignored for conflicts
        cursor: Cursor of an open transaction for the conflict query

    Raises:
        AvailabilityError: Outside the captain's hours or on a blackout date
        ConflictError: Overlaps an active booking on the vessel
    """
    from models.captain import get_captain_profile

    availability = is_available(captain_id, start, end)
    if not availability['available']:
        raise AvailabilityError(availability['reason'] or 'This time slot is outside available booking hours')

    buffer = captain_buffer_minutes(get_captain_profile(captain_id))
    conflicts = find_conflicts(vessel_id, start, end, exclude_booking_id=exclude_booking_id,
                               buffer_minutes=buffer, cursor=cursor)
    if conflicts:
        raise ConflictError(conflicts)


# =============================================================================
# CREATE
# =============================================================================

def create_booking(
    captain_id: int,
    vessel_id: int,
    guest_name: str,
    guest_email: str,
    party_size: int,
    scheduled_start,
    scheduled_end=None,
    trip_type_id: int = None,
    guest_phone: str = None,
    special_requests: str = None,
    captain_notes: str = None,
    tags: list = None,
    actor_type: str = None,
    actor_id=None,
    issue_token: bool = True
) -> dict:
    """
    Create a booking after validating it against the captain's schedule.

    Order of checks: input, captain profile (hibernation, advance window),
    vessel and capacity, trip type, captain availability, then the vessel
    conflict check and insert inside one BEGIN IMMEDIATE transaction so two
    concurrent requests cannot both take the same slot.

    The booking starts in pending_deposit when its trip type requires a
    deposit, otherwise confirmed. Prices are copied from the trip type.

    Args:
        captain_id: Owning captain
        vessel_id: Vessel to reserve
        guest_name: Guest name
        guest_email: Guest email
        party_size: Number of passengers
        scheduled_start: Start instant
        scheduled_end: End instant (defaults to start + trip duration)
        trip_type_id: Optional trip type
        guest_phone: Optional phone
        special_requests: Guest notes
        captain_notes: Internal notes
        tags: Free-form tags
        actor_type: Who is creating ('captain', 'guest', 'system')
        actor_id: Actor identifier
        issue_token: Issue a guest management token

    Returns:
        Booking dict; includes 'guest_token' when a token was issued

    Raises:
        ValidationError, NotFoundError, AvailabilityError, ConflictError
    """
    from models.captain import get_captain_profile
    from models.trip_type import get_trip_type_by_id

    guest = _clean_guest_fields(guest_name, guest_email, guest_phone)
    party_size = _parse_party_size(party_size)
    try:
        tags = normalize_tags(tags)
    except ValueError as e:
        raise ValidationError(str(e))

    trip_type = None
    if trip_type_id is not None:
        trip_type = get_trip_type_by_id(trip_type_id)
        if not trip_type or trip_type['owner_id'] != captain_id:
            raise NotFoundError('Trip type not found')

    if scheduled_end is None:
        if not trip_type or scheduled_start is None:
            raise ValidationError('Scheduled end is required')
        try:
            scheduled_end = parse_timestamp(scheduled_start) + timedelta(hours=trip_type['duration_hours'])
        except (TypeError, ValueError):
            raise ValidationError('Scheduled times must be ISO-8601 timestamps')
    start, end = _parse_schedule(scheduled_start, scheduled_end)

    profile = get_captain_profile(captain_id)
    if not profile:
        raise NotFoundError('Captain not found')
    if profile['is_hibernating']:
        raise ValidationError(
            profile['hibernation_message'] or 'Bookings are currently closed for the season',
            code='HIBERNATING'
        )
    advance_days = profile.get('advance_booking_days')
    if advance_days and (start - utc_now()).days > advance_days:
        raise ValidationError(f"Bookings can only be made up to {advance_days} days in advance")

    vessel = _load_vessel(captain_id, vessel_id)
    _check_capacity(vessel, party_size)

    total_cents = trip_type['price_total_cents'] if trip_type else 0
    status = BookingStatus.PENDING_DEPOSIT if requires_deposit(trip_type) else BookingStatus.CONFIRMED

    availability = is_available(captain_id, start, end)
    if not availability['available']:
        raise AvailabilityError(availability['reason'] or 'This time slot is outside available booking hours')

    buffer = captain_buffer_minutes(profile)
    now_str = format_timestamp(utc_now())

    db = get_db()
    cursor = db.cursor()
    try:
        cursor.execute('BEGIN IMMEDIATE')

        conflicts = find_conflicts(vessel['id'], start, end, buffer_minutes=buffer, cursor=cursor)
        if conflicts:
            raise ConflictError(conflicts)

        cursor.execute('''
            INSERT INTO bookings (
                captain_id, trip_type_id, vessel_id,
                guest_name, guest_email, guest_phone, party_size,
                scheduled_start, scheduled_end, status, payment_status,
                total_price_cents, deposit_paid_cents, balance_due_cents,
                special_requests, captain_notes, tags, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ''', (
            captain_id, trip_type['id'] if trip_type else None, vessel['id'],
            guest['guest_name'], guest['guest_email'], guest['guest_phone'], party_size,
            format_timestamp(start), format_timestamp(end), status.value, PaymentStatus.UNPAID.value,
            total_cents, 0, total_cents,
            sanitize_input(special_requests, MAX_NOTES_LENGTH) or None,
            sanitize_input(captain_notes, MAX_NOTES_LENGTH) or None,
            json.dumps(tags), now_str, now_str
        ))
        booking_id = cursor.lastrowid
        db.commit()

    except Exception:
        db.rollback()
        raise

    booking = get_booking_by_id(booking_id)
    logger.info(f"Booking {booking_id} created for vessel {vessel['id']} ({status.value})")

    log_booking_change(
        booking_id=booking_id,
        entry_type='booking_created',
        description=f"Booking created for {guest['guest_name']}",
        new_value={
            'guest_name': guest['guest_name'],
            'party_size': party_size,
            'scheduled_start': booking['scheduled_start'],
            'scheduled_end': booking['scheduled_end'],
            'status': status.value,
        },
        actor_type=actor_type,
        actor_id=actor_id
    )

    if issue_token:
        from models.guest_token import issue_guest_token
        booking['guest_token'] = issue_guest_token(booking_id)['token']

    dispatch_booking_event('booking_created', booking)
    return booking


# =============================================================================
# UPDATE
# =============================================================================

def update_booking(booking_id: int, captain_id: int = None, actor_type: str = None,
                   actor_id=None, **fields) -> dict:
    """
    Edit a booking's details.

    Terminal bookings are read-only. Schedule changes are re-checked against
    availability and vessel conflicts (ignoring this booking).

    Args:
        booking_id: Booking ID
        captain_id: Restrict to bookings owned by this captain
        **fields: Any of EDITABLE_FIELDS

    Returns:
        Updated booking dict

    Raises:
        NotFoundError, ValidationError, AvailabilityError, ConflictError
    """
    booking = get_booking_by_id(booking_id, captain_id=captain_id)
    if not booking:
        raise NotFoundError(f"Booking {booking_id} not found")
    if is_terminal(booking['status']):
        raise ValidationError(f"A {booking['status']} booking can no longer be edited", code='IMMUTABLE')

    unknown = set(fields) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot edit {', '.join(sorted(unknown))}")

    changes = {}

    if {'guest_name', 'guest_email', 'guest_phone'} & set(fields):
        guest = _clean_guest_fields(
            fields.get('guest_name', booking['guest_name']),
            fields.get('guest_email', booking['guest_email']),
            fields.get('guest_phone', booking['guest_phone'])
        )
        for key in ('guest_name', 'guest_email', 'guest_phone'):
            if key in fields:
                changes[key] = guest[key]

    if 'party_size' in fields:
        party_size = _parse_party_size(fields['party_size'])
        vessel = _load_vessel(booking['captain_id'], booking['vessel_id'])
        _check_capacity(vessel, party_size)
        changes['party_size'] = party_size

    for key in ('special_requests', 'captain_notes'):
        if key in fields:
            changes[key] = sanitize_input(fields[key], MAX_NOTES_LENGTH) or None

    if 'tags' in fields:
        try:
            changes['tags'] = json.dumps(normalize_tags(fields['tags']))
        except ValueError as e:
            raise ValidationError(str(e))

    reschedule = 'scheduled_start' in fields or 'scheduled_end' in fields
    if reschedule:
        start, end = _parse_schedule(
            fields.get('scheduled_start', booking['scheduled_start']),
            fields.get('scheduled_end', booking['scheduled_end'])
        )
        changes['scheduled_start'] = format_timestamp(start)
        changes['scheduled_end'] = format_timestamp(end)

    changes = {k: v for k, v in changes.items()
               if (json.dumps(booking[k]) if k == 'tags' else booking[k]) != v}
    if not changes:
        return booking

    db = get_db()
    cursor = db.cursor()
    try:
        cursor.execute('BEGIN IMMEDIATE')
        if reschedule:
            ensure_schedule_open(booking['captain_id'], booking['vessel_id'],
                                 changes.get('scheduled_start', booking['scheduled_start']),
                                 changes.get('scheduled_end', booking['scheduled_end']),
                                 exclude_booking_id=booking_id, cursor=cursor)

        assignments = [f'{key} = ?' for key in changes] + ['updated_at = ?']
        params = list(changes.values()) + [format_timestamp(utc_now()), booking_id, booking['status']]
        # Guard on status so a concurrent terminal transition wins
        cursor.execute(f'''
            UPDATE bookings SET {', '.join(assignments)}
            WHERE id = ? AND status = ?
        ''', params)
        if cursor.rowcount != 1:
            raise ValidationError('Booking was changed by someone else; reload and try again',
                                  code='STALE')
        db.commit()
    except Exception:
        db.rollback()
        raise

    old_value = {k: booking[k] for k in changes}
    new_value = {k: (json.loads(v) if k == 'tags' else v) for k, v in changes.items()}
    log_booking_change(
        booking_id=booking_id,
        entry_type='booking_updated',
        description=f"Updated {', '.join(sorted(changes))}",
        old_value=old_value,
        new_value=new_value,
        actor_type=actor_type,
        actor_id=actor_id
    )
    return get_booking_by_id(booking_id)


def add_booking_note(booking_id: int, note: str, captain_id: int = None,
                     actor_type: str = None, actor_id=None) -> int:
    """
    Add a logbook note to a booking. Allowed in any status.

    Returns:
        New log entry ID

    Raises:
        StorageError: If the note could not be written
    """
    booking = get_booking_by_id(booking_id, captain_id=captain_id)
    if not booking:
        raise NotFoundError(f"Booking {booking_id} not found")
    note = sanitize_input(note, MAX_NOTES_LENGTH)
    if not note:
        raise ValidationError('Note cannot be empty')

    log_id = log_booking_change(
        booking_id=booking_id,
        entry_type='note_added',
        description=note,
        actor_type=actor_type,
        actor_id=actor_id
    )
    if log_id is None:
        raise StorageError('Could not save the note')
    return log_id


# =============================================================================
# PAYMENTS
# =============================================================================

def _parse_cents(value, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f'{field_name} must be a whole number of cents')
    try:
        cents = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field_name} must be a whole number of cents')
    if cents < 0:
        raise ValidationError(f'{field_name} cannot be negative')
    return cents


def _update_payment(cursor, booking_id: int, payment_status: str,
                    deposit_paid_cents: int, balance_due_cents: int) -> None:
    cursor.execute('''
        UPDATE bookings
        SET payment_status = ?, deposit_paid_cents = ?, balance_due_cents = ?, updated_at = ?
        WHERE id = ?
    ''', (payment_status, deposit_paid_cents, balance_due_cents,
          format_timestamp(utc_now()), booking_id))


def mark_deposit_paid(booking_id: int, amount_cents: int = None,
                      actor_type: str = None, actor_id=None) -> dict:
    """
    Record a received deposit and confirm the booking.

    Args:
        booking_id: Booking ID (must be pending_deposit)
        amount_cents: Deposit received (default: the trip type's deposit)

    Returns:
        Updated booking dict

    Raises:
        NotFoundError, InvalidTransitionError, ValidationError
    """
    booking = get_booking_by_id(booking_id)
    if not booking:
        raise NotFoundError(f"Booking {booking_id} not found")
    if booking['status'] != BookingStatus.PENDING_DEPOSIT.value:
        raise InvalidTransitionError(
            booking['status'], BookingStatus.CONFIRMED.value,
            f"Deposit can only be recorded on a pending_deposit booking (booking is {booking['status']})"
        )

    if amount_cents is None:
        amount_cents = (booking['trip_type'] or {}).get('deposit_cents') or 0
    amount_cents = _parse_cents(amount_cents, 'Deposit amount')
    if amount_cents > booking['total_price_cents']:
        raise ValidationError('Deposit amount is out of range')
    balance = booking['total_price_cents'] - amount_cents

    db = get_db()
    cursor = db.cursor()
    try:
        cursor.execute('BEGIN IMMEDIATE')
        swapped = compare_and_swap_status(cursor, booking_id, booking['status'], BookingStatus.CONFIRMED)
        if not swapped:
            raise ValidationError('Booking was changed by someone else; reload and try again', code='STALE')
        _update_payment(cursor, booking_id, PaymentStatus.DEPOSIT_PAID.value, amount_cents, balance)
        db.commit()
    except Exception:
        db.rollback()
        raise

    log_booking_change(
        booking_id=booking_id,
        entry_type='payment_received',
        description=f"Deposit of {amount_cents / 100:.2f} received",
        old_value={'payment_status': booking['payment_status'], 'deposit_paid_cents': booking['deposit_paid_cents']},
        new_value={'payment_status': PaymentStatus.DEPOSIT_PAID.value, 'deposit_paid_cents': amount_cents},
        actor_type=actor_type,
        actor_id=actor_id
    )
    log_booking_change(
        booking_id=booking_id,
        entry_type='status_changed',
        description=f"Status changed from {booking['status']} to confirmed: deposit received",
        old_value={'status': booking['status']},
        new_value={'status': BookingStatus.CONFIRMED.value},
        actor_type=actor_type,
        actor_id=actor_id
    )

    updated = get_booking_by_id(booking_id)
    dispatch_booking_event('payment_received', updated, payment_status=PaymentStatus.DEPOSIT_PAID.value)
    return updated


def record_payment_status(booking_id: int, payment_status, deposit_paid_cents: int = None,
                          balance_due_cents: int = None, actor_type: str = None,
                          actor_id=None) -> dict:
    """
    Reconcile payment fields from the payment processor feed.

    Allowed on terminal bookings too (refunds arrive after cancellation).
    Does not change the booking status.

    Args:
        booking_id: Booking ID
        payment_status: PaymentStatus value
        deposit_paid_cents: New deposit total (default: unchanged)
        balance_due_cents: New balance (default: unchanged, 0 for fully_paid)

    Returns:
        Updated booking dict
    """
    try:
        payment_status = PaymentStatus(payment_status)
    except ValueError:
        raise ValidationError(f"Unknown payment status: {payment_status}")

    booking = get_booking_by_id(booking_id)
    if not booking:
        raise NotFoundError(f"Booking {booking_id} not found")

    if deposit_paid_cents is None:
        deposit = booking['deposit_paid_cents']
    else:
        deposit = _parse_cents(deposit_paid_cents, 'Deposit paid')
    if balance_due_cents is not None:
        balance = _parse_cents(balance_due_cents, 'Balance due')
    elif payment_status == PaymentStatus.FULLY_PAID:
        balance = 0
    else:
        balance = booking['balance_due_cents']

    db = get_db()
    cursor = db.cursor()
    try:
        _update_payment(cursor, booking_id, payment_status.value, deposit, balance)
        db.commit()
    except Exception:
        db.rollback()
        raise

    refund = payment_status in (PaymentStatus.PARTIALLY_REFUNDED, PaymentStatus.FULLY_REFUNDED)
    log_booking_change(
        booking_id=booking_id,
        entry_type='payment_refunded' if refund else 'payment_received',
        description=f"Payment status changed from {booking['payment_status']} to {payment_status.value}",
        old_value={
            'payment_status': booking['payment_status'],
            'deposit_paid_cents': booking['deposit_paid_cents'],
            'balance_due_cents': booking['balance_due_cents'],
        },
        new_value={
            'payment_status': payment_status.value,
            'deposit_paid_cents': deposit,
            'balance_due_cents': balance,
        },
        actor_type=actor_type,
        actor_id=actor_id
    )

    updated = get_booking_by_id(booking_id)
    if not refund:
        dispatch_booking_event('payment_received', updated, payment_status=payment_status.value)
    return updated


def mark_fully_paid(booking_id: int, actor_type: str = None, actor_id=None) -> dict:
    """Record full payment: balance goes to zero."""
    return record_payment_status(booking_id, PaymentStatus.FULLY_PAID, balance_due_cents=0,
                                 actor_type=actor_type, actor_id=actor_id)
