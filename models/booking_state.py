"""
Booking state management functions.
Lifecycle graph, guarded transitions, and the deposit expiry sweep.
"""

import logging
from enum import Enum

from database import get_db
from models.errors import InvalidTransitionError, NotFoundError
from utils.audit import log_booking_change
from utils.datetime_helpers import utc_now, format_timestamp
from utils.notifications import dispatch_booking_event

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

class BookingStatus(str, Enum):
    """Booking lifecycle states. Values are stored and sent over the wire."""

    PENDING_DEPOSIT = 'pending_deposit'
    CONFIRMED = 'confirmed'
    WEATHER_HOLD = 'weather_hold'
    RESCHEDULED = 'rescheduled'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
    NO_SHOW = 'no_show'
    EXPIRED = 'expired'


class PaymentStatus(str, Enum):
    """Payment reconciliation states."""

    UNPAID = 'unpaid'
    DEPOSIT_PAID = 'deposit_paid'
    FULLY_PAID = 'fully_paid'
    PARTIALLY_REFUNDED = 'partially_refunded'
    FULLY_REFUNDED = 'fully_refunded'
    PENDING_VERIFICATION = 'pending_verification'


S = BookingStatus

VALID_TRANSITIONS = {
    S.PENDING_DEPOSIT: frozenset({S.CONFIRMED, S.CANCELLED, S.EXPIRED}),
    S.CONFIRMED: frozenset({S.WEATHER_HOLD, S.COMPLETED, S.CANCELLED, S.NO_SHOW}),
    S.WEATHER_HOLD: frozenset({S.CONFIRMED, S.RESCHEDULED, S.CANCELLED}),
    S.RESCHEDULED: frozenset({S.CONFIRMED, S.WEATHER_HOLD, S.COMPLETED, S.CANCELLED, S.NO_SHOW}),
    S.COMPLETED: frozenset(),
    S.CANCELLED: frozenset(),
    S.NO_SHOW: frozenset(),
    S.EXPIRED: frozenset(),
}

# Statuses that occupy the vessel
ACTIVE_STATUSES = frozenset({S.PENDING_DEPOSIT, S.CONFIRMED, S.WEATHER_HOLD, S.RESCHEDULED})

TERMINAL_STATUSES = frozenset(s for s, targets in VALID_TRANSITIONS.items() if not targets)

# Columns a transition may set alongside the status
TRANSITION_FIELDS = (
    'weather_hold_reason',
    'scheduled_start',
    'scheduled_end',
    'original_start',
    'original_end',
    'captain_notes',
)


def coerce_status(value) -> BookingStatus:
    """
    Convert a string to BookingStatus.

    Raises:
        ValueError: If the value is not a known status
    """
    if isinstance(value, BookingStatus):
        return value
    try:
        return BookingStatus(value)
    except ValueError:
        raise ValueError(f"Unknown booking status: {value}")


def status_values(statuses) -> list:
    """Plain string values for SQL parameters, in a stable order."""
    return sorted(coerce_status(s).value for s in statuses)


# =============================================================================
# TRANSITION RULES
# =============================================================================

def is_valid_transition(from_status, to_status) -> bool:
    """Check whether the lifecycle graph has an edge from -> to."""
    try:
        return coerce_status(to_status) in VALID_TRANSITIONS[coerce_status(from_status)]
    except ValueError:
        return False


def get_allowed_transitions(status) -> list:
    """
    Statuses reachable in one step from the given status.

    Returns:
        Sorted list of status values (empty for terminal statuses)
    """
    return status_values(VALID_TRANSITIONS[coerce_status(status)])


def is_terminal(status) -> bool:
    return coerce_status(status) in TERMINAL_STATUSES


def is_active(status) -> bool:
    return coerce_status(status) in ACTIVE_STATUSES


def validate_status_transition(from_status, to_status) -> None:
    """
    Raise if the transition is not allowed.

    Raises:
        InvalidTransitionError: On an illegal edge or unknown status
    """
    if not is_valid_transition(from_status, to_status):
        if is_valid_status(from_status) and is_terminal(from_status):
            raise InvalidTransitionError(
                from_status, to_status,
                f"Booking is {coerce_status(from_status).value} and can no longer change status"
            )
        raise InvalidTransitionError(
            getattr(from_status, 'value', from_status),
            getattr(to_status, 'value', to_status)
        )


def is_valid_status(value) -> bool:
    try:
        coerce_status(value)
        return True
    except ValueError:
        return False


# =============================================================================
# STATE TRANSITIONS
# =============================================================================

def compare_and_swap_status(cursor, booking_id: int, from_status, to_status,
                            fields: dict = None) -> bool:
    """
    Move a booking from one status to another if it is still in from_status.

    Runs on the caller's cursor so it can join a larger transaction.

    Args:
        cursor: Active cursor
        booking_id: Booking ID
        from_status: Status the caller observed
        to_status: Target status (must be a legal edge)
        fields: Extra columns to set (see TRANSITION_FIELDS)

    Returns:
        bool: True if the row was updated, False if the status had changed

    Raises:
        InvalidTransitionError: If from -> to is not a legal edge
        ValueError: If fields names a column outside TRANSITION_FIELDS
    """
    validate_status_transition(from_status, to_status)

    fields = fields or {}
    unknown = set(fields) - set(TRANSITION_FIELDS)
    if unknown:
        raise ValueError(f"Cannot set {', '.join(sorted(unknown))} during a transition")

    assignments = ['status = ?', 'updated_at = ?']
    params = [coerce_status(to_status).value, format_timestamp(utc_now())]
    for column, value in fields.items():
        assignments.append(f'{column} = ?')
        params.append(value)
    params.extend([booking_id, coerce_status(from_status).value])

    cursor.execute(f'''
        UPDATE bookings SET {', '.join(assignments)}
        WHERE id = ? AND status = ?
    ''', params)
    return cursor.rowcount == 1


def transition_booking_status(
    booking_id: int,
    new_status,
    actor_type: str = None,
    actor_id=None,
    reason: str = None,
    extra_fields: dict = None,
    expected_status=None
) -> dict:
    """
    Change a booking's status along a legal edge.

    The update is a compare-and-swap on the status read just before, so a
    concurrent change makes this call fail instead of overwriting it.
    On success one status_changed log entry is written and a notification
    event is dispatched.

    Args:
        booking_id: Booking ID
        new_status: Target status
        actor_type: 'captain', 'guest' or 'system' (defaults to current user)
        actor_id: Actor identifier
        reason: Optional free-text reason kept in the log
        extra_fields: Extra columns to set atomically with the status
        expected_status: Require the booking to currently be in this status

    Returns:
        Updated booking dict

    Raises:
        NotFoundError: If the booking does not exist
        InvalidTransitionError: If the edge is illegal or the status changed
            concurrently
    """
    from models.booking_queries import get_booking_by_id

    booking = get_booking_by_id(booking_id)
    if not booking:
        raise NotFoundError(f"Booking {booking_id} not found")

    old_status = booking['status']
    new_status = coerce_status(new_status)
    if expected_status is not None and coerce_status(expected_status).value != old_status:
        raise InvalidTransitionError(
            old_status, new_status.value,
            f"Booking is {old_status}, expected {coerce_status(expected_status).value}"
        )

    db = get_db()
    cursor = db.cursor()
    try:
        swapped = compare_and_swap_status(cursor, booking_id, old_status, new_status, extra_fields)
        if not swapped:
            db.rollback()
            raise InvalidTransitionError(
                old_status, new_status.value,
                'Booking was changed by someone else; reload and try again'
            )
        db.commit()
    except Exception:
        db.rollback()
        raise

    updated = get_booking_by_id(booking_id)

    description = f"Status changed from {old_status} to {new_status.value}"
    if reason:
        description += f": {reason}"
    log_booking_change(
        booking_id=booking_id,
        entry_type='status_changed',
        description=description,
        old_value={'status': old_status},
        new_value={'status': new_status.value, **(extra_fields or {})},
        actor_type=actor_type,
        actor_id=actor_id
    )
    dispatch_booking_event('status_changed', updated, old_status=old_status,
                           new_status=new_status.value, reason=reason)

    return updated


# =============================================================================
# CONVENIENCE TRANSITIONS
# =============================================================================

def confirm_booking(booking_id: int, **actor) -> dict:
    """Confirm a booking (deposit received, or weather cleared)."""
    return transition_booking_status(booking_id, S.CONFIRMED, **actor)


def cancel_booking(booking_id: int, reason: str = None, **actor) -> dict:
    """Cancel a booking from any non-terminal status."""
    return transition_booking_status(booking_id, S.CANCELLED, reason=reason, **actor)


def complete_booking(booking_id: int, **actor) -> dict:
    """Mark a trip as completed."""
    return transition_booking_status(booking_id, S.COMPLETED, **actor)


def mark_no_show(booking_id: int, **actor) -> dict:
    """Mark the guest as a no-show."""
    return transition_booking_status(booking_id, S.NO_SHOW, **actor)


# =============================================================================
# TIME-BASED SWEEP
# =============================================================================

def expire_overdue_bookings(now=None) -> list:
    """
    Expire pending_deposit bookings whose trip start has passed.

    Args:
        now: Reference instant (defaults to current UTC time)

    Returns:
        List of expired booking IDs
    """
    now_str = format_timestamp(now or utc_now())

    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT id FROM bookings
        WHERE status = ? AND scheduled_start < ?
        ORDER BY scheduled_start
    ''', (S.PENDING_DEPOSIT.value, now_str))
    candidate_ids = [row['id'] for row in cursor.fetchall()]

    expired = []
    for booking_id in candidate_ids:
        try:
            transition_booking_status(
                booking_id, S.EXPIRED,
                actor_type='system',
                reason='Deposit not received before the trip start',
                expected_status=S.PENDING_DEPOSIT
            )
            expired.append(booking_id)
        except InvalidTransitionError:
            # Deposit arrived or captain cancelled while sweeping
            logger.info(f"Booking {booking_id} changed during expiry sweep, skipped")

    if expired:
        logger.info(f"Expired {len(expired)} overdue booking(s)")
    return expired
