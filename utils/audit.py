"""
Booking change logging helpers.
Resolves who made a change and hands the entry to the booking log.
"""

import logging
from flask import has_request_context
from flask_login import current_user

logger = logging.getLogger(__name__)


def resolve_actor(actor_type: str = None, actor_id=None) -> tuple:
    """
    Work out the actor for a log entry.

    An explicit actor wins. Otherwise the signed-in captain is used, and
    anything outside a request (CLI, scheduled sweeps) is the system.

    Returns:
        Tuple of (actor_type, actor_id)
    """
    if actor_type:
        return actor_type, actor_id

    if has_request_context():
        if hasattr(current_user, 'is_authenticated') and current_user.is_authenticated:
            return 'captain', current_user.id

    return 'system', None


def log_booking_change(
    booking_id: int,
    entry_type: str,
    description: str,
    old_value: dict = None,
    new_value: dict = None,
    actor_type: str = None,
    actor_id=None
) -> int:
    """
    Log a booking change on behalf of the current actor.

    Never raises: history is best effort.

    Args:
        booking_id: Booking ID
        entry_type: Log entry type (status_changed, rescheduled, ...)
        description: Human-readable summary
        old_value: Snapshot before the change
        new_value: Snapshot after the change
        actor_type: Override actor type ('captain', 'guest', 'system')
        actor_id: Override actor ID

    Returns:
        New log entry ID, or None if logging failed

    Example:
        log_booking_change(
            booking_id=12,
            entry_type='status_changed',
            description='Status changed from confirmed to cancelled',
            old_value={'status': 'confirmed'},
            new_value={'status': 'cancelled'}
        )
    """
    try:
        from models.booking_log import record_booking_log

        actor_type, actor_id = resolve_actor(actor_type, actor_id)

        return record_booking_log(
            booking_id=booking_id,
            entry_type=entry_type,
            description=description,
            old_value=old_value,
            new_value=new_value,
            actor_type=actor_type,
            actor_id=actor_id
        )

    except Exception as e:
        logger.error(f"Failed to log booking change: {e}", exc_info=True)
        return None


__all__ = ['log_booking_change', 'resolve_actor']
