"""
Booking notification dispatcher.

Delivery (email, SMS) lives outside this app. Handlers are registered on the
Flask app and receive every booking event after the change is committed.
A failing handler is logged and skipped.

Usage:
    from utils.notifications import register_notification_handler

    def send_email(event_type, booking, payload):
        ...

    register_notification_handler(app, send_email)
"""

import logging
from flask import current_app, has_app_context

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'booking_notification_handlers'

BOOKING_EVENTS = (
    'booking_created',
    'status_changed',
    'weather_hold_set',
    'reschedule_offers_created',
    'reschedule_selected',
    'guest_requested_dates',
    'payment_received',
)


def register_notification_handler(app, handler) -> None:
    """
    Register a callable(event_type, booking, payload) on the app.

    Args:
        app: Flask application
        handler: Callable invoked for every booking event
    """
    app.extensions.setdefault(EXTENSION_KEY, []).append(handler)


def get_notification_handlers() -> list:
    """Handlers registered on the current app."""
    if not has_app_context():
        return []
    return list(current_app.extensions.get(EXTENSION_KEY, []))


def dispatch_booking_event(event_type: str, booking: dict, **payload) -> int:
    """
    Hand a booking event to every registered handler.

    Args:
        event_type: One of BOOKING_EVENTS
        booking: Booking dict after the change
        **payload: Event-specific details (old_status, reason, message...)

    Returns:
        Number of handlers that ran without error
    """
    if event_type not in BOOKING_EVENTS:
        logger.warning(f"Dispatching unknown booking event '{event_type}'")

    delivered = 0
    for handler in get_notification_handlers():
        try:
            handler(event_type, booking, payload)
            delivered += 1
        except Exception as e:
            logger.error(
                f"Notification handler failed for {event_type} on booking "
                f"{booking.get('id') if booking else None}: {e}",
                exc_info=True
            )
    return delivered


def log_notification_handler(event_type: str, booking: dict, payload: dict) -> None:
    """Default handler: record the event in the application log."""
    logger.info(
        f"Booking event {event_type} for booking {booking.get('id')} "
        f"({booking.get('guest_email')}): {payload or ''}"
    )
