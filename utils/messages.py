"""
Centralized user-facing messages.
Confirmation and error text returned by the JSON API.
"""

MESSAGES = {
    # Success messages
    'login_success': 'Welcome aboard, {name}',
    'logout_success': 'Signed out',
    'profile_updated': 'Settings saved',
    'booking_created': 'Booking created',
    'booking_updated': 'Booking updated',
    'status_updated': 'Booking is now {status}',
    'payment_recorded': 'Payment recorded',
    'note_added': 'Note added to the logbook',
    'weather_hold_set': 'Booking placed on weather hold',
    'weather_hold_cleared': 'Weather hold cleared',
    'offers_sent': '{count} reschedule option(s) sent to the guest',
    'offer_selected': 'Your trip has been moved to the new time',
    'dates_requested': 'Your request has been sent to the captain',
    'availability_saved': 'Weekly availability saved',
    'blackout_added': 'Date blocked',
    'blackout_removed': 'Date unblocked',

    # Error messages
    'invalid_credentials': 'Invalid email or password',
    'request_body_required': 'Request body required',
    'booking_not_found': 'Booking not found',
    'blackout_not_found': 'Blackout date not found',
    'link_invalid': 'This booking link is invalid or has expired',
    'offer_id_required': 'offer_id is required',
    'status_required': 'status is required',
    'internal_error': 'Something went wrong. Please try again.',
}


def get_message(key: str, **kwargs) -> str:
    """
    Get a message by key with optional formatting.

    Args:
        key: Message key
        **kwargs: Format arguments

    Returns:
        Formatted message string
    """
    message = MESSAGES.get(key, key)
    if kwargs:
        return message.format(**kwargs)
    return message
