"""
Route decorators for guest access and request parsing.
"""

from functools import wraps
from flask import g, request

from utils.api_response import api_error
from utils.messages import MESSAGES


def guest_token_required(func):
    """
    Resolve the <token> URL segment to a booking.

    The booking is stored on g.guest_booking and the wrapped view receives
    it instead of the raw token. Unknown or expired tokens get a 404.

    Usage:
        @bp.route('/<token>')
        @guest_token_required
        def view_booking(booking):
            ...
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        from models.guest_token import get_booking_by_token

        token = kwargs.pop('token', None)
        booking = get_booking_by_token(token)
        if not booking:
            return api_error(MESSAGES['link_invalid'], status=404, code='NOT_FOUND')

        g.guest_booking = booking
        return func(booking, *args, **kwargs)
    return wrapper


def json_body_required(func):
    """Reject requests without a JSON object body."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return api_error(MESSAGES['request_body_required'], status=400, code='VALIDATION')
        return func(*args, **kwargs)
    return wrapper
