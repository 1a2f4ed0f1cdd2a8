"""
Standardized API response helpers.

Provides consistent JSON response format across all API endpoints:

    Success:  {"success": true, "data": {...}, "message": "..."}
    Error:    {"success": false, "error": "Human-readable message", "code": "..."}

Usage:
    from utils.api_response import api_success, api_error, api_booking_error

    return api_success(data={'id': 1}, message='Booking created', status=201)
    return api_error('Request body required', status=400)

    try:
        ...
    except BookingError as e:
        return api_booking_error(e)
"""

from flask import jsonify
from typing import Any


def api_success(
    data: Any = None,
    message: str | None = None,
    status: int = 200,
    **extra_fields: Any
) -> tuple:
    """
    Build a standardized success JSON response.

    Args:
        data: Payload for the 'data' key (dict or list).
        message: Optional confirmation message.
        status: HTTP status code (default 200).
        **extra_fields: Additional top-level fields (e.g., guest_token).

    Returns:
        Tuple of (Response, status_code)
    """
    response = {'success': True}

    if data is not None:
        response['data'] = data

    if message:
        response['message'] = message

    if extra_fields:
        response.update(extra_fields)

    return jsonify(response), status


def api_error(error: str, status: int = 400, **extra_fields: Any) -> tuple:
    """
    Build a standardized error JSON response.

    Args:
        error: Human-readable error message.
        status: HTTP status code (default 400).
        **extra_fields: Additional top-level fields (e.g., code, conflicts).

    Returns:
        Tuple of (Response, status_code)
    """
    response = {'success': False, 'error': error}

    if extra_fields:
        response.update(extra_fields)

    return jsonify(response), status


def api_booking_error(exc) -> tuple:
    """
    Turn a BookingError into an error response.

    The HTTP status comes from the exception class (400 validation,
    404 not found, 409 availability/conflict/transition/offer,
    500 storage).

    Args:
        exc: BookingError instance

    Returns:
        Tuple of (Response, status_code)
    """
    details = exc.to_dict()
    message = details.pop('message')
    return api_error(message, status=exc.status, **details)
