"""
Authentication routes: login, logout, current captain.
Session-based sign-in for captains using the JSON API.
"""

from flask import request, Blueprint
from flask_login import login_user, logout_user, login_required, current_user
from flask_wtf.csrf import generate_csrf

from models.captain import authenticate_captain, Captain
from utils.api_response import api_success, api_error
from utils.messages import MESSAGES, get_message

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/csrf-token')
def csrf_token():
    """
    Issue a CSRF token for the session.

    Clients send it back in the X-CSRFToken header on captain writes.
    """
    return api_success(data={'csrf_token': generate_csrf()})


@auth_bp.route('/login', methods=['POST'])
def login():
    """
    Sign a captain in.

    Request body:
        email: Captain email
        password: Password
        remember: Keep the session after the browser closes (optional)

    Returns:
        JSON with the captain profile
    """
    data = request.get_json(silent=True) or {}

    profile = authenticate_captain(data.get('email', ''), data.get('password', ''))
    if profile is None:
        return api_error(MESSAGES['invalid_credentials'], status=401, code='INVALID_CREDENTIALS')

    login_user(Captain(profile), remember=bool(data.get('remember')))
    return api_success(
        data=profile,
        message=get_message('login_success', name=profile.get('full_name') or profile['email'])
    )


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    """Sign the current captain out."""
    logout_user()
    return api_success(message=MESSAGES['logout_success'])


@auth_bp.route('/me')
@login_required
def me():
    """Profile of the signed-in captain."""
    from models.captain import get_captain_profile
    return api_success(data=get_captain_profile(current_user.id))


@auth_bp.route('/me', methods=['PATCH'])
@login_required
def update_me():
    """
    Update booking settings of the signed-in captain.

    Request body (all optional):
        full_name, business_name, timezone, booking_buffer_minutes,
        advance_booking_days, is_hibernating, hibernation_message
    """
    from models.captain import get_captain_profile, update_captain_profile

    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return api_error(MESSAGES['request_body_required'], status=400, code='VALIDATION')

    try:
        update_captain_profile(current_user.id, **data)
    except (TypeError, ValueError) as e:
        return api_error(str(e), status=400, code='VALIDATION')

    return api_success(data=get_captain_profile(current_user.id), message=MESSAGES['profile_updated'])
