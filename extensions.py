"""
Flask extensions initialization.
Extensions are initialized here and then initialized with the app in app.py.
"""

from flask_login import LoginManager
from flask_wtf.csrf import CSRFProtect

# Initialize Flask-Login
login_manager = LoginManager()

# Initialize CSRF Protection
csrf = CSRFProtect()

login_manager.login_message = 'Please sign in to manage your bookings'
login_manager.login_message_category = 'warning'


@login_manager.user_loader
def load_user(user_id):
    """
    Load captain by ID for Flask-Login.

    Args:
        user_id: The captain ID as a string

    Returns:
        Captain object or None if not found
    """
    from models.captain import get_captain_profile, Captain

    profile = get_captain_profile(int(user_id))
    if profile:
        return Captain(profile)
    return None


@login_manager.unauthorized_handler
def unauthorized():
    """Reject unauthenticated API calls with a JSON 401."""
    from utils.api_response import api_error
    return api_error('Authentication required', status=401)
