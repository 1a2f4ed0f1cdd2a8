"""
Guest blueprint initialization.
Token-authenticated routes a guest reaches from the link in their
confirmation: view the booking, answer a weather hold, and the public
booking form endpoint.
"""

from flask import Blueprint

from extensions import csrf

guest_bp = Blueprint('guest', __name__)

# Guests have no session; the management token is the credential
csrf.exempt(guest_bp)

from blueprints.guest import routes  # noqa: E402

routes.register_routes(guest_bp)
