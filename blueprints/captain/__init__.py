"""
Captain blueprint initialization.
Assembles the captain JSON API from route modules:
- bookings.py - Booking list, create, edit, status, payments, logbook
- weather.py - Weather hold and reschedule offers
- schedule.py - Weekly availability, blackout dates, availability checks
- exports.py - Excel export of the booking list

Every route requires a signed-in captain and only sees that captain's data.
"""

from flask import Blueprint

captain_bp = Blueprint('captain', __name__)

from blueprints.captain import bookings, weather, schedule, exports  # noqa: E402

bookings.register_routes(captain_bp)
weather.register_routes(captain_bp)
schedule.register_routes(captain_bp)
exports.register_routes(captain_bp)
