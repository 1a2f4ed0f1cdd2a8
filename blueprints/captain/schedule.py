"""
Captain schedule API routes.
Weekly availability, blackout dates, fleet lists and availability checks.
"""

from flask import request
from flask_login import login_required, current_user

from models.availability_window import get_captain_windows, replace_weekly_availability
from models.blackout_date import get_blackout_dates, add_blackout_date, delete_blackout_date
from models.booking import is_available, find_conflicts, get_date_range_availability
from models.booking_conflicts import captain_buffer_minutes
from models.captain import get_captain_profile
from models.errors import BookingError
from models.trip_type import get_captain_trip_types
from models.vessel import get_vessel_by_id, get_captain_vessels
from utils.api_response import api_success, api_error, api_booking_error
from utils.decorators import json_body_required
from utils.messages import MESSAGES
from utils.validators import parse_positive_int, validate_date_format


def register_routes(bp):
    """Register schedule routes on the blueprint."""

    @bp.route('/availability', methods=['GET'])
    @login_required
    def weekly_availability():
        """The captain's weekly windows (0 = Sunday)."""
        return api_success(data=get_captain_windows(current_user.id))

    @bp.route('/availability', methods=['PUT'])
    @login_required
    @json_body_required
    def save_weekly_availability():
        """
        Replace the captain's weekly windows.

        Request body:
            windows: [{day_of_week, start_time, end_time, is_active}]
        """
        windows = request.get_json().get('windows')
        if not isinstance(windows, list):
            return api_error('windows must be a list', status=400, code='VALIDATION')
        try:
            saved = replace_weekly_availability(current_user.id, windows)
        except ValueError as e:
            return api_error(str(e), status=400, code='VALIDATION')
        return api_success(data=saved, message=MESSAGES['availability_saved'])

    @bp.route('/availability/check', methods=['POST'])
    @login_required
    @json_body_required
    def check_availability():
        """
        Check a proposed time before booking it.

        Request body:
            scheduled_start, scheduled_end: Proposed range
            vessel_id: Also check the vessel for conflicts (optional)
            exclude_booking_id: Booking being moved (optional)

        Returns:
            JSON with available, reason and conflicts
        """
        data = request.get_json()
        try:
            result = is_available(current_user.id, data.get('scheduled_start'), data.get('scheduled_end'))
            conflicts = []
            if data.get('vessel_id') is not None:
                vessel = get_vessel_by_id(parse_positive_int(data['vessel_id'], 'vessel_id'))
                if not vessel or vessel['owner_id'] != current_user.id:
                    return api_error('Vessel not found', status=404, code='NOT_FOUND')
                conflicts = find_conflicts(
                    vessel['id'], data.get('scheduled_start'), data.get('scheduled_end'),
                    exclude_booking_id=data.get('exclude_booking_id'),
                    buffer_minutes=captain_buffer_minutes(get_captain_profile(current_user.id))
                )
        except BookingError as e:
            return api_booking_error(e)
        except ValueError as e:
            return api_error(str(e), status=400, code='VALIDATION')

        return api_success(data={
            'available': result['available'] and not conflicts,
            'reason': result['reason'] or ('This vessel is already booked for that time' if conflicts else None),
            'conflicts': [
                {'id': c['id'], 'scheduled_start': c['scheduled_start'],
                 'scheduled_end': c['scheduled_end'], 'status': c['status']}
                for c in conflicts
            ],
        })

    @bp.route('/availability/calendar', methods=['GET'])
    @login_required
    def availability_calendar():
        """
        Which dates can take bookings.

        Query params:
            start: First date YYYY-MM-DD (required)
            days: Number of days (default 30)
        """
        try:
            data = get_date_range_availability(
                current_user.id, request.args.get('start'),
                days=request.args.get('days', 30, type=int)
            )
        except BookingError as e:
            return api_booking_error(e)
        return api_success(data=data)

    @bp.route('/blackout-dates', methods=['GET'])
    @login_required
    def list_blackout_dates():
        """Blocked dates, optionally within ?start=&end=."""
        start = request.args.get('start')
        end = request.args.get('end')
        for value in (start, end):
            if value and not validate_date_format(value):
                return api_error('Dates must be YYYY-MM-DD', status=400, code='VALIDATION')
        return api_success(data=get_blackout_dates(current_user.id, start, end))

    @bp.route('/blackout-dates', methods=['POST'])
    @login_required
    @json_body_required
    def create_blackout_date():
        """
        Block a date.

        Request body:
            date: YYYY-MM-DD
            reason: Optional note
        """
        data = request.get_json()
        try:
            blackout_id = add_blackout_date(current_user.id, data.get('date'), data.get('reason'))
        except ValueError as e:
            return api_error(str(e), status=400, code='VALIDATION')
        return api_success(data={'id': blackout_id}, message=MESSAGES['blackout_added'], status=201)

    @bp.route('/blackout-dates/<int:blackout_id>', methods=['DELETE'])
    @login_required
    def remove_blackout_date(blackout_id):
        """Unblock a date."""
        if not delete_blackout_date(current_user.id, blackout_id):
            return api_error(MESSAGES['blackout_not_found'], status=404, code='NOT_FOUND')
        return api_success(message=MESSAGES['blackout_removed'])

    @bp.route('/vessels', methods=['GET'])
    @login_required
    def list_vessels():
        """The captain's active vessels."""
        return api_success(data=get_captain_vessels(current_user.id))

    @bp.route('/trip-types', methods=['GET'])
    @login_required
    def list_trip_types():
        """The captain's active trip types."""
        return api_success(data=get_captain_trip_types(current_user.id))
