"""
Captain weather hold API routes.
Put trips on hold, send reschedule options, and clear holds.
"""

from flask import current_app, request
from flask_login import login_required, current_user

from models.booking import (
    get_booking_by_id, set_weather_hold, clear_weather_hold,
    create_reschedule_offers, generate_reschedule_slots, get_reschedule_offers
)
from models.errors import BookingError, NotFoundError
from utils.api_response import api_success, api_booking_error
from utils.decorators import json_body_required
from utils.messages import MESSAGES, get_message


def register_routes(bp):
    """Register weather hold routes on the blueprint."""

    @bp.route('/bookings/<int:booking_id>/weather-hold', methods=['POST'])
    @login_required
    @json_body_required
    def place_weather_hold(booking_id):
        """
        Put a booking on weather hold.

        Request body:
            reason: Why the trip cannot run (required)
            auto_generate_slots: Offer the same time on the next few weeks
            slots: Explicit options [{start, end}] (optional)
            expires_at: When the options lapse (optional)

        Returns:
            JSON with the booking and any offers sent
        """
        data = request.get_json()
        actor = {'actor_type': 'captain', 'actor_id': current_user.id}
        try:
            booking = set_weather_hold(booking_id, data.get('reason'), captain_id=current_user.id, **actor)

            slots = data.get('slots') or []
            if not slots and data.get('auto_generate_slots'):
                slots = generate_reschedule_slots(booking_id, captain_id=current_user.id)

            offers = []
            if slots:
                offers = create_reschedule_offers(
                    booking_id, slots, expires_at=data.get('expires_at'),
                    captain_id=current_user.id, **actor
                )
        except BookingError as e:
            return api_booking_error(e)

        current_app.logger.info(f"Booking {booking_id} on weather hold with {len(offers)} offer(s)")
        return api_success(
            data={'booking': booking, 'offers': offers},
            message=MESSAGES['weather_hold_set']
        )

    @bp.route('/bookings/<int:booking_id>/weather-hold', methods=['DELETE'])
    @login_required
    def remove_weather_hold(booking_id):
        """Weather cleared: confirm the trip on its current slot."""
        try:
            booking = clear_weather_hold(
                booking_id, captain_id=current_user.id,
                actor_type='captain', actor_id=current_user.id
            )
        except BookingError as e:
            return api_booking_error(e)
        return api_success(data=booking, message=MESSAGES['weather_hold_cleared'])

    @bp.route('/bookings/<int:booking_id>/reschedule-offers', methods=['GET'])
    @login_required
    def list_reschedule_offers(booking_id):
        """
        Offers for a booking.

        Query params:
            includeSuperseded: Also return offers from earlier holds
        """
        if not get_booking_by_id(booking_id, captain_id=current_user.id):
            return api_booking_error(NotFoundError(MESSAGES['booking_not_found']))

        include = request.args.get('includeSuperseded', 'false').lower() in ('1', 'true', 'yes')
        return api_success(data=get_reschedule_offers(booking_id, include_superseded=include))

    @bp.route('/bookings/<int:booking_id>/reschedule-offers', methods=['POST'])
    @login_required
    @json_body_required
    def send_reschedule_offers(booking_id):
        """
        Send alternative slots to the guest of a held booking.

        Request body:
            slots: [{start, end}] (end defaults to the trip's length)
            expires_at: When the options lapse (optional)
        """
        data = request.get_json()
        try:
            offers = create_reschedule_offers(
                booking_id, data.get('slots'),
                expires_at=data.get('expires_at'),
                captain_id=current_user.id,
                actor_type='captain',
                actor_id=current_user.id
            )
        except BookingError as e:
            return api_booking_error(e)

        return api_success(
            data=offers,
            message=get_message('offers_sent', count=len(offers)),
            status=201
        )

    @bp.route('/bookings/<int:booking_id>/reschedule-suggestions', methods=['GET'])
    @login_required
    def suggest_reschedule_slots(booking_id):
        """
        Legal slots at the same weekday and time in the following weeks.

        Query params:
            weeks: How many weeks ahead to look (1-8, default 3)
        """
        weeks = request.args.get('weeks', type=int)
        if weeks is not None:
            weeks = max(1, min(weeks, 8))
        try:
            slots = generate_reschedule_slots(booking_id, weeks=weeks, captain_id=current_user.id)
        except BookingError as e:
            return api_booking_error(e)
        return api_success(data=slots)
