"""
Guest API routes.
Booking view, reschedule responses, the slot picker and public booking creation.
"""

from flask import current_app, request

from models.booking import (
    create_booking, get_reschedule_offers, select_reschedule_offer,
    request_different_dates, get_available_slots
)
from models.errors import BookingError
from utils.api_response import api_success, api_error, api_booking_error
from utils.decorators import guest_token_required, json_body_required
from utils.messages import MESSAGES
from utils.validators import parse_positive_int

# Fields a guest may see on their own booking
GUEST_FIELDS = (
    'id', 'guest_name', 'guest_email', 'guest_phone', 'party_size',
    'scheduled_start', 'scheduled_end', 'status', 'payment_status',
    'total_price_cents', 'deposit_paid_cents', 'balance_due_cents',
    'weather_hold_reason', 'original_start', 'original_end', 'special_requests',
)


def guest_view(booking: dict) -> dict:
    """Booking as shown to its guest (no internal notes or tags)."""
    view = {key: booking.get(key) for key in GUEST_FIELDS}
    view['vessel'] = {'name': (booking.get('vessel') or {}).get('name')}
    view['trip_type'] = {'title': (booking.get('trip_type') or {}).get('title')}
    return view


def _open_offers(booking_id: int) -> list:
    return [
        {
            'id': offer['id'],
            'proposed_start': offer['proposed_start'],
            'proposed_end': offer['proposed_end'],
            'expires_at': offer['expires_at'],
            'is_selected': offer['is_selected'],
            'is_expired': offer['is_expired'],
        }
        for offer in get_reschedule_offers(booking_id)
    ]


def register_routes(bp):
    """Register guest routes on the blueprint."""

    @bp.route('/<token>', methods=['GET'])
    @guest_token_required
    def view_booking(booking):
        """The guest's booking."""
        return api_success(data=guest_view(booking))

    @bp.route('/<token>/reschedule', methods=['GET'])
    @guest_token_required
    def view_reschedule_options(booking):
        """Weather hold details and the options on offer."""
        return api_success(data={
            'booking': guest_view(booking),
            'offers': _open_offers(booking['id']),
        })

    @bp.route('/<token>/reschedule/select', methods=['POST'])
    @guest_token_required
    @json_body_required
    def select_option(booking):
        """
        Pick one of the offered times.

        Request body:
            offer_id: Offer ID
        """
        offer_id = request.get_json().get('offer_id')
        if offer_id is None:
            return api_error(MESSAGES['offer_id_required'], status=400, code='VALIDATION')
        try:
            offer_id = parse_positive_int(offer_id, 'offer_id')
        except ValueError as e:
            return api_error(str(e), status=400, code='VALIDATION')
        try:
            updated = select_reschedule_offer(
                booking['id'], offer_id,
                actor_type='guest', actor_id=booking['guest_email']
            )
        except BookingError as e:
            return api_booking_error(e)
        return api_success(data=guest_view(updated), message=MESSAGES['offer_selected'])

    @bp.route('/<token>/reschedule/request', methods=['POST'])
    @guest_token_required
    @json_body_required
    def ask_for_other_dates(booking):
        """
        None of the options work; tell the captain what would.

        Request body:
            message: Preferred dates or other notes (max 500 characters)
        """
        try:
            request_different_dates(
                booking['id'], request.get_json().get('message'),
                actor_type='guest', actor_id=booking['guest_email']
            )
        except BookingError as e:
            return api_booking_error(e)
        return api_success(message=MESSAGES['dates_requested'])

    @bp.route('/slots/<int:captain_id>/<int:trip_type_id>', methods=['GET'])
    def available_slots(captain_id, trip_type_id):
        """
        Bookable start times for a trip type on one date.

        Query params:
            date: Local date YYYY-MM-DD (required)
            vessel_id: Only this vessel (optional)
        """
        vessel_id = request.args.get('vessel_id')
        try:
            if vessel_id is not None:
                vessel_id = parse_positive_int(vessel_id, 'vessel_id')
            data = get_available_slots(captain_id, trip_type_id, request.args.get('date'), vessel_id)
        except BookingError as e:
            return api_booking_error(e)
        except ValueError as e:
            return api_error(str(e), status=400, code='VALIDATION')
        return api_success(data=data)

    @bp.route('/book/<int:captain_id>', methods=['POST'])
    @json_body_required
    def book_trip(captain_id):
        """
        Public booking form submission.

        Request body:
            vessel_id, trip_type_id, guest_name, guest_email, guest_phone,
            party_size, scheduled_start, scheduled_end (optional),
            special_requests

        Returns:
            JSON with the booking and its management token
        """
        data = request.get_json()
        try:
            booking = create_booking(
                captain_id=captain_id,
                vessel_id=data.get('vessel_id'),
                trip_type_id=data.get('trip_type_id'),
                guest_name=data.get('guest_name'),
                guest_email=data.get('guest_email'),
                guest_phone=data.get('guest_phone'),
                party_size=data.get('party_size'),
                scheduled_start=data.get('scheduled_start'),
                scheduled_end=data.get('scheduled_end'),
                special_requests=data.get('special_requests'),
                actor_type='guest',
                actor_id=data.get('guest_email')
            )
        except BookingError as e:
            return api_booking_error(e)

        current_app.logger.info(f"Guest booking {booking['id']} created for captain {captain_id}")
        return api_success(
            data=guest_view(booking),
            message=MESSAGES['booking_created'],
            status=201,
            guest_token=booking['guest_token']
        )
