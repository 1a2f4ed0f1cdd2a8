"""
Captain booking API routes.
List, create, read, edit, status changes, payments and the logbook.
"""

from flask import request
from flask_login import login_required, current_user

from models.booking import (
    BookingStatus, get_allowed_transitions, list_bookings, create_booking,
    get_booking_by_id, update_booking, transition_booking_status,
    set_weather_hold, clear_weather_hold, mark_deposit_paid, mark_fully_paid,
    record_payment_status, get_booking_logs, add_booking_note
)
from models.errors import BookingError, NotFoundError, ValidationError
from utils.api_response import api_success, api_error, api_booking_error
from utils.decorators import json_body_required
from utils.messages import MESSAGES, get_message


# =============================================================================
# REQUEST PARSING
# =============================================================================

def get_list_arg(name: str) -> list:
    """
    Read a multi-valued query parameter.

    Accepts repeated keys (?status=a&status=b), the bracket form
    (?status[]=a) and comma-separated values (?status=a,b).
    """
    values = request.args.getlist(name) + request.args.getlist(f'{name}[]')
    result = []
    for value in values:
        result.extend(v.strip() for v in value.split(',') if v.strip())
    return result


def parse_list_filters(args) -> dict:
    """Map booking list query parameters onto list_bookings arguments."""
    return {
        'start_date': args.get('startDate') or None,
        'end_date': args.get('endDate') or None,
        'statuses': get_list_arg('status') or None,
        'payment_statuses': get_list_arg('paymentStatus') or None,
        'tags': get_list_arg('tags') or None,
        'vessel_id': args.get('vesselId', type=int),
        'search': args.get('search') or None,
        'include_historical': args.get('includeHistorical', 'false').lower() in ('1', 'true', 'yes'),
    }


def _owned_booking(booking_id: int) -> dict:
    booking = get_booking_by_id(booking_id, captain_id=current_user.id)
    if not booking:
        raise NotFoundError(MESSAGES['booking_not_found'])
    return booking


def _with_transitions(booking: dict) -> dict:
    booking['allowed_transitions'] = get_allowed_transitions(booking['status'])
    return booking


def register_routes(bp):
    """Register captain booking routes on the blueprint."""

    @bp.route('/bookings', methods=['GET'])
    @login_required
    def list_captain_bookings():
        """
        List the captain's bookings.

        Query params:
            startDate, endDate: YYYY-MM-DD, inclusive, captain's timezone
            status, paymentStatus, tags: multi-valued filters
            vesselId: Only this vessel
            search: Guest name / email / phone substring
            sortField: scheduled_start | guest_name | status | created_at
            sortDir: asc | desc
            cursor: Cursor from the previous page
            page: Page number (switches to offset pagination)
            limit: Page size (max 100)
            includeHistorical: Include completed/cancelled/no-show/expired

        Returns:
            JSON page of bookings
        """
        try:
            result = list_bookings(
                captain_id=current_user.id,
                sort_field=request.args.get('sortField', 'scheduled_start'),
                sort_dir=request.args.get('sortDir', 'asc'),
                cursor=request.args.get('cursor') or None,
                page=request.args.get('page') or None,
                limit=request.args.get('limit') or None,
                **parse_list_filters(request.args)
            )
        except BookingError as e:
            return api_booking_error(e)

        return api_success(data=result)

    @bp.route('/bookings', methods=['POST'])
    @login_required
    @json_body_required
    def create_captain_booking():
        """
        Create a booking for a guest.

        Request body:
            vessel_id, trip_type_id (optional), guest_name, guest_email,
            guest_phone (optional), party_size, scheduled_start,
            scheduled_end (optional with a trip type), special_requests,
            captain_notes, tags

        Returns:
            JSON with the created booking and the guest management token
        """
        data = request.get_json()
        try:
            booking = create_booking(
                captain_id=current_user.id,
                vessel_id=data.get('vessel_id'),
                trip_type_id=data.get('trip_type_id'),
                guest_name=data.get('guest_name'),
                guest_email=data.get('guest_email'),
                guest_phone=data.get('guest_phone'),
                party_size=data.get('party_size'),
                scheduled_start=data.get('scheduled_start'),
                scheduled_end=data.get('scheduled_end'),
                special_requests=data.get('special_requests'),
                captain_notes=data.get('captain_notes'),
                tags=data.get('tags'),
                actor_type='captain',
                actor_id=current_user.id
            )
        except BookingError as e:
            return api_booking_error(e)

        guest_token = booking.pop('guest_token', None)
        return api_success(
            data=_with_transitions(booking),
            message=MESSAGES['booking_created'],
            status=201,
            booking_id=booking['id'],
            guest_token=guest_token
        )

    @bp.route('/bookings/<int:booking_id>', methods=['GET'])
    @login_required
    def get_captain_booking(booking_id):
        """Get one booking with the statuses it can move to."""
        try:
            booking = _owned_booking(booking_id)
        except BookingError as e:
            return api_booking_error(e)
        return api_success(data=_with_transitions(booking))

    @bp.route('/bookings/<int:booking_id>', methods=['PATCH'])
    @login_required
    @json_body_required
    def edit_captain_booking(booking_id):
        """
        Edit guest details, notes, tags, party size or schedule.

        Terminal bookings cannot be edited.
        """
        data = request.get_json()
        reserved = sorted({'id', 'booking_id', 'captain_id', 'actor_type', 'actor_id'} & set(data))
        if reserved:
            return api_error(f"Cannot edit {', '.join(reserved)}", status=400, code='VALIDATION')
        try:
            booking = update_booking(
                booking_id,
                captain_id=current_user.id,
                actor_type='captain',
                actor_id=current_user.id,
                **data
            )
        except BookingError as e:
            return api_booking_error(e)
        return api_success(data=_with_transitions(booking), message=MESSAGES['booking_updated'])

    @bp.route('/bookings/<int:booking_id>/status', methods=['POST'])
    @login_required
    @json_body_required
    def change_booking_status(booking_id):
        """
        Move a booking to a new status.

        Request body:
            status: Target status
            reason: Optional note (required for weather_hold)

        A weather hold goes through the hold workflow, and leaving weather
        hold for confirmed retires outstanding offers. Rescheduled is only
        reached by the guest picking an offer.
        """
        data = request.get_json()
        target = data.get('status')
        reason = data.get('reason')
        if not target:
            return api_error(MESSAGES['status_required'], status=400, code='VALIDATION')

        actor = {'actor_type': 'captain', 'actor_id': current_user.id}
        try:
            booking = _owned_booking(booking_id)
            try:
                target = BookingStatus(target)
            except ValueError:
                raise ValidationError(f"Unknown booking status: {target}")

            if target == BookingStatus.RESCHEDULED:
                raise ValidationError('Send reschedule options; the guest picks the new time')
            if target == BookingStatus.WEATHER_HOLD:
                booking = set_weather_hold(booking_id, reason, captain_id=current_user.id, **actor)
            elif target == BookingStatus.CONFIRMED and booking['status'] == BookingStatus.WEATHER_HOLD.value:
                booking = clear_weather_hold(booking_id, captain_id=current_user.id, **actor)
            else:
                booking = transition_booking_status(booking_id, target, reason=reason, **actor)
        except BookingError as e:
            return api_booking_error(e)

        return api_success(
            data=_with_transitions(booking),
            message=get_message('status_updated', status=booking['status'])
        )

    @bp.route('/bookings/<int:booking_id>/payment', methods=['POST'])
    @login_required
    @json_body_required
    def record_booking_payment(booking_id):
        """
        Record a payment update.

        Request body:
            payment_status: deposit_paid | fully_paid | partially_refunded |
                fully_refunded | pending_verification | unpaid
            amount_cents: Deposit amount (deposit_paid only, optional)
            deposit_paid_cents, balance_due_cents: Explicit totals (optional)
        """
        data = request.get_json()
        payment_status = data.get('payment_status')
        actor = {'actor_type': 'captain', 'actor_id': current_user.id}
        try:
            _owned_booking(booking_id)
            if payment_status == 'deposit_paid':
                booking = mark_deposit_paid(booking_id, amount_cents=data.get('amount_cents'), **actor)
            elif payment_status == 'fully_paid':
                booking = mark_fully_paid(booking_id, **actor)
            else:
                booking = record_payment_status(
                    booking_id, payment_status,
                    deposit_paid_cents=data.get('deposit_paid_cents'),
                    balance_due_cents=data.get('balance_due_cents'),
                    **actor
                )
        except BookingError as e:
            return api_booking_error(e)

        return api_success(data=_with_transitions(booking), message=MESSAGES['payment_recorded'])

    @bp.route('/bookings/<int:booking_id>/logs', methods=['GET'])
    @login_required
    def booking_logbook(booking_id):
        """Booking history, newest first."""
        try:
            _owned_booking(booking_id)
        except BookingError as e:
            return api_booking_error(e)
        return api_success(data=get_booking_logs(booking_id, entry_type=request.args.get('type')))

    @bp.route('/bookings/<int:booking_id>/notes', methods=['POST'])
    @login_required
    @json_body_required
    def add_logbook_note(booking_id):
        """Add a free-text note to the booking logbook."""
        data = request.get_json()
        try:
            log_id = add_booking_note(
                booking_id, data.get('note'),
                captain_id=current_user.id,
                actor_type='captain',
                actor_id=current_user.id
            )
        except BookingError as e:
            return api_booking_error(e)
        return api_success(data={'id': log_id}, message=MESSAGES['note_added'], status=201)
