"""
Tests for booking creation, edits, notes and payments.
"""

import pytest


class TestCreateBooking:
    """Booking creation rules."""

    def test_no_deposit_trip_is_confirmed(self, captain, make_booking):
        """Trips without a deposit start confirmed."""
        booking = make_booking()

        assert booking['status'] == 'confirmed'
        assert booking['payment_status'] == 'unpaid'
        assert booking['total_price_cents'] == 20000
        assert booking['balance_due_cents'] == 20000
        assert booking['deposit_paid_cents'] == 0
        assert booking['trip_type']['title'] == 'Sunset Cruise'
        assert booking['vessel'] == {'id': captain['vessel_id'], 'name': 'Reel Time', 'capacity': 6}
        assert len(booking['guest_token']) == 64

    def test_deposit_trip_is_pending(self, captain, make_booking):
        """Trips with a deposit wait for it."""
        booking = make_booking(trip_type_id=captain['deposit_trip_id'], start='08:00', end='12:00')
        assert booking['status'] == 'pending_deposit'

    def test_end_defaults_to_trip_duration(self, captain, make_booking, trip_day, local_slot):
        """Without an end, the trip type's duration is used."""
        start, _ = local_slot(trip_day(2), '08:00', '09:00')
        expected_end = local_slot(trip_day(2), '12:00', '13:00')[0]

        booking = make_booking(scheduled_start=start, scheduled_end=None,
                               trip_type_id=captain['deposit_trip_id'])
        assert booking['scheduled_end'] == expected_end

    def test_guest_fields_normalized(self, make_booking):
        """Names are collapsed, emails lower-cased, tags de-duplicated."""
        booking = make_booking(guest_name='  Jane   Guest ', guest_email='Jane@Example.COM',
                               tags=['vip', ' vip ', 'repeat'])
        assert booking['guest_name'] == 'Jane Guest'
        assert booking['guest_email'] == 'jane@example.com'
        assert booking['tags'] == ['vip', 'repeat']

    def test_creation_logged(self, app, make_booking):
        """Creation writes a booking_created entry."""
        from models.booking import get_booking_logs

        booking = make_booking(actor_type='captain', actor_id=1)
        with app.app_context():
            logs = get_booking_logs(booking['id'])
        assert [log['entry_type'] for log in logs] == ['booking_created']
        assert logs[0]['new_value']['status'] == 'confirmed'

    @pytest.mark.parametrize('overrides, message', [
        ({'guest_name': ''}, 'Guest name is required'),
        ({'guest_email': 'not-an-email'}, 'Valid email is required'),
        ({'guest_phone': '12'}, 'Invalid phone number format'),
        ({'party_size': 0}, 'Party size must be a positive integer'),
        ({'party_size': 'four'}, 'Party size must be a positive integer'),
        ({'tags': 'vip'}, 'Tags must be a list'),
    ])
    def test_invalid_input(self, make_booking, overrides, message):
        """Bad guest input is rejected before anything is stored."""
        from models.errors import ValidationError

        with pytest.raises(ValidationError) as exc_info:
            make_booking(**overrides)
        assert str(exc_info.value) == message

    def test_past_start_rejected(self, make_booking):
        """Bookings must be in the future."""
        from models.errors import ValidationError

        with pytest.raises(ValidationError, match='future'):
            make_booking(scheduled_start='2020-01-01T10:00:00Z', scheduled_end='2020-01-01T12:00:00Z')

    def test_reversed_schedule_rejected(self, make_booking, trip_day, local_slot):
        """End must be after start."""
        from models.errors import ValidationError

        start, end = local_slot(trip_day(2), '10:00', '12:00')
        with pytest.raises(ValidationError, match='End time must be after start time'):
            make_booking(scheduled_start=end, scheduled_end=start)

    def test_capacity_enforced(self, make_booking):
        """Party size may not exceed the vessel capacity."""
        from models.errors import ValidationError

        with pytest.raises(ValidationError) as exc_info:
            make_booking(party_size=7)
        assert exc_info.value.code == 'CAPACITY'
        assert 'up to 6 passengers' in str(exc_info.value)

    def test_unknown_vessel(self, make_booking):
        """Vessels of other captains are not found."""
        from models.errors import NotFoundError

        with pytest.raises(NotFoundError):
            make_booking(vessel_id=9999)

    def test_outside_hours(self, make_booking, trip_day):
        """Captain hours are enforced with a readable reason."""
        from models.errors import AvailabilityError

        with pytest.raises(AvailabilityError) as exc_info:
            make_booking(day=trip_day(1))
        assert exc_info.value.reason == 'Not available on Mondays'
        assert exc_info.value.status == 409

    def test_overlap_rejected(self, make_booking):
        """Double-booking the vessel is refused and lists the conflict."""
        from models.errors import ConflictError

        existing = make_booking(start='10:00', end='12:00')
        with pytest.raises(ConflictError) as exc_info:
            make_booking(start='11:00', end='13:00')
        assert [c['id'] for c in exc_info.value.conflicts] == [existing['id']]
        assert exc_info.value.to_dict()['conflicts'][0]['id'] == existing['id']

    def test_hibernating_captain(self, app, captain, make_booking):
        """Hibernating captains take no bookings."""
        from models.captain import update_captain_profile
        from models.errors import ValidationError

        with app.app_context():
            update_captain_profile(captain['id'], is_hibernating=1,
                                   hibernation_message='Back in April')
        with pytest.raises(ValidationError) as exc_info:
            make_booking()
        assert exc_info.value.code == 'HIBERNATING'
        assert str(exc_info.value) == 'Back in April'

    def test_advance_window(self, app, captain, make_booking, trip_day):
        """Bookings too far ahead are refused."""
        from models.captain import update_captain_profile
        from models.errors import ValidationError

        with app.app_context():
            update_captain_profile(captain['id'], advance_booking_days=7)
        with pytest.raises(ValidationError, match='7 days in advance'):
            make_booking(day=trip_day(2, weeks_ahead=2))


class TestUpdateBooking:
    """Edits to existing bookings."""

    def test_edit_details(self, app, make_booking):
        """Guest details and tags can be edited and the change is logged."""
        from models.booking import update_booking, get_booking_logs

        booking = make_booking()
        with app.app_context():
            updated = update_booking(booking['id'], party_size=4, tags=['vip'], captain_notes='Bring bait')
            assert updated['party_size'] == 4
            assert updated['tags'] == ['vip']
            assert updated['captain_notes'] == 'Bring bait'

            log = get_booking_logs(booking['id'], entry_type='booking_updated')[0]
            assert log['old_value'] == {'party_size': 2, 'tags': [], 'captain_notes': None}
            assert log['new_value']['tags'] == ['vip']

    def test_no_change_is_noop(self, app, make_booking):
        """Submitting the current values writes nothing."""
        from models.booking import update_booking, get_booking_logs

        booking = make_booking()
        with app.app_context():
            update_booking(booking['id'], party_size=2, guest_name='Jane Guest')
            assert get_booking_logs(booking['id'], entry_type='booking_updated') == []

    def test_move_rechecks_schedule(self, app, make_booking, trip_day, local_slot):
        """Moving onto another booking conflicts; moving within its own slot does not."""
        from models.booking import update_booking
        from models.errors import ConflictError

        first = make_booking(start='10:00', end='12:00')
        make_booking(start='13:00', end='15:00')
        with app.app_context():
            start, end = local_slot(trip_day(2), '11:00', '13:00')
            moved = update_booking(first['id'], scheduled_start=start, scheduled_end=end)
            assert moved['scheduled_start'] == start

            start, end = local_slot(trip_day(2), '12:00', '14:00')
            with pytest.raises(ConflictError):
                update_booking(first['id'], scheduled_start=start, scheduled_end=end)

    def test_terminal_booking_immutable(self, app, make_booking):
        """Completed bookings cannot be edited."""
        from models.booking import complete_booking, update_booking
        from models.errors import ValidationError

        booking = make_booking()
        with app.app_context():
            complete_booking(booking['id'])
            with pytest.raises(ValidationError) as exc_info:
                update_booking(booking['id'], party_size=3)
            assert exc_info.value.code == 'IMMUTABLE'

    def test_unknown_field(self, app, make_booking):
        """Status and prices are not editable fields."""
        from models.booking import update_booking
        from models.errors import ValidationError

        booking = make_booking()
        with app.app_context():
            with pytest.raises(ValidationError, match='Cannot edit status'):
                update_booking(booking['id'], status='completed')

    def test_notes(self, app, make_booking):
        """Notes go to the logbook, empty notes are refused."""
        from models.booking import add_booking_note, get_booking_logs
        from models.errors import ValidationError

        booking = make_booking()
        with app.app_context():
            add_booking_note(booking['id'], 'Called guest about parking')
            assert get_booking_logs(booking['id'], entry_type='note_added')[0]['description'] == \
                'Called guest about parking'
            with pytest.raises(ValidationError):
                add_booking_note(booking['id'], '   ')

    def test_note_write_failure_raises(self, app, make_booking, monkeypatch):
        """A note that cannot be saved is an error, not a silent no-op."""
        from models.booking import add_booking_note
        from models.errors import StorageError

        booking = make_booking()
        monkeypatch.setattr('models.booking_crud.log_booking_change', lambda **kwargs: None)
        with app.app_context():
            with pytest.raises(StorageError):
                add_booking_note(booking['id'], 'Called guest about parking')


class TestPayments:
    """Deposit and payment reconciliation."""

    def test_deposit_confirms_booking(self, app, captain, make_booking):
        """Recording the deposit confirms a pending booking."""
        from models.booking import mark_deposit_paid, get_booking_logs

        booking = make_booking(trip_type_id=captain['deposit_trip_id'], start='08:00', end='12:00')
        with app.app_context():
            updated = mark_deposit_paid(booking['id'])
            assert updated['status'] == 'confirmed'
            assert updated['payment_status'] == 'deposit_paid'
            assert updated['deposit_paid_cents'] == 10000
            assert updated['balance_due_cents'] == 30000

            entry_types = {log['entry_type'] for log in get_booking_logs(booking['id'])}
            assert {'payment_received', 'status_changed'} <= entry_types

    def test_deposit_requires_pending(self, app, make_booking):
        """A confirmed booking cannot take a deposit transition."""
        from models.booking import mark_deposit_paid
        from models.errors import InvalidTransitionError

        booking = make_booking()
        with app.app_context():
            with pytest.raises(InvalidTransitionError):
                mark_deposit_paid(booking['id'], amount_cents=5000)

    def test_deposit_amount_validated(self, app, captain, make_booking):
        """Deposits above the total or non-numeric are refused."""
        from models.booking import mark_deposit_paid
        from models.errors import ValidationError

        booking = make_booking(trip_type_id=captain['deposit_trip_id'], start='08:00', end='12:00')
        with app.app_context():
            with pytest.raises(ValidationError):
                mark_deposit_paid(booking['id'], amount_cents=50000)
            with pytest.raises(ValidationError):
                mark_deposit_paid(booking['id'], amount_cents='lots')

    def test_fully_paid(self, app, make_booking):
        """Full payment zeroes the balance without touching status."""
        from models.booking import mark_fully_paid

        booking = make_booking()
        with app.app_context():
            updated = mark_fully_paid(booking['id'])
        assert updated['payment_status'] == 'fully_paid'
        assert updated['balance_due_cents'] == 0
        assert updated['status'] == 'confirmed'

    def test_refund_on_cancelled_booking(self, app, make_booking):
        """Refunds are recorded after cancellation and logged as refunds."""
        from models.booking import cancel_booking, record_payment_status, get_booking_logs

        booking = make_booking()
        with app.app_context():
            cancel_booking(booking['id'])
            updated = record_payment_status(booking['id'], 'fully_refunded', balance_due_cents=0)
            assert updated['payment_status'] == 'fully_refunded'
            assert get_booking_logs(booking['id'], entry_type='payment_refunded')

    def test_unknown_payment_status(self, app, make_booking):
        """Unknown payment statuses are refused."""
        from models.booking import record_payment_status
        from models.errors import ValidationError

        booking = make_booking()
        with app.app_context():
            with pytest.raises(ValidationError):
                record_payment_status(booking['id'], 'bartered')
