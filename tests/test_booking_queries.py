"""
Tests for booking reads and the paginated booking list.
"""

import pytest
from datetime import timedelta


@pytest.fixture
def three_bookings(make_booking):
    """Three bookings on the same day, in start order."""
    return [
        make_booking(start='08:00', end='09:00', guest_name='Carla Boat', guest_email='carla@example.com'),
        make_booking(start='10:00', end='11:00', guest_name='Abe Angler', guest_email='abe@example.com',
                     tags=['vip']),
        make_booking(start='12:00', end='13:00', guest_name='Bea Bass', guest_email='bea@example.com',
                     guest_phone='+1 305 555 0100', tags=['repeat', 'vip']),
    ]


class TestGetBooking:
    """Single booking reads."""

    def test_owner_scoped(self, app, captain, make_booking):
        """Other captains cannot read the booking."""
        from models.booking import get_booking_by_id

        booking = make_booking()
        with app.app_context():
            assert get_booking_by_id(booking['id'], captain_id=captain['id'])['id'] == booking['id']
            assert get_booking_by_id(booking['id'], captain_id=captain['id'] + 100) is None
            assert get_booking_by_id(9999) is None


class TestCursorPagination:
    """Keyset pagination over the booking list."""

    def test_two_pages(self, app, captain, three_bookings):
        """Limit 2 over three bookings gives two pages with no repeats."""
        from models.booking import list_bookings

        with app.app_context():
            first = list_bookings(captain['id'], limit=2)
            assert [b['id'] for b in first['items']] == [three_bookings[0]['id'], three_bookings[1]['id']]
            assert first['total_count'] == 3
            assert first['next_cursor']

            second = list_bookings(captain['id'], limit=2, cursor=first['next_cursor'])
            assert [b['id'] for b in second['items']] == [three_bookings[2]['id']]
            assert second['next_cursor'] is None

    def test_descending(self, app, captain, three_bookings):
        """Descending order pages backwards through time."""
        from models.booking import list_bookings

        with app.app_context():
            first = list_bookings(captain['id'], sort_dir='desc', limit=2)
            second = list_bookings(captain['id'], sort_dir='desc', limit=2, cursor=first['next_cursor'])
        ids = [b['id'] for b in first['items'] + second['items']]
        assert ids == [b['id'] for b in reversed(three_bookings)]

    def test_ties_broken_by_id(self, app, captain, three_bookings):
        """Equal sort values never repeat or skip across pages."""
        from models.booking import list_bookings

        seen = []
        with app.app_context():
            cursor = None
            while True:
                page = list_bookings(captain['id'], sort_field='status', limit=1, cursor=cursor)
                seen.extend(b['id'] for b in page['items'])
                cursor = page['next_cursor']
                if not cursor:
                    break
        assert seen == sorted(b['id'] for b in three_bookings)

    def test_bad_cursor(self, app, captain):
        """Garbage cursors are a validation error."""
        from models.booking import list_bookings
        from models.errors import ValidationError

        with app.app_context():
            with pytest.raises(ValidationError, match='Invalid cursor'):
                list_bookings(captain['id'], cursor='not-a-cursor!!')

    def test_cursor_with_object_value(self, app, captain, three_bookings):
        """A forged cursor with an object value is rejected, not sent to SQL."""
        from models.booking import list_bookings
        from models.errors import ValidationError
        from utils.cursor import encode_cursor

        with app.app_context():
            with pytest.raises(ValidationError, match='Invalid cursor'):
                list_bookings(captain['id'], cursor=encode_cursor('scheduled_start', {'x': 1}, 1))

    def test_cursor_field_mismatch(self, app, captain, three_bookings):
        """A cursor from one sort field cannot page another."""
        from models.booking import list_bookings
        from models.errors import ValidationError

        with app.app_context():
            first = list_bookings(captain['id'], limit=1)
            with pytest.raises(ValidationError):
                list_bookings(captain['id'], sort_field='guest_name', cursor=first['next_cursor'])

    def test_unknown_sort_field(self, app, captain):
        """Only known fields can be sorted on."""
        from models.booking import list_bookings
        from models.errors import ValidationError

        with app.app_context():
            with pytest.raises(ValidationError):
                list_bookings(captain['id'], sort_field='password_hash')


class TestOffsetPagination:
    """Page-number pagination."""

    def test_pages(self, app, captain, three_bookings):
        """Offset mode reports page counts."""
        from models.booking import list_bookings

        with app.app_context():
            page = list_bookings(captain['id'], page=2, limit=2)
        assert page['page'] == 2
        assert page['page_size'] == 2
        assert page['total_pages'] == 2
        assert page['total_count'] == 3
        assert [b['id'] for b in page['items']] == [three_bookings[2]['id']]

    def test_limit_clamped(self, app, captain, three_bookings):
        """Oversized limits are clamped to the maximum page size."""
        from models.booking import list_bookings

        app.config['MAX_PAGE_SIZE'] = 2
        with app.app_context():
            page = list_bookings(captain['id'], page=1, limit=500)
        assert page['page_size'] == 2


class TestFilters:
    """List filters."""

    def test_search(self, app, captain, three_bookings):
        """Search matches name, email or phone, case-insensitively."""
        from models.booking import list_bookings

        with app.app_context():
            assert [b['guest_name'] for b in list_bookings(captain['id'], search='ABE')['items']] == ['Abe Angler']
            assert [b['guest_name'] for b in list_bookings(captain['id'], search='555')['items']] == ['Bea Bass']
            assert list_bookings(captain['id'], search='100%')['items'] == []

    def test_tags(self, app, captain, three_bookings):
        """Tag filters match bookings carrying any listed tag."""
        from models.booking import list_bookings

        with app.app_context():
            vip = list_bookings(captain['id'], tags=['vip'])['items']
            repeat = list_bookings(captain['id'], tags=['repeat'])['items']
        assert {b['id'] for b in vip} == {three_bookings[1]['id'], three_bookings[2]['id']}
        assert [b['id'] for b in repeat] == [three_bookings[2]['id']]

    def test_sort_by_guest_name(self, app, captain, three_bookings):
        """Sorting by guest name."""
        from models.booking import list_bookings

        with app.app_context():
            names = [b['guest_name'] for b in list_bookings(captain['id'], sort_field='guest_name')['items']]
        assert names == ['Abe Angler', 'Bea Bass', 'Carla Boat']

    def test_historical_hidden_by_default(self, app, captain, three_bookings):
        """Terminal bookings only appear when asked for."""
        from models.booking import cancel_booking, list_bookings

        with app.app_context():
            cancel_booking(three_bookings[0]['id'])
            assert list_bookings(captain['id'])['total_count'] == 2
            assert list_bookings(captain['id'], include_historical=True)['total_count'] == 3
            cancelled = list_bookings(captain['id'], statuses=['cancelled'])['items']
            assert [b['id'] for b in cancelled] == [three_bookings[0]['id']]

    def test_unknown_status_filter(self, app, captain):
        """Unknown statuses in the filter are rejected."""
        from models.booking import list_bookings
        from models.errors import ValidationError

        with app.app_context():
            with pytest.raises(ValidationError):
                list_bookings(captain['id'], statuses=['sunk'])

    def test_date_range_uses_captain_timezone(self, app, captain, make_booking, trip_day):
        """An 8 PM trip falls on its local date even though it is the next day in UTC."""
        from models.booking import list_bookings

        evening = make_booking(start='20:00', end='21:00')
        day = trip_day(2)
        with app.app_context():
            same_day = list_bookings(captain['id'], start_date=day.isoformat(), end_date=day.isoformat())
            following = (day + timedelta(days=1)).isoformat()
            next_day = list_bookings(captain['id'], start_date=following, end_date=following)
        assert [b['id'] for b in same_day['items']] == [evening['id']]
        assert next_day['items'] == []

    def test_reversed_date_range(self, app, captain):
        """End date before start date is rejected."""
        from models.booking import list_bookings
        from models.errors import ValidationError

        with app.app_context():
            with pytest.raises(ValidationError):
                list_bookings(captain['id'], start_date='2026-06-02', end_date='2026-06-01')

    def test_export_unpaginated(self, app, captain, three_bookings):
        """Export returns every match in the requested order."""
        from models.booking import get_bookings_for_export

        with app.app_context():
            rows = get_bookings_for_export(captain['id'], sort_dir='desc', tags=['vip'])
        assert [b['id'] for b in rows] == [three_bookings[2]['id'], three_bookings[1]['id']]
