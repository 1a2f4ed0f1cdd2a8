"""
Tests for timezone helpers and pagination cursors.
"""

import pytest
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo


class TestParseTimestamp:
    """Instants in and out of storage format."""

    def test_zulu_and_offsets(self):
        """Z suffixes and offsets normalize to UTC."""
        from utils.datetime_helpers import parse_timestamp, format_timestamp

        assert format_timestamp('2026-06-01T14:00:00Z') == '2026-06-01T14:00:00Z'
        assert format_timestamp('2026-06-01T10:00:00-04:00') == '2026-06-01T14:00:00Z'
        assert parse_timestamp('2026-06-01T14:00:00.250Z').microsecond == 0

    def test_naive_is_utc(self):
        """Timestamps without an offset are taken as UTC."""
        from utils.datetime_helpers import parse_timestamp

        assert parse_timestamp('2026-06-01T14:00:00') == datetime(2026, 6, 1, 14, tzinfo=timezone.utc)

    @pytest.mark.parametrize('value', ['', None, 'tomorrow', 42])
    def test_invalid(self, value):
        from utils.datetime_helpers import parse_timestamp

        with pytest.raises(ValueError):
            parse_timestamp(value)


class TestLocalTime:
    """Captain-local calendar math."""

    def test_weekday_in_timezone(self):
        """01:00 UTC Tuesday is still Monday in New York."""
        from utils.datetime_helpers import local_weekday, local_date

        ny = ZoneInfo('America/New_York')
        assert local_weekday('2026-06-02T01:00:00Z', ny) == 1
        assert local_date('2026-06-02T01:00:00Z', ny) == date(2026, 6, 1)

    def test_local_midnight_across_dst(self):
        """Local midnight follows the offset of its own date."""
        from utils.datetime_helpers import local_midnight_utc, format_timestamp

        ny = ZoneInfo('America/New_York')
        assert format_timestamp(local_midnight_utc(date(2026, 1, 15), ny)) == '2026-01-15T05:00:00Z'
        assert format_timestamp(local_midnight_utc(date(2026, 7, 15), ny)) == '2026-07-15T04:00:00Z'

    def test_unknown_timezone_falls_back(self, app):
        """Unknown zone names use the configured default."""
        from utils.datetime_helpers import get_timezone, is_valid_timezone

        assert is_valid_timezone('Europe/Lisbon') is True
        assert is_valid_timezone('Mars/Olympus') is False
        assert get_timezone('Mars/Olympus').key == 'America/New_York'


class TestFormatting:
    """Human-readable times and durations."""

    @pytest.mark.parametrize('value, expected', [
        ('06:00', '6 AM'), ('00:00', '12 AM'), ('12:00', '12 PM'), ('17:30', '5:30 PM'),
    ])
    def test_format_time_12h(self, value, expected):
        from utils.datetime_helpers import format_time_12h

        assert format_time_12h(value) == expected

    @pytest.mark.parametrize('minutes, expected', [(60, '1h'), (30, '30m'), (90, '1h 30m'), (0, '0m')])
    def test_describe_time_difference(self, minutes, expected):
        from utils.datetime_helpers import describe_time_difference

        assert describe_time_difference(minutes) == expected


class TestCursor:
    """Opaque pagination cursors."""

    def test_round_trip(self):
        """A cursor decodes to the field, value and id it was built from."""
        from utils.cursor import encode_cursor, decode_cursor

        cursor = encode_cursor('scheduled_start', '2026-06-01T14:00:00Z', 17)
        assert '=' not in cursor.rstrip('=') and '+' not in cursor and '/' not in cursor
        assert decode_cursor(cursor) == {'field': 'scheduled_start', 'value': '2026-06-01T14:00:00Z', 'id': 17}

    def test_padding_optional(self):
        """Clients may strip base64 padding."""
        from utils.cursor import encode_cursor, decode_cursor

        cursor = encode_cursor('guest_name', 'Abe', 3)
        assert decode_cursor(cursor.rstrip('='))['id'] == 3

    def test_cursor_without_id(self):
        from utils.cursor import encode_cursor, decode_cursor

        assert decode_cursor(encode_cursor('status', 'confirmed'))['id'] is None

    @pytest.mark.parametrize('cursor', ['', None, '%%%', 'bm90IGpzb24', 'WzEsMl0'])
    def test_malformed(self, cursor):
        """Garbage, non-JSON and non-object payloads decode to None."""
        from utils.cursor import decode_cursor

        assert decode_cursor(cursor) is None

    @pytest.mark.parametrize('value, last_id', [
        ({'x': 1}, 1),
        (['2026-06-01'], 1),
        (True, 1),
        ('2026-06-01T14:00:00Z', {'x': 1}),
        ('2026-06-01T14:00:00Z', '17'),
    ])
    def test_non_scalar_payload(self, value, last_id):
        """Cursors whose value or id could not be bound as SQL parameters decode to None."""
        from utils.cursor import encode_cursor, decode_cursor

        assert decode_cursor(encode_cursor('scheduled_start', value, last_id)) is None
