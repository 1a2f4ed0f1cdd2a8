"""
Tests for input validation utilities.
"""

import pytest
from utils.validators import (
    validate_email,
    validate_phone,
    validate_password,
    validate_date_format,
    sanitize_input,
    sanitize_name,
    normalize_tags,
    parse_positive_int
)


class TestValidateEmail:
    """Tests for email validation."""

    def test_valid_email(self):
        """Test valid email formats."""
        assert validate_email('user@example.com') is True
        assert validate_email('user.name@example.com') is True
        assert validate_email('user+tag@example.co.uk') is True

    def test_invalid_email(self):
        """Test invalid email formats."""
        assert validate_email('') is False
        assert validate_email(None) is False
        assert validate_email('invalid') is False
        assert validate_email('missing@domain') is False
        assert validate_email('spaces in@email.com') is False


class TestValidatePhone:
    """Tests for phone validation."""

    def test_valid_phones(self):
        """International and local formats with separators."""
        assert validate_phone('+13055550100') is True
        assert validate_phone('(305) 555-0100') is True
        assert validate_phone('+44 20 7946 0958') is True
        assert validate_phone('555.0100.12') is True

    def test_invalid_phones(self):
        """Too short, too long or not digits."""
        assert validate_phone('') is False
        assert validate_phone(None) is False
        assert validate_phone('12345') is False
        assert validate_phone('1234567890123456') is False
        assert validate_phone('call me') is False


class TestValidateDateFormat:
    """Tests for date format validation."""

    def test_valid_dates(self):
        assert validate_date_format('2026-06-01') is True

    def test_invalid_dates(self):
        assert validate_date_format('06/01/2026') is False
        assert validate_date_format('2026-13-01') is False
        assert validate_date_format(None) is False


class TestValidatePassword:
    """Tests for password validation."""

    def test_password_rules(self):
        assert validate_password('longenough') == (True, '')
        assert validate_password('short')[0] is False
        assert validate_password('')[1] == 'Password is required'


class TestSanitize:
    """Tests for text sanitizing."""

    def test_sanitize_input(self):
        """Trims and truncates."""
        assert sanitize_input('  hello  ') == 'hello'
        assert sanitize_input('abcdef', 3) == 'abc'
        assert sanitize_input(None) == ''

    def test_sanitize_name(self):
        """Collapses whitespace and strips control characters."""
        assert sanitize_name('  Jane \t  Guest\n') == 'Jane Guest'
        assert sanitize_name('Jane\x00 Guest') == 'Jane Guest'
        assert len(sanitize_name('x' * 500)) == 120


class TestNormalizeTags:
    """Tests for tag lists."""

    def test_cleans_and_dedupes(self):
        assert normalize_tags([' vip', 'vip ', '', 'repeat']) == ['vip', 'repeat']
        assert normalize_tags(None) == []

    def test_rejects_bad_input(self):
        with pytest.raises(ValueError):
            normalize_tags('vip')
        with pytest.raises(ValueError):
            normalize_tags([1, 2])
        with pytest.raises(ValueError):
            normalize_tags([f'tag{i}' for i in range(21)])


class TestParsePositiveInt:
    """Tests for positive integer parsing."""

    def test_accepts(self):
        assert parse_positive_int(3, 'Party size') == 3
        assert parse_positive_int('4', 'Party size') == 4
        assert parse_positive_int(2.0, 'Party size') == 2

    @pytest.mark.parametrize('value', [0, -1, 'x', None, True, 2.5])
    def test_rejects(self, value):
        with pytest.raises(ValueError, match='Party size must be a positive integer'):
            parse_positive_int(value, 'Party size')
