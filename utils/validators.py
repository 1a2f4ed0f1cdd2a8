"""
Input validation helper functions.
Provides validation for guest details, tags and request values.
"""

import re
from datetime import datetime

MAX_NAME_LENGTH = 120
MAX_NOTES_LENGTH = 2000
MAX_TAG_LENGTH = 50
MAX_TAGS = 20


def validate_email(email: str) -> bool:
    """
    Validate email format.

    Args:
        email: Email address to validate

    Returns:
        True if valid email format
    """
    if not email:
        return False

    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return bool(re.match(pattern, email.strip()))


def validate_phone(phone: str) -> bool:
    """
    Validate a phone number loosely: optional leading +, 7 to 15 digits.
    Spaces, dashes, dots and parentheses are ignored.

    Args:
        phone: Phone number to validate

    Returns:
        True if valid phone format
    """
    if not phone:
        return False

    cleaned = re.sub(r'[\s\-\.\(\)]', '', phone)
    return bool(re.match(r'^\+?[0-9]{7,15}$', cleaned))


def validate_date_format(date_str: str) -> bool:
    """
    Validate date is in YYYY-MM-DD format.

    Args:
        date_str: Date string to validate

    Returns:
        True if valid format
    """
    try:
        datetime.strptime(date_str, '%Y-%m-%d')
        return True
    except (TypeError, ValueError):
        return False


def validate_password(password: str, min_length: int = 8) -> tuple:
    """
    Validate password strength.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not password:
        return False, 'Password is required'

    if len(password) < min_length:
        return False, f'Password must be at least {min_length} characters'

    return True, ''


def sanitize_input(text: str, max_length: int = None) -> str:
    """
    Sanitize text input by trimming and limiting length.

    Args:
        text: Text to sanitize
        max_length: Maximum length (optional)

    Returns:
        Sanitized text
    """
    if not text:
        return ''

    sanitized = text.strip()

    if max_length and len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized


def sanitize_name(name: str) -> str:
    """Collapse inner whitespace and drop control characters from a name."""
    if not name:
        return ''
    cleaned = re.sub(r'[\x00-\x1f\x7f]', '', name)
    cleaned = re.sub(r'\s+', ' ', cleaned)
    return sanitize_input(cleaned, MAX_NAME_LENGTH)


def normalize_tags(tags) -> list:
    """
    Clean a tag list: trimmed, non-empty, de-duplicated, order kept.

    Raises:
        ValueError: If tags is not a list of strings or has too many entries
    """
    if tags is None:
        return []
    if not isinstance(tags, (list, tuple)):
        raise ValueError('Tags must be a list')

    result = []
    for tag in tags:
        if not isinstance(tag, str):
            raise ValueError('Tags must be strings')
        tag = sanitize_input(tag, MAX_TAG_LENGTH)
        if tag and tag not in result:
            result.append(tag)

    if len(result) > MAX_TAGS:
        raise ValueError(f'A booking can have at most {MAX_TAGS} tags')
    return result


def parse_positive_int(value, field_name: str) -> int:
    """
    Parse a strictly positive integer.

    Raises:
        ValueError: With a message naming the field
    """
    if isinstance(value, bool):
        raise ValueError(f'{field_name} must be a positive integer')
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f'{field_name} must be a positive integer')
    if number < 1 or (isinstance(value, float) and value != number):
        raise ValueError(f'{field_name} must be a positive integer')
    return number
