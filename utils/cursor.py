"""
Opaque pagination cursors for keyset pagination.

A cursor is URL-safe base64 of JSON {"field", "value", "id"}: the sort
field, the last returned row's value for it, and that row's id as the
tie-breaker.
"""

import base64
import binascii
import json


def encode_cursor(field: str, value, last_id=None) -> str:
    """
    Build a cursor pointing just past a row.

    Args:
        field: Sort field the cursor belongs to
        value: Last row's value for the sort field
        last_id: Last row's id

    Returns:
        Opaque cursor string
    """
    payload = {'field': field, 'value': value, 'id': last_id}
    raw = json.dumps(payload, separators=(',', ':'), sort_keys=True).encode('utf-8')
    return base64.urlsafe_b64encode(raw).decode('ascii')


def decode_cursor(cursor: str):
    """
    Decode a cursor.

    Args:
        cursor: String from encode_cursor

    Returns:
        dict with 'field', 'value' and 'id' (id may be None), or None if
        the cursor is malformed
    """
    if not cursor or not isinstance(cursor, str):
        return None
    try:
        padded = cursor + '=' * (-len(cursor) % 4)
        data = json.loads(base64.urlsafe_b64decode(padded.encode('ascii')).decode('utf-8'))
    except (binascii.Error, UnicodeError, ValueError):
        return None

    if not isinstance(data, dict) or not isinstance(data.get('field'), str) or 'value' not in data:
        return None
    # Only scalars can be bound as SQL parameters
    value, last_id = data['value'], data.get('id')
    if isinstance(value, bool) or not isinstance(value, (str, int, float, type(None))):
        return None
    if isinstance(last_id, bool) or not isinstance(last_id, (int, type(None))):
        return None
    return {'field': data['field'], 'value': value, 'id': last_id}
