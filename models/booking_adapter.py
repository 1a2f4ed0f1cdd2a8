"""
Booking row adapter.

Turns raw store rows into the booking shape the rest of the app uses.
Related vessel and trip type data may arrive as flat joined columns, as a
nested object, or as a one-element list; all three collapse to a single
object (or None).
"""

import json


BOOKING_SELECT = '''
    SELECT b.*,
           v.name AS vessel_name,
           v.capacity AS vessel_capacity,
           t.title AS trip_type_title,
           t.duration_hours AS trip_type_duration_hours,
           t.deposit_cents AS trip_type_deposit_cents
    FROM bookings b
    LEFT JOIN vessels v ON v.id = b.vessel_id
    LEFT JOIN trip_types t ON t.id = b.trip_type_id
'''

VESSEL_COLUMNS = {
    'vessel_name': 'name',
    'vessel_capacity': 'capacity',
}

TRIP_TYPE_COLUMNS = {
    'trip_type_title': 'title',
    'trip_type_duration_hours': 'duration_hours',
    'trip_type_deposit_cents': 'deposit_cents',
}


def collapse_related(value):
    """
    Collapse a related record to a single dict.

    Args:
        value: dict, list of dicts, JSON string of either, or None

    Returns:
        dict or None
    """
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return None
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if isinstance(value, dict):
        return dict(value)
    return None


def parse_tags(value) -> list:
    """Decode the stored tag array; tolerate NULL and bad JSON."""
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [str(t) for t in value]
    try:
        tags = json.loads(value)
    except (TypeError, ValueError):
        return []
    return [str(t) for t in tags] if isinstance(tags, list) else []


def _extract_related(data: dict, key: str, id_key: str, columns: dict):
    related = collapse_related(data.pop(key, None))
    flat = {}
    for column, field in columns.items():
        if column in data:
            flat[field] = data.pop(column)

    if related is None and any(v is not None for v in flat.values()):
        related = flat
    if related is not None and data.get(id_key) is not None:
        related.setdefault('id', data[id_key])
    return related


def booking_from_row(row) -> dict:
    """
    Normalize a booking row.

    Args:
        row: sqlite3.Row or dict from a bookings query

    Returns:
        Booking dict with 'tags' as a list and single 'vessel' and
        'trip_type' objects, or None if row is None
    """
    if row is None:
        return None

    data = dict(row)
    data['tags'] = parse_tags(data.get('tags'))
    data['vessel'] = _extract_related(data, 'vessel', 'vessel_id', VESSEL_COLUMNS)
    data['trip_type'] = _extract_related(data, 'trip_type', 'trip_type_id', TRIP_TYPE_COLUMNS)
    return data


def bookings_from_rows(rows) -> list:
    """Normalize a list of booking rows."""
    return [booking_from_row(row) for row in rows]
