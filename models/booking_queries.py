"""
Booking query functions.
Single-booking reads and the filtered, paginated booking list.
"""

import math
from datetime import timedelta

from flask import current_app

from database import get_db
from models.booking_adapter import BOOKING_SELECT, booking_from_row, bookings_from_rows
from models.booking_state import ACTIVE_STATUSES, PaymentStatus, status_values
from models.errors import ValidationError
from utils.cursor import encode_cursor, decode_cursor
from utils.datetime_helpers import get_timezone, local_midnight_utc, format_timestamp, parse_date


# =============================================================================
# CONSTANTS
# =============================================================================

SORT_FIELDS = {
    'scheduled_start': 'b.scheduled_start',
    'guest_name': 'b.guest_name',
    'status': 'b.status',
    'created_at': 'b.created_at',
}

EXPORT_MAX_ROWS = 10000


# =============================================================================
# SINGLE BOOKING
# =============================================================================

def get_booking_by_id(booking_id: int, captain_id: int = None) -> dict:
    """
    Get a booking with its vessel and trip type.

    Args:
        booking_id: Booking ID
        captain_id: When given, only return the booking if this captain owns it

    Returns:
        Booking dict or None if not found
    """
    db = get_db()
    cursor = db.cursor()
    query = BOOKING_SELECT + ' WHERE b.id = ?'
    params = [booking_id]
    if captain_id is not None:
        query += ' AND b.captain_id = ?'
        params.append(captain_id)
    cursor.execute(query, params)
    return booking_from_row(cursor.fetchone())


# =============================================================================
# FILTERS
# =============================================================================

def _escape_like(term: str) -> str:
    return term.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


def _clamp_limit(limit) -> int:
    default = current_app.config.get('DEFAULT_PAGE_SIZE', 20)
    maximum = current_app.config.get('MAX_PAGE_SIZE', 100)
    if limit is None or limit == '':
        return default
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        raise ValidationError('limit must be an integer')
    return max(1, min(limit, maximum))


def _build_filters(captain_id: int, start_date: str = None, end_date: str = None,
                   statuses: list = None, payment_statuses: list = None, tags: list = None,
                   vessel_id: int = None, search: str = None,
                   include_historical: bool = False) -> tuple:
    """
    Build the WHERE clause shared by list, count and export.

    Dates are whole calendar days in the captain's timezone, both inclusive.

    Returns:
        Tuple of (sql_fragment, params)
    """
    from models.captain import get_captain_profile

    clauses = ['b.captain_id = ?']
    params = [captain_id]

    if start_date or end_date:
        profile = get_captain_profile(captain_id)
        tz = get_timezone(profile.get('timezone') if profile else None)
        try:
            first = parse_date(start_date) if start_date else None
            last = parse_date(end_date) if end_date else None
        except (TypeError, ValueError):
            raise ValidationError('Dates must be YYYY-MM-DD')
        if first and last and last < first:
            raise ValidationError('End date must not be before start date')
        if first:
            clauses.append('b.scheduled_start >= ?')
            params.append(format_timestamp(local_midnight_utc(first, tz)))
        if last:
            clauses.append('b.scheduled_start < ?')
            params.append(format_timestamp(local_midnight_utc(last + timedelta(days=1), tz)))

    if statuses:
        try:
            values = status_values(statuses)
        except ValueError as e:
            raise ValidationError(str(e))
    elif not include_historical:
        values = status_values(ACTIVE_STATUSES)
    else:
        values = []
    if values:
        clauses.append(f"b.status IN ({','.join('?' * len(values))})")
        params.extend(values)

    if payment_statuses:
        try:
            payment_values = sorted(PaymentStatus(p).value for p in payment_statuses)
        except ValueError:
            raise ValidationError('Unknown payment status')
        clauses.append(f"b.payment_status IN ({','.join('?' * len(payment_values))})")
        params.extend(payment_values)

    if tags:
        clauses.append(f'''EXISTS (
            SELECT 1 FROM json_each(b.tags)
            WHERE json_each.value IN ({','.join('?' * len(tags))})
        )''')
        params.extend(str(t) for t in tags)

    if vessel_id is not None:
        clauses.append('b.vessel_id = ?')
        params.append(vessel_id)

    if search and search.strip():
        pattern = f"%{_escape_like(search.strip().lower())}%"
        clauses.append('''(
            LOWER(b.guest_name) LIKE ? ESCAPE '\\'
            OR LOWER(b.guest_email) LIKE ? ESCAPE '\\'
            OR LOWER(COALESCE(b.guest_phone, '')) LIKE ? ESCAPE '\\'
        )''')
        params.extend([pattern, pattern, pattern])

    return ' WHERE ' + ' AND '.join(clauses), params


def _count(where: str, params: list) -> int:
    cursor = get_db().cursor()
    cursor.execute(f'SELECT COUNT(*) AS total FROM bookings b {where}', params)
    return cursor.fetchone()['total']


# =============================================================================
# BOOKING LIST
# =============================================================================

def list_bookings(
    captain_id: int,
    start_date: str = None,
    end_date: str = None,
    statuses: list = None,
    payment_statuses: list = None,
    tags: list = None,
    vessel_id: int = None,
    search: str = None,
    sort_field: str = 'scheduled_start',
    sort_dir: str = 'asc',
    cursor: str = None,
    page: int = None,
    limit: int = None,
    include_historical: bool = False
) -> dict:
    """
    List a captain's bookings with filters, sorting and pagination.

    Two pagination modes:
    - cursor (default): keyset pagination, returns next_cursor
    - offset: when page is given, returns page/total_pages

    Rows are always ordered by the sort field, then by id ascending, so
    pages never repeat or skip rows with equal sort values.

    Args:
        captain_id: Owning captain (required)
        start_date: First local date, YYYY-MM-DD (inclusive)
        end_date: Last local date, YYYY-MM-DD (inclusive)
        statuses: Status values to include (default: active statuses)
        payment_statuses: Payment status values to include
        tags: Match bookings carrying any of these tags
        vessel_id: Only this vessel
        search: Case-insensitive substring of guest name, email or phone
        sort_field: scheduled_start, guest_name, status or created_at
        sort_dir: 'asc' or 'desc'
        cursor: Cursor from a previous page
        page: 1-based page number (offset mode)
        limit: Page size (default DEFAULT_PAGE_SIZE, max MAX_PAGE_SIZE)
        include_historical: Include terminal statuses when statuses is empty

    Returns:
        Cursor mode: {'items', 'next_cursor', 'total_count'}
        Offset mode: {'items', 'page', 'page_size', 'total_pages', 'total_count'}

    Raises:
        ValidationError: On unknown sort field, bad cursor or bad filter
    """
    if sort_field not in SORT_FIELDS:
        raise ValidationError(f"Cannot sort by {sort_field}")
    sort_dir = (sort_dir or 'asc').lower()
    if sort_dir not in ('asc', 'desc'):
        raise ValidationError("sort_dir must be 'asc' or 'desc'")
    limit = _clamp_limit(limit)

    where, params = _build_filters(
        captain_id, start_date, end_date, statuses, payment_statuses,
        tags, vessel_id, search, include_historical
    )
    total_count = _count(where, params)

    column = SORT_FIELDS[sort_field]
    order_by = f' ORDER BY {column} {sort_dir.upper()}, b.id ASC'
    db = get_db()
    cur = db.cursor()

    # Offset mode
    if page is not None and not cursor:
        try:
            page = int(page)
        except (TypeError, ValueError):
            raise ValidationError('page must be an integer')
        if page < 1:
            raise ValidationError('page must be 1 or greater')

        cur.execute(BOOKING_SELECT + where + order_by + ' LIMIT ? OFFSET ?',
                    [*params, limit, (page - 1) * limit])
        return {
            'items': bookings_from_rows(cur.fetchall()),
            'page': page,
            'page_size': limit,
            'total_pages': math.ceil(total_count / limit),
            'total_count': total_count,
        }

    # Cursor mode
    keyset = ''
    keyset_params = []
    if cursor:
        decoded = decode_cursor(cursor)
        if decoded is None:
            raise ValidationError('Invalid cursor')
        if decoded['field'] != sort_field:
            raise ValidationError('Cursor does not match the requested sort field')

        op = '>' if sort_dir == 'asc' else '<'
        if decoded['id'] is None:
            keyset = f' AND {column} {op} ?'
            keyset_params = [decoded['value']]
        else:
            keyset = f' AND ({column} {op} ? OR ({column} = ? AND b.id > ?))'
            keyset_params = [decoded['value'], decoded['value'], decoded['id']]

    cur.execute(BOOKING_SELECT + where + keyset + order_by + ' LIMIT ?',
                [*params, *keyset_params, limit + 1])
    rows = cur.fetchall()

    has_more = len(rows) > limit
    items = bookings_from_rows(rows[:limit])
    next_cursor = None
    if has_more and items:
        last = items[-1]
        next_cursor = encode_cursor(sort_field, last[sort_field], last['id'])

    return {
        'items': items,
        'next_cursor': next_cursor,
        'total_count': total_count,
    }


def get_bookings_for_export(captain_id: int, sort_field: str = 'scheduled_start',
                            sort_dir: str = 'asc', **filters) -> list:
    """
    All bookings matching the list filters, unpaginated.

    Args:
        captain_id: Owning captain
        sort_field: As for list_bookings
        sort_dir: 'asc' or 'desc'
        **filters: start_date, end_date, statuses, payment_statuses, tags,
            vessel_id, search, include_historical

    Returns:
        List of booking dicts (capped at EXPORT_MAX_ROWS)
    """
    if sort_field not in SORT_FIELDS:
        raise ValidationError(f"Cannot sort by {sort_field}")
    direction = 'DESC' if (sort_dir or '').lower() == 'desc' else 'ASC'

    where, params = _build_filters(captain_id, **filters)
    cur = get_db().cursor()
    cur.execute(
        BOOKING_SELECT + where + f' ORDER BY {SORT_FIELDS[sort_field]} {direction}, b.id ASC LIMIT ?',
        [*params, EXPORT_MAX_ROWS]
    )
    return bookings_from_rows(cur.fetchall())

