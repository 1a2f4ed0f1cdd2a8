"""
Captain availability checks.

resolve_availability() is a pure decision over a captain's weekly windows,
blackout dates and timezone. is_available() loads those from the store and
delegates. Neither raises for "not available": the answer carries a reason
the captain or guest can act on.
"""

from datetime import datetime, time, timedelta

from models.errors import NotFoundError, ValidationError
from utils.datetime_helpers import (
    DAY_NAMES, get_timezone, parse_timestamp, to_local, parse_wall_time,
    seconds_of_day, format_time_12h, describe_time_difference, parse_date,
    local_weekday, local_date, utc_now, format_timestamp
)

BLACKOUT_REASON = 'This date is unavailable for bookings'
SECONDS_PER_DAY = 24 * 60 * 60
SLOT_INTERVAL_MINUTES = 30


# =============================================================================
# PURE RESOLVER
# =============================================================================

def _blackout_set(blackout_dates) -> set:
    dates = set()
    for item in blackout_dates or []:
        if isinstance(item, dict):
            dates.add(str(item.get('blackout_date')))
        else:
            dates.add(str(item))
    return dates


def _window_bounds(window: dict) -> tuple:
    """(start, end) of a window in seconds since local midnight."""
    return (seconds_of_day(parse_wall_time(window['start_time'])),
            seconds_of_day(parse_wall_time(window['end_time'])))


def _reference_window(windows: list, start_sec: int) -> dict:
    """
    Window the reason should talk about: the one the booking starts in,
    otherwise the one whose hours are closest to the start.
    """
    def distance(window):
        ws, we = _window_bounds(window)
        if ws <= start_sec < we:
            return 0
        return ws - start_sec if start_sec < ws else start_sec - we

    return min(windows, key=lambda w: (distance(w), w['start_time']))


def _whole_minutes(seconds: int) -> int:
    """Round a positive gap up so a partial minute still reads as 1m."""
    return -(-seconds // 60)


def _describe_miss(window: dict, start_sec: int, end_sec: int, start_label: str, end_label: str) -> str:
    ws, we = _window_bounds(window)
    if start_sec < ws:
        return f"Your booking starts at {start_label} ({describe_time_difference(_whole_minutes(ws - start_sec))} too early)"
    if start_sec == we:
        return f"Your booking starts at {start_label} (at closing time)"
    if start_sec > we:
        return f"Your booking starts at {start_label} ({describe_time_difference(_whole_minutes(start_sec - we))} too late)"
    if end_sec > we:
        return f"Your booking ends at {end_label} ({describe_time_difference(_whole_minutes(end_sec - we))} past closing)"
    return f"Your booking ({start_label} - {end_label}) doesn't fit this window"


def resolve_availability(windows: list, blackout_dates, timezone, proposed_start, proposed_end) -> dict:
    """
    Decide whether a proposed trip fits the captain's schedule.

    Rules, in order:
    1. A blackout on the local start date rejects.
    2. No windows at all for that weekday means no restriction.
    3. Windows exist but none is active: the day is off.
    4. Available if one active window contains [start, end) on the same
       local date.
    Otherwise the reason lists the day's hours and says how far the booking
    misses the closest window.

    Args:
        windows: Window dicts (day_of_week, start_time, end_time, is_active).
            Windows for other weekdays are ignored.
        blackout_dates: Iterable of 'YYYY-MM-DD' strings or blackout dicts
        timezone: ZoneInfo for the captain
        proposed_start: Start instant (datetime or ISO string)
        proposed_end: End instant

    Returns:
        dict: {'available': bool, 'reason': str or None}

    Raises:
        ValidationError: If end is not after start
    """
    start = parse_timestamp(proposed_start)
    end = parse_timestamp(proposed_end)
    if end <= start:
        raise ValidationError('End time must be after start time')

    local_start = to_local(start, timezone)
    local_end = to_local(end, timezone)
    day_of_week = local_start.isoweekday() % 7
    day_name = DAY_NAMES[day_of_week]

    if local_start.date().isoformat() in _blackout_set(blackout_dates):
        return {'available': False, 'reason': BLACKOUT_REASON}

    day_windows = [w for w in windows or [] if int(w['day_of_week']) == day_of_week]
    if not day_windows:
        return {'available': True, 'reason': None}

    active_windows = sorted((w for w in day_windows if w['is_active']), key=lambda w: w['start_time'])
    if not active_windows:
        return {'available': False, 'reason': f"Not available on {day_name}s"}

    start_sec = seconds_of_day(local_start.time())
    # Seconds past the start date's midnight, so trips crossing midnight run past closing
    days_spanned = (local_end.date() - local_start.date()).days
    end_sec = days_spanned * SECONDS_PER_DAY + seconds_of_day(local_end.time())

    for window in active_windows:
        ws, we = _window_bounds(window)
        if start_sec >= ws and end_sec <= we:
            return {'available': True, 'reason': None}

    hours = ', '.join(
        f"{format_time_12h(w['start_time'])} - {format_time_12h(w['end_time'])}"
        for w in active_windows
    )
    detail = _describe_miss(
        _reference_window(active_windows, start_sec),
        start_sec, end_sec,
        format_time_12h(local_start.time()),
        format_time_12h(local_end.time())
    )
    return {
        'available': False,
        'reason': f"{day_name} bookings are available {hours}. {detail}",
    }


# =============================================================================
# STORE-BACKED CHECKS
# =============================================================================

def is_available(captain_id: int, proposed_start, proposed_end) -> dict:
    """
    Check a proposed trip against the captain's stored schedule.

    Args:
        captain_id: Captain ID
        proposed_start: Start instant
        proposed_end: End instant

    Returns:
        dict: {'available': bool, 'reason': str or None}
    """
    from models.captain import get_captain_profile
    from models.availability_window import get_captain_windows
    from models.blackout_date import get_blackout_dates

    profile = get_captain_profile(captain_id)
    if not profile:
        return {'available': False, 'reason': 'Captain profile not found'}

    tz = get_timezone(profile.get('timezone'))
    day_of_week = local_weekday(proposed_start, tz)
    start_date = local_date(proposed_start, tz).isoformat()

    windows = get_captain_windows(captain_id, day_of_week=day_of_week)
    blackouts = get_blackout_dates(captain_id, start_date=start_date, end_date=start_date)

    return resolve_availability(windows, blackouts, tz, proposed_start, proposed_end)


def _booking_horizon(profile: dict, tz) -> tuple:
    """(today, last bookable date) in the captain's timezone; last is None when unlimited."""
    today = local_date(utc_now(), tz)
    advance_days = profile.get('advance_booking_days')
    return today, (today + timedelta(days=advance_days) if advance_days else None)


def get_date_range_availability(captain_id: int, start_date: str, days: int = 30) -> list:
    """
    Summarize which calendar dates can take bookings at all.

    Used to grey out dates in a booking calendar before any time is picked.

    Args:
        captain_id: Captain ID
        start_date: First date (YYYY-MM-DD, captain's timezone)
        days: Number of dates to return (1-366)

    Returns:
        List of dicts: date, day_of_week, day_name, is_blackout,
        blackout_reason, is_past, is_beyond_advance_window,
        windows (active hours), is_bookable

    Raises:
        ValidationError: On a bad date or day count
        NotFoundError: If the captain does not exist
    """
    from models.captain import get_captain_profile
    from models.availability_window import get_captain_windows
    from models.blackout_date import get_blackout_dates

    try:
        first = parse_date(start_date)
    except (TypeError, ValueError):
        raise ValidationError('start_date must be YYYY-MM-DD')
    if days < 1 or days > 366:
        raise ValidationError('days must be between 1 and 366')

    profile = get_captain_profile(captain_id)
    if not profile:
        raise NotFoundError('Captain not found')
    today, last_bookable = _booking_horizon(profile, get_timezone(profile.get('timezone')))

    last = first + timedelta(days=days - 1)
    windows = get_captain_windows(captain_id)
    blackouts = {
        b['blackout_date']: b.get('reason')
        for b in get_blackout_dates(captain_id, first.isoformat(), last.isoformat())
    }

    by_day = {}
    for window in windows:
        by_day.setdefault(window['day_of_week'], []).append(window)

    result = []
    for offset in range(days):
        day = first + timedelta(days=offset)
        day_of_week = day.isoweekday() % 7
        day_windows = by_day.get(day_of_week, [])
        active = [w for w in day_windows if w['is_active']]
        is_blackout = day.isoformat() in blackouts
        is_past = day < today
        beyond = last_bookable is not None and day > last_bookable
        result.append({
            'date': day.isoformat(),
            'day_of_week': day_of_week,
            'day_name': DAY_NAMES[day_of_week],
            'is_blackout': is_blackout,
            'blackout_reason': blackouts.get(day.isoformat()),
            'is_past': is_past,
            'is_beyond_advance_window': beyond,
            'windows': [{'start_time': w['start_time'], 'end_time': w['end_time']} for w in active],
            'is_bookable': (not is_blackout and not is_past and not beyond
                            and (not day_windows or bool(active))),
        })
    return result


# =============================================================================
# SLOT PICKER
# =============================================================================

def _candidate_starts(bounds: list, duration_sec: int) -> list:
    """Start offsets (seconds past midnight) on the half-hour grid of each window."""
    step = SLOT_INTERVAL_MINUTES * 60
    starts = set()
    for ws, we in bounds:
        offset = ws
        while offset + duration_sec <= we:
            starts.add(offset)
            offset += step
    return sorted(starts)


def get_available_slots(captain_id: int, trip_type_id: int, date: str, vessel_id: int = None) -> dict:
    """
    List bookable start times for a trip type on one local date.

    Candidates start every 30 minutes from each active window's opening
    and must finish by its closing. A candidate is offered when it is
    later than now plus the captain's buffer, inside the advance window,
    passes resolve_availability() and leaves at least one vessel free of
    conflicts (buffer included). A weekday with no windows at all is open
    all day, as in resolve_availability().

    Args:
        captain_id: Captain ID
        trip_type_id: Trip type whose duration sizes the slots
        date: Local date (YYYY-MM-DD, captain's timezone)
        vessel_id: Only consider this vessel (optional; default all active vessels)

    Returns:
        dict: date, captain_timezone, slots (start, end, local_start,
        vessel_ids) and date_info (day_of_week, is_past, is_blackout,
        blackout_reason, is_beyond_advance_window, has_active_window,
        has_availability)

    Raises:
        ValidationError: Bad date, or the captain is hibernating (HIBERNATING)
        NotFoundError: Unknown captain, trip type or vessel
    """
    from models.captain import get_captain_profile
    from models.availability_window import get_captain_windows
    from models.blackout_date import get_blackout_dates
    from models.booking_conflicts import find_conflicts, captain_buffer_minutes
    from models.trip_type import get_trip_type_by_id
    from models.vessel import get_vessel_by_id, get_captain_vessels

    try:
        day = parse_date(date)
    except (TypeError, ValueError):
        raise ValidationError('date must be YYYY-MM-DD')

    profile = get_captain_profile(captain_id)
    if not profile:
        raise NotFoundError('Captain not found')
    if profile['is_hibernating']:
        raise ValidationError(
            profile['hibernation_message'] or 'Bookings are currently closed for the season',
            code='HIBERNATING'
        )

    trip_type = get_trip_type_by_id(trip_type_id)
    if not trip_type or trip_type['owner_id'] != captain_id or not trip_type['active']:
        raise NotFoundError('Trip type not found')

    if vessel_id is not None:
        vessel = get_vessel_by_id(vessel_id)
        if not vessel or vessel['owner_id'] != captain_id or not vessel['active']:
            raise NotFoundError('Vessel not found')
        vessels = [vessel]
    else:
        vessels = get_captain_vessels(captain_id)

    tz = get_timezone(profile.get('timezone'))
    today, last_bookable = _booking_horizon(profile, tz)
    day_of_week = day.isoweekday() % 7
    date_info = {
        'day_of_week': day_of_week,
        'is_past': day < today,
        'is_blackout': False,
        'blackout_reason': None,
        'is_beyond_advance_window': last_bookable is not None and day > last_bookable,
        'has_active_window': False,
        'has_availability': False,
    }
    result = {
        'date': day.isoformat(),
        'captain_timezone': tz.key,
        'slots': [],
        'date_info': date_info,
    }
    if date_info['is_past'] or date_info['is_beyond_advance_window']:
        return result

    blackouts = get_blackout_dates(captain_id, start_date=day.isoformat(), end_date=day.isoformat())
    if blackouts:
        date_info['is_blackout'] = True
        date_info['blackout_reason'] = blackouts[0].get('reason')
        return result

    windows = get_captain_windows(captain_id, day_of_week=day_of_week)
    active = [w for w in windows if w['is_active']]
    if windows and not active:
        return result
    date_info['has_active_window'] = True
    bounds = [_window_bounds(w) for w in active] if active else [(0, SECONDS_PER_DAY)]

    duration = timedelta(hours=trip_type['duration_hours'])
    buffer = captain_buffer_minutes(profile)
    earliest = utc_now() + timedelta(minutes=buffer)
    advance_days = profile.get('advance_booking_days')
    midnight = datetime.combine(day, time(0, 0), tzinfo=tz)

    for offset in _candidate_starts(bounds, int(duration.total_seconds())):
        # Wall-clock arithmetic on the local midnight keeps the departure hour across DST
        local_start = midnight + timedelta(seconds=offset)
        start = parse_timestamp(local_start)
        end = start + duration
        if start <= earliest:
            continue
        if advance_days and (start - utc_now()).days > advance_days:
            continue
        if not resolve_availability(windows, blackouts, tz, start, end)['available']:
            continue
        free = [v['id'] for v in vessels
                if not find_conflicts(v['id'], start, end, buffer_minutes=buffer)]
        if free:
            result['slots'].append({
                'start': format_timestamp(start),
                'end': format_timestamp(end),
                'local_start': local_start.strftime('%H:%M'),
                'vessel_ids': free,
            })

    date_info['has_availability'] = bool(result['slots'])
    return result
