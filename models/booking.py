"""
Booking data access functions.

Single import point for the booking engine. Functions live in:
- booking_state.py: Lifecycle graph, transitions, expiry sweep
- booking_availability.py: Captain schedule checks
- booking_conflicts.py: Vessel overlap detection
- booking_crud.py: Create, edit, notes, payments
- booking_queries.py: Single reads and the paginated list
- reschedule.py: Weather hold and reschedule offers
- booking_log.py: Append-only booking history
"""

# =============================================================================
# RE-EXPORTS
# =============================================================================

# State management
from .booking_state import (
    BookingStatus,
    PaymentStatus,
    VALID_TRANSITIONS,
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    is_valid_transition,
    get_allowed_transitions,
    validate_status_transition,
    transition_booking_status,
    confirm_booking,
    cancel_booking,
    complete_booking,
    mark_no_show,
    expire_overdue_bookings,
)

# Availability & conflicts
from .booking_availability import (
    resolve_availability,
    is_available,
    get_date_range_availability,
    get_available_slots,
)
from .booking_conflicts import find_conflicts

# CRUD operations
from .booking_crud import (
    create_booking,
    update_booking,
    add_booking_note,
    mark_deposit_paid,
    mark_fully_paid,
    record_payment_status,
)

# Queries
from .booking_queries import (
    get_booking_by_id,
    list_bookings,
    get_bookings_for_export,
)

# Reschedule workflow
from .reschedule import (
    set_weather_hold,
    clear_weather_hold,
    create_reschedule_offers,
    generate_reschedule_slots,
    get_reschedule_offers,
    select_reschedule_offer,
    request_different_dates,
)

# History
from .booking_log import record_booking_log, get_booking_logs


__all__ = [
    # State
    'BookingStatus',
    'PaymentStatus',
    'VALID_TRANSITIONS',
    'ACTIVE_STATUSES',
    'TERMINAL_STATUSES',
    'is_valid_transition',
    'get_allowed_transitions',
    'validate_status_transition',
    'transition_booking_status',
    'confirm_booking',
    'cancel_booking',
    'complete_booking',
    'mark_no_show',
    'expire_overdue_bookings',

    # Availability
    'resolve_availability',
    'is_available',
    'get_date_range_availability',
    'get_available_slots',
    'find_conflicts',

    # CRUD
    'create_booking',
    'update_booking',
    'add_booking_note',
    'mark_deposit_paid',
    'mark_fully_paid',
    'record_payment_status',

    # Queries
    'get_booking_by_id',
    'list_bookings',
    'get_bookings_for_export',

    # Reschedule
    'set_weather_hold',
    'clear_weather_hold',
    'create_reschedule_offers',
    'generate_reschedule_slots',
    'get_reschedule_offers',
    'select_reschedule_offer',
    'request_different_dates',

    # History
    'record_booking_log',
    'get_booking_logs',
]
