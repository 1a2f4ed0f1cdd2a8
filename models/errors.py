"""
Booking domain exceptions.

All domain rejections subclass ValueError so callers that already catch
ValueError around model calls keep working. Routes map them to HTTP codes
through the ``status`` attribute.
"""


class BookingError(ValueError):
    """Base class for booking rejections."""

    code = 'BOOKING_ERROR'
    status = 400

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_dict(self) -> dict:
        return {'code': self.code, 'message': self.message}


class ValidationError(BookingError):
    """Malformed input or an out-of-range value (party size, dates)."""

    code = 'VALIDATION'


class NotFoundError(BookingError):
    """Referenced booking, vessel, trip type or offer does not exist."""

    code = 'NOT_FOUND'
    status = 404


class AvailabilityError(BookingError):
    """Proposed time falls outside the captain's schedule."""

    code = 'NOT_AVAILABLE'
    status = 409

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ConflictError(BookingError):
    """Proposed time overlaps an active booking on the same vessel."""

    code = 'CONFLICT'
    status = 409

    def __init__(self, conflicts: list, message: str = None):
        super().__init__(message or 'This vessel is already booked for that time')
        self.conflicts = conflicts or []

    def to_dict(self) -> dict:
        data = super().to_dict()
        data['conflicts'] = [
            {
                'id': c.get('id'),
                'scheduled_start': c.get('scheduled_start'),
                'scheduled_end': c.get('scheduled_end'),
                'status': c.get('status'),
            }
            for c in self.conflicts
        ]
        return data


class InvalidTransitionError(BookingError):
    """Requested status change is not an edge of the lifecycle graph."""

    code = 'INVALID_TRANSITION'
    status = 409

    def __init__(self, from_status: str, to_status: str, message: str = None):
        super().__init__(message or f"Cannot change booking from {from_status} to {to_status}")
        self.from_status = from_status
        self.to_status = to_status


class OfferError(BookingError):
    """Reschedule offer cannot be created or selected."""

    code = 'OFFER_UNAVAILABLE'
    status = 409


class StorageError(BookingError):
    """A write the caller asked for could not be saved."""

    code = 'DATABASE'
    status = 500
