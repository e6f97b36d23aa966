"""
Error taxonomy of the front-desk engine.

Every error carries an operator-facing ``message`` that the console shows
verbatim; none of them implies that booking state was changed.
"""
from enum import Enum
from typing import Optional


class FrontDeskError(Exception):
    """Base class for all engine errors"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(FrontDeskError):
    """Missing or invalid operator input"""


class InvalidAmount(ValidationError):
    """Payment amount missing, negative or above the allowed ceiling"""


class MissingMethod(ValidationError):
    """No payment method chosen"""


class FormatError(ValidationError):
    """Unparseable time or date"""


class RefusalReason(str, Enum):
    INVALID_TRANSITION = "invalid_transition"
    TERMINAL_STATE = "terminal_state"
    PAYMENT_PENDING = "payment_pending"
    FULL_PAYMENT_REQUIRED = "full_payment_required"
    NOT_CHECKED_IN = "not_checked_in"
    OPERATION_IN_PROGRESS = "operation_in_progress"
    ROOM_UNAVAILABLE = "room_unavailable"
    FUTURE_CHECK_IN = "future_check_in"


class TransitionRefused(FrontDeskError):
    """A lifecycle guard rejected the requested operation"""

    def __init__(self, message: str, reason: RefusalReason):
        super().__init__(message)
        self.reason = reason


class UpstreamFailure(FrontDeskError):
    """Backend of record could not be reached or rejected the request"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class BookingNotFound(FrontDeskError):
    def __init__(self, booking_id: int, room_number: Optional[str] = None):
        if room_number:
            super().__init__(f"Booking #{booking_id} not found in room {room_number}")
        else:
            super().__init__(f"Booking #{booking_id} not found")
        self.booking_id = booking_id
        self.room_number = room_number
