from decimal import Decimal
from datetime import date

from frontdesk.core.config import settings


class Messages:
    """
    Centralized store for operator-facing messages.
    Uses settings for dynamic content.
    """

    def price(self, amount) -> str:
        return f"{settings.currency_symbol}{Decimal(amount):,.2f}"

    # -- input validation ----------------------------------------------

    @property
    def BOOKING_AND_ROOM_REQUIRED(self) -> str:
        return "Booking ID and room number are required"

    @property
    def INVALID_TIME_FORMAT(self) -> str:
        return "Invalid time format. Please enter valid times."

    @property
    def INVALID_DATE_TIME(self) -> str:
        return "Invalid date/time combination. Please check your inputs."

    @property
    def CHECK_OUT_NOT_AFTER_CHECK_IN(self) -> str:
        return "Check-out date and time must be after check-in date and time"

    @property
    def VALID_AMOUNT_REQUIRED(self) -> str:
        return "Please enter a valid payment amount"

    @property
    def PAYMENT_METHOD_REQUIRED(self) -> str:
        return "Please select a payment method"

    def unsupported_payment_method(self, method: str) -> str:
        return f"Unsupported payment method: {method}"

    def amount_exceeds_remaining(self, ceiling) -> str:
        return f"Payment amount cannot exceed the remaining amount of {self.price(ceiling)}"

    def adjusted_remaining_out_of_range(self, correct_remaining) -> str:
        return (
            "Adjusted remaining amount must be between "
            f"{self.price(0)} and {self.price(correct_remaining)}"
        )

    def extension_days_out_of_range(self, max_days: int) -> str:
        return f"Days to extend must be between 1 and {max_days}"

    @property
    def NEGATIVE_ADDITIONAL_AMOUNT(self) -> str:
        return "Additional amount cannot be negative"

    @property
    def EXTENSION_NOT_LATER(self) -> str:
        return "New checkout must be later than the current checkout"

    @property
    def CANCELLATION_REASON_REQUIRED(self) -> str:
        return "Please select a valid cancellation reason"

    def refund_out_of_range(self, paid_amount) -> str:
        return f"Refund amount must be between {self.price(0)} and {self.price(paid_amount)}"

    # -- lifecycle refusals --------------------------------------------

    def invalid_transition(self, current: str, target: str) -> str:
        return f"Cannot move booking from {current} to {target}"

    def terminal_state(self, current: str) -> str:
        return f"Booking is already {current.replace('_', ' ')}; no further changes allowed"

    @property
    def ONLY_CONFIRMED_CHECK_IN(self) -> str:
        return "Only confirmed bookings can be checked in"

    @property
    def ONLY_CHECKED_IN_CHECK_OUT(self) -> str:
        return "Guest must be checked in before checking out"

    @property
    def ONLY_CHECKED_IN_EXTEND(self) -> str:
        return "Only checked-in guests can extend their stay"

    def payment_pending(self, due) -> str:
        return (
            f"Cannot check out: Due amount pending ({self.price(due)}). "
            "Please collect payment first."
        )

    def full_payment_required(self, due) -> str:
        return (
            f"Cannot check out: full payment of {self.price(due)} is required. "
            "Please collect the full payment before checking out the guest."
        )

    def operation_in_progress(self, booking_id: int) -> str:
        return f"Another operation for booking #{booking_id} is still in progress"

    def future_check_in(self, check_in_date: date) -> str:
        return (
            f"Cannot check in for future dates ({check_in_date.isoformat()}). "
            "Check-in date must be today or in the past."
        )

    def room_not_ready(self, room_number: str, room_status: str) -> str:
        return f"Room {room_number} is not available for check-in ({room_status})"

    def room_not_occupied(self, room_number: str) -> str:
        return f"Room {room_number} is not occupied"

    def room_conflict(self, room_number: str, guest_name: str, reference: str,
                      start: date, end: date, pre_booked: bool) -> str:
        state = "already pre-booked for" if pre_booked else "occupied by"
        return (
            f"Room {room_number} is {state} {guest_name} (Ref: {reference}) "
            f"from {start:%b %d, %Y} to {end:%b %d, %Y}. Cannot extend the current booking."
        )

    # -- success texts -------------------------------------------------

    def checked_in(self, guest_name: str, room_number: str) -> str:
        return f"Guest {guest_name} successfully checked into room {room_number}"

    def checked_out(self, guest_name: str, room_number: str) -> str:
        return f"Guest {guest_name} successfully checked out from room {room_number}"

    def payment_collected(self, amount, remaining) -> str:
        if Decimal(remaining) > 0:
            return (
                f"Payment of {self.price(amount)} recorded. "
                f"{self.price(remaining)} will still be due after this payment"
            )
        return f"Payment of {self.price(amount)} recorded. Booking is fully paid"

    def stay_extended(self, days: int, additional_amount) -> str:
        return (
            f"Stay extended successfully by {days} days with "
            f"{self.price(additional_amount)} additional amount"
        )

    def booking_cancelled(self, refund_amount) -> str:
        return f"Booking cancelled. Refund: {self.price(refund_amount)}"


messages = Messages()
