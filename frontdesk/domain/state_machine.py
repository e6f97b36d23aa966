"""
Booking lifecycle: confirmed -> checked_in -> checked_out, confirmed -> cancelled.

The machine only decides. Each accepted transition yields a TransitionPlan
describing the field changes and the room status that follows; applying
them is the job of the backend of record.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Optional

from frontdesk.core.config import settings
from frontdesk.core.exceptions import (
    FormatError,
    RefusalReason,
    TransitionRefused,
    ValidationError,
)
from frontdesk.core.messages import messages
from frontdesk.domain.payment_status import PaymentCategory, resolve_for
from frontdesk.domain.time_math import combine, parse_date, parse_meridiem, to_24_hour
from frontdesk.models import BookingStatus, CancellationReason, RoomStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionPlan:
    booking_id: int
    room_number: str
    from_status: BookingStatus
    to_status: BookingStatus
    room_status: RoomStatus
    changes: dict[str, Any] = field(default_factory=dict)
    reason: Optional[CancellationReason] = None

    def request_payload(self) -> dict:
        if self.to_status == BookingStatus.CANCELLED:
            return {"booking_id": self.booking_id, "reason": self.reason.value}

        payload = {"booking_id": self.booking_id, "room_number": self.room_number}
        for key, value in self.changes.items():
            if isinstance(value, date):
                value = value.isoformat()
            elif isinstance(value, Enum):
                value = value.value
            payload[key] = value
        return payload


class BookingStateMachine:
    ALLOWED_TRANSITIONS = {
        BookingStatus.CONFIRMED: {
            BookingStatus.CHECKED_IN,
            BookingStatus.CANCELLED,
        },
        BookingStatus.CHECKED_IN: {
            BookingStatus.CHECKED_OUT,
        },
    }

    TERMINAL_STATES = frozenset({BookingStatus.CHECKED_OUT, BookingStatus.CANCELLED})

    def __init__(self, allow_cancel_after_check_in: Optional[bool] = None):
        if allow_cancel_after_check_in is None:
            allow_cancel_after_check_in = settings.allow_cancel_after_check_in
        self.transitions = {
            state: set(targets) for state, targets in self.ALLOWED_TRANSITIONS.items()
        }
        if allow_cancel_after_check_in:
            self.transitions[BookingStatus.CHECKED_IN].add(BookingStatus.CANCELLED)

    def can_transition(self, current: BookingStatus, target: BookingStatus) -> bool:
        # Re-applying the current state is not a transition
        return BookingStatus(target) in self.transitions.get(BookingStatus(current), set())

    def next_states(self, booking) -> set[BookingStatus]:
        return set(self.transitions.get(BookingStatus(booking.status), set()))

    def _ensure(self, booking, target: BookingStatus, refusal_text: Optional[str] = None) -> BookingStatus:
        current = BookingStatus(booking.status)
        if self.can_transition(current, target):
            return current

        logger.warning(
            f"Refused transition {current.value} -> {target.value} "
            f"(booking={getattr(booking, 'booking_id', None)})"
        )
        if current in self.TERMINAL_STATES:
            raise TransitionRefused(
                messages.terminal_state(current.value), RefusalReason.TERMINAL_STATE
            )
        raise TransitionRefused(
            refusal_text or messages.invalid_transition(current.value, target.value),
            RefusalReason.INVALID_TRANSITION,
        )

    @staticmethod
    def _require_identity(booking) -> None:
        if not getattr(booking, "booking_id", None) or not getattr(booking, "room_number", None):
            raise ValidationError(messages.BOOKING_AND_ROOM_REQUIRED)

    def check_in(
        self,
        booking,
        *,
        check_in_date=None,
        check_in_time: Optional[str] = None,
        check_in_ampm=None,
        check_out_date=None,
        check_out_time: Optional[str] = None,
        check_out_ampm=None,
    ) -> TransitionPlan:
        """
        confirmed -> checked_in.

        Edited date/time fields override the stored ones; the resulting
        check-in must be strictly before the resulting check-out.
        """
        current = self._ensure(booking, BookingStatus.CHECKED_IN, messages.ONLY_CONFIRMED_CHECK_IN)
        self._require_identity(booking)

        values = {
            "check_in_date": check_in_date or booking.check_in_date,
            "check_in_time": check_in_time or booking.check_in_time,
            "check_in_ampm": check_in_ampm or booking.check_in_ampm,
            "check_out_date": check_out_date or booking.check_out_date,
            "check_out_time": check_out_time or booking.check_out_time,
            "check_out_ampm": check_out_ampm or booking.check_out_ampm,
        }

        if (
            to_24_hour(values["check_in_time"], values["check_in_ampm"]) is None
            or to_24_hour(values["check_out_time"], values["check_out_ampm"]) is None
        ):
            raise FormatError(messages.INVALID_TIME_FORMAT)

        start = combine(values["check_in_date"], values["check_in_time"], values["check_in_ampm"])
        end = combine(values["check_out_date"], values["check_out_time"], values["check_out_ampm"])
        if start is None or end is None:
            raise FormatError(messages.INVALID_DATE_TIME)
        if start >= end:
            raise ValidationError(messages.CHECK_OUT_NOT_AFTER_CHECK_IN)

        changes = {
            "check_in_date": parse_date(values["check_in_date"]),
            "check_in_time": str(values["check_in_time"]).strip(),
            "check_in_ampm": parse_meridiem(values["check_in_ampm"]),
            "check_out_date": parse_date(values["check_out_date"]),
            "check_out_time": str(values["check_out_time"]).strip(),
            "check_out_ampm": parse_meridiem(values["check_out_ampm"]),
        }
        return TransitionPlan(
            booking_id=booking.booking_id,
            room_number=booking.room_number,
            from_status=current,
            to_status=BookingStatus.CHECKED_IN,
            room_status=RoomStatus.OCCUPIED,
            changes=changes,
        )

    def check_out(self, booking) -> TransitionPlan:
        """checked_in -> checked_out, only once the stay is paid for"""
        current = self._ensure(booking, BookingStatus.CHECKED_OUT, messages.ONLY_CHECKED_IN_CHECK_OUT)
        self._require_identity(booking)

        payment = resolve_for(booking)
        if payment.category == PaymentCategory.PARTIALLY_PAID:
            logger.info(f"Checkout of booking #{booking.booking_id} blocked: due {payment.outstanding}")
            raise TransitionRefused(
                messages.payment_pending(payment.outstanding), RefusalReason.PAYMENT_PENDING
            )
        if payment.category == PaymentCategory.UNPAID:
            logger.info(f"Checkout of booking #{booking.booking_id} blocked: unpaid")
            raise TransitionRefused(
                messages.full_payment_required(payment.outstanding),
                RefusalReason.FULL_PAYMENT_REQUIRED,
            )

        return TransitionPlan(
            booking_id=booking.booking_id,
            room_number=booking.room_number,
            from_status=current,
            to_status=BookingStatus.CHECKED_OUT,
            room_status=RoomStatus.AVAILABLE,
        )

    def cancel(self, booking, reason) -> TransitionPlan:
        """confirmed -> cancelled; frees the room"""
        try:
            parsed_reason = CancellationReason(reason)
        except ValueError:
            raise ValidationError(messages.CANCELLATION_REASON_REQUIRED)

        current = self._ensure(booking, BookingStatus.CANCELLED)
        if not getattr(booking, "booking_id", None):
            raise ValidationError(messages.BOOKING_AND_ROOM_REQUIRED)

        return TransitionPlan(
            booking_id=booking.booking_id,
            room_number=booking.room_number,
            from_status=current,
            to_status=BookingStatus.CANCELLED,
            room_status=RoomStatus.AVAILABLE,
            changes={"cancellation_reason": parsed_reason},
            reason=parsed_reason,
        )


booking_state_machine = BookingStateMachine()
