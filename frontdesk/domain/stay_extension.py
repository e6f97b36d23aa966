"""
Day extend: push the checkout of an active stay and price the extra days.

The suggestion assumes the current average daily rate; staff may override
the amount before confirming.
"""
import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from frontdesk.core.config import settings
from frontdesk.core.exceptions import (
    FormatError,
    InvalidAmount,
    RefusalReason,
    TransitionRefused,
    ValidationError,
)
from frontdesk.core.messages import messages
from frontdesk.domain.payment_status import (
    CENT,
    PaymentSummary,
    remaining_amount,
    resolve_payment_status,
    to_money,
)
from frontdesk.domain.time_math import combine, parse_date, parse_meridiem, to_24_hour
from frontdesk.models import BookingStatus, Meridiem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtensionProposal:
    days_to_add: int
    new_checkout_date: date
    new_checkout_time: str
    new_checkout_ampm: Meridiem
    daily_rate: Decimal
    suggested_additional_amount: Decimal


@dataclass(frozen=True)
class ExtensionChange:
    booking_id: int
    room_number: str
    days_to_add: int
    check_out_date: date
    check_out_time: str
    check_out_ampm: Meridiem
    additional_amount: Decimal
    total_amount: Decimal
    remaining_amount: Decimal
    payment: PaymentSummary

    def request_payload(self) -> dict:
        return {
            "booking_id": self.booking_id,
            "room_number": self.room_number,
            "days_to_extend": self.days_to_add,
            "new_checkout_date": self.check_out_date.isoformat(),
            "new_checkout_time": self.check_out_time,
            "new_checkout_ampm": self.check_out_ampm.value,
            "additional_amount": str(self.additional_amount),
        }


def current_days(booking) -> int:
    check_in = parse_date(booking.check_in_date)
    check_out = parse_date(booking.check_out_date)
    if check_in is None or check_out is None:
        raise FormatError(messages.INVALID_DATE_TIME)
    # Minimum one day so the daily rate never divides by zero
    return max(1, math.ceil((check_out - check_in).days))


def daily_rate(booking) -> Decimal:
    days = current_days(booking)
    total = to_money(booking.total_amount)
    return total / days if days > 0 else total


def _check_days(days_to_add, max_days: Optional[int] = None) -> int:
    max_days = max_days or settings.max_extension_days
    try:
        days = int(days_to_add)
    except (TypeError, ValueError):
        raise ValidationError(messages.extension_days_out_of_range(max_days))
    if days < 1 or days > max_days:
        raise ValidationError(messages.extension_days_out_of_range(max_days))
    return days


def propose_extension(booking, days_to_add: int) -> ExtensionProposal:
    days = _check_days(days_to_add)
    rate = daily_rate(booking)
    checkout = parse_date(booking.check_out_date)
    return ExtensionProposal(
        days_to_add=days,
        new_checkout_date=checkout + timedelta(days=days),
        new_checkout_time=booking.check_out_time,
        new_checkout_ampm=parse_meridiem(booking.check_out_ampm),
        daily_rate=rate,
        suggested_additional_amount=(rate * days).quantize(CENT, rounding=ROUND_HALF_UP),
    )


def confirm_extension(
    booking,
    days_to_add: int,
    new_checkout_date=None,
    new_checkout_time: Optional[str] = None,
    new_checkout_meridiem=None,
    additional_amount=None,
) -> ExtensionChange:
    """
    Validate an extension and compute the booking fields it replaces.

    ``additional_amount`` falls back to the suggested amount when omitted,
    the checkout date/time to the proposed ones.
    Nothing is mutated; the caller sends ``request_payload()`` to the
    backend of record and applies the confirmed snapshot.
    """
    if booking.status != BookingStatus.CHECKED_IN:
        raise TransitionRefused(messages.ONLY_CHECKED_IN_EXTEND, RefusalReason.NOT_CHECKED_IN)

    days = _check_days(days_to_add)

    # Omitted fields default to the proposed checkout
    if new_checkout_date is None or new_checkout_date == "":
        new_checkout_date = parse_date(booking.check_out_date) + timedelta(days=days)
    if not new_checkout_time:
        new_checkout_time = booking.check_out_time
    if not new_checkout_meridiem:
        new_checkout_meridiem = booking.check_out_ampm

    meridiem = parse_meridiem(new_checkout_meridiem)
    if meridiem is None or to_24_hour(new_checkout_time, meridiem) is None:
        raise FormatError(messages.INVALID_TIME_FORMAT)
    checkout_date = parse_date(new_checkout_date)
    if checkout_date is None:
        raise FormatError(messages.INVALID_DATE_TIME)

    new_checkout = combine(checkout_date, new_checkout_time, meridiem)
    current_checkout = combine(
        booking.check_out_date, booking.check_out_time, booking.check_out_ampm
    )
    if current_checkout is not None and new_checkout <= current_checkout:
        raise ValidationError(messages.EXTENSION_NOT_LATER)

    if additional_amount is None or additional_amount == "":
        amount = propose_extension(booking, days).suggested_additional_amount
    else:
        try:
            amount = to_money(additional_amount)
        except (TypeError, ValueError):
            raise InvalidAmount(messages.VALID_AMOUNT_REQUIRED)
        if amount < 0:
            raise InvalidAmount(messages.NEGATIVE_ADDITIONAL_AMOUNT)

    new_total = to_money(booking.total_amount) + amount
    payment = resolve_payment_status(
        new_total, booking.paid_amount, bool(getattr(booking, "owner_reference", False))
    )
    logger.info(
        f"Extension for booking #{booking.booking_id}: +{days} days, "
        f"checkout {checkout_date} {new_checkout_time} {meridiem.value}, +{amount}"
    )
    return ExtensionChange(
        booking_id=booking.booking_id,
        room_number=booking.room_number,
        days_to_add=days,
        check_out_date=checkout_date,
        check_out_time=new_checkout_time.strip(),
        check_out_ampm=meridiem,
        additional_amount=amount,
        total_amount=new_total,
        remaining_amount=remaining_amount(new_total, booking.paid_amount),
        payment=payment,
    )
