"""
Refund and cancellation fee for a booking cancelled before check-in.

- more than a day ahead: full refund
- one day ahead: 25% fee
- same day: 50% fee with at least 6 hours to check-in, 75% fee otherwise
- check-in date already passed: no refund
Medical emergencies and hotel faults always waive the fee.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from frontdesk.core.exceptions import InvalidAmount
from frontdesk.core.messages import messages
from frontdesk.domain.payment_status import CENT, ZERO, to_money
from frontdesk.domain.time_math import combine, parse_date
from frontdesk.models import CancellationReason

FEE_WAIVED = {
    CancellationReason.MEDICAL_EMERGENCY: "full_medical",
    CancellationReason.HOTEL_FAULT: "full_hotel_fault",
}


@dataclass(frozen=True)
class RefundQuote:
    cancellation_fee: Decimal
    max_refund: Decimal
    refund_amount: Decimal
    refund_type: str
    days_until_checkin: int


def _fee_share(booking, now: datetime) -> tuple[Decimal, str, int]:
    check_in_date = parse_date(booking.check_in_date)
    days_until = (check_in_date - now.date()).days

    if days_until > 1:
        return Decimal("0"), "full", days_until
    if days_until == 1:
        return Decimal("0.25"), "partial_75", days_until
    if days_until == 0:
        check_in_at = combine(check_in_date, booking.check_in_time, booking.check_in_ampm)
        hours_until = (check_in_at - now).total_seconds() / 3600 if check_in_at else 0
        if hours_until >= 6:
            return Decimal("0.50"), "partial_50", days_until
        return Decimal("0.75"), "partial_25", days_until
    return Decimal("1"), "no_refund", days_until


def quote_refund(
    booking,
    reason: CancellationReason,
    requested_refund=None,
    now: Optional[datetime] = None,
) -> RefundQuote:
    now = now or datetime.now()
    reason = CancellationReason(reason)
    total = to_money(booking.total_amount)
    paid = to_money(booking.paid_amount)

    share, refund_type, days_until = _fee_share(booking, now)
    if reason in FEE_WAIVED:
        share, refund_type = Decimal("0"), FEE_WAIVED[reason]

    fee = (total * share).quantize(CENT, rounding=ROUND_HALF_UP)
    max_refund = total - fee

    if requested_refund is None or requested_refund == "":
        refund = max(ZERO, min(max_refund, paid))
    else:
        try:
            refund = to_money(requested_refund)
        except (TypeError, ValueError):
            raise InvalidAmount(messages.refund_out_of_range(paid))
        # Staff may override the policy, but never refund more than was collected
        if refund < 0 or refund > paid:
            raise InvalidAmount(messages.refund_out_of_range(paid))

    return RefundQuote(
        cancellation_fee=fee,
        max_refund=max_refund,
        refund_amount=refund,
        refund_type=refund_type,
        days_until_checkin=days_until,
    )
