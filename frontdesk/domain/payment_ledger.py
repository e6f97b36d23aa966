import logging
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from frontdesk.core.exceptions import InvalidAmount, MissingMethod, ValidationError
from frontdesk.core.messages import messages
from frontdesk.domain.payment_status import (
    ZERO,
    PaymentSummary,
    remaining_amount,
    resolve_payment_status,
    to_money,
)
from frontdesk.models import PaymentMethod

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentOutcome:
    amount: Decimal
    payment_method: PaymentMethod
    new_paid_amount: Decimal
    new_remaining_amount: Decimal
    new_total_amount: Decimal
    # Write-down granted through adjusted_remaining
    discount_amount: Decimal
    status: PaymentSummary


def _parse_amount(value, *, allow_missing: bool = False) -> Optional[Decimal]:
    if value is None or value == "":
        if allow_missing:
            return None
        raise InvalidAmount(messages.VALID_AMOUNT_REQUIRED)
    try:
        amount = to_money(value)
    except (ValueError, TypeError):
        raise InvalidAmount(messages.VALID_AMOUNT_REQUIRED)
    if not amount.is_finite() or amount < 0:
        raise InvalidAmount(messages.VALID_AMOUNT_REQUIRED)
    return amount


def parse_method(method) -> PaymentMethod:
    if isinstance(method, PaymentMethod):
        return method
    if method is None or not str(method).strip():
        raise MissingMethod(messages.PAYMENT_METHOD_REQUIRED)
    try:
        return PaymentMethod(str(method).strip().lower())
    except ValueError:
        raise ValidationError(messages.unsupported_payment_method(str(method)))


def collection_ceiling(booking, adjusted_remaining=None) -> tuple[Decimal, Decimal]:
    """(correct remaining, ceiling for this collection)"""
    correct = remaining_amount(booking.total_amount, booking.paid_amount)
    adjusted = _parse_amount(adjusted_remaining, allow_missing=True)
    if adjusted is None:
        return correct, correct
    if adjusted > correct:
        raise InvalidAmount(messages.adjusted_remaining_out_of_range(correct))
    return correct, adjusted


def apply_payment(booking, amount, method, adjusted_remaining=None) -> PaymentOutcome:
    """
    Collect ``amount`` against the due balance of ``booking``.

    Pure: returns the new money fields; the booking itself is not touched.
    ``adjusted_remaining`` lets staff write the due balance down before
    collecting; the write-down lowers the total so the remaining amount
    stays derivable from total and paid.
    """
    value = _parse_amount(amount)
    correct, ceiling = collection_ceiling(booking, adjusted_remaining)
    if value > ceiling:
        raise InvalidAmount(messages.amount_exceeds_remaining(ceiling))
    payment_method = parse_method(method)

    discount = correct - ceiling
    new_paid = to_money(booking.paid_amount) + value
    new_total = to_money(booking.total_amount) - discount
    new_remaining = max(ZERO, ceiling - value)
    status = resolve_payment_status(
        new_total, new_paid, bool(getattr(booking, "owner_reference", False))
    )

    logger.debug(
        f"Payment {value} via {payment_method.value}: paid {booking.paid_amount} -> {new_paid}, "
        f"remaining {new_remaining} (discount {discount})"
    )
    return PaymentOutcome(
        amount=value,
        payment_method=payment_method,
        new_paid_amount=new_paid,
        new_remaining_amount=new_remaining,
        new_total_amount=new_total,
        discount_amount=discount,
        status=status,
    )


def quick_amounts(booking, adjusted_remaining=None) -> dict[str, Decimal]:
    """Preset amounts offered next to the amount field: full, half, quarter"""
    _, ceiling = collection_ceiling(booking, adjusted_remaining)
    return {
        "full": ceiling,
        "half": to_money(math.ceil(ceiling / 2)),
        "quarter": to_money(math.ceil(ceiling * Decimal("0.25"))),
    }
