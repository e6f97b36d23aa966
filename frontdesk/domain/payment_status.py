"""
Payment category of a booking, derived from its money fields.

Never stored: ``paid_amount`` may change underneath any cached view, so the
category is recomputed from total/paid on every read.
"""
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Optional

from frontdesk.core.config import settings

ZERO = Decimal("0.00")
CENT = Decimal("0.01")


class PaymentCategory(str, Enum):
    FREE = "free"
    FULLY_PAID = "fully_paid"
    PARTIALLY_PAID = "partially_paid"
    UNPAID = "unpaid"


SETTLED_CATEGORIES = frozenset({PaymentCategory.FREE, PaymentCategory.FULLY_PAID})


def to_money(value) -> Decimal:
    """Decimal with 2 places; None counts as zero"""
    if value is None or value == "":
        return ZERO.quantize(CENT)
    try:
        return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"Not a monetary amount: {value!r}")


def remaining_amount(total_amount, paid_amount) -> Decimal:
    return max(ZERO, to_money(total_amount) - to_money(paid_amount))


@dataclass(frozen=True)
class PaymentSummary:
    category: PaymentCategory
    total_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    payment_percentage: Decimal

    @property
    def is_settled(self) -> bool:
        return self.category in SETTLED_CATEGORIES

    @property
    def outstanding(self) -> Decimal:
        """Due amount as the desk treats it: residuals within tolerance are zero"""
        return ZERO if self.is_settled else self.remaining_amount

    @property
    def display_percentage(self) -> int:
        return int(self.payment_percentage.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    @property
    def label(self) -> str:
        if self.category == PaymentCategory.FREE:
            return "Free"
        if self.category == PaymentCategory.FULLY_PAID:
            return "Fully Paid"
        if self.category == PaymentCategory.PARTIALLY_PAID:
            return f"Partially Paid ({self.display_percentage}%)"
        return "Unpaid"


def resolve_payment_status(
    total_amount,
    paid_amount,
    owner_reference: bool = False,
    *,
    tolerance: Optional[Decimal] = None,
    owner_reference_is_free: Optional[bool] = None,
) -> PaymentSummary:
    total = to_money(total_amount)
    paid = to_money(paid_amount)
    if tolerance is None:
        tolerance = settings.fully_paid_tolerance
    if owner_reference_is_free is None:
        owner_reference_is_free = settings.owner_reference_is_free

    remaining = max(ZERO, total - paid)
    percentage = (paid / total * 100) if total > 0 else ZERO

    if total == 0 or (owner_reference and owner_reference_is_free):
        category = PaymentCategory.FREE
    elif paid >= total or (total - paid) <= tolerance:
        category = PaymentCategory.FULLY_PAID
    elif paid > 0:
        category = PaymentCategory.PARTIALLY_PAID
    else:
        category = PaymentCategory.UNPAID

    return PaymentSummary(
        category=category,
        total_amount=total,
        paid_amount=paid,
        remaining_amount=remaining,
        payment_percentage=percentage,
    )


def resolve_for(booking) -> PaymentSummary:
    """Resolve from any booking-shaped object (ORM row or read model)"""
    return resolve_payment_status(
        booking.total_amount,
        booking.paid_amount,
        bool(getattr(booking, "owner_reference", False)),
    )
