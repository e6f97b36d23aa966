from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, computed_field

from frontdesk.domain.payment_status import PaymentSummary, remaining_amount, resolve_for
from frontdesk.models import (
    BookingSource,
    BookingStatus,
    CancellationReason,
    Meridiem,
    PaymentMethod,
)

# Raw operator input: kept loose so the engine reports its own errors
Amount = Optional[Union[Decimal, str]]


class BookingRead(BaseModel):
    """Booking snapshot as served by the backend of record"""

    booking_id: int
    booking_reference: str
    status: BookingStatus
    booking_source: BookingSource = BookingSource.WALK_IN
    room_number: str

    guest_id: Optional[int] = None
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    email: Optional[str] = None
    address: Optional[str] = None
    id_proof_type: Optional[str] = None
    id_proof_number: Optional[str] = None

    check_in_date: date
    check_in_time: str
    check_in_ampm: Meridiem
    check_out_date: date
    check_out_time: str
    check_out_ampm: Meridiem
    adults: int = 1
    children: int = 0

    total_amount: Decimal = Decimal("0.00")
    paid_amount: Decimal = Decimal("0.00")
    owner_reference: bool = False
    payment_method: Optional[PaymentMethod] = None
    transaction_id: Optional[str] = None
    payment_id: Optional[str] = None

    company_name: Optional[str] = None
    gst_number: Optional[str] = None
    contact_person: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None

    cancellation_reason: Optional[CancellationReason] = None
    version: int = 1
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def guest_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def payment(self) -> PaymentSummary:
        return resolve_for(self)

    @computed_field
    @property
    def remaining_amount(self) -> Decimal:
        return remaining_amount(self.total_amount, self.paid_amount)

    @computed_field
    @property
    def payment_status(self) -> str:
        return self.payment.category.value

    @computed_field
    @property
    def payment_percentage(self) -> int:
        return self.payment.display_percentage

    @classmethod
    def from_booking(cls, booking) -> "BookingRead":
        """Build from an ORM Booking with its guest loaded"""
        guest = booking.guest
        return cls(
            booking_id=booking.id,
            booking_reference=booking.booking_reference,
            status=booking.status,
            booking_source=booking.booking_source,
            room_number=booking.room_number,
            guest_id=booking.guest_id,
            first_name=guest.first_name if guest else "",
            last_name=guest.last_name if guest else "",
            phone=guest.phone if guest else "",
            email=guest.email if guest else None,
            address=guest.address if guest else None,
            id_proof_type=guest.id_proof_type if guest else None,
            id_proof_number=guest.id_proof_number if guest else None,
            check_in_date=booking.check_in_date,
            check_in_time=booking.check_in_time,
            check_in_ampm=booking.check_in_ampm,
            check_out_date=booking.check_out_date,
            check_out_time=booking.check_out_time,
            check_out_ampm=booking.check_out_ampm,
            adults=booking.adults,
            children=booking.children,
            total_amount=booking.total_amount,
            paid_amount=booking.paid_amount,
            owner_reference=booking.owner_reference,
            payment_method=booking.payment_method,
            transaction_id=booking.transaction_id,
            payment_id=booking.payment_id,
            company_name=booking.company_name,
            gst_number=booking.gst_number,
            contact_person=booking.contact_person,
            contact_phone=booking.contact_phone,
            contact_email=booking.contact_email,
            cancellation_reason=booking.cancellation_reason,
            version=booking.version,
            updated_at=booking.updated_at,
        )


class CheckInRequest(BaseModel):
    booking_id: Optional[int] = None
    room_number: Optional[str] = None
    check_in_date: Optional[str] = None
    check_in_time: Optional[str] = None
    check_in_ampm: Optional[str] = None
    check_out_date: Optional[str] = None
    check_out_time: Optional[str] = None
    check_out_ampm: Optional[str] = None


class CheckOutRequest(BaseModel):
    booking_id: Optional[int] = None
    room_number: Optional[str] = None


class DuePaymentRequest(BaseModel):
    booking_id: int
    amount: Amount = None
    payment_method: Optional[str] = None
    adjusted_remaining: Amount = None
    transaction_id: Optional[str] = None
    notes: Optional[str] = None


class ExtensionRequest(BaseModel):
    booking_id: int
    room_number: Optional[str] = None
    days_to_extend: Optional[Union[int, str]] = None
    new_checkout_date: Optional[str] = None
    new_checkout_time: Optional[str] = None
    new_checkout_ampm: Optional[str] = None
    additional_amount: Amount = None


class CancellationRequest(BaseModel):
    booking_id: int
    reason: Optional[str] = None
    refund_amount: Amount = None
    cancelled_by: Optional[str] = None
    notes: Optional[str] = None


class ApiResponse(BaseModel):
    success: bool
    message: str
    data: Optional[dict[str, Any]] = None
