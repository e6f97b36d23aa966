from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from frontdesk.database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp (SQLite drops tzinfo anyway)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"
    CANCELLED = "cancelled"


class BookingSource(str, Enum):
    WALK_IN = "walk_in"
    CORPORATE = "corporate"
    MMT = "MMT"
    AGODA = "Agoda"
    TRAVEL_PLUS = "Travel Plus"
    PHONE_CALL = "Phone Call Booking"
    OTHER = "other"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    UPI = "upi"
    RAZORPAY = "razorpay"
    ONLINE = "online"
    BANK_TRANSFER = "bank_transfer"


class Meridiem(str, Enum):
    AM = "AM"
    PM = "PM"


class RoomStatus(str, Enum):
    AVAILABLE = "available"
    BOOKED = "booked"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"


class CancellationReason(str, Enum):
    GUEST_REQUEST = "guest_request"
    MEDICAL_EMERGENCY = "medical_emergency"
    TRAVEL_ISSUES = "travel_issues"
    HOTEL_FAULT = "hotel_fault"
    WEATHER_CONDITIONS = "weather_conditions"
    FORCE_MAJEURE = "force_majeure"
    SERVICE_ISSUE = "service_issue"
    ROOM_PROBLEM = "room_problem"
    OTHER = "other"


class Room(Base):
    __tablename__ = "rooms"

    room_number: Mapped[str] = mapped_column(String, primary_key=True)
    room_type: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    status: Mapped[RoomStatus] = mapped_column(
        SQLEnum(RoomStatus), default=RoomStatus.AVAILABLE
    )
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    bookings: Mapped[list["Booking"]] = relationship(back_populates="room")


class Guest(Base):
    __tablename__ = "guests"

    id: Mapped[int] = mapped_column(primary_key=True)
    first_name: Mapped[str] = mapped_column(String)
    last_name: Mapped[str] = mapped_column(String, default="")
    # Logical key, no uniqueness: repeat guests may have several rows
    phone: Mapped[str] = mapped_column(String, index=True)
    email: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    id_proof_type: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    id_proof_number: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    bookings: Mapped[list["Booking"]] = relationship(back_populates="guest")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(primary_key=True)
    booking_reference: Mapped[str] = mapped_column(String, unique=True, index=True)

    # Relations
    guest_id: Mapped[int] = mapped_column(ForeignKey("guests.id"), index=True)
    guest: Mapped["Guest"] = relationship(back_populates="bookings")
    room_number: Mapped[str] = mapped_column(ForeignKey("rooms.room_number"), index=True)
    room: Mapped["Room"] = relationship(back_populates="bookings")

    status: Mapped[BookingStatus] = mapped_column(
        SQLEnum(BookingStatus), default=BookingStatus.CONFIRMED, index=True
    )
    booking_source: Mapped[BookingSource] = mapped_column(
        SQLEnum(BookingSource), default=BookingSource.WALK_IN
    )

    # Stay
    check_in_date: Mapped[date] = mapped_column(Date)
    check_in_time: Mapped[str] = mapped_column(String, default="12:00")
    check_in_ampm: Mapped[Meridiem] = mapped_column(SQLEnum(Meridiem), default=Meridiem.PM)
    check_out_date: Mapped[date] = mapped_column(Date)
    check_out_time: Mapped[str] = mapped_column(String, default="11:00")
    check_out_ampm: Mapped[Meridiem] = mapped_column(SQLEnum(Meridiem), default=Meridiem.AM)
    adults: Mapped[int] = mapped_column(Integer, default=1)
    children: Mapped[int] = mapped_column(Integer, default=0)

    # Money; remaining is derived, see remaining_amount
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    paid_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    owner_reference: Mapped[bool] = mapped_column(Boolean, default=False)
    payment_method: Mapped[Optional[PaymentMethod]] = mapped_column(
        SQLEnum(PaymentMethod), nullable=True
    )
    transaction_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    payment_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    # Corporate
    company_name: Mapped[Optional[str]] = mapped_column(String, nullable=True, index=True)
    gst_number: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    contact_person: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    contact_phone: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    contact_email: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    cancellation_reason: Mapped[Optional[CancellationReason]] = mapped_column(
        SQLEnum(CancellationReason), nullable=True
    )

    # Monotonic per-booking version, bumped on every mutation
    version: Mapped[int] = mapped_column(Integer, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, index=True
    )

    payments: Mapped[list["Payment"]] = relationship(back_populates="booking")

    @property
    def booking_id(self) -> int:
        return self.id

    @property
    def remaining_amount(self) -> Decimal:
        return max(Decimal("0.00"), Decimal(self.total_amount or 0) - Decimal(self.paid_amount or 0))

    def touch(self) -> None:
        self.version = (self.version or 0) + 1
        self.updated_at = utcnow()


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(primary_key=True)
    booking_id: Mapped[int] = mapped_column(ForeignKey("bookings.id"), index=True)
    booking: Mapped["Booking"] = relationship(back_populates="payments")
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    payment_method: Mapped[PaymentMethod] = mapped_column(SQLEnum(PaymentMethod))
    transaction_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class BookingCancellation(Base):
    __tablename__ = "booking_cancellations"

    id: Mapped[int] = mapped_column(primary_key=True)
    booking_id: Mapped[int] = mapped_column(ForeignKey("bookings.id"), unique=True, index=True)
    reason: Mapped[CancellationReason] = mapped_column(SQLEnum(CancellationReason))
    cancellation_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    refund_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    refund_type: Mapped[str] = mapped_column(String)
    cancelled_by: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    cancelled_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    action: Mapped[str] = mapped_column(String, index=True)
    booking_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("bookings.id"), nullable=True, index=True
    )
    details: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
