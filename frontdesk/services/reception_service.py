import logging
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from frontdesk.core.config import settings
from frontdesk.core.exceptions import (
    BookingNotFound,
    FrontDeskError,
    RefusalReason,
    TransitionRefused,
    ValidationError,
)
from frontdesk.core.messages import messages
from frontdesk.domain.cancellation_policy import quote_refund
from frontdesk.domain.payment_ledger import apply_payment
from frontdesk.domain.payment_status import SETTLED_CATEGORIES, resolve_for
from frontdesk.domain.state_machine import BookingStateMachine
from frontdesk.domain.stay_extension import confirm_extension
from frontdesk.models import (
    ActivityLog,
    Booking,
    BookingCancellation,
    BookingSource,
    BookingStatus,
    Guest,
    Payment,
    Room,
    RoomStatus,
    utcnow,
)
from frontdesk.schemas.booking import (
    BookingRead,
    CancellationRequest,
    CheckInRequest,
    CheckOutRequest,
    DuePaymentRequest,
    ExtensionRequest,
)

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 50

# Bookings that keep a room blocked for their dates
BLOCKING_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN)


def serialize_booking(booking: Booking) -> dict[str, Any]:
    return BookingRead.from_booking(booking).model_dump(mode="json")


class ReceptionService:
    """
    Backend of record for the front desk.

    Every mutation re-runs the domain guard against the stored booking,
    applies its effects in one transaction and bumps the booking version.
    Domain errors come back as ``success: False`` with nothing written.
    """

    def __init__(self, state_machine: Optional[BookingStateMachine] = None):
        self.state_machine = state_machine or BookingStateMachine()

    # -- helpers -------------------------------------------------------

    @staticmethod
    async def _load(db: AsyncSession, booking_id: Optional[int], room_number: Optional[str] = None) -> Booking:
        """Booking by id; when a room is given it must be the booking's room"""
        if not booking_id:
            raise ValidationError(messages.BOOKING_AND_ROOM_REQUIRED)
        query = (
            select(Booking)
            .options(selectinload(Booking.guest))
            .where(Booking.id == booking_id)
        )
        if room_number is not None:
            query = query.where(Booking.room_number == room_number)
        result = await db.execute(query)
        booking = result.scalar_one_or_none()
        if booking is None:
            raise BookingNotFound(booking_id, room_number)
        return booking

    @staticmethod
    def _log_activity(db: AsyncSession, action: str, booking_id: int, details: str) -> None:
        db.add(ActivityLog(action=action, booking_id=booking_id, details=details))

    @staticmethod
    def _ok(message: str, data: dict[str, Any]) -> dict[str, Any]:
        return {"success": True, "message": message, "data": data}

    @staticmethod
    async def _refuse(db: AsyncSession, operation: str, error: FrontDeskError) -> dict[str, Any]:
        await db.rollback()
        logger.warning(f"{operation} refused: {error.message}")
        data = None
        if isinstance(error, TransitionRefused):
            data = {"reason": error.reason.value}
        return {"success": False, "message": error.message, "data": data}

    # -- lifecycle -----------------------------------------------------

    async def check_in(self, db: AsyncSession, request: CheckInRequest) -> dict[str, Any]:
        try:
            if not request.booking_id or not request.room_number:
                raise ValidationError(messages.BOOKING_AND_ROOM_REQUIRED)
            booking = await self._load(db, request.booking_id, request.room_number)

            plan = self.state_machine.check_in(
                booking,
                check_in_date=request.check_in_date,
                check_in_time=request.check_in_time,
                check_in_ampm=request.check_in_ampm,
                check_out_date=request.check_out_date,
                check_out_time=request.check_out_time,
                check_out_ampm=request.check_out_ampm,
            )

            check_in_day = plan.changes["check_in_date"]
            if not settings.allow_future_check_in and check_in_day > date.today():
                raise TransitionRefused(
                    messages.future_check_in(check_in_day), RefusalReason.FUTURE_CHECK_IN
                )

            room = await db.get(Room, booking.room_number)
            if room is None or room.status not in (RoomStatus.BOOKED, RoomStatus.AVAILABLE):
                room_status = room.status.value if room else "missing"
                raise TransitionRefused(
                    messages.room_not_ready(booking.room_number, room_status),
                    RefusalReason.ROOM_UNAVAILABLE,
                )

            for field_name, value in plan.changes.items():
                setattr(booking, field_name, value)
            booking.status = plan.to_status
            room.status = plan.room_status
            booking.touch()

            guest_name = booking.guest.full_name
            self._log_activity(
                db, "check_in", booking.id,
                f"Guest {guest_name} checked into room {booking.room_number}",
            )
            await db.commit()
        except FrontDeskError as e:
            return await self._refuse(db, "Check-in", e)

        logger.info(f"Booking #{booking.id} checked in (room {booking.room_number}, v{booking.version})")
        return self._ok(
            messages.checked_in(guest_name, booking.room_number),
            {"snapshot": serialize_booking(booking)},
        )

    async def check_out(self, db: AsyncSession, request: CheckOutRequest) -> dict[str, Any]:
        try:
            if not request.booking_id or not request.room_number:
                raise ValidationError(messages.BOOKING_AND_ROOM_REQUIRED)
            booking = await self._load(db, request.booking_id, request.room_number)
            plan = self.state_machine.check_out(booking)

            room = await db.get(Room, booking.room_number)
            if room is None or room.status != RoomStatus.OCCUPIED:
                raise TransitionRefused(
                    messages.room_not_occupied(booking.room_number),
                    RefusalReason.ROOM_UNAVAILABLE,
                )

            booking.status = plan.to_status
            room.status = plan.room_status
            booking.touch()

            guest_name = booking.guest.full_name
            self._log_activity(
                db, "check_out", booking.id,
                f"Guest {guest_name} checked out from room {booking.room_number}",
            )
            await db.commit()
        except FrontDeskError as e:
            return await self._refuse(db, "Check-out", e)

        logger.info(f"Booking #{booking.id} checked out (room {booking.room_number}, v{booking.version})")
        return self._ok(
            messages.checked_out(guest_name, booking.room_number),
            {"snapshot": serialize_booking(booking)},
        )

    async def collect_due_payment(self, db: AsyncSession, request: DuePaymentRequest) -> dict[str, Any]:
        try:
            booking = await self._load(db, request.booking_id)
            current = BookingStatus(booking.status)
            if current in BookingStateMachine.TERMINAL_STATES:
                raise TransitionRefused(
                    messages.terminal_state(current.value), RefusalReason.TERMINAL_STATE
                )

            outcome = apply_payment(
                booking, request.amount, request.payment_method, request.adjusted_remaining
            )

            booking.paid_amount = outcome.new_paid_amount
            booking.total_amount = outcome.new_total_amount
            booking.payment_method = outcome.payment_method
            if request.transaction_id:
                booking.transaction_id = request.transaction_id
            db.add(
                Payment(
                    booking_id=booking.id,
                    amount=outcome.amount,
                    discount_amount=outcome.discount_amount,
                    payment_method=outcome.payment_method,
                    transaction_id=request.transaction_id,
                    notes=request.notes,
                )
            )
            booking.touch()

            self._log_activity(
                db, "due_payment", booking.id,
                f"Collected {messages.price(outcome.amount)} via {outcome.payment_method.value}",
            )
            await db.commit()
        except FrontDeskError as e:
            return await self._refuse(db, "Due payment", e)

        logger.info(
            f"Booking #{booking.id}: collected {outcome.amount}, "
            f"remaining {outcome.new_remaining_amount}"
        )
        return self._ok(
            messages.payment_collected(outcome.amount, outcome.new_remaining_amount),
            {
                "new_paid_amount": str(outcome.new_paid_amount),
                "new_remaining_amount": str(outcome.new_remaining_amount),
                "payment_status": outcome.status.category.value,
                "snapshot": serialize_booking(booking),
            },
        )

    async def _find_room_conflict(self, db: AsyncSession, booking: Booking, new_checkout: date) -> Optional[Booking]:
        result = await db.execute(
            select(Booking)
            .options(selectinload(Booking.guest))
            .where(
                Booking.room_number == booking.room_number,
                Booking.id != booking.id,
                Booking.status.in_(BLOCKING_STATUSES),
                Booking.check_in_date < new_checkout,
                Booking.check_out_date > booking.check_out_date,
            )
            .order_by(Booking.check_in_date)
            .limit(1)
        )
        return result.scalars().first()

    async def extend_stay(self, db: AsyncSession, request: ExtensionRequest) -> dict[str, Any]:
        try:
            if not request.booking_id or not request.room_number:
                raise ValidationError(messages.BOOKING_AND_ROOM_REQUIRED)
            booking = await self._load(db, request.booking_id, request.room_number)
            change = confirm_extension(
                booking,
                request.days_to_extend,
                request.new_checkout_date,
                request.new_checkout_time,
                request.new_checkout_ampm,
                request.additional_amount,
            )

            conflict = await self._find_room_conflict(db, booking, change.check_out_date)
            if conflict is not None:
                raise TransitionRefused(
                    messages.room_conflict(
                        booking.room_number,
                        conflict.guest.full_name,
                        conflict.booking_reference,
                        conflict.check_in_date,
                        conflict.check_out_date,
                        pre_booked=conflict.status == BookingStatus.CONFIRMED,
                    ),
                    RefusalReason.ROOM_UNAVAILABLE,
                )

            booking.check_out_date = change.check_out_date
            booking.check_out_time = change.check_out_time
            booking.check_out_ampm = change.check_out_ampm
            booking.total_amount = change.total_amount
            booking.touch()

            self._log_activity(
                db, "extend_stay", booking.id,
                f"Extended by {change.days_to_add} days to {change.check_out_date}, "
                f"additional {messages.price(change.additional_amount)}",
            )
            await db.commit()
        except FrontDeskError as e:
            return await self._refuse(db, "Extension", e)

        logger.info(f"Booking #{booking.id} extended to {booking.check_out_date} (v{booking.version})")
        return self._ok(
            messages.stay_extended(change.days_to_add, change.additional_amount),
            {
                "booking": {
                    "check_out_date": change.check_out_date.isoformat(),
                    "check_out_time": change.check_out_time,
                    "check_out_ampm": change.check_out_ampm.value,
                    "total_amount": str(change.total_amount),
                },
                "additional_amount": str(change.additional_amount),
                "snapshot": serialize_booking(booking),
            },
        )

    async def cancel_booking(self, db: AsyncSession, request: CancellationRequest) -> dict[str, Any]:
        try:
            booking = await self._load(db, request.booking_id)
            plan = self.state_machine.cancel(booking, request.reason)
            quote = quote_refund(booking, plan.reason, request.refund_amount)

            booking.status = plan.to_status
            booking.cancellation_reason = plan.reason
            room = await db.get(Room, booking.room_number)
            if room is not None and room.status != RoomStatus.MAINTENANCE:
                room.status = plan.room_status

            db.add(
                BookingCancellation(
                    booking_id=booking.id,
                    reason=plan.reason,
                    cancellation_fee=quote.cancellation_fee,
                    refund_amount=quote.refund_amount,
                    refund_type=quote.refund_type,
                    cancelled_by=request.cancelled_by,
                    notes=request.notes,
                )
            )
            booking.touch()

            self._log_activity(
                db, "cancel", booking.id,
                f"Cancelled ({plan.reason.value}), refund {messages.price(quote.refund_amount)}",
            )
            await db.commit()
        except FrontDeskError as e:
            return await self._refuse(db, "Cancellation", e)

        logger.info(
            f"Booking #{booking.id} cancelled: fee {quote.cancellation_fee}, "
            f"refund {quote.refund_amount} ({quote.refund_type})"
        )
        return self._ok(
            messages.booking_cancelled(quote.refund_amount),
            {
                "cancellation_fee": str(quote.cancellation_fee),
                "refund_amount": str(quote.refund_amount),
                "refund_type": quote.refund_type,
                "room_number": booking.room_number,
                "snapshot": serialize_booking(booking),
            },
        )

    # -- reads ---------------------------------------------------------

    async def get_booking(self, db: AsyncSession, booking_id: int) -> BookingRead:
        booking = await self._load(db, booking_id)
        return BookingRead.from_booking(booking)

    async def search_guests(
        self,
        db: AsyncSession,
        term: str = "",
        search_type: str = "all",
        status: Optional[str] = None,
        corporate: bool = False,
        include_checked_out: bool = False,
        due: bool = False,
    ) -> list[dict[str, Any]]:
        """
        Bookings matching ``term`` with their guest data.

        Cancelled bookings are never returned; checked-out ones only with
        ``include_checked_out`` or an explicit ``status``.
        """
        query = (
            select(Booking)
            .join(Booking.guest)
            .options(selectinload(Booking.guest))
            .where(Booking.status != BookingStatus.CANCELLED)
        )

        if status:
            try:
                query = query.where(Booking.status == BookingStatus(status))
            except ValueError:
                return []
        elif not include_checked_out:
            query = query.where(Booking.status != BookingStatus.CHECKED_OUT)

        if corporate:
            query = query.where(Booking.booking_source == BookingSource.CORPORATE)

        term = (term or "").strip()
        if term:
            pattern = f"%{term}%"
            full_name = Guest.first_name + " " + Guest.last_name
            filters = {
                "name": [
                    Guest.first_name.ilike(pattern),
                    Guest.last_name.ilike(pattern),
                    full_name.ilike(pattern),
                ],
                "phone": [Guest.phone.like(pattern), Booking.contact_phone.like(pattern)],
                "email": [Guest.email.ilike(pattern)],
                "room": [Booking.room_number.ilike(pattern)],
                "reference": [Booking.booking_reference.ilike(pattern)],
                "company": [Booking.company_name.ilike(pattern)],
            }
            if search_type == "all":
                conditions = [c for group in filters.values() for c in group]
            elif search_type in filters:
                conditions = filters[search_type]
            else:
                raise ValidationError(f"Unsupported search type: {search_type}")
            query = query.where(or_(*conditions))

        result = await db.execute(query.order_by(Booking.id.desc()).limit(SEARCH_LIMIT))
        bookings = result.scalars().all()

        if due:
            bookings = [b for b in bookings if resolve_for(b).category not in SETTLED_CATEGORIES]

        return [serialize_booking(b) for b in bookings]

    async def changes_since(self, db: AsyncSession, cursor: Optional[datetime] = None) -> dict[str, Any]:
        """Bookings touched at or after ``cursor`` plus the next cursor"""
        # Taken before the query so nothing committed meanwhile is skipped next time
        server_time = utcnow()

        query = select(Booking).options(selectinload(Booking.guest))
        if cursor is not None:
            query = query.where(Booking.updated_at >= cursor)
        result = await db.execute(query.order_by(Booking.updated_at))
        bookings = result.scalars().all()

        return {
            "server_time": server_time.isoformat(),
            "bookings": [serialize_booking(b) for b in bookings],
        }

    async def count_activity(self, db: AsyncSession, booking_id: int) -> int:
        result = await db.execute(
            select(func.count(ActivityLog.id)).where(ActivityLog.booking_id == booking_id)
        )
        return result.scalar_one()


reception_service = ReceptionService()
