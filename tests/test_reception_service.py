"""
Tests for the backend of record against an in-memory database
"""
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from frontdesk.core.exceptions import BookingNotFound, ValidationError
from frontdesk.database import Base
from frontdesk.models import (
    Booking,
    BookingCancellation,
    BookingSource,
    BookingStatus,
    Guest,
    Meridiem,
    Payment,
    Room,
    RoomStatus,
    utcnow,
)
from frontdesk.schemas.booking import (
    CancellationRequest,
    CheckInRequest,
    CheckOutRequest,
    DuePaymentRequest,
    ExtensionRequest,
)
from frontdesk.services.reception_service import ReceptionService
from frontdesk.domain.state_machine import BookingStateMachine


@pytest_asyncio.fixture
async def db():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    Session = async_sessionmaker(engine, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with Session() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def service():
    return ReceptionService(BookingStateMachine(allow_cancel_after_check_in=False))


async def seed_booking(
    session,
    *,
    room_number="101",
    room_status=RoomStatus.BOOKED,
    status=BookingStatus.CONFIRMED,
    reference="BK-0001",
    first_name="Asha",
    phone="9876543210",
    check_in=None,
    check_out=None,
    total=Decimal("2000"),
    paid=Decimal("0"),
    source=BookingSource.WALK_IN,
    company_name=None,
):
    room = await session.get(Room, room_number)
    if room is None:
        room = Room(room_number=room_number, room_type="Deluxe", price=Decimal("1000"), status=room_status)
        session.add(room)

    guest = Guest(first_name=first_name, last_name="Rao", phone=phone)
    session.add(guest)
    await session.flush()

    check_in = check_in or date.today()
    booking = Booking(
        booking_reference=reference,
        guest=guest,
        room_number=room_number,
        status=status,
        booking_source=source,
        company_name=company_name,
        check_in_date=check_in,
        check_in_time="12:00",
        check_in_ampm=Meridiem.PM,
        check_out_date=check_out or check_in + timedelta(days=2),
        check_out_time="11:00",
        check_out_ampm=Meridiem.AM,
        total_amount=total,
        paid_amount=paid,
    )
    session.add(booking)
    await session.commit()
    return booking, room


class TestCheckIn:
    """Check-in against stored bookings"""

    @pytest.mark.asyncio
    async def test_success(self, db, service):
        booking, room = await seed_booking(db)

        result = await service.check_in(db, CheckInRequest(booking_id=booking.id, room_number="101"))

        assert result["success"] is True
        assert result["message"] == "Guest Asha Rao successfully checked into room 101"
        snapshot = result["data"]["snapshot"]
        assert snapshot["status"] == "checked_in"
        assert snapshot["version"] == 2
        assert room.status == RoomStatus.OCCUPIED
        assert await service.count_activity(db, booking.id) == 1

    @pytest.mark.asyncio
    async def test_repeat_is_refused_without_changes(self, db, service):
        booking, _ = await seed_booking(db)
        request = CheckInRequest(booking_id=booking.id, room_number="101")
        await service.check_in(db, request)

        result = await service.check_in(db, request)

        assert result["success"] is False
        assert result["data"]["reason"] == "invalid_transition"
        await db.refresh(booking)
        assert booking.version == 2

    @pytest.mark.asyncio
    async def test_future_check_in_is_refused(self, db, service):
        booking, _ = await seed_booking(db, check_in=date.today() + timedelta(days=3))

        result = await service.check_in(db, CheckInRequest(booking_id=booking.id, room_number="101"))

        assert result["success"] is False
        assert result["data"]["reason"] == "future_check_in"

    @pytest.mark.asyncio
    async def test_room_under_maintenance_is_refused(self, db, service):
        booking, _ = await seed_booking(db, room_status=RoomStatus.MAINTENANCE)

        result = await service.check_in(db, CheckInRequest(booking_id=booking.id, room_number="101"))

        assert result["data"]["reason"] == "room_unavailable"
        await db.refresh(booking)
        assert booking.status == BookingStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_missing_room_number(self, db, service):
        booking, _ = await seed_booking(db)

        result = await service.check_in(db, CheckInRequest(booking_id=booking.id))

        assert result == {
            "success": False,
            "message": "Booking ID and room number are required",
            "data": None,
        }

    @pytest.mark.asyncio
    async def test_unknown_booking(self, db, service):
        result = await service.check_in(db, CheckInRequest(booking_id=999, room_number="101"))
        assert result["success"] is False
        assert result["message"] == "Booking #999 not found in room 101"

    @pytest.mark.asyncio
    async def test_wrong_room_is_refused(self, db, service):
        booking, room = await seed_booking(db)

        result = await service.check_in(db, CheckInRequest(booking_id=booking.id, room_number="999"))

        assert result["success"] is False
        assert result["message"] == f"Booking #{booking.id} not found in room 999"
        await db.refresh(booking)
        await db.refresh(room)
        assert booking.status == BookingStatus.CONFIRMED
        assert booking.version == 1
        assert room.status == RoomStatus.BOOKED


class TestPaymentAndCheckOut:
    """Due payments and the checkout gate"""

    @pytest.mark.asyncio
    async def test_full_payment_then_checkout(self, db, service):
        booking, room = await seed_booking(
            db, status=BookingStatus.CHECKED_IN, room_status=RoomStatus.OCCUPIED
        )

        paid = await service.collect_due_payment(
            db, DuePaymentRequest(booking_id=booking.id, amount="2000", payment_method="cash")
        )
        assert paid["success"] is True
        assert paid["data"]["payment_status"] == "fully_paid"
        assert paid["data"]["new_remaining_amount"] == "0.00"
        payments = (await db.execute(select(Payment))).scalars().all()
        assert [p.amount for p in payments] == [Decimal("2000.00")]

        out = await service.check_out(db, CheckOutRequest(booking_id=booking.id, room_number="101"))
        assert out["success"] is True
        assert out["data"]["snapshot"]["status"] == "checked_out"
        assert out["data"]["snapshot"]["version"] == 3
        assert room.status == RoomStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_checkout_with_due_amount_is_refused(self, db, service):
        booking, room = await seed_booking(
            db,
            status=BookingStatus.CHECKED_IN,
            room_status=RoomStatus.OCCUPIED,
            total=Decimal("3000"),
            paid=Decimal("1500"),
        )

        result = await service.check_out(db, CheckOutRequest(booking_id=booking.id, room_number="101"))

        assert result["success"] is False
        assert result["data"]["reason"] == "payment_pending"
        await db.refresh(room)
        assert room.status == RoomStatus.OCCUPIED

    @pytest.mark.asyncio
    async def test_checkout_of_wrong_room_is_refused(self, db, service):
        booking, room = await seed_booking(
            db, status=BookingStatus.CHECKED_IN, room_status=RoomStatus.OCCUPIED, paid=Decimal("2000")
        )

        result = await service.check_out(db, CheckOutRequest(booking_id=booking.id, room_number="999"))

        assert result["success"] is False
        assert "not found in room 999" in result["message"]
        await db.refresh(booking)
        await db.refresh(room)
        assert booking.status == BookingStatus.CHECKED_IN
        assert room.status == RoomStatus.OCCUPIED

    @pytest.mark.asyncio
    async def test_overpayment_changes_nothing(self, db, service):
        booking, _ = await seed_booking(
            db, status=BookingStatus.CHECKED_IN, room_status=RoomStatus.OCCUPIED,
            total=Decimal("2000"), paid=Decimal("1500"),
        )

        result = await service.collect_due_payment(
            db, DuePaymentRequest(booking_id=booking.id, amount="600", payment_method="upi")
        )

        assert result["success"] is False
        await db.refresh(booking)
        assert booking.paid_amount == Decimal("1500.00")
        assert booking.version == 1

    @pytest.mark.asyncio
    async def test_write_down_is_recorded_as_discount(self, db, service):
        booking, _ = await seed_booking(
            db, status=BookingStatus.CHECKED_IN, room_status=RoomStatus.OCCUPIED,
            total=Decimal("3000"), paid=Decimal("1500"),
        )

        result = await service.collect_due_payment(
            db,
            DuePaymentRequest(
                booking_id=booking.id, amount="1000", payment_method="card", adjusted_remaining="1000"
            ),
        )

        assert result["success"] is True
        assert result["data"]["snapshot"]["total_amount"] == "2500.00"
        payment = (await db.execute(select(Payment))).scalar_one()
        assert payment.discount_amount == Decimal("500.00")

    @pytest.mark.asyncio
    async def test_no_payments_on_checked_out_booking(self, db, service):
        booking, _ = await seed_booking(db, status=BookingStatus.CHECKED_OUT)

        result = await service.collect_due_payment(
            db, DuePaymentRequest(booking_id=booking.id, amount="100", payment_method="cash")
        )

        assert result["data"]["reason"] == "terminal_state"


class TestExtendStay:
    """Day extend with room conflicts"""

    @pytest.mark.asyncio
    async def test_extension_updates_checkout_and_total(self, db, service):
        start = date.today() - timedelta(days=1)
        booking, _ = await seed_booking(
            db, status=BookingStatus.CHECKED_IN, room_status=RoomStatus.OCCUPIED,
            check_in=start, check_out=start + timedelta(days=2), total=Decimal("1000"),
        )

        result = await service.extend_stay(
            db, ExtensionRequest(booking_id=booking.id, room_number="101", days_to_extend=3)
        )

        assert result["success"] is True
        new_checkout = start + timedelta(days=5)
        assert result["data"]["booking"] == {
            "check_out_date": new_checkout.isoformat(),
            "check_out_time": "11:00",
            "check_out_ampm": "AM",
            "total_amount": "2500.00",
        }
        assert booking.check_out_date == new_checkout

    @pytest.mark.asyncio
    async def test_pre_booked_room_blocks_extension(self, db, service):
        start = date.today() - timedelta(days=1)
        booking, _ = await seed_booking(
            db, status=BookingStatus.CHECKED_IN, room_status=RoomStatus.OCCUPIED,
            check_in=start, check_out=start + timedelta(days=2),
        )
        await seed_booking(
            db, reference="BK-0002", first_name="Ravi", phone="9123456780",
            check_in=start + timedelta(days=3), check_out=start + timedelta(days=5),
        )

        result = await service.extend_stay(
            db, ExtensionRequest(booking_id=booking.id, room_number="101", days_to_extend=2)
        )

        assert result["success"] is False
        assert result["data"]["reason"] == "room_unavailable"
        assert "pre-booked for Ravi Rao (Ref: BK-0002)" in result["message"]

    @pytest.mark.asyncio
    async def test_confirmed_booking_cannot_extend(self, db, service):
        booking, _ = await seed_booking(db)

        result = await service.extend_stay(
            db, ExtensionRequest(booking_id=booking.id, room_number="101", days_to_extend=1)
        )

        assert result["data"]["reason"] == "not_checked_in"

    @pytest.mark.asyncio
    async def test_wrong_room_is_refused(self, db, service):
        start = date.today() - timedelta(days=1)
        booking, _ = await seed_booking(
            db, status=BookingStatus.CHECKED_IN, room_status=RoomStatus.OCCUPIED,
            check_in=start, check_out=start + timedelta(days=2),
        )

        result = await service.extend_stay(
            db, ExtensionRequest(booking_id=booking.id, room_number="999", days_to_extend=1)
        )

        assert result["success"] is False
        assert "not found in room 999" in result["message"]
        await db.refresh(booking)
        assert booking.check_out_date == start + timedelta(days=2)

    @pytest.mark.asyncio
    async def test_room_number_is_required(self, db, service):
        booking, _ = await seed_booking(db, status=BookingStatus.CHECKED_IN, room_status=RoomStatus.OCCUPIED)

        result = await service.extend_stay(db, ExtensionRequest(booking_id=booking.id, days_to_extend=1))

        assert result["success"] is False
        assert result["message"] == "Booking ID and room number are required"


class TestCancelBooking:
    """Cancellation with refund record"""

    @pytest.mark.asyncio
    async def test_cancel_confirmed_booking(self, db, service):
        booking, room = await seed_booking(
            db, check_in=date.today() + timedelta(days=10), paid=Decimal("500")
        )

        result = await service.cancel_booking(
            db, CancellationRequest(booking_id=booking.id, reason="guest_request", cancelled_by="desk")
        )

        assert result["success"] is True
        assert result["data"]["refund_type"] == "full"
        assert result["data"]["refund_amount"] == "500.00"
        assert result["data"]["snapshot"]["status"] == "cancelled"
        assert room.status == RoomStatus.AVAILABLE
        record = (await db.execute(select(BookingCancellation))).scalar_one()
        assert record.cancelled_by == "desk"

    @pytest.mark.asyncio
    async def test_invalid_reason(self, db, service):
        booking, _ = await seed_booking(db)

        result = await service.cancel_booking(
            db, CancellationRequest(booking_id=booking.id, reason="bored")
        )

        assert result["success"] is False
        assert result["message"] == "Please select a valid cancellation reason"


class TestReads:
    """Search, lookup and change polling"""

    @pytest.mark.asyncio
    async def test_search_by_phone_excludes_cancelled(self, db, service):
        await seed_booking(db)
        await seed_booking(
            db, room_number="102", reference="BK-0002", status=BookingStatus.CANCELLED
        )

        results = await service.search_guests(db, "98765", search_type="phone")

        assert [r["booking_reference"] for r in results] == ["BK-0001"]
        assert results[0]["payment_status"] == "unpaid"

    @pytest.mark.asyncio
    async def test_checked_out_only_with_history(self, db, service):
        await seed_booking(db, status=BookingStatus.CHECKED_OUT, paid=Decimal("2000"))

        assert await service.search_guests(db, "Asha", search_type="name") == []
        history = await service.search_guests(db, "Asha", search_type="name", include_checked_out=True)
        assert len(history) == 1

    @pytest.mark.asyncio
    async def test_due_and_corporate_filters(self, db, service):
        await seed_booking(db, paid=Decimal("2000"))
        await seed_booking(
            db, room_number="102", reference="BK-0002", source=BookingSource.CORPORATE,
            company_name="Acme Corp",
        )

        due = await service.search_guests(db, due=True)
        assert [r["booking_reference"] for r in due] == ["BK-0002"]
        corporate = await service.search_guests(db, "acme", search_type="company", corporate=True)
        assert [r["company_name"] for r in corporate] == ["Acme Corp"]

    @pytest.mark.asyncio
    async def test_unsupported_search_type(self, db, service):
        with pytest.raises(ValidationError):
            await service.search_guests(db, "x", search_type="passport")

    @pytest.mark.asyncio
    async def test_get_booking(self, db, service):
        booking, _ = await seed_booking(db)

        snapshot = await service.get_booking(db, booking.id)

        assert snapshot.guest_name == "Asha Rao"
        assert snapshot.payment.category.value == "unpaid"
        with pytest.raises(BookingNotFound):
            await service.get_booking(db, 999)

    @pytest.mark.asyncio
    async def test_changes_since_cursor(self, db, service):
        booking, _ = await seed_booking(db)
        cursor = utcnow()

        assert (await service.changes_since(db, cursor))["bookings"] == []

        await service.check_in(db, CheckInRequest(booking_id=booking.id, room_number="101"))
        changes = await service.changes_since(db, cursor)

        assert [b["booking_id"] for b in changes["bookings"]] == [booking.id]
        assert changes["bookings"][0]["version"] == 2
        assert datetime.fromisoformat(changes["server_time"]) >= cursor
