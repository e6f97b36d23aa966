"""
Tests for the console: local guards, per-booking exclusion and
snapshot handling. The backend is an AsyncMock.
"""
import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from frontdesk.console.change_feed import ChangeFeed
from frontdesk.console.reception_console import ReceptionConsole
from frontdesk.core.exceptions import (
    InvalidAmount,
    RefusalReason,
    TransitionRefused,
    UpstreamFailure,
)
from frontdesk.domain.state_machine import BookingStateMachine


def _body(snapshot, message="ok", **data):
    data["snapshot"] = snapshot.model_dump(mode="json")
    return {"success": True, "message": message, "data": data}


@pytest.fixture
def backend():
    return AsyncMock()


@pytest.fixture
def console(backend):
    return ReceptionConsole(
        client=backend,
        feed=ChangeFeed(),
        state_machine=BookingStateMachine(allow_cancel_after_check_in=False),
    )


class TestOperations:
    """Happy paths publish the server snapshot"""

    @pytest.mark.asyncio
    async def test_check_in_applies_confirmed_snapshot(self, console, backend, make_booking):
        console.track(make_booking(status="confirmed"))
        backend.check_in.return_value = _body(make_booking(status="checked_in", version=2))

        await console.check_in(1)

        sent = backend.check_in.await_args.args[0]
        assert sent["booking_id"] == 1
        assert sent["check_in_ampm"] == "PM"
        state = console.state(1)
        assert state.snapshot.status.value == "checked_in"
        assert state.version == 2
        assert state.in_flight is None

    @pytest.mark.asyncio
    async def test_pay_due_sends_normalised_payload(self, console, backend, make_booking):
        console.track(make_booking(total_amount=Decimal("2000")))
        backend.pay_due.return_value = _body(
            make_booking(total_amount=Decimal("2000"), paid_amount=Decimal("2000"), version=2)
        )

        await console.pay_due(1, 2000, "Cash")

        backend.pay_due.assert_awaited_once_with(
            {"booking_id": 1, "amount": "2000.00", "payment_method": "cash"}
        )
        assert console.state(1).payment.category.value == "fully_paid"

    @pytest.mark.asyncio
    async def test_extend_sends_extension_payload(self, console, backend, make_booking):
        console.track(make_booking())
        backend.extend.return_value = _body(make_booking(version=2))

        await console.extend(1, 3)

        sent = backend.extend.await_args.args[0]
        assert sent["days_to_extend"] == 3
        assert sent["new_checkout_date"] == "2024-01-13"
        assert sent["additional_amount"] == "1500.00"

    @pytest.mark.asyncio
    async def test_cancel_with_refund_override(self, console, backend, make_booking):
        console.track(make_booking(status="confirmed", paid_amount=Decimal("500")))
        backend.cancel.return_value = _body(make_booking(status="cancelled", version=2))

        await console.cancel(1, "guest_request", refund_amount="200", cancelled_by="desk")

        backend.cancel.assert_awaited_once_with(
            {"booking_id": 1, "reason": "guest_request", "refund_amount": "200", "cancelled_by": "desk"}
        )

    def test_quick_amounts_and_duration(self, console, make_booking):
        console.track(make_booking(total_amount=Decimal("3000"), paid_amount=Decimal("1500")))

        assert console.quick_amounts(1)["half"] == Decimal("750.00")
        assert str(console.stay_duration(1).value) == "47h"


class TestLocalGuards:
    """Refusals never reach the backend"""

    @pytest.mark.asyncio
    async def test_checkout_with_due_amount(self, console, backend, make_booking):
        console.track(make_booking(total_amount=Decimal("3000"), paid_amount=Decimal("1500")))

        with pytest.raises(TransitionRefused) as exc:
            await console.check_out(1)

        assert exc.value.reason == RefusalReason.PAYMENT_PENDING
        backend.check_out.assert_not_called()
        assert console.state(1).in_flight is None

    @pytest.mark.asyncio
    async def test_invalid_amount(self, console, backend, make_booking):
        console.track(make_booking())

        with pytest.raises(InvalidAmount):
            await console.pay_due(1, "5000", "cash")

        backend.pay_due.assert_not_called()


class TestConcurrency:
    """One operation per booking at a time"""

    @pytest.mark.asyncio
    async def test_second_operation_on_same_booking_is_refused(self, console, backend, make_booking):
        console.track(make_booking(booking_id=1, total_amount=Decimal("2000")))
        console.track(make_booking(booking_id=2, booking_reference="BK-0002", total_amount=Decimal("2000")))

        release = asyncio.Event()

        async def slow_pay(payload):
            await release.wait()
            return _body(make_booking(booking_id=payload["booking_id"], paid_amount=Decimal("100"), version=2))

        backend.pay_due.side_effect = slow_pay

        first = asyncio.create_task(console.pay_due(1, "100", "cash"))
        await asyncio.sleep(0)

        with pytest.raises(TransitionRefused) as exc:
            await console.pay_due(1, "100", "cash")
        assert exc.value.reason == RefusalReason.OPERATION_IN_PROGRESS

        # Other bookings are not blocked
        other = asyncio.create_task(console.pay_due(2, "100", "cash"))
        await asyncio.sleep(0)
        assert console.state(2).in_flight == "pay_due"

        release.set()
        await asyncio.gather(first, other)
        assert backend.pay_due.await_count == 2
        assert console.state(1).in_flight is None

    @pytest.mark.asyncio
    async def test_failure_keeps_last_known_good_state(self, console, backend, make_booking):
        console.track(make_booking(status="confirmed"))
        backend.check_in.side_effect = UpstreamFailure("Room 101 is not available for check-in (maintenance)", 409)

        with pytest.raises(UpstreamFailure) as exc:
            await console.check_in(1)

        assert "maintenance" in exc.value.message
        state = console.state(1)
        assert state.snapshot.status.value == "confirmed"
        assert state.version == 1
        assert state.in_flight is None


@pytest.mark.asyncio
async def test_stale_poll_does_not_overwrite_newer_operation(console, backend, make_booking):
    console.track(make_booking(status="confirmed"))
    backend.check_in.return_value = _body(make_booking(status="checked_in", version=2))
    await console.check_in(1)

    # A poll answered before the check-in landed
    console.feed.publish(make_booking(status="confirmed", version=1))

    assert console.state(1).snapshot.status.value == "checked_in"
