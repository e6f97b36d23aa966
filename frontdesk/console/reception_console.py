"""
Front-desk console: the operations a receptionist triggers, guarded
locally and confirmed by the backend of record.
"""
import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, Optional

from frontdesk.console.backend_client import ReceptionBackendClient
from frontdesk.console.booking_state import BookingState
from frontdesk.console.change_feed import ChangeFeed
from frontdesk.core.exceptions import BookingNotFound, RefusalReason, TransitionRefused
from frontdesk.core.messages import messages
from frontdesk.domain.cancellation_policy import RefundQuote, quote_refund
from frontdesk.domain.guest_matcher import GuestMatcher
from frontdesk.domain.payment_ledger import apply_payment, quick_amounts
from frontdesk.domain.state_machine import BookingStateMachine
from frontdesk.domain.stay_extension import ExtensionProposal, confirm_extension, propose_extension
from frontdesk.domain.time_math import DurationResult, duration_between
from frontdesk.jobs.notification_poller import NotificationPoller
from frontdesk.models import BookingStatus
from frontdesk.schemas.booking import BookingRead

logger = logging.getLogger(__name__)


class ReceptionConsole:
    def __init__(
        self,
        client: Optional[ReceptionBackendClient] = None,
        feed: Optional[ChangeFeed] = None,
        state_machine: Optional[BookingStateMachine] = None,
    ):
        self.client = client or ReceptionBackendClient()
        self.feed = feed or ChangeFeed()
        self.state_machine = state_machine or BookingStateMachine()
        self.guests = GuestMatcher(self.client)
        self.poller = NotificationPoller(self.client, self.feed)
        self.bookings: dict[int, BookingState] = {}
        self.feed.subscribe(self._on_snapshot)

    def _on_snapshot(self, snapshot: BookingRead) -> None:
        state = self.bookings.get(snapshot.booking_id)
        if state is None:
            self.bookings[snapshot.booking_id] = BookingState(snapshot)
        else:
            state.snapshot = snapshot

    # -- tracking ------------------------------------------------------

    def state(self, booking_id: int) -> BookingState:
        try:
            return self.bookings[booking_id]
        except KeyError:
            raise BookingNotFound(booking_id)

    def track(self, snapshot: BookingRead) -> BookingState:
        self.feed.publish(snapshot)
        return self.bookings[snapshot.booking_id]

    async def open_booking(self, booking_id: int) -> BookingState:
        return self.track(await self.client.get_booking(booking_id))

    async def search(self, term: str, **filters) -> list[BookingState]:
        rows = await self.client.search_guests(term, **filters)
        return [self.track(BookingRead.model_validate(row)) for row in rows]

    # -- exclusion -----------------------------------------------------

    @asynccontextmanager
    async def _exclusive(self, booking_id: int, operation: str):
        state = self.state(booking_id)
        if state.in_flight is not None:
            logger.warning(
                f"{operation} for booking #{booking_id} refused: {state.in_flight} in flight"
            )
            raise TransitionRefused(
                messages.operation_in_progress(booking_id),
                RefusalReason.OPERATION_IN_PROGRESS,
            )
        state.in_flight = operation
        try:
            yield state
        finally:
            state.in_flight = None

    def _accept(self, body: dict[str, Any]) -> dict[str, Any]:
        snapshot = BookingRead.model_validate(body["data"]["snapshot"])
        self.feed.publish(snapshot)
        return body

    # -- operations ----------------------------------------------------

    async def check_in(self, booking_id: int, **edits) -> dict[str, Any]:
        async with self._exclusive(booking_id, "check_in") as state:
            plan = self.state_machine.check_in(state.snapshot, **edits)
            body = await self.client.check_in(plan.request_payload())
            logger.info(f"Booking #{booking_id} checked in")
            return self._accept(body)

    async def check_out(self, booking_id: int) -> dict[str, Any]:
        async with self._exclusive(booking_id, "check_out") as state:
            plan = self.state_machine.check_out(state.snapshot)
            body = await self.client.check_out(plan.request_payload())
            logger.info(f"Booking #{booking_id} checked out")
            return self._accept(body)

    async def pay_due(
        self,
        booking_id: int,
        amount,
        payment_method,
        adjusted_remaining=None,
        transaction_id: Optional[str] = None,
    ) -> dict[str, Any]:
        async with self._exclusive(booking_id, "pay_due") as state:
            current = BookingStatus(state.snapshot.status)
            if current in BookingStateMachine.TERMINAL_STATES:
                raise TransitionRefused(
                    messages.terminal_state(current.value), RefusalReason.TERMINAL_STATE
                )

            outcome = apply_payment(state.snapshot, amount, payment_method, adjusted_remaining)
            payload = {
                "booking_id": booking_id,
                "amount": str(outcome.amount),
                "payment_method": outcome.payment_method.value,
            }
            if outcome.discount_amount > 0:
                payload["adjusted_remaining"] = str(
                    outcome.new_remaining_amount + outcome.amount
                )
            if transaction_id:
                payload["transaction_id"] = transaction_id

            body = await self.client.pay_due(payload)
            logger.info(f"Booking #{booking_id}: payment {outcome.amount} accepted")
            return self._accept(body)

    def quick_amounts(self, booking_id: int, adjusted_remaining=None) -> dict[str, Decimal]:
        return quick_amounts(self.state(booking_id).snapshot, adjusted_remaining)

    def propose_extension(self, booking_id: int, days_to_add: int) -> ExtensionProposal:
        return propose_extension(self.state(booking_id).snapshot, days_to_add)

    async def extend(
        self,
        booking_id: int,
        days_to_add: int,
        new_checkout_date=None,
        new_checkout_time: Optional[str] = None,
        new_checkout_ampm=None,
        additional_amount=None,
    ) -> dict[str, Any]:
        async with self._exclusive(booking_id, "extend") as state:
            change = confirm_extension(
                state.snapshot,
                days_to_add,
                new_checkout_date,
                new_checkout_time,
                new_checkout_ampm,
                additional_amount,
            )
            body = await self.client.extend(change.request_payload())
            logger.info(f"Booking #{booking_id} extended by {change.days_to_add} days")
            return self._accept(body)

    def quote_cancellation(self, booking_id: int, reason, refund_amount=None) -> RefundQuote:
        return quote_refund(self.state(booking_id).snapshot, reason, refund_amount)

    async def cancel(
        self,
        booking_id: int,
        reason,
        refund_amount=None,
        cancelled_by: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> dict[str, Any]:
        async with self._exclusive(booking_id, "cancel") as state:
            plan = self.state_machine.cancel(state.snapshot, reason)
            # Validates a staff override before anything is sent
            quote_refund(state.snapshot, plan.reason, refund_amount)

            payload = plan.request_payload()
            if refund_amount is not None and refund_amount != "":
                payload["refund_amount"] = str(refund_amount)
            if cancelled_by:
                payload["cancelled_by"] = cancelled_by
            if notes:
                payload["notes"] = notes

            body = await self.client.cancel(payload)
            logger.info(f"Booking #{booking_id} cancelled ({plan.reason.value})")
            return self._accept(body)

    def stay_duration(self, booking_id: int) -> DurationResult:
        snapshot = self.state(booking_id).snapshot
        return duration_between(
            snapshot.check_in_time,
            snapshot.check_in_ampm,
            snapshot.check_out_time,
            snapshot.check_out_ampm,
            snapshot.check_in_date,
            snapshot.check_out_date,
        )

    # -- change notifications ------------------------------------------

    def start_polling(self, scheduler=None) -> None:
        if scheduler is None:
            from frontdesk.services.scheduler_service import scheduler_service as scheduler
        scheduler.register_jobs(self.poller)
        scheduler.start()

    def stop_polling(self, scheduler=None) -> None:
        if scheduler is None:
            from frontdesk.services.scheduler_service import scheduler_service as scheduler
        scheduler.shutdown()
