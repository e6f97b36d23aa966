from dataclasses import dataclass
from typing import Optional

from frontdesk.domain.payment_status import PaymentSummary, resolve_for
from frontdesk.schemas.booking import BookingRead


@dataclass
class BookingState:
    """
    What the desk currently shows for one booking.

    ``snapshot`` is always the last server-confirmed read model; nothing
    is written here before the backend of record accepts a change.
    """

    snapshot: BookingRead
    in_flight: Optional[str] = None

    @property
    def booking_id(self) -> int:
        return self.snapshot.booking_id

    @property
    def version(self) -> int:
        return self.snapshot.version

    @property
    def payment(self) -> PaymentSummary:
        # Recomputed on every read, never cached
        return resolve_for(self.snapshot)

    @property
    def busy(self) -> bool:
        return self.in_flight is not None
