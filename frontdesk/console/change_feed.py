import logging
from typing import Callable, Optional

from frontdesk.schemas.booking import BookingRead

logger = logging.getLogger(__name__)

Subscriber = Callable[[BookingRead], None]


class ChangeFeed:
    """
    Single entry point for booking snapshots, whatever delivered them
    (operation responses, polling, push).

    A snapshot is only passed on when its version is newer than the
    highest one seen for that booking.
    """

    def __init__(self):
        self._versions: dict[int, int] = {}
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def known_version(self, booking_id: int) -> Optional[int]:
        return self._versions.get(booking_id)

    def publish(self, snapshot: BookingRead) -> bool:
        known = self._versions.get(snapshot.booking_id)
        if known is not None and snapshot.version <= known:
            logger.debug(
                f"Dropped stale snapshot for booking #{snapshot.booking_id} "
                f"(v{snapshot.version}, have v{known})"
            )
            return False

        self._versions[snapshot.booking_id] = snapshot.version
        for callback in list(self._subscribers):
            callback(snapshot)
        return True
