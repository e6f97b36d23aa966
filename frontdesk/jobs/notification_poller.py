import logging
from typing import Optional

from pydantic import ValidationError as SchemaError

from frontdesk.core.exceptions import UpstreamFailure
from frontdesk.schemas.booking import BookingRead

logger = logging.getLogger(__name__)


class NotificationPoller:
    """
    Pulls booking changes from the backend of record into a ChangeFeed.

    Polling and push both end up in ``feed.publish``; the feed drops
    anything older than what it already has.
    """

    def __init__(self, client, feed, cursor: Optional[str] = None):
        self.client = client
        self.feed = feed
        self.cursor = cursor

    async def poll_once(self) -> int:
        """Returns the number of snapshots the feed accepted"""
        try:
            data = await self.client.fetch_changes(self.cursor)
        except UpstreamFailure as e:
            logger.error(f"Change poll failed: {e.message}")
            return 0

        accepted = 0
        for row in data.get("bookings", []):
            try:
                snapshot = BookingRead.model_validate(row)
            except SchemaError:
                logger.error(f"Skipping malformed snapshot: {row.get('booking_id')}", exc_info=True)
                continue
            if self.feed.publish(snapshot):
                accepted += 1

        self.cursor = data.get("server_time") or self.cursor
        if accepted:
            logger.info(f"Change poll: {accepted} booking(s) updated")
        return accepted
