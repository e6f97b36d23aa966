"""
HTTP client for the reception endpoints of the backend of record.
"""
import asyncio
import logging
from typing import Any, Optional

import requests

from frontdesk.core.config import settings
from frontdesk.core.exceptions import UpstreamFailure
from frontdesk.schemas.booking import BookingRead

logger = logging.getLogger(__name__)


class ReceptionBackendClient:
    """
    Blocking ``requests`` calls run in a worker thread.

    Anything other than a 2xx JSON body with ``success: true`` raises
    UpstreamFailure carrying the server's message when there is one.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[int] = None):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout or settings.api_timeout_seconds

    def _request(
        self,
        method: str,
        path: str,
        payload: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = requests.request(
                method, url, json=payload, params=params, timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"{method} {path} failed: {e}")
            raise UpstreamFailure(f"Backend unreachable: {e}")

        try:
            body = response.json()
        except ValueError:
            logger.error(f"{method} {path}: non-JSON response ({response.status_code})")
            raise UpstreamFailure(
                f"Unexpected response from backend ({response.status_code})",
                response.status_code,
            )

        if not isinstance(body, dict):
            raise UpstreamFailure(
                f"Unexpected response from backend ({response.status_code})",
                response.status_code,
            )

        if response.status_code >= 400 or not body.get("success", False):
            message = (
                body.get("message")
                or body.get("detail")
                or f"Backend error ({response.status_code})"
            )
            logger.warning(f"{method} {path} rejected ({response.status_code}): {message}")
            raise UpstreamFailure(str(message), response.status_code)

        return body

    async def call(
        self,
        method: str,
        path: str,
        payload: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> dict[str, Any]:
        return await asyncio.to_thread(self._request, method, path, payload, params)

    # -- mutations -----------------------------------------------------

    async def check_in(self, payload: dict) -> dict[str, Any]:
        return await self.call("POST", "/reception/checkin", payload)

    async def check_out(self, payload: dict) -> dict[str, Any]:
        return await self.call("POST", "/reception/checkout", payload)

    async def pay_due(self, payload: dict) -> dict[str, Any]:
        return await self.call("POST", "/reception/payments/due", payload)

    async def extend(self, payload: dict) -> dict[str, Any]:
        return await self.call("POST", "/reception/extend", payload)

    async def cancel(self, payload: dict) -> dict[str, Any]:
        return await self.call("POST", "/reception/cancel", payload)

    # -- reads ---------------------------------------------------------

    async def get_booking(self, booking_id: int) -> BookingRead:
        body = await self.call("GET", f"/reception/bookings/{booking_id}")
        return BookingRead.model_validate(body["data"]["snapshot"])

    async def search_guests(
        self,
        term: str,
        *,
        search_type: str = "all",
        corporate_only: bool = False,
        include_checked_out: bool = True,
    ) -> list[dict[str, Any]]:
        params = {
            "term": term,
            "search_type": search_type,
            "corporate": str(corporate_only).lower(),
            "include_checked_out": str(include_checked_out).lower(),
        }
        body = await self.call("GET", "/reception/guests/search", params=params)
        return body["data"]["results"]

    async def fetch_changes(self, since: Optional[str] = None) -> dict[str, Any]:
        params = {"since": since} if since else None
        body = await self.call("GET", "/reception/changes", params=params)
        return body["data"]
