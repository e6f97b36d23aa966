"""
Guest suggestions for the booking form.

Suggestions are advisory: the desk picks one to prefill the form, nothing
is ever merged in storage.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from frontdesk.core.config import settings
from frontdesk.utils.phone import phone_digits, phone_last10

logger = logging.getLogger(__name__)

# Company lookups need more than this many characters
COMPANY_MIN_LENGTH = 2


class GuestDirectory(Protocol):
    async def search_guests(
        self,
        term: str,
        *,
        search_type: str = "all",
        corporate_only: bool = False,
        include_checked_out: bool = True,
    ) -> list[dict[str, Any]]:
        ...


@dataclass(frozen=True)
class GuestRecord:
    first_name: str
    last_name: str
    phone: str
    email: Optional[str] = None
    address: Optional[str] = None
    id_proof_type: Optional[str] = None
    id_proof_number: Optional[str] = None
    company_name: Optional[str] = None
    gst_number: Optional[str] = None
    contact_person: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    last_booking_id: Optional[int] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "GuestRecord":
        return cls(
            first_name=row.get("first_name") or "",
            last_name=row.get("last_name") or "",
            phone=row.get("phone") or "",
            email=row.get("email"),
            address=row.get("address"),
            id_proof_type=row.get("id_proof_type"),
            id_proof_number=row.get("id_proof_number"),
            company_name=row.get("company_name"),
            gst_number=row.get("gst_number"),
            contact_person=row.get("contact_person"),
            contact_phone=row.get("contact_phone"),
            contact_email=row.get("contact_email"),
            last_booking_id=row.get("booking_id"),
        )


def collapse(rows: list[dict[str, Any]]) -> list[GuestRecord]:
    """One record per (phone, name), most recent booking first"""
    records = [GuestRecord.from_row(row) for row in rows]
    records.sort(key=lambda r: r.last_booking_id or 0, reverse=True)

    seen = set()
    unique = []
    for record in records:
        key = (phone_last10(record.phone), record.full_name.lower())
        if key in seen:
            continue
        seen.add(key)
        unique.append(record)
    return unique


class GuestMatcher:
    def __init__(
        self,
        directory: GuestDirectory,
        min_length: Optional[int] = None,
        debounce_ms: Optional[int] = None,
    ):
        self.directory = directory
        self.min_length = settings.guest_suggest_min_length if min_length is None else min_length
        self.debounce_ms = settings.guest_search_debounce_ms if debounce_ms is None else debounce_ms
        self._inflight: dict[str, asyncio.Task] = {}

    async def suggest(self, phone_prefix: str, min_length: Optional[int] = None) -> list[GuestRecord]:
        min_length = self.min_length if min_length is None else min_length
        digits = phone_digits(phone_prefix)
        if len(digits) < min_length:
            return []

        rows = await self.directory.search_guests(
            digits, search_type="phone", corporate_only=False, include_checked_out=True
        )
        return collapse(rows)

    async def suggest_corporate(self, phone_prefix: str, company_name_prefix: str = "") -> list[GuestRecord]:
        company = (company_name_prefix or "").strip()
        if len(company) > COMPANY_MIN_LENGTH:
            term, search_type = company, "company"
        else:
            digits = phone_digits(phone_prefix)
            if len(digits) < self.min_length:
                return []
            term, search_type = digits, "phone"

        rows = await self.directory.search_guests(
            term, search_type=search_type, corporate_only=True, include_checked_out=True
        )
        return collapse(rows)

    async def _debounced(self, field: str, value: str, corporate: bool) -> list[GuestRecord]:
        await asyncio.sleep(self.debounce_ms / 1000)
        if corporate and field == "company_name":
            return await self.suggest_corporate("", value)
        if corporate:
            return await self.suggest_corporate(value)
        return await self.suggest(value)

    async def suggest_as_you_type(
        self, field: str, value: str, *, corporate: bool = False
    ) -> Optional[list[GuestRecord]]:
        """
        Debounced lookup for one input field.

        A newer call for the same field cancels this one; the superseded
        caller gets None instead of results.
        """
        previous = self._inflight.get(field)
        if previous is not None and not previous.done():
            previous.cancel()

        task = asyncio.ensure_future(self._debounced(field, value, corporate))
        self._inflight[field] = task
        try:
            return await task
        except asyncio.CancelledError:
            if task.cancelled() and self._inflight.get(field) is not task:
                logger.debug(f"Suggestion for {field}={value!r} superseded")
                return None
            raise
        finally:
            if self._inflight.get(field) is task:
                del self._inflight[field]
