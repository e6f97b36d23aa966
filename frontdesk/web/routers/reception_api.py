from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from frontdesk.core.config import settings
from frontdesk.core.exceptions import BookingNotFound, ValidationError
from frontdesk.core.rate_limiter import limiter
from frontdesk.database import get_db
from frontdesk.schemas.booking import (
    ApiResponse,
    CancellationRequest,
    CheckInRequest,
    CheckOutRequest,
    DuePaymentRequest,
    ExtensionRequest,
)
from frontdesk.services.reception_service import reception_service

router = APIRouter(prefix="/reception", tags=["reception"])


def _respond(result: dict[str, Any]):
    """Refusals keep the {success, message, data} body with an error status"""
    if result["success"]:
        return result
    status_code = 409 if (result.get("data") or {}).get("reason") else 400
    return JSONResponse(status_code=status_code, content=result)


@router.post("/checkin", response_model=ApiResponse)
@limiter.limit(settings.rate_limit_mutations)
async def check_in(
    request: Request,
    payload: CheckInRequest,
    db: AsyncSession = Depends(get_db),
):
    return _respond(await reception_service.check_in(db, payload))


@router.post("/checkout", response_model=ApiResponse)
@limiter.limit(settings.rate_limit_mutations)
async def check_out(
    request: Request,
    payload: CheckOutRequest,
    db: AsyncSession = Depends(get_db),
):
    return _respond(await reception_service.check_out(db, payload))


@router.post("/payments/due", response_model=ApiResponse)
@limiter.limit(settings.rate_limit_mutations)
async def collect_due_payment(
    request: Request,
    payload: DuePaymentRequest,
    db: AsyncSession = Depends(get_db),
):
    return _respond(await reception_service.collect_due_payment(db, payload))


@router.post("/extend", response_model=ApiResponse)
@limiter.limit(settings.rate_limit_mutations)
async def extend_stay(
    request: Request,
    payload: ExtensionRequest,
    db: AsyncSession = Depends(get_db),
):
    return _respond(await reception_service.extend_stay(db, payload))


@router.post("/cancel", response_model=ApiResponse)
@limiter.limit(settings.rate_limit_mutations)
async def cancel_booking(
    request: Request,
    payload: CancellationRequest,
    db: AsyncSession = Depends(get_db),
):
    return _respond(await reception_service.cancel_booking(db, payload))


@router.get("/bookings/{booking_id}", response_model=ApiResponse)
async def get_booking(booking_id: int, db: AsyncSession = Depends(get_db)):
    try:
        booking = await reception_service.get_booking(db, booking_id)
    except BookingNotFound as e:
        raise HTTPException(status_code=404, detail=e.message)
    return {"success": True, "message": "", "data": {"snapshot": booking.model_dump(mode="json")}}


@router.get("/guests/search", response_model=ApiResponse)
async def search_guests(
    term: str = "",
    search_type: str = "all",
    status: Optional[str] = None,
    corporate: bool = False,
    include_checked_out: bool = False,
    due: bool = False,
    db: AsyncSession = Depends(get_db),
):
    try:
        results = await reception_service.search_guests(
            db,
            term=term,
            search_type=search_type,
            status=status,
            corporate=corporate,
            include_checked_out=include_checked_out,
            due=due,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    return {"success": True, "message": "", "data": {"results": results}}


@router.get("/changes", response_model=ApiResponse)
async def changes(since: Optional[datetime] = None, db: AsyncSession = Depends(get_db)):
    data = await reception_service.changes_since(db, since)
    return {"success": True, "message": "", "data": data}
