# backend/jayple/routes/v1/payments.py
"""
Payment routes - API v1

    POST /{city_id}/{booking_id}/authorize
    POST /{city_id}/{booking_id}/fail
    POST /{city_id}/{booking_id}/refund

Callable by the booking's customer or by an operator (admin/system).
"""

import asyncio

from fastapi import APIRouter, Depends

from ...api.dependencies import get_current_caller, get_dispatch_engine
from ...core.caller import Caller
from ...schemas.booking import BookingResponse
from ...services.dispatch import DispatchEngine
from .bookings import to_response

router = APIRouter(tags=["payments-v1"])


@router.post("/{city_id}/{booking_id}/authorize", response_model=BookingResponse)
async def authorize_payment(
    city_id: str,
    booking_id: str,
    caller: Caller = Depends(get_current_caller),
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> BookingResponse:
    booking = await asyncio.to_thread(
        engine.payments.authorize_payment, caller, city_id, booking_id
    )
    return to_response(booking)


@router.post("/{city_id}/{booking_id}/fail", response_model=BookingResponse)
async def fail_payment(
    city_id: str,
    booking_id: str,
    caller: Caller = Depends(get_current_caller),
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> BookingResponse:
    booking = await asyncio.to_thread(engine.payments.fail_payment, caller, city_id, booking_id)
    return to_response(booking)


@router.post("/{city_id}/{booking_id}/refund", response_model=BookingResponse)
async def refund_payment(
    city_id: str,
    booking_id: str,
    caller: Caller = Depends(get_current_caller),
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> BookingResponse:
    booking = await asyncio.to_thread(engine.payments.refund_payment, caller, city_id, booking_id)
    return to_response(booking)
