# backend/jayple/routes/v1/bookings.py
"""
Booking routes - API v1

Endpoints:
    POST /                                       CreateBooking (customer)
    GET /                                        GetMyBookings
    GET /{city_id}/{booking_id}                  GetBookingById
    POST /{city_id}/{booking_id}/vendor-response     ProviderRespond (vendor)
    POST /{city_id}/{booking_id}/freelancer-response ProviderRespond (freelancer)
    POST /{city_id}/{booking_id}/start           StartBooking (assigned provider)
    POST /{city_id}/{booking_id}/complete        CompleteBooking (assigned provider)
    POST /{city_id}/{booking_id}/cancel          CancelBooking (customer)

All business logic is delegated to BookingService; service calls run in a
worker thread so the event loop never blocks on the database.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, Query, status

from ...api.dependencies import get_current_caller, get_dispatch_engine
from ...core.caller import Caller
from ...models.booking import Booking
from ...schemas.booking import (
    BookingCreate,
    BookingCreateResponse,
    BookingListResponse,
    BookingResponse,
    ProviderResponseRequest,
    ProviderResponseResponse,
)
from ...services.dispatch import DispatchEngine

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["bookings-v1"])


def to_response(booking: Booking, include_events: bool = False) -> BookingResponse:
    return BookingResponse.model_validate(booking.to_dict(include_events=include_events))


@router.post("", response_model=BookingCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    caller: Caller = Depends(get_current_caller),
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> BookingCreateResponse:
    result = await asyncio.to_thread(
        engine.bookings.create_booking,
        caller,
        city_id=payload.city_id,
        service_id=payload.service_id,
        booking_type=payload.type.value,
        scheduled_at=payload.scheduled_at,
        idempotency_key=payload.idempotency_key,
    )
    return BookingCreateResponse(
        booking=to_response(result.booking), already_exists=result.already_exists
    )


@router.get("", response_model=BookingListResponse)
async def get_my_bookings(
    limit: int = Query(50, ge=1, le=200),
    caller: Caller = Depends(get_current_caller),
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> BookingListResponse:
    bookings = await asyncio.to_thread(engine.bookings.get_my_bookings, caller, limit)
    items = [to_response(booking) for booking in bookings]
    return BookingListResponse(items=items, total=len(items))


@router.get("/{city_id}/{booking_id}", response_model=BookingResponse)
async def get_booking(
    city_id: str,
    booking_id: str,
    include_events: bool = Query(True, alias="includeEvents"),
    caller: Caller = Depends(get_current_caller),
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> BookingResponse:
    booking = await asyncio.to_thread(
        engine.bookings.get_booking_by_id, caller, city_id, booking_id
    )
    return to_response(booking, include_events=include_events)


@router.post("/{city_id}/{booking_id}/vendor-response", response_model=ProviderResponseResponse)
async def vendor_response(
    city_id: str,
    booking_id: str,
    payload: ProviderResponseRequest,
    caller: Caller = Depends(get_current_caller),
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> ProviderResponseResponse:
    result = await asyncio.to_thread(
        engine.bookings.respond_as_vendor, caller, city_id, booking_id, payload.action.value
    )
    return ProviderResponseResponse(
        booking=to_response(result.booking), action=result.action, reassigned=result.reassigned
    )


@router.post(
    "/{city_id}/{booking_id}/freelancer-response", response_model=ProviderResponseResponse
)
async def freelancer_response(
    city_id: str,
    booking_id: str,
    payload: ProviderResponseRequest,
    caller: Caller = Depends(get_current_caller),
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> ProviderResponseResponse:
    result = await asyncio.to_thread(
        engine.bookings.respond_as_freelancer, caller, city_id, booking_id, payload.action.value
    )
    return ProviderResponseResponse(
        booking=to_response(result.booking), action=result.action, reassigned=result.reassigned
    )


@router.post("/{city_id}/{booking_id}/start", response_model=BookingResponse)
async def start_booking(
    city_id: str,
    booking_id: str,
    caller: Caller = Depends(get_current_caller),
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> BookingResponse:
    booking = await asyncio.to_thread(engine.bookings.start_booking, caller, city_id, booking_id)
    return to_response(booking)


@router.post("/{city_id}/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    city_id: str,
    booking_id: str,
    caller: Caller = Depends(get_current_caller),
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> BookingResponse:
    booking = await asyncio.to_thread(
        engine.bookings.complete_booking, caller, city_id, booking_id
    )
    return to_response(booking)


@router.post("/{city_id}/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    city_id: str,
    booking_id: str,
    caller: Caller = Depends(get_current_caller),
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> BookingResponse:
    booking = await asyncio.to_thread(engine.bookings.cancel_booking, caller, city_id, booking_id)
    return to_response(booking)
