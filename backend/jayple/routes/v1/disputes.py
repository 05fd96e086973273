# backend/jayple/routes/v1/disputes.py
"""
Dispute routes - API v1

    POST /                        RaiseDispute (booking party)
    POST /{dispute_id}/resolve    ResolveDispute (operator)
"""

import asyncio

from fastapi import APIRouter, Depends, status

from ...api.dependencies import get_current_caller, get_dispatch_engine, require_operator
from ...core.caller import Caller
from ...schemas.dispute import DisputeCreate, DisputeResolve, DisputeResponse
from ...services.dispatch import DispatchEngine

router = APIRouter(tags=["disputes-v1"])


@router.post("", response_model=DisputeResponse, status_code=status.HTTP_201_CREATED)
async def raise_dispute(
    payload: DisputeCreate,
    caller: Caller = Depends(get_current_caller),
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> DisputeResponse:
    dispute = await asyncio.to_thread(
        engine.disputes.raise_dispute, caller, payload.city_id, payload.booking_id, payload.reason
    )
    return DisputeResponse.model_validate(dispute.to_dict())


@router.post("/{dispute_id}/resolve", response_model=DisputeResponse)
async def resolve_dispute(
    dispute_id: str,
    payload: DisputeResolve,
    caller: Caller = Depends(require_operator),
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> DisputeResponse:
    dispute = await asyncio.to_thread(
        engine.disputes.resolve_dispute, caller, dispute_id, payload.decision.value
    )
    return DisputeResponse.model_validate(dispute.to_dict())
