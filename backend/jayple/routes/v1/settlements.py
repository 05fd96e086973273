# backend/jayple/routes/v1/settlements.py
"""
Settlement routes - API v1 (operators only)

    POST /run                        RunWeeklySettlements
    GET /                            settlements of the current period
    POST /{settlement_id}/mark-paid  MarkSettlementPaid
"""

import asyncio
from typing import List

from fastapi import APIRouter, Depends

from ...api.dependencies import get_dispatch_engine, require_operator
from ...core.caller import Caller
from ...schemas.ledger import SettlementResponse, SettlementRunResponse
from ...services.dispatch import DispatchEngine

router = APIRouter(tags=["settlements-v1"])


@router.post("/run", response_model=SettlementRunResponse)
async def run_weekly_settlements(
    caller: Caller = Depends(require_operator),
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> SettlementRunResponse:
    summary = await asyncio.to_thread(engine.settlements.run_weekly_settlements, caller)
    return SettlementRunResponse.model_validate(summary.to_dict())


@router.get("", response_model=List[SettlementResponse])
async def list_current_settlements(
    caller: Caller = Depends(require_operator),
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> List[SettlementResponse]:
    settlements = await asyncio.to_thread(engine.settlements.list_for_current_period)
    return [SettlementResponse.model_validate(item.to_dict()) for item in settlements]


@router.post("/{settlement_id}/mark-paid", response_model=SettlementResponse)
async def mark_settlement_paid(
    settlement_id: str,
    caller: Caller = Depends(require_operator),
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> SettlementResponse:
    settlement = await asyncio.to_thread(
        engine.settlements.mark_settlement_paid, caller, settlement_id
    )
    return SettlementResponse.model_validate(settlement.to_dict())
