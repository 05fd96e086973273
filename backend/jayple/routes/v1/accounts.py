# backend/jayple/routes/v1/accounts.py
"""
Provider account routes - API v1

    GET /{user_id}/balance         payable balance, block state and ledger
    POST /{user_id}/debt-payments  RecordDebtPayment (operator)
    POST /{user_id}/unblock-check  UnblockUserIfCleared (operator)
"""

import asyncio

from fastapi import APIRouter, Depends

from ...api.dependencies import get_current_caller, get_dispatch_engine, require_operator
from ...core.caller import Caller
from ...schemas.ledger import (
    AccountSummaryResponse,
    BlockCheckResponse,
    DebtPaymentRequest,
    DebtPaymentResponse,
    UnblockCheckRequest,
)
from ...services.dispatch import DispatchEngine

router = APIRouter(tags=["accounts-v1"])


@router.get("/{user_id}/balance", response_model=AccountSummaryResponse)
async def get_balance(
    user_id: str,
    caller: Caller = Depends(get_current_caller),
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> AccountSummaryResponse:
    summary = await asyncio.to_thread(engine.blocking.get_account_summary, caller, user_id)
    return AccountSummaryResponse.model_validate(summary)


@router.post("/{user_id}/debt-payments", response_model=DebtPaymentResponse)
async def record_debt_payment(
    user_id: str,
    payload: DebtPaymentRequest,
    caller: Caller = Depends(require_operator),
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> DebtPaymentResponse:
    result = await asyncio.to_thread(
        engine.blocking.record_debt_payment,
        caller,
        user_id,
        payload.user_type,
        payload.amount,
        payload.reference,
    )
    return DebtPaymentResponse.model_validate(result)


@router.post("/{user_id}/unblock-check", response_model=BlockCheckResponse)
async def unblock_check(
    user_id: str,
    payload: UnblockCheckRequest,
    caller: Caller = Depends(require_operator),
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> BlockCheckResponse:
    result = await asyncio.to_thread(
        engine.blocking.unblock_user_if_cleared, caller, user_id, payload.user_type
    )
    return BlockCheckResponse.model_validate(result.to_dict())
