# backend/jayple/schemas/ledger.py
"""Ledger, blocking and settlement DTOs."""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Literal, Optional

from pydantic import Field

from .base import Money, StandardizedModel, StrictRequestModel


class LedgerEntryResponse(StandardizedModel):
    ledger_id: str
    user_id: str
    user_type: str
    booking_id: Optional[str] = None
    settlement_id: Optional[str] = None
    entry_type: str
    direction: str
    amount: Money
    payment_mode: Optional[str] = None
    balance_before: Money
    balance_after: Money
    sequence: int
    reference: Optional[str] = None
    created_at: datetime


class AccountSummaryResponse(StandardizedModel):
    user_id: str
    payable_balance: Money
    blocked: bool
    block_reason: Optional[str] = None
    outstanding_amount: Optional[Money] = None
    entries: List[LedgerEntryResponse] = Field(default_factory=list)


class DebtPaymentRequest(StrictRequestModel):
    user_type: Literal["vendor", "freelancer"]
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    reference: str = Field(..., min_length=1, max_length=100)


class UnblockCheckRequest(StrictRequestModel):
    user_type: Literal["vendor", "freelancer"]


class BlockCheckResponse(StandardizedModel):
    user_id: str
    balance: Money
    blocked: bool
    changed: bool


class DebtPaymentResponse(BlockCheckResponse):
    ledger_entry: Optional[LedgerEntryResponse] = None
    already_recorded: bool


class SettlementResponse(StandardizedModel):
    settlement_id: str
    user_id: str
    user_type: str
    period_id: str
    period_start: datetime
    period_end: datetime
    net_amount: Money
    payout_amount: Money
    carry_forward_amount: Money
    status: str
    created_at: datetime
    paid_at: Optional[datetime] = None


class SettlementRunResponse(StandardizedModel):
    period_id: str
    processed: int
    payable: List[str]
    carried_forward: List[str]
    skipped: List[str]
    failed: List[Dict[str, str]]
