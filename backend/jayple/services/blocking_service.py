# backend/jayple/services/blocking_service.py
"""
Outstanding-balance blocking policy.

A provider whose payable balance drops below -outstanding_limit is
suspended (a BlockedAccount row exists) and may not accept or reject work
until the balance is brought back above the limit.
"""

from dataclasses import dataclass
from decimal import Decimal
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..core.caller import Caller
from ..core.clock import Clock
from ..core.config import settings
from ..core.enums import BlockReason
from ..core.exceptions import InvalidArgumentException, PermissionDeniedException
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .ledger_service import LedgerService, to_money

logger = logging.getLogger(__name__)


@dataclass
class BlockCheckResult:
    user_id: str
    balance: Decimal
    blocked: bool
    changed: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "balance": self.balance,
            "blocked": self.blocked,
            "changed": self.changed,
        }


class BlockingService(BaseService):
    def __init__(
        self,
        db: Session,
        ledger: LedgerService,
        clock: Optional[Clock] = None,
        outstanding_limit: Optional[Decimal] = None,
    ):
        super().__init__(db, clock)
        self.ledger = ledger
        self.repository = RepositoryFactory.create_blocked_account_repository(db)
        self.outstanding_limit = (
            outstanding_limit if outstanding_limit is not None else settings.outstanding_limit
        )

    # In-transaction helpers

    def is_blocked(self, user_id: str) -> bool:
        return self.repository.is_blocked(user_id)

    def enforce_block(self, user_id: str) -> None:
        """Gate for provider-facing mutations."""
        if self.repository.is_blocked(user_id):
            raise PermissionDeniedException(
                "Account is blocked due to outstanding balance",
                details={"userId": user_id, "reason": BlockReason.OUTSTANDING_LIMIT_EXCEEDED.value},
            )

    def check_outstanding_balance(
        self, user_id: str, user_type: str, pending_delta: Decimal = Decimal("0")
    ) -> BlockCheckResult:
        """Create or clear the OUTSTANDING_LIMIT_EXCEEDED block for the user."""
        balance = to_money(self.ledger.get_payable_balance(user_id) + pending_delta)
        existing = self.repository.get_for_user(user_id)
        reason = BlockReason.OUTSTANDING_LIMIT_EXCEEDED.value

        if balance < -self.outstanding_limit:
            if existing is not None and existing.reason == reason:
                return BlockCheckResult(user_id, balance, blocked=True, changed=False)
            self.repository.create(
                user_id=user_id,
                user_type=user_type,
                reason=reason,
                outstanding_amount=abs(balance),
                blocked_at=self.now(),
            )
            prometheus_metrics.record_block_action("blocked")
            logger.warning(
                "Provider blocked for outstanding balance",
                extra={"user_id": user_id, "balance": str(balance)},
            )
            return BlockCheckResult(user_id, balance, blocked=True, changed=True)

        if existing is not None and existing.reason == reason:
            self.repository.delete(existing)
            prometheus_metrics.record_block_action("unblocked")
            logger.info(
                "Provider unblocked", extra={"user_id": user_id, "balance": str(balance)}
            )
            return BlockCheckResult(user_id, balance, blocked=False, changed=True)

        return BlockCheckResult(user_id, balance, blocked=existing is not None, changed=False)

    # Operator operations

    @BaseService.measure_operation("record_debt_payment")
    def record_debt_payment(
        self, caller: Caller, user_id: str, user_type: str, amount: Decimal, reference: str
    ) -> Dict[str, Any]:
        """Credit a manual debt payment and re-run the blocking check."""
        if not caller.is_operator:
            raise PermissionDeniedException("Only operators can record debt payments")
        if amount <= 0:
            raise InvalidArgumentException("amount must be positive")
        if not reference:
            raise InvalidArgumentException("reference is required")

        def _apply(db: Session) -> Dict[str, Any]:
            entry = self.ledger.post_debt_payment(user_id, user_type, amount, reference)
            check = self.check_outstanding_balance(user_id, user_type)
            return {
                "ledgerEntry": entry.to_dict() if entry else None,
                "alreadyRecorded": entry is None,
                **check.to_dict(),
            }

        result = self.run_transaction("record_debt_payment", _apply)
        self.log_operation("record_debt_payment", user_id=user_id, reference=reference)
        return result

    @BaseService.measure_operation("unblock_user_if_cleared")
    def unblock_user_if_cleared(self, caller: Caller, user_id: str, user_type: str) -> BlockCheckResult:
        if not caller.is_operator:
            raise PermissionDeniedException("Only operators can re-check blocks")
        return self.run_transaction(
            "unblock_user_if_cleared",
            lambda db: self.check_outstanding_balance(user_id, user_type),
        )

    @BaseService.measure_operation("get_account_summary")
    def get_account_summary(self, caller: Caller, user_id: str) -> Dict[str, Any]:
        if not caller.is_operator and caller.user_id != user_id:
            raise PermissionDeniedException("Cannot read another user's ledger")
        block = self.repository.get_for_user(user_id)
        return {
            "userId": user_id,
            "payableBalance": self.ledger.get_payable_balance(user_id),
            "blocked": block is not None,
            "blockReason": block.reason if block else None,
            "outstandingAmount": block.outstanding_amount if block else None,
            "entries": [entry.to_dict() for entry in self.ledger.get_entries(user_id)],
        }
