# backend/jayple/services/settlement_service.py
"""
Weekly settlement batch.

Settlements are keyed by ISO week (``2026-W02``). Each provider is settled
in its own transaction: one user's failure is logged and reported in the
run summary without affecting anybody else.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.caller import Caller
from ..core.clock import Clock, ensure_utc
from ..core.config import settings
from ..core.enums import RoleName, SettlementStatus
from ..core.exceptions import (
    FailedPreconditionException,
    NotFoundException,
    PermissionDeniedException,
)
from ..models.settlement import Settlement
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .ledger_service import ZERO, LedgerService

logger = logging.getLogger(__name__)

SETTLED_ROLES = (RoleName.VENDOR.value, RoleName.FREELANCER.value)


def settlement_period(moment: datetime) -> Tuple[str, datetime, datetime]:
    """(period_id, start, end) of the ISO week containing ``moment`` (UTC)."""
    moment = ensure_utc(moment)
    iso_year, iso_week, iso_weekday = moment.isocalendar()
    start = (moment - timedelta(days=iso_weekday - 1)).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    return f"{iso_year}-W{iso_week:02d}", start, start + timedelta(days=7)


def settlement_id_for(user_id: str, period_id: str) -> str:
    return f"{user_id}_{period_id}"


@dataclass
class SettlementRunSummary:
    period_id: str
    payable: List[str] = field(default_factory=list)
    carried_forward: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[Dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "periodId": self.period_id,
            "processed": len(self.payable) + len(self.carried_forward),
            "payable": self.payable,
            "carriedForward": self.carried_forward,
            "skipped": self.skipped,
            "failed": self.failed,
        }


class SettlementService(BaseService):
    def __init__(
        self,
        db: Session,
        ledger: LedgerService,
        clock: Optional[Clock] = None,
        payout_threshold: Optional[Decimal] = None,
    ):
        super().__init__(db, clock)
        self.ledger = ledger
        self.repository = RepositoryFactory.create_settlement_repository(db)
        self.users = RepositoryFactory.create_user_repository(db)
        self.payout_threshold = (
            payout_threshold if payout_threshold is not None else settings.settlement_payout_threshold
        )

    @BaseService.measure_operation("run_weekly_settlements")
    def run_weekly_settlements(self, caller: Optional[Caller] = None) -> SettlementRunSummary:
        if caller is not None and not caller.is_operator:
            raise PermissionDeniedException("Only operators can run settlements")

        period_id, period_start, period_end = settlement_period(self.now())
        summary = SettlementRunSummary(period_id=period_id)

        for user_id, role in self.users.list_ids_by_roles(SETTLED_ROLES):
            try:
                status = self.run_transaction(
                    "settle_user",
                    lambda db, u=user_id, r=role: self._settle_user(
                        u, r, period_id, period_start, period_end
                    ),
                )
            except Exception as exc:
                logger.error(
                    "Settlement failed for user",
                    exc_info=True,
                    extra={"user_id": user_id, "period_id": period_id},
                )
                summary.failed.append({"userId": user_id, "error": str(exc)})
                continue

            if status is None:
                summary.skipped.append(user_id)
            elif status == SettlementStatus.PAYABLE.value:
                summary.payable.append(user_id)
            else:
                summary.carried_forward.append(user_id)

        self.log_operation(
            "run_weekly_settlements",
            period_id=period_id,
            payable=len(summary.payable),
            carried_forward=len(summary.carried_forward),
            skipped=len(summary.skipped),
            failed=len(summary.failed),
        )
        return summary

    def _settle_user(
        self,
        user_id: str,
        user_type: str,
        period_id: str,
        period_start: datetime,
        period_end: datetime,
    ) -> Optional[str]:
        """Returns the new settlement status, or None when this period is already settled."""
        settlement_id = settlement_id_for(user_id, period_id)
        if self.repository.get_by_id(settlement_id) is not None:
            return None

        balance = self.ledger.get_payable_balance(user_id)
        payable = balance >= self.payout_threshold
        settlement = self.repository.create(
            id=settlement_id,
            user_id=user_id,
            user_type=user_type,
            period_id=period_id,
            period_start=period_start,
            period_end=period_end,
            net_amount=balance,
            payout_amount=balance if payable else ZERO,
            carry_forward_amount=ZERO if payable else balance,
            status=(
                SettlementStatus.PAYABLE.value
                if payable
                else SettlementStatus.CARRIED_FORWARD.value
            ),
            created_at=self.now(),
        )
        if payable:
            self.ledger.post_payout(settlement)
        prometheus_metrics.record_settlement(settlement.status)
        return settlement.status

    @BaseService.measure_operation("mark_settlement_paid")
    def mark_settlement_paid(self, caller: Caller, settlement_id: str) -> Settlement:
        if not caller.is_operator:
            raise PermissionDeniedException("Only operators can mark settlements paid")

        def _apply(db: Session) -> Settlement:
            settlement = self.repository.get_by_id(settlement_id)
            if settlement is None:
                raise NotFoundException(
                    "Settlement not found", details={"settlementId": settlement_id}
                )
            if settlement.status == SettlementStatus.PAID.value:
                return settlement
            if settlement.status != SettlementStatus.PAYABLE.value:
                raise FailedPreconditionException(
                    f"Settlement is {settlement.status}, expected PAYABLE"
                )
            settlement.status = SettlementStatus.PAID.value
            settlement.paid_at = self.now()
            self.repository.flush()
            return settlement

        settlement = self.run_transaction("mark_settlement_paid", _apply)
        self.log_operation("mark_settlement_paid", settlement_id=settlement_id)
        return settlement

    def list_for_current_period(self) -> List[Settlement]:
        period_id, _, _ = settlement_period(self.now())
        return self.repository.list_for_period(period_id)
