# backend/jayple/repositories/settlement_repository.py
from typing import List

from sqlalchemy.orm import Session

from ..models.settlement import Settlement
from .base_repository import BaseRepository


class SettlementRepository(BaseRepository[Settlement]):
    def __init__(self, db: Session):
        super().__init__(db, Settlement)

    def list_for_period(self, period_id: str) -> List[Settlement]:
        return (
            self.db.query(Settlement)
            .filter(Settlement.period_id == period_id)
            .order_by(Settlement.user_id)
            .all()
        )
