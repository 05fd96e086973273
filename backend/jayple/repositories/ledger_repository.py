# backend/jayple/repositories/ledger_repository.py
"""Append-only ledger access."""

from typing import List, Optional

from sqlalchemy.orm import Session

from ..models.ledger import LedgerEntry
from .base_repository import BaseRepository


class LedgerRepository(BaseRepository[LedgerEntry]):
    def __init__(self, db: Session):
        super().__init__(db, LedgerEntry)

    def get_latest_for_user(self, user_id: str) -> Optional[LedgerEntry]:
        return (
            self.db.query(LedgerEntry)
            .filter(LedgerEntry.user_id == user_id)
            .order_by(LedgerEntry.sequence.desc())
            .first()
        )

    def list_for_user(self, user_id: str) -> List[LedgerEntry]:
        """Full history in chain order."""
        return (
            self.db.query(LedgerEntry)
            .filter(LedgerEntry.user_id == user_id)
            .order_by(LedgerEntry.created_at, LedgerEntry.sequence)
            .all()
        )
