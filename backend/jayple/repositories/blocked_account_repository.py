# backend/jayple/repositories/blocked_account_repository.py
from typing import Optional

from sqlalchemy.orm import Session

from ..models.blocked_account import BlockedAccount
from .base_repository import BaseRepository


class BlockedAccountRepository(BaseRepository[BlockedAccount]):
    def __init__(self, db: Session):
        super().__init__(db, BlockedAccount)

    def get_for_user(self, user_id: str) -> Optional[BlockedAccount]:
        return self.get_by_id(user_id)

    def is_blocked(self, user_id: str) -> bool:
        return self.get_by_id(user_id) is not None
