# backend/jayple/repositories/user_repository.py
from typing import Iterable, List

from sqlalchemy.orm import Session

from ..models.user import User
from .base_repository import BaseRepository


class UserRepository(BaseRepository[User]):
    def __init__(self, db: Session):
        super().__init__(db, User)

    def list_ids_by_roles(self, roles: Iterable[str]) -> List[tuple[str, str]]:
        """(user_id, role) pairs, ordered by id for a stable batch order."""
        rows = (
            self.db.query(User.id, User.role)
            .filter(User.role.in_(list(roles)))
            .order_by(User.id)
            .all()
        )
        return [(row.id, row.role) for row in rows]
