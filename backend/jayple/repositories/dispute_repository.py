# backend/jayple/repositories/dispute_repository.py
from sqlalchemy.orm import Session

from ..models.dispute import Dispute
from .base_repository import BaseRepository


class DisputeRepository(BaseRepository[Dispute]):
    def __init__(self, db: Session):
        super().__init__(db, Dispute)
