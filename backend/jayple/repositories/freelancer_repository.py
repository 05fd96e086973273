# backend/jayple/repositories/freelancer_repository.py
"""Freelancer dispatch-profile queries used by the assignment engine."""

from typing import List

from sqlalchemy.orm import Session

from ..core.enums import FreelancerStatus
from ..models.user import Freelancer
from .base_repository import BaseRepository


class FreelancerRepository(BaseRepository[Freelancer]):
    def __init__(self, db: Session):
        super().__init__(db, Freelancer)

    def list_available_in_city(self, city_id: str, category: str) -> List[Freelancer]:
        """
        Active, online freelancers in the city that offer the category.

        Category membership is checked in Python: service_categories is a JSON
        list and JSON containment differs between PostgreSQL and SQLite.
        """
        candidates = (
            self.db.query(Freelancer)
            .filter(
                Freelancer.city_id == city_id,
                Freelancer.status == FreelancerStatus.ACTIVE.value,
                Freelancer.is_online.is_(True),
            )
            .all()
        )
        return [freelancer for freelancer in candidates if freelancer.offers(category)]
