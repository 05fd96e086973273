# backend/jayple/repositories/service_catalog_repository.py
"""Read-only catalog lookup by (city_id, service_id)."""

from typing import Optional

from sqlalchemy.orm import Session

from ..models.service_catalog import Service
from .base_repository import BaseRepository


class ServiceCatalogRepository(BaseRepository[Service]):
    def __init__(self, db: Session):
        super().__init__(db, Service)

    def get_active_in_city(self, city_id: str, service_id: str) -> Optional[Service]:
        return (
            self.db.query(Service)
            .filter(
                Service.id == service_id,
                Service.city_id == city_id,
                Service.is_active.is_(True),
            )
            .first()
        )
