# backend/jayple/models/service_catalog.py
"""
Service catalog model.

The dispatch engine only reads the catalog: (city_id, id) resolves to a
category, a price and, for in-shop services, the owning vendor.
"""

from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Numeric, String

from ..database import Base


class Service(Base):
    __tablename__ = "services"

    id = Column(String(64), primary_key=True)
    city_id = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    category = Column(String(64), nullable=False, index=True)
    price = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    vendor_id = Column(String(64), ForeignKey("users.id"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (CheckConstraint("price >= 0", name="ck_services_price_non_negative"),)

    def __repr__(self) -> str:
        return f"<Service {self.id}: {self.name} ({self.category}) {self.price}>"
