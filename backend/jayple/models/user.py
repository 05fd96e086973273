# backend/jayple/models/user.py
"""
User and freelancer profile models.

Every party in the marketplace is a User with a single role. Freelancers
additionally carry a dispatch profile used by the assignment engine.
"""

from typing import Any, Dict, List

from sqlalchemy import JSON, Boolean, Column, ForeignKey, String
from sqlalchemy.orm import relationship

from ..core.enums import FreelancerStatus
from ..database import Base
from .types import UTCDateTime


class User(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    role = Column(String(20), nullable=False, index=True)
    city_id = Column(String(64), nullable=True, index=True)
    name = Column(String(255), nullable=True)
    created_at = Column(UTCDateTime, nullable=True)

    freelancer_profile = relationship(
        "Freelancer", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User {self.id}: role={self.role}, city={self.city_id}>"


class Freelancer(Base):
    """Dispatch profile for a freelancer in one city."""

    __tablename__ = "freelancers"

    id = Column(String(64), ForeignKey("users.id"), primary_key=True)
    city_id = Column(String(64), nullable=False, index=True)
    status = Column(String(10), nullable=False, default=FreelancerStatus.ACTIVE.value)
    is_online = Column(Boolean, nullable=False, default=False)
    service_categories = Column(JSON, nullable=False, default=list)
    priority_tier = Column(String(10), nullable=True)
    last_active_at = Column(UTCDateTime, nullable=True)

    user = relationship("User", back_populates="freelancer_profile")

    def __repr__(self) -> str:
        return (
            f"<Freelancer {self.id}: city={self.city_id}, tier={self.priority_tier}, "
            f"online={self.is_online}>"
        )

    def offers(self, category: str) -> bool:
        categories: List[str] = list(self.service_categories or [])
        return category in categories

    def to_dict(self) -> Dict[str, Any]:
        return {
            "freelancerId": self.id,
            "cityId": self.city_id,
            "status": self.status,
            "isOnline": self.is_online,
            "serviceCategories": list(self.service_categories or []),
            "priorityTier": self.priority_tier,
            "lastActiveAt": self.last_active_at,
        }
