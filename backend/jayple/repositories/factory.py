# backend/jayple/repositories/factory.py
"""
Repository Factory for the Jayple dispatch engine.

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from sqlalchemy.orm import Session

from .blocked_account_repository import BlockedAccountRepository
from .booking_repository import BookingRepository
from .dispute_repository import DisputeRepository
from .freelancer_repository import FreelancerRepository
from .ledger_repository import LedgerRepository
from .service_catalog_repository import ServiceCatalogRepository
from .settlement_repository import SettlementRepository
from .user_repository import UserRepository


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_booking_repository(db: Session) -> BookingRepository:
        return BookingRepository(db)

    @staticmethod
    def create_freelancer_repository(db: Session) -> FreelancerRepository:
        return FreelancerRepository(db)

    @staticmethod
    def create_ledger_repository(db: Session) -> LedgerRepository:
        return LedgerRepository(db)

    @staticmethod
    def create_blocked_account_repository(db: Session) -> BlockedAccountRepository:
        return BlockedAccountRepository(db)

    @staticmethod
    def create_settlement_repository(db: Session) -> SettlementRepository:
        return SettlementRepository(db)

    @staticmethod
    def create_service_catalog_repository(db: Session) -> ServiceCatalogRepository:
        return ServiceCatalogRepository(db)

    @staticmethod
    def create_user_repository(db: Session) -> UserRepository:
        return UserRepository(db)

    @staticmethod
    def create_dispute_repository(db: Session) -> DisputeRepository:
        return DisputeRepository(db)
