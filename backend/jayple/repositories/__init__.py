# backend/jayple/repositories/__init__.py
"""Repository layer: data access only, transactions are owned by services."""

from .base_repository import BaseRepository
from .factory import RepositoryFactory

__all__ = ["BaseRepository", "RepositoryFactory"]
