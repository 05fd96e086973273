# backend/jayple/repositories/base_repository.py
"""
Base repository shared by every aggregate repository.

Repositories never commit and never roll back; services own the
transaction through run_in_transaction. Integrity and stale-data errors
propagate untouched so the transaction runner can tell a lost race apart
from a real failure. Any other SQLAlchemy error is wrapped in
RepositoryException.
"""

from contextlib import contextmanager
import logging
from typing import Any, Generic, Iterator, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..core.exceptions import RepositoryException

T = TypeVar("T")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """
    Attributes:
        db: SQLAlchemy session, owned by the calling service
        model: mapped class this repository reads and writes
    """

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    @contextmanager
    def _wrap_errors(self, action: str) -> Iterator[None]:
        try:
            yield
        except (IntegrityError, StaleDataError):
            raise
        except SQLAlchemyError as e:
            self.logger.error("Failed to %s %s: %s", action, self.model.__name__, e)
            raise RepositoryException(f"Failed to {action} {self.model.__name__}: {e}") from e

    def get_by_id(self, id: Any) -> Optional[T]:
        with self._wrap_errors("load"):
            return self.db.get(self.model, id)

    def exists(self, **criteria: Any) -> bool:
        with self._wrap_errors("look up"):
            return self.db.query(self.model).filter_by(**criteria).first() is not None

    def create(self, **kwargs: Any) -> T:
        """Add and flush a new row. Version checks and unique constraints fire here."""
        entity = self.model(**kwargs)
        with self._wrap_errors("create"):
            self.db.add(entity)
            self.db.flush()
        return entity

    def delete(self, entity: T) -> None:
        with self._wrap_errors("delete"):
            self.db.delete(entity)
            self.db.flush()

    def flush(self) -> None:
        self.db.flush()
