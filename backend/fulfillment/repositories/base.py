"""
Base Repository implementation.
Provides common data access patterns for string-keyed documents.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from sqlalchemy import Select, select
from sqlalchemy.engine import CursorResult
from sqlalchemy.orm import Session


ModelT = TypeVar("ModelT")


class BaseRepository(ABC, Generic[ModelT]):
    """
    Abstract base repository.

    Repositories never commit: writes run inside the caller's transaction
    so a service can combine a flag claim and ledger increments and commit
    (or roll back) them together.
    """

    def __init__(self, db: Session):
        self._db = db

    @property
    @abstractmethod
    def model(self) -> type[ModelT]:
        """Return the SQLAlchemy model class."""
        ...

    def _base_query(self) -> Select:
        """Base query; override to add eager loading."""
        return select(self.model)

    def find_by_id(self, entity_id: str) -> ModelT | None:
        query = self._base_query().where(self.model.id == entity_id)  # type: ignore[attr-defined]
        return self._db.scalar(query)

    def _rowcount(self, result: CursorResult) -> int:
        """Rows matched by an UPDATE; 0 means the condition did not hold."""
        return result.rowcount or 0
