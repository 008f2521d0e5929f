# backend/app/repositories/base_repository.py
"""
Base Repository Pattern for the Parkspace platform.

Every repository wraps one model and a session. Repositories flush so new
rows get their ULIDs, but they never commit: transaction boundaries belong
to the service layer (see BaseService.transaction).

SQLAlchemy errors are logged and re-raised as RepositoryException so the
routes only ever see domain exceptions.
"""

from abc import ABC, abstractmethod
import logging
from typing import Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from app.database import get_dialect_name

from ..core.exceptions import RepositoryException

# Type variable for generic model support
T = TypeVar("T")

logger = logging.getLogger(__name__)


class IRepository(ABC, Generic[T]):
    """Lookup and write contract shared by every repository."""

    @abstractmethod
    def get_by_id(self, id: str, load_relationships: bool = True) -> Optional[T]:
        """Retrieve an entity by its ULID, or None."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[T]:
        """Retrieve an entity holding its row lock until commit or rollback."""

    @abstractmethod
    def create(self, **kwargs) -> T:
        """Add and flush a new entity."""

    @abstractmethod
    def delete_entity(self, entity: T) -> None:
        """Delete an already-loaded entity."""


class BaseRepository(IRepository[T]):
    """
    Shared implementation of the repository contract.

    Attributes:
        db: SQLAlchemy session
        model: SQLAlchemy model class
    """

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    @property
    def dialect_name(self) -> str:
        return get_dialect_name(self.db)

    def _fail(self, action: str, exc: SQLAlchemyError) -> RepositoryException:
        self.logger.error(f"Failed to {action} {self.model.__name__}: {str(exc)}")
        return RepositoryException(f"Failed to {action} {self.model.__name__}: {str(exc)}")

    def get_by_id(self, id: str, load_relationships: bool = True) -> Optional[T]:
        try:
            query = self.db.query(self.model).filter(self.model.id == id)
            if load_relationships:
                query = self._apply_eager_loading(query)
            return query.first()
        except SQLAlchemyError as e:
            raise self._fail("retrieve", e)

    def get_for_update(self, id: str) -> Optional[T]:
        """
        Lock the row for the rest of the transaction.

        SQLite has no row locks; there the single shared connection already
        serializes writers.
        """
        try:
            query = self.db.query(self.model).filter(self.model.id == id)
            if self.dialect_name == "postgresql":
                query = query.with_for_update()
            return query.first()
        except SQLAlchemyError as e:
            raise self._fail("lock", e)

    def create(self, **kwargs) -> T:
        try:
            entity = self.model(**kwargs)
            self.db.add(entity)
            self.db.flush()
            return entity
        except IntegrityError as exc:
            self.logger.error(
                "Integrity error creating %s: %s", self.model.__name__, exc, exc_info=True
            )
            raise RepositoryException(f"Integrity constraint violated: {exc}") from exc
        except SQLAlchemyError as e:
            raise self._fail("create", e)

    def flush(self) -> None:
        self.db.flush()

    def delete_entity(self, entity: T) -> None:
        try:
            self.db.delete(entity)
            self.db.flush()
        except SQLAlchemyError as e:
            raise self._fail("delete", e)

    def find_one_by(self, **kwargs) -> Optional[T]:
        """First entity matching exact-match criteria."""
        try:
            return self.db.query(self.model).filter_by(**kwargs).first()
        except SQLAlchemyError as e:
            raise self._fail("find", e)

    # Helpers for subclasses

    def _apply_eager_loading(self, query: Query) -> Query:
        """Override to add joinedload/selectinload."""
        return query

    def _execute_query(self, query: Query) -> List[T]:
        try:
            return query.all()
        except SQLAlchemyError as e:
            self.logger.error(f"Query execution error: {str(e)}")
            raise RepositoryException(f"Query failed: {str(e)}")

    def _execute_scalar(self, query: Query) -> Any:
        try:
            return query.scalar()
        except SQLAlchemyError as e:
            self.logger.error(f"Scalar query error: {str(e)}")
            raise RepositoryException(f"Scalar query failed: {str(e)}")
