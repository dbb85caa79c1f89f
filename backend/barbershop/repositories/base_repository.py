# backend/barbershop/repositories/base_repository.py
"""
Base Repository Pattern for the barbershop backend.

Repositories own every query; services own transactions. Nothing here
commits: writes are flushed so generated values are available, and the
calling service decides when the unit of work ends.
"""

from contextlib import contextmanager
import logging
from typing import Any, Generic, Iterator, List, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..core.exceptions import RepositoryException
from ..database import get_dialect_name

T = TypeVar("T")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """
    Lookup and write helpers shared by the catalog, booking and payment
    repositories.

    Database errors surface as RepositoryException; integrity violations keep
    their own message so callers can tell a broken reference from an outage.
    """

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    @property
    def dialect_name(self) -> str:
        return get_dialect_name(self.db)

    @contextmanager
    def _database_errors(self, action: str) -> Iterator[None]:
        name = self.model.__name__
        try:
            yield
        except IntegrityError as exc:
            self.logger.error("Integrity error while trying to %s %s: %s", action, name, exc)
            raise RepositoryException(f"Cannot {action} {name}: constraint violated") from exc
        except SQLAlchemyError as exc:
            self.logger.error("Database error while trying to %s %s: %s", action, name, exc)
            raise RepositoryException(f"Failed to {action} {name}") from exc

    def get_by_id(self, id: str, load_relationships: bool = True) -> Optional[T]:
        with self._database_errors("load"):
            query = self.db.query(self.model).filter(self.model.id == id)
            if load_relationships:
                query = self._apply_eager_loading(query)
            return query.first()

    def find_by(self, **criteria: Any) -> List[T]:
        with self._database_errors("query"):
            return self.db.query(self.model).filter_by(**criteria).all()

    def find_one_by(self, **criteria: Any) -> Optional[T]:
        with self._database_errors("query"):
            return self.db.query(self.model).filter_by(**criteria).first()

    def create(self, **fields: Any) -> T:
        with self._database_errors("create"):
            entity = self.model(**fields)
            self.db.add(entity)
            self.db.flush()
            return entity

    def update(self, id: str, **fields: Any) -> Optional[T]:
        """Set the given attributes; unknown names are ignored. None if missing."""
        with self._database_errors("update"):
            entity = self.get_by_id(id, load_relationships=False)
            if entity is None:
                return None
            for key, value in fields.items():
                if hasattr(entity, key):
                    setattr(entity, key, value)
            self.db.flush()
            return entity

    def delete(self, id: str) -> bool:
        with self._database_errors("delete"):
            entity = self.get_by_id(id, load_relationships=False)
            if entity is None:
                return False
            self.db.delete(entity)
            self.db.flush()
            return True

    def _apply_eager_loading(self, query: Query) -> Query:
        """Subclasses add joinedload/selectinload options here."""
        return query
