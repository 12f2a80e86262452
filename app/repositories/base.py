"""
Generic repository over a SQLAlchemy session.

Repositories never commit: they flush so generated ids are available, and the
calling service decides the transaction boundary (see app.db.session.transaction).
Every SQLAlchemy failure surfaces as DataAccessError naming the entity and
operation.
"""
from contextlib import contextmanager
from typing import Any, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import DataAccessError


class Repository:
    model: Any = None
    entity: str = ""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _guard(self, operation: str):
        try:
            yield
        except SQLAlchemyError as e:
            raise DataAccessError(self.entity, operation, str(e)) from e

    def find(self, *criteria, order_by=None, limit: Optional[int] = None, offset: Optional[int] = None) -> List[Any]:
        with self._guard("query"):
            query = self.db.query(self.model).filter(*criteria)
            if order_by is not None:
                query = query.order_by(order_by)
            if offset:
                query = query.offset(offset)
            if limit is not None:
                query = query.limit(limit)
            return query.all()

    def first(self, *criteria, order_by=None) -> Optional[Any]:
        rows = self.find(*criteria, order_by=order_by, limit=1)
        return rows[0] if rows else None

    def count(self, *criteria) -> int:
        with self._guard("count"):
            return self.db.query(self.model).filter(*criteria).count()

    def insert(self, rows: Iterable[Any]) -> List[Any]:
        rows = list(rows)
        if not rows:
            return rows
        with self._guard("insert"):
            self.db.add_all(rows)
            self.db.flush()
        return rows

    def delete_where(self, *criteria) -> int:
        with self._guard("delete"):
            return self.db.query(self.model).filter(*criteria).delete(synchronize_session=False)

    def distinct(self, column, *criteria) -> List[Any]:
        with self._guard("distinct"):
            rows = self.db.query(column).filter(*criteria).distinct().order_by(column).all()
            return [row[0] for row in rows]

    def flush(self) -> None:
        with self._guard("update"):
            self.db.flush()
