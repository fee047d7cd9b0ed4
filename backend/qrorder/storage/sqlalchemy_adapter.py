"""
SQLAlchemy storage implementation.

Runs SQLAlchemy 2.0 Core statements against the tables declared in
qrorder.db.models. SQLite by default; any SQLAlchemy URL works.
Each call runs in its own transaction unless it is made inside
transaction(), in which case all calls share one connection and commit
or roll back together.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence
from uuid import uuid4

from sqlalchemy import Table, create_engine, delete, insert, select, update
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from qrorder.db import init_db
from qrorder.db.models import Base
from qrorder.errors import ConflictError, StorageError
from qrorder.storage.base import (
    Filter,
    Storage,
    check_filters,
    check_table,
    parse_order_by,
)

logger = logging.getLogger(__name__)


class SQLAlchemyStorage(Storage):
    """SQLAlchemy-backed storage with explicit transaction blocks."""

    def __init__(self, database_url: str = "sqlite:///qrorder.db", use_alembic: bool = False):
        """
        Initialize SQLAlchemy storage.

        Args:
            database_url: SQLAlchemy database URL (default: sqlite:///qrorder.db)
            use_alembic: Run Alembic migrations instead of create_all
        """
        self.database_url = database_url

        # pool_pre_ping=True: verify connections before use (detect stale connections)
        self.engine = create_engine(
            self.database_url,
            connect_args={"check_same_thread": False} if database_url.startswith("sqlite") else {},
            echo=False,
            pool_pre_ping=True,
        )
        self._local = threading.local()

        init_db(self.engine, use_alembic=use_alembic, base=Base)
        logger.info("SQLAlchemyStorage ready at %s", self.database_url)

    def _table(self, name: str) -> Table:
        check_table(name)
        return Base.metadata.tables[name]

    def _where(self, table: Table, filters: Sequence[Filter]) -> list:
        check_filters(filters)
        clauses = []
        for f in filters:
            if f.column not in table.c:
                raise StorageError(f"Unknown column '{table.name}.{f.column}'")
            col = table.c[f.column]
            if f.op == "eq":
                clauses.append(col.is_(None) if f.value is None else col == f.value)
            elif f.op == "neq":
                clauses.append(col.isnot(None) if f.value is None else col != f.value)
            elif f.op == "gt":
                clauses.append(col > f.value)
            elif f.op == "gte":
                clauses.append(col >= f.value)
            elif f.op == "lt":
                clauses.append(col < f.value)
            elif f.op == "lte":
                clauses.append(col <= f.value)
            elif f.op == "in":
                clauses.append(col.in_(f.value))
        return clauses

    @contextmanager
    def _connect(self) -> Iterator[Connection]:
        """Yield the open transaction's connection, or a fresh one."""
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            yield conn
            return
        try:
            with self.engine.begin() as conn:
                yield conn
        except IntegrityError as e:
            raise ConflictError(f"Constraint violation: {e.orig}") from e
        except SQLAlchemyError as e:
            logger.error("Storage call failed: %s", e)
            raise StorageError(f"Storage failure: {e}") from e

    @staticmethod
    def _rows(result) -> List[Dict[str, Any]]:
        return [dict(row) for row in result.mappings().all()]

    def _select_ids(self, conn: Connection, table: Table, clauses: list) -> List[str]:
        return list(conn.execute(select(table.c.id).where(*clauses)).scalars().all())

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """Insert one row and return it as stored (defaults applied)."""
        t = self._table(table)
        values = dict(row)
        values.setdefault("id", str(uuid4()))
        unknown = set(values) - set(t.c.keys())
        if unknown:
            raise StorageError(f"Unknown columns for {table}: {sorted(unknown)}")
        with self._connect() as conn:
            try:
                conn.execute(insert(t).values(**values))
            except IntegrityError as e:
                raise ConflictError(f"Constraint violation: {e.orig}") from e
            stored = conn.execute(select(t).where(t.c.id == values["id"])).mappings().one()
            return dict(stored)

    def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        order_by: Sequence[str] = (),
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Return matching rows as dictionaries."""
        t = self._table(table)
        stmt = select(t).where(*self._where(t, filters))
        for column, descending in parse_order_by(order_by):
            col = t.c[column]
            stmt = stmt.order_by(col.desc() if descending else col.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._connect() as conn:
            return self._rows(conn.execute(stmt))

    def update(
        self, table: str, values: Dict[str, Any], filters: Sequence[Filter]
    ) -> List[Dict[str, Any]]:
        """Update matching rows; returns only the rows this call changed."""
        t = self._table(table)
        clauses = self._where(t, filters)
        with self._connect() as conn:
            ids = self._select_ids(conn, t, clauses)
            if not ids:
                return []
            # Re-apply the filters so a row changed concurrently is skipped
            try:
                result = conn.execute(update(t).where(t.c.id.in_(ids), *clauses).values(**values))
            except IntegrityError as e:
                raise ConflictError(f"Constraint violation: {e.orig}") from e
            if result.rowcount == 0:
                return []
            return self._rows(conn.execute(select(t).where(t.c.id.in_(ids))))

    def delete(self, table: str, filters: Sequence[Filter]) -> int:
        """Delete matching rows."""
        t = self._table(table)
        with self._connect() as conn:
            result = conn.execute(delete(t).where(*self._where(t, filters)))
            return result.rowcount

    @contextmanager
    def transaction(self) -> Iterator["SQLAlchemyStorage"]:
        """Share one connection across calls; commit on success, roll back on error."""
        if getattr(self._local, "conn", None) is not None:
            yield self
            return
        try:
            with self.engine.begin() as conn:
                self._local.conn = conn
                try:
                    yield self
                finally:
                    self._local.conn = None
        except IntegrityError as e:
            raise ConflictError(f"Constraint violation: {e.orig}") from e
        except SQLAlchemyError as e:
            logger.error("Storage transaction failed: %s", e)
            raise StorageError(f"Storage failure: {e}") from e

    def clear(self) -> None:
        """Delete all rows from every table (children first)."""
        with self._connect() as conn:
            for t in reversed(Base.metadata.sorted_tables):
                conn.execute(delete(t))

    def close(self) -> None:
        """Close database connections."""
        self.engine.dispose()
