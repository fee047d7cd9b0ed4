"""
In-memory storage implementation.

Rows live in plain dictionaries keyed by id, one dictionary per table.
Values are deep-copied on the way in and out so callers never share
state with the store. Transactions snapshot every table and restore the
snapshot when the block raises.
"""

import copy
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence
from uuid import uuid4

from qrorder.db.models import Base
from qrorder.errors import ConflictError, StorageError
from qrorder.storage.base import (
    PARTIAL_UNIQUE_COLUMNS,
    TABLE_NAMES,
    UNIQUE_COLUMNS,
    Filter,
    Storage,
    check_filters,
    check_table,
    parse_order_by,
)


def _compare(op: str) -> Callable[[Any, Any], bool]:
    return {
        "gt": lambda a, b: a > b,
        "gte": lambda a, b: a >= b,
        "lt": lambda a, b: a < b,
        "lte": lambda a, b: a <= b,
    }[op]


def _matches(row: Dict[str, Any], filters: Sequence[Filter]) -> bool:
    for f in filters:
        value = row.get(f.column)
        if f.op == "eq":
            if value != f.value:
                return False
        elif f.op == "neq":
            if value == f.value:
                return False
        elif f.op == "in":
            if value not in f.value:
                return False
        else:
            # NULL never satisfies a range predicate (same as SQL)
            if value is None or f.value is None:
                return False
            if not _compare(f.op)(value, f.value):
                return False
    return True


def _check_columns(table: str, filters: Sequence[Filter]) -> None:
    columns = Base.metadata.tables[table].c
    for f in filters:
        if f.column not in columns:
            raise StorageError(f"Unknown column '{table}.{f.column}'")


def _sort_key(value: Any):
    # None sorts first, like NULLS FIRST
    return (value is not None, value)


class InMemoryStorage(Storage):
    """In-memory storage using dictionaries."""

    def __init__(self):
        """Initialize with empty storage."""
        self._tables: Dict[str, Dict[str, Dict[str, Any]]] = {
            name: {} for name in TABLE_NAMES
        }
        self._lock = threading.RLock()
        self._tx_depth = 0

    def _check_unique(self, table: str, row: Dict[str, Any], row_id: str) -> None:
        for column in UNIQUE_COLUMNS.get(table, ()):
            value = row.get(column)
            if value is None:
                continue
            for other_id, other in self._tables[table].items():
                if other_id != row_id and other.get(column) == value:
                    raise ConflictError(
                        f"Duplicate value for {table}.{column}: {value!r}"
                    )
        if table in PARTIAL_UNIQUE_COLUMNS:
            column, flag = PARTIAL_UNIQUE_COLUMNS[table]
            if not row.get(flag):
                return
            for other_id, other in self._tables[table].items():
                if other_id != row_id and other.get(flag) and other.get(column) == row.get(column):
                    raise ConflictError(
                        f"Duplicate value for {table}.{column} where {flag}: {row.get(column)!r}"
                    )

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """Insert one row and return a copy of it."""
        check_table(table)
        with self._lock:
            stored = copy.deepcopy(row)
            stored.setdefault("id", str(uuid4()))
            if stored["id"] in self._tables[table]:
                raise ConflictError(f"Duplicate id for {table}: {stored['id']}")
            self._check_unique(table, stored, stored["id"])
            self._tables[table][stored["id"]] = stored
            return copy.deepcopy(stored)

    def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        order_by: Sequence[str] = (),
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Return copies of matching rows, sorted and limited."""
        check_table(table)
        check_filters(filters)
        _check_columns(table, filters)
        with self._lock:
            rows = [r for r in self._tables[table].values() if _matches(r, filters)]
            # Stable sorts applied from the last key to the first
            for column, descending in reversed(parse_order_by(order_by)):
                rows.sort(key=lambda r: _sort_key(r.get(column)), reverse=descending)
            if limit is not None:
                rows = rows[:limit]
            return copy.deepcopy(rows)

    def update(
        self, table: str, values: Dict[str, Any], filters: Sequence[Filter]
    ) -> List[Dict[str, Any]]:
        """Update matching rows in place and return copies of them."""
        check_table(table)
        check_filters(filters)
        _check_columns(table, filters)
        with self._lock:
            targets = [r for r in self._tables[table].values() if _matches(r, filters)]
            for row in targets:
                candidate = {**row, **copy.deepcopy(values)}
                self._check_unique(table, candidate, row["id"])
            for row in targets:
                row.update(copy.deepcopy(values))
            return copy.deepcopy(targets)

    def delete(self, table: str, filters: Sequence[Filter]) -> int:
        """Delete matching rows."""
        check_table(table)
        check_filters(filters)
        _check_columns(table, filters)
        with self._lock:
            doomed = [
                row_id
                for row_id, row in self._tables[table].items()
                if _matches(row, filters)
            ]
            for row_id in doomed:
                del self._tables[table][row_id]
            return len(doomed)

    @contextmanager
    def transaction(self) -> Iterator["InMemoryStorage"]:
        """Snapshot all tables; restore the snapshot if the block raises."""
        with self._lock:
            if self._tx_depth > 0:
                # Nested: the outermost block owns the snapshot
                self._tx_depth += 1
                try:
                    yield self
                finally:
                    self._tx_depth -= 1
                return

            snapshot = copy.deepcopy(self._tables)
            self._tx_depth = 1
            try:
                yield self
            except BaseException:
                self._tables = snapshot
                raise
            finally:
                self._tx_depth = 0

    def clear(self) -> None:
        """Clear all state."""
        with self._lock:
            for rows in self._tables.values():
                rows.clear()
