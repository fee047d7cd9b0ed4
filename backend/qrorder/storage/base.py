"""
Abstract Storage interface for the ordering backend.

Defines the contract for table-scoped CRUD with filtering and ordering.
Every domain service talks to the data through this interface only;
implementations can be in-memory, database-backed, or other backends.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, NamedTuple, Optional, Sequence, Tuple

from qrorder.errors import StorageError


TABLE_NAMES = (
    "restaurant_tables",
    "table_sessions",
    "orders",
    "menu_items",
    "transactions",
    "users",
    "admin_users",
    "carts",
)

# Columns that must be unique per table (checked by backends without a schema)
UNIQUE_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "restaurant_tables": ("table_number",),
    "users": ("email",),
    "admin_users": ("user_id",),
    "carts": ("session_id",),
}

# Column unique only among rows where the flag column is true: {table: (column, flag)}
PARTIAL_UNIQUE_COLUMNS: Dict[str, Tuple[str, str]] = {
    "table_sessions": ("table_number", "is_active"),
}

FILTER_OPS = ("eq", "neq", "gt", "gte", "lt", "lte", "in")


class Filter(NamedTuple):
    """A single predicate: column <op> value."""

    column: str
    op: str
    value: Any


def eq(column: str, value: Any) -> Filter:
    return Filter(column, "eq", value)


def neq(column: str, value: Any) -> Filter:
    return Filter(column, "neq", value)


def gt(column: str, value: Any) -> Filter:
    return Filter(column, "gt", value)


def gte(column: str, value: Any) -> Filter:
    return Filter(column, "gte", value)


def lt(column: str, value: Any) -> Filter:
    return Filter(column, "lt", value)


def lte(column: str, value: Any) -> Filter:
    return Filter(column, "lte", value)


def in_(column: str, values: Sequence[Any]) -> Filter:
    return Filter(column, "in", list(values))


def parse_order_by(order_by: Sequence[str]) -> List[Tuple[str, bool]]:
    """Turn ["category", "-created_at"] into [(column, descending), ...]."""
    parsed = []
    for key in order_by:
        if key.startswith("-"):
            parsed.append((key[1:], True))
        else:
            parsed.append((key, False))
    return parsed


def check_table(table: str) -> None:
    if table not in TABLE_NAMES:
        raise StorageError(f"Unknown table '{table}'")


def check_filters(filters: Sequence[Filter]) -> None:
    for f in filters:
        if f.op not in FILTER_OPS:
            raise StorageError(f"Unsupported filter operator '{f.op}'")


class Storage(ABC):
    """Abstract base class for storage implementations."""

    @abstractmethod
    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert one row and return it as stored.

        Assigns a UUID string "id" when the row has none.
        Raises ConflictError on a unique-key violation.
        """
        ...

    @abstractmethod
    def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        order_by: Sequence[str] = (),
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Return rows matching all filters.

        order_by entries are column names; a leading "-" sorts descending.
        """
        ...

    @abstractmethod
    def update(
        self, table: str, values: Dict[str, Any], filters: Sequence[Filter]
    ) -> List[Dict[str, Any]]:
        """
        Apply values to every row matching the filters.

        Returns the updated rows. No match is not an error: the caller
        decides what an empty result means.
        """
        ...

    @abstractmethod
    def delete(self, table: str, filters: Sequence[Filter]) -> int:
        """Delete matching rows and return how many were removed."""
        ...

    @abstractmethod
    @contextmanager
    def transaction(self) -> Iterator["Storage"]:
        """
        Group storage calls so they apply atomically.

        Nested use joins the outer transaction.
        """
        ...

    @abstractmethod
    def clear(self) -> None:
        """Clear all state (every table)."""
        ...

    def select_one(
        self, table: str, filters: Sequence[Filter], order_by: Sequence[str] = ()
    ) -> Optional[Dict[str, Any]]:
        """Return the first matching row, or None."""
        rows = self.select(table, filters, order_by=order_by, limit=1)
        return rows[0] if rows else None

    def close(self) -> None:
        """Release backend resources. Optional cleanup method."""
